"""
Tests for storage backends: memory, JSON files, MongoDB (mocked collections)
and backend selection.

Run:
    python -m pytest tests/test_storage.py -v
"""

import json
import os
import sys
import threading
from unittest import mock

import pytest
from flask import Flask
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "backend"))

from stylebay.errors import ConflictError  # noqa: E402
from stylebay.services import storage as storage_mod  # noqa: E402
from stylebay.services.storage import (  # noqa: E402
    JsonFileStorage,
    MemoryStorage,
    MongoStorage,
    create_storage,
)


def _product(pid, seller="s1", **kw):
    record = {"id": pid, "name": f"Item {pid}", "price": 1000, "sellerId": seller, "views": 0,
              "status": "available", "images": []}
    record.update(kw)
    return record


class _SharedBehaviour:
    """Contract every lock-based backend must satisfy."""

    def make_storage(self, tmp_path):
        raise NotImplementedError

    def test_insert_and_get_product(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))
        assert store.get_product("p1")["name"] == "Item p1"
        assert store.get_product("missing") is None

    def test_returned_records_are_copies(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))
        fetched = store.get_product("p1")
        fetched["name"] = "changed"
        store.list_products()[0]["price"] = -1
        assert store.get_product("p1")["name"] == "Item p1"
        assert store.get_product("p1")["price"] == 1000

    def test_update_product_merges_changes(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))
        updated = store.update_product("p1", {"status": "sold"})
        assert updated["status"] == "sold"
        assert updated["price"] == 1000
        assert store.update_product("missing", {"status": "sold"}) is None

    def test_increment_views(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))
        store.increment_views("p1")
        assert store.increment_views("p1")["views"] == 2
        assert store.increment_views("missing") is None
        assert [p["views"] for p in store.list_products()] == [2]

    def test_increment_views_resets_unreadable_count(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1", views="x"))
        assert store.increment_views("p1")["views"] == 1

    def test_update_with_previous_returns_both_versions(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1", images=["/uploads/a.jpg"]))
        previous, updated = store.update_product_with_previous("p1", {"images": ["/uploads/b.jpg"]})
        assert previous["images"] == ["/uploads/a.jpg"]
        assert updated["images"] == ["/uploads/b.jpg"]
        assert store.get_product("p1")["images"] == ["/uploads/b.jpg"]
        assert store.update_product_with_previous("missing", {"status": "sold"}) == (None, None)

    def test_delete_product(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))
        store.insert_product(_product("p2", seller="s2"))
        removed = store.delete_product("p1")
        assert removed["id"] == "p1"
        assert store.delete_product("p1") is None
        assert [p["id"] for p in store.list_products()] == ["p2"]

    def test_list_products_by_seller(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1", seller="s1"))
        store.insert_product(_product("p2", seller="s2"))
        store.insert_product(_product("p3", seller="s1"))
        assert [p["id"] for p in store.list_products_by_seller("s1")] == ["p1", "p3"]

    def test_users_are_unique_by_email_case_insensitively(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_user({"id": "u1", "email": "amina@example.com"})
        assert store.find_user_by_email("AMINA@example.com")["id"] == "u1"
        with pytest.raises(ConflictError):
            store.insert_user({"id": "u2", "email": "Amina@Example.com"})
        assert store.count_users() == 1
        assert store.get_user("u1")["email"] == "amina@example.com"

    def test_concurrent_view_increments_are_not_lost(self, tmp_path):
        store = self.make_storage(tmp_path)
        store.insert_product(_product("p1"))

        def worker():
            for _ in range(25):
                store.increment_views("p1")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_product("p1")["views"] == 100


class TestMemoryStorage(_SharedBehaviour):

    def make_storage(self, tmp_path):
        return MemoryStorage()

    def test_instances_do_not_share_state(self):
        first = MemoryStorage()
        second = MemoryStorage()
        first.insert_product(_product("p1"))
        assert second.list_products() == []


class TestJsonFileStorage(_SharedBehaviour):

    def make_storage(self, tmp_path):
        return JsonFileStorage(str(tmp_path / "data"))

    def test_creates_empty_files(self, tmp_path):
        JsonFileStorage(str(tmp_path / "data"))
        for name in ("products.json", "users.json"):
            with open(tmp_path / "data" / name, encoding="utf-8") as f:
                assert json.load(f) == []

    def test_persists_across_instances(self, tmp_path):
        JsonFileStorage(str(tmp_path)).insert_product(_product("p1", name="Gomesi"))
        assert JsonFileStorage(str(tmp_path)).get_product("p1")["name"] == "Gomesi"

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        store = JsonFileStorage(str(tmp_path))
        (tmp_path / "products.json").write_text("{not json", encoding="utf-8")
        assert store.list_products() == []
        store.insert_product(_product("p1"))
        assert [p["id"] for p in store.list_products()] == ["p1"]

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStorage(str(tmp_path))
        store.insert_product(_product("p1"))
        store.update_product("p1", {"status": "sold"})
        assert sorted(os.listdir(tmp_path)) == ["products.json", "users.json"]


class TestMongoStorage:
    """MongoStorage maps every operation onto one atomic Mongo call."""

    def setup_method(self):
        self.db = mock.MagicMock()
        self.store = MongoStorage(self.db)

    def test_increment_views_uses_inc(self):
        self.db.products.find_one_and_update.return_value = {"id": "p1", "views": 3}
        result = self.store.increment_views("p1")
        assert result["views"] == 3
        self.db.products.find_one_and_update.assert_called_once_with(
            {"id": "p1"},
            {"$inc": {"views": 1}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    def test_update_product_uses_set(self):
        self.db.products.find_one_and_update.return_value = None
        assert self.store.update_product("missing", {"status": "sold"}) is None
        args, _ = self.db.products.find_one_and_update.call_args
        assert args == ({"id": "missing"}, {"$set": {"status": "sold"}})

    def test_update_with_previous_reads_the_document_before_set(self):
        self.db.products.find_one_and_update.return_value = {"id": "p1", "images": ["a"], "views": 2}
        previous, updated = self.store.update_product_with_previous("p1", {"images": ["b"]})
        assert previous["images"] == ["a"]
        assert updated == {"id": "p1", "images": ["b"], "views": 2}
        self.db.products.find_one_and_update.assert_called_once_with(
            {"id": "p1"},
            {"$set": {"images": ["b"]}},
            projection={"_id": 0},
            return_document=ReturnDocument.BEFORE,
        )

    def test_update_with_previous_unknown_id(self):
        self.db.products.find_one_and_update.return_value = None
        assert self.store.update_product_with_previous("missing", {"status": "sold"}) == (None, None)

    def test_insert_product_does_not_leak_object_id(self):
        def _insert(doc):
            doc["_id"] = "oid"

        self.db.products.insert_one.side_effect = _insert
        record = _product("p1")
        result = self.store.insert_product(record)
        assert "_id" not in result
        assert "_id" not in record

    def test_delete_product(self):
        self.db.products.find_one_and_delete.return_value = {"id": "p1"}
        assert self.store.delete_product("p1") == {"id": "p1"}
        self.db.products.find_one_and_delete.assert_called_once_with({"id": "p1"}, projection={"_id": 0})

    def test_duplicate_email_raises_conflict(self):
        self.db.users.insert_one.side_effect = DuplicateKeyError("dup")
        with pytest.raises(ConflictError):
            self.store.insert_user({"id": "u1", "email": "a@b.c"})

    def test_find_user_by_email_normalizes(self):
        self.store.find_user_by_email("  A@B.C ")
        self.db.users.find_one.assert_called_once_with({"email": "a@b.c"}, {"_id": 0})

    def test_ensure_indexes(self):
        self.store.ensure_indexes()
        self.db.users.create_index.assert_any_call("email", unique=True)
        self.db.products.create_index.assert_any_call("id", unique=True)


class TestCreateStorage:

    def _app(self, tmp_path, **config):
        app = Flask(__name__)
        app.config.update(DATA_PATH=str(tmp_path), MONGO_URI="", **config)
        return app

    def test_memory_backend(self, tmp_path):
        assert create_storage(self._app(tmp_path, STORAGE_BACKEND="memory")).name == "memory"

    def test_file_backend_is_default(self, tmp_path):
        store = create_storage(self._app(tmp_path))
        assert isinstance(store, JsonFileStorage)
        assert store.data_dir == str(tmp_path)

    def test_mongo_without_uri_falls_back_to_files(self, tmp_path):
        store = create_storage(self._app(tmp_path, STORAGE_BACKEND="mongo"))
        assert store.name == "file"

    def test_unreachable_mongo_falls_back_to_files(self, tmp_path):
        app = self._app(tmp_path, STORAGE_BACKEND="mongo")
        app.config["MONGO_URI"] = "mongodb://unreachable:27017/stylebay"
        with mock.patch.object(storage_mod, "_connect_mongo", return_value=None) as connect:
            store = create_storage(app)
        connect.assert_called_once_with(app)
        assert store.name == "file"

    def test_ping_failure_returns_none(self, tmp_path):
        app = self._app(tmp_path, STORAGE_BACKEND="mongo")
        app.config["MONGO_URI"] = "mongodb://unreachable:27017/stylebay"
        fake_mongo = mock.MagicMock()
        fake_mongo.cx.admin.command.side_effect = ServerSelectionTimeoutError("timeout")
        with mock.patch("flask_pymongo.PyMongo", return_value=fake_mongo):
            assert storage_mod._connect_mongo(app) is None

    def test_unknown_backend_is_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            create_storage(self._app(tmp_path, STORAGE_BACKEND="redis"))
