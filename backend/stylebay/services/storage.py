"""
数据存储层 - 用户和商品记录的持久化

Three interchangeable backends share one interface:
- JsonFileStorage: data/users.json + data/products.json
- MongoStorage: `products` / `users` collections
- MemoryStorage: process memory (tests, serverless demos)

Every read-modify-write runs as one unit: the file and memory backends hold
a backend-wide lock, MongoDB uses atomic update operators.
"""

import copy
import json
import os
import tempfile
import threading
from typing import List, Dict, Any, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import ConflictError
from ..models import view_count


class BaseStorage:
    """Storage Adapter interface consumed by the services."""

    name = 'base'

    # ---------- products ----------

    def list_products(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def insert_product(self, record: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply `changes` to one record; returns the new record or None."""
        raise NotImplementedError

    def update_product_with_previous(self, product_id: str, changes: Dict[str, Any]):
        """Like update_product, as one step; returns (previous, updated) or (None, None)."""
        raise NotImplementedError

    def increment_views(self, product_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def delete_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Remove one record; returns the removed record or None."""
        raise NotImplementedError

    def list_products_by_seller(self, seller_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.list_products() if p.get('sellerId') == seller_id]

    # ---------- users ----------

    def list_users(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def insert_user(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a user; raises ConflictError when the email is taken."""
        raise NotImplementedError

    def count_users(self) -> int:
        return len(self.list_users())


class MemoryStorage(BaseStorage):
    """进程内存存储 - 每个实例拥有自己的数据"""

    name = 'memory'

    def __init__(self, products: List[Dict[str, Any]] = None, users: List[Dict[str, Any]] = None):
        self._lock = threading.RLock()
        self._products = copy.deepcopy(products or [])
        self._users = copy.deepcopy(users or [])

    # Subclasses swap these two hooks to persist elsewhere.
    def _read(self, kind: str) -> List[Dict[str, Any]]:
        return self._products if kind == 'products' else self._users

    def _write(self, kind: str, records: List[Dict[str, Any]]) -> None:
        if kind == 'products':
            self._products = records
        else:
            self._users = records

    @staticmethod
    def _find_index(records: List[Dict[str, Any]], record_id: str) -> int:
        for index, record in enumerate(records):
            if record.get('id') == record_id:
                return index
        return -1

    def list_products(self):
        with self._lock:
            return copy.deepcopy(self._read('products'))

    def get_product(self, product_id):
        with self._lock:
            products = self._read('products')
            index = self._find_index(products, product_id)
            return copy.deepcopy(products[index]) if index != -1 else None

    def insert_product(self, record):
        with self._lock:
            products = list(self._read('products'))
            products.append(copy.deepcopy(record))
            self._write('products', products)
            return copy.deepcopy(record)

    def update_product(self, product_id, changes):
        return self.update_product_with_previous(product_id, changes)[1]

    def update_product_with_previous(self, product_id, changes):
        with self._lock:
            products = list(self._read('products'))
            index = self._find_index(products, product_id)
            if index == -1:
                return None, None
            previous = products[index]
            updated = dict(previous)
            updated.update(copy.deepcopy(changes))
            products[index] = updated
            self._write('products', products)
            return copy.deepcopy(previous), copy.deepcopy(updated)

    def increment_views(self, product_id):
        with self._lock:
            products = list(self._read('products'))
            index = self._find_index(products, product_id)
            if index == -1:
                return None
            updated = dict(products[index])
            updated['views'] = view_count(updated.get('views')) + 1
            products[index] = updated
            self._write('products', products)
            return copy.deepcopy(updated)

    def delete_product(self, product_id):
        with self._lock:
            products = list(self._read('products'))
            index = self._find_index(products, product_id)
            if index == -1:
                return None
            removed = products.pop(index)
            self._write('products', products)
            return copy.deepcopy(removed)

    def list_users(self):
        with self._lock:
            return copy.deepcopy(self._read('users'))

    def get_user(self, user_id):
        with self._lock:
            users = self._read('users')
            index = self._find_index(users, user_id)
            return copy.deepcopy(users[index]) if index != -1 else None

    def find_user_by_email(self, email):
        target = (email or '').strip().lower()
        with self._lock:
            for user in self._read('users'):
                if (user.get('email') or '').strip().lower() == target:
                    return copy.deepcopy(user)
        return None

    def insert_user(self, record):
        with self._lock:
            if self.find_user_by_email(record.get('email')):
                raise ConflictError('Email already registered')
            users = list(self._read('users'))
            users.append(copy.deepcopy(record))
            self._write('users', users)
            return copy.deepcopy(record)


class JsonFileStorage(MemoryStorage):
    """JSON 文件存储 - 每次操作都读写磁盘，外部修改立即可见"""

    name = 'file'

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = data_dir
        self.files = {
            'products': os.path.join(data_dir, 'products.json'),
            'users': os.path.join(data_dir, 'users.json'),
        }
        os.makedirs(data_dir, exist_ok=True)
        for path in self.files.values():
            if not os.path.exists(path):
                self._dump(path, [])

    def _read(self, kind):
        path = self.files[kind]
        if not os.path.exists(path):
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"  ⚠ 读取 {path} 失败: {e}, treating as empty")
            return []
        if not isinstance(data, list):
            print(f"  ⚠ {path} 不是数组, treating as empty")
            return []
        return [item for item in data if isinstance(item, dict)]

    def _write(self, kind, records):
        self._dump(self.files[kind], records)

    @staticmethod
    def _dump(path: str, records: List[Dict[str, Any]]) -> None:
        """Write to a temp file in the same directory, then swap it in."""
        directory = os.path.dirname(path) or '.'
        fd, tmp_path = tempfile.mkstemp(prefix='.tmp-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class MongoStorage(BaseStorage):
    """MongoDB 存储 - 使用原子更新操作"""

    name = 'mongo'

    # Hide Mongo's ObjectId from every read
    PROJECTION = {'_id': 0}

    def __init__(self, db):
        self.db = db
        self.products = db.products
        self.users = db.users

    def ensure_indexes(self) -> None:
        self.products.create_index('id', unique=True)
        self.products.create_index('sellerId')
        self.users.create_index('id', unique=True)
        self.users.create_index('email', unique=True)

    def list_products(self):
        return list(self.products.find({}, self.PROJECTION))

    def get_product(self, product_id):
        return self.products.find_one({'id': product_id}, self.PROJECTION)

    def insert_product(self, record):
        # insert_one adds _id to the dict it is given
        self.products.insert_one(dict(record))
        return dict(record)

    def update_product(self, product_id, changes):
        return self.products.find_one_and_update(
            {'id': product_id},
            {'$set': dict(changes)},
            projection=self.PROJECTION,
            return_document=ReturnDocument.AFTER,
        )

    def update_product_with_previous(self, product_id, changes):
        previous = self.products.find_one_and_update(
            {'id': product_id},
            {'$set': dict(changes)},
            projection=self.PROJECTION,
            return_document=ReturnDocument.BEFORE,
        )
        if previous is None:
            return None, None
        updated = dict(previous)
        updated.update(changes)
        return previous, updated

    def increment_views(self, product_id):
        return self.products.find_one_and_update(
            {'id': product_id},
            {'$inc': {'views': 1}},
            projection=self.PROJECTION,
            return_document=ReturnDocument.AFTER,
        )

    def delete_product(self, product_id):
        return self.products.find_one_and_delete({'id': product_id}, projection=self.PROJECTION)

    def list_products_by_seller(self, seller_id):
        return list(self.products.find({'sellerId': seller_id}, self.PROJECTION))

    def list_users(self):
        return list(self.users.find({}, self.PROJECTION))

    def get_user(self, user_id):
        return self.users.find_one({'id': user_id}, self.PROJECTION)

    def find_user_by_email(self, email):
        return self.users.find_one({'email': (email or '').strip().lower()}, self.PROJECTION)

    def insert_user(self, record):
        try:
            self.users.insert_one(dict(record))
        except DuplicateKeyError:
            raise ConflictError('Email already registered')
        return dict(record)

    def count_users(self):
        return self.users.count_documents({})


def _connect_mongo(app) -> Optional[MongoStorage]:
    """Connect through Flask-PyMongo; None when MongoDB is unusable."""
    from flask_pymongo import PyMongo

    if not app.config.get('MONGO_URI'):
        print("  ⚠ STORAGE_BACKEND=mongo but MONGO_URI is not set, using JSON files")
        return None
    try:
        mongo = PyMongo(app, serverSelectionTimeoutMS=3000)
        mongo.cx.admin.command('ping')
        db = mongo.db if mongo.db is not None else mongo.cx['stylebay']
        storage = MongoStorage(db)
        storage.ensure_indexes()
        app.extensions['stylebay_mongo'] = mongo
        print("  ✓ Backend connected to MongoDB")
        return storage
    except PyMongoError as e:
        print(f"  ⚠ MongoDB connection failed: {e}, using JSON files")
        return None


def create_storage(app) -> BaseStorage:
    """根据 STORAGE_BACKEND 选择存储实现"""
    backend = (app.config.get('STORAGE_BACKEND') or 'file').strip().lower()
    if backend not in ('file', 'mongo', 'memory'):
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")

    if backend == 'memory':
        print("  ✓ Using in-memory storage")
        return MemoryStorage()

    if backend == 'mongo':
        storage = _connect_mongo(app)
        if storage is not None:
            return storage

    data_path = app.config['DATA_PATH']
    print(f"  ✓ Using JSON file storage at {data_path}")
    return JsonFileStorage(data_path)
