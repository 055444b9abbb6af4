# Services package
#
# Module structure:
# - product_service.py: High-level listing operations (main API)
# - auth_service.py: Registration / login with pluggable password hashing
# - storage.py: Storage backends (JSON files, MongoDB, memory)
# - image_store.py: Image upload + cleanup (local disk or Cloudinary)
# - product_filters.py: Filtering logic for listing queries
# - product_sorting.py: Sorting logic for listing queries
# - contact.py: WhatsApp number formatting and links

from .product_service import ProductService
from .auth_service import AuthService, PasswordHasher
from .storage import BaseStorage, JsonFileStorage, MemoryStorage, MongoStorage, create_storage
from .image_store import CloudinaryImageStore, LocalImageStore, create_image_store
from . import product_filters
from . import product_sorting

__all__ = [
    'ProductService',
    'AuthService',
    'PasswordHasher',
    'BaseStorage',
    'JsonFileStorage',
    'MemoryStorage',
    'MongoStorage',
    'create_storage',
    'CloudinaryImageStore',
    'LocalImageStore',
    'create_image_store',
    'product_filters',
    'product_sorting',
]
