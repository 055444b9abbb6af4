from .product import Product, utc_now_iso, view_count
from .user import User

__all__ = ['Product', 'User', 'utc_now_iso', 'view_count']
