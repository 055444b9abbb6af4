import uuid
from datetime import datetime, timezone


def utc_now_iso():
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def view_count(value):
    """Stored views as a non-negative int; unreadable values count as 0."""
    try:
        count = int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


class Product:
    """商品模型 (二手/新品服饰)"""

    CATEGORIES = [
        {'id': 'dresses', 'name': 'Dresses', 'icon': '👗'},
        {'id': 'shirts', 'name': 'Shirts & Tops', 'icon': '👔'},
        {'id': 'pants', 'name': 'Pants & Jeans', 'icon': '👖'},
        {'id': 'shoes', 'name': 'Shoes', 'icon': '👟'},
        {'id': 'jackets', 'name': 'Jackets & Coats', 'icon': '🧥'},
        {'id': 'accessories', 'name': 'Accessories', 'icon': '👜'},
        {'id': 'traditional', 'name': 'Traditional Wear', 'icon': '🥻'},
        {'id': 'sportswear', 'name': 'Sportswear', 'icon': '🏃'},
        {'id': 'kids', 'name': 'Kids Fashion', 'icon': '👶'},
        {'id': 'other', 'name': 'Other', 'icon': '🛍️'},
    ]

    CONDITIONS = ('new', 'like-new', 'good', 'fair')
    STATUSES = ('available', 'sold')

    # Fields a seller may change through an edit
    EDITABLE_FIELDS = (
        'name', 'category', 'size', 'color', 'condition', 'price',
        'description', 'location', 'phone', 'whatsapp',
    )

    def __init__(self, name, category, price, seller_id, size='M', color='Various',
                 condition='new', description='', location='Uganda', images=None,
                 phone='', whatsapp=''):
        self.id = str(uuid.uuid4())
        self.name = name
        self.category = category
        self.size = size
        self.color = color
        self.condition = condition
        self.price = price
        self.description = description
        self.location = location
        self.images = list(images or [])
        self.seller_id = seller_id
        self.phone = phone
        self.whatsapp = whatsapp
        self.status = 'available'
        self.views = 0
        self.created_at = utc_now_iso()
        self.updated_at = self.created_at

    def to_dict(self):
        """转换为字典 (存储和 API 使用同一套 camelCase 字段)"""
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'size': self.size,
            'color': self.color,
            'condition': self.condition,
            'price': self.price,
            'description': self.description,
            'location': self.location,
            'images': list(self.images),
            'sellerId': self.seller_id,
            'phone': self.phone,
            'whatsapp': self.whatsapp,
            'status': self.status,
            'views': self.views,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
