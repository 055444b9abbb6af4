import uuid

from .product import utc_now_iso


class User:
    """用户模型 (买家/卖家)"""

    # Reduced view attached to a product response
    SELLER_SUMMARY_FIELDS = ('id', 'fullName', 'phone', 'whatsapp', 'location')

    def __init__(self, full_name, email, password_hash, phone, whatsapp=None,
                 location='Uganda', user_type='seller'):
        self.id = str(uuid.uuid4())
        self.full_name = full_name
        self.email = email
        self.password_hash = password_hash
        self.phone = phone
        self.whatsapp = whatsapp or phone
        self.location = location
        self.user_type = user_type
        self.avatar = None
        self.created_at = utc_now_iso()

    def to_dict(self):
        return {
            'id': self.id,
            'fullName': self.full_name,
            'email': self.email,
            'passwordHash': self.password_hash,
            'phone': self.phone,
            'whatsapp': self.whatsapp,
            'location': self.location,
            'userType': self.user_type,
            'avatar': self.avatar,
            'createdAt': self.created_at,
        }

    @staticmethod
    def public_dict(record):
        """Copy of a stored user record without credential fields."""
        return {
            key: value for key, value in record.items()
            if key not in ('passwordHash', 'password', '_id')
        }

    @classmethod
    def seller_summary(cls, record):
        return {field: record.get(field) for field in cls.SELLER_SUMMARY_FIELDS}
