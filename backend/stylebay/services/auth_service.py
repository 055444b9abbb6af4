"""
用户注册 / 登录

Passwords are stored as hashes produced by a pluggable PasswordHasher; the
default delegates to Werkzeug's salted hashes.
"""

from typing import Dict

from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import AuthError, ConflictError, NotFoundError, ValidationError
from ..models import User

REQUIRED_FIELDS = ('fullName', 'email', 'password', 'phone')


class PasswordHasher:
    """Hash and verify user passwords."""

    def __init__(self, method: str = None):
        self.method = method

    def hash(self, password: str) -> str:
        if self.method:
            return generate_password_hash(password, method=self.method)
        return generate_password_hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        if not password_hash:
            return False
        return check_password_hash(password_hash, password)


class AuthService:
    """用户服务"""

    def __init__(self, storage, hasher: PasswordHasher = None):
        self.storage = storage
        self.hasher = hasher or PasswordHasher()

    def register(self, fields) -> Dict:
        if any(not str(fields.get(key) or '').strip() for key in REQUIRED_FIELDS):
            raise ValidationError('Please fill all required fields')

        email = str(fields['email']).strip().lower()
        if self.storage.find_user_by_email(email):
            raise ConflictError('Email already registered')

        phone = str(fields['phone']).strip()
        user = User(
            full_name=str(fields['fullName']).strip(),
            email=email,
            password_hash=self.hasher.hash(str(fields['password'])),
            phone=phone,
            whatsapp=str(fields.get('whatsapp') or '').strip() or phone,
            location=str(fields.get('location') or '').strip() or 'Uganda',
            user_type=str(fields.get('userType') or '').strip() or 'seller',
        )
        # insert_user re-checks the email atomically
        record = self.storage.insert_user(user.to_dict())
        return User.public_dict(record)

    def login(self, email: str, password: str) -> Dict:
        if not email or not password:
            raise ValidationError('Email and password required')
        user = self.storage.find_user_by_email(str(email).strip().lower())
        if not user or not self.hasher.verify(user.get('passwordHash'), str(password)):
            raise AuthError('Invalid email or password')
        return User.public_dict(user)

    def get_user(self, user_id: str) -> Dict:
        user = self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError('User not found')
        return User.public_dict(user)
