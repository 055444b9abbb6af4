import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# backend/ 目录
BACKEND_ROOT = Path(__file__).parent


def sanitize_env_value(raw, fallback=''):
    """Strip wrapping quotes and leaked escaped newlines from an env value."""
    value = (raw if raw is not None else fallback).strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value.replace("\\n", "").replace("\\r", "").strip()


def _env(name, default=''):
    return sanitize_env_value(os.getenv(name), default)


class Config:
    """应用配置"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'stylebay-secret-key-2024')

    # Storage backend: file | mongo | memory
    STORAGE_BACKEND = _env('STORAGE_BACKEND', 'file').lower()

    # JSON backend directory (users.json / products.json)
    DATA_PATH = os.getenv('DATA_PATH', str(BACKEND_ROOT / 'data'))

    # MongoDB 配置 (Flask-PyMongo reads MONGO_URI from app.config)
    MONGO_URI = os.getenv('MONGO_URI', '')

    # Images: local | cloudinary
    IMAGE_BACKEND = _env('IMAGE_BACKEND', 'local').lower()
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', str(BACKEND_ROOT / 'uploads'))
    CLOUDINARY_CLOUD_NAME = _env('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = _env('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = _env('CLOUDINARY_API_SECRET')
    CLOUDINARY_FOLDER = _env('CLOUDINARY_FOLDER', 'stylebay')

    MAX_IMAGES = int(os.getenv('MAX_IMAGES', '5'))
    MAX_IMAGE_BYTES = int(os.getenv('MAX_IMAGE_BYTES', str(5 * 1024 * 1024)))
    # Whole multipart body: every image plus form fields
    MAX_CONTENT_LENGTH = MAX_IMAGES * MAX_IMAGE_BYTES + 1024 * 1024

    # CORS allowlist (comma-separated origins)
    # Example:
    # CORS_ALLOWED_ORIGINS=https://stylebay.ug,https://www.stylebay.ug
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',')
        if origin.strip()
    ]

    # Requests per minute per client IP on /api/*, 0 disables the limiter
    RATE_LIMIT_PER_MINUTE = int(os.getenv('RATE_LIMIT_PER_MINUTE', '100'))

    # WhatsApp numbers written with a leading 0 get this country code
    DEFAULT_COUNTRY_CODE = _env('DEFAULT_COUNTRY_CODE', '256')

    # Flask 环境
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
