from flask import Flask, request, jsonify, current_app, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from config import Config
from collections import defaultdict
import threading
import time

from .errors import MarketplaceError
from .services.auth_service import AuthService
from .services.image_store import create_image_store
from .services.product_service import ProductService
from .services.storage import create_storage


class RateLimiter:
    """Simple in-memory rate limiter (N requests per minute per IP)"""
    def __init__(self, requests_per_minute=100):
        self.requests_per_minute = requests_per_minute
        self.requests = defaultdict(list)
        self._lock = threading.Lock()

    def is_allowed(self, key):
        if self.requests_per_minute <= 0:
            return True

        now = time.time()
        minute_ago = now - 60

        with self._lock:
            # Clean old entries
            self.requests[key] = [t for t in self.requests[key] if t > minute_ago]

            # Check if allowed
            if len(self.requests[key]) >= self.requests_per_minute:
                return False

            # Record this request
            self.requests[key].append(now)
            return True


def _register_error_handlers(app):
    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return jsonify({'error': 'Upload is too large (max 5MB per image)'}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if request.path.startswith('/api/'):
            message = 'Not found' if e.code == 404 else e.description
            return jsonify({'error': message}), e.code
        return e

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        current_app.logger.exception('unhandled_error method=%s path=%s', request.method, request.path)
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_object=Config, overrides=None, storage=None, image_store=None):
    """创建 Flask 应用

    `storage` / `image_store` replace the configured backends (tests).
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # CORS: use explicit allowlist in production when provided.
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
    if cors_origins:
        CORS(app, resources={r"/api/*": {"origins": cors_origins}})
    else:
        CORS(app, resources={r"/api/*": {"origins": "*"}})

    # 存储和服务: 每个应用实例各自持有
    storage = storage if storage is not None else create_storage(app)
    image_store = image_store if image_store is not None else create_image_store(app.config)
    app.extensions['stylebay'] = {
        'storage': storage,
        'image_store': image_store,
        'products': ProductService(
            storage, image_store, country_code=app.config.get('DEFAULT_COUNTRY_CODE', '256')
        ),
        'auth': AuthService(storage),
        'rate_limiter': RateLimiter(
            requests_per_minute=app.config.get('RATE_LIMIT_PER_MINUTE', 100)
        ),
    }

    # Rate limiting middleware
    @app.before_request
    def check_rate_limit():
        if request.path.startswith('/api/'):
            client_ip = request.headers.get('X-Forwarded-For', request.remote_addr)
            if client_ip:
                client_ip = client_ip.split(',')[0].strip()
            limiter = app.extensions['stylebay']['rate_limiter']
            if not limiter.is_allowed(client_ip):
                return jsonify({
                    'error': 'Rate limit exceeded. Please wait a moment.'
                }), 429

    _register_error_handlers(app)

    # 本地上传的图片
    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    # 注册蓝图
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.catalog import catalog_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(products_bp, url_prefix='/api/products')
    app.register_blueprint(catalog_bp, url_prefix='/api')

    return app
