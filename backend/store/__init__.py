import logging
import time
from collections import defaultdict
from datetime import date, datetime

from bson import ObjectId
from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS
from flask_pymongo import PyMongo
from werkzeug.exceptions import HTTPException

from config import Config
from store.errors import StoreError

logger = logging.getLogger(__name__)

mongo = PyMongo()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RateLimiter:
    """In-memory per-key rate limiter (requests per rolling minute)"""
    def __init__(self, requests_per_minute=100, clock=time.time):
        self.requests_per_minute = requests_per_minute
        self.clock = clock
        self.requests = defaultdict(list)

    def is_allowed(self, key):
        now = self.clock()
        minute_ago = now - 60

        # Clean old entries; keys with nothing left in the window are dropped
        for seen in list(self.requests):
            recent = [t for t in self.requests[seen] if t > minute_ago]
            if recent:
                self.requests[seen] = recent
            else:
                del self.requests[seen]

        if len(self.requests[key]) >= self.requests_per_minute:
            return False

        self.requests[key].append(now)
        return True


class StoreJSONProvider(DefaultJSONProvider):
    """JSON encoding for Mongo documents (ObjectId, ISO-8601 dates)."""

    @staticmethod
    def default(o):
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger('store').setLevel(level)
    # pymongo is chatty at INFO
    logging.getLogger('pymongo').setLevel(logging.WARNING)


def _create_repository(app):
    from store.services.product_repository import (
        InMemoryProductRepository,
        MongoProductRepository,
        _mongo_uri_configured,
    )

    if _mongo_uri_configured() and not app.config.get('TESTING'):
        mongo.init_app(app)
        logger.info("Catalog backed by MongoDB")
        return MongoProductRepository(mongo.db.products)

    logger.info("MONGO_URI not set, serving in-memory catalog")
    return InMemoryProductRepository.from_seed_file(app.config['DATA_PATH'])


def _register_error_handlers(app):
    @app.errorhandler(StoreError)
    def handle_store_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'message': error.description,
            'errors': [{'message': error.description}],
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({
            'success': False,
            'message': 'Internal Server Error',
            'errors': [{'message': 'Internal Server Error'}],
        }), 500


def create_app(config_object=Config, repository=None):
    """创建 Flask 应用

    ``repository`` overrides the catalog storage (used by tests).
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json = StoreJSONProvider(app)

    _configure_logging(app)

    # CORS: use explicit allowlist in production when provided.
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
    if cors_origins:
        CORS(app, resources={r"/api/*": {"origins": cors_origins}})
    else:
        CORS(app, resources={r"/api/*": {"origins": "*"}})

    if repository is None:
        repository = _create_repository(app)
    app.extensions['product_repository'] = repository

    rate_limiter = RateLimiter(requests_per_minute=app.config.get('RATE_LIMIT_PER_MINUTE', 100))
    app.extensions['rate_limiter'] = rate_limiter

    @app.before_request
    def check_rate_limit():
        if request.path.startswith('/api/'):
            client_ip = request.headers.get('X-Forwarded-For', request.remote_addr)
            if client_ip:
                client_ip = client_ip.split(',')[0].strip()
            if not rate_limiter.is_allowed(client_ip):
                logger.warning("Rate limit exceeded for %s", client_ip)
                return jsonify({
                    'success': False,
                    'message': 'Rate limit exceeded. Please wait a moment.',
                    'error': 'TOO_MANY_REQUESTS'
                }), 429

    _register_error_handlers(app)

    # 注册蓝图
    from store.routes.products import products_bp

    app.register_blueprint(products_bp, url_prefix=f"{app.config['API_PREFIX']}/products")

    return app
