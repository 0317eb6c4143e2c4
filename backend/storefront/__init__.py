import logging
from collections import namedtuple
from datetime import timedelta

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_pymongo import PyMongo
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from config import Config
from .errors import ShopError
from .services import (
    AuthService,
    AuthSettings,
    ImageStore,
    ProductRepository,
    ProductService,
    UserRepository,
)

mongo = PyMongo()
jwt = JWTManager()

Services = namedtuple('Services', ['auth', 'products', 'images'])


def create_app(config=None, users=None, products=None):
    """创建 Flask 应用

    ``config`` overrides values from :class:`Config`. ``users`` / ``products``
    replace the MongoDB repositories (tests pass in-memory ones).
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(seconds=int(app.config['JWT_EXPIRES_IN']))

    # CORS: use explicit allowlist in production when provided.
    # Credentials are needed for the session cookie.
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
    CORS(app, resources={r"/api/*": {"origins": cors_origins or "*"}}, supports_credentials=True)

    jwt.init_app(app)

    # 初始化 MongoDB
    if users is None or products is None:
        mongo.init_app(app)
        if users is None:
            users = UserRepository(mongo.db)
        if products is None:
            products = ProductRepository(mongo.db)
        _ensure_indexes(app, users, products)

    image_store = ImageStore(app.config['UPLOAD_FOLDER'], max_files=app.config['MAX_IMAGES_PER_PRODUCT'])
    image_store.ensure_root()
    app.extensions['storefront'] = Services(
        auth=AuthService(users, AuthSettings.from_config(app.config)),
        products=ProductService(products, image_store),
        images=image_store,
    )

    _register_error_handlers(app)

    @app.route('/uploads/images/<path:filename>')
    def uploaded_image(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    # 注册蓝图 (search before products so /search never reads as an id)
    from .routes.auth import auth_bp
    from .routes.search import search_bp
    from .routes.products import products_bp

    prefix = app.config['API_PREFIX']
    app.register_blueprint(auth_bp, url_prefix=f'{prefix}/auth')
    app.register_blueprint(search_bp, url_prefix=f'{prefix}/products/search')
    app.register_blueprint(products_bp, url_prefix=f'{prefix}/products')

    return app


def _ensure_indexes(app, users, products):
    try:
        users.ensure_indexes()
        products.ensure_indexes()
    except PyMongoError as exc:
        app.logger.warning('Unable to ensure MongoDB indexes: %s', exc)


def _register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', type(error).__name__, error.message)
            return jsonify({'success': False, 'message': 'Server error'}), error.status_code
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception('Unhandled error: %s', error)
        return jsonify({'success': False, 'message': 'Server error'}), 500


def configure_logging(level='INFO'):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
