# --- storefront/__init__.py ---
import logging

from flask import Flask

from .config import Config
from .errors import register_error_handlers, register_jwt_handlers
from .extensions import cors, db, jwt, migrate
from .log import configure_logging
from .utils.api import ok

logger = logging.getLogger(__name__)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)
    configure_logging(app)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    migrate.init_app(app, db)
    register_jwt_handlers(jwt)
    register_error_handlers(app)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .rental import bp as rental_bp; app.register_blueprint(rental_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .wishlist import bp as wishlist_bp; app.register_blueprint(wishlist_bp)
    from .review import bp as review_bp; app.register_blueprint(review_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return ok("API running")

    if app.config.get("AUTO_CREATE_TABLES"):
        from . import model  # noqa: F401
        with app.app_context():
            db.create_all()

    logger.info("app ready blueprints=%s", sorted(app.blueprints))
    return app
