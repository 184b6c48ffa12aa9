import os
from datetime import timedelta


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    REFRESH_TOKEN_TTL_DAYS = int(os.getenv("REFRESH_TOKEN_TTL_DAYS", "7"))

    # pricing
    CURRENCY_SYMBOL = "₹"
    TAX_RATE = os.getenv("TAX_RATE", "0.18")
    FREE_SHIPPING_THRESHOLD = os.getenv("FREE_SHIPPING_THRESHOLD", "2000")
    SHIPPING_FEE = os.getenv("SHIPPING_FEE", "100")
    MIN_RENTAL_DAYS = int(os.getenv("MIN_RENTAL_DAYS", "1"))
    MAX_RENTAL_DAYS = int(os.getenv("MAX_RENTAL_DAYS", "30"))
    LATE_FEE_RATE = os.getenv("LATE_FEE_RATE", "0.5")
    COUPON_CODE_PREFIX = "COUPON"
    COUPON_CODE_LENGTH = 8

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestingConfig(Config):
    TESTING = True
    AUTO_CREATE_TABLES = True
    LOG_LEVEL = "WARNING"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
