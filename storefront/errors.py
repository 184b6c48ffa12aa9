# storefront/errors.py
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from .utils.api import api_error

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None, error=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.error = error


class ValidationError(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


def _respond(message, status, error=None):
    r = jsonify(api_error(message, error))
    r.status_code = status
    return r


def register_error_handlers(app):
    from .pricing import PricingError

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return _respond(e.message, e.status_code, e.error)

    @app.errorhandler(PricingError)
    def handle_pricing_error(e):
        return _respond(str(e), 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _respond(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("unhandled error: %s", e)
        return _respond("Internal server error", 500)


def register_jwt_handlers(jwt):
    @jwt.unauthorized_loader
    def missing_token(reason):
        return _respond("No authorization token provided", 401, {"reason": reason})

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return _respond("Invalid or expired token", 401, {"reason": reason})

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _respond("Invalid or expired token", 401)
