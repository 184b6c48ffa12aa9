# ------- storefront/utils/decorators.py -------
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import Forbidden, Unauthorized
from ..extensions import db
from ..model.user import User

ROLE_LEVEL = {"customer": 1, "staff": 2, "admin": 3}


def _load_user(optional=False):
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None


def current_user(optional=False):
    if "current_user" not in g:
        g.current_user = _load_user(optional=optional)
    return g.current_user


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user():
            raise Unauthorized("User not authenticated")
        return fn(*args, **kwargs)
    return wrapper


def login_optional(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        current_user(optional=True)
        return fn(*args, **kwargs)
    return wrapper


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                raise Unauthorized("Authentication required")
            if u.role not in roles:
                raise Forbidden(message or "You do not have permission to access this resource",
                                error={"required_roles": list(roles), "your_role": u.role})
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def role_at_least(min_role: str, message: str | None = None):  # admin > staff > customer
    min_level = ROLE_LEVEL[min_role]
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                raise Unauthorized("Authentication required")
            if ROLE_LEVEL.get(u.role, 0) < min_level:
                raise Forbidden(message or "You do not have permission to access this resource")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = role_required("admin")
