import logging
import uuid
from datetime import timedelta

from flask import current_app, request
from flask_jwt_extended import create_access_token
from werkzeug.security import check_password_hash, generate_password_hash

from . import bp
from ..errors import Conflict, NotFound, Unauthorized, ValidationError
from ..extensions import db
from ..model import RefreshToken, User
from ..model.user import ROLES
from ..utils.api import ok
from ..utils.dates import utcnow
from ..utils.decorators import admin_required, current_user, login_required
from ..utils.params import paginate

logger = logging.getLogger(__name__)


# --- helper: create & persist a token pair ---
def _issue_tokens(user_id: int):
    access_token = create_access_token(identity=str(user_id))
    refresh_token_str = uuid.uuid4().hex
    ttl_days = current_app.config.get("REFRESH_TOKEN_TTL_DAYS", 7)
    db.session.add(RefreshToken(
        user_id=user_id,
        token=refresh_token_str,
        expires_at=utcnow() + timedelta(days=ttl_days),
    ))
    return access_token, refresh_token_str


@bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()

    if not email:
        raise ValidationError("Email required")
    if not password or len(password) < 6:
        raise ValidationError("Password required, min 6 chars")
    if not name:
        raise ValidationError("Name required")
    if User.query.filter_by(email=email).first():
        raise Conflict("Email already registered")

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0
    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        phone=(data.get("phone") or "").strip() or None,
        role="admin" if is_first_user else "customer",
    )
    db.session.add(user)
    db.session.flush()
    access_token, refresh_token = _issue_tokens(user.id)
    db.session.commit()
    logger.info("user registered id=%s role=%s", user.id, user.role)

    return ok("Account created successfully", {
        "user": user.as_dict(),
        "token": access_token,
        "refresh_token": refresh_token,
    }, 201)


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        raise Unauthorized("Invalid email or password")

    access_token, refresh_token = _issue_tokens(user.id)
    db.session.commit()

    return ok("You've logged in successfully", {
        "user": user.as_dict(),
        "token": access_token,
        "refresh_token": refresh_token,
    })


@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    token_str = data.get("refresh_token")
    if not token_str:
        raise ValidationError("refresh_token is required")

    row = RefreshToken.query.filter_by(token=token_str).first()
    if not row or row.expires_at < utcnow():
        raise Unauthorized("Invalid or expired refresh token")

    user_id = row.user_id
    # ROTATE: the presented refresh token is single-use
    db.session.delete(row)
    db.session.flush()

    access_token, refresh_token = _issue_tokens(user_id)
    db.session.commit()
    return ok("Token refreshed", {"token": access_token, "refresh_token": refresh_token})


@bp.get("/me")
@login_required
def me():
    return ok("OK", {"user": current_user().as_dict()})


@bp.get("/users")
@admin_required
def list_users():
    q = User.query
    role = (request.args.get("role") or "").strip().lower()
    if role:
        q = q.filter(User.role == role)
    page = paginate(q.order_by(User.id.asc()), request.args.get("page"), request.args.get("per_page"))
    return ok("OK", {"meta": page["meta"], "users": [u.as_dict() for u in page["items"]]})


@bp.patch("/users/<int:user_id>/role")
@admin_required
def update_user_role(user_id):
    body = request.get_json(silent=True) or {}
    new_role = (body.get("role") or "").strip().lower()
    if new_role not in ROLES:
        raise ValidationError("Invalid role")

    target = db.session.get(User, user_id)
    if not target:
        raise NotFound("User not found")

    # Prevent demoting the LAST admin
    if target.role == "admin" and new_role != "admin":
        admin_count = User.query.filter_by(role="admin").count()
        if admin_count <= 1:
            raise ValidationError("Cannot demote the last admin")

    target.role = new_role
    db.session.commit()
    logger.info("user role changed id=%s role=%s by=%s", target.id, new_role, current_user().id)
    return ok("Role updated", {"user": target.as_dict()})
