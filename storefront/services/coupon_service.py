# storefront/services/coupon_service.py
import logging

from flask import current_app
from sqlalchemy import func

from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..model import Coupon, CouponUsage, Product
from ..pricing import CartLine, CouponCheck, PricingError, check_coupon, generate_code, validate_terms
from ..utils.dates import utcnow
from ..utils.money import D, round_money
from ..utils.params import datetime_field, id_list, int_field, money_field, parse_bool

logger = logging.getLogger(__name__)

LIST_STATUSES = ("all", "active", "expired", "inactive")
UPDATABLE = (
    "description", "discount_value", "min_order_value", "max_discount", "usage_limit",
    "usage_per_user", "applicable_to", "category_ids", "product_ids",
    "valid_from", "valid_to", "is_active",
)


def _normalize_code(code) -> str:
    return (code or "").strip().upper()


def _check_terms(c: Coupon):
    try:
        validate_terms(
            c.discount_type, c.discount_value, c.valid_from, c.valid_to,
            min_order_value=c.min_order_value, max_discount=c.max_discount,
            usage_limit=c.usage_limit, usage_per_user=c.usage_per_user,
            applicable_to=c.applicable_to,
        )
    except PricingError as e:
        raise ValidationError(str(e))


def _apply_fields(c: Coupon, data: dict, fields):
    for name in fields:
        if name not in data:
            continue
        if name in ("discount_value", "min_order_value", "max_discount"):
            value = money_field(data, name, required=name == "discount_value")
            setattr(c, name, round_money(value) if value is not None else None)
        elif name in ("usage_limit", "usage_per_user"):
            setattr(c, name, int_field(data, name, minimum=0))
        elif name in ("valid_from", "valid_to"):
            setattr(c, name, datetime_field(data, name, required=True))
        elif name in ("category_ids", "product_ids"):
            setattr(c, name, id_list(data.get(name), name))
        elif name == "applicable_to":
            setattr(c, name, (data.get(name) or "all").strip().lower())
        elif name == "is_active":
            setattr(c, name, parse_bool(data.get(name), default=True))
        else:
            setattr(c, name, data.get(name))


def create_coupon(data: dict) -> Coupon:
    if not data.get("discount_type") or data.get("discount_value") in (None, "") \
            or not data.get("valid_from") or not data.get("valid_to"):
        raise ValidationError("discount_type, discount_value, valid_from, and valid_to are required")

    code = _normalize_code(data.get("code")) or new_code()
    if Coupon.query.filter(func.upper(Coupon.code) == code).first():
        raise Conflict("Coupon code already exists")

    c = Coupon(
        code=code,
        discount_type=(data.get("discount_type") or "").strip().lower(),
        used_count=0,
        usage_per_user=1,
        applicable_to="all",
        category_ids=[],
        product_ids=[],
        is_active=True,
    )
    _apply_fields(c, data, UPDATABLE)
    _check_terms(c)

    db.session.add(c)
    db.session.commit()
    logger.info("coupon created id=%s code=%s", c.id, c.code)
    return c


def list_coupons(status="all", page=1, limit=20):
    if status not in LIST_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(LIST_STATUSES)}")
    q = Coupon.query
    now = utcnow()
    if status == "active":
        q = q.filter(Coupon.is_active.is_(True), Coupon.valid_from <= now, Coupon.valid_to >= now)
    elif status == "expired":
        q = q.filter(Coupon.valid_to < now)
    elif status == "inactive":
        q = q.filter(Coupon.is_active.is_(False))

    total = q.count()
    items = q.order_by(Coupon.created_at.desc(), Coupon.id.desc()).limit(limit).offset((page - 1) * limit).all()
    return items, total


def get_coupon(coupon_id: int) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFound("Coupon not found")
    return c


def get_coupon_by_code(code) -> Coupon | None:
    code = _normalize_code(code)
    if not code:
        return None
    return Coupon.query.filter(func.upper(Coupon.code) == code).first()


def update_coupon(coupon_id: int, data: dict) -> Coupon:
    c = get_coupon(coupon_id)
    _apply_fields(c, data, UPDATABLE)
    _check_terms(c)
    db.session.commit()
    logger.info("coupon updated id=%s", c.id)
    return c


def deactivate_coupon(coupon_id: int) -> Coupon:
    c = get_coupon(coupon_id)
    c.is_active = False
    db.session.commit()
    logger.info("coupon deactivated id=%s", c.id)
    return c


def user_usage_count(coupon_id: int, user_id) -> int:
    if not user_id:
        return 0
    return CouponUsage.query.filter_by(coupon_id=coupon_id, user_id=user_id).count()


def cart_lines_from_payload(items) -> list[CartLine]:
    """[{product_id, price, quantity}] -> CartLine list with categories resolved."""
    if not isinstance(items, list):
        raise ValidationError("cart_items must be a list")
    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("each cart item must be an object")
        pid = int_field(raw, "product_id", required=True)
        price = money_field(raw, "price", required=True)
        qty = int_field(raw, "quantity", minimum=1) or 1
        if price < 0:
            raise ValidationError("price cannot be negative")
        parsed.append((pid, price, qty))

    cats = category_map(pid for pid, _, _ in parsed)
    return [CartLine(product_id=pid, price=price, quantity=qty, category_id=cats.get(pid))
            for pid, price, qty in parsed]


def category_map(product_ids) -> dict:
    pids = set(product_ids)
    if not pids:
        return {}
    rows = db.session.query(Product.id, Product.category_id).filter(Product.id.in_(pids)).all()
    return {pid: cat_id for pid, cat_id in rows}


def evaluate_coupon(code, user_id, lines, now=None) -> tuple[Coupon | None, CouponCheck]:
    coupon = get_coupon_by_code(code)
    if not coupon:
        return None, CouponCheck(False, "Invalid coupon code")
    used = user_usage_count(coupon.id, user_id)
    result = check_coupon(coupon.as_terms(), lines, now or utcnow(), used)
    logger.debug("coupon %s checked for user=%s valid=%s", coupon.code, user_id, result.valid)
    return coupon, result


def record_usage(coupon: Coupon, user_id: int, order_id: int, discount_amount) -> CouponUsage:
    """Adds the usage row and bumps used_count; the caller owns the commit."""
    usage = CouponUsage(
        coupon_id=coupon.id,
        user_id=user_id,
        order_id=order_id,
        discount_amount=round_money(discount_amount),
    )
    db.session.add(usage)
    db.session.query(Coupon).filter(Coupon.id == coupon.id).update(
        {Coupon.used_count: func.coalesce(Coupon.used_count, 0) + 1},
        synchronize_session=False,
    )
    logger.info("coupon applied id=%s order=%s discount=%s", coupon.id, order_id, usage.discount_amount)
    return usage


def release_usage(order_id: int):
    """Undo coupon usage for a cancelled order."""
    usages = CouponUsage.query.filter_by(order_id=order_id).all()
    for usage in usages:
        db.session.query(Coupon).filter(Coupon.id == usage.coupon_id, Coupon.used_count > 0).update(
            {Coupon.used_count: Coupon.used_count - 1},
            synchronize_session=False,
        )
        db.session.delete(usage)
    return len(usages)


def coupon_stats(coupon_id: int) -> dict:
    get_coupon(coupon_id)
    base = CouponUsage.query.filter_by(coupon_id=coupon_id)
    total_usage = base.count()
    total_discount = db.session.query(func.coalesce(func.sum(CouponUsage.discount_amount), 0)) \
        .filter(CouponUsage.coupon_id == coupon_id).scalar()
    unique_users = db.session.query(func.count(func.distinct(CouponUsage.user_id))) \
        .filter(CouponUsage.coupon_id == coupon_id).scalar()
    recent = base.order_by(CouponUsage.used_at.desc(), CouponUsage.id.desc()).limit(10).all()

    return {
        "total_usage": total_usage,
        "total_discount": float(round_money(D(total_discount))),
        "unique_users": unique_users or 0,
        "recent_usages": [
            {**u.as_api(), "user": {"id": u.user.id, "name": u.user.name, "email": u.user.email} if u.user else None}
            for u in recent
        ],
    }


def user_usage_history(user_id: int):
    return (CouponUsage.query.filter_by(user_id=user_id)
            .order_by(CouponUsage.used_at.desc(), CouponUsage.id.desc()).all())


def new_code(prefix=None, length=None) -> str:
    cfg = current_app.config
    prefix = cfg.get("COUPON_CODE_PREFIX", "COUPON") if prefix is None else prefix
    length = cfg.get("COUPON_CODE_LENGTH", 8) if length is None else length
    try:
        for _ in range(10):
            code = generate_code(prefix, length)
            if not get_coupon_by_code(code):
                return code
    except PricingError as e:
        raise ValidationError(str(e))
    raise Conflict("could not generate a unique coupon code")
