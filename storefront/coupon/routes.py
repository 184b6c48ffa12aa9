# storefront/coupon/routes.py
from __future__ import annotations

import math

from flask import request

from . import bp
from ..errors import ValidationError
from ..pricing import cart_subtotal
from ..services import coupon_service
from ..utils.api import err, ok
from ..utils.decorators import admin_required, current_user, login_required
from ..utils.money import round_money, to_float
from ..utils.params import int_field, parse_int


# ---------- customer ----------
@bp.post("/validate")
@login_required
def validate_coupon():
    data = request.get_json(silent=True) or {}
    code = (data.get("code") or "").strip()
    if not code or data.get("cart_items") is None:
        raise ValidationError("Coupon code and cart items are required")

    lines = coupon_service.cart_lines_from_payload(data.get("cart_items"))
    coupon, check = coupon_service.evaluate_coupon(code, current_user().id, lines)
    if not check.valid:
        return err(check.message, 400)

    subtotal = cart_subtotal(lines)
    return ok(check.message, {
        "coupon": coupon.as_public(),
        "subtotal": to_float(subtotal),
        "discount_amount": to_float(check.discount),
        "final_amount": to_float(round_money(subtotal - check.discount)),
    })


@bp.get("/my-usage")
@login_required
def my_usage():
    rows = coupon_service.user_usage_history(current_user().id)
    return ok("Coupon usage fetched", [u.as_api(with_coupon=True) for u in rows])


# ---------- admin ----------
@bp.post("")
@admin_required
def create_coupon():
    data = request.get_json(silent=True) or {}
    c = coupon_service.create_coupon(data)
    return ok("Coupon created successfully", c.as_api(), 201)


@bp.get("")
@admin_required
def list_coupons():
    status = (request.args.get("status") or "all").strip().lower()
    page = max(parse_int(request.args.get("page"), 1), 1)
    limit = min(max(parse_int(request.args.get("limit"), 20), 1), 100)

    items, total = coupon_service.list_coupons(status, page, limit)
    return ok("Coupons fetched", {
        "coupons": [c.as_api() for c in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    })


@bp.post("/generate-code")
@admin_required
def generate_code():
    data = request.get_json(silent=True) or {}
    length = int_field(data, "length", minimum=1)
    code = coupon_service.new_code(prefix=data.get("prefix"), length=length)
    return ok("Coupon code generated", {"code": code})


@bp.get("/<int:cid>")
@admin_required
def get_coupon(cid):
    return ok("Coupon fetched", coupon_service.get_coupon(cid).as_api())


@bp.put("/<int:cid>")
@admin_required
def update_coupon(cid):
    data = request.get_json(silent=True) or {}
    c = coupon_service.update_coupon(cid, data)
    return ok("Coupon updated successfully", c.as_api())


@bp.delete("/<int:cid>")
@admin_required
def delete_coupon(cid):
    coupon_service.deactivate_coupon(cid)
    return ok("Coupon deactivated successfully", {"id": cid})


@bp.get("/<int:cid>/stats")
@admin_required
def coupon_stats(cid):
    return ok("Coupon stats fetched", coupon_service.coupon_stats(cid))
