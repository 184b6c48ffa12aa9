from flask import request

from . import bp
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import current_user, login_optional


@bp.post("/quote")
@login_optional
def quote():
    """
    Price a cart without storing it.

    Body: {items: [{product_id, quantity}],
           rentals: [{product_id, start_date, end_date}],
           coupon_code?}
    An invalid coupon does not fail the quote; it is reported under "coupon".
    """
    data = request.get_json(silent=True) or {}
    user = current_user(optional=True)
    priced = order_service.price_cart(data, user.id if user else None)

    body = priced.quote.as_api()
    check = priced.coupon_check
    body["coupon"] = None if check is None else {
        "code": (data.get("coupon_code") or "").strip().upper(),
        "valid": check.valid,
        "message": check.message,
    }
    return ok("Cart priced", body)
