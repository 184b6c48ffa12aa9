# storefront/order/routes.py
from flask import request

from . import bp
from ..errors import ValidationError
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user, login_required, role_at_least
from ..utils.params import date_field, paginate, parse_opt_int


@bp.post("")
@login_required
def checkout():
    data = request.get_json(silent=True) or {}
    order = order_service.checkout(current_user(), data)
    return ok("Order placed successfully", order.as_api(), 201)


@bp.get("/me")
@login_required
def my_orders():
    return ok("orders", [o.as_api() for o in order_service.user_orders(current_user().id)])


@bp.get("/<int:order_id>")
@login_required
def get_order(order_id: int):
    return ok("order", order_service.get_owned_order(order_id, current_user()).as_api())


@bp.post("/<int:order_id>/cancel")
@login_required
def cancel_order(order_id: int):
    order = order_service.cancel_order(order_id, current_user())
    return ok("Order cancelled", order.as_api())


@bp.get("")
@role_at_least("staff")
def list_orders():
    """
    Query params:
      - page, per_page
      - status, payment_status
      - user_id
      - order_number=ORD-...
      - start=YYYY-MM-DD
      - end=YYYY-MM-DD (inclusive)
    """
    args = request.args
    q = order_service.list_orders(
        status=args.get("status"),
        payment_status=args.get("payment_status"),
        user_id=parse_opt_int(args.get("user_id")),
        order_number=args.get("order_number"),
        start=date_field(args, "start"),
        end=date_field(args, "end"),
    )
    page = paginate(q, args.get("page"), args.get("per_page"))
    return ok("orders", {"meta": page["meta"], "items": [o.as_api() for o in page["items"]]})


@bp.put("/<int:order_id>/status")
@admin_required
def update_status(order_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if not status:
        raise ValidationError("status is required")
    payment_status = (data.get("payment_status") or "").strip().lower() or None
    order = order_service.update_status(order_id, status, payment_status)
    return ok("Order status updated", order.as_api())


@bp.get("/stats")
@role_at_least("staff")
def stats():
    return ok("Order stats fetched", order_service.order_stats(parse_opt_int(request.args.get("user_id"))))
