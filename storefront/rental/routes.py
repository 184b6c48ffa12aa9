from flask import request

from . import bp
from ..errors import ValidationError
from ..services import rental_service
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user, login_required, role_at_least
from ..utils.params import date_field, int_field, money_field, paginate, parse_opt_int


def _dates(data):
    start = date_field(data, "start_date", required=True)
    end = date_field(data, "end_date", required=True)
    return start, end


# ---------- public ----------
@bp.get("/availability")
def availability():
    args = request.args
    product_id = parse_opt_int(args.get("product_id"))
    if product_id is None:
        raise ValidationError("product_id is required")
    start, end = _dates(args)
    if end <= start:
        raise ValidationError("End date must be after start date")
    available = rental_service.check_availability(product_id, start, end)
    return ok("Availability checked", {
        "product_id": product_id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "available": available,
    })


@bp.post("/quote")
def quote():
    data = request.get_json(silent=True) or {}
    product_id = int_field(data, "product_id", required=True)
    start, end = _dates(data)
    product, q = rental_service.quote(product_id, start, end)
    return ok("Rental price calculated", {
        **q.as_api(),
        "product_id": product.id,
        "available": rental_service.check_availability(product.id, start, end),
    })


# ---------- customer ----------
@bp.post("")
@login_required
def book():
    data = request.get_json(silent=True) or {}
    product_id = int_field(data, "product_id", required=True)
    start, end = _dates(data)
    delivery_type = (data.get("delivery_type") or "standard").strip().lower()
    rental = rental_service.create_rental(current_user().id, product_id, start, end, delivery_type)
    return ok("Rental booked successfully", {
        "rental": rental.as_api(),
        "order_number": rental.order.order_number,
    }, 201)


@bp.get("/me")
@login_required
def my_rentals():
    rows = rental_service.user_rentals(current_user().id)
    return ok("Rentals fetched", [r.as_api() for r in rows])


@bp.get("/<int:rid>")
@login_required
def get_rental(rid):
    return ok("Rental fetched", rental_service.get_owned_rental(rid, current_user()).as_api())


@bp.put("/<int:rid>/return")
@login_required
def return_rental(rid):
    # the return is always dated by the server
    rental = rental_service.return_rental(rid, current_user())
    return ok("Rental returned successfully", rental.as_api())


@bp.put("/<int:rid>/extend")
@login_required
def extend_rental(rid):
    data = request.get_json(silent=True) or {}
    new_end = date_field(data, "new_end_date", required=True)
    rental = rental_service.extend_rental(rid, current_user(), new_end)
    return ok("Rental extended successfully", rental.as_api())


# ---------- admin ----------
@bp.get("/admin/all")
@role_at_least("staff")
def all_rentals():
    args = request.args
    q = rental_service.list_rentals(
        status=(args.get("status") or "").strip() or None,
        user_id=parse_opt_int(args.get("user_id")),
        start=date_field(args, "start_date"),
        end=date_field(args, "end_date"),
    )
    page = paginate(q, args.get("page"), args.get("per_page"))
    return ok("Rentals fetched", {"meta": page["meta"], "rentals": [r.as_api() for r in page["items"]]})


@bp.get("/admin/stats")
@role_at_least("staff")
def stats():
    return ok("Rental stats fetched", rental_service.rental_stats())


@bp.put("/admin/<int:rid>/status")
@admin_required
def update_status(rid):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if not status:
        raise ValidationError("status is required")
    rental = rental_service.update_status(
        rid, status,
        damage_charges=money_field(data, "damage_charges"),
        returned_on=date_field(data, "return_date"),
    )
    return ok("Rental status updated", rental.as_api())
