# storefront/services/rental_service.py
import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..extensions import db
from ..model import Order, Product, Rental
from ..model.rental import CLOSED_STATUSES, DELIVERY_TYPES, ONGOING_STATUSES, RELEASED_STATUSES, RENTAL_STATUSES
from ..pricing import (
    RentalQuote, PricingError, deposit_refund, extension_charge, late_fee,
    quote_rental, validate_rental_dates,
)
from ..utils.dates import today
from ..utils.money import D, ZERO, round_money

logger = logging.getLogger(__name__)


def _rental_product(product_id, lock=False) -> Product:
    if lock:
        # serialise bookings of the same garment
        product = Product.query.filter_by(id=product_id).with_for_update().first()
    else:
        product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFound("Product not found")
    if not product.is_rental:
        raise ValidationError("Product is not available for rental")
    if product.rental_price_per_day is None:
        raise ValidationError("Product pricing not found")
    return product


def check_availability(product_id, start, end, exclude_rental_id=None) -> bool:
    q = Rental.query.filter(
        Rental.product_id == product_id,
        Rental.rental_status.notin_(RELEASED_STATUSES),
        # closed-interval overlap
        Rental.rental_start_date <= end,
        Rental.rental_end_date >= start,
    )
    if exclude_rental_id:
        q = q.filter(Rental.id != exclude_rental_id)
    return q.count() == 0


def quote(product_id, start, end, *, lock=False) -> tuple[Product, RentalQuote]:
    product = _rental_product(product_id, lock=lock)
    cfg = current_app.config
    problem = validate_rental_dates(
        start, end, today(),
        min_days=cfg.get("MIN_RENTAL_DAYS", 1),
        max_days=cfg.get("MAX_RENTAL_DAYS", 30),
    )
    if problem:
        raise ValidationError(problem)
    try:
        q = quote_rental(product.rental_price_per_day, product.security_deposit or ZERO, start, end)
    except PricingError as e:
        raise ValidationError(str(e))
    return product, q


def add_rental(order: Order, user_id: int, product: Product, q: RentalQuote, delivery_type="standard") -> Rental:
    """Stage a rental under an order; the caller owns the transaction."""
    if delivery_type not in DELIVERY_TYPES:
        raise ValidationError(f"delivery_type must be one of {', '.join(DELIVERY_TYPES)}")
    if not check_availability(product.id, q.start, q.end):
        raise Conflict("Product is not available for the selected dates")

    rental = Rental(
        order=order,
        user_id=user_id,
        product_id=product.id,
        rental_start_date=q.start,
        rental_end_date=q.end,
        rental_days=q.duration,
        daily_rate=q.daily_rate,
        total_rental_amount=q.rental_total,
        security_deposit=q.security_deposit,
        late_fee=ZERO,
        damage_charges=ZERO,
        refund_amount=ZERO,
        rental_status="booked",
        deposit_status="held",
        delivery_type=delivery_type,
        is_extended=False,
        extension_count=0,
    )
    db.session.add(rental)
    # later rentals in the same order must see this one
    db.session.flush()
    return rental


def create_rental(user_id: int, product_id, start, end, delivery_type="standard") -> Rental:
    from .order_service import new_order_number

    try:
        product, q = quote(product_id, start, end, lock=True)
        order = Order(
            order_number=new_order_number("RNT"),
            user_id=user_id,
            status="pending",
            payment_status="pending",
            subtotal=q.rental_total,
            rental_total=q.rental_total,
            deposit_total=q.security_deposit,
            discount_amount=ZERO,
            tax_amount=ZERO,
            shipping_amount=ZERO,
            total_amount=q.total_amount,
        )
        db.session.add(order)
        rental = add_rental(order, user_id, product, q, delivery_type)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("rental booked id=%s product=%s user=%s days=%s total=%s",
                rental.id, product.id, user_id, q.duration, q.total_amount)
    return rental


def user_rentals(user_id: int):
    return Rental.query.filter_by(user_id=user_id).order_by(Rental.created_at.desc(), Rental.id.desc()).all()


def get_rental(rental_id: int) -> Rental:
    rental = db.session.get(Rental, rental_id)
    if not rental:
        raise NotFound("Rental not found")
    return rental


def get_owned_rental(rental_id: int, user) -> Rental:
    rental = get_rental(rental_id)
    if rental.user_id != user.id and user.role != "admin":
        raise Forbidden("Access denied")
    return rental


def _settle(rental: Rental, returned_on):
    """Charge the late fee and work out the deposit refund for a return on ``returned_on``."""
    rate = D(current_app.config.get("LATE_FEE_RATE", "0.5"))
    fee = late_fee(rental.daily_rate, rental.rental_end_date, returned_on, rate)
    refund, deposit_status = deposit_refund(rental.security_deposit, fee, rental.damage_charges or ZERO)

    rental.actual_return_date = returned_on
    rental.late_fee = fee
    rental.refund_amount = refund
    rental.deposit_status = deposit_status


def return_rental(rental_id: int, user) -> Rental:
    rental = get_owned_rental(rental_id, user)
    if rental.rental_status in CLOSED_STATUSES:
        raise ValidationError("Rental already returned")
    if rental.rental_status == "cancelled":
        raise ValidationError("Cannot return a cancelled rental")

    _settle(rental, today())
    rental.rental_status = "returned"
    db.session.commit()

    logger.info("rental returned id=%s late_fee=%s refund=%s", rental.id, rental.late_fee, rental.refund_amount)
    return rental


def extend_rental(rental_id: int, user, new_end) -> Rental:
    rental = get_owned_rental(rental_id, user)
    if rental.rental_status in CLOSED_STATUSES:
        raise ValidationError("Cannot extend completed or returned rental")
    if rental.rental_status == "cancelled":
        raise ValidationError("Cannot extend cancelled rental")

    try:
        extra_days, extra_cost = extension_charge(rental.daily_rate, rental.rental_end_date, new_end)
    except PricingError as e:
        raise ValidationError(str(e))

    max_days = current_app.config.get("MAX_RENTAL_DAYS", 30)
    if rental.rental_days + extra_days > max_days:
        raise ValidationError(f"Maximum rental period is {max_days} days")

    if not check_availability(rental.product_id, rental.rental_end_date, new_end, exclude_rental_id=rental.id):
        raise Conflict("Product is not available for the requested extension period")

    rental.rental_end_date = new_end
    rental.rental_days = rental.rental_days + extra_days
    rental.total_rental_amount = round_money(D(rental.total_rental_amount) + extra_cost)
    rental.is_extended = True
    rental.extension_count = (rental.extension_count or 0) + 1

    order = rental.order
    if order is not None:
        order.rental_total = round_money(D(order.rental_total) + extra_cost)
        order.subtotal = round_money(D(order.subtotal) + extra_cost)
        order.total_amount = round_money(D(order.total_amount) + extra_cost)
    db.session.commit()

    logger.info("rental extended id=%s extra_days=%s extra_cost=%s", rental.id, extra_days, extra_cost)
    return rental


def list_rentals(status=None, user_id=None, start=None, end=None):
    q = Rental.query
    if status:
        q = q.filter(Rental.rental_status == status)
    if user_id:
        q = q.filter(Rental.user_id == user_id)
    if start:
        q = q.filter(Rental.rental_start_date >= start)
    if end:
        q = q.filter(Rental.rental_start_date <= end)
    return q.order_by(Rental.created_at.desc(), Rental.id.desc())


def update_status(rental_id: int, status, damage_charges=None, returned_on=None) -> Rental:
    """
    Back-office status change. ``returned_on`` corrects the recorded return
    date; closing a rental that was never returned settles it as of today.
    """
    if status not in RENTAL_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(RENTAL_STATUSES)}")
    if damage_charges is not None and damage_charges < 0:
        raise ValidationError("damage_charges cannot be negative")
    rental = get_rental(rental_id)
    if returned_on is not None and returned_on < rental.rental_start_date:
        raise ValidationError("Return date cannot be before the rental start date")

    rental.rental_status = status
    if damage_charges is not None:
        rental.damage_charges = round_money(damage_charges)

    if returned_on is None and status in CLOSED_STATUSES and rental.actual_return_date is None:
        returned_on = today()
    if returned_on is not None:
        _settle(rental, returned_on)
    elif damage_charges is not None and rental.actual_return_date is not None:
        # settle the deposit again once the garment has been inspected
        _settle(rental, rental.actual_return_date)
    db.session.commit()
    logger.info("rental status id=%s -> %s", rental.id, status)
    return rental


def _sum(column, statuses):
    total = db.session.query(func.coalesce(func.sum(column), 0)) \
        .filter(Rental.rental_status.in_(statuses)).scalar()
    return float(round_money(D(total)))


def rental_stats(now: datetime | None = None) -> dict:
    day = (now.date() if now else today())
    return {
        "total_rentals": Rental.query.count(),
        "active_rentals": Rental.query.filter(Rental.rental_status.in_(ONGOING_STATUSES)).count(),
        "overdue_rentals": Rental.query.filter(
            Rental.rental_status.in_(("active", "overdue")),
            Rental.rental_end_date < day,
        ).count(),
        "completed_rentals": Rental.query.filter(Rental.rental_status.in_(CLOSED_STATUSES)).count(),
        "total_revenue": _sum(Rental.total_rental_amount, CLOSED_STATUSES),
        "total_late_fees": _sum(Rental.late_fee, CLOSED_STATUSES),
        "total_damage_charges": _sum(Rental.damage_charges, CLOSED_STATUSES),
        "pending_revenue": _sum(Rental.total_rental_amount, ONGOING_STATUSES),
    }
