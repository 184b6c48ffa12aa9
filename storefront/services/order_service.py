# storefront/services/order_service.py
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..extensions import db
from ..model import Coupon, Order, OrderItem, Product
from ..model.order import CANCELLABLE_STATUSES, ORDER_STATUSES, PAYMENT_METHODS, PAYMENT_STATUSES
from ..pricing import CartLine, CartQuote, CartSettings, CouponCheck, quote_cart
from ..utils.dates import utcnow
from ..utils.money import D, round_money
from ..utils.params import date_field, int_field
from . import coupon_service, rental_service

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("name", "phone", "address_line1", "city", "state", "postal_code")

# the customer holds the garment in these rental states
GARMENT_OUT_STATUSES = ("out_for_delivery", "active", "overdue", "return_requested", "pickup_scheduled")

STATUS_TIMESTAMPS = {
    "confirmed": "confirmed_at",
    "shipped": "shipped_at",
    "delivered": "delivered_at",
    "cancelled": "cancelled_at",
}


@dataclass
class PricedCart:
    quote: CartQuote
    products: dict = field(default_factory=dict)
    quantities: dict = field(default_factory=dict)
    rentals: list = field(default_factory=list)  # [(product, RentalQuote, delivery_type)]
    coupon: Coupon | None = None
    coupon_check: CouponCheck | None = None

    @property
    def is_empty(self):
        return not self.quantities and not self.rentals


def new_order_number(prefix="ORD") -> str:
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def _purchase_quantities(items) -> dict:
    if items is None:
        return {}
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    quantities = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("each item must be an object")
        pid = int_field(raw, "product_id", required=True)
        qty = int_field(raw, "quantity", minimum=1) or 1
        quantities[pid] = quantities.get(pid, 0) + qty
    return quantities


def _sale_products(quantities: dict, lock=False) -> dict:
    if not quantities:
        return {}
    q = Product.query.filter(Product.id.in_(list(quantities)))
    if lock:
        # Lock product rows to avoid oversell
        q = q.with_for_update()
    products = {p.id: p for p in q.all()}
    for pid, qty in quantities.items():
        p = products.get(pid)
        if not p or not p.is_active:
            raise NotFound(f"Product {pid} is not available")
        if p.price is None or D(p.price) <= 0:
            raise ValidationError(f"Price not set for product {p.name}")
        if (p.stock_quantity or 0) < qty:
            raise Conflict(f"Insufficient stock for {p.name}. Available: {p.stock_quantity or 0}")
    return products


def _rental_requests(rentals, lock=False) -> list:
    if rentals is None:
        return []
    if not isinstance(rentals, list):
        raise ValidationError("rentals must be a list")
    priced = []
    for raw in rentals:
        if not isinstance(raw, dict):
            raise ValidationError("each rental must be an object")
        pid = int_field(raw, "product_id", required=True)
        start = date_field(raw, "start_date", required=True)
        end = date_field(raw, "end_date", required=True)
        product, q = rental_service.quote(pid, start, end, lock=lock)
        priced.append((product, q, (raw.get("delivery_type") or "standard").strip().lower()))
    return priced


def price_cart(data: dict, user_id=None, *, lock=False) -> PricedCart:
    """Price a cart body from catalogue prices; the client's prices are never trusted."""
    quantities = _purchase_quantities(data.get("items"))
    products = _sale_products(quantities, lock=lock)
    rentals = _rental_requests(data.get("rentals"), lock=lock)

    cats = {pid: p.category_id for pid, p in products.items()}
    lines = [CartLine(product_id=pid, price=D(products[pid].price), quantity=qty, category_id=cats.get(pid))
             for pid, qty in quantities.items()]
    rental_lines = [CartLine(product_id=p.id, price=q.rental_total, quantity=1, category_id=p.category_id)
                    for p, q, _ in rentals]

    coupon, check = None, None
    discount = D(0)
    code = (data.get("coupon_code") or "").strip()
    if code:
        coupon, check = coupon_service.evaluate_coupon(code, user_id, lines + rental_lines)
        if check.valid:
            discount = check.discount

    quote = quote_cart(
        lines,
        [q for _, q, _ in rentals],
        discount,
        CartSettings.from_config(current_app.config),
        coupon_code=coupon.code if coupon and check.valid else None,
    )
    return PricedCart(quote=quote, products=products, quantities=quantities,
                      rentals=rentals, coupon=coupon, coupon_check=check)


def _shipping_address(data: dict, user) -> dict:
    addr = data.get("shipping_address") or {}
    if not isinstance(addr, dict):
        raise ValidationError("shipping_address must be an object")
    missing = [f for f in ADDRESS_FIELDS if not str(addr.get(f) or "").strip()]
    if missing:
        raise ValidationError("shipping_address is incomplete", error={"missing": missing})
    clean = {k: str(v).strip() for k, v in addr.items() if v is not None}
    clean.setdefault("email", user.email)
    clean.setdefault("country", "India")
    return clean


def checkout(user, data: dict) -> Order:
    payment_method = (data.get("payment_method") or "cod").strip().lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    address = _shipping_address(data, user)

    try:
        priced = price_cart(data, user.id, lock=True)
        if priced.is_empty:
            raise ValidationError("Cart is empty")
        if priced.coupon_check is not None and not priced.coupon_check.valid:
            raise ValidationError(priced.coupon_check.message)

        q = priced.quote
        order = Order(
            order_number=new_order_number(),
            user_id=user.id,
            status="pending",
            payment_status="pending",
            payment_method=payment_method,
            shipping_name=address["name"],
            shipping_email=address.get("email"),
            shipping_phone=address["phone"],
            shipping_address_line1=address["address_line1"],
            shipping_address_line2=address.get("address_line2"),
            shipping_city=address["city"],
            shipping_state=address["state"],
            shipping_postal_code=address["postal_code"],
            shipping_country=address.get("country"),
            subtotal=q.subtotal,
            rental_total=q.rental_total,
            deposit_total=q.deposit_total,
            discount_amount=q.discount,
            tax_amount=q.tax,
            shipping_amount=q.shipping,
            total_amount=q.total,
            coupon_code=q.coupon_code,
        )
        db.session.add(order)
        db.session.flush()

        for pid, qty in priced.quantities.items():
            p = priced.products[pid]
            unit = round_money(p.price)
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=p.id,
                product_name=p.name,
                product_sku=p.sku,
                quantity=qty,
                unit_price=unit,
                subtotal=round_money(unit * qty),
            ))
            p.stock_quantity = (p.stock_quantity or 0) - qty

        for product, rq, delivery_type in priced.rentals:
            rental_service.add_rental(order, user.id, product, rq, delivery_type)

        if priced.coupon is not None and priced.coupon_check.valid:
            coupon_service.record_usage(priced.coupon, user.id, order.id, q.discount)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("order placed id=%s number=%s user=%s total=%s", order.id, order.order_number, user.id,
                order.total_amount)
    return order


def get_order(order_id: int) -> Order:
    o = db.session.get(Order, order_id)
    if not o:
        raise NotFound("Order not found")
    return o


def get_owned_order(order_id: int, user) -> Order:
    o = get_order(order_id)
    if o.user_id != user.id and user.role != "admin":
        raise Forbidden("Access denied")
    return o


def user_orders(user_id: int):
    return Order.query.filter_by(user_id=user_id).order_by(Order.ordered_at.desc(), Order.id.desc()).all()


def list_orders(status=None, payment_status=None, user_id=None, order_number=None, start=None, end=None):
    q = Order.query
    if status: q = q.filter(Order.status == status)
    if payment_status: q = q.filter(Order.payment_status == payment_status)
    if user_id: q = q.filter(Order.user_id == user_id)
    if order_number: q = q.filter(Order.order_number == order_number)
    if start:
        q = q.filter(Order.ordered_at >= datetime(start.year, start.month, start.day))
    if end:
        # make end inclusive for the whole day
        q = q.filter(Order.ordered_at < datetime(end.year, end.month, end.day) + timedelta(days=1))
    return q.order_by(Order.ordered_at.desc(), Order.id.desc())


def _check_releasable(order: Order):
    held = [r.id for r in order.rentals if r.rental_status in GARMENT_OUT_STATUSES]
    if held:
        raise ValidationError("Order cannot be cancelled while a rented garment is with the customer",
                              error={"rental_ids": held})


def _release(order: Order):
    for item in order.items:
        if item.product_id:
            p = db.session.get(Product, item.product_id)
            if p:
                p.stock_quantity = (p.stock_quantity or 0) + item.quantity
    for rental in order.rentals:
        if rental.rental_status not in ("returned", "completed", "cancelled"):
            rental.rental_status = "cancelled"
            rental.deposit_status = "refunded"
            rental.refund_amount = rental.security_deposit
    coupon_service.release_usage(order.id)


def cancel_order(order_id: int, user) -> Order:
    order = get_owned_order(order_id, user)
    if order.status not in CANCELLABLE_STATUSES:
        raise ValidationError(f"Order cannot be cancelled. Current status: {order.status}")
    _check_releasable(order)
    _release(order)
    order.status = "cancelled"
    order.cancelled_at = utcnow()
    db.session.commit()
    logger.info("order cancelled id=%s by user=%s", order.id, user.id)
    return order


def update_status(order_id: int, status, payment_status=None) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError("Invalid payment_status")
    order = get_order(order_id)
    if order.status == "cancelled" and status != "cancelled":
        raise ValidationError("Cancelled orders cannot change status")

    if status == "cancelled" and order.status != "cancelled":
        _check_releasable(order)
        _release(order)
    order.status = status
    stamp = STATUS_TIMESTAMPS.get(status)
    if stamp and getattr(order, stamp) is None:
        setattr(order, stamp, utcnow())
    if payment_status is not None:
        order.payment_status = payment_status
    db.session.commit()
    logger.info("order status id=%s -> %s", order.id, status)
    return order


def order_stats(user_id=None) -> dict:
    base = Order.query
    if user_id:
        base = base.filter(Order.user_id == user_id)
    counts = {s: base.filter(Order.status == s).count() for s in ("pending", "confirmed", "shipped",
                                                                   "delivered", "cancelled")}
    revenue_q = db.session.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(Order.status == "delivered")
    if user_id:
        revenue_q = revenue_q.filter(Order.user_id == user_id)
    return {
        "total_orders": base.count(),
        **{f"{k}_orders": v for k, v in counts.items()},
        "total_revenue": float(round_money(D(revenue_q.scalar()))),
    }
