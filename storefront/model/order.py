from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_float

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "returned")
CANCELLABLE_STATUSES = ("pending", "confirmed")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("cod", "card", "upi", "netbanking", "wallet")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(40), unique=True, index=True)  # e.g., "ORD-1730000000000-AB12C"
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(20), default="pending", index=True)
    payment_status = db.Column(db.String(20), default="pending", index=True)
    payment_method = db.Column(db.String(20), default="cod")

    # Customer snapshot
    shipping_name = db.Column(db.String(120))
    shipping_email = db.Column(db.String(255))
    shipping_phone = db.Column(db.String(32))
    shipping_address_line1 = db.Column(db.String(255))
    shipping_address_line2 = db.Column(db.String(255))
    shipping_city = db.Column(db.String(120))
    shipping_state = db.Column(db.String(120))
    shipping_postal_code = db.Column(db.String(20))
    shipping_country = db.Column(db.String(80), default="India")

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2), default=0)        # purchases + rental charges
    rental_total = db.Column(db.Numeric(12, 2), default=0)
    deposit_total = db.Column(db.Numeric(12, 2), default=0)
    discount_amount = db.Column(db.Numeric(12, 2), default=0)
    tax_amount = db.Column(db.Numeric(12, 2), default=0)
    shipping_amount = db.Column(db.Numeric(12, 2), default=0)
    total_amount = db.Column(db.Numeric(12, 2), default=0)
    coupon_code = db.Column(db.String(64), nullable=True)

    ordered_at = db.Column(db.DateTime, default=utcnow, index=True)
    confirmed_at = db.Column(db.DateTime)
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    rentals = db.relationship("Rental", back_populates="order", lazy="selectin")

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "shipping_address": {
                "name": self.shipping_name,
                "email": self.shipping_email,
                "phone": self.shipping_phone,
                "address_line1": self.shipping_address_line1,
                "address_line2": self.shipping_address_line2,
                "city": self.shipping_city,
                "state": self.shipping_state,
                "postal_code": self.shipping_postal_code,
                "country": self.shipping_country,
            },
            "money": {
                "subtotal": to_float(self.subtotal or 0),
                "rental_total": to_float(self.rental_total or 0),
                "deposit_total": to_float(self.deposit_total or 0),
                "discount_amount": to_float(self.discount_amount or 0),
                "tax_amount": to_float(self.tax_amount or 0),
                "shipping_amount": to_float(self.shipping_amount or 0),
                "total_amount": to_float(self.total_amount or 0),
            },
            "coupon_code": self.coupon_code,
            "items": [i.as_api() for i in self.items],
            "rentals": [r.as_api() for r in self.rentals],
            "ordered_at": iso(self.ordered_at),
            "confirmed_at": iso(self.confirmed_at),
            "shipped_at": iso(self.shipped_at),
            "delivered_at": iso(self.delivered_at),
            "cancelled_at": iso(self.cancelled_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), index=True)
    product_name = db.Column(db.String(255))
    product_sku = db.Column(db.String(64))

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2))
    subtotal = db.Column(db.Numeric(12, 2))

    def as_api(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": to_float(self.unit_price or 0),
            "subtotal": to_float(self.subtotal or 0),
        }
