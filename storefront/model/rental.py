# storefront/model/rental.py
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_float

RENTAL_STATUSES = (
    "booked", "confirmed", "out_for_delivery", "active", "return_requested",
    "pickup_scheduled", "returned", "inspecting", "completed", "overdue", "cancelled",
)
# a rental in one of these no longer holds the garment
RELEASED_STATUSES = ("cancelled", "completed", "returned")
ONGOING_STATUSES = ("booked", "confirmed", "out_for_delivery", "active")
CLOSED_STATUSES = ("completed", "returned")

DELIVERY_TYPES = ("standard", "express", "pickup")


class Rental(db.Model):
    __tablename__ = "rentals"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    rental_start_date = db.Column(db.Date, nullable=False, index=True)
    rental_end_date = db.Column(db.Date, nullable=False, index=True)
    actual_return_date = db.Column(db.Date, nullable=True)
    rental_days = db.Column(db.Integer, nullable=False)

    # money snapshot
    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)
    total_rental_amount = db.Column(db.Numeric(10, 2), nullable=False)
    security_deposit = db.Column(db.Numeric(10, 2), nullable=False)
    late_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    damage_charges = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    refund_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    rental_status = db.Column(db.String(20), nullable=False, default="booked", index=True)
    deposit_status = db.Column(db.String(20), nullable=False, default="held")
    delivery_type = db.Column(db.String(16), nullable=False, default="standard")
    is_extended = db.Column(db.Boolean, nullable=False, default=False)
    extension_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", lazy="joined")
    order = db.relationship("Order", back_populates="rentals")

    def as_api(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "product": {
                "id": self.product.id,
                "name": self.product.name,
                "slug": self.product.slug,
            } if self.product else None,
            "rental_start_date": iso(self.rental_start_date),
            "rental_end_date": iso(self.rental_end_date),
            "actual_return_date": iso(self.actual_return_date),
            "rental_days": self.rental_days,
            "daily_rate": to_float(self.daily_rate),
            "total_rental_amount": to_float(self.total_rental_amount),
            "security_deposit": to_float(self.security_deposit),
            "total_amount": to_float((self.total_rental_amount or 0) + (self.security_deposit or 0)),
            "late_fee": to_float(self.late_fee),
            "damage_charges": to_float(self.damage_charges),
            "refund_amount": to_float(self.refund_amount),
            "rental_status": self.rental_status,
            "deposit_status": self.deposit_status,
            "delivery_type": self.delivery_type,
            "is_extended": self.is_extended,
            "extension_count": self.extension_count,
            "created_at": iso(self.created_at),
        }
