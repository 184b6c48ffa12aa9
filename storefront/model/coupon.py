# --- storefront/model/coupon.py ---

from ..extensions import db
from ..pricing import CouponTerms
from ..utils.dates import utcnow, iso
from ..utils.money import D, to_float


class Coupon(db.Model):
    __tablename__ = "coupons"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored upper-case
    description = db.Column(db.Text, nullable=True)

    # "percentage" or "flat"
    discount_type = db.Column(db.String(16), nullable=False, default="percentage")
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)

    # Optional constraints
    min_order_value = db.Column(db.Numeric(10, 2), nullable=True)  # require cart subtotal >= this
    max_discount = db.Column(db.Numeric(10, 2), nullable=True)     # cap for percentage coupons
    usage_limit = db.Column(db.Integer, nullable=True)             # global usage cap
    usage_per_user = db.Column(db.Integer, nullable=True, default=1)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    # "all" | "category" | "product"
    applicable_to = db.Column(db.String(16), nullable=False, default="all")
    category_ids = db.Column(db.JSON, nullable=True, default=list)
    product_ids = db.Column(db.JSON, nullable=True, default=list)

    valid_from = db.Column(db.DateTime, nullable=False)
    valid_to = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    usages = db.relationship("CouponUsage", back_populates="coupon", lazy="selectin",
                             order_by="CouponUsage.used_at.desc()")

    def as_terms(self) -> CouponTerms:
        return CouponTerms(
            code=self.code,
            discount_type=self.discount_type,
            discount_value=D(self.discount_value),
            min_order_value=D(self.min_order_value) if self.min_order_value is not None else None,
            max_discount=D(self.max_discount) if self.max_discount is not None else None,
            usage_limit=self.usage_limit,
            usage_per_user=self.usage_per_user,
            used_count=self.used_count or 0,
            applicable_to=self.applicable_to or "all",
            category_ids=tuple(self.category_ids or ()),
            product_ids=tuple(self.product_ids or ()),
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            is_active=bool(self.is_active),
        )

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": to_float(self.discount_value),
            "min_order_value": to_float(self.min_order_value),
            "max_discount": to_float(self.max_discount),
            "usage_limit": self.usage_limit,
            "usage_per_user": self.usage_per_user,
            "used_count": self.used_count or 0,
            "applicable_to": self.applicable_to,
            "category_ids": list(self.category_ids or []),
            "product_ids": list(self.product_ids or []),
            "valid_from": iso(self.valid_from),
            "valid_to": iso(self.valid_to),
            "is_active": bool(self.is_active),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def as_public(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": to_float(self.discount_value),
        }


class CouponUsage(db.Model):
    __tablename__ = "coupon_usage"

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), index=True, nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False)
    used_at = db.Column(db.DateTime, default=utcnow, index=True)

    coupon = db.relationship("Coupon", back_populates="usages")
    user = db.relationship("User", lazy="joined")

    def as_api(self, with_coupon=False):
        data = {
            "id": self.id,
            "coupon_id": self.coupon_id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "discount_amount": to_float(self.discount_amount),
            "used_at": iso(self.used_at),
        }
        if with_coupon and self.coupon:
            data["coupon"] = self.coupon.as_public()
        return data
