# storefront/model/wishlist.py
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_float


class WishlistItem(db.Model):
    __tablename__ = "wishlist_items"
    __table_args__ = (db.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), index=True, nullable=False)
    added_at = db.Column(db.DateTime, default=utcnow, index=True)

    product = db.relationship("Product", lazy="joined")

    def as_api(self):
        p = self.product
        return {
            "id": self.id,
            "product_id": p.id,
            "product_name": p.name,
            "product_slug": p.slug,
            "price": to_float(p.price),
            "is_rental": bool(p.is_rental),
            "rental_price_per_day": to_float(p.rental_price_per_day),
            "category_id": p.category_id,
            "category_name": p.category.name if p.category else None,
            "is_active": bool(p.is_active),
            "in_stock": (p.stock_quantity or 0) > 0,
            "added_at": iso(self.added_at),
        }
