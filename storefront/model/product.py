# storefront/model/product.py
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_float


class Product(db.Model):
    __tablename__ = "products"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), unique=True, index=True, nullable=False)
    sku = db.Column(db.String(64), unique=True, index=True, nullable=False)
    description = db.Column(db.Text)

    mrp = db.Column(db.Numeric(10, 2))                          # list price
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)  # selling price

    # rental terms; only meaningful when is_rental is set
    is_rental = db.Column(db.Boolean, default=False, index=True)
    rental_price_per_day = db.Column(db.Numeric(10, 2))
    security_deposit = db.Column(db.Numeric(10, 2))

    stock_quantity = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True, index=True)
    is_featured = db.Column(db.Boolean, default=False)

    # approved reviews only; kept current by review_service.refresh_rating
    average_rating = db.Column(db.Numeric(3, 2), default=0)
    review_count = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )

    @property
    def is_rentable(self):
        return bool(self.is_rental and self.is_active and self.rental_price_per_day is not None)

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "sku": self.sku,
            "description": self.description,
            "mrp": to_float(self.mrp),
            "price": to_float(self.price),
            "is_rental": bool(self.is_rental),
            "rental_price_per_day": to_float(self.rental_price_per_day),
            "security_deposit": to_float(self.security_deposit),
            "stock_quantity": self.stock_quantity,
            "in_stock": (self.stock_quantity or 0) > 0,
            "is_active": self.is_active,
            "is_featured": self.is_featured,
            "average_rating": to_float(self.average_rating or 0),
            "review_count": self.review_count or 0,
            "category": self.category.as_dict() if self.category else None,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
