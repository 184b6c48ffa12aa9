# storefront/model/review.py
from ..extensions import db
from ..utils.dates import utcnow, iso


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (db.UniqueConstraint("user_id", "product_id", name="uq_review_user_product"),)

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    rating = db.Column(db.SmallInteger, nullable=False)
    title = db.Column(db.String(255))
    comment = db.Column(db.Text)

    is_verified_purchase = db.Column(db.Boolean, default=False)
    # new and edited reviews wait for moderation
    is_approved = db.Column(db.Boolean, default=False, index=True)
    helpful_count = db.Column(db.Integer, default=0)

    reviewed_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", lazy="joined")
    votes = db.relationship("ReviewHelpful", back_populates="review", cascade="all, delete-orphan")

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user": {"id": self.user_id, "name": self.user.name if self.user else None},
            "order_id": self.order_id,
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "is_verified_purchase": bool(self.is_verified_purchase),
            "is_approved": bool(self.is_approved),
            "helpful_count": self.helpful_count or 0,
            "reviewed_at": iso(self.reviewed_at),
            "updated_at": iso(self.updated_at),
        }


class ReviewHelpful(db.Model):
    __tablename__ = "review_helpful"
    __table_args__ = (db.UniqueConstraint("review_id", "user_id", name="uq_review_vote"),)

    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(db.Integer, db.ForeignKey("reviews.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    is_helpful = db.Column(db.Boolean, nullable=False)
    voted_at = db.Column(db.DateTime, default=utcnow)

    review = db.relationship("Review", back_populates="votes")
