# storefront/services/review_service.py
import logging

from sqlalchemy import asc, desc, func

from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..extensions import db
from ..model import Order, OrderItem, Product, Review, ReviewHelpful
from ..utils.money import D, round_money
from ..utils.params import int_field

logger = logging.getLogger(__name__)

SORTS = {
    "recent": (desc(Review.reviewed_at), desc(Review.id)),
    "rating_high": (desc(Review.rating), desc(Review.reviewed_at)),
    "rating_low": (asc(Review.rating), desc(Review.reviewed_at)),
    "helpful": (desc(Review.helpful_count), desc(Review.reviewed_at)),
}
VERIFIED_ORDER_STATUSES = ("delivered", "completed")


def _rating(data: dict, required=True):
    rating = int_field(data, "rating", required=required)
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def _text(data: dict, name):
    v = data.get(name)
    if v is None:
        return None
    return str(v).strip() or None


def refresh_rating(product_id: int):
    """Recompute the product's average rating from approved reviews; the caller commits."""
    avg, count = db.session.query(func.avg(Review.rating), func.count(Review.id)) \
        .filter(Review.product_id == product_id, Review.is_approved.is_(True)).one()
    product = db.session.get(Product, product_id)
    if product:
        product.average_rating = round_money(D(avg)) if count else D(0)
        product.review_count = count


def _verified_purchase(user_id: int, product_id: int, order_id) -> bool:
    if not order_id:
        return False
    q = db.session.query(OrderItem.id).join(Order, OrderItem.order_id == Order.id).filter(
        Order.id == order_id,
        Order.user_id == user_id,
        Order.status.in_(VERIFIED_ORDER_STATUSES),
        OrderItem.product_id == product_id,
    )
    return q.first() is not None


def get_review(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if not review:
        raise NotFound("Review not found")
    return review


def _owned(review_id: int, user) -> Review:
    review = get_review(review_id)
    if review.user_id != user.id and user.role != "admin":
        raise Forbidden("Review not found or access denied")
    return review


def create_review(user, data: dict) -> Review:
    product_id = int_field(data, "product_id", required=True)
    rating = _rating(data)
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFound("Product not found")
    if Review.query.filter_by(product_id=product_id, user_id=user.id).first():
        raise Conflict("You have already reviewed this product")

    order_id = int_field(data, "order_id")
    review = Review(
        product_id=product_id,
        user_id=user.id,
        order_id=order_id,
        rating=rating,
        title=_text(data, "title"),
        comment=_text(data, "comment"),
        is_verified_purchase=_verified_purchase(user.id, product_id, order_id),
        is_approved=False,
        helpful_count=0,
    )
    db.session.add(review)
    db.session.commit()
    logger.info("review created id=%s product=%s user=%s", review.id, product_id, user.id)
    return review


def update_review(review_id: int, user, data: dict) -> Review:
    review = get_review(review_id)
    if review.user_id != user.id:
        raise Forbidden("Review not found or access denied")
    if "rating" in data:
        review.rating = _rating(data)
    for name in ("title", "comment"):
        if name in data:
            setattr(review, name, _text(data, name))
    was_approved = review.is_approved
    review.is_approved = False
    if was_approved:
        refresh_rating(review.product_id)
    db.session.commit()
    return review


def delete_review(review_id: int, user):
    review = _owned(review_id, user)
    product_id = review.product_id
    db.session.delete(review)
    db.session.flush()
    refresh_rating(product_id)
    db.session.commit()
    logger.info("review deleted id=%s by user=%s", review_id, user.id)


def moderate(review_id: int, is_approved: bool) -> Review:
    review = get_review(review_id)
    review.is_approved = is_approved
    db.session.flush()
    refresh_rating(review.product_id)
    db.session.commit()
    logger.info("review moderated id=%s approved=%s", review.id, is_approved)
    return review


def vote(review_id: int, user_id: int, is_helpful: bool) -> Review:
    review = get_review(review_id)
    existing = ReviewHelpful.query.filter_by(review_id=review_id, user_id=user_id).first()
    if existing is None:
        db.session.add(ReviewHelpful(review_id=review_id, user_id=user_id, is_helpful=is_helpful))
        review.helpful_count = (review.helpful_count or 0) + (1 if is_helpful else -1)
    elif existing.is_helpful != is_helpful:
        # flipping a vote undoes the old one as well
        existing.is_helpful = is_helpful
        review.helpful_count = (review.helpful_count or 0) + (2 if is_helpful else -2)
    db.session.commit()
    return review


def product_reviews(product_id: int, sort=None, rating=None):
    q = Review.query.filter(Review.product_id == product_id, Review.is_approved.is_(True))
    if rating:
        q = q.filter(Review.rating == rating)
    return q.order_by(*SORTS.get(sort or "recent", SORTS["recent"]))


def product_stats(product_id: int) -> dict:
    rows = db.session.query(Review.rating, func.count(Review.id)) \
        .filter(Review.product_id == product_id, Review.is_approved.is_(True)) \
        .group_by(Review.rating).all()
    distribution = {star: 0 for star in range(1, 6)}
    for star, n in rows:
        distribution[star] = n
    total = sum(distribution.values())
    avg = sum(star * n for star, n in distribution.items()) / total if total else 0
    return {
        "total_reviews": total,
        "average_rating": float(round_money(D(avg))),
        "rating_distribution": distribution,
    }


def all_reviews(status=None):
    q = Review.query
    if status == "approved":
        q = q.filter(Review.is_approved.is_(True))
    elif status == "pending":
        q = q.filter(Review.is_approved.is_(False))
    return q.order_by(desc(Review.reviewed_at), desc(Review.id))
