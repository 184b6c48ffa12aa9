from flask import request

from . import bp
from ..errors import NotFound, ValidationError
from ..model import Review
from ..services import review_service
from ..utils.api import ok
from ..utils.decorators import admin_required, current_user, login_required
from ..utils.params import paginate, parse_bool, parse_opt_int


# ---------- public ----------
@bp.get("/product/<int:pid>")
def product_reviews(pid):
    """
    Query params:
      sort     -> recent (default), rating_high, rating_low, helpful
      rating   -> 1..5
      page, per_page
    """
    args = request.args
    q = review_service.product_reviews(pid, args.get("sort"), parse_opt_int(args.get("rating")))
    page = paginate(q, args.get("page"), args.get("per_page"), default_per_page=10)
    stats = review_service.product_stats(pid)
    return ok("Reviews fetched", {
        "reviews": [r.as_api() for r in page["items"]],
        "meta": page["meta"],
        "average_rating": stats["average_rating"],
    })


@bp.get("/product/<int:pid>/stats")
def product_stats(pid):
    return ok("Review stats fetched", review_service.product_stats(pid))


@bp.get("/<int:review_id>")
def get_review(review_id):
    return ok("Review fetched", review_service.get_review(review_id).as_api())


# ---------- customer ----------
@bp.post("")
@login_required
def create_review():
    data = request.get_json(silent=True) or {}
    review = review_service.create_review(current_user(), data)
    return ok("Review submitted for moderation", review.as_api(), 201)


@bp.get("/my-review/<int:pid>")
@login_required
def my_review(pid):
    review = Review.query.filter_by(product_id=pid, user_id=current_user().id).first()
    if not review:
        raise NotFound("Review not found")
    return ok("Review fetched", review.as_api())


@bp.put("/<int:review_id>")
@login_required
def update_review(review_id):
    data = request.get_json(silent=True) or {}
    review = review_service.update_review(review_id, current_user(), data)
    return ok("Review updated", review.as_api())


@bp.delete("/<int:review_id>")
@login_required
def delete_review(review_id):
    review_service.delete_review(review_id, current_user())
    return ok("Review deleted", {"id": review_id})


@bp.post("/<int:review_id>/helpful")
@login_required
def mark_helpful(review_id):
    data = request.get_json(silent=True) or {}
    review = review_service.vote(review_id, current_user().id, parse_bool(data.get("is_helpful"), default=True))
    return ok("Vote recorded", {"id": review.id, "helpful_count": review.helpful_count})


# ---------- admin ----------
@bp.get("/admin/all")
@admin_required
def all_reviews():
    args = request.args
    status = (args.get("status") or "").strip().lower() or None
    if status not in (None, "approved", "pending"):
        raise ValidationError("status must be approved or pending")
    page = paginate(review_service.all_reviews(status), args.get("page"), args.get("per_page"))
    return ok("Reviews fetched", {"meta": page["meta"], "reviews": [r.as_api() for r in page["items"]]})


@bp.put("/admin/<int:review_id>/moderate")
@admin_required
def moderate(review_id):
    data = request.get_json(silent=True) or {}
    if "is_approved" not in data:
        raise ValidationError("is_approved is required")
    review = review_service.moderate(review_id, parse_bool(data.get("is_approved")))
    return ok("Review moderated", review.as_api())
