import logging

from flask import request

from . import bp
from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..model import Product, WishlistItem
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import current_user, login_required
from ..utils.params import int_field

logger = logging.getLogger(__name__)


def _items(user_id):
    return WishlistItem.query.filter_by(user_id=user_id) \
        .order_by(WishlistItem.added_at.desc(), WishlistItem.id.desc()).all()


def _owned(item_id, user_id) -> WishlistItem:
    item = WishlistItem.query.filter_by(id=item_id, user_id=user_id).first()
    if not item:
        raise NotFound("Wishlist item not found")
    return item


@bp.get("")
@login_required
def get_wishlist():
    items = _items(current_user().id)
    return ok("Wishlist fetched", {"items": [i.as_api() for i in items], "total": len(items)})


@bp.get("/count")
@login_required
def count():
    return ok("Wishlist count", {"count": WishlistItem.query.filter_by(user_id=current_user().id).count()})


@bp.get("/check/<int:pid>")
@login_required
def check(pid):
    item = WishlistItem.query.filter_by(user_id=current_user().id, product_id=pid).first()
    return ok("Wishlist checked", {"in_wishlist": item is not None, "wishlist_item_id": item.id if item else None})


@bp.post("")
@login_required
def add():
    data = request.get_json(silent=True) or {}
    pid = int_field(data, "product_id", required=True)
    product = db.session.get(Product, pid)
    if not product:
        raise NotFound("Product not found")
    if not product.is_active:
        raise ValidationError("Product is not available")

    user_id = current_user().id
    if WishlistItem.query.filter_by(user_id=user_id, product_id=pid).first():
        raise Conflict("Product already in wishlist")
    item = WishlistItem(user_id=user_id, product_id=pid)
    db.session.add(item)
    db.session.commit()
    return ok("Product added to wishlist successfully", item.as_api(), 201)


@bp.post("/<int:item_id>/move-to-cart")
@login_required
def move_to_cart(item_id):
    """
    Price the wishlisted product as a cart line and drop it from the wishlist.
    Rental products take start_date/end_date; everything else takes quantity.
    """
    user = current_user()
    item = _owned(item_id, user.id)
    product = item.product
    if not product.is_active:
        raise ValidationError("Product is not available")

    data = request.get_json(silent=True) or {}
    if data.get("start_date") or data.get("end_date"):
        line = {k: data.get(k) for k in ("start_date", "end_date", "delivery_type") if data.get(k)}
        cart = {"rentals": [{"product_id": product.id, **line}]}
    else:
        qty = int_field(data, "quantity", minimum=1) or 1
        cart = {"items": [{"product_id": product.id, "quantity": qty}]}

    priced = order_service.price_cart(cart, user.id)
    db.session.delete(item)
    db.session.commit()
    logger.info("wishlist item moved to cart id=%s user=%s", item_id, user.id)
    return ok("Product moved to cart", {"cart": cart, "quote": priced.quote.as_api()})


@bp.delete("/<int:item_id>")
@login_required
def remove(item_id):
    item = _owned(item_id, current_user().id)
    db.session.delete(item)
    db.session.commit()
    return ok("Product removed from wishlist successfully", {"id": item_id})


@bp.delete("/product/<int:pid>")
@login_required
def remove_by_product(pid):
    item = WishlistItem.query.filter_by(user_id=current_user().id, product_id=pid).first()
    if not item:
        raise NotFound("Product not found in wishlist")
    db.session.delete(item)
    db.session.commit()
    return ok("Product removed from wishlist successfully", {"product_id": pid})


@bp.delete("")
@login_required
def clear():
    deleted = WishlistItem.query.filter_by(user_id=current_user().id).delete()
    db.session.commit()
    return ok("Wishlist cleared successfully", {"deleted_count": deleted})
