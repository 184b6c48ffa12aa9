# ------ storefront/model/__init__.py ------

from .user import User, RefreshToken
from .category import Category
from .product import Product
from .coupon import Coupon, CouponUsage
from .order import Order, OrderItem
from .rental import Rental
from .wishlist import WishlistItem
from .review import Review, ReviewHelpful

__all__ = [
    "User",
    "RefreshToken",
    "Category",
    "Product",
    "Coupon",
    "CouponUsage",
    "Order",
    "OrderItem",
    "Rental",
    "WishlistItem",
    "Review",
    "ReviewHelpful",
]
