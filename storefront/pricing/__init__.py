"""
Pure pricing rules shared by every endpoint that quotes or charges money.

Nothing in this package touches the database or the request context; callers
pass plain records and get plain records back.
"""


class PricingError(ValueError):
    """Raised when inputs make a price impossible to compute."""


from .rental import (  # noqa: E402
    RentalQuote,
    RentalSummary,
    rental_days,
    rental_total,
    quote_rental,
    validate_rental_dates,
    date_range,
    overlaps,
    late_fee,
    deposit_refund,
    extension_charge,
    summarize_rentals,
)
from .coupons import (  # noqa: E402
    PERCENTAGE,
    FLAT,
    CouponTerms,
    CartLine,
    CouponCheck,
    calculate_discount,
    check_coupon,
    is_currently_valid,
    generate_code,
    validate_terms,
    cart_subtotal,
)
from .cart import CartSettings, CartQuote, quote_cart  # noqa: E402

__all__ = [
    "PricingError",
    "RentalQuote",
    "RentalSummary",
    "rental_days",
    "rental_total",
    "quote_rental",
    "validate_rental_dates",
    "date_range",
    "overlaps",
    "late_fee",
    "deposit_refund",
    "extension_charge",
    "summarize_rentals",
    "PERCENTAGE",
    "FLAT",
    "CouponTerms",
    "CartLine",
    "CouponCheck",
    "calculate_discount",
    "check_coupon",
    "is_currently_valid",
    "generate_code",
    "validate_terms",
    "cart_subtotal",
    "CartSettings",
    "CartQuote",
    "quote_cart",
]
