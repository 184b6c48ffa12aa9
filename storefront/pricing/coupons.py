# storefront/pricing/coupons.py
from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime

from . import PricingError
from ..utils.money import D, Money, ZERO, round_money, format_money

PERCENTAGE = "percentage"
FLAT = "flat"
DISCOUNT_TYPES = (PERCENTAGE, FLAT)

SCOPE_ALL = "all"
SCOPE_CATEGORY = "category"
SCOPE_PRODUCT = "product"
SCOPES = (SCOPE_ALL, SCOPE_CATEGORY, SCOPE_PRODUCT)

CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class CouponTerms:
    code: str
    discount_type: str
    discount_value: Money
    min_order_value: Money | None = None
    max_discount: Money | None = None
    usage_limit: int | None = None
    usage_per_user: int | None = None
    used_count: int = 0
    applicable_to: str = SCOPE_ALL
    category_ids: tuple = field(default_factory=tuple)
    product_ids: tuple = field(default_factory=tuple)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True


@dataclass(frozen=True)
class CartLine:
    product_id: int
    price: Money
    quantity: int = 1
    category_id: int | None = None

    @property
    def line_total(self) -> Money:
        return round_money(D(self.price) * int(self.quantity or 0))


@dataclass(frozen=True)
class CouponCheck:
    valid: bool
    message: str
    discount: Money = ZERO


def cart_subtotal(lines) -> Money:
    return round_money(sum((line.line_total for line in lines), ZERO))


def calculate_discount(terms: CouponTerms, subtotal) -> Money:
    """
    Percentage coupons take value% of the subtotal, capped by max_discount
    when one is set. Flat coupons take their value, capped by the subtotal.
    """
    subtotal = round_money(subtotal)
    if subtotal <= 0:
        return round_money(ZERO)
    value = D(terms.discount_value)
    if terms.discount_type == PERCENTAGE:
        amount = subtotal * value / D(100)
        if terms.max_discount is not None:
            amount = min(amount, D(terms.max_discount))
    elif terms.discount_type == FLAT:
        amount = value
    else:
        return round_money(ZERO)
    return round_money(max(ZERO, min(amount, subtotal)))


def _window_failure(terms: CouponTerms, now: datetime):
    if not terms.is_active:
        return "Coupon is not active"
    if terms.valid_from and now < terms.valid_from:
        return "Coupon is not yet valid"
    if terms.valid_to and now > terms.valid_to:
        return "Coupon has expired"
    if terms.usage_limit is not None and (terms.used_count or 0) >= terms.usage_limit:
        return "Coupon usage limit reached"
    return None


def is_currently_valid(terms: CouponTerms, now: datetime) -> bool:
    return _window_failure(terms, now) is None


def _in_scope(terms: CouponTerms, lines) -> bool:
    if terms.applicable_to == SCOPE_CATEGORY and terms.category_ids:
        wanted = set(terms.category_ids)
        return any(line.category_id in wanted for line in lines)
    if terms.applicable_to == SCOPE_PRODUCT and terms.product_ids:
        wanted = set(terms.product_ids)
        return any(line.product_id in wanted for line in lines)
    return True


def check_coupon(terms: CouponTerms, lines, now: datetime, user_usage_count: int = 0) -> CouponCheck:
    """
    Run every eligibility rule in order and stop at the first failure.
    A passing check carries the discount for the whole cart subtotal.
    """
    failure = _window_failure(terms, now)
    if failure:
        return CouponCheck(False, failure)

    if terms.usage_per_user is not None and user_usage_count >= terms.usage_per_user:
        return CouponCheck(False, "You have already used this coupon maximum times")

    lines = list(lines)
    subtotal = cart_subtotal(lines)
    if terms.min_order_value is not None and subtotal < D(terms.min_order_value):
        return CouponCheck(False, f"Minimum order value of {format_money(terms.min_order_value)} required")

    if not _in_scope(terms, lines):
        return CouponCheck(False, "Coupon not applicable to items in cart")

    return CouponCheck(True, "Coupon is valid", calculate_discount(terms, subtotal))


def generate_code(prefix="COUPON", length=8) -> str:
    length = int(length or 0)
    if length < 1 or length > 32:
        raise PricingError("length must be between 1 and 32")
    prefix = (prefix or "").strip().upper()
    return prefix + "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def validate_terms(discount_type, discount_value, valid_from, valid_to, *,
                   min_order_value=None, max_discount=None,
                   usage_limit=None, usage_per_user=None, applicable_to=SCOPE_ALL):
    if discount_type not in DISCOUNT_TYPES:
        raise PricingError("discount_type must be 'percentage' or 'flat'")
    value = D(discount_value)
    if discount_type == PERCENTAGE:
        if value <= 0 or value > 100:
            raise PricingError("Percentage discount must be between 0 and 100")
    elif value <= 0:
        raise PricingError("Discount value must be greater than 0")

    if not valid_from or not valid_to:
        raise PricingError("valid_from and valid_to are required")
    if valid_from >= valid_to:
        raise PricingError("valid_from must be before valid_to")

    for name, amount in (("min_order_value", min_order_value), ("max_discount", max_discount)):
        if amount is not None and D(amount) < 0:
            raise PricingError(f"{name} cannot be negative")
    for name, count in (("usage_limit", usage_limit), ("usage_per_user", usage_per_user)):
        if count is not None and int(count) < 0:
            raise PricingError(f"{name} cannot be negative")

    if applicable_to not in SCOPES:
        raise PricingError("applicable_to must be 'all', 'category' or 'product'")
