# storefront/pricing/cart.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..utils.money import D, Money, ZERO, round_money, round_rupee
from .coupons import cart_subtotal
from .rental import summarize_rentals


@dataclass(frozen=True)
class CartSettings:
    tax_rate: Money = Decimal("0.18")
    free_shipping_threshold: Money = Decimal("2000")
    shipping_fee: Money = Decimal("100")

    @classmethod
    def from_config(cls, config):
        return cls(
            tax_rate=D(config.get("TAX_RATE", cls.tax_rate)),
            free_shipping_threshold=D(config.get("FREE_SHIPPING_THRESHOLD", cls.free_shipping_threshold)),
            shipping_fee=D(config.get("SHIPPING_FEE", cls.shipping_fee)),
        )


@dataclass(frozen=True)
class CartQuote:
    purchase_subtotal: Money
    rental_total: Money
    deposit_total: Money
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money
    lines: list = field(default_factory=list)
    rentals: list = field(default_factory=list)
    coupon_code: str | None = None

    def as_api(self):
        return {
            "items": [
                {
                    "product_id": line.product_id,
                    "price": float(round_money(line.price)),
                    "quantity": line.quantity,
                    "line_total": float(line.line_total),
                }
                for line in self.lines
            ],
            "rentals": [q.as_api() for q in self.rentals],
            "totals": {
                "purchase_subtotal": float(self.purchase_subtotal),
                "rental_total": float(self.rental_total),
                "deposit_total": float(self.deposit_total),
                "subtotal": float(self.subtotal),
                "discount": float(self.discount),
                "tax": float(self.tax),
                "shipping": float(self.shipping),
                "total": float(self.total),
            },
            "coupon_code": self.coupon_code,
        }


def quote_cart(lines, rentals, coupon_discount=ZERO, settings: CartSettings | None = None,
               coupon_code=None) -> CartQuote:
    """
    Order of operations:
      1) purchase lines (price x qty)
      2) rental charges; deposits are held aside
      3) coupon discount on the merchandise subtotal, never above it
      4) GST on the pre-discount subtotal, rounded to whole rupees
      5) flat shipping unless the subtotal clears the free-shipping bar
         or nothing ships
      6) deposits added last, untouched by discount and tax
    """
    settings = settings or CartSettings()
    lines, rentals = list(lines), list(rentals)

    purchase = cart_subtotal(lines)
    summary = summarize_rentals(rentals)
    subtotal = round_money(purchase + summary.total_rental_amount)

    discount = round_money(min(max(D(coupon_discount), ZERO), subtotal))
    tax = round_rupee(subtotal * D(settings.tax_rate))

    if not lines or subtotal > D(settings.free_shipping_threshold):
        shipping = round_money(ZERO)
    else:
        shipping = round_money(settings.shipping_fee)

    total = round_money(subtotal - discount + tax + shipping + summary.total_deposit)

    return CartQuote(
        purchase_subtotal=purchase,
        rental_total=summary.total_rental_amount,
        deposit_total=summary.total_deposit,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=total,
        lines=lines,
        rentals=rentals,
        coupon_code=coupon_code,
    )
