# storefront/utils/money.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

Money = Decimal

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    try:
        d = Decimal(str(x or "0"))
    except InvalidOperation:
        raise ValueError(f"invalid amount: {x!r}")
    if not d.is_finite():
        raise ValueError(f"invalid amount: {x!r}")
    return d


def round_money(x) -> Money:
    return D(x).quantize(CENTS, rounding=ROUND_HALF_UP)


def round_rupee(x) -> Money:
    """Round to whole currency units, half up, kept at two decimals."""
    return D(x).quantize(Decimal("1"), rounding=ROUND_HALF_UP).quantize(CENTS)


def opt_money(x):
    return None if x is None else round_money(x)


def to_float(x):
    return None if x is None else float(round_money(x))


def format_money(x, symbol="₹") -> str:
    return f"{symbol}{round_money(x):,.2f}"
