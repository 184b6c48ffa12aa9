# storefront/pricing/rental.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from . import PricingError
from ..utils.money import D, Money, ZERO, round_money

SECONDS_PER_DAY = 24 * 60 * 60

DEFAULT_LATE_FEE_RATE = Decimal("0.5")

DEPOSIT_REFUNDED = "refunded"
DEPOSIT_PARTIALLY_REFUNDED = "partially_refunded"


@dataclass(frozen=True)
class RentalQuote:
    daily_rate: Money
    security_deposit: Money
    start: date
    end: date
    duration: int
    rental_total: Money
    total_amount: Money

    def as_api(self):
        return {
            "daily_rate": float(self.daily_rate),
            "security_deposit": float(self.security_deposit),
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
            "duration": self.duration,
            "rental_total": float(self.rental_total),
            "total_amount": float(self.total_amount),
        }


@dataclass(frozen=True)
class RentalSummary:
    total_items: int
    total_rental_amount: Money
    total_deposit: Money
    total_amount: Money


def _as_datetime(d) -> datetime:
    if isinstance(d, datetime):
        return d.replace(tzinfo=None) if d.tzinfo else d
    if isinstance(d, date):
        return datetime(d.year, d.month, d.day)
    raise PricingError(f"not a date: {d!r}")


def rental_days(start, end) -> int:
    """
    Whole days between start and end, rounded up. A partial day counts as a
    full rental day. End must be strictly after start.
    """
    if start is None or end is None:
        raise PricingError("start and end dates are required")
    s, e = _as_datetime(start), _as_datetime(end)
    if e <= s:
        raise PricingError("End date must be after start date")
    days = math.ceil((e - s).total_seconds() / SECONDS_PER_DAY)
    return max(days, 1)


def rental_total(daily_rate, days: int) -> Money:
    if days <= 0:
        return ZERO
    return round_money(D(daily_rate) * days)


def quote_rental(daily_rate, security_deposit, start, end) -> RentalQuote:
    rate = round_money(daily_rate)
    deposit = round_money(security_deposit)
    if rate < 0 or deposit < 0:
        raise PricingError("rental rate and deposit cannot be negative")
    days = rental_days(start, end)
    subtotal = rental_total(rate, days)
    return RentalQuote(
        daily_rate=rate,
        security_deposit=deposit,
        start=start,
        end=end,
        duration=days,
        rental_total=subtotal,
        total_amount=round_money(subtotal + deposit),
    )


def date_range(start: date, end: date) -> list[date]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def validate_rental_dates(start, end, today: date, *, min_days=1, max_days=30, unavailable=()):
    """Return an error message, or None when the range can be booked."""
    if not start or not end:
        return "Please select both start and end dates"
    if _as_datetime(start).date() < today:
        return "Start date cannot be in the past"
    if _as_datetime(end) <= _as_datetime(start):
        return "End date must be after start date"

    days = rental_days(start, end)
    if days < min_days:
        return f"Minimum rental period is {min_days} day(s)"
    if days > max_days:
        return f"Maximum rental period is {max_days} days"

    blocked = {d if isinstance(d, date) else date.fromisoformat(str(d)) for d in unavailable or ()}
    if blocked:
        for d in date_range(_as_datetime(start).date(), _as_datetime(end).date()):
            if d in blocked:
                return "Selected dates include unavailable periods"
    return None


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    # closed intervals: a booking ending on the day another starts still clashes
    return a_start <= b_end and b_start <= a_end


def late_fee(daily_rate, end, returned_on, rate=DEFAULT_LATE_FEE_RATE) -> Money:
    if returned_on is None or _as_datetime(returned_on) <= _as_datetime(end):
        return ZERO
    days_late = rental_days(end, returned_on)
    return round_money(D(daily_rate) * D(rate) * days_late)


def deposit_refund(security_deposit, fee=ZERO, damage_charges=ZERO) -> tuple[Money, str]:
    fee, damage = round_money(fee), round_money(damage_charges)
    refund = round_money(max(D(security_deposit) - fee - damage, ZERO))
    status = DEPOSIT_PARTIALLY_REFUNDED if (fee > 0 or damage > 0) else DEPOSIT_REFUNDED
    return refund, status


def extension_charge(daily_rate, current_end, new_end) -> tuple[int, Money]:
    if _as_datetime(new_end) <= _as_datetime(current_end):
        raise PricingError("New end date must be after current end date")
    extra = rental_days(current_end, new_end)
    return extra, rental_total(daily_rate, extra)


def summarize_rentals(quotes) -> RentalSummary:
    quotes = list(quotes)
    rent = round_money(sum((q.rental_total for q in quotes), ZERO))
    deposit = round_money(sum((q.security_deposit for q in quotes), ZERO))
    return RentalSummary(
        total_items=len(quotes),
        total_rental_amount=rent,
        total_deposit=deposit,
        total_amount=round_money(rent + deposit),
    )
