from datetime import date, datetime
from decimal import Decimal

import pytest

from storefront.pricing import (
    PricingError, deposit_refund, extension_charge, late_fee, overlaps,
    quote_rental, rental_days, summarize_rentals, validate_rental_dates,
)


def test_seven_day_rental_quote():
    q = quote_rental("499", "2000", date(2025, 3, 1), date(2025, 3, 8))
    assert q.duration == 7
    assert q.rental_total == Decimal("3493.00")
    assert q.total_amount == Decimal("5493.00")


def test_partial_day_rounds_up():
    assert rental_days(datetime(2025, 3, 1, 10), datetime(2025, 3, 2, 11)) == 2
    assert rental_days(datetime(2025, 3, 1, 10), datetime(2025, 3, 1, 12)) == 1


@pytest.mark.parametrize("start,end", [
    (date(2025, 3, 1), date(2025, 3, 1)),
    (date(2025, 3, 5), date(2025, 3, 1)),
])
def test_end_must_follow_start(start, end):
    with pytest.raises(PricingError):
        rental_days(start, end)


def test_total_is_rent_plus_deposit_for_many_ranges():
    for days in range(1, 31):
        q = quote_rental("349.50", "1500", date(2025, 1, 1), date(2025, 1, 1 + days))
        assert q.duration == days
        assert q.rental_total == Decimal("349.50") * days
        assert q.total_amount == q.rental_total + q.security_deposit


def test_validate_dates_messages():
    today = date(2025, 5, 10)
    assert validate_rental_dates(None, date(2025, 5, 12), today) == "Please select both start and end dates"
    assert validate_rental_dates(date(2025, 5, 9), date(2025, 5, 12), today) == "Start date cannot be in the past"
    assert validate_rental_dates(date(2025, 5, 12), date(2025, 5, 12), today) == "End date must be after start date"
    assert validate_rental_dates(date(2025, 5, 10), date(2025, 5, 12), today, min_days=3) == \
        "Minimum rental period is 3 day(s)"
    assert validate_rental_dates(date(2025, 5, 10), date(2025, 6, 20), today) == "Maximum rental period is 30 days"
    assert validate_rental_dates(date(2025, 5, 10), date(2025, 5, 12), today) is None


def test_validate_dates_blocks_unavailable_days():
    msg = validate_rental_dates(date(2025, 5, 10), date(2025, 5, 14), date(2025, 5, 1),
                                unavailable=[date(2025, 5, 12)])
    assert msg == "Selected dates include unavailable periods"


def test_overlap_is_inclusive():
    assert overlaps(date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 5), date(2025, 1, 9))
    assert not overlaps(date(2025, 1, 1), date(2025, 1, 4), date(2025, 1, 5), date(2025, 1, 9))


def test_late_fee_is_half_rate_per_day_late():
    assert late_fee("500", date(2025, 1, 10), date(2025, 1, 10)) == 0
    assert late_fee("500", date(2025, 1, 10), date(2025, 1, 13)) == Decimal("750.00")


def test_deposit_refund():
    assert deposit_refund("2000") == (Decimal("2000.00"), "refunded")
    assert deposit_refund("2000", "750", "300") == (Decimal("950.00"), "partially_refunded")
    assert deposit_refund("2000", "1500", "900") == (Decimal("0.00"), "partially_refunded")


def test_extension_charge():
    assert extension_charge("499", date(2025, 1, 10), date(2025, 1, 13)) == (3, Decimal("1497.00"))
    with pytest.raises(PricingError, match="New end date must be after current end date"):
        extension_charge("499", date(2025, 1, 10), date(2025, 1, 10))


def test_summarize_rentals():
    quotes = [
        quote_rental("499", "2000", date(2025, 3, 1), date(2025, 3, 8)),
        quote_rental("100", "500", date(2025, 3, 1), date(2025, 3, 3)),
    ]
    s = summarize_rentals(quotes)
    assert s.total_items == 2
    assert s.total_rental_amount == Decimal("3693.00")
    assert s.total_deposit == Decimal("2500.00")
    assert s.total_amount == Decimal("6193.00")
