# storefront/utils/dates.py
from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def parse_iso8601(s) -> datetime | None:
    if not s:
        return None
    if isinstance(s, datetime):
        return s.astimezone(timezone.utc).replace(tzinfo=None) if s.tzinfo else s
    s = str(s).strip()
    # support trailing 'Z' (UTC)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_date(s) -> date | None:
    """Accepts YYYY-MM-DD or a full ISO timestamp; returns the calendar day."""
    if not s:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    s = str(s).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def iso(v):
    return v.isoformat() if v else None
