# storefront/utils/params.py
from ..errors import ValidationError
from .dates import parse_date, parse_iso8601
from .money import D


def parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        # spreadsheet columns come back as 1.0 / 0.0
        return bool(v)
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def parse_opt_int(v):
    if v is None: return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}: return None
    try: return int(v)
    except (TypeError, ValueError): return None


def parse_opt_float(v):
    if v is None: return None
    if isinstance(v, str) and v.strip() == "": return None
    try: return float(v)
    except (TypeError, ValueError): return None


def money_field(data: dict, name, *, required=False):
    v = data.get(name)
    if v is None or v == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        return D(v)
    except ValueError:
        raise ValidationError(f"{name} must be numeric")


def int_field(data: dict, name, *, required=False, minimum=None):
    v = data.get(name)
    if v is None or v == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        n = int(v)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and n < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return n


def datetime_field(data: dict, name, *, required=False):
    raw = data.get(name)
    if not raw:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    dt = parse_iso8601(raw)
    if not dt:
        raise ValidationError(f"Invalid datetime format for {name}")
    return dt


def date_field(data: dict, name, *, required=False):
    raw = data.get(name)
    if not raw:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    d = parse_date(raw)
    if not d:
        raise ValidationError(f"Invalid date format for {name}; use YYYY-MM-DD")
    return d


def id_list(v, name):
    if v is None:
        return []
    if isinstance(v, str):
        v = [x for x in v.split(",") if x.strip()]
    if not isinstance(v, (list, tuple)):
        raise ValidationError(f"{name} must be a list of ids")
    try:
        return sorted({int(x) for x in v})
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a list of ids")


def paginate(query, page, per_page, default_per_page=20):
    page = max(parse_int(page, 1), 1)
    per_page = min(max(parse_int(per_page, default_per_page), 1), 100)
    items = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        "meta": {
            "page": items.page,
            "pages": items.pages or 1,
            "per_page": per_page,
            "total": items.total,
        },
        "items": items.items,
    }
