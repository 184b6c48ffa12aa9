import logging
import re
from io import BytesIO

import pandas as pd
from flask import request, send_file, url_for
from sqlalchemy import asc, desc, or_
from sqlalchemy.exc import IntegrityError

from . import bp
from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..model import Category, Product
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.money import D, round_money
from ..utils.params import parse_bool, parse_opt_float, parse_opt_int, paginate

logger = logging.getLogger(__name__)

# spreadsheet column -> Product attribute
EXPORT_COLUMNS = {
    "Name": "name",
    "Slug": "slug",
    "SKU": "sku",
    "Description": "description",
    "MRP": "mrp",
    "Price": "price",
    "Is Rental": "is_rental",
    "Rental Price Per Day": "rental_price_per_day",
    "Security Deposit": "security_deposit",
    "Stock Quantity": "stock_quantity",
    "Is Active": "is_active",
    "Is Featured": "is_featured",
    "Category ID": "category_id",
}
REQUIRED_IMPORT_COLUMNS = ("Name", "SKU", "Price")

MONEY_FIELDS = ("mrp", "price", "rental_price_per_day", "security_deposit")
BOOL_FIELDS = ("is_rental", "is_active", "is_featured")


# ---------- helpers ----------
def slugify(text):
    text = str(text).strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def _get(pid) -> Product:
    p = db.session.get(Product, pid)
    if not p:
        raise NotFound("Product not found")
    return p


def _sort_products(query, sort):
    sort = (sort or "").strip()
    mapping = {
        "id": asc(Product.id), "-id": desc(Product.id),
        "name": asc(Product.name), "-name": desc(Product.name),
        "price": asc(Product.price), "-price": desc(Product.price),
        "rental_price": asc(Product.rental_price_per_day), "-rental_price": desc(Product.rental_price_per_day),
        "stock": asc(Product.stock_quantity), "-stock": desc(Product.stock_quantity),
    }
    col = mapping.get(sort, desc(Product.id))  # default newest first (id desc)
    return query.order_by(col)


def _money(value, field):
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    try:
        amount = D(value)
    except ValueError:
        raise ValidationError(f"Invalid value for {field}")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return round_money(amount)


def _assign(product: Product, data: dict):
    for field in ("name", "sku", "description"):
        if field in data and data[field] is not None:
            setattr(product, field, str(data[field]).strip())
    if "slug" in data and data["slug"]:
        product.slug = slugify(data["slug"])
    for field in MONEY_FIELDS:
        if field in data:
            setattr(product, field, _money(data[field], field))
    for field in BOOL_FIELDS:
        if field in data:
            setattr(product, field, parse_bool(data[field]))
    if "stock_quantity" in data:
        qty = parse_opt_int(data["stock_quantity"])
        if qty is None or qty < 0:
            raise ValidationError("stock_quantity must be a non-negative integer")
        product.stock_quantity = qty

    # --- category update: normalize, validate, assign ---
    if "category_id" in data:
        cid = parse_opt_int(data.get("category_id"))
        if cid is not None and not db.session.get(Category, cid):
            raise NotFound(f"Category {cid} not found")
        product.category_id = cid


def _check_product(product: Product):
    if not product.name:
        raise ValidationError("name is required")
    if not product.sku:
        raise ValidationError("sku is required")
    if product.price is None:
        raise ValidationError("price is required")
    if product.is_rental and not product.rental_price_per_day:
        raise ValidationError("rental_price_per_day is required for rental products")
    if not product.slug:
        product.slug = slugify(product.name)


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Duplicate slug or sku")


# ---------- routes ----------
# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      q            -> substring match on name/sku
      category_id  -> int
      is_rental    -> bool
      min_price    -> float
      max_price    -> float
      in_stock     -> bool (True = stock > 0, False = stock <= 0)
      featured     -> bool
      sort         -> id, -id, name, -name, price, -price, rental_price, -rental_price, stock, -stock
      page         -> int, default 1
      per_page     -> int, default 15 (cap 100)
    """
    args = request.args
    q = (args.get("q") or "").strip()
    category_id = parse_opt_int(args.get("category_id"))
    min_price = parse_opt_float(args.get("min_price"))
    max_price = parse_opt_float(args.get("max_price"))

    query = Product.query.filter(Product.is_active.is_(True))

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if args.get("is_rental") is not None:
        query = query.filter(Product.is_rental.is_(parse_bool(args.get("is_rental"))))
    if args.get("featured") is not None:
        query = query.filter(Product.is_featured.is_(parse_bool(args.get("featured"))))
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if args.get("in_stock") is not None:
        if parse_bool(args.get("in_stock")):
            query = query.filter(Product.stock_quantity > 0)
        else:
            query = query.filter(Product.stock_quantity <= 0)

    query = _sort_products(query, args.get("sort"))
    page = paginate(query, args.get("page"), args.get("per_page"), default_per_page=15)
    return ok("Products fetched", {"items": [p.as_api() for p in page["items"]], "meta": page["meta"]})


# GET /api/products/<id>
@bp.get("/<int:pid>")
def get_product(pid):
    return ok("Product fetched", _get(pid).as_api())


@bp.get("/slug/<slug>")
def get_product_by_slug(slug):
    p = Product.query.filter_by(slug=slug, is_active=True).first()
    if not p:
        raise NotFound("Product not found")
    return ok("Product fetched", p.as_api())


# POST /api/products
@bp.post("")
@admin_required
def create_product():
    data = request.get_json(silent=True) or {}
    product = Product(stock_quantity=0, is_active=True, is_featured=False, is_rental=False)
    _assign(product, data)
    _check_product(product)
    db.session.add(product)
    _commit_unique()
    logger.info("product created id=%s sku=%s", product.id, product.sku)

    resp = ok("Product created", product.as_api(), 201)
    resp.headers["Location"] = url_for("product.get_product", pid=product.id, _external=True)
    return resp


# PUT /api/products/<id>
@bp.put("/<int:pid>")
@admin_required
def update_product(pid):
    product = _get(pid)
    data = request.get_json(silent=True) or {}
    with db.session.no_autoflush:
        _assign(product, data)
        _check_product(product)
    _commit_unique()
    return ok("Product updated", product.as_api())


# DELETE /api/products/<id>
@bp.delete("/<int:pid>")
@admin_required
def delete_product(pid):
    product = _get(pid)
    # order history keeps pointing at the row
    product.is_active = False
    db.session.commit()
    logger.info("product deactivated id=%s", pid)
    return ok(f"Product {pid} deleted", {"id": pid})


@bp.get("/export")
@admin_required
def export_products():
    """
    Export all products as an Excel file.
    """
    rows = [
        {col: getattr(p, attr) for col, attr in EXPORT_COLUMNS.items()}
        for p in Product.query.order_by(Product.id.asc()).all()
    ]
    df = pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
    for col in ("MRP", "Price", "Rental Price Per Day", "Security Deposit"):
        df[col] = df[col].map(lambda v: float(v) if v is not None else None)

    output = BytesIO()
    df.to_excel(output, index=False)
    output.seek(0)

    return send_file(
        output,
        as_attachment=True,
        download_name="products_export.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def _row_value(v):
    if pd.isnull(v):
        return None
    if hasattr(v, "item"):  # numpy scalar
        return v.item()
    return v


@bp.post("/import")
@admin_required
def import_products():
    """
    Import products from an uploaded .xlsx file. Rows are matched on SKU:
    an existing SKU is updated, a new one is created.
    """
    if "file" not in request.files:
        raise ValidationError("No file part")
    file = request.files["file"]
    if file.filename == "":
        raise ValidationError("No selected file")
    if not file.filename.lower().endswith(".xlsx"):
        raise ValidationError("Only .xlsx files are allowed")

    try:
        df = pd.read_excel(file)
    except ValueError as e:
        raise ValidationError(f"Could not read spreadsheet: {e}")

    missing = [c for c in REQUIRED_IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError("Missing required columns in the uploaded file", error={"missing": missing})

    created = updated = 0
    try:
        for idx, row in df.iterrows():
            data = {attr: _row_value(row[col]) for col, attr in EXPORT_COLUMNS.items() if col in df.columns}
            sku = str(data.get("sku") or "").strip()
            if not sku:
                raise ValidationError(f"Row {idx + 2}: SKU is required")
            product = Product.query.filter_by(sku=sku).first()
            is_new = product is None
            if is_new:
                product = Product(stock_quantity=0, is_active=True, is_featured=False, is_rental=False)
            with db.session.no_autoflush:
                _assign(product, {k: v for k, v in data.items() if v is not None})
                _check_product(product)
            if is_new:
                db.session.add(product)
                created += 1
            else:
                updated += 1
            db.session.flush()
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Duplicate slug or sku in the uploaded file")
    except Exception:
        db.session.rollback()
        raise

    logger.info("products imported created=%s updated=%s", created, updated)
    return ok("Products imported successfully", {"created": created, "updated": updated})
