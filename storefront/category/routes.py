# --- category/routes.py ---
import re

from flask import request
from sqlalchemy import desc

from . import bp
from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..model import Category, Product
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.params import paginate


def slugify(text):
    text = text.strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def _get(cid) -> Category:
    c = db.session.get(Category, cid)
    if not c:
        raise NotFound("Category not found")
    return c


def _ensure_unique(name, slug, exclude_id=None):
    q = Category.query.filter((Category.name.ilike(name)) | (Category.slug == slug))
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise Conflict("category name already exists")


# ------------------------ CATEGORY ROUTES ------------------------

@bp.post("")
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name required")
    slug = slugify(data.get("slug") or name)
    _ensure_unique(name, slug)
    c = Category(name=name, slug=slug, description=data.get("description"))
    db.session.add(c)
    db.session.commit()
    return ok("Category created", {"category": c.as_dict()}, 201)


@bp.get("")
def list_categories():
    """
    q        -> substring match on name
    sort     -> name, -name, id, -id
    page     -> default 1
    per_page -> default 10 (cap 100)
    """
    q = (request.args.get("q") or "").strip()
    sort = (request.args.get("sort") or "name").strip()

    qry = Category.query
    if q:
        qry = qry.filter(Category.name.ilike(f"%{q}%"))

    sort_map = {
        "id": Category.id,
        "-id": desc(Category.id),
        "name": Category.name,
        "-name": desc(Category.name),
    }
    qry = qry.order_by(sort_map.get(sort, Category.name))
    page_data = paginate(qry, request.args.get("page"), request.args.get("per_page"), default_per_page=10)

    return ok("Categories fetched", {
        "meta": page_data["meta"],
        "categories": [c.as_dict() for c in page_data["items"]],
    })


@bp.get("/<int:cid>")
def get_category(cid):
    return ok("Category fetched", {"category": _get(cid).as_dict()})


@bp.put("/<int:cid>")
@admin_required
def update_category(cid):
    c = _get(cid)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        new_name = (data.get("name") or "").strip()
        if not new_name:
            raise ValidationError("name cannot be empty")
        new_slug = slugify(data.get("slug") or new_name)
        _ensure_unique(new_name, new_slug, exclude_id=c.id)
        c.name, c.slug = new_name, new_slug
    if "description" in data:
        c.description = data.get("description")
    db.session.commit()
    return ok("Category updated", {"category": c.as_dict()})


@bp.delete("/<int:cid>")
@admin_required
def delete_category(cid):
    c = _get(cid)
    if Product.query.filter_by(category_id=cid).first():
        raise Conflict("cannot delete: category has products")
    db.session.delete(c)
    db.session.commit()
    return ok("deleted", {"id": cid})
