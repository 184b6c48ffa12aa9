# storefront/cli.py
from datetime import timedelta

import click
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import Category, Coupon, Product, User
from .services import coupon_service
from .utils.dates import utcnow
from .utils.money import D, opt_money

SAMPLE_CATEGORIES = [
    ("Sarees", "sarees"),
    ("Lehengas", "lehengas"),
    ("Sherwanis", "sherwanis"),
]

# name, sku, category slug, price, rental rate/day, deposit, stock
SAMPLE_PRODUCTS = [
    ("Banarasi Silk Saree", "SAR-001", "sarees", "4999", None, None, 12),
    ("Kanjivaram Bridal Saree", "SAR-002", "sarees", "18999", "899", "5000", 3),
    ("Embroidered Bridal Lehenga", "LEH-001", "lehengas", "34999", "1499", "8000", 2),
    ("Georgette Party Lehenga", "LEH-002", "lehengas", "7999", "499", "2000", 6),
    ("Ivory Wedding Sherwani", "SHR-001", "sherwanis", "21999", "999", "4000", 4),
    ("Cotton Kurta Set", "SHR-002", "sherwanis", "1799", None, None, 25),
]


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise click.ClickException("Email already exists")
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u)
    db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("seed-catalog")
@click.option("--with-coupon/--no-coupon", default=True, help="Also create a WELCOME10 coupon.")
def seed_catalog(with_coupon):
    """Insert sample categories and products (sale and rental)."""
    cats = {}
    for name, slug in SAMPLE_CATEGORIES:
        c = Category.query.filter_by(slug=slug).first()
        if not c:
            c = Category(name=name, slug=slug)
            db.session.add(c)
        cats[slug] = c
    db.session.flush()

    created = 0
    for name, sku, cat_slug, price, rate, deposit, stock in SAMPLE_PRODUCTS:
        if Product.query.filter_by(sku=sku).first():
            continue
        db.session.add(Product(
            name=name,
            slug=f"{sku.lower()}-{name.lower().replace(' ', '-')}",
            sku=sku,
            price=D(price),
            is_rental=rate is not None,
            rental_price_per_day=opt_money(rate),
            security_deposit=opt_money(deposit),
            stock_quantity=stock,
            category_id=cats[cat_slug].id,
        ))
        created += 1

    if with_coupon and not Coupon.query.filter_by(code="WELCOME10").first():
        now = utcnow()
        db.session.add(Coupon(
            code="WELCOME10",
            description="10% off your first order",
            discount_type="percentage",
            discount_value=D("10"),
            max_discount=D("500"),
            usage_per_user=1,
            applicable_to="all",
            valid_from=now,
            valid_to=now + timedelta(days=90),
            is_active=True,
        ))

    db.session.commit()
    click.echo(f"Seeded {created} product(s)")


@click.command("generate-coupon-code")
@click.option("--prefix", default=None)
@click.option("--length", default=None, type=int)
def generate_coupon_code(prefix, length):
    click.echo(coupon_service.new_code(prefix=prefix, length=length))


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(seed_catalog)
    app.cli.add_command(generate_coupon_code)
