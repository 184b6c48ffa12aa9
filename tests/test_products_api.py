from io import BytesIO

import pandas as pd

from storefront.utils.params import parse_bool


def _create(client, headers, **kw):
    body = {"name": "Chanderi Saree", "sku": "CH-1", "price": 2499}
    body.update(kw)
    return client.post("/api/products", headers=headers, json=body)


def test_create_and_fetch_by_slug(client, admin_headers, make_category):
    cat = make_category("Sarees")
    resp = _create(client, admin_headers, category_id=cat, is_rental=True,
                   rental_price_per_day=299, security_deposit=1500)
    assert resp.status_code == 201, resp.get_json()
    product = resp.get_json()["data"]
    assert product["slug"] == "chanderi-saree"
    assert product["category"]["name"] == "Sarees"

    fetched = client.get("/api/products/slug/chanderi-saree").get_json()["data"]
    assert fetched["id"] == product["id"]
    assert fetched["rental_price_per_day"] == 299.0


def test_create_validation(client, admin_headers, customer_headers):
    assert _create(client, customer_headers).status_code == 403
    assert _create(client, admin_headers, price=-5).status_code == 400
    resp = _create(client, admin_headers, is_rental=True)
    assert resp.get_json()["message"] == "rental_price_per_day is required for rental products"
    assert _create(client, admin_headers).status_code == 201
    assert _create(client, admin_headers, name="Other").status_code == 409


def test_list_filters(client, make_product):
    make_product(name="Kurta", price="800")
    make_product(name="Lehenga", price="9000", rental_rate="700", deposit="3000")
    make_product(name="Hidden", price="100", is_active=False)

    data = client.get("/api/products?is_rental=true").get_json()["data"]
    assert [p["name"] for p in data["items"]] == ["Lehenga"]

    data = client.get("/api/products?max_price=1000&sort=price").get_json()["data"]
    assert [p["name"] for p in data["items"]] == ["Kurta"]
    assert data["meta"]["total"] == 1


def test_soft_delete(client, admin_headers, make_product):
    pid = make_product(name="Dupatta")
    assert client.delete(f"/api/products/{pid}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/{pid}").get_json()["data"]["is_active"] is False
    assert client.get("/api/products").get_json()["data"]["meta"]["total"] == 0


def test_export_then_import_updates_by_sku(client, admin_headers, make_product):
    make_product(name="Sherwani", price="15000", stock=2)

    resp = client.get("/api/products/export", headers=admin_headers)
    assert resp.status_code == 200
    df = pd.read_excel(BytesIO(resp.data))
    assert list(df["SKU"]) == ["SKU-001"]

    df.loc[0, "Stock Quantity"] = 9
    new_row = pd.DataFrame([{"Name": "Nehru Jacket", "SKU": "NJ-1", "Price": 2200, "Stock Quantity": 5}])
    df = pd.concat([df, new_row], ignore_index=True)
    buf = BytesIO()
    df.to_excel(buf, index=False)
    buf.seek(0)

    resp = client.post("/api/products/import", headers=admin_headers,
                       data={"file": (buf, "products.xlsx")}, content_type="multipart/form-data")
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()["data"] == {"created": 1, "updated": 1}

    items = {p["sku"]: p for p in client.get("/api/products").get_json()["data"]["items"]}
    assert items["SKU-001"]["stock_quantity"] == 9
    # the blank cells of the new row turn the flag columns into 1.0 / 0.0
    assert items["SKU-001"]["is_active"] is True
    assert items["SKU-001"]["is_rental"] is False
    assert items["NJ-1"]["slug"] == "nehru-jacket"


def test_categories(client, admin_headers, make_product):
    resp = client.post("/api/categories", headers=admin_headers, json={"name": "Bridal Wear"})
    assert resp.status_code == 201
    cid = resp.get_json()["data"]["category"]["id"]
    assert resp.get_json()["data"]["category"]["slug"] == "bridal-wear"

    assert client.post("/api/categories", headers=admin_headers, json={"name": "bridal wear"}).status_code == 409

    make_product(category_id=cid)
    assert client.delete(f"/api/categories/{cid}", headers=admin_headers).status_code == 409

    listing = client.get("/api/categories?q=bridal").get_json()["data"]
    assert listing["meta"]["total"] == 1


def test_flags_read_back_from_spreadsheet_numbers():
    assert parse_bool(1.0) is True
    assert parse_bool(0.0) is False
    assert parse_bool(1) is True
    assert parse_bool("yes") is True
