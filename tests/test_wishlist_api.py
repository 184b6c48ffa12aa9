from conftest import days_ahead


def test_add_list_and_remove(client, customer_headers, make_product):
    saree = make_product(name="Banarasi Saree", price="4200")
    kurta = make_product(name="Linen Kurta", price="900")

    resp = client.post("/api/wishlist", headers=customer_headers, json={"product_id": saree})
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()["data"]["product_name"] == "Banarasi Saree"
    client.post("/api/wishlist", headers=customer_headers, json={"product_id": kurta})

    dup = client.post("/api/wishlist", headers=customer_headers, json={"product_id": saree})
    assert dup.status_code == 409
    assert dup.get_json()["message"] == "Product already in wishlist"

    data = client.get("/api/wishlist", headers=customer_headers).get_json()["data"]
    assert data["total"] == 2
    assert [i["product_name"] for i in data["items"]] == ["Linen Kurta", "Banarasi Saree"]

    check = client.get(f"/api/wishlist/check/{saree}", headers=customer_headers).get_json()["data"]
    assert check["in_wishlist"] is True

    assert client.delete(f"/api/wishlist/product/{saree}", headers=customer_headers).status_code == 200
    assert client.get("/api/wishlist/count", headers=customer_headers).get_json()["data"]["count"] == 1

    cleared = client.delete("/api/wishlist", headers=customer_headers).get_json()["data"]
    assert cleared["deleted_count"] == 1


def test_inactive_or_missing_product(client, customer_headers, make_product):
    hidden = make_product(is_active=False)
    resp = client.post("/api/wishlist", headers=customer_headers, json={"product_id": hidden})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Product is not available"
    assert client.post("/api/wishlist", headers=customer_headers, json={"product_id": 999}).status_code == 404


def test_move_to_cart_prices_and_removes(client, customer_headers, make_product):
    pid = make_product(price="1500", stock=3)
    item = client.post("/api/wishlist", headers=customer_headers, json={"product_id": pid}).get_json()["data"]

    resp = client.post(f"/api/wishlist/{item['id']}/move-to-cart", headers=customer_headers, json={"quantity": 2})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["cart"] == {"items": [{"product_id": pid, "quantity": 2}]}
    assert data["quote"]["totals"]["subtotal"] == 3000.0
    assert client.get("/api/wishlist/count", headers=customer_headers).get_json()["data"]["count"] == 0


def test_move_rental_to_cart(client, customer_headers, make_product):
    pid = make_product(rental_rate="450", deposit="2000")
    item = client.post("/api/wishlist", headers=customer_headers, json={"product_id": pid}).get_json()["data"]

    resp = client.post(f"/api/wishlist/{item['id']}/move-to-cart", headers=customer_headers,
                       json={"start_date": days_ahead(1), "end_date": days_ahead(3)})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["quote"]["totals"]["rental_total"] == 900.0
    assert data["quote"]["totals"]["deposit_total"] == 2000.0


def test_move_to_cart_keeps_item_when_out_of_stock(client, customer_headers, make_product):
    pid = make_product(price="1500", stock=1)
    item = client.post("/api/wishlist", headers=customer_headers, json={"product_id": pid}).get_json()["data"]
    resp = client.post(f"/api/wishlist/{item['id']}/move-to-cart", headers=customer_headers, json={"quantity": 4})
    assert resp.status_code == 409
    assert client.get("/api/wishlist/count", headers=customer_headers).get_json()["data"]["count"] == 1


def test_wishlist_needs_login(client):
    assert client.get("/api/wishlist").status_code == 401
