from conftest import ADDRESS, bearer, register


def _review(client, headers, pid, rating, **kw):
    resp = client.post("/api/reviews", headers=headers, json={"product_id": pid, "rating": rating, **kw})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_reviews_count_only_after_approval(client, admin_headers, customer_headers, make_product):
    pid = make_product(name="Anarkali Suit")
    other = bearer(register(client, "ravi@example.com", name="Ravi")["token"])

    first = _review(client, customer_headers, pid, 5, title="Stunning", comment="Perfect fit")
    second = _review(client, other, pid, 2)
    assert first["is_approved"] is False

    listing = client.get(f"/api/reviews/product/{pid}").get_json()["data"]
    assert listing["meta"]["total"] == 0
    assert client.get(f"/api/products/{pid}").get_json()["data"]["review_count"] == 0

    for rid in (first["id"], second["id"]):
        resp = client.put(f"/api/reviews/admin/{rid}/moderate", headers=admin_headers, json={"is_approved": True})
        assert resp.status_code == 200

    product = client.get(f"/api/products/{pid}").get_json()["data"]
    assert product["review_count"] == 2
    assert product["average_rating"] == 3.5

    stats = client.get(f"/api/reviews/product/{pid}/stats").get_json()["data"]
    assert stats["rating_distribution"]["5"] == 1
    assert stats["rating_distribution"]["2"] == 1

    ordered = client.get(f"/api/reviews/product/{pid}?sort=rating_low").get_json()["data"]
    assert [r["rating"] for r in ordered["reviews"]] == [2, 5]

    # editing sends the review back to moderation
    client.put(f"/api/reviews/{second['id']}", headers=other, json={"rating": 3})
    product = client.get(f"/api/products/{pid}").get_json()["data"]
    assert product["review_count"] == 1
    assert product["average_rating"] == 5.0


def test_review_rules(client, customer_headers, make_product):
    pid = make_product()
    bad = client.post("/api/reviews", headers=customer_headers, json={"product_id": pid, "rating": 6})
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "Rating must be between 1 and 5"

    _review(client, customer_headers, pid, 4)
    dup = client.post("/api/reviews", headers=customer_headers, json={"product_id": pid, "rating": 3})
    assert dup.status_code == 409
    assert dup.get_json()["message"] == "You have already reviewed this product"

    mine = client.get(f"/api/reviews/my-review/{pid}", headers=customer_headers).get_json()["data"]
    assert mine["rating"] == 4


def test_verified_purchase_needs_delivered_order(client, admin_headers, customer_headers, make_product):
    pid = make_product(price="1800", stock=2)
    order = client.post("/api/orders", headers=customer_headers, json={
        "items": [{"product_id": pid, "quantity": 1}], "shipping_address": ADDRESS,
    }).get_json()["data"]
    client.put(f"/api/orders/{order['id']}/status", headers=admin_headers, json={"status": "delivered"})

    review = _review(client, customer_headers, pid, 5, order_id=order["id"])
    assert review["is_verified_purchase"] is True


def test_helpful_votes_flip(client, customer_headers, make_product):
    pid = make_product()
    review = _review(client, customer_headers, pid, 4)
    voter = bearer(register(client, "meera@example.com", name="Meera")["token"])

    up = client.post(f"/api/reviews/{review['id']}/helpful", headers=voter, json={"is_helpful": True})
    assert up.get_json()["data"]["helpful_count"] == 1
    down = client.post(f"/api/reviews/{review['id']}/helpful", headers=voter, json={"is_helpful": False})
    assert down.get_json()["data"]["helpful_count"] == -1


def test_only_author_or_admin_deletes(client, admin_headers, customer_headers, make_product):
    pid = make_product()
    review = _review(client, customer_headers, pid, 4)
    stranger = bearer(register(client, "kiran@example.com", name="Kiran")["token"])
    assert client.delete(f"/api/reviews/{review['id']}", headers=stranger).status_code == 403
    assert client.delete(f"/api/reviews/{review['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/reviews/{review['id']}").status_code == 404
