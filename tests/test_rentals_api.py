from sqlalchemy.orm import Query

from conftest import ADDRESS, days_ahead, register, bearer
from storefront.model import Product


def test_quote_matches_catalogue_rate(client, make_product):
    pid = make_product(name="Bridal Lehenga", rental_rate="499", deposit="2000")
    resp = client.post("/api/rentals/quote", json={
        "product_id": pid, "start_date": days_ahead(2), "end_date": days_ahead(9),
    })
    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["duration"] == 7
    assert data["rental_total"] == 3493.0
    assert data["total_amount"] == 5493.0
    assert data["available"] is True


def test_quote_rejects_sale_only_product(client, make_product):
    pid = make_product()
    resp = client.post("/api/rentals/quote", json={
        "product_id": pid, "start_date": days_ahead(1), "end_date": days_ahead(3),
    })
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Product is not available for rental"


def test_quote_rejects_past_start(client, make_product):
    pid = make_product(rental_rate="300", deposit="1000")
    resp = client.post("/api/rentals/quote", json={
        "product_id": pid, "start_date": days_ahead(-1), "end_date": days_ahead(3),
    })
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Start date cannot be in the past"


def test_book_blocks_overlapping_dates(client, customer_headers, make_product):
    pid = make_product(rental_rate="499", deposit="2000")
    first = client.post("/api/rentals", headers=customer_headers, json={
        "product_id": pid, "start_date": days_ahead(5), "end_date": days_ahead(8),
    })
    assert first.status_code == 201, first.get_json()
    body = first.get_json()["data"]
    assert body["order_number"].startswith("RNT-")
    assert body["rental"]["rental_status"] == "booked"
    assert body["rental"]["total_amount"] == 499 * 3 + 2000

    clash = client.post("/api/rentals", headers=customer_headers, json={
        "product_id": pid, "start_date": days_ahead(8), "end_date": days_ahead(10),
    })
    assert clash.status_code == 409

    avail = client.get(f"/api/rentals/availability?product_id={pid}"
                       f"&start_date={days_ahead(6)}&end_date={days_ahead(7)}").get_json()["data"]
    assert avail["available"] is False
    avail = client.get(f"/api/rentals/availability?product_id={pid}"
                       f"&start_date={days_ahead(9)}&end_date={days_ahead(12)}").get_json()["data"]
    assert avail["available"] is True


def _book(client, headers, pid, start=1, end=4):
    resp = client.post("/api/rentals", headers=headers, json={
        "product_id": pid, "start_date": days_ahead(start), "end_date": days_ahead(end),
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]["rental"]


def test_late_return_keeps_part_of_deposit(client, admin_headers, customer_headers, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    rental = _book(client, customer_headers, pid, 1, 4)

    resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                      json={"status": "returned", "return_date": days_ahead(6)})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["late_fee"] == 400.0  # 2 days x 50% of 400
    assert data["refund_amount"] == 1600.0
    assert data["deposit_status"] == "partially_refunded"
    assert data["rental_status"] == "returned"

    again = client.put(f"/api/rentals/{rental['id']}/return", headers=customer_headers, json={})
    assert again.status_code == 400
    assert again.get_json()["message"] == "Rental already returned"


def test_customer_return_is_dated_today(client, customer_headers, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    rental = _book(client, customer_headers, pid, 1, 4)

    resp = client.put(f"/api/rentals/{rental['id']}/return", headers=customer_headers,
                      json={"return_date": days_ahead(-1)})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["actual_return_date"] == days_ahead(0)
    assert data["late_fee"] == 0.0
    assert data["refund_amount"] == 2000.0


def test_admin_return_date_cannot_precede_start(client, admin_headers, customer_headers, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    rental = _book(client, customer_headers, pid, 2, 4)
    resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                      json={"status": "returned", "return_date": days_ahead(1)})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Return date cannot be before the rental start date"


def test_closing_unreturned_rental_settles_deposit(client, admin_headers, customer_headers, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    rental = _book(client, customer_headers, pid, 1, 4)

    resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                      json={"status": "completed"})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["actual_return_date"] == days_ahead(0)
    assert data["refund_amount"] == 2000.0
    assert data["deposit_status"] == "refunded"

    resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                      json={"status": "completed", "damage_charges": 500})
    assert resp.get_json()["data"]["refund_amount"] == 1500.0


def test_damage_charges_must_be_a_finite_number(client, admin_headers, customer_headers, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    rental = _book(client, customer_headers, pid, 1, 4)
    for bad in ("NaN", "Infinity", "abc"):
        resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                          json={"status": "inspecting", "damage_charges": bad})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "damage_charges must be numeric"


def test_availability_needs_end_after_start(client, make_product):
    pid = make_product(rental_rate="400", deposit="2000")
    resp = client.get(f"/api/rentals/availability?product_id={pid}"
                      f"&start_date={days_ahead(3)}&end_date={days_ahead(3)}")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "End date must be after start date"

def test_extend_rental(client, customer_headers, make_product):
    pid = make_product(rental_rate="250", deposit="1000")
    rental = _book(client, customer_headers, pid, 1, 4)

    resp = client.put(f"/api/rentals/{rental['id']}/extend", headers=customer_headers,
                      json={"new_end_date": days_ahead(6)})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["rental_days"] == 5
    assert data["total_rental_amount"] == 1250.0
    assert data["is_extended"] is True
    assert data["extension_count"] == 1

    bad = client.put(f"/api/rentals/{rental['id']}/extend", headers=customer_headers,
                     json={"new_end_date": days_ahead(6)})
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "New end date must be after current end date"


def test_other_customer_cannot_see_rental(client, customer_headers, make_product):
    pid = make_product(rental_rate="250", deposit="1000")
    rental = _book(client, customer_headers, pid)
    other = register(client, "ravi@example.com", name="Ravi")
    resp = client.get(f"/api/rentals/{rental['id']}", headers=bearer(other["token"]))
    assert resp.status_code == 403
    mine = client.get("/api/rentals/me", headers=customer_headers).get_json()["data"]
    assert [r["id"] for r in mine] == [rental["id"]]


def test_admin_damage_inspection_and_stats(client, admin_headers, customer_headers, make_product):
    pid = make_product(rental_rate="500", deposit="3000")
    rental = _book(client, customer_headers, pid, 1, 3)
    client.put(f"/api/rentals/{rental['id']}/return", headers=customer_headers)

    resp = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers,
                      json={"status": "completed", "damage_charges": 1200})
    data = resp.get_json()["data"]
    assert resp.status_code == 200, data
    assert data["refund_amount"] == 1800.0
    assert data["deposit_status"] == "partially_refunded"

    bad = client.put(f"/api/rentals/admin/{rental['id']}/status", headers=admin_headers, json={"status": "lost"})
    assert bad.status_code == 400

    stats = client.get("/api/rentals/admin/stats", headers=admin_headers).get_json()["data"]
    assert stats["total_rentals"] == 1
    assert stats["completed_rentals"] == 1
    assert stats["total_revenue"] == 1000.0
    assert stats["total_damage_charges"] == 1200.0

    listing = client.get("/api/rentals/admin/all?status=completed", headers=admin_headers).get_json()["data"]
    assert listing["meta"]["total"] == 1

    assert client.get("/api/rentals/admin/stats", headers=customer_headers).status_code == 403


def _lock_spy(monkeypatch):
    locked = []
    original = Query.with_for_update

    def spy(self, *args, **kwargs):
        locked.extend(d["entity"] for d in self.column_descriptions)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Query, "with_for_update", spy)
    return locked


def test_booking_locks_the_garment_row(client, customer_headers, make_product, monkeypatch):
    pid = make_product(rental_rate="400", deposit="2000")
    locked = _lock_spy(monkeypatch)
    _book(client, customer_headers, pid, 1, 4)
    assert Product in locked


def test_checkout_locks_rented_garment_row(client, customer_headers, make_product, monkeypatch):
    pid = make_product(rental_rate="400", deposit="2000")
    locked = _lock_spy(monkeypatch)
    resp = client.post("/api/orders", headers=customer_headers, json={
        "rentals": [{"product_id": pid, "start_date": days_ahead(1), "end_date": days_ahead(3)}],
        "shipping_address": ADDRESS,
    })
    assert resp.status_code == 201, resp.get_json()
    assert Product in locked
