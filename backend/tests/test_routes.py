"""HTTP boundary: identity header, role checks and error mapping."""

import pytest

from storefront.models import Order, Product, Vendor


def _as(user):
    return {"X-User-Id": str(user.id)}


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_missing_or_unknown_actor_is_401(client, db_session, make_user):
    assert client.get("/api/cart").status_code == 401
    assert client.get("/api/cart", headers={"X-User-Id": "abc"}).status_code == 401
    assert client.get("/api/cart", headers={"X-User-Id": "999999"}).status_code == 401
    inactive = make_user("USER", is_active=False)
    assert client.get("/api/cart", headers=_as(inactive)).status_code == 401


def test_checkout_over_http(client, db_session, shopper, branch, make_product, make_offer, home_address):
    product = make_product(title="Rice", price_cents=250, quantity=10)
    make_offer(code="SAVE10", percentage=10)
    product_id, branch_id = product.id, branch.id

    added = client.post("/api/cart", json={"product_id": product_id, "quantity": 2}, headers=_as(shopper))
    assert added.status_code == 201

    placed = client.post(
        "/api/orders",
        json={"branch_id": branch_id, "offer_code": "SAVE10", "address": home_address},
        headers=_as(shopper),
    )
    assert placed.status_code == 201
    body = placed.get_json()["order"]
    assert body["subtotal_cents"] == 500
    assert body["total_amount_cents"] == 450

    details = client.get(f"/api/orders/{body['order_id']}", headers=_as(shopper))
    assert details.status_code == 200
    assert details.get_json()["order"]["discount"]["discount_type"] == "OFFER"
    assert db_session.get(Product, product_id).quantity == 8


def test_business_errors_map_to_status_codes(client, db_session, shopper, branch):
    empty = client.post("/api/orders", json={"branch_id": branch.id}, headers=_as(shopper))
    assert empty.status_code == 400
    assert empty.get_json() == {"error": "No items in the cart", "code": "VALIDATION_ERROR"}

    missing = client.post("/api/orders", json={"branch_id": 999999}, headers=_as(shopper))
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NOT_FOUND"


def test_status_update_requires_role_and_stamp(client, db_session, shopper, vendor_admin, branch, make_product, home_address):
    product = make_product(quantity=5)
    client.post("/api/cart", json={"product_id": product.id, "quantity": 1}, headers=_as(shopper))
    order_id = client.post(
        "/api/orders", json={"branch_id": branch.id, "address": home_address}, headers=_as(shopper)
    ).get_json()["order"]["order_id"]
    stamp = db_session.get(Order, order_id).concurrency_stamp

    forbidden = client.patch(
        f"/api/orders/{order_id}/status", json={"status": "ACCEPTED", "concurrency_stamp": stamp}, headers=_as(shopper)
    )
    assert forbidden.status_code == 403

    ok = client.patch(
        f"/api/orders/{order_id}/status",
        json={"status": "ACCEPTED", "concurrency_stamp": stamp},
        headers=_as(vendor_admin),
    )
    assert ok.status_code == 200
    assert ok.get_json()["concurrency_stamp"] != stamp

    stale = client.patch(
        f"/api/orders/{order_id}/status",
        json={"status": "CANCELLED", "concurrency_stamp": stamp},
        headers=_as(vendor_admin),
    )
    assert stale.status_code == 409
    assert stale.get_json()["code"] == "CONCURRENCY_ERROR"

    history = client.get(f"/api/orders/{order_id}/history", headers=_as(vendor_admin)).get_json()
    assert [h["status"] for h in history["history"]] == ["PENDING", "ACCEPTED"]


def test_inventory_adjust_and_movements(client, db_session, vendor_admin, make_product):
    product = make_product(quantity=3)
    product_id, stamp = product.id, product.concurrency_stamp

    adjusted = client.post(
        "/api/inventory/adjust",
        json={"product_id": product_id, "quantity_change": 4, "concurrency_stamp": stamp},
        headers=_as(vendor_admin),
    )
    assert adjusted.status_code == 200
    assert adjusted.get_json()["quantity_after"] == 7

    replay = client.post(
        "/api/inventory/adjust",
        json={"product_id": product_id, "quantity_change": 4, "concurrency_stamp": stamp},
        headers=_as(vendor_admin),
    )
    assert replay.status_code == 409

    movements = client.get(f"/api/inventory/movements?product_id={product_id}", headers=_as(vendor_admin))
    assert movements.status_code == 200
    assert movements.get_json()["total_count"] == 1


@pytest.fixture
def rival_admin(db_session, make_user):
    rival = Vendor(name="Rival Mart", code="RIVAL")
    db_session.add(rival)
    db_session.commit()
    return make_user("VENDOR_ADMIN", vendor_id=rival.id)


def test_vendor_admin_cannot_adjust_another_vendors_stock(client, db_session, rival_admin, make_product):
    product = make_product(quantity=3)
    outsider = rival_admin

    response = client.post(
        "/api/inventory/adjust",
        json={"product_id": product.id, "quantity_change": 1, "concurrency_stamp": product.concurrency_stamp},
        headers=_as(outsider),
    )
    assert response.status_code == 400


def test_cart_patch_and_delete(client, db_session, shopper, make_product):
    product = make_product()
    item = client.post("/api/cart", json={"product_id": product.id}, headers=_as(shopper)).get_json()["item"]

    patched = client.patch(
        f"/api/cart/{item['id']}",
        json={"quantity": 4, "concurrency_stamp": item["concurrency_stamp"]},
        headers=_as(shopper),
    )
    assert patched.status_code == 200
    assert patched.get_json()["item"]["quantity"] == 4

    assert client.delete(f"/api/cart/{item['id']}", headers=_as(shopper)).status_code == 204
    assert client.get("/api/cart", headers=_as(shopper)).get_json()["count"] == 0


def test_offer_admin_routes(client, db_session, make_user, shopper):
    admin = make_user("SUPER_ADMIN")
    payload = {"code": "FEST", "percentage": 20, "start_date": "2025-01-01", "end_date": "2030-01-01"}

    assert client.post("/api/offers", json=payload, headers=_as(shopper)).status_code == 403

    created = client.post("/api/offers", json=payload, headers=_as(admin))
    assert created.status_code == 201
    offer = created.get_json()

    duplicate = client.post("/api/offers", json=payload, headers=_as(admin))
    assert duplicate.status_code == 409

    patched = client.patch(
        f"/api/offers/{offer['id']}",
        json={"status": "ACTIVE", "concurrency_stamp": offer["concurrency_stamp"]},
        headers=_as(admin),
    )
    assert patched.status_code == 200

    listed = client.get("/api/offers?active_only=true", headers=_as(shopper)).get_json()
    assert [o["code"] for o in listed["offers"]] == ["FEST"]


def test_vendor_admin_creates_product_in_own_vendor(client, db_session, vendor_admin, branch, shopper):
    payload = {"branch_id": branch.id, "title": "Atta 5kg", "price_cents": 32000, "quantity": 6}

    assert client.post("/api/products", json=payload, headers=_as(shopper)).status_code == 403

    created = client.post("/api/products", json=payload, headers=_as(vendor_admin))
    assert created.status_code == 201
    product = created.get_json()["product"]
    assert product["vendor_id"] == vendor_admin.vendor_id
    assert product["stock_status"] == "IN_STOCK"

    listed = client.get(f"/api/products?branch_id={branch.id}", headers=_as(shopper)).get_json()
    assert listed["count"] == 1

    movements = client.get(
        f"/api/inventory/movements?product_id={product['id']}", headers=_as(vendor_admin)
    ).get_json()
    assert movements["doc"][0]["movement_type"] == "ADDED"
    assert movements["doc"][0]["quantity_after"] == 6


def test_rival_vendor_admin_cannot_edit_catalog(client, db_session, rival_admin, make_product):
    product = make_product(title="Ghee")
    product_id, stamp = product.id, product.concurrency_stamp

    patched = client.patch(
        f"/api/products/{product_id}",
        json={"title": "Renamed", "concurrency_stamp": stamp},
        headers=_as(rival_admin),
    )
    assert patched.status_code == 400

    variant = client.post(
        f"/api/products/{product_id}/variants",
        json={"variant_name": "500ml", "price_cents": 100},
        headers=_as(rival_admin),
    )
    assert variant.status_code == 400

    reloaded = db_session.get(Product, product_id)
    assert (reloaded.title, reloaded.concurrency_stamp) == ("Ghee", stamp)


def test_rival_vendor_admin_cannot_see_or_move_orders(client, db_session, rival_admin, shopper, branch, make_product, home_address):
    product = make_product(quantity=5)
    client.post("/api/cart", json={"product_id": product.id, "quantity": 1}, headers=_as(shopper))
    order_id = client.post(
        "/api/orders", json={"branch_id": branch.id, "address": home_address}, headers=_as(shopper)
    ).get_json()["order"]["order_id"]
    stamp = db_session.get(Order, order_id).concurrency_stamp

    moved = client.patch(
        f"/api/orders/{order_id}/status",
        json={"status": "CANCELLED", "concurrency_stamp": stamp},
        headers=_as(rival_admin),
    )
    assert moved.status_code == 404
    assert client.get(f"/api/orders/{order_id}", headers=_as(rival_admin)).status_code == 404
    assert client.get(f"/api/orders/{order_id}/history", headers=_as(rival_admin)).status_code == 404

    order = db_session.get(Order, order_id)
    assert (order.status, order.concurrency_stamp) == ("PENDING", stamp)


def test_rival_vendor_admin_cannot_edit_promocode(client, db_session, rival_admin, branch, make_promocode):
    promocode = make_promocode(code="LOCAL", branch_id=branch.id, vendor_id=branch.vendor_id)

    response = client.patch(
        f"/api/promocodes/{promocode.id}",
        json={"percentage": 90, "concurrency_stamp": promocode.concurrency_stamp},
        headers=_as(rival_admin),
    )
    assert response.status_code == 400


def test_address_book(client, db_session, shopper, home_address):
    created = client.post("/api/addresses", json=home_address, headers=_as(shopper))
    assert created.status_code == 201
    assert created.get_json()["address"]["country"] == "India"

    invalid = client.post("/api/addresses", json={"city": "Pune"}, headers=_as(shopper))
    assert invalid.status_code == 400

    listed = client.get("/api/addresses", headers=_as(shopper)).get_json()
    assert listed["count"] == 1
    assert listed["items"][0]["house_no"] == "12B"
