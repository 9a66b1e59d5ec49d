"""
HTTP API tests through the Flask test client.
"""

from maelza.models import AccountPayable
from conftest import stock_of


def _create_sale(client, customer, product, **extra):
    payload = {
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "quantity": 3}],
        **extra,
    }
    return client.post("/api/sales", json=payload)


def test_health(client, db_session):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json["status"] == "healthy"
    assert response.json["checks"]["database"]["status"] == "healthy"


def test_create_and_fetch_sale(client, db_session, customer, product):
    response = _create_sale(client, customer, product, status="completed", user_id=5)

    assert response.status_code == 201
    sale = response.json["sale"]
    assert sale["number"].startswith("V")
    assert sale["status"] == "completed"
    assert sale["customer_name"] == "Cliente Uno"
    assert (sale["subtotal_cents"], sale["tax_cents"], sale["total_cents"]) == (30000, 5400, 35400)
    assert sale["items"][0]["product_code"] == "P-001"
    assert sale["user_id"] == 5
    assert stock_of(db_session, product.id) == 7

    fetched = client.get(f"/api/sales/{sale['id']}")
    assert fetched.status_code == 200
    assert fetched.json["sale"]["number"] == sale["number"]


def test_insufficient_stock_is_400_with_details(client, db_session, customer, product):
    response = client.post("/api/sales", json={
        "customer_id": customer.id,
        "status": "completed",
        "items": [{"product_id": product.id, "quantity": 11}],
    })

    assert response.status_code == 400
    assert response.json["error"] == "Insufficient stock for product Product P-001. Available: 10, Required: 11"
    assert response.json["details"]["available"] == 10
    assert stock_of(db_session, product.id) == 10


def test_validation_and_not_found_errors(client, db_session, customer, product):
    assert client.post("/api/sales", json={"customer_id": customer.id, "items": []}).status_code == 400
    assert client.post("/api/sales", json={"items": [{"product_id": product.id, "quantity": 1}]}).status_code == 400

    missing_customer = client.post("/api/sales", json={
        "customer_id": 9999,
        "items": [{"product_id": product.id, "quantity": 1}],
    })
    assert missing_customer.status_code == 404

    assert client.get("/api/sales/9999").status_code == 404
    assert client.put("/api/sales/9999", json={"notes": "x"}).status_code == 404


def test_sale_status_round_trip_and_delete_conflict(client, db_session, customer, product):
    sale_id = _create_sale(client, customer, product).json["sale"]["id"]

    assert client.put(f"/api/sales/{sale_id}", json={"status": "completed"}).status_code == 200
    assert stock_of(db_session, product.id) == 7

    conflict = client.delete(f"/api/sales/{sale_id}")
    assert conflict.status_code == 409

    assert client.put(f"/api/sales/{sale_id}", json={"status": "pending"}).status_code == 200
    assert stock_of(db_session, product.id) == 10

    assert client.delete(f"/api/sales/{sale_id}").status_code == 200
    assert client.get(f"/api/sales/{sale_id}").status_code == 404


def test_invalid_transition_is_400(client, db_session, customer, product):
    sale_id = _create_sale(client, customer, product, status="cancelled").json["sale"]["id"]

    response = client.put(f"/api/sales/{sale_id}", json={"status": "completed"})

    assert response.status_code == 400
    assert response.json["details"] == {"from": "cancelled", "to": "completed"}


def test_update_items_with_decimal_price(client, db_session, customer, product):
    sale_id = _create_sale(client, customer, product).json["sale"]["id"]

    response = client.put(f"/api/sales/{sale_id}", json={
        "items": [{"product_id": product.id, "quantity": 2, "unit_price": "12.50"}],
    })

    assert response.status_code == 200
    sale = response.json["sale"]
    assert sale["subtotal_cents"] == 2500
    assert sale["tax_cents"] == 450
    assert len(sale["items"]) == 1


def test_list_sales(client, db_session, customer, product):
    _create_sale(client, customer, product)
    _create_sale(client, customer, product, status="completed")

    response = client.get("/api/sales?status=completed")

    assert response.status_code == 200
    assert response.json["total"] == 1
    assert "items" not in response.json["sales"][0]

    assert client.get("/api/sales?status=bogus").status_code == 400


def test_purchase_flow(client, db_session, supplier, product):
    response = client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "status": "received",
        "items": [{"product_id": product.id, "quantity": 5}],
    })

    assert response.status_code == 201
    purchase = response.json["purchase"]
    assert purchase["number"] == "COMP-000001"
    assert purchase["status"] == "RECEIVED"
    assert purchase["total_cents"] == 35400
    assert stock_of(db_session, product.id) == 15

    assert client.delete(f"/api/purchases/{purchase['id']}").status_code == 409

    assert client.put(f"/api/purchases/{purchase['id']}", json={"status": "PENDING"}).status_code == 200
    assert stock_of(db_session, product.id) == 10


def test_purchase_with_paid_payable_cannot_be_deleted(client, db_session, supplier, product):
    purchase_id = client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity": 1}],
    }).json["purchase"]["id"]
    db_session.add(AccountPayable(purchase_id=purchase_id, amount_cents=7080, paid_amount_cents=1000))
    db_session.commit()

    response = client.delete(f"/api/purchases/{purchase_id}")

    assert response.status_code == 409
    assert client.get(f"/api/purchases/{purchase_id}").json["purchase"]["payables"][0]["paid_amount_cents"] == 1000


def test_products_crud(client, db_session):
    created = client.post("/api/products", json={
        "code": " nuevo-1 ",
        "name": "Nuevo",
        "sale_price_cents": 1500,
        "cost_price_cents": 900,
        "stock": 3,
        "min_stock": 5,
    })

    assert created.status_code == 201
    assert created.json["code"] == "NUEVO-1"
    assert created.json["stock"] == 3
    assert created.json["is_low_stock"] is True

    product_id = created.json["id"]
    duplicate = client.post("/api/products", json={"code": "nuevo-1", "name": "Again"})
    assert duplicate.status_code == 409

    updated = client.put(f"/api/products/{product_id}", json={"sale_price_cents": 1700})
    assert updated.status_code == 200
    assert updated.json["sale_price_cents"] == 1700

    assert client.put(f"/api/products/{product_id}", json={"stock": 99}).status_code == 400

    listing = client.get("/api/products?low_stock=true")
    assert [p["id"] for p in listing.json["items"]] == [product_id]

    assert client.get("/api/products/424242").status_code == 404


def test_customers_and_suppliers(client, db_session):
    customer = client.post("/api/customers", json={"name": "Bodega Norte", "tax_id": "20111111111"})
    supplier = client.post("/api/suppliers", json={"name": "Mayorista Sur"})

    assert customer.status_code == 201
    assert supplier.status_code == 201
    assert client.post("/api/customers", json={"tax_id": "1"}).status_code == 400

    assert client.get(f"/api/customers/{customer.json['id']}").json["name"] == "Bodega Norte"
    assert client.get("/api/suppliers").json["count"] == 1
    assert client.get("/api/customers?search=norte").json["count"] == 1


def test_oversized_quantity_is_400_and_writes_nothing(client, db_session, customer, product):
    response = client.post("/api/sales", json={
        "customer_id": customer.id,
        "status": "completed",
        "items": [{"product_id": product.id, "quantity": 10**20}],
    })

    assert response.status_code == 400
    assert client.get("/api/sales").json["total"] == 0
    assert stock_of(db_session, product.id) == 10


def test_total_over_cap_is_400(client, db_session, supplier, product):
    response = client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity": 1_000_000, "unit_price": "9999.99"}],
    })

    assert response.status_code == 400
    assert "too large" in response.json["error"]


def test_delete_product_soft_and_hard(client, db_session, customer, product, other_product):
    _create_sale(client, customer, product)

    used = client.delete(f"/api/products/{product.id}")
    assert used.status_code == 200
    assert used.json["deactivated"] is True
    assert used.json["product"]["is_active"] is False
    assert client.get(f"/api/products/{product.id}").json["is_active"] is False

    refused = client.post("/api/sales", json={
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "quantity": 1}],
    })
    assert refused.status_code == 400

    unused = client.delete(f"/api/products/{other_product.id}")
    assert unused.json == {"deleted": True, "deactivated": False, "product": None}
    assert client.get(f"/api/products/{other_product.id}").status_code == 404
    assert client.delete(f"/api/products/{other_product.id}").status_code == 404


def test_update_and_delete_customer(client, db_session, customer, product):
    updated = client.put(f"/api/customers/{customer.id}", json={"phone": " 999 111 222 ", "email": "uno@example.com"})
    assert updated.status_code == 200
    assert updated.json["phone"] == "999 111 222"
    assert updated.json["name"] == "Cliente Uno"

    assert client.put(f"/api/customers/{customer.id}", json={"name": "  "}).status_code == 400
    assert client.put(f"/api/customers/{customer.id}", json={"credit": 1}).status_code == 400
    assert client.put("/api/customers/424242", json={"phone": "1"}).status_code == 404

    _create_sale(client, customer, product)
    deactivated = client.delete(f"/api/customers/{customer.id}")
    assert deactivated.json["deactivated"] is True
    assert deactivated.json["customer"]["is_active"] is False

    fresh = client.post("/api/customers", json={"name": "Sin Ventas"}).json
    removed = client.delete(f"/api/customers/{fresh['id']}")
    assert removed.json["deleted"] is True
    assert client.get(f"/api/customers/{fresh['id']}").status_code == 404


def test_update_and_delete_supplier(client, db_session, supplier, product):
    updated = client.put(f"/api/suppliers/{supplier.id}", json={"name": "Proveedor Uno SAC"})
    assert updated.json["name"] == "Proveedor Uno SAC"

    client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity": 1}],
    })
    deactivated = client.delete(f"/api/suppliers/{supplier.id}")
    assert deactivated.json["deactivated"] is True
    assert deactivated.json["supplier"]["is_active"] is False

    fresh = client.post("/api/suppliers", json={"name": "Sin Compras"}).json
    assert client.delete(f"/api/suppliers/{fresh['id']}").json["deleted"] is True
    assert client.delete("/api/suppliers/424242").status_code == 404
