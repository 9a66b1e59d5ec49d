"""CLI command tests."""

from maelza.models import Customer, Product, Supplier


def test_seed_demo_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo"])
    assert result.exit_code == 0, result.output
    assert db_session.query(Product).count() == 3
    assert db_session.query(Customer).count() == 2
    assert db_session.query(Supplier).count() == 2

    again = runner.invoke(args=["system", "seed-demo"])
    assert again.exit_code == 0
    assert "SKIP Products already present" in again.output
    assert db_session.query(Product).count() == 3


def test_sequences_list(app, db_session, client, customer, product):
    runner = app.test_cli_runner()

    empty = runner.invoke(args=["sequences", "list"])
    assert "No sequences found" in empty.output

    client.post("/api/sales", json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]})

    listed = runner.invoke(args=["sequences", "list"])
    assert listed.exit_code == 0
    assert "SALE" in listed.output
    assert "-000002" in listed.output
