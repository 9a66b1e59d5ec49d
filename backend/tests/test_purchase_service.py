"""
Purchase lifecycle tests: receiving, partial status, reversal guard and
deletion rules.
"""

from datetime import datetime

import pytest

from maelza.errors import ConflictError, InsufficientStockError, ValidationError
from maelza.models import AccountPayable, Purchase, PurchaseItem
from maelza.services import purchase_service, sales_service
from maelza.services.order_service import DocumentDraft, DocumentPatch
from maelza.services.pricing_service import LineInput
from conftest import add_payable, stock_of


NOW = datetime(2026, 5, 4, 9, 30, 0)


def _draft(supplier, *lines, status=None):
    return DocumentDraft(
        party_id=supplier.id,
        items=[LineInput(*line) for line in lines],
        status=status,
    )


def test_create_received_purchase_adds_stock_at_cost(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 5), status="RECEIVED"), now=NOW)

    assert purchase.number == "COMP-000001"
    assert purchase.status == "RECEIVED"
    assert purchase.items[0].unit_price_cents == 6000
    assert purchase.subtotal_cents == 30000
    assert purchase.tax_cents == 5400
    assert purchase.total_cents == 35400
    assert stock_of(db_session, product.id) == 15


def test_sale_then_purchase_sequence(db_session, customer, supplier, product):
    """Stock 10 -> sell 3 -> receive 5 -> 12."""
    sales_service.create_sale(
        DocumentDraft(party_id=customer.id, items=[LineInput(product.id, 3)], status="completed"),
        now=NOW,
    )
    assert stock_of(db_session, product.id) == 7

    purchase_service.create_purchase(_draft(supplier, (product.id, 5), status="RECEIVED"), now=NOW)
    assert stock_of(db_session, product.id) == 12


def test_lowercase_status_is_accepted(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 1), status="received"), now=NOW)

    assert purchase.status == "RECEIVED"
    assert stock_of(db_session, product.id) == 11


def test_partial_then_received(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 4)), now=NOW)
    assert purchase.status == "PENDING"

    purchase_service.update_purchase(purchase.id, DocumentPatch(status="PARTIAL"))
    assert stock_of(db_session, product.id) == 10

    purchase_service.receive_purchase(purchase.id)
    assert stock_of(db_session, product.id) == 14

    # Receiving again is a no-op
    purchase_service.receive_purchase(purchase.id)
    assert stock_of(db_session, product.id) == 14


def test_numbers_are_global_and_sequential(db_session, supplier, product):
    first = purchase_service.create_purchase(_draft(supplier, (product.id, 1)), now=NOW)
    second = purchase_service.create_purchase(_draft(supplier, (product.id, 1)), now=datetime(2027, 2, 1))

    assert (first.number, second.number) == ("COMP-000001", "COMP-000002")


def test_unreceive_takes_stock_back(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 5), status="RECEIVED"), now=NOW)

    purchase_service.update_purchase(purchase.id, DocumentPatch(status="PENDING"))

    assert stock_of(db_session, product.id) == 10


def test_unreceive_refused_when_stock_already_sold(db_session, customer, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 5), status="RECEIVED"), now=NOW)
    sales_service.create_sale(
        DocumentDraft(party_id=customer.id, items=[LineInput(product.id, 12)], status="completed"),
        now=NOW,
    )
    assert stock_of(db_session, product.id) == 3

    with pytest.raises(InsufficientStockError):
        purchase_service.update_purchase(purchase.id, DocumentPatch(status="PENDING"))

    assert stock_of(db_session, product.id) == 3
    db_session.expire_all()
    assert db_session.get(Purchase, purchase.id).status == "RECEIVED"


def test_received_purchase_cannot_be_cancelled(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 2), status="RECEIVED"), now=NOW)

    with pytest.raises(ValidationError):
        purchase_service.update_purchase(purchase.id, DocumentPatch(status="CANCELLED"))


def test_delete_refused_when_payable_has_payment(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 2)), now=NOW)
    add_payable(db_session, purchase.id, amount_cents=purchase.total_cents, paid_amount_cents=100)

    with pytest.raises(ConflictError, match="payments"):
        purchase_service.delete_purchase(purchase.id)

    assert db_session.query(Purchase).count() == 1
    assert db_session.query(PurchaseItem).count() == 1
    assert db_session.query(AccountPayable).count() == 1


def test_delete_refused_while_received(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 2), status="RECEIVED"), now=NOW)

    with pytest.raises(ConflictError):
        purchase_service.delete_purchase(purchase.id)

    assert stock_of(db_session, product.id) == 12


def test_delete_pending_purchase_with_unpaid_payable(db_session, supplier, product):
    purchase = purchase_service.create_purchase(_draft(supplier, (product.id, 2)), now=NOW)
    add_payable(db_session, purchase.id, amount_cents=purchase.total_cents)

    purchase_service.delete_purchase(purchase.id)

    assert db_session.query(Purchase).count() == 0
    assert db_session.query(PurchaseItem).count() == 0
    assert db_session.query(AccountPayable).count() == 0


def test_list_purchases_by_supplier_and_status(db_session, supplier, product):
    pending = purchase_service.create_purchase(_draft(supplier, (product.id, 1)), now=NOW)
    purchase_service.create_purchase(_draft(supplier, (product.id, 1), status="RECEIVED"), now=NOW)

    rows, total = purchase_service.list_purchases(supplier_id=supplier.id, status="pending")

    assert total == 1
    assert rows[0].id == pending.id
