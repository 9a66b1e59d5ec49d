"""
Stock adjustment tests: transition tables, delta planning and the
non-negative stock guard.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import update

from maelza.errors import InsufficientStockError, ValidationError
from maelza.models import Product
from maelza.services.document_kinds import (
    PURCHASE,
    SALE,
    PurchaseStatus,
    SaleStatus,
    StockEffect,
)
from maelza.services.ledger_store import LedgerStore
from maelza.services.stock_service import (
    allocation,
    commit_stock_delta,
    describe_effect,
    plan_stock_delta,
)
from conftest import make_product, stock_of


def _line(product_id, quantity):
    return SimpleNamespace(product_id=product_id, quantity=quantity)


# ---------------------------------------------------------------------------
# Transition tables
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("kind", [SALE, PURCHASE])
def test_transition_effects_match_allocation_rule(kind):
    """Every listed transition moves stock exactly as settling/unsettling implies."""
    for (old, new), effect in kind.transitions.items():
        was = kind.is_settled(old)
        now = kind.is_settled(new)
        if was == now:
            expected = StockEffect.NONE
        elif now:
            expected = kind.settle_effect
        else:
            expected = kind.settle_effect.reversed()
        assert effect == expected, (old, new)


def test_sale_transitions():
    assert SALE.transition_effect("pending", "completed") == StockEffect.DECREMENT
    assert SALE.transition_effect("completed", "pending") == StockEffect.INCREMENT
    assert SALE.transition_effect("pending", "cancelled") == StockEffect.NONE
    assert SALE.transition_effect("completed", "completed") == StockEffect.NONE


@pytest.mark.parametrize("old, new", [
    ("completed", "cancelled"),
    ("cancelled", "pending"),
    ("cancelled", "completed"),
])
def test_sale_transitions_not_in_table_rejected(old, new):
    with pytest.raises(ValidationError):
        SALE.transition_effect(old, new)


def test_purchase_transitions():
    assert PURCHASE.transition_effect("PENDING", "RECEIVED") == StockEffect.INCREMENT
    assert PURCHASE.transition_effect("PARTIAL", "RECEIVED") == StockEffect.INCREMENT
    assert PURCHASE.transition_effect("RECEIVED", "PENDING") == StockEffect.DECREMENT
    assert PURCHASE.transition_effect("PENDING", "PARTIAL") == StockEffect.NONE
    with pytest.raises(ValidationError):
        PURCHASE.transition_effect("RECEIVED", "CANCELLED")
    with pytest.raises(ValidationError):
        PURCHASE.transition_effect("CANCELLED", "PENDING")


def test_status_parsing_is_case_insensitive():
    assert PURCHASE.parse_status("received") == PurchaseStatus.RECEIVED.value
    assert SALE.parse_status("Completed") == SaleStatus.COMPLETED.value
    assert SALE.parse_status(SaleStatus.PENDING) == "pending"
    with pytest.raises(ValidationError):
        SALE.parse_status("shipped")
    with pytest.raises(ValidationError):
        SALE.parse_status("")


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

def test_allocation_is_empty_when_not_settled():
    assert allocation(SALE, "pending", [_line(1, 3)]) == {}
    assert allocation(SALE, None, [_line(1, 3)]) == {}


def test_allocation_sums_repeated_products():
    held = allocation(SALE, "completed", [_line(1, 3), _line(1, 2), _line(2, 1)])
    assert held == {1: -5, 2: -1}


def test_plan_settling_a_sale_decrements():
    deltas = plan_stock_delta(SALE, "pending", "completed", [_line(1, 2)], [_line(1, 2)])
    assert deltas == {1: -2}
    assert describe_effect(deltas) == StockEffect.DECREMENT


def test_plan_reopening_a_sale_restores():
    deltas = plan_stock_delta(SALE, "completed", "pending", [_line(1, 2)], [_line(1, 2)])
    assert deltas == {1: 2}
    assert describe_effect(deltas) == StockEffect.INCREMENT


def test_plan_same_status_is_a_noop():
    assert plan_stock_delta(SALE, "completed", "completed", [_line(1, 2)], [_line(1, 2)]) == {}
    assert plan_stock_delta(PURCHASE, "RECEIVED", "RECEIVED", [_line(1, 5)], [_line(1, 5)]) == {}


def test_plan_item_change_while_settled_moves_only_the_difference():
    old = [_line(1, 2), _line(2, 1)]
    new = [_line(1, 5), _line(3, 4)]
    deltas = plan_stock_delta(SALE, "completed", "completed", old, new)
    assert deltas == {1: -3, 2: 1, 3: -4}
    assert describe_effect(deltas) == StockEffect.NONE


def test_plan_items_and_status_change_together():
    """Reopen with new lines: the old lines come back in full, the new ones hold nothing."""
    deltas = plan_stock_delta(SALE, "completed", "pending", [_line(1, 2)], [_line(1, 7)])
    assert deltas == {1: 2}

    deltas = plan_stock_delta(PURCHASE, "PENDING", "RECEIVED", [_line(1, 2)], [_line(1, 7), _line(2, 1)])
    assert deltas == {1: 7, 2: 1}


def test_plan_for_new_document():
    assert plan_stock_delta(PURCHASE, None, "RECEIVED", (), [_line(4, 5)]) == {4: 5}
    assert plan_stock_delta(PURCHASE, None, "PENDING", (), [_line(4, 5)]) == {}


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------

def test_commit_applies_all_deltas(db_session):
    a = make_product(db_session, code="A", stock=5)
    b = make_product(db_session, code="B", stock=0)
    store = LedgerStore()

    with store.transaction():
        commit_stock_delta(store, {a.id: -5, b.id: 3}, reference="test")

    assert stock_of(db_session, a.id) == 0
    assert stock_of(db_session, b.id) == 3


def test_commit_refuses_any_shortfall_and_writes_nothing(db_session):
    a = make_product(db_session, code="A", stock=5)
    b = make_product(db_session, code="B", stock=2)
    store = LedgerStore()

    with pytest.raises(InsufficientStockError) as exc:
        with store.transaction():
            commit_stock_delta(store, {a.id: -1, b.id: -3}, reference="test")

    assert exc.value.product_id == b.id
    assert exc.value.available == 2
    assert exc.value.required == 3
    assert "Available: 2, Required: 3" in exc.value.message
    assert stock_of(db_session, a.id) == 5
    assert stock_of(db_session, b.id) == 2


def test_update_product_stock_refuses_negative_result(db_session):
    a = make_product(db_session, code="A", stock=1)
    store = LedgerStore()

    with store.transaction():
        assert store.update_product_stock(a.id, -2) is False
        assert store.update_product_stock(a.id, -1) is True

    assert stock_of(db_session, a.id) == 0


class _OvertakenStore(LedgerStore):
    """Lets another writer drain a product right before each stock write."""

    def __init__(self, drained_to: int):
        super().__init__()
        self.drained_to = drained_to

    def update_product_stock(self, product_id, delta):
        self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=self.drained_to)
            .execution_options(synchronize_session=False)
        )
        return super().update_product_stock(product_id, delta)


def test_lost_race_reports_stock_left_by_the_other_writer(db_session):
    a = make_product(db_session, code="A", stock=5)
    store = _OvertakenStore(drained_to=1)

    with pytest.raises(InsufficientStockError) as exc:
        with store.transaction():
            commit_stock_delta(store, {a.id: -3}, reference="test")

    assert exc.value.available == 1
    assert exc.value.required == 3
    assert stock_of(db_session, a.id) == 5
