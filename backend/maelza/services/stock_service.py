# Overview: Stock adjustment engine; plans and applies per-product stock deltas for documents.

"""
Stock Adjustment Engine

A document "holds" stock while it is in a settled status: a completed sale
holds -quantity of each line, a received purchase holds +quantity. Any change
to a document (status, items or both) is applied as:

    delta = allocation(new status, new items) - allocation(old status, old items)

netted per product. This covers every case with one rule:
- unsettled -> settled: apply the new lines
- settled -> unsettled: reverse the old lines
- settled -> settled with new lines: only the difference moves
- no status change, no line change: nothing moves (idempotent)

Guard: every negative delta is checked against the locked product row before
any stock is written; the first shortfall aborts the whole operation with
InsufficientStockError. Positive deltas are never limited.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Mapping, NamedTuple

from flask import current_app

from ..errors import InsufficientStockError, ReferenceNotFoundError
from .document_kinds import DocumentKind, StockEffect
from .ledger_store import LedgerStore


class StockLine(NamedTuple):
    product_id: int
    quantity: int


def snapshot_items(items: Iterable) -> tuple[StockLine, ...]:
    """Detach (product_id, quantity) pairs from ORM lines before they are replaced."""
    return tuple(StockLine(item.product_id, item.quantity) for item in items)


def allocation(kind: DocumentKind, status: str | None, items: Iterable) -> dict[int, int]:
    """
    Stock held by a document in `status` with `items` (anything with
    product_id and quantity). Empty when the status is not settled.
    """
    held: dict[int, int] = defaultdict(int)
    if not kind.is_settled(status):
        return {}
    sign = kind.settle_effect.sign
    for item in items:
        held[item.product_id] += sign * item.quantity
    return dict(held)


def plan_stock_delta(
    kind: DocumentKind,
    old_status: str | None,
    new_status: str,
    old_items: Iterable,
    new_items: Iterable,
) -> dict[int, int]:
    """
    Net per-product stock change for moving a document from
    (old_status, old_items) to (new_status, new_items).

    old_status is None for a document being created. Products whose net
    change is zero are left out.
    """
    before = allocation(kind, old_status, old_items)
    after = allocation(kind, new_status, new_items)

    deltas: dict[int, int] = {}
    for product_id in sorted(set(before) | set(after)):
        delta = after.get(product_id, 0) - before.get(product_id, 0)
        if delta:
            deltas[product_id] = delta
    return deltas


def describe_effect(deltas: Mapping[int, int]) -> StockEffect:
    """Overall direction of a plan; NONE when empty or mixed."""
    signs = {1 if delta > 0 else -1 for delta in deltas.values()}
    if signs == {1}:
        return StockEffect.INCREMENT
    if signs == {-1}:
        return StockEffect.DECREMENT
    return StockEffect.NONE


def commit_stock_delta(store: LedgerStore, deltas: Mapping[int, int], *, reference: str | None = None) -> None:
    """
    Apply a plan from plan_stock_delta inside the caller's transaction.

    Raises:
        InsufficientStockError: A decrement exceeds the product's stock
        ReferenceNotFoundError: A product in the plan no longer exists
    """
    if not deltas:
        return

    products = store.find_products_by_ids(deltas.keys(), lock=True)

    for product_id, delta in sorted(deltas.items()):
        product = products.get(product_id)
        if product is None:
            raise ReferenceNotFoundError("Product not found", details={"product_id": product_id})
        if delta < 0 and product.stock + delta < 0:
            current_app.logger.warning(
                "Refused stock decrement for %s: product %s has %s, needs %s",
                reference, product_id, product.stock, -delta,
            )
            raise InsufficientStockError(
                product_id=product_id,
                product_name=product.name,
                available=product.stock,
                required=-delta,
            )

    for product_id, delta in sorted(deltas.items()):
        if not store.update_product_stock(product_id, delta):
            if delta > 0:
                raise ReferenceNotFoundError("Product not found", details={"product_id": product_id})
            # Another transaction took the stock between the check and the write
            product = products[product_id]
            raise InsufficientStockError(
                product_id=product_id,
                product_name=product.name,
                available=store.current_stock(product_id),
                required=-delta,
            )
        current_app.logger.info("Stock %+d for product %s (%s)", delta, product_id, reference)
