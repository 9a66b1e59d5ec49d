# Overview: Purchase documents; thin layer over the shared order lifecycle.

"""
Purchase Service

Purchases settle into RECEIVED, which adds every line's quantity to stock.
RECEIVED -> PENDING takes that stock back out (refused if it has already
been sold). A purchase cannot be deleted while RECEIVED or once any of its
payables has a payment.

Numbers: COMP-NNNNNN, one global sequence.
"""

from __future__ import annotations

from datetime import datetime

from ..models import Purchase
from . import order_service
from .document_kinds import PURCHASE, PurchaseStatus
from .ledger_store import LedgerStore
from .order_service import DocumentDraft, DocumentPatch


def create_purchase(
    draft: DocumentDraft,
    *,
    user_id: int | None = None,
    store: LedgerStore | None = None,
    now: datetime | None = None,
) -> Purchase:
    """Create a purchase; status defaults to PENDING."""
    return order_service.create_document(PURCHASE, draft, user_id=user_id, store=store, now=now)


def update_purchase(purchase_id: int, patch: DocumentPatch, *, store: LedgerStore | None = None) -> Purchase:
    return order_service.update_document(PURCHASE, purchase_id, patch, store=store)


def receive_purchase(purchase_id: int, *, store: LedgerStore | None = None) -> Purchase:
    """Mark a purchase as received (adds stock)."""
    return update_purchase(purchase_id, DocumentPatch(status=PurchaseStatus.RECEIVED.value), store=store)


def delete_purchase(purchase_id: int, *, store: LedgerStore | None = None) -> None:
    order_service.delete_document(PURCHASE, purchase_id, store=store)


def get_purchase(purchase_id: int, *, store: LedgerStore | None = None) -> Purchase:
    return order_service.get_document(PURCHASE, purchase_id, store=store)


def list_purchases(**filters) -> tuple[list[Purchase], int]:
    """Filters: status, supplier_id, search, date_from, date_to, limit, offset."""
    if "supplier_id" in filters:
        filters["party_id"] = filters.pop("supplier_id")
    return order_service.list_documents(PURCHASE, **filters)
