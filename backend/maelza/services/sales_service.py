# Overview: Sale documents; thin layer over the shared order lifecycle.

"""
Sales Service

Sales settle into `completed`, which consumes stock for every line. Moving a
completed sale back to `pending` restores exactly what it consumed. Completed
sales cannot be deleted.

Numbers: V{year}-NNNNNN, restarting at 000001 each calendar year.
"""

from __future__ import annotations

from datetime import datetime

from ..models import Sale
from . import order_service
from .document_kinds import SALE, SaleStatus
from .ledger_store import LedgerStore
from .order_service import DocumentDraft, DocumentPatch


def create_sale(
    draft: DocumentDraft,
    *,
    user_id: int | None = None,
    store: LedgerStore | None = None,
    now: datetime | None = None,
) -> Sale:
    """Create a sale; status defaults to pending."""
    return order_service.create_document(SALE, draft, user_id=user_id, store=store, now=now)


def update_sale(sale_id: int, patch: DocumentPatch, *, store: LedgerStore | None = None) -> Sale:
    return order_service.update_document(SALE, sale_id, patch, store=store)


def complete_sale(sale_id: int, *, store: LedgerStore | None = None) -> Sale:
    """Settle a pending sale (consumes stock)."""
    return update_sale(sale_id, DocumentPatch(status=SaleStatus.COMPLETED.value), store=store)


def reopen_sale(sale_id: int, *, store: LedgerStore | None = None) -> Sale:
    """Move a completed sale back to pending (restores stock)."""
    return update_sale(sale_id, DocumentPatch(status=SaleStatus.PENDING.value), store=store)


def cancel_sale(sale_id: int, *, store: LedgerStore | None = None) -> Sale:
    return update_sale(sale_id, DocumentPatch(status=SaleStatus.CANCELLED.value), store=store)


def delete_sale(sale_id: int, *, store: LedgerStore | None = None) -> None:
    order_service.delete_document(SALE, sale_id, store=store)


def get_sale(sale_id: int, *, store: LedgerStore | None = None) -> Sale:
    return order_service.get_document(SALE, sale_id, store=store)


def list_sales(**filters) -> tuple[list[Sale], int]:
    """Filters: status, customer_id, search, date_from, date_to, limit, offset."""
    if "customer_id" in filters:
        filters["party_id"] = filters.pop("customer_id")
    return order_service.list_documents(SALE, **filters)
