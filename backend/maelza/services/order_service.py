# Overview: Document lifecycle manager shared by sales and purchases.

"""
Order document lifecycle

create -> update* -> delete, for any DocumentKind.

Statement order inside every transaction:
    1. read/validate referenced party
    2. read/validate catalog for the lines
    3. allocate the document number (create only)
    4. write the document and its lines
    5. write stock deltas

Validation failures happen before step 4. A stock guard failure or a store
error rolls everything back, including the number allocation.
"""

from __future__ import annotations

from dataclasses import dataclass, fields as dataclass_fields
from datetime import datetime
from typing import Any, Sequence

from flask import current_app

from ..errors import (
    ConflictError,
    DocumentNotFoundError,
    ReferenceNotFoundError,
    ValidationError,
)
from maelza.time_utils import utcnow
from .document_kinds import DocumentKind
from .ledger_store import LedgerStore
from .numbering_service import next_number
from .pricing_service import LineInput, compute_totals
from .stock_service import commit_stock_delta, describe_effect, plan_stock_delta, snapshot_items


class _Unset:
    """Marker for a patch field the caller did not send."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class DocumentDraft:
    """Everything needed to create a sale or purchase."""
    party_id: int | None
    items: Sequence[LineInput]
    date: datetime | None = None
    notes: str | None = None
    status: str | None = None


@dataclass
class DocumentPatch:
    """
    Partial update. Fields left as UNSET keep their stored value; a field
    set to None is an explicit change (only notes may be cleared that way).
    items, when given, replaces the whole line set.
    """
    party_id: Any = UNSET
    date: Any = UNSET
    notes: Any = UNSET
    status: Any = UNSET
    items: Any = UNSET

    def provided(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in dataclass_fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def apply_to(self, current: dict) -> dict:
        """Overlay the provided header fields on current; the patch wins."""
        merged = dict(current)
        for key, value in self.provided().items():
            if key != "items":
                merged[key] = value
        return merged


def _require_party(store: LedgerStore, kind: DocumentKind, party_id):
    if party_id is None:
        raise ValidationError(f"{kind.party_field} is required")
    party = store.find_party(kind, party_id)
    if party is None:
        raise ReferenceNotFoundError(
            f"{kind.party_model.__name__} not found",
            details={kind.party_field: party_id},
        )
    return party


def _price_lines(store: LedgerStore, kind: DocumentKind, items: Sequence[LineInput]):
    if not items:
        raise ValidationError("At least one item is required")
    catalog = store.find_products_by_ids(item.product_id for item in items)
    return compute_totals(items, catalog, price_attr=kind.price_attr)


def _load(store: LedgerStore, kind: DocumentKind, document_id: int, *, lock: bool = False):
    document = store.load_document(kind, document_id, lock=lock)
    if document is None:
        raise DocumentNotFoundError(
            f"{kind.label} not found",
            details={"id": document_id},
        )
    return document


def create_document(
    kind: DocumentKind,
    draft: DocumentDraft,
    *,
    user_id: int | None = None,
    store: LedgerStore | None = None,
    now: datetime | None = None,
):
    """
    Create a document with its lines, a fresh number and, if it starts in a
    settled status, its stock effect.

    Raises:
        ValidationError, ReferenceNotFoundError, InsufficientStockError,
        PersistenceError
    """
    store = store or LedgerStore()
    now = now or utcnow()

    if not draft.items:
        raise ValidationError("At least one item is required")
    status = kind.parse_status(draft.status) if draft.status is not None else kind.initial_status

    with store.transaction():
        party = _require_party(store, kind, draft.party_id)
        totals = _price_lines(store, kind, draft.items)
        number = next_number(store, kind, now=now)

        document = store.create_document_with_items(
            kind,
            {
                "number": number,
                kind.party_field: party.id,
                "user_id": user_id,
                "date": draft.date or now,
                "status": status,
                "notes": draft.notes or None,
                **totals.as_fields(),
            },
            totals.lines,
        )

        deltas = plan_stock_delta(kind, None, status, (), totals.lines)
        commit_stock_delta(store, deltas, reference=number)

    current_app.logger.info(
        "Created %s %s (status=%s, total_cents=%s, stock=%s over %s products)",
        kind.label.lower(), number, status, totals.total_cents,
        describe_effect(deltas).name, len(deltas),
    )
    return document


def update_document(
    kind: DocumentKind,
    document_id: int,
    patch: DocumentPatch,
    *,
    store: LedgerStore | None = None,
):
    """
    Apply a partial update.

    New items replace the line set and recompute totals. The stock effect is
    the net difference between what the document held before (old status,
    old lines) and what it holds after (new status, new lines).
    """
    store = store or LedgerStore()

    with store.transaction():
        document = _load(store, kind, document_id, lock=True)
        old_status = document.status
        old_lines = snapshot_items(document.items)

        current = {
            "party_id": document.party_id,
            "date": document.date,
            "notes": document.notes,
            "status": old_status,
        }
        merged = patch.apply_to(current)
        changes: dict = {}

        if merged["party_id"] != current["party_id"]:
            party = _require_party(store, kind, merged["party_id"])
            changes[kind.party_field] = party.id

        if merged["date"] is None:
            raise ValidationError("date cannot be null")
        if merged["date"] != current["date"]:
            changes["date"] = merged["date"]

        if patch.notes is not UNSET:
            changes["notes"] = merged["notes"] or None

        if merged["status"] is None:
            raise ValidationError("status cannot be null")
        new_status = kind.parse_status(merged["status"])
        kind.transition_effect(old_status, new_status)
        if new_status != old_status:
            changes["status"] = new_status

        totals = None
        new_lines = old_lines
        if patch.items is not UNSET:
            totals = _price_lines(store, kind, patch.items or ())
            new_lines = snapshot_items(totals.lines)
            changes.update(totals.as_fields())

        deltas = plan_stock_delta(kind, old_status, new_status, old_lines, new_lines)

        if totals is not None:
            store.replace_document_items(kind, document, totals.lines)
        if changes:
            store.update_document_fields(document, changes)
        commit_stock_delta(store, deltas, reference=document.number)

        number = document.number

    current_app.logger.info(
        "Updated %s %s (%s -> %s, items_replaced=%s, stock=%s over %s products)",
        kind.label.lower(), number, old_status, new_status, totals is not None,
        describe_effect(deltas).name, len(deltas),
    )
    return document


def delete_document(
    kind: DocumentKind,
    document_id: int,
    *,
    store: LedgerStore | None = None,
) -> None:
    """
    Delete a document, its lines and its receivables/payables.

    Refused while the document is settled (its stock effect still applies)
    or once any receivable/payable has been paid.
    """
    store = store or LedgerStore()

    with store.transaction():
        document = _load(store, kind, document_id, lock=True)
        number = document.number

        if kind.is_settled(document.status):
            current_app.logger.warning("Refused delete of settled %s %s", kind.label.lower(), number)
            raise ConflictError(
                f"Cannot delete {document.status} {kind.label.lower()}s. "
                f"Change status to {kind.initial_status} first.",
                details={"id": document_id, "status": document.status},
            )
        if store.has_paid_accounts(kind, document):
            current_app.logger.warning("Refused delete of paid %s %s", kind.label.lower(), number)
            raise ConflictError(
                f"{kind.label} has payments and cannot be deleted",
                details={"id": document_id},
            )

        store.delete_document_and_items(kind, document)

    current_app.logger.info("Deleted %s %s", kind.label.lower(), number)


def get_document(kind: DocumentKind, document_id: int, *, store: LedgerStore | None = None):
    store = store or LedgerStore()
    return _load(store, kind, document_id)


def list_documents(
    kind: DocumentKind,
    *,
    status: str | None = None,
    party_id: int | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
    store: LedgerStore | None = None,
) -> tuple[list, int]:
    """List documents newest first. Returns (rows, total matching)."""
    store = store or LedgerStore()

    if status is not None:
        status = kind.parse_status(status)
    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    return store.query_documents(
        kind,
        status=status,
        party_id=party_id,
        search=search.strip() if search else None,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
