# Overview: Sequential document numbers for sales and purchases.

"""
Numbering Service

Formats:
- Purchase: COMP-NNNNNN, one global sequence
- Sale:     V{YYYY}-NNNNNN, one sequence per calendar year

Numbers come from a counter row per (document type, scope key) that is
incremented inside the caller's document transaction. The first time a
scope is used, its counter is seeded from the highest number already issued
with that prefix, so data created before the counter existed keeps counting
up instead of colliding.
"""

from __future__ import annotations

from datetime import datetime

from ..errors import PersistenceError
from maelza.time_utils import utcnow
from .document_kinds import DocumentKind
from .ledger_store import LedgerStore


# Losing the counter-row insert race twice in a row means something other
# than a concurrent creator is interfering.
MAX_SEED_ATTEMPTS = 2


def scope_key_for(kind: DocumentKind, now: datetime | None = None) -> str:
    return kind.scope_key_for(now or utcnow())


def parse_number_suffix(number: str | None) -> int:
    """Numeric part after the last '-' ("V2026-000041" -> 41); 0 if absent or malformed."""
    if not number:
        return 0
    _, _, suffix = number.rpartition("-")
    return int(suffix) if suffix.isdigit() else 0


def next_number(
    store: LedgerStore,
    kind: DocumentKind,
    scope_key: str | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """
    Allocate the next document number for kind within scope_key.

    Must run inside store.transaction(); the allocation is rolled back with
    the document if the transaction fails.
    """
    if scope_key is None:
        scope_key = scope_key_for(kind, now)

    for _ in range(MAX_SEED_ATTEMPTS):
        issued = store.increment_sequence(kind.name, scope_key)
        if issued is not None:
            return kind.format_number(scope_key, issued)

        prefix = kind.number_prefix(scope_key)
        last = store.find_last_document_number(kind, prefix)
        first = parse_number_suffix(last) + 1
        if store.insert_sequence(kind.name, scope_key, first + 1):
            return kind.format_number(scope_key, first)

    raise PersistenceError(
        f"Could not allocate a {kind.label.lower()} number",
        details={"document_type": kind.name, "scope_key": scope_key},
    )
