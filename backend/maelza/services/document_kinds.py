# Overview: Sale and purchase document descriptions: statuses, transitions and numbering.

"""
Document kinds

WHY: Sales and purchases share one lifecycle implementation. Everything that
differs between them lives in a DocumentKind: ORM classes, the party they
reference, which product price seeds a line, the status enum, the transition
table and the number format.

STATUS TRANSITIONS (anything not listed is rejected; same-status is a no-op):

    Sale                              Purchase
    pending   -> completed  DECREMENT  PENDING  -> RECEIVED   INCREMENT
    completed -> pending    INCREMENT  PENDING  -> PARTIAL    NONE
    pending   -> cancelled  NONE       PENDING  -> CANCELLED  NONE
                                       PARTIAL  -> RECEIVED   INCREMENT
                                       PARTIAL  -> CANCELLED  NONE
                                       RECEIVED -> PENDING    DECREMENT
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from ..errors import ValidationError
from ..time_utils import numbering_year
from ..models import (
    AccountPayable,
    AccountReceivable,
    Customer,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    Supplier,
)


class StockEffect(Enum):
    """Signed direction a status change moves stock in."""
    NONE = 0
    INCREMENT = 1
    DECREMENT = -1

    @property
    def sign(self) -> int:
        return self.value

    def reversed(self) -> "StockEffect":
        return StockEffect(-self.value)


class SaleStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


SALE_TRANSITIONS: dict[tuple[str, str], StockEffect] = {
    (SaleStatus.PENDING.value, SaleStatus.COMPLETED.value): StockEffect.DECREMENT,
    (SaleStatus.COMPLETED.value, SaleStatus.PENDING.value): StockEffect.INCREMENT,
    (SaleStatus.PENDING.value, SaleStatus.CANCELLED.value): StockEffect.NONE,
}

PURCHASE_TRANSITIONS: dict[tuple[str, str], StockEffect] = {
    (PurchaseStatus.PENDING.value, PurchaseStatus.RECEIVED.value): StockEffect.INCREMENT,
    (PurchaseStatus.PENDING.value, PurchaseStatus.PARTIAL.value): StockEffect.NONE,
    (PurchaseStatus.PENDING.value, PurchaseStatus.CANCELLED.value): StockEffect.NONE,
    (PurchaseStatus.PARTIAL.value, PurchaseStatus.RECEIVED.value): StockEffect.INCREMENT,
    (PurchaseStatus.PARTIAL.value, PurchaseStatus.CANCELLED.value): StockEffect.NONE,
    (PurchaseStatus.RECEIVED.value, PurchaseStatus.PENDING.value): StockEffect.DECREMENT,
}


@dataclass(frozen=True)
class DocumentKind:
    name: str
    label: str
    model: type
    item_model: type
    party_model: type
    party_field: str
    account_model: type
    account_fk: str
    price_attr: str
    statuses: type[Enum]
    initial_status: str
    settled_statuses: frozenset[str]
    settle_effect: StockEffect
    transitions: dict[tuple[str, str], StockEffect]
    number_prefix: Callable[[str], str]
    scope_key_for: Callable[[datetime], str]

    def parse_status(self, value) -> str:
        """Normalize a caller-supplied status to this kind's canonical spelling."""
        if isinstance(value, self.statuses):
            return value.value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("status must be a non-empty string")
        wanted = value.strip().lower()
        for member in self.statuses:
            if member.value.lower() == wanted:
                return member.value
        allowed = ", ".join(member.value for member in self.statuses)
        raise ValidationError(
            f"Invalid {self.label.lower()} status '{value}'. Must be one of: {allowed}",
            details={"status": value, "allowed": [member.value for member in self.statuses]},
        )

    def is_settled(self, status: str | None) -> bool:
        return status in self.settled_statuses

    def transition_effect(self, old_status: str, new_status: str) -> StockEffect:
        """
        Stock effect of moving from old_status to new_status.

        Raises ValidationError for transitions outside the table.
        """
        if old_status == new_status:
            return StockEffect.NONE
        try:
            return self.transitions[(old_status, new_status)]
        except KeyError:
            raise ValidationError(
                f"Cannot change {self.label.lower()} status from {old_status} to {new_status}",
                details={"from": old_status, "to": new_status},
            ) from None

    def format_number(self, scope_key: str, sequence: int) -> str:
        return f"{self.number_prefix(scope_key)}{sequence:06d}"


SALE = DocumentKind(
    name="SALE",
    label="Sale",
    model=Sale,
    item_model=SaleItem,
    party_model=Customer,
    party_field="customer_id",
    account_model=AccountReceivable,
    account_fk="sale_id",
    price_attr="sale_price_cents",
    statuses=SaleStatus,
    initial_status=SaleStatus.PENDING.value,
    settled_statuses=frozenset({SaleStatus.COMPLETED.value}),
    settle_effect=StockEffect.DECREMENT,
    transitions=SALE_TRANSITIONS,
    number_prefix=lambda scope_key: f"V{scope_key}-",
    scope_key_for=numbering_year,
)

PURCHASE = DocumentKind(
    name="PURCHASE",
    label="Purchase",
    model=Purchase,
    item_model=PurchaseItem,
    party_model=Supplier,
    party_field="supplier_id",
    account_model=AccountPayable,
    account_fk="purchase_id",
    price_attr="cost_price_cents",
    statuses=PurchaseStatus,
    initial_status=PurchaseStatus.PENDING.value,
    settled_statuses=frozenset({PurchaseStatus.RECEIVED.value}),
    settle_effect=StockEffect.INCREMENT,
    transitions=PURCHASE_TRANSITIONS,
    number_prefix=lambda scope_key: "COMP-",
    scope_key_for=lambda now: "",
)

DOCUMENT_KINDS = {kind.name: kind for kind in (SALE, PURCHASE)}
