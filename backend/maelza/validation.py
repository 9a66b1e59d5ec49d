from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from maelza.time_utils import as_naive_utc, parse_document_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .services.document_kinds import DocumentKind
from .services.order_service import DocumentDraft, DocumentPatch
from .services.pricing_service import MAX_QUANTITY, LineInput


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_STOCK = 1_000_000_000
MAX_ID = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, field: str) -> int:
    """Strict integer: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_datetime(value: Any, field: str, *, end_of_day: bool = False) -> datetime:
    """ISO-8601 date or datetime -> naive UTC. end_of_day widens a bare date to its last instant."""
    if isinstance(value, datetime):
        return as_naive_utc(value)
    if isinstance(value, str):
        try:
            return parse_document_date(value, end_of_day=end_of_day)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
    raise ValidationError(f"{field} must be a datetime")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return parse_datetime(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("cost_price_cents", "sale_price_cents"):
        price = patch.get(field)
        if price is None:
            continue
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")

    for field in ("stock", "min_stock"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")
        if patch.get(field) is not None and patch[field] > MAX_STOCK:
            raise ValidationError(f"{field} cannot exceed {MAX_STOCK}")


# ---------------------------------------------------------------------------
# Sale / purchase payloads
# ---------------------------------------------------------------------------

def parse_money_cents(value: Any, field: str) -> int:
    """
    Decimal money amount -> integer cents.

    Accepts numbers or numeric strings with at most two decimals
    ("12.5" -> 1250). Floats go through their shortest repr, so 0.1 is 10.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimals")
    cents = int(amount * 100)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def parse_id(value: Any, field: str) -> int:
    parsed = parse_int(value, field)
    if parsed <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    if parsed > MAX_ID:
        raise ValidationError(f"{field} is out of range")
    return parsed


def parse_quantity(value: Any, field: str = "quantity") -> int:
    quantity = parse_int(value, field)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return quantity


def parse_line_items(raw: Any) -> list[LineInput]:
    """
    items: [{product_id, quantity, unit_price?}] -> LineInput list.

    Quantity positivity is checked here and again by the pricing service,
    which knows the product name for the message.
    """
    if not isinstance(raw, list):
        raise ValidationError("items must be a list")
    if not raw:
        raise ValidationError("At least one item is required")

    lines: list[LineInput] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if entry.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if entry.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")

        quantity = parse_quantity(entry["quantity"], f"items[{index}].quantity")

        unit_price_cents = None
        if entry.get("unit_price") is not None:
            unit_price_cents = parse_money_cents(entry["unit_price"], f"items[{index}].unit_price")
        elif entry.get("unit_price_cents") is not None:
            unit_price_cents = parse_int(entry["unit_price_cents"], f"items[{index}].unit_price_cents")
            if unit_price_cents < 0:
                raise ValidationError(f"items[{index}].unit_price_cents must be >= 0")
            if unit_price_cents > MAX_PRICE_CENTS:
                raise ValidationError(f"items[{index}].unit_price_cents is too large")

        lines.append(LineInput(
            product_id=parse_id(entry["product_id"], f"items[{index}].product_id"),
            quantity=quantity,
            unit_price_cents=unit_price_cents,
        ))
    return lines


def _party_key(payload: dict, kind: DocumentKind) -> str | None:
    for key in (kind.party_field, "party_id"):
        if key in payload:
            return key
    return None


def _optional_notes(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("notes must be a string")
    return value.strip() or None


def parse_document_draft(payload: Any, kind: DocumentKind) -> DocumentDraft:
    """Create payload -> DocumentDraft. Party and items are required."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    key = _party_key(payload, kind)
    if key is None or payload[key] is None:
        raise ValidationError(f"{kind.party_field} is required")
    if "items" not in payload or payload["items"] is None:
        raise ValidationError("At least one item is required")

    date = payload.get("date")
    status = payload.get("status")
    if status is not None:
        status = kind.parse_status(status)

    return DocumentDraft(
        party_id=parse_id(payload[key], kind.party_field),
        items=parse_line_items(payload["items"]),
        date=parse_datetime(date, "date") if date else None,
        notes=_optional_notes(payload.get("notes")),
        status=status,
    )


def parse_document_patch(payload: Any, kind: DocumentKind) -> DocumentPatch:
    """
    Update payload -> DocumentPatch. Absent keys stay UNSET; only notes
    may be cleared with null.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    patch = DocumentPatch()

    key = _party_key(payload, kind)
    if key is not None:
        if payload[key] is None:
            raise ValidationError(f"{kind.party_field} cannot be null")
        patch.party_id = parse_id(payload[key], kind.party_field)

    if "date" in payload:
        if payload["date"] is None:
            raise ValidationError("date cannot be null")
        patch.date = parse_datetime(payload["date"], "date")

    if "notes" in payload:
        patch.notes = _optional_notes(payload["notes"])

    if "status" in payload:
        if payload["status"] is None:
            raise ValidationError("status cannot be null")
        patch.status = kind.parse_status(payload["status"])

    if "items" in payload:
        if payload["items"] is None:
            raise ValidationError("items cannot be null")
        patch.items = parse_line_items(payload["items"])

    return patch


def parse_list_args(args, kind: DocumentKind) -> dict:
    """Query string of a document listing -> keyword filters for list_documents."""
    filters: dict = {}

    if args.get("status"):
        filters["status"] = kind.parse_status(args["status"])

    party = args.get(kind.party_field) or args.get("party_id")
    if party:
        filters["party_id"] = parse_id(party, kind.party_field)

    if args.get("search"):
        filters["search"] = args["search"]

    if args.get("date_from"):
        filters["date_from"] = parse_datetime(args["date_from"], "date_from")
    if args.get("date_to"):
        filters["date_to"] = parse_datetime(args["date_to"], "date_to", end_of_day=True)

    if args.get("limit"):
        filters["limit"] = parse_int(args["limit"], "limit")
    if args.get("offset"):
        filters["offset"] = parse_int(args["offset"], "offset")

    return filters
