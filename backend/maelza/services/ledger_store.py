# Overview: Persistence adapter for the order core; owns the unit of work and translates store errors.

"""
Ledger Store

The only module in the order core that talks SQLAlchemy. Services receive a
LedgerStore (bound to db.session unless told otherwise) and call its
operations inside `store.transaction()`.

INVARIANTS:
- One transaction per document operation; commit on success, rollback on
  any exception.
- Driver and SQLAlchemy errors leave this module as PersistenceError.
- Stock is only written through update_product_stock, which refuses to
  take a row below zero.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Sequence

from flask import current_app
from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import MaelzaError, PersistenceError
from ..extensions import db
from ..models import DocumentSequence, Product
from .concurrency import begin_immediate, lock_for_update
from .document_kinds import DocumentKind
from .pricing_service import PricedLine


class LedgerStore:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """
        Run a block as one all-or-nothing transaction.

        Domain errors propagate unchanged; SQLAlchemy errors are re-raised
        as PersistenceError. The session is rolled back in both cases.
        """
        try:
            if current_app.config.get("SQLITE_IMMEDIATE_TRANSACTIONS", False):
                begin_immediate(self.session)
            yield self
            self.session.commit()
        except MaelzaError:
            self.session.rollback()
            raise
        except StaleDataError as exc:
            self.session.rollback()
            raise PersistenceError("Document was modified by another transaction") from exc
        except IntegrityError as exc:
            self.session.rollback()
            raise PersistenceError("Database constraint violated") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError("Database error") from exc
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Catalog and parties
    # ------------------------------------------------------------------

    def find_products_by_ids(self, product_ids: Iterable[int], *, lock: bool = False) -> dict[int, Product]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        query = self.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id)
        if lock:
            query = lock_for_update(query)
        return {product.id: product for product in query.all()}

    def find_party(self, kind: DocumentKind, party_id: int):
        return self.session.query(kind.party_model).filter_by(id=party_id).first()

    def update_product_stock(self, product_id: int, delta: int) -> bool:
        """
        Atomically add delta to a product's stock.

        Returns False (and changes nothing) when the row is missing or the
        result would be negative.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock + delta >= 0)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return False

        # Loaded copies re-read stock on next access
        loaded = self.session.identity_map.get(self.session.identity_key(Product, product_id))
        if loaded is not None:
            self.session.expire(loaded, ["stock", "updated_at"])
        return True

    def current_stock(self, product_id: int) -> int:
        """Stock as stored in the row now, not as loaded earlier in the session."""
        product = self.session.get(Product, product_id)
        if product is None:
            return 0
        self.session.refresh(product, ["stock"])
        return product.stock

    # ------------------------------------------------------------------
    # Document numbering
    # ------------------------------------------------------------------

    def find_last_document_number(self, kind: DocumentKind, prefix: str) -> str | None:
        """Highest issued number starting with prefix (numeric order within the prefix)."""
        number = kind.model.number
        row = (
            self.session.query(number)
            .filter(number.like(f"{prefix}%"))
            .order_by(func.length(number).desc(), number.desc())
            .first()
        )
        return row[0] if row else None

    def increment_sequence(self, document_type: str, scope_key: str) -> int | None:
        """
        Bump the counter row and return the number it held before, or None if
        the row does not exist yet.
        """
        stmt = (
            update(DocumentSequence)
            .where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.scope_key == scope_key,
            )
            .values(next_number=DocumentSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if not result.rowcount:
            return None
        current = (
            self.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, scope_key=scope_key)
            .scalar()
        )
        return current - 1

    def insert_sequence(self, document_type: str, scope_key: str, next_number: int) -> bool:
        """Create the counter row under a savepoint; False if another writer created it first."""
        try:
            with self.session.begin_nested():
                self.session.add(DocumentSequence(
                    document_type=document_type,
                    scope_key=scope_key,
                    next_number=next_number,
                ))
        except IntegrityError:
            return False
        return True

    def list_sequences(self) -> list[DocumentSequence]:
        return (
            self.session.query(DocumentSequence)
            .order_by(DocumentSequence.document_type, DocumentSequence.scope_key)
            .all()
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _build_items(self, kind: DocumentKind, lines: Sequence[PricedLine]) -> list:
        return [
            kind.item_model(
                product_id=line.product_id,
                position=line.position,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_cents=line.total_cents,
            )
            for line in lines
        ]

    def load_document(self, kind: DocumentKind, document_id: int, *, lock: bool = False):
        query = self.session.query(kind.model).filter_by(id=document_id)
        if lock:
            query = lock_for_update(query)
        return query.first()

    def create_document_with_items(self, kind: DocumentKind, fields: dict, lines: Sequence[PricedLine]):
        document = kind.model(**fields)
        document.items = self._build_items(kind, lines)
        self.session.add(document)
        self.session.flush()
        return document

    def replace_document_items(self, kind: DocumentKind, document, lines: Sequence[PricedLine]) -> None:
        """Delete every existing line, then insert the new set."""
        document.items.clear()
        self.session.flush()
        document.items.extend(self._build_items(kind, lines))
        self.session.flush()

    def update_document_fields(self, document, fields: dict) -> None:
        for key, value in fields.items():
            setattr(document, key, value)
        self.session.flush()

    def has_paid_accounts(self, kind: DocumentKind, document) -> bool:
        account = kind.account_model
        paid = (
            self.session.query(account.id)
            .filter(
                getattr(account, kind.account_fk) == document.id,
                account.paid_amount_cents > 0,
            )
            .first()
        )
        return paid is not None

    def delete_document_and_items(self, kind: DocumentKind, document) -> None:
        account = kind.account_model
        accounts = (
            self.session.query(account)
            .filter(getattr(account, kind.account_fk) == document.id)
            .all()
        )
        for row in accounts:
            self.session.delete(row)
        document.items.clear()
        self.session.flush()
        self.session.expire(document)

        self.session.delete(document)
        self.session.flush()

    def query_documents(
        self,
        kind: DocumentKind,
        *,
        status: str | None = None,
        party_id: int | None = None,
        search: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list, int]:
        model = kind.model
        query = self.session.query(model)

        if status:
            query = query.filter(model.status == status)
        if party_id:
            query = query.filter(getattr(model, kind.party_field) == party_id)
        if search:
            party = kind.party_model
            pattern = f"%{search}%"
            query = query.outerjoin(party, party.id == getattr(model, kind.party_field)).filter(
                or_(
                    model.number.ilike(pattern),
                    model.notes.ilike(pattern),
                    party.name.ilike(pattern),
                )
            )
        if date_from:
            query = query.filter(model.date >= date_from)
        if date_to:
            query = query.filter(model.date <= date_to)

        total = query.count()
        rows = (
            query.order_by(model.created_at.desc(), model.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total
