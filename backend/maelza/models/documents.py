from __future__ import annotations

from ..extensions import db
from maelza.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document number counters.

    One row per (document_type, scope_key): purchases use a single global
    scope, sales are scoped per calendar year. The row is incremented inside
    the same transaction that inserts the document.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "scope_key", name="uq_doc_sequences_type_scope"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    scope_key = db.Column(db.String(16), nullable=False, default="")
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "scope_key": self.scope_key,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
