# Overview: Domain error taxonomy shared by services and routes.

"""
MAELZA domain errors.

Every error raised by the order core derives from MaelzaError and carries:
- a human readable message
- a details dict (safe to return to API clients)
- the HTTP status the routing layer should answer with

Store-specific failures never leak past the ledger store; they arrive here
as PersistenceError.
"""

from __future__ import annotations


class MaelzaError(Exception):
    """Base class for domain errors."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(MaelzaError):
    """400-level input problem (missing party, empty items, bad quantity)."""

    status_code = 400


class ReferenceNotFoundError(MaelzaError):
    """A referenced product, customer or supplier does not exist."""

    status_code = 404


class DocumentNotFoundError(MaelzaError):
    """The sale or purchase being read, updated or deleted does not exist."""

    status_code = 404


class InsufficientStockError(MaelzaError):
    """Settlement would drive a product's stock negative."""

    status_code = 400

    def __init__(
        self,
        *,
        product_id: int,
        product_name: str | None,
        available: int,
        required: int,
    ):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product {label}. "
            f"Available: {available}, Required: {required}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "required": required,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.required = required


class ConflictError(MaelzaError):
    """409-level business rule conflict (settled document, paid payable, duplicate code)."""

    status_code = 409


class PersistenceError(MaelzaError):
    """Underlying store failure; the transaction has been rolled back."""

    status_code = 500
