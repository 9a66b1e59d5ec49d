# Overview: Service-layer operations for products, customers and suppliers.

"""
Catalog Service

Master data the order core reads: products (with their stock), customers
and suppliers.

STOCK: Product.stock may be given once, when the product is created.
Afterwards it only moves through sales and purchases, so it is not part of
PRODUCT_MUTABLE_FIELDS.

DELETE: products and parties that appear on a sale or purchase are only
deactivated (is_active=false) so documents keep their references; anything
unreferenced is removed.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, ReferenceNotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Purchase, PurchaseItem, Sale, SaleItem, Supplier

PRODUCT_MUTABLE_FIELDS = {
    "code",
    "name",
    "description",
    "unit",
    "cost_price_cents",
    "sale_price_cents",
    "min_stock",
    "is_active",
}
PARTY_MUTABLE_FIELDS = {"name", "tax_id", "email", "phone", "address", "is_active"}


def normalize_product_code(code) -> str:
    if code is None or not str(code).strip():
        raise ValidationError("code is required")
    return str(code).strip().upper()


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _paginate(base_query, page: int | None, per_page: int | None) -> dict:
    # If no pagination requested, return all items
    if page is None:
        rows = base_query.all()
        return {
            "items": [row.to_dict() for row in rows],
            "count": len(rows),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [row.to_dict() for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def list_products(
    *,
    search: str | None = None,
    low_stock: bool = False,
    active_only: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional pagination.

    Args:
        search: Case-insensitive match on code or name
        low_stock: Only products at or below their min_stock
        active_only: Hide inactive products
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = db.session.query(Product)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.code.ilike(pattern), Product.name.ilike(pattern)))
    if low_stock:
        query = query.filter(Product.stock <= Product.min_stock)
    if active_only:
        query = query.filter(Product.is_active.is_(True))

    return _paginate(query.order_by(Product.name.asc(), Product.id.asc()), page, per_page)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise ReferenceNotFoundError("Product not found", details={"product_id": product_id})
    return product


def create_product(*, patch: dict) -> dict:
    """
    Create a product from a validated patch dict.

    `stock` is accepted here as the opening quantity.

    Raises:
        ValidationError: Missing code or negative opening stock
        ConflictError: Code already exists
    """
    code = normalize_product_code(patch.get("code"))

    existing = db.session.query(Product).filter(Product.code == code).first()
    if existing:
        raise ConflictError("Product code already exists.", details={"code": code})

    stock = patch.get("stock") or 0
    if stock < 0:
        raise ValidationError("stock must be >= 0")

    p = Product(stock=stock)
    apply_product_patch(p, {**patch, "code": code})

    db.session.add(p)
    db.session.commit()

    current_app.logger.info("Created product %s (id=%s, stock=%s)", p.code, p.id, p.stock)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update product master data. Stock is not writable here.

    Raises:
        ReferenceNotFoundError: Unknown product
        ValidationError: Attempt to write stock
        ConflictError: New code already used by another product
    """
    if "stock" in patch:
        raise ValidationError("stock can only change through sales and purchases")

    p = get_product(product_id)

    if "code" in patch:
        code = normalize_product_code(patch["code"])
        if code != p.code:
            existing = (
                db.session.query(Product)
                .filter(Product.code == code, Product.id != p.id)
                .first()
            )
            if existing:
                raise ConflictError("Product code already exists.", details={"code": code})
        patch = {**patch, "code": code}

    apply_product_patch(p, patch)
    db.session.commit()

    current_app.logger.info(
        "Updated product %s fields: %s", p.code, ", ".join(sorted(patch.keys()))
    )
    return p.to_dict()


def _product_is_referenced(product_id: int) -> bool:
    for item_model in (SaleItem, PurchaseItem):
        used = db.session.query(item_model.id).filter(item_model.product_id == product_id).first()
        if used is not None:
            return True
    return False


def delete_product(*, product_id: int) -> dict:
    """
    Delete a product, or deactivate it when documents reference it.

    Returns:
        {"deleted": bool, "deactivated": bool, "product": dict | None}

    Raises:
        ReferenceNotFoundError: Unknown product
    """
    p = get_product(product_id)

    # Soft-delete: preserve IDs and historical references.
    if _product_is_referenced(p.id):
        p.is_active = False
        db.session.commit()
        current_app.logger.info("Deactivated product %s (id=%s, has documents)", p.code, p.id)
        return {"deleted": False, "deactivated": True, "product": p.to_dict()}

    code = p.code
    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Deleted product %s (id=%s)", code, product_id)
    return {"deleted": True, "deactivated": False, "product": None}


# ---------------------------------------------------------------------------
# Customers and suppliers
# ---------------------------------------------------------------------------

def _create_party(model, patch: dict) -> dict:
    if not (patch.get("name") or "").strip():
        raise ValidationError("name is required")

    party = model()
    for k, v in patch.items():
        if k in PARTY_MUTABLE_FIELDS:
            setattr(party, k, v)

    db.session.add(party)
    db.session.commit()
    current_app.logger.info("Created %s %s (id=%s)", model.__name__.lower(), party.name, party.id)
    return party.to_dict()


def _get_party(model, party_id: int):
    party = db.session.query(model).filter_by(id=party_id).first()
    if party is None:
        raise ReferenceNotFoundError(f"{model.__name__} not found", details={"id": party_id})
    return party


def _update_party(model, party_id: int, patch: dict) -> dict:
    party = _get_party(model, party_id)
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("name cannot be blank")

    for k, v in patch.items():
        if k in PARTY_MUTABLE_FIELDS:
            setattr(party, k, v)

    db.session.commit()
    current_app.logger.info(
        "Updated %s %s fields: %s",
        model.__name__.lower(), party.id, ", ".join(sorted(patch.keys())),
    )
    return party.to_dict()


def _delete_party(model, party_id: int, document_model, party_column) -> dict:
    """Same rule as delete_product: deactivate if any document points here."""
    party = _get_party(model, party_id)
    label = model.__name__.lower()

    used = db.session.query(document_model.id).filter(party_column == party.id).first()
    if used is not None:
        party.is_active = False
        db.session.commit()
        current_app.logger.info("Deactivated %s %s (id=%s, has documents)", label, party.name, party.id)
        return {"deleted": False, "deactivated": True, label: party.to_dict()}

    name = party.name
    db.session.delete(party)
    db.session.commit()
    current_app.logger.info("Deleted %s %s (id=%s)", label, name, party_id)
    return {"deleted": True, "deactivated": False, label: None}


def _list_parties(model, *, search: str | None, page: int | None, per_page: int | None) -> dict:
    query = db.session.query(model)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(model.name.ilike(pattern), model.tax_id.ilike(pattern)))
    return _paginate(query.order_by(model.name.asc(), model.id.asc()), page, per_page)


def create_customer(*, patch: dict) -> dict:
    return _create_party(Customer, patch)


def get_customer(customer_id: int) -> Customer:
    return _get_party(Customer, customer_id)


def update_customer(*, customer_id: int, patch: dict) -> dict:
    return _update_party(Customer, customer_id, patch)


def delete_customer(*, customer_id: int) -> dict:
    return _delete_party(Customer, customer_id, Sale, Sale.customer_id)


def list_customers(*, search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    return _list_parties(Customer, search=search, page=page, per_page=per_page)


def create_supplier(*, patch: dict) -> dict:
    return _create_party(Supplier, patch)


def get_supplier(supplier_id: int) -> Supplier:
    return _get_party(Supplier, supplier_id)


def update_supplier(*, supplier_id: int, patch: dict) -> dict:
    return _update_party(Supplier, supplier_id, patch)


def delete_supplier(*, supplier_id: int) -> dict:
    return _delete_party(Supplier, supplier_id, Purchase, Purchase.supplier_id)


def list_suppliers(*, search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    return _list_parties(Supplier, search=search, page=page, per_page=per_page)
