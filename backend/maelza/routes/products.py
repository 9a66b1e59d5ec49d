# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/maelza/routes/products.py
"""
Product management routes.

Stock is set once on create; afterwards it only changes through sales and
purchases, so PUT rejects it.
"""
from flask import Blueprint, request, current_app
from ..services import catalog_service
from ..models import Product
from ..errors import MaelzaError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code",
        "name",
        "description",
        "unit",
        "cost_price_cents",
        "sale_price_cents",
        "stock",
        "min_stock",
        "is_active",
    },
    required_on_create={"code", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products with optional pagination.

    Query params:
    - search: str (optional) - match on code or name
    - low_stock: bool (optional) - only products at or below min_stock
    - active: bool (optional) - hide inactive products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    result = catalog_service.list_products(
        search=request.args.get("search"),
        low_stock=request.args.get("low_stock", "").lower() in {"1", "true", "yes"},
        active_only=request.args.get("active", "").lower() in {"1", "true", "yes"},
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return catalog_service.get_product(product_id).to_dict()
    except MaelzaError as e:
        return e.to_dict(), e.status_code


@products_bp.post("")
def create_product_route():
    """Create a new product; stock is the opening quantity."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """Update product master data (not stock)."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated, 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """
    Delete a product.

    Products already used on a sale or purchase are deactivated instead, so
    those documents keep their lines.
    """
    try:
        result = catalog_service.delete_product(product_id=product_id)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    return result, 200
