# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

# backend/maelza/routes/parties.py
"""Customer and supplier routes (the parties of sales and purchases)."""
from flask import Blueprint, request, current_app
from ..services import catalog_service
from ..models import Customer, Supplier
from ..errors import MaelzaError
from ..validation import ModelValidationPolicy, validate_payload

PARTY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "tax_id", "email", "phone", "address", "is_active"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@customers_bp.get("")
def list_customers():
    """Query params: search, page, per_page"""
    return catalog_service.list_customers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        return catalog_service.get_customer(customer_id).to_dict()
    except MaelzaError as e:
        return e.to_dict(), e.status_code


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=PARTY_POLICY, partial=False)
        created = catalog_service.create_customer(patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500
    return created, 201


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=PARTY_POLICY, partial=True)
        updated = catalog_service.update_customer(customer_id=customer_id, patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500
    return updated, 200


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    """Delete a customer, or deactivate one that already has sales."""
    try:
        result = catalog_service.delete_customer(customer_id=customer_id)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return {"error": "Internal server error"}, 500
    return result, 200


@suppliers_bp.get("")
def list_suppliers():
    """Query params: search, page, per_page"""
    return catalog_service.list_suppliers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier_route(supplier_id: int):
    try:
        return catalog_service.get_supplier(supplier_id).to_dict()
    except MaelzaError as e:
        return e.to_dict(), e.status_code


@suppliers_bp.post("")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=PARTY_POLICY, partial=False)
        created = catalog_service.create_supplier(patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500
    return created, 201


@suppliers_bp.put("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=PARTY_POLICY, partial=True)
        updated = catalog_service.update_supplier(supplier_id=supplier_id, patch=patch)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return {"error": "Internal server error"}, 500
    return updated, 200


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier_route(supplier_id: int):
    """Delete a supplier, or deactivate one that already has purchases."""
    try:
        result = catalog_service.delete_supplier(supplier_id=supplier_id)
    except MaelzaError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return {"error": "Internal server error"}, 500
    return result, 200
