# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/maelza/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import MaelzaError
from ..services import sales_service
from ..services.document_kinds import SALE
from ..validation import parse_document_draft, parse_document_patch, parse_id, parse_list_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params: status, customer_id, search, date_from, date_to, limit, offset
    """
    try:
        filters = parse_list_args(request.args, SALE)
        sales, total = sales_service.list_sales(**filters)
        return jsonify({
            "sales": [sale.to_dict(include_items=False) for sale in sales],
            "total": total,
        }), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale.

    Body: customer_id, items[{product_id, quantity, unit_price?}],
    date?, notes?, status?, user_id?
    """
    try:
        data = request.get_json(silent=True) or {}
        draft = parse_document_draft(data, SALE)
        user_id = parse_id(data["user_id"], "user_id") if data.get("user_id") is not None else None

        sale = sales_service.create_sale(draft, user_id=user_id)

        return jsonify({"sale": sale.to_dict()}), 201

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with items."""
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Partially update a sale.

    Only the keys present in the body change. items replaces every line.
    A status change to or from completed moves stock.
    """
    try:
        data = request.get_json(silent=True) or {}
        patch = parse_document_patch(data, SALE)

        sale = sales_service.update_sale(sale_id, patch)

        return jsonify({"sale": sale.to_dict()}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Delete a sale that is not completed."""
    try:
        sales_service.delete_sale(sale_id)
        return jsonify({"message": "Sale deleted"}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
