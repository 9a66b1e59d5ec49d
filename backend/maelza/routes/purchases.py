# Overview: Flask API routes for purchase operations; parses input and returns JSON responses.

# backend/maelza/routes/purchases.py
"""Purchases API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import MaelzaError
from ..services import purchase_service
from ..services.document_kinds import PURCHASE
from ..validation import parse_document_draft, parse_document_patch, parse_id, parse_list_args


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
def list_purchases_route():
    """
    List purchases, newest first.

    Query params: status, supplier_id, search, date_from, date_to, limit, offset
    """
    try:
        filters = parse_list_args(request.args, PURCHASE)
        purchases, total = purchase_service.list_purchases(**filters)
        return jsonify({
            "purchases": [purchase.to_dict(include_items=False) for purchase in purchases],
            "total": total,
        }), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("")
def create_purchase_route():
    """
    Create a purchase.

    Body: supplier_id, items[{product_id, quantity, unit_price?}],
    date?, notes?, status?, user_id?
    A purchase created as RECEIVED adds its stock immediately.
    """
    try:
        data = request.get_json(silent=True) or {}
        draft = parse_document_draft(data, PURCHASE)
        user_id = parse_id(data["user_id"], "user_id") if data.get("user_id") is not None else None

        purchase = purchase_service.create_purchase(draft, user_id=user_id)

        return jsonify({"purchase": purchase.to_dict()}), 201

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    """Get purchase with items and payables."""
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict()}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.put("/<int:purchase_id>")
def update_purchase_route(purchase_id: int):
    """
    Partially update a purchase.

    Moving to RECEIVED adds stock; RECEIVED -> PENDING removes it again.
    """
    try:
        data = request.get_json(silent=True) or {}
        patch = parse_document_patch(data, PURCHASE)

        purchase = purchase_service.update_purchase(purchase_id, patch)

        return jsonify({"purchase": purchase.to_dict()}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.delete("/<int:purchase_id>")
def delete_purchase_route(purchase_id: int):
    """Delete a purchase that is not received and has no payments."""
    try:
        purchase_service.delete_purchase(purchase_id)
        return jsonify({"message": "Purchase deleted"}), 200

    except MaelzaError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500
