# Overview: Flask API routes for the acting user's cart.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import ServiceError
from ..services import cart_service

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_actor
def get_cart_route():
    branch_id = request.args.get("branch_id", type=int)
    return jsonify(cart_service.get_cart(g.current_user.id, branch_id)), 200


@cart_bp.post("")
@require_actor
def add_to_cart_route():
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("product_id"):
            return jsonify({"error": "product_id required"}), 400

        item = cart_service.add_to_cart(
            g.current_user.id,
            data["product_id"],
            data.get("quantity", 1),
            vendor_id=data.get("vendor_id"),
            branch_id=data.get("branch_id"),
        )
        return jsonify({"item": item.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/<int:cart_item_id>")
@require_actor
def update_cart_item_route(cart_item_id: int):
    """Body: quantity, concurrency_stamp. Quantity 0 removes the line."""
    try:
        data = request.get_json(silent=True) or {}
        item = cart_service.update_cart_item(
            cart_item_id,
            g.current_user.id,
            data.get("concurrency_stamp"),
            data.get("quantity"),
        )
        return jsonify({"item": item.to_dict() if item is not None else None}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/<int:cart_item_id>")
@require_actor
def remove_cart_item_route(cart_item_id: int):
    try:
        cart_service.remove_cart_item(cart_item_id, g.current_user.id)
        return "", 204

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
