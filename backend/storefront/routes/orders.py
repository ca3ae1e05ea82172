# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..constants import ROLE_RIDER, ROLE_SUPER_ADMIN, ROLE_USER, ROLE_VENDOR_ADMIN
from ..decorators import require_actor, require_role, rider_scope, vendor_scope
from ..errors import ServiceError
from ..services import order_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_actor
def place_order_route():
    """Place an order from the acting user's cart."""
    try:
        data = request.get_json(silent=True) or {}
        result = order_service.place_order(
            g.current_user.id,
            data.get("branch_id"),
            vendor_id=data.get("vendor_id"),
            offer_code=data.get("offer_code"),
            promocode_id=data.get("promocode_id"),
            address=data.get("address"),
            address_id=data.get("address_id"),
            shipping_cents=data.get("shipping_cents", 0),
            order_priority=data.get("order_priority", "NORMAL"),
            estimated_delivery_minutes=data.get("estimated_delivery_minutes"),
        )
        return jsonify({"order": result}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_RIDER, ROLE_SUPER_ADMIN)
def update_order_status_route(order_id: int):
    """
    Stamp-gated status change.

    Body: concurrency_stamp (required), status, payment_status, notes
    """
    try:
        data = request.get_json(silent=True) or {}
        result = order_service.update_order_status(
            order_id,
            data.get("concurrency_stamp"),
            new_status=data.get("status"),
            actor_id=g.current_user.id,
            notes=data.get("notes"),
            payment_status=data.get("payment_status"),
            vendor_id=vendor_scope(),
        )
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        owner_id = g.current_user.id if g.current_user.role == ROLE_USER else None
        order = order_service.get_order_details(
            order_id, user_id=owner_id, vendor_id=vendor_scope(), rider_id=rider_scope()
        )
        return jsonify({"order": order}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.get("/<int:order_id>/history")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_RIDER, ROLE_SUPER_ADMIN)
def get_order_history_route(order_id: int):
    try:
        history = order_service.list_status_history(
            order_id, vendor_id=vendor_scope(), rider_id=rider_scope()
        )
        return jsonify({"history": history, "count": len(history)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
