# Overview: Flask API routes for the acting user's delivery addresses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import ServiceError
from ..services import address_service

addresses_bp = Blueprint("addresses", __name__, url_prefix="/api/addresses")


@addresses_bp.get("")
@require_actor
def list_addresses_route():
    items = address_service.list_addresses(g.current_user.id)
    return jsonify({"items": items, "count": len(items)}), 200


@addresses_bp.post("")
@require_actor
def create_address_route():
    try:
        data = request.get_json(silent=True) or {}
        address = address_service.create_address(g.current_user.id, data)
        return jsonify({"address": address.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create address")
        return jsonify({"error": "Internal server error"}), 500
