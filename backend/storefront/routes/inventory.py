# Overview: Flask API routes for stock adjustment and the stock ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..constants import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..decorators import require_actor, require_role
from ..errors import ServiceError, ValidationError
from ..services import inventory_service, ledger_service
from ..time_utils import parse_iso_datetime

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def adjust_inventory_route():
    """
    Manual stock correction.

    Body: product_id, variant_id (optional), quantity_change, concurrency_stamp, notes
    """
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("product_id"):
            return jsonify({"error": "product_id required"}), 400

        vendor_id = data.get("vendor_id")
        if g.current_user.role == ROLE_VENDOR_ADMIN:
            vendor_id = g.current_user.vendor_id

        result = inventory_service.adjust_inventory(
            product_id=data["product_id"],
            variant_id=data.get("variant_id"),
            quantity_change=data.get("quantity_change"),
            actor_id=g.current_user.id,
            concurrency_stamp=data.get("concurrency_stamp"),
            notes=data.get("notes"),
            vendor_id=vendor_id,
            branch_id=data.get("branch_id"),
        )
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/movements")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def list_movements_route():
    try:
        try:
            date_from = parse_iso_datetime(request.args.get("date_from"))
            date_to = parse_iso_datetime(request.args.get("date_to"))
        except ValueError:
            raise ValidationError("date_from/date_to must be ISO-8601 datetimes")

        vendor_id = request.args.get("vendor_id", type=int)
        if g.current_user.role == ROLE_VENDOR_ADMIN:
            vendor_id = g.current_user.vendor_id

        result = ledger_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            variant_id=request.args.get("variant_id", type=int),
            vendor_id=vendor_id,
            branch_id=request.args.get("branch_id", type=int),
            movement_type=request.args.get("movement_type"),
            date_from=date_from,
            date_to=date_to,
            page_size=request.args.get("page_size", 10, type=int),
            page_number=request.args.get("page_number", 1, type=int),
        )
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
