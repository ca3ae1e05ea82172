from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..constants import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..decorators import require_actor, require_role, vendor_scope
from ..errors import ServiceError
from ..services import promotions_service

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api")


def _without_stamp(data: dict) -> tuple[str | None, dict]:
    data = dict(data)
    return data.pop("concurrency_stamp", None), data


@promotions_bp.route("/offers", methods=["GET"])
@require_actor
def list_offers():
    active_only = request.args.get("active_only", "false").lower() == "true"
    result = promotions_service.list_offers(active_only)
    return jsonify({"offers": result, "count": len(result)})


@promotions_bp.route("/offers", methods=["POST"])
@require_actor
@require_role(ROLE_SUPER_ADMIN)
def create_offer():
    try:
        data = request.get_json(silent=True) or {}
        offer = promotions_service.create_offer(data, g.current_user.id)
        return jsonify(offer.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.route("/offers/<int:offer_id>", methods=["PATCH"])
@require_actor
@require_role(ROLE_SUPER_ADMIN)
def update_offer(offer_id: int):
    try:
        stamp, data = _without_stamp(request.get_json(silent=True) or {})
        offer = promotions_service.update_offer(offer_id, stamp, data, g.current_user.id)
        return jsonify(offer.to_dict())
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.route("/promocodes", methods=["GET"])
@require_actor
def list_promocodes():
    branch_id = request.args.get("branch_id", type=int)
    active_only = request.args.get("active_only", "false").lower() == "true"
    result = promotions_service.list_promocodes(branch_id, active_only)
    return jsonify({"promocodes": result, "count": len(result)})


@promotions_bp.route("/promocodes", methods=["POST"])
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def create_promocode():
    try:
        data = request.get_json(silent=True) or {}
        if g.current_user.role == ROLE_VENDOR_ADMIN:
            data["vendor_id"] = g.current_user.vendor_id
        promocode = promotions_service.create_promocode(data, g.current_user.id)
        return jsonify(promocode.to_dict()), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.route("/promocodes/<int:promocode_id>", methods=["PATCH"])
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def update_promocode(promocode_id: int):
    try:
        stamp, data = _without_stamp(request.get_json(silent=True) or {})
        promocode = promotions_service.update_promocode(
            promocode_id, stamp, data, g.current_user.id, vendor_id=vendor_scope()
        )
        return jsonify(promocode.to_dict())
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update promocode")
        return jsonify({"error": "Internal server error"}), 500
