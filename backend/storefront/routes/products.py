# Overview: Flask API routes for products and variants.

from flask import Blueprint, request, jsonify, g, current_app

from ..constants import ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN
from ..decorators import require_actor, require_role, vendor_scope
from ..errors import ServiceError
from ..services import catalog_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_actor
def list_products_route():
    branch_id = request.args.get("branch_id", type=int)
    if branch_id is None:
        return jsonify({"error": "branch_id required"}), 400
    items = catalog_service.list_products(branch_id)
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.post("")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def create_product_route():
    try:
        data = request.get_json(silent=True) or {}
        if g.current_user.role == ROLE_VENDOR_ADMIN:
            data["vendor_id"] = g.current_user.vendor_id
        product = catalog_service.create_product(data, g.current_user.id)
        return jsonify({"product": product.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def update_product_route(product_id: int):
    try:
        data = dict(request.get_json(silent=True) or {})
        stamp = data.pop("concurrency_stamp", None)
        product = catalog_service.update_product(
            product_id, stamp, data, g.current_user.id, vendor_id=vendor_scope()
        )
        return jsonify({"product": product.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("/<int:product_id>/variants")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def create_variant_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        variant = catalog_service.create_variant(
            product_id, data, g.current_user.id, vendor_id=vendor_scope()
        )
        return jsonify({"variant": variant.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create variant")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/variants/<int:variant_id>")
@require_actor
@require_role(ROLE_VENDOR_ADMIN, ROLE_SUPER_ADMIN)
def update_variant_route(variant_id: int):
    try:
        data = dict(request.get_json(silent=True) or {})
        stamp = data.pop("concurrency_stamp", None)
        variant = catalog_service.update_variant(
            variant_id, stamp, data, g.current_user.id, vendor_id=vendor_scope()
        )
        return jsonify({"variant": variant.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
