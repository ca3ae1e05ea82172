# backend/storefront/services/catalog_service.py
"""
Catalog service: products and their variants.

STOCK WRITES:
- Initial stock on create is recorded as an ADDED movement (reference PRODUCT).
- A variant quantity edit is recorded as an ADJUSTED movement.
- Updates are stamp-gated through conditional_update.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..constants import (
    MOVEMENT_ADDED,
    MOVEMENT_ADJUSTED,
    REFERENCE_PRODUCT,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    stock_status_for,
)
from ..errors import ConflictError, NotFoundError, ServiceError, ValidationError
from ..extensions import db
from ..models import Branch, Product, ProductVariant
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_pricing,
    enforce_rules_stock,
    validate_payload,
)
from .concurrency import conditional_update
from .ledger_service import record_movement

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "vendor_id", "branch_id", "title", "description",
        "price_cents", "selling_price_cents", "quantity", "status",
    }),
    required_on_create=frozenset({"vendor_id", "branch_id", "title", "price_cents"}),
)

PRODUCT_UPDATE_FIELDS = frozenset({"title", "description", "price_cents", "selling_price_cents", "status"})

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "variant_name", "price_cents", "selling_price_cents", "quantity", "status",
    }),
    required_on_create=frozenset({"variant_name", "price_cents"}),
)


def _check_status(patch: dict) -> None:
    if "status" in patch and patch["status"] not in (STATUS_ACTIVE, STATUS_INACTIVE):
        raise ValidationError(f"Invalid status: {patch['status']}")


def _ensure_unique_variant_name(product_id: int, variant_name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(ProductVariant).filter(
        ProductVariant.product_id == product_id,
        ProductVariant.status == STATUS_ACTIVE,
        func.lower(ProductVariant.variant_name) == variant_name.lower(),
    )
    if exclude_id is not None:
        q = q.filter(ProductVariant.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(
            f"Variant '{variant_name}' already exists for this product",
            details={"product_id": product_id, "variant_name": variant_name},
        )


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product with id {product_id} not found")
    return product


def _check_vendor(product: Product, vendor_id: int | None) -> None:
    if vendor_id is not None and product.vendor_id != vendor_id:
        raise ValidationError("Product does not belong to this vendor")


def list_products(branch_id: int, *, active_only: bool = True) -> list[dict]:
    q = db.session.query(Product).filter(Product.branch_id == branch_id)
    if active_only:
        q = q.filter(Product.status == STATUS_ACTIVE)
    return [p.to_dict() for p in q.order_by(Product.title.asc(), Product.id.asc()).all()]


def create_product(data: dict, actor_id: int | None = None) -> Product:
    try:
        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
        patch.setdefault("selling_price_cents", patch["price_cents"])
        patch.setdefault("quantity", 0)
        enforce_rules_pricing(patch)
        enforce_rules_stock(patch)
        _check_status(patch)

        branch = db.session.get(Branch, patch["branch_id"])
        if branch is None:
            raise NotFoundError(f"Branch with id {patch['branch_id']} not found")
        if branch.vendor_id != patch["vendor_id"]:
            raise ValidationError("Branch does not belong to this vendor")

        product = Product(created_by=actor_id, updated_by=actor_id, **patch)
        product.refresh_stock_status()
        db.session.add(product)
        db.session.flush()

        if product.quantity > 0:
            record_movement(
                product_id=product.id,
                vendor_id=product.vendor_id,
                branch_id=product.branch_id,
                movement_type=MOVEMENT_ADDED,
                quantity_change=product.quantity,
                quantity_before=0,
                quantity_after=product.quantity,
                reference_type=REFERENCE_PRODUCT,
                reference_id=product.id,
                actor_id=actor_id,
                notes="Initial stock",
            )

        db.session.commit()
        return product
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        raise


def update_product(
    product_id: int,
    expected_stamp: str | None,
    data: dict,
    actor_id: int | None = None,
    *,
    vendor_id: int | None = None,
) -> Product:
    """Stamp-gated edit of product details. Stock changes go through adjust_inventory."""
    try:
        if "quantity" in (data or {}):
            raise ValidationError("Use inventory adjustment to change product quantity")
        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=True)
        _check_status(patch)
        product = get_product(product_id)
        _check_vendor(product, vendor_id)
        enforce_rules_pricing({
            "price_cents": patch.get("price_cents", product.price_cents),
            "selling_price_cents": patch.get("selling_price_cents", product.selling_price_cents),
        })

        product = conditional_update(
            Product,
            product_id,
            expected_stamp,
            patch,
            actor_id=actor_id,
            allowed_fields=PRODUCT_UPDATE_FIELDS,
        )
        db.session.commit()
        return product
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        raise


def create_variant(
    product_id: int,
    data: dict,
    actor_id: int | None = None,
    *,
    vendor_id: int | None = None,
) -> ProductVariant:
    try:
        product = get_product(product_id)
        _check_vendor(product, vendor_id)
        patch = validate_payload(model=ProductVariant, payload=data, policy=VARIANT_POLICY, partial=False)
        patch.setdefault("selling_price_cents", patch["price_cents"])
        patch.setdefault("quantity", 0)
        enforce_rules_pricing(patch)
        enforce_rules_stock(patch)
        _check_status(patch)

        if patch.get("status", STATUS_ACTIVE) == STATUS_ACTIVE:
            _ensure_unique_variant_name(product.id, patch["variant_name"])

        variant = ProductVariant(product_id=product.id, created_by=actor_id, updated_by=actor_id, **patch)
        variant.refresh_stock_status()
        db.session.add(variant)
        db.session.flush()

        if variant.quantity > 0:
            record_movement(
                product_id=product.id,
                variant_id=variant.id,
                vendor_id=product.vendor_id,
                branch_id=product.branch_id,
                movement_type=MOVEMENT_ADDED,
                quantity_change=variant.quantity,
                quantity_before=0,
                quantity_after=variant.quantity,
                reference_type=REFERENCE_PRODUCT,
                reference_id=product.id,
                actor_id=actor_id,
                notes="Initial variant stock",
            )

        db.session.commit()
        return variant
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create variant for product %s", product_id)
        raise


def update_variant(
    variant_id: int,
    expected_stamp: str | None,
    data: dict,
    actor_id: int | None = None,
    *,
    vendor_id: int | None = None,
) -> ProductVariant:
    try:
        patch = validate_payload(model=ProductVariant, payload=data, policy=VARIANT_POLICY, partial=True)
        enforce_rules_stock(patch)
        _check_status(patch)

        variant = db.session.get(ProductVariant, variant_id)
        if variant is None:
            raise NotFoundError(f"Variant with id {variant_id} not found")
        _check_vendor(variant.product, vendor_id)
        enforce_rules_pricing({
            "price_cents": patch.get("price_cents", variant.price_cents),
            "selling_price_cents": patch.get("selling_price_cents", variant.selling_price_cents),
        })

        name = patch.get("variant_name", variant.variant_name)
        status = patch.get("status", variant.status)
        if status == STATUS_ACTIVE and ("variant_name" in patch or "status" in patch):
            _ensure_unique_variant_name(variant.product_id, name, exclude_id=variant.id)

        if "quantity" in patch:
            patch["stock_status"] = stock_status_for(patch["quantity"])

        quantity_before = variant.quantity
        variant = conditional_update(
            ProductVariant,
            variant_id,
            expected_stamp,
            patch,
            actor_id=actor_id,
        )

        change = variant.quantity - quantity_before
        if change != 0:
            product = variant.product
            record_movement(
                product_id=variant.product_id,
                variant_id=variant.id,
                vendor_id=product.vendor_id,
                branch_id=product.branch_id,
                movement_type=MOVEMENT_ADJUSTED,
                quantity_change=change,
                quantity_before=quantity_before,
                quantity_after=variant.quantity,
                reference_type=REFERENCE_PRODUCT,
                reference_id=variant.product_id,
                actor_id=actor_id,
                notes="Variant quantity updated",
            )

        db.session.commit()
        return variant
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update variant %s", variant_id)
        raise
