# Overview: Service-layer operations for manual stock adjustment; stamp-gated and ledgered.

from __future__ import annotations

from flask import current_app

from ..constants import MOVEMENT_ADDED, MOVEMENT_ADJUSTED, REFERENCE_MANUAL, stock_status_for
from ..errors import NotFoundError, ServiceError, ValidationError
from ..extensions import db
from ..models import Product, ProductVariant
from .concurrency import conditional_update
from .ledger_service import record_movement


def _load_target(product_id: int, variant_id: int | None):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product with id {product_id} not found")
    if variant_id is None:
        return product, None
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None or variant.product_id != product.id:
        raise NotFoundError(f"Variant with id {variant_id} not found for product {product_id}")
    return product, variant


def adjust_inventory(
    *,
    product_id: int,
    variant_id: int | None = None,
    quantity_change: int,
    actor_id: int | None,
    concurrency_stamp: str | None,
    notes: str | None = None,
    vendor_id: int | None = None,
    branch_id: int | None = None,
) -> dict:
    """
    Manual stock correction for a product, or for one of its variants.

    - concurrency_stamp is the stamp of the row being adjusted (the variant
      when variant_id is given).
    - Positive change is recorded as ADDED, negative as ADJUSTED.
    - A change that would take quantity below zero is rejected.
    """
    try:
        if not isinstance(quantity_change, int) or isinstance(quantity_change, bool):
            raise ValidationError("quantity_change must be an integer")
        if quantity_change == 0:
            raise ValidationError("quantity_change must be non-zero")

        product, variant = _load_target(product_id, variant_id)
        if vendor_id is not None and product.vendor_id != vendor_id:
            raise ValidationError("Product does not belong to this vendor")
        if branch_id is not None and product.branch_id != branch_id:
            raise ValidationError("Product does not belong to this branch")

        target = variant or product
        quantity_before = target.quantity
        quantity_after = quantity_before + quantity_change
        if quantity_after < 0:
            raise ValidationError(
                f"Adjustment would make quantity negative (on hand {quantity_before})",
                details={"quantity_before": quantity_before, "quantity_change": quantity_change},
            )

        target = conditional_update(
            type(target),
            target.id,
            concurrency_stamp,
            {"quantity": quantity_after, "stock_status": stock_status_for(quantity_after)},
            actor_id=actor_id,
        )

        record_movement(
            product_id=product.id,
            variant_id=variant.id if variant is not None else None,
            vendor_id=product.vendor_id,
            branch_id=product.branch_id,
            movement_type=MOVEMENT_ADDED if quantity_change > 0 else MOVEMENT_ADJUSTED,
            quantity_change=quantity_change,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reference_type=REFERENCE_MANUAL,
            reference_id=product.id,
            actor_id=actor_id,
            notes=notes,
        )

        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust inventory for product=%s variant=%s", product_id, variant_id)
        raise

    current_app.logger.info(
        "Inventory adjusted product=%s variant=%s change=%s (%s -> %s)",
        product_id,
        variant_id,
        quantity_change,
        quantity_before,
        quantity_after,
    )
    return {
        "product_id": product_id,
        "variant_id": variant_id,
        "quantity_before": quantity_before,
        "quantity_after": quantity_after,
        "quantity_change": quantity_change,
        "concurrency_stamp": target.concurrency_stamp,
    }
