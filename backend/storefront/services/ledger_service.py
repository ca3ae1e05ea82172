# Overview: Service-layer operations for the stock ledger; best-effort audit of quantity changes.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..constants import (
    MOVEMENT_TYPES,
    NEGATIVE_MOVEMENT_TYPES,
    POSITIVE_MOVEMENT_TYPES,
)
from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryMovement
from .concurrency import flush_or_conflict
"""
Stock ledger invariants (authoritative)

- Append-only. Rows are never updated or deleted by the application.
- Advisory: Product/ProductVariant.quantity is the source of truth and the
  ledger is never read to compute stock.
- A ledger write never aborts the stock mutation it records. The row is
  written inside a SAVEPOINT; validation or storage failures are logged and
  swallowed, and only the SAVEPOINT is rolled back.
"""


def validate_movement(movement_type: str, quantity_change: int, quantity_before: int, quantity_after: int) -> None:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type}")
    for name, value in (
        ("quantity_change", quantity_change),
        ("quantity_before", quantity_before),
        ("quantity_after", quantity_after),
    ):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{name} must be an integer")
    if movement_type in POSITIVE_MOVEMENT_TYPES and quantity_change <= 0:
        raise ValidationError(f"{movement_type} movement requires a positive quantity change")
    if movement_type in NEGATIVE_MOVEMENT_TYPES and quantity_change >= 0:
        raise ValidationError(f"{movement_type} movement requires a negative quantity change")
    if quantity_after - quantity_before != quantity_change:
        raise ValidationError("quantity_after - quantity_before must equal quantity_change")


def record_movement(
    *,
    product_id: int | None,
    variant_id: int | None = None,
    vendor_id: int | None = None,
    branch_id: int | None = None,
    movement_type: str,
    quantity_change: int,
    quantity_before: int,
    quantity_after: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    actor_id: int | None = None,
    notes: str | None = None,
) -> Optional[InventoryMovement]:
    """
    Append one ledger row; returns it, or None when it was skipped.

    The caller's pending writes are flushed first (outside the SAVEPOINT) so
    a conflict on the caller's own rows still surfaces as ConcurrencyError.
    """
    flush_or_conflict()

    try:
        validate_movement(movement_type, quantity_change, quantity_before, quantity_after)
    except ValidationError as exc:
        current_app.logger.warning(
            "Skipping inventory movement for product=%s variant=%s: %s",
            product_id,
            variant_id,
            exc.message,
        )
        return None

    movement = InventoryMovement(
        product_id=product_id,
        variant_id=variant_id,
        vendor_id=vendor_id,
        branch_id=branch_id,
        movement_type=movement_type,
        quantity_change=quantity_change,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=actor_id,
        notes=notes,
    )
    try:
        with db.session.begin_nested():
            db.session.add(movement)
    except SQLAlchemyError:
        current_app.logger.exception(
            "Failed to record inventory movement for product=%s variant=%s",
            product_id,
            variant_id,
        )
        return None
    return movement


def list_movements(
    *,
    product_id: int | None = None,
    variant_id: int | None = None,
    vendor_id: int | None = None,
    branch_id: int | None = None,
    movement_type: str | None = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page_size: int = 10,
    page_number: int = 1,
) -> dict:
    """Paged ledger read, newest first. Date bounds are inclusive."""
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type}")

    max_size = current_app.config.get("LEDGER_PAGE_SIZE_MAX", 200)
    page_size = max(1, min(int(page_size or 10), max_size))
    page_number = max(1, int(page_number or 1))

    query = db.session.query(InventoryMovement)
    if product_id is not None:
        query = query.filter(InventoryMovement.product_id == product_id)
    if variant_id is not None:
        query = query.filter(InventoryMovement.variant_id == variant_id)
    if vendor_id is not None:
        query = query.filter(InventoryMovement.vendor_id == vendor_id)
    if branch_id is not None:
        query = query.filter(InventoryMovement.branch_id == branch_id)
    if movement_type is not None:
        query = query.filter(InventoryMovement.movement_type == movement_type)
    if date_from is not None:
        query = query.filter(InventoryMovement.created_at >= date_from)
    if date_to is not None:
        query = query.filter(InventoryMovement.created_at <= date_to)

    total_count = query.count()
    rows = (
        query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .offset((page_number - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "count": len(rows),
        "total_count": total_count,
        "doc": [row.to_dict() for row in rows],
    }
