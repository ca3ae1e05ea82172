# Overview: Shopping cart lines; one active line per (user, product) priced at add time.

from __future__ import annotations

from flask import current_app

from ..constants import STATUS_ACTIVE
from ..errors import ConflictError, NotFoundError, ServiceError, ValidationError
from ..extensions import db
from ..models import CartItem, Product
from .concurrency import assert_stamp, conditional_update, flush_or_conflict


def _positive_quantity(quantity) -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def _get_owned_item(cart_item_id: int, user_id: int) -> CartItem:
    item = db.session.get(CartItem, cart_item_id)
    if item is None or item.user_id != user_id or item.status != STATUS_ACTIVE:
        raise NotFoundError(f"Cart item with id {cart_item_id} not found")
    return item


def active_cart_items(user_id: int, branch_id: int | None = None) -> list[CartItem]:
    q = db.session.query(CartItem).filter(
        CartItem.user_id == user_id,
        CartItem.status == STATUS_ACTIVE,
    )
    if branch_id is not None:
        q = q.filter(CartItem.branch_id == branch_id)
    return q.order_by(CartItem.id.asc()).all()


def add_to_cart(
    user_id: int,
    product_id: int,
    quantity: int = 1,
    *,
    vendor_id: int | None = None,
    branch_id: int | None = None,
) -> CartItem:
    """Add a product line, capturing its current selling price."""
    try:
        quantity = _positive_quantity(quantity)
        product = db.session.get(Product, product_id)
        if product is None or product.status != STATUS_ACTIVE:
            raise NotFoundError(f"Product with id {product_id} not found")
        if vendor_id is not None and vendor_id != product.vendor_id:
            raise ValidationError("Vendor ID does not match")
        if branch_id is not None and branch_id != product.branch_id:
            raise ValidationError("Branch ID does not match")

        existing = (
            db.session.query(CartItem)
            .filter(
                CartItem.user_id == user_id,
                CartItem.product_id == product.id,
                CartItem.status == STATUS_ACTIVE,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError(
                "Product already in cart; update the existing item instead",
                details={"cart_item_id": existing.id, "concurrency_stamp": existing.concurrency_stamp},
            )

        item = CartItem(
            user_id=user_id,
            vendor_id=product.vendor_id,
            branch_id=product.branch_id,
            product_id=product.id,
            quantity=quantity,
            unit_price_cents=product.selling_price_cents,
            status=STATUS_ACTIVE,
        )
        db.session.add(item)
        db.session.commit()
        return item
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add product %s to cart for user=%s", product_id, user_id)
        raise


def update_cart_item(
    cart_item_id: int,
    user_id: int,
    expected_stamp: str | None,
    quantity: int,
) -> CartItem | None:
    """Stamp-gated quantity change. Quantity 0 removes the line and returns None."""
    try:
        if quantity == 0 and not isinstance(quantity, bool):
            item = _get_owned_item(cart_item_id, user_id)
            assert_stamp(item, expected_stamp)
            db.session.delete(item)
            flush_or_conflict()
            db.session.commit()
            return None

        quantity = _positive_quantity(quantity)
        _get_owned_item(cart_item_id, user_id)
        item = conditional_update(
            CartItem,
            cart_item_id,
            expected_stamp,
            {"quantity": quantity},
            allowed_fields={"quantity"},
        )
        db.session.commit()
        return item
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update cart item %s", cart_item_id)
        raise


def remove_cart_item(cart_item_id: int, user_id: int) -> None:
    try:
        item = _get_owned_item(cart_item_id, user_id)
        db.session.delete(item)
        flush_or_conflict()
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to remove cart item %s", cart_item_id)
        raise


def get_cart(user_id: int, branch_id: int | None = None) -> dict:
    items = active_cart_items(user_id, branch_id)
    return {
        "items": [item.to_dict() for item in items],
        "count": len(items),
        "total_cents": sum(item.unit_price_cents * item.quantity for item in items),
    }
