# Overview: Order placement and status transitions; the transactional core of fulfillment.

from __future__ import annotations

from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..constants import (
    DISCOUNT_OFFER,
    DISCOUNT_PROMOCODE,
    MOVEMENT_REMOVED,
    ORDER_PENDING,
    ORDER_PRIORITIES,
    ORDER_STATUS_TRANSITIONS,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    PAYMENT_UNPAID,
    REFERENCE_ORDER,
    ROLE_RIDER,
    stock_status_for,
)
from ..errors import ConcurrencyError, NotFoundError, ServiceError, ValidationError
from ..extensions import db
from ..models import (
    Branch,
    Order,
    OrderDiscount,
    OrderItem,
    OrderStatusHistory,
    Product,
    User,
)
from ..time_utils import utcnow
from . import notification_service
from .address_service import resolve_checkout_address
from .cart_service import active_cart_items
from .concurrency import conditional_update, flush_or_conflict, lock_for_update, rotate_stamp
from .discount_service import ensure_single_code, resolve_discount
from .ledger_service import record_movement

"""
Order placement invariants (authoritative)

- All validation (branch, cart, stock, discount, address) happens before the
  first write. A rejected placement leaves no trace.
- Stock decrements, the order, its discount, items, first history row and
  the cart clear are one transaction. Any failure rolls all of it back.
- Product rows are decremented through the versioned UPDATE against the
  stamp loaded during validation. If another writer changed the product in
  between, the placement fails with ConcurrencyError instead of overselling.
- Notifications run only after commit and can never undo it.
- Nothing here is retried automatically.
"""


def can_transition(current_status: str, new_status: str) -> bool:
    """Forward-only lifecycle check. Advisory; update_order_status does not call it."""
    return new_status in ORDER_STATUS_TRANSITIONS.get(current_status, ())


def generate_order_number(now=None) -> str:
    """Next per-day number: PREFIX-YYYYMMDD-NNNNNN."""
    now = now or utcnow()
    prefix = f"{current_app.config.get('ORDER_NUMBER_PREFIX', 'ORD')}-{now:%Y%m%d}-"
    last = (
        db.session.query(Order.order_number)
        .filter(Order.order_number.like(f"{prefix}%"))
        .order_by(Order.order_number.desc())
        .first()
    )
    sequence = 1
    if last is not None:
        sequence = int(last[0].rsplit("-", 1)[-1]) + 1
    return f"{prefix}{sequence:06d}"


def _notify_after_commit(func, **kwargs) -> None:
    """Run a post-commit notifier; its failure is logged, never raised."""
    try:
        func(**kwargs)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to dispatch %s for order %s", func.__name__, kwargs.get("order_id"))


def _validate_placement_options(shipping_cents, order_priority, estimated_delivery_minutes) -> None:
    if not isinstance(shipping_cents, int) or isinstance(shipping_cents, bool) or shipping_cents < 0:
        raise ValidationError("shipping_cents must be a non-negative integer")
    if order_priority not in ORDER_PRIORITIES:
        raise ValidationError(f"Invalid order priority: {order_priority}")
    if estimated_delivery_minutes is not None and (
        not isinstance(estimated_delivery_minutes, int)
        or isinstance(estimated_delivery_minutes, bool)
        or estimated_delivery_minutes < 0
    ):
        raise ValidationError("estimated_delivery_minutes must be a non-negative integer")


def _place_order_inner(
    *,
    user_id: int,
    branch_id: int,
    cart_owner_id: int,
    vendor_id: Optional[int],
    offer_code: Optional[str],
    promocode_id: Optional[int],
    address: Optional[dict],
    address_id: Optional[int],
    shipping_cents: int,
    order_priority: str,
    estimated_delivery_minutes: Optional[int],
) -> tuple[Order, int]:
    # Preconditions
    if not branch_id:
        raise ValidationError("branch_id is required")
    ensure_single_code(offer_code, promocode_id)
    _validate_placement_options(shipping_cents, order_priority, estimated_delivery_minutes)

    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError(f"Branch with id {branch_id} not found")
    if vendor_id is not None and branch.vendor_id != vendor_id:
        raise ValidationError("Branch does not belong to this vendor")

    # Cart
    cart_items = active_cart_items(cart_owner_id)
    if not cart_items:
        raise ValidationError("No items in the cart")
    foreign = sorted({item.branch_id for item in cart_items if item.branch_id != branch_id})
    if foreign:
        raise ValidationError(
            "Cart contains items from another branch",
            details={"branch_ids": foreign},
        )

    # Stock
    product_ids = sorted({item.product_id for item in cart_items})
    products = {
        p.id: p
        for p in lock_for_update(db.session.query(Product).filter(Product.id.in_(product_ids))).all()
    }
    subtotal_cents = 0
    for item in cart_items:
        product = products.get(item.product_id)
        if product is None:
            raise NotFoundError(f"Product with id {item.product_id} not found")
        if item.quantity > product.quantity:
            raise ValidationError(
                f"quantity for the {product.title} is left with only {product.quantity}",
                details={"product_id": product.id, "available": product.quantity, "requested": item.quantity},
            )
        subtotal_cents += item.unit_price_cents * item.quantity

    # Discount
    discount = resolve_discount(
        subtotal_cents,
        offer_code=offer_code,
        promocode_id=promocode_id,
        branch_id=branch_id,
    )

    # Address
    shipping_address = resolve_checkout_address(user_id, address_id=address_id, address=address)

    # Persist
    order = Order(
        order_number=generate_order_number(),
        user_id=user_id,
        vendor_id=branch.vendor_id,
        branch_id=branch.id,
        address_id=shipping_address.id,
        subtotal_cents=subtotal_cents,
        discount_cents=discount.discount_cents,
        shipping_cents=shipping_cents,
        total_cents=discount.final_cents + shipping_cents,
        status=ORDER_PENDING,
        payment_status=PAYMENT_UNPAID,
        order_priority=order_priority,
        estimated_delivery_minutes=estimated_delivery_minutes,
        created_by=user_id,
        updated_by=user_id,
    )
    db.session.add(order)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConcurrencyError("Another order was placed at the same time. Please retry.") from exc

    for item in cart_items:
        product = products[item.product_id]
        quantity_before = product.quantity
        quantity_after = quantity_before - item.quantity
        if quantity_after < 0:
            raise ValidationError(
                f"quantity for the {product.title} is left with only {quantity_before}",
                details={"product_id": product.id, "available": quantity_before, "requested": item.quantity},
            )
        product.quantity = quantity_after
        product.stock_status = stock_status_for(quantity_after)
        product.updated_by = user_id
        rotate_stamp(product)

        record_movement(
            product_id=product.id,
            vendor_id=product.vendor_id,
            branch_id=product.branch_id,
            movement_type=MOVEMENT_REMOVED,
            quantity_change=-item.quantity,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reference_type=REFERENCE_ORDER,
            reference_id=order.id,
            actor_id=user_id,
            notes=f"Order {order.order_number}",
        )

    if discount.applied:
        db.session.add(OrderDiscount(
            order_id=order.id,
            discount_type=discount.discount_type,
            offer_id=discount.reference_id if discount.discount_type == DISCOUNT_OFFER else None,
            promocode_id=discount.reference_id if discount.discount_type == DISCOUNT_PROMOCODE else None,
            discount_percentage=discount.percentage,
            discount_cents=discount.discount_cents,
            original_cents=subtotal_cents,
            final_cents=discount.final_cents,
        ))

    db.session.add(OrderStatusHistory(
        order_id=order.id,
        status=ORDER_PENDING,
        previous_status=None,
        changed_by=user_id,
    ))

    for item in cart_items:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            quantity=item.quantity,
            price_at_purchase_cents=item.unit_price_cents,
        ))

    for item in cart_items:
        db.session.delete(item)

    flush_or_conflict()
    return order, len(cart_items)


def place_order(
    user_id: int,
    branch_id: int,
    vendor_id: Optional[int] = None,
    offer_code: Optional[str] = None,
    promocode_id: Optional[int] = None,
    address: Optional[dict] = None,
    address_id: Optional[int] = None,
    shipping_cents: int = 0,
    order_priority: str = "NORMAL",
    estimated_delivery_minutes: Optional[int] = None,
    cart_owner_id: Optional[int] = None,
) -> dict:
    """
    Turn the caller's cart into a PENDING order.

    cart_owner_id defaults to user_id. Returns a summary of the committed
    order; raises a ServiceError subclass on any business rejection.
    """
    try:
        order, item_count = _place_order_inner(
            user_id=user_id,
            branch_id=branch_id,
            cart_owner_id=cart_owner_id if cart_owner_id is not None else user_id,
            vendor_id=vendor_id,
            offer_code=offer_code,
            promocode_id=promocode_id,
            address=address,
            address_id=address_id,
            shipping_cents=shipping_cents,
            order_priority=order_priority,
            estimated_delivery_minutes=estimated_delivery_minutes,
        )
        result = {
            "order_id": order.id,
            "order_number": order.order_number,
            "total_amount_cents": order.total_cents,
            "subtotal_cents": order.subtotal_cents,
            "discount_cents": order.discount_cents,
            "shipping_cents": order.shipping_cents,
            "item_count": item_count,
        }
        db.session.commit()
    except ServiceError as exc:
        db.session.rollback()
        current_app.logger.info(
            "Order placement aborted for user=%s branch=%s: %s", user_id, branch_id, exc.message
        )
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to place order for user=%s branch=%s", user_id, branch_id)
        raise

    _notify_after_commit(
        notification_service.notify_order_placed,
        order_id=result["order_id"],
        order_number=result["order_number"],
        branch_id=order.branch_id,
        vendor_id=order.vendor_id,
        user_id=order.user_id,
        total_cents=result["total_amount_cents"],
    )
    return result


def _get_scoped_order(
    order_id: int,
    *,
    user_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
    rider_id: Optional[int] = None,
) -> Order:
    """Load an order visible to the caller; anything outside its scope reads as missing."""
    order = db.session.get(Order, order_id)
    if (
        order is None
        or (user_id is not None and order.user_id != user_id)
        or (vendor_id is not None and order.vendor_id != vendor_id)
        or (rider_id is not None and order.rider_id not in (None, rider_id))
    ):
        raise NotFoundError(f"Order with id {order_id} not found")
    return order


def update_order_status(
    order_id: int,
    expected_stamp: Optional[str],
    new_status: Optional[str] = None,
    actor_id: Optional[int] = None,
    notes: Optional[str] = None,
    payment_status: Optional[str] = None,
    *,
    vendor_id: Optional[int] = None,
) -> dict:
    """
    Stamp-gated status change.

    - Any status may follow any other; see can_transition for the advisory table.
    - A history row is written only when the status actually changes, but the
      stamp rotates on every successful call.
    - A RIDER actor is recorded as the order's rider and cannot touch an
      order already assigned to another rider.
    - vendor_id confines the call to that vendor's orders.
    """
    try:
        if new_status is not None and new_status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {new_status}")
        if payment_status is not None and payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {payment_status}")

        actor = db.session.get(User, actor_id) if actor_id is not None else None
        rider_id = actor.id if actor is not None and actor.role == ROLE_RIDER else None
        order = _get_scoped_order(order_id, vendor_id=vendor_id, rider_id=rider_id)
        previous_status = order.status

        changes = {}
        if new_status is not None:
            changes["status"] = new_status
        if payment_status is not None:
            changes["payment_status"] = payment_status
        if rider_id is not None:
            changes["rider_id"] = rider_id

        order = conditional_update(Order, order_id, expected_stamp, changes, actor_id=actor_id)

        status_changed = new_status is not None and new_status != previous_status
        if status_changed:
            db.session.add(OrderStatusHistory(
                order_id=order.id,
                status=new_status,
                previous_status=previous_status,
                changed_by=actor_id,
                notes=notes,
            ))
            flush_or_conflict()

        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update order %s status", order_id)
        raise

    if status_changed:
        _notify_after_commit(
            notification_service.notify_order_status_changed,
            order_id=order.id,
            order_number=order.order_number,
            branch_id=order.branch_id,
            vendor_id=order.vendor_id,
            new_status=new_status,
            user_id=order.user_id,
        )
    return {"concurrency_stamp": order.concurrency_stamp}


def _discount_shares(items: list[OrderItem], discount_cents: int, subtotal_cents: int) -> list[int]:
    """Split the order discount across lines in proportion to line totals; shares sum exactly."""
    if not items or discount_cents <= 0 or subtotal_cents <= 0:
        return [0 for _ in items]
    shares = [item.line_total_cents * discount_cents // subtotal_cents for item in items]
    shares[-1] += discount_cents - sum(shares)
    return shares


def get_order_details(
    order_id: int,
    user_id: Optional[int] = None,
    *,
    vendor_id: Optional[int] = None,
    rider_id: Optional[int] = None,
) -> dict:
    """
    Order with items, applied discount, address and status.

    user_id restricts to the owner, vendor_id to the vendor's orders and
    rider_id to orders that are unassigned or assigned to that rider.
    """
    order = _get_scoped_order(order_id, user_id=user_id, vendor_id=vendor_id, rider_id=rider_id)

    items = list(order.items)
    shares = _discount_shares(items, order.discount_cents, order.subtotal_cents)
    item_rows = []
    for item, share in zip(items, shares):
        row = item.to_dict()
        row["title"] = item.product.title if item.product is not None else None
        row["discount_share_cents"] = share
        row["net_total_cents"] = item.line_total_cents - share
        item_rows.append(row)

    payload = order.to_dict()
    payload["items"] = item_rows
    payload["discount"] = order.discount.to_dict() if order.discount is not None else None
    payload["address"] = order.address.to_dict() if order.address is not None else None
    return payload


def list_status_history(
    order_id: int,
    *,
    vendor_id: Optional[int] = None,
    rider_id: Optional[int] = None,
) -> list[dict]:
    _get_scoped_order(order_id, vendor_id=vendor_id, rider_id=rider_id)
    rows = (
        db.session.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.id.asc())
        .all()
    )
    return [row.to_dict() for row in rows]
