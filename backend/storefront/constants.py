"""Status vocabularies shared by models and services."""

from __future__ import annotations

# Generic row status (cart items, variants, products, promocodes)
STATUS_ACTIVE = "ACTIVE"
STATUS_INACTIVE = "INACTIVE"
STATUS_OPEN = "OPEN"  # offers only: created, waiting for the validity window

OFFER_STATUSES = (STATUS_OPEN, STATUS_ACTIVE, STATUS_INACTIVE)
PROMOCODE_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

# Stock status, always derived from quantity
IN_STOCK = "IN_STOCK"
OUT_OF_STOCK = "OUT_OF_STOCK"


def stock_status_for(quantity: int) -> str:
    return IN_STOCK if (quantity or 0) > 0 else OUT_OF_STOCK


# Order lifecycle
ORDER_PENDING = "PENDING"
ORDER_ACCEPTED = "ACCEPTED"
ORDER_READY_FOR_PICKUP = "READY_FOR_PICKUP"
ORDER_PICKED_UP = "PICKED_UP"
ORDER_ARRIVED = "ARRIVED"
ORDER_DELIVERED = "DELIVERED"
ORDER_CANCELLED = "CANCELLED"
ORDER_REJECTED = "REJECTED"
ORDER_RETURN = "RETURN"
ORDER_RETURNED = "RETURNED"
ORDER_FAILED = "FAILED"

ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_ACCEPTED,
    ORDER_READY_FOR_PICKUP,
    ORDER_PICKED_UP,
    ORDER_ARRIVED,
    ORDER_RETURN,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
    ORDER_REJECTED,
    ORDER_RETURNED,
    ORDER_FAILED,
)

# Forward-only lifecycle. Advisory: update_order_status does not enforce it.
ORDER_STATUS_TRANSITIONS = {
    ORDER_PENDING: (ORDER_ACCEPTED, ORDER_CANCELLED, ORDER_REJECTED, ORDER_FAILED),
    ORDER_ACCEPTED: (ORDER_READY_FOR_PICKUP, ORDER_CANCELLED),
    ORDER_READY_FOR_PICKUP: (ORDER_PICKED_UP, ORDER_CANCELLED),
    ORDER_PICKED_UP: (ORDER_ARRIVED, ORDER_DELIVERED, ORDER_CANCELLED),
    ORDER_ARRIVED: (ORDER_DELIVERED, ORDER_CANCELLED),
    ORDER_RETURN: (ORDER_RETURNED,),
}

PAYMENT_UNPAID = "UNPAID"
PAYMENT_PAID = "PAID"
PAYMENT_FAILED = "FAILED"
PAYMENT_STATUSES = (PAYMENT_UNPAID, PAYMENT_PAID, PAYMENT_FAILED)

ORDER_PRIORITIES = ("NORMAL", "EXPRESS", "URGENT")

# Discounts
DISCOUNT_OFFER = "OFFER"
DISCOUNT_PROMOCODE = "PROMOCODE"

# Stock ledger
MOVEMENT_ADDED = "ADDED"
MOVEMENT_REMOVED = "REMOVED"
MOVEMENT_ADJUSTED = "ADJUSTED"
MOVEMENT_REVERTED = "REVERTED"
MOVEMENT_RETURNED = "RETURNED"

MOVEMENT_TYPES = frozenset({
    MOVEMENT_ADDED, MOVEMENT_REMOVED, MOVEMENT_ADJUSTED, MOVEMENT_REVERTED, MOVEMENT_RETURNED,
})
POSITIVE_MOVEMENT_TYPES = frozenset({MOVEMENT_ADDED, MOVEMENT_REVERTED, MOVEMENT_RETURNED})
NEGATIVE_MOVEMENT_TYPES = frozenset({MOVEMENT_REMOVED})

REFERENCE_PRODUCT = "PRODUCT"
REFERENCE_ORDER = "ORDER"
REFERENCE_MANUAL = "MANUAL"

# Users
ROLE_USER = "USER"
ROLE_VENDOR_ADMIN = "VENDOR_ADMIN"
ROLE_RIDER = "RIDER"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"

# Notifications
NOTIFY_ORDER_PLACED = "ORDER_PLACED"
NOTIFY_ORDER_UPDATED = "ORDER_UPDATED"
NOTIFY_ORDER_DELIVERED = "ORDER_DELIVERED"
