# Overview: Post-commit order notifications, persisted to the notifications outbox.

from __future__ import annotations

from flask import current_app

from ..constants import (
    NOTIFY_ORDER_DELIVERED,
    NOTIFY_ORDER_PLACED,
    NOTIFY_ORDER_UPDATED,
    ORDER_DELIVERED,
)
from ..extensions import db
from ..models import Notification

ENTITY_ORDER = "ORDER"


def _humanize(status: str) -> str:
    return status.replace("_", " ").lower()


def _write(rows: list[Notification]) -> list[Notification]:
    """Persist outbox rows in their own transaction."""
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
        return []
    db.session.add_all(rows)
    db.session.commit()
    return rows


def notify_order_placed(
    *,
    order_id: int,
    order_number: str,
    branch_id: int,
    vendor_id: int,
    user_id: int,
    total_cents: int,
) -> list[Notification]:
    rows = [
        Notification(
            notification_type=NOTIFY_ORDER_PLACED,
            entity_type=ENTITY_ORDER,
            entity_id=order_id,
            user_id=user_id,
            title="Order placed",
            message=f"Your order {order_number} has been placed.",
        ),
        Notification(
            notification_type=NOTIFY_ORDER_PLACED,
            entity_type=ENTITY_ORDER,
            entity_id=order_id,
            vendor_id=vendor_id,
            branch_id=branch_id,
            title="New order received",
            message=f"Order {order_number} received ({total_cents} cents).",
            priority="HIGH",
        ),
    ]
    return _write(rows)


def notify_order_status_changed(
    order_id: int,
    order_number: str,
    branch_id: int,
    vendor_id: int,
    new_status: str,
    user_id: int,
) -> list[Notification]:
    notification_type = NOTIFY_ORDER_DELIVERED if new_status == ORDER_DELIVERED else NOTIFY_ORDER_UPDATED
    status_text = _humanize(new_status)
    rows = [
        Notification(
            notification_type=notification_type,
            entity_type=ENTITY_ORDER,
            entity_id=order_id,
            user_id=user_id,
            title="Order update",
            message=f"Your order {order_number} is {status_text}.",
        ),
        Notification(
            notification_type=notification_type,
            entity_type=ENTITY_ORDER,
            entity_id=order_id,
            vendor_id=vendor_id,
            branch_id=branch_id,
            title="Order update",
            message=f"Order {order_number} moved to {status_text}.",
        ),
    ]
    return _write(rows)


def list_notifications(*, user_id: int | None = None, branch_id: int | None = None, limit: int = 50) -> list[dict]:
    query = db.session.query(Notification)
    if user_id is not None:
        query = query.filter(Notification.user_id == user_id)
    if branch_id is not None:
        query = query.filter(Notification.branch_id == branch_id)
    rows = query.order_by(Notification.id.desc()).limit(limit).all()
    return [row.to_dict() for row in rows]
