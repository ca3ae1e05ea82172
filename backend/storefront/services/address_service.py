# Overview: Delivery addresses owned by users; checkout address resolution.

from __future__ import annotations

import re
from typing import Optional

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Address

REQUIRED_FIELDS = ("house_no", "street_details", "city", "state", "postal_code")
OPTIONAL_FIELDS = ("name", "mobile_number", "address_line_2", "landmark", "country")

POSTAL_CODE_RE = re.compile(r"^[A-Za-z0-9 -]{3,10}$")


def build_address(user_id: int, data: dict) -> Address:
    """Validate inline address fields and return an unsaved Address."""
    missing = [f for f in REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required address fields: {', '.join(missing)}",
            details={"fields": missing},
        )
    postal_code = str(data["postal_code"]).strip()
    if not POSTAL_CODE_RE.match(postal_code):
        raise ValidationError("Invalid postal code", details={"postal_code": postal_code})

    values = {f: str(data[f]).strip() for f in REQUIRED_FIELDS}
    values["postal_code"] = postal_code
    for f in OPTIONAL_FIELDS:
        raw = data.get(f)
        values[f] = str(raw).strip() if raw not in (None, "") else None
    if not values["country"]:
        values["country"] = current_app.config.get("DEFAULT_COUNTRY", "India")

    return Address(user_id=user_id, **values)


def create_address(user_id: int, data: dict) -> Address:
    address = build_address(user_id, data)
    try:
        db.session.add(address)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save address for user=%s", user_id)
        raise
    return address


def latest_address(user_id: int) -> Optional[Address]:
    return (
        db.session.query(Address)
        .filter(Address.user_id == user_id)
        .order_by(Address.created_at.desc(), Address.id.desc())
        .first()
    )


def resolve_checkout_address(
    user_id: int,
    address_id: Optional[int] = None,
    address: Optional[dict] = None,
) -> Address:
    """
    Pick the delivery address for an order (no commit).

    - address_id: must belong to the user
    - inline address fields: validated and added to the session
    - neither: the user's most recent address
    """
    if address_id is not None:
        row = db.session.get(Address, address_id)
        if row is None or row.user_id != user_id:
            raise NotFoundError(f"Address with id {address_id} not found")
        return row

    if address:
        row = build_address(user_id, address)
        db.session.add(row)
        db.session.flush()
        return row

    row = latest_address(user_id)
    if row is None:
        raise ValidationError("Address required. Please add a delivery address.")
    return row


def list_addresses(user_id: int) -> list[dict]:
    rows = (
        db.session.query(Address)
        .filter(Address.user_id == user_id)
        .order_by(Address.created_at.desc(), Address.id.desc())
        .all()
    )
    return [row.to_dict() for row in rows]
