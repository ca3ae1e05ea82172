# Overview: Resolves an offer code or promocode into a checkout discount.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..constants import DISCOUNT_OFFER, DISCOUNT_PROMOCODE, STATUS_ACTIVE
from ..errors import ValidationError
from ..extensions import db
from ..models import Offer, Promocode
from ..time_utils import utcnow, within_window

BOTH_CODES_MESSAGE = "Cannot apply both offer code and promo code. Please choose one."


@dataclass(frozen=True)
class DiscountResolution:
    applied: bool
    discount_type: Optional[str]
    reference_id: Optional[int]
    percentage: int
    discount_cents: int
    final_cents: int


def percentage_of(amount_cents: int, percentage: int) -> int:
    """Percentage of an integer cents amount, rounded half-up."""
    return (amount_cents * percentage + 50) // 100


def format_cents(amount_cents: int) -> str:
    return f"{amount_cents // 100}.{amount_cents % 100:02d}"


def ensure_single_code(offer_code: Optional[str], promocode_id: Optional[int]) -> None:
    if offer_code and promocode_id:
        raise ValidationError(BOTH_CODES_MESSAGE)


def resolve_discount(
    subtotal_cents: int,
    offer_code: Optional[str] = None,
    promocode_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> DiscountResolution:
    """
    At most one discount per order.

    Pure read: raises ValidationError on any rejected code and never writes.
    """
    ensure_single_code(offer_code, promocode_id)
    now = now or utcnow()

    if offer_code:
        offer = (
            db.session.query(Offer)
            .filter(Offer.code == offer_code, Offer.status == STATUS_ACTIVE)
            .first()
        )
        if offer is None:
            raise ValidationError("Invalid offer code.")
        if not within_window(now, offer.start_date, offer.end_date):
            raise ValidationError("This offer is not valid at the moment.")
        if subtotal_cents < (offer.min_order_cents or 0):
            raise ValidationError(
                f"Order amount must be at least {format_cents(offer.min_order_cents)} to use this offer.",
                details={"min_order_cents": offer.min_order_cents},
            )
        discount = percentage_of(subtotal_cents, offer.percentage)
        return DiscountResolution(
            applied=True,
            discount_type=DISCOUNT_OFFER,
            reference_id=offer.id,
            percentage=offer.percentage,
            discount_cents=discount,
            final_cents=subtotal_cents - discount,
        )

    if promocode_id:
        promocode = (
            db.session.query(Promocode)
            .filter(Promocode.id == promocode_id, Promocode.status == STATUS_ACTIVE)
            .first()
        )
        if promocode is None:
            raise ValidationError("Invalid promo code.")
        if not within_window(now, promocode.start_date, promocode.end_date):
            raise ValidationError("This promo code is not valid at the moment.")
        if promocode.branch_id is not None and promocode.branch_id != branch_id:
            raise ValidationError("This promo code is not valid for this branch.")
        discount = percentage_of(subtotal_cents, promocode.percentage)
        return DiscountResolution(
            applied=True,
            discount_type=DISCOUNT_PROMOCODE,
            reference_id=promocode.id,
            percentage=promocode.percentage,
            discount_cents=discount,
            final_cents=subtotal_cents - discount,
        )

    return DiscountResolution(
        applied=False,
        discount_type=None,
        reference_id=None,
        percentage=0,
        discount_cents=0,
        final_cents=subtotal_cents,
    )
