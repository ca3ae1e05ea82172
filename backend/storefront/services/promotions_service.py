from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from ..constants import OFFER_STATUSES, PROMOCODE_STATUSES, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_OPEN
from ..errors import ConflictError, NotFoundError, ServiceError, ValidationError
from ..extensions import db
from ..models import Branch, Offer, Promocode
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_promotion, validate_payload
from .concurrency import conditional_update, flush_or_conflict, rotate_stamp

OFFER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "code", "description", "percentage", "min_order_cents", "start_date", "end_date", "status",
    }),
    required_on_create=frozenset({"code", "percentage", "start_date", "end_date"}),
)

PROMOCODE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "code", "description", "percentage", "start_date", "end_date", "vendor_id", "branch_id", "status",
    }),
    required_on_create=frozenset({"code", "percentage", "start_date", "end_date"}),
)


def _ensure_unique_code(model, code: str, exclude_id: int | None = None) -> None:
    q = db.session.query(model).filter(model.code == code)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Code '{code}' already exists", details={"code": code})


def _check_status(patch: dict, allowed: tuple[str, ...]) -> None:
    if "status" in patch and patch["status"] not in allowed:
        raise ValidationError(f"Invalid status: {patch['status']}")


def _check_promocode_scope(patch: dict, existing: Promocode | None = None) -> None:
    branch_id = patch.get("branch_id", getattr(existing, "branch_id", None))
    if branch_id is None:
        return
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError(f"Branch with id {branch_id} not found")
    vendor_id = patch.get("vendor_id", getattr(existing, "vendor_id", None))
    if vendor_id is None:
        patch["vendor_id"] = branch.vendor_id
    elif vendor_id != branch.vendor_id:
        raise ValidationError("Branch does not belong to this vendor")


# Offers

def list_offers(active_only: bool = False) -> list[dict]:
    q = db.session.query(Offer)
    if active_only:
        q = q.filter(Offer.status == STATUS_ACTIVE)
    return [o.to_dict() for o in q.order_by(Offer.start_date.desc(), Offer.id.desc()).all()]


def create_offer(data: dict, actor_id: int | None = None) -> Offer:
    try:
        patch = validate_payload(model=Offer, payload=data, policy=OFFER_POLICY, partial=False)
        enforce_rules_promotion(patch)
        _check_status(patch, OFFER_STATUSES)
        _ensure_unique_code(Offer, patch["code"])

        offer = Offer(created_by=actor_id, updated_by=actor_id, **patch)
        db.session.add(offer)
        flush_or_conflict()
        db.session.commit()
        return offer
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create offer")
        raise


def update_offer(offer_id: int, expected_stamp: str | None, data: dict, actor_id: int | None = None) -> Offer:
    try:
        patch = validate_payload(model=Offer, payload=data, policy=OFFER_POLICY, partial=True)
        offer = db.session.get(Offer, offer_id)
        if offer is None:
            raise NotFoundError(f"Offer with id {offer_id} not found")
        enforce_rules_promotion(patch, existing=offer)
        _check_status(patch, OFFER_STATUSES)
        if "code" in patch:
            _ensure_unique_code(Offer, patch["code"], exclude_id=offer.id)

        offer = conditional_update(Offer, offer_id, expected_stamp, patch, actor_id=actor_id)
        db.session.commit()
        return offer
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update offer %s", offer_id)
        raise


def refresh_offer_statuses(now: datetime | None = None) -> dict:
    """
    Move offers along their validity window.

    - OPEN offers whose window contains now become ACTIVE
    - ACTIVE offers whose window does not contain now become INACTIVE

    Each changed row gets a fresh stamp.
    """
    now = now or utcnow()

    to_activate = (
        db.session.query(Offer)
        .filter(Offer.status == STATUS_OPEN, Offer.start_date <= now, Offer.end_date >= now)
        .all()
    )
    to_deactivate = (
        db.session.query(Offer)
        .filter(
            Offer.status == STATUS_ACTIVE,
            or_(Offer.start_date > now, Offer.end_date < now),
        )
        .all()
    )

    for offer in to_activate:
        offer.status = STATUS_ACTIVE
        rotate_stamp(offer)
    for offer in to_deactivate:
        offer.status = STATUS_INACTIVE
        rotate_stamp(offer)

    try:
        flush_or_conflict()
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to refresh offer statuses")
        raise

    current_app.logger.info(
        "Offer statuses refreshed: %s activated, %s deactivated",
        len(to_activate),
        len(to_deactivate),
    )
    return {"activated": len(to_activate), "deactivated": len(to_deactivate)}


# Promocodes

def list_promocodes(branch_id: int | None = None, active_only: bool = False) -> list[dict]:
    q = db.session.query(Promocode)
    if branch_id is not None:
        q = q.filter((Promocode.branch_id == branch_id) | (Promocode.branch_id.is_(None)))
    if active_only:
        q = q.filter(Promocode.status == STATUS_ACTIVE)
    return [p.to_dict() for p in q.order_by(Promocode.start_date.desc(), Promocode.id.desc()).all()]


def create_promocode(data: dict, actor_id: int | None = None) -> Promocode:
    try:
        patch = validate_payload(model=Promocode, payload=data, policy=PROMOCODE_POLICY, partial=False)
        enforce_rules_promotion(patch)
        _check_status(patch, PROMOCODE_STATUSES)
        _check_promocode_scope(patch)
        _ensure_unique_code(Promocode, patch["code"])

        promocode = Promocode(created_by=actor_id, updated_by=actor_id, **patch)
        db.session.add(promocode)
        flush_or_conflict()
        db.session.commit()
        return promocode
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create promocode")
        raise


def update_promocode(
    promocode_id: int,
    expected_stamp: str | None,
    data: dict,
    actor_id: int | None = None,
    *,
    vendor_id: int | None = None,
) -> Promocode:
    try:
        patch = validate_payload(model=Promocode, payload=data, policy=PROMOCODE_POLICY, partial=True)
        promocode = db.session.get(Promocode, promocode_id)
        if promocode is None:
            raise NotFoundError(f"Promocode with id {promocode_id} not found")
        if vendor_id is not None and (
            promocode.vendor_id != vendor_id or patch.get("vendor_id", vendor_id) != vendor_id
        ):
            raise ValidationError("Promocode does not belong to this vendor")
        enforce_rules_promotion(patch, existing=promocode)
        _check_status(patch, PROMOCODE_STATUSES)
        _check_promocode_scope(patch, existing=promocode)
        if "code" in patch:
            _ensure_unique_code(Promocode, patch["code"], exclude_id=promocode.id)

        promocode = conditional_update(Promocode, promocode_id, expected_stamp, patch, actor_id=actor_id)
        db.session.commit()
        return promocode
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update promocode %s", promocode_id)
        raise
