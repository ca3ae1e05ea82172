# Overview: Optimistic concurrency primitives shared by every stamp-gated write.

from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional

from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyError, NotFoundError, ValidationError
from ..extensions import db

"""
Concurrency stamp protocol

- Every mutable row carries concurrency_stamp, mapped as the SQLAlchemy
  version_id_col with version_id_generator=False.
- Writers compare the caller's stamp before touching anything, then assign
  a fresh stamp. The UPDATE is emitted as
  ... WHERE id = :id AND concurrency_stamp = :loaded_stamp, so a write that
  raced another committed write matches zero rows and fails.
- Rotating the stamp always dirties the row, so a conditional update with no
  field changes still supersedes the old stamp.
"""

# Fields a caller may never set through conditional_update
PROTECTED_FIELDS = frozenset({"id", "concurrency_stamp", "created_at", "created_by"})


def new_concurrency_stamp() -> str:
    return uuid.uuid4().hex


def rotate_stamp(entity) -> str:
    """Assign a fresh stamp to a loaded entity (system-initiated writes)."""
    entity.concurrency_stamp = new_concurrency_stamp()
    return entity.concurrency_stamp


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The stamp check still catches the race there.
    """
    return query.with_for_update()


def assert_stamp(entity, expected_stamp: Optional[str]) -> None:
    if not expected_stamp:
        raise ValidationError("concurrency_stamp is required")
    if entity.concurrency_stamp != expected_stamp:
        raise ConcurrencyError(
            details={
                "entity": type(entity).__name__,
                "id": entity.id,
            }
        )


def flush_or_conflict() -> None:
    """Flush pending writes; a stale versioned UPDATE becomes ConcurrencyError."""
    try:
        db.session.flush()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConcurrencyError() from exc


def conditional_update(
    model,
    entity_id: int,
    expected_stamp: Optional[str],
    changes: dict[str, Any] | None,
    *,
    actor_id: int | None = None,
    allowed_fields: Iterable[str] | None = None,
):
    """
    Compare-and-set update of one row.

    - Missing row -> NotFoundError
    - Stamp mismatch -> ConcurrencyError (nothing written)
    - Otherwise apply changes, rotate the stamp and flush.

    Does not commit; the caller owns the transaction.
    """
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(f"{model.__name__} with id {entity_id} not found")

    assert_stamp(entity, expected_stamp)

    changes = dict(changes or {})
    allowed = set(allowed_fields) if allowed_fields is not None else None
    rejected = sorted(
        field
        for field in changes
        if field in PROTECTED_FIELDS
        or (allowed is not None and field not in allowed)
        or not hasattr(model, field)
    )
    if rejected:
        raise ValidationError(
            f"Cannot update field(s): {', '.join(rejected)}",
            details={"fields": rejected},
        )

    for field, value in changes.items():
        setattr(entity, field, value)

    if actor_id is not None and hasattr(entity, "updated_by"):
        entity.updated_by = actor_id

    rotate_stamp(entity)
    flush_or_conflict()
    return entity
