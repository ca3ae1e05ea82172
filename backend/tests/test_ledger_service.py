from datetime import timedelta

import pytest

from storefront.errors import ValidationError
from storefront.extensions import db
from storefront.models import InventoryMovement, Product
from storefront.services import inventory_service, ledger_service
from storefront.time_utils import utcnow


def _record(product, **overrides):
    kwargs = dict(
        product_id=product.id,
        vendor_id=product.vendor_id,
        branch_id=product.branch_id,
        movement_type="ADDED",
        quantity_change=3,
        quantity_before=10,
        quantity_after=13,
        reference_type="MANUAL",
        reference_id=product.id,
    )
    kwargs.update(overrides)
    return ledger_service.record_movement(**kwargs)


@pytest.mark.parametrize(
    "movement_type, change",
    [
        ("ADDED", 0),
        ("ADDED", -1),
        ("REVERTED", -2),
        ("RETURNED", 0),
        ("REMOVED", 1),
        ("TELEPORTED", 1),
    ],
)
def test_invalid_type_or_sign_is_rejected(movement_type, change):
    with pytest.raises(ValidationError):
        ledger_service.validate_movement(movement_type, change, 10, 10 + change)


@pytest.mark.parametrize("change", [-4, 4])
def test_adjusted_allows_either_sign(change):
    ledger_service.validate_movement("ADJUSTED", change, 10, 10 + change)


def test_inconsistent_before_after_is_rejected():
    with pytest.raises(ValidationError):
        ledger_service.validate_movement("ADDED", 3, 10, 12)


def test_valid_movement_is_written(db_session, make_product):
    product = make_product()
    movement = _record(product, notes="restock")
    db_session.commit()

    assert movement is not None
    row = db_session.get(InventoryMovement, movement.id)
    assert row.quantity_after - row.quantity_before == row.quantity_change
    assert row.notes == "restock"


def test_invalid_movement_is_swallowed(db_session, make_product):
    product = make_product()
    assert _record(product, movement_type="REMOVED", quantity_change=3) is None
    db_session.commit()
    assert db_session.query(InventoryMovement).count() == 0


def test_storage_failure_does_not_abort_caller(db_session, make_product, vendor_admin, monkeypatch):
    product = make_product(quantity=10)
    stamp = product.concurrency_stamp

    real_model = ledger_service.InventoryMovement

    def broken_movement(**kwargs):
        kwargs["movement_type"] = None  # NOT NULL violation at flush time
        return real_model(**kwargs)

    monkeypatch.setattr(ledger_service, "InventoryMovement", broken_movement)

    result = inventory_service.adjust_inventory(
        product_id=product.id,
        quantity_change=5,
        actor_id=vendor_admin.id,
        concurrency_stamp=stamp,
    )

    assert result["quantity_after"] == 15
    assert db.session.get(Product, product.id).quantity == 15
    assert db_session.query(InventoryMovement).count() == 0


def test_list_movements_newest_first_and_paged(db_session, make_product):
    product = make_product()
    for i in range(1, 6):
        _record(product, quantity_change=i, quantity_before=100, quantity_after=100 + i)
    db_session.commit()

    page = ledger_service.list_movements(product_id=product.id, page_size=2, page_number=1)
    assert page["total_count"] == 5
    assert page["count"] == 2
    assert [m["quantity_change"] for m in page["doc"]] == [5, 4]

    last = ledger_service.list_movements(product_id=product.id, page_size=2, page_number=3)
    assert [m["quantity_change"] for m in last["doc"]] == [1]


def test_list_movements_filters(db_session, make_product):
    a = make_product(title="A")
    b = make_product(title="B")
    _record(a)
    _record(b, movement_type="REMOVED", quantity_change=-1, quantity_before=5, quantity_after=4)
    db_session.commit()

    removed = ledger_service.list_movements(movement_type="REMOVED")
    assert removed["total_count"] == 1
    assert removed["doc"][0]["product_id"] == b.id

    future = ledger_service.list_movements(date_from=utcnow() + timedelta(days=1))
    assert future["total_count"] == 0

    with pytest.raises(ValidationError):
        ledger_service.list_movements(movement_type="BOGUS")
