import pytest

from storefront.errors import ConcurrencyError, ConflictError, NotFoundError, ValidationError
from storefront.models import InventoryMovement, Product, ProductVariant
from storefront.services import catalog_service


def _product_payload(branch, **overrides):
    data = {
        "vendor_id": branch.vendor_id,
        "branch_id": branch.id,
        "title": "Basmati Rice 1kg",
        "price_cents": 12000,
        "selling_price_cents": 11000,
        "quantity": 20,
    }
    data.update(overrides)
    return data


def test_create_product_records_initial_stock(db_session, branch, vendor_admin):
    product = catalog_service.create_product(_product_payload(branch), actor_id=vendor_admin.id)

    assert product.stock_status == "IN_STOCK"
    assert product.created_by == vendor_admin.id
    movement = db_session.query(InventoryMovement).one()
    assert movement.movement_type == "ADDED"
    assert movement.reference_type == "PRODUCT"
    assert movement.reference_id == product.id
    assert (movement.quantity_before, movement.quantity_after) == (0, 20)


def test_create_product_without_stock_has_no_movement(db_session, branch):
    product = catalog_service.create_product(_product_payload(branch, quantity=0))
    assert product.stock_status == "OUT_OF_STOCK"
    assert db_session.query(InventoryMovement).count() == 0


def test_create_product_validation(db_session, branch, other_branch):
    with pytest.raises(ValidationError, match="Missing required fields"):
        catalog_service.create_product({"branch_id": branch.id})
    with pytest.raises(ValidationError):
        catalog_service.create_product(_product_payload(branch, price_cents=12.5))
    with pytest.raises(ValidationError):
        catalog_service.create_product(_product_payload(branch, selling_price_cents=20000))
    with pytest.raises(ValidationError):
        catalog_service.create_product(_product_payload(branch, quantity=-1))
    with pytest.raises(ValidationError, match="Field not allowed"):
        catalog_service.create_product(_product_payload(branch, stock_status="IN_STOCK"))
    with pytest.raises(ValidationError, match="does not belong"):
        catalog_service.create_product(_product_payload(other_branch, vendor_id=other_branch.vendor_id + 1000))
    with pytest.raises(NotFoundError):
        catalog_service.create_product(_product_payload(branch, branch_id=999999))


def test_update_product_is_stamp_gated(db_session, make_product):
    product = make_product(title="Old")
    stale = product.concurrency_stamp

    updated = catalog_service.update_product(product.id, stale, {"title": "New"})
    assert updated.title == "New"

    with pytest.raises(ConcurrencyError):
        catalog_service.update_product(product.id, stale, {"title": "Newer"})
    with pytest.raises(ValidationError, match="inventory adjustment"):
        catalog_service.update_product(product.id, updated.concurrency_stamp, {"quantity": 5})


def test_create_variant_and_duplicate_name(db_session, make_product, vendor_admin):
    product = make_product()
    variant = catalog_service.create_variant(
        product.id, {"variant_name": "500g", "price_cents": 6000, "quantity": 8}, actor_id=vendor_admin.id
    )

    assert variant.selling_price_cents == 6000
    movement = db_session.query(InventoryMovement).filter_by(variant_id=variant.id).one()
    assert movement.movement_type == "ADDED"
    assert movement.quantity_change == 8

    with pytest.raises(ConflictError):
        catalog_service.create_variant(product.id, {"variant_name": "500G", "price_cents": 6000})

    # An inactive variant does not reserve the name
    inactive = catalog_service.create_variant(
        product.id, {"variant_name": "500g", "price_cents": 6000, "status": "INACTIVE"}
    )
    assert inactive.status == "INACTIVE"


def test_update_variant_quantity_is_ledgered(db_session, make_product, vendor_admin):
    product = make_product()
    variant = catalog_service.create_variant(product.id, {"variant_name": "1kg", "price_cents": 100, "quantity": 5})
    stale = variant.concurrency_stamp

    updated = catalog_service.update_variant(variant.id, stale, {"quantity": 2}, actor_id=vendor_admin.id)

    assert updated.quantity == 2
    movement = (
        db_session.query(InventoryMovement)
        .filter_by(variant_id=variant.id, movement_type="ADJUSTED")
        .one()
    )
    assert (movement.quantity_before, movement.quantity_change, movement.quantity_after) == (5, -3, 2)

    with pytest.raises(ConcurrencyError):
        catalog_service.update_variant(variant.id, stale, {"quantity": 9})
    assert db_session.get(ProductVariant, variant.id).quantity == 2


def test_update_variant_rename_collision(db_session, make_product):
    product = make_product()
    catalog_service.create_variant(product.id, {"variant_name": "1kg", "price_cents": 100})
    other = catalog_service.create_variant(product.id, {"variant_name": "2kg", "price_cents": 180})

    with pytest.raises(ConflictError):
        catalog_service.update_variant(other.id, other.concurrency_stamp, {"variant_name": "1KG"})


def test_vendor_scope_blocks_foreign_products(db_session, make_product):
    product = make_product(title="Sugar")
    variant = catalog_service.create_variant(product.id, {"variant_name": "1kg", "price_cents": 100})
    foreign_vendor_id = product.vendor_id + 1

    with pytest.raises(ValidationError, match="does not belong"):
        catalog_service.update_product(
            product.id, product.concurrency_stamp, {"title": "Salt"}, vendor_id=foreign_vendor_id
        )
    with pytest.raises(ValidationError, match="does not belong"):
        catalog_service.create_variant(
            product.id, {"variant_name": "2kg", "price_cents": 190}, vendor_id=foreign_vendor_id
        )
    with pytest.raises(ValidationError, match="does not belong"):
        catalog_service.update_variant(
            variant.id, variant.concurrency_stamp, {"quantity": 50}, vendor_id=foreign_vendor_id
        )

    assert db_session.get(Product, product.id).title == "Sugar"
    assert db_session.query(ProductVariant).count() == 1
    assert db_session.get(ProductVariant, variant.id).quantity == 0


def test_unexpected_failure_rolls_back_product_creation(db_session, branch, monkeypatch):
    def broken_ledger(**kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(catalog_service, "record_movement", broken_ledger)
    with pytest.raises(RuntimeError):
        catalog_service.create_product(_product_payload(branch))

    assert db_session.query(Product).count() == 0
