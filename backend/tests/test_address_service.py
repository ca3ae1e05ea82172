import pytest

from storefront.errors import NotFoundError, ValidationError
from storefront.services import address_service


def test_build_address_defaults_country(app, db_session, shopper, home_address):
    address = address_service.create_address(shopper.id, home_address)
    assert address.country == "India"
    assert address.concurrency_stamp


def test_missing_fields_are_listed(app, db_session, shopper):
    with pytest.raises(ValidationError) as exc:
        address_service.build_address(shopper.id, {"house_no": "1", "city": "  "})
    assert exc.value.details["fields"] == ["street_details", "city", "state", "postal_code"]


def test_invalid_postal_code(app, db_session, shopper, home_address):
    with pytest.raises(ValidationError, match="postal code"):
        address_service.build_address(shopper.id, {**home_address, "postal_code": "5600#1"})


def test_checkout_falls_back_to_latest_address(app, db_session, shopper, home_address):
    address_service.create_address(shopper.id, home_address)
    newer = address_service.create_address(shopper.id, {**home_address, "house_no": "99"})

    assert address_service.resolve_checkout_address(shopper.id).id == newer.id


def test_checkout_without_any_address(app, db_session, shopper):
    with pytest.raises(ValidationError, match="Address required"):
        address_service.resolve_checkout_address(shopper.id)


def test_address_id_of_another_user_is_not_found(app, db_session, shopper, make_user, home_address):
    stranger = make_user("USER")
    theirs = address_service.create_address(stranger.id, home_address)

    with pytest.raises(NotFoundError):
        address_service.resolve_checkout_address(shopper.id, address_id=theirs.id)
