from datetime import timedelta

import pytest

from storefront.errors import ValidationError
from storefront.services.discount_service import percentage_of, resolve_discount
from storefront.time_utils import utcnow


def test_percentage_rounds_half_up():
    assert percentage_of(500, 10) == 50
    assert percentage_of(105, 10) == 11  # 10.5 -> 11
    assert percentage_of(104, 10) == 10
    assert percentage_of(0, 50) == 0


def test_no_code_means_no_discount(db_session):
    result = resolve_discount(500)
    assert result.applied is False
    assert result.discount_cents == 0
    assert result.final_cents == 500


def test_both_codes_are_rejected(db_session, make_offer, make_promocode):
    make_offer(code="SAVE10")
    promo = make_promocode()
    with pytest.raises(ValidationError, match="Cannot apply both offer code and promo code"):
        resolve_discount(500, offer_code="SAVE10", promocode_id=promo.id)


def test_offer_applies_percentage(db_session, make_offer):
    offer = make_offer(code="SAVE10", percentage=10, min_order_cents=400)
    result = resolve_discount(500, offer_code="SAVE10")
    assert result.applied is True
    assert result.discount_type == "OFFER"
    assert result.reference_id == offer.id
    assert result.percentage == 10
    assert result.discount_cents == 50
    assert result.final_cents == 450


def test_unknown_or_inactive_offer_is_invalid(db_session, make_offer):
    make_offer(code="OPENONLY", status="OPEN")
    with pytest.raises(ValidationError, match="Invalid offer code."):
        resolve_discount(500, offer_code="NOPE")
    with pytest.raises(ValidationError, match="Invalid offer code."):
        resolve_discount(500, offer_code="OPENONLY")


def test_offer_outside_window(db_session, make_offer):
    now = utcnow()
    make_offer(code="LATER", start=now + timedelta(days=2), end=now + timedelta(days=5))
    with pytest.raises(ValidationError, match="not valid at the moment"):
        resolve_discount(500, offer_code="LATER")


def test_offer_window_is_inclusive(db_session, make_offer):
    now = utcnow()
    make_offer(code="EDGE", start=now - timedelta(days=1), end=now)
    assert resolve_discount(500, offer_code="EDGE", now=now).applied is True


def test_offer_below_minimum_names_the_minimum(db_session, make_offer):
    make_offer(code="BIG", min_order_cents=40000)
    with pytest.raises(ValidationError) as exc:
        resolve_discount(39999, offer_code="BIG")
    assert "400.00" in exc.value.message
    assert exc.value.details["min_order_cents"] == 40000


def test_promocode_applies_percentage(db_session, make_promocode, branch):
    promo = make_promocode(percentage=5, branch_id=branch.id, vendor_id=branch.vendor_id)
    result = resolve_discount(1000, promocode_id=promo.id, branch_id=branch.id)
    assert result.discount_type == "PROMOCODE"
    assert result.reference_id == promo.id
    assert result.discount_cents == 50
    assert result.final_cents == 950


def test_promocode_errors(db_session, make_promocode, branch, other_branch):
    now = utcnow()
    inactive = make_promocode(code="OFF", status="INACTIVE")
    expired = make_promocode(code="OLD", start=now - timedelta(days=10), end=now - timedelta(days=5))
    scoped = make_promocode(code="HERE", branch_id=branch.id)

    with pytest.raises(ValidationError, match="Invalid promo code."):
        resolve_discount(500, promocode_id=inactive.id)
    with pytest.raises(ValidationError, match="not valid at the moment"):
        resolve_discount(500, promocode_id=expired.id)
    with pytest.raises(ValidationError, match="not valid for this branch"):
        resolve_discount(500, promocode_id=scoped.id, branch_id=other_branch.id)


def test_unscoped_promocode_works_at_any_branch(db_session, make_promocode, other_branch):
    promo = make_promocode(code="ANY")
    assert resolve_discount(500, promocode_id=promo.id, branch_id=other_branch.id).applied is True
