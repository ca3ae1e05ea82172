from storefront.models import Notification
from storefront.services import notification_service, order_service


def _place(shopper, branch, make_product, fill_cart, home_address):
    product = make_product(quantity=5)
    fill_cart(shopper, (product, 1))
    return order_service.place_order(shopper.id, branch.id, address=home_address)


def test_placement_notifies_shopper_and_branch(app, db_session, shopper, branch, make_product, fill_cart, home_address):
    result = _place(shopper, branch, make_product, fill_cart, home_address)

    for_shopper = notification_service.list_notifications(user_id=shopper.id)
    for_branch = notification_service.list_notifications(branch_id=branch.id)
    assert [n["notification_type"] for n in for_shopper] == ["ORDER_PLACED"]
    assert result["order_number"] in for_shopper[0]["message"]
    assert for_branch[0]["title"] == "New order received"


def test_delivered_status_uses_delivered_type(app, db_session, shopper, branch, make_product, fill_cart, home_address):
    result = _place(shopper, branch, make_product, fill_cart, home_address)

    rows = notification_service.notify_order_status_changed(
        result["order_id"], result["order_number"], branch.id, branch.vendor_id, "DELIVERED", shopper.id
    )
    assert {r.notification_type for r in rows} == {"ORDER_DELIVERED"}
    assert "is delivered" in rows[0].message


def test_failed_notification_does_not_undo_the_order(app, db_session, shopper, branch, make_product, fill_cart, home_address, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("outbox unavailable")

    monkeypatch.setattr(notification_service, "notify_order_placed", boom)
    result = _place(shopper, branch, make_product, fill_cart, home_address)

    assert order_service.get_order_details(result["order_id"])["order_number"] == result["order_number"]
    assert db_session.query(Notification).count() == 0


def test_notifications_can_be_disabled(app, db_session, shopper, branch, make_product, fill_cart, home_address, monkeypatch):
    monkeypatch.setitem(app.config, "NOTIFICATIONS_ENABLED", False)
    _place(shopper, branch, make_product, fill_cart, home_address)

    assert db_session.query(Notification).count() == 0
