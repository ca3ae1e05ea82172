"""
Pytest fixtures for storefront backend tests.

Provides an in-memory database, a per-test table wipe, factories for the
marketplace fixtures (vendor, branch, users, products, promotions) and a
test client.
"""

from datetime import timedelta

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.extensions import db
from storefront.models import Branch, Offer, Product, Promocode, User, Vendor
from storefront.services import cart_service
from storefront.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Clear all data but keep schema."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def vendor(db_session):
    vendor = Vendor(name="Acme Groceries", code="ACME")
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def branch(db_session, vendor):
    branch = Branch(vendor_id=vendor.id, name="Acme Central", code="C1")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def other_branch(db_session, vendor):
    branch = Branch(vendor_id=vendor.id, name="Acme North", code="N1")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def make_user(db_session):
    counter = {"n": 0}

    def _make(role="USER", vendor_id=None, is_active=True):
        counter["n"] += 1
        user = User(
            name=f"{role.title()} {counter['n']}",
            email=f"{role.lower()}{counter['n']}@test.local",
            role=role,
            vendor_id=vendor_id,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def shopper(make_user):
    return make_user("USER")


@pytest.fixture(scope='function')
def vendor_admin(make_user, vendor):
    return make_user("VENDOR_ADMIN", vendor_id=vendor.id)


@pytest.fixture(scope='function')
def rider(make_user):
    return make_user("RIDER")


@pytest.fixture(scope='function')
def make_product(db_session, branch):
    def _make(title="Product", price_cents=100, quantity=10, selling_price_cents=None, target_branch=None):
        b = target_branch or branch
        product = Product(
            vendor_id=b.vendor_id,
            branch_id=b.id,
            title=title,
            price_cents=price_cents,
            selling_price_cents=price_cents if selling_price_cents is None else selling_price_cents,
            quantity=quantity,
        )
        product.refresh_stock_status()
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_offer(db_session):
    def _make(code="SAVE10", percentage=10, min_order_cents=0, status="ACTIVE", start=None, end=None):
        now = utcnow()
        offer = Offer(
            code=code,
            percentage=percentage,
            min_order_cents=min_order_cents,
            start_date=start or now - timedelta(days=1),
            end_date=end or now + timedelta(days=1),
            status=status,
        )
        db_session.add(offer)
        db_session.commit()
        return offer

    return _make


@pytest.fixture(scope='function')
def make_promocode(db_session):
    def _make(code="PROMO5", percentage=5, branch_id=None, vendor_id=None, status="ACTIVE", start=None, end=None):
        now = utcnow()
        promocode = Promocode(
            code=code,
            percentage=percentage,
            branch_id=branch_id,
            vendor_id=vendor_id,
            start_date=start or now - timedelta(days=1),
            end_date=end or now + timedelta(days=1),
            status=status,
        )
        db_session.add(promocode)
        db_session.commit()
        return promocode

    return _make


@pytest.fixture(scope='function')
def fill_cart():
    def _fill(user, *lines):
        return [cart_service.add_to_cart(user.id, product.id, qty) for product, qty in lines]

    return _fill


@pytest.fixture(scope='function')
def home_address():
    return {
        "name": "Asha",
        "mobile_number": "9000000000",
        "house_no": "12B",
        "street_details": "MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
    }
