# Overview: Flask CLI command groups for bootstrap and scheduled maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create a demo vendor, branch, users, products, an offer and a promocode.
#
# Promotions:
# - python -m flask promotions refresh-statuses [--at 2025-01-01T00:00:00Z]
#   Move offers OPEN -> ACTIVE inside their window and ACTIVE -> INACTIVE outside it.
#   Intended to run daily from cron.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .constants import ROLE_RIDER, ROLE_SUPER_ADMIN, ROLE_USER, ROLE_VENDOR_ADMIN, STATUS_ACTIVE
from .extensions import db
from .models import Branch, Offer, Promocode, User, Vendor
from .services import catalog_service, promotions_service
from .time_utils import parse_iso_datetime, utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create a small demo marketplace (idempotent on vendor code DEMO).

    Creates:
    - Vendor DEMO with branch MAIN
    - Users: admin (SUPER_ADMIN), vendor admin, rider, shopper
    - Three products with stock
    - Offer SAVE10 (10%, min 400.00) and promocode MAIN5 (5%, MAIN branch only)
    """
    click.echo("START Seeding demo data...")

    vendor = db.session.query(Vendor).filter_by(code="DEMO").first()
    if vendor:
        click.echo(f"PASS Demo vendor already exists (ID: {vendor.id}); nothing to do.")
        return

    vendor = Vendor(name="Demo Mart", code="DEMO")
    db.session.add(vendor)
    db.session.flush()
    branch = Branch(vendor_id=vendor.id, name="Main Branch", code="MAIN")
    db.session.add(branch)
    db.session.flush()

    users = [
        User(name="Platform Admin", email="admin@storefront.local", role=ROLE_SUPER_ADMIN),
        User(name="Demo Vendor Admin", email="vendor@storefront.local", role=ROLE_VENDOR_ADMIN, vendor_id=vendor.id),
        User(name="Demo Rider", email="rider@storefront.local", role=ROLE_RIDER),
        User(name="Demo Shopper", email="shopper@storefront.local", role=ROLE_USER),
    ]
    db.session.add_all(users)
    db.session.commit()
    vendor_admin = users[1]

    for title, price, qty in (
        ("Basmati Rice 1kg", 12000, 40),
        ("Toor Dal 500g", 8500, 25),
        ("Sunflower Oil 1L", 16000, 10),
    ):
        catalog_service.create_product(
            {
                "vendor_id": vendor.id,
                "branch_id": branch.id,
                "title": title,
                "price_cents": price,
                "quantity": qty,
            },
            actor_id=vendor_admin.id,
        )

    now = utcnow()
    db.session.add(Offer(
        code="SAVE10",
        description="10% off orders above 400.00",
        percentage=10,
        min_order_cents=40000,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
        status=STATUS_ACTIVE,
    ))
    db.session.add(Promocode(
        code="MAIN5",
        description="5% off at the main branch",
        percentage=5,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
        vendor_id=vendor.id,
        branch_id=branch.id,
    ))
    db.session.commit()

    click.echo(f"PASS Vendor {vendor.code} (ID: {vendor.id}), branch {branch.code} (ID: {branch.id})")
    for user in users:
        click.echo(f"  {user.role:<14} id={user.id:<4} {user.email}")
    click.echo("="*60)


@click.group('promotions')
def promotions_group():
    """Offer and promocode maintenance."""


@promotions_group.command('refresh-statuses')
@click.option('--at', 'at', default=None, help='ISO-8601 time to evaluate windows at (default: now)')
@with_appcontext
def refresh_statuses(at):
    """Apply offer validity windows (run daily)."""
    try:
        now = parse_iso_datetime(at) if at else None
    except ValueError:
        raise click.BadParameter("must be an ISO-8601 datetime", param_hint="--at")
    result = promotions_service.refresh_offer_statuses(now)
    click.echo(f"PASS Offers activated: {result['activated']}, deactivated: {result['deactivated']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(promotions_group)
