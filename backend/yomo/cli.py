# Overview: Flask CLI command groups for bootstrap, access codes, and stock inspection.

# backend/yomo/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` where migrations are applied).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Access codes:
# - python -m flask codes add --label counter --code 4321
#   Add a shared access code (prompts for the code if omitted).
# - python -m flask codes list
#   List access codes and whether they are active.
# - python -m flask codes revoke counter
#   Deactivate a code and end every session opened with it.
# - python -m flask codes logins --limit 20
#   Show the most recent login attempts.
#
# Inventory:
# - python -m flask inventory list [--q shirt]
#   List stock items with total/sold/available.
# - python -m flask inventory add --name "Basic Tee" --price-cents 25000 --total 10 --category T-Shirt
#   Add a stock item with a generated barcode.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ShopError
from .extensions import db
from .models import AccessCode, CATEGORIES, DEFAULT_CATEGORY
from .services import auth_service
from .services.inventory_store import inventory_store
from .services.invoice_renderer import format_money


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Add an access code with 'python -m flask codes add'.")


@click.group('codes')
def codes_group():
    """Access code administration."""


@codes_group.command('add')
@click.option('--label', required=True, help='Name for this code, e.g. the counter it is used at')
@click.option('--code', prompt=True, hide_input=True, confirmation_prompt=True, help='The access code')
@with_appcontext
def add_code(label, code):
    try:
        access_code = auth_service.add_access_code(label, code)
    except ShopError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Added access code '{access_code.label}' (ID: {access_code.id})")


@codes_group.command('list')
@with_appcontext
def list_codes():
    codes = db.session.query(AccessCode).order_by(AccessCode.id.asc()).all()

    if not codes:
        click.echo("No access codes found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Label':<30} {'Active':<8} {'Created'}")
    click.echo("="*60)

    for access_code in codes:
        active_str = "Yes" if access_code.is_active else "No"
        created = access_code.created_at.strftime("%Y-%m-%d %H:%M") if access_code.created_at else "-"
        click.echo(f"{access_code.id:<5} {access_code.label:<30} {active_str:<8} {created}")

    click.echo("")


@codes_group.command('revoke')
@click.argument('label')
@with_appcontext
def revoke_code(label):
    try:
        auth_service.revoke_access_code(label)
    except ShopError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Revoked access code '{label}' and its sessions")


@codes_group.command('logins')
@click.option('--limit', default=20, show_default=True, help='Number of attempts to show')
@with_appcontext
def list_logins(limit):
    """Most recent login attempts, newest first."""
    events = auth_service.recent_logins(limit)

    if not events:
        click.echo("No login attempts recorded.")
        return

    for event in events:
        click.echo(f"{event.timestamp}  {event.status:<8} {event.ip_address or '-'}")


@click.group('inventory')
def inventory_group():
    """Stock inspection."""


@inventory_group.command('list')
@click.option('--q', 'term', default=None, help='Filter by name, barcode or category')
@with_appcontext
def list_inventory(term):
    try:
        items = inventory_store.search(term)
    except ShopError as e:
        raise click.ClickException(e.message)

    if not items:
        click.echo("No items found.")
        return

    currency = current_app.config.get("CURRENCY", "EGP")

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Category':<12} {'Barcode':<15} {'Name':<30} {'Price':>14} {'Total':>6} {'Sold':>6} {'Avail':>6}")
    click.echo("="*100)

    for item in items:
        click.echo(
            f"{item.id:<5} {item.category:<12} {item.barcode:<15} {item.name[:30]:<30} "
            f"{format_money(item.price_cents, currency):>14} {item.total:>6} {item.sold:>6} {item.available:>6}"
        )

    click.echo("")


@inventory_group.command('add')
@click.option('--name', required=True)
@click.option('--price-cents', type=int, required=True, help='Unit price in minor units')
@click.option('--total', type=int, required=True, help='Units received')
@click.option('--category', type=click.Choice(CATEGORIES), default=DEFAULT_CATEGORY, show_default=True)
@click.option('--barcode', default=None, help='Existing barcode; generated when omitted')
@with_appcontext
def add_item(name, price_cents, total, category, barcode):
    fields = {"name": name, "price_cents": price_cents, "total": total, "category": category}
    if barcode:
        fields["barcode"] = barcode

    try:
        item = inventory_store.create(fields)
    except ShopError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Added {item.name} (ID: {item.id}, barcode {item.barcode})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(codes_group)
    app.cli.add_command(inventory_group)
