# Overview: Flask CLI command groups for bootstrap, inspection and reporting.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# - Set FLASK_APP to "posledger:create_app".
# - Point DATABASE_URL at a sqlite file if the data should outlive the command;
#   the default database is in-memory and disappears when the command exits.
#
# - python -m flask db init
#   Create all tables (idempotent).
# - python -m flask db seed
#   Insert the demo catalog, customers and users (admin/admin123, cashier/cashier123).
# - python -m flask db reset --yes
#   Drop and recreate all tables.
# - python -m flask users create --username alice --name "Alice" --password "s3cret" --role cashier
# - python -m flask catalog list [--category Electronics] [--low-stock 5]
# - python -m flask reports sales [--start 2026-01-01] [--end 2026-01-31]

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .seed import seed_demo_data
from .services import auth_service, catalog_service, reporting_service
from .services.pricing_service import format_cents, percent_from_bps
from .time_utils import parse_window
from .validation import ConflictError, ValidationError


def _symbol() -> str:
    return current_app.config.get("POS_CURRENCY_SYMBOL", "$")


@click.group('db')
def db_group():
    """Schema and demo data commands."""


@db_group.command('init')
@with_appcontext
def init_db():
    db.create_all()
    click.echo("PASS Tables created")


@db_group.command('seed')
@with_appcontext
def seed_db():
    db.create_all()
    created = seed_demo_data()
    click.echo(
        f"PASS Seeded {created['products']} products, "
        f"{created['customers']} customers, {created['users']} users"
    )


@db_group.command('reset')
@click.option('--yes', is_flag=True, help='Confirm dropping every table')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables (deletes all data)."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(auth_service.ROLES), default='cashier')
@with_appcontext
def create_user_command(username, name, password, role):
    try:
        user = auth_service.create_user(username, name, password, role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('list')
@click.option('--category', default=None, help='Only this category')
@click.option('--low-stock', type=int, default=None, help='Only products at or below this stock')
@with_appcontext
def list_catalog(category, low_stock):
    products = catalog_service.search_products(category=category)
    if low_stock is not None:
        products = [p for p in products if p.stock <= low_stock]
    if not products:
        click.echo("No products")
        return
    for p in products:
        click.echo(
            f"{p.id:>4}  {p.name:<28} {format_cents(p.price_cents, _symbol()):>12}  "
            f"tax {percent_from_bps(p.tax_rate_bps)}%  stock {p.stock:>4}  {p.barcode or '-'}"
        )


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('sales')
@click.option('--start', default=None, help='ISO-8601 start (inclusive)')
@click.option('--end', default=None, help='ISO-8601 end (inclusive)')
@with_appcontext
def sales_report(start, end):
    try:
        window_start, window_end = parse_window(start, end)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    summary = reporting_service.sales_summary(start=window_start, end=window_end)

    symbol = _symbol()
    click.echo(f"Orders:         {summary['order_count']}")
    click.echo(f"Revenue:        {format_cents(summary['revenue_cents'], symbol)}")
    click.echo(f"Tax:            {format_cents(summary['tax_cents'], symbol)}")
    click.echo(f"Profit:         {format_cents(summary['profit_cents'], symbol)} ({summary['profit_margin_pct']}%)")
    click.echo(f"Refunds:        {format_cents(summary['refunds_cents'], symbol)}")
    click.echo(f"Avg order:      {format_cents(summary['average_order_value_cents'], symbol)}")
    for row in summary["top_products"]:
        click.echo(f"  {row['quantity_sold']:>4} x {row['name']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
