# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/maelza/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add demo customers, suppliers and products to an empty catalog.
#
# Document numbering inspection:
# - python -m flask sequences list
#   Show every numbering counter and the next number it will issue.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Product, Supplier
from .services import catalog_service
from .services.document_kinds import DOCUMENT_KINDS
from .services.ledger_store import LedgerStore


DEMO_CUSTOMERS = [
    {"name": "Consumidor Final", "tax_id": "00000000"},
    {"name": "Comercial Andina SAC", "tax_id": "20512345671", "email": "compras@andina.example"},
]

DEMO_SUPPLIERS = [
    {"name": "Distribuidora Lima SA", "tax_id": "20123456789", "phone": "01-555-0101"},
    {"name": "Importaciones del Sur", "tax_id": "20987654321"},
]

DEMO_PRODUCTS = [
    {"code": "P-001", "name": "Arroz 5kg", "unit": "BOL", "cost_price_cents": 1850, "sale_price_cents": 2490, "stock": 40, "min_stock": 10},
    {"code": "P-002", "name": "Aceite 1L", "unit": "BOT", "cost_price_cents": 720, "sale_price_cents": 990, "stock": 60, "min_stock": 12},
    {"code": "P-003", "name": "Azucar 1kg", "unit": "BOL", "cost_price_cents": 380, "sale_price_cents": 520, "stock": 5, "min_stock": 10},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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
    """Add demo parties and products. Skips any table that already has rows."""
    if db.session.query(Customer).count() == 0:
        for data in DEMO_CUSTOMERS:
            catalog_service.create_customer(patch=data)
        click.echo(f"PASS Created {len(DEMO_CUSTOMERS)} customers")
    else:
        click.echo("SKIP Customers already present")

    if db.session.query(Supplier).count() == 0:
        for data in DEMO_SUPPLIERS:
            catalog_service.create_supplier(patch=data)
        click.echo(f"PASS Created {len(DEMO_SUPPLIERS)} suppliers")
    else:
        click.echo("SKIP Suppliers already present")

    if db.session.query(Product).count() == 0:
        for data in DEMO_PRODUCTS:
            catalog_service.create_product(patch=data)
        click.echo(f"PASS Created {len(DEMO_PRODUCTS)} products")
    else:
        click.echo("SKIP Products already present")


@click.group('sequences')
def sequences_group():
    """Document numbering counters."""


@sequences_group.command('list')
@with_appcontext
def list_sequences_cli():
    """
    List numbering counters.

    Example:
        flask sequences list
    """
    sequences = LedgerStore().list_sequences()

    if not sequences:
        click.echo("No sequences found. Counters are created with the first document of each scope.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'Type':<12} {'Scope':<8} {'Next':<8} {'Next number'}")
    click.echo("="*70)

    for seq in sequences:
        kind = DOCUMENT_KINDS.get(seq.document_type)
        preview = kind.format_number(seq.scope_key, seq.next_number) if kind else "-"
        scope = seq.scope_key or "-"
        click.echo(f"{seq.document_type:<12} {scope:<8} {seq.next_number:<8} {preview}")

    click.echo("="*70 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sequences_group)
