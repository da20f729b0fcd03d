# Overview: Flask CLI command groups for bootstrap, tenant management, and maintenance.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Company management (MULTI-TENANT):
# - python -m flask companies list
# - python -m flask companies create --name "Acme Corp" --code "ACME" [--email ops@acme.test]
#
# API tokens:
# - python -m flask tokens issue --company-id 1 [--label "pos"]
#   Prints the plaintext token once; only its hash is stored.
# - python -m flask tokens revoke --token-id 3
#
# Inventory maintenance:
# - python -m flask inventory recompute-status [--company-id 1] [--dry-run]
#   Rederive every status tier from quantity and report rows that had drifted.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import ApiToken, Company, InventoryItem
from .services import auth_service
from .services.inventory_service import find_status_drift
from .services.stock_levels import derive_stock_status, set_quantity


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask companies create' to add a tenant.")


@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.id.asc()).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Items':<8} {'Tokens'}")
    click.echo("="*80)

    for company in companies:
        item_count = db.session.query(InventoryItem).filter_by(company_id=company.id).count()
        token_count = db.session.query(ApiToken).filter_by(company_id=company.id, is_active=True).count()
        active_str = "Yes" if company.is_active else "No"

        click.echo(f"{company.id:<5} {company.name:<30} {company.code:<15} {active_str:<8} {item_count:<8} {token_count}")

    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--email', default=None, help='Contact email')
@with_appcontext
def create_company_cli(name, code, email):
    """Create a new company (tenant)."""
    try:
        company = auth_service.create_company(name=name, code=code, email=email)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created company: {company.name} (ID: {company.id}, Code: {company.code})")


@click.group('tokens')
def tokens_group():
    """API token commands."""


@tokens_group.command('issue')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--label', default=None, help='Free-form label')
@with_appcontext
def issue_token_cli(company_id, label):
    """Issue a bearer token for a company."""
    try:
        token, plaintext = auth_service.issue_token(company_id, label=label)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Issued token ID {token.id} for company {company_id}")
    click.echo(f"TOKEN {plaintext}")
    click.echo("WARN  This token is shown once and cannot be recovered.")


@tokens_group.command('revoke')
@click.option('--token-id', type=int, required=True, help='Token ID')
@with_appcontext
def revoke_token_cli(token_id):
    """Revoke a bearer token."""
    try:
        token = auth_service.revoke_token(token_id)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Revoked token ID {token.id} (company {token.company_id})")


@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('recompute-status')
@click.option('--company-id', type=int, default=None, help='Limit to one company')
@click.option('--dry-run', is_flag=True, help='Report drift without writing')
@with_appcontext
def recompute_status(company_id, dry_run):
    """Rederive status tiers from quantity."""
    drifted = find_status_drift(company_id)

    if not drifted:
        click.echo("PASS All inventory status tiers match their quantities.")
        return

    for item in drifted:
        expected = derive_stock_status(item.quantity)
        click.echo(
            f"DRIFT item {item.id} (company {item.company_id}, sku {item.sku}): "
            f"quantity={item.quantity} status={item.status} -> {expected}"
        )

    if dry_run:
        click.echo(f"\nDRY RUN {len(drifted)} item(s) would be updated.")
        return

    for item in drifted:
        set_quantity(item, item.quantity)
    db.session.commit()
    click.echo(f"\nPASS Updated {len(drifted)} item(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(tokens_group)
    app.cli.add_command(inventory_group)
