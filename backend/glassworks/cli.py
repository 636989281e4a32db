# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/glassworks/cli.py
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
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
#   List all organizations.
# - python -m flask orgs create --name "Sharma Glass House" --code "SGH" [--state-code MH]
#   Create a new organization (tenant).
#
# Catalog:
# - python -m flask catalog seed --org-id 1
#   Load the starter rate table and process master (idempotent).
#
# Document numbering:
# - python -m flask sequences list --org-id 1
#   Show patterns and next numbers.
# - python -m flask sequences repair --org-id 1 [--type INVOICE]
#   Move counters past numbers already used this year (never lowers them).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization
from .services import catalog_service, numbering_service
from .validation import ValidationError


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

    click.echo("PASS Database reset complete. Run 'python -m flask orgs create' to add a shop.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'State':<6} {'GST'}")
    click.echo("="*80)

    for org in orgs:
        active_str = "Yes" if org.is_active else "No"
        gst_str = "Yes" if org.gst_enabled else "No"
        click.echo(f"{org.id:<5} {org.name:<30} {org.code or '-':<15} {active_str:<8} {org.state_code or '-':<6} {gst_str}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--state-code', default=None, help='State code used to derive INTRA/INTER tax mode')
@with_appcontext
def create_org_cli(name, code, state_code):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(
        name=name,
        code=code,
        is_active=True,
        state_code=state_code.upper() if state_code else None,
    )
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


@click.group('catalog')
def catalog_group():
    """Rate table and process master commands."""


@catalog_group.command('seed')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def seed_catalog_cli(org_id):
    """Load the starter catalog for an organization."""
    org = db.session.get(Organization, org_id)
    if not org:
        click.echo(f"FAIL Organization ID {org_id} not found")
        return

    result = catalog_service.seed_default_catalog(org_id)
    click.echo(
        f"PASS Seeded {result['glass_rates']} glass rates and "
        f"{result['processes']} processes for {org.name}"
    )


@click.group('sequences')
def sequences_group():
    """Document number sequence commands."""


@sequences_group.command('list')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def list_sequences_cli(org_id):
    """Show number sequences for an organization."""
    rows = numbering_service.list_sequences(org_id)
    if not rows:
        click.echo("No sequences yet (created on first document).")
        return

    click.echo(f"{'Type':<12} {'Pattern':<30} {'Next'}")
    for seq in rows:
        click.echo(f"{seq.document_type:<12} {seq.pattern:<30} {seq.next_number}")


@sequences_group.command('repair')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--type', 'document_type', default=None, help='QUOTE, ORDER or INVOICE (default: all)')
@with_appcontext
def repair_sequences_cli(org_id, document_type):
    """Move counters past numbers already in use."""
    org = db.session.get(Organization, org_id)
    if not org:
        click.echo(f"FAIL Organization ID {org_id} not found")
        return

    try:
        if document_type:
            next_number = numbering_service.repair_sequence(org_id, document_type)
            click.echo(f"PASS {document_type.upper()}: next number {next_number}")
        else:
            for result in numbering_service.repair_all_sequences(org_id):
                click.echo(f"PASS {result['document_type']}: next number {result['next_number']}")
    except ValidationError as e:
        click.echo(f"FAIL {e}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(catalog_group)
    app.cli.add_command(sequences_group)
