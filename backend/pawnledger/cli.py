# Overview: Flask CLI command groups for bootstrap, PIN setup and legacy import.

# backend/pawnledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (keeps existing data).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Counter PINs:
# - python -m flask auth set-pin --role ADMIN
#   Set the shared PIN for a role (prompts, hidden).
#
# Legacy data:
# - python -m flask contracts import-legacy deposits.csv [--dry-run]
#   Import deposit contracts from the old spreadsheet export.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.auth_service import ROLES, PinValidationError, set_pin
from .services.import_service import import_csv


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables are in place.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask auth set-pin' to set counter PINs.")


@click.group('auth')
def auth_group():
    """Counter PIN management."""


@auth_group.command('set-pin')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='4-8 digit PIN')
@with_appcontext
def set_pin_cli(role, pin):
    try:
        record = set_pin(role, pin)
    except PinValidationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS PIN updated for {record.role}")


@click.group('contracts')
def contracts_group():
    """Deposit contract maintenance."""


@contracts_group.command('import-legacy')
@click.argument('csv_file', type=click.File('r', encoding='utf-8-sig'))
@click.option('--dry-run', is_flag=True, help='Parse and report without writing')
@with_appcontext
def import_legacy(csv_file, dry_run):
    """Import deposit contracts from a legacy CSV export."""
    report = import_csv(csv_file, dry_run=dry_run)

    label = "WOULD IMPORT" if dry_run else "PASS Imported"
    click.echo(f"{label} {len(report.imported)} contract(s)")
    for row in report.skipped:
        click.echo(f"SKIP line {row['line']}: {row['error']}")
    for row in report.failed:
        click.echo(f"FAIL line {row['line']}: {row['error']}")

    if report.failed:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(auth_group)
    app.cli.add_command(contracts_group)
