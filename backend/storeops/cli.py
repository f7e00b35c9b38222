# Overview: Flask CLI command groups for bootstrap, store directory and revenue aggregation.

# backend/storeops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="storeops:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables in the local database (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with active status.
# - python -m flask users create --username admin --email admin@storeops.local --password "Password123!"
#   Create a user (prompts if options are omitted).
#
# Store directory (goes through the configured entity store):
# - python -m flask stores list
# - python -m flask stores create --name "Ticinese"
#
# Revenue aggregation:
# - python -m flask revenue aggregate [--date 2024-05-01]
#   Run the daily store-revenue job (default: yesterday) and print the JSON report.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than 30 days.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, get_entity_store
from .models import User
from .services.aggregation_errors import AggregationError
from .services.aggregation_service import AggregationSettings, run_daily_aggregation
from .services.auth_service import create_user, PasswordValidationError
from .services.date_window import resolve_target_date
from .services.entity_store import EntityStoreError
from .services import session_service
from .services.store_directory import load_stores, normalize_store_name


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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, email, password):
    """
    Create a new console user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(username=username, email=email, password=password)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} ({user.email})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8}")
    click.echo("=" * 70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8}")
    click.echo("=" * 70 + "\n")


@click.group('stores')
def stores_group():
    """Store directory commands (entity store)."""


@stores_group.command('list')
@with_appcontext
def list_stores_cli():
    """List the store directory as the aggregation job sees it."""
    try:
        stores = load_stores(get_entity_store())
    except AggregationError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)

    channel_table = current_app.config.get("CHANNEL_STORE_NAMES") or {}
    for store in stores:
        codes = [
            code for code, name in channel_table.items()
            if normalize_store_name(name) == normalize_store_name(store.get("name"))
        ]
        suffix = f"  channels: {', '.join(codes)}" if codes else ""
        click.echo(f"{store['id']}  {store.get('name')}{suffix}")


@stores_group.command('create')
@click.option('--name', required=True, help='Store name (unique, case-insensitive)')
@with_appcontext
def create_store_cli(name):
    """Add a store to the directory."""
    entity_store = get_entity_store()
    try:
        existing = load_stores(entity_store)
    except AggregationError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)

    if any(normalize_store_name(s.get("name")) == normalize_store_name(name) for s in existing):
        click.echo(f"FAIL A store named '{name}' already exists")
        raise SystemExit(1)

    try:
        store = entity_store.create("Store", {"name": name.strip()})
    except EntityStoreError as e:
        click.echo(f"FAIL Failed to create store: {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Created store: {store.get('name')} (ID: {store.get('id')})")


@click.group('revenue')
def revenue_group():
    """Daily store revenue aggregation."""


@revenue_group.command('aggregate')
@click.option('--date', 'date_str', default=None, help='Day to aggregate (YYYY-MM-DD, default: yesterday)')
@with_appcontext
def aggregate_cli(date_str):
    """Run the daily store-revenue job and print its JSON report."""
    settings = AggregationSettings.from_config(current_app.config)
    try:
        target_date = resolve_target_date(date_str, tz=settings.tz)
        report = run_daily_aggregation(
            get_entity_store(),
            target_date=target_date,
            settings=settings,
            log=current_app.logger,
        )
    except AggregationError as e:
        click.echo(f"FAIL {type(e).__name__}: {str(e)}", err=True)
        raise SystemExit(1)

    click.echo(json.dumps(report.to_dict(), indent=2))
    if report.failed_stores:
        click.echo(f"WARN {report.failed_stores} store(s) failed to persist", err=True)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(revenue_group)
    app.cli.add_command(maintenance_group)
