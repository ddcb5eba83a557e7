# Overview: Flask CLI command groups for bootstrap, user management, SMS delivery and maintenance.

# backend/solnet/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-username admin --admin-email admin@solnet.local --admin-password "Password123!"]
#   Idempotent: creates tables, seeds notification types, the main location,
#   default expense categories, and the first admin when no admin exists.
#
# Users:
# - python -m flask users create --username tech1 --email tech1@solnet.local --password "Password123!" --role technician --location-code MAIN
#   Create a worker (prompts if options are omitted).
# - python -m flask users list [--location-code MAIN]
#   List workers with role, location and active status.
#
# SMS:
# - python -m flask sms process-queue [--batch-size 10]
#   Deliver pending queued messages and send scheduled campaigns that are due.
#   Run from cron every minute in production.
#
# Inventory:
# - python -m flask inventory refresh-predictions
#   Recompute avg_daily_sales / predicted_stockout on every active item.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events and dead sessions older than the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import InventoryItem, Location, User
from .models.auth import USER_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import (
    expense_service,
    inventory_prediction_service,
    maintenance_service,
    notification_service,
    sms_campaign_service,
    sms_queue_service,
)


MAIN_LOCATION_CODE = "MAIN"


def _location_by_code(code):
    if not code:
        return None
    location = db.session.query(Location).filter_by(code=code.strip().upper()).first()
    if not location:
        raise click.ClickException(f"Location '{code}' not found")
    return location


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', show_default=True, help='Username of the first admin')
@click.option('--admin-email', default='admin@solnet.local', show_default=True, help='Email of the first admin')
@click.option('--admin-password', default='Password123!', show_default=True, help='Password of the first admin')
@click.option('--location-name', default='Main Shop', show_default=True, help='Name of the main location')
@with_appcontext
def init_system(admin_username, admin_email, admin_password, location_name):
    """
    Initialize the back office.

    Creates:
    - All tables (no-op for existing ones)
    - Notification types
    - The main location (code MAIN)
    - Default expense categories
    - An admin user, unless an admin already exists

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing SolNet back office...")

    db.create_all()
    click.echo("PASS Tables ready")

    created_types = notification_service.seed_notification_types()
    click.echo(f"PASS Notification types: {created_types} created")

    location = db.session.query(Location).filter_by(code=MAIN_LOCATION_CODE).first()
    if not location:
        location = Location(name=location_name, code=MAIN_LOCATION_CODE, is_active=True)
        db.session.add(location)
        db.session.commit()
        click.echo(f"PASS Created main location: {location.name} (ID: {location.id})")
    else:
        click.echo(f"PASS Using existing location: {location.name} (ID: {location.id})")

    created_categories = expense_service.seed_expense_categories()
    click.echo(f"PASS Expense categories: {created_categories} created")

    admin = db.session.query(User).filter_by(role="admin").first()
    if admin:
        click.echo(f"WARN  Admin '{admin.username}' already exists, skipping...")
    else:
        try:
            admin = create_user(
                username=admin_username,
                email=admin_email,
                password=admin_password,
                role="admin",
                location_id=location.id,
            )
        except PasswordValidationError as e:
            raise click.ClickException(f"Password validation failed: {e}")
        except ValueError as e:
            raise click.ClickException(f"Failed to create admin: {e}")
        click.echo(f"PASS Created admin: {admin.username} ({admin.email})")

    click.echo("\n" + "="*60)
    click.echo("DONE SolNet initialized")
    click.echo("="*60)
    click.echo("\nSECURITY WARNING: change the admin password in production!")


@click.group('users')
def users_group():
    """Worker account commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--location-code', default=MAIN_LOCATION_CODE, show_default=True, help='Location code')
@with_appcontext
def create_user_cli(username, email, password, role, location_code):
    """
    Create a worker account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    location = _location_by_code(location_code)
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            location_id=location.id if location else None,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit")
        return
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
    if location:
        click.echo(f"     Location: {location.name} ({location.code})")


@users_group.command('list')
@click.option('--location-code', default=None, help='Only workers of this location')
@with_appcontext
def list_users(location_code):
    """List workers with their roles."""
    query = db.session.query(User)
    location = _location_by_code(location_code)
    if location:
        query = query.filter(User.location_id == location.id)
    users = query.order_by(User.username.asc()).all()

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<6}{'Username':<20}{'Email':<32}{'Role':<18}{'Loc':<6}{'Active':<8}")
    click.echo("-"*90)
    for user in users:
        click.echo(
            f"{user.id:<6}{user.username:<20}{user.email:<32}{user.role:<18}"
            f"{str(user.location_id or '-'):<6}{'yes' if user.is_active else 'no':<8}"
        )
    click.echo("="*90 + "\n")


@click.group('sms')
def sms_group():
    """Outbound SMS commands."""


@sms_group.command('process-queue')
@click.option('--batch-size', type=int, default=None, help='Max queued messages to attempt')
@with_appcontext
def process_queue_cli(batch_size):
    """Deliver pending queued SMS and send scheduled campaigns that are due."""
    batch_size = batch_size or current_app.config.get("SMS_QUEUE_BATCH_SIZE") or sms_queue_service.DEFAULT_BATCH_SIZE
    summary = sms_queue_service.process_pending(batch_size=batch_size)
    click.echo(
        f"Queue: processed {summary['processed']}, sent {summary['sent']}, "
        f"failed {summary['failed']}, retrying {summary['retrying']}"
    )
    campaigns = sms_campaign_service.send_due_campaigns()
    click.echo(f"Campaigns: sent {campaigns} scheduled campaign(s)")


@click.group('inventory')
def inventory_group():
    """Inventory commands."""


@inventory_group.command('refresh-predictions')
@with_appcontext
def refresh_predictions_cli():
    """Recompute stockout predictions for every active item."""
    items = db.session.query(InventoryItem).filter(InventoryItem.is_active.is_(True)).all()
    refreshed = inventory_prediction_service.refresh_snapshots(items)
    click.echo(f"Refreshed predictions for {refreshed} item(s).")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events and dead sessions.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")
    sessions = maintenance_service.cleanup_sessions(retention_days=retention_days)
    click.echo(f"Deleted {sessions} expired or revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sms_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(maintenance_group)
