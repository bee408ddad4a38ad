# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/fuelstation/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: tables, default admin, checklist items, cleaning operations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.
#
# Users:
# - python -m flask users list
# - python -m flask users create --email staff@station.local --name "Ayse" --password "Password123!" --role staff
#
# Handover checklist:
# - python -m flask checklist list
# - python -m flask checklist add --title "Cash drawer counted"
#
# Plate requests:
# - python -m flask requests pending

import click
from flask.cli import with_appcontext

from .errors import WorkflowError
from .extensions import db
from .models import ChecklistItem, CleaningOperation, PlateRequest, User
from .permissions import ROLES, ROLE_ADMIN
from .services import auth_service, cleaning_service, handover_service, session_service
from .time_utils import to_utc_z


DEFAULT_ADMIN_EMAIL = "admin@station.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"

DEFAULT_CHECKLIST = [
    ("Cash drawer counted and matches the register", None),
    ("Pump displays and nozzles checked", "Report any leaking or damaged nozzle"),
    ("Forecourt clear of spills", None),
    ("Shop shelves restocked", None),
    ("Open customer issues handed over", "Write them in the note if any"),
]

DEFAULT_CLEANING_OPERATIONS = [
    "Restrooms",
    "Forecourt",
    "Shop floor",
    "Pump islands",
    "Bins emptied",
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=DEFAULT_ADMIN_EMAIL, help='Email of the default admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the default admin')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize the station: tables, default admin, checklist and cleaning operations.

    Safe to run more than once; existing rows are left alone.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing fuel station backend...")

    db.create_all()
    click.echo("PASS Tables ensured")

    existing = db.session.query(User).filter_by(email=auth_service.normalize_email(admin_email)).first()
    if existing:
        click.echo(f"WARN  User '{existing.email}' already exists, skipping...")
    else:
        try:
            user = auth_service.bootstrap_user(
                email=admin_email,
                name="Administrator",
                password=admin_password,
                role=ROLE_ADMIN,
            )
            click.echo(f"PASS Created admin: {user.email}")
        except WorkflowError as e:
            click.echo(f"FAIL Could not create admin '{admin_email}': {e}")

    if db.session.query(ChecklistItem).count() == 0:
        for order, (title, description) in enumerate(DEFAULT_CHECKLIST, start=1):
            handover_service.bootstrap_checklist_item(title=title, description=description, sort_order=order)
        click.echo(f"PASS Created {len(DEFAULT_CHECKLIST)} checklist items")
    else:
        click.echo("WARN  Checklist already populated, skipping...")

    if db.session.query(CleaningOperation).count() == 0:
        for order, name in enumerate(DEFAULT_CLEANING_OPERATIONS, start=1):
            cleaning_service.bootstrap_operation(name=name, sort_order=order)
        click.echo(f"PASS Created {len(DEFAULT_CLEANING_OPERATIONS)} cleaning operations")
    else:
        click.echo("WARN  Cleaning operations already populated, skipping...")

    click.echo("\n" + "=" * 60)
    click.echo("DONE Fuel station backend initialized")
    click.echo("=" * 60)
    click.echo(f"\nAdmin login: {admin_email}")
    click.echo("SECURITY Change the default password in production!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired or revoked session tokens older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session tokens")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, name, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.bootstrap_user(email=email, name=name, password=password, role=role)
    except WorkflowError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and active status."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<24} {'Role':<7} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<32} {(user.name or ''):<24} {user.role:<7} "
            f"{'yes' if user.is_active else 'no'}"
        )
    click.echo("")


@click.group('checklist')
def checklist_group():
    """Handover checklist template commands."""


@checklist_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive items')
@with_appcontext
def list_checklist(show_all):
    query = db.session.query(ChecklistItem)
    if not show_all:
        query = query.filter(ChecklistItem.active.is_(True))
    items = query.order_by(ChecklistItem.sort_order, ChecklistItem.id).all()

    if not items:
        click.echo("No checklist items.")
        return

    for item in items:
        flag = "" if item.active else " (inactive)"
        click.echo(f"{item.id:<5} #{item.sort_order:<4} {item.title}{flag}")


@checklist_group.command('add')
@click.option('--title', prompt=True, help='Question shown to the incoming staff member')
@click.option('--description', default=None, help='Optional hint')
@click.option('--sort-order', type=int, default=None, help='Position (defaults to last)')
@with_appcontext
def add_checklist_item(title, description, sort_order):
    try:
        item = handover_service.bootstrap_checklist_item(
            title=title, description=description, sort_order=sort_order
        )
    except WorkflowError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created checklist item {item.id}: {item.title}")


@click.group('requests')
def requests_group():
    """Plate discount request inspection."""


@requests_group.command('pending')
@with_appcontext
def pending_requests():
    """List pending plate requests, newest first."""
    pending = (
        db.session.query(PlateRequest)
        .filter_by(status="pending")
        .order_by(PlateRequest.created_at.desc(), PlateRequest.id.desc())
        .all()
    )
    if not pending:
        click.echo("No pending requests.")
        return

    click.echo(f"{'ID':<5} {'Plate':<12} {'Requested by':<28} {'Created'}")
    for req in pending:
        click.echo(
            f"{req.id:<5} {req.plate:<12} {(req.requested_by_name or req.requested_by_email or ''):<28} "
            f"{to_utc_z(req.created_at)}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(checklist_group)
    app.cli.add_command(requests_group)
