# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/foamstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init --email owner@foamstock.local --password "Password123!"
#   Idempotent bootstrap: creates tables and the business owner account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --first-name Ada --last-name Obi --email ada@foamstock.local --role salesperson
#   Create a user (prompts if options are omitted).
#
# Permission inspection/repair:
# - python -m flask perms list [--email ada@foamstock.local]
#   List permission names, or one user's permission flags.
# - python -m flask perms grant ada@foamstock.local view_profits
#   Grant a permission to a user.
# - python -m flask perms revoke ada@foamstock.local view_profits
#   Revoke a permission from a user.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import ROLES, User
from .permissions import PERMISSION_DEFINITIONS, PERMISSION_NAMES
from .services.auth_service import create_user, set_permission
from .services.session_service import cleanup_expired_sessions


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--first-name', default='Business', help='Owner first name')
@click.option('--last-name', default='Owner', help='Owner last name')
@click.option('--email', default='owner@foamstock.local', help='Owner email')
@click.option('--password', default='Password123!', help='Owner password')
@with_appcontext
def init_system(first_name, last_name, email, password):
    """
    Initialize FoamStock: create tables and the business owner account.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing FoamStock...")

    db.create_all()
    click.echo("PASS Tables created")

    owner = db.session.query(User).filter_by(role="business_owner").first()
    if owner:
        click.echo(f"WARN  Business owner already exists ({owner.email}), skipping...")
        return

    try:
        owner = create_user(first_name, last_name, email, password, "business_owner")
    except AppError as e:
        click.echo(f"FAIL Failed to create business owner: {e.message}")
        return

    click.echo(f"PASS Created business owner: {owner.email}")
    click.echo("\nSECURITY WARNING: change this password immediately in production!")


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
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@with_appcontext
def create_user_cli(first_name, last_name, email, password, role):
    """
    Create a new user with the role's default permissions.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(first_name, last_name, email, password, role)
    except AppError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.display_name} ({user.email}) with role '{role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<30} {'Role':<16} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.display_name:<25} {user.email:<30} {user.role:<16} {active_str}")

    click.echo("="*90 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--email', help='Show the permission flags of one user')
@with_appcontext
def list_permissions_cli(email):
    """List permission names, or one user's permission flags."""
    if email:
        user = db.session.query(User).filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo(f"FAIL User '{email}' not found")
            return
        click.echo(f"\nPermissions for {user.email} ({user.role}):")
        for name, granted in user.permissions_dict().items():
            click.echo(f"  {name:<20} {'yes' if granted else 'no'}")
        click.echo("")
        return

    click.echo(f"\n{'Name':<20} {'Label':<20} {'Description'}")
    click.echo("-"*80)
    for name, label, description in PERMISSION_DEFINITIONS:
        click.echo(f"{name:<20} {label:<20} {description}")
    click.echo(f"\n Total: {len(PERMISSION_DEFINITIONS)} permissions\n")


def _toggle_permission(email: str, permission_name: str, value: bool) -> None:
    if permission_name not in PERMISSION_NAMES:
        click.echo(f"FAIL Unknown permission '{permission_name}'")
        return
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return
    set_permission(user.id, permission_name, value)
    verb = "Granted" if value else "Revoked"
    click.echo(f"PASS {verb} '{permission_name}' for '{user.email}'")


@perms_group.command('grant')
@click.argument('email')
@click.argument('permission_name')
@with_appcontext
def grant_permission_cli(email, permission_name):
    """Grant a permission to a user."""
    _toggle_permission(email, permission_name, True)


@perms_group.command('revoke')
@click.argument('email')
@click.argument('permission_name')
@with_appcontext
def revoke_permission_cli(email, permission_name):
    """Revoke a permission from a user."""
    _toggle_permission(email, permission_name, False)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
