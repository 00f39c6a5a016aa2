# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/ipms/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables that do not exist yet. Prefer `flask db upgrade` once migrations are in use.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User bootstrap/inspection:
# - python -m flask users seed-admin [--email admin@example.com] [--password "..."] [--full-name "..."]
#   Idempotently create the bootstrap ADMIN. Defaults come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_FULL_NAME.
# - python -m flask users list
#   List all users with role, department and status flags.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import user_service
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables. Existing tables and data are left alone."""
    click.echo("START Initializing inventory system schema...")
    db.create_all()
    click.echo("PASS Tables ready. Next: python -m flask users seed-admin")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stock movement history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask users seed-admin' to bootstrap.")


@click.group('users')
def users_group():
    """User bootstrap and inspection commands."""


@users_group.command('seed-admin')
@click.option('--email', default=None, help='Admin email (default: ADMIN_EMAIL)')
@click.option('--password', default=None, help='Admin password (default: ADMIN_PASSWORD)')
@click.option('--full-name', default=None, help='Display name (default: ADMIN_FULL_NAME)')
@with_appcontext
def seed_admin_cli(email, password, full_name):
    """
    Create the bootstrap ADMIN if no user has that email yet.

    The seeded admin does not have to rotate the password and cannot change it
    through the API.
    """
    config = current_app.config
    email = email or config.get("ADMIN_EMAIL")
    password = password or config.get("ADMIN_PASSWORD")
    full_name = full_name or config.get("ADMIN_FULL_NAME") or "System Administrator"

    if not email or not password:
        raise click.UsageError("ADMIN_EMAIL and ADMIN_PASSWORD must be set (or pass --email/--password).")

    try:
        user, created = user_service.seed_admin(
            db.session,
            email=email,
            password=password,
            full_name=full_name,
        )
    except ValidationError as e:
        raise click.ClickException(f"FAIL {e}")

    if created:
        click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
    else:
        click.echo(f"WARN  User '{user.email}' already exists (role {user.role}), skipping...")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<24} {'Role':<20} {'Active':<8} {'Rotate'}")
    click.echo("="*110)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        rotate_str = "Yes" if user.must_change_password else "No"
        click.echo(
            f"{user.id:<5} {user.email:<32} {(user.full_name or '-'):<24} {user.role:<20} {active_str:<8} {rotate_str}"
        )

    click.echo("="*110 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
