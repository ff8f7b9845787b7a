# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Asha" --email asha@example.com --password "Passw0rd!"
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#
# Invoice sequences:
# - python -m flask sequences show --user-id 1 [--date 2026-10-18]
#   Show the counter row and the next invoice number for a user and business day.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import InvoiceSequenceCounter, User
from .services.auth_service import create_user, PasswordValidationError
from .services.sequence_service import format_invoice_no
from .time_utils import business_date, parse_iso_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


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
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_command(name, email, password):
    """Create a user account."""
    try:
        user = create_user(name=name, email=email, password=password)
    except (ValueError, PasswordValidationError) as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>5}  {user.email:<40} {user.name:<30} {status}")


@click.group('sequences')
def sequences_group():
    """Invoice sequence inspection commands."""


@sequences_group.command('show')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--date', 'date_str', default=None, help='Business date YYYY-MM-DD (default: today)')
@with_appcontext
def show_sequence(user_id, date_str):
    """Show the counter for a user and business day."""
    try:
        day = parse_iso_date(date_str) or business_date(current_app.config["BUSINESS_TIMEZONE"])
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD", param_hint="--date")

    counter = (
        db.session.query(InvoiceSequenceCounter)
        .filter_by(user_id=user_id, business_date=day)
        .first()
    )
    next_serial = counter.next_serial if counter else 1
    click.echo(f"User {user_id}, business date {day.isoformat()}")
    click.echo(f"  issued serials: {next_serial - 1}")
    click.echo(f"  next invoice:   {format_invoice_no(user_id, day, next_serial)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sequences_group)
