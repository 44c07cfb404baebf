# Overview: Flask CLI command groups for bootstrap and user management.

# backend/shoppos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--company "My Shop"] [--admin-password "..."]
#   Idempotent: creates tables, the company profile and a default admin.
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username cashier1 --password "Cashier123" --role cashier
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CompanyProfile, User
from .models.auth import ROLE_ADMIN, VALID_ROLES
from .services.auth_service import create_user, list_users, PasswordValidationError


DEFAULT_ADMIN_PASSWORD = "Admin12345"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--company', 'company_name', default='POS SYSTEM', help='Company name printed on receipts')
@click.option('--admin-username', default='admin', help='Default administrator username')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Default administrator password')
@with_appcontext
def init_system(company_name, admin_username, admin_password):
    """
    Create tables, the company profile and the default admin account.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing system...")

    db.create_all()
    click.echo("PASS Tables ready")

    profile = db.session.query(CompanyProfile).first()
    if not profile:
        profile = CompanyProfile(company_name=company_name)
        db.session.add(profile)
        db.session.commit()
        click.echo(f"PASS Created company profile: {profile.company_name}")
    else:
        click.echo(f"PASS Using existing company profile: {profile.company_name}")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        try:
            create_user(username=admin_username, password=admin_password, role=ROLE_ADMIN)
            click.echo(f"PASS Created user: {admin_username} with role '{ROLE_ADMIN}'")
        except (PasswordValidationError, ValueError) as e:
            raise click.ClickException(f"Failed to create '{admin_username}': {e}")

    click.echo("DONE System initialized")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, password, role):
    """
    Create a new user.

    Password must be 8+ characters with at least one letter and one digit.
    """
    try:
        user = create_user(username=username, password=password, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users."""
    users = list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("=" * 60)
    click.echo(f"{'ID':<5} {'Username':<25} {'Role':<10} {'Active'}")
    click.echo("=" * 60)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<25} {user.role:<10} {'Yes' if user.is_active else 'No'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
