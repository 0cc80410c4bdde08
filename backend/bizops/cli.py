# Overview: Flask CLI command groups for bootstrap, user administration, and maintenance.

# backend/bizops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-password "Password123"]
#   Create all tables and a default admin user (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User administration:
# - python -m flask users list
#   List all users with role, tier and active status.
# - python -m flask users create --username alice --email alice@example.com --password "Password123" --role manager --tier premium
#   Create a user (prompts if options are omitted).
# - python -m flask users set-tier alice premium
#   Change a user's subscription tier.
# - python -m flask users deactivate alice
#   Deactivate a user and revoke all of their sessions.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import SessionToken, User
from .models.users import ROLES, SUBSCRIPTION_TIERS
from .services.auth_service import create_user, set_subscription_tier, PasswordValidationError
from .services.session_service import revoke_all_user_sessions
from .validation import ConflictError, NotFoundError, ValidationError
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Default admin username')
@click.option('--admin-email', default='admin@bizops.local', help='Default admin email')
@click.option('--admin-password', default='Password123', help='Default admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Create the schema and a default premium admin user.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing bizops...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"PASS Using existing admin user: {existing.username} (ID: {existing.id})")
        return

    try:
        user = create_user(
            username=admin_username,
            email=admin_email,
            password=admin_password,
            role='admin',
            subscription_tier='premium',
        )
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create admin user: {str(e)}")
        return

    click.echo(f"PASS Created admin user: {user.username} ({user.email}), tier premium")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every bizops table. Orders, stock and users are lost."""
    if not yes:
        click.confirm("WARN Every order, product and user will be deleted. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo(f"PASS Recreated {len(db.metadata.sorted_tables)} tables; run 'flask system init' for an admin user")


@click.group('users')
def users_group():
    """User administration commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), default='sales', show_default=True, help='Role')
@click.option('--tier', type=click.Choice(sorted(SUBSCRIPTION_TIERS)), default='standard', show_default=True, help='Subscription tier')
@with_appcontext
def create_user_cli(username, email, password, role, tier):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            subscription_tier=tier,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}', tier '{user.subscription_tier}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role, tier and status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Tier':<10} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {user.subscription_tier:<10} {active_str}"
        )

    click.echo("="*90 + "\n")


def _find_user(username: str) -> User | None:
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
    return user


@users_group.command('set-tier')
@click.argument('username')
@click.argument('tier', type=click.Choice(sorted(SUBSCRIPTION_TIERS)))
@with_appcontext
def set_tier_cli(username, tier):
    """Change a user's subscription tier."""
    user = _find_user(username)
    if not user:
        return

    try:
        set_subscription_tier(user.id, tier)
    except (ValidationError, NotFoundError) as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS {username} is now on the {tier} tier")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cli(username):
    """Deactivate a user and revoke every live session."""
    user = _find_user(username)
    if not user:
        return

    user.is_active = False
    db.session.commit()
    revoked = revoke_all_user_sessions(user.id, reason="User deactivated")

    click.echo(f"PASS Deactivated {username}; revoked {revoked} session(s)")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        SessionToken.created_at < cutoff,
        db.or_(SessionToken.is_revoked.is_(True), SessionToken.expires_at < utcnow()),
    ).delete(synchronize_session=False)
    db.session.commit()

    click.echo(f"PASS Deleted {deleted} session(s) created before {cutoff.isoformat()}Z")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
