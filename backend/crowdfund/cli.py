# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/crowdfund/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: permissions, default roles and an admin account.
# - python -m flask system init-permissions
#   Initialize permissions and assign defaults to roles.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --name "Jane Admin" --email admin@crowdfund.local --password "Password123!" --admin
#   Create a user (prompts if options are omitted).
#
# Permission inspection/repair:
# - python -m flask perms list --category DONATIONS
#   List permissions (optionally filtered by category).
# - python -m flask perms grant admin@crowdfund.local "manage campaigns"
#   Grant a permission directly to a user.
# - python -m flask perms revoke admin@crowdfund.local "manage campaigns"
#   Revoke a directly granted permission.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Permission, SecurityEvent
from .services.auth_service import create_default_roles, hash_password, PasswordValidationError
from .services import permission_service
from .time_utils import utcnow
from .validation import ValidationError


def _find_user(email: str) -> User | None:
    return db.session.query(User).filter(db.func.lower(User.email) == email.strip().lower()).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default='admin@crowdfund.local', help='Admin email')
@click.option('--password', default='Password123!', help='Admin password')
@with_appcontext
def init_system(email, password):
    """
    Initialize the platform: permissions, roles and the first admin.

    Creates:
    - Permissions: manage campaigns, manage donations, view donations, manage users
    - Roles: moderator, finance, support (with their default permissions)
    - Admin user (is_admin=True) if no user with that email exists

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing crowdfund platform...")

    created = permission_service.initialize_permissions()
    click.echo(f"PASS Permissions ready ({created} created)")

    create_default_roles()
    assigned = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Roles ready ({assigned} role permissions assigned)")

    admin = _find_user(email)
    if admin:
        click.echo(f"PASS Using existing admin: {admin.email}")
    else:
        try:
            admin = User(
                name="Administrator",
                email=email.strip().lower(),
                password_hash=hash_password(password),
                is_admin=True,
                email_verified_at=utcnow(),
            )
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            return
        db.session.add(admin)
        db.session.commit()
        click.echo(f"PASS Created admin: {admin.email}")

    click.echo("DONE System initialized")


@system_group.command('init-permissions')
@with_appcontext
def init_permissions():
    """Initialize permissions and assign defaults to existing roles."""
    created = permission_service.initialize_permissions()
    assigned = permission_service.assign_default_role_permissions()
    click.echo(f"PASS {created} permissions created, {assigned} role permissions assigned")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant administrator rights')
@with_appcontext
def create_user_cli(name, email, password, is_admin):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    if _find_user(email):
        click.echo(f"FAIL A user with email {email} already exists")
        return

    try:
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=hash_password(password),
            is_admin=is_admin,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return

    db.session.add(user)
    db.session.commit()

    click.echo(f"PASS Created user: {name} ({user.email}){' as admin' if is_admin else ''}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with roles and active status."""
    users = db.session.query(User).order_by(User.id).all()

    click.echo(f"{'ID':<6} {'Email':<35} {'Admin':<6} {'Active':<7} {'Roles'}")
    click.echo("-" * 80)
    for user in users:
        roles = ", ".join(permission_service.get_user_role_names(user.id)) or "-"
        click.echo(f"{user.id:<6} {user.email:<35} {str(user.is_admin):<6} {str(user.is_active):<7} {roles}")

    click.echo(f"\n Total: {len(users)} users\n")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_permissions_cli(category):
    """List all permissions, optionally filtered by category."""
    query = db.session.query(Permission)
    if category:
        query = query.filter_by(category=category)
    perms = query.order_by(Permission.category, Permission.name).all()

    click.echo(f"{'Name':<25} {'Category':<12} {'Description'}")
    click.echo("-" * 80)
    for perm in perms:
        click.echo(f"{perm.name:<25} {perm.category or '':<12} {perm.description or ''}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('grant')
@click.argument('email')
@click.argument('permission_name')
@with_appcontext
def grant_permission_cli(email, permission_name):
    """Grant a permission directly to a user."""
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    try:
        permission_service.assign_permissions(user, [permission_name])
        click.echo(f"PASS Granted '{permission_name}' to {user.email}")
    except ValidationError as e:
        click.echo(f"FAIL Error: {e.message}")


@perms_group.command('revoke')
@click.argument('email')
@click.argument('permission_name')
@with_appcontext
def revoke_permission_cli(email, permission_name):
    """Revoke a directly granted permission."""
    user = _find_user(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    try:
        permission_service.remove_permissions(user, [permission_name])
        click.echo(f"PASS Revoked '{permission_name}' from {user.email}")
    except ValidationError as e:
        click.echo(f"FAIL Error: {e.message}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', default=90, type=int, help='Keep events newer than this')
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """Delete security events older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = (
        db.session.query(SecurityEvent)
        .filter(SecurityEvent.occurred_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    click.echo(f"PASS Deleted {deleted} security events older than {retention_days} days")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
