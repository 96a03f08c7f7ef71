# Overview: Service-layer operations for permission; resolution, assignment and security event logging.

"""
Permission Resolution, Assignment and Security Event Logging

WHY: Enforce role-based access control and create audit trail.
Authorization denials are logged for security monitoring.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged as security events
- Effective permissions = direct grants UNION role grants
- is_admin bypasses permission checks entirely (see policy_service)
"""

from flask import current_app

from ..extensions import db
from ..models import User, UserRole, Role, RolePermission, Permission, SecurityEvent, UserPermission
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS
from ..time_utils import utcnow
from ..validation import ValidationError


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    WHY: Immutable audit log for compliance and security monitoring.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    - PERMISSIONS_CHANGED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_direct_permissions(user_id: int) -> set[str]:
    """Permission names granted to the user directly."""
    rows = (
        db.session.query(Permission.name)
        .join(UserPermission, UserPermission.permission_id == Permission.id)
        .filter(UserPermission.user_id == user_id)
        .all()
    )
    return {name for (name,) in rows}


def get_role_permissions(user_id: int) -> set[str]:
    """Permission names the user inherits through roles."""
    rows = (
        db.session.query(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    return {name for (name,) in rows}


def get_user_permissions(user_id: int) -> set[str]:
    """
    Get all effective permission names for a user.

    Returns set of permission names (e.g., {"manage campaigns"}).

    WHY: Centralized permission resolution. Direct grants and every
    role's grants are unioned.
    """
    return get_direct_permissions(user_id) | get_role_permissions(user_id)


def get_user_role_names(user_id: int) -> list[str]:
    """Get sorted list of role names for a user."""
    rows = (
        db.session.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .order_by(Role.name)
        .all()
    )
    return [name for (name,) in rows]


def describe_user_permissions(user: User) -> dict:
    """Permission breakdown returned by the user permissions endpoints."""
    direct = get_direct_permissions(user.id)
    via_roles = get_role_permissions(user.id)
    return {
        "user_id": user.id,
        "user_name": user.name,
        "direct_permissions": sorted(direct),
        "role_permissions": sorted(via_roles),
        "all_permissions": sorted(direct | via_roles),
        "roles": get_user_role_names(user.id),
    }


def list_permissions() -> list[Permission]:
    return db.session.query(Permission).order_by(Permission.name).all()


def _resolve_permissions(names: list, *, allow_empty: bool) -> list[Permission]:
    """
    Map requested names to Permission rows.

    Raises ValidationError with per-element keys (permissions.N) for
    non-string or unknown names.
    """
    if not names and not allow_empty:
        raise ValidationError.for_field("permissions", "The permissions field is required.")

    errors: dict[str, list[str]] = {}
    resolved: list[Permission] = []

    for index, name in enumerate(names):
        key = f"permissions.{index}"
        if not isinstance(name, str):
            errors[key] = [f"The {key} field must be a string."]
            continue
        permission = db.session.query(Permission).filter_by(name=name).first()
        if not permission:
            errors[key] = [f"The selected {key} is invalid."]
            continue
        if permission not in resolved:
            resolved.append(permission)

    if errors:
        raise ValidationError(errors)
    return resolved


def assign_permissions(user: User, names: list, *, granted_by: User | None = None) -> User:
    """Add direct permissions; already-held permissions are left alone."""
    permissions = _resolve_permissions(names, allow_empty=False)
    held = get_direct_permissions(user.id)

    for permission in permissions:
        if permission.name in held:
            continue
        db.session.add(UserPermission(
            user_id=user.id,
            permission_id=permission.id,
            granted_by_user_id=granted_by.id if granted_by else None,
        ))

    db.session.commit()
    current_app.logger.info(
        "Permissions assigned to user %s: %s", user.id, ", ".join(p.name for p in permissions)
    )
    return user


def sync_permissions(user: User, names: list, *, granted_by: User | None = None) -> User:
    """Replace the user's direct permission set. Role grants are untouched."""
    permissions = _resolve_permissions(names, allow_empty=True)
    wanted = {p.id for p in permissions}

    for grant in db.session.query(UserPermission).filter_by(user_id=user.id).all():
        if grant.permission_id not in wanted:
            db.session.delete(grant)
        else:
            wanted.discard(grant.permission_id)

    for permission_id in wanted:
        db.session.add(UserPermission(
            user_id=user.id,
            permission_id=permission_id,
            granted_by_user_id=granted_by.id if granted_by else None,
        ))

    db.session.commit()
    current_app.logger.info(
        "Permissions synced for user %s: [%s]", user.id, ", ".join(sorted(p.name for p in permissions))
    )
    return user


def remove_permissions(user: User, names: list) -> User:
    """Revoke direct permissions. Names the user never held are ignored."""
    permissions = _resolve_permissions(names, allow_empty=False)
    ids = [p.id for p in permissions]

    db.session.query(UserPermission).filter(
        UserPermission.user_id == user.id,
        UserPermission.permission_id.in_(ids),
    ).delete(synchronize_session=False)

    db.session.commit()
    current_app.logger.info(
        "Permissions removed from user %s: %s", user.id, ", ".join(p.name for p in permissions)
    )
    return user


def initialize_permissions() -> int:
    """
    Initialize all permission definitions in database.

    Creates Permission records for all names in PERMISSION_DEFINITIONS.
    Idempotent: Safe to run multiple times.

    WHY: Permissions must exist in DB before they can be assigned.
    """
    created_count = 0

    for name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(name=name).first()

        if not existing:
            db.session.add(Permission(
                name=name,
                guard_name="api",
                description=description,
                category=category,
            ))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """
    Assign default permissions to roles based on DEFAULT_ROLE_PERMISSIONS.

    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_name, permission_names in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()

        if not role:
            continue  # Role doesn't exist, skip

        for permission_name in permission_names:
            permission = db.session.query(Permission).filter_by(name=permission_name).first()

            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count
