# Overview: Service-layer operations for user administration; listing, creation, edits and deactivation.

"""
User Administration Service

ACCESS: admin or "manage users". Only admins may grant or revoke is_admin.

DELETION: users are deactivated, never removed, so campaigns, donations
and audit rows keep their attribution. Deactivation revokes every active
session immediately.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import User
from ..validation import USER_SCHEMA, ValidationError
from . import policy_service, session_service
from .auth_service import PasswordValidationError, hash_password
from .pagination import paginate
from .policy_service import Actor


def get_user(user_id: int) -> User:
    user = db.session.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found.")
    return user


def list_users(
    actor: Actor,
    *,
    search: str | None = None,
    is_admin: bool | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Newest first; search matches name or email."""
    policy_service.authorize(actor, policy_service.USER_MANAGE)

    query = db.session.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if is_admin is not None:
        query = query.filter(User.is_admin.is_(is_admin))

    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, page=page, per_page=per_page)


def view_user(user: User, actor: Actor) -> User:
    policy_service.authorize(actor, policy_service.USER_MANAGE)
    return user


def _check_email_free(email: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(User.id).filter(db.func.lower(User.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ValidationError.for_field("email", "The email has already been taken.")


def _hash_or_invalid(password: str) -> str:
    try:
        return hash_password(password)
    except PasswordValidationError as e:
        raise ValidationError.for_field("password", str(e))


def _check_admin_flag(actor: Actor, payload) -> None:
    if actor.is_admin or not isinstance(payload, dict):
        return
    if "is_admin" in payload:
        raise ForbiddenError("Only administrators can change administrator access.")


def create_user(actor: Actor, payload) -> User:
    policy_service.authorize(actor, policy_service.USER_MANAGE)
    _check_admin_flag(actor, payload)

    data = USER_SCHEMA.validate(payload)
    data["email"] = data["email"].lower()
    _check_email_free(data["email"])

    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=_hash_or_invalid(data.pop("password")),
        is_admin=data["is_admin"],
        is_active=data["is_active"],
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User %s created by user %s", user.id, actor.id)
    return user


def update_user(user: User, actor: Actor, payload) -> User:
    """Partial update. A new password is strength-checked and re-hashed."""
    policy_service.authorize(actor, policy_service.USER_MANAGE)
    _check_admin_flag(actor, payload)

    data = USER_SCHEMA.validate(payload, partial=True)
    if "email" in data:
        data["email"] = data["email"].lower()
        _check_email_free(data["email"], exclude_id=user.id)
    if "password" in data:
        user.password_hash = _hash_or_invalid(data.pop("password"))

    was_active = user.is_active
    for key, value in data.items():
        setattr(user, key, value)

    if was_active and not user.is_active:
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated")

    db.session.commit()
    current_app.logger.info("User %s updated by user %s", user.id, actor.id)
    return user


def delete_user(user: User, actor: Actor) -> None:
    """Deactivate the account and end its sessions."""
    policy_service.authorize(actor, policy_service.USER_MANAGE)
    if user.id == actor.id:
        raise ForbiddenError("You cannot delete your own account.")

    user.is_active = False
    session_service.revoke_all_user_sessions(user.id, reason="User deleted")
    db.session.commit()
    current_app.logger.info("User %s deactivated by user %s", user.id, actor.id)
