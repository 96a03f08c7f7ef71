# Overview: Flask API routes for user administration and per-user permission management.

"""
User administration routes.

- User CRUD: admin or "manage users"
- Permission assignment: admin only (require_admin)
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import permission_service, user_service
from ..validation import PERMISSIONS_SCHEMA

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _bool_arg(name: str) -> bool | None:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true")


def _list_users():
    result = user_service.list_users(
        g.actor,
        search=request.args.get("search"),
        is_admin=_bool_arg("is_admin"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@users_bp.get("")
@require_auth
def list_users():
    """
    List users, newest first.

    Query params:
    - search: matches name or email
    - is_admin: 1/0/true/false
    - page, per_page
    """
    return _list_users()


@users_bp.get("/search")
@require_auth
def search_users():
    """Same rules as the listing."""
    return _list_users()


@users_bp.post("")
@require_auth
def create_user():
    user = user_service.create_user(g.actor, request.get_json(silent=True))
    return jsonify({"data": user.to_dict()}), 201


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    user = user_service.get_user(user_id)
    user_service.view_user(user, g.actor)
    return jsonify({"data": user.to_dict()})


@users_bp.put("/<int:user_id>")
@require_auth
def update_user(user_id: int):
    user = user_service.get_user(user_id)
    user = user_service.update_user(user, g.actor, request.get_json(silent=True))
    return jsonify({"data": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user(user_id: int):
    user = user_service.get_user(user_id)
    user_service.delete_user(user, g.actor)
    return "", 204


# =============================================================================
# PERMISSIONS
# =============================================================================

@users_bp.get("/<int:user_id>/permissions")
@require_auth
@require_admin
def get_user_permissions(user_id: int):
    user = user_service.get_user(user_id)
    return jsonify({"data": permission_service.describe_user_permissions(user)})


@users_bp.post("/<int:user_id>/permissions")
@require_auth
@require_admin
def assign_permissions(user_id: int):
    """Add permissions. Body: {"permissions": ["manage campaigns", ...]}."""
    user = user_service.get_user(user_id)
    names = PERMISSIONS_SCHEMA.validate(request.get_json(silent=True))["permissions"]
    permission_service.assign_permissions(user, names, granted_by=g.current_user)
    return jsonify({
        "message": "Permissions assigned successfully.",
        "data": {"user_id": user.id, "assigned_permissions": names},
    })


@users_bp.put("/<int:user_id>/permissions")
@require_auth
@require_admin
def sync_permissions(user_id: int):
    """Replace direct permissions. An empty list clears them."""
    user = user_service.get_user(user_id)
    names = PERMISSIONS_SCHEMA.validate(request.get_json(silent=True))["permissions"]
    permission_service.sync_permissions(user, names, granted_by=g.current_user)
    return jsonify({
        "message": "Permissions synchronized successfully.",
        "data": {"user_id": user.id, "current_permissions": names},
    })


@users_bp.delete("/<int:user_id>/permissions")
@require_auth
@require_admin
def remove_permissions(user_id: int):
    user = user_service.get_user(user_id)
    names = PERMISSIONS_SCHEMA.validate(request.get_json(silent=True))["permissions"]
    permission_service.remove_permissions(user, names)
    return jsonify({
        "message": "Permissions removed successfully.",
        "data": {"user_id": user.id, "removed_permissions": names},
    })
