# Overview: Flask API routes for auth operations; login, logout and the current user.

# backend/crowdfund/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- bcrypt password verification
- Opaque bearer session tokens (hashed at rest)
- Failed logins recorded as LOGIN_FAILED security events
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..validation import LOGIN_SCHEMA
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/auth/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body: {"email": "...", "password": "..."}

    Returns user info, effective permissions and the session token.
    The token must be sent as "Authorization: Bearer <token>".
    """
    data = LOGIN_SCHEMA.validate(request.get_json(silent=True))

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(data["email"], data["password"])

    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action="login",
            reason=f"Invalid credentials for {data['email']}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"message": "Invalid credentials."}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address
    )

    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user.id)),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful"
    }), 200


@auth_bp.post("/auth/logout")
@require_auth
def logout_route():
    """
    Revoke the current session token.

    WHY: Explicit logout prevents token reuse.
    """
    session_service.revoke_session(g.token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/user")
@require_auth
def current_user_route():
    """Current user with effective permissions and roles (for admin console RBAC)."""
    user = g.current_user
    body = user.to_dict()
    body["permissions"] = sorted(g.actor.permissions)
    body["roles"] = permission_service.get_user_role_names(user.id)
    return jsonify({"data": body}), 200
