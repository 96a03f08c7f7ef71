# Overview: Request authentication and admin gate decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.policy_service import Actor


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'actor')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.actor: Actor (id, is_admin, effective permissions) for policy checks
    - g.session_context: The full SessionContext object
    - g.token: The plaintext bearer token (for logout)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()

        if not token:
            return jsonify({"message": "Unauthenticated."}), 401

        context = session_service.validate_session(token)

        if not context:
            permission_service.log_security_event(
                user_id=None,
                event_type="AUTH_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Invalid or expired token",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"message": "Unauthenticated."}), 401

        g.current_user = context.user
        g.actor = Actor.for_user(context.user)
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require is_admin on the authenticated user (stack under @require_auth).

    Used for permission administration, where holding a named permission
    is never enough.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"message": "Unauthenticated."}), 401

        user = g.current_user
        if not user.is_admin:
            permission_service.log_security_event(
                user_id=user.id,
                event_type="PERMISSION_DENIED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Admin access required",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"message": "Unauthorized. Admin access required."}), 403

        return f(*args, **kwargs)

    return decorated_function
