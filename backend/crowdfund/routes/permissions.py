# Overview: Flask API route listing the permission catalogue (admin only).

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_admin
from ..services import permission_service

permissions_bp = Blueprint("permissions", __name__, url_prefix="/api/permissions")


@permissions_bp.get("")
@require_auth
@require_admin
def list_permissions():
    return jsonify({"data": [p.to_dict() for p in permission_service.list_permissions()]})
