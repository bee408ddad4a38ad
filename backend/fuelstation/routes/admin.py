# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin Routes

SECURITY:
- User provisioning requires MANAGE_USERS.
- Checklist template edits require MANAGE_CHECKLIST.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..permissions import ROLE_STAFF
from ..services import auth_service
from ..services import handover_service
from ..validation import parse_bool


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USERS
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    users = auth_service.list_users(actor=g.actor, include_inactive=include_inactive)
    return jsonify({"users": [u.to_dict() for u in users]})


@admin_bp.post("/users")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            email=data.get("email"),
            name=data.get("name"),
            password=data.get("password"),
            role=data.get("role") or ROLE_STAFF,
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.post("/users/<int:user_id>/active")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_active_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.set_user_active(
            user_id=user_id,
            active=parse_bool(data.get("active"), "active"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()})


@admin_bp.post("/users/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.set_user_role(user_id=user_id, role=data.get("role"), actor=g.actor)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()})


# =============================================================================
# CHECKLIST TEMPLATES
# =============================================================================

@admin_bp.get("/checklist")
@require_auth
@require_permission("MANAGE_CHECKLIST")
def list_checklist_route():
    items = handover_service.list_checklist_items(actor=g.actor, include_inactive=True)
    return jsonify({"items": [i.to_dict() for i in items]})


@admin_bp.post("/checklist")
@require_auth
@require_permission("MANAGE_CHECKLIST")
def create_checklist_item_route():
    data = request.get_json(silent=True) or {}
    try:
        item = handover_service.create_checklist_item(
            title=data.get("title"),
            description=data.get("description"),
            sort_order=data.get("sort_order"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict()}), 201


@admin_bp.post("/checklist/<int:item_id>/active")
@require_auth
@require_permission("MANAGE_CHECKLIST")
def set_checklist_item_active_route(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = handover_service.set_checklist_item_active(
            item_id=item_id,
            active=data.get("active"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict()})
