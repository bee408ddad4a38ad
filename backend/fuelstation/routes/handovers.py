# Overview: Flask API routes for shift handovers; parses input and returns JSON responses.

"""
Handover Routes

SECURITY:
- Everything requires HANDOVER.
- Only the outgoing user may decide; the service enforces it in the UPDATE itself.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..services import auth_service
from ..services import handover_service


handovers_bp = Blueprint("handovers", __name__, url_prefix="/api/handovers")


@handovers_bp.get("/checklist")
@require_auth
@require_permission("HANDOVER")
def checklist_route():
    items = handover_service.list_checklist_items(actor=g.actor)
    return jsonify({"items": [i.to_dict() for i in items]})


@handovers_bp.get("/staff")
@require_auth
@require_permission("HANDOVER")
def staff_directory_route():
    users = auth_service.list_staff_directory(actor=g.actor)
    return jsonify({
        "staff": [
            {"id": u.id, "name": u.name, "email": u.email}
            for u in users
            if u.id != g.actor.user_id
        ]
    })


@handovers_bp.post("")
@require_auth
@require_permission("HANDOVER")
def start_route():
    data = request.get_json(silent=True) or {}
    try:
        handover = handover_service.start_handover(
            outgoing_user_id=data.get("outgoing_user"),
            answers=data.get("answers") or [],
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"handover": handover.to_dict(include_answers=True)}), 201


@handovers_bp.get("/pending")
@require_auth
@require_permission("HANDOVER")
def pending_route():
    handovers = handover_service.pending_queue(actor=g.actor)
    return jsonify({"handovers": [h.to_dict(include_answers=True) for h in handovers]})


@handovers_bp.get("/mine")
@require_auth
@require_permission("HANDOVER")
def my_handovers_route():
    handovers = handover_service.list_my_handovers(actor=g.actor)
    return jsonify({"handovers": [h.to_dict() for h in handovers]})


@handovers_bp.get("/<int:handover_id>")
@require_auth
@require_permission("HANDOVER")
def get_route(handover_id: int):
    try:
        handover = handover_service.get_handover(handover_id=handover_id, actor=g.actor)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"handover": handover.to_dict(include_answers=True)})


@handovers_bp.post("/<int:handover_id>/decide")
@require_auth
@require_permission("HANDOVER")
def decide_route(handover_id: int):
    data = request.get_json(silent=True) or {}
    if "approve" not in data:
        return jsonify({"error": "approve is required", "code": "validation_error"}), 400
    try:
        handover = handover_service.decide_handover(
            handover_id=handover_id,
            approve=data.get("approve"),
            note=data.get("note"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"handover": handover.to_dict()})
