# Overview: Flask API routes for the cleaning log; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..services import cleaning_service


cleaning_bp = Blueprint("cleaning", __name__, url_prefix="/api/cleaning")


@cleaning_bp.get("/operations")
@require_auth
@require_permission("LOG_CLEANING")
def operations_route():
    operations = cleaning_service.list_operations(actor=g.actor)
    return jsonify({"operations": [op.to_dict() for op in operations]})


@cleaning_bp.post("/logs")
@require_auth
@require_permission("LOG_CLEANING")
def log_cleaning_route():
    data = request.get_json(silent=True) or {}
    try:
        log = cleaning_service.log_cleaning(
            operation_ids=data.get("operation_ids"),
            performed_at=data.get("performed_at"),
            note=data.get("note"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"log": log.to_dict()}), 201


@cleaning_bp.get("/logs")
@require_auth
@require_permission("VIEW_CLEANING_LOGS")
def list_logs_route():
    try:
        logs = cleaning_service.list_cleaning_logs(
            actor=g.actor,
            search=request.args.get("search"),
            on_date=request.args.get("date"),
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"logs": [log.to_dict() for log in logs]})
