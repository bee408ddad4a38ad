# Overview: Flask API routes for plate discount requests; parses input and returns JSON responses.

"""
Plate Request Routes

SECURITY:
- Submitting and viewing one's own requests requires REQUEST_PLATE.
- The queue, history, approve and reject require APPROVE_PLATE_REQUESTS.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..services import plate_request_service


plate_requests_bp = Blueprint("plate_requests", __name__, url_prefix="/api/plate-requests")


@plate_requests_bp.post("")
@require_auth
@require_permission("REQUEST_PLATE")
def submit_route():
    data = request.get_json(silent=True) or {}
    try:
        plate_request = plate_request_service.submit_request(
            plate=data.get("plate"),
            note=data.get("note"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"request": plate_request.to_dict()}), 201


@plate_requests_bp.get("/mine")
@require_auth
@require_permission("REQUEST_PLATE")
def my_requests_route():
    requests_ = plate_request_service.list_my_plate_requests(actor=g.actor)
    return jsonify({"requests": [r.to_dict() for r in requests_]})


@plate_requests_bp.get("/pending")
@require_auth
@require_permission("APPROVE_PLATE_REQUESTS")
def pending_route():
    requests_ = plate_request_service.pending_queue(actor=g.actor)
    return jsonify({"requests": [r.to_dict() for r in requests_]})


@plate_requests_bp.get("/summary")
@require_auth
@require_permission("APPROVE_PLATE_REQUESTS")
def summary_route():
    return jsonify({"summary": plate_request_service.plate_request_summary(actor=g.actor)})


@plate_requests_bp.get("")
@require_auth
@require_permission("APPROVE_PLATE_REQUESTS")
def list_route():
    try:
        requests_ = plate_request_service.list_plate_requests(
            actor=g.actor,
            status=request.args.get("status") or None,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"requests": [r.to_dict() for r in requests_]})


@plate_requests_bp.post("/<int:request_id>/approve")
@require_auth
@require_permission("APPROVE_PLATE_REQUESTS")
def approve_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        discount = plate_request_service.approve_request(
            request_id=request_id,
            cash_rate=data.get("cash_rate"),
            card_rate=data.get("card_rate"),
            note=data.get("note"),
            actor=g.actor,
        )
        plate_request = plate_request_service.get_request(request_id)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discount": discount.to_dict(), "request": plate_request.to_dict()})


@plate_requests_bp.post("/<int:request_id>/reject")
@require_auth
@require_permission("APPROVE_PLATE_REQUESTS")
def reject_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        plate_request = plate_request_service.reject_request(
            request_id=request_id,
            reason=data.get("reason"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"request": plate_request.to_dict()})
