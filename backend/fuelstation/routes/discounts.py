# Overview: Flask API routes for the discount list; parses input and returns JSON responses.

"""
Discount Routes

SECURITY:
- Plate lookup requires VIEW_DISCOUNTS (staff).
- Listing, creating and editing records requires MANAGE_DISCOUNTS (admin).
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..services import discount_service
from ..validation import parse_bool


discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("/lookup")
@require_auth
@require_permission("VIEW_DISCOUNTS")
def lookup_route():
    try:
        discount = discount_service.lookup_plate(plate=request.args.get("plate"), actor=g.actor)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discount": discount.to_dict() if discount else None})


@discounts_bp.get("")
@require_auth
@require_permission("MANAGE_DISCOUNTS")
def list_discounts_route():
    try:
        active = request.args.get("active")
        discounts = discount_service.list_discounts(
            actor=g.actor,
            search=request.args.get("search"),
            active=parse_bool(active, "active") if active is not None else None,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discounts": [d.to_dict() for d in discounts]})


@discounts_bp.post("")
@require_auth
@require_permission("MANAGE_DISCOUNTS")
def create_discount_route():
    data = request.get_json(silent=True) or {}
    try:
        discount = discount_service.create_discount(
            plate=data.get("plate"),
            cash_rate=data.get("cash_rate"),
            card_rate=data.get("card_rate"),
            note=data.get("note"),
            active=data.get("active", True),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discount": discount.to_dict()}), 201


@discounts_bp.get("/<int:discount_id>")
@require_auth
@require_permission("MANAGE_DISCOUNTS")
def get_discount_route(discount_id: int):
    try:
        discount = discount_service.get_discount(discount_id)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discount": discount.to_dict()})


@discounts_bp.patch("/<int:discount_id>")
@require_auth
@require_permission("MANAGE_DISCOUNTS")
def update_discount_route(discount_id: int):
    data = request.get_json(silent=True) or {}
    try:
        discount = discount_service.update_discount(discount_id=discount_id, patch=data, actor=g.actor)
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"discount": discount.to_dict()})
