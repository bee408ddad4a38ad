# Overview: Flask API routes for discounted sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..errors import WorkflowError, error_response
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("RECORD_SALE")
def record_sale_route():
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.record_sale(
            plate=data.get("plate"),
            fuel_type=data.get("fuel_type"),
            liters=data.get("liters"),
            price_per_liter=data.get("price_per_liter"),
            payment_method=data.get("payment_method"),
            note=data.get("note"),
            actor=g.actor,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    try:
        sales = sales_service.list_sales(
            actor=g.actor,
            plate=request.args.get("plate"),
            fuel_type=request.args.get("fuel_type"),
            staff=request.args.get("staff"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({
        "sales": [s.to_dict() for s in sales],
        "totals": {
            "gross_cents": sum(s.gross_cents for s in sales),
            "discount_cents": sum(s.discount_cents for s in sales),
            "net_cents": sum(s.net_cents for s in sales),
        },
    })
