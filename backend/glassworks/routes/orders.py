# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..services import document_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/from-quote/<int:quote_id>")
@require_org
def convert_quote_route(quote_id: int):
    """
    Convert a quote into an order.

    Returns:
        201: Order with lines copied from the quote
        400: Quote already converted or rejected
        404: Quote not found
        503: Number allocation contention, retry
    """
    try:
        order = document_service.convert_quote_to_order(g.org_id, quote_id)
        return jsonify({"order": order.to_dict(include_lines=True)}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to convert quote to order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_org
def list_orders_route():
    status = request.args.get("status")
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)

    rows, total = document_service.list_orders(g.org_id, status=status, limit=limit, offset=offset)
    return jsonify({
        "items": [o.to_dict() for o in rows],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@orders_bp.get("/<int:order_id>")
@require_org
def get_order_route(order_id: int):
    try:
        order = document_service.get_order(g.org_id, order_id)
        return jsonify({"order": order.to_dict(include_lines=True)})
    except HANDLED_ERRORS as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/transition")
@require_org
def transition_order_route(order_id: int):
    """
    Request body: {"to": "IN_PRODUCTION"}

    PENDING -> IN_PRODUCTION -> READY -> DELIVERED; PENDING and
    IN_PRODUCTION may also be CANCELLED.
    """
    try:
        data = json_body()
        order = document_service.transition_order(g.org_id, order_id, data.get("to"))
        return jsonify({"order": order.to_dict()})
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to transition order")
        return jsonify({"error": "Internal server error"}), 500
