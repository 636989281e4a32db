# Overview: Flask API routes for quotes; parses input and returns JSON responses.

"""
Quote API Routes

DESIGN:
- Creating a quote prices it and mints its number in one transaction
- Quotes with missing glass rates are saved with needs_pricing_review=true
- Status changes follow the transition table in document_service
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..services import document_service


quotes_bp = Blueprint("quotes", __name__, url_prefix="/api/quotes")


@quotes_bp.post("")
@require_org
def create_quote_route():
    """
    Create a quote.

    Request body:
    {
        "customer_name": "Sharma Interiors",
        "customer_state_code": "MH",  (optional, derives tax_mode)
        "tax_mode": "INTRA",  (optional, INTRA | INTER)
        "discount_percent": "5",  (optional, 2 decimals)
        "charges": {"delivery_charge": "150", "labour_charge": "200"},  (optional)
        "notes": "...",  (optional)
        "items": [ ...line items, see /api/pricing/line-items... ]
    }

    Returns:
        201: Quote with lines
        400: Invalid input
        503: Number allocation contention, retry
    """
    try:
        quote = document_service.create_quote(g.org_id, json_body())
        return jsonify({"quote": quote.to_dict(include_lines=True)}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.get("")
@require_org
def list_quotes_route():
    status = request.args.get("status")
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)

    rows, total = document_service.list_quotes(g.org_id, status=status, limit=limit, offset=offset)
    return jsonify({
        "items": [q.to_dict() for q in rows],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@quotes_bp.get("/<int:quote_id>")
@require_org
def get_quote_route(quote_id: int):
    try:
        quote = document_service.get_quote(g.org_id, quote_id)
        return jsonify({"quote": quote.to_dict(include_lines=True)})
    except HANDLED_ERRORS as e:
        return error_response(e)


@quotes_bp.post("/<int:quote_id>/status")
@require_org
def update_quote_status_route(quote_id: int):
    """
    Request body: {"status": "SENT"}

    CONVERTED cannot be set here; use POST /api/orders/from-quote/<id>.
    """
    try:
        data = json_body()
        quote = document_service.update_quote_status(g.org_id, quote_id, data.get("status"))
        return jsonify({"quote": quote.to_dict()})
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update quote status")
        return jsonify({"error": "Internal server error"}), 500
