# Overview: Flask API routes for price previews; parses input and returns JSON responses.

"""
Pricing API Routes

WHY: The quote screen re-prices as the user types. These endpoints run the
same calculator that create_quote uses, without persisting anything or
consuming a document number.
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..services import document_service


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


@pricing_bp.post("/line-items")
@require_org
def price_line_items_route():
    """
    Price line items.

    Request body:
    {
        "items": [
            {
                "glass_type": "Clear Float",
                "thickness": 5,
                "width_in": 24, "height_in": 36,   (or width_mm / height_mm)
                "quantity": 2,
                "processes": ["TMP", {"code": "EDG", "override_rate": "10"}]
            }
        ]
    }

    Returns:
        200: {"items": [...], "needs_pricing_review": bool}
        400: Invalid input (field names the offending item)
    """
    try:
        data = json_body()
        computed = document_service.price_items(g.org_id, data.get("items"), organization=g.organization)
        return jsonify({
            "items": [line.to_dict() for line in computed],
            "needs_pricing_review": any(line.has_data_errors for line in computed),
        })
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to price line items")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/quote-preview")
@require_org
def quote_preview_route():
    """Lines plus document totals (discount, GST) for a prospective quote."""
    try:
        return jsonify(document_service.preview_quote(g.org_id, json_body()))
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to preview quote")
        return jsonify({"error": "Internal server error"}), 500
