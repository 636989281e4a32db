# Overview: Flask API routes for document number sequences.

"""
Sequence API Routes

WHY: Shops print their own numbering style ("INV/2025/00042"). Admins may
change the pattern, and repair a counter that fell behind imported data.
Neither operation can lower a counter.
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..services import numbering_service


sequences_bp = Blueprint("sequences", __name__, url_prefix="/api/sequences")


@sequences_bp.get("")
@require_org
def list_sequences_route():
    rows = numbering_service.list_sequences(g.org_id)
    return jsonify({"items": [s.to_dict() for s in rows]})


@sequences_bp.put("/<document_type>")
@require_org
def update_pattern_route(document_type: str):
    """
    Request body: {"pattern": "INV/{YYYY}/{#####}"}

    The pattern needs exactly one {####} counter placeholder; next_number is
    not touched.
    """
    try:
        data = json_body()
        seq = numbering_service.update_pattern(g.org_id, document_type, data.get("pattern"))
        return jsonify({"sequence": seq.to_dict()})
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sequence pattern")
        return jsonify({"error": "Internal server error"}), 500


@sequences_bp.post("/repair")
@require_org
def repair_sequences_route():
    """
    Request body (optional): {"document_type": "INVOICE"}

    Without a type every built-in sequence is repaired.
    """
    try:
        data = json_body()
        document_type = data.get("document_type")
        if document_type:
            next_number = numbering_service.repair_sequence(g.org_id, document_type)
            results = [{
                "document_type": numbering_service.normalize_document_type(document_type),
                "next_number": next_number,
                "status": "repaired",
            }]
        else:
            results = numbering_service.repair_all_sequences(g.org_id)
        return jsonify({"results": results})
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to repair sequences")
        return jsonify({"error": "Internal server error"}), 500
