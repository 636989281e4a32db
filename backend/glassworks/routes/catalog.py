# Overview: Flask API routes for the rate table, process master and tax rates.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..extensions import db
from ..services import catalog_service, tax_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _include_inactive() -> bool:
    return request.args.get("include_inactive", "").lower() in ("1", "true", "yes")


# =============================================================================
# GLASS RATES
# =============================================================================

@catalog_bp.get("/glass-rates")
@require_org
def list_glass_rates_route():
    rows = catalog_service.list_glass_rates(g.org_id, include_inactive=_include_inactive())
    return jsonify({"items": [r.to_dict() for r in rows]})


@catalog_bp.put("/glass-rates")
@require_org
def upsert_glass_rate_route():
    """
    Create or update one glass type's rates.

    Request body:
    {
        "glass_type": "Clear Float",
        "rate_5mm": "42.00",
        "rate_dgu": null,
        "custom_rates": {"15mm": "120.00"}
    }
    """
    try:
        row = catalog_service.upsert_glass_rate(g.org_id, json_body())
        db.session.commit()
        return jsonify({"glass_rate": row.to_dict()})
    except HANDLED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save glass rate")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PROCESSES
# =============================================================================

@catalog_bp.get("/processes")
@require_org
def list_processes_route():
    rows = catalog_service.list_process_definitions(g.org_id, include_inactive=_include_inactive())
    return jsonify({"items": [r.to_dict() for r in rows]})


@catalog_bp.put("/processes")
@require_org
def upsert_process_route():
    """
    Request body:
    {"code": "TMP", "name": "Toughened", "pricing_type": "A", "rate": "85.00"}

    pricing_type: F (per piece), A (per sq ft), L (per running ft)
    """
    try:
        row = catalog_service.upsert_process_definition(g.org_id, json_body())
        db.session.commit()
        return jsonify({"process": row.to_dict()})
    except HANDLED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save process")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/processes/<code>")
@require_org
def deactivate_process_route(code: str):
    try:
        row = catalog_service.deactivate_process_definition(g.org_id, code)
        db.session.commit()
        return jsonify({"process": row.to_dict()})
    except HANDLED_ERRORS as e:
        db.session.rollback()
        return error_response(e)


# =============================================================================
# TAX RATES
# =============================================================================

@catalog_bp.get("/tax-rates")
@require_org
def list_tax_rates_route():
    rows = tax_service.list_tax_rates(g.org_id)
    return jsonify({
        "items": [r.to_dict() for r in rows],
        "effective": tax_service.resolve_tax_rates(g.org_id).to_dict(),
    })


@catalog_bp.put("/tax-rates")
@require_org
def set_tax_rates_route():
    """
    Request body: {"CGST": "9", "SGST": "9", "IGST": "18"} (any subset)
    """
    try:
        data = json_body()
        rows = [tax_service.set_tax_rate(g.org_id, name, rate) for name, rate in data.items()]
        db.session.commit()
        return jsonify({
            "items": [r.to_dict() for r in rows],
            "effective": tax_service.resolve_tax_rates(g.org_id).to_dict(),
        })
    except HANDLED_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save tax rates")
        return jsonify({"error": "Internal server error"}), 500
