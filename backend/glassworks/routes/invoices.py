# Overview: Flask API routes for invoices and payments; parses input and returns JSON responses.

"""
Invoice API Routes

DESIGN:
- One invoice per order, re-taxed with the organization's current GST rates
- Payments update the invoice payment status and the order balance
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_org
from ..errors import HANDLED_ERRORS, error_response, json_body
from ..services import document_service
from ..time_utils import money_str


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/from-order/<int:order_id>")
@require_org
def create_invoice_route(order_id: int):
    """
    Request body (optional): {"tax_mode": "INTER"}

    Returns:
        201: Invoice
        400: Order cancelled or already invoiced
        404: Order not found
        503: Number allocation contention, retry
    """
    try:
        data = json_body()
        invoice = document_service.create_invoice_from_order(g.org_id, order_id, tax_mode=data.get("tax_mode"))
        return jsonify({"invoice": invoice.to_dict(include_payments=True)}), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_org
def list_invoices_route():
    payment_status = request.args.get("payment_status")
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)

    rows, total = document_service.list_invoices(
        g.org_id, payment_status=payment_status, limit=limit, offset=offset
    )
    return jsonify({
        "items": [inv.to_dict() for inv in rows],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@invoices_bp.get("/<int:invoice_id>")
@require_org
def get_invoice_route(invoice_id: int):
    try:
        invoice = document_service.get_invoice(g.org_id, invoice_id)
        return jsonify({"invoice": invoice.to_dict(include_payments=True)})
    except HANDLED_ERRORS as e:
        return error_response(e)


@invoices_bp.post("/<int:invoice_id>/payments")
@require_org
def record_payment_route(invoice_id: int):
    """
    Request body:
    {
        "amount": "1500.00",
        "method": "UPI",  (optional)
        "reference": "TXN-8841"  (optional)
    }
    """
    try:
        data = json_body()
        invoice = document_service.record_payment(
            g.org_id,
            invoice_id,
            data.get("amount"),
            method=data.get("method"),
            reference=data.get("reference"),
        )
        body = {"invoice": invoice.to_dict(include_payments=True)}
        if invoice.order is not None:
            body["order_balance"] = money_str(invoice.order.balance_amount)
        return jsonify(body), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
