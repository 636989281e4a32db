# Overview: Service-layer operations for quotes, orders, invoices and payments;
# encapsulates pricing, numbering and persistence as one unit of work.

"""
Document Service - quote -> order -> invoice -> payment

WHY: A document and its number must appear together or not at all. Each
write operation here:
1. Validates and prices the input (pure, outside the lock)
2. Opens one transaction on the repository
3. Allocates the document number (locks the sequence row)
4. Inserts the document rows
5. Commits - or rolls everything back, counter advance included
"""

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app, has_app_context

from ..extensions import db
from ..models import Organization, Quote, QuoteLine, Order, OrderLine, Invoice, Payment
from ..models.documents import DOC_QUOTE, DOC_ORDER, DOC_INVOICE, QUOTE_STATUSES, ORDER_STATUSES
from ..repository import get_repository
from ..validation import ValidationError, parse_choice, parse_decimal, parse_optional_decimal
from . import numbering_service
from .concurrency import lock_for_update
from .pricing_service import (
    LineItemSpec,
    ComputedLineItem,
    DocumentTotals,
    DOCUMENT_CHARGE_FIELDS,
    price_line_item,
    calculate_document_totals,
    calculate_balance,
    resolve_step_inches,
    round2,
)
from .tax_service import resolve_tax_rates, TAX_MODES, TAX_MODE_INTRA, TAX_MODE_INTER


logger = logging.getLogger(__name__)

MAX_ITEMS = 500

# Manual status changes; CONVERTED is only set by convert_quote_to_order().
QUOTE_TRANSITIONS = {
    "DRAFT": {"SENT", "ACCEPTED", "REJECTED"},
    "SENT": {"ACCEPTED", "REJECTED", "DRAFT"},
    "ACCEPTED": {"SENT"},
    "REJECTED": {"DRAFT"},
    "CONVERTED": set(),
}

ORDER_TRANSITIONS = {
    "PENDING": {"IN_PRODUCTION", "CANCELLED"},
    "IN_PRODUCTION": {"READY", "CANCELLED"},
    "READY": {"DELIVERED", "IN_PRODUCTION"},
    "DELIVERED": set(),
    "CANCELLED": set(),
}


class DocumentError(Exception):
    """Raised for document operation errors (missing rows, illegal state)."""
    def __init__(self, message: str, details: dict | None = None, not_found: bool = False):
        super().__init__(message)
        self.details = details or {}
        self.not_found = not_found


# =============================================================================
# Pricing helpers
# =============================================================================

def get_organization(org_id: int) -> Organization:
    org = db.session.get(Organization, org_id) if org_id else None
    if org is None or not org.is_active:
        raise DocumentError("Organization not found", not_found=True)
    return org


def parse_items(items) -> list[LineItemSpec]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", field="items")
    if len(items) > MAX_ITEMS:
        raise ValidationError(f"At most {MAX_ITEMS} items per document", field="items")
    return [LineItemSpec.from_dict(item, prefix=f"items[{i}].") for i, item in enumerate(items)]


def resolve_tax_mode(org: Organization, payload: dict) -> str:
    """
    Explicit tax_mode wins. Otherwise compare the customer's state with the
    shop's: same state -> INTRA (CGST+SGST), different -> INTER (IGST).
    """
    if payload.get("tax_mode"):
        return parse_choice(payload.get("tax_mode"), "tax_mode", TAX_MODES)
    customer_state = (payload.get("customer_state_code") or "").strip().upper()
    if customer_state and org.state_code:
        return TAX_MODE_INTRA if customer_state == org.state_code.upper() else TAX_MODE_INTER
    return TAX_MODE_INTRA


def price_items(org_id: int, items, *, repository=None, organization=None) -> list[ComputedLineItem]:
    """Validate raw item dicts and price every line with the organization's step and minimum charge."""
    specs = parse_items(items)
    repository = repository or get_repository()
    org = organization or get_organization(org_id)
    config = current_app.config if has_app_context() else None
    step_inches = resolve_step_inches(org, config)
    min_charge = org.min_line_charge or Decimal("0")

    return [
        price_line_item(
            spec,
            catalog=repository,
            org_id=org_id,
            step_inches=step_inches,
            min_charge=min_charge,
            field_prefix=f"items[{i}].",
        )
        for i, spec in enumerate(specs)
    ]


def _price_document(org_id: int, payload: dict, repository):
    org = get_organization(org_id)
    discount_percent = parse_optional_decimal(payload.get("discount_percent"), "discount_percent") or Decimal("0")
    tax_mode = resolve_tax_mode(org, payload)

    computed = price_items(org_id, payload.get("items"), repository=repository, organization=org)
    totals = calculate_document_totals(
        [line.line_total for line in computed],
        discount_percent=discount_percent,
        tax_mode=tax_mode,
        gst_enabled=org.gst_enabled,
        tax_rates=resolve_tax_rates(org_id),
        charges=payload.get("charges"),
    )
    return org, computed, totals


def _apply_totals(document, totals: DocumentTotals) -> None:
    document.tax_mode = totals.tax_mode
    document.discount_percent = totals.discount_percent
    document.subtotal = totals.subtotal
    document.discount_amount = totals.discount_amount
    document.after_discount = totals.after_discount
    for name, amount in totals.charges.items():
        setattr(document, name, amount)
    document.cgst = totals.cgst
    document.sgst = totals.sgst
    document.igst = totals.igst
    document.tax = totals.tax
    document.total = totals.total


def _line_from_computed(line_cls, line_no: int, computed: ComputedLineItem):
    d = computed.dimensions
    return line_cls(
        line_no=line_no,
        description=computed.spec.description,
        glass_type=computed.spec.glass_type,
        thickness=computed.spec.thickness,
        width_mm=d.width_mm,
        height_mm=d.height_mm,
        width_in=d.width_in,
        height_in=d.height_in,
        width_ft=round2(d.width_ft),
        height_ft=round2(d.height_ft),
        quantity=computed.spec.quantity,
        area_sqft=d.area_sqft,
        total_area_sqft=computed.total_area_sqft,
        total_area_sqm=computed.total_area_sqm,
        perimeter_ft=computed.perimeter_ft,
        total_length_ft=computed.total_length_ft,
        glass_rate=computed.glass_rate,
        base_glass_price=computed.base_glass_price,
        process_total=computed.process_total,
        line_total=computed.line_total,
        processes=[p.to_dict() for p in computed.processes],
        diagnostics=[diag.to_dict() for diag in computed.diagnostics],
    )


_LINE_COPY_FIELDS = (
    "line_no", "description", "glass_type", "thickness",
    "width_mm", "height_mm", "width_in", "height_in", "width_ft", "height_ft",
    "quantity", "area_sqft", "total_area_sqft", "total_area_sqm",
    "perimeter_ft", "total_length_ft", "glass_rate", "base_glass_price",
    "process_total", "line_total", "processes", "diagnostics",
)

_TOTALS_COPY_FIELDS = (
    "tax_mode", "discount_percent", "subtotal", "discount_amount", "after_discount",
    *DOCUMENT_CHARGE_FIELDS,
    "cgst", "sgst", "igst", "tax", "total",
)


# =============================================================================
# Quotes
# =============================================================================

def preview_quote(org_id: int, payload: dict, repository=None) -> dict:
    """Price a prospective quote without persisting it or minting a number."""
    repository = repository or get_repository()
    _, computed, totals = _price_document(org_id, payload, repository)
    return {
        "lines": [line.to_dict() for line in computed],
        "totals": totals.to_dict(),
        "needs_pricing_review": any(line.has_data_errors for line in computed),
    }


def create_quote(org_id: int, payload: dict, repository=None) -> Quote:
    """
    Price, number and persist a quote atomically.

    Lines with missing glass rates are still saved (draft pending manual
    pricing); the quote is flagged needs_pricing_review.
    """
    repository = repository or get_repository()
    _, computed, totals = _price_document(org_id, payload, repository)
    needs_review = any(line.has_data_errors for line in computed)

    def _op() -> Quote:
        document_number = numbering_service.allocate(repository, org_id, DOC_QUOTE)
        quote = Quote(
            org_id=org_id,
            document_number=document_number,
            customer_name=(payload.get("customer_name") or None),
            notes=payload.get("notes"),
            status="DRAFT",
            needs_pricing_review=needs_review,
        )
        _apply_totals(quote, totals)
        quote.lines = [_line_from_computed(QuoteLine, i + 1, line) for i, line in enumerate(computed)]
        repository.add(quote)
        return quote

    quote = repository.with_transaction(_op)
    if needs_review:
        logger.warning("Quote %s saved with missing glass rates (org_id=%s)", quote.document_number, org_id)
    return quote


def _get_scoped(model, org_id: int, doc_id: int, *, lock: bool = False):
    query = db.session.query(model).filter_by(id=doc_id, org_id=org_id)
    if lock:
        query = lock_for_update(query)
    doc = query.first()
    if doc is None:
        raise DocumentError(f"{model.__name__} not found", not_found=True)
    return doc


def get_quote(org_id: int, quote_id: int) -> Quote:
    return _get_scoped(Quote, org_id, quote_id)


def update_quote_status(org_id: int, quote_id: int, status, repository=None) -> Quote:
    repository = repository or get_repository()
    status = parse_choice(status, "status", QUOTE_STATUSES)

    def _op() -> Quote:
        quote = _get_scoped(Quote, org_id, quote_id, lock=True)
        if status == quote.status:
            return quote
        if status not in QUOTE_TRANSITIONS.get(quote.status, set()):
            raise DocumentError(
                f"Cannot change quote from {quote.status} to {status}",
                details={"from": quote.status, "to": status},
            )
        quote.status = status
        return quote

    return repository.with_transaction(_op)


# =============================================================================
# Orders
# =============================================================================

def convert_quote_to_order(org_id: int, quote_id: int, repository=None) -> Order:
    """Copy a quote's priced lines and totals into a new numbered order."""
    repository = repository or get_repository()
    get_organization(org_id)

    def _op() -> Order:
        quote = _get_scoped(Quote, org_id, quote_id, lock=True)
        if quote.status in ("CONVERTED", "REJECTED"):
            raise DocumentError(
                f"Cannot convert a {quote.status} quote",
                details={"status": quote.status},
            )
        if not quote.lines:
            raise DocumentError("Cannot convert a quote with no lines")

        document_number = numbering_service.allocate(repository, org_id, DOC_ORDER)
        order = Order(
            org_id=org_id,
            document_number=document_number,
            quote_id=quote.id,
            customer_name=quote.customer_name,
            notes=quote.notes,
            status="PENDING",
        )
        for field in _TOTALS_COPY_FIELDS:
            setattr(order, field, getattr(quote, field))
        order.lines = [
            OrderLine(**{field: getattr(line, field) for field in _LINE_COPY_FIELDS})
            for line in quote.lines
        ]
        quote.status = "CONVERTED"
        repository.add(order)
        return order

    return repository.with_transaction(_op)


def get_order(org_id: int, order_id: int) -> Order:
    return _get_scoped(Order, org_id, order_id)


def transition_order(org_id: int, order_id: int, to_status, repository=None) -> Order:
    repository = repository or get_repository()
    to_status = parse_choice(to_status, "to", ORDER_STATUSES)

    def _op() -> Order:
        order = _get_scoped(Order, org_id, order_id, lock=True)
        if to_status not in ORDER_TRANSITIONS.get(order.status, set()):
            raise DocumentError(
                f"Cannot move order from {order.status} to {to_status}",
                details={"from": order.status, "to": to_status},
            )
        order.status = to_status
        return order

    return repository.with_transaction(_op)


# =============================================================================
# Invoices & payments
# =============================================================================

def create_invoice_from_order(org_id: int, order_id: int, tax_mode=None, repository=None) -> Invoice:
    """
    Raise the invoice for an order, re-taxed with the organization's current
    GST configuration. The order balance starts at the invoice total.
    """
    repository = repository or get_repository()
    org = get_organization(org_id)
    tax_rates = resolve_tax_rates(org_id)
    if tax_mode:
        tax_mode = parse_choice(tax_mode, "tax_mode", TAX_MODES)

    def _op() -> Invoice:
        order = _get_scoped(Order, org_id, order_id, lock=True)
        if order.status == "CANCELLED":
            raise DocumentError("Cannot invoice a cancelled order")
        if order.invoices:
            raise DocumentError(
                "Order already invoiced",
                details={"invoice_number": order.invoices[0].document_number},
            )

        totals = calculate_document_totals(
            [line.line_total for line in order.lines],
            discount_percent=order.discount_percent,
            tax_mode=tax_mode or order.tax_mode,
            gst_enabled=org.gst_enabled,
            tax_rates=tax_rates,
            charges={name: getattr(order, name) for name in DOCUMENT_CHARGE_FIELDS},
        )
        document_number = numbering_service.allocate(repository, org_id, DOC_INVOICE)
        invoice = Invoice(
            org_id=org_id,
            document_number=document_number,
            order_id=order.id,
            payment_status="UNPAID",
            notes=order.notes,
        )
        _apply_totals(invoice, totals)
        order.balance_amount = totals.total
        repository.add(invoice)
        return invoice

    return repository.with_transaction(_op)


def get_invoice(org_id: int, invoice_id: int) -> Invoice:
    return _get_scoped(Invoice, org_id, invoice_id)


def _payment_status(total: Decimal, paid: Decimal) -> str:
    if paid <= 0:
        return "UNPAID"
    if paid < total:
        return "PARTIAL"
    return "PAID"


def record_payment(org_id: int, invoice_id: int, amount, method=None, reference=None, repository=None) -> Invoice:
    """Record money received; recompute payment status and order balance."""
    repository = repository or get_repository()
    amount = round2(parse_decimal(amount, "amount", positive=True))

    def _op() -> Invoice:
        invoice = _get_scoped(Invoice, org_id, invoice_id, lock=True)
        repository.add(Payment(
            org_id=org_id,
            invoice_id=invoice.id,
            amount=amount,
            method=(str(method).strip()[:32] if method else None),
            reference=(str(reference).strip()[:128] if reference else None),
        ))

        paid = (
            db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0))
            .filter(Payment.invoice_id == invoice.id)
            .scalar()
        )
        paid = round2(Decimal(str(paid)))
        invoice.payment_status = _payment_status(invoice.total, paid)

        if invoice.order is not None:
            invoice.order.balance_amount = max(Decimal("0.00"), calculate_balance(invoice.total, paid))
        return invoice

    return repository.with_transaction(_op)


# =============================================================================
# Listings
# =============================================================================

def _clamp(limit: int, offset: int) -> tuple[int, int]:
    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 200:
        limit = 200
    return limit, offset


def list_quotes(org_id: int, *, status: str | None = None, limit: int = 50, offset: int = 0) -> tuple[list[Quote], int]:
    limit, offset = _clamp(limit, offset)
    query = db.session.query(Quote).filter_by(org_id=org_id)
    if status:
        query = query.filter_by(status=status.upper())
    total = query.count()
    return query.order_by(Quote.id.desc()).offset(offset).limit(limit).all(), total


def list_orders(org_id: int, *, status: str | None = None, limit: int = 50, offset: int = 0) -> tuple[list[Order], int]:
    limit, offset = _clamp(limit, offset)
    query = db.session.query(Order).filter_by(org_id=org_id)
    if status:
        query = query.filter_by(status=status.upper())
    total = query.count()
    return query.order_by(Order.id.desc()).offset(offset).limit(limit).all(), total


def list_invoices(org_id: int, *, payment_status: str | None = None, limit: int = 50, offset: int = 0) -> tuple[list[Invoice], int]:
    limit, offset = _clamp(limit, offset)
    query = db.session.query(Invoice).filter_by(org_id=org_id)
    if payment_status:
        query = query.filter_by(payment_status=payment_status.upper())
    total = query.count()
    return query.order_by(Invoice.id.desc()).offset(offset).limit(limit).all(), total
