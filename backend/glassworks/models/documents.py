from __future__ import annotations

from ..extensions import db
from glassworks.time_utils import to_utc_z, money_str


DOC_QUOTE = "QUOTE"
DOC_ORDER = "ORDER"
DOC_INVOICE = "INVOICE"

QUOTE_STATUSES = {"DRAFT", "SENT", "ACCEPTED", "REJECTED", "CONVERTED"}
ORDER_STATUSES = {"PENDING", "IN_PRODUCTION", "READY", "DELIVERED", "CANCELLED"}
PAYMENT_STATUSES = {"UNPAID", "PARTIAL", "PAID"}


class NumberSequence(db.Model):
    """
    Atomic per-organization document sequences.

    WHY: Quote/order/invoice numbers are human-facing and must never collide
    under concurrent writers. The row is only mutated by numbering_service
    inside the allocation transaction.
    """
    __tablename__ = "number_sequences"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_type", name="uq_number_sequences_org_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    pattern = db.Column(db.String(64), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("number_sequences", lazy=True))

    def __repr__(self) -> str:
        return f"<NumberSequence org_id={self.org_id} type={self.document_type} next={self.next_number}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "document_type": self.document_type,
            "pattern": self.pattern,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class DocumentTotalsMixin:
    """Columns for subtotal -> discount -> charges -> GST -> total, all 2dp."""
    tax_mode = db.Column(db.String(8), nullable=False, default="INTRA")
    discount_percent = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    subtotal = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    after_discount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    delivery_charge = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    loading_charge = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    labour_charge = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    fittings_charge = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    additional_charge = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    cgst = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    sgst = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    igst = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    def charges_dict(self) -> dict:
        return {
            "delivery_charge": money_str(self.delivery_charge),
            "loading_charge": money_str(self.loading_charge),
            "labour_charge": money_str(self.labour_charge),
            "fittings_charge": money_str(self.fittings_charge),
            "additional_charge": money_str(self.additional_charge),
        }

    def totals_dict(self) -> dict:
        return {
            "tax_mode": self.tax_mode,
            "discount_percent": money_str(self.discount_percent),
            "subtotal": money_str(self.subtotal),
            "discount_amount": money_str(self.discount_amount),
            "after_discount": money_str(self.after_discount),
            "charges": self.charges_dict(),
            "tax_breakdown": {
                "cgst": money_str(self.cgst),
                "sgst": money_str(self.sgst),
                "igst": money_str(self.igst),
            },
            "tax": money_str(self.tax),
            "total": money_str(self.total),
        }


class PricedLineMixin:
    """Persisted copy of a ComputedLineItem."""
    line_no = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    glass_type = db.Column(db.String(120), nullable=False)
    thickness = db.Column(db.String(16), nullable=False)

    width_mm = db.Column(db.Numeric(12, 2), nullable=False)
    height_mm = db.Column(db.Numeric(12, 2), nullable=False)
    width_in = db.Column(db.Numeric(12, 2), nullable=False)
    height_in = db.Column(db.Numeric(12, 2), nullable=False)
    width_ft = db.Column(db.Numeric(12, 2), nullable=False)
    height_ft = db.Column(db.Numeric(12, 2), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    area_sqft = db.Column(db.Numeric(12, 2), nullable=False)
    total_area_sqft = db.Column(db.Numeric(14, 2), nullable=False)
    total_area_sqm = db.Column(db.Numeric(14, 2), nullable=False)
    perimeter_ft = db.Column(db.Numeric(12, 2), nullable=False)
    total_length_ft = db.Column(db.Numeric(14, 2), nullable=False)

    glass_rate = db.Column(db.Numeric(12, 2), nullable=False)
    base_glass_price = db.Column(db.Numeric(14, 2), nullable=False)
    process_total = db.Column(db.Numeric(14, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)

    # [{"code", "name", "pricing_type", "rate", "charge", ...}]
    processes = db.Column(db.JSON, nullable=False, default=list)
    diagnostics = db.Column(db.JSON, nullable=False, default=list)

    def line_dict(self) -> dict:
        return {
            "id": self.id,
            "line_no": self.line_no,
            "description": self.description,
            "glass_type": self.glass_type,
            "thickness": self.thickness,
            "width_mm": money_str(self.width_mm),
            "height_mm": money_str(self.height_mm),
            "width_in": money_str(self.width_in),
            "height_in": money_str(self.height_in),
            "width_ft": money_str(self.width_ft),
            "height_ft": money_str(self.height_ft),
            "quantity": self.quantity,
            "area_sqft": money_str(self.area_sqft),
            "total_area_sqft": money_str(self.total_area_sqft),
            "total_area_sqm": money_str(self.total_area_sqm),
            "perimeter_ft": money_str(self.perimeter_ft),
            "total_length_ft": money_str(self.total_length_ft),
            "glass_rate": money_str(self.glass_rate),
            "base_glass_price": money_str(self.base_glass_price),
            "process_total": money_str(self.process_total),
            "line_total": money_str(self.line_total),
            "processes": self.processes or [],
            "diagnostics": self.diagnostics or [],
        }


class Quote(DocumentTotalsMixin, db.Model):
    """
    Customer quote.

    LIFECYCLE: DRAFT -> SENT -> ACCEPTED/REJECTED; ACCEPTED (or DRAFT/SENT)
    -> CONVERTED when an order is created from it.

    needs_pricing_review is set when any line priced with a missing glass
    rate; such quotes are saved as drafts pending manual pricing.
    """
    __tablename__ = "quotes"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_number", name="uq_quotes_org_docnum"),
        db.Index("ix_quotes_org_status_created", "org_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "Q2025-0007")
    document_number = db.Column(db.String(64), nullable=False)

    customer_name = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    needs_pricing_review = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    lines = db.relationship(
        "QuoteLine",
        backref="quote",
        lazy=True,
        order_by="QuoteLine.line_no",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Quote id={self.id} number={self.document_number!r}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "document_number": self.document_number,
            "customer_name": self.customer_name,
            "status": self.status,
            "needs_pricing_review": self.needs_pricing_review,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            **self.totals_dict(),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class QuoteLine(PricedLineMixin, db.Model):
    __tablename__ = "quote_lines"
    __table_args__ = (
        db.UniqueConstraint("quote_id", "line_no", name="uq_quote_lines_quote_line_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey("quotes.id"), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {"quote_id": self.quote_id, **self.line_dict()}


class Order(DocumentTotalsMixin, db.Model):
    """
    Production order converted from a quote.

    balance_amount tracks what is still owed once an invoice exists.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_number", name="uq_orders_org_docnum"),
        db.Index("ix_orders_org_status_created", "org_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    document_number = db.Column(db.String(64), nullable=False)
    quote_id = db.Column(db.Integer, db.ForeignKey("quotes.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    balance_amount = db.Column(db.Numeric(14, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    quote = db.relationship("Quote", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        order_by="OrderLine.line_no",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "document_number": self.document_number,
            "quote_id": self.quote_id,
            "customer_name": self.customer_name,
            "status": self.status,
            "balance_amount": money_str(self.balance_amount),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            **self.totals_dict(),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(PricedLineMixin, db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_no", name="uq_order_lines_order_line_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {"order_id": self.order_id, **self.line_dict()}


class Invoice(DocumentTotalsMixin, db.Model):
    """Tax invoice raised against an order."""
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_number", name="uq_invoices_org_docnum"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    document_number = db.Column(db.String(64), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("invoices", lazy=True))
    payments = db.relationship("Payment", backref="invoice", lazy=True, order_by="Payment.id")

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "document_number": self.document_number,
            "order_id": self.order_id,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            **self.totals_dict(),
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class Payment(db.Model):
    """Money received against an invoice."""
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    method = db.Column(db.String(32), nullable=True)
    reference = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": money_str(self.amount),
            "method": self.method,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }


# document_type -> model carrying document_number for uniqueness checks
DOCUMENT_MODELS = {
    DOC_QUOTE: Quote,
    DOC_ORDER: Order,
    DOC_INVOICE: Invoice,
}
