from __future__ import annotations

from ..extensions import db
from glassworks.time_utils import to_utc_z, money_str


class Organization(db.Model):
    """
    Multi-tenant root: every fabricator shop is an Organization.

    All rate tables, process definitions, tax rates, number sequences and
    documents carry org_id. No data may cross organization boundaries.

    PRICING KNOBS:
    - gst_enabled: when False, documents carry zero tax
    - dimension_step_inches: per-shop rounding increment for billed
      dimensions (NULL -> application default)
    - min_line_charge: floor applied to every priced line (0 = no floor)
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    gst_enabled = db.Column(db.Boolean, nullable=False, default=True)
    state_code = db.Column(db.String(8), nullable=True)
    dimension_step_inches = db.Column(db.Integer, nullable=True)
    min_line_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "gst_enabled": self.gst_enabled,
            "state_code": self.state_code,
            "dimension_step_inches": self.dimension_step_inches,
            "min_line_charge": money_str(self.min_line_charge),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TaxRate(db.Model):
    """
    Configured GST component rate for an organization.

    name is one of CGST, SGST, IGST. rate_percent is stored as a percentage
    (9.00 means 9%). Missing rows fall back to tax_service.DEFAULT_GST_PERCENT.
    """
    __tablename__ = "tax_rates"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_tax_rates_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(16), nullable=False)
    rate_percent = db.Column(db.Numeric(6, 2), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("tax_rates", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "rate_percent": money_str(self.rate_percent),
            "updated_at": to_utc_z(self.updated_at),
        }
