from __future__ import annotations

from ..extensions import db
from glassworks.time_utils import to_utc_z, money_str


# Nominal thickness (mm, as text) -> GlassRate column. DGU is a composite
# insulated unit priced as its own pseudo-thickness bucket.
THICKNESS_COLUMNS = {
    "3.5": "rate_3_5mm",
    "4": "rate_4mm",
    "5": "rate_5mm",
    "6": "rate_6mm",
    "8": "rate_8mm",
    "10": "rate_10mm",
    "12": "rate_12mm",
    "19": "rate_19mm",
    "DGU": "rate_dgu",
}

PRICING_FIXED = "F"
PRICING_AREA = "A"
PRICING_LENGTH = "L"
PRICING_TYPES = {PRICING_FIXED, PRICING_AREA, PRICING_LENGTH}


class GlassRate(db.Model):
    """
    Rate table row: per-sq-ft glass price for one glass type, by thickness.

    INVARIANT: at most one row per (org_id, glass_type). A NULL thickness
    column means "not configured" and prices as zero with a diagnostic.
    """
    __tablename__ = "glass_rates"
    __table_args__ = (
        db.UniqueConstraint("org_id", "glass_type", name="uq_glass_rates_org_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    glass_type = db.Column(db.String(120), nullable=False)

    rate_3_5mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_4mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_5mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_6mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_8mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_10mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_12mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_19mm = db.Column(db.Numeric(12, 2), nullable=True)
    rate_dgu = db.Column(db.Numeric(12, 2), nullable=True)

    # Non-standard thicknesses: {"15mm": "120.00"}
    custom_rates = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("glass_rates", lazy=True))

    def __repr__(self) -> str:
        return f"<GlassRate org_id={self.org_id} glass_type={self.glass_type!r}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "glass_type": self.glass_type,
            "custom_rates": self.custom_rates or {},
            "is_active": self.is_active,
            "updated_at": to_utc_z(self.updated_at),
        }
        for column in THICKNESS_COLUMNS.values():
            data[column] = money_str(getattr(self, column))
        return data


class ProcessDefinition(db.Model):
    """
    Process master: a named fabrication operation and how it is charged.

    pricing_type:
    - F: fixed per piece (rate * quantity)
    - A: per unit area (rate * total area)
    - L: per unit length (rate * total perimeter length)
    """
    __tablename__ = "process_definitions"
    __table_args__ = (
        db.UniqueConstraint("org_id", "code", name="uq_process_definitions_org_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    pricing_type = db.Column(db.String(1), nullable=False)
    rate = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    remarks = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("process_definitions", lazy=True))

    def __repr__(self) -> str:
        return f"<ProcessDefinition org_id={self.org_id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "code": self.code,
            "name": self.name,
            "pricing_type": self.pricing_type,
            "rate": money_str(self.rate),
            "remarks": self.remarks,
            "is_active": self.is_active,
            "updated_at": to_utc_z(self.updated_at),
        }
