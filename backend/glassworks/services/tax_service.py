"""
GST resolution and breakdown.

WHY: Tax rates live in one place. Organizations configure CGST/SGST/IGST
rows; anything not configured falls back to DEFAULT_GST_PERCENT (the only
hardcoded tax figure in the codebase). Intra-state supplies split the tax
into CGST + SGST; inter-state supplies charge a single IGST.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import TaxRate
from ..validation import ValidationError, parse_decimal


TAX_MODE_INTRA = "INTRA"
TAX_MODE_INTER = "INTER"
TAX_MODES = {TAX_MODE_INTRA, TAX_MODE_INTER}

TAX_CGST = "CGST"
TAX_SGST = "SGST"
TAX_IGST = "IGST"
TAX_NAMES = {TAX_CGST, TAX_SGST, TAX_IGST}

# Full GST rate when an organization has configured nothing.
DEFAULT_GST_PERCENT = Decimal("18")

_CENT = Decimal("0.01")


def _round2(value) -> Decimal:
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TaxRates:
    """Component rates in percent (9 means 9%)."""
    cgst: Decimal
    sgst: Decimal
    igst: Decimal

    @classmethod
    def default(cls) -> "TaxRates":
        return cls.from_configured({})

    @classmethod
    def from_configured(cls, configured: dict) -> "TaxRates":
        """IGST falls back to the default; CGST/SGST each fall back to half of IGST."""
        igst = configured.get(TAX_IGST)
        igst = DEFAULT_GST_PERCENT if igst is None else Decimal(igst)
        half = igst / 2
        cgst = configured.get(TAX_CGST)
        sgst = configured.get(TAX_SGST)
        return cls(
            cgst=half if cgst is None else Decimal(cgst),
            sgst=half if sgst is None else Decimal(sgst),
            igst=igst,
        )

    def to_dict(self) -> dict:
        return {"cgst": str(self.cgst), "sgst": str(self.sgst), "igst": str(self.igst)}


@dataclass(frozen=True)
class GstBreakdown:
    mode: str
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax: Decimal

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "cgst": str(self.cgst),
            "sgst": str(self.sgst),
            "igst": str(self.igst),
            "tax": str(self.tax),
        }


def compute_gst(amount, mode: str, rates: TaxRates | None = None) -> GstBreakdown:
    """
    Split tax on `amount` by mode. Each component is rounded on its own and
    tax is their sum, so cgst + sgst + igst == tax always holds.
    """
    rates = rates or TaxRates.default()
    amount = Decimal(amount)
    zero = _round2(0)

    if mode == TAX_MODE_INTRA:
        cgst = _round2(amount * rates.cgst / 100)
        sgst = _round2(amount * rates.sgst / 100)
        igst = zero
    elif mode == TAX_MODE_INTER:
        cgst = sgst = zero
        igst = _round2(amount * rates.igst / 100)
    else:
        raise ValidationError("tax_mode must be INTRA or INTER", field="tax_mode")

    return GstBreakdown(mode=mode, cgst=cgst, sgst=sgst, igst=igst, tax=cgst + sgst + igst)


def resolve_tax_rates(org_id: int) -> TaxRates:
    """Organization's configured rates with the single documented fallback."""
    rows = db.session.query(TaxRate).filter_by(org_id=org_id).all()
    return TaxRates.from_configured({row.name.upper(): row.rate_percent for row in rows})


def set_tax_rate(org_id: int, name, rate_percent) -> TaxRate:
    """Upsert one component rate. Caller commits."""
    name = str(name or "").strip().upper()
    if name not in TAX_NAMES:
        raise ValidationError("name must be one of CGST, SGST, IGST", field="name")
    rate = parse_decimal(rate_percent, "rate_percent")
    if rate > 100:
        raise ValidationError("rate_percent must be at most 100", field="rate_percent")

    row = db.session.query(TaxRate).filter_by(org_id=org_id, name=name).first()
    if row is None:
        row = TaxRate(org_id=org_id, name=name, rate_percent=rate)
        db.session.add(row)
    else:
        row.rate_percent = rate
    db.session.flush()
    return row


def list_tax_rates(org_id: int) -> list[TaxRate]:
    return db.session.query(TaxRate).filter_by(org_id=org_id).order_by(TaxRate.name).all()
