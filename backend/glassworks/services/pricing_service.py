"""
Pricing Calculator - glass line items and document totals

WHY: Quotes, orders and invoices must reproduce the shop's legacy
spreadsheet to the paisa. Every intermediate money/measure value is rounded
to 2 decimals (ROUND_HALF_UP) before it feeds the next step, never only at
the end.

FLOW (per line):
1. Normalize dimensions: mm <-> inches, then inches -> feet rounded UP to
   the configured step (default 3 in = 0.25 ft)
2. Area per piece, total area, perimeter per piece, total length
3. Glass rate lookup (rate table row + thickness column) -> base price
4. Process charges by pricing type (Fixed / Area / Length)
5. Line total = base + process subtotal (optional minimum-charge floor)

Everything here is pure: no database access. Catalog lookups go through an
injected object exposing find_active_rates() and find_process_definition().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_EVEN, ROUND_HALF_UP

from ..models.catalog import (
    THICKNESS_COLUMNS,
    PRICING_FIXED,
    PRICING_AREA,
    PRICING_LENGTH,
)
from ..validation import (
    ValidationError,
    parse_decimal,
    parse_optional_decimal,
    parse_positive_int,
    parse_choice,
    require_text,
)
from .tax_service import TaxRates, compute_gst, TAX_MODES, TAX_MODE_INTRA


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
MM_PER_INCH = Decimal("25.4")
INCHES_PER_FOOT = Decimal("12")
SQM_PER_SQFT = Decimal("0.09290304")

# Billing increment for dimensions; organizations and app config may override.
DEFAULT_STEP_INCHES = 3

# Optional pre-tax document charges, added after the discount.
DOCUMENT_CHARGE_FIELDS = (
    "delivery_charge",
    "loading_charge",
    "labour_charge",
    "fittings_charge",
    "additional_charge",
)

# Quotient snapping before the ceiling so 24.0000000001 steps stays 24.
CEILING_EPSILON = Decimal("1e-9")

DEFAULT_PERIMETER_COEFF = Decimal("2")

DGU = "DGU"

DIAG_MISSING_GLASS_RATE = "MISSING_GLASS_RATE"


def round2(value) -> Decimal:
    """Round half-up to 2 decimal places. Idempotent."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def mm_to_inches(mm) -> Decimal:
    return Decimal(mm) / MM_PER_INCH


def inches_to_mm(inches) -> Decimal:
    return Decimal(inches) * MM_PER_INCH


def inches_to_feet_rounded(inches, step_inches=DEFAULT_STEP_INCHES) -> Decimal:
    """
    Convert inches to feet, rounding UP to the nearest step (seller's favor).

    Exact multiples stay put: 12 in -> 1.00 ft, 13 in -> 1.25 ft,
    15 in -> 1.25 ft, 16 in -> 1.50 ft (3-inch step).

    The result is not rounded to 2 decimals: with a 1-inch step 13 in bills
    as 13/12 ft, never 1.08. Round only when storing or displaying.
    """
    step = Decimal(step_inches)
    if step <= 0:
        raise ValidationError("Dimension step must be greater than zero", field="step_inches")

    steps = (Decimal(inches) / step).quantize(CEILING_EPSILON, rounding=ROUND_HALF_EVEN)
    steps = steps.to_integral_value(rounding=ROUND_CEILING)
    return steps * step / INCHES_PER_FOOT


def normalize_thickness(value, field_name: str = "thickness") -> str:
    """
    Canonical thickness key: "3.5", "5", "10", or "DGU".

    0 is accepted as the legacy spelling of DGU.
    """
    if isinstance(value, str) and value.strip().upper() == DGU:
        return DGU
    thickness = parse_decimal(value, field_name)
    if thickness == 0:
        return DGU
    return format(thickness.normalize(), "f")


# =============================================================================
# Input / output types
# =============================================================================

@dataclass(frozen=True)
class ProcessSelection:
    code: str
    override_rate: Decimal | None = None


@dataclass(frozen=True)
class LineItemSpec:
    """Raw item specification. Build from client JSON with from_dict()."""
    glass_type: str
    thickness: str
    quantity: int
    width_in: Decimal | None = None
    height_in: Decimal | None = None
    width_mm: Decimal | None = None
    height_mm: Decimal | None = None
    processes: tuple[ProcessSelection, ...] = ()
    glass_rate_override: Decimal | None = None
    perimeter_coeff_w: Decimal = DEFAULT_PERIMETER_COEFF
    perimeter_coeff_h: Decimal = DEFAULT_PERIMETER_COEFF
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict, prefix: str = "") -> "LineItemSpec":
        """
        Coerce and validate one item payload.

        Field names in errors are prefixed (e.g. "items[2].quantity").
        """
        if not isinstance(data, dict):
            raise ValidationError("Item must be an object", field=prefix.rstrip(".") or None)

        def f(name: str) -> str:
            return f"{prefix}{name}"

        glass_type = require_text(data.get("glass_type"), f("glass_type"), max_length=120)
        if data.get("thickness") is None:
            raise ValidationError(f"{f('thickness')} is required", field=f("thickness"))
        thickness = normalize_thickness(data.get("thickness"), f("thickness"))
        quantity = parse_positive_int(data.get("quantity"), f("quantity"))

        inch_keys = ("width_in", "height_in")
        mm_keys = ("width_mm", "height_mm")
        has_inches = any(data.get(k) is not None for k in inch_keys)
        has_mm = any(data.get(k) is not None for k in mm_keys)
        if has_inches == has_mm:
            raise ValidationError(
                "Provide either width_in/height_in or width_mm/height_mm (exactly one pair)",
                field=f("dimensions"),
            )
        keys = inch_keys if has_inches else mm_keys
        width = parse_decimal(data.get(keys[0]), f(keys[0]), positive=True)
        height = parse_decimal(data.get(keys[1]), f(keys[1]), positive=True)

        raw_processes = data.get("processes") or []
        if not isinstance(raw_processes, list):
            raise ValidationError(f"{f('processes')} must be a list", field=f("processes"))
        processes = []
        for i, raw in enumerate(raw_processes):
            pfx = f(f"processes[{i}].")
            if isinstance(raw, str):
                raw = {"code": raw}
            if not isinstance(raw, dict):
                raise ValidationError("Process selection must be an object", field=pfx.rstrip("."))
            code = require_text(raw.get("code"), f"{pfx}code", max_length=32).upper()
            override = parse_optional_decimal(raw.get("override_rate"), f"{pfx}override_rate")
            processes.append(ProcessSelection(code=code, override_rate=override))

        coeff_w = parse_optional_decimal(data.get("perimeter_coeff_w"), f("perimeter_coeff_w"))
        coeff_h = parse_optional_decimal(data.get("perimeter_coeff_h"), f("perimeter_coeff_h"))

        description = data.get("description")
        return cls(
            glass_type=glass_type,
            thickness=thickness,
            quantity=quantity,
            width_in=width if has_inches else None,
            height_in=height if has_inches else None,
            width_mm=width if has_mm else None,
            height_mm=height if has_mm else None,
            processes=tuple(processes),
            glass_rate_override=parse_optional_decimal(
                data.get("glass_rate_override"), f("glass_rate_override")
            ),
            perimeter_coeff_w=DEFAULT_PERIMETER_COEFF if coeff_w is None else coeff_w,
            perimeter_coeff_h=DEFAULT_PERIMETER_COEFF if coeff_h is None else coeff_h,
            description=str(description).strip()[:255] if description else None,
        )


@dataclass(frozen=True)
class PricingDiagnostic:
    """Data error (tenant configuration gap) attached to a priced line."""
    code: str
    message: str
    glass_type: str
    thickness: str
    org_id: int | None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "glass_type": self.glass_type,
            "thickness": self.thickness,
            "org_id": self.org_id,
        }


@dataclass(frozen=True)
class Dimensions:
    width_mm: Decimal
    height_mm: Decimal
    width_in: Decimal
    height_in: Decimal
    width_ft: Decimal
    height_ft: Decimal
    area_sqft: Decimal


@dataclass(frozen=True)
class ProcessCharge:
    code: str
    name: str
    pricing_type: str
    default_rate: Decimal
    override_rate: Decimal | None
    rate: Decimal
    basis: Decimal
    charge: Decimal

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "pricing_type": self.pricing_type,
            "default_rate": str(self.default_rate),
            "override_rate": None if self.override_rate is None else str(self.override_rate),
            "rate": str(self.rate),
            "basis": str(self.basis),
            "charge": str(self.charge),
        }


@dataclass(frozen=True)
class ComputedLineItem:
    spec: LineItemSpec
    dimensions: Dimensions
    total_area_sqft: Decimal
    total_area_sqm: Decimal
    perimeter_ft: Decimal
    total_length_ft: Decimal
    glass_rate: Decimal
    base_glass_price: Decimal
    processes: tuple[ProcessCharge, ...]
    process_total: Decimal
    line_total: Decimal
    min_charge_applied: bool = False
    diagnostics: tuple[PricingDiagnostic, ...] = ()

    @property
    def has_data_errors(self) -> bool:
        return bool(self.diagnostics)

    def to_dict(self) -> dict:
        d = self.dimensions
        return {
            "description": self.spec.description,
            "glass_type": self.spec.glass_type,
            "thickness": self.spec.thickness,
            "quantity": self.spec.quantity,
            "width_mm": str(d.width_mm),
            "height_mm": str(d.height_mm),
            "width_in": str(d.width_in),
            "height_in": str(d.height_in),
            "width_ft": str(round2(d.width_ft)),
            "height_ft": str(round2(d.height_ft)),
            "area_sqft": str(d.area_sqft),
            "total_area_sqft": str(self.total_area_sqft),
            "total_area_sqm": str(self.total_area_sqm),
            "perimeter_ft": str(self.perimeter_ft),
            "total_length_ft": str(self.total_length_ft),
            "glass_rate": str(self.glass_rate),
            "base_glass_price": str(self.base_glass_price),
            "processes": [p.to_dict() for p in self.processes],
            "process_total": str(self.process_total),
            "line_total": str(self.line_total),
            "min_charge_applied": self.min_charge_applied,
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
        }


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_mode: str
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax: Decimal
    total: Decimal
    charges: dict = field(default_factory=dict)
    charges_total: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "discount_percent": str(self.discount_percent),
            "discount_amount": str(self.discount_amount),
            "after_discount": str(self.after_discount),
            "charges": {name: str(amount) for name, amount in self.charges.items()},
            "charges_total": str(self.charges_total),
            "tax_mode": self.tax_mode,
            "tax_breakdown": {
                "cgst": str(self.cgst),
                "sgst": str(self.sgst),
                "igst": str(self.igst),
            },
            "tax": str(self.tax),
            "total": str(self.total),
        }


# =============================================================================
# Calculation steps
# =============================================================================

def calculate_dimensions(spec: LineItemSpec, step_inches=DEFAULT_STEP_INCHES) -> Dimensions:
    """Convert the supplied unit pair to every unit and round feet up to the step."""
    if spec.width_in is not None and spec.height_in is not None:
        width_in, height_in = Decimal(spec.width_in), Decimal(spec.height_in)
        width_mm, height_mm = inches_to_mm(width_in), inches_to_mm(height_in)
    elif spec.width_mm is not None and spec.height_mm is not None:
        width_mm, height_mm = Decimal(spec.width_mm), Decimal(spec.height_mm)
        width_in, height_in = mm_to_inches(width_mm), mm_to_inches(height_mm)
    else:
        raise ValidationError(
            "Provide either width_in/height_in or width_mm/height_mm",
            field="dimensions",
        )

    if width_in <= 0 or height_in <= 0:
        raise ValidationError("Width and height must be greater than zero", field="dimensions")

    width_ft = inches_to_feet_rounded(width_in, step_inches)
    height_ft = inches_to_feet_rounded(height_in, step_inches)

    return Dimensions(
        width_mm=round2(width_mm),
        height_mm=round2(height_mm),
        width_in=round2(width_in),
        height_in=round2(height_in),
        width_ft=width_ft,
        height_ft=height_ft,
        area_sqft=round2(width_ft * height_ft),
    )


def lookup_glass_rate(rate_row, glass_type: str, thickness: str, org_id: int | None = None):
    """
    Select the rate for (glass type, thickness) from a rate table row.

    Returns (rate, diagnostic). A missing row, column or value yields
    (0, PricingDiagnostic) so the zero is visibly a data error. A rate
    explicitly configured as 0 is a legitimately free item (no diagnostic).
    """
    def _missing(message: str):
        logger.warning(
            "Missing glass rate org_id=%s glass_type=%r thickness=%s: %s",
            org_id, glass_type, thickness, message,
        )
        return ZERO, PricingDiagnostic(
            code=DIAG_MISSING_GLASS_RATE,
            message=message,
            glass_type=glass_type,
            thickness=thickness,
            org_id=org_id,
        )

    if rate_row is None:
        return _missing(f"No active rate table row for glass type {glass_type!r}")

    value = None
    if thickness in THICKNESS_COLUMNS and thickness != DGU:
        value = getattr(rate_row, THICKNESS_COLUMNS[thickness], None)
    elif thickness == DGU or DGU.lower() in glass_type.lower():
        value = getattr(rate_row, THICKNESS_COLUMNS[DGU], None)
    else:
        custom = getattr(rate_row, "custom_rates", None) or {}
        value = custom.get(f"{thickness}mm")

    if value is None:
        return _missing(f"No rate configured for {thickness}{'' if thickness == DGU else 'mm'}")
    return Decimal(str(value)), None


def calculate_process_charge(pricing_type: str, rate, quantity: int, total_area, total_length) -> Decimal:
    """F: per piece, A: per unit area, L: per unit length. Rounded on its own."""
    rate = Decimal(rate)
    if pricing_type == PRICING_FIXED:
        return round2(rate * quantity)
    if pricing_type == PRICING_AREA:
        return round2(rate * Decimal(total_area))
    if pricing_type == PRICING_LENGTH:
        return round2(rate * Decimal(total_length))
    raise ValidationError(f"Unknown pricing type {pricing_type!r}", field="pricing_type")


def _charge_basis(pricing_type: str, quantity: int, total_area: Decimal, total_length: Decimal) -> Decimal:
    if pricing_type == PRICING_FIXED:
        return Decimal(quantity)
    if pricing_type == PRICING_AREA:
        return total_area
    return total_length


def price_line_item(
    spec: LineItemSpec,
    *,
    catalog,
    org_id: int | None,
    step_inches=DEFAULT_STEP_INCHES,
    min_charge=ZERO,
    field_prefix: str = "",
) -> ComputedLineItem:
    """
    Price one line item.

    Raises ValidationError for unknown process codes. Missing glass rates do
    not raise; they come back as diagnostics on the computed line.
    """
    dims = calculate_dimensions(spec, step_inches)
    qty = spec.quantity

    total_area = round2(dims.area_sqft * qty)
    perimeter = round2(
        dims.width_ft * Decimal(spec.perimeter_coeff_w)
        + dims.height_ft * Decimal(spec.perimeter_coeff_h)
    )
    total_length = round2(perimeter * qty)

    diagnostics = []
    if spec.glass_rate_override is not None:
        glass_rate = Decimal(spec.glass_rate_override)
    else:
        rate_row = catalog.find_active_rates(org_id, spec.glass_type)
        glass_rate, diagnostic = lookup_glass_rate(rate_row, spec.glass_type, spec.thickness, org_id)
        if diagnostic is not None:
            diagnostics.append(diagnostic)

    base_glass_price = round2(glass_rate * total_area)

    charges = []
    for i, selection in enumerate(spec.processes):
        definition = catalog.find_process_definition(org_id, selection.code)
        if definition is None:
            raise ValidationError(
                f"Unknown process code {selection.code!r}",
                field=f"{field_prefix}processes[{i}].code",
                details={"code": selection.code},
            )
        default_rate = Decimal(str(definition.rate or 0))
        rate = default_rate if selection.override_rate is None else Decimal(selection.override_rate)
        charges.append(ProcessCharge(
            code=definition.code,
            name=definition.name,
            pricing_type=definition.pricing_type,
            default_rate=default_rate,
            override_rate=selection.override_rate,
            rate=rate,
            basis=_charge_basis(definition.pricing_type, qty, total_area, total_length),
            charge=calculate_process_charge(definition.pricing_type, rate, qty, total_area, total_length),
        ))

    process_total = round2(sum((c.charge for c in charges), ZERO))
    line_total = round2(base_glass_price + process_total)

    min_charge = Decimal(min_charge or 0)
    min_charge_applied = False
    if min_charge > 0 and line_total < min_charge:
        line_total = round2(min_charge)
        min_charge_applied = True

    return ComputedLineItem(
        spec=spec,
        dimensions=dims,
        total_area_sqft=total_area,
        total_area_sqm=round2(total_area * SQM_PER_SQFT),
        perimeter_ft=perimeter,
        total_length_ft=total_length,
        glass_rate=glass_rate,
        base_glass_price=base_glass_price,
        processes=tuple(charges),
        process_total=process_total,
        line_total=line_total,
        min_charge_applied=min_charge_applied,
        diagnostics=tuple(diagnostics),
    )


def calculate_document_totals(
    line_totals,
    *,
    discount_percent=ZERO,
    tax_mode: str = TAX_MODE_INTRA,
    gst_enabled: bool = True,
    tax_rates: TaxRates | None = None,
    charges: dict | None = None,
) -> DocumentTotals:
    """
    subtotal -> discount -> after discount -> + charges -> GST -> total.

    Each stage is rounded before it feeds the next. The discount percent is
    rounded to 2 decimals first, so the stored percent always reproduces the
    stored discount amount. Charges (delivery, loading, labour, fittings,
    additional) are not discounted but are taxed.
    """
    discount_percent = round2(discount_percent or 0)
    if discount_percent < 0 or discount_percent > 100:
        raise ValidationError("discount_percent must be between 0 and 100", field="discount_percent")
    tax_mode = parse_choice(tax_mode, "tax_mode", TAX_MODES, default=TAX_MODE_INTRA)

    subtotal = round2(sum((Decimal(t) for t in line_totals), ZERO))
    discount_amount = round2(subtotal * discount_percent / 100)
    after_discount = round2(subtotal - discount_amount)

    parsed_charges = parse_document_charges(charges)
    charges_total = round2(sum(parsed_charges.values(), ZERO))
    taxable = round2(after_discount + charges_total)

    if gst_enabled:
        gst = compute_gst(taxable, tax_mode, tax_rates or TaxRates.default())
        cgst, sgst, igst, tax = gst.cgst, gst.sgst, gst.igst, gst.tax
    else:
        cgst = sgst = igst = tax = round2(ZERO)

    return DocumentTotals(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_mode=tax_mode,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        tax=tax,
        total=round2(taxable + tax),
        charges=parsed_charges,
        charges_total=charges_total,
    )


def parse_document_charges(charges) -> dict:
    """
    Normalize optional document charges to {name: Decimal} for every name in
    DOCUMENT_CHARGE_FIELDS. Missing or null charges are 0; negative or
    unknown ones are rejected.
    """
    if charges is None:
        charges = {}
    if not isinstance(charges, dict):
        raise ValidationError("charges must be an object", field="charges")
    unknown = sorted(set(charges) - set(DOCUMENT_CHARGE_FIELDS))
    if unknown:
        raise ValidationError(
            f"Unknown charge {unknown[0]!r}",
            field="charges",
            details={"allowed": list(DOCUMENT_CHARGE_FIELDS)},
        )
    return {
        name: round2(parse_optional_decimal(charges.get(name), f"charges.{name}") or ZERO)
        for name in DOCUMENT_CHARGE_FIELDS
    }


def calculate_balance(total, paid) -> Decimal:
    """Outstanding amount; negative when overpaid."""
    return round2(Decimal(total) - Decimal(paid))


def resolve_step_inches(organization=None, config: dict | None = None):
    """
    Single resolution point for the dimension rounding step:
    organization override, else app config, else DEFAULT_STEP_INCHES.
    """
    org_step = getattr(organization, "dimension_step_inches", None)
    if org_step:
        return org_step
    if config and config.get("DIMENSION_STEP_INCHES"):
        return config["DIMENSION_STEP_INCHES"]
    return DEFAULT_STEP_INCHES
