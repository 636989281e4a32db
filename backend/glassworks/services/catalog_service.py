# Overview: Service-layer operations for the rate table and process master.

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..models import GlassRate, ProcessDefinition
from ..models.catalog import THICKNESS_COLUMNS, PRICING_TYPES
from ..validation import (
    ValidationError,
    parse_choice,
    parse_decimal,
    parse_optional_decimal,
    require_text,
)


logger = logging.getLogger(__name__)


# Starter catalog for a new shop; prices are per sq ft / per piece / per ft.
DEFAULT_GLASS_RATES = [
    {
        "glass_type": "Clear Float",
        "rate_3_5mm": "35.00", "rate_4mm": "38.00", "rate_5mm": "42.00", "rate_6mm": "48.00",
        "rate_8mm": "62.00", "rate_10mm": "78.00", "rate_12mm": "95.00", "rate_19mm": "145.00",
        "rate_dgu": "180.00",
    },
    {
        "glass_type": "Tinted",
        "rate_3_5mm": "40.00", "rate_4mm": "43.00", "rate_5mm": "47.00", "rate_6mm": "53.00",
        "rate_8mm": "67.00", "rate_10mm": "83.00", "rate_12mm": "100.00", "rate_19mm": "150.00",
        "rate_dgu": "190.00",
    },
    {
        "glass_type": "Laminated",
        "rate_5mm": "65.00", "rate_6mm": "72.00", "rate_8mm": "88.00",
        "rate_10mm": "105.00", "rate_12mm": "125.00", "rate_19mm": "180.00",
    },
]

DEFAULT_PROCESSES = [
    {"code": "BP", "name": "Back Painted", "pricing_type": "A", "rate": "45.00"},
    {"code": "TMP", "name": "Toughened", "pricing_type": "A", "rate": "85.00"},
    {"code": "EDG", "name": "Edging", "pricing_type": "L", "rate": "12.00"},
    {"code": "HOLE", "name": "Hole Drilling", "pricing_type": "F", "rate": "50.00"},
    {"code": "LAM", "name": "Lamination", "pricing_type": "A", "rate": "95.00"},
]


def _parse_custom_rates(value) -> dict:
    if value in (None, ""):
        return {}
    if not isinstance(value, dict):
        raise ValidationError("custom_rates must be an object", field="custom_rates")
    cleaned = {}
    for key, rate in value.items():
        thickness = str(key).strip().lower().removesuffix("mm").strip()
        thickness_value = parse_decimal(thickness, f"custom_rates.{key}", positive=True)
        label = f"{format(thickness_value.normalize(), 'f')}mm"
        cleaned[label] = str(parse_decimal(rate, f"custom_rates.{key}"))
    return cleaned


def upsert_glass_rate(org_id: int, payload: dict) -> GlassRate:
    """
    Create or update the rate row for a glass type. Caller commits.

    Only keys present in the payload are changed; pass null to clear a
    thickness (it then prices as zero with a diagnostic).
    """
    glass_type = require_text(payload.get("glass_type"), "glass_type", max_length=120)

    row = db.session.query(GlassRate).filter_by(org_id=org_id, glass_type=glass_type).first()
    if row is None:
        row = GlassRate(org_id=org_id, glass_type=glass_type, is_active=True)
        db.session.add(row)

    for column in THICKNESS_COLUMNS.values():
        if column in payload:
            setattr(row, column, parse_optional_decimal(payload.get(column), column))

    if "custom_rates" in payload:
        row.custom_rates = _parse_custom_rates(payload.get("custom_rates"))
    if "is_active" in payload:
        row.is_active = bool(payload.get("is_active"))

    db.session.flush()
    return row


def list_glass_rates(org_id: int, include_inactive: bool = False) -> list[GlassRate]:
    query = db.session.query(GlassRate).filter_by(org_id=org_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(GlassRate.glass_type).all()


def upsert_process_definition(org_id: int, payload: dict) -> ProcessDefinition:
    """Create or update a process by code. Caller commits."""
    code = require_text(payload.get("code"), "code", max_length=32).upper()

    row = db.session.query(ProcessDefinition).filter_by(org_id=org_id, code=code).first()
    creating = row is None
    if creating:
        row = ProcessDefinition(org_id=org_id, code=code, is_active=True)
        db.session.add(row)

    if creating or "name" in payload:
        row.name = require_text(payload.get("name"), "name", max_length=120)
    if creating or "pricing_type" in payload:
        row.pricing_type = parse_choice(payload.get("pricing_type"), "pricing_type", PRICING_TYPES)
    if creating or "rate" in payload:
        row.rate = parse_decimal(payload.get("rate", Decimal("0")), "rate")
    if "remarks" in payload:
        row.remarks = payload.get("remarks")
    if "is_active" in payload:
        row.is_active = bool(payload.get("is_active"))

    db.session.flush()
    return row


def deactivate_process_definition(org_id: int, code: str) -> ProcessDefinition:
    row = db.session.query(ProcessDefinition).filter_by(org_id=org_id, code=str(code).upper()).first()
    if row is None:
        raise ValidationError(f"Unknown process code {code!r}", field="code")
    row.is_active = False
    db.session.flush()
    return row


def list_process_definitions(org_id: int, include_inactive: bool = False) -> list[ProcessDefinition]:
    query = db.session.query(ProcessDefinition).filter_by(org_id=org_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(ProcessDefinition.code).all()


def seed_default_catalog(org_id: int) -> dict:
    """
    Idempotent: existing glass types / process codes are left as they are.
    """
    created_rates = 0
    for entry in DEFAULT_GLASS_RATES:
        exists = db.session.query(GlassRate.id).filter_by(org_id=org_id, glass_type=entry["glass_type"]).first()
        if not exists:
            upsert_glass_rate(org_id, entry)
            created_rates += 1

    created_processes = 0
    for entry in DEFAULT_PROCESSES:
        exists = db.session.query(ProcessDefinition.id).filter_by(org_id=org_id, code=entry["code"]).first()
        if not exists:
            upsert_process_definition(org_id, entry)
            created_processes += 1

    db.session.commit()
    logger.info(
        "Seeded catalog for org_id=%s: %s glass rates, %s processes",
        org_id, created_rates, created_processes,
    )
    return {"glass_rates": created_rates, "processes": created_processes}
