from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


# Largest money/rate value accepted from clients: 9,999,999,999.99
MAX_AMOUNT = Decimal("9999999999.99")


class ValidationError(ValueError):
    """
    400-level input problem.

    `field` names the offending input (dotted/indexed path such as
    "items[0].width_in") so callers can attribute the message to a form field.
    """

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.field = field
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.field:
            body["field"] = self.field
        if self.details:
            body["details"] = self.details
        return body


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate glass type)."""


def parse_decimal(
    value: Any,
    field: str,
    *,
    positive: bool = False,
    allow_negative: bool = False,
) -> Decimal:
    """
    Coerce client input to Decimal exactly once, at the boundary.

    Floats are converted through their repr so 0.1 stays 0.1. Booleans,
    NaN and Infinity are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number", field=field)
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number", field=field)
    else:
        raise ValidationError(f"{field} must be a number", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    if positive and result <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    if not allow_negative and result < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large", field=field)
    return result


def parse_optional_decimal(value: Any, field: str, **kwargs) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_decimal(value, field, **kwargs)


def parse_positive_int(value: Any, field: str) -> int:
    """
    Strict positive integer: rejects floats, decimals, scientific notation
    and booleans rather than truncating them.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field)
        # Reject scientific notation (e.g., "1e3") and decimals (e.g., "2.5")
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer", field=field)
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
    else:
        raise ValidationError(f"{field} must be an integer", field=field)

    if result <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return result


def parse_choice(value: Any, field: str, choices, *, default=None) -> str:
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required", field=field)
    normalized = str(value).strip().upper()
    if normalized not in choices:
        raise ValidationError(
            f"{field} must be one of {', '.join(sorted(choices))}",
            field=field,
        )
    return normalized


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return text
