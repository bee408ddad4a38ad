from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidRate, ValidationError


MIN_RATE = Decimal("0")
MAX_RATE = Decimal("100")

_WHITESPACE = re.compile(r"\s+")


def normalize_plate(value: Any) -> str:
    """Upper-case a licence plate and strip every whitespace character."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).upper()


def require_plate(value: Any) -> str:
    plate = normalize_plate(value)
    if not plate:
        raise ValidationError("plate is required")
    if len(plate) > 16:
        raise ValidationError("plate must be at most 16 characters")
    return plate


def clean_text(value: Any) -> str | None:
    """Strip free text; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_text(value: Any, field_name: str) -> str:
    text = clean_text(value)
    if text is None:
        raise ValidationError(f"{field_name} is required")
    return text


def _to_decimal(value: Any, field_name: str, error_cls=ValidationError) -> Decimal:
    # bool is an int subclass; "true" is never a number here
    if value is None or isinstance(value, bool):
        raise error_cls(f"{field_name} must be a number")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise error_cls(f"{field_name} must be a number")
    if isinstance(value, str):
        # Accept the decimal comma staff type on Turkish keyboards
        value = value.strip().replace(",", ".")
        if not value:
            raise error_cls(f"{field_name} must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise error_cls(f"{field_name} must be a number")
    if not number.is_finite():
        raise error_cls(f"{field_name} must be a number")
    return number


def parse_rate(value: Any, field_name: str) -> float:
    """
    Validate a discount percentage.

    The raw value must lie in the closed interval [0, 100]; the stored value
    is rounded half-up to one decimal place.
    """
    number = _to_decimal(value, field_name, InvalidRate)
    if number < MIN_RATE or number > MAX_RATE:
        raise InvalidRate(f"{field_name} must be between 0 and 100")
    return float(number.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def parse_positive_decimal(value: Any, field_name: str, places: str = "0.01") -> Decimal:
    number = _to_decimal(value, field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    raise ValidationError(f"{field_name} must be a boolean")


@dataclass(frozen=True)
class PatchPolicy:
    """
    Allowlist for partial updates coming from clients.

    - writable_fields: what clients are allowed to set (security boundary)
    - coercers: per-field parser applied to the raw value
    """
    writable_fields: set[str]
    coercers: dict = field(default_factory=dict)


def validate_patch(payload: dict | None, policy: PatchPolicy) -> dict:
    """
    Returns a cleaned patch dict containing only writable fields.

    Unknown fields are rejected rather than ignored so typos surface early.
    """
    if not payload:
        raise ValidationError("No fields to update")
    unknown = set(payload) - policy.writable_fields
    if unknown:
        raise ValidationError(f"Fields not writable: {', '.join(sorted(unknown))}")

    cleaned = {}
    for key, raw in payload.items():
        coerce = policy.coercers.get(key)
        cleaned[key] = coerce(raw, key) if coerce else raw
    return cleaned
