from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# 100% expressed in basis points
MAX_TAX_RATE_BPS = 10_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Whole numbers only: ints, or strings of optional sign and digits.

    Bools, floats, "12.5" and "1e3" are refused so cents never get truncated.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("+", "-") else text
        if digits.isdigit() and digits.isascii():
            return int(text)
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    if isinstance(col.type, Integer):
        return coerce_int(value, col.key)
    if isinstance(col.type, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{col.key} must be true or false")
        return value
    if isinstance(col.type, (String, Text)):
        return str(value).strip()
    return value


def _check_column(col, key: str, raw: Any):
    if raw is None:
        if not col.nullable:
            raise ValidationError(f"{key} cannot be null")
        return None

    val = _coerce_value(col, raw)
    if isinstance(val, str):
        if val == "" and not col.nullable:
            raise ValidationError(f"{key} cannot be blank")
        length = getattr(col.type, "length", None)
        if length and len(val) > length:
            raise ValidationError(f"{key} exceeds max length {length}")
    return val


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Clean a JSON body against the model's columns and a write policy.

    Unknown or non-writable keys are rejected, required keys are enforced
    on create, and values are coerced by column type. Returns only the keys
    that were sent.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted((policy.required_on_create or set()) - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in cols)
    if rejected:
        raise ValidationError(f"Field not allowed: {', '.join(rejected)}")

    return {k: _check_column(cols[k], k, raw) for k, raw in payload.items()}


def enforce_rules_product(patch: dict) -> None:
    """Money and rate bounds that column metadata cannot express."""
    for field in ("price_cents", "cost_cents"):
        if patch.get(field) is None:
            continue
        amount = patch[field]
        if amount < 0:
            raise ValidationError(f"{field} must be >= 0")
        if amount > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    rate = patch.get("tax_rate_bps")
    if rate is not None and not 0 <= rate <= MAX_TAX_RATE_BPS:
        raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")

    if patch.get("stock") is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")

    if patch.get("barcode") == "":
        patch["barcode"] = None
