from __future__ import annotations
from datetime import datetime
from bizops.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum money amount: $99,999,999.99 (matches a NUMERIC(10, 2) column)
MAX_MONEY_CENTS = 9_999_999_999

# Largest on-hand or per-line quantity (signed 32-bit INTEGER column)
MAX_QUANTITY = 2_147_483_647


class ValidationError(ValueError):
    """400-level input problem. `field` names the offending payload key."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.field:
            body["field"] = self.field
        return body


class NotFoundError(LookupError):
    """404-level: a referenced entity does not exist."""

    def __init__(self, message: str, entity: str | None = None, entity_id: Any = None):
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - money_fields: integer cent columns that must be within 0..MAX_MONEY_CENTS
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    money_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation so cents and quantities never round silently.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field)
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)", field=field)
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
    raise ValidationError(f"{field} must be an integer", field=field)


def coerce_money_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0", field=field)
    if cents > MAX_MONEY_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY_CENTS}", field=field)
    return cents


def coerce_datetime(value: Any, field: str) -> datetime:
    """ISO-8601 date or datetime string, normalized to UTC-naive."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 date", field=field)
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date", field=field)
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 date", field=field)
    return dt


def _coerce_value(col, value: Any, field: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, field)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{field} must be a boolean", field=field)

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{field} must be a string", field=field)
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
    prefix: str = "",
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    `prefix` is prepended to field names in error messages so nested
    payloads (e.g. "order.") report the full path.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", field=prefix.rstrip(".") or None)

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(prefix + m for m in missing)}",
                field=prefix + missing[0],
            )

    cols = _columns_by_key(model)
    money = policy.money_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {prefix}{k}", field=prefix + k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {prefix}{k}", field=prefix + k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]
        name = prefix + k

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{name} cannot be null", field=name)
            patch[k] = None
            continue

        if k in money:
            val = coerce_money_cents(raw, name)
        else:
            val = _coerce_value(col, raw, name)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{name} cannot be blank", field=name)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{name} exceeds max length {col.type.length}", field=name)

        patch[k] = val

    return patch


def require_choice(value: Any, choices: set[str], field: str) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(sorted(choices))}",
            field=field,
        )
    return value


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "quantity" in patch and patch["quantity"] is not None:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0", field="quantity")
        if patch["quantity"] > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}", field="quantity")

    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise ValidationError("low_stock_threshold must be >= 0", field="low_stock_threshold")

    # Empty identifiers are stored as NULL so uniqueness only applies when present
    for key in ("sku", "barcode"):
        if key in patch and patch[key] == "":
            patch[key] = None
