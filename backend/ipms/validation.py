from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Same shape the login form and the admin user form accept
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Quantities are Numeric(18, 3); anything bigger or finer cannot be stored
MAX_QUANTITY = Decimal("999999999999999.999")
QUANTITY_SCALE = 3

# Identifiers are signed 64-bit on every supported backend
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level missing resource."""


def is_valid_email(email: str | None) -> bool:
    if not isinstance(email, str):
        return False
    return bool(EMAIL_RE.match(email.strip()))


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary), as model column keys
    - required_on_create: column keys required for POST
    - aliases: JSON field name -> column key (the API speaks camelCase)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)

    def column_for(self, json_key: str) -> str:
        return self.aliases.get(json_key, json_key)

    def json_name(self, column_key: str) -> str:
        for json_key, col_key in self.aliases.items():
            if col_key == column_key:
                return json_key
        return column_key


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _bounded_int(value: int, label: str) -> int:
    if value < MIN_ID or value > MAX_ID:
        raise ValidationError(f"{label} is out of range")
    return value


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    # Fixed-point quantities. Checked before Integer: Numeric is not an Integer subclass,
    # but keep the order explicit anyway.
    if isinstance(coltype, Numeric) and not isinstance(coltype, Integer):
        if isinstance(value, bool):
            raise ValidationError(f"{label} must be a number")
        if isinstance(value, (int, float, str)):
            try:
                dec = Decimal(str(value).strip())
            except InvalidOperation:
                raise ValidationError(f"{label} must be a number")
            if not dec.is_finite():
                raise ValidationError(f"{label} must be a finite number")
            if abs(dec) > MAX_QUANTITY:
                raise ValidationError(f"{label} is too large")
            if coltype.scale is not None and dec.normalize().as_tuple().exponent < -coltype.scale:
                raise ValidationError(f"{label} has too many decimal places")
            return dec
        raise ValidationError(f"{label} must be a number")

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return _bounded_int(value, label)
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{label} must be an integer")
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{label} must be a plain integer")
            try:
                parsed = int(stripped)
            except ValueError:
                raise ValidationError(f"{label} must be an integer")
            return _bounded_int(parsed, label)
        raise ValidationError(f"{label} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{label} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{label} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    Blank strings for optional text columns are normalized to None.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)

    incoming: dict[str, tuple[str, Any]] = {}
    for json_key, raw in payload.items():
        col_key = policy.column_for(json_key)
        if col_key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {json_key}")
        if col_key not in cols:
            raise ValidationError(f"Unknown field: {json_key}")
        incoming[col_key] = (json_key, raw)

    if not partial:
        missing = [
            policy.json_name(f)
            for f in sorted(policy.required_on_create)
            if f not in incoming or incoming[f][1] in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}

    for col_key, (json_key, raw) in incoming.items():
        col = cols[col_key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{json_key} cannot be null")
            patch[col_key] = None
            continue

        val = _coerce_value(col, raw, json_key)

        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            # Blank string check for non-nullable text fields
            if not col.nullable:
                raise ValidationError(f"{json_key} cannot be blank")
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{json_key} exceeds max length {col.type.length}")

        patch[col_key] = val

    return patch


def enforce_rules_opening_stock(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    quantity = patch.get("quantity")
    if quantity is None:
        raise ValidationError("quantity is required")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative.")

    reorder_level = patch.get("reorder_level")
    if reorder_level is not None and reorder_level < 0:
        raise ValidationError("reorderLevel cannot be negative.")
