# Overview: Request payload validation for inventory items, stock adjustments and sales.

"""
Payloads arrive as JSON or multipart form data, so every value may be a
string. validate_payload coerces each field by the type of the mapped column
it targets and rejects anything the route's policy does not allow.

Business rules that columns cannot express (ranges, enums) live in the
enforce_rules_* helpers below.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text

from .errors import ValidationError
from .models import ADJUSTMENT_TYPES, PAYMENT_METHODS, PAYMENT_STATUSES, SALE_STATUSES
from .time_utils import parse_iso_datetime

# 9,999,999.99 in cents
MAX_PRICE_CENTS = 999_999_999
MAX_QUANTITY = 10_000_000

_INTEGER = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Fields a route accepts, and which of them a create must carry."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _to_int(key: str, value) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    # plain digits, optional leading minus
    if not _INTEGER.fullmatch(text):
        raise ValidationError(f"{key} must be an integer")
    return int(text)


def _to_datetime(key: str, value) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _to_text(key: str, column, value) -> str:
    text = str(value).strip()
    if not text and not column.nullable:
        raise ValidationError(f"{key} cannot be blank")
    length = getattr(column.type, "length", None)
    if length and len(text) > length:
        raise ValidationError(f"{key} exceeds max length {length}")
    return text


def _coerce(key: str, column, value):
    if isinstance(column.type, Integer):
        return _to_int(key, value)
    if isinstance(column.type, DateTime):
        return _to_datetime(key, value)
    if isinstance(column.type, (String, Text)):
        return _to_text(key, column, value)
    return value


def validate_payload(*, model, payload, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Return a cleaned patch holding only the policy's writable fields.

    partial=False checks policy.required_on_create first; 0 counts as present,
    None and "" do not.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(k for k in policy.required_on_create if payload.get(k) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    unknown = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    patch = {}
    for key, value in payload.items():
        column = columns[key]
        if value is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(key, column, value)
    return patch


def _check_price(patch: dict, key: str) -> None:
    if patch.get(key) is not None:
        price = patch[key]
        if price < 0:
            raise ValidationError(f"{key} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_inventory(patch: dict) -> None:
    """Quantity and price ranges for item create/update."""
    if "quantity" in patch:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")
        if patch["quantity"] > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    _check_price(patch, "price_cents")


def enforce_rules_adjustment(patch: dict) -> None:
    if patch.get("type") not in ADJUSTMENT_TYPES:
        raise ValidationError("type must be add or subtract")
    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("quantity must be > 0")
    if patch["quantity"] > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    _check_price(patch, "price_cents")


def enforce_rules_sale(patch: dict) -> None:
    if "quantity_sold" in patch:
        if patch["quantity_sold"] < 1:
            raise ValidationError("quantity_sold must be >= 1")
        if patch["quantity_sold"] > MAX_QUANTITY:
            raise ValidationError(f"quantity_sold cannot exceed {MAX_QUANTITY}")
    _check_price(patch, "unit_price_cents")

    if "payment_method" in patch and patch["payment_method"] not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if "payment_status" in patch and patch["payment_status"] not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    if "status" in patch and patch["status"] not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")


def parse_signed_adjustment(payload: dict) -> tuple[str, int]:
    """Legacy {sku, adjustment} body: a signed quantity delta addressed by SKU."""
    sku = payload.get("sku")
    raw = payload.get("adjustment")
    if not sku or raw is None or raw == "":
        raise ValidationError("SKU and adjustment are required")
    if isinstance(raw, bool) or isinstance(raw, float):
        raise ValidationError("adjustment must be an integer")
    try:
        delta = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("adjustment must be an integer")
    if delta == 0:
        raise ValidationError("adjustment must not be zero")
    return str(sku).strip(), delta


def parse_date_arg(name: str, raw: str | None) -> datetime | None:
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


def parse_int_arg(name: str, raw: str | None) -> int | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
