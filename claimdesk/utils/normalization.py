"""Claim payload normalization.

Shared by the claim service (authoritative) and the API client (applied
defensively before sending) so both sides agree on the wire format:

- numeric fields are numbers or null, an empty string means null
- date fields are YYYY-MM-DD or null
- text fields are trimmed, an empty string means null
- legacy/derived names are stripped
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from claimdesk.fields import (
    ALL_DATE_FIELDS,
    CANONICAL_FIELDS,
    INTEGER_FIELDS,
    LEGACY_FIELDS,
    NUMERIC_FIELDS,
    TEXT_FIELDS,
)

from .date_parser import normalize_date

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_numeric(value: Any, field_name: str | None = None) -> Any:
    """Coerce a numeric-looking value to float.

    '' and None become None (never 0). Currency formatting ($, commas) is
    tolerated. Values that are not finite numbers are returned unchanged.
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        parsed = value
    elif isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            logger.warning(f"Non-numeric value for {field_name}: {value!r}")
            return value
    else:
        return value

    # Infinity, NaN and overflowing exponents cannot be stored or serialized
    try:
        as_float = float(parsed) if not isinstance(parsed, Decimal) or parsed.is_finite() else math.inf
    except OverflowError:
        as_float = math.inf
    if not math.isfinite(as_float):
        logger.warning(f"Non-finite value for {field_name}: {value!r}")
        return value
    return as_float


def coerce_integer(value: Any, field_name: str | None = None) -> Any:
    """Coerce an integer-looking value to int, '' and None become None."""
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.lstrip("-").isdigit():
            return int(cleaned)
        try:
            as_float = float(cleaned)
        except ValueError:
            as_float = None
        if as_float is not None and as_float.is_integer():
            return int(as_float)
        logger.warning(f"Non-integer value for {field_name}: {value!r}")
    return value


def normalize_field(field_name: str, value: Any) -> Any:
    """Normalize a single claim field according to its catalogue."""
    if field_name in NUMERIC_FIELDS:
        return coerce_numeric(value, field_name)
    if field_name in INTEGER_FIELDS:
        return coerce_integer(value, field_name)
    if field_name in ALL_DATE_FIELDS:
        return normalize_date(value, field_name)
    if field_name in TEXT_FIELDS and isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def normalize_claim_payload(
    payload: dict[str, Any],
    canonical_only: bool = False,
    keep: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Normalize a partial claim payload.

    Args:
        payload: Partial claim as received from a form or a request body
        canonical_only: Drop every key outside the canonical column set
            (server side). Otherwise only legacy names and `id` are dropped.
        keep: Extra non-canonical keys to preserve (e.g. acting-user metadata)

    Returns:
        A new dict; the input is not modified.
    """
    normalized: dict[str, Any] = {}
    dropped: list[str] = []

    for key, value in payload.items():
        if key in keep:
            normalized[key] = value
            continue
        if key in LEGACY_FIELDS or key == "id":
            dropped.append(key)
            continue
        if canonical_only and key not in CANONICAL_FIELDS:
            dropped.append(key)
            continue
        normalized[key] = normalize_field(key, value)

    if dropped:
        logger.debug(f"Dropped non-canonical claim fields: {sorted(dropped)}")

    return normalized


def to_log_text(field_name: str, value: Any) -> str | None:
    """Render a column value the way the change log stores it (text or null)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if field_name in NUMERIC_FIELDS and isinstance(value, (int, float, Decimal)):
        return f"{float(value):.2f}"
    return str(value)


def values_equal(field_name: str, old: Any, new: Any) -> bool:
    """Compare a stored value with an incoming one as the change log sees them."""
    return to_log_text(field_name, old) == to_log_text(field_name, new)
