"""Date parsing utilities for claim payloads."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

logger = logging.getLogger(__name__)

# Reasonable date bounds for healthcare claims
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_FORMATS = [
    "%Y-%m-%d",  # ISO 8601
    "%m/%d/%Y",  # US format
    "%m-%d-%Y",  # US format with dashes
    "%Y%m%d",  # Compact
    "%Y/%m/%d",
]


def parse_flexible_date(date_str: str | None) -> date | None:
    """Parse date from multiple common formats with validation.

    Supports the following formats:
    - ISO 8601: YYYY-MM-DD (e.g., 2024-01-15)
    - ISO 8601 timestamps: 2024-01-15T08:30:00Z (time part dropped)
    - US format: MM/DD/YYYY or M/D/YYYY (e.g., 3/4/2025)
    - Compact: YYYYMMDD (e.g., 20240115)

    Validates that:
    - The date is a real calendar date (no Feb 30, etc.)
    - The year is between 1900 and 2100 (sensible for healthcare claims)

    Args:
        date_str: Date string to parse, or None

    Returns:
        Parsed date object, or None if parsing fails or input is None

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.date(2024, 1, 15)
        >>> parse_flexible_date("3/4/2025")
        datetime.date(2025, 3, 4)
        >>> parse_flexible_date("2024-02-30")  # Invalid date
        None
    """
    if not date_str:
        return None

    value = date_str.strip()

    for fmt in _FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue
        if MIN_VALID_YEAR <= parsed.year <= MAX_VALID_YEAR:
            return parsed.date()

    # Full timestamps as produced by JavaScript's toISOString()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if MIN_VALID_YEAR <= parsed.year <= MAX_VALID_YEAR:
        return parsed.date()
    return None


def normalize_date(value: Any, field_name: str | None = None) -> Any:
    """Normalize a date value to canonical YYYY-MM-DD.

    None and '' become None. Canonical strings pass through unchanged,
    date/datetime objects are formatted, and anything unparseable is
    returned as-is with a warning.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        logger.warning(f"Leaving non-string date value for {field_name}: {value!r}")
        return value

    stripped = value.strip()
    if stripped == "":
        return None
    if ISO_DATE_PATTERN.match(stripped) and parse_flexible_date(stripped):
        return stripped

    parsed = parse_flexible_date(stripped)
    if parsed is None:
        logger.warning(f"Could not normalize date for {field_name}: {value!r}")
        return value
    return parsed.isoformat()
