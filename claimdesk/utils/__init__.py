"""Shared utility functions for claimdesk."""

from .date_parser import normalize_date, parse_flexible_date
from .normalization import (
    coerce_integer,
    coerce_numeric,
    normalize_claim_payload,
    to_log_text,
    values_equal,
)

__all__ = [
    "parse_flexible_date",
    "normalize_date",
    "coerce_numeric",
    "coerce_integer",
    "normalize_claim_payload",
    "to_log_text",
    "values_equal",
]
