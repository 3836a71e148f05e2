"""Tests for date parsing and claim payload normalization."""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal

import pytest

from claimdesk.utils import (
    coerce_integer,
    coerce_numeric,
    normalize_claim_payload,
    normalize_date,
    parse_flexible_date,
    to_log_text,
    values_equal,
)


class TestParseFlexibleDate:
    def test_iso(self):
        assert parse_flexible_date("2024-01-15") == date(2024, 1, 15)

    def test_us_locale_without_padding(self):
        assert parse_flexible_date("3/4/2025") == date(2025, 3, 4)

    def test_compact(self):
        assert parse_flexible_date("20240115") == date(2024, 1, 15)

    def test_javascript_timestamp(self):
        assert parse_flexible_date("2025-03-04T00:00:00.000Z") == date(2025, 3, 4)

    def test_invalid_calendar_date(self):
        assert parse_flexible_date("2024-02-30") is None

    def test_out_of_range_year(self):
        assert parse_flexible_date("01/01/1850") is None

    def test_empty(self):
        assert parse_flexible_date("") is None
        assert parse_flexible_date(None) is None


class TestNormalizeDate:
    def test_canonical_passes_through_unchanged(self):
        assert normalize_date("2025-03-04") == "2025-03-04"

    def test_locale_string_normalized(self):
        assert normalize_date("3/4/2025") == "2025-03-04"

    def test_date_objects(self):
        assert normalize_date(date(2025, 3, 4)) == "2025-03-04"
        assert normalize_date(datetime(2025, 3, 4, 15, 30)) == "2025-03-04"

    def test_blank_is_null(self):
        assert normalize_date("") is None
        assert normalize_date("   ") is None
        assert normalize_date(None) is None

    def test_unparseable_left_as_is(self, caplog):
        """Unparseable dates are kept (never silently dropped) and logged."""
        assert normalize_date("next tuesday", "charge_dt") == "next tuesday"
        assert "charge_dt" in caplog.text


class TestCoercion:
    def test_empty_string_is_null_not_zero(self):
        assert coerce_numeric("") is None
        assert coerce_numeric(None) is None

    def test_numeric_strings(self):
        assert coerce_numeric("150") == 150.0
        assert coerce_numeric("$1,234.50") == 1234.5
        assert coerce_numeric(0) == 0.0

    def test_non_numeric_left_as_is(self):
        assert coerce_numeric("abc") == "abc"

    @pytest.mark.parametrize("value", ["Infinity", "-inf", "NaN", "sNaN", "1e400"])
    def test_non_finite_strings_left_as_is(self, value):
        assert coerce_numeric(value) == value

    def test_non_finite_numbers_not_coerced(self):
        assert math.isinf(coerce_numeric(float("inf")))
        assert coerce_numeric(Decimal("NaN")).is_nan()
        assert coerce_numeric(10**400) == 10**400

    def test_integers(self):
        assert coerce_integer("1001") == 1001
        assert coerce_integer("7.0") == 7
        assert coerce_integer("") is None
        assert coerce_integer("x7") == "x7"


class TestNormalizeClaimPayload:
    def test_strips_legacy_fields_and_id(self):
        payload = {
            "id": 42,
            "checkNumber": "123",
            "amount": 5,
            "status": "Paid",
            "updatedAt": "2025-01-01",
            "patient_name": "Jane Doe",
            "charge_amt": "150",
        }
        assert normalize_claim_payload(payload) == {"charge_amt": 150.0}

    def test_canonical_only_drops_unknown_names(self):
        payload = {"charge_amt": "", "not_a_column": "x", "user_id": 1}
        assert normalize_claim_payload(payload, canonical_only=True) == {"charge_amt": None}

    def test_keep_preserves_user_metadata(self):
        payload = {"charge_dt": "3/4/2025", "user_id": 1, "username": "Tester"}
        assert normalize_claim_payload(payload, keep=("user_id", "username")) == {
            "charge_dt": "2025-03-04",
            "user_id": 1,
            "username": "Tester",
        }

    def test_text_fields_trimmed_and_blank_is_null(self):
        payload = {"prim_cmt": "  called payer  ", "sec_cmt": "   "}
        assert normalize_claim_payload(payload) == {"prim_cmt": "called payer", "sec_cmt": None}

    def test_input_not_modified(self):
        payload = {"charge_amt": "10", "id": 1}
        normalize_claim_payload(payload)
        assert payload == {"charge_amt": "10", "id": 1}


class TestChangeLogText:
    def test_amounts_render_with_two_decimals(self):
        assert to_log_text("charge_amt", 150) == "150.00"
        assert to_log_text("charge_amt", 150.0) == "150.00"

    def test_dates_render_iso(self):
        assert to_log_text("charge_dt", date(2025, 3, 5)) == "2025-03-05"

    def test_null_stays_null(self):
        assert to_log_text("charge_amt", None) is None

    def test_equal_values_in_different_types(self):
        assert values_equal("charge_amt", 150.0, 150)
        assert values_equal("charge_dt", date(2025, 3, 5), "2025-03-05")
        assert values_equal("units", 1, 1)
        assert not values_equal("charge_amt", 150.0, None)
