"""Tests for the claim service update/diff/change-log flow."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from claimdesk.errors import NotFoundError, PersistenceError, ValidationError
from claimdesk.services import ClaimService, HistoryReader
from claimdesk.storage import claim_change_log


def fixed_clock():
    return datetime(2025, 3, 6, 9, 30, tzinfo=timezone.utc)


def log_count(engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(claim_change_log)).scalar_one()


@pytest.fixture
def service(engine):
    return ClaimService(engine, clock=fixed_clock)


class TestClaimReads:
    def test_get(self, service, sample_claim):
        claim = service.get(42)
        assert claim["id"] == 42
        assert claim["first_name"] == "Jane"
        assert claim["service_end"] == "2025-03-04"
        assert claim["charge_amt"] == 150.0

    def test_get_unknown(self, service, sample_claim):
        with pytest.raises(NotFoundError):
            service.get(999)

    def test_search_filters(self, service, sample_claim, second_claim):
        assert [c["id"] for c in service.search()] == [42, 43]
        assert [c["id"] for c in service.search(patient_id="1001")] == [42]
        assert [c["id"] for c in service.search(cpt_id=9)] == [43]

    def test_search_by_locale_date(self, service, sample_claim, second_claim):
        assert [c["id"] for c in service.search(service_end="3/4/2025")] == [42]

    def test_search_no_match_is_empty(self, service, sample_claim):
        assert service.search(patient_id=5555) == []

    def test_search_rejects_bad_filters(self, service, sample_claim):
        with pytest.raises(ValidationError):
            service.search(patient_id="abc")
        with pytest.raises(ValidationError):
            service.search(service_end="not a date")


class TestClaimUpdate:
    def test_k_changes_produce_k_entries(self, service, engine, sample_claim):
        """Each changed field gets exactly one log row with its old/new values."""
        updated = service.update(
            42,
            {"charge_amt": "175.25", "prim_ins": "Aetna", "charge_dt": "3/10/2025"},
            user_id=1,
            username="Tester",
        )

        assert updated["charge_amt"] == 175.25
        assert updated["prim_ins"] == "Aetna"
        assert updated["charge_dt"] == "2025-03-10"

        entries = {e["field_name"]: e for e in HistoryReader(engine).for_claim(42)}
        assert set(entries) == {"charge_amt", "prim_ins", "charge_dt"}
        assert (entries["charge_amt"]["old_value"], entries["charge_amt"]["new_value"]) == (
            "150.00",
            "175.25",
        )
        assert (entries["prim_ins"]["old_value"], entries["prim_ins"]["new_value"]) == (
            "Medicare",
            "Aetna",
        )
        assert (entries["charge_dt"]["old_value"], entries["charge_dt"]["new_value"]) == (
            "2025-03-05",
            "2025-03-10",
        )
        for entry in entries.values():
            assert entry["user_id"] == 1
            assert entry["username"] == "Tester"

    def test_identical_submit_logs_nothing(self, service, engine, sample_claim):
        """Fields included but unchanged produce no change-log entry."""
        service.update(
            42,
            {
                "charge_amt": "150",
                "allowed_amt": 95.5,
                "charge_dt": "2025-03-05",
                "first_name": "Jane",
                "claim_status": "Pending",
            },
            user_id=1,
        )
        assert log_count(engine) == 0

    def test_only_changed_fields_logged(self, service, engine, sample_claim):
        service.update(42, {"charge_amt": 150, "claim_status": "Insurance Paid"}, user_id=1)
        entries = HistoryReader(engine).for_claim(42)
        assert [e["field_name"] for e in entries] == ["claim_status"]

    def test_empty_string_amount_stored_as_null(self, service, engine, sample_claim):
        """{id: 42, charge_amt: ''} stores null and logs '150.00' -> null."""
        updated = service.update(42, {"id": 42, "charge_amt": ""}, user_id=1)

        assert updated["charge_amt"] is None
        entries = HistoryReader(engine).for_claim(42)
        assert len(entries) == 1
        assert entries[0]["field_name"] == "charge_amt"
        assert entries[0]["old_value"] == "150.00"
        assert entries[0]["new_value"] is None

    def test_legacy_and_unknown_fields_ignored(self, service, engine, sample_claim):
        updated = service.update(
            42,
            {"amount": 999, "status": "Paid", "checkNumber": "X", "bogus": 1, "notes": "ok"},
            user_id=1,
        )
        assert updated["charge_amt"] == 150.0
        assert updated["claim_status"] == "Pending"
        assert [e["field_name"] for e in HistoryReader(engine).for_claim(42)] == ["notes"]

    def test_default_username(self, service, engine, sample_claim):
        service.update(42, {"notes": "first"}, user_id=3)
        assert HistoryReader(engine).for_claim(42)[0]["username"] == "System"

    def test_unknown_claim(self, service, sample_claim):
        with pytest.raises(NotFoundError):
            service.update(999, {"notes": "x"}, user_id=1)

    def test_missing_acting_user(self, service, sample_claim):
        with pytest.raises(ValidationError):
            service.update(42, {"notes": "x"}, user_id=None)

    def test_missing_claim_id(self, service, sample_claim):
        with pytest.raises(ValidationError):
            service.update(None, {"notes": "x"}, user_id=1)

    def test_blank_identity_field_rejected(self, service, engine, sample_claim):
        with pytest.raises(ValidationError, match="first_name"):
            service.update(42, {"first_name": "  ", "notes": "x"}, user_id=1)
        assert log_count(engine) == 0

    @pytest.mark.parametrize("status", ["", "   ", None])
    def test_blank_claim_status_rejected(self, service, engine, sample_claim, status):
        with pytest.raises(ValidationError, match="claim_status"):
            service.update(42, {"claim_status": status, "notes": "x"}, user_id=1)
        assert service.get(42)["claim_status"] == "Pending"
        assert log_count(engine) == 0

    @pytest.mark.parametrize("amount", ["Infinity", "-inf", "NaN", float("inf"), float("nan")])
    def test_non_finite_amount_rejected(self, service, engine, sample_claim, amount):
        with pytest.raises(ValidationError, match="charge_amt"):
            service.update(42, {"charge_amt": amount, "notes": "x"}, user_id=1)
        assert service.get(42)["charge_amt"] == 150.0
        assert log_count(engine) == 0

    def test_non_numeric_amount_rejected(self, service, engine, sample_claim):
        with pytest.raises(ValidationError, match="charge_amt"):
            service.update(42, {"charge_amt": "lots"}, user_id=1)
        assert service.get(42)["charge_amt"] == 150.0

    def test_unparseable_date_rejected_by_store(self, service, engine, sample_claim):
        """An unparseable date is passed through and the store refuses it."""
        with pytest.raises(PersistenceError):
            service.update(42, {"charge_dt": "someday", "notes": "x"}, user_id=1)
        claim = service.get(42)
        assert claim["charge_dt"] == "2025-03-05"
        assert claim["notes"] is None
        assert log_count(engine) == 0

    def test_failed_log_write_rolls_back_row_update(self, engine, sample_claim):
        """Row update and change-log inserts commit together or not at all."""
        broken = ClaimService(engine, clock=lambda: "not-a-timestamp")

        with pytest.raises(PersistenceError):
            broken.update(42, {"charge_amt": 200}, user_id=1)

        assert ClaimService(engine).get(42)["charge_amt"] == 150.0
        assert log_count(engine) == 0

    def test_last_write_wins(self, service, engine, sample_claim):
        """Two writers to the same field are recorded as two entries."""
        service.update(42, {"prim_cmt": "first"}, user_id=1)
        service.update(42, {"prim_cmt": "second"}, user_id=2)

        assert service.get(42)["prim_cmt"] == "second"
        entries = HistoryReader(engine).for_claim(42)
        assert [(e["old_value"], e["new_value"]) for e in entries] == [
            ("first", "second"),
            (None, "first"),
        ]
