"""Tests for the claim REST routes."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from claimdesk.errors import PersistenceError
from claimdesk.fields import CLAIM_STATUS_OPTIONS


class TestHealth:
    def test_health(self, client):
        for path in ("/health", "/api/health"):
            response = client.get(path)
            assert response.status_code == 200
            body = response.json()
            assert body["status"] == "ok"
            assert "timestamp" in body

    def test_db_test(self, client):
        response = client.get("/api/db-test")
        assert response.status_code == 200
        assert response.json()["status"] == "success"

    def test_db_test_failure(self, client):
        with patch(
            "claimdesk.app.check_connection",
            side_effect=PersistenceError("Database connection failed: refused"),
        ):
            response = client.get("/api/db-test")
        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "message": "Database connection failed: refused",
        }


class TestClaimReads:
    def test_list(self, client, sample_claim, second_claim):
        response = client.get("/api/claims")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [c["id"] for c in body["data"]] == [42, 43]

    def test_search_params(self, client, sample_claim, second_claim):
        body = client.get("/api/claims", params={"patient_id": "2002"}).json()
        assert [c["id"] for c in body["data"]] == [43]

        body = client.get("/api/claims", params={"service_end": "2025-03-04"}).json()
        assert [c["id"] for c in body["data"]] == [42]

    def test_search_without_match(self, client, sample_claim):
        body = client.get("/api/claims", params={"cpt_id": "12345"}).json()
        assert body == {"success": True, "data": []}

    def test_search_bad_filter(self, client, sample_claim):
        response = client.get("/api/claims", params={"patient_id": "abc"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert body["error"] == "validation"

    def test_get(self, client, sample_claim):
        body = client.get("/api/claims/42").json()
        assert body["success"] is True
        assert body["data"]["charge_amt"] == 150.0
        assert body["data"]["date_of_birth"] == "1980-05-17"

    def test_get_unknown(self, client, sample_claim):
        response = client.get("/api/claims/999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_statuses(self, client):
        body = client.get("/api/claims/statuses").json()
        assert body["data"] == CLAIM_STATUS_OPTIONS


class TestClaimUpdate:
    def test_update_clears_amount(self, client, sample_claim):
        response = client.put(
            "/api/claims/42",
            params={"_t": 1741250000000},
            json={"charge_amt": "", "user_id": 1, "username": "Tester"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["charge_amt"] is None

        history = client.get("/api/claims/42/history").json()
        assert history["success"] is True
        assert len(history["data"]) == 1
        entry = history["data"][0]
        assert entry["field_name"] == "charge_amt"
        assert entry["old_value"] == "150.00"
        assert entry["new_value"] is None
        assert entry["username"] == "Tester"

    def test_update_returns_normalized_row(self, client, sample_claim):
        body = client.put(
            "/api/claims/42",
            json={"prim_post_dt": "4/1/2025", "prim_amt": "$80.00", "user_id": "1"},
        ).json()
        assert body["data"]["prim_post_dt"] == "2025-04-01"
        assert body["data"]["prim_amt"] == 80.0

    def test_update_requires_user(self, client, sample_claim):
        response = client.put("/api/claims/42", json={"notes": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_update_non_numeric_user(self, client, sample_claim):
        response = client.put("/api/claims/42", json={"notes": "x", "user_id": "bob"})
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["Infinity", "NaN"])
    def test_update_non_finite_amount(self, client, sample_claim, amount):
        response = client.put("/api/claims/42", json={"charge_amt": amount, "user_id": 1})
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

        claim = client.get("/api/claims/42")
        assert claim.status_code == 200
        assert claim.json()["data"]["charge_amt"] == 150.0

    def test_update_blank_claim_status(self, client, sample_claim):
        response = client.put("/api/claims/42", json={"claim_status": "", "user_id": 1})
        assert response.status_code == 400
        assert response.json()["error"] == "validation"
        assert client.get("/api/claims/42").json()["data"]["claim_status"] == "Pending"

    def test_update_unknown_claim(self, client, sample_claim):
        response = client.put("/api/claims/999", json={"notes": "x", "user_id": 1})
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_history_empty(self, client, sample_claim):
        assert client.get("/api/claims/42/history").json() == {"success": True, "data": []}


class TestGlobalHistoryRoute:
    def test_paginated(self, client, sample_claim, second_claim):
        for claim_id, note in ((42, "a"), (43, "b"), (42, "c")):
            client.put(f"/api/claims/{claim_id}", json={"notes": note, "user_id": 1})

        body = client.get("/api/claims/history/all", params={"limit": 2}).json()
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        body = client.get("/api/claims/history/all", params={"cpt_id": 9}).json()
        assert [e["claim_id"] for e in body["data"]] == [43]

    def test_limit_bounds(self, client, sample_claim):
        assert client.get("/api/claims/history/all", params={"limit": 0}).status_code == 422
        assert client.get("/api/claims/history/all", params={"page": 0}).status_code == 422

    def test_bad_date(self, client, sample_claim):
        response = client.get("/api/claims/history/all", params={"start_date": "soon"})
        assert response.status_code == 400
