"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from datetime import date
from typing import Any
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from claimdesk.storage import claims, get_engine, init_db, reset_engines

SAMPLE_CLAIM_ID = 42


@pytest.fixture
def db_url(tmp_path):
    """Point the app at a fresh SQLite file for one test."""
    url = f"sqlite:///{tmp_path / 'claimdesk-test.db'}"
    with patch.dict(os.environ, {"DATABASE_URL": url}):
        # No bootstrap admin unless a test asks for one
        os.environ.pop("ADMIN_EMAIL", None)
        os.environ.pop("ADMIN_PASSWORD", None)
        reset_engines()
        yield url
        reset_engines()


@pytest.fixture
def engine(db_url):
    """Engine with the schema created."""
    engine = get_engine(db_url)
    init_db(engine)
    return engine


@pytest.fixture
def sample_claim(engine) -> dict[str, Any]:
    """Insert claim 42 (charge_amt 150.00) and return its stored values."""
    row = {
        "id": SAMPLE_CLAIM_ID,
        "patient_id": 1001,
        "patient_emr_no": "EMR001001",
        "first_name": "Jane",
        "last_name": "Doe",
        "date_of_birth": date(1980, 5, 17),
        "cpt_id": 7,
        "cpt_code": "99213",
        "provider_name": "Dr. Patel",
        "units": 1,
        "service_start": date(2025, 3, 4),
        "service_end": date(2025, 3, 4),
        "claim_status": "Pending",
        "oa_visit_id": "V0042",
        "charge_dt": date(2025, 3, 5),
        "charge_amt": 150.00,
        "allowed_amt": 95.50,
        "prim_ins": "Medicare",
    }
    with engine.begin() as conn:
        conn.execute(claims.insert().values(row))
    return row


@pytest.fixture
def second_claim(engine) -> dict[str, Any]:
    """A second patient's claim with an earlier date of service."""
    row = {
        "id": 43,
        "patient_id": 2002,
        "first_name": "John",
        "last_name": "Roe",
        "cpt_id": 9,
        "cpt_code": "97110",
        "service_start": date(2025, 1, 10),
        "service_end": date(2025, 1, 10),
        "claim_status": "Insurance Paid",
        "charge_amt": 95.00,
        "prim_post_dt": date(2025, 2, 1),
        "prim_chk_det": "CHK100200",
    }
    with engine.begin() as conn:
        conn.execute(claims.insert().values(row))
    return row


@pytest.fixture
def client(engine):
    """Test client for the API against the temporary database."""
    from claimdesk.app import app
    from claimdesk.routes import limiter

    limiter.reset()
    with TestClient(app) as client:
        yield client
