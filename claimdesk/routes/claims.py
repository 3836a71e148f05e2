"""Claim routes.

Provides endpoints for:
- Searching claims by patient, CPT and date of service
- Reading and partially updating a single claim
- Per-claim and global change history

Every response uses the `{success, data, message?}` envelope. Failures are
raised as `ClaimDeskError` subclasses and rendered by the app-level handler.

Security Note:
    Like the rest of the API, these routes trust the `user_id` supplied in
    the update body. Put the API behind an authenticating proxy before
    exposing it beyond the billing office network.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query

from claimdesk.config import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from claimdesk.errors import ValidationError
from claimdesk.fields import CLAIM_STATUS_OPTIONS, USER_FIELDS
from claimdesk.services import ClaimService, HistoryReader
from claimdesk.storage import get_engine

router = APIRouter(prefix="/api/claims", tags=["claims"])


@router.get("")
async def search_claims(
    patient_id: str | None = Query(None, description="Filter by patient id"),
    cpt_id: str | None = Query(None, description="Filter by CPT id"),
    service_end: str | None = Query(None, description="Filter by date of service"),
):
    """Search claims, newest date of service first."""
    rows = ClaimService(get_engine()).search(
        patient_id=patient_id, cpt_id=cpt_id, service_end=service_end
    )
    return {"success": True, "data": rows}


@router.get("/statuses")
async def list_claim_statuses():
    """Claim status options offered by the editor."""
    return {"success": True, "data": list(CLAIM_STATUS_OPTIONS)}


# Declared before /{claim_id} so "history" is not parsed as a claim id
@router.get("/history/all")
async def list_all_history(
    user_id: int | None = Query(None, description="Filter by acting user"),
    cpt_id: int | None = Query(None, description="Filter by the claim's CPT id"),
    start_date: str | None = Query(None, description="First day (inclusive)"),
    end_date: str | None = Query(None, description="Last day (inclusive)"),
    page: int = Query(1, ge=1),
    limit: int = Query(HISTORY_DEFAULT_LIMIT, ge=1, le=HISTORY_MAX_LIMIT),
):
    """Global change history with filters and pagination, newest first."""
    entries, pagination = HistoryReader(get_engine()).all(
        user_id=user_id,
        cpt_id=cpt_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": entries, "pagination": pagination}


@router.get("/{claim_id}")
async def get_claim(claim_id: int):
    """Get a single claim by id."""
    return {"success": True, "data": ClaimService(get_engine()).get(claim_id)}


@router.put("/{claim_id}")
async def update_claim(claim_id: int, payload: dict[str, Any] = Body(...)):
    """Apply a partial update to a claim.

    The body is a partial claim plus the acting `user_id` and `username`.
    Unknown and legacy field names are ignored. Every changed field is
    recorded in the change log in the same transaction.
    """
    changes = dict(payload)
    user_id, username = (changes.pop(name, None) for name in USER_FIELDS)

    try:
        acting_user = int(user_id) if user_id not in (None, "") else None
    except (TypeError, ValueError) as e:
        raise ValidationError("user_id must be numeric", claim_id) from e

    updated = ClaimService(get_engine()).update(
        claim_id, changes, user_id=acting_user, username=username
    )
    return {"success": True, "data": updated, "message": "Claim updated"}


@router.get("/{claim_id}/history")
async def get_claim_history(claim_id: int):
    """Change history for one claim, newest first. Empty is not an error."""
    return {"success": True, "data": HistoryReader(get_engine()).for_claim(claim_id)}
