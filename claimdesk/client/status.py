"""Claim status tones and KPI summary for list and summary views."""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel

from claimdesk.models import ClaimRecord

SUCCESS_STATUSES = frozenset({"Insurance Paid", "Claim not filed", "Posted"})
ERROR_STATUSES = frozenset(
    {
        "Prim Denied",
        "Sec Denied. Prim Paid more than Allowed amt",
        "Patient Deceased",
        "Rejected",
    }
)
WARNING_STATUSES = frozenset(
    {"Prim Pymt Pending", "Sec Pymt Pending", "Claim not received from HBox", "Pending"}
)


def status_tone(status: str | None) -> str:
    """Map a claim status to a display tone.

    Returns one of success, error, warning, info, or neutral (no status).
    Unknown statuses are accepted and shown as info.
    """
    if not status:
        return "neutral"
    if status in SUCCESS_STATUSES:
        return "success"
    if status in ERROR_STATUSES:
        return "error"
    if status in WARNING_STATUSES:
        return "warning"
    return "info"


class KPISummary(BaseModel):
    total_check_numbers: int = 0
    total_visit_ids: int = 0
    posted_visit_ids: int = 0
    pending_posting: int = 0


def kpi_summary(claims: Iterable[ClaimRecord]) -> KPISummary:
    """Summarize loaded claims for the dashboard counters.

    A visit counts as posted when a primary or secondary post date is set.
    """
    check_numbers: set[str] = set()
    visits: set[str] = set()
    posted: set[str] = set()

    for claim in claims:
        if claim.check_number:
            check_numbers.add(claim.check_number)
        visits.add(claim.visit_id)
        if claim.prim_post_dt or claim.sec_post_dt:
            posted.add(claim.visit_id)

    return KPISummary(
        total_check_numbers=len(check_numbers),
        total_visit_ids=len(visits),
        posted_visit_ids=len(posted),
        pending_posting=len(visits) - len(posted),
    )
