"""History reader for the claim change log.

Change-log rows are written only by `ClaimService.update`; this module
only reads them, newest first. An empty result is a successful read.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, time, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from claimdesk.config import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from claimdesk.errors import PersistenceError, ValidationError
from claimdesk.storage import claim_change_log, claims
from claimdesk.utils import parse_flexible_date

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = [
    claim_change_log.c.id,
    claim_change_log.c.claim_id,
    claim_change_log.c.user_id,
    claim_change_log.c.username,
    claim_change_log.c.field_name,
    claim_change_log.c.old_value,
    claim_change_log.c.new_value,
    claim_change_log.c.changed_at,
    claims.c.patient_id,
    claims.c.first_name,
    claims.c.last_name,
    claims.c.cpt_code,
]

_NEWEST_FIRST = (claim_change_log.c.changed_at.desc(), claim_change_log.c.id.desc())


def _serialize_entry(row: Any) -> dict[str, Any]:
    entry = dict(row._mapping)
    changed_at = entry.get("changed_at")
    if isinstance(changed_at, datetime):
        entry["changed_at"] = changed_at.isoformat()
    return entry


def _day_bound(value: str, name: str) -> datetime:
    parsed = parse_flexible_date(value)
    if parsed is None:
        raise ValidationError(f"Invalid {name}: {value}")
    return datetime.combine(parsed, time.min)


class HistoryReader:
    """Read access to the change log."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def for_claim(self, claim_id: int) -> list[dict[str, Any]]:
        """All change-log entries for one claim, newest first."""
        query = (
            select(*_ENTRY_COLUMNS)
            .select_from(claim_change_log.join(claims, claims.c.id == claim_change_log.c.claim_id))
            .where(claim_change_log.c.claim_id == claim_id)
            .order_by(*_NEWEST_FIRST)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read history for claim {claim_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read history for claim {claim_id}", claim_id) from e

        return [_serialize_entry(row) for row in rows]

    def all(
        self,
        user_id: int | None = None,
        cpt_id: int | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        page: int = 1,
        limit: int = HISTORY_DEFAULT_LIMIT,
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        """Global change history with filters and pagination.

        Date bounds are inclusive calendar days on the change timestamp.

        Returns:
            (entries, pagination) where pagination has page, limit, total, pages
        """
        page = max(page, 1)
        limit = min(max(limit, 1), HISTORY_MAX_LIMIT)

        conditions = []
        if user_id is not None:
            conditions.append(claim_change_log.c.user_id == user_id)
        if cpt_id is not None:
            conditions.append(claims.c.cpt_id == cpt_id)
        if start_date:
            conditions.append(claim_change_log.c.changed_at >= _day_bound(start_date, "start_date"))
        if end_date:
            upper = _day_bound(end_date, "end_date") + timedelta(days=1)
            conditions.append(claim_change_log.c.changed_at < upper)

        joined = claim_change_log.join(claims, claims.c.id == claim_change_log.c.claim_id)
        count_query = select(func.count()).select_from(joined).where(*conditions)
        page_query = (
            select(*_ENTRY_COLUMNS)
            .select_from(joined)
            .where(*conditions)
            .order_by(*_NEWEST_FIRST)
            .limit(limit)
            .offset((page - 1) * limit)
        )

        try:
            with self.engine.connect() as conn:
                total = conn.execute(count_query).scalar_one()
                rows = conn.execute(page_query).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read change history: {e}", exc_info=True)
            raise PersistenceError("Failed to read change history") from e

        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        }
        return [_serialize_entry(row) for row in rows], pagination
