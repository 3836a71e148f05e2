"""Claim service: reads and field-level updates with change logging.

The update path is the one piece of designed behavior in the backend:

1. normalize the partial payload (numeric coercion, date normalization,
   non-canonical names stripped)
2. validate required fields and value types
3. inside one transaction: read the stored row, diff each targeted field,
   write the changed columns, insert one change-log row per changed field
4. return the full updated row

Either the row update and all of its change-log rows commit together or
nothing does.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from claimdesk.config import SEARCH_MAX_ROWS
from claimdesk.errors import NotFoundError, PersistenceError, ValidationError
from claimdesk.fields import (
    ALL_DATE_FIELDS,
    INTEGER_FIELDS,
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
)
from claimdesk.models import iso_date
from claimdesk.storage import claim_change_log, claims
from claimdesk.utils import (
    normalize_claim_payload,
    parse_flexible_date,
    to_log_text,
    values_equal,
)

logger = logging.getLogger(__name__)


def serialize_claim(row: Any) -> dict[str, Any]:
    """Convert a claims row to a JSON-ready dict (dates as YYYY-MM-DD)."""
    record = dict(row._mapping)
    for field_name in ALL_DATE_FIELDS:
        record[field_name] = iso_date(record.get(field_name))
    return record


def _bind_value(field_name: str, value: Any) -> Any:
    """Convert a normalized value to the Python type the column expects.

    Canonical date strings become `date` objects; anything else is passed
    through so the store rejects it rather than us silently dropping it.
    """
    if field_name in ALL_DATE_FIELDS and isinstance(value, str):
        parsed = parse_flexible_date(value)
        if parsed is not None and parsed.isoformat() == value:
            return parsed
    return value


class ClaimService:
    """Reads and updates claims against the relational store."""

    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.engine = engine
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get(self, claim_id: int) -> dict[str, Any]:
        """Fetch a single claim.

        Raises:
            NotFoundError: If the claim id does not exist
            PersistenceError: On storage failure
        """
        try:
            with self.engine.connect() as conn:
                row = self._fetch_row(conn, claim_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read claim {claim_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read claim {claim_id}", claim_id) from e

        if row is None:
            raise NotFoundError(f"Claim {claim_id} not found", claim_id)
        return serialize_claim(row)

    def search(
        self,
        patient_id: int | str | None = None,
        cpt_id: int | str | None = None,
        service_end: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search claims by patient, CPT and date of service.

        Unparseable filter values raise ValidationError. No match is an
        empty list.
        """
        query = select(claims)

        if patient_id not in (None, ""):
            query = query.where(claims.c.patient_id == self._filter_int("patient_id", patient_id))
        if cpt_id not in (None, ""):
            query = query.where(claims.c.cpt_id == self._filter_int("cpt_id", cpt_id))
        if service_end:
            parsed = parse_flexible_date(service_end)
            if parsed is None:
                raise ValidationError(f"Invalid service_end date: {service_end}")
            query = query.where(claims.c.service_end == parsed)

        query = query.order_by(claims.c.service_end.desc(), claims.c.id.desc()).limit(
            SEARCH_MAX_ROWS
        )

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Claim search failed: {e}", exc_info=True)
            raise PersistenceError("Claim search failed") from e

        return [serialize_claim(row) for row in rows]

    def update(
        self,
        claim_id: int | None,
        changes: dict[str, Any],
        user_id: int | None,
        username: str | None = None,
    ) -> dict[str, Any]:
        """Apply a partial update and log every changed field.

        Args:
            claim_id: Claim to update
            changes: Partial claim; unknown and legacy names are ignored
            user_id: Acting user id (required)
            username: Acting user display name

        Returns:
            The full updated claim row

        Raises:
            ValidationError: Missing claim id or acting user, a blanked
                required field, or a non-numeric value for a numeric field
            NotFoundError: If the claim id does not exist
            PersistenceError: On storage failure (nothing committed)
        """
        if claim_id is None:
            raise ValidationError("Claim id is required")
        if user_id in (None, ""):
            raise ValidationError("user_id is required to record the change", claim_id)

        normalized = normalize_claim_payload(changes, canonical_only=True)
        self._validate(claim_id, normalized)

        changed_at = self._clock()
        try:
            with self.engine.begin() as conn:
                current = self._fetch_row(conn, claim_id, for_update=True)
                if current is None:
                    raise NotFoundError(f"Claim {claim_id} not found", claim_id)

                stored = current._mapping
                diff = {
                    field_name: (stored[field_name], value)
                    for field_name, value in normalized.items()
                    if not values_equal(field_name, stored[field_name], value)
                }

                if diff:
                    conn.execute(
                        claims.update()
                        .where(claims.c.id == claim_id)
                        .values(
                            {
                                field_name: _bind_value(field_name, new)
                                for field_name, (_, new) in diff.items()
                            }
                        )
                    )
                    conn.execute(
                        claim_change_log.insert(),
                        [
                            {
                                "claim_id": claim_id,
                                "user_id": int(user_id),
                                "username": username or "System",
                                "field_name": field_name,
                                "old_value": to_log_text(field_name, old),
                                "new_value": to_log_text(field_name, new),
                                "changed_at": changed_at,
                            }
                            for field_name, (old, new) in diff.items()
                        ],
                    )

                updated = self._fetch_row(conn, claim_id)
        except (NotFoundError, ValidationError):
            raise
        except SQLAlchemyError as e:
            logger.error(f"Update of claim {claim_id} failed, rolled back: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update claim {claim_id}", claim_id) from e

        logger.info(
            f"Claim {claim_id} updated by user {user_id}: "
            f"{len(diff)} changed field(s) {sorted(diff)}"
        )
        return serialize_claim(updated)

    def _fetch_row(self, conn: Connection, claim_id: int, for_update: bool = False) -> Any:
        query = select(claims).where(claims.c.id == claim_id)
        if for_update and conn.dialect.name == "postgresql":
            query = query.with_for_update()
        return conn.execute(query).first()

    @staticmethod
    def _filter_int(name: str, value: int | str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{name} must be numeric") from e

    @staticmethod
    def _validate(claim_id: int, normalized: dict[str, Any]) -> None:
        blanked = [
            field_name
            for field_name in REQUIRED_FIELDS
            if field_name in normalized and normalized[field_name] is None
        ]
        if blanked:
            raise ValidationError(
                f"Required fields cannot be empty: {', '.join(blanked)}",
                claim_id,
            )

        for field_name, value in normalized.items():
            if value is None:
                continue
            if field_name in NUMERIC_FIELDS and (
                isinstance(value, bool)
                or not isinstance(value, float)
                or not math.isfinite(value)
            ):
                raise ValidationError(f"{field_name} must be numeric", claim_id)
            if field_name in INTEGER_FIELDS and (
                isinstance(value, bool) or not isinstance(value, int)
            ):
                raise ValidationError(f"{field_name} must be an integer", claim_id)
            if field_name in ALL_DATE_FIELDS and not isinstance(value, (str, date)):
                raise ValidationError(f"{field_name} must be a date", claim_id)
