"""Claim state manager with optimistic updates.

Each update moves through Idle -> Optimistic -> Committed | RolledBack:

1. the partial change is merged into every local copy of the claim
   (current claim, loaded list, search results) before the request is sent
2. on success the server's row replaces the optimistic guess
3. on failure the claim is re-fetched and the fetched row replaces the
   guess; if the re-fetch also fails the pre-update snapshot is restored

Only one update per claim may be in flight. `dispose()` cancels in-flight
updates and any response arriving afterwards is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from claimdesk.errors import NotFoundError, UpdateInProgressError, ValidationError
from claimdesk.models import ClaimRecord, SearchFilters
from claimdesk.utils import normalize_claim_payload

from .api import ClaimAPIClient
from .history import HistoryLoader
from .status import KPISummary, kpi_summary

logger = logging.getLogger(__name__)


class UpdatePhase(str, Enum):
    """Lifecycle of one optimistic update."""

    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ClaimStateManager:
    """Holds the claims a UI is showing and reconciles edits with the API."""

    def __init__(
        self,
        client: ClaimAPIClient,
        user_id: int | None = None,
        username: str | None = None,
        history: HistoryLoader | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.username = username
        self.history = history
        self._clock = clock

        self.claims: list[ClaimRecord] = []
        self.search_results: list[ClaimRecord] = []
        self.current_claim: ClaimRecord | None = None
        self.error: str | None = None
        self.is_loading = False

        self._phases: dict[int, UpdatePhase] = {}
        self._in_flight: dict[int, asyncio.Task] = {}
        self._disposed = False

    def phase(self, claim_id: int) -> UpdatePhase:
        return self._phases.get(claim_id, UpdatePhase.IDLE)

    def is_updating(self, claim_id: int) -> bool:
        return claim_id in self._in_flight

    async def load_initial(self) -> list[ClaimRecord]:
        """Load the unfiltered claim list."""
        self.is_loading = True
        self.error = None
        try:
            result = await self.client.list()
        finally:
            self.is_loading = False
        if self._disposed:
            return []

        if result.success:
            self.claims = list(result.data)
        else:
            self.error = result.message or "Failed to fetch claims"
        return self.claims

    async def search(self, filters: SearchFilters) -> list[ClaimRecord]:
        """Run a claim search. No match is an empty list, not an error."""
        self.is_loading = True
        self.error = None
        try:
            result = await self.client.list(filters)
        finally:
            self.is_loading = False
        if self._disposed:
            return []

        if result.success:
            self.search_results = list(result.data)
        else:
            self.search_results = []
            self.error = result.message or "Failed to search claims"
        return self.search_results

    async def get_claim(self, claim_id: int) -> ClaimRecord | None:
        """Fetch a claim and make it the current claim."""
        self.is_loading = True
        self.error = None
        try:
            result = await self.client.get(claim_id)
        finally:
            self.is_loading = False
        if self._disposed:
            return None

        if result.success:
            self.current_claim = result.data
            return self.current_claim
        self.error = result.message or f"Failed to fetch claim with ID: {claim_id}"
        return None

    async def update_claim(
        self, changes: dict[str, Any], claim_id: int | None = None
    ) -> ClaimRecord | None:
        """Apply `changes` optimistically and reconcile with the server.

        Args:
            changes: Partial claim (form values are normalized first)
            claim_id: Claim to update, defaults to the current claim

        Returns:
            The server's row, or None when the manager was disposed mid-flight

        Raises:
            ValidationError: No claim selected or the claim is not loaded
            UpdateInProgressError: An update for this claim is still pending
            ClaimDeskError: The update failed; local state was rolled back
        """
        if claim_id is None:
            if self.current_claim is None:
                raise ValidationError("No current claim selected to update")
            claim_id = self.current_claim.id
        if claim_id in self._in_flight:
            raise UpdateInProgressError(f"An update for claim {claim_id} is already in progress", claim_id)

        snapshot = self._find(claim_id)
        if snapshot is None:
            raise ValidationError(f"Claim {claim_id} is not loaded", claim_id)

        self.error = None
        self._apply(snapshot.merged(normalize_claim_payload(changes)))
        self._phases[claim_id] = UpdatePhase.OPTIMISTIC

        task = asyncio.ensure_future(
            self.client.update(claim_id, changes, user_id=self.user_id, username=self.username)
        )
        self._in_flight[claim_id] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._disposed:
                logger.debug(f"Update of claim {claim_id} cancelled on dispose")
                return None
            raise
        finally:
            self._in_flight.pop(claim_id, None)

        if self._disposed:
            return None

        if result.success:
            self._apply(result.data)
            self._phases[claim_id] = UpdatePhase.COMMITTED
            if self.history is not None:
                self.history.invalidate(claim_id)
            return result.data

        self.error = result.message or "Failed to update claim in database"
        logger.warning(f"Rolling back claim {claim_id}: {self.error}")
        await self._rollback(claim_id, snapshot)
        raise result.to_error(claim_id)

    async def add_note(self, claim_id: int, note: str) -> ClaimRecord | None:
        """Append a timestamped line to the claim's notes."""
        if not note or not note.strip():
            raise ValidationError("Note text is required", claim_id)
        claim = self._find(claim_id)
        if claim is None:
            raise NotFoundError(f"Claim {claim_id} is not loaded", claim_id)

        line = f"[{self._clock():%Y-%m-%d %H:%M}] {note.strip()}"
        notes = f"{claim.notes}\n{line}" if claim.notes else line
        return await self.update_claim({"notes": notes}, claim_id=claim_id)

    def kpi_summary(self) -> KPISummary:
        """Counters over every claim currently held (deduplicated by id)."""
        held: dict[int, ClaimRecord] = {c.id: c for c in self.claims}
        held.update((c.id, c) for c in self.search_results)
        if self.current_claim is not None:
            held[self.current_claim.id] = self.current_claim
        return kpi_summary(held.values())

    def clear_error(self) -> None:
        self.error = None

    def dispose(self) -> None:
        """Cancel in-flight updates; later responses are dropped."""
        self._disposed = True
        for claim_id, task in list(self._in_flight.items()):
            logger.debug(f"Cancelling in-flight update for claim {claim_id}")
            task.cancel()

    async def _rollback(self, claim_id: int, snapshot: ClaimRecord) -> None:
        refetched = await self.client.get(claim_id)
        if self._disposed:
            return
        if refetched.success:
            self._apply(refetched.data)
        else:
            logger.error(f"Re-fetch of claim {claim_id} failed, restoring last known state: {refetched.message}")
            self._apply(snapshot)
        self._phases[claim_id] = UpdatePhase.ROLLED_BACK

    def _find(self, claim_id: int) -> ClaimRecord | None:
        if self.current_claim is not None and self.current_claim.id == claim_id:
            return self.current_claim
        for claim in (*self.claims, *self.search_results):
            if claim.id == claim_id:
                return claim
        return None

    def _apply(self, record: ClaimRecord) -> None:
        """Replace every local copy of the claim with `record`."""
        if self.current_claim is not None and self.current_claim.id == record.id:
            self.current_claim = record
        self.claims = [record if c.id == record.id else c for c in self.claims]
        self.search_results = [record if c.id == record.id else c for c in self.search_results]
