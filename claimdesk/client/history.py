"""Per-claim history loading with caching and refetch throttling.

A successful load (including an empty one) is cached for the TTL.
Unforced loads within the throttle window of the previous fetch are
served from whatever was last loaded instead of hitting the API again.
`HistoryView.error` is only set for real failures so callers can render
an empty state for claims that were never edited.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from claimdesk.config import HISTORY_CACHE_TTL, HISTORY_THROTTLE
from claimdesk.models import ChangeLogEntry

from .api import ClaimAPIClient
from .cache import TTLCache

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Unable to load history right now. Please try again later."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


@dataclass
class HistoryView:
    """What a history panel renders: entries, or an error banner."""

    entries: list[ChangeLogEntry] = field(default_factory=list)
    error: str | None = None
    from_cache: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.entries and self.error is None


class HistoryLoader:
    """Loads change history for claims through a shared TTL cache."""

    def __init__(
        self,
        client: ClaimAPIClient,
        cache: TTLCache | None = None,
        throttle: float = HISTORY_THROTTLE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.cache = cache or TTLCache(HISTORY_CACHE_TTL, clock=clock)
        self.throttle = throttle
        self._clock = clock
        self._last_fetch: dict[int, float] = {}
        self._last_view: dict[int, HistoryView] = {}

    async def load(self, claim_id: int, force: bool = False) -> HistoryView:
        """Return the history view for a claim.

        Args:
            claim_id: Claim to load
            force: Bypass both the cache and the throttle
        """
        if not force:
            cached = self.cache.get(claim_id)
            if cached is not None:
                return HistoryView(entries=list(cached), from_cache=True)

            last = self._last_fetch.get(claim_id)
            if last is not None and self._clock() - last < self.throttle:
                logger.debug(f"History fetch for claim {claim_id} throttled")
                return self._last_view.get(claim_id, HistoryView())

        self._last_fetch[claim_id] = self._clock()
        result = await self.client.history(claim_id)

        if result.success:
            view = HistoryView(entries=list(result.data))
            self.cache.set(claim_id, view.entries)
        else:
            logger.warning(f"History load for claim {claim_id} failed: {result.message}")
            message = NETWORK_ERROR_MESSAGE if result.status_code is None else SERVER_ERROR_MESSAGE
            view = HistoryView(error=message)

        self._last_view[claim_id] = view
        return view

    def invalidate(self, claim_id: int) -> None:
        """Forget cached history for a claim (after a committed update)."""
        self.cache.invalidate(claim_id)
        self._last_fetch.pop(claim_id, None)
        self._last_view.pop(claim_id, None)
