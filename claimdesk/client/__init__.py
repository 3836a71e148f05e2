"""Consumer-side claimdesk client.

- ClaimAPIClient: async REST client with payload normalization and update retry
- ClaimStateManager: optimistic update / commit / rollback over the client
- HistoryLoader: cached, throttled per-claim history
- status_tone / kpi_summary: display helpers
"""

from .api import ApiResult, ClaimAPIClient
from .cache import TTLCache
from .history import HistoryLoader, HistoryView
from .state import ClaimStateManager, UpdatePhase
from .status import KPISummary, kpi_summary, status_tone

__all__ = [
    "ApiResult",
    "ClaimAPIClient",
    "ClaimStateManager",
    "HistoryLoader",
    "HistoryView",
    "KPISummary",
    "TTLCache",
    "UpdatePhase",
    "kpi_summary",
    "status_tone",
]
