"""Services over the claims store.

- ClaimService: claim reads and field-level updates with change logging
- HistoryReader: per-claim and global change history
- UserService: user accounts and credential checks
"""

from .claims import ClaimService, serialize_claim
from .history import HistoryReader
from .users import UserService

__all__ = ["ClaimService", "HistoryReader", "UserService", "serialize_claim"]
