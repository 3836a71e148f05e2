"""Error taxonomy shared by the claim service, the REST layer and the client."""

from __future__ import annotations


class ClaimDeskError(Exception):
    """Base exception for claimdesk errors."""

    error_type = "error"
    status_code = 500

    def __init__(self, message: str, claim_id: int | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.claim_id = claim_id


class ValidationError(ClaimDeskError):
    """Missing or malformed required fields. Not retried."""

    error_type = "validation"
    status_code = 400


class NotFoundError(ClaimDeskError):
    """Unknown claim (or user) id. Not retried."""

    error_type = "not_found"
    status_code = 404


class PersistenceError(ClaimDeskError):
    """The store rejected a write; nothing was committed."""

    error_type = "persistence"
    status_code = 500


class TransientNetworkError(ClaimDeskError):
    """Timeout, connection reset or 5xx response. Retried by the client."""

    error_type = "transient"
    status_code = 503

    def __init__(
        self,
        message: str,
        claim_id: int | str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, claim_id)
        self.http_status = status_code


class UpdateInProgressError(ClaimDeskError):
    """A second update was requested while one is in flight for the claim."""

    error_type = "conflict"
    status_code = 409


ERROR_TYPES: dict[str, type[ClaimDeskError]] = {
    cls.error_type: cls
    for cls in (
        ValidationError,
        NotFoundError,
        PersistenceError,
        TransientNetworkError,
        UpdateInProgressError,
    )
}


def error_from_type(
    error_type: str | None, message: str, claim_id: int | str | None = None
) -> ClaimDeskError:
    """Rebuild a typed error from the `error` field of an API envelope."""
    cls = ERROR_TYPES.get(error_type or "", ClaimDeskError)
    return cls(message, claim_id)
