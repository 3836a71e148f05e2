"""Async client for the claimdesk REST API.

Features:
- Uniform `ApiResult(success, data, message)` for every call; callers
  never need to catch transport exceptions
- Outgoing update payloads normalized the same way the server does
- Fixed-delay retry of updates on transient failures (timeout,
  connection error, 5xx); 4xx responses are returned immediately
- Responses deserialized into `ClaimRecord` / `ChangeLogEntry`
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx
from pydantic import BaseModel

from claimdesk.config import (
    API_BASE_URL,
    CLIENT_RETRY_DELAY,
    CLIENT_TIMEOUT,
    CLIENT_UPDATE_RETRIES,
    CLIENT_UPDATE_TIMEOUT,
)
from claimdesk.errors import ClaimDeskError, TransientNetworkError, error_from_type
from claimdesk.fields import USER_FIELDS
from claimdesk.models import ChangeLogEntry, ClaimRecord, HistoryFilters, SearchFilters
from claimdesk.utils import normalize_claim_payload

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


class ApiResult(BaseModel):
    """Outcome of one API call.

    `data` is the deserialized payload on success and the empty value for
    the call (None or []) on failure. `error_type` names the failure kind
    from `claimdesk.errors` when one is known.
    """

    success: bool
    data: Any = None
    message: str | None = None
    error_type: str | None = None
    status_code: int | None = None
    pagination: dict[str, int] | None = None

    def to_error(self, claim_id: int | str | None = None) -> ClaimDeskError:
        """Build the typed error for a failed result."""
        return error_from_type(self.error_type, self.message or "Request failed", claim_id)


class ClaimAPIClient:
    """Claim API client over `httpx.AsyncClient`.

    Args:
        base_url: API root, e.g. http://localhost:8000/api
        timeout: Read request timeout in seconds
        update_timeout: Update request timeout in seconds
        max_retries: Update retries after the first failed attempt
        retry_delay: Fixed delay between update attempts in seconds
        transport: Optional httpx transport (tests, in-process app)
        sleep: Awaitable sleep used between retries
        clock: Wall clock used for the cache-busting marker
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = CLIENT_TIMEOUT,
        update_timeout: float = CLIENT_UPDATE_TIMEOUT,
        max_retries: int = CLIENT_UPDATE_RETRIES,
        retry_delay: float = CLIENT_RETRY_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._update_timeout = update_timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._clock = clock

    async def __aenter__(self) -> "ClaimAPIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list(self, filters: SearchFilters | None = None) -> ApiResult:
        """Search claims. `data` is a list of `ClaimRecord`."""
        params = filters.to_params() if filters else {}
        result = await self._get("claims", params=params, empty=[])
        if result.success:
            result.data = [ClaimRecord.from_api(row) for row in result.data or []]
        return result

    async def get(self, claim_id: int) -> ApiResult:
        """Fetch one claim. `data` is a `ClaimRecord` or None."""
        result = await self._get(f"claims/{claim_id}", empty=None)
        if result.success:
            if result.data:
                result.data = ClaimRecord.from_api(result.data)
            else:
                return ApiResult(
                    success=False,
                    message=f"Claim {claim_id} not found",
                    error_type="not_found",
                    status_code=result.status_code,
                )
        return result

    async def history(self, claim_id: int) -> ApiResult:
        """Change history for one claim. Empty history is a success."""
        result = await self._get(f"claims/{claim_id}/history", empty=[])
        if result.success:
            result.data = [ChangeLogEntry.model_validate(e) for e in result.data or []]
        return result

    async def all_history(self, filters: HistoryFilters | None = None) -> ApiResult:
        """Global change history; `pagination` is set on success."""
        params = filters.to_params() if filters else {}
        result = await self._get("claims/history/all", params=params, empty=[])
        if result.success:
            result.data = [ChangeLogEntry.model_validate(e) for e in result.data or []]
        return result

    async def update(
        self,
        claim_id: int,
        changes: dict[str, Any],
        user_id: int | None = None,
        username: str | None = None,
    ) -> ApiResult:
        """Send a partial update, retrying transient failures.

        Returns:
            ApiResult whose `data` is the server's authoritative `ClaimRecord`
        """
        payload = normalize_claim_payload(changes, keep=USER_FIELDS)
        if user_id is not None:
            payload["user_id"] = user_id
        if username is not None:
            payload["username"] = username

        last_error: Exception | None = None
        last_error_type = TransientNetworkError.error_type

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.put(
                    f"claims/{claim_id}",
                    json=payload,
                    # Cache-busting marker, ignored by the server
                    params={"_t": int(self._clock() * 1000)},
                    headers=NO_CACHE_HEADERS,
                    timeout=self._update_timeout,
                )

                # Check for server errors (retry)
                if response.status_code >= 500:
                    # Keep the server's failure kind for the final result
                    last_error_type = (
                        self._parse(response, empty=None).error_type
                        or TransientNetworkError.error_type
                    )
                    raise TransientNetworkError(
                        f"Server error: {response.status_code}",
                        claim_id,
                        status_code=response.status_code,
                    )

                # Client errors and successes are final
                result = self._parse(response, empty=None)
                if result.success and not isinstance(result.data, dict):
                    result = ApiResult(
                        success=False,
                        message=f"Update of claim {claim_id} returned no claim",
                        status_code=response.status_code,
                    )
                if result.success:
                    result.data = ClaimRecord.from_api(result.data)
                    logger.info(f"Claim {claim_id} updated on attempt {attempt + 1}")
                else:
                    logger.warning(f"Update of claim {claim_id} rejected: {result.message}")
                return result

            except TransientNetworkError as e:
                last_error = e
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                last_error = e
                last_error_type = TransientNetworkError.error_type

            if attempt < self._max_retries:
                logger.warning(
                    f"Update of claim {claim_id} failed, retrying in {self._retry_delay}s "
                    f"({attempt + 1}/{self._max_retries}): {last_error}"
                )
                await self._sleep(self._retry_delay)

        logger.error(
            f"Update of claim {claim_id} failed after {self._max_retries + 1} attempts: {last_error}"
        )
        return ApiResult(
            success=False,
            message=f"Failed to update claim {claim_id}: {last_error}",
            error_type=last_error_type,
            status_code=getattr(last_error, "http_status", None),
        )

    async def _get(self, path: str, params: dict[str, Any] | None = None, empty: Any = None) -> ApiResult:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.error(f"GET {path} failed: {e}")
            return ApiResult(
                success=False,
                data=empty,
                message=f"Network error: {e}",
                error_type=TransientNetworkError.error_type,
            )
        return self._parse(response, empty)

    @staticmethod
    def _parse(response: httpx.Response, empty: Any) -> ApiResult:
        """Turn an HTTP response into an ApiResult."""
        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response from {response.request.url} (HTTP {response.status_code})")
            body = None

        if not isinstance(body, dict):
            return ApiResult(
                success=False,
                data=empty,
                message=f"Unexpected response (HTTP {response.status_code})",
                error_type=TransientNetworkError.error_type if response.status_code >= 500 else None,
                status_code=response.status_code,
            )

        if response.is_success and body.get("success", True):
            data = body.get("data")
            return ApiResult(
                success=True,
                data=empty if data is None else data,
                message=body.get("message"),
                status_code=response.status_code,
                pagination=body.get("pagination"),
            )

        message = body.get("message") or body.get("detail")
        error_type = body.get("error")
        if error_type is None and response.status_code >= 500:
            error_type = TransientNetworkError.error_type
        return ApiResult(
            success=False,
            data=empty,
            message=str(message) if message else f"HTTP {response.status_code}",
            error_type=error_type,
            status_code=response.status_code,
        )
