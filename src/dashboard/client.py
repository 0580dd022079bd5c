"""Async client for the teacher-prep REST API.

Every endpoint answers with a {"data": ...} envelope. HTTP failures are mapped
onto the error hierarchy in src.dashboard.errors so callers (and tenacity)
can tell retryable failures from permanent ones.
"""

import time
from typing import Any

import httpx
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.dashboard.config import DashboardConfig
from src.dashboard.errors import (
    AuthenticationError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from src.dashboard.logging import get_logger
from src.dashboard.models import DashboardStats, SyncFlags

logger = get_logger(__name__)

SYNC_PATH = "/dashboard/sync"
NO_MOCK_DATA_HEADER = "X-No-Mock-Data"


def _raise_for_status(response: httpx.Response) -> None:
    """Translate an HTTP error status into a DashboardError."""
    status = response.status_code
    if status < 400:
        return
    try:
        message = response.json().get("message") or response.reason_phrase
    except (ValueError, AttributeError):
        message = response.reason_phrase
    where = f"{response.request.method} {response.request.url.path}"

    if status == 401:
        raise AuthenticationError(f"{where}: {message}", status_code=status)
    if status == 429:
        raise RateLimitError(f"{where}: rate limited")
    if status >= 500:
        raise TransientError(f"{where}: {status} {message}")
    raise PermanentError(f"{where}: {status} {message}", status_code=status)


def _decode(response: httpx.Response, where: str) -> Any:
    """Parse a response body and strip the {"data": ...} envelope."""
    if not response.content:
        return None
    try:
        payload = response.json()
    except ValueError as e:
        raise PermanentError(
            f"{where}: response is not JSON", status_code=response.status_code
        ) from e
    return _unwrap(payload)


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class DashboardApiClient:
    """Thin async wrapper over the REST endpoints the dashboard reads and writes.

    Args:
        base_url: API root, e.g. "http://localhost:5000/api".
        token: Bearer token; omitted from headers when empty.
        timeout: Per-request timeout in seconds.
        retry_attempts: Attempts per call for TransientError failures.
        retry_wait: Base of the exponential backoff between attempts.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout: float = 15.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self._transport = transport
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: DashboardConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DashboardApiClient":
        return cls(
            config.api_url,
            config.api_token,
            timeout=config.request_timeout_seconds,
            retry_attempts=config.request_retry_attempts,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def __aenter__(self) -> "DashboardApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _send(
        self, method: str, path: str, json: Any = None, params: dict | None = None
    ) -> Any:
        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransientError(f"{method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientError(f"{method} {path} failed: {e}") from e
        except httpx.DecodingError as e:
            raise PermanentError(f"{method} {path}: undecodable body: {e}") from e

        _raise_for_status(response)
        return _decode(response, f"{method} {path}")

    async def request(
        self, method: str, path: str, json: Any = None, params: dict | None = None
    ) -> Any:
        """Send a request, retrying TransientError with exponential backoff.

        Returns:
            The "data" member of the response envelope (or the raw body).

        Raises:
            PermanentError: 4xx responses (AuthenticationError for 401).
            TransientError: Network failures and 5xx once retries are exhausted.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=10),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "api_request_retry",
                        method=method,
                        path=path,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self._send(method, path, json=json, params=params)

    async def _get_list(self, path: str) -> list[dict]:
        data = await self.request("GET", path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise PermanentError(f"GET {path}: expected a list, got {type(data).__name__}")
        return data

    # ------------------------------------------------------------------
    # Record stores
    # ------------------------------------------------------------------
    async def get_lesson_plans(self) -> list[dict]:
        return await self._get_list("/lesson-plans")

    async def get_assignments(self) -> list[dict]:
        return await self._get_list("/assignments")

    async def get_resources(self) -> list[dict]:
        return await self._get_list("/resources")

    async def get_calendar_events(self) -> list[dict]:
        return await self._get_list("/calendar")

    async def get_calendar_event(self, event_id: str) -> dict:
        return await self.request("GET", f"/calendar/{event_id}")

    async def create_calendar_event(self, event: dict) -> dict:
        return await self.request("POST", "/calendar", json=event)

    async def update_calendar_event(self, event_id: str, event: dict) -> dict:
        return await self.request("PUT", f"/calendar/{event_id}", json=event)

    async def delete_calendar_event(self, event_id: str) -> None:
        await self.request("DELETE", f"/calendar/{event_id}")

    async def delete_record(self, collection: str, record_id: str) -> None:
        """Delete one record from a store, e.g. ("/lesson-plans", "42")."""
        await self.request("DELETE", f"{collection}/{record_id}")

    # ------------------------------------------------------------------
    # Dashboard statistics
    # ------------------------------------------------------------------
    async def get_stats(self) -> DashboardStats:
        data = await self.request("GET", "/dashboard")
        try:
            return DashboardStats.model_validate(data or {})
        except ValidationError as e:
            raise PermanentError(f"GET /dashboard: unexpected stats payload: {e}") from e

    async def update_stat(self, key: str, value: int) -> None:
        await self.request("PUT", f"/dashboard/{key}", json={"value": value})

    async def increment_stat(self, key: str, by: int = 1) -> None:
        await self.request("PUT", f"/dashboard/{key}/increment", json={"incrementBy": by})

    async def reset_stats(self) -> None:
        """Zero every counter: a forceReset sync, then an explicit write per stat."""
        await self.request("PUT", SYNC_PATH, json={"forceReset": True})
        for key in DashboardStats.model_fields:
            await self.update_stat(to_camel(key), 0)

    async def sync_stats(self, flags: SyncFlags | None = None) -> Any:
        """Ask the backend to recompute its statistics (standard client path)."""
        flags = flags or SyncFlags()
        return await self.request("PUT", SYNC_PATH, json=flags.model_dump(by_alias=True))

    async def direct_sync(self, flags: SyncFlags | None = None) -> Any:
        """Hit the sync endpoint on a fresh connection, bypassing retries.

        The body carries a millisecond timestamp so no intermediary can serve
        a cached answer, and the X-No-Mock-Data header is set alongside the
        body flags.
        """
        flags = flags or SyncFlags()
        body = {**flags.model_dump(by_alias=True), "timestamp": int(time.time() * 1000)}
        headers = {**self._headers(), NO_MOCK_DATA_HEADER: "true"}
        url = f"{self.base_url}{SYNC_PATH}"

        # An injected transport is shared with self._http and must stay open
        direct = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        try:
            response = await direct.put(url, json=body, headers=headers)
        except httpx.TransportError as e:
            raise TransientError(f"PUT {SYNC_PATH} (direct) failed: {e}") from e
        except httpx.DecodingError as e:
            raise PermanentError(f"PUT {SYNC_PATH} (direct): undecodable body: {e}") from e
        finally:
            if self._transport is None:
                await direct.aclose()
        _raise_for_status(response)
        logger.debug("direct_sync_response", status=response.status_code)
        return _decode(response, f"PUT {SYNC_PATH} (direct)")
