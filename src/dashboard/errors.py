"""Error hierarchy for dashboard data sources and write-backs.

Transport failures are split into transient (retry) and permanent (don't
retry) so tenacity decorators on the API client can classify them
automatically. The domain errors below describe how a failure is absorbed:
per-source failures degrade the feed, only a total outage propagates.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def get_calendar_events():
        ...
"""


class DashboardError(Exception):
    """Base exception for all dashboard errors."""

    pass


class TransientError(DashboardError):
    """Temporary failure that may succeed on retry.

    Examples: connection resets, timeouts, 502/503/504 from the API.
    """

    pass


class RateLimitError(TransientError):
    """API answered 429 - needs longer backoff."""

    pass


class PermanentError(DashboardError):
    """Failure that won't succeed on retry.

    Examples: 404 for a deleted calendar event, 422 validation errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PermanentError):
    """Token missing, expired or rejected (401)."""

    pass


class SourceUnavailable(DashboardError):
    """One source adapter could not fetch its records.

    Non-fatal: the adapter contributes nothing and the rest of the feed
    is still returned.
    """

    def __init__(self, source: str, cause: BaseException) -> None:
        super().__init__(f"{source} source unavailable: {cause}")
        self.source = source
        self.cause = cause


class AllSourcesFailed(DashboardError):
    """Every source adapter failed during one aggregation run."""

    def __init__(self, failures: list[SourceUnavailable]) -> None:
        names = ", ".join(f.source for f in failures)
        super().__init__(f"All activity sources failed: {names}")
        self.failures = failures


class MalformedRecord(DashboardError):
    """A single external record is missing required fields.

    The record is skipped, the rest of the batch is kept.
    """

    def __init__(self, kind: str, record_id: str | None, reason: str) -> None:
        super().__init__(f"Malformed {kind} record {record_id!r}: {reason}")
        self.kind = kind
        self.record_id = record_id
        self.reason = reason


class SyncWriteFailed(DashboardError):
    """A statistic update or sync request could not be written."""

    pass
