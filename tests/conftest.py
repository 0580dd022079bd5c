import pytest

from src.dashboard.activity_log import ActivityLog
from src.dashboard.client import DashboardApiClient
from src.dashboard.config import DashboardConfig
from tests.mocks.dashboard_api import DashboardAPIMock


@pytest.fixture
def api() -> DashboardAPIMock:
    return DashboardAPIMock()


@pytest.fixture
def client(api: DashboardAPIMock) -> DashboardApiClient:
    return DashboardApiClient(
        api.base_url,
        api.token,
        retry_attempts=2,
        retry_wait=0,
        transport=api.transport,
    )


@pytest.fixture
def activity_log() -> ActivityLog:
    return ActivityLog()


@pytest.fixture
def config(api: DashboardAPIMock) -> DashboardConfig:
    return DashboardConfig(
        api_url=api.base_url,
        api_token=api.token,
        request_retry_attempts=1,
        refetch_delay_seconds=0.01,
        _env_file=None,
    )
