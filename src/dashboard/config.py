"""Dashboard configuration loaded from environment variables.

Only the knobs the activity/progress engine needs: where the REST API
lives, how hard to retry it, and how much of each source to show.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class DashboardConfig(BaseSettings):
    """Dashboard configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # REST API
    api_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the teacher-prep REST API",
    )
    api_token: str = Field(
        default="",
        description="Bearer token sent with every API request",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        description="Per-request timeout for API calls",
    )
    request_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per API call before a transient failure is reported",
    )

    # Activity feed
    activity_log_size: int = Field(
        default=50,
        ge=1,
        description="Maximum number of session activities kept in memory",
    )
    lesson_limit: int = Field(
        default=5,
        ge=0,
        description="Lesson plans contributing to the activity feed",
    )
    assignment_limit: int = Field(
        default=10,
        ge=0,
        description="Assignments contributing to the activity feed",
    )
    resource_limit: int = Field(
        default=3,
        ge=0,
        description="Resources contributing to the activity feed",
    )
    calendar_limit: int = Field(
        default=3,
        ge=0,
        description="Non-deadline calendar events contributing to the activity feed",
    )

    # Sync
    refetch_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the follow-up deadline fetch after a force sync",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "DASHBOARD_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: DashboardConfig | None = None


def get_config() -> DashboardConfig:
    """Get the dashboard configuration singleton.

    Returns:
        DashboardConfig: Dashboard configuration instance
    """
    global _config
    if _config is None:
        _config = DashboardConfig()
    return _config
