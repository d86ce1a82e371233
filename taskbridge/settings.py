"""Settings configuration for the chat task bridge."""

from pydantic_settings import BaseSettings
from pydantic import BaseModel, Field, ConfigDict, field_validator
from dotenv import load_dotenv
from typing import Optional, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Load environment variables from .env file
load_dotenv()

ResolutionStrategyName = Literal["mapping", "receiver", "single_active"]


class FeatureFlags(BaseModel):
    """Simple boolean feature flags via environment variables.

    Each flag maps to a FEATURE_FLAGS__<FLAG_NAME> environment variable.
    """

    enable_integrations: bool = Field(default=False, description="Accept LINE webhooks")
    enable_task_extraction: bool = Field(
        default=True, description="Enqueue task extraction for auto-parse groups"
    )
    enable_health_checks: bool = Field(
        default=True, description="Periodic integration health sweep"
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Logfire (Optional)
    logfire_token: Optional[str] = Field(
        default=None, description="Logfire API token from 'logfire auth' (optional)"
    )
    logfire_service_name: str = Field(default="taskbridge", description="Service name in Logfire")
    logfire_environment: str = Field(
        default="development", description="Environment (development, production, etc.)"
    )

    # Database
    database_url: Optional[str] = Field(
        default=None, description="PostgreSQL connection URL (postgresql+asyncpg://...)"
    )
    database_pool_size: int = Field(default=5, ge=1, le=50)
    database_pool_overflow: int = Field(default=10, ge=0, le=100)

    # Redis (Celery broker and notification rate limiting)
    redis_url: Optional[str] = Field(
        default=None, description="Redis connection URL (redis://localhost:6379/0)"
    )
    redis_key_prefix: str = Field(default="tb:", description="Redis key namespace prefix")

    # LINE Messaging API
    public_base_url: Optional[str] = Field(
        default=None, description="Externally reachable base URL used for webhook callbacks"
    )
    line_api_base_url: str = Field(
        default="https://api.line.me", description="LINE Messaging API base URL"
    )
    line_request_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for LINE API calls"
    )

    # Task extraction collaborator
    extraction_service_url: Optional[str] = Field(
        default=None, description="Base URL of the task extraction service"
    )
    extraction_timeout: float = Field(default=30.0, gt=0)
    max_processing_errors: int = Field(
        default=20, ge=1, description="Processing error entries kept per message"
    )

    # Group resolution
    group_resolution_strategies: list[ResolutionStrategyName] = Field(
        default_factory=lambda: ["mapping", "receiver", "single_active"],
        description="Ordered strategies used to find the integration owning a group",
    )

    # Notifications
    quiet_hours_timezone: str = Field(
        default="UTC", description="IANA timezone used to evaluate HH:MM windows"
    )
    notification_rate_limit: int = Field(default=60, ge=1)
    notification_rate_window_seconds: int = Field(default=60, ge=1)
    health_staleness_minutes: int = Field(
        default=60, ge=1, description="Webhook silence that turns a send failure into an error"
    )

    # Feature Flags
    feature_flags: FeatureFlags = Field(
        default_factory=FeatureFlags, description="Platform feature toggles"
    )

    @field_validator("group_resolution_strategies")
    @classmethod
    def _strategies_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("group_resolution_strategies must name at least one strategy")
        return value

    @field_validator("quiet_hours_timezone")
    @classmethod
    def _timezone_exists(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"quiet_hours_timezone '{value}' is not a known IANA timezone") from e
        return value


def load_settings() -> Settings:
    """Load settings with proper error handling."""
    try:
        return Settings()
    except Exception as e:
        error_msg = f"Failed to load settings: {e}"
        if "database_url" in str(e).lower():
            error_msg += "\nMake sure DATABASE_URL is a valid postgresql+asyncpg URL"
        raise ValueError(error_msg) from e
