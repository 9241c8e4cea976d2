from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leave Quota"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://leave_quota:leave_quota@db:5432/leave_quota"
    log_level: str = "INFO"

    # Fallback policy for tenants that have not stored one yet.
    default_quota_type: Literal["MONTHLY", "QUARTERLY", "YEARLY"] = "MONTHLY"
    default_working_days: list[int] = [1, 2, 3, 4, 5, 6]
    default_allocations: dict[str, int] = {"junior": 12, "senior": 16, "managers": 24}

    sweep_interval_seconds: int = 3600


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
