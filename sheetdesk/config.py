"""
Configuration settings for sheetdesk.

Uses Pydantic Settings to load environment variables for the remote endpoint,
refresh cadence, logging, and the role-rank policy used by the screens.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ROLE_RANKS: Dict[str, int] = {
    "admin": 1,
    "leader": 2,
    "idea": 3,
    "support": 4,
    "designer": 5,
    "designer online": 5,
}


class Settings(BaseSettings):
    # Remote endpoint
    api_url: str = Field("", alias="API_URL")
    request_timeout_seconds: float = Field(60.0, alias="REQUEST_TIMEOUT_SECONDS")
    ip_lookup_url: str = Field("https://api.ipify.org?format=json", alias="IP_LOOKUP_URL")
    ip_lookup_timeout_seconds: float = Field(5.0, alias="IP_LOOKUP_TIMEOUT_SECONDS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    current_user: str = Field("", alias="CURRENT_USER")

    # Screen defaults
    refresh_interval_seconds: float = Field(120.0, alias="REFRESH_INTERVAL_SECONDS")
    default_unit: str = Field("Printway", alias="DEFAULT_UNIT")
    average_order_value: int = Field(500_000, alias="AVERAGE_ORDER_VALUE")
    role_ranks: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_ROLE_RANKS), alias="ROLE_RANKS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def request_timeout(self) -> float | None:
        """httpx timeout value; zero or negative disables the timeout."""
        return self.request_timeout_seconds if self.request_timeout_seconds > 0 else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["DEFAULT_ROLE_RANKS", "Settings", "get_settings"]
