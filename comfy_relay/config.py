"""Application configuration using Pydantic Settings."""

from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRUTHY_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Integration switch
    COMFY_ENABLED: bool = False

    # Remote service
    COMFY_BASE_URL: Optional[str] = None
    COMFY_BEARER_TOKEN: Optional[str] = None  # Wins over COMFY_API_KEY
    COMFY_API_KEY: Optional[str] = None
    COMFY_TIMEOUT: float = 15.0  # Per request, seconds

    # Runs
    COMFY_RUN_TIMEOUT: float = 120.0
    COMFY_POLL_INTERVAL: float = 1.5

    # Registry
    COMFY_WORKFLOWS_FILE: str = "config/COMFY_WORKFLOWS.json"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("COMFY_ENABLED", mode="before")
    @classmethod
    def _parse_enabled(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if not isinstance(value, str):
            return False
        return value.strip().lower() in TRUTHY_VALUES

    @field_validator("COMFY_BASE_URL")
    @classmethod
    def _trim_base_url(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return value[:-1] if value.endswith("/") else value

    @property
    def auth_mode(self) -> str:
        """Which credential the client will send."""
        if self.COMFY_BEARER_TOKEN:
            return "bearer"
        if self.COMFY_API_KEY:
            return "api_key"
        return "none"


# Global settings instance
settings = Settings()
