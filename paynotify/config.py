"""Payment notification service configuration."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings

from paynotify.errors import ConfigurationError

logger = logging.getLogger(__name__)

_REQUIRED = ("supabase_url", "supabase_service_key", "midtrans_server_key")


class Settings(BaseSettings):
    """Environment-driven settings, loaded once at startup and never mutated."""

    supabase_url: str
    supabase_service_key: str
    midtrans_server_key: str

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    store_timeout: float = 10.0

    model_config = {"env_file": ".env", "extra": "ignore", "frozen": True}

    @field_validator(*_REQUIRED)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    def summary(self) -> dict[str, str]:
        """Startup summary: secrets reported as set/not set only."""
        return {
            "Port": str(self.port),
            "Supabase URL": "Set" if self.supabase_url else "NOT SET",
            "Supabase Service Key": "Set" if self.supabase_service_key else "NOT SET",
            "Midtrans Server Key": "Set" if self.midtrans_server_key else "NOT SET",
        }


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment (and .env).

    Raises:
        ConfigurationError: if any required variable is missing or blank
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        invalid: list[str] = []
        for err in e.errors():
            name = str(err["loc"][0]).upper() if err.get("loc") else "SETTINGS"
            if err["type"] == "missing":
                logger.error("%s environment variable is required", name)
            else:
                logger.error("%s environment variable is invalid: %s", name, err["msg"])
            invalid.append(name)
        raise ConfigurationError(sorted(set(invalid))) from e
