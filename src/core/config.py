"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEVELOPMENT = "development"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # Telegram
    bot_token: str = ""
    webhook_secret: str = ""
    webhook_url: Optional[str] = None

    # Environment
    environment: str = "production"
    log_level: str = "INFO"
    log_to_file: bool = False

    # HTTP server (webhook mode)
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_development(self) -> bool:
        """Development runs long-polling; everything else runs the webhook."""
        return self.environment.strip().lower() == DEVELOPMENT

    @property
    def mode(self) -> str:
        return "polling" if self.is_development else "webhook"

    @property
    def webhook_endpoint(self) -> Optional[str]:
        """Full URL Telegram should post updates to."""
        if not self.webhook_url:
            return None
        return self.webhook_url.rstrip("/") + "/webhook"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
