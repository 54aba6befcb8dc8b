"""
Startup configuration validation and redacted summary logging.

Called before the bot starts to fail fast on misconfiguration.
"""

import logging
from typing import List
from urllib.parse import urlparse

from .config import Settings
from .errors import ConfigError

logger = logging.getLogger(__name__)

# Settings that only the webhook deployment needs.
_WEBHOOK_REQUIRED = [
    ("webhook_secret", "WEBHOOK_SECRET"),
    ("webhook_url", "WEBHOOK_URL"),
]


def validate_config(settings: Settings) -> List[str]:
    """
    Validate application configuration and return a list of error strings.

    An empty list means the configuration is valid.
    """
    errors: List[str] = []

    # -- Bot token ----------------------------------------------------------
    if not settings.bot_token or not settings.bot_token.strip():
        errors.append("BOT_TOKEN is required but missing or empty")

    if settings.is_development:
        return errors

    # -- Webhook mode -------------------------------------------------------
    for attr, env_name in _WEBHOOK_REQUIRED:
        value = getattr(settings, attr, None) or ""
        if not value.strip():
            errors.append(
                f"{env_name} is required when ENVIRONMENT is not 'development'"
            )

    webhook_url = (settings.webhook_url or "").strip()
    if webhook_url:
        parsed = urlparse(webhook_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(
                f"WEBHOOK_URL format is invalid (expected http(s)://...): '{webhook_url}'"
            )

    return errors


def require_valid_config(settings: Settings) -> None:
    """Raise ConfigError if the configuration cannot start the bot."""
    errors = validate_config(settings)
    if errors:
        for err in errors:
            logger.error(f"Config validation error: {err}")
        raise ConfigError(errors)


def _redact(secret: str) -> str:
    """Return first 4 characters followed by '***', or '<empty>' if blank."""
    if not secret:
        return "<empty>"
    return secret[:4] + "***"


def log_config_summary(settings: Settings) -> None:
    """Log an INFO-level summary of loaded configuration with secrets redacted."""
    summary_lines = [
        f"environment={settings.environment}",
        f"mode={settings.mode}",
        f"bot_token={_redact(settings.bot_token)}",
        f"webhook_secret={_redact(settings.webhook_secret)}",
    ]
    if settings.webhook_url:
        summary_lines.append(f"webhook_url={settings.webhook_url}")

    logger.info("Config loaded: %s", " | ".join(summary_lines))
