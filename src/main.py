import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

# Explicitly load .env files at startup
# Load order (later files override earlier):
# 1. project .env (project defaults)
# 2. project .env.local (local overrides)
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
env_local = project_root / ".env.local"

if env_file.exists():
    load_dotenv(env_file, override=False)

if env_local.exists():
    load_dotenv(env_local, override=True)

from .api.health import create_health_router
from .api.webhook import router as webhook_router
from .api.webhook_handler import router as webhook_handler_router
from .core.config import Settings, get_settings
from .core.config_validator import log_config_summary, require_valid_config
from .core.context import BotContext, build_context
from .core.errors import ConfigError
from .lifecycle import lifespan
from .middleware.error_handler import ErrorHandlerMiddleware
from .utils.logging import setup_logging
from .version import __version__

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None, context: Optional[BotContext] = None
) -> FastAPI:
    """Build the webhook-mode FastAPI application.

    Raises ConfigError when required settings are missing.
    """
    if context is None:
        settings = settings or get_settings()
        require_valid_config(settings)
        context = build_context(settings)

    app = FastAPI(
        title="Telegram Relay Bot",
        description="Relays remote files into Telegram chats",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.bot_initialized = False
    app.state.webhook_registered = False

    app.add_middleware(ErrorHandlerMiddleware)

    app.include_router(create_health_router())
    app.include_router(webhook_router)
    app.include_router(webhook_handler_router)
    return app


def main() -> None:
    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)

    try:
        require_valid_config(settings)
    except ConfigError as e:
        logger.critical(
            "Aborting startup due to %d configuration error(s)", len(e.errors)
        )
        sys.exit(1)
    log_config_summary(settings)

    if settings.is_development:
        context = build_context(settings)
        context.bot.run_polling()
        return

    import uvicorn

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
