"""
Application lifespan management (webhook mode).

Handles startup and shutdown of:
- Telegram bot initialization
- Webhook registration at WEBHOOK_URL + /webhook
- Background update tasks, HTTP fetcher and bot shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.context import BotContext

logger = logging.getLogger(__name__)


async def _setup_webhook(context: BotContext) -> bool:
    """Register the webhook with Telegram. Returns True on success."""
    settings = context.settings
    webhook_url = settings.webhook_endpoint
    if not webhook_url:
        logger.warning("⚠️ WEBHOOK_URL not set, skipping webhook setup")
        return False

    try:
        await context.bot.set_webhook(webhook_url, secret_token=settings.webhook_secret)
        logger.info(f"✅ Webhook set successfully at {webhook_url}")
        return True
    except Exception as e:
        # The webhook can still be registered later through POST /setWebhook.
        logger.error(f"❌ Failed to set webhook on startup: {e}", exc_info=True)
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    context: BotContext = app.state.context
    settings = context.settings
    logger.info(
        f"🌐 Starting bot in {settings.environment} mode (webhook)"
    )

    bot_initialized = False
    try:
        await context.bot.initialize()
        bot_initialized = True
        logger.info("✅ Telegram bot initialized")
    except Exception as e:
        logger.error(f"❌ Bot initialization failed - running in degraded mode: {e}")

    app.state.bot_initialized = bot_initialized
    if bot_initialized:
        app.state.webhook_registered = await _setup_webhook(context)
    else:
        app.state.webhook_registered = False

    yield

    logger.info("🛑 Relay bot shutting down...")
    active_count = context.tasks.get_active_task_count()
    if active_count > 0:
        logger.info(f"Cancelling {active_count} active background tasks...")
    await context.aclose()
    logger.info("✅ Shutdown complete")
