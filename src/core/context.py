"""
Application context.

Everything a request needs (settings, bot, fetcher, pipeline, background
tasks) is built once here and passed in explicitly; there are no module
level bot or app singletons.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from telegram.ext import Application

from ..bot.bot import RelayBot
from ..services.http_fetcher import HttpFetcher
from ..services.relay_service import RelayPipeline
from ..utils.task_tracker import TaskTracker
from .config import Settings

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 10.0


@dataclass
class BotContext:
    settings: Settings
    bot: RelayBot
    fetcher: HttpFetcher
    pipeline: RelayPipeline
    tasks: TaskTracker

    async def aclose(self) -> None:
        """Release resources owned by the context (webhook mode shutdown).

        In-flight updates get SHUTDOWN_GRACE_SECONDS to finish before the
        rest are cancelled.
        """
        await self.tasks.wait_all(timeout=SHUTDOWN_GRACE_SECONDS)
        await self.tasks.cancel_all(timeout=5.0)
        await self.fetcher.aclose()
        await self.bot.shutdown()


def build_context(
    settings: Settings, fetcher: Optional[HttpFetcher] = None
) -> BotContext:
    """Construct the bot, relay pipeline and helpers for ``settings``."""
    fetcher = fetcher or HttpFetcher()
    pipeline = RelayPipeline(fetcher)

    async def _close_fetcher(application: Application) -> None:
        # Polling mode: python-telegram-bot owns the event loop lifecycle.
        await fetcher.aclose()

    bot = RelayBot(
        settings.bot_token,
        pipeline,
        post_shutdown=_close_fetcher if settings.is_development else None,
    )
    logger.info(f"Bot context built (mode={settings.mode})")
    return BotContext(
        settings=settings,
        bot=bot,
        fetcher=fetcher,
        pipeline=pipeline,
        tasks=TaskTracker(),
    )
