"""Shared fixtures for HTTP surface tests.

The app is built with ``create_app(context=...)`` around a mocked RelayBot,
so no request ever reaches Telegram.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.context import BotContext


@pytest.fixture
def settings():
    return Settings(
        bot_token="123456:test-token",
        webhook_secret="test-secret",
        webhook_url="https://bot.example.com/",
        environment="production",
    )


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()
    bot.set_webhook = AsyncMock()
    bot.delete_webhook = AsyncMock()
    bot.get_webhook_info = AsyncMock(
        return_value={"url": "https://bot.example.com/webhook", "pending_update_count": 0}
    )
    bot.process_update = AsyncMock(return_value=True)
    return bot


@pytest.fixture
def scheduled():
    """Coroutines handed to the task tracker, in order."""
    return []


@pytest.fixture
def mock_tasks(scheduled):
    tasks = MagicMock()

    def capture(coro, name=None):
        scheduled.append((name, coro))
        return None

    tasks.create_task.side_effect = capture
    tasks.get_active_task_count.return_value = 0
    tasks.wait_all = AsyncMock(return_value=0)
    tasks.cancel_all = AsyncMock(return_value=0)
    return tasks


@pytest.fixture
def context(settings, mock_bot, mock_tasks):
    fetcher = MagicMock()
    fetcher.aclose = AsyncMock()
    return BotContext(
        settings=settings,
        bot=mock_bot,
        fetcher=fetcher,
        pipeline=MagicMock(),
        tasks=mock_tasks,
    )


@pytest.fixture
def client(context, scheduled):
    from src.main import create_app

    app = create_app(context=context)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

    # Unawaited coroutines would only produce warnings; close them.
    for _, coro in scheduled:
        coro.close()
