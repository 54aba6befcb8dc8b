"""
Tests for the RelayBot application wrapper.

Tests cover:
- Handler registration order
- Update routing to command handlers
- Webhook management passthrough
- process_update error containment
"""

import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram.error import TelegramError
from telegram.ext import CommandHandler, MessageHandler

from src.bot.bot import RelayBot, command_argument
from src.bot.command_handlers import FALLBACK_TEXT, PONG_TEXT, WELCOME_TEXT
from src.services.relay_service import RelayOutcome, RelayRequest, RelayState

TOKEN = "123456:test-token"


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.run = AsyncMock(return_value=RelayOutcome(state=RelayState.DONE))
    return pipeline


@pytest.fixture
def relay_bot(pipeline):
    return RelayBot(TOKEN, pipeline)


def _update(text, chat_id=67890):
    update = MagicMock()
    update.effective_chat.id = chat_id
    update.effective_message.text = text
    return update


def _context(matches=None):
    context = MagicMock()
    context.bot = AsyncMock()
    context.bot.send_message.return_value = MagicMock(message_id=1)
    context.matches = matches
    return context


class TestCommandArgument:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("/send https://example.com/a", "https://example.com/a"),
            ("/send@relay_bot   https://example.com/a  ", "https://example.com/a"),
            ("/send", ""),
            (None, ""),
        ],
    )
    def test_extracts_argument(self, text, expected):
        assert command_argument(text) == expected


class TestHandlerRegistration:
    def test_requires_token(self, pipeline):
        with pytest.raises(ValueError):
            RelayBot("", pipeline)

    def test_commands_registered_before_text_handlers(self, relay_bot):
        handlers = relay_bot.application.handlers[0]

        assert isinstance(handlers[0], CommandHandler)
        assert handlers[0].commands == frozenset({"start"})
        assert isinstance(handlers[1], CommandHandler)
        assert handlers[1].commands == frozenset({"send"})
        assert all(isinstance(h, MessageHandler) for h in handlers[2:])
        assert len(handlers) == 5

    def test_error_handler_registered(self, relay_bot):
        assert relay_bot.on_error in relay_bot.application.error_handlers


class TestRouting:
    @pytest.mark.asyncio
    async def test_start(self, relay_bot):
        context = _context()

        await relay_bot.on_start(_update("/start"), context)

        context.bot.send_message.assert_awaited_once_with(chat_id=67890, text=WELCOME_TEXT)

    @pytest.mark.asyncio
    async def test_send_passes_url_to_pipeline(self, relay_bot, pipeline):
        outcome = await relay_bot.on_send(_update("/send https://example.com/f.pdf"), _context())

        request, channel = pipeline.run.call_args.args
        assert request == RelayRequest(source_url="https://example.com/f.pdf")
        assert channel.chat_id == 67890
        assert outcome.handled

    @pytest.mark.asyncio
    async def test_echo_uses_regex_match(self, relay_bot):
        context = _context(matches=[re.search(r"/echo (.+)", "/echo repeat me")])

        await relay_bot.on_echo(_update("/echo repeat me"), context)

        context.bot.send_message.assert_awaited_once_with(chat_id=67890, text="repeat me")

    @pytest.mark.asyncio
    async def test_ping(self, relay_bot):
        context = _context()

        await relay_bot.on_ping(_update("ping"), context)

        context.bot.send_message.assert_awaited_once_with(chat_id=67890, text=PONG_TEXT)

    @pytest.mark.asyncio
    async def test_other_message(self, relay_bot):
        context = _context()

        await relay_bot.on_message(_update("anything"), context)

        context.bot.send_message.assert_awaited_once_with(chat_id=67890, text=FALLBACK_TEXT)

    @pytest.mark.asyncio
    async def test_update_without_chat_is_ignored(self, relay_bot):
        update = MagicMock()
        update.effective_chat = None
        context = _context()

        assert await relay_bot.on_start(update, context) is None
        context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_crash_is_reported_to_chat(self, relay_bot, pipeline):
        pipeline.run.side_effect = RuntimeError("unexpected")
        context = _context()

        outcome = await relay_bot.on_send(_update("/send https://example.com/f"), context)

        assert not outcome.handled
        text = context.bot.send_message.call_args.kwargs["text"]
        assert text.startswith("Sorry, there was an error handling your message.")


class TestProcessUpdate:
    @pytest.mark.asyncio
    async def test_processes_parsed_update(self, relay_bot):
        relay_bot.application = MagicMock()
        relay_bot.application.process_update = AsyncMock()

        with patch("src.bot.bot.Update") as update_cls:
            update_cls.de_json.return_value = MagicMock()
            assert await relay_bot.process_update({"update_id": 1}) is True

        relay_bot.application.process_update.assert_awaited_once_with(
            update_cls.de_json.return_value
        )

    @pytest.mark.asyncio
    async def test_unparseable_update_returns_false(self, relay_bot):
        relay_bot.application = MagicMock()
        relay_bot.application.process_update = AsyncMock()

        with patch("src.bot.bot.Update") as update_cls:
            update_cls.de_json.return_value = None
            assert await relay_bot.process_update({}) is False

        relay_bot.application.process_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_processing_error_returns_false(self, relay_bot):
        relay_bot.application = MagicMock()
        relay_bot.application.process_update = AsyncMock(side_effect=RuntimeError("boom"))

        with patch("src.bot.bot.Update"):
            assert await relay_bot.process_update({"update_id": 2}) is False


class TestWebhookManagement:
    @pytest.fixture
    def bot_api(self, relay_bot):
        relay_bot.application = MagicMock()
        api = relay_bot.application.bot
        api.set_webhook = AsyncMock()
        api.delete_webhook = AsyncMock()
        api.get_webhook_info = AsyncMock()
        return api

    @pytest.mark.asyncio
    async def test_set_webhook_with_secret(self, relay_bot, bot_api):
        await relay_bot.set_webhook("https://bot.example.com/webhook", secret_token="s")

        bot_api.set_webhook.assert_awaited_once_with(
            url="https://bot.example.com/webhook", secret_token="s"
        )

    @pytest.mark.asyncio
    async def test_empty_secret_is_not_sent(self, relay_bot, bot_api):
        await relay_bot.set_webhook("https://bot.example.com/webhook", secret_token="")

        assert bot_api.set_webhook.call_args.kwargs["secret_token"] is None

    @pytest.mark.asyncio
    async def test_set_webhook_errors_propagate(self, relay_bot, bot_api):
        bot_api.set_webhook.side_effect = TelegramError("Unauthorized")

        with pytest.raises(TelegramError):
            await relay_bot.set_webhook("https://bot.example.com/webhook")

    @pytest.mark.asyncio
    async def test_get_webhook_info_returns_dict(self, relay_bot, bot_api):
        bot_api.get_webhook_info.return_value = MagicMock()
        bot_api.get_webhook_info.return_value.to_dict.return_value = {"url": ""}

        assert await relay_bot.get_webhook_info() == {"url": ""}

    @pytest.mark.asyncio
    async def test_delete_webhook(self, relay_bot, bot_api):
        await relay_bot.delete_webhook()

        bot_api.delete_webhook.assert_awaited_once()
