"""Tests for webhook-mode startup and shutdown."""

from fastapi.testclient import TestClient
from telegram.error import NetworkError as TelegramNetworkError

from src.main import create_app


class TestStartup:
    def test_registers_webhook_at_url_plus_path(self, context, mock_bot):
        app = create_app(context=context)

        with TestClient(app):
            mock_bot.initialize.assert_awaited_once()
            mock_bot.set_webhook.assert_awaited_once_with(
                "https://bot.example.com/webhook", secret_token="test-secret"
            )
            assert app.state.bot_initialized is True
            assert app.state.webhook_registered is True

    def test_webhook_failure_is_not_fatal(self, context, mock_bot):
        mock_bot.set_webhook.side_effect = TelegramNetworkError("connection refused")
        app = create_app(context=context)

        with TestClient(app) as client:
            assert app.state.webhook_registered is False
            assert client.get("/health").status_code == 200

    def test_bot_init_failure_runs_degraded(self, context, mock_bot):
        mock_bot.initialize.side_effect = TelegramNetworkError("no route to host")
        app = create_app(context=context)

        with TestClient(app) as client:
            assert app.state.bot_initialized is False
            mock_bot.set_webhook.assert_not_awaited()
            assert client.get("/").status_code == 200

    def test_missing_webhook_url_skips_registration(self, context, mock_bot, settings):
        context.settings = settings.model_copy(update={"webhook_url": None})
        app = create_app(context=context)

        with TestClient(app):
            mock_bot.set_webhook.assert_not_awaited()
            assert app.state.webhook_registered is False


class TestShutdown:
    def test_releases_context_resources(self, context, mock_bot, mock_tasks):
        app = create_app(context=context)

        with TestClient(app):
            pass

        mock_tasks.wait_all.assert_awaited_once()
        mock_tasks.cancel_all.assert_awaited_once()
        context.fetcher.aclose.assert_awaited_once()
        mock_bot.shutdown.assert_awaited_once()
