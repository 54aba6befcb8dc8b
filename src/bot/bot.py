import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..services.relay_service import RelayPipeline
from .channel import TelegramChannel
from .command_handlers import (
    ECHO_PATTERN,
    PING_PATTERN,
    CommandOutcome,
    echo_command,
    fallback_message,
    ping_command,
    report_handler_error,
    send_command,
    start_command,
)

logger = logging.getLogger(__name__)

ChannelHandler = Callable[[TelegramChannel], Awaitable[CommandOutcome]]


def command_argument(text: Optional[str]) -> str:
    """Return everything after the command word of a message."""
    parts = (text or "").split(None, 1)
    return parts[1].strip() if len(parts) > 1 else ""


class RelayBot:
    """Telegram bot application wrapper"""

    def __init__(
        self,
        token: str,
        pipeline: RelayPipeline,
        post_shutdown: Optional[Callable[[Application], Awaitable[None]]] = None,
    ):
        if not token:
            raise ValueError("Telegram bot token is required")

        self.token = token
        self.pipeline = pipeline

        builder = Application.builder().token(token).concurrent_updates(True)
        if post_shutdown is not None:
            builder = builder.post_shutdown(post_shutdown)
        self.application = builder.build()
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register command and message handlers, in priority order."""
        new_messages = filters.UpdateType.MESSAGE

        self.application.add_handler(
            CommandHandler("start", self.on_start, filters=new_messages)
        )
        self.application.add_handler(
            CommandHandler("send", self.on_send, filters=new_messages)
        )
        self.application.add_handler(
            MessageHandler(filters.Regex(ECHO_PATTERN) & new_messages, self.on_echo)
        )
        self.application.add_handler(
            MessageHandler(filters.Regex(PING_PATTERN) & new_messages, self.on_ping)
        )
        self.application.add_handler(MessageHandler(new_messages, self.on_message))

        self.application.add_error_handler(self.on_error)

        logger.info("Telegram bot application configured")

    async def _dispatch(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
        command: str,
        handler: ChannelHandler,
    ) -> Optional[CommandOutcome]:
        """Run a channel handler; any uncaught error is logged and answered."""
        chat = update.effective_chat
        if chat is None:
            return None

        channel = TelegramChannel(context.bot, chat.id)
        try:
            return await handler(channel)
        except Exception as e:
            return await report_handler_error(channel, command, e)

    async def on_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> Optional[CommandOutcome]:
        return await self._dispatch(update, context, "start", start_command)

    async def on_send(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> Optional[CommandOutcome]:
        message = update.effective_message
        argument = command_argument(message.text if message else None)
        handler = functools.partial(
            send_command, argument=argument, pipeline=self.pipeline
        )
        return await self._dispatch(update, context, "send", handler)

    async def on_echo(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> Optional[CommandOutcome]:
        text = context.matches[0].group(1) if context.matches else ""
        handler = functools.partial(echo_command, text=text)
        return await self._dispatch(update, context, "echo", handler)

    async def on_ping(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> Optional[CommandOutcome]:
        return await self._dispatch(update, context, "ping", ping_command)

    async def on_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> Optional[CommandOutcome]:
        return await self._dispatch(update, context, "message", fallback_message)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Last-resort error handler for anything escaping the handlers."""
        logger.error(
            f"Error while processing update: {context.error}",
            exc_info=context.error,
        )

    async def process_update(self, update_data: dict) -> bool:
        """Process a webhook update"""
        try:
            update = Update.de_json(update_data, self.application.bot)
            if update:
                await self.application.process_update(update)
                return True
            else:
                logger.warning("Failed to parse update from webhook data")
                return False

        except Exception as e:
            logger.error(f"Error processing update: {e}", exc_info=True)
            return False

    async def set_webhook(self, webhook_url: str, secret_token: Optional[str] = None) -> None:
        """Set the webhook URL for the bot"""
        await self.application.bot.set_webhook(
            url=webhook_url, secret_token=secret_token or None
        )
        logger.info(f"Webhook set to: {webhook_url}")

    async def delete_webhook(self) -> None:
        """Delete the current webhook"""
        await self.application.bot.delete_webhook()
        logger.info("Webhook deleted")

    async def get_webhook_info(self) -> Dict[str, Any]:
        """Get current webhook information"""
        webhook_info = await self.application.bot.get_webhook_info()
        return webhook_info.to_dict()

    async def initialize(self) -> None:
        """Initialize the bot application"""
        await self.application.initialize()
        logger.info("Bot application initialized")

    async def shutdown(self) -> None:
        """Shutdown the bot application"""
        try:
            await self.application.shutdown()
            logger.info("Bot application shutdown")
        except Exception as e:
            logger.error(f"Error shutting down bot: {e}")

    def run_polling(self) -> None:
        """Run long-polling until interrupted (development mode)."""
        logger.info("🚀 Starting bot in development mode (polling)")
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)
