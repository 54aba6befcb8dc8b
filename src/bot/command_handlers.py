"""
Chat command handlers.

Each handler is a plain async function over a ConversationChannel and
returns a CommandOutcome; python-telegram-bot wiring lives in bot.py.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..core.error_messages import sanitize_error
from ..core.errors import NotificationError
from ..services.relay_service import RelayOutcome, RelayPipeline, RelayRequest
from .channel import ConversationChannel

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome! Up and running."
SEND_USAGE_TEXT = (
    "Usage: /send <url>\n"
    "Example: /send https://example.com/report.pdf"
)
PONG_TEXT = "Pong!!!"
FALLBACK_TEXT = "Got another message!"

ECHO_PATTERN = re.compile(r"/echo (.+)")
PING_PATTERN = re.compile(r"^ping$")


@dataclass
class CommandOutcome:
    command: str
    handled: bool = True
    relay: Optional[RelayOutcome] = None


async def _reply(channel: ConversationChannel, text: str) -> bool:
    try:
        await channel.send_message(text)
    except NotificationError as e:
        logger.warning(f"Reply to chat {channel.chat_id} failed: {e}")
        return False
    return True


async def start_command(channel: ConversationChannel) -> CommandOutcome:
    """Handle /start command"""
    logger.info(f"Start command in chat {channel.chat_id}")
    handled = await _reply(channel, WELCOME_TEXT)
    return CommandOutcome(command="start", handled=handled)


async def send_command(
    channel: ConversationChannel, argument: str, pipeline: RelayPipeline
) -> CommandOutcome:
    """Handle /send <url>: relay the file at url into this chat.

    The pipeline owns every reply after the argument check.
    """
    url = (argument or "").strip()
    if not url:
        await _reply(channel, SEND_USAGE_TEXT)
        return CommandOutcome(command="send", handled=False)

    logger.info(f"Send command in chat {channel.chat_id}: {url}")
    outcome = await pipeline.run(RelayRequest(source_url=url), channel)
    return CommandOutcome(command="send", handled=outcome.succeeded, relay=outcome)


async def echo_command(channel: ConversationChannel, text: str) -> CommandOutcome:
    """Reply with the text captured after /echo, verbatim."""
    handled = await _reply(channel, text)
    return CommandOutcome(command="echo", handled=handled)


async def ping_command(channel: ConversationChannel) -> CommandOutcome:
    handled = await _reply(channel, PONG_TEXT)
    return CommandOutcome(command="ping", handled=handled)


async def fallback_message(channel: ConversationChannel) -> CommandOutcome:
    """Acknowledge any message no other handler claimed."""
    handled = await _reply(channel, FALLBACK_TEXT)
    return CommandOutcome(command="message", handled=handled)


async def report_handler_error(
    channel: ConversationChannel, command: str, error: Exception
) -> CommandOutcome:
    """Log an uncaught handler error and tell the user something went wrong."""
    logger.error(
        f"Unhandled error in {command} handler for chat {channel.chat_id}: {error}",
        exc_info=(type(error), error, error.__traceback__),
    )
    await _reply(channel, sanitize_error(error, context="handling your message"))
    return CommandOutcome(command=command, handled=False)
