"""
Conversation channel: the chat-side capability handed to command handlers.

ConversationChannel is the abstract surface (send, edit, chat action,
send attachment) bound to one chat. TelegramChannel implements it on top of
python-telegram-bot's ``Bot`` and converts ``TelegramError`` into the
relay error kinds:

- send/edit failures -> NotificationError (logged by callers, never terminal)
- attachment rejection -> UploadError (terminal for a relay run)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from telegram import Bot, InputFile
from telegram.constants import ChatAction
from telegram.error import TelegramError

from ..core.errors import NotificationError, UploadError

logger = logging.getLogger(__name__)

UPLOAD_WRITE_TIMEOUT = 120.0


@dataclass(frozen=True)
class MessageHandle:
    """Identifies a sent message so it can be edited later."""

    chat_id: int
    message_id: int


class ConversationChannel(ABC):
    """Operations against a single chat conversation."""

    chat_id: int

    @abstractmethod
    async def send_message(self, text: str) -> MessageHandle:
        """Send a text message. Raises NotificationError."""

    @abstractmethod
    async def edit_message(self, handle: MessageHandle, text: str) -> None:
        """Replace the text of a sent message. Raises NotificationError."""

    @abstractmethod
    async def send_chat_action(self, action: str) -> None:
        """Show an activity indicator. Raises NotificationError."""

    @abstractmethod
    async def send_document(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        caption: Optional[str] = None,
    ) -> MessageHandle:
        """Upload ``data`` as an attachment. Raises UploadError."""


class TelegramChannel(ConversationChannel):
    """ConversationChannel backed by a python-telegram-bot ``Bot``."""

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id

    async def send_message(self, text: str) -> MessageHandle:
        try:
            message = await self.bot.send_message(chat_id=self.chat_id, text=text)
        except TelegramError as e:
            raise NotificationError(f"send_message to {self.chat_id} failed: {e}") from e
        return MessageHandle(chat_id=self.chat_id, message_id=message.message_id)

    async def edit_message(self, handle: MessageHandle, text: str) -> None:
        try:
            await self.bot.edit_message_text(
                text=text, chat_id=handle.chat_id, message_id=handle.message_id
            )
        except TelegramError as e:
            raise NotificationError(
                f"edit_message_text {handle.chat_id}/{handle.message_id} failed: {e}"
            ) from e

    async def send_chat_action(self, action: str = ChatAction.UPLOAD_DOCUMENT) -> None:
        try:
            await self.bot.send_chat_action(chat_id=self.chat_id, action=action)
        except TelegramError as e:
            raise NotificationError(f"send_chat_action failed: {e}") from e

    async def send_document(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        caption: Optional[str] = None,
    ) -> MessageHandle:
        document = InputFile(data, filename=file_name)
        if content_type:
            document.mimetype = content_type
        try:
            message = await self.bot.send_document(
                chat_id=self.chat_id,
                document=document,
                caption=caption,
                write_timeout=UPLOAD_WRITE_TIMEOUT,
            )
        except TelegramError as e:
            raise UploadError(
                f"Telegram rejected the file: {e.message}", detail=str(e)
            ) from e
        return MessageHandle(chat_id=self.chat_id, message_id=message.message_id)
