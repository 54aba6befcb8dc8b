"""
Chat-safe error texts.

Exceptions are translated into short messages that are fine to show in a
Telegram chat: no tokens, stack traces or internal host names. Lookup is by
exception type first, then by keywords in the exception text.

    except Exception as e:
        logger.error(f"Relay handler failed: {e}", exc_info=True)
        await channel.send_message(sanitize_error(e, context="handling your message"))
"""

import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "Something went wrong. Please try again later."

# Checked in order with isinstance; subclasses must come before their bases.
_TYPE_MESSAGES: list[tuple[type, str]] = [
    (httpx.TimeoutException, "The server took too long to respond."),
    (httpx.UnsupportedProtocol, "Only http:// and https:// links are supported."),
    (httpx.InvalidURL, "The link is not a valid URL."),
    (httpx.ConnectError, "Could not connect to the server."),
    (httpx.RemoteProtocolError, "The server closed the connection unexpectedly."),
    (httpx.TooManyRedirects, "The link redirects too many times."),
    (httpx.TransportError, "A network error occurred while contacting the server."),
    (ConnectionError, "Could not connect to the service. Please try again in a moment."),
    (TimeoutError, "The request took too long to complete. Please try again."),
    (ValueError, "The request could not be processed. Please try again."),
]

_KEYWORD_MESSAGES: list[tuple[re.Pattern, str]] = [
    (
        re.compile(r"rate.?limit|flood|too many requests", re.IGNORECASE),
        "Too many requests. Please wait a moment and try again.",
    ),
    (
        re.compile(r"timeout|timed?\s*out", re.IGNORECASE),
        "The request took too long to complete. Please try again.",
    ),
    (
        re.compile(r"connect|refused|unreachable|name resolution", re.IGNORECASE),
        "Could not connect to the server.",
    ),
]


def sanitize_error(
    exc: Optional[BaseException],
    *,
    context: Optional[str] = None,
) -> str:
    """Return a chat-safe description of ``exc``.

    With ``context`` (e.g. ``"handling your message"``) the text reads
    ``"Sorry, there was an error <context>. <reason>"``.
    """
    reason = GENERIC_ERROR_TEXT if exc is None else _message_for(exc)
    if context:
        return f"Sorry, there was an error {context}. {reason}"
    return reason


def describe_network_error(exc: BaseException) -> str:
    """Describe a fetch failure, looking through a wrapping exception."""
    return _message_for(exc.__cause__ or exc)


def _message_for(exc: BaseException) -> str:
    for exc_type, message in _TYPE_MESSAGES:
        if isinstance(exc, exc_type):
            return message

    text = str(exc)
    for pattern, message in _KEYWORD_MESSAGES:
        if pattern.search(text):
            return message

    logger.debug(f"No friendly message for {type(exc).__name__}, using generic text")
    return GENERIC_ERROR_TEXT
