"""
Typed errors for the relay bot.

Pipeline-terminal errors (subclasses of RelayError) carry the text that is
shown to the user; NotificationError is logged and never ends a relay run.
"""

from typing import Optional


class ConfigError(Exception):
    """Required configuration is missing or invalid. Fatal at startup."""

    def __init__(self, errors: list) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


class NetworkError(Exception):
    """The HTTP fetch collaborator could not reach the remote server."""


class NotificationError(Exception):
    """Sending or editing a chat message failed."""


# ---------------------------------------------------------------------------
# Relay pipeline
# ---------------------------------------------------------------------------


class RelayError(Exception):
    """Base class for errors that end a relay run."""

    def __init__(self, user_message: str, detail: Optional[str] = None) -> None:
        self.user_message = user_message
        self.detail = detail
        super().__init__(detail or user_message)


class ProbeError(RelayError):
    """HEAD request failed or the remote size could not be determined."""


class SizeLimitExceeded(RelayError):
    """Declared remote size is above the relay limit."""

    def __init__(self, user_message: str, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(user_message, f"{size} bytes exceeds limit of {limit} bytes")


class DownloadError(RelayError):
    """Streaming GET failed or was interrupted."""


class UploadError(RelayError):
    """The chat platform rejected the attachment."""
