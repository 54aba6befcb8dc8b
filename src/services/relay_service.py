"""
Remote file relay pipeline.

Downloads a file from a URL and re-uploads it into the chat it was
requested from, reporting progress by editing a single status message.

States: PROBING -> SIZE_CHECK -> DOWNLOADING -> UPLOADING -> DONE, with
FAILED reachable from every state. Every run is independent: progress
state and the status message handle live only inside ``RelayPipeline.run``.
No step is retried; a failure ends the run with one message to the chat.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import unquote

from telegram.constants import ChatAction

from ..bot.channel import ConversationChannel, MessageHandle
from ..core.error_messages import describe_network_error, sanitize_error
from ..core.errors import (
    DownloadError,
    NetworkError,
    NotificationError,
    ProbeError,
    RelayError,
    SizeLimitExceeded,
    UploadError,
)
from ..utils.filenames import mime_type, resolve_file_name
from ..utils.formatting import format_size, render_progress_bar, truncate_url
from ..utils.logging import RelayLogContext
from .http_fetcher import HttpFetcher

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MiB, also the Bot API upload cap
PROGRESS_INTERVAL_SECONDS = 3.0
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class RelayState(str, Enum):
    PROBING = "probing"
    SIZE_CHECK = "size_check"
    DOWNLOADING = "downloading"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayRequest:
    source_url: str


@dataclass(frozen=True)
class RelayProbe:
    """What the HEAD response told us about the remote file."""

    declared_size: Optional[int]
    content_type: str
    file_name: str


@dataclass
class ProgressState:
    bytes_received: int = 0
    last_reported_percent: int = 0
    last_reported_at: float = 0.0
    last_rendered_text: str = ""


@dataclass
class RelayOutcome:
    """Terminal result of a relay run."""

    state: RelayState
    failed_in: Optional[RelayState] = None
    error: Optional[RelayError] = None
    file_name: Optional[str] = None
    declared_size: Optional[int] = None
    bytes_received: int = 0
    states: List[RelayState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is RelayState.DONE


class ProgressReporter:
    """Owns the status message of one relay run.

    ``report`` is throttled: it fires only when the interval has elapsed
    and the percentage went up. ``publish`` skips the edit when the text is
    unchanged. Edit failures are logged and swallowed.
    """

    def __init__(
        self,
        channel: ConversationChannel,
        clock: Callable[[], float] = time.monotonic,
        interval: float = PROGRESS_INTERVAL_SECONDS,
    ):
        self.channel = channel
        self.clock = clock
        self.interval = interval
        self.state = ProgressState()
        self.handle: Optional[MessageHandle] = None

    async def start(self, text: str) -> bool:
        """Send the status message that later edits will target."""
        self.state.last_reported_at = self.clock()
        try:
            self.handle = await self.channel.send_message(text)
        except NotificationError as e:
            logger.warning("Could not send progress message: %s", e)
            return False
        self.state.last_rendered_text = text
        return True

    def should_report(self, percent: int) -> bool:
        elapsed = self.clock() - self.state.last_reported_at
        return (
            elapsed >= self.interval
            and percent > self.state.last_reported_percent
        )

    async def report(self, percent: int, text: str) -> bool:
        self.state.last_reported_percent = percent
        self.state.last_reported_at = self.clock()
        return await self.publish(text)

    async def publish(self, text: str) -> bool:
        """Edit the status message to ``text``. Returns True if an edit went out."""
        if self.handle is None:
            return False
        if text == self.state.last_rendered_text:
            logger.debug("Progress text unchanged, skipping edit")
            return False
        try:
            await self.channel.edit_message(self.handle, text)
        except NotificationError as e:
            logger.warning("Progress edit failed: %s", e)
            return False
        self.state.last_rendered_text = text
        return True


class RelayPipeline:
    """Relays remote files into a chat conversation."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        max_file_size: int = MAX_FILE_SIZE,
        progress_interval: float = PROGRESS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.max_file_size = max_file_size
        self.progress_interval = progress_interval
        self.clock = clock

    async def run(
        self, request: RelayRequest, channel: ConversationChannel
    ) -> RelayOutcome:
        """Run one relay to completion. Relay errors end up in the outcome."""
        outcome = RelayOutcome(state=RelayState.PROBING)
        reporter = ProgressReporter(channel, self.clock, self.progress_interval)

        def enter(state: RelayState) -> None:
            outcome.state = state
            outcome.states.append(state)
            log.step(state.value)

        with RelayLogContext(url=request.source_url, chat_id=channel.chat_id) as log:
            try:
                enter(RelayState.PROBING)
                probe = await self._probe(request.source_url)

                enter(RelayState.SIZE_CHECK)
                outcome.file_name = probe.file_name
                outcome.declared_size = probe.declared_size
                self._check_size(probe)
                await self._notify(channel, self._info_text(request, probe))

                enter(RelayState.DOWNLOADING)
                data = await self._download(request, probe, reporter)
                outcome.bytes_received = reporter.state.bytes_received

                enter(RelayState.UPLOADING)
                await self._upload(channel, probe, data, reporter)
            except RelayError as e:
                outcome.failed_in = outcome.state
                outcome.error = e
                outcome.bytes_received = reporter.state.bytes_received
                outcome.state = RelayState.FAILED
                outcome.states.append(RelayState.FAILED)
                await self._report_failure(channel, reporter, e)
                log.finish(
                    RelayState.FAILED.value,
                    failed_in=outcome.failed_in.value,
                    error_type=type(e).__name__,
                    detail=e.detail,
                )
                return outcome

            outcome.state = RelayState.DONE
            outcome.states.append(RelayState.DONE)
            log.finish(RelayState.DONE.value, bytes=outcome.bytes_received)
            return outcome

    # -- PROBING ----------------------------------------------------------

    async def _probe(self, url: str) -> RelayProbe:
        try:
            response = await self.fetcher.head(url)
        except NetworkError as e:
            raise ProbeError(
                f"❌ Could not reach the server. {describe_network_error(e)}",
                detail=str(e),
            ) from e

        if not response.ok:
            raise ProbeError(f"❌ Could not access the file (HTTP {response.status}).")

        declared_size = _parse_content_length(response.headers.get("content-length"))
        if declared_size is None:
            raise ProbeError(
                "❌ Could not determine the file size: "
                "the server did not send a Content-Length header."
            )

        content_type = mime_type(response.headers.get("content-type"))
        file_name = unquote(resolve_file_name(url, response.headers))
        return RelayProbe(
            declared_size=declared_size,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            file_name=file_name,
        )

    # -- SIZE_CHECK -------------------------------------------------------

    def _check_size(self, probe: RelayProbe) -> None:
        if probe.declared_size > self.max_file_size:
            raise SizeLimitExceeded(
                f"❌ File is too large: {format_size(probe.declared_size)} "
                f"(limit is {format_size(self.max_file_size)}).",
                size=probe.declared_size,
                limit=self.max_file_size,
            )

    # -- DOWNLOADING ------------------------------------------------------

    async def _download(
        self, request: RelayRequest, probe: RelayProbe, reporter: ProgressReporter
    ) -> bytes:
        progress = reporter.state
        buffer = bytearray()
        try:
            async with self.fetcher.stream(request.source_url) as response:
                if not response.ok or response.chunks is None:
                    raise DownloadError(
                        f"❌ Failed to download the file (HTTP {response.status})."
                    )

                await reporter.start(self._progress_text(probe, 0, 0))

                async for chunk in response.chunks:
                    buffer.extend(chunk)
                    progress.bytes_received = len(buffer)
                    if progress.bytes_received > self.max_file_size:
                        raise DownloadError(
                            "❌ Download stopped: the file is larger than "
                            f"{format_size(self.max_file_size)}.",
                            detail=f"received {progress.bytes_received} bytes, "
                            f"declared {probe.declared_size}",
                        )

                    percent = _percent(progress.bytes_received, probe.declared_size)
                    if reporter.should_report(percent):
                        await reporter.report(
                            percent,
                            self._progress_text(probe, percent, progress.bytes_received),
                        )
        except NetworkError as e:
            raise DownloadError(
                f"❌ Download failed. {describe_network_error(e)}", detail=str(e)
            ) from e

        # Only one full copy of the body may be alive once uploading starts.
        data = bytes(buffer)
        del buffer

        progress.last_reported_percent = 100
        await reporter.publish(self._complete_text(probe))
        return data

    # -- UPLOADING --------------------------------------------------------

    async def _upload(
        self,
        channel: ConversationChannel,
        probe: RelayProbe,
        data: bytes,
        reporter: ProgressReporter,
    ) -> None:
        size_text = format_size(len(data))
        try:
            await channel.send_chat_action(ChatAction.UPLOAD_DOCUMENT)
        except NotificationError as e:
            logger.warning("Could not send upload chat action: %s", e)

        try:
            await channel.send_document(
                data,
                file_name=probe.file_name,
                content_type=probe.content_type,
                caption=f"📎 {probe.file_name}\n📦 {size_text}",
            )
        except UploadError as e:
            raise UploadError(
                f"❌ Failed to upload {probe.file_name}. {e.user_message}",
                detail=e.detail,
            ) from e
        except Exception as e:
            logger.error("Unexpected upload failure: %s", e, exc_info=True)
            raise UploadError(
                f"❌ Failed to upload {probe.file_name}. {sanitize_error(e)}",
                detail=repr(e),
            ) from e

        await reporter.publish(f"✅ Upload complete: {probe.file_name} ({size_text})")

    # -- FAILED -----------------------------------------------------------

    async def _report_failure(
        self,
        channel: ConversationChannel,
        reporter: ProgressReporter,
        error: RelayError,
    ) -> None:
        if await reporter.publish(error.user_message):
            return
        await self._notify(channel, error.user_message)

    async def _notify(self, channel: ConversationChannel, text: str) -> None:
        try:
            await channel.send_message(text)
        except NotificationError as e:
            logger.warning("Could not notify chat %s: %s", channel.chat_id, e)

    # -- Message texts ----------------------------------------------------

    @staticmethod
    def _info_text(request: RelayRequest, probe: RelayProbe) -> str:
        return (
            "📄 File information\n"
            f"Name: {probe.file_name}\n"
            f"Size: {format_size(probe.declared_size)}\n"
            f"Type: {probe.content_type}\n"
            f"URL: {truncate_url(request.source_url)}"
        )

    @staticmethod
    def _progress_text(probe: RelayProbe, percent: int, received: int) -> str:
        return (
            f"⬇️ Downloading {probe.file_name}\n"
            f"{render_progress_bar(percent)} {percent}%\n"
            f"{format_size(received)} / {format_size(probe.declared_size)}"
        )

    @staticmethod
    def _complete_text(probe: RelayProbe) -> str:
        return (
            "✅ Download complete\n"
            f"{render_progress_bar(100)} 100%\n"
            f"⬆️ Uploading {probe.file_name}..."
        )


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        size = int(value.strip())
    except ValueError:
        return None
    return size if size >= 0 else None


def _percent(received: int, declared: int) -> int:
    """Floor percentage of the HEAD-declared size, capped at 100."""
    if declared <= 0:
        return 100
    return min(100, received * 100 // declared)
