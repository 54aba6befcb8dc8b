import logging
import os
from typing import AsyncIterator, Dict, List, Optional
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BOT_TOKEN"] = "123456:test-token"
os.environ["WEBHOOK_SECRET"] = "test-secret"
os.environ["WEBHOOK_URL"] = "https://bot.example.com"

from src.bot.channel import ConversationChannel, MessageHandle
from src.services.http_fetcher import FetchResponse, StreamResponse


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture
def mock_channel():
    """A ConversationChannel whose calls are recorded by AsyncMocks."""
    channel = AsyncMock(spec=ConversationChannel)
    channel.chat_id = 67890
    message_ids = iter(range(100, 10_000))

    async def _send_message(text):
        return MessageHandle(chat_id=67890, message_id=next(message_ids))

    channel.send_message.side_effect = _send_message
    channel.send_document.return_value = MessageHandle(chat_id=67890, message_id=99)
    return channel


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakeFetcher:
    """Stands in for HttpFetcher: serves a canned HEAD and a chunked GET body."""

    def __init__(
        self,
        head_status: int = 200,
        head_headers: Optional[Dict[str, str]] = None,
        get_status: int = 200,
        chunks: Optional[List[bytes]] = None,
        clock: Optional[FakeClock] = None,
        seconds_per_chunk: float = 0.0,
        head_error: Optional[Exception] = None,
        stream_error: Optional[Exception] = None,
        fail_after_chunks: Optional[int] = None,
    ):
        self.head_status = head_status
        self.head_headers = head_headers or {}
        self.get_status = get_status
        self.chunks = chunks or []
        self.clock = clock
        self.seconds_per_chunk = seconds_per_chunk
        self.head_error = head_error
        self.stream_error = stream_error
        self.fail_after_chunks = fail_after_chunks
        self.head_calls: List[str] = []
        self.get_calls: List[str] = []

    async def head(self, url: str) -> FetchResponse:
        self.head_calls.append(url)
        if self.head_error is not None:
            raise self.head_error
        return FetchResponse(status=self.head_status, headers=self.head_headers)

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        from src.core.errors import NetworkError

        for index, chunk in enumerate(self.chunks):
            if self.fail_after_chunks is not None and index >= self.fail_after_chunks:
                raise NetworkError("connection reset by peer")
            if self.clock is not None:
                self.clock.advance(self.seconds_per_chunk)
            yield chunk

    @asynccontextmanager
    async def stream(self, url: str):
        self.get_calls.append(url)
        if self.stream_error is not None:
            raise self.stream_error
        yield StreamResponse(
            status=self.get_status,
            headers=self.head_headers,
            chunks=self._iter_chunks(),
        )

    async def aclose(self) -> None:
        pass


@pytest.fixture
def make_fetcher(clock):
    """Factory for FakeFetcher instances sharing the test clock."""

    def _make(**kwargs) -> FakeFetcher:
        kwargs.setdefault("clock", clock)
        return FakeFetcher(**kwargs)

    return _make
