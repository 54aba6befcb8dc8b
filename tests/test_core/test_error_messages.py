"""Tests for user-facing error message sanitization."""

import httpx
import pytest

from src.core.error_messages import describe_network_error, sanitize_error
from src.core.errors import NetworkError


class TestSanitizeError:
    def test_none_returns_default(self):
        assert sanitize_error(None) == "Something went wrong. Please try again later."

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (httpx.ConnectTimeout("slow"), "The server took too long to respond."),
            (httpx.UnsupportedProtocol("ftp"), "Only http:// and https:// links are supported."),
            (httpx.ConnectError("refused"), "Could not connect to the server."),
            (ConnectionResetError("reset"), "Could not connect to the service. Please try again in a moment."),
            (TimeoutError(), "The request took too long to complete. Please try again."),
        ],
    )
    def test_type_mapping(self, exc, expected):
        assert sanitize_error(exc) == expected

    def test_keyword_match(self):
        exc = RuntimeError("Flood control exceeded. Retry in 7 seconds")

        assert sanitize_error(exc) == "Too many requests. Please wait a moment and try again."

    def test_internal_details_never_leak(self):
        exc = RuntimeError("token 123456:SECRET rejected by /internal/path")

        message = sanitize_error(exc)

        assert "SECRET" not in message
        assert "/internal/path" not in message

    def test_context_prefix(self):
        message = sanitize_error(KeyError("x"), context="handling your message")

        assert message.startswith("Sorry, there was an error handling your message. ")


class TestDescribeNetworkError:
    def test_uses_wrapped_cause(self):
        try:
            try:
                raise httpx.ConnectError("[Errno -2] Name or service not known")
            except httpx.ConnectError as e:
                raise NetworkError("HEAD failed") from e
        except NetworkError as wrapped:
            assert describe_network_error(wrapped) == "Could not connect to the server."

    def test_without_cause_uses_message(self):
        assert (
            describe_network_error(NetworkError("read timed out"))
            == "The request took too long to complete. Please try again."
        )
