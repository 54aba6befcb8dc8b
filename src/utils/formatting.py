"""
Text formatting utilities for relay status messages.

Contains:
- Human-readable byte sizes
- Fixed-width progress bars
- URL shortening for message bodies
"""

SIZE_UNITS = ("B", "KB", "MB", "GB")

PROGRESS_BAR_WIDTH = 20
PROGRESS_FILLED = "█"
PROGRESS_EMPTY = "░"

URL_DISPLAY_LIMIT = 50


def format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable size.

    The unit is picked with ``floor(log(bytes) / log(1024))`` and the
    magnitude is rounded to two decimals, dropping trailing zeros.

    >>> format_size(0)
    '0 B'
    >>> format_size(1536)
    '1.5 KB'
    """
    if num_bytes <= 0:
        return "0 B"

    # Integer form of floor(log(bytes) / log(1024)), free of float drift at
    # exact powers of 1024.
    index = 0
    while num_bytes >= 1024 ** (index + 1) and index < len(SIZE_UNITS) - 1:
        index += 1
    value = num_bytes / 1024**index
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number} {SIZE_UNITS[index]}"


def render_progress_bar(percent: int) -> str:
    """Render ``percent`` as a bar of PROGRESS_BAR_WIDTH cells.

    Callers must pass a value in [0, 100]; it is not clamped here.
    """
    filled = percent * PROGRESS_BAR_WIDTH // 100
    return PROGRESS_FILLED * filled + PROGRESS_EMPTY * (PROGRESS_BAR_WIDTH - filled)


def truncate_url(url: str, limit: int = URL_DISPLAY_LIMIT) -> str:
    """Shorten long URLs for display in chat."""
    if len(url) <= limit:
        return url
    return url[:limit] + "..."
