"""Small shared helpers: human-readable durations/counts and request timeouts."""

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


def format_duration(ms: float) -> str:
    """
    Render a millisecond duration for progress lines.

    Examples:
        format_duration(450)    -> "450ms"
        format_duration(2500)   -> "2.5s"
        format_duration(75000)  -> "1m 15s"
    """
    if ms < 1000:
        return f"{int(ms)}ms"

    seconds = ms / 1000
    # Anything that would print as "60.0s" is shown in minutes
    if seconds < 59.95:
        return f"{seconds:.1f}s"

    minutes, remaining = divmod(round(seconds), 60)
    return f"{minutes}m {remaining}s"


def format_count(count: int, singular: str, plural: Optional[str] = None) -> str:
    """format_count(1, "chunk") -> "1 chunk"; format_count(3, "chunk") -> "3 chunks"."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Cut ``text`` to at most ``max_length`` characters, ending with ``suffix``."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - len(suffix))] + suffix


async def run_with_timeout(awaitable: Awaitable[T], timeout_ms: int) -> T:
    """
    Await ``awaitable`` for at most ``timeout_ms`` milliseconds.

    On expiry the underlying task is cancelled (releasing the in-flight HTTP
    request) and ``TimeoutError`` is raised. Nothing the caller accumulated
    before this call is touched.
    """
    return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
