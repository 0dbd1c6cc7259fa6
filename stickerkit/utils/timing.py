"""
Timing helpers for the removal and slicing passes.

Edge maps, hole filling and island cleanup are measured with
``timed_operation`` and reported at DEBUG level, so slow stickers show up
in the log when DEBUG=1.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class TimingResult:
    """Duration and outcome of one measured pass."""
    name: str
    duration_sec: float = 0.0
    success: bool = True
    error: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.name}: {format_duration(self.duration_sec)}"
        if not self.success:
            text += f" (failed: {self.error})"
        return text


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.DEBUG
) -> Iterator[TimingResult]:
    """
    Measure the wrapped block.

    Usage:
        with timed_operation("Edge map", logger) as timing:
            magnitude = sobel_magnitude(bitmap.pixels)
        print(timing)

    The yielded result is filled in when the block exits, including when
    it raises; the exception is re-raised.
    """
    result = TimingResult(name=name)
    start = time.perf_counter()
    try:
        yield result
    except Exception as e:
        result.success = False
        result.error = str(e)
        raise
    finally:
        result.duration_sec = time.perf_counter() - start
        if logger is not None:
            logger.log(log_level, str(result))


def format_duration(seconds: float) -> str:
    """Render seconds as us / ms / s / m s depending on magnitude."""
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.0f}us"
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(seconds, 60)
    return f"{int(minutes)}m {secs:.1f}s"
