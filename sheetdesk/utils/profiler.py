"""
Timing utilities for sheetdesk.

The gateway wraps every remote call in `profile_block` so call latency ends up
in the logs next to the operation name.

Usage example:
    from sheetdesk.utils.profiler import profile_block

    with profile_block("getOrders") as stats:
        await send()

    print(stats.duration_seconds)
"""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Any, Generator


@dataclass
class ProfileStats:
    """
    Container for timing measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return round(self.duration_seconds * 1000, 1)


@contextlib.contextmanager
def profile_block(label: str) -> Generator[ProfileStats, None, None]:
    """
    Measure the wall-clock duration of a block (perf_counter).

    The stats object is filled in when the block exits, including when it
    exits through an exception.
    """
    stats = ProfileStats(label=label)
    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts


__all__ = ["ProfileStats", "profile_block"]
