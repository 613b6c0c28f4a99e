"""
Wall-clock helpers for document and page runs.
"""

from __future__ import annotations

import time


class Timer:
    """
    Monotonic stopwatch started on creation.

    The coordinator keeps one per document and one per page task; each
    page task owns its timer, so no locking is needed.
    """

    def __init__(self):
        self._start = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Seconds since creation or the last restart."""
        return time.perf_counter() - self._start

    def restart(self) -> float:
        """Return the elapsed seconds and start over."""
        now = time.perf_counter()
        elapsed, self._start = now - self._start, now
        return elapsed


def format_duration(seconds: float) -> str:
    """Short human form: 850ms, 12.40s, 3m 05s."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs:02d}s"
