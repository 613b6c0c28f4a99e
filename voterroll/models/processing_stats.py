"""
Run statistics for one document: page outcomes, model usage, timings.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from ..utils.timing import format_duration


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class AIUsage:
    """
    Vision model calls across all page tasks.

    Page tasks run on worker threads, so every mutation takes the lock.
    Per-model counters show how often the rotation had to move on.
    """
    provider: str = ""
    calls_count: int = 0
    failed_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    calls_by_model: Counter = field(default_factory=Counter)
    failures_by_model: Counter = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_call(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost_usd: Optional[float] = None
    ) -> None:
        with self._lock:
            self.calls_count += 1
            self.calls_by_model[model] += 1
            self.total_input_tokens += input_tokens
            self.total_output_tokens += output_tokens
            if cost_usd is not None:
                self.total_cost_usd += cost_usd

    def add_failure(self, model: str) -> None:
        with self._lock:
            self.failed_calls += 1
            self.failures_by_model[model] += 1

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "provider": self.provider,
                "calls_count": self.calls_count,
                "failed_calls": self.failed_calls,
                "total_input_tokens": self.total_input_tokens,
                "total_output_tokens": self.total_output_tokens,
                "total_cost_usd": round(self.total_cost_usd, 6),
                "calls_by_model": dict(self.calls_by_model),
                "failures_by_model": dict(self.failures_by_model),
            }


@dataclass
class PageTiming:
    """Outcome of one page task."""
    page_number: int = 0
    strategy: str = ""
    voters_extracted: int = 0
    voters_valid: int = 0  # well-formed EPIC
    failed: bool = False
    total_time_sec: float = 0.0


@dataclass
class ProcessingStats:
    """
    Totals for one document.

    ``source`` is "remote" when the conversion endpoint answered and
    "local" when pages were extracted here.
    """
    pdf_name: str = ""
    source: str = ""
    status: str = "pending"  # pending, processing, completed, failed
    error_message: str = ""
    started_at: str = ""
    completed_at: str = ""

    total_pages: int = 0
    pages_skipped: int = 0
    total_voters: int = 0
    valid_voters: int = 0
    total_time_sec: float = 0.0

    ai_usage: AIUsage = field(default_factory=AIUsage)
    page_timings: List[PageTiming] = field(default_factory=list)

    def start(self) -> None:
        self.started_at = _utc_now()
        self.status = "processing"

    def complete(self) -> None:
        self.completed_at = _utc_now()
        self.status = "completed"

    def fail(self, error: str) -> None:
        self.completed_at = _utc_now()
        self.status = "failed"
        self.error_message = error

    def add_page_timing(self, page_timing: PageTiming) -> None:
        self.page_timings.append(page_timing)

    @property
    def pages_processed(self) -> int:
        return len(self.page_timings)

    @property
    def pages_failed(self) -> int:
        return sum(1 for pt in self.page_timings if pt.failed)

    @property
    def epic_valid_rate(self) -> float:
        """Percent of voters whose EPIC is 3 letters + 7 digits."""
        return 100.0 * self.valid_voters / self.total_voters if self.total_voters else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pdf_name": self.pdf_name,
            "source": self.source,
            "status": self.status,
            "error_message": self.error_message,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "counts": {
                "total_pages": self.total_pages,
                "pages_skipped": self.pages_skipped,
                "pages_processed": self.pages_processed,
                "pages_failed": self.pages_failed,
                "total_voters": self.total_voters,
                "valid_voters": self.valid_voters,
                "epic_valid_rate_percent": round(self.epic_valid_rate, 2),
            },
            "total_time_sec": round(self.total_time_sec, 3),
            "ai_usage": self.ai_usage.to_dict(),
            "pages": [asdict(pt) for pt in self.page_timings],
        }

    def summary_str(self) -> str:
        lines = [
            f"{self.pdf_name}: {self.status} via {self.source or 'n/a'} "
            f"in {format_duration(self.total_time_sec)}",
            f"  voters {self.total_voters} (EPIC valid {self.epic_valid_rate:.1f}%)",
        ]
        if self.source == "local":
            lines.append(
                f"  pages {self.pages_processed}/{self.total_pages}, "
                f"skipped {self.pages_skipped}, failed {self.pages_failed}"
            )
        if self.ai_usage.calls_count:
            lines.append(
                f"  model calls {self.ai_usage.calls_count} "
                f"({self.ai_usage.failed_calls} failed), ${self.ai_usage.total_cost_usd:.4f}"
            )
        if self.error_message:
            lines.append(f"  error: {self.error_message}")
        return "\n".join(lines)
