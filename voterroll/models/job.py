"""
Page job models used by the strategy coordinator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Any

from .token import PositionedToken


class JobState(str, Enum):
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PageInput:
    """
    Everything a strategy may need for one page.

    Image strategies read image_bytes; the digital-text strategy reads
    tokens (PyMuPDF words) or text_items (raw positioned text items).
    """
    page_number: int
    image_bytes: Optional[bytes] = None
    tokens: Optional[List[PositionedToken]] = None
    text_items: Optional[List[dict[str, Any]]] = None
    width: float = 0.0
    height: float = 0.0


@dataclass
class ExtractionJob:
    """One page awaiting processing. Jobs are never retried."""
    page_number: int
    state: JobState = JobState.QUEUED
    voters_found: int = 0
    error: str = ""
    elapsed_sec: float = 0.0

    def start(self) -> None:
        self.state = JobState.IN_FLIGHT

    def finish(self, voters_found: int, elapsed_sec: float) -> None:
        self.state = JobState.DONE
        self.voters_found = voters_found
        self.elapsed_sec = elapsed_sec

    def fail(self, error: str, elapsed_sec: float = 0.0) -> None:
        self.state = JobState.FAILED
        self.error = error
        self.elapsed_sec = elapsed_sec


class StatusState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProcessingStatus:
    """User-facing progress for the current upload."""
    total: int = 0
    current: int = 0
    message: str = ""
    state: StatusState = StatusState.IDLE
    history: List[str] = field(default_factory=list, repr=False)

    @property
    def percent(self) -> float:
        return (self.current / self.total * 100) if self.total > 0 else 0.0

    def update(self, message: str, state: StatusState = StatusState.PROCESSING, **kwargs: int) -> None:
        self.message = message
        self.state = state
        for key in ("total", "current"):
            if key in kwargs:
                setattr(self, key, kwargs[key])
        self.history.append(message)
