"""
Data models for the electoral roll digitizer.

These models represent the core data structures and are designed
to be easily serializable to JSON and to the tabular export format.
"""

from .voter import Voter, RawExtractionRecord, RECORD_TEXT_FIELDS
from .token import PositionedToken
from .job import ExtractionJob, JobState, PageInput, ProcessingStatus, StatusState
from .processing_stats import ProcessingStats, PageTiming, AIUsage

__all__ = [
    # Voter models
    "Voter",
    "RawExtractionRecord",
    "RECORD_TEXT_FIELDS",

    # Geometry
    "PositionedToken",

    # Coordinator jobs
    "ExtractionJob",
    "JobState",
    "PageInput",
    "ProcessingStatus",
    "StatusState",

    # Processing stats
    "ProcessingStats",
    "PageTiming",
    "AIUsage",
]
