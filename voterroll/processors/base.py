"""
Strategy contract and the context shared with the coordinator.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from ..config import Config, get_config
from ..logger import get_logger
from ..models import PageInput, ProcessingStats, ProcessingStatus, Voter


@dataclass
class ProcessingContext:
    """
    State for one uploaded document.

    The coordinator owns it; strategies read the config and add model
    usage to ``stats.ai_usage`` (which locks internally, since page tasks
    run on worker threads).
    """

    config: Config = field(default_factory=get_config)
    pdf_path: Optional[Path] = None
    pdf_name: Optional[str] = None

    stats: ProcessingStats = field(default_factory=ProcessingStats)
    status: ProcessingStatus = field(default_factory=ProcessingStatus)

    def set_pdf(self, pdf_path: Path) -> None:
        self.pdf_path = Path(pdf_path)
        self.pdf_name = self.pdf_path.stem
        self.stats.pdf_name = self.pdf_path.name


class BaseStrategy(ABC):
    """
    One way of turning a page into voters.

    Subclasses declare what the page source must load for them
    (``needs_image``, ``needs_text``) and implement ``extract``. The
    coordinator calls ``validate`` once before the first page.
    """

    name: str = "BaseStrategy"

    needs_image: bool = True
    needs_text: bool = False

    def __init__(self, context: ProcessingContext):
        self.context = context
        self.config = context.config
        self.logger = get_logger(self.name)

    def _log(self, level: int, message: str, **fields: Any) -> None:
        extra = " ".join(f"{k}={v}" for k, v in fields.items())
        self.logger.log(level, f"{message} {extra}".strip())

    def log_debug(self, message: str, **fields: Any) -> None:
        """Only emitted with DEBUG=1; page-level chatter goes here."""
        if self.config.debug:
            self._log(logging.DEBUG, message, **fields)

    def log_info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def log_warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        if error is None:
            self.logger.error(message)
        else:
            # Tracebacks only in debug mode; a bad page is routine
            self.logger.error(f"{message}: {error}", exc_info=self.config.debug)

    def validate(self) -> bool:
        """Check prerequisites (OCR engine, API key). Logs why on failure."""
        return True

    @abstractmethod
    def extract(self, page: PageInput) -> List[Voter]:
        """Voters found on one page, possibly none."""
