"""
Strategy coordinator.

Remote whole-document conversion first; on any failure of that path,
local page-by-page extraction with a bounded number of pages in flight.

Local pages are drained in batches of ``concurrency``. Each batch gets
its own thread pool and is awaited fully before the next one starts, which
caps memory at roughly concurrency x one rendered page. Page tasks return
their voters to the coordinator thread, which is the only writer of the
result list. A failed page contributes nothing and is never retried.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import LOCAL_STRATEGIES
from ..exceptions import (
    ConfigurationError,
    ImportDataError,
    ProcessingAbortedError,
    RemoteConversionError,
)
from ..logger import get_logger
from ..models import ExtractionJob, JobState, PageTiming, ProcessingStats, StatusState, Voter
from ..utils.tabular import import_voters
from ..utils.timing import Timer
from .base import BaseStrategy, ProcessingContext
from .digital_text import DigitalTextStrategy
from .image_ocr import ImageOCRStrategy
from .pdf_extractor import PageSource, PdfPageSource
from .remote_converter import RemoteConverter
from .vision_model import RemoteVisionStrategy

PageCallback = Callable[[int, List[Voter]], None]
StatusCallback = Callable[[ProcessingContext], None]


def create_strategy(
    name: str,
    context: ProcessingContext,
    include_photos: Optional[bool] = None
) -> BaseStrategy:
    """Build the local strategy selected by name (ocr, digital, vision)."""
    key = (name or "").strip().lower()
    if key == "ocr":
        return ImageOCRStrategy(context, include_photos=include_photos)
    if key == "digital":
        return DigitalTextStrategy(context)
    if key == "vision":
        return RemoteVisionStrategy(context, include_photos=include_photos)
    raise ConfigurationError(
        f"Unknown local strategy '{name}' (expected one of {', '.join(LOCAL_STRATEGIES)})",
        config_key="LOCAL_STRATEGY",
    )


def make_batches(pages: List[int], size: int) -> List[List[int]]:
    return [pages[i:i + size] for i in range(0, len(pages), size)]


@dataclass
class ExtractionResult:
    """Outcome of one document."""
    voters: List[Voter]
    source: str  # remote or local
    stats: ProcessingStats
    jobs: List[ExtractionJob] = field(default_factory=list)
    batches: List[List[int]] = field(default_factory=list)


class StrategyCoordinator:
    """
    Run one document through remote conversion or local fallback.

    Usage:
        coordinator = StrategyCoordinator(ProcessingContext())
        result = coordinator.process(Path("roll.pdf"))
    """

    name = "StrategyCoordinator"

    def __init__(
        self,
        context: ProcessingContext,
        strategy: Optional[BaseStrategy] = None,
        converter: Optional[RemoteConverter] = None,
        page_source_factory: Optional[Callable[[Path], PageSource]] = None,
        on_page_complete: Optional[PageCallback] = None,
        on_status: Optional[StatusCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        use_remote: bool = True,
    ):
        self.context = context
        self.config = context.config
        self.logger = get_logger(self.name)

        settings = self.config.coordinator
        self.concurrency = settings.concurrency
        self.skip_leading_pages = settings.skip_leading_pages
        if self.concurrency < 1:
            raise ConfigurationError("CONCURRENCY must be at least 1", config_key="CONCURRENCY")
        if self.skip_leading_pages < 0:
            raise ConfigurationError("SKIP_LEADING_PAGES must not be negative", config_key="SKIP_LEADING_PAGES")

        self.strategy = strategy
        self.converter = converter
        self.use_remote = use_remote
        self.page_source_factory = page_source_factory or (
            lambda path: PdfPageSource(path, settings.render_scale, settings.render_jpeg_quality)
        )
        self.on_page_complete = on_page_complete
        self.on_status = on_status
        self.cancel_event = cancel_event

    def _set_status(self, message: str, state: StatusState = StatusState.PROCESSING, **kwargs: int) -> None:
        self.context.status.update(message, state, **kwargs)
        if self.on_status:
            self.on_status(self.context)

    def _check_cancelled(self, processed: int, total: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ProcessingAbortedError(items_processed=processed, items_total=total)

    def process(self, pdf_path: Path) -> ExtractionResult:
        """
        Extract every voter from a document.

        Raises:
            ProcessingAbortedError: If the cancel event was set
            PDFExtractionError: If local fallback cannot open the PDF
            ConfigurationError: If the local strategy cannot run
        """
        pdf_path = Path(pdf_path)
        self.context.set_pdf(pdf_path)
        stats = self.context.stats
        stats.start()
        timer = Timer()

        try:
            voters = self.try_remote(pdf_path) if self.use_remote else None
            if voters is not None:
                result = ExtractionResult(voters=voters, source="remote", stats=stats)
                self._set_status("Extraction Complete!", StatusState.COMPLETE, total=0, current=0)
            else:
                result = self.process_locally(pdf_path)
        except Exception as e:
            stats.total_time_sec = timer.elapsed
            stats.fail(str(e))
            self._set_status(f"Critical Error: {e}", StatusState.ERROR)
            raise

        stats.source = result.source
        stats.total_voters = len(result.voters)
        stats.valid_voters = sum(1 for v in result.voters if v.epic_valid)
        stats.total_time_sec = timer.elapsed
        stats.complete()
        self.logger.info(stats.summary_str())
        return result

    def try_remote(self, pdf_path: Path) -> Optional[List[Voter]]:
        """
        Whole-document conversion.

        Returns:
            Voters, or None when the remote path failed and local
            extraction should take over
        """
        converter = self.converter or RemoteConverter(self.config.remote)
        self._set_status("Connecting to Cloud Engine...", total=0, current=0)

        try:
            body = converter.convert(pdf_path)
            self._set_status("Processing Response Data...")
            voters = import_voters(body)
        except (RemoteConversionError, ImportDataError) as e:
            self.logger.warning(f"Cloud API failed, switching to local: {e}")
            self._set_status("Switching to Local Engine...")
            return None

        self.logger.info(f"Remote conversion returned {len(voters)} voters")
        return voters

    def process_locally(self, pdf_path: Path) -> ExtractionResult:
        strategy = self.strategy or create_strategy(
            self.config.coordinator.local_strategy, self.context
        )
        if not strategy.validate():
            raise ConfigurationError(
                f"{strategy.name} prerequisites not met", config_key="LOCAL_STRATEGY"
            )

        with self.page_source_factory(pdf_path) as source:
            return self.run_pages(source, strategy)

    def run_pages(self, source: PageSource, strategy: BaseStrategy) -> ExtractionResult:
        """Drain the page queue batch by batch."""
        stats = self.context.stats
        total = source.page_count
        # Cover and index pages carry no voter cards
        queue = list(range(self.skip_leading_pages + 1, total + 1))
        stats.total_pages = total
        stats.pages_skipped = min(self.skip_leading_pages, total)

        jobs: Dict[int, ExtractionJob] = {n: ExtractionJob(n) for n in queue}
        batches = make_batches(queue, self.concurrency)
        voters: List[Voter] = []
        processed = 0

        self.logger.info(
            f"Local extraction: {len(queue)} of {total} pages with {strategy.name}, "
            f"concurrency={self.concurrency}"
        )
        self._set_status("Starting Local Extraction...", total=len(queue), current=0)

        for batch in batches:
            self._check_cancelled(processed, len(queue))

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                future_to_page = {
                    executor.submit(self._run_page, source, strategy, jobs[n], len(queue)): n
                    for n in batch
                }

                for future in as_completed(future_to_page):
                    page_number = future_to_page[future]
                    page_voters = future.result()
                    job = jobs[page_number]

                    voters.extend(page_voters)
                    processed += 1
                    stats.add_page_timing(PageTiming(
                        page_number=page_number,
                        strategy=strategy.name,
                        voters_extracted=len(page_voters),
                        voters_valid=sum(1 for v in page_voters if v.epic_valid),
                        failed=job.state == JobState.FAILED,
                        total_time_sec=job.elapsed_sec,
                    ))
                    self._set_status(
                        f"Processing Page {page_number} of {total}...", current=processed
                    )
                    if self.on_page_complete:
                        self.on_page_complete(page_number, page_voters)

        if voters:
            self._set_status("Extraction Complete!", StatusState.COMPLETE)
        else:
            self._set_status(
                "No voters found. Please try a different PDF or Quality.", StatusState.COMPLETE
            )

        return ExtractionResult(
            voters=voters,
            source="local",
            stats=stats,
            jobs=[jobs[n] for n in queue],
            batches=batches,
        )

    def _run_page(
        self,
        source: PageSource,
        strategy: BaseStrategy,
        job: ExtractionJob,
        total: int
    ) -> List[Voter]:
        """Page task: load, extract, and hand the sublist back."""
        self._check_cancelled(0, total)
        job.start()
        timer = Timer()

        try:
            page = source.load_page(
                job.page_number,
                with_image=strategy.needs_image,
                with_text=strategy.needs_text,
            )
            page_voters = strategy.extract(page)
        except Exception as e:
            job.fail(str(e), timer.elapsed)
            self.logger.error(f"Error processing page {job.page_number}: {e}")
            return []

        job.finish(len(page_voters), timer.elapsed)
        self.logger.debug(
            f"Page {job.page_number}: {len(page_voters)} voters in {job.elapsed_sec:.2f}s"
        )
        return page_voters
