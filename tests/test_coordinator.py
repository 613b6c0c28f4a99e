import threading
import time
from pathlib import Path

import pytest

from voterroll.exceptions import ConfigurationError, ProcessingAbortedError, RemoteConversionError
from voterroll.models import JobState, PageInput, StatusState, Voter
from voterroll.processors import (
    BaseStrategy,
    ProcessingContext,
    StrategyCoordinator,
    create_strategy,
    make_batches,
)
from voterroll.processors.digital_text import DigitalTextStrategy
from voterroll.processors.pdf_extractor import PageSource
from voterroll.utils.tabular import export_voters

PDF = Path("roll.pdf")


class FakeSource(PageSource):
    def __init__(self, pages=10):
        self.pages = pages
        self.loaded = []
        self.closed = False

    @property
    def page_count(self):
        return self.pages

    def load_page(self, page_number, with_image=True, with_text=False):
        self.loaded.append(page_number)
        return PageInput(page_number=page_number, image_bytes=b"jpeg")

    def close(self):
        self.closed = True


class CountingStrategy(BaseStrategy):
    """Returns per_page voters per page and records how many pages run at once."""

    name = "CountingStrategy"

    def __init__(self, context, per_page=3, fail_on=(), ok=True):
        super().__init__(context)
        self.per_page = per_page
        self.fail_on = set(fail_on)
        self.ok = ok
        self.lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.events = []

    def validate(self):
        return self.ok

    def extract(self, page):
        with self.lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.events.append(("start", page.page_number))
        try:
            time.sleep(0.02)
            if page.page_number in self.fail_on:
                raise RuntimeError("page exploded")
            return [
                Voter(sl_no=str(page.page_number * 100 + i), epic_no=f"ABC{page.page_number:03d}{i:04d}")
                for i in range(self.per_page)
            ]
        finally:
            with self.lock:
                self.in_flight -= 1
                self.events.append(("end", page.page_number))


class FakeConverter:
    def __init__(self, body=None, error=None):
        self.body = body
        self.error = error
        self.calls = 0

    def convert(self, pdf_path):
        self.calls += 1
        if self.error:
            raise self.error
        return self.body


def coordinator(strategy=None, source=None, **kwargs):
    context = kwargs.pop("context", None) or ProcessingContext()
    strategy = strategy or CountingStrategy(context)
    source = source or FakeSource()
    coord = StrategyCoordinator(
        context,
        strategy=strategy,
        page_source_factory=lambda path: source,
        **kwargs,
    )
    return coord, strategy, source


def test_local_pages_skip_leading_and_batch():
    coord, strategy, source = coordinator(use_remote=False)

    result = coord.process(PDF)

    assert result.source == "local"
    assert result.batches == [[3, 4], [5, 6], [7, 8], [9, 10]]
    assert sorted(source.loaded) == list(range(3, 11))
    assert len(result.voters) == 8 * 3
    assert strategy.max_in_flight <= 2
    assert source.closed

    stats = result.stats
    assert stats.status == "completed"
    assert stats.total_pages == 10
    assert stats.pages_skipped == 2
    assert stats.pages_processed == 8
    assert stats.total_voters == 24
    assert coord.context.status.state == StatusState.COMPLETE
    assert coord.context.status.message == "Extraction Complete!"


def test_next_batch_waits_for_whole_batch():
    coord, strategy, _ = coordinator(use_remote=False)
    result = coord.process(PDF)

    position = {event: i for i, event in enumerate(strategy.events)}
    for current, following in zip(result.batches, result.batches[1:]):
        last_end = max(position[("end", n)] for n in current)
        first_start = min(position[("start", n)] for n in following)
        assert last_end < first_start


def test_concurrency_from_config():
    context = ProcessingContext()
    context.config.coordinator.concurrency = 3
    context.config.coordinator.skip_leading_pages = 0
    coord, strategy, _ = coordinator(context=context, source=FakeSource(pages=7), use_remote=False)

    result = coord.process(PDF)

    assert result.batches == [[1, 2, 3], [4, 5, 6], [7]]
    assert strategy.max_in_flight <= 3
    assert len(result.voters) == 21


def test_failed_page_contributes_nothing():
    context = ProcessingContext()
    coord, _, _ = coordinator(strategy=CountingStrategy(context, fail_on={4}), context=context, use_remote=False)

    result = coord.process(PDF)

    assert len(result.voters) == 7 * 3
    failed = [job for job in result.jobs if job.state == JobState.FAILED]
    assert [job.page_number for job in failed] == [4]
    assert "page exploded" in failed[0].error
    assert result.stats.pages_failed == 1
    assert all(job.state == JobState.DONE for job in result.jobs if job.page_number != 4)


def test_page_callback_sees_each_page():
    seen = {}
    coord, _, _ = coordinator(
        use_remote=False,
        on_page_complete=lambda n, voters: seen.__setitem__(n, len(voters)),
    )
    coord.process(PDF)

    assert seen == {n: 3 for n in range(3, 11)}


def test_no_voters_message():
    context = ProcessingContext()
    coord, _, _ = coordinator(strategy=CountingStrategy(context, per_page=0), context=context, use_remote=False)

    result = coord.process(PDF)

    assert result.voters == []
    assert context.status.state == StatusState.COMPLETE
    assert context.status.message.startswith("No voters found.")


def test_remote_success_skips_local():
    remote_voters = [Voter(sl_no="1", epic_no="ABC1234567", name_en="Ravi", original_page=3)]
    converter = FakeConverter(body=export_voters(remote_voters))
    coord, _, source = coordinator(converter=converter)

    result = coord.process(PDF)

    assert result.source == "remote"
    assert [v.epic_no for v in result.voters] == ["ABC1234567"]
    assert source.loaded == []
    assert coord.context.status.history[0] == "Connecting to Cloud Engine..."


@pytest.mark.parametrize("converter", [
    FakeConverter(error=RemoteConversionError("HTTP 500", status_code=500)),
    FakeConverter(body="Serial No,EPIC No\n"),
])
def test_remote_failure_falls_back_to_local(converter):
    coord, _, _ = coordinator(converter=converter)

    result = coord.process(PDF)

    assert converter.calls == 1
    assert result.source == "local"
    assert len(result.voters) == 24
    assert "Switching to Local Engine..." in coord.context.status.history


def test_unconfigured_remote_falls_back():
    coord, _, _ = coordinator()
    assert coord.process(PDF).source == "local"


def test_cancel_before_first_batch():
    cancel = threading.Event()
    cancel.set()
    coord, _, source = coordinator(use_remote=False, cancel_event=cancel)

    with pytest.raises(ProcessingAbortedError):
        coord.process(PDF)

    assert source.loaded == []
    assert coord.context.stats.status == "failed"
    assert coord.context.status.state == StatusState.ERROR


def test_cancel_between_batches():
    cancel = threading.Event()
    coord, _, source = coordinator(
        use_remote=False,
        cancel_event=cancel,
        on_page_complete=lambda n, voters: cancel.set(),
    )

    with pytest.raises(ProcessingAbortedError):
        coord.process(PDF)

    assert source.loaded and set(source.loaded) <= {3, 4}


def test_strategy_prerequisites_checked():
    context = ProcessingContext()
    coord, _, _ = coordinator(strategy=CountingStrategy(context, ok=False), context=context, use_remote=False)

    with pytest.raises(ConfigurationError):
        coord.process(PDF)


def test_invalid_concurrency_rejected():
    context = ProcessingContext()
    context.config.coordinator.concurrency = 0
    with pytest.raises(ConfigurationError):
        StrategyCoordinator(context)


def test_create_strategy_by_name():
    context = ProcessingContext()
    assert isinstance(create_strategy("Digital", context), DigitalTextStrategy)
    with pytest.raises(ConfigurationError):
        create_strategy("magic", context)


def test_make_batches():
    assert make_batches([3, 4, 5], 2) == [[3, 4], [5]]
    assert make_batches([], 2) == []
