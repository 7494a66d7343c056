"""Wave-based batch orchestrator driving one scraper task per identifier."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence

from ..models import STATUS_OK, BatchResult, ExtractedRecord
from ..rate_limit import DelayPolicy, Sleeper

LOGGER = logging.getLogger(__name__)

MODE_BOTH = "both"
MODE_URLS = "urls"
MODES = (MODE_BOTH, MODE_URLS)

ProgressCallback = Callable[[int, int], None]


class ScraperProtocol(Protocol):
    """Interface that per-identifier scrapers must follow."""

    name: str

    def build_url(self, identifier: str) -> str:  # pragma: no cover - runtime protocol
        """Return the lookup URL for ``identifier``."""

    def scrape(self, identifier: str) -> ExtractedRecord:  # pragma: no cover - runtime protocol
        """Fetch and extract the record for ``identifier``."""


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


def partition_waves(identifiers: Sequence[str], size: int) -> List[List[int]]:
    """Split positions ``0..len-1`` into consecutive waves of at most ``size``."""

    if size < 1:
        raise ValueError("Wave size must be a positive integer")
    positions = list(range(len(identifiers)))
    return [positions[start:start + size] for start in range(0, len(positions), size)]


def iter_batches(identifiers: Sequence[str], batch_size: int) -> Iterator[List[str]]:
    """Yield consecutive chunks of ``batch_size`` identifiers."""

    if batch_size < 1:
        raise ValueError("batch_size must be a positive integer")
    for start in range(0, len(identifiers), batch_size):
        yield list(identifiers[start:start + batch_size])


class BatchOrchestrator:
    """Run a scraper for every identifier in bounded waves and keep input order.

    Each wave holds at most ``concurrency`` identifiers and runs on its own
    thread pool; the next wave starts only once every task of the current wave
    has settled. Per-item errors become ``failed`` records.
    """

    def __init__(
        self,
        scraper: ScraperProtocol,
        *,
        concurrency: int = 6,
        inter_wave_delay: Optional[DelayPolicy] = None,
        post_run_wait: Optional[DelayPolicy] = None,
        mode: str = MODE_BOTH,
        progress_callback: Optional[ProgressCallback] = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be a positive integer")
        if mode not in MODES:
            raise ValueError(f"Unsupported mode '{mode}'. Expected one of {MODES}")
        self._scraper = scraper
        self._concurrency = int(concurrency)
        self._inter_wave_delay = inter_wave_delay or DelayPolicy()
        self._post_run_wait = post_run_wait or DelayPolicy()
        self._mode = mode
        self._progress_callback = progress_callback
        self._sleep = sleep
        self._state = RunState.IDLE
        self._current_wave = 0

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def current_wave(self) -> int:
        return self._current_wave

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def mode(self) -> str:
        return self._mode

    def run(self, identifiers: Iterable[str]) -> BatchResult:
        """Process every identifier and return records in input order."""

        items = [str(identifier) for identifier in identifiers]
        return self._run_chunks([items], len(items))

    def run_batches(self, identifiers: Sequence[str], batch_size: int) -> BatchResult:
        """Run ``identifiers`` in consecutive chunks of ``batch_size`` and merge the results.

        Chunks are separated by the inter-wave delay like any other wave, and
        the post-run wait happens once after the last chunk.
        """

        items = [str(identifier) for identifier in identifiers]
        return self._run_chunks(list(iter_batches(items, batch_size)), len(items))

    # ------------------------------------------------------------------
    def _run_chunks(self, chunks: List[List[str]], total: int) -> BatchResult:
        self._state = RunState.RUNNING
        self._current_wave = 0
        result = BatchResult()
        try:
            for number, chunk in enumerate(chunks, start=1):
                if number > 1:
                    self._inter_wave_delay.wait(self._sleep)
                    LOGGER.info("Starting batch %s/%s (%s identifiers)", number, len(chunks), len(chunk))
                result.extend(self._run_chunk(chunk, len(result), total))
            self._post_run_wait.wait(self._sleep)
        finally:
            self._state = RunState.DONE
        return result

    def _run_chunk(self, items: List[str], completed: int, total: int) -> BatchResult:
        records: List[Optional[ExtractedRecord]] = [None] * len(items)
        waves = partition_waves(items, self._concurrency)

        for wave_number, wave in enumerate(waves, start=1):
            self._current_wave += 1
            if self._mode == MODE_URLS:
                for position in wave:
                    records[position] = self._url_only(items[position])
                    completed += 1
                    self._report(completed, total)
            else:
                completed = self._run_wave(items, wave, records, completed, total)

            LOGGER.info("Wave %s/%s done: %s/%s identifiers processed", wave_number, len(waves), completed, total)
            if wave_number < len(waves):
                self._inter_wave_delay.wait(self._sleep)

        missing = [items[position] for position, record in enumerate(records) if record is None]
        if missing:
            raise RuntimeError(f"No record produced for identifiers: {missing}")
        return BatchResult(records=list(records), waves=len(waves))

    def _run_wave(
        self,
        items: List[str],
        wave: List[int],
        records: List[Optional[ExtractedRecord]],
        completed: int,
        total: int,
    ) -> int:
        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            futures = {executor.submit(self._execute_scraper, items[position]): position for position in wave}
            for future in as_completed(futures):
                records[futures[future]] = future.result()
                completed += 1
                self._report(completed, total)
        return completed

    def _execute_scraper(self, identifier: str) -> ExtractedRecord:
        try:
            return self._scraper.scrape(identifier)
        except Exception as exc:
            LOGGER.error("Identifier %s failed: %s", identifier, exc)
            return ExtractedRecord.failed(identifier, self._lookup_url(identifier), str(exc) or exc.__class__.__name__)

    def _url_only(self, identifier: str) -> ExtractedRecord:
        return ExtractedRecord(identifier=identifier, url=self._lookup_url(identifier), status=STATUS_OK)

    def _lookup_url(self, identifier: str) -> str:
        return self._scraper.build_url(identifier)

    def _report(self, completed: int, total: int) -> None:
        if self._progress_callback:
            self._progress_callback(completed, total)


__all__ = [
    "BatchOrchestrator",
    "MODE_BOTH",
    "MODE_URLS",
    "MODES",
    "RunState",
    "ScraperProtocol",
    "iter_batches",
    "partition_waves",
]
