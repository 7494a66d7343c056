"""Tests for the wave-based :class:`BatchOrchestrator`."""
from __future__ import annotations

import random
import threading
import time

import pytest
import requests

from carrier_extractor.fetcher import ResilientFetcher
from carrier_extractor.models import ExtractedRecord
from carrier_extractor.orchestrator import (
    BatchOrchestrator,
    RunState,
    iter_batches,
    partition_waves,
)
from carrier_extractor.rate_limit import BackoffPolicy, DelayPolicy
from carrier_extractor.scrapers import SnapshotScraper
from carrier_extractor.urls import derive_url


class TrackingScraper:
    """Scraper double that records peak concurrency and can fail on demand."""

    name = "tracking"

    def __init__(self, *, delay: float = 0.0, jitter: bool = False, failing=()) -> None:
        self._delay = delay
        self._jitter = jitter
        self._failing = set(failing)
        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0
        self.calls = []

    def build_url(self, identifier: str) -> str:
        return derive_url(identifier)

    def scrape(self, identifier: str) -> ExtractedRecord:
        with self._lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            self.calls.append(identifier)
        try:
            delay = random.uniform(0, self._delay) if self._jitter else self._delay
            if delay:
                time.sleep(delay)
            if identifier in self._failing:
                raise RuntimeError(f"fetch failed for {identifier}")
            return ExtractedRecord(identifier=identifier, url=self.build_url(identifier), mc_number=identifier, status="ok")
        finally:
            with self._lock:
                self.in_flight -= 1


class RecordingSleep:
    def __init__(self) -> None:
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def test_partition_waves_preserves_order() -> None:
    assert partition_waves(["a", "b", "c", "d", "e"], 2) == [[0, 1], [2, 3], [4]]
    assert partition_waves([], 3) == []
    with pytest.raises(ValueError):
        partition_waves(["a"], 0)


def test_iter_batches_chunks_identifiers() -> None:
    assert list(iter_batches(["1", "2", "3"], 2)) == [["1", "2"], ["3"]]


@pytest.mark.parametrize("size", [0, 1, 7, 23])
def test_output_matches_input_order_and_length(size: int) -> None:
    identifiers = [f"MC{index}" for index in range(size)]
    scraper = TrackingScraper(delay=0.01, jitter=True)
    orchestrator = BatchOrchestrator(scraper, concurrency=4, sleep=RecordingSleep())

    result = orchestrator.run(identifiers)

    assert len(result.records) == len(identifiers)
    assert [record.identifier for record in result.records] == identifiers
    assert sorted(scraper.calls) == sorted(identifiers)


def test_waves_bound_peak_concurrency() -> None:
    scraper = TrackingScraper(delay=0.05)
    sleep = RecordingSleep()
    orchestrator = BatchOrchestrator(
        scraper,
        concurrency=2,
        inter_wave_delay=DelayPolicy.from_milliseconds(300),
        sleep=sleep,
    )

    result = orchestrator.run(["1", "2", "3", "4", "5"])

    assert result.waves == 3
    assert scraper.peak <= 2
    # Inter-wave pauses between waves only, not after the last one.
    assert sleep.delays == [0.3, 0.3]


def test_wave_is_a_barrier() -> None:
    started = []
    finished = []
    lock = threading.Lock()

    class BarrierScraper(TrackingScraper):
        def scrape(self, identifier: str) -> ExtractedRecord:
            with lock:
                started.append((identifier, len(finished)))
            time.sleep(0.02 if identifier == "slow" else 0.0)
            record = super().scrape(identifier)
            with lock:
                finished.append(identifier)
            return record

    orchestrator = BatchOrchestrator(BarrierScraper(), concurrency=2, sleep=RecordingSleep())
    orchestrator.run(["slow", "fast", "next"])

    finished_before_next = dict(started)["next"]
    assert finished_before_next == 2


def test_failures_become_failed_records_without_blocking_siblings() -> None:
    scraper = TrackingScraper(failing={"bad"})
    orchestrator = BatchOrchestrator(scraper, concurrency=3, sleep=RecordingSleep())

    result = orchestrator.run(["good-1", "bad", "good-2", "good-3"])

    statuses = [record.status for record in result.records]
    assert statuses == ["ok", "failed", "ok", "ok"]
    failed = result.records[1]
    assert failed.identifier == "bad"
    assert "fetch failed for bad" in failed.error
    assert failed.url == derive_url("bad")
    assert (result.ok, result.partial, result.failed) == (3, 0, 1)


def test_progress_callback_reports_each_completion() -> None:
    events = []
    orchestrator = BatchOrchestrator(
        TrackingScraper(),
        concurrency=2,
        progress_callback=lambda done, total: events.append((done, total)),
        sleep=RecordingSleep(),
    )

    orchestrator.run(["a", "b", "c"])

    assert events == [(1, 3), (2, 3), (3, 3)]


def test_state_transitions_and_post_run_wait() -> None:
    states = []
    sleep = RecordingSleep()

    class StateProbe(TrackingScraper):
        def scrape(self, identifier: str) -> ExtractedRecord:
            states.append(orchestrator.state)
            return super().scrape(identifier)

    orchestrator = BatchOrchestrator(
        StateProbe(),
        concurrency=1,
        post_run_wait=DelayPolicy(delay_seconds=5.0),
        sleep=sleep,
    )
    assert orchestrator.state is RunState.IDLE

    orchestrator.run(["a", "b"])

    assert states == [RunState.RUNNING, RunState.RUNNING]
    assert orchestrator.state is RunState.DONE
    assert orchestrator.current_wave == 2
    assert sleep.delays == [5.0]


def test_urls_mode_never_fetches() -> None:
    class CountingFetcher:
        calls = 0

        def fetch(self, url: str) -> str:
            CountingFetcher.calls += 1
            return ""

    scraper = SnapshotScraper(CountingFetcher())  # type: ignore[arg-type]
    orchestrator = BatchOrchestrator(scraper, concurrency=2, mode="urls", sleep=RecordingSleep())

    result = orchestrator.run(["MC 123", "456"])

    assert CountingFetcher.calls == 0
    assert [record.url for record in result.records] == [derive_url("MC 123"), derive_url("456")]
    assert all(record.mc_number == "" and record.phone == "" for record in result.records)


def test_retry_then_succeed_end_to_end() -> None:
    class Body:
        def __init__(self) -> None:
            self._chunks = [b"<td>MC/MX/FF Number(s):</td><td>MC-123456</td> Phone: (555) 123-4567"]

        def read1(self, amt=-1, decode_content=True):
            return self._chunks.pop(0) if self._chunks else b""

    class Response:
        status_code = 200
        encoding = "utf-8"

        def __init__(self) -> None:
            self.raw = Body()

        def close(self) -> None:
            pass

    class ScriptedSession:
        def __init__(self, failures: int) -> None:
            self.failures = failures
            self.calls = 0

        def get(self, url, **kwargs):
            self.calls += 1
            if self.calls <= self.failures:
                raise requests.ConnectionError("reset by peer")
            return Response()

    recovering = ScriptedSession(failures=2)
    broken = ScriptedSession(failures=99)

    class RoutingSession:
        def get(self, url, **kwargs):
            return (broken if url.endswith("999") else recovering).get(url, **kwargs)

    fetcher = ResilientFetcher(RoutingSession(), max_attempts=3, backoff=BackoffPolicy(0.0), sleep=lambda _: None)
    orchestrator = BatchOrchestrator(SnapshotScraper(fetcher), concurrency=2, sleep=RecordingSleep())

    result = orchestrator.run(["123456", "999"])

    first, second = result.records
    assert first.status == "ok"
    assert first.mc_number == "MC-123456"
    assert first.phone == "(555) 123-4567"
    assert second.status == "failed"
    assert second.identifier == "999"
    assert "3 attempt(s) failed" in second.error


def test_run_batches_concatenates_in_order() -> None:
    sleep = RecordingSleep()
    orchestrator = BatchOrchestrator(TrackingScraper(), concurrency=2, sleep=sleep)
    identifiers = [str(index) for index in range(7)]

    result = orchestrator.run_batches(identifiers, batch_size=3)

    assert [record.identifier for record in result.records] == identifiers
    assert result.waves == 5


def test_run_batches_waits_once_and_pauses_between_chunks() -> None:
    sleep = RecordingSleep()
    events = []
    orchestrator = BatchOrchestrator(
        TrackingScraper(),
        concurrency=2,
        inter_wave_delay=DelayPolicy.from_milliseconds(300),
        post_run_wait=DelayPolicy(delay_seconds=5.0),
        progress_callback=lambda done, total: events.append((done, total)),
        sleep=sleep,
    )

    result = orchestrator.run_batches([str(index) for index in range(6)], batch_size=2)

    assert result.waves == 3
    assert sleep.delays == [0.3, 0.3, 5.0]
    assert events[-1] == (6, 6)
    assert orchestrator.current_wave == 3
    assert orchestrator.state is RunState.DONE


def test_failed_record_url_comes_from_scraper() -> None:
    class CustomUrlScraper(TrackingScraper):
        def build_url(self, identifier: str) -> str:
            return f"https://lookup.example/{identifier}"

    orchestrator = BatchOrchestrator(CustomUrlScraper(failing={"bad"}), concurrency=1, sleep=RecordingSleep())

    result = orchestrator.run(["bad"])

    assert result.records[0].url == "https://lookup.example/bad"


def test_invalid_setup_is_rejected() -> None:
    with pytest.raises(ValueError):
        BatchOrchestrator(TrackingScraper(), concurrency=0)
    with pytest.raises(ValueError):
        BatchOrchestrator(TrackingScraper(), mode="everything")
