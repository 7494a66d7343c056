"""Factory helpers for wiring the pipeline from resolved settings."""
from __future__ import annotations

from typing import Optional

from .config import ExtractorSettings
from .fetcher import ResilientFetcher, create_session
from .orchestrator import BatchOrchestrator
from .orchestrator.service import ProgressCallback
from .rate_limit import BackoffPolicy, DelayPolicy
from .scrapers import SnapshotScraper


def build_fetcher(settings: ExtractorSettings, session=None) -> ResilientFetcher:
    return ResilientFetcher(
        session if session is not None else create_session(),
        timeout_seconds=settings.fetch_timeout_ms / 1000.0,
        max_attempts=settings.max_retries,
        backoff=BackoffPolicy.from_milliseconds(settings.backoff_base_ms),
    )


def build_orchestrator(
    settings: ExtractorSettings,
    *,
    session=None,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchOrchestrator:
    """Instantiate the scraper and orchestrator described by ``settings``."""

    scraper = SnapshotScraper(build_fetcher(settings, session=session))
    return BatchOrchestrator(
        scraper,
        concurrency=settings.concurrency,
        inter_wave_delay=DelayPolicy.from_milliseconds(settings.inter_wave_delay_ms),
        post_run_wait=DelayPolicy(delay_seconds=float(settings.post_run_wait_seconds)),
        mode=settings.mode,
        progress_callback=progress_callback,
    )


__all__ = ["build_fetcher", "build_orchestrator"]
