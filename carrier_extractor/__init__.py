"""Batch extractor for public FMCSA SAFER carrier snapshots."""

from . import models  # noqa: F401
from .extractor import ExtractionError, FieldExtractor, extract, html_to_text
from .fetcher import (
    ExhaustedRetriesError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    ResilientFetcher,
)
from .models import (
    BatchResult,
    ExtractedRecord,
    FetchAttempt,
    PartialRecord,
)
from .orchestrator import BatchOrchestrator, RunState
from .scrapers import SnapshotScraper
from .urls import derive_url

__all__ = [
    "BatchOrchestrator",
    "BatchResult",
    "ExhaustedRetriesError",
    "ExtractedRecord",
    "ExtractionError",
    "FetchAttempt",
    "FetchError",
    "FetchTimeoutError",
    "FieldExtractor",
    "HttpStatusError",
    "NetworkError",
    "PartialRecord",
    "ResilientFetcher",
    "RunState",
    "SnapshotScraper",
    "derive_url",
    "extract",
    "html_to_text",
    "ingestion",
    "orchestrator",
    "scrapers",
]
