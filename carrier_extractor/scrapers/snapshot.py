"""Per-identifier task: derive the lookup URL, fetch the page, extract fields."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..extractor import extract
from ..fetcher import ResilientFetcher
from ..models import ExtractedRecord, PartialRecord
from ..urls import derive_url

LOGGER = logging.getLogger(__name__)

Extractor = Callable[[str], PartialRecord]


class SnapshotScraper:
    """Scrape one SAFER carrier snapshot per identifier.

    Fetch failures propagate as :class:`~carrier_extractor.fetcher.ExhaustedRetriesError`;
    the orchestrator turns them into ``failed`` records.
    """

    name = "safer_snapshot"

    def __init__(
        self,
        fetcher: Optional[ResilientFetcher] = None,
        *,
        extractor: Extractor = extract,
        url_builder: Callable[[str], str] = derive_url,
    ) -> None:
        self._fetcher = fetcher or ResilientFetcher()
        self._extractor = extractor
        self._url_builder = url_builder

    def build_url(self, identifier: str) -> str:
        return self._url_builder(identifier)

    def scrape(self, identifier: str) -> ExtractedRecord:
        url = self.build_url(identifier)
        LOGGER.debug("Fetching %s for %s", url, identifier)
        body = self._fetcher.fetch(url)
        return ExtractedRecord.from_partial(identifier, url, self._extractor(body))


__all__ = ["SnapshotScraper"]
