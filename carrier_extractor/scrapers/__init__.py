"""Per-identifier scrapers for public carrier record pages."""

from .snapshot import SnapshotScraper  # noqa: F401

__all__ = ["SnapshotScraper"]
