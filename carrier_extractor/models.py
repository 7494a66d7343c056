"""Data models shared by the fetcher, extractor, orchestrator, and exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


# --- Status Tags ---

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"

RECORD_STATUSES = (STATUS_OK, STATUS_PARTIAL, STATUS_FAILED)


# --- Fetch Attempt Outcomes ---

OUTCOME_SUCCESS = "success"
OUTCOME_TIMEOUT = "timeout"
OUTCOME_HTTP_ERROR = "http_error"
OUTCOME_NETWORK_ERROR = "network_error"


@dataclass(slots=True)
class FetchAttempt:
    """Outcome of a single GET issued by the resilient fetcher."""

    attempt: int
    started_at: datetime
    outcome: str
    body: Optional[str] = None
    status_code: Optional[int] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_SUCCESS


# --- Extraction Models ---

@dataclass(slots=True)
class PartialRecord:
    """Fields pulled out of a single snapshot page."""

    mc_number: str = ""
    phone: str = ""
    legal_name: str = ""
    usdot_number: str = ""
    matched_by: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    EXPECTED_FIELDS = ("mc_number", "phone")

    @property
    def status(self) -> str:
        """``ok`` when every expected field was found, ``partial`` otherwise."""

        if all(getattr(self, name) for name in self.EXPECTED_FIELDS):
            return STATUS_OK
        return STATUS_PARTIAL


# --- Output Models ---

@dataclass(slots=True)
class ExtractedRecord:
    """One output row; exactly one is produced per input identifier."""

    identifier: str
    url: str = ""
    mc_number: str = ""
    phone: str = ""
    legal_name: str = ""
    usdot_number: str = ""
    status: str = STATUS_FAILED
    error: str = ""

    @classmethod
    def from_partial(cls, identifier: str, url: str, partial: PartialRecord) -> "ExtractedRecord":
        return cls(
            identifier=identifier,
            url=url,
            mc_number=partial.mc_number,
            phone=partial.phone,
            legal_name=partial.legal_name,
            usdot_number=partial.usdot_number,
            status=partial.status,
            error="; ".join(partial.notes),
        )

    @classmethod
    def failed(cls, identifier: str, url: str, error: str) -> "ExtractedRecord":
        return cls(identifier=identifier, url=url, status=STATUS_FAILED, error=error)

    def as_row(self) -> Dict[str, Any]:
        """Return a serialisable representation of the record."""
        return {
            "identifier": self.identifier,
            "url": self.url,
            "mc_number": self.mc_number,
            "phone": self.phone,
            "legal_name": self.legal_name,
            "usdot_number": self.usdot_number,
            "status": self.status,
            "error": self.error,
        }


@dataclass
class BatchResult:
    """Ordered records for one run, aligned with the input identifiers."""

    records: List[ExtractedRecord] = field(default_factory=list)
    waves: int = 0

    def __len__(self) -> int:
        return len(self.records)

    @property
    def total(self) -> int:
        return len(self.records)

    def count(self, status: str) -> int:
        return sum(1 for record in self.records if record.status == status)

    @property
    def ok(self) -> int:
        return self.count(STATUS_OK)

    @property
    def partial(self) -> int:
        return self.count(STATUS_PARTIAL)

    @property
    def failed(self) -> int:
        return self.count(STATUS_FAILED)

    def extend(self, other: "BatchResult") -> None:
        self.records.extend(other.records)
        self.waves += other.waves
