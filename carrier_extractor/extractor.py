"""Regular-expression field extraction for SAFER carrier snapshot pages.

Fields are located in two ways. The identifier and phone matchers run over the
raw markup, because the labelled table cells keep the label and value next to
each other there. The ancillary fields are read from the flattened text
produced by :func:`html_to_text`.

Extraction never raises: a field that cannot be found is left empty and the
record is reported as ``partial``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .models import PartialRecord

LOGGER = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """Raised when a field matcher fails unexpectedly on a fetched body."""


_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_ENTITIES: Sequence[Tuple[str, str]] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)

# Label and value may be separated by whitespace, tags, or &nbsp; in the raw markup.
_GAP = r"(?:\s|&nbsp;|<[^>]*>)*"


def strip_tags(markup: Optional[str], replacement: str = " ") -> str:
    if not markup:
        return ""
    return _TAG.sub(replacement, markup)


def html_to_text(markup: Optional[str]) -> str:
    """Reduce markup to readable text: drop tags, decode basic entities, collapse whitespace."""

    text = strip_tags(markup)
    if not text:
        return ""
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return _WHITESPACE.sub(" ", text).strip()


# --- Identifier matchers ---

@dataclass(frozen=True)
class RankedMatcher:
    """A named pattern whose first group captures the MC digits."""

    name: str
    pattern: re.Pattern[str]

    def match(self, markup: str) -> Optional[str]:
        found = self.pattern.search(markup)
        if found and found.group(1):
            return found.group(1)
        return None


LOOSE_MC_MATCHER = RankedMatcher("anywhere", re.compile(r"MC[-\s]?(\d{3,7})", re.IGNORECASE))

# Most specific first; the first matcher that hits wins.
IDENTIFIER_MATCHERS: Tuple[RankedMatcher, ...] = (
    RankedMatcher(
        "mc_mx_ff_label",
        re.compile(r"MC/MX/FF Number\(s\):" + _GAP + r"MC[-\s]?(\d{3,7})", re.IGNORECASE),
    ),
    RankedMatcher(
        "mc_mx_label_prefixed",
        re.compile(r"MC/MX Number:" + _GAP + r"MC[-\s]?(\d{3,7})", re.IGNORECASE),
    ),
    RankedMatcher(
        "mc_mx_label_bare",
        re.compile(r"MC/MX Number:" + _GAP + r"(\d{3,7})", re.IGNORECASE),
    ),
    LOOSE_MC_MATCHER,
)


def match_identifier(markup: str, matchers: Sequence[RankedMatcher] = IDENTIFIER_MATCHERS) -> Tuple[str, Optional[str]]:
    """Return ``("MC-<digits>", matcher_name)`` or ``("", None)``.

    When no matcher hits the raw markup, the loose matcher is tried once more
    with tags removed so values split by inline tags are still recognised.
    """

    for matcher in matchers:
        digits = matcher.match(markup)
        if digits:
            return f"MC-{digits}", matcher.name

    digits = LOOSE_MC_MATCHER.match(strip_tags(markup, replacement=""))
    if digits:
        return f"MC-{digits}", f"{LOOSE_MC_MATCHER.name}_untagged"
    return "", None


# --- Phone ---

PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[\s\-.]*\d{3}[\s\-.]*\d{4}")


def extract_phone(markup: str) -> str:
    """Return the first North-American looking phone number, verbatim."""

    found = PHONE_PATTERN.search(markup or "")
    return found.group(0) if found else ""


# --- Ancillary text fields ---

_LEGAL_NAME = re.compile(
    r"Legal Name:\s*(.{1,200}?)\s*(?:DBA Name:|Physical Address:|Mailing Address:|Phone:|$)",
    re.IGNORECASE,
)
_USDOT_NUMBER = re.compile(r"USDOT Number:\s*(\d{1,8})", re.IGNORECASE)


def extract_legal_name(text: str) -> str:
    found = _LEGAL_NAME.search(text or "")
    return found.group(1).strip() if found else ""


def extract_usdot_number(text: str) -> str:
    found = _USDOT_NUMBER.search(text or "")
    return found.group(1) if found else ""


class FieldExtractor:
    """Apply the field matchers to a body and collect a :class:`PartialRecord`."""

    def __init__(self, identifier_matchers: Sequence[RankedMatcher] = IDENTIFIER_MATCHERS) -> None:
        self._identifier_matchers = tuple(identifier_matchers)

    def __call__(self, body: Optional[str]) -> PartialRecord:
        return self.extract(body)

    def extract(self, body: Optional[str]) -> PartialRecord:
        markup = body if isinstance(body, str) else ""
        record = PartialRecord()

        identifier = self._apply(record, "mc_number", lambda: match_identifier(markup, self._identifier_matchers))
        if identifier:
            record.mc_number, record.matched_by = identifier

        record.phone = self._apply(record, "phone", lambda: extract_phone(markup)) or ""

        text = self._apply(record, "text", lambda: html_to_text(markup)) or ""
        record.legal_name = self._apply(record, "legal_name", lambda: extract_legal_name(text)) or ""
        record.usdot_number = self._apply(record, "usdot_number", lambda: extract_usdot_number(text)) or ""
        return record

    def _apply(self, record: PartialRecord, field_name: str, matcher: Callable[[], object]):
        try:
            return _run_matcher(field_name, matcher)
        except ExtractionError as exc:
            LOGGER.warning("%s", exc)
            record.notes.append(str(exc))
            return None


def _run_matcher(field_name: str, matcher: Callable[[], object]):
    try:
        return matcher()
    except Exception as exc:
        raise ExtractionError(f"Failed to extract {field_name}: {exc}") from exc


_DEFAULT_EXTRACTOR = FieldExtractor()


def extract(body: Optional[str]) -> PartialRecord:
    """Extract every known field from ``body`` using the default matchers."""

    return _DEFAULT_EXTRACTOR.extract(body)


__all__ = [
    "ExtractionError",
    "FieldExtractor",
    "IDENTIFIER_MATCHERS",
    "LOOSE_MC_MATCHER",
    "PHONE_PATTERN",
    "RankedMatcher",
    "extract",
    "extract_phone",
    "html_to_text",
    "match_identifier",
    "strip_tags",
]
