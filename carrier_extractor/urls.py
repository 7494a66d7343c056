"""Lookup URL derivation for carrier identifiers."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

SNAPSHOT_URL_TEMPLATE = (
    "https://safer.fmcsa.dot.gov/query.asp"
    "?searchtype=ANY&query_type=queryCarrierSnapshot&query_param=MC_MX&query_string={identifier}"
)

_WHITESPACE = re.compile(r"\s+")
# Characters left unescaped by JavaScript's encodeURIComponent.
_SAFE_CHARACTERS = "-_.!~*'()"


def normalise_identifier(identifier: Optional[str]) -> str:
    """Remove every whitespace character from ``identifier``."""

    return _WHITESPACE.sub("", str(identifier or ""))


def derive_url(identifier: Optional[str]) -> str:
    """Return the SAFER carrier snapshot URL for an MC number.

    Malformed identifiers are not rejected here; they produce a URL that fails
    or comes back empty once it is fetched.
    """

    return SNAPSHOT_URL_TEMPLATE.format(identifier=quote(normalise_identifier(identifier), safe=_SAFE_CHARACTERS))


__all__ = ["SNAPSHOT_URL_TEMPLATE", "derive_url", "normalise_identifier"]
