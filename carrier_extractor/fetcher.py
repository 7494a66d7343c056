"""HTTP fetching with hard per-attempt deadlines and exponential backoff."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

import requests
from urllib3.exceptions import HTTPError as TransportError
from urllib3.exceptions import ReadTimeoutError

from .models import (
    OUTCOME_HTTP_ERROR,
    OUTCOME_NETWORK_ERROR,
    OUTCOME_SUCCESS,
    OUTCOME_TIMEOUT,
    FetchAttempt,
)
from .rate_limit import BackoffPolicy, Sleeper

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml",
}

_CHUNK_SIZE = 16 * 1024


class FetchError(RuntimeError):
    """Base class for fetch failures."""


class FetchTimeoutError(FetchError):
    """An attempt ran past its deadline."""


class HttpStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


class NetworkError(FetchError):
    """Transport level failure (DNS, refused or reset connection)."""


class ExhaustedRetriesError(FetchError):
    """Every attempt failed; carries the last underlying error."""

    def __init__(self, url: str, attempts: List[FetchAttempt], last_error: FetchError) -> None:
        super().__init__(f"{len(attempts)} attempt(s) failed for {url}: {last_error}")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class _DeadlineExceeded(Exception):
    pass


def create_session(headers: Optional[dict] = None) -> requests.Session:
    """Return a session carrying the default browser-like headers."""

    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    if headers:
        session.headers.update(headers)
    return session


def attempt_to_error(attempt: FetchAttempt) -> FetchError:
    """Translate a failed :class:`FetchAttempt` into its error type."""

    if attempt.outcome == OUTCOME_TIMEOUT:
        return FetchTimeoutError(attempt.message)
    if attempt.outcome == OUTCOME_HTTP_ERROR:
        return HttpStatusError(attempt.status_code or 0, attempt.message)
    return NetworkError(attempt.message)


class ResilientFetcher:
    """Issue GET requests, retrying failed attempts with exponential backoff.

    Parameters
    ----------
    session:
        Object exposing ``get`` with the :class:`requests.Session` signature.
        A fresh session with browser-like headers is created when omitted.
    timeout_seconds:
        Hard deadline for one attempt, covering the connection and the whole
        body transfer.
    max_attempts:
        Total number of attempts before :class:`ExhaustedRetriesError` is raised.
    backoff:
        Policy deciding the pause after each failed attempt.
    sleep, clock:
        Injected for tests; default to :func:`time.sleep` and :func:`time.monotonic`.
    """

    def __init__(
        self,
        session=None,
        *,
        timeout_seconds: float = 20.0,
        max_attempts: int = 3,
        backoff: Optional[BackoffPolicy] = None,
        sleep: Sleeper = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        label: str = "snapshot",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._session = session if session is not None else create_session()
        self._timeout = float(timeout_seconds)
        self._max_attempts = int(max_attempts)
        self._backoff = backoff or BackoffPolicy()
        self._sleep = sleep
        self._clock = clock
        self._label = label

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def fetch(self, url: str) -> str:
        """Return the response body for ``url`` or raise :class:`ExhaustedRetriesError`."""

        attempts: List[FetchAttempt] = []
        for index in range(1, self._max_attempts + 1):
            attempt = self._attempt(url, index)
            attempts.append(attempt)
            if attempt.succeeded:
                return attempt.body or ""

            if index < self._max_attempts:
                backoff = self._backoff.delay_for(index)
                LOGGER.warning(
                    "%s attempt %s/%s failed -> %s. Backoff %.0fms",
                    self._label,
                    index,
                    self._max_attempts,
                    attempt.message,
                    backoff * 1000,
                )
                self._sleep(backoff)
            else:
                LOGGER.warning(
                    "%s attempt %s/%s failed -> %s. Giving up",
                    self._label,
                    index,
                    self._max_attempts,
                    attempt.message,
                )

        raise ExhaustedRetriesError(url, attempts, attempt_to_error(attempts[-1]))

    # ------------------------------------------------------------------
    def _attempt(self, url: str, index: int) -> FetchAttempt:
        started_at = datetime.now(timezone.utc)
        deadline = self._clock() + self._timeout
        try:
            response = self._session.get(
                url,
                timeout=self._timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.Timeout:
            return FetchAttempt(index, started_at, OUTCOME_TIMEOUT, message=f"{self._label} timed out after {self._timeout:g}s")
        except requests.RequestException as exc:
            return FetchAttempt(index, started_at, OUTCOME_NETWORK_ERROR, message=f"{self._label} network error: {exc}")

        try:
            if not 200 <= response.status_code < 300:
                return FetchAttempt(
                    index,
                    started_at,
                    OUTCOME_HTTP_ERROR,
                    status_code=response.status_code,
                    message=f"{self._label} HTTP {response.status_code}",
                )
            body = self._read_body(response, deadline)
        except (_DeadlineExceeded, requests.Timeout, ReadTimeoutError):
            return FetchAttempt(index, started_at, OUTCOME_TIMEOUT, message=f"{self._label} timed out after {self._timeout:g}s")
        except (requests.RequestException, TransportError) as exc:
            return FetchAttempt(index, started_at, OUTCOME_NETWORK_ERROR, message=f"{self._label} network error: {exc}")
        finally:
            response.close()

        return FetchAttempt(index, started_at, OUTCOME_SUCCESS, body=body, status_code=response.status_code)

    def _read_body(self, response, deadline: float) -> str:
        # read1 returns as soon as any bytes arrive, so a server dripping the
        # body cannot keep one read blocked past the deadline.
        raw = response.raw
        chunks: List[bytes] = []
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise _DeadlineExceeded()
            _limit_read_timeout(raw, remaining)
            chunk = raw.read1(_CHUNK_SIZE, decode_content=True)
            if not chunk:
                break
            chunks.append(chunk)
        encoding = response.encoding or "utf-8"
        try:
            return b"".join(chunks).decode(encoding, errors="replace")
        except LookupError:
            return b"".join(chunks).decode("utf-8", errors="replace")


def _limit_read_timeout(raw, remaining: float) -> None:
    """Cap the socket read timeout at the time left before the deadline."""

    sock = getattr(getattr(raw, "connection", None), "sock", None)
    if sock is not None:
        sock.settimeout(max(remaining, 0.001))


__all__ = [
    "DEFAULT_HEADERS",
    "ExhaustedRetriesError",
    "FetchError",
    "FetchTimeoutError",
    "HttpStatusError",
    "NetworkError",
    "ResilientFetcher",
    "attempt_to_error",
    "create_session",
]
