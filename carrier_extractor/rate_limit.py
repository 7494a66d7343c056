"""Delay and backoff policies applied between waves and fetch attempts."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

LOGGER = logging.getLogger(__name__)

Sleeper = Callable[[float], None]


@dataclass(frozen=True)
class DelayPolicy:
    """Fixed pause, used for the courtesy delay between waves and the post-run wait."""

    delay_seconds: float = 0.0

    @classmethod
    def from_milliseconds(cls, milliseconds: float) -> "DelayPolicy":
        return cls(delay_seconds=max(float(milliseconds), 0.0) / 1000.0)

    def wait(self, sleep: Sleeper = time.sleep) -> None:
        if self.delay_seconds > 0:
            LOGGER.debug("Sleeping for %.3f seconds", self.delay_seconds)
            sleep(self.delay_seconds)


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff: the pause after failed attempt ``n`` is ``base * 2 ** (n - 1)``."""

    base_seconds: float = 2.0

    @classmethod
    def from_milliseconds(cls, milliseconds: float) -> "BackoffPolicy":
        return cls(base_seconds=max(float(milliseconds), 0.0) / 1000.0)

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("Attempt numbers start at 1")
        return self.base_seconds * (2 ** (attempt - 1))


__all__ = ["BackoffPolicy", "DelayPolicy", "Sleeper"]
