"""Wave scheduling for the fetch and extract pipeline."""

from .service import (
    MODE_BOTH,
    MODE_URLS,
    MODES,
    BatchOrchestrator,
    RunState,
    iter_batches,
    partition_waves,
)

__all__ = [
    "BatchOrchestrator",
    "MODE_BOTH",
    "MODE_URLS",
    "MODES",
    "RunState",
    "iter_batches",
    "partition_waves",
]
