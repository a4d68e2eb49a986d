# backend/talentscore/pipeline/batch.py
"""
Sequential batch scoring of every unprocessed candidate in a job.

Candidates are attempted one at a time with a fixed pause between attempts so
the AI provider's rate limits are respected. Cancellation is cooperative: the
token is checked before each candidate, a candidate already in progress always
completes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..core.config import get_option
from .state import Candidate

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancel flag shared between the batch loop and the caller."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Pause up to `seconds`; returns early (True) once cancelled."""
        return self._event.wait(seconds)


@dataclass
class BatchProgress:
    total: int = 0
    processed: int = 0
    errors: int = 0
    current: Optional[str] = None
    attempted_ids: List[str] = field(default_factory=list)
    last_completed_id: Optional[str] = None
    failed: Dict[str, str] = field(default_factory=dict)
    cancelled: bool = False
    finished: bool = False

    @property
    def outcome(self) -> str:
        if self.total == 0:
            return "empty"
        if self.errors == 0:
            return "success"
        if self.processed == 0:
            return "error"
        return "warning"

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "errors": self.errors,
            "current": self.current,
            "attempted_ids": list(self.attempted_ids),
            "last_completed_id": self.last_completed_id,
            "failed": dict(self.failed),
            "cancelled": self.cancelled,
            "finished": self.finished,
            "outcome": self.outcome,
        }


def select_unprocessed(candidates: Sequence[Candidate]) -> List[Candidate]:
    return [c for c in candidates if not c.is_processed]


def run_batch(
    candidates: Sequence[Candidate],
    process_one: Callable[[Candidate], object],
    *,
    token: Optional[CancellationToken] = None,
    delay_seconds: Optional[float] = None,
    sleep: Optional[Callable[[float], object]] = None,
    on_progress: Optional[Callable[[BatchProgress], None]] = None,
    progress: Optional[BatchProgress] = None,
) -> BatchProgress:
    """
    Attempt `process_one` once for each unprocessed candidate, in order.

    An exception from `process_one` counts as an error for that candidate and
    the loop moves on. Returns the final progress; `progress` may be passed in
    so a caller can watch it from another thread. The pause between candidates
    ends early on cancellation unless a custom `sleep` is given.
    """
    token = token or CancellationToken()
    pause = sleep or token.wait
    delay = float(get_option("batch_delay_seconds") if delay_seconds is None else delay_seconds)
    queue = select_unprocessed(candidates)

    state = progress or BatchProgress()
    state.total = len(queue)

    def _notify() -> None:
        if on_progress is not None:
            on_progress(state)

    _notify()
    for i, candidate in enumerate(queue):
        if token.cancelled:
            state.cancelled = True
            logger.info("batch cancelled after %d of %d candidate(s)", len(state.attempted_ids), state.total)
            break

        state.current = candidate.name
        state.attempted_ids.append(candidate.id)
        _notify()
        try:
            process_one(candidate)
            state.processed += 1
            state.last_completed_id = candidate.id
        except Exception as e:
            state.errors += 1
            state.failed[candidate.id] = str(e) or e.__class__.__name__
            logger.warning("batch: candidate '%s' failed: %s", candidate.name, e)
        _notify()

        if i < len(queue) - 1 and delay > 0 and not token.cancelled:
            pause(delay)

    state.current = None
    state.finished = True
    _notify()
    logger.info(
        "batch finished: %d processed, %d error(s), outcome=%s",
        state.processed, state.errors, state.outcome,
    )
    return state


__all__ = ["CancellationToken", "BatchProgress", "select_unprocessed", "run_batch"]
