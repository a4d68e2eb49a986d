from __future__ import annotations

import threading
import time
from typing import List

import pytest

from talentscore.pipeline.batch import BatchProgress, CancellationToken, run_batch
from talentscore.pipeline.state import Candidate, CandidateScore


def _candidates(n: int, processed: int = 0) -> List[Candidate]:
    out = []
    for i in range(n):
        c = Candidate(job_id="job-1", name=f"Candidate {i}")
        if i < processed:
            c.scores = [CandidateScore(requirement_id="r", score=5)]
        out.append(c)
    return out


class Recorder:
    def __init__(self) -> None:
        self.calls: List[str] = []
        self.sleeps: List[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def test_every_unprocessed_candidate_is_attempted_once_in_order() -> None:
    cands = _candidates(5, processed=2)
    rec = Recorder()

    progress = run_batch(cands, lambda c: rec.calls.append(c.id), delay_seconds=1.5, sleep=rec.sleep)

    expected = [c.id for c in cands[2:]]
    assert rec.calls == expected
    assert progress.attempted_ids == expected
    assert progress.total == 3
    assert progress.processed == 3
    assert progress.errors == 0
    assert progress.last_completed_id == expected[-1]
    assert progress.finished and not progress.cancelled
    assert progress.outcome == "success"
    # pauses only between attempts
    assert rec.sleeps == [1.5, 1.5]


def test_failures_are_counted_and_do_not_stop_the_batch() -> None:
    cands = _candidates(3)
    rec = Recorder()

    def process(c: Candidate) -> None:
        rec.calls.append(c.id)
        if c is cands[1]:
            raise RuntimeError("rate limited")

    progress = run_batch(cands, process, delay_seconds=0, sleep=rec.sleep)

    assert rec.calls == [c.id for c in cands]
    assert progress.processed == 2
    assert progress.errors == 1
    assert progress.failed == {cands[1].id: "rate limited"}
    assert progress.outcome == "warning"
    assert rec.sleeps == []


def test_all_failures_is_an_error_outcome() -> None:
    def process(_c: Candidate) -> None:
        raise ValueError("bad")

    progress = run_batch(_candidates(2), process, delay_seconds=0)

    assert progress.processed == 0
    assert progress.errors == 2
    assert progress.outcome == "error"


def test_nothing_to_do() -> None:
    rec = Recorder()
    progress = run_batch(_candidates(2, processed=2), lambda c: rec.calls.append(c.id), sleep=rec.sleep)

    assert rec.calls == []
    assert progress.total == 0
    assert progress.outcome == "empty"
    assert progress.finished


def test_cancellation_stops_before_the_next_candidate() -> None:
    cands = _candidates(5)
    token = CancellationToken()
    rec = Recorder()

    def process(c: Candidate) -> None:
        rec.calls.append(c.id)
        if len(rec.calls) == 2:
            # the in-flight candidate still completes
            token.cancel()

    progress = run_batch(cands, process, token=token, delay_seconds=2, sleep=rec.sleep)

    assert rec.calls == [cands[0].id, cands[1].id]
    assert progress.processed == 2
    assert progress.last_completed_id == cands[1].id
    assert progress.cancelled
    assert progress.finished
    assert rec.sleeps == [2]
    assert set(progress.attempted_ids).isdisjoint(c.id for c in cands[2:])


def test_cancelled_before_start_attempts_nothing() -> None:
    token = CancellationToken()
    token.cancel()
    rec = Recorder()

    progress = run_batch(_candidates(3), lambda c: rec.calls.append(c.id), token=token, sleep=rec.sleep)

    assert rec.calls == []
    assert progress.cancelled
    assert progress.processed == 0
    assert progress.last_completed_id is None


def test_cancel_cuts_the_pause_between_candidates_short() -> None:
    cands = _candidates(3)
    token = CancellationToken()
    calls: List[str] = []
    timer = threading.Timer(0.05, token.cancel)

    def process(c: Candidate) -> None:
        calls.append(c.id)
        if len(calls) == 1:
            # cancel lands while the loop is pausing
            timer.start()

    started = time.monotonic()
    try:
        progress = run_batch(cands, process, token=token, delay_seconds=30)
    finally:
        timer.cancel()

    assert time.monotonic() - started < 10
    assert calls == [cands[0].id]
    assert progress.cancelled
    assert progress.finished


def test_token_wait_returns_at_once_when_cancelled() -> None:
    token = CancellationToken()
    assert token.wait(0) is False
    token.cancel()
    assert token.wait(30) is True


def test_progress_is_reported_and_shared() -> None:
    seen: List[int] = []
    shared = BatchProgress()

    result = run_batch(
        _candidates(2),
        lambda c: None,
        delay_seconds=0,
        on_progress=lambda p: seen.append(p.processed),
        progress=shared,
    )

    assert result is shared
    assert seen[0] == 0
    assert seen[-1] == 2
    assert shared.as_dict()["outcome"] == "success"


@pytest.mark.parametrize(
    "processed, errors, outcome",
    [(0, 0, "success"), (3, 0, "success"), (2, 1, "warning"), (0, 3, "error")],
)
def test_outcome_classes(processed: int, errors: int, outcome: str) -> None:
    assert BatchProgress(total=3, processed=processed, errors=errors).outcome == outcome
