# backend/talentscore/pipeline/orchestrator.py
"""
Glue between the pipeline steps and the database.

Each entry loads the user's job, runs one pipeline step on the in-memory
objects and persists the result:

  generate_job_requirements  → requirements.generate_requirements → crud.save_requirements
  upload_candidates          → ingest.create_candidate_from_file  → crud.add_candidate
  process_candidate          → score.score_candidate              → crud.save_candidate_analysis
  process_all                → batch.run_batch(process_candidate)
  create_report              → report.generate_report             → crud.save_report
  export_report              → export.export_report_csv

Persistence problems come back as a PersistOutcome next to the computed value;
they never undo the computation.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Sequence, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from sqlalchemy.orm import Session

from ..core.utils import read_any
from ..db import crud
from ..db.crud import NotFoundError, PersistOutcome
from ..db.session import session_scope
from .batch import BatchProgress, CancellationToken, run_batch
from .export import export_filename, export_report_csv
from .ingest import create_candidate_from_file
from .report import generate_report
from .requirements import generate_requirements
from .score import score_candidate
from .state import Candidate, ContextFile, JobRequirement, Report

logger = logging.getLogger(__name__)


def _log_outcome(what: str, outcome: PersistOutcome) -> None:
    if outcome.failed:
        logger.warning("%s: %d row(s) not persisted: %s", what, len(outcome.failed), outcome.failed)


# ---------- requirements ----------

def generate_job_requirements(
    session: Session,
    user_id: str,
    job_id: str,
    *,
    llm: Optional[BaseChatModel],
) -> Tuple[List[JobRequirement], PersistOutcome]:
    job = crud.load_job(session, user_id, job_id)
    requirements = generate_requirements(
        job.title,
        job.company,
        job.description,
        [c.content for c in job.context_files],
        llm=llm,
    )
    outcome = crud.save_requirements(session, user_id, job_id, requirements)
    _log_outcome(f"requirements for job {job_id}", outcome)
    return requirements, outcome


def add_context_file(session: Session, user_id: str, job_id: str, path: str, file_name: str) -> ContextFile:
    crud.get_job_row(session, user_id, job_id)
    try:
        text = read_any(path)
    except Exception as e:
        logger.warning("could not extract text from context file %s: %s", file_name, e)
        text = ""
    return crud.add_context_file(session, user_id, ContextFile(job_id=job_id, file_name=file_name, content=text))


# ---------- candidates ----------

def upload_candidates(
    session: Session,
    user_id: str,
    job_id: str,
    stored_files: Sequence[Tuple[str, str]],
    *,
    rng: Optional[random.Random] = None,
) -> Tuple[List[Candidate], PersistOutcome]:
    """`stored_files` is a list of (path on disk, original filename)."""
    job = crud.load_job(session, user_id, job_id)
    start = len(job.candidates)
    candidates: List[Candidate] = []
    outcome = PersistOutcome()
    for i, (path, original) in enumerate(stored_files):
        c = create_candidate_from_file(path, job_id, start + i, original_filename=original, rng=rng)
        res = crud.add_candidate(session, c)
        outcome.succeeded.extend(res.succeeded)
        outcome.failed.update(res.failed)
        candidates.append(c)
    _log_outcome(f"candidates for job {job_id}", outcome)
    return candidates, outcome


def process_candidate(
    session: Session,
    user_id: str,
    job_id: str,
    candidate_id: str,
    *,
    llm: Optional[BaseChatModel],
) -> Tuple[Candidate, PersistOutcome]:
    job = crud.load_job(session, user_id, job_id)
    candidate = job.candidate(candidate_id)
    if candidate is None:
        raise NotFoundError(f"Candidate {candidate_id} not found in job {job_id}")
    scored = score_candidate(candidate, job.requirements, llm=llm)
    outcome = crud.save_candidate_analysis(session, scored)
    _log_outcome(f"analysis for candidate {candidate_id}", outcome)
    return scored, outcome


def process_all(
    user_id: str,
    job_id: str,
    *,
    llm: Optional[BaseChatModel],
    token: Optional[CancellationToken] = None,
    progress: Optional[BatchProgress] = None,
    delay_seconds: Optional[float] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> BatchProgress:
    """
    Score every unprocessed candidate of a job. Runs outside any request, so
    each candidate gets its own session and commit.
    """
    with session_scope() as s:
        job = crud.load_job(s, user_id, job_id)

    def _one(candidate: Candidate) -> None:
        with session_scope() as s:
            _, outcome = process_candidate(s, user_id, job_id, candidate.id, llm=llm)
        if "candidate" in outcome.failed:
            raise RuntimeError(outcome.failed["candidate"])

    return run_batch(
        job.candidates,
        _one,
        token=token,
        delay_seconds=delay_seconds,
        sleep=sleep,
        progress=progress,
    )


# ---------- reports ----------

def create_report(
    session: Session,
    user_id: str,
    job_id: str,
    candidate_ids: Sequence[str],
    additional_prompt: Optional[str] = None,
    *,
    llm: Optional[BaseChatModel],
) -> Tuple[Report, PersistOutcome]:
    job = crud.load_job(session, user_id, job_id)
    report = generate_report(job, candidate_ids, additional_prompt, llm=llm)
    outcome = crud.save_report(session, report)
    _log_outcome(f"report {report.id}", outcome)
    return report, outcome


def export_report(session: Session, user_id: str, report_id: str) -> Tuple[str, str]:
    """Returns (download filename, CSV text) for a stored report."""
    report = crud.get_report(session, user_id, report_id)
    job = crud.load_job(session, user_id, report.job_id)
    return export_filename(job), export_report_csv(job, report.candidate_ids)


__all__ = [
    "generate_job_requirements",
    "add_context_file",
    "upload_candidates",
    "process_candidate",
    "process_all",
    "create_report",
    "export_report",
]
