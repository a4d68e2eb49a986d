# backend/talentscore/db/crud.py
"""
Persistence operations, all scoped by the owning user id.

Usage (with context manager):
    from .session import session_scope
    with session_scope() as s:
        job = load_job(s, user_id, job_id)
        outcome = save_candidate_analysis(s, candidate)

Writes that touch many rows run each row in its own savepoint and report the
result in a PersistOutcome; one bad row never rolls back its siblings.
Commit is handled by the caller (session_scope or the FastAPI dependency).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.utils import now_utc
from ..pipeline.score import calculate_overall_score, persistable_scores
from ..pipeline.state import (
    Candidate,
    CandidateScore,
    ContextFile,
    Job,
    JobRequirement,
    Report,
    SkillAssessment,
)
from .models import (
    CandidateAnalysisRow,
    CandidateRow,
    CandidateScoreRow,
    ContextFileRow,
    JobRow,
    Profile,
    ReportCandidateRow,
    ReportRow,
    RequirementMappingRow,
    RequirementRow,
)

logger = logging.getLogger(__name__)

JOB_FIELDS = ("title", "company", "description", "location", "department", "salary")


class NotFoundError(ValueError):
    pass


@dataclass
class PersistOutcome:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> Dict[str, Any]:
        return {"succeeded": list(self.succeeded), "failed": dict(self.failed)}


def _in_savepoint(session: Session, outcome: PersistOutcome, key: str, fn) -> bool:
    try:
        with session.begin_nested():
            fn()
        outcome.succeeded.append(key)
        return True
    except (SQLAlchemyError, ValueError) as e:
        reason = str(getattr(e, "orig", None) or e).splitlines()[0]
        outcome.failed[key] = reason
        logger.warning("persist failed for %s: %s", key, reason)
        return False


# ----------------- Profiles / jobs -----------------

def ensure_profile(session: Session, user_id: str) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id)
        session.add(profile)
        session.flush()
    return profile


def get_job_row(session: Session, user_id: str, job_id: str) -> JobRow:
    row = session.get(JobRow, job_id)
    if row is None or row.user_id != user_id:
        raise NotFoundError(f"Job {job_id} not found")
    return row


def create_job(session: Session, user_id: str, job: Job) -> Job:
    ensure_profile(session, user_id)
    now = now_utc()
    row = JobRow(
        id=job.id,
        user_id=user_id,
        created_at=now,
        updated_at=now,
        **{f: getattr(job, f) or "" for f in JOB_FIELDS},
    )
    session.add(row)
    session.flush()
    if job.requirements:
        save_requirements(session, user_id, job.id, job.requirements)
    return load_job(session, user_id, job.id)


def update_job(session: Session, user_id: str, job_id: str, fields: Dict[str, Any]) -> Job:
    row = get_job_row(session, user_id, job_id)
    for k, v in fields.items():
        if k in JOB_FIELDS and v is not None:
            setattr(row, k, v)
    row.updated_at = now_utc()
    session.flush()
    return load_job(session, user_id, job_id)


def list_jobs(session: Session, user_id: str) -> List[Job]:
    ids = session.execute(
        select(JobRow.id).where(JobRow.user_id == user_id).order_by(desc(JobRow.created_at))
    ).scalars().all()
    return [load_job(session, user_id, jid) for jid in ids]


def _candidate_from_rows(
    row: CandidateRow,
    scores: Sequence[CandidateScoreRow],
    analysis: Optional[CandidateAnalysisRow],
) -> Candidate:
    data: Dict[str, Any] = dict(
        id=row.id,
        job_id=row.job_id,
        name=row.name,
        email=row.email,
        resume_url=row.resume_url,
        resume_text=row.resume_text,
        original_filename=row.original_filename,
        overall_score=row.overall_score,
        scores=[CandidateScore(requirement_id=s.requirement_id, score=s.score, comment=s.comment) for s in scores],
        strengths=list(row.strengths or []),
        weaknesses=list(row.weaknesses or []),
        is_starred=row.is_starred,
        status=row.status,
        processed_at=row.processed_at,
    )
    if analysis is not None:
        data.update(
            personality_traits=list(analysis.personality_traits or []),
            culture_fit=analysis.culture_fit,
            culture_fit_notes=analysis.culture_fit_notes,
            leadership_potential=analysis.leadership_potential,
            leadership_notes=analysis.leadership_notes,
            education=analysis.education,
            years_of_experience=analysis.years_of_experience,
            location=analysis.location,
            skill_keywords=list(analysis.skill_keywords or []),
            communication_style=analysis.communication_style,
            preferred_tools=list(analysis.preferred_tools or []),
            skill_assessment=SkillAssessment(**analysis.skill_assessment) if analysis.skill_assessment else None,
            notes=analysis.notes,
        )
    return Candidate(**data)


def load_job(session: Session, user_id: str, job_id: str) -> Job:
    """Hydrate a Job with requirements, candidates (scores + analysis) and context files."""
    row = get_job_row(session, user_id, job_id)

    reqs = session.execute(
        select(RequirementRow).where(RequirementRow.job_id == job_id).order_by(RequirementRow.position)
    ).scalars().all()

    cand_rows = session.execute(
        select(CandidateRow).where(CandidateRow.job_id == job_id).order_by(CandidateRow.created_at, CandidateRow.name)
    ).scalars().all()
    cand_ids = [c.id for c in cand_rows]

    scores_by: Dict[str, List[CandidateScoreRow]] = {cid: [] for cid in cand_ids}
    analysis_by: Dict[str, CandidateAnalysisRow] = {}
    if cand_ids:
        for s in session.execute(
            select(CandidateScoreRow).where(CandidateScoreRow.candidate_id.in_(cand_ids)).order_by(CandidateScoreRow.id)
        ).scalars():
            scores_by[s.candidate_id].append(s)
        for a in session.execute(
            select(CandidateAnalysisRow).where(CandidateAnalysisRow.candidate_id.in_(cand_ids))
        ).scalars():
            analysis_by[a.candidate_id] = a

    ctx = session.execute(
        select(ContextFileRow).where(ContextFileRow.job_id == job_id).order_by(ContextFileRow.created_at)
    ).scalars().all()

    return Job(
        id=row.id,
        user_id=row.user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        requirements=[
            JobRequirement(id=r.id, category=r.category, description=r.description, weight=r.weight, is_required=r.is_required)
            for r in reqs
        ],
        candidates=[_candidate_from_rows(c, scores_by[c.id], analysis_by.get(c.id)) for c in cand_rows],
        context_files=[ContextFile(id=c.id, job_id=c.job_id, file_name=c.file_name, content=c.content) for c in ctx],
        **{f: getattr(row, f) for f in JOB_FIELDS},
    )


# ----------------- Requirements -----------------

def save_requirements(
    session: Session,
    user_id: str,
    job_id: str,
    requirements: Sequence[JobRequirement],
) -> PersistOutcome:
    """
    Replace the job's requirement list. Kept ids are updated in place (their
    mirror rows too); requirements no longer listed lose their mirror and scores.
    """
    row = get_job_row(session, user_id, job_id)
    outcome = PersistOutcome()
    keep = [r.id for r in requirements]

    removed = session.execute(
        select(RequirementMappingRow.id).where(
            RequirementMappingRow.job_id == job_id, RequirementMappingRow.id.not_in(keep)
        )
    ).scalars().all()
    if removed:
        session.execute(delete(CandidateScoreRow).where(CandidateScoreRow.requirement_id.in_(removed)))
        session.execute(delete(RequirementMappingRow).where(RequirementMappingRow.id.in_(removed)))
    session.execute(delete(RequirementRow).where(RequirementRow.job_id == job_id, RequirementRow.id.not_in(keep)))

    for pos, req in enumerate(requirements):
        def _upsert(req: JobRequirement = req, pos: int = pos) -> None:
            r = session.get(RequirementRow, req.id)
            if r is None:
                r = RequirementRow(id=req.id, job_id=job_id)
                session.add(r)
            elif r.job_id != job_id:
                raise NotFoundError(f"Requirement {req.id} belongs to another job")
            r.position = pos
            r.category = req.category
            r.description = req.description
            r.weight = req.weight
            r.is_required = req.is_required

            m = session.get(RequirementMappingRow, req.id)
            if m is None:
                m = RequirementMappingRow(id=req.id, job_id=job_id, original_id=req.id)
                session.add(m)
            m.description = req.description
            m.weight = req.weight

        _in_savepoint(session, outcome, req.id, _upsert)

    _refresh_candidate_scores(session, job_id)
    row.updated_at = now_utc()
    if removed:
        logger.info("job %s: removed %d requirement(s) and their scores", job_id, len(removed))
    return outcome


def _refresh_candidate_scores(session: Session, job_id: str) -> None:
    """
    Recompute stored overall scores against the job's current requirements.
    Candidates left without any score go back to the unprocessed state.
    """
    reqs = [
        JobRequirement(id=r.id, description=r.description, weight=r.weight)
        for r in session.execute(select(RequirementRow).where(RequirementRow.job_id == job_id)).scalars()
    ]
    cand_rows = session.execute(select(CandidateRow).where(CandidateRow.job_id == job_id)).scalars().all()
    for c in cand_rows:
        scores = [
            CandidateScore(requirement_id=s.requirement_id, score=s.score, comment=s.comment)
            for s in session.execute(
                select(CandidateScoreRow).where(CandidateScoreRow.candidate_id == c.id)
            ).scalars()
        ]
        if scores:
            c.overall_score = calculate_overall_score(scores, reqs)
            continue
        if c.processed_at is None and not c.overall_score and c.status != "processed":
            continue
        c.overall_score = 0.0
        c.strengths = []
        c.weaknesses = []
        if c.status == "processed":
            c.status = "pending"
        c.processed_at = None
        session.execute(delete(CandidateAnalysisRow).where(CandidateAnalysisRow.candidate_id == c.id))
        logger.info("candidate %s lost all scores; reset to unprocessed", c.id)
    session.flush()


# ----------------- Candidates -----------------

def add_candidate(session: Session, candidate: Candidate) -> PersistOutcome:
    """Best-effort insert of a freshly ingested (unscored) candidate."""
    outcome = PersistOutcome()

    def _insert() -> None:
        session.add(CandidateRow(
            id=candidate.id,
            job_id=candidate.job_id,
            name=candidate.name,
            email=candidate.email,
            resume_url=candidate.resume_url,
            resume_text=candidate.resume_text,
            original_filename=candidate.original_filename,
            overall_score=0.0,
            strengths=[],
            weaknesses=[],
            status=candidate.status,
            created_at=now_utc(),
        ))

    _in_savepoint(session, outcome, candidate.id, _insert)
    return outcome


def get_candidate_row(session: Session, user_id: str, job_id: str, candidate_id: str) -> CandidateRow:
    get_job_row(session, user_id, job_id)
    row = session.get(CandidateRow, candidate_id)
    if row is None or row.job_id != job_id:
        raise NotFoundError(f"Candidate {candidate_id} not found in job {job_id}")
    return row


def save_candidate_analysis(session: Session, candidate: Candidate) -> PersistOutcome:
    """
    Persist a scored candidate: top-line fields, a fresh set of score rows
    (previous rows are removed first) and the analysis row.
    Outcome keys are requirement ids for scores plus "candidate" and "analysis".
    """
    outcome = PersistOutcome()
    row = session.get(CandidateRow, candidate.id)
    if row is None:
        outcome.failed["candidate"] = f"Candidate {candidate.id} is not stored"
        logger.warning("cannot persist analysis: candidate %s is not stored", candidate.id)
        return outcome

    row.overall_score = candidate.overall_score
    row.strengths = list(candidate.strengths)
    row.weaknesses = list(candidate.weaknesses)
    row.status = candidate.status
    row.processed_at = candidate.processed_at
    session.flush()
    outcome.succeeded.append("candidate")

    session.execute(delete(CandidateScoreRow).where(CandidateScoreRow.candidate_id == candidate.id))
    for s in persistable_scores(candidate.scores):
        _in_savepoint(session, outcome, s.requirement_id, lambda s=s: session.add(CandidateScoreRow(
            candidate_id=candidate.id,
            requirement_id=s.requirement_id,
            score=s.score,
            comment=s.comment,
        )))

    def _upsert_analysis() -> None:
        a = session.get(CandidateAnalysisRow, candidate.id)
        if a is None:
            a = CandidateAnalysisRow(candidate_id=candidate.id)
            session.add(a)
        a.personality_traits = list(candidate.personality_traits)
        a.culture_fit = candidate.culture_fit
        a.culture_fit_notes = candidate.culture_fit_notes
        a.leadership_potential = candidate.leadership_potential
        a.leadership_notes = candidate.leadership_notes
        a.education = candidate.education
        a.years_of_experience = candidate.years_of_experience
        a.location = candidate.location
        a.skill_keywords = list(candidate.skill_keywords)
        a.communication_style = candidate.communication_style
        a.preferred_tools = list(candidate.preferred_tools)
        a.skill_assessment = candidate.skill_assessment.model_dump() if candidate.skill_assessment else None
        a.notes = candidate.notes

    _in_savepoint(session, outcome, "analysis", _upsert_analysis)
    return outcome


def set_starred(session: Session, user_id: str, job_id: str, candidate_id: str, starred: bool) -> None:
    row = get_candidate_row(session, user_id, job_id, candidate_id)
    row.is_starred = bool(starred)
    session.flush()


def delete_candidate(session: Session, user_id: str, job_id: str, candidate_id: str) -> None:
    row = get_candidate_row(session, user_id, job_id, candidate_id)
    session.execute(delete(ReportCandidateRow).where(ReportCandidateRow.candidate_id == candidate_id))
    session.execute(delete(CandidateScoreRow).where(CandidateScoreRow.candidate_id == candidate_id))
    session.execute(delete(CandidateAnalysisRow).where(CandidateAnalysisRow.candidate_id == candidate_id))
    session.delete(row)
    session.flush()


# ----------------- Context files -----------------

def add_context_file(session: Session, user_id: str, ctx: ContextFile) -> ContextFile:
    get_job_row(session, user_id, ctx.job_id)
    session.add(ContextFileRow(id=ctx.id, job_id=ctx.job_id, file_name=ctx.file_name, content=ctx.content, created_at=now_utc()))
    session.flush()
    return ctx


# ----------------- Reports -----------------

def save_report(session: Session, report: Report) -> PersistOutcome:
    """Insert the report row, then one link row per candidate (each in a savepoint)."""
    outcome = PersistOutcome()
    session.execute(delete(ReportCandidateRow).where(ReportCandidateRow.report_id == report.id))
    stored = _in_savepoint(session, outcome, report.id, lambda: session.add(ReportRow(
        id=report.id,
        job_id=report.job_id,
        title=report.title,
        summary=report.summary,
        content=report.content,
        additional_prompt=report.additional_prompt,
        meta=report.metadata,
        created_at=report.created_at,
    )))
    if not stored:
        return outcome

    for pos, cid in enumerate(report.candidate_ids):
        _in_savepoint(session, outcome, cid, lambda cid=cid, pos=pos: session.add(
            ReportCandidateRow(report_id=report.id, candidate_id=cid, position=pos)
        ))
    return outcome


def _report_from_row(session: Session, row: ReportRow) -> Report:
    links = session.execute(
        select(ReportCandidateRow.candidate_id)
        .where(ReportCandidateRow.report_id == row.id)
        .order_by(ReportCandidateRow.position)
    ).scalars().all()
    return Report(
        id=row.id,
        job_id=row.job_id,
        title=row.title,
        summary=row.summary,
        content=row.content,
        candidate_ids=list(links),
        additional_prompt=row.additional_prompt,
        created_at=row.created_at,
        metadata=row.meta,
    )


def list_reports(session: Session, user_id: str, job_id: str) -> List[Report]:
    get_job_row(session, user_id, job_id)
    rows = session.execute(
        select(ReportRow).where(ReportRow.job_id == job_id).order_by(desc(ReportRow.created_at))
    ).scalars().all()
    return [_report_from_row(session, r) for r in rows]


def get_report(session: Session, user_id: str, report_id: str) -> Report:
    row = session.get(ReportRow, report_id)
    if row is None:
        raise NotFoundError(f"Report {report_id} not found")
    try:
        get_job_row(session, user_id, row.job_id)
    except NotFoundError:
        raise NotFoundError(f"Report {report_id} not found") from None
    return _report_from_row(session, row)


# ----------------- Cascade delete -----------------

def delete_job_cascade(session: Session, user_id: str, job_id: str) -> None:
    """Remove a job and everything hanging off it; children first so FKs hold."""
    row = get_job_row(session, user_id, job_id)
    report_ids = select(ReportRow.id).where(ReportRow.job_id == job_id)
    cand_ids = select(CandidateRow.id).where(CandidateRow.job_id == job_id)

    session.execute(delete(ReportCandidateRow).where(ReportCandidateRow.report_id.in_(report_ids)))
    session.execute(delete(ReportRow).where(ReportRow.job_id == job_id))
    session.execute(delete(CandidateScoreRow).where(CandidateScoreRow.candidate_id.in_(cand_ids)))
    session.execute(delete(CandidateAnalysisRow).where(CandidateAnalysisRow.candidate_id.in_(cand_ids)))
    session.execute(delete(CandidateRow).where(CandidateRow.job_id == job_id))
    session.execute(delete(RequirementMappingRow).where(RequirementMappingRow.job_id == job_id))
    session.execute(delete(RequirementRow).where(RequirementRow.job_id == job_id))
    session.execute(delete(ContextFileRow).where(ContextFileRow.job_id == job_id))
    session.delete(row)
    session.flush()
    logger.info("job %s deleted with all dependent rows", job_id)


__all__ = [
    "NotFoundError",
    "PersistOutcome",
    "ensure_profile",
    "get_job_row",
    "create_job",
    "update_job",
    "list_jobs",
    "load_job",
    "save_requirements",
    "add_candidate",
    "get_candidate_row",
    "save_candidate_analysis",
    "set_starred",
    "delete_candidate",
    "add_context_file",
    "save_report",
    "list_reports",
    "get_report",
    "delete_job_cascade",
]
