from __future__ import annotations

import pytest
from sqlalchemy import func, select

from talentscore.core.utils import new_id, now_utc
from talentscore.db import crud
from talentscore.db.models import (
    CandidateAnalysisRow,
    CandidateRow,
    CandidateScoreRow,
    ContextFileRow,
    JobRow,
    ReportCandidateRow,
    ReportRow,
    RequirementMappingRow,
    RequirementRow,
)
from talentscore.pipeline.score import calculate_overall_score, empty_analysis
from talentscore.pipeline.state import Candidate, CandidateScore, ContextFile, Job, JobRequirement, Report


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture()
def job(session) -> Job:
    j = Job(
        user_id="owner",
        title="Data Engineer",
        company="Acme",
        requirements=[
            JobRequirement(category="Technical", description="Spark", weight=8),
            JobRequirement(category="Technical", description="Airflow", weight=5, is_required=True),
        ],
    )
    return crud.create_job(session, "owner", j)


def _add_candidate(session, job: Job, name: str = "Ada Lovelace") -> Candidate:
    c = Candidate(job_id=job.id, name=name, resume_text=f"{name}\nSpark, Airflow")
    assert crud.add_candidate(session, c).ok
    return c


def test_job_round_trip(session, job) -> None:
    loaded = crud.load_job(session, "owner", job.id)

    assert loaded.title == "Data Engineer"
    assert [r.description for r in loaded.requirements] == ["Spark", "Airflow"]
    assert loaded.requirements[1].is_required is True
    # every requirement is mirrored under the same id
    mirror_ids = set(session.execute(select(RequirementMappingRow.id)).scalars())
    assert mirror_ids == {r.id for r in loaded.requirements}


def test_jobs_are_scoped_by_owner(session, job) -> None:
    with pytest.raises(crud.NotFoundError):
        crud.load_job(session, "someone-else", job.id)
    assert crud.list_jobs(session, "someone-else") == []
    assert [j.id for j in crud.list_jobs(session, "owner")] == [job.id]


def test_candidate_round_trip_keeps_resume_text(session, job) -> None:
    c = _add_candidate(session, job)
    loaded = crud.load_job(session, "owner", job.id).candidate(c.id)

    assert loaded.name == "Ada Lovelace"
    assert loaded.resume_text.startswith("Ada Lovelace")
    assert loaded.scores == []
    assert loaded.status == "pending"


def test_analysis_is_replaced_not_appended(session, job) -> None:
    c = _add_candidate(session, job)
    spark, airflow = job.requirements

    first = c.model_copy(update={
        "scores": [CandidateScore(requirement_id=spark.id, score=9), CandidateScore(requirement_id=airflow.id, score=3)],
        "overall_score": 6.7,
        "strengths": ["Spark internals"],
        "status": "processed",
    })
    assert crud.save_candidate_analysis(session, first).ok
    second = empty_analysis(c, job.requirements)
    assert crud.save_candidate_analysis(session, second).ok

    loaded = crud.load_job(session, "owner", job.id).candidate(c.id)
    assert len(loaded.scores) == len(job.requirements)
    assert {s.comment for s in loaded.scores} == {"N/A"}
    assert loaded.strengths == ["N/A"]
    assert loaded.overall_score == 0
    assert _count(session, CandidateAnalysisRow) == 1


def test_bad_score_rows_fail_individually(session, job) -> None:
    c = _add_candidate(session, job)
    spark, _ = job.requirements
    orphan = new_id()
    scored = c.model_copy(update={
        "scores": [
            CandidateScore(requirement_id=spark.id, score=7),
            CandidateScore(requirement_id=orphan, score=5),
            CandidateScore(requirement_id="req-1", score=5),
        ],
        "overall_score": 7.0,
        "status": "processed",
    })

    outcome = crud.save_candidate_analysis(session, scored)

    assert spark.id in outcome.succeeded
    assert orphan in outcome.failed
    # non-UUID ids never reach the database
    assert "req-1" not in outcome.failed and "req-1" not in outcome.succeeded
    assert "analysis" in outcome.succeeded
    stored = session.execute(select(CandidateScoreRow.requirement_id)).scalars().all()
    assert stored == [spark.id]


def test_analysis_for_unstored_candidate_is_reported(session, job) -> None:
    ghost = Candidate(job_id=job.id, name="Ghost")
    outcome = crud.save_candidate_analysis(session, empty_analysis(ghost, job.requirements))
    assert "candidate" in outcome.failed


def test_requirement_edit_keeps_ids_and_drops_removed_scores(session, job) -> None:
    c = _add_candidate(session, job)
    spark, airflow = job.requirements
    crud.save_candidate_analysis(session, empty_analysis(c, job.requirements))

    edited = spark.model_copy(update={"weight": 10, "description": "Spark and Delta Lake"})
    new = JobRequirement(category="Soft", description="Mentoring", weight=3)
    crud.save_requirements(session, "owner", job.id, [edited, new])

    loaded = crud.load_job(session, "owner", job.id)
    assert [r.id for r in loaded.requirements] == [spark.id, new.id]
    assert loaded.requirements[0].weight == 10
    mirror = session.get(RequirementMappingRow, spark.id)
    assert mirror.description == "Spark and Delta Lake"
    assert session.get(RequirementMappingRow, airflow.id) is None
    assert [s.requirement_id for s in loaded.candidate(c.id).scores] == [spark.id]


def test_report_links_fail_individually(session, job) -> None:
    c = _add_candidate(session, job)
    report = Report(job_id=job.id, title="R", content="# R", candidate_ids=[c.id, "missing-candidate"])

    outcome = crud.save_report(session, report)

    assert report.id in outcome.succeeded
    assert c.id in outcome.succeeded
    assert "missing-candidate" in outcome.failed
    stored = crud.get_report(session, "owner", report.id)
    assert stored.candidate_ids == [c.id]
    assert [r.id for r in crud.list_reports(session, "owner", job.id)] == [report.id]
    with pytest.raises(crud.NotFoundError):
        crud.get_report(session, "someone-else", report.id)


def test_star_and_delete_candidate(session, job) -> None:
    c = _add_candidate(session, job)
    crud.set_starred(session, "owner", job.id, c.id, True)
    assert crud.load_job(session, "owner", job.id).candidate(c.id).is_starred

    crud.delete_candidate(session, "owner", job.id, c.id)
    assert crud.load_job(session, "owner", job.id).candidates == []
    with pytest.raises(crud.NotFoundError):
        crud.delete_candidate(session, "owner", job.id, c.id)


def test_delete_job_cascade(session, job) -> None:
    c = _add_candidate(session, job)
    crud.save_candidate_analysis(session, empty_analysis(c, job.requirements))
    crud.save_report(session, Report(job_id=job.id, title="R", content="# R", candidate_ids=[c.id]))
    crud.add_context_file(session, "owner", ContextFile(job_id=job.id, file_name="handbook.txt", content="values"))

    with pytest.raises(crud.NotFoundError):
        crud.delete_job_cascade(session, "someone-else", job.id)

    crud.delete_job_cascade(session, "owner", job.id)

    for model in (JobRow, RequirementRow, RequirementMappingRow, CandidateRow, CandidateScoreRow,
                  CandidateAnalysisRow, ReportRow, ReportCandidateRow, ContextFileRow):
        assert _count(session, model) == 0


def _store_scores(session, job: Job, c: Candidate, spark_score: int, airflow_score: int) -> None:
    spark, airflow = job.requirements
    scored = c.model_copy(update={
        "scores": [
            CandidateScore(requirement_id=spark.id, score=spark_score, comment="Spark jobs in production"),
            CandidateScore(requirement_id=airflow.id, score=airflow_score, comment="Some DAGs"),
        ],
        "overall_score": calculate_overall_score(
            [CandidateScore(requirement_id=spark.id, score=spark_score),
             CandidateScore(requirement_id=airflow.id, score=airflow_score)],
            job.requirements,
        ),
        "strengths": ["Strong Spark background"],
        "weaknesses": ["Little orchestration work"],
        "education": "BSc",
        "status": "processed",
        "processed_at": now_utc(),
    })
    assert crud.save_candidate_analysis(session, scored).ok


def test_requirement_edit_recomputes_overall_score(session, job) -> None:
    c = _add_candidate(session, job)
    spark, airflow = job.requirements
    _store_scores(session, job, c, 8, 4)
    # (8*8 + 4*5) / 13
    assert crud.load_job(session, "owner", job.id).candidate(c.id).overall_score == 6.5

    heavier = airflow.model_copy(update={"weight": 8})
    crud.save_requirements(session, "owner", job.id, [spark, heavier])
    assert crud.load_job(session, "owner", job.id).candidate(c.id).overall_score == 6.0

    crud.save_requirements(session, "owner", job.id, [heavier])
    loaded = crud.load_job(session, "owner", job.id).candidate(c.id)
    assert loaded.overall_score == 4.0
    assert loaded.status == "processed"
    assert loaded.strengths == ["Strong Spark background"]


def test_replacing_all_requirements_resets_scored_candidates(session, job) -> None:
    c = _add_candidate(session, job)
    untouched = _add_candidate(session, job, name="Grace Hopper")
    _store_scores(session, job, c, 8, 4)

    fresh = JobRequirement(category="Soft", description="Mentoring", weight=3)
    crud.save_requirements(session, "owner", job.id, [fresh])

    loaded = crud.load_job(session, "owner", job.id)
    reset = loaded.candidate(c.id)
    assert reset.scores == []
    assert reset.overall_score == 0
    assert reset.status == "pending"
    assert reset.processed_at is None
    assert reset.strengths == [] and reset.weaknesses == []
    assert reset.education == ""
    assert not reset.is_processed
    assert _count(session, CandidateAnalysisRow) == 0
    assert [x.id for x in loaded.unprocessed_candidates] == [c.id, untouched.id]
