from __future__ import annotations

import csv
import io

from talentscore.pipeline.export import average_scores, export_filename, export_report_csv, max_scores, score_matrix
from talentscore.pipeline.state import Candidate, CandidateScore, Job, JobRequirement


def _job() -> Job:
    reqs = [
        JobRequirement(description="Python, incl. asyncio", weight=8),
        JobRequirement(description="Team leadership", weight=4),
    ]
    job = Job(user_id="u", title="Backend Engineer / Berlin", company="Acme", requirements=reqs)
    job.candidates = [
        Candidate(job_id=job.id, name="Ada Lovelace", overall_score=7.3, scores=[
            CandidateScore(requirement_id=reqs[0].id, score=8),
            CandidateScore(requirement_id=reqs[1].id, score=6),
        ]),
        Candidate(job_id=job.id, name="Alan Turing", overall_score=6.0, scores=[
            CandidateScore(requirement_id=reqs[0].id, score=6),
        ]),
        Candidate(job_id=job.id, name="Grace Hopper", overall_score=0.0, scores=[
            CandidateScore(requirement_id=reqs[0].id, score=0, comment="N/A"),
            CandidateScore(requirement_id=reqs[1].id, score=0, comment="N/A"),
        ]),
    ]
    return job


def test_csv_matrix() -> None:
    job = _job()
    ada, alan, _ = job.candidates

    rows = list(csv.reader(io.StringIO(export_report_csv(job, [alan.id, ada.id, "ghost"]))))

    assert rows[0] == ["Candidate Name", "Python, incl. asyncio", "Team leadership", "Overall Score"]
    # job order, report subset only
    assert rows[1] == ["Ada Lovelace", "8", "6", "7.3"]
    assert rows[2] == ["Alan Turing", "6", "N/A", "6.0"]
    assert len(rows) == 3


def test_export_filename_is_safe() -> None:
    name = export_filename(_job())
    assert name.startswith("Backend_Engineer_Berlin_Candidate_Scores_")
    assert name.endswith(".csv")


def test_max_and_average_scores() -> None:
    job = _job()
    py, lead = (r.id for r in job.requirements)

    assert max_scores(job.candidates, job.requirements) == {py: 8, lead: 6}
    # zero "N/A" placeholders are left out of the mean
    assert average_scores(job.candidates, job.requirements) == {py: 7.0, lead: 6.0}
    assert average_scores([], job.requirements) == {py: 0.0, lead: 0.0}


def test_score_matrix_covers_report_candidates_only() -> None:
    job = _job()
    ada, alan, _ = job.candidates
    py, lead = job.requirements

    matrix = score_matrix(job, [alan.id, ada.id])

    assert [row["requirement_id"] for row in matrix] == [py.id, lead.id]
    assert matrix[0] == {
        "requirement_id": py.id,
        "requirement": "Python, incl. asyncio",
        "weight": 8,
        "max_score": 8,
        "average_score": 7.0,
    }
    assert (matrix[1]["max_score"], matrix[1]["average_score"]) == (6, 6.0)
    assert score_matrix(job, [alan.id])[1]["max_score"] == 0
