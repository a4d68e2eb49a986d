# backend/talentscore/pipeline/export.py
"""
Score-matrix export for reports: CSV rows of candidate × requirement scores,
plus per-requirement max/average helpers used by the report views.
"""

from __future__ import annotations

import csv
import io
import re
from typing import Dict, List, Sequence

from ..core.utils import now_utc
from .state import Candidate, Job, JobRequirement


def _report_candidates(job: Job, candidate_ids: Sequence[str]) -> List[Candidate]:
    wanted = set(candidate_ids)
    return [c for c in job.candidates if c.id in wanted]


def export_report_csv(job: Job, candidate_ids: Sequence[str]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Candidate Name", *[r.description for r in job.requirements], "Overall Score"])
    for c in _report_candidates(job, candidate_ids):
        by_req = {s.requirement_id: s.score for s in c.scores}
        row = [c.name]
        row.extend(by_req.get(r.id, "N/A") for r in job.requirements)
        row.append(c.overall_score)
        writer.writerow(row)
    return buf.getvalue()


def export_filename(job: Job) -> str:
    title = re.sub(r"[^\w\-]+", "_", job.title or "Job").strip("_") or "Job"
    return f"{title}_Candidate_Scores_{now_utc():%Y-%m-%d}.csv"


def max_scores(candidates: Sequence[Candidate], requirements: Sequence[JobRequirement]) -> Dict[str, int]:
    out = {r.id: 0 for r in requirements}
    for c in candidates:
        for s in c.scores:
            if s.requirement_id in out and s.score > out[s.requirement_id]:
                out[s.requirement_id] = s.score
    return out


def average_scores(candidates: Sequence[Candidate], requirements: Sequence[JobRequirement]) -> Dict[str, float]:
    """Mean per requirement over non-zero scores; zeros are "N/A" placeholders."""
    totals = {r.id: 0 for r in requirements}
    counts = {r.id: 0 for r in requirements}
    for c in candidates:
        for s in c.scores:
            if s.requirement_id in totals and s.score > 0:
                totals[s.requirement_id] += s.score
                counts[s.requirement_id] += 1
    return {rid: (round(totals[rid] / counts[rid], 1) if counts[rid] else 0.0) for rid in totals}


def score_matrix(job: Job, candidate_ids: Sequence[str]) -> List[Dict[str, object]]:
    """Per-requirement summary row (weight, best and mean score) over the report's candidates."""
    candidates = _report_candidates(job, candidate_ids)
    best = max_scores(candidates, job.requirements)
    mean = average_scores(candidates, job.requirements)
    return [
        {
            "requirement_id": r.id,
            "requirement": r.description,
            "weight": r.weight,
            "max_score": best[r.id],
            "average_score": mean[r.id],
        }
        for r in job.requirements
    ]


__all__ = ["export_report_csv", "export_filename", "max_scores", "average_scores", "score_matrix"]
