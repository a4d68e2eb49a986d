# backend/talentscore/pipeline/report.py
"""
Ranking report over a chosen subset of a job's candidates.

Primary path asks the LLM for Markdown plus ranking metadata; when there is no
credential or the call/response fails, the same report shape is assembled
locally from the candidates' stored scores.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.llm import invoke_text, to_prompt_json
from ..core.prompts import PROMPTS
from ..core.utils import json_loose, now_utc
from .state import Candidate, Job, Report

logger = logging.getLogger(__name__)


class ReportGenerationError(RuntimeError):
    pass


class _Contract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CandidateRanking(_Contract):
    candidate_id: str
    name: str = ""
    rank: int = Field(ge=1)
    overall_score: float = 0.0


class ReportResponse(_Contract):
    content: str = Field(min_length=1)
    candidate_rankings: List[CandidateRanking] = Field(default_factory=list)
    top_candidates: List[str] = Field(default_factory=list)


# ---------- selection ----------

def select_candidates(job: Job, candidate_ids: Sequence[str]) -> List[Candidate]:
    """Job candidates named in `candidate_ids`, in request order, without repeats."""
    if not candidate_ids:
        raise ReportGenerationError("No candidates selected for the report")
    by_id = {c.id: c for c in job.candidates}
    seen: set[str] = set()
    selected: List[Candidate] = []
    for cid in candidate_ids:
        if cid in by_id and cid not in seen:
            seen.add(cid)
            selected.append(by_id[cid])
    if not selected:
        raise ReportGenerationError("None of the selected candidates belong to this job")
    return selected


def rank_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda c: c.overall_score or 0.0, reverse=True)


# ---------- local assembly ----------

def format_candidate_scores(candidate: Candidate, job: Job) -> List[Dict[str, str]]:
    by_req = {s.requirement_id: s for s in candidate.scores}
    rows: List[Dict[str, str]] = []
    for req in job.requirements:
        s = by_req.get(req.id)
        rows.append({
            "requirement": req.description,
            "score": f"{s.score}/10" if s else "N/A",
            "comment": (s.comment if s and s.comment else "N/A"),
        })
    return rows


def job_overview_section(job: Job) -> str:
    out = "## Job Overview\n\n"
    out += f"**Title:** {job.title or 'Untitled Position'}\n"
    out += f"**Company:** {job.company or 'Company'}\n"
    if job.department:
        out += f"**Department:** {job.department}\n"
    if job.location:
        out += f"**Location:** {job.location}\n"
    out += "\n"
    if job.description:
        out += f"**Description:**\n{job.description}\n\n"

    out += "## Job Requirements\n\n"
    out += "The following requirements were used to evaluate candidates:\n\n"
    if job.requirements:
        for req in job.requirements:
            out += f"- **{req.description}** (Weight: {req.weight}) - {req.category or 'General'}\n"
    else:
        out += "No specific requirements defined for this position.\n"
    return out


def candidate_rankings_section(job: Job, ranked: Sequence[Candidate]) -> str:
    out = "\n## Candidate Rankings\n\n"
    out += "The following candidates were evaluated against the job requirements. They are listed in order of their overall score.\n\n"
    for i, c in enumerate(ranked, start=1):
        out += f"### {i}. {c.name} - {c.overall_score:.1f}/10\n\n"
        if c.strengths:
            out += "**Strengths:**\n" + "".join(f"- {s}\n" for s in c.strengths) + "\n"
        if c.weaknesses:
            out += "**Areas for Development:**\n" + "".join(f"- {w}\n" for w in c.weaknesses) + "\n"
        if c.years_of_experience:
            out += f"**Experience:** {c.years_of_experience:g} years\n"
        if c.education:
            out += f"**Education:** {c.education}\n"
        if c.location:
            out += f"**Location:** {c.location}\n"

        out += "\n**Detailed Score Analysis:**\n\n"
        for row in format_candidate_scores(c, job):
            out += f"- **{row['requirement']}**: {row['score']}\n  {row['comment']}\n\n"
        out += "\n"
    return out


def comparison_summary_section(ranked: Sequence[Candidate]) -> str:
    out = "## Comparison Summary\n\n"
    if not ranked:
        return out + "No candidates available for comparison.\n\n"
    top = ranked[0]
    out += f"**Top candidate:** {top.name} with an overall score of {top.overall_score:.1f}/10\n\n"
    leaders = list(ranked[:3])
    if len(leaders) > 1:
        out += "**Comparative analysis:**\n\n"
        out += f"The top {len(leaders)} candidates are:\n\n"
        for i, c in enumerate(leaders, start=1):
            out += f"{i}. **{c.name}** ({c.overall_score:.1f}/10) - "
            if c.strengths:
                out += f"Strongest in {c.strengths[0].lower()}\n"
            else:
                out += "No specific strengths identified\n"
        out += "\n"
    return out


def recommendations_section(ranked: Sequence[Candidate]) -> str:
    out = "## Recommendations\n\n"
    if not ranked:
        return out + "No candidates available for recommendations.\n\n"
    out += (
        "Based on the analysis of the candidates' profiles and their match with the job "
        "requirements, the following recommendations are provided:\n\n"
    )
    top = ranked[0]
    if top.overall_score >= 7:
        out += f"- **{top.name}** is recommended for immediate consideration with a strong match to the job requirements.\n"
    elif top.overall_score >= 5:
        out += f"- **{top.name}** shows potential but may require additional screening or training in specific areas.\n"
    else:
        out += "- None of the candidates fully meet the job requirements. Consider expanding the candidate pool or adjusting requirements.\n"
    if len(ranked) > 1 and ranked[1].overall_score >= 6:
        out += f"- **{ranked[1].name}** is also a strong candidate and should be considered as an alternative.\n"
    return out


def build_report_content(job: Job, candidates: Sequence[Candidate], additional_prompt: Optional[str] = None) -> str:
    ranked = rank_candidates(candidates)
    content = f"# Candidate Ranking Report for {job.title or 'Position'} at {job.company or 'Company'}\n\n"
    content += f"**Generated on:** {now_utc():%Y-%m-%d}\n\n"
    content += job_overview_section(job)
    content += candidate_rankings_section(job, ranked)
    content += comparison_summary_section(ranked)
    content += recommendations_section(ranked)
    if additional_prompt and additional_prompt.strip():
        content += "\n## Additional Analysis\n\n"
        content += f'Based on the additional prompt: "{additional_prompt.strip()}"\n\n'
        content += "AI analysis was unavailable for this report; the instructions above were not applied.\n\n"
    return content


# ---------- LLM path ----------

def _job_payload(job: Job) -> dict:
    return {
        "title": job.title,
        "company": job.company,
        "department": job.department,
        "location": job.location,
        "description": job.description,
        "requirements": [
            {"id": r.id, "category": r.category, "description": r.description, "weight": r.weight}
            for r in job.requirements
        ],
    }


def _candidate_payload(c: Candidate) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "overallScore": c.overall_score,
        "scores": [s.model_dump() for s in c.scores],
        "strengths": c.strengths,
        "weaknesses": c.weaknesses,
        "yearsOfExperience": c.years_of_experience,
        "education": c.education,
        "location": c.location,
        "cultureFit": c.culture_fit,
        "leadershipPotential": c.leadership_potential,
    }


def _llm_report(
    llm: BaseChatModel,
    job: Job,
    selected: Sequence[Candidate],
    additional_prompt: Optional[str],
) -> ReportResponse:
    extra = ""
    if additional_prompt and additional_prompt.strip():
        extra = f'Also add a final "## Additional Analysis" section that addresses: {additional_prompt.strip()}'
    text = invoke_text(
        llm,
        [("system", PROMPTS["generate_report_system"]), ("human", PROMPTS["generate_report"])],
        {
            "job_json": to_prompt_json(_job_payload(job)),
            "candidates_json": to_prompt_json([_candidate_payload(c) for c in rank_candidates(selected)]),
            "additional_instructions": extra,
        },
    )
    resp = ReportResponse.model_validate(json_loose(text))
    if not resp.content.strip():
        raise ValueError("empty report content")

    valid = {c.id for c in selected}
    resp.candidate_rankings = [r for r in resp.candidate_rankings if r.candidate_id in valid]
    resp.top_candidates = [cid for cid in resp.top_candidates if cid in valid]
    return resp


# ---------- entry ----------

def generate_report(
    job: Job,
    candidate_ids: Sequence[str],
    additional_prompt: Optional[str] = None,
    *,
    llm: Optional[BaseChatModel],
) -> Report:
    selected = select_candidates(job, candidate_ids)
    title = f"Candidate Ranking Report for {job.title}"
    summary = f"Analysis of {len(selected)} candidates for {job.title} at {job.company}"

    content: Optional[str] = None
    metadata: Optional[dict] = None
    if llm is not None:
        try:
            resp = _llm_report(llm, job, selected, additional_prompt)
            content = resp.content
            metadata = {
                "source": "ai",
                "candidateRankings": [r.model_dump(by_alias=True) for r in resp.candidate_rankings],
                "topCandidates": resp.top_candidates,
            }
        except Exception as e:
            logger.warning("AI report generation failed, assembling locally: %s", e)

    if content is None:
        content = build_report_content(job, selected, additional_prompt)
        metadata = {"source": "local"}

    report = Report(
        job_id=job.id,
        title=title,
        summary=summary,
        content=content,
        candidate_ids=[c.id for c in selected],
        additional_prompt=additional_prompt or None,
        metadata=metadata,
    )
    logger.info("report '%s' built over %d candidate(s) (%s)", title, len(selected), metadata["source"])
    return report


__all__ = [
    "ReportGenerationError",
    "ReportResponse",
    "select_candidates",
    "rank_candidates",
    "format_candidate_scores",
    "build_report_content",
    "generate_report",
]
