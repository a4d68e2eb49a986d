# backend/talentscore/pipeline/score.py
"""
Candidate scoring:
resume text + ordered requirement list → per-requirement scores, weighted overall
score, strengths/weaknesses, culture fit, leadership potential, skill assessment.

Entry:
    score_candidate(candidate, requirements, llm=...) -> Candidate   (returns an updated copy)

Any missing credential, transport error or response that fails the schema
resolves to the "N/A" candidate instead of raising.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..core.config import get_option
from ..core.llm import invoke_text, to_prompt_json
from ..core.prompts import PROMPTS
from ..core.utils import clip, is_valid_uuid, json_loose, now_utc, read_any
from .state import Candidate, CandidateScore, JobRequirement, SkillAssessment

logger = logging.getLogger(__name__)

NA = "N/A"


class MissingRequirementsError(ValueError):
    pass


# --------- response contract ----------

class _Contract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScoreItem(_Contract):
    requirement_id: Optional[str] = None
    score: float = Field(ge=0, le=10)
    justification: str = ""


class RatedNote(_Contract):
    score: float = Field(default=0, ge=0, le=10)
    notes: str = ""


class SkillAssessmentItem(_Contract):
    technical_skills: List[str] = Field(default_factory=list)
    soft_skills: List[str] = Field(default_factory=list)
    experience_evaluation: str = ""


class CandidateAnalysisResponse(_Contract):
    scores: List[ScoreItem] = Field(min_length=1)
    overall_score: float = Field(default=0, ge=0, le=10)
    strengths: List[str]
    weaknesses: List[str]
    culture_fit: RatedNote
    leadership_potential: RatedNote
    skill_assessment: SkillAssessmentItem
    notes: str = ""

    personality_traits: List[str] = Field(default_factory=list)
    education: str = ""
    years_of_experience: float = Field(default=0, ge=0)
    location: str = ""
    skill_keywords: List[str] = Field(default_factory=list)
    communication_style: str = ""
    preferred_tools: List[str] = Field(default_factory=list)


# --------- helpers ----------

def calculate_overall_score(scores: Sequence[CandidateScore], requirements: Sequence[JobRequirement]) -> float:
    """
    Weighted mean Σ(score·weight)/Σ(weight) over requirements that have a
    matching score, rounded to one decimal; 0 when nothing matches.
    """
    weights = {r.id: r.weight for r in requirements}
    total = 0.0
    total_weight = 0
    for s in scores:
        w = weights.get(s.requirement_id)
        if w is None:
            continue
        total += s.score * w
        total_weight += w
    if total_weight == 0:
        return 0.0
    return round(total / total_weight, 1)


def reconcile_scores(items: Sequence[ScoreItem], requirements: Sequence[JobRequirement]) -> List[CandidateScore]:
    """
    Map response entries onto requirements: exact id when the model echoed a
    known id, otherwise the entry's position in the original list. Entries that
    map nowhere, or onto an already-scored requirement, are dropped.
    """
    by_id: Dict[str, JobRequirement] = {r.id: r for r in requirements}
    seen: set[str] = set()
    out: List[CandidateScore] = []
    for idx, item in enumerate(items):
        req = by_id.get(item.requirement_id or "")
        if req is None and idx < len(requirements):
            req = requirements[idx]
        if req is None or req.id in seen:
            continue
        seen.add(req.id)
        out.append(CandidateScore(
            requirement_id=req.id,
            score=int(round(item.score)),
            comment=item.justification.strip(),
        ))
    return out


def persistable_scores(scores: Sequence[CandidateScore]) -> List[CandidateScore]:
    """Scores whose requirement id can be stored as a foreign key."""
    kept = [s for s in scores if is_valid_uuid(s.requirement_id)]
    if len(kept) != len(scores):
        logger.warning("dropping %d score(s) with non-UUID requirement ids from persistence", len(scores) - len(kept))
    return kept


def empty_analysis(candidate: Candidate, requirements: Sequence[JobRequirement]) -> Candidate:
    """The clearly-marked "N/A" result used whenever real analysis is unavailable."""
    return candidate.model_copy(update={
        "scores": [CandidateScore(requirement_id=r.id, score=0, comment=NA) for r in requirements],
        "overall_score": 0.0,
        "strengths": [NA],
        "weaknesses": [NA],
        "personality_traits": [NA],
        "culture_fit": 0.0,
        "culture_fit_notes": NA,
        "leadership_potential": 0.0,
        "leadership_notes": NA,
        "education": NA,
        "years_of_experience": 0.0,
        "location": NA,
        "skill_keywords": [NA],
        "communication_style": NA,
        "preferred_tools": [NA],
        "skill_assessment": SkillAssessment(experience_evaluation=NA),
        "notes": NA,
        "status": "processed",
        "processed_at": now_utc(),
    })


def _requirements_block(requirements: Sequence[JobRequirement]) -> str:
    return to_prompt_json([
        {
            "index": i + 1,
            "id": r.id,
            "category": r.category,
            "description": r.description,
            "weight": r.weight,
            "required": r.is_required,
        }
        for i, r in enumerate(requirements)
    ])


def _resume_text(candidate: Candidate) -> str:
    text = candidate.resume_text
    if not text and candidate.resume_url:
        try:
            text = read_any(candidate.resume_url)
        except Exception as e:
            logger.warning("could not read resume for %s: %s", candidate.name, e)
    return clip(text, int(get_option("resume_max_chars"))) or "(resume text could not be extracted)"


def parse_analysis_response(text: str) -> CandidateAnalysisResponse:
    return CandidateAnalysisResponse.model_validate(json_loose(text))


def apply_analysis(
    candidate: Candidate,
    analysis: CandidateAnalysisResponse,
    requirements: Sequence[JobRequirement],
) -> Candidate:
    scores = reconcile_scores(analysis.scores, requirements)
    skills = analysis.skill_assessment
    return candidate.model_copy(update={
        "scores": scores,
        "overall_score": calculate_overall_score(scores, requirements),
        "strengths": [s for s in analysis.strengths if s.strip()],
        "weaknesses": [w for w in analysis.weaknesses if w.strip()],
        "personality_traits": analysis.personality_traits,
        "culture_fit": analysis.culture_fit.score,
        "culture_fit_notes": analysis.culture_fit.notes,
        "leadership_potential": analysis.leadership_potential.score,
        "leadership_notes": analysis.leadership_potential.notes,
        "education": analysis.education,
        "years_of_experience": analysis.years_of_experience,
        "location": analysis.location,
        "skill_keywords": analysis.skill_keywords,
        "communication_style": analysis.communication_style,
        "preferred_tools": analysis.preferred_tools,
        "skill_assessment": SkillAssessment(
            technical_skills=skills.technical_skills,
            soft_skills=skills.soft_skills,
            experience_evaluation=skills.experience_evaluation,
        ),
        "notes": analysis.notes,
        "status": "processed",
        "processed_at": now_utc(),
    })


# --------- entry ----------

def score_candidate(
    candidate: Candidate,
    requirements: Sequence[JobRequirement],
    *,
    llm: Optional[BaseChatModel],
) -> Candidate:
    if not requirements:
        raise MissingRequirementsError(f"Job has no requirements; cannot score '{candidate.name}'")
    if llm is None:
        logger.info("no AI credential; '%s' gets the N/A analysis", candidate.name)
        return empty_analysis(candidate, requirements)

    variables = {
        "requirements": _requirements_block(requirements),
        "candidate_name": candidate.name,
        "resume_text": _resume_text(candidate),
    }
    try:
        text = invoke_text(
            llm,
            [("system", PROMPTS["analyze_candidate_system"]), ("human", PROMPTS["analyze_candidate"])],
            variables,
        )
        analysis = parse_analysis_response(text)
    except ValidationError as e:
        logger.warning("analysis for '%s' failed validation (%d errors); using N/A analysis", candidate.name, e.error_count())
        return empty_analysis(candidate, requirements)
    except Exception as e:
        logger.warning("analysis for '%s' failed: %s; using N/A analysis", candidate.name, e)
        return empty_analysis(candidate, requirements)

    scored = apply_analysis(candidate, analysis, requirements)
    if not scored.scores:
        logger.warning("analysis for '%s' matched no requirements; using N/A analysis", candidate.name)
        return empty_analysis(candidate, requirements)

    logger.info("scored '%s': %.1f/10 over %d requirement(s)", scored.name, scored.overall_score, len(scored.scores))
    return scored


__all__ = [
    "NA",
    "MissingRequirementsError",
    "CandidateAnalysisResponse",
    "calculate_overall_score",
    "reconcile_scores",
    "persistable_scores",
    "empty_analysis",
    "parse_analysis_response",
    "apply_analysis",
    "score_candidate",
]
