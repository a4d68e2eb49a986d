# backend/talentscore/pipeline/state.py
"""
Domain state shared by every pipeline step:
Job → JobRequirement / Candidate (→ CandidateScore) / ContextFile, and Report.

These are the in-memory objects the pipeline mutates; db/crud.py converts
them to and from ORM rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..core.utils import new_id, now_utc

CandidateStatus = Literal["pending", "processed", "reviewed", "interviewed", "hired", "rejected"]


class JobRequirement(BaseModel):
    id: str = Field(default_factory=new_id)
    category: str = "General"
    description: str
    weight: int = Field(default=5, ge=1, le=10)
    # advisory only; never filters or re-weights scoring
    is_required: bool = False


class CandidateScore(BaseModel):
    requirement_id: str
    score: int = Field(ge=0, le=10)
    comment: str = ""


class SkillAssessment(BaseModel):
    technical_skills: List[str] = Field(default_factory=list)
    soft_skills: List[str] = Field(default_factory=list)
    experience_evaluation: str = ""


class Candidate(BaseModel):
    id: str = Field(default_factory=new_id)
    job_id: str
    name: str
    email: str = ""
    resume_url: str = ""
    resume_text: str = Field(default="", exclude=True)
    original_filename: str = ""
    overall_score: float = 0.0
    scores: List[CandidateScore] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    is_starred: bool = False
    status: CandidateStatus = "pending"

    personality_traits: List[str] = Field(default_factory=list)
    culture_fit: float = 0.0
    culture_fit_notes: str = ""
    leadership_potential: float = 0.0
    leadership_notes: str = ""
    education: str = ""
    years_of_experience: float = 0.0
    location: str = ""
    skill_keywords: List[str] = Field(default_factory=list)
    communication_style: str = ""
    preferred_tools: List[str] = Field(default_factory=list)
    skill_assessment: Optional[SkillAssessment] = None
    notes: str = ""

    processed_at: Optional[datetime] = None

    @property
    def is_processed(self) -> bool:
        return len(self.scores) > 0


class ContextFile(BaseModel):
    id: str = Field(default_factory=new_id)
    job_id: str
    file_name: str
    content: str = ""


class Job(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    company: str = ""
    description: str = ""
    location: str = ""
    department: str = ""
    salary: str = ""
    requirements: List[JobRequirement] = Field(default_factory=list)
    candidates: List[Candidate] = Field(default_factory=list)
    context_files: List[ContextFile] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    def candidate(self, candidate_id: str) -> Optional[Candidate]:
        return next((c for c in self.candidates if c.id == candidate_id), None)

    @property
    def unprocessed_candidates(self) -> List[Candidate]:
        return [c for c in self.candidates if not c.is_processed]


class Report(BaseModel):
    id: str = Field(default_factory=new_id)
    job_id: str
    title: str
    summary: str = ""
    content: str
    candidate_ids: List[str] = Field(default_factory=list)
    additional_prompt: Optional[str] = None
    created_at: datetime = Field(default_factory=now_utc)
    metadata: Optional[Dict[str, Any]] = None


__all__ = [
    "CandidateStatus",
    "JobRequirement",
    "CandidateScore",
    "SkillAssessment",
    "Candidate",
    "ContextFile",
    "Job",
    "Report",
]
