# backend/talentscore/db/models.py
"""
SQLAlchemy ORM models.

profiles ─< jobs ─< job_requirements
                ├─< job_requirements_mapping ─< candidate_scores >─ candidates
                ├─< candidates ── candidate_analysis
                ├─< reports ─< report_candidates >─ candidates
                └─< job_context_files

job_requirements_mapping mirrors job_requirements with the same ids; it is the
foreign-key target for scores so a requirement edit never orphans them.
List-valued candidate fields are stored as JSON.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .session import Base


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)


class JobRow(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    department: Mapped[str] = mapped_column(Text, nullable=False, default="")
    salary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<JobRow id={self.id} title={self.title!r}>"


class RequirementRow(Base):
    __tablename__ = "job_requirements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str] = mapped_column(Text, nullable=False, default="General")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RequirementMappingRow(Base):
    __tablename__ = "job_requirements_mapping"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    original_id: Mapped[str] = mapped_column(String(36), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=5)


class CandidateRow(Base):
    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resume_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resume_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    original_filename: Mapped[str] = mapped_column(Text, nullable=False, default="")
    overall_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    strengths: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    weaknesses: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)


class CandidateScoreRow(Base):
    __tablename__ = "candidate_scores"
    __table_args__ = (UniqueConstraint("candidate_id", "requirement_id", name="uq_candidate_requirement"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id"), index=True, nullable=False)
    requirement_id: Mapped[str] = mapped_column(ForeignKey("job_requirements_mapping.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")


class CandidateAnalysisRow(Base):
    __tablename__ = "candidate_analysis"

    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id"), primary_key=True)
    personality_traits: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    culture_fit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    culture_fit_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    leadership_potential: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    leadership_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    education: Mapped[str] = mapped_column(Text, nullable=False, default="")
    years_of_experience: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    skill_keywords: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    communication_style: Mapped[str] = mapped_column(Text, nullable=False, default="")
    preferred_tools: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    skill_assessment: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ReportRow(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    additional_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class ReportCandidateRow(Base):
    __tablename__ = "report_candidates"

    report_id: Mapped[str] = mapped_column(ForeignKey("reports.id"), primary_key=True)
    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ContextFileRow(Base):
    __tablename__ = "job_context_files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
