# backend/talentscore/core/prompts.py
"""
Prompt templates used by the pipeline.
- Keys: generate_requirements, analyze_candidate_system, analyze_candidate,
  generate_report_system, generate_report
- These are LangChain-friendly templates (use with ChatPromptTemplate.from_messages)
"""

from __future__ import annotations

from typing import Dict, List

def _escape_braces_keep_vars(template: str, keep_vars: List[str]) -> str:
    esc = template.replace("{", "{{").replace("}", "}}")
    for v in keep_vars:
        esc = esc.replace("{{" + v + "}}", "{" + v + "}")
    return esc

PROMPTS: Dict[str, str] = {}

# 1) Job description (+ context documents) -> weighted requirement list
PROMPTS["generate_requirements_system"] = (
    "You are an experienced technical recruiter. You turn job postings into precise, "
    "weighted evaluation criteria. You answer with JSON only."
)

PROMPTS["generate_requirements"] = _escape_braces_keep_vars(r"""
Create the evaluation requirements for the job below. Cover experience, technical skills,
soft skills and domain knowledge; produce between 8 and 15 requirements.

Rules:
- "category" is a short label such as "Experience", "Technical", "Communication", "Education".
- "description" is one concrete, checkable criterion (≤ 160 chars).
- "weight" is an integer 1–10; 10 = most important.
- "isRequired" is true for must-haves, false for nice-to-haves.

Return ONLY a JSON array, no prose and no code fences:
[
  {"category": "", "description": "", "weight": 1, "isRequired": true}
]

Job title: {title}
Company: {company}

Job description:
---
{description}
---

Additional context documents:
---
{context}
---
""", ["title", "company", "description", "context"])

# 2) Candidate analysis against the requirement list
PROMPTS["analyze_candidate_system"] = (
    "You are a rigorous hiring evaluator. Score a candidate's resume against each job requirement. "
    "Every score must be justified with concrete evidence quoted or paraphrased from the resume; "
    "when the resume shows no evidence for a requirement, give a low score and say so. "
    "Never invent experience. You answer with a single JSON object only."
)

PROMPTS["analyze_candidate"] = _escape_braces_keep_vars(r"""
Evaluate the candidate against EVERY requirement listed below, in the same order.

Requirements:
{requirements}

Scoring scale per requirement: integer 1–10 (1 = no evidence, 10 = exceptional evidence).
Echo each requirement's "id" back as "requirementId".

Return STRICT JSON only:
{
  "scores": [
    {"requirementId": "<id from the list>", "score": 1, "justification": "evidence-based reason"}
  ],
  "overallScore": 0.0,
  "strengths": ["..."],
  "weaknesses": ["..."],
  "cultureFit": {"score": 1, "notes": ""},
  "leadershipPotential": {"score": 1, "notes": ""},
  "skillAssessment": {
    "technicalSkills": ["..."],
    "softSkills": ["..."],
    "experienceEvaluation": ""
  },
  "personalityTraits": ["..."],
  "education": "",
  "yearsOfExperience": 0,
  "location": "",
  "skillKeywords": ["..."],
  "communicationStyle": "",
  "preferredTools": ["..."],
  "notes": ""
}

Candidate: {candidate_name}
Resume:
---
{resume_text}
---
""", ["requirements", "candidate_name", "resume_text"])

# 3) Ranking report over a candidate subset
PROMPTS["generate_report_system"] = (
    "You are a senior recruiter writing a candidate comparison report for a hiring manager. "
    "Be concise, neutral and specific. Base every statement on the supplied scores and analysis."
)

PROMPTS["generate_report"] = _escape_braces_keep_vars(r"""
Write a ranking report in Markdown for the job and candidates below.

The Markdown must contain these sections, in order:
"# Candidate Ranking Report for <job title>", "## Job Overview", "## Candidate Rankings"
(one "### <rank>. <name> - <score>/10" subsection per candidate, best first),
"## Comparison Summary", "## Recommendations".
{additional_instructions}

Return STRICT JSON only:
{
  "content": "<the full Markdown report>",
  "candidateRankings": [{"candidateId": "", "name": "", "rank": 1, "overallScore": 0.0}],
  "topCandidates": ["<candidate id>"]
}

Job:
---
{job_json}
---

Candidates:
---
{candidates_json}
---
""", ["job_json", "candidates_json", "additional_instructions"])

__all__ = ["PROMPTS"]
