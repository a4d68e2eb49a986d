# backend/talentscore/pipeline/requirements.py
"""
Requirement generation:
job title/company/description (+ context documents) → weighted JobRequirement list.

Entry:
    generate_requirements(title, company, description, context_texts, llm=...) -> List[JobRequirement]

Unlike scoring and reporting there is no fallback here: a missing credential or an
unusable response raises, and no partial list is ever returned.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..core.config import get_option
from ..core.llm import invoke_text
from ..core.prompts import PROMPTS
from ..core.utils import clip, new_id, strip_code_fences
from .state import JobRequirement

logger = logging.getLogger(__name__)

_ARRAY_RE = re.compile(r"\[.*\]", re.S)


class MissingCredentialError(RuntimeError):
    pass


class RequirementGenerationError(RuntimeError):
    pass


class RequirementItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    weight: int = Field(ge=1, le=10)
    is_required: bool = False


def parse_requirements_response(text: str) -> List[RequirementItem]:
    """
    Parse the model's answer into validated items.
    Direct JSON first, then the first `[...]` block; anything else is an error.
    """
    raw = strip_code_fences(text)
    data: Any
    try:
        data = json.loads(raw)
    except Exception:
        m = _ARRAY_RE.search(raw)
        if not m:
            raise RequirementGenerationError("Failed to generate requirements: response is not JSON")
        try:
            data = json.loads(m.group(0))
        except Exception as e:
            raise RequirementGenerationError("Failed to generate requirements: response is not JSON") from e

    if not isinstance(data, list) or not data:
        raise RequirementGenerationError("Failed to generate requirements: expected a non-empty JSON array")

    try:
        return [RequirementItem.model_validate(item) for item in data]
    except ValidationError as e:
        raise RequirementGenerationError(f"Failed to generate requirements: {e.error_count()} invalid field(s)") from e


def _context_block(context_texts: Optional[Sequence[str]]) -> str:
    texts = [t.strip() for t in (context_texts or []) if t and t.strip()]
    if not texts:
        return "(none)"
    budget = int(get_option("context_max_chars"))
    per_doc = max(500, budget // len(texts))
    return "\n\n".join(f"[Document {i + 1}]\n{clip(t, per_doc)}" for i, t in enumerate(texts))


def generate_requirements(
    title: str,
    company: str,
    description: str,
    context_texts: Optional[Sequence[str]] = None,
    *,
    llm: Optional[BaseChatModel],
) -> List[JobRequirement]:
    if llm is None:
        raise MissingCredentialError("AI API key not set; cannot generate requirements")

    variables = {
        "title": title or "Untitled Position",
        "company": company or "Company",
        "description": clip(description, int(get_option("job_description_max_chars"))) or "(no description)",
        "context": _context_block(context_texts),
    }

    try:
        text = invoke_text(
            llm,
            [("system", PROMPTS["generate_requirements_system"]), ("human", PROMPTS["generate_requirements"])],
            variables,
        )
    except Exception as e:
        logger.warning("requirement generation call failed: %s", e)
        raise RequirementGenerationError("Failed to generate requirements") from e

    items = parse_requirements_response(text)
    requirements = [
        JobRequirement(
            id=new_id(),
            category=item.category.strip(),
            description=item.description.strip(),
            weight=item.weight,
            is_required=item.is_required,
        )
        for item in items
    ]
    logger.info("generated %d requirements for '%s'", len(requirements), title)
    return requirements


__all__ = [
    "MissingCredentialError",
    "RequirementGenerationError",
    "RequirementItem",
    "parse_requirements_response",
    "generate_requirements",
]
