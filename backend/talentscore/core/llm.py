# backend/talentscore/core/llm.py
"""
Gemini LLM handle (LangChain wrapper).
- Built per AIConfig instead of once at import time
- Returns None when no credential is configured; callers branch on that
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI

from .config import AIConfig

logger = logging.getLogger(__name__)


def build_llm(config: AIConfig) -> Optional[ChatGoogleGenerativeAI]:
    if not config.has_credential:
        return None
    return ChatGoogleGenerativeAI(
        model=config.model,
        temperature=config.temperature,
        max_output_tokens=config.max_tokens,
        api_key=config.api_key,
    )


def invoke_text(llm: BaseChatModel, messages: List[tuple], variables: Dict[str, Any]) -> str:
    """Run a (system, human) prompt through the model and return the raw text."""
    chain = ChatPromptTemplate.from_messages(messages) | llm
    out = chain.invoke(variables)
    content = getattr(out, "content", out)
    if isinstance(content, list):
        # multi-part responses: keep the text parts only
        content = "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
    return str(content).strip()


def to_prompt_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


__all__ = ["build_llm", "invoke_text", "to_prompt_json"]
