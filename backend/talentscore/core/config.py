# backend/talentscore/core/config.py
"""
Central config & environment helpers.
- Loads env (.env) early
- Resolves the AI credential and wraps it in an explicit AIConfig
- Holds DEFAULT_OPTIONS used by the pipeline
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load .env once for the whole app
load_dotenv(override=False)

# --- API keys ---------------------------------------------------------------

def get_ai_api_key() -> Optional[str]:
    """
    Returns the AI API key from the environment, or None when unset.
    Absence is not an error here: each call site decides whether a missing
    credential blocks the operation or degrades to a fallback.
    """
    key = (
        os.getenv("GEMINI_API_KEY")
        or os.getenv("GOOGLE_API_KEY")
        or os.getenv("GEMINI_APIKEY")
        or ""
    ).strip()
    return key or None


# --- Options ----------------------------------------------------------------

DEFAULT_OPTIONS: Dict[str, Any] = {
    # model
    "model": "gemini-2.0-flash",
    "temperature": 0.2,
    "max_tokens": 4096,

    # prompt budgets (characters)
    "resume_max_chars": 12000,
    "context_max_chars": 6000,
    "job_description_max_chars": 6000,

    # batch processing
    "batch_delay_seconds": 1.5,

    # uploads
    "upload_dir": "./tmp/uploads",
    "max_upload_mb": 5,
    "allowed_extensions": [".pdf", ".doc", ".docx", ".txt", ".csv", ".xlsx"],
}


@dataclass(frozen=True)
class AIConfig:
    api_key: Optional[str] = None
    model: str = DEFAULT_OPTIONS["model"]
    temperature: float = DEFAULT_OPTIONS["temperature"]
    max_tokens: int = DEFAULT_OPTIONS["max_tokens"]

    @property
    def has_credential(self) -> bool:
        return bool((self.api_key or "").strip())


def load_ai_config(api_key: Optional[str] = None) -> AIConfig:
    """
    Build an AIConfig. An explicit key (e.g. supplied by the client for one
    request) wins over the environment.
    """
    base = AIConfig(
        api_key=get_ai_api_key(),
        model=os.getenv("AI_MODEL") or DEFAULT_OPTIONS["model"],
    )
    if api_key and api_key.strip():
        return replace(base, api_key=api_key.strip())
    return base


def get_option(name: str) -> Any:
    return DEFAULT_OPTIONS[name]


__all__ = ["AIConfig", "DEFAULT_OPTIONS", "get_ai_api_key", "load_ai_config", "get_option"]
