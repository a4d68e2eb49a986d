from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda


def pytest_configure() -> None:
    # In-memory SQLite for every engine the app builds during tests.
    os.environ["DATABASE_URL"] = "sqlite://"
    os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # A developer's real key must never reach a test.
    for key in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_APIKEY"):
        monkeypatch.delenv(key, raising=False)

    from talentscore.core.config import DEFAULT_OPTIONS

    monkeypatch.setitem(DEFAULT_OPTIONS, "batch_delay_seconds", 0)
    monkeypatch.setitem(DEFAULT_OPTIONS, "upload_dir", str(tmp_path / "uploads"))


@pytest.fixture()
def db() -> Iterator[None]:
    from talentscore.db import session as db_session

    db_session.configure("sqlite://")
    db_session.ensure_tables()
    yield
    db_session.drop_tables()


@pytest.fixture()
def session(db):
    from talentscore.db.session import session_scope

    with session_scope() as s:
        yield s


@pytest.fixture()
def client(db) -> Any:
    from talentscore.main import _batches, app

    _batches.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def use_llm(client) -> Callable[[Any], None]:
    """Route every AI call made by the app through the given model."""
    from talentscore.main import app, get_llm

    def _set(llm: Any) -> None:
        app.dependency_overrides[get_llm] = lambda: llm

    return _set


@pytest.fixture()
def fake_llm() -> Callable[..., FakeListChatModel]:
    def _make(*responses: str) -> FakeListChatModel:
        return FakeListChatModel(responses=list(responses))

    return _make


@pytest.fixture()
def failing_llm() -> RunnableLambda:
    def _boom(_prompt: Any) -> str:
        raise RuntimeError("AI endpoint unavailable")

    return RunnableLambda(_boom)


@pytest.fixture()
def analysis_json() -> Callable[..., str]:
    """A well-formed candidate analysis response with the given score entries."""

    def _make(scores: List[Dict[str, Any]], overall: float = 5.0, **extra: Any) -> str:
        data: Dict[str, Any] = {
            "scores": scores,
            "overallScore": overall,
            "strengths": ["Strong Python background"],
            "weaknesses": ["No Kubernetes experience"],
            "cultureFit": {"score": 7, "notes": "Collaborative"},
            "leadershipPotential": {"score": 6, "notes": "Mentored two juniors"},
            "skillAssessment": {
                "technicalSkills": ["Python", "SQL"],
                "softSkills": ["Communication"],
                "experienceEvaluation": "Five years of backend work",
            },
            "notes": "Good fit overall",
            "yearsOfExperience": 5,
            "education": "BSc Computer Science",
            "location": "Berlin",
        }
        data.update(extra)
        return json.dumps(data)

    return _make


@pytest.fixture()
def headers() -> Callable[[Optional[str]], Dict[str, str]]:
    def _make(user: Optional[str] = "user-1") -> Dict[str, str]:
        return {"X-User-Id": user} if user else {}

    return _make
