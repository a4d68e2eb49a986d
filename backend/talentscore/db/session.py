# backend/talentscore/db/session.py
"""
SQLAlchemy session/engine bootstrap.
- Reads DATABASE_URL from env (defaults to a local SQLite file).
- Exposes: engine, SessionLocal, configure(), session_scope(), get_session(), ensure_tables().
- SQLite connections enforce foreign keys, so scores can only point at real
  requirement mirrors locally as well.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# --- config from env ---------------------------------------------------------

DATABASE_URL = (os.getenv("DATABASE_URL") or "sqlite:///./talentscore.db").strip()
DB_ECHO = (os.getenv("DB_ECHO") or "false").lower() == "true"

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    pass

# --- engine & session --------------------------------------------------------

engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker[Session]] = None


def _sqlite_fk_pragma(dbapi_conn, _record) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def configure(url: Optional[str] = None, echo: bool = DB_ECHO) -> Engine:
    """(Re)build the engine and session factory; tests point this at sqlite in-memory."""
    global engine, SessionLocal
    url = (url or DATABASE_URL).strip()

    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    if engine is not None:
        engine.dispose()
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _sqlite_fk_pragma)
    SessionLocal = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False)
    logger.info("database configured (%s)", engine.url.render_as_string(hide_password=True))
    return engine


configure()

# --- helpers ----------------------------------------------------------------

@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Context manager for a DB session: commits on success, rolls back on error.
    Example:
        with session_scope() as s:
            s.add(obj)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

def get_session() -> Iterator[Session]:
    """
    FastAPI dependency style generator; same commit/rollback rules as session_scope.
    Usage:
        @app.get(...)
        def handler(db: Session = Depends(get_session)):
            ...
    """
    with session_scope() as db:
        yield db

def ensure_tables() -> None:
    """
    Create tables if needed. Import models lazily to avoid circulars.
    Call this once at startup or before first insert.
    """
    # local import to prevent circular import during module import
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine)

def drop_tables() -> None:
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)

__all__ = [
    "Base",
    "DATABASE_URL",
    "configure",
    "session_scope",
    "get_session",
    "ensure_tables",
    "drop_tables",
]
