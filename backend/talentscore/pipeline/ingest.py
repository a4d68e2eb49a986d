# backend/talentscore/pipeline/ingest.py
"""
Candidate ingestion: one uploaded file → one pending Candidate.

Name resolution, first match wins:
  1) the filename ("resume_john_doe_2023.pdf" → "John Doe")
  2) a plausible name line near the top of the document text
  3) a generated placeholder from fixed name pools
"""

from __future__ import annotations

import logging
import random
import re
from pathlib import Path
from typing import Optional

from ..core.config import get_option
from ..core.utils import SECTION_PAT, first_lines, read_any
from .state import Candidate

logger = logging.getLogger(__name__)


class UploadValidationError(ValueError):
    pass


GENERIC_FILENAME_WORDS = {
    "untitled", "document", "documents", "doc", "docx", "pdf", "scan", "scanned",
    "img", "image", "photo", "file", "files", "copy", "new", "download", "upload",
    "attachment", "final", "draft", "page", "version", "updated", "latest", "cover",
    "letter", "application", "candidate", "profile",
}

# dropped from filenames before the blocklist check ("john_doe_cv.pdf" is fine)
RESUME_WORDS = {"cv", "resume", "résumé", "curriculum", "curriculm", "vitae"}

FIRST_NAMES = [
    "James", "Mary", "Robert", "Patricia", "John", "Jennifer", "Michael", "Linda",
    "David", "Elizabeth", "William", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Daniel", "Karen", "Matthew", "Emily", "Anthony", "Olivia",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Wilson", "Anderson", "Thomas",
    "Taylor", "Moore", "Jackson", "Martin", "Lee", "Thompson", "White", "Harris", "Clark",
]

_PREFIX_RE = re.compile(r"^(cv|resume|résumé|curriculu?m\s*vitae)\b\s*", re.I)
_SEPARATORS_RE = re.compile(r"(?:[^\w']|[\d_])+")
_CONTACT_RE = re.compile(r"@|https?:|www\.|\.com\b|/|\||:|\\")


# -------- validation ---------------------------------------------------------

def validate_upload(filename: str, size_bytes: int) -> None:
    ext = Path(filename or "").suffix.lower()
    allowed = [e.lower() for e in get_option("allowed_extensions")]
    if ext not in allowed:
        raise UploadValidationError(f"Unsupported file type '{ext or filename}'. Allowed: {', '.join(allowed)}")
    max_mb = float(get_option("max_upload_mb"))
    if size_bytes > max_mb * 1024 * 1024:
        raise UploadValidationError(f"File '{filename}' exceeds the {max_mb:g} MB limit")


# -------- name extraction ------------------------------------------------------

def _title_case(parts) -> str:
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts if p)


def parse_name_from_filename(filename: str) -> Optional[str]:
    name = Path(filename or "").name
    stem = name.rsplit(".", 1)[0] if "." in name else name

    cleaned = _SEPARATORS_RE.sub(" ", stem).strip()
    while True:
        stripped = _PREFIX_RE.sub("", cleaned).strip()
        if stripped == cleaned:
            break
        cleaned = stripped

    parts = [p.strip("'") for p in cleaned.split()]
    parts = [p for p in parts if p and p.lower() not in RESUME_WORDS]
    if not parts:
        return None
    if any(p.lower() in GENERIC_FILENAME_WORDS for p in parts):
        return None

    candidate = _title_case(parts)
    if len(candidate) < 3:
        return None
    return candidate


def _looks_like_name(line: str) -> bool:
    words = line.split()
    if not 2 <= len(words) <= 3 or len(line) >= 30:
        return False
    if any(ch.isdigit() for ch in line) or _CONTACT_RE.search(line):
        return False
    if SECTION_PAT.match(line):
        return False
    return all(re.fullmatch(r"[^\W\d_][\w'.\-]*", w) for w in words)


def extract_name_from_content(text: str) -> Optional[str]:
    for line in first_lines(text, 10):
        if _looks_like_name(line):
            return _title_case(line.split()) if line.isupper() else line
    return None


def generate_placeholder_name(rng: Optional[random.Random] = None) -> str:
    r = rng or random
    return f"{r.choice(FIRST_NAMES)} {r.choice(LAST_NAMES)}"


def email_for(name: str) -> str:
    local = re.sub(r"\s+", ".", name.strip().lower())
    return f"{local}@example.com"


# -------- entry ----------------------------------------------------------------

def create_candidate_from_file(
    path: str,
    job_id: str,
    index: int,
    *,
    original_filename: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Candidate:
    """
    Build a pending Candidate for a stored upload. Never raises on unreadable
    content; the document text is best-effort.
    """
    filename = original_filename or Path(path).name

    text = ""
    try:
        text = read_any(path)
    except Exception as e:
        logger.warning("could not extract text from %s: %s", filename, e)

    name = parse_name_from_filename(filename)
    source = "filename"
    if not name:
        name = extract_name_from_content(text)
        source = "content"
    if not name:
        name = generate_placeholder_name(rng)
        source = "generated"
    logger.info("candidate #%d name '%s' (from %s)", index, name, source)

    return Candidate(
        job_id=job_id,
        name=name,
        email=email_for(name),
        resume_url=str(path),
        resume_text=text,
        original_filename=filename,
        status="pending",
    )


__all__ = [
    "UploadValidationError",
    "GENERIC_FILENAME_WORDS",
    "validate_upload",
    "parse_name_from_filename",
    "extract_name_from_content",
    "generate_placeholder_name",
    "email_for",
    "create_candidate_from_file",
]
