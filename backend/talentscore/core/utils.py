# backend/talentscore/core/utils.py
"""
Generic helpers used across the pipeline.

Includes:
- lightweight file readers (pdf/docx/txt/csv) and text cleanup
- resume section heading detection
- safe JSON extraction
- UUID validation, time helpers and misc string utils
"""

from __future__ import annotations

import json
import re
import uuid
import zipfile
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

# -------- Upload readers (pdf/docx/txt/csv) -----------------------------------

TEXT_EXTENSIONS = {".txt", ".csv", ".md"}

def read_pdf_pymupdf(path: str) -> str:
    """Page text of a PDF résumé, joined with newlines (PyMuPDF through LangChain)."""
    from langchain_community.document_loaders import PyMuPDFLoader
    loader = PyMuPDFLoader(path)
    docs = loader.load()
    return "\n".join((d.page_content or "") for d in docs)

def read_docx_quick(path: str) -> str:
    """Non-empty paragraphs of a .docx, read straight from word/document.xml."""
    with zipfile.ZipFile(path) as z:
        xml_bytes = z.read("word/document.xml")
    root = ET.fromstring(xml_bytes)
    ns = {"w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main"}
    lines: List[str] = []
    for p in root.findall(".//w:p", ns):
        txt = "".join((t.text or "") for t in p.findall(".//w:t", ns)).strip()
        if txt:
            lines.append(txt)
    return "\n".join(lines)

def read_text_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="ignore")

def read_any(path: Optional[str]) -> str:
    """
    Return the text of a stored upload. Binary formats without a reader
    (.doc, .xlsx) yield an empty string.
    """
    if not path:
        return ""
    p = Path(path)
    if not p.exists():
        return ""
    ext = p.suffix.lower()
    if ext == ".pdf":
        return read_pdf_pymupdf(str(p))
    if ext == ".docx":
        return read_docx_quick(str(p))
    if ext in TEXT_EXTENSIONS:
        return read_text_file(str(p))
    return ""

# -------- Sectioning ----------------------------------------------------------

SECTION_PAT = re.compile(
    r"^\s*(resume|résumé|curriculum vitae|cv|summary|profile|professional summary|objective|contact|contact information|experience|work experience|employment|projects|internships?|education|skills|certifications?|awards?|publications?|achievements?|volunteer|activities|references|languages|interests)\s*:?\s*$",
    re.I,
)

def first_lines(text: str, limit: int = 10) -> List[str]:
    """First `limit` non-empty, stripped lines of a document."""
    out: List[str] = []
    for ln in (text or "").splitlines():
        ln = re.sub(r"\s+", " ", ln).strip()
        if ln:
            out.append(ln)
        if len(out) >= limit:
            break
    return out

# -------- JSON + strings -----------------------------------------------------

_FENCE_RE = re.compile(r"^```[\w-]*\s*|\s*```$")

def strip_code_fences(s: str) -> str:
    text = (s or "").strip()
    if text.startswith("```"):
        text = _FENCE_RE.sub("", text).strip()
    return text

def json_loose(s: str) -> Any:
    """
    Parse a possibly noisy LLM response and return the first valid JSON object/array.
    """
    s = strip_code_fences(s)
    try:
        return json.loads(s)
    except Exception:
        m = re.search(r"\{.*\}|\[.*\]", s, flags=re.S)
        if m:
            return json.loads(m.group(0))
        raise

def clip(s: Optional[str], n: int = 1200) -> str:
    if not s:
        return ""
    s = str(s)
    return s if len(s) <= n else s[:n]

# -------- Ids + time -----------------------------------------------------------

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)

def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_RE.match(str(value)))

def new_id() -> str:
    return str(uuid.uuid4())

def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


__all__ = [
    # readers
    "read_any", "read_pdf_pymupdf", "read_docx_quick", "read_text_file",
    # sections
    "SECTION_PAT", "first_lines",
    # json/string utils
    "json_loose", "strip_code_fences", "clip",
    # ids/time
    "is_valid_uuid", "new_id", "now_utc",
]
