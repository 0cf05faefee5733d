"""
Guides and example projects.

Both collections are fixed lists of markdown filenames. Their content is
served raw; rendering happens in the front‑end. Only the enumerated
names can be read, so a slug never reaches the filesystem unchecked.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .. import config
from .schemas import DocumentRef


logger = logging.getLogger(__name__)

GUIDE_FILES: Tuple[str, ...] = (
    "accept-payments-with-paystack.md",
    "ai-integration-guide.md",
    "connect-supabase-vercel.md",
    "get-started.md",
    "getting-started.md",
    "run-llm-locally.md",
    "track-users-privately.md",
)

EXAMPLE_FILES: Tuple[str, ...] = (
    "ai-chatbot-with-supabase.md",
    "analytics-dashboard.md",
    "file-uploader-app.md",
    "image-generator-app.md",
    "personal-dashboard.md",
    "sample-projects.md",
)

DOCUMENT_KINDS: Dict[str, Tuple[str, ...]] = {
    "guides": GUIDE_FILES,
    "examples": EXAMPLE_FILES,
}

_HEADING_RE = re.compile(r"^#\s+(.*)", re.MULTILINE)


def slug_of(filename: str) -> str:
    return filename[:-3] if filename.endswith(".md") else filename


def document_title(text: str, fallback: str) -> str:
    """Return the first level-one heading of ``text``, or ``fallback``."""
    m = _HEADING_RE.search(text or "")
    return m.group(1).strip() if m and m.group(1).strip() else fallback


def _filename_for(kind: str, slug: str) -> Optional[str]:
    for filename in DOCUMENT_KINDS.get(kind, ()):
        if slug_of(filename) == slug or filename == slug:
            return filename
    return None


def read_document(kind: str, slug: str, content_dir: Optional[Path] = None) -> Optional[str]:
    """Return the raw markdown of a guide or example.

    ``None`` is returned when the kind or slug is not enumerated or when
    the file is missing on disk.
    """
    filename = _filename_for(kind, slug)
    if filename is None:
        return None
    path = (content_dir or config.CONTENT_DIR) / kind / filename
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


def list_documents(kind: str, content_dir: Optional[Path] = None) -> List[DocumentRef]:
    refs: List[DocumentRef] = []
    for filename in DOCUMENT_KINDS.get(kind, ()):
        slug = slug_of(filename)
        text = read_document(kind, slug, content_dir) or ""
        refs.append(DocumentRef(slug=slug, filename=filename, title=document_title(text, slug)))
    return refs
