"""
Simple data store for the tool catalog.

The ``TOOLS`` list is populated at import time from the JSON documents
found in the catalog data directory. Each document is either a bare
array of tool entries or an object with a ``tools`` array; all of them
are aggregated into one list of ``ToolRecord`` instances. Helpers for
browsing (text search and category filter), validation of the data
files and README rendering live here as well.
"""

from __future__ import annotations

import json
import logging
import re
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .. import config
from .schemas import ToolRecord, ToolStatus


logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"

# Keys every entry of a data file must carry
REQUIRED_KEYS = (
    "name",
    "description",
    "link",
    "type",
    "category",
    "tags",
    "popularity",
    "tutorial",
)


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def _slugify(name: str) -> str:
    return re.sub(r"[^\w]+", "-", name.strip().lower()).strip("-")


def _extract_entries(raw: Any) -> List[Any]:
    """Return the list of entries in a parsed document.

    A document is either a bare array or ``{"tools": [...]}``. Anything
    else yields an empty list.
    """
    if isinstance(raw, dict):
        raw = raw.get("tools")
    return list(raw) if isinstance(raw, list) else []


def _parse_status(entry: Dict[str, Any]) -> ToolStatus:
    value = _norm(entry.get("status") or entry.get("type") or entry.get("pricing"))
    try:
        return ToolStatus(value)
    except ValueError:
        return ToolStatus.freemium


def _parse_popularity(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def tool_from_entry(entry: Dict[str, Any]) -> ToolRecord:
    """Convert one raw data-file entry into a ``ToolRecord``.

    Raises
    ------
    ValueError
        If the entry has no usable name.
    """
    name = str(entry.get("name") or "").strip()
    if not name:
        raise ValueError("tool entry has no name")
    tags = entry.get("tags") or []
    if not isinstance(tags, list):
        tags = [tags]
    return ToolRecord(
        id=str(entry.get("id") or _slugify(name)),
        name=name,
        description=str(entry.get("description") or ""),
        category=str(entry.get("category") or ""),
        tags=[str(t) for t in tags],
        status=_parse_status(entry),
        link=str(entry.get("link") or entry.get("website") or ""),
        tutorial=entry.get("tutorial") or None,
        example_project_link=(
            entry.get("exampleProjectLink") or entry.get("example_project_link") or None
        ),
        popularity=_parse_popularity(entry.get("popularity")),
        logo=entry.get("logo") or None,
    )


def load_catalog(data_dir: Path) -> List[ToolRecord]:
    """Load and aggregate every ``*.json`` document in ``data_dir``.

    Files are read in name order. Unreadable files and entries that cannot
    be converted are skipped and logged, so a single bad document never
    empties the catalog.
    """
    tools: List[ToolRecord] = []
    if not data_dir.is_dir():
        logger.warning("Catalog directory %s does not exist", data_dir)
        return tools
    for path in sorted(data_dir.glob("*.json")):
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read catalog file %s: %s", path, exc)
            continue
        for index, entry in enumerate(_extract_entries(raw)):
            if not isinstance(entry, dict):
                logger.warning("%s[%d] is not an object, skipped", path.name, index)
                continue
            try:
                tools.append(tool_from_entry(entry))
            except ValueError as exc:
                logger.warning("%s[%d] skipped: %s", path.name, index, exc)
    logger.info("Loaded %d tools from %s", len(tools), data_dir)
    return tools


# In-memory catalog shared by the routers and the chat orchestrator
TOOLS: List[ToolRecord] = load_catalog(config.CATALOG_DATA_DIR)


def get_tool(tool_id: str, tools: Optional[List[ToolRecord]] = None) -> Optional[ToolRecord]:
    for tool in TOOLS if tools is None else tools:
        if tool.id == tool_id:
            return tool
    return None


def filter_tools(
    tools: Iterable[ToolRecord],
    q: Optional[str] = None,
    category: Optional[str] = None,
) -> List[ToolRecord]:
    """Filter tools by category and free-text query.

    Parameters
    ----------
    tools : Iterable[ToolRecord]
        The catalog to filter.
    q : Optional[str]
        Case-insensitive substring matched against the name, the
        description and each tag. Empty matches everything.
    category : Optional[str]
        Exact category name. ``None``, empty or ``"All"`` disables the
        filter.

    Returns
    -------
    List[ToolRecord]
        Matching tools in catalog order.
    """
    nq = _norm(q)
    use_category = bool(category) and category != ALL_CATEGORIES

    def _matches(tool: ToolRecord) -> bool:
        if use_category and tool.category != category:
            return False
        if not nq:
            return True
        return (
            nq in tool.name.lower()
            or nq in tool.description.lower()
            or any(nq in tag.lower() for tag in tool.tags)
        )

    return [t for t in tools if _matches(t)]


def list_categories(tools: Iterable[ToolRecord]) -> List[str]:
    unique = {t.category for t in tools if t.category}
    return [ALL_CATEGORIES] + sorted(unique)


# ---------------------------------------------------------------------------
# Data file validation


def validate_entries(raw: Any, source: str = "<data>") -> List[str]:
    """Check a parsed data document against the catalog schema.

    Both document shapes are accepted: a bare array or ``{"tools": [...]}``.
    Returns a list of human-readable error strings; an empty list means
    the document is valid.
    """
    wrapped = isinstance(raw, dict) and isinstance(raw.get("tools"), list)
    if not isinstance(raw, list) and not wrapped:
        return [f"Expected array in {source}"]
    errors: List[str] = []
    for index, entry in enumerate(_extract_entries(raw)):
        if not isinstance(entry, dict):
            errors.append(f"{source}[{index}] is not an object")
            continue
        for key in REQUIRED_KEYS:
            if key not in entry:
                errors.append(f"{source}[{index}] missing key: {key}")
        if "tags" in entry and not isinstance(entry["tags"], list):
            errors.append(f"{source}[{index}] tags must be an array")
    return errors


def validate_catalog_file(path: Path) -> List[str]:
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        return [f"Invalid JSON: {path.name}: {exc}"]
    except OSError as exc:
        return [f"Unreadable file: {path.name}: {exc}"]
    return validate_entries(raw, source=path.name)


def validate_catalog_dir(data_dir: Path) -> Dict[str, List[str]]:
    """Validate every ``*.json`` file, returning errors keyed by filename."""
    return {path.name: validate_catalog_file(path) for path in sorted(data_dir.glob("*.json"))}


# ---------------------------------------------------------------------------
# README rendering


def render_catalog_markdown(tools: Iterable[ToolRecord], heading: str = "Builders Lab Toolkit") -> str:
    """Render the catalog as markdown, one table per category."""
    grouped: "OrderedDict[str, List[ToolRecord]]" = OrderedDict()
    for tool in tools:
        grouped.setdefault(tool.category or "Other Utilities", []).append(tool)

    lines = [f"# {heading}", "", "Automatically generated from the catalog data files.", ""]
    for category in sorted(grouped):
        items = grouped[category]
        lines.append(f"## {category} ({len(items)})")
        lines.append("")
        lines.append("| Name | Description | Type | Learn | Tags | Popularity |")
        lines.append("|------|--------------|------|-------|------|------------|")
        for tool in items:
            link = tool.link or "#"
            desc = tool.description.replace("|", "\\|")
            tutorial = tool.tutorial or link
            popularity = "" if tool.popularity is None else f"{tool.popularity:g}"
            lines.append(
                f"| [{tool.name}]({link}) | {desc} | {tool.status.value} "
                f"| [Docs]({tutorial}) | {', '.join(tool.tags)} | {popularity} |"
            )
        lines.append("")
        lines.append("---")
        lines.append("")
    return "\n".join(lines)
