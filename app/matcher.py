# app/matcher.py
"""Lexical matching of a chat question against the catalog, guides and examples."""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from . import config
from .catalog.documents import EXAMPLE_FILES, GUIDE_FILES
from .catalog.schemas import ToolRecord
from .models import MatchResult, UserLevel


logger = logging.getLogger(__name__)

# Checked in this order; the first group that hits decides the level.
BEGINNER_PHRASES = (
    "beginner",
    "new to",
    "just started",
    "getting started",
    "get started",
    "first time",
    "help me understand",
    "how does",
    "what is",
    "explain",
    "learn",
    "basics",
)

EXPERT_PHRASES = (
    "optimize",
    "optimise",
    "architecture",
    "scalab",
    "performance",
    "production",
    "advanced",
    "microservice",
    "latency",
    "concurrency",
    "best practice",
)

_SPLIT_RE = re.compile(r"\W+")


def tokenize(query: str) -> List[str]:
    return [t for t in _SPLIT_RE.split(query.lower()) if len(t) >= config.MIN_TOKEN_LENGTH]


def _overlap(tokens: Sequence[str], haystack: str) -> int:
    return sum(1 for token in tokens if token in haystack)


def _composite(tool: ToolRecord) -> str:
    parts = [tool.name, tool.description, tool.category, " ".join(tool.tags)]
    return " ".join(parts).lower()


def score_tool(tool: ToolRecord, tokens: Sequence[str], lowered_query: str) -> int:
    score = _overlap(tokens, _composite(tool))
    category = tool.category.strip().lower()
    # "" is contained in every string, so an empty side never earns the bonus
    if lowered_query.strip() and category and category in lowered_query:
        score += config.CATEGORY_BONUS
    return score


def match_tools(
    query: str,
    catalog: Sequence[ToolRecord],
    limit: Optional[int] = None,
) -> List[ToolRecord]:
    lowered = (query or "").lower()
    tokens = tokenize(lowered)
    scored: List[Tuple[int, ToolRecord]] = []
    for tool in catalog:
        score = score_tool(tool, tokens, lowered)
        if score > 0:
            scored.append((score, tool))
    # sorted() is stable, ties keep catalog order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    limit = config.MAX_TOOL_MATCHES if limit is None else limit
    return [tool for _, tool in scored[:limit]]


def match_names(query: str, names: Sequence[str]) -> List[str]:
    tokens = tokenize(query or "")
    scored = [(_overlap(tokens, name.lower()), name) for name in names]
    scored = sorted((item for item in scored if item[0] > 0), key=lambda item: item[0], reverse=True)
    return [name for _, name in scored]


def detect_level(query: str) -> UserLevel:
    lowered = (query or "").lower()
    if any(phrase in lowered for phrase in BEGINNER_PHRASES):
        return UserLevel.beginner
    if any(phrase in lowered for phrase in EXPERT_PHRASES):
        return UserLevel.expert
    return UserLevel.intermediate


def match(query: str, catalog: Sequence[ToolRecord]) -> MatchResult:
    """Rank catalog tools, guides and examples for ``query``.

    Never raises; an empty or all-short-token query simply yields empty
    lists and the ``intermediate`` level.
    """
    result = MatchResult(
        tools=match_tools(query, catalog),
        guides=match_names(query, GUIDE_FILES),
        examples=match_names(query, EXAMPLE_FILES),
        level=detect_level(query),
    )
    logger.debug(
        "match %r: %d tools, %d guides, %d examples, level=%s",
        query, len(result.tools), len(result.guides), len(result.examples), result.level.value,
    )
    return result
