"""
Result Ranking

Turns raw context-provider hits into display-ready ``SearchResult``s:

- Heuristic relevance score (base 0.5, vocabulary boosts, clamped to 1.0)
- Human relevance label (high / medium / low)
- Page title and wiki URL reconstructed from the ``arch-wiki/<title>`` key
- Content excerpt capped at 500 characters
- Optional quality filter and score ordering
- Hard cap of 10 results
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote

from ..context.models import ContextSearchResult
from ..context.service import SOURCE_PREFIX
from ..wiki.catalog import WIKI_BASE_URL
from .models import SearchResult
from .query import extract_important_words


# ---------------------------------------------------------------------
# Vocabularies & Limits
# ---------------------------------------------------------------------

ERROR_TERMS = (
    "error", "failed", "failure", "problem", "issue", "trouble",
    "cannot", "can't", "unable", "not working", "broken",
    "fix", "solve", "solution", "troubleshoot", "debug",
)

SOLUTION_TERMS = (
    "install", "configure", "setup", "enable", "disable",
    "restart", "reload", "update", "upgrade", "downgrade",
    "edit", "modify", "change", "add", "remove",
)

COMMAND_INDICATORS = ("sudo", "pacman", "systemctl")

BASE_SCORE = 0.5
TERM_BOOST = 0.1
COMMAND_BOOST = 0.2
MAX_SCORE = 1.0

HIGH_RELEVANCE = 0.8
MEDIUM_RELEVANCE = 0.6

MIN_CONTENT_LENGTH = 50
MIN_SCORE = 0.3
MAX_EXCERPT = 500
MAX_RESULTS = 10

FALLBACK_TITLE = "Arch Linux Documentation"
FALLBACK_URL = "https://wiki.archlinux.org/"


# ---------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------

def calculate_relevance_score(content: str) -> float:
    lowered = content.lower()
    score = BASE_SCORE
    score += TERM_BOOST * sum(1 for term in ERROR_TERMS if term in lowered)
    score += TERM_BOOST * sum(1 for term in SOLUTION_TERMS if term in lowered)
    if any(indicator in lowered for indicator in COMMAND_INDICATORS):
        score += COMMAND_BOOST
    # float sums drift (0.5 + 0.1 + 0.1 == 0.7000000000000001)
    return min(round(score, 6), MAX_SCORE)


def determine_relevance(score: float) -> str:
    if score >= HIGH_RELEVANCE:
        return "high"
    if score >= MEDIUM_RELEVANCE:
        return "medium"
    return "low"


# ---------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------

def _page_key(result: ContextSearchResult) -> Optional[str]:
    """The ``<title>`` part of an ``arch-wiki/<title>`` key, if any."""
    for candidate in (result.metadata.get("source"), result.context_id):
        if isinstance(candidate, str) and SOURCE_PREFIX in candidate:
            return candidate.split(SOURCE_PREFIX, 1)[1]
    return None


def wiki_url_for(page: str) -> str:
    """
    Wiki URL for a page key.

    ``/`` stays in the path (subpages such as ``Pacman/Troubleshooting``);
    text after ``#`` becomes the fragment.
    """
    path, _, anchor = page.partition("#")
    url = WIKI_BASE_URL + quote(path.replace(" ", "_"), safe="/")
    if anchor:
        url += "#" + quote(anchor.replace(" ", "_"), safe="")
    return url


def parse_context_data(result: ContextSearchResult) -> Tuple[str, str, str]:
    """
    Derive ``(title, excerpt, url)`` for a provider hit.

    A ``wiki_url`` recorded at upload time is preferred over a URL built
    from the page key; hits without an ``arch-wiki/`` key get a generic
    title and the wiki's front page.
    """
    page = _page_key(result)

    if page:
        title = page.replace("_", " ")
        url = result.metadata.get("wiki_url") or wiki_url_for(page)
    else:
        title = FALLBACK_TITLE
        url = result.metadata.get("wiki_url") or FALLBACK_URL

    content = result.content.strip()
    if len(content) > MAX_EXCERPT:
        content = content[:MAX_EXCERPT] + "..."

    return title, content, url


def convert_results(raw: Iterable[ContextSearchResult]) -> List[SearchResult]:
    results: List[SearchResult] = []
    for hit in raw:
        title, content, url = parse_context_data(hit)
        # scored on the full hit, not the excerpt
        score = calculate_relevance_score(hit.content)
        results.append(
            SearchResult(
                context_id=hit.context_id,
                title=title,
                content=content,
                url=url,
                score=score,
                relevance=determine_relevance(score),
            )
        )
    return results


# ---------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------

def contains_query_keywords(result: SearchResult, important_words: List[str]) -> bool:
    if not important_words:
        return True
    haystack = f"{result.title} {result.content}".lower()
    return any(word in haystack for word in important_words)


def filter_and_rank(results: List[SearchResult], original_query: str) -> List[SearchResult]:
    """
    Drop short, low-scoring or off-topic results and sort by score.

    A result is off-topic when the query has technical keywords and none of
    them appear in the result's title or excerpt. The sort is stable, so
    equal scores keep provider order.
    """
    important = extract_important_words(original_query)
    kept = [
        result
        for result in results
        if len(result.content) >= MIN_CONTENT_LENGTH
        and result.score >= MIN_SCORE
        and contains_query_keywords(result, important)
    ]
    kept.sort(key=lambda result: result.score, reverse=True)
    return kept


def rank(
    raw: Iterable[ContextSearchResult],
    original_query: str,
    apply_filter: bool = True,
) -> List[SearchResult]:
    results = convert_results(raw)
    if apply_filter:
        results = filter_and_rank(results, original_query)
    return results[:MAX_RESULTS]
