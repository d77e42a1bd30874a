from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional

from requirements_planner.core.errors import ContractError
from requirements_planner.core.model import KnowledgeResource


logger = logging.getLogger(__name__)

# Per query term, substring match, case-insensitive.
TITLE_WEIGHT = 3.0
TAG_WEIGHT = 2.0
CATEGORY_WEIGHT = 1.5
TEXT_WEIGHT = 1.0  # description or content
COMMERCE_WEIGHT = 0.5  # pricePoint / marketSegment, each

# Whole query found verbatim in the title.
PHRASE_BONUS = 3.0

USAGE_WEIGHT = 0.05
USAGE_CAP = 0.5

_TERM = re.compile(r"[a-z0-9][a-z0-9+#/.-]*")
_STOPWORDS: frozenset[str] = frozenset(
    "a an and are as at be by for from how i in is it of on or the to we what with".split()
)


def query_terms(query: str) -> list[str]:
    """Distinct lowercase terms of a query, stopwords and 1-char tokens removed."""
    seen: list[str] = []
    for raw in _TERM.findall(query.lower()):
        term = raw.strip(".-/")
        if len(term) < 2 or term in _STOPWORDS or term in seen:
            continue
        seen.append(term)
    return seen


def score(resource: KnowledgeResource, query: str) -> float:
    """Weighted relevance of one resource to a query; 0.0 for a blank query."""

    phrase = query.strip().lower()
    if not phrase:
        return 0.0

    terms = query_terms(phrase) or [phrase]
    title = resource.title.lower()
    tags = [t.lower() for t in resource.tags]
    category = (resource.category or "").lower()
    text = f"{resource.description or ''}\n{resource.content or ''}".lower()
    commerce = [v.lower() for v in (resource.price_point, resource.market_segment) if v]

    total = 0.0
    for term in terms:
        if term in title:
            total += TITLE_WEIGHT
        if any(term in tag for tag in tags):
            total += TAG_WEIGHT
        if category and term in category:
            total += CATEGORY_WEIGHT
        if term in text:
            total += TEXT_WEIGHT
        total += COMMERCE_WEIGHT * sum(1 for v in commerce if term in v)

    if phrase in title:
        total += PHRASE_BONUS

    if total > 0 and resource.access_count:
        total += min(resource.access_count * USAGE_WEIGHT, USAGE_CAP)

    return total


def rank_resources(
    resources: Iterable[KnowledgeResource], query: str
) -> list[tuple[KnowledgeResource, float]]:
    """Every resource with its score, highest first; ties keep collection order."""
    scored = [(r, score(r, query)) for r in resources]
    # sorted() is stable, so equal scores stay in input order.
    return sorted(scored, key=lambda pair: -pair[1])


def find_relevant(
    resources: Iterable[KnowledgeResource], query: str, limit: int = 5
) -> list[KnowledgeResource]:
    """Top `limit` resources for a query.

    Zero-scoring resources still fill the list when fewer than `limit` score
    above zero; filter them yourself if that is unwanted. Returned objects are
    copies, never the stored instances.
    """

    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise ContractError(
            code="E_INVALID_LIMIT",
            message=f"limit must be a positive integer, got {limit!r}",
            path="limit",
        )

    if not query or not query.strip():
        return []

    ranked = rank_resources(resources, query)
    top = ranked[:limit]
    logger.debug(
        "scored %d resources for %r; returning %d (best=%s)",
        len(ranked),
        query,
        len(top),
        f"{top[0][1]:.2f}" if top else "n/a",
    )
    return [replace(r, tags=list(r.tags)) for r, _ in top]


def track_resource_usage(
    resource: KnowledgeResource, now: Optional[datetime] = None
) -> KnowledgeResource:
    """A copy with accessCount + 1 and lastAccessed set to now (UTC, ISO-8601)."""
    when = now or datetime.now(timezone.utc)
    return replace(
        resource,
        tags=list(resource.tags),
        access_count=(resource.access_count or 0) + 1,
        last_accessed=when.isoformat(),
    )


def generate_knowledge_context(resources: Iterable[KnowledgeResource]) -> str:
    """Markdown block describing resources, for inclusion in an assistant prompt."""
    sections: list[str] = []
    for r in resources:
        lines = [f"## {r.title}"]
        if r.category:
            lines.append(f"Category: {r.category}")
        if r.tags:
            lines.append(f"Tags: {', '.join(r.tags)}")
        if r.description:
            lines.append(r.description)
        if r.url:
            lines.append(f"Reference: {r.url}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)
