"""Ranking and merge engine for cross-entity search.

Each requested entity type is matched independently (and concurrently);
the candidates are merged into one ranked list and paginated:

1. Concatenate candidates across the requested types.
2. Sort by relevance score, descending.
3. Break ties by type precedence (articles, categories, tags), then by
   entity id ascending, so the same request always yields the same order.
4. Skip ``(page - 1) * limit`` entries and take ``limit``.

Pagination uses merge-then-slice: every matcher fetches its own top
``offset + limit`` candidates, which is enough to build the global window.
Metadata that only the returned page needs (article tags) is attached after
slicing.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Coroutine, Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from app.constants import TYPE_PRECEDENCE, EntityType, Language
from app.search.errors import SearchValidationError
from app.search.highlight import highlight
from app.search.matchers import EntityMatcher, MatchCandidate, MatchPage
from app.search.params import get_search_params
from app.search.query_preprocessor import SearchQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RankedResult(BaseModel):
    """A single search result.

    Articles fill ``title``/``slug`` and the article metadata fields;
    categories and tags fill ``name``/``code``.
    """

    type: EntityType
    id: str
    score: float
    title: str | None = None
    slug: str | None = None
    name: str | None = None
    code: str | None = None
    excerpt: str | None = None
    category_name: str | None = None
    tag_codes: list[str] | None = None
    tag_names: list[str] | None = None
    created_at: str | None = None
    updated_at: str | None = None
    highlight: dict[str, str] = Field(default_factory=dict)


class SearchPage(BaseModel):
    """One page of ranked results with the pre-pagination total."""

    results: list[RankedResult]
    total: int
    page: int
    limit: int
    counts: dict[EntityType, int] | None = None


def candidate_sort_key(candidate: MatchCandidate) -> tuple[float, int, int]:
    """Score descending, then type precedence, then id ascending."""
    return (-candidate.score, TYPE_PRECEDENCE[candidate.entity_type], candidate.entity_id)


def rank_candidates(candidates: Iterable[MatchCandidate]) -> list[MatchCandidate]:
    """Drop non-positive scores and order the rest deterministically."""
    return sorted((c for c in candidates if c.score > 0), key=candidate_sort_key)


def highlight_fields(candidate: MatchCandidate, term: str) -> dict[str, str]:
    return {name: highlight(text, term) for name, text in candidate.matched_fields.items()}


def to_ranked_result(candidate: MatchCandidate, term: str) -> RankedResult:
    return RankedResult(
        type=candidate.entity_type,
        id=str(candidate.entity_id),
        score=candidate.score,
        highlight=highlight_fields(candidate, term),
        **candidate.display_fields,
    )


async def gather_matches(
    matchers: Mapping[EntityType, EntityMatcher],
    types: Iterable[EntityType],
    term: str,
    language: Language,
    limit: int,
    *,
    with_counts: bool,
    suggest: bool = False,
) -> list[MatchPage]:
    """Run the matchers for ``types`` concurrently.

    The first failure cancels the remaining matchers and fails the whole
    request; a search silently missing one entity type would be misleading.
    """
    return await run_concurrently(
        [
            matchers[entity_type].match(term, language, limit, with_counts=with_counts, suggest=suggest)
            for entity_type in types
        ]
    )


async def run_concurrently(coros: Iterable[Coroutine[Any, Any, T]]) -> list[T]:
    """Await ``coros`` in one task group and return their results in order.

    If any of them fails the others are cancelled and the first failure is
    re-raised as-is, outside its exception group.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as errors:
        raise errors.exceptions[0]  # noqa: B904
    return [task.result() for task in tasks]


class SearchEngine:
    """Cross-entity search over articles, categories and tags.

    Args:
        matchers: One matcher per entity type.
    """

    def __init__(self, matchers: Mapping[EntityType, EntityMatcher]) -> None:
        self._matchers = matchers

    async def search(self, query: SearchQuery) -> SearchPage:
        """Match, rank, paginate and highlight.

        A page past the last one yields no results but still reports the
        correct ``total``.

        Raises:
            SearchValidationError: If the page starts at or beyond the
                ``max_window`` offset while results remain there.
            SearchBackendError: If any matcher fails.
        """
        params = get_search_params()
        max_window = int(params["max_window"])
        offset = query.offset
        deep = offset >= max_window
        # Deep offsets are not materialized; one row per type is enough for the totals
        fetch_limit = 1 if deep else offset + query.limit

        pages = await gather_matches(
            self._matchers,
            query.types,
            query.term,
            query.language,
            fetch_limit,
            with_counts=True,
        )

        counts = {page.entity_type: page.total or 0 for page in pages}
        total = sum(counts.values())
        if deep and offset < total:
            raise SearchValidationError(f"page is too deep (offset must be below {max_window})")

        ranked = rank_candidates(c for page in pages for c in page.candidates)
        window = ranked[offset : offset + query.limit]
        await self._enrich(window, query.language)

        logger.info(
            "Search: term=%r, types=%s, lang=%s, total=%d, page=%d, returned=%d",
            query.term,
            ",".join(t.value for t in query.types),
            query.language.value,
            total,
            query.page,
            len(window),
        )

        return SearchPage(
            results=[to_ranked_result(c, query.term) for c in window],
            total=total,
            page=query.page,
            limit=query.limit,
            counts=counts if query.include_counts else None,
        )

    async def _enrich(self, window: list[MatchCandidate], language: Language) -> None:
        """Let each matcher attach page-only metadata to its own candidates."""
        by_type: dict[EntityType, list[MatchCandidate]] = defaultdict(list)
        for candidate in window:
            by_type[candidate.entity_type].append(candidate)
        await run_concurrently(
            [self._matchers[entity_type].enrich(candidates, language) for entity_type, candidates in by_type.items()]
        )
