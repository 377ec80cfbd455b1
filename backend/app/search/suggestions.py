"""Autocomplete suggestions across articles, categories and tags.

A lighter variant of :class:`app.search.engine.SearchEngine`:

- each type contributes at most ``per_type_limit`` items, so one type
  cannot crowd out the others;
- only short fields are matched (article title/slug, category/tag
  name/code);
- match counts are computed only when ``include_meta`` is requested.

Items are ranked with the same rule as search results and returned as one
flat list annotated with ``type``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from app.constants import EntityType
from app.search.engine import gather_matches, highlight_fields, rank_candidates
from app.search.matchers import EntityMatcher, MatchCandidate
from app.search.query_preprocessor import SuggestionQuery

logger = logging.getLogger(__name__)


class SuggestionItem(BaseModel):
    """A single autocomplete suggestion."""

    type: EntityType
    id: str
    score: float
    title: str | None = None
    slug: str | None = None
    name: str | None = None
    code: str | None = None
    highlight: dict[str, str] = Field(default_factory=dict)


class SuggestionMeta(BaseModel):
    """Timing and per-type match counts, returned only on request."""

    model_config = ConfigDict(populate_by_name=True)

    took_ms: int = Field(alias="tookMs")
    total_candidates: dict[EntityType, int] = Field(alias="totalCandidates")


class SuggestionPage(BaseModel):
    suggestions: list[SuggestionItem]
    meta: SuggestionMeta | None = None


def to_suggestion_item(candidate: MatchCandidate, term: str) -> SuggestionItem:
    fields = candidate.matched_fields
    return SuggestionItem(
        type=candidate.entity_type,
        id=str(candidate.entity_id),
        score=candidate.score,
        title=fields.get("title"),
        slug=fields.get("slug"),
        name=fields.get("name"),
        code=fields.get("code"),
        highlight=highlight_fields(candidate, term),
    )


class SuggestionEngine:
    """Capped, per-type-limited autocomplete engine.

    Args:
        matchers: One matcher per entity type.
    """

    def __init__(self, matchers: Mapping[EntityType, EntityMatcher]) -> None:
        self._matchers = matchers

    async def suggest(self, query: SuggestionQuery) -> SuggestionPage:
        """Return at most ``limit`` suggestions, at most ``per_type_limit`` per type.

        Very short terms (one or two characters) are matched like any
        other; they simply tend to return fewer distinct suggestions.
        """
        started = time.perf_counter()

        pages = await gather_matches(
            self._matchers,
            query.types,
            query.term,
            query.language,
            query.per_type_limit,
            with_counts=query.include_meta,
            suggest=True,
        )

        capped = [c for page in pages for c in page.candidates[: query.per_type_limit]]
        ranked = rank_candidates(capped)[: query.limit]
        items = [to_suggestion_item(c, query.term) for c in ranked]

        meta = None
        if query.include_meta:
            meta = SuggestionMeta(
                took_ms=round((time.perf_counter() - started) * 1000),
                total_candidates={page.entity_type: page.total or 0 for page in pages},
            )

        logger.debug(
            "Suggestions: term=%r, types=%s, returned=%d",
            query.term,
            ",".join(t.value for t in query.types),
            len(items),
        )
        return SuggestionPage(suggestions=items, meta=meta)
