"""Search API endpoints.

Provides:
- ``GET /search`` -- Ranked search across articles, categories and tags.
- ``GET /search/suggestions`` -- Autocomplete suggestions, capped per type.

Both endpoints are public. Query parameters are taken as raw strings and
validated by :mod:`app.search.query_preprocessor`, so that invalid input is
reported as ``400 {"error": ...}`` rather than a framework 422.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.config import get_settings
from app.constants import EntityType, Language
from app.database import async_session_factory
from app.search.engine import RankedResult, SearchEngine
from app.search.matchers import build_matchers
from app.search.query_preprocessor import build_search_query, build_suggestion_query
from app.search.suggestions import SuggestionEngine, SuggestionItem, SuggestionMeta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SearchResponse(BaseModel):
    """Search API response containing one page of ranked results."""

    query: str
    types: list[EntityType]
    lang: Language
    results: list[RankedResult]
    total: int
    page: int
    limit: int
    counts: dict[EntityType, int] | None = None


class SuggestionResponse(BaseModel):
    """Search suggestion (autocomplete) response."""

    query: str
    types: list[EntityType]
    suggestions: list[SuggestionItem]
    meta: SuggestionMeta | None = None


# ---------------------------------------------------------------------------
# Engine factory helpers (extracted for easy mocking in tests)
# ---------------------------------------------------------------------------


def _build_search_engine() -> SearchEngine:
    """Create a SearchEngine whose matchers open their own sessions."""
    return SearchEngine(build_matchers(async_session_factory))


def _build_suggestion_engine() -> SuggestionEngine:
    """Create a SuggestionEngine whose matchers open their own sessions."""
    return SuggestionEngine(build_matchers(async_session_factory))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=SearchResponse, response_model_exclude_none=True)
async def search(
    q: str | None = Query(None, description="Search query"),  # noqa: B008
    types: str | None = Query(None, description="Comma-separated subset of articles,categories,tags"),  # noqa: B008
    lang: str | None = Query(None, description="Content language (en or bn)"),  # noqa: B008
    limit: str | None = Query(None, description="Page size (1-100, default 20)"),  # noqa: B008
    page: str | None = Query(None, description="1-based page number (default 1)"),  # noqa: B008
    include_counts: str | None = Query(None, alias="includeCounts", description="Return per-type counts"),  # noqa: B008
) -> SearchResponse:
    """Search published articles, categories and tags.

    Results of all requested types are merged into one list ordered by
    relevance, then paginated.

    Returns:
        SearchResponse with the requested page and the total match count.
    """
    settings = get_settings()
    query = build_search_query(
        q,
        types,
        lang,
        limit,
        page,
        include_counts,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
        max_limit=settings.SEARCH_MAX_LIMIT,
        max_query_length=settings.SEARCH_MAX_QUERY_LENGTH,
    )
    logger.info(
        "Search request: query=%r, types=%s, lang=%s, limit=%d, page=%d",
        query.term,
        ",".join(t.value for t in query.types),
        query.language.value,
        query.limit,
        query.page,
    )

    engine = _build_search_engine()
    result = await engine.search(query)

    return SearchResponse(
        query=query.term,
        types=list(query.types),
        lang=query.language,
        results=result.results,
        total=result.total,
        page=result.page,
        limit=result.limit,
        counts=result.counts,
    )


@router.get("/suggestions", response_model=SuggestionResponse, response_model_exclude_none=True)
async def search_suggestions(
    q: str | None = Query(None, description="Search prefix or fragment"),  # noqa: B008
    types: str | None = Query(None, description="Comma-separated subset of articles,categories,tags"),  # noqa: B008
    lang: str | None = Query(None, description="Content language (en or bn)"),  # noqa: B008
    limit: str | None = Query(None, description="Maximum suggestions (1-20, default 10)"),  # noqa: B008
    per_type_limit: str | None = Query(None, alias="perTypeLimit", description="Per-type cap (1-10, default 5)"),  # noqa: B008
    include_meta: str | None = Query(None, alias="includeMeta", description="Return timing and counts"),  # noqa: B008
) -> SuggestionResponse:
    """Get autocomplete suggestions from article titles/slugs and category/tag names/codes."""
    settings = get_settings()
    query = build_suggestion_query(
        q,
        types,
        lang,
        limit,
        per_type_limit,
        include_meta,
        default_limit=settings.SUGGEST_DEFAULT_LIMIT,
        max_limit=settings.SUGGEST_MAX_LIMIT,
        default_per_type_limit=settings.SUGGEST_DEFAULT_PER_TYPE_LIMIT,
        max_per_type_limit=settings.SUGGEST_MAX_PER_TYPE_LIMIT,
        max_query_length=settings.SUGGEST_MAX_QUERY_LENGTH,
    )

    engine = _build_suggestion_engine()
    result = await engine.suggest(query)

    return SuggestionResponse(
        query=query.term,
        types=list(query.types),
        suggestions=result.suggestions,
        meta=result.meta,
    )
