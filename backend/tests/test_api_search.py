"""Tests for the Search API endpoints (GET /api/search, GET /api/search/suggestions).

Covers:
- Successful search and suggestion responses
- Missing or invalid parameters return 400 {"error": ...}
- Content store failures return 500 without internal details
- The health endpoint reports database connectivity
- Engines are mocked; no database is required
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from app.constants import EntityType
from app.search.engine import RankedResult, SearchPage
from app.search.errors import SearchBackendError, SearchValidationError
from app.search.suggestions import SuggestionItem, SuggestionMeta, SuggestionPage

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_search_page(page: int = 1, limit: int = 20, counts=None) -> SearchPage:
    results = [
        RankedResult(
            type=EntityType.CATEGORIES,
            id="3",
            score=3.5,
            name="Category",
            code="category",
            highlight={"name": "<c>Category</c>", "code": "<c>category</c>"},
        ),
        RankedResult(
            type=EntityType.ARTICLES,
            id="12",
            score=2.0,
            title="Category theory for programmers",
            slug="category-theory",
            excerpt="An introduction",
            tag_codes=["math"],
            tag_names=["Math"],
            created_at="2025-03-01T12:00:00+00:00",
            highlight={"title": "<c>Category</c> theory for programmers"},
        ),
    ]
    return SearchPage(results=results, total=2, page=page, limit=limit, counts=counts)


def _mock_search_engine(page: SearchPage | None = None) -> AsyncMock:
    engine = AsyncMock()
    engine.search = AsyncMock(return_value=page or _make_search_page())
    return engine


def _mock_suggestion_engine(meta: SuggestionMeta | None = None) -> AsyncMock:
    items = [
        SuggestionItem(
            type=EntityType.TAGS,
            id="8",
            score=2.5,
            name="React",
            code="react",
            highlight={"name": "<c>Re</c>act", "code": "<c>re</c>act"},
        )
    ]
    engine = AsyncMock()
    engine.suggest = AsyncMock(return_value=SuggestionPage(suggestions=items, meta=meta))
    return engine


# ---------------------------------------------------------------------------
# GET /api/search
# ---------------------------------------------------------------------------


class TestSearchEndpoint:
    @pytest.mark.asyncio
    async def test_search_success(self, test_client):
        engine = _mock_search_engine()
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "  Category "})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "category"
        assert data["types"] == ["articles", "categories", "tags"]
        assert data["lang"] == "en"
        assert data["total"] == 2
        assert data["page"] == 1
        assert data["limit"] == 20
        assert "counts" not in data
        first, second = data["results"]
        assert first["type"] == "categories"
        assert first["id"] == "3"
        assert first["highlight"]["name"] == "<c>Category</c>"
        assert "title" not in first
        assert second["tag_codes"] == ["math"]
        assert "name" not in second

    @pytest.mark.asyncio
    async def test_parameters_passed_to_engine(self, test_client):
        engine = _mock_search_engine(_make_search_page(page=2, limit=5))
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get(
                "/api/search",
                params={"q": "cat", "types": "tags,articles", "lang": "bn", "limit": "5", "page": "2"},
            )

        assert response.status_code == 200
        query = engine.search.call_args.args[0]
        assert query.term == "cat"
        assert query.types == (EntityType.TAGS, EntityType.ARTICLES)
        assert query.language == "bn"
        assert query.limit == 5
        assert query.page == 2
        assert response.json()["types"] == ["tags", "articles"]

    @pytest.mark.asyncio
    async def test_unsupported_language_falls_back_to_english(self, test_client):
        engine = _mock_search_engine()
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "cat", "lang": "fr"})

        assert response.status_code == 200
        assert response.json()["lang"] == "en"

    @pytest.mark.asyncio
    async def test_include_counts(self, test_client):
        counts = {EntityType.ARTICLES: 1, EntityType.CATEGORIES: 1, EntityType.TAGS: 0}
        engine = _mock_search_engine(_make_search_page(counts=counts))
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "cat", "includeCounts": "true"})

        assert response.status_code == 200
        assert engine.search.call_args.args[0].include_counts is True
        assert response.json()["counts"] == {"articles": 1, "categories": 1, "tags": 0}

    @pytest.mark.asyncio
    async def test_empty_results(self, test_client):
        engine = _mock_search_engine(SearchPage(results=[], total=0, page=1, limit=20))
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "nothing"})

        assert response.status_code == 200
        assert response.json()["results"] == []
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    async def test_missing_query_returns_400(self, test_client, params):
        engine = _mock_search_engine()
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params=params)

        assert response.status_code == 400
        assert response.json() == {"error": "q is required"}
        engine.search.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"q": "cat", "limit": "0"}, "limit must be a positive integer"),
            ({"q": "cat", "limit": "-5"}, "limit must be a positive integer"),
            ({"q": "cat", "limit": "abc"}, "limit must be a positive integer"),
            ({"q": "cat", "limit": "101"}, "limit must be <= 100"),
            ({"q": "cat", "page": "0"}, "page must be a positive integer"),
            ({"q": "cat", "types": "articles,users"}, "Invalid type: users"),
            ({"q": "x" * 101}, "q is too long (max 100 chars)"),
        ],
    )
    async def test_invalid_parameters_return_400(self, test_client, params, message):
        engine = _mock_search_engine()
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params=params)

        assert response.status_code == 400
        assert response.json() == {"error": message}

    @pytest.mark.asyncio
    async def test_backend_failure_returns_500(self, test_client):
        engine = AsyncMock()
        engine.search = AsyncMock(side_effect=SearchBackendError("articles query failed"))
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "cat"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}

    @pytest.mark.asyncio
    async def test_too_deep_page_returns_400(self, test_client):
        engine = AsyncMock()
        engine.search = AsyncMock(
            side_effect=SearchValidationError("page is too deep (offset must be below 10000)")
        )
        with patch("app.api.search._build_search_engine", return_value=engine):
            response = await test_client.get("/api/search", params={"q": "cat", "limit": "100", "page": "101"})

        assert response.status_code == 400
        assert response.json() == {"error": "page is too deep (offset must be below 10000)"}

    @pytest.mark.asyncio
    async def test_unexpected_failure_returns_500_body(self, test_app):
        """Errors no handler translates still get the JSON 500 body."""
        engine = AsyncMock()
        engine.search = AsyncMock(side_effect=OSError("connection refused"))
        # The server error middleware re-raises after responding; keep the response
        transport = ASGITransport(app=test_app, raise_app_exceptions=False)
        with patch("app.api.search._build_search_engine", return_value=engine):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get("/api/search", params={"q": "cat"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}
        assert "connection refused" not in response.text


# ---------------------------------------------------------------------------
# GET /api/search/suggestions
# ---------------------------------------------------------------------------


class TestSuggestionsEndpoint:
    @pytest.mark.asyncio
    async def test_suggestions_success(self, test_client):
        engine = _mock_suggestion_engine()
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get("/api/search/suggestions", params={"q": "Re"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "re"
        assert data["types"] == ["articles", "categories", "tags"]
        assert data["suggestions"][0]["type"] == "tags"
        assert data["suggestions"][0]["highlight"]["name"] == "<c>Re</c>act"
        assert "meta" not in data

    @pytest.mark.asyncio
    async def test_parameters_passed_to_engine(self, test_client):
        engine = _mock_suggestion_engine()
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get(
                "/api/search/suggestions",
                params={"q": "re", "types": "tags", "limit": "3", "perTypeLimit": "1"},
            )

        assert response.status_code == 200
        query = engine.suggest.call_args.args[0]
        assert query.types == (EntityType.TAGS,)
        assert query.limit == 3
        assert query.per_type_limit == 1
        assert query.include_meta is False

    @pytest.mark.asyncio
    async def test_meta_uses_camel_case(self, test_client):
        meta = SuggestionMeta(took_ms=4, total_candidates={EntityType.TAGS: 1})
        engine = _mock_suggestion_engine(meta)
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get("/api/search/suggestions", params={"q": "re", "includeMeta": "1"})

        assert response.status_code == 200
        assert engine.suggest.call_args.args[0].include_meta is True
        assert response.json()["meta"] == {"tookMs": 4, "totalCandidates": {"tags": 1}}

    @pytest.mark.asyncio
    async def test_missing_query_returns_400(self, test_client):
        engine = _mock_suggestion_engine()
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get("/api/search/suggestions")

        assert response.status_code == 400
        assert response.json() == {"error": "q is required"}
        engine.suggest.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"q": "re", "limit": "21"}, "limit must be <= 20"),
            ({"q": "re", "perTypeLimit": "0"}, "perTypeLimit must be a positive integer"),
            ({"q": "re", "perTypeLimit": "11"}, "perTypeLimit must be <= 10"),
            ({"q": "re", "types": "people"}, "Invalid type: people"),
            ({"q": "x" * 65}, "q is too long (max 64 chars)"),
        ],
    )
    async def test_invalid_parameters_return_400(self, test_client, params, message):
        engine = _mock_suggestion_engine()
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get("/api/search/suggestions", params=params)

        assert response.status_code == 400
        assert response.json() == {"error": message}

    @pytest.mark.asyncio
    async def test_backend_failure_returns_500(self, test_client):
        engine = AsyncMock()
        engine.suggest = AsyncMock(side_effect=SearchBackendError("tags query failed"))
        with patch("app.api.search._build_suggestion_engine", return_value=engine):
            response = await test_client.get("/api/search/suggestions", params={"q": "re"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}


# ---------------------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_ok(self, test_app, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "db": "connected"}
        test_app.state.test_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_database_down(self, test_app, test_client):
        test_app.state.test_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("connection refused"))
        )
        response = await test_client.get("/api/health")

        assert response.status_code == 503
        assert response.json() == {"status": "error", "db": "disconnected"}
