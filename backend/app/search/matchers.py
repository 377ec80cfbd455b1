"""Per-entity matchers for articles, categories and tags.

Each matcher turns a normalized query term into one read-only query against
its entity's localized text fields. Matching is case-insensitive substring
containment (SQL ``LIKE '%term%'``); it is deliberately not tokenized or
stemmed. Each row carries a tiered relevance score computed in SQL (see
:func:`app.search.filters.specificity_score`).

Matchers are independent: each one opens its own session from the injected
session factory, so the engines can run them concurrently.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from app.constants import ArticleStatus, EntityType, Language
from app.models import Article, ArticleTag, ArticleTranslation, Category, Tag
from app.search.errors import SearchBackendError
from app.search.filters import PredicateBuilder, specificity_score
from app.search.params import get_search_params
from app.utils.content_utils import derive_excerpt, isoformat_utc
from app.utils.i18n import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


@dataclass
class MatchCandidate:
    """One matched row, before ranking and pagination.

    Attributes:
        entity_type: Which matcher produced the row.
        entity_id: Primary key of the matched row.
        score: Tiered relevance score; only candidates with score > 0 are ranked.
        matched_fields: Raw text of the short fields the highlighter annotates.
        display_fields: Everything else the response shows for this row.
    """

    entity_type: EntityType
    entity_id: int
    score: float
    matched_fields: dict[str, str] = field(default_factory=dict)
    display_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class MatchPage:
    """The top candidates of one entity type.

    ``total`` is the number of matching rows of that type before the limit,
    or ``None`` when counts were not requested.
    """

    entity_type: EntityType
    candidates: list[MatchCandidate]
    total: int | None = None


def _localized_name(model: type[Category] | type[Tag], language: Language) -> ColumnElement[str]:
    """Name column for ``language``, falling back to English when blank."""
    if language == DEFAULT_LANGUAGE:
        return model.name_en
    return func.coalesce(func.nullif(model.name_bn, ""), model.name_en)


class EntityMatcher:
    """Base class: runs the statement built by a subclass and maps its rows.

    Args:
        session_factory: Factory for short-lived read-only sessions.
    """

    entity_type: EntityType

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def match(
        self,
        term: str,
        language: Language,
        limit: int,
        *,
        with_counts: bool = False,
        suggest: bool = False,
    ) -> MatchPage:
        """Return up to ``limit`` candidates ordered by score desc, id asc.

        Args:
            term: Normalized (trimmed, lower-cased) query term.
            language: Language of the localized fields to match.
            limit: Maximum number of candidates to fetch.
            with_counts: Also count every matching row of this type.
            suggest: Match only the short fields used for autocomplete.

        Raises:
            SearchBackendError: If the content store query fails.
        """
        stmt = self._build_statement(term, language, suggest=suggest)
        if with_counts:
            # COUNT(*) OVER() gives total matching rows without a separate query
            stmt = stmt.add_columns(func.count().over().label("total_count"))
        stmt = stmt.limit(limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.fetchall()
        except SQLAlchemyError as exc:
            raise SearchBackendError(f"{self.entity_type.value} query failed") from exc

        candidates = [self._to_candidate(row, suggest=suggest) for row in rows]
        total = None
        if with_counts:
            total = int(rows[0].total_count) if rows else 0

        logger.debug(
            "%s matcher: term=%r, lang=%s, fetched=%d, total=%s",
            self.entity_type.value,
            term,
            language.value,
            len(candidates),
            total,
        )
        return MatchPage(entity_type=self.entity_type, candidates=candidates, total=total)

    async def enrich(self, candidates: list[MatchCandidate], language: Language) -> None:
        """Attach display metadata that is only needed for the returned page.

        Called by the engine after pagination; a no-op for types without
        related data.
        """

    def _build_statement(self, term: str, language: Language, *, suggest: bool) -> Select[Any]:
        raise NotImplementedError

    def _to_candidate(self, row: Any, *, suggest: bool) -> MatchCandidate:
        raise NotImplementedError


class ArticleMatcher(EntityMatcher):
    """Matches published articles by their translated title, slug, excerpt and body.

    The translation in the requested language is used when it exists, the
    English one otherwise. Search mode also matches the article's localized
    category name and its tags' localized names and codes; suggestion mode
    matches title and slug only.
    """

    entity_type = EntityType.ARTICLES

    def _build_statement(self, term: str, language: Language, *, suggest: bool) -> Select[Any]:
        params = get_search_params()
        builder = PredicateBuilder(term).require(Article.status == ArticleStatus.PUBLISHED.value)

        fallback = aliased(ArticleTranslation, name="tr_default")
        default_join = (fallback.article_id == Article.id) & (fallback.language_code == DEFAULT_LANGUAGE.value)

        if language == DEFAULT_LANGUAGE:
            stmt = select(Article.id).join(fallback, default_join)

            def localized(attr: str) -> ColumnElement[Any]:
                return getattr(fallback, attr)

        else:
            local = aliased(ArticleTranslation, name="tr_local")
            stmt = (
                select(Article.id)
                .outerjoin(local, (local.article_id == Article.id) & (local.language_code == language.value))
                .outerjoin(fallback, default_join)
            )
            builder.require(local.id.is_not(None) | fallback.id.is_not(None))

            def localized(attr: str) -> ColumnElement[Any]:
                return case((local.id.is_not(None), getattr(local, attr)), else_=getattr(fallback, attr))

        title = localized("title")
        slug = localized("slug")
        builder.contains(title).contains(slug)
        columns: list[ColumnElement[Any]] = [title.label("title"), slug.label("slug")]

        if not suggest:
            excerpt = localized("excerpt")
            body = localized("body")
            category_name = _localized_name(Category, language)
            builder.contains(excerpt).contains(body).contains(category_name)
            builder.matches(self._tagged_with(builder.term, language))
            stmt = stmt.outerjoin(Category, Category.id == Article.category_id)
            columns += [
                excerpt.label("excerpt"),
                body.label("body"),
                category_name.label("category_name"),
                Article.created_at,
                Article.updated_at,
            ]

        # Category and tag matches score in the plain substring tier (CASE ELSE)
        score = specificity_score(term, title, [slug], params).label("score")
        return (
            stmt.add_columns(*columns, score)
            .where(builder.build())
            .order_by(score.desc(), Article.id.asc())
        )

    @staticmethod
    def _tagged_with(term: str, language: Language) -> ColumnElement[bool]:
        """EXISTS clause: the article carries a tag whose name or code contains ``term``."""
        tag_match = PredicateBuilder(term).contains(_localized_name(Tag, language)).contains(Tag.code).any_of()
        return (
            select(ArticleTag.article_id)
            .join(Tag, Tag.id == ArticleTag.tag_id)
            .where(ArticleTag.article_id == Article.id, tag_match)
            .exists()
        )

    def _to_candidate(self, row: Any, *, suggest: bool) -> MatchCandidate:
        title = row.title or ""
        slug = row.slug or ""
        matched = {"title": title, "slug": slug}
        display: dict[str, Any] = {"title": title, "slug": slug}

        if not suggest:
            excerpt = derive_excerpt(row.excerpt, row.body)
            matched["excerpt"] = excerpt
            display.update(
                excerpt=excerpt,
                category_name=row.category_name or None,
                tag_codes=[],
                tag_names=[],
                created_at=isoformat_utc(row.created_at),
                updated_at=isoformat_utc(row.updated_at),
            )

        return MatchCandidate(
            entity_type=self.entity_type,
            entity_id=int(row.id),
            score=float(row.score),
            matched_fields=matched,
            display_fields=display,
        )

    async def enrich(self, candidates: list[MatchCandidate], language: Language) -> None:
        """Attach tag codes and localized tag names, grouped by article id.

        Raises:
            SearchBackendError: If the tag query fails.
        """
        if not candidates:
            return
        ids = [candidate.entity_id for candidate in candidates]
        stmt = (
            select(ArticleTag.article_id, Tag.code, _localized_name(Tag, language).label("name"))
            .join(Tag, Tag.id == ArticleTag.tag_id)
            .where(ArticleTag.article_id.in_(ids))
            .order_by(ArticleTag.article_id, Tag.code)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.fetchall()
        except SQLAlchemyError as exc:
            raise SearchBackendError("article tags query failed") from exc

        grouped: dict[int, list[tuple[str, str]]] = defaultdict(list)
        for row in rows:
            grouped[int(row.article_id)].append((row.code, row.name or ""))

        for candidate in candidates:
            tags = grouped.get(candidate.entity_id, [])
            candidate.display_fields["tag_codes"] = [code for code, _ in tags]
            candidate.display_fields["tag_names"] = [name for _, name in tags]


class _TaxonomyMatcher(EntityMatcher):
    """Matches a code + localized name table (categories, tags). No status gate."""

    model: type[Category] | type[Tag]

    def _build_statement(self, term: str, language: Language, *, suggest: bool) -> Select[Any]:
        params = get_search_params()
        model = self.model
        name = _localized_name(model, language)
        where = PredicateBuilder(term).contains(name).contains(model.code).build()
        score = specificity_score(term, name, [model.code], params).label("score")
        return (
            select(model.id, model.code, name.label("name"), model.created_at, score)
            .where(where)
            .order_by(score.desc(), model.id.asc())
        )

    def _to_candidate(self, row: Any, *, suggest: bool) -> MatchCandidate:
        name = row.name or ""
        code = row.code or ""
        return MatchCandidate(
            entity_type=self.entity_type,
            entity_id=int(row.id),
            score=float(row.score),
            matched_fields={"name": name, "code": code},
            display_fields={"name": name, "code": code, "created_at": isoformat_utc(row.created_at)},
        )


class CategoryMatcher(_TaxonomyMatcher):
    entity_type = EntityType.CATEGORIES
    model = Category


class TagMatcher(_TaxonomyMatcher):
    entity_type = EntityType.TAGS
    model = Tag


def build_matchers(session_factory: async_sessionmaker[AsyncSession]) -> dict[EntityType, EntityMatcher]:
    """Create one matcher per entity type sharing ``session_factory``."""
    return {
        EntityType.ARTICLES: ArticleMatcher(session_factory),
        EntityType.CATEGORIES: CategoryMatcher(session_factory),
        EntityType.TAGS: TagMatcher(session_factory),
    }
