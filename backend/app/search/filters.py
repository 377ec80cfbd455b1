"""Predicate composition for the per-entity matchers.

Filter clauses are accumulated as SQLAlchemy expressions, so the query text
only ever reaches the database as a bound parameter. LIKE wildcards inside
the query (``%``, ``_``) are escaped and match literally.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, and_, case, false, func, literal, or_
from sqlalchemy.types import Float


def _lower(column: ColumnElement[Any]) -> ColumnElement[str]:
    return func.lower(func.coalesce(column, ""))


class PredicateBuilder:
    """Accumulates match and filter clauses for one entity query.

    Match clauses are OR-ed together (the term may appear in any field);
    required clauses are AND-ed in front of them.

    Usage::

        where = (
            PredicateBuilder("cat")
            .require(Article.status == "published")
            .contains(title)
            .contains(slug)
            .build()
        )
    """

    def __init__(self, term: str) -> None:
        self._term = term
        self._match: list[ColumnElement[bool]] = []
        self._required: list[ColumnElement[bool]] = []

    @property
    def term(self) -> str:
        return self._term

    def contains(self, column: ColumnElement[Any]) -> PredicateBuilder:
        """Match rows whose ``column`` contains the term, case-insensitively."""
        self._match.append(_lower(column).contains(self._term, autoescape=True))
        return self

    def require(self, clause: ColumnElement[bool]) -> PredicateBuilder:
        """Add a clause every matching row must satisfy."""
        self._required.append(clause)
        return self

    def matches(self, clause: ColumnElement[bool]) -> PredicateBuilder:
        """Add a pre-built match clause, e.g. an EXISTS over related rows."""
        self._match.append(clause)
        return self

    def any_of(self) -> ColumnElement[bool]:
        """OR of the match clauses; matches nothing when none were added."""
        if not self._match:
            return false()
        return or_(*self._match)

    def build(self) -> ColumnElement[bool]:
        return and_(*self._required, self.any_of())


def specificity_score(
    term: str,
    primary: ColumnElement[Any],
    secondary: Sequence[ColumnElement[Any]],
    params: dict[str, Any],
) -> ColumnElement[float]:
    """Build the relevance CASE expression for a matched row.

    Tiers, highest first: exact full-field match, match at the start of the
    field, match anywhere. The primary field wins over secondary fields
    within a tier. Rows reaching the ELSE branch matched some other
    searchable field (excerpt, body) as a plain substring.
    """
    bonus = params["primary_field_bonus"]
    exact = params["score_exact"]
    prefix = params["score_prefix"]
    substring = params["score_substring"]

    primary_lower = _lower(primary)
    secondary_lower = [_lower(column) for column in secondary]

    whens: list[tuple[ColumnElement[bool], Any]] = [(primary_lower == term, literal(exact + bonus, Float))]
    whens += [(column == term, literal(exact, Float)) for column in secondary_lower]
    whens.append((primary_lower.startswith(term, autoescape=True), literal(prefix + bonus, Float)))
    whens += [(column.startswith(term, autoescape=True), literal(prefix, Float)) for column in secondary_lower]
    whens.append((primary_lower.contains(term, autoescape=True), literal(substring + bonus, Float)))

    return case(*whens, else_=literal(substring, Float))
