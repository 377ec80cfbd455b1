"""Query normalization and request parameter validation.

Turns the raw query-string values of a search or suggestion request into an
immutable, validated request object. Every invalid value raises
:class:`SearchValidationError`; omitted values fall back to their documented
defaults, but an explicitly invalid value is never silently replaced.
"""

from __future__ import annotations

import re
import unicodedata
from typing import NamedTuple

from app.constants import ALL_ENTITY_TYPES, EntityType, Language
from app.search.errors import SearchValidationError
from app.utils.content_utils import split_csv
from app.utils.i18n import resolve_language

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_TRUTHY = {"1", "true", "yes", "on"}


class SearchQuery(NamedTuple):
    """A validated ``GET /search`` request.

    Attributes:
        term: Trimmed, NFC-normalized, lower-cased query text.
        language: Language whose localized fields are searched.
        types: Requested entity types, de-duplicated, in request order.
        limit: Page size.
        page: 1-based page number.
        include_counts: Whether per-type match counts are returned.
    """

    term: str
    language: Language
    types: tuple[EntityType, ...]
    limit: int
    page: int
    include_counts: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SuggestionQuery(NamedTuple):
    """A validated ``GET /search/suggestions`` request."""

    term: str
    language: Language
    types: tuple[EntityType, ...]
    limit: int
    per_type_limit: int
    include_meta: bool = False


def normalize_query(raw: str | None, max_length: int) -> str:
    """Trim, NFC-normalize and case-fold a raw query string.

    Raises:
        SearchValidationError: If the query is empty after trimming or
            longer than ``max_length`` characters.
    """
    stripped = (raw or "").strip()
    if not stripped:
        raise SearchValidationError("q is required")
    normalized = unicodedata.normalize("NFC", stripped)
    if len(normalized) > max_length:
        raise SearchValidationError(f"q is too long (max {max_length} chars)")
    return normalized.lower()


def parse_types(value: str | None) -> tuple[EntityType, ...]:
    """Parse a comma-separated ``types`` value; omitted or empty means all types."""
    requested = split_csv(value)
    if not requested:
        return ALL_ENTITY_TYPES

    valid = {t.value: t for t in ALL_ENTITY_TYPES}
    types: list[EntityType] = []
    for name in requested:
        entity_type = valid.get(name.lower())
        if entity_type is None:
            raise SearchValidationError(f"Invalid type: {name}")
        if entity_type not in types:
            types.append(entity_type)
    return tuple(types)


def parse_positive_int(name: str, value: str | None, default: int, maximum: int) -> int:
    """Parse an optional positive integer query parameter.

    Returns ``default`` when the parameter is omitted or blank.

    Raises:
        SearchValidationError: If the value is non-numeric, not positive,
            or greater than ``maximum``.
    """
    if value is None or not value.strip():
        return default
    text = value.strip()
    if not _INT_RE.match(text) or int(text) <= 0:
        raise SearchValidationError(f"{name} must be a positive integer")
    number = int(text)
    if number > maximum:
        raise SearchValidationError(f"{name} must be <= {maximum}")
    return number


def coerce_bool(value: str | None) -> bool:
    """Interpret a boolean flag; only '1', 'true', 'yes' and 'on' enable it."""
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def build_search_query(
    q: str | None,
    types: str | None = None,
    lang: str | None = None,
    limit: str | None = None,
    page: str | None = None,
    include_counts: str | None = None,
    *,
    default_limit: int = 20,
    max_limit: int = 100,
    max_query_length: int = 100,
) -> SearchQuery:
    """Validate raw ``GET /search`` parameters.

    ``q`` is checked first so that a missing query is always reported as
    "q is required", whatever else is wrong with the request.
    """
    term = normalize_query(q, max_query_length)
    return SearchQuery(
        term=term,
        language=resolve_language(lang),
        types=parse_types(types),
        limit=parse_positive_int("limit", limit, default_limit, max_limit),
        # No upper bound on page: pages past the end are empty, not errors
        page=parse_positive_int("page", page, 1, 2**31 - 1),
        include_counts=coerce_bool(include_counts),
    )


def build_suggestion_query(
    q: str | None,
    types: str | None = None,
    lang: str | None = None,
    limit: str | None = None,
    per_type_limit: str | None = None,
    include_meta: str | None = None,
    *,
    default_limit: int = 10,
    max_limit: int = 20,
    default_per_type_limit: int = 5,
    max_per_type_limit: int = 10,
    max_query_length: int = 64,
) -> SuggestionQuery:
    """Validate raw ``GET /search/suggestions`` parameters."""
    term = normalize_query(q, max_query_length)
    return SuggestionQuery(
        term=term,
        language=resolve_language(lang),
        types=parse_types(types),
        limit=parse_positive_int("limit", limit, default_limit, max_limit),
        per_type_limit=parse_positive_int(
            "perTypeLimit", per_type_limit, default_per_type_limit, max_per_type_limit
        ),
        include_meta=coerce_bool(include_meta),
    )
