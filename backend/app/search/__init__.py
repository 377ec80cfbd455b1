"""Cross-entity search and autocomplete over the content store."""

from app.search.engine import RankedResult, SearchEngine, SearchPage
from app.search.errors import SearchBackendError, SearchError, SearchValidationError
from app.search.highlight import highlight
from app.search.matchers import (
    ArticleMatcher,
    CategoryMatcher,
    MatchCandidate,
    MatchPage,
    TagMatcher,
    build_matchers,
)
from app.search.suggestions import SuggestionEngine, SuggestionItem, SuggestionPage

__all__ = [
    "ArticleMatcher",
    "CategoryMatcher",
    "MatchCandidate",
    "MatchPage",
    "RankedResult",
    "SearchBackendError",
    "SearchEngine",
    "SearchError",
    "SearchPage",
    "SearchValidationError",
    "SuggestionEngine",
    "SuggestionItem",
    "SuggestionPage",
    "TagMatcher",
    "build_matchers",
    "highlight",
]
