"""Centralized search parameter management.

Relevance scores are tiered by match specificity: an exact full-field match
beats a match at the start of a field, which beats a match anywhere else.
Within a tier the entity's primary field (article title, category/tag name)
earns a small bonus over its secondary fields (slug, code, excerpt, body).

The constants can be tuned via the ``SEARCH_PARAMS`` setting (a JSON object)
as long as that ordering holds.

Usage in matchers::

    from app.search.params import get_search_params
    params = get_search_params()
    score = params["score_prefix"] + params["primary_field_bonus"]
"""

from __future__ import annotations

import logging
from typing import Any

from app.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PARAMS: dict[str, float | int] = {
    # Specificity tiers
    "score_exact": 3.0,
    "score_prefix": 2.0,
    "score_substring": 1.0,
    "primary_field_bonus": 0.5,
    # Deepest offset that is still materialized for pagination
    "max_window": 10_000,
}


def _tiers_ordered(params: dict[str, Any]) -> bool:
    bonus = params["primary_field_bonus"]
    return (
        0 <= bonus
        and 0 < params["score_substring"]
        and params["score_substring"] + bonus < params["score_prefix"]
        and params["score_prefix"] + bonus < params["score_exact"]
    )


def get_search_params() -> dict[str, Any]:
    """Return current search parameters, merging configured overrides with defaults.

    Unknown keys are ignored. Overrides that would break the
    exact > prefix > substring ordering are discarded with a warning.
    """
    saved: dict[str, Any] = get_settings().SEARCH_PARAMS
    merged = {**DEFAULT_SEARCH_PARAMS}
    if isinstance(saved, dict):
        for key in DEFAULT_SEARCH_PARAMS:
            if key in saved:
                merged[key] = saved[key]
    if not _tiers_ordered(merged):
        logger.warning("SEARCH_PARAMS overrides break score tier ordering, using defaults")
        return {**DEFAULT_SEARCH_PARAMS}
    return merged
