"""Language selection for localized content fields.

Every searchable text field exists per language; callers ask for one of
``SUPPORTED_LANGUAGES`` and anything else falls back to English.
"""

from __future__ import annotations

from app.constants import Language

SUPPORTED_LANGUAGES = (Language.EN, Language.BN)
DEFAULT_LANGUAGE = Language.EN


def resolve_language(value: str | None) -> Language:
    """Map a ``lang`` query value to a supported language.

    Returns 'en' or 'bn'. Defaults to 'en' if the value is missing
    or names an unsupported language.
    """
    if not value:
        return DEFAULT_LANGUAGE
    lang = value.strip().lower()
    for supported in SUPPORTED_LANGUAGES:
        if lang == supported.value:
            return supported
    return DEFAULT_LANGUAGE
