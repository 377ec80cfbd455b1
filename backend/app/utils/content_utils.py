"""Content field helpers shared by the matchers."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from app.constants import EXCERPT_MAX_LENGTH

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str | None) -> str:
    """Remove markup and collapse whitespace into single spaces."""
    if not text:
        return ""
    plain = _TAG_RE.sub("", text)
    return " ".join(plain.split())


def derive_excerpt(excerpt: str | None, body: str | None, limit: int = EXCERPT_MAX_LENGTH) -> str:
    """Return the stored excerpt, or the first ``limit`` characters of the plain body."""
    if excerpt and excerpt.strip():
        return excerpt.strip()
    return strip_html(body)[:limit]


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def isoformat_utc(value: datetime | None) -> str | None:
    """Render a timestamp as ISO-8601 in UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC).isoformat()
    return value.astimezone(UTC).isoformat()
