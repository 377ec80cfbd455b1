"""Match highlighting for short result fields.

Wraps matched substrings in ``<c>``...``</c>``. Matching is case-insensitive
but the original casing of the text is kept. Nothing is HTML-escaped; the
presentation layer escapes and converts the marker to its own markup.

Only short fields (titles, slugs, names, codes, truncated excerpts) are
meant to pass through here.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from app.constants import HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN

_MARKED_RE = re.compile(re.escape(HIGHLIGHT_OPEN) + r"(.*?)" + re.escape(HIGHLIGHT_CLOSE), re.DOTALL)


def _clean_terms(terms: str | Iterable[str] | None) -> list[str]:
    """Drop empty terms and duplicates; longest first so longer terms win ties."""
    if terms is None:
        return []
    if isinstance(terms, str):
        terms = [terms]
    seen: set[str] = set()
    cleaned: list[str] = []
    for term in terms:
        if not term:
            continue
        key = term.lower()
        if key not in seen:
            seen.add(key)
            cleaned.append(term)
    return sorted(cleaned, key=len, reverse=True)


def _wrap(match: re.Match[str]) -> str:
    return f"{HIGHLIGHT_OPEN}{match.group(0)}{HIGHLIGHT_CLOSE}"


def _segments(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_marked, segment) pieces around existing markers."""
    pieces: list[tuple[bool, str]] = []
    pos = 0
    for marked in _MARKED_RE.finditer(text):
        if marked.start() > pos:
            pieces.append((False, text[pos : marked.start()]))
        pieces.append((True, marked.group(0)))
        pos = marked.end()
    if pos < len(text):
        pieces.append((False, text[pos:]))
    return pieces


def highlight(text: str | None, terms: str | Iterable[str] | None, *, first_only: bool = True) -> str:
    """Wrap occurrences of ``terms`` in ``text`` with the highlight marker.

    Args:
        text: Raw field text.
        terms: One term or several; empty terms are ignored.
        first_only: Mark only the first occurrence (default), or every
            non-overlapping occurrence.

    Returns:
        The annotated text. Text with no match, or an empty term set, is
        returned unchanged. Already-marked spans are left alone, so
        highlighting the same text twice does not double-wrap.
    """
    if not text:
        return text or ""
    needles = _clean_terms(terms)
    if not needles:
        return text

    pattern = re.compile("|".join(re.escape(needle) for needle in needles), re.IGNORECASE)
    pieces = _segments(text)

    if first_only:
        inner_len = len(HIGHLIGHT_OPEN)
        for is_marked, segment in pieces:
            if is_marked and pattern.fullmatch(segment[inner_len : -len(HIGHLIGHT_CLOSE)]):
                return text

    out: list[str] = []
    done = False
    for is_marked, segment in pieces:
        if is_marked or done:
            out.append(segment)
            continue
        if first_only:
            annotated, count = pattern.subn(_wrap, segment, count=1)
            done = count > 0
        else:
            annotated = pattern.sub(_wrap, segment)
        out.append(annotated)
    return "".join(out)
