"""
Grounding source deduplication.

Citation metadata from grounded calls routinely repeats the same page and
sometimes carries chunks with no web reference at all. ``dedupe_sources``
drops the unusable entries and keeps the first occurrence of each uri.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Set

from pydantic import ValidationError

from verified_visuals.contracts import Source


def _coerce(candidate: Any) -> Optional[Source]:
    if isinstance(candidate, Source):
        return candidate
    if isinstance(candidate, Mapping):
        title = candidate.get("title")
        uri = candidate.get("uri")
        if not (isinstance(title, str) and title and isinstance(uri, str) and uri):
            return None
        try:
            return Source(title=title, uri=uri)
        except ValidationError:
            return None
    return None


def dedupe_sources(candidates: Optional[Iterable[Any]]) -> List[Source]:
    """Return unique sources by exact ``uri``, preserving first-seen order.

    ``None`` entries, mappings lacking a title or uri, and anything else that
    is not a source are skipped. Never raises.
    """
    unique: List[Source] = []
    seen: Set[str] = set()
    for candidate in candidates or ():
        source = _coerce(candidate)
        if source is None or source.uri in seen:
            continue
        seen.add(source.uri)
        unique.append(source)
    return unique


__all__ = ["dedupe_sources"]
