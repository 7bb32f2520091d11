from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, List, Sequence

from .models import ParsedEntry, TimelineFilter


@dataclass
class FilteredEntries:
    """Result of applying the category filter and the free-text query."""

    known: List[ParsedEntry] = field(default_factory=list)
    undated: List[ParsedEntry] = field(default_factory=list)
    reading_pool: List[ParsedEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.known) + len(self.undated)


def normalise_query(query: str) -> str:
    return (query or "").strip().lower()


def build_haystack(entry: ParsedEntry) -> str:
    return "\n".join(
        (entry.title, entry.snippet, entry.body_text, entry.name, entry.date_text)
    ).lower()


def matches_query(entry: ParsedEntry, query: str) -> bool:
    needle = normalise_query(query)
    if not needle:
        return True
    return needle in build_haystack(entry)


def filter_entries(
    known_sorted: Sequence[ParsedEntry],
    undated_sorted: Sequence[ParsedEntry],
    *,
    filter: TimelineFilter = "all",
    query: str = "",
    favorites: AbstractSet[str] = frozenset(),
) -> FilteredEntries:
    """Select the visible subsets and the active reading pool.

    ``favorites`` narrows both partitions to favorited names, ``undated``
    drops every dated entry. The query is a case-insensitive substring test.
    When nothing survives, the reading pool falls back to the whole corpus
    only if neither the filter nor the query narrows anything.
    """

    needle = normalise_query(query)

    if filter == "undated":
        known_base: List[ParsedEntry] = []
    elif filter == "favorites":
        known_base = [entry for entry in known_sorted if entry.name in favorites]
    else:
        known_base = list(known_sorted)

    if filter == "favorites":
        undated_base = [entry for entry in undated_sorted if entry.name in favorites]
    else:
        undated_base = list(undated_sorted)

    if needle:
        known_base = [entry for entry in known_base if needle in build_haystack(entry)]
        undated_base = [entry for entry in undated_base if needle in build_haystack(entry)]

    pool = [*known_base, *undated_base]
    if not pool and filter == "all" and not needle:
        pool = [*known_sorted, *undated_sorted]

    return FilteredEntries(known=known_base, undated=undated_base, reading_pool=pool)


__all__ = ["FilteredEntries", "build_haystack", "filter_entries", "matches_query", "normalise_query"]
