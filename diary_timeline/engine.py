from __future__ import annotations

import logging
import random
import threading
from typing import Dict, Iterable, List, Optional, Set

from .body_cache import BodyCache, BodyLoader
from .entry_builder import build_snippet, parse_entries
from .models import ParsedEntry, RawDocument, ViewCounts, ViewOptions, ViewState
from .preferences import InMemoryPreferenceStore, PreferenceStore, read_favorite_set
from .search import FilteredEntries, filter_entries
from .selection import index_in_pool, pick_random, resolve_current_entry, shift_entry, toggle_favorite
from .settings import Settings
from .settings import settings as default_settings
from .text_cleaner import split_meaningful_lines
from .timeline import (
    build_timeline_rows,
    build_undated_rows,
    format_range_label,
    partition_entries,
    sort_known,
    sort_undated,
)

logger = logging.getLogger("diary_timeline.engine")


class DiaryEngine:
    """Owns the parsed corpus, the favorite set and the body cache.

    Every view is a pure recomputation from the parsed entries plus a
    :class:`ViewOptions`; the engine keeps no ordering state between calls.
    """

    def __init__(
        self,
        documents: Iterable[RawDocument] = (),
        *,
        preferences: Optional[PreferenceStore] = None,
        body_loader: Optional[BodyLoader] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or default_settings
        self.preferences: PreferenceStore = preferences or InMemoryPreferenceStore()
        self.body_cache = BodyCache(body_loader)
        self._rng = rng
        self._lock = threading.Lock()
        self._documents: Dict[str, RawDocument] = {}
        self._entries: List[ParsedEntry] = []
        self._entry_map: Dict[str, ParsedEntry] = {}
        self._favorites: Set[str] = read_favorite_set(self.preferences, self.settings.favorites_key)
        self.load_corpus(documents)

    # -------------------------------
    # Corpus
    # -------------------------------
    # Mutations may run in a worker thread; readers see either the old or the new corpus.
    def load_corpus(self, documents: Iterable[RawDocument]) -> None:
        with self._lock:
            self._documents = {document.name: document for document in documents}
            self._reparse()
            self.body_cache.clear()

    def add_documents(self, documents: Iterable[RawDocument]) -> List[ParsedEntry]:
        added = list(documents)
        with self._lock:
            for document in added:
                self._documents[document.name] = document
                self.body_cache.discard(document.name)
            entry_map = self._reparse()
        return [entry_map[document.name] for document in added]

    def remove_document(self, name: str) -> bool:
        with self._lock:
            if self._documents.pop(name, None) is None:
                return False
            self.body_cache.discard(name)
            self._reparse()
        return True

    def _reparse(self) -> Dict[str, ParsedEntry]:
        entries = parse_entries(list(self._documents.values()), settings=self.settings)
        entry_map = {entry.name: entry for entry in entries}
        self._entries, self._entry_map = entries, entry_map
        known, undated = partition_entries(entries)
        logger.debug(
            "Parsed %d documents (%d dated, %d undated).",
            len(entries),
            len(known),
            len(undated),
        )
        return entry_map

    @property
    def entries(self) -> List[ParsedEntry]:
        return list(self._entries)

    def get_entry(self, name: str) -> Optional[ParsedEntry]:
        return self._entry_map.get(name)

    # -------------------------------
    # Favorites
    # -------------------------------
    @property
    def favorites(self) -> Set[str]:
        return set(self._favorites)

    def is_favorite(self, name: str) -> bool:
        return name in self._favorites

    def toggle_favorite(self, name: str) -> bool:
        with self._lock:
            self._favorites, is_favorite = toggle_favorite(
                self._favorites,
                name,
                self.preferences,
                self.settings.favorites_key,
            )
        return is_favorite

    # -------------------------------
    # Views
    # -------------------------------
    def filtered(self, options: ViewOptions) -> FilteredEntries:
        known, undated = partition_entries(self._entries)
        return filter_entries(
            sort_known(known, options.sort_direction),
            sort_undated(undated, options.sort_direction),
            filter=options.filter,
            query=options.query,
            favorites=self._favorites,
        )

    def reading_pool(self, options: ViewOptions) -> List[ParsedEntry]:
        return self.filtered(options).reading_pool

    def view(self, options: Optional[ViewOptions] = None) -> ViewState:
        options = options or ViewOptions()
        filtered = self.filtered(options)
        pool = filtered.reading_pool
        current = resolve_current_entry(pool, options.selected_name, self.get_entry)
        current_index = index_in_pool(pool, current.name) if current else -1

        return ViewState(
            options=options,
            rows=build_timeline_rows(filtered.known),
            undated_rows=build_undated_rows(filtered.undated),
            show_undated_heading=bool(filtered.undated) and options.filter != "undated",
            reading_pool=pool,
            current_entry=current,
            current_index=current_index,
            counts=ViewCounts(
                total=len(self._entries),
                filtered=filtered.total,
                favorites=sum(1 for name in self._favorites if name in self._entry_map),
            ),
            range_label=format_range_label(filtered.known),
        )

    # -------------------------------
    # Selection
    # -------------------------------
    def pick_random(self, options: Optional[ViewOptions] = None) -> Optional[ParsedEntry]:
        return pick_random(self.reading_pool(options or ViewOptions()), self._rng)

    def shift(self, options: ViewOptions, delta: int) -> Optional[ParsedEntry]:
        pool = self.reading_pool(options)
        current = resolve_current_entry(pool, options.selected_name, self.get_entry)
        return shift_entry(pool, current.name if current else None, delta)

    def compact_snippet(self, entry: ParsedEntry) -> str:
        lines = split_meaningful_lines(entry.body_text)
        return build_snippet(
            lines,
            entry.title,
            entry.body_text,
            max_length=self.settings.compact_snippet_max_length,
        )

    # -------------------------------
    # Bodies
    # -------------------------------
    async def load_body(self, name: str) -> str:
        return await self.body_cache.fetch(name)
