from __future__ import annotations

import random
from typing import Callable, Optional, Sequence, Set, Tuple, TypeVar

from .models import ParsedEntry
from .preferences import PreferenceStore, persist_favorite_set

T = TypeVar("T")


def pick_random(pool: Sequence[T], rng: Optional[random.Random] = None) -> Optional[T]:
    if not pool:
        return None
    chooser = rng.choice if rng is not None else random.choice
    return chooser(pool)


def toggle_favorite(
    favorites: Set[str],
    name: str,
    store: PreferenceStore,
    key: str,
) -> Tuple[Set[str], bool]:
    """Flip ``name`` in a copy of the favorite set and persist it right away.

    Returns the new set and whether ``name`` is now a favorite.
    """
    updated = set(favorites)
    if name in updated:
        updated.discard(name)
        is_favorite = False
    else:
        updated.add(name)
        is_favorite = True
    persist_favorite_set(store, key, updated)
    return updated, is_favorite


def resolve_current_entry(
    pool: Sequence[ParsedEntry],
    selected_name: Optional[str],
    lookup: Callable[[str], Optional[ParsedEntry]],
) -> Optional[ParsedEntry]:
    if not pool:
        return None
    if selected_name:
        for entry in pool:
            if entry.name == selected_name:
                return entry
        hit = lookup(selected_name)
        if hit is not None:
            return hit
    return pool[0]


def index_in_pool(pool: Sequence[ParsedEntry], name: Optional[str]) -> int:
    if not name:
        return -1
    for index, entry in enumerate(pool):
        if entry.name == name:
            return index
    return -1


def shift_entry(pool: Sequence[ParsedEntry], current_name: Optional[str], delta: int) -> Optional[ParsedEntry]:
    """Step through the reading pool, wrapping around at both ends."""
    if not pool:
        return None
    base_index = max(index_in_pool(pool, current_name), 0)
    return pool[(base_index + delta) % len(pool)]


__all__ = ["index_in_pool", "pick_random", "resolve_current_entry", "shift_entry", "toggle_favorite"]
