from __future__ import annotations

import json
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from .body_cache import BODY_LOAD_FAILED_PLACEHOLDER
from .engine import DiaryEngine
from .models import RawDocument, ViewOptions
from .preferences import InMemoryPreferenceStore
from .settings import Settings

FAVORITES_KEY = "memorial-m-diary-favorites-v1"


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _documents():
    return [
        RawDocument(name="2024-01-01 元旦.txt", plain_text="新年快樂\n吃了湯圓", imported_at=1.0),
        RawDocument(name="2024-01-01 晚上.txt", plain_text="放煙火\n很吵", imported_at=2.0),
        RawDocument(name="2024-01-05 海邊.txt", plain_text="去海邊\n風很大", imported_at=3.0),
        RawDocument(name="note1.txt", plain_text="no date here\nat all", imported_at=4.0),
    ]


@pytest.fixture
def engine():
    return DiaryEngine(_documents(), preferences=InMemoryPreferenceStore(), rng=random.Random(3))


def test_view_groups_dated_entries_and_lists_undated(engine):
    state = engine.view(ViewOptions(sort_direction="asc"))

    assert [row.entry.name for row in state.rows] == [
        "2024-01-01 元旦.txt",
        "2024-01-01 晚上.txt",
        "2024-01-05 海邊.txt",
    ]
    assert [row.same_day_ordinal for row in state.rows] == [1, 2, 1]
    assert [row.gap_days_after for row in state.rows] == [0, 4, 0]
    assert [row.entry.name for row in state.undated_rows] == ["note1.txt"]
    assert state.show_undated_heading is True
    assert state.counts.total == 4
    assert state.counts.filtered == 4
    assert state.range_label == "2024年1月"
    assert state.current_entry.name == "2024-01-01 元旦.txt"
    assert state.current_index == 0


def test_view_defaults_to_newest_first(engine):
    state = engine.view()
    assert state.rows[0].entry.name == "2024-01-05 海邊.txt"
    assert state.reading_pool[-1].name == "note1.txt"


def test_undated_filter_hides_heading(engine):
    state = engine.view(ViewOptions(filter="undated"))

    assert state.rows == []
    assert [row.entry.name for row in state.undated_rows] == ["note1.txt"]
    assert state.show_undated_heading is False


def test_favorites_filter_starts_empty(engine):
    state = engine.view(ViewOptions(filter="favorites"))

    assert state.reading_pool == []
    assert state.current_entry is None
    assert state.current_index == -1
    assert engine.pick_random(ViewOptions(filter="favorites")) is None


def test_toggle_favorite_persists_and_filters(engine):
    assert engine.toggle_favorite("note1.txt") is True
    assert json.loads(engine.preferences.get(FAVORITES_KEY)) == ["note1.txt"]

    state = engine.view(ViewOptions(filter="favorites"))
    assert [entry.name for entry in state.reading_pool] == ["note1.txt"]
    assert state.counts.favorites == 1

    assert engine.toggle_favorite("note1.txt") is False
    assert engine.favorites == set()


def test_favorites_are_read_from_preferences():
    store = InMemoryPreferenceStore({FAVORITES_KEY: '["note1.txt", "gone.txt"]'})
    engine = DiaryEngine(_documents(), preferences=store)

    assert engine.is_favorite("note1.txt")
    assert engine.view().counts.favorites == 1


def test_search_narrows_pool(engine):
    state = engine.view(ViewOptions(query="海邊"))
    assert [entry.name for entry in state.reading_pool] == ["2024-01-05 海邊.txt"]
    assert state.counts.filtered == 1


def test_shift_walks_the_active_pool(engine):
    options = ViewOptions(sort_direction="asc", selected_name="2024-01-05 海邊.txt")

    assert engine.shift(options, 1).name == "note1.txt"
    assert engine.shift(options, -1).name == "2024-01-01 晚上.txt"
    assert engine.shift(ViewOptions(filter="favorites"), 1) is None


def test_pick_random_stays_in_pool(engine):
    options = ViewOptions(query="2024-01-01")
    pool = {entry.name for entry in engine.reading_pool(options)}

    for _ in range(10):
        assert engine.pick_random(options).name in pool


def test_add_and_remove_documents(engine):
    (added,) = engine.add_documents([RawDocument(name="2023-12-31 跨年.txt", plain_text="倒數")])

    assert added.day_key == "2023-12-31"
    assert engine.get_entry("2023-12-31 跨年.txt") == added
    assert len(engine.entries) == 5

    assert engine.remove_document("2023-12-31 跨年.txt") is True
    assert engine.remove_document("2023-12-31 跨年.txt") is False
    assert engine.get_entry("2023-12-31 跨年.txt") is None


def test_compact_snippet_uses_shorter_limit():
    engine = DiaryEngine(
        [RawDocument(name="long.txt", plain_text="標題\n" + "字" * 80)],
        settings=Settings(compact_snippet_max_length=10),
    )
    entry = engine.get_entry("long.txt")

    assert engine.compact_snippet(entry) == "字" * 10 + "..."


@pytest.mark.anyio
async def test_load_body_goes_through_cache():
    calls = []

    def loader(name: str) -> str:
        calls.append(name)
        return f"body of {name}"

    engine = DiaryEngine(_documents(), body_loader=loader)

    assert await engine.load_body("note1.txt") == "body of note1.txt"
    assert await engine.load_body("note1.txt") == "body of note1.txt"
    assert calls == ["note1.txt"]


@pytest.mark.anyio
async def test_load_body_without_loader_returns_placeholder():
    engine = DiaryEngine(_documents())
    assert await engine.load_body("note1.txt") == BODY_LOAD_FAILED_PLACEHOLDER


def test_documents_added_from_worker_threads_are_all_kept():
    engine = DiaryEngine(preferences=InMemoryPreferenceStore())
    documents = [RawDocument(name=f"2024-01-{day:02d}.txt", plain_text="x") for day in range(1, 21)]

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda document: engine.add_documents([document]), documents))

    assert len(engine.entries) == 20
    assert engine.view(ViewOptions(sort_direction="asc")).rows[0].entry.name == "2024-01-01.txt"
