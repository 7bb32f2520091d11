from __future__ import annotations

from datetime import date
from typing import Optional

from .models import ParsedEntry
from .timeline import (
    build_timeline_rows,
    build_undated_rows,
    format_gap_label,
    format_month_heading,
    format_range_label,
    format_timeline_date,
    name_sort_key,
    partition_entries,
    sort_known,
    sort_undated,
)


def make_entry(name: str, day: Optional[str] = None, imported_at: float = 1.0) -> ParsedEntry:
    parsed = date.fromisoformat(day) if day else None
    return ParsedEntry(
        name=name,
        title=name,
        body_text=f"{name} body",
        snippet=f"{name} body",
        parsed_date=parsed,
        day_key=day,
        imported_at=imported_at,
    )


def test_same_day_ordinals_and_gaps():
    entries = [
        make_entry("a", "2024-01-01"),
        make_entry("b", "2024-01-01"),
        make_entry("c", "2024-01-05"),
    ]
    rows = build_timeline_rows(sort_known(entries, "asc"))

    assert [row.same_day_ordinal for row in rows] == [1, 2, 1]
    assert [row.gap_days_after for row in rows] == [0, 4, 0]
    assert [row.gap_label for row in rows] == [None, "── 4天後 ──", None]
    assert rows[1].date_label == "1月 1日（一） · 同日第 2 篇"


def test_gaps_are_absolute_in_descending_order():
    entries = [make_entry("a", "2024-01-01"), make_entry("c", "2024-01-05")]
    rows = build_timeline_rows(sort_known(entries, "desc"))

    assert [row.entry.name for row in rows] == ["c", "a"]
    assert [row.gap_days_after for row in rows] == [4, 0]


def test_month_headers_only_on_month_change():
    entries = [
        make_entry("a", "2023-12-31"),
        make_entry("b", "2024-01-02"),
        make_entry("c", "2024-01-20"),
        make_entry("d", "2025-01-03"),
    ]
    rows = build_timeline_rows(sort_known(entries, "asc"))

    assert [row.month_header_before for row in rows] == [True, True, False, True]
    assert [row.month_label for row in rows] == ["2023年 12月", "2024年 1月", None, "2025年 1月"]


def test_partition_is_complete_and_disjoint():
    entries = [
        make_entry("a", "2024-01-01"),
        make_entry("b"),
        make_entry("c", "2020-05-05"),
        make_entry("d"),
    ]
    known, undated = partition_entries(entries)

    assert [e.name for e in known] == ["a", "c"]
    assert [e.name for e in undated] == ["b", "d"]
    assert {e.name for e in known} | {e.name for e in undated} == {"a", "b", "c", "d"}
    assert not {e.name for e in known} & {e.name for e in undated}


def test_sort_known_orders_by_date_then_import_time_then_name():
    entries = [
        make_entry("z", "2024-01-01", imported_at=5),
        make_entry("b", "2024-01-01", imported_at=1),
        make_entry("a", "2024-01-01", imported_at=1),
        make_entry("m", "2023-06-01", imported_at=9),
    ]

    assert [e.name for e in sort_known(entries, "asc")] == ["m", "a", "b", "z"]
    assert [e.name for e in sort_known(entries, "desc")] == ["z", "a", "b", "m"]


def test_sorting_twice_in_opposite_directions_restores_order():
    entries = [
        make_entry("c", "2024-03-01", imported_at=3),
        make_entry("a", "2024-01-01", imported_at=2),
        make_entry("b", "2024-01-01", imported_at=2),
        make_entry("d", "2022-01-01", imported_at=1),
    ]
    ascending = sort_known(entries, "asc")
    round_trip = sort_known(sort_known(ascending, "desc"), "asc")

    assert [e.name for e in round_trip] == [e.name for e in ascending]


def test_sort_undated_uses_import_time():
    entries = [
        make_entry("old", imported_at=10),
        make_entry("new", imported_at=30),
        make_entry("mid", imported_at=20),
    ]

    assert [e.name for e in sort_undated(entries, "desc")] == ["new", "mid", "old"]
    assert [e.name for e in sort_undated(entries, "asc")] == ["old", "mid", "new"]


def test_name_sort_key_follows_latin_letter_order():
    names = ["Ｂ.txt", "a.txt", "C.txt"]
    assert sorted(names, key=name_sort_key) == ["a.txt", "Ｂ.txt", "C.txt"]


def test_same_day_names_follow_traditional_chinese_stroke_order():
    entries = [
        make_entry("三.txt", "2024-01-01"),
        make_entry("一.txt", "2024-01-01"),
        make_entry("十.txt", "2024-01-01"),
    ]
    expected = ["一.txt", "十.txt", "三.txt"]

    assert [e.name for e in sort_known(entries, "asc")] == expected
    assert [e.name for e in sort_known(entries, "desc")] == expected
    assert [e.name for e in sort_undated([make_entry(n) for n in ("三.txt", "十.txt")])] == [
        "十.txt",
        "三.txt",
    ]


def test_labels():
    entry = make_entry("a", "2023-08-15")

    assert format_timeline_date(entry) == "8月 15日（二）"
    assert format_month_heading(entry) == "2023年 8月"
    assert format_gap_label(0) is None
    assert format_gap_label(3) == "── 3天後 ──"


def test_range_label():
    assert format_range_label([]) == "沒有可解析日期"
    assert format_range_label([make_entry("a", "2023-08-15")]) == "2023年8月"
    assert (
        format_range_label([make_entry("a", "2024-02-01"), make_entry("b", "2023-08-15")])
        == "2023年8月—2024年2月"
    )


def test_undated_rows_carry_marker():
    rows = build_undated_rows([make_entry("x")])
    assert rows[0].marker == "未知時刻"
    assert rows[0].entry.name == "x"
