from __future__ import annotations

from calendar import monthrange
from datetime import date

import pytest

from .date_parser import (
    collect_date_candidates,
    parse_date_from_text,
    pick_date_from_candidates,
    to_base_title,
    to_calendar_date,
)


def _sample_dates() -> list[date]:
    samples = []
    for year in (1900, 1999, 2000, 2023, 2024, 2099):
        for month in range(1, 13):
            last_day = monthrange(year, month)[1]
            for day in sorted({1, 9, 10, last_day}):
                samples.append(date(year, month, day))
    return samples


@pytest.mark.parametrize(
    "formatter",
    [
        lambda d: f"{d.year}年{d.month}月{d.day}日",
        lambda d: f"{d.year:04d}{d.month:02d}{d.day:02d}",
        lambda d: f"{d.month}/{d.day}/{d.year}",
    ],
    ids=["cjk-units", "compact", "month-day-year"],
)
def test_supported_formats_recover_the_same_date(formatter):
    for expected in _sample_dates():
        assert parse_date_from_text(formatter(expected)) == expected


@pytest.mark.parametrize("text", ["2024年2月30日", "20241301", "13/40/2024", "2023-02-29"])
def test_invalid_calendar_dates_yield_no_match(text):
    assert parse_date_from_text(text) is None


def test_to_calendar_date_is_total():
    assert to_calendar_date(2024, 2, 29) == date(2024, 2, 29)
    assert to_calendar_date(2023, 2, 29) is None
    assert to_calendar_date(2024, 13, 1) is None
    assert to_calendar_date(2024, 0, 1) is None
    assert to_calendar_date(1899, 12, 31) is None
    assert to_calendar_date(2100, 1, 1) is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2023-08-15 想你", date(2023, 8, 15)),
        ("2023_8_5", date(2023, 8, 5)),
        ("2023.08.05 晴", date(2023, 8, 5)),
        ("日記 2021 年 3 月 7 日", date(2021, 3, 7)),
        ("２０２２年１月２日", date(2022, 1, 2)),
        ("寫於 12.25.2019", date(2019, 12, 25)),
    ],
)
def test_dates_with_separators_and_labels(text, expected):
    assert parse_date_from_text(text) == expected


def test_digits_glued_to_the_date_are_rejected():
    assert parse_date_from_text("920230815") is None
    assert parse_date_from_text("202308151") is None


def test_later_valid_match_wins_over_earlier_invalid_one():
    assert parse_date_from_text("2023-02-30 改成 2023-03-02") == date(2023, 3, 2)


def test_empty_and_undated_text_returns_none():
    assert parse_date_from_text("") is None
    assert parse_date_from_text("   ") is None
    assert parse_date_from_text("今天很累") is None


def test_collect_date_candidates_orders_and_dedupes():
    lines = ["第一行", "第二行", "中間", "倒數第二", "最後"]
    candidates = collect_date_candidates(
        entry_name="note.txt",
        base_title="note",
        entry_title="note",
        lines=lines,
    )
    assert candidates == ["note.txt", "note", "第一行", "第二行", "倒數第二", "最後"]


def test_collect_date_candidates_skips_blanks_and_short_bodies():
    candidates = collect_date_candidates(
        entry_name="a.txt",
        base_title="a",
        entry_title="  ",
        lines=["only"],
    )
    assert candidates == ["a.txt", "a", "only"]


def test_pick_date_prefers_earlier_candidates():
    picked = pick_date_from_candidates(["沒有日期", "2020-01-02", "2021-05-06"])
    assert picked == date(2020, 1, 2)
    assert pick_date_from_candidates(["沒有", "日期"]) is None


def test_to_base_title_strips_known_extensions():
    assert to_base_title("2023-08-15 想你.txt") == "2023-08-15 想你"
    assert to_base_title("Letter.DOCX") == "Letter"
    assert to_base_title("notes.md") == "notes.md"
