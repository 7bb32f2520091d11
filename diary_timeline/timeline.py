from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

import icu

from .models import (
    UNKNOWN_DATE_MARKER,
    ParsedEntry,
    SortDirection,
    TimelineRow,
    UndatedRow,
)

WEEKDAY_ZH = ("一", "二", "三", "四", "五", "六", "日")
NO_DATES_LABEL = "沒有可解析日期"

NAME_COLLATOR = icu.Collator.createInstance(icu.Locale("zh_TW"))


def name_sort_key(name: str) -> Tuple[bytes, str]:
    """zh-TW collation key for entry names; the raw name breaks collator ties."""
    return (NAME_COLLATOR.getSortKey(name), name)


def partition_entries(entries: Iterable[ParsedEntry]) -> Tuple[List[ParsedEntry], List[ParsedEntry]]:
    known: List[ParsedEntry] = []
    undated: List[ParsedEntry] = []
    for entry in entries:
        if entry.parsed_date is not None and entry.day_key is not None:
            known.append(entry)
        else:
            undated.append(entry)
    return known, undated


def sort_known(entries: Iterable[ParsedEntry], direction: SortDirection = "desc") -> List[ParsedEntry]:
    # Two stable passes: names always ascend, date and import time follow the direction.
    ordered = sorted(entries, key=lambda entry: name_sort_key(entry.name))
    ordered.sort(
        key=lambda entry: (entry.parsed_date.toordinal(), entry.imported_at),  # type: ignore[union-attr]
        reverse=direction == "desc",
    )
    return ordered


def sort_undated(entries: Iterable[ParsedEntry], direction: SortDirection = "desc") -> List[ParsedEntry]:
    ordered = sorted(entries, key=lambda entry: name_sort_key(entry.name))
    ordered.sort(key=lambda entry: entry.imported_at, reverse=direction == "desc")
    return ordered


def day_diff_abs(first: date, second: date) -> int:
    return abs(first.toordinal() - second.toordinal())


def format_timeline_date(entry: ParsedEntry, same_day_ordinal: int = 1) -> str:
    if entry.parsed_date is None:
        return "??"
    parsed = entry.parsed_date
    label = f"{parsed.month}月 {parsed.day}日（{WEEKDAY_ZH[parsed.weekday()]}）"
    if same_day_ordinal > 1:
        return f"{label} · 同日第 {same_day_ordinal} 篇"
    return label


def format_month_heading(entry: ParsedEntry) -> str:
    if entry.parsed_date is None:
        return UNKNOWN_DATE_MARKER
    return f"{entry.parsed_date.year}年 {entry.parsed_date.month}月"


def format_gap_label(gap_days: int) -> Optional[str]:
    if gap_days <= 0:
        return None
    return f"── {gap_days}天後 ──"


def format_range_label(known_entries: Sequence[ParsedEntry]) -> str:
    dates = [entry.parsed_date for entry in known_entries if entry.parsed_date is not None]
    if not dates:
        return NO_DATES_LABEL
    earliest = min(dates)
    latest = max(dates)
    start = f"{earliest.year}年{earliest.month}月"
    end = f"{latest.year}年{latest.month}月"
    return start if start == end else f"{start}—{end}"


def build_timeline_rows(known_sorted: Sequence[ParsedEntry]) -> List[TimelineRow]:
    rows: List[TimelineRow] = []
    for index, entry in enumerate(known_sorted):
        current = entry.parsed_date
        if current is None:
            continue
        previous = known_sorted[index - 1] if index > 0 else None
        following = known_sorted[index + 1] if index + 1 < len(known_sorted) else None

        month_changed = (
            previous is None
            or previous.parsed_date is None
            or (previous.parsed_date.year, previous.parsed_date.month) != (current.year, current.month)
        )

        ordinal = 1
        cursor = index - 1
        while cursor >= 0 and known_sorted[cursor].day_key == entry.day_key:
            ordinal += 1
            cursor -= 1

        gap_days = 0
        if following is not None and following.parsed_date is not None:
            gap_days = day_diff_abs(current, following.parsed_date)

        rows.append(
            TimelineRow(
                entry=entry,
                month_header_before=month_changed,
                same_day_ordinal=ordinal,
                gap_days_after=gap_days,
                date_label=format_timeline_date(entry, ordinal),
                month_label=format_month_heading(entry) if month_changed else None,
                gap_label=format_gap_label(gap_days),
            )
        )
    return rows


def build_undated_rows(undated_sorted: Iterable[ParsedEntry]) -> List[UndatedRow]:
    return [UndatedRow(entry=entry) for entry in undated_sorted]


__all__ = [
    "build_timeline_rows",
    "build_undated_rows",
    "day_diff_abs",
    "format_gap_label",
    "format_month_heading",
    "format_range_label",
    "format_timeline_date",
    "name_sort_key",
    "partition_entries",
    "sort_known",
    "sort_undated",
]
