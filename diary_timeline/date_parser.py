from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

FULLWIDTH_DIGIT_TABLE = str.maketrans({
    "０": "0",
    "１": "1",
    "２": "2",
    "３": "3",
    "４": "4",
    "５": "5",
    "６": "6",
    "７": "7",
    "８": "8",
    "９": "9",
})

MIN_YEAR = 1900
MAX_YEAR = 2099

YEAR_TOKEN = r"(?P<year>19[0-9]{2}|20[0-9]{2})"
MONTH_TOKEN = r"(?P<month>1[0-2]|0?[1-9])"
DAY_TOKEN = r"(?P<day>3[01]|[12][0-9]|0?[1-9])"
SEPARATOR = r"[\s_./-]*"
NO_DIGIT_BEFORE = r"(?<![0-9])"
NO_DIGIT_AFTER = r"(?![0-9])"

YMD_BODY = (
    rf"{YEAR_TOKEN}{SEPARATOR}年?{SEPARATOR}{MONTH_TOKEN}{SEPARATOR}月?{SEPARATOR}{DAY_TOKEN}\s*日?"
)

EXTENSION_PATTERN = re.compile(r"\.(txt|docx?)$", re.IGNORECASE)


@dataclass(frozen=True)
class DatePattern:
    """A structural date pattern. Matches are validated separately by to_calendar_date."""

    label: str
    regex: re.Pattern[str]

    def iter_triplets(self, text: str) -> Iterable[Tuple[int, int, int]]:
        for match in self.regex.finditer(text):
            yield (
                int(match.group("year")),
                int(match.group("month")),
                int(match.group("day")),
            )


DATE_PATTERNS: Tuple[DatePattern, ...] = (
    DatePattern(
        "year-month-day",
        re.compile(NO_DIGIT_BEFORE + YMD_BODY + NO_DIGIT_AFTER),
    ),
    DatePattern(
        "compact",
        re.compile(
            NO_DIGIT_BEFORE
            + r"(?P<year>19[0-9]{2}|20[0-9]{2})(?P<month>1[0-2]|0[1-9])(?P<day>3[01]|[12][0-9]|0[1-9])"
            + NO_DIGIT_AFTER
        ),
    ),
    DatePattern(
        "month-day-year",
        re.compile(
            NO_DIGIT_BEFORE
            + r"(?P<month>1[0-2]|0?[1-9])[/.\-](?P<day>3[01]|[12][0-9]|0?[1-9])[/.\-]"
            + r"(?P<year>19[0-9]{2}|20[0-9]{2})"
            + NO_DIGIT_AFTER
        ),
    ),
)


def _normalise_digits(value: str) -> str:
    return value.translate(FULLWIDTH_DIGIT_TABLE)


def to_calendar_date(year: int, month: int, day: int) -> Optional[date]:
    """Return the real calendar date for the triplet, or None (e.g. Feb 30, month 13)."""
    if not (MIN_YEAR <= year <= MAX_YEAR):
        return None
    if not (1 <= month <= 12) or not (1 <= day <= 31):
        return None
    try:
        candidate = date(year, month, day)
    except ValueError:
        return None
    if (candidate.year, candidate.month, candidate.day) != (year, month, day):
        return None
    return candidate


def parse_date_from_text(source: str) -> Optional[date]:
    if not source:
        return None
    text = _normalise_digits(source).strip()
    if not text:
        return None

    for pattern in DATE_PATTERNS:
        for year, month, day in pattern.iter_triplets(text):
            parsed = to_calendar_date(year, month, day)
            if parsed is not None:
                return parsed
    return None


def pick_date_from_candidates(candidates: Iterable[str]) -> Optional[date]:
    for candidate in candidates:
        parsed = parse_date_from_text(candidate)
        if parsed is not None:
            return parsed
    return None


def strip_date_patterns(text: str) -> str:
    """Blank out every structural date match (all shapes, valid or not)."""
    stripped = text or ""
    for pattern in DATE_PATTERNS:
        stripped = pattern.regex.sub(" ", stripped)
    return stripped


def to_base_title(name: str) -> str:
    return EXTENSION_PATTERN.sub("", name or "").strip()


def collect_date_candidates(
    *,
    entry_name: str,
    base_title: str,
    entry_title: str,
    lines: Sequence[str],
) -> List[str]:
    """Fragments worth testing for an embedded date, highest priority first."""
    ordered = [entry_name, base_title, entry_title, *lines[:2], *lines[-2:]]
    seen: set[str] = set()
    result: List[str] = []
    for value in ordered:
        normalised = (value or "").strip()
        if not normalised or normalised in seen:
            continue
        seen.add(normalised)
        result.append(normalised)
    return result


__all__ = [
    "DATE_PATTERNS",
    "DatePattern",
    "YMD_BODY",
    "collect_date_candidates",
    "parse_date_from_text",
    "pick_date_from_candidates",
    "strip_date_patterns",
    "to_base_title",
    "to_calendar_date",
]
