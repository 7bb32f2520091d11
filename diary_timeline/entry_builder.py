from __future__ import annotations

import math
import re
import time
from typing import List, Optional, Sequence

from .date_parser import (
    collect_date_candidates,
    parse_date_from_text,
    pick_date_from_candidates,
    strip_date_patterns,
    to_base_title,
)
from .models import ParsedEntry, RawDocument
from .settings import Settings
from .text_cleaner import document_text, split_meaningful_lines

UNTITLED_PLACEHOLDER = "未命名日記"
EMPTY_SNIPPET_PLACEHOLDER = "（沒有內容）"
ELLIPSIS = "..."
TITLE_MAX_LENGTH = 42
SNIPPET_MAX_LENGTH = 56
DATE_RESIDUE_LIMIT = 2

DATE_LINE_CHARS_PATTERN = re.compile(r"[\s0-9０-９年月日/.\-_:：()（）星期禮拜一二三四五六日天]")
FILENAME_SEPARATOR_PATTERN = re.compile(r"[._\-]+")
MULTI_SPACE_PATTERN = re.compile(r"\s{2,}")
WHITESPACE_PATTERN = re.compile(r"\s+")


def looks_like_date_line(line: str) -> bool:
    """True when the line holds a date and little else (e.g. "2023年8月15日 星期二")."""
    if parse_date_from_text(line) is None:
        return False
    residue = DATE_LINE_CHARS_PATTERN.sub("", line)
    return len(residue) <= DATE_RESIDUE_LIMIT


def title_from_base(base_title: str) -> str:
    trimmed = strip_date_patterns(base_title)
    trimmed = FILENAME_SEPARATOR_PATTERN.sub(" ", trimmed)
    trimmed = MULTI_SPACE_PATTERN.sub(" ", trimmed)
    return trimmed.strip()


def build_display_title(
    base_title: str,
    lines: Sequence[str],
    *,
    max_length: int = TITLE_MAX_LENGTH,
) -> str:
    content_lines = [line for line in lines if not looks_like_date_line(line)]
    fallback = title_from_base(base_title)

    if content_lines:
        first = content_lines[0]
        # a dated file name with a title carries it; a lone body line then stays in the preview
        lone_line = (
            len(content_lines) == 1
            and bool(fallback)
            and parse_date_from_text(base_title) is not None
        )
        if len(first) <= max_length and not lone_line:
            return first

    if fallback:
        return fallback
    return UNTITLED_PLACEHOLDER


def build_snippet(
    lines: Sequence[str],
    title: str,
    fallback_text: str,
    *,
    max_length: int = SNIPPET_MAX_LENGTH,
) -> str:
    filtered = [line for line in lines if line != title and not looks_like_date_line(line)]
    joined = " ".join(filtered) if filtered else (fallback_text or "")
    joined = WHITESPACE_PATTERN.sub(" ", joined).strip()
    if not joined:
        return EMPTY_SNIPPET_PLACEHOLDER
    if len(joined) > max_length:
        return f"{joined[:max_length]}{ELLIPSIS}"
    return joined


def resolve_imported_at(value: Optional[float], now_ms: Optional[float] = None) -> float:
    if value is not None and math.isfinite(value) and value > 0:
        return float(value)
    return float(now_ms if now_ms is not None else time.time() * 1000)


def parse_entry(
    raw: RawDocument,
    *,
    now_ms: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> ParsedEntry:
    title_limit = settings.title_max_length if settings else TITLE_MAX_LENGTH
    snippet_limit = settings.snippet_max_length if settings else SNIPPET_MAX_LENGTH

    base_title = to_base_title(raw.name) or raw.title.strip() or UNTITLED_PLACEHOLDER
    text = document_text(raw.plain_text, raw.rich_text)
    lines = split_meaningful_lines(text)

    candidates = collect_date_candidates(
        entry_name=raw.name,
        base_title=base_title,
        entry_title=raw.title,
        lines=lines,
    )
    parsed_date = pick_date_from_candidates(candidates)
    title = build_display_title(base_title, lines, max_length=title_limit)
    snippet = build_snippet(lines, title, text, max_length=snippet_limit)

    return ParsedEntry(
        name=raw.name,
        title=title,
        body_text=text,
        rich_text=raw.rich_text,
        snippet=snippet,
        parsed_date=parsed_date,
        day_key=parsed_date.isoformat() if parsed_date else None,
        imported_at=resolve_imported_at(raw.imported_at, now_ms),
    )


def parse_entries(
    documents: Sequence[RawDocument],
    *,
    now_ms: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> List[ParsedEntry]:
    reference_ms = now_ms if now_ms is not None else time.time() * 1000
    return [parse_entry(document, now_ms=reference_ms, settings=settings) for document in documents]


__all__ = [
    "build_display_title",
    "build_snippet",
    "looks_like_date_line",
    "parse_entries",
    "parse_entry",
    "resolve_imported_at",
    "title_from_base",
]
