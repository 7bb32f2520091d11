from __future__ import annotations

import math
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TimelineFilter = Literal["all", "favorites", "undated"]
SortDirection = Literal["asc", "desc"]

UNKNOWN_DATE_MARKER = "未知時刻"


class RawDocument(BaseModel):
    """A document as stored by the document store, before any parsing."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique file name, used as identity key")
    title: str = Field(default="", description="Stored title field")
    plain_text: str = Field(default="", description="Plain text body")
    rich_text: str = Field(default="", description="Rich text (HTML) body")
    imported_at: Optional[float] = Field(
        default=None,
        description="Import time in epoch milliseconds. None when missing or malformed.",
    )

    @field_validator("title", "plain_text", "rich_text", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("imported_at", mode="before")
    @classmethod
    def _coerce_imported_at(cls, value: object) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number) or number <= 0:
            return None
        return number


class ParsedEntry(BaseModel):
    """Derived view of a RawDocument. Recomputed whenever the corpus changes."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    body_text: str = Field(default="", description="Normalised plain text of the body")
    rich_text: str = Field(default="", description="Original rich text body, if any")
    snippet: str
    parsed_date: Optional[date] = Field(
        default=None,
        description="Calendar date recovered from the file name, title or body",
    )
    day_key: Optional[str] = Field(default=None, description="parsed_date as YYYY-MM-DD")
    imported_at: float

    @model_validator(mode="after")
    def _check_day_key(self) -> "ParsedEntry":
        if self.parsed_date is None:
            if self.day_key is not None:
                raise ValueError("day_key must be empty when parsed_date is missing")
        elif self.day_key != self.parsed_date.isoformat():
            raise ValueError("day_key must equal parsed_date formatted as YYYY-MM-DD")
        return self

    @property
    def is_known(self) -> bool:
        return self.parsed_date is not None

    @property
    def date_text(self) -> str:
        return self.day_key or UNKNOWN_DATE_MARKER


class TimelineRow(BaseModel):
    """One dated entry inside the month-grouped timeline."""

    entry: ParsedEntry
    month_header_before: bool
    same_day_ordinal: int = Field(..., ge=1)
    gap_days_after: int = Field(..., ge=0)
    date_label: str = Field(..., description="Readable date, e.g. 8月 15日（二）")
    month_label: Optional[str] = Field(
        default=None,
        description="Month heading rendered before this row, when month_header_before is set",
    )
    gap_label: Optional[str] = Field(
        default=None,
        description="Divider rendered after this row, when gap_days_after > 0",
    )


class UndatedRow(BaseModel):
    entry: ParsedEntry
    marker: str = UNKNOWN_DATE_MARKER


class ViewOptions(BaseModel):
    """Inputs that drive one recomputation of the view state."""

    filter: TimelineFilter = "all"
    query: str = Field(default="", max_length=200)
    sort_direction: SortDirection = "desc"
    selected_name: Optional[str] = None

    @field_validator("query", mode="before")
    @classmethod
    def _normalise_query(cls, value: object) -> str:
        return value if isinstance(value, str) else ""


class ViewCounts(BaseModel):
    total: int = Field(..., ge=0, description="Entries in the whole corpus")
    filtered: int = Field(..., ge=0, description="Entries left after filter and search")
    favorites: int = Field(..., ge=0, description="Favorited entries present in the corpus")


class ViewState(BaseModel):
    options: ViewOptions
    rows: List[TimelineRow] = Field(default_factory=list)
    undated_rows: List[UndatedRow] = Field(default_factory=list)
    show_undated_heading: bool = False
    reading_pool: List[ParsedEntry] = Field(default_factory=list)
    current_entry: Optional[ParsedEntry] = None
    current_index: int = -1
    counts: ViewCounts
    range_label: str


class EntryDetail(BaseModel):
    entry: ParsedEntry
    favorite: bool


class EntryBodyResponse(BaseModel):
    name: str
    body: str
    is_rich_text: bool


class FavoriteToggleResponse(BaseModel):
    name: str
    favorite: bool
    favorites_count: int


class RandomPickResponse(BaseModel):
    entry: Optional[ParsedEntry] = None
    snippet: str = ""
    pool_size: int = 0


class ImportResponse(BaseModel):
    name: str
    characters: int
    text_preview: str
    entry: ParsedEntry
    total_entries: int
