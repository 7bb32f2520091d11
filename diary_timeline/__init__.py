"""Date inference and timeline reconstruction for imported diary documents."""

from .engine import DiaryEngine
from .models import ParsedEntry, RawDocument, TimelineRow, ViewOptions, ViewState

__all__ = ["DiaryEngine", "ParsedEntry", "RawDocument", "TimelineRow", "ViewOptions", "ViewState"]
