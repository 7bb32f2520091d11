from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import List

BLOCK_TAGS = frozenset(
    {"p", "div", "section", "article", "li", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6"}
)
SKIPPED_TAGS = frozenset({"script", "style", "noscript"})
INLINE_SPACE_PATTERN = re.compile(r"[\t\f\v]+")
EXCESS_NEWLINE_PATTERN = re.compile(r"\n{3,}")
LINE_SPLIT_PATTERN = re.compile(r"\n+")
ZERO_WIDTH_PATTERN = re.compile("[\u200b\u200c\u200d\ufeff]")


class _BlockTextExtractor(HTMLParser):
    """Flattens markup to text, one line per block element."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._skip_depth = 0
        self.parts: List[str] = []

    def _break_block(self) -> None:
        if self.parts and not self.parts[-1].endswith("\n"):
            self.parts.append("\n")

    def handle_starttag(self, tag, attrs):
        if tag in SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "br":
            self.parts.append("\n")
        elif tag in BLOCK_TAGS:
            self._break_block()

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self.parts.append("\n")
        elif tag in BLOCK_TAGS:
            self._break_block()

    def handle_endtag(self, tag):
        if tag in SKIPPED_TAGS:
            if self._skip_depth > 0:
                self._skip_depth -= 1
        elif tag in BLOCK_TAGS:
            self._break_block()

    def handle_data(self, data):
        if self._skip_depth == 0:
            self.parts.append(data)

    def text(self) -> str:
        return "".join(self.parts)


def normalise_text(text: str) -> str:
    """Collapse a raw body into the canonical plain-text form used for parsing."""
    if not text:
        return ""

    cleaned = text.replace("\u00a0", " ")
    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = INLINE_SPACE_PATTERN.sub(" ", cleaned)
    cleaned = EXCESS_NEWLINE_PATTERN.sub("\n\n", cleaned)
    return cleaned.strip()


def extract_html_plain_text(markup: str) -> str:
    if not markup or not markup.strip():
        return ""

    # block boundaries count on both sides, so unclosed <p> and <li> still split lines
    parser = _BlockTextExtractor()
    parser.feed(markup)
    parser.close()
    return normalise_text(parser.text())


def split_meaningful_lines(text: str) -> List[str]:
    lines: List[str] = []
    for line in LINE_SPLIT_PATTERN.split(text or ""):
        cleaned = ZERO_WIDTH_PATTERN.sub("", line).strip()
        if cleaned:
            lines.append(cleaned)
    return lines


def document_text(plain_text: str, rich_text: str) -> str:
    """Plain text wins when present; otherwise the rich text body is flattened."""
    if plain_text and plain_text.strip():
        return normalise_text(plain_text)
    return extract_html_plain_text(rich_text)


__all__ = [
    "document_text",
    "extract_html_plain_text",
    "normalise_text",
    "split_meaningful_lines",
]
