"""Expand segments into the word-by-word display sequence."""

import re
from collections.abc import Iterable

from .parser import DROPPED_TAGS, is_html, parse
from .segments import DisplayUnit, Segment, SegmentType

_TAG_RE = re.compile(r"<[^>]+>")
_HIDDEN_BLOCK_RE = re.compile(
    r"<(%s)\b[^>]*>.*?</\1\s*>" % "|".join(DROPPED_TAGS), re.IGNORECASE | re.DOTALL
)


def to_display_units(segments: Iterable[Segment]) -> list[DisplayUnit]:
    """One unit per whitespace token, inheriting the segment's type and title."""
    return [
        DisplayUnit(token, segment.type, segment.section_title)
        for segment in segments
        for token in segment.text.split()
    ]


def parse_simple_text(text: str) -> list[DisplayUnit]:
    """Plain whitespace split, every unit typed ``normal``."""
    return [DisplayUnit(token, SegmentType.NORMAL) for token in text.split()]


def text_to_units(text: str) -> list[DisplayUnit]:
    """Build the playback sequence for arbitrary input text.

    Structured parsing is tried first; when it yields nothing the plain
    split is used instead, with tags and script-like blocks removed from
    HTML input.
    """
    units = to_display_units(parse(text))
    if units:
        return units

    if is_html(text):
        text = _TAG_RE.sub(" ", _HIDDEN_BLOCK_RE.sub(" ", text))
    return parse_simple_text(text)
