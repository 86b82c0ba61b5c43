"""Typed text segments and the display units built from them."""

from dataclasses import dataclass
from enum import StrEnum


class SegmentType(StrEnum):
    """Structural role of a piece of text."""

    NORMAL = "normal"
    H1 = "h1"
    H2 = "h2"
    H3 = "h3"
    H4 = "h4"
    H5 = "h5"
    H6 = "h6"
    LIST_ITEM = "list-item"
    CODE = "code"
    BLOCKQUOTE = "blockquote"

    @classmethod
    def heading(cls, level: int) -> "SegmentType":
        """Heading type for a level between 1 and 6."""
        return cls(f"h{level}")

    @property
    def is_heading(self) -> bool:
        return self.value in ("h1", "h2", "h3", "h4", "h5", "h6")


@dataclass(frozen=True)
class Segment:
    """A run of text sharing one structural type."""

    text: str
    type: SegmentType = SegmentType.NORMAL
    section_title: str | None = None


@dataclass(frozen=True)
class DisplayUnit:
    """One token shown on its own during playback."""

    text: str
    type: SegmentType = SegmentType.NORMAL
    section_title: str | None = None

    def to_dict(self) -> dict:
        data = {"text": self.text, "type": self.type.value}
        if self.section_title is not None:
            data["sectionTitle"] = self.section_title
        return data
