"""Text-to-timed-sequence pipeline for word-by-word reading."""

from .engine import RSVPEngine, ThreadingScheduler
from .epub import EpubBook, EpubError, extract_epub_text, is_epub_file
from .pacing import base_delay_ms, get_pause_multiplier, optimal_recognition_point
from .parser import parse
from .segments import DisplayUnit, Segment, SegmentType
from .units import parse_simple_text, text_to_units, to_display_units

__all__ = [
    "DisplayUnit",
    "EpubBook",
    "EpubError",
    "RSVPEngine",
    "Segment",
    "SegmentType",
    "ThreadingScheduler",
    "base_delay_ms",
    "extract_epub_text",
    "get_pause_multiplier",
    "is_epub_file",
    "optimal_recognition_point",
    "parse",
    "parse_simple_text",
    "text_to_units",
    "to_display_units",
]
