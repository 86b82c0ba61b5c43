"""Timing and focal-point rules for word-by-word playback."""

import math
import re
from dataclasses import dataclass

from .segments import SegmentType

# Minimum pause per structural type. Punctuation may push a word higher,
# the type only ever raises it.
TYPE_PAUSE_FLOORS = {
    SegmentType.H1: 2.5,
    SegmentType.H2: 2.0,
    SegmentType.H3: 1.8,
    SegmentType.H4: 1.5,
    SegmentType.H5: 1.5,
    SegmentType.H6: 1.5,
    SegmentType.LIST_ITEM: 1.3,
    SegmentType.BLOCKQUOTE: 1.4,
}

COMMA_PAUSE = 1.3
CLAUSE_PAUSE = 1.5
SENTENCE_PAUSE = 2.0

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class WordParts:
    """A word split around its focal letter."""

    pre: str
    focal: str
    post: str


@dataclass(frozen=True)
class VisualStyle:
    size: float
    brightness: float
    duration: float


@dataclass(frozen=True)
class TextDifficulty:
    score: float
    level: str  # "easy", "medium" or "hard"
    suggested_wpm: int


def base_delay_ms(wpm: float) -> float:
    """Milliseconds per word at the given reading speed.

    Raises:
        ValueError: If ``wpm`` is not positive.
    """
    if not wpm > 0:
        raise ValueError("wpm must be positive")
    return 60_000 / wpm


def punctuation_multiplier(word: str) -> float:
    if word.endswith(","):
        return COMMA_PAUSE
    if word.endswith((":", ";")):
        return CLAUSE_PAUSE
    if word.endswith((".", "!", "?")):
        return SENTENCE_PAUSE
    return 1.0


def get_pause_multiplier(word_type: SegmentType | str, word: str) -> float:
    """Delay multiplier for a word.

    Args:
        word_type: Structural type of the word.
        word: The word as displayed, punctuation included.

    Returns:
        The punctuation multiplier, raised to the type's floor if lower.
    """
    multiplier = punctuation_multiplier(word)
    try:
        floor = TYPE_PAUSE_FLOORS.get(SegmentType(word_type), 1.0)
    except ValueError:
        floor = 1.0
    return max(multiplier, floor)


def optimal_recognition_point(word: str) -> int:
    """Index of the letter the reader's eye should anchor on."""
    length = len(word)
    if length <= 2:
        return 0
    if length <= 4:
        return 1
    if length <= 6:
        return 2
    return math.floor(length * 0.35)


def split_word(word: str) -> WordParts:
    orp = optimal_recognition_point(word)
    return WordParts(word[:orp], word[orp : orp + 1], word[orp + 1 :])


def get_visual_style(word_type: SegmentType | str) -> VisualStyle:
    """Size, brightness and duration emphasis for a structural type."""
    styles = {
        SegmentType.H1: VisualStyle(1.3, 1.5, 2.0),
        SegmentType.H2: VisualStyle(1.2, 1.4, 1.8),
        SegmentType.H3: VisualStyle(1.15, 1.3, 1.6),
        SegmentType.H4: VisualStyle(1.1, 1.2, 1.4),
        SegmentType.H5: VisualStyle(1.05, 1.1, 1.2),
        SegmentType.H6: VisualStyle(1.05, 1.1, 1.2),
        SegmentType.LIST_ITEM: VisualStyle(1.0, 1.1, 1.1),
        SegmentType.BLOCKQUOTE: VisualStyle(1.0, 0.9, 1.2),
        SegmentType.CODE: VisualStyle(0.95, 1.0, 1.0),
    }
    try:
        return styles.get(SegmentType(word_type), VisualStyle(1.0, 1.0, 1.0))
    except ValueError:
        return VisualStyle(1.0, 1.0, 1.0)


def calculate_reading_time(text: str, wpm: float) -> int:
    """Whole seconds needed to read ``text`` at ``wpm``, ignoring pauses."""
    words = len(text.split())
    return math.ceil(words / wpm * 60)


def analyze_text_difficulty(text: str) -> TextDifficulty:
    """Rough Flesch-style reading ease with a suggested speed.

    Uses average word length in place of syllable counts.
    """
    words = text.split()
    if not words:
        return TextDifficulty(score=100.0, level="easy", suggested_wpm=400)

    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    avg_word_length = sum(len(word) for word in words) / len(words)
    avg_sentence_length = len(words) / max(len(sentences), 1)
    score = 206.835 - 1.015 * avg_sentence_length - 84.6 * (avg_word_length / 4.7)

    if score >= 60:
        return TextDifficulty(score, "easy", 400)
    if score >= 30:
        return TextDifficulty(score, "medium", 300)
    return TextDifficulty(score, "hard", 200)
