"""Tests for reader/pacing.py - timing and focal point rules."""

import pytest


class TestBaseDelay:
    """Tests for base_delay_ms."""

    @pytest.mark.parametrize(("wpm", "expected"), [(300, 200.0), (600, 100.0), (60, 1000.0)])
    def test_delay_from_wpm(self, wpm, expected):
        """Test delay is sixty thousand over the speed."""
        from rsvp_reader.reader.pacing import base_delay_ms

        assert base_delay_ms(wpm) == expected

    @pytest.mark.parametrize("wpm", [0, -100, float("nan")])
    def test_non_positive_wpm_rejected(self, wpm):
        """Test zero, negative and NaN speeds raise."""
        from rsvp_reader.reader.pacing import base_delay_ms

        with pytest.raises(ValueError):
            base_delay_ms(wpm)


class TestPauseMultiplier:
    """Tests for get_pause_multiplier."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("plain", 1.0),
            ("pause,", 1.3),
            ("note:", 1.5),
            ("list;", 1.5),
            ("end.", 2.0),
            ("wow!", 2.0),
            ("why?", 2.0),
        ],
    )
    def test_punctuation_on_normal_words(self, word, expected):
        """Test trailing punctuation sets the multiplier for normal text."""
        from rsvp_reader.reader.pacing import get_pause_multiplier

        assert get_pause_multiplier("normal", word) == expected

    @pytest.mark.parametrize(
        ("word_type", "expected"),
        [
            ("h1", 2.5),
            ("h2", 2.0),
            ("h3", 1.8),
            ("h4", 1.5),
            ("h6", 1.5),
            ("list-item", 1.3),
            ("blockquote", 1.4),
            ("code", 1.0),
        ],
    )
    def test_type_floor_applies(self, word_type, expected):
        """Test structural types raise plain words to their floor."""
        from rsvp_reader.reader.pacing import get_pause_multiplier

        assert get_pause_multiplier(word_type, "word") == expected

    def test_punctuation_can_exceed_floor(self):
        """Test a sentence end inside a list item uses the larger pause."""
        from rsvp_reader.reader.pacing import get_pause_multiplier
        from rsvp_reader.reader.segments import SegmentType

        assert get_pause_multiplier(SegmentType.LIST_ITEM, "done.") == 2.0
        assert get_pause_multiplier(SegmentType.H1, "Title.") == 2.5

    def test_unknown_type_has_no_floor(self):
        """Test an unrecognised type behaves like normal text."""
        from rsvp_reader.reader.pacing import get_pause_multiplier

        assert get_pause_multiplier("sidebar", "word") == 1.0


class TestOptimalRecognitionPoint:
    """Tests for the focal letter rule."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [("", 0), ("a", 0), ("an", 0), ("the", 1), ("word", 1), ("words", 2), ("reader", 2), ("reading", 2), ("comprehension", 4)],
    )
    def test_orp_by_length(self, word, expected):
        """Test the focal index grows with word length."""
        from rsvp_reader.reader.pacing import optimal_recognition_point

        assert optimal_recognition_point(word) == expected

    def test_split_word(self):
        """Test a word splits around its focal letter."""
        from rsvp_reader.reader.pacing import split_word

        parts = split_word("reading")
        assert (parts.pre, parts.focal, parts.post) == ("re", "a", "ding")


class TestReadingHelpers:
    """Tests for reading time, difficulty and visual style."""

    def test_reading_time_rounds_up(self):
        """Test reading time is whole seconds, rounded up."""
        from rsvp_reader.reader.pacing import calculate_reading_time

        assert calculate_reading_time("one two three", 300) == 1
        assert calculate_reading_time(" ".join(["w"] * 600), 300) == 120

    def test_simple_text_is_easy(self):
        """Test short words and sentences rate as easy."""
        from rsvp_reader.reader.pacing import analyze_text_difficulty

        result = analyze_text_difficulty("The cat sat. The dog ran. We ate.")
        assert result.level == "easy"
        assert result.suggested_wpm == 400

    def test_dense_text_is_hard(self):
        """Test long words in one long sentence rate as hard."""
        from rsvp_reader.reader.pacing import analyze_text_difficulty

        text = " ".join(["incomprehensibilities"] * 40) + "."
        result = analyze_text_difficulty(text)
        assert result.level == "hard"
        assert result.suggested_wpm == 200

    def test_empty_text_difficulty(self):
        """Test empty text does not divide by zero."""
        from rsvp_reader.reader.pacing import analyze_text_difficulty

        assert analyze_text_difficulty("").level == "easy"

    def test_visual_style_for_headings(self):
        """Test headings are drawn larger than body text."""
        from rsvp_reader.reader.pacing import get_visual_style

        assert get_visual_style("h1").size > get_visual_style("normal").size
        assert get_visual_style("unknown").size == 1.0
