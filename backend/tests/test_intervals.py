"""
Tests for interval algebra and timecode conversions.
"""

from fractions import Fraction

import pytest

from otrflow.intervals import (
    Interval,
    complement,
    format_timecode,
    frames_to_seconds,
    intersect,
    normalize,
    parse_frame_rate,
    parse_timecode,
    total_length,
)


# =============================================================================
# Normalize
# =============================================================================


class TestNormalize:
    """Sorting and merging."""

    def test_merges_overlapping_and_sorts(self):
        """Overlapping intervals collapse, separated ones stay."""
        assert normalize([(15, 30), (10, 20), (100, 110)]) == [
            Interval(10, 30),
            Interval(100, 110),
        ]

    def test_merges_touching_intervals(self):
        """Half-open intervals sharing a boundary merge."""
        assert normalize([(0, 5), (5, 8)]) == [Interval(0, 8)]

    def test_drops_empty_and_duplicates(self):
        """Empty intervals vanish, duplicates merge."""
        assert normalize([(3, 3), (1, 2), (1, 2), (9, 4)]) == [Interval(1, 2)]

    def test_contained_interval(self):
        """An interval inside another adds nothing."""
        assert normalize([(0, 100), (20, 30)]) == [Interval(0, 100)]

    def test_result_is_normalized(self):
        """Output is sorted and strictly separated."""
        result = normalize([(7, 9), (1, 3), (2, 4), (20, 21)])
        assert result == [Interval(1, 4), Interval(7, 9), Interval(20, 21)]
        assert all(a.end < b.start for a, b in zip(result, result[1:]))


# =============================================================================
# Complement
# =============================================================================


class TestComplement:
    """Gaps inside [0, total)."""

    def test_gaps_between_deletions(self):
        """Keep segments surround the deleted ones."""
        assert complement([(15, 30), (10, 20), (100, 110)], 3600) == [
            Interval(0, 10),
            Interval(30, 100),
            Interval(110, 3600),
        ]

    def test_nothing_deleted(self):
        """Without deletions the whole video is kept."""
        assert complement([], 60) == [Interval(0, 60)]

    def test_deletions_at_both_ends(self):
        """Deletions touching the boundaries leave no empty keep segments."""
        assert complement([(0, 10), (50, 60)], 60) == [Interval(10, 50)]

    def test_deletions_beyond_total_are_clipped(self):
        """Deletions reaching past the end are clipped."""
        assert complement([(50, 120)], 60) == [Interval(0, 50)]

    def test_everything_deleted(self):
        """A deletion covering the video leaves nothing."""
        assert complement([(0, 60)], 60) == []

    def test_total_is_preserved(self):
        """Keep and delete add up to the total."""
        deletions = [(5, 7), (30, 45), (44, 50)]
        keep = complement(deletions, 100)
        assert total_length(keep) + total_length(deletions) == pytest.approx(100)

    def test_negative_total(self):
        """A negative total is rejected."""
        with pytest.raises(ValueError):
            complement([], -1)

    def test_intersect(self):
        """Intersection may be empty."""
        assert intersect((0, 10), (5, 20)) == Interval(5, 10)
        assert intersect((0, 1), (2, 3)).is_empty


# =============================================================================
# Timecodes
# =============================================================================


class TestTimecodes:
    """hh:mm:ss.ffffff and frame conversions."""

    def test_parse_timecode(self):
        """Fractions are optional and up to microseconds."""
        assert parse_timecode("0:00:04") == 4.0
        assert parse_timecode("01:02:03.5") == pytest.approx(3723.5)
        assert parse_timecode("0:10:00.000250") == pytest.approx(600.00025)

    @pytest.mark.parametrize("value", ["4", "0:61:00", "aa:bb:cc", "0:00:01.1234567"])
    def test_parse_timecode_rejects(self, value):
        """Malformed timecodes raise ValueError."""
        with pytest.raises(ValueError):
            parse_timecode(value)

    def test_format_timecode(self):
        """Hours are zero padded, fraction has six digits."""
        assert format_timecode(3723.5) == "01:02:03.500000"
        assert format_timecode(0) == "00:00:00.000000"
        assert parse_timecode(format_timecode(1234.567891)) == pytest.approx(1234.567891)

    def test_frame_rate(self):
        """ffprobe rates are parsed exactly."""
        assert parse_frame_rate("25/1") == Fraction(25)
        assert parse_frame_rate("30000/1001") == Fraction(30000, 1001)
        for bad in ("0/0", "0", "-25", "fast"):
            with pytest.raises(ValueError):
                parse_frame_rate(bad)

    def test_frames_and_seconds(self):
        """Frame numbers convert through the rate."""
        assert frames_to_seconds(250, Fraction(25)) == 10.0
        assert frames_to_seconds(30000, Fraction(30000, 1001)) == pytest.approx(1001.0)
        with pytest.raises(ValueError):
            frames_to_seconds(1, 0)
