"""
Unit tests for interval overlap arithmetic.
"""

from datetime import datetime, timedelta

from utils.interval_utils import interval_end, intervals_overlap, overlaps


BASE = datetime(2025, 3, 3, 10, 0)


class TestOverlaps:
    """Half-open interval overlap checks."""

    def test_partial_overlap(self):
        assert overlaps(BASE, 30, BASE + timedelta(minutes=15), 30) is True

    def test_touching_intervals_do_not_overlap(self):
        """10:00-10:30 and 10:30-11:00 share only an end point."""
        assert overlaps(BASE, 30, BASE + timedelta(minutes=30), 30) is False
        assert overlaps(BASE + timedelta(minutes=30), 30, BASE, 30) is False

    def test_containment_overlaps(self):
        assert overlaps(BASE, 180, BASE + timedelta(minutes=60), 15) is True

    def test_identical_intervals_overlap(self):
        assert overlaps(BASE, 30, BASE, 30) is True

    def test_disjoint_intervals(self):
        assert overlaps(BASE, 30, BASE + timedelta(hours=2), 30) is False

    def test_overlap_is_symmetric(self):
        cases = [
            (BASE, 30, BASE + timedelta(minutes=15), 30),
            (BASE, 30, BASE + timedelta(minutes=30), 30),
            (BASE, 90, BASE - timedelta(minutes=60), 45),
            (BASE, 10, BASE + timedelta(hours=5), 10),
        ]
        for start_a, duration_a, start_b, duration_b in cases:
            assert overlaps(start_a, duration_a, start_b, duration_b) == overlaps(
                start_b, duration_b, start_a, duration_a
            )

    def test_timedelta_durations(self):
        assert overlaps(BASE, timedelta(minutes=30), BASE + timedelta(minutes=29), timedelta(seconds=30)) is True


class TestIntervalHelpers:

    def test_interval_end_with_minutes(self):
        assert interval_end(BASE, 45) == datetime(2025, 3, 3, 10, 45)

    def test_intervals_overlap_with_end_points(self):
        assert intervals_overlap(BASE, BASE + timedelta(minutes=30), BASE + timedelta(minutes=29), BASE + timedelta(hours=1))
        assert not intervals_overlap(BASE, BASE + timedelta(minutes=30), BASE + timedelta(minutes=30), BASE + timedelta(hours=1))
