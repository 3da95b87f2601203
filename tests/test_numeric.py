"""Tests for the shared numeric helpers and randomness sources."""

import pytest

from conservebot.core.numeric import QuietSource, RandomSource, clamp, mean, slope


class TestClamp:
    def test_inside(self) -> None:
        assert clamp(5, 0, 10) == 5

    def test_edges(self) -> None:
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10


class TestSlope:
    def test_fewer_than_two_points_is_flat(self) -> None:
        assert slope([]) == 0.0
        assert slope([(0.0, 5.0)]) == 0.0

    def test_exact_line(self) -> None:
        points = [(t, 2.0 + 0.5 * t) for t in (0.0, 10.0, 20.0, 30.0)]
        assert slope(points) == pytest.approx(0.5)

    def test_time_measured_from_first_point(self) -> None:
        points = [(1000.0 + t, 3.0 * t) for t in (0.0, 1.0, 2.0)]
        assert slope(points) == pytest.approx(3.0)

    def test_shared_timestamp_is_flat(self) -> None:
        assert slope([(5.0, 1.0), (5.0, 9.0)]) == 0.0

    def test_mean_of_empty(self) -> None:
        assert mean([]) == 0.0


class TestSources:
    def test_seeded_source_repeats(self) -> None:
        a, b = RandomSource(42), RandomSource(42)
        assert [a.gauss() for _ in range(5)] == [b.gauss() for _ in range(5)]
        assert a.uniform(1, 2) == b.uniform(1, 2)

    def test_quiet_source_is_deterministic(self) -> None:
        q = QuietSource(fraction=0.25)
        assert q.gauss() == 0.0
        assert q.chance(1.0) is False
        assert q.uniform(0.0, 8.0) == 2.0
