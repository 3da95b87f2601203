from __future__ import annotations

import random
from typing import Optional, Sequence, Tuple


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def slope(points: Sequence[Tuple[float, float]]) -> float:
    """
    Ordinary least-squares slope of y over t.

    `points` are (t_seconds, y) pairs in chronological order. Time is measured
    from the first point. Returns y units per second, or 0.0 with fewer than
    two points or when every point shares one timestamp.
    """
    if len(points) < 2:
        return 0.0
    t0 = points[0][0]
    ts = [t - t0 for t, _ in points]
    ys = [y for _, y in points]
    t_mean = mean(ts)
    y_mean = mean(ys)
    num = 0.0
    den = 0.0
    for t, y in zip(ts, ys):
        num += (t - t_mean) * (y - y_mean)
        den += (t - t_mean) ** 2
    if den == 0:
        return 0.0
    return num / den


class RandomSource:
    """Seedable source of the noise and event draws used by the simulator."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def uniform(self, lo: float, hi: float) -> float:
        return self._rng.uniform(lo, hi)

    def gauss(self) -> float:
        return self._rng.gauss(0.0, 1.0)

    def chance(self, p: float) -> bool:
        return self._rng.random() < p


class QuietSource(RandomSource):
    """
    Deterministic stand-in with randomness switched off.

    Gaussian noise is always 0, random events never fire and uniform draws
    land at a fixed fraction of their range (0.5 = midpoint, 1.0 = upper end),
    so simulator trajectories can be asserted exactly.
    """

    def __init__(self, fraction: float = 0.5) -> None:
        super().__init__(seed=0)
        self.fraction = fraction

    def uniform(self, lo: float, hi: float) -> float:
        return lerp(lo, hi, self.fraction)

    def gauss(self) -> float:
        return 0.0

    def chance(self, p: float) -> bool:
        return False
