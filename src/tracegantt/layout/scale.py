"""Linear mapping from trace time to horizontal canvas coordinates."""
from __future__ import annotations

from dataclasses import dataclass


def scale(t: float, domain: tuple[float, float], range_: tuple[float, float]) -> float:
    """Map time ``t`` from ``domain`` onto ``range_`` by linear interpolation.

    A zero-length domain maps every value to the start of the range. Values
    outside the domain are extrapolated, not clamped: child spans can exceed
    the root window because of clock skew and are drawn where they fall.
    """
    t0, t1 = domain
    x0, x1 = range_
    if t1 == t0:
        return float(x0)
    return x0 + (t - t0) / (t1 - t0) * (x1 - x0)


@dataclass(frozen=True)
class LinearScale:
    """A fixed domain/range pair, callable like a d3 linear scale."""

    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, t: float) -> float:
        return scale(t, self.domain, self.range)

    def width(self, start: float, end: float) -> float:
        """Pixel width of an interval; inverted intervals have zero width."""
        return max(self(end) - self(start), 0.0)

    def ticks(self, count: int = 4) -> list[float]:
        """Return ``count`` evenly spaced domain values, endpoints included."""
        if count < 1:
            return []
        t0, t1 = self.domain
        if count == 1 or t1 == t0:
            return [t0]
        step = (t1 - t0) / (count - 1)
        # Pin the last tick to t1 exactly to avoid float drift
        return [t0 + i * step for i in range(count - 1)] + [t1]
