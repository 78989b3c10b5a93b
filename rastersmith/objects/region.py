"""Study region and time window objects.

Regions and windows are supplied once when a pipeline is built and are never
mutated afterwards.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Sequence, Union

import pandas as pd

DateLike = Union[str, date, datetime, pd.Timestamp]


def _to_date(value: DateLike) -> date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(str(value)).date()


def _orientation(p, q, r) -> int:
    value = (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])
    if value == 0:
        return 0
    return 1 if value > 0 else 2


def _on_segment(p, q, r) -> bool:
    return (
        min(p[0], r[0]) <= q[0] <= max(p[0], r[0])
        and min(p[1], r[1]) <= q[1] <= max(p[1], r[1])
    )


def segments_intersect(p1, q1, p2, q2) -> bool:
    """Whether segments p1-q1 and p2-q2 share a point (touching counts)."""
    o1 = _orientation(p1, q1, p2)
    o2 = _orientation(p1, q1, q2)
    o3 = _orientation(p2, q2, p1)
    o4 = _orientation(p2, q2, q1)
    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and _on_segment(p1, p2, q1):
        return True
    if o2 == 0 and _on_segment(p1, q2, q1):
        return True
    if o3 == 0 and _on_segment(p2, p1, q2):
        return True
    if o4 == 0 and _on_segment(p2, q1, q2):
        return True
    return False


class RegionGeometry:
    """Base class for region geometries (polygon or point)."""

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        raise NotImplementedError


@dataclass(frozen=True)
class Polygon(RegionGeometry):
    """Simple polygon given as a closed ring of (lon, lat) vertices.

    Attributes:
        ring: Vertex tuples; the last vertex must repeat the first.
    """

    ring: tuple[tuple[float, float], ...]

    def __post_init__(self) -> None:
        """Validate ring closure and simplicity."""
        ring = tuple((float(x), float(y)) for x, y in self.ring)
        object.__setattr__(self, "ring", ring)

        if len(ring) < 4:
            raise ValueError(
                f"Polygon ring needs at least 4 vertices (closed triangle), got {len(ring)}"
            )
        if ring[0] != ring[-1]:
            raise ValueError("Polygon ring must be closed (first vertex == last vertex)")

        edges = list(zip(ring[:-1], ring[1:]))
        n = len(edges)
        for i in range(n):
            for j in range(i + 1, n):
                # adjacent edges share a vertex by construction
                if j == i + 1 or (i == 0 and j == n - 1):
                    continue
                if segments_intersect(*edges[i], *edges[j]):
                    raise ValueError(
                        f"Polygon ring is self-intersecting (edges {i} and {j})"
                    )

    @classmethod
    def from_coordinates(cls, coordinates: Sequence[Sequence[float]]) -> "Polygon":
        return cls(ring=tuple(tuple(c) for c in coordinates))

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        xs = [x for x, _ in self.ring]
        ys = [y for _, y in self.ring]
        return (min(xs), min(ys), max(xs), max(ys))

    def __repr__(self) -> str:
        """String representation."""
        return f"Polygon(n_vertices={len(self.ring) - 1}, bounds={self.bounds})"


@dataclass(frozen=True)
class Point(RegionGeometry):
    """Single (lon, lat) location."""

    lon: float
    lat: float

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.lon, self.lat, self.lon, self.lat)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open date interval ``[start, end)``.

    Attributes:
        start: First day included.
        end: First day excluded.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        """Normalise to ``datetime.date`` and validate ordering."""
        start = _to_date(self.start)
        end = _to_date(self.end)
        if end < start:
            raise ValueError(f"TimeWindow end ({end}) is before start ({start})")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def month(cls, year: int, month: int) -> "TimeWindow":
        """Calendar month window."""
        start = date(year, month, 1)
        end = date(year + (month == 12), month % 12 + 1, 1)
        return cls(start, end)

    @classmethod
    def months(cls, year: int, months: Sequence[int] = tuple(range(1, 13))) -> list["TimeWindow"]:
        """One window per requested calendar month, in the given order."""
        return [cls.month(year, m) for m in months]

    @classmethod
    def year(cls, year: int) -> "TimeWindow":
        return cls(date(year, 1, 1), date(year + 1, 1, 1))

    def contains(self, when: DateLike) -> bool:
        day = _to_date(when)
        return self.start <= day < self.end

    def advance_months(self, n: int) -> "TimeWindow":
        """Shift both ends by ``n`` calendar months."""
        offset = pd.DateOffset(months=n)
        return TimeWindow(
            (pd.Timestamp(self.start) + offset).date(),
            (pd.Timestamp(self.end) + offset).date(),
        )

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def __repr__(self) -> str:
        """String representation."""
        return f"TimeWindow({self.start.isoformat()} -> {self.end.isoformat()})"


@dataclass(frozen=True)
class RegionSpec:
    """Study region: geometry, analysis window and named monitoring points.

    Attributes:
        name: Region label.
        geometry: Spatial domain for every reduction.
        window: Analysis time window.
        points: Optional named monitoring points.
    """

    name: str
    geometry: RegionGeometry
    window: TimeWindow
    points: Mapping[str, Point] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze the points mapping."""
        object.__setattr__(self, "points", tuple(dict(self.points).items()))

    def point(self, name: str) -> Point:
        for key, pt in self.points:
            if key == name:
                return pt
        raise KeyError(f"Point '{name}' not defined for region '{self.name}'")

    @property
    def point_names(self) -> list[str]:
        return [key for key, _ in self.points]
