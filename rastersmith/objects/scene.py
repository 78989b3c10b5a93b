"""Time-stamped scenes and materialised scene lists."""

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional

import pandas as pd

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.raster import Raster


@dataclass(frozen=True, eq=False)
class Scene:
    """One acquisition of a raster source.

    Attributes:
        raster: Pixel data.
        timestamp: Acquisition time.
        scene_id: Identifier unique within its source.
        properties: Scene metadata (cloud fraction etc.) used by quality filters.
        footprint: Optional (west, south, east, north) footprint; defaults to
            the raster grid bounds.
    """

    raster: Raster
    timestamp: pd.Timestamp
    scene_id: str = ""
    properties: Mapping[str, Any] = field(default_factory=dict)
    footprint: Optional[tuple[float, float, float, float]] = None

    def __post_init__(self) -> None:
        """Normalise timestamp, id and footprint."""
        ts = pd.Timestamp(self.timestamp)
        object.__setattr__(self, "timestamp", ts)
        object.__setattr__(self, "properties", dict(self.properties))
        if not self.scene_id:
            object.__setattr__(self, "scene_id", ts.strftime("%Y%m%dT%H%M%S"))
        if self.footprint is None:
            object.__setattr__(self, "footprint", self.raster.grid.bounds)

    def with_raster(self, raster: Raster) -> "Scene":
        """Same acquisition metadata, new pixels."""
        return Scene(raster, self.timestamp, self.scene_id, self.properties, self.footprint)


@dataclass(frozen=True, eq=False)
class SceneList:
    """Materialised raster series: scenes ordered by timestamp on one grid.

    Attributes:
        grid: Grid shared by every scene (also used for empty composites).
        band_names: Band names scenes carry.
        scenes: Scenes, sorted by timestamp on construction.
    """

    grid: GridSpec
    band_names: tuple[str, ...]
    scenes: tuple[Scene, ...] = ()

    def __post_init__(self) -> None:
        """Sort scenes and check grids."""
        ordered = tuple(sorted(self.scenes, key=lambda s: s.timestamp))
        for scene in ordered:
            if scene.raster.grid != self.grid:
                raise ValueError(
                    f"Scene {scene.scene_id} grid {scene.raster.grid} "
                    f"does not match series grid {self.grid}"
                )
        object.__setattr__(self, "scenes", ordered)
        object.__setattr__(self, "band_names", tuple(self.band_names))

    def __len__(self) -> int:
        return len(self.scenes)

    def __iter__(self) -> Iterator[Scene]:
        return iter(self.scenes)

    def replace(self, scenes, band_names=None) -> "SceneList":
        """New list on the same grid (optionally with new band names)."""
        names = self.band_names if band_names is None else tuple(band_names)
        return SceneList(self.grid, names, tuple(scenes))

    @property
    def timestamps(self) -> list[pd.Timestamp]:
        return [s.timestamp for s in self.scenes]

    def __repr__(self) -> str:
        """String representation."""
        return f"SceneList(n={len(self.scenes)}, bands={list(self.band_names)})"


PROPERTY_COMPARATORS = ("lt", "lte", "gt", "gte", "eq", "neq")


@dataclass(frozen=True)
class PropertyFilter:
    """Scene quality filter comparing a metadata property to a value.

    Scenes that lack the property never match.

    Attributes:
        name: Property name, e.g. ``'CLOUDY_PIXEL_PERCENTAGE'``.
        comparator: One of 'lt', 'lte', 'gt', 'gte', 'eq', 'neq'.
        value: Value compared against.
    """

    name: str
    comparator: str
    value: Any

    def __post_init__(self) -> None:
        """Validate the comparator."""
        if self.comparator not in PROPERTY_COMPARATORS:
            raise ValueError(
                f"comparator must be one of {PROPERTY_COMPARATORS}, got {self.comparator!r}"
            )

    @classmethod
    def lt(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "lt", value)

    @classmethod
    def lte(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "lte", value)

    @classmethod
    def gt(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "gt", value)

    @classmethod
    def gte(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "gte", value)

    @classmethod
    def eq(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "eq", value)

    @classmethod
    def neq(cls, name: str, value: Any) -> "PropertyFilter":
        return cls(name, "neq", value)

    def matches(self, scene: Scene) -> bool:
        if self.name not in scene.properties:
            return False
        actual = scene.properties[self.name]
        if actual is None:
            return False
        if self.comparator == "lt":
            return actual < self.value
        if self.comparator == "lte":
            return actual <= self.value
        if self.comparator == "gt":
            return actual > self.value
        if self.comparator == "gte":
            return actual >= self.value
        if self.comparator == "eq":
            return actual == self.value
        return actual != self.value
