"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures: grids, rasters, regions, scenes,
graph nodes and result records. Only standard library + numpy + pandas.
"""

from rastersmith.objects.grid import EARTH_RADIUS_KM, GridSpec
from rastersmith.objects.node import Node, canonicalize
from rastersmith.objects.raster import Raster
from rastersmith.objects.region import Point, Polygon, RegionGeometry, RegionSpec, TimeWindow
from rastersmith.objects.results import (
    AccuracyReport,
    AreaRecord,
    ClassificationThresholds,
    CoefficientVector,
    Maybe,
    Reduction,
    TimeSeriesRecord,
    as_optional_float,
)
from rastersmith.objects.scene import PropertyFilter, Scene, SceneList

__all__ = [
    "AccuracyReport",
    "AreaRecord",
    "ClassificationThresholds",
    "CoefficientVector",
    "EARTH_RADIUS_KM",
    "GridSpec",
    "Maybe",
    "Node",
    "Point",
    "Polygon",
    "PropertyFilter",
    "Raster",
    "Reduction",
    "RegionGeometry",
    "RegionSpec",
    "Scene",
    "SceneList",
    "TimeSeriesRecord",
    "TimeWindow",
    "as_optional_float",
    "canonicalize",
]
