"""Geometry primitives: point-in-polygon, footprint overlap and region rasterisation."""

import numpy as np

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.region import Point, Polygon, RegionGeometry, segments_intersect


def point_in_polygon(lons: np.ndarray, lats: np.ndarray, ring) -> np.ndarray:
    """Even-odd ray casting test, vectorised over query points.

    Args:
        lons: Query longitudes (any shape).
        lats: Query latitudes (same shape as ``lons``).
        ring: Closed polygon ring as (lon, lat) pairs.

    Returns:
        Boolean array shaped like ``lons``.
    """
    lons = np.asarray(lons, dtype=np.float64)
    lats = np.asarray(lats, dtype=np.float64)
    inside = np.zeros(lons.shape, dtype=bool)
    vertices = np.asarray(ring, dtype=np.float64)

    for (x1, y1), (x2, y2) in zip(vertices[:-1], vertices[1:]):
        if y1 == y2:
            continue
        crosses = (y1 > lats) != (y2 > lats)
        x_cross = x1 + (lats - y1) * (x2 - x1) / (y2 - y1)
        inside ^= crosses & (lons < x_cross)
    return inside


def region_mask(region: RegionGeometry, grid: GridSpec) -> np.ndarray:
    """Cells of ``grid`` that belong to ``region``.

    Polygons select cells whose centre falls inside the ring; a point selects
    the single cell containing it (none if it lies off the grid).
    """
    if isinstance(region, Polygon):
        west, south, east, north = region.bounds
        if not grid.intersects((west, south, east, north)):
            return np.zeros(grid.shape, dtype=bool)
        lons, lats = grid.cell_centers()
        return point_in_polygon(lons, lats, region.ring)

    if isinstance(region, Point):
        mask = np.zeros(grid.shape, dtype=bool)
        index = grid.index_of(region.lon, region.lat)
        if index is not None:
            mask[index] = True
        return mask

    raise TypeError(f"Unsupported region geometry: {type(region).__name__}")


def bounds_intersect(a: tuple[float, float, float, float], b: tuple[float, float, float, float]) -> bool:
    """Whether two (west, south, east, north) boxes overlap (touching counts)."""
    return not (a[2] < b[0] or a[0] > b[2] or a[3] < b[1] or a[1] > b[3])


def footprint_intersects(footprint: tuple[float, float, float, float], region: RegionGeometry) -> bool:
    """Whether a (west, south, east, north) footprint overlaps the region itself.

    A polygon overlaps the box when a box corner lies inside the ring, a ring
    vertex lies inside the box, or a ring edge crosses a box edge. A box that
    only overlaps the polygon's bounding box does not count.
    """
    west, south, east, north = footprint

    if isinstance(region, Point):
        return west <= region.lon <= east and south <= region.lat <= north

    if isinstance(region, Polygon):
        if not bounds_intersect(footprint, region.bounds):
            return False
        corners = [(west, south), (east, south), (east, north), (west, north)]
        xs = np.array([c[0] for c in corners] + [(west + east) / 2])
        ys = np.array([c[1] for c in corners] + [(south + north) / 2])
        if point_in_polygon(xs, ys, region.ring).any():
            return True
        ring = [tuple(v) for v in region.ring]
        if any(west <= x <= east and south <= y <= north for x, y in ring):
            return True
        box_edges = list(zip(corners, corners[1:] + corners[:1]))
        return any(
            segments_intersect(a, b, c, d)
            for a, b in zip(ring[:-1], ring[1:])
            for c, d in box_edges
        )

    raise TypeError(f"Unsupported region geometry: {type(region).__name__}")
