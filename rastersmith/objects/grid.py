"""Geographic grid definition shared by every raster.

A grid is a regular lon/lat lattice (EPSG:4326) anchored at its north-west
corner. Pixel areas are geodesic on a spherical Earth so that area sums stay
honest away from the equator.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

EARTH_RADIUS_KM = 6371.0088
METERS_PER_DEGREE = 2 * math.pi * EARTH_RADIUS_KM * 1000.0 / 360.0


@dataclass(frozen=True)
class GridSpec:
    """Regular geographic grid.

    Attributes:
        west: Longitude of the left edge (degrees).
        north: Latitude of the top edge (degrees).
        res: Cell size (degrees), same in both directions.
        width: Number of columns.
        height: Number of rows.
        crs: Coordinate reference label. Only EPSG:4326 is supported.
    """

    west: float
    north: float
    res: float
    width: int
    height: int
    crs: str = "EPSG:4326"

    def __post_init__(self) -> None:
        """Validate GridSpec parameters."""
        if self.res <= 0:
            raise ValueError(f"res must be positive, got {self.res}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"width and height must be positive, got {self.width}x{self.height}"
            )
        if self.crs != "EPSG:4326":
            raise ValueError(f"Only EPSG:4326 grids are supported, got {self.crs}")

    @classmethod
    def from_bounds(
        cls, west: float, south: float, east: float, north: float, res: float
    ) -> "GridSpec":
        """Build the smallest grid at ``res`` covering the given bounds."""
        if east <= west or north <= south:
            raise ValueError(
                f"Invalid bounds: ({west}, {south}, {east}, {north})"
            )
        width = max(1, int(math.ceil(round((east - west) / res, 9))))
        height = max(1, int(math.ceil(round((north - south) / res, 9))))
        return cls(west=west, north=north, res=res, width=width, height=height)

    @property
    def shape(self) -> tuple[int, int]:
        """Array shape (rows, cols)."""
        return (self.height, self.width)

    @property
    def east(self) -> float:
        return self.west + self.width * self.res

    @property
    def south(self) -> float:
        return self.north - self.height * self.res

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(west, south, east, north)."""
        return (self.west, self.south, self.east, self.north)

    @property
    def scale(self) -> float:
        """Nominal cell size in metres (measured along the equator)."""
        return self.res * METERS_PER_DEGREE

    def at_scale(self, scale: float) -> "GridSpec":
        """Regrid the same bounds at a nominal scale in metres."""
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        res = scale / METERS_PER_DEGREE
        if math.isclose(res, self.res, rel_tol=1e-9):
            return self
        return GridSpec.from_bounds(*self.bounds, res=res)

    def cell_centers(self) -> tuple[np.ndarray, np.ndarray]:
        """Longitude and latitude of every cell centre, each shaped like the grid."""
        lons = self.west + (np.arange(self.width) + 0.5) * self.res
        lats = self.north - (np.arange(self.height) + 0.5) * self.res
        return np.meshgrid(lons, lats)

    def pixel_area_km2(self) -> np.ndarray:
        """Geodesic area of each cell in km².

        Uses the spherical zone formula R² · Δλ · |sin φ_top − sin φ_bottom|,
        so every cell in a row has the same area.
        """
        tops = np.radians(self.north - np.arange(self.height) * self.res)
        bottoms = np.radians(self.north - (np.arange(self.height) + 1) * self.res)
        dlon = math.radians(self.res)
        row_area = EARTH_RADIUS_KM**2 * dlon * np.abs(np.sin(tops) - np.sin(bottoms))
        return np.repeat(row_area[:, None], self.width, axis=1)

    def index_of(self, lon: float, lat: float) -> Optional[tuple[int, int]]:
        """Row and column of the cell containing (lon, lat), or None if outside."""
        col = int(math.floor((lon - self.west) / self.res))
        row = int(math.floor((self.north - lat) / self.res))
        if 0 <= row < self.height and 0 <= col < self.width:
            return row, col
        return None

    def intersects(self, bounds: tuple[float, float, float, float]) -> bool:
        """Whether this grid overlaps a (west, south, east, north) box."""
        west, south, east, north = bounds
        return not (
            east < self.west or west > self.east or north < self.south or south > self.north
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"GridSpec({self.width}x{self.height}, res={self.res:.6f}°, "
            f"bounds=({self.west:.4f}, {self.south:.4f}, {self.east:.4f}, {self.north:.4f}))"
        )
