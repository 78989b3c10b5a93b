"""Temporal compositing of raster series.

Layer 3: Tasks - User intent translation.
"""

from typing import Optional, Sequence

from rastersmith.primitives.compositing import REDUCERS
from rastersmith.tasks.expressions import LazyCollection, LazyRaster


class Compositor:
    """Reduce a series to one raster per band.

    Use ``median`` for continuous bands and ``mode`` for categorical ones.
    An empty series composites to an all-invalid raster carrying the
    requested band names.

    Args:
        reducer: 'median', 'mode', 'mean', 'min' or 'max'.
        bands: Optional band subset.
        scale_factor: Multiplier applied after reduction (e.g. 1e-4 for
            Sentinel-2 reflectance).
        offset: Added after scaling.
    """

    def __init__(
        self,
        reducer: str = "median",
        bands: Optional[Sequence[str]] = None,
        scale_factor: Optional[float] = None,
        offset: Optional[float] = None,
    ) -> None:
        if reducer not in REDUCERS:
            raise ValueError(f"reducer must be one of {REDUCERS}, got {reducer!r}")
        self.reducer = reducer
        self.bands = tuple(bands) if bands is not None else None
        self.scale_factor = scale_factor
        self.offset = offset

    def composite(self, collection: LazyCollection) -> LazyRaster:
        return collection.reduce(self.reducer, self.bands, self.scale_factor, self.offset)

    def __repr__(self) -> str:
        """String representation."""
        return f"Compositor({self.reducer!r}, bands={self.bands})"
