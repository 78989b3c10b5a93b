"""Boolean mask construction and application.

Masks are single-band rasters holding 1.0 (selected) or 0.0 (not selected),
valid wherever their source raster is valid.
"""

from typing import Optional

import numpy as np

from rastersmith.objects.raster import Raster


def _first_band(raster: Raster, band: Optional[str]) -> tuple[str, np.ndarray]:
    name = band if band is not None else raster.band_names[0]
    return name, raster.band(name)


def categorical_mask(
    raster: Raster, class_value: float, band: Optional[str] = None, name: str = "mask"
) -> Raster:
    """Select pixels of a categorical band equal to ``class_value``."""
    _, values = _first_band(raster, band)
    with np.errstate(invalid="ignore"):
        selected = (values == class_value).astype(np.float64)
    return Raster(raster.grid, {name: selected}, raster.mask)


def threshold_mask(
    raster: Raster, threshold: float, band: Optional[str] = None, name: str = "mask"
) -> Raster:
    """Select pixels strictly greater than ``threshold``."""
    _, values = _first_band(raster, band)
    with np.errstate(invalid="ignore"):
        selected = (values > threshold).astype(np.float64)
    return Raster(raster.grid, {name: selected}, raster.mask)


def range_mask(
    raster: Raster, low: float, high: float, band: Optional[str] = None, name: str = "mask"
) -> Raster:
    """Select pixels inside the open interval (low, high)."""
    if high <= low:
        raise ValueError(f"high ({high}) must be greater than low ({low})")
    _, values = _first_band(raster, band)
    with np.errstate(invalid="ignore"):
        selected = ((values > low) & (values < high)).astype(np.float64)
    return Raster(raster.grid, {name: selected}, raster.mask)


def apply_mask(raster: Raster, mask: Raster) -> Raster:
    """Restrict ``raster`` to pixels where ``mask`` is valid and non-zero.

    The result's invalid set is the union of the raster's invalid pixels, the
    mask's invalid pixels and the mask's zero pixels.
    """
    if mask.grid != raster.grid:
        mask = mask.resample(raster.grid)
    selected = mask.mask & (np.nan_to_num(mask.band(mask.band_names[0])) != 0)
    return raster.update_mask(selected)


def self_mask(raster: Raster) -> Raster:
    """Keep only pixels whose first band is non-zero."""
    return apply_mask(raster, raster)
