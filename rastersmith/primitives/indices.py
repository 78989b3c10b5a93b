"""Normalized-difference spectral indices."""

import numpy as np

from rastersmith.objects.raster import Raster

DEFAULT_EPS = 1e-10


def normalized_difference(
    raster: Raster, band_a: str, band_b: str, name: str = "nd", eps: float = DEFAULT_EPS
) -> Raster:
    """Compute (A − B) / (A + B) as a single-band raster.

    Pixels where |A + B| < ``eps`` become invalid instead of producing NaN or
    infinities; all other values are clipped to [-1, 1].

    Args:
        raster: Raster holding both bands.
        band_a: Band A (e.g. NIR for NDVI).
        band_b: Band B (e.g. red for NDVI).
        name: Output band name.
        eps: Denominator magnitude below which a pixel is invalid.

    Returns:
        Single-band raster named ``name``.
    """
    a = raster.band(band_a)
    b = raster.band(band_b)
    denom = a + b
    usable = raster.mask & (np.abs(np.nan_to_num(denom)) >= eps)
    with np.errstate(divide="ignore", invalid="ignore"):
        nd = np.where(usable, (a - b) / np.where(usable, denom, 1.0), np.nan)
    return Raster(raster.grid, {name: np.clip(nd, -1.0, 1.0)}, usable)


def ndvi(raster: Raster, nir: str = "B8", red: str = "B4", name: str = "NDVI") -> Raster:
    """Normalized Difference Vegetation Index."""
    return normalized_difference(raster, nir, red, name)


def ndwi(raster: Raster, band_a: str, band_b: str, name: str = "NDWI") -> Raster:
    """Normalized Difference Water Index for a caller-chosen band pair."""
    return normalized_difference(raster, band_a, band_b, name)
