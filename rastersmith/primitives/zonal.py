"""Zonal area statistics."""

from typing import Optional

import numpy as np

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry
from rastersmith.objects.results import AreaRecord
from rastersmith.primitives.sampling import ReductionPolicy, apply_budget, region_pixels


def pixel_area(raster: Raster, name: str = "area") -> Raster:
    """Geodesic area of each cell in km² on ``raster``'s grid (valid everywhere)."""
    return Raster(raster.grid, {name: raster.grid.pixel_area_km2()})


def mask_area(
    mask: Raster,
    region: RegionGeometry,
    scale: Optional[float] = None,
    label: str = "area",
    policy: Optional[ReductionPolicy] = None,
    band: Optional[str] = None,
) -> AreaRecord:
    """Σ(mask × pixel_area) over region cells where the mask is valid.

    A mask with no selected cell has area 0.0. Best-effort subsets are scaled
    up by total/used cell counts and flagged approximate.
    """
    policy = policy or ReductionPolicy()
    resampled, indices = region_pixels(mask, region, scale)
    used, approximate = apply_budget(indices, policy, purpose=f"area({label})")

    values = resampled.band(band or resampled.band_names[0]).ravel()[used]
    areas = resampled.grid.pixel_area_km2().ravel()[used]
    total = float(np.sum(values * areas))
    if approximate and len(used):
        total *= len(indices) / len(used)
    return AreaRecord(label=label, area_km2=total, approximate=approximate)
