"""Region reductions and pixel sampling."""

import logging
from typing import Literal, Optional

import numpy as np
import pandas as pd

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry
from rastersmith.objects.results import Reduction
from rastersmith.primitives.sampling import (
    ReductionPolicy,
    apply_budget,
    draw_sample,
    region_pixels,
)

logger = logging.getLogger(__name__)

RegionReducer = Literal["mean", "sum", "count", "min", "max", "first"]
REGION_REDUCERS: tuple[str, ...] = ("mean", "sum", "count", "min", "max", "first")


def _reduce_values(values: np.ndarray, reducer: str, expansion: float) -> Optional[float]:
    if reducer == "sum":
        return float(values.sum() * expansion)
    if reducer == "count":
        return float(len(values) * expansion)
    if len(values) == 0:
        return None
    if reducer == "mean":
        return float(values.mean())
    if reducer == "min":
        return float(values.min())
    if reducer == "max":
        return float(values.max())
    return float(values[0])


def reduce_region(
    raster: Raster,
    region: RegionGeometry,
    reducer: RegionReducer = "mean",
    scale: Optional[float] = None,
    policy: Optional[ReductionPolicy] = None,
) -> Reduction:
    """Reduce every band of ``raster`` over ``region`` at ``scale``.

    Sums and counts over zero pixels are 0; mean, min, max and first are None.
    Under a best-effort subset, sums and counts are expanded by
    ``pixel_count / used_count`` and the reduction is flagged approximate.

    Args:
        raster: Raster to reduce.
        region: Polygon or point.
        reducer: 'mean', 'sum', 'count', 'min', 'max' or 'first'.
        scale: Evaluation scale in metres (defaults to the raster's own grid).
        policy: Pixel budget (defaults to an exact policy).

    Returns:
        Reduction with one value per band.

    Raises:
        BudgetExceededError: Over budget with best-effort disabled.
    """
    if reducer not in REGION_REDUCERS:
        raise ValueError(f"reducer must be one of {REGION_REDUCERS}, got {reducer!r}")
    policy = policy or ReductionPolicy()

    resampled, indices = region_pixels(raster, region, scale)
    used, approximate = apply_budget(indices, policy, purpose=f"reduce_region({reducer})")
    expansion = len(indices) / len(used) if len(used) else 1.0

    values = {
        name: _reduce_values(resampled.band(name).ravel()[used], reducer, expansion)
        for name in resampled.band_names
    }
    return Reduction(
        reducer=reducer,
        values=values,
        pixel_count=int(len(indices)),
        used_count=int(len(used)),
        approximate=approximate,
    )


def sample_region(
    raster: Raster,
    region: RegionGeometry,
    scale: Optional[float] = None,
    num_pixels: Optional[int] = None,
    seed: Optional[int] = None,
    policy: Optional[ReductionPolicy] = None,
    geometries: bool = False,
) -> pd.DataFrame:
    """Sample valid pixel values inside ``region``.

    Args:
        raster: Raster to sample.
        region: Sampling domain.
        scale: Sampling scale in metres.
        num_pixels: Maximum number of pixels (all valid pixels when None).
        seed: Seed for the uniform draw; None gives a different sample each call.
        policy: Pixel budget applied when ``num_pixels`` is None.
        geometries: Include 'lon' / 'lat' columns of the cell centres.

    Returns:
        DataFrame with one column per band (plus lon/lat if requested).
    """
    resampled, indices = region_pixels(raster, region, scale)
    if num_pixels is not None:
        chosen = draw_sample(indices, num_pixels, seed)
    else:
        chosen, _ = apply_budget(indices, policy or ReductionPolicy(), purpose="sample")

    frame = pd.DataFrame(
        {name: resampled.band(name).ravel()[chosen] for name in resampled.band_names}
    )
    if geometries:
        lons, lats = resampled.grid.cell_centers()
        frame["lon"] = lons.ravel()[chosen]
        frame["lat"] = lats.ravel()[chosen]
    logger.debug(f"Sampled {len(frame)} of {len(indices)} valid pixels")
    return frame
