"""Accuracy of an estimate raster against a reference raster."""

import logging
from typing import Optional

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry
from rastersmith.objects.results import AccuracyReport
from rastersmith.primitives.sampling import ReductionPolicy, apply_budget, region_pixels

logger = logging.getLogger(__name__)


def accuracy_report(
    estimate: Raster,
    reference: Raster,
    region: RegionGeometry,
    scale: Optional[float] = None,
    policy: Optional[ReductionPolicy] = None,
    estimate_band: Optional[str] = None,
    reference_band: Optional[str] = None,
) -> AccuracyReport:
    """RMSE, MAE, R² and bias over pixels valid in both rasters.

    RMSE = sqrt(mean((reference − estimate)²)); it is zero exactly when the
    two rasters agree on every paired pixel. R² is None for fewer than two
    pixels or a constant reference.

    Returns:
        AccuracyReport; all metrics are None when no pixel pairs exist.
    """
    policy = policy or ReductionPolicy()
    grid = estimate.grid if scale is None else estimate.grid.at_scale(scale)
    e_band = estimate_band or estimate.band_names[0]
    r_band = reference_band or reference.band_names[0]

    paired = (
        estimate.select([e_band]).rename(["estimate"]).resample(grid)
        .add_bands(reference.select([r_band]).rename(["reference"]).resample(grid))
    )
    _, indices = region_pixels(paired, region)
    used, approximate = apply_budget(indices, policy, purpose="accuracy")

    if len(used) == 0:
        logger.warning("No paired pixels for accuracy assessment")
        return AccuracyReport(rmse=None, n=0, approximate=approximate)

    est = paired.band("estimate").ravel()[used]
    ref = paired.band("reference").ravel()[used]
    rmse = float(np.sqrt(mean_squared_error(ref, est)))
    r2 = None
    if len(used) >= 2 and np.ptp(ref) > 0:
        r2 = float(r2_score(ref, est))

    return AccuracyReport(
        rmse=rmse,
        mae=float(mean_absolute_error(ref, est)),
        r2=r2,
        bias=float(np.mean(est - ref)),
        n=int(len(used)),
        approximate=approximate,
    )
