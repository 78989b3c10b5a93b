"""Robust linear regression between predictor bands and a reference raster.

The fit is iteratively reweighted least squares with Tukey bisquare weights
and a MAD scale estimate, started from ordinary least squares. A fit that is
not identifiable raises ``DegenerateFitError``; it is never replaced by zero
coefficients.
"""

import logging
from typing import Optional

import numpy as np
from scipy import linalg
from scipy.stats import median_abs_deviation

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry
from rastersmith.objects.results import CoefficientVector
from rastersmith.primitives.sampling import ReductionPolicy, apply_budget, region_pixels
from rastersmith.utils.errors import DegenerateFitError

logger = logging.getLogger(__name__)

BISQUARE_C = 4.685
CONSTANT_BAND = "constant"


def robust_linear_regression(
    X: np.ndarray,
    y: np.ndarray,
    max_iter: int = 50,
    tol: float = 1e-8,
    c: float = BISQUARE_C,
) -> tuple[np.ndarray, int]:
    """Fit ``y ≈ X @ beta`` while down-weighting outliers.

    Args:
        X: Design matrix (n_samples, n_coefficients); include a column of ones
            for an intercept.
        y: Targets (n_samples,).
        max_iter: Maximum reweighting iterations.
        tol: Relative change in ``beta`` that counts as converged.
        c: Bisquare tuning constant (4.685 gives 95% efficiency under normal errors).

    Returns:
        Tuple of (coefficients, iterations performed).

    Raises:
        DegenerateFitError: Fewer samples than coefficients, or rank-deficient X.
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    n, p = X.shape

    if n < p:
        raise DegenerateFitError(
            f"Regression needs at least {p} samples for {p} coefficients, got {n}",
            suggestion="Widen the region or time window, or relax the mask",
            details={"n_samples": n, "n_coefficients": p},
        )
    rank = np.linalg.matrix_rank(X)
    if rank < p:
        raise DegenerateFitError(
            f"Design matrix is singular (rank {rank} < {p} coefficients)",
            suggestion="Drop collinear or constant predictor bands",
            details={"rank": int(rank), "n_coefficients": p},
        )

    beta, *_ = linalg.lstsq(X, y)
    y_scale = max(1.0, float(np.abs(y).max()))
    iterations = 0

    for iterations in range(1, max_iter + 1):
        residuals = y - X @ beta
        sigma = median_abs_deviation(residuals, scale="normal")
        if sigma <= 1e-12 * y_scale:
            # exact (or majority-exact) fit; weights would be undefined
            break

        u = residuals / (c * sigma)
        weights = np.where(np.abs(u) < 1.0, (1.0 - u**2) ** 2, 0.0)
        sw = np.sqrt(weights)
        Xw = X * sw[:, None]
        if np.linalg.matrix_rank(Xw) < p:
            logger.warning(
                "Reweighted design became singular, keeping previous coefficients"
            )
            break

        new_beta, *_ = linalg.lstsq(Xw, y * sw)
        shift = np.linalg.norm(new_beta - beta)
        beta = new_beta
        if shift <= tol * (np.linalg.norm(beta) + tol):
            break

    return beta, iterations


def fit_coefficients(
    predictors: Raster,
    target: Raster,
    region: RegionGeometry,
    scale: Optional[float] = None,
    policy: Optional[ReductionPolicy] = None,
    target_band: Optional[str] = None,
) -> CoefficientVector:
    """Fit a coefficient per predictor band against a reference raster.

    Pixels are paired where both rasters are valid inside ``region`` at
    ``scale``; the target is resampled onto the predictors' evaluation grid.

    Raises:
        DegenerateFitError: Not enough paired pixels or singular design.
        BudgetExceededError: Over budget with best-effort disabled.
    """
    policy = policy or ReductionPolicy()
    grid = predictors.grid if scale is None else predictors.grid.at_scale(scale)
    band = target_band or target.band_names[0]

    paired = predictors.resample(grid).add_bands(
        target.select([band]).rename(["__target__"]).resample(grid)
    )
    _, indices = region_pixels(paired, region)
    used, approximate = apply_budget(indices, policy, purpose="regression")

    X = np.column_stack([paired.band(b).ravel()[used] for b in predictors.band_names])
    y = paired.band("__target__").ravel()[used]
    beta, iterations = robust_linear_regression(X, y)

    logger.info(
        f"Fitted {len(beta)} coefficients on {len(used)} pixels "
        f"({iterations} iterations{', approximate' if approximate else ''})"
    )
    return CoefficientVector(
        band_names=predictors.band_names,
        values=tuple(beta),
        n_samples=int(len(used)),
        iterations=iterations,
        approximate=approximate,
    )


def add_constant(raster: Raster, name: str = CONSTANT_BAND) -> Raster:
    """Prepend a band of ones (the intercept term) with the raster's mask."""
    bands = {name: np.ones(raster.grid.shape)}
    bands.update(raster.bands)
    return Raster(raster.grid, bands, raster.mask)


def apply_coefficients(
    predictors: Raster, coefficients: CoefficientVector, name: str = "estimate"
) -> Raster:
    """Σ coefficient_i × band_i, keeping the predictors' mask.

    Raises:
        ValueError: If the predictors lack a band the coefficients refer to.
    """
    missing = [b for b in coefficients.band_names if b not in predictors.bands]
    if missing:
        raise ValueError(
            f"Predictor raster is missing bands {missing} required by the coefficients"
        )
    total = np.zeros(predictors.grid.shape)
    for band, coef in zip(coefficients.band_names, coefficients.values):
        total = total + coef * predictors.band(band)
    return Raster(predictors.grid, {name: total}, predictors.mask)
