"""Quantile classification of continuous rasters.

Cut points are empirical percentiles of a pixel sample, so they approximate
the population quantiles. Reproducibility across runs requires a fixed seed.
"""

from typing import Optional, Sequence

import numpy as np

from rastersmith.objects.raster import Raster
from rastersmith.objects.results import ClassificationThresholds


def validate_percentiles(percentiles: Sequence[float]) -> tuple[float, ...]:
    """Check percentiles are within [0, 100] and ascending.

    Repeated percentiles are allowed; they give equal thresholds and an empty
    class between them.
    """
    values = tuple(float(p) for p in percentiles)
    if not values:
        raise ValueError("At least one percentile is required")
    if any(p < 0 or p > 100 for p in values):
        raise ValueError(f"Percentiles must lie in [0, 100], got {values}")
    if any(b < a for a, b in zip(values, values[1:])):
        raise ValueError(f"Percentiles must be ascending, got {values}")
    return values


def quantile_thresholds(
    values: np.ndarray, percentiles: Sequence[float], seed: Optional[int] = None
) -> ClassificationThresholds:
    """Empirical percentiles (linear interpolation) of sampled values.

    Returns:
        Thresholds; empty when ``values`` holds no finite value.
    """
    pcts = validate_percentiles(percentiles)
    values = np.asarray(values, dtype=np.float64)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return ClassificationThresholds(percentiles=pcts, values=(), sample_size=0, seed=seed)

    cuts = np.percentile(values, pcts)
    # interpolation can wobble by an ulp on ties
    cuts = np.maximum.accumulate(cuts)
    return ClassificationThresholds(
        percentiles=pcts, values=tuple(cuts), sample_size=int(values.size), seed=seed
    )


def classify(
    raster: Raster,
    thresholds: ClassificationThresholds,
    band: Optional[str] = None,
    name: str = "class",
) -> Raster:
    """Assign ordinal classes 1..K with t[k−1] < value ≤ t[k].

    Class 1 holds values ≤ the first threshold and class K values above the
    last. Empty thresholds give an all-invalid raster.
    """
    if thresholds.is_empty:
        return Raster.invalid(raster.grid, [name])
    values = raster.band(band or raster.band_names[0])
    cuts = np.asarray(thresholds.values)
    classes = np.searchsorted(cuts, np.nan_to_num(values), side="left") + 1
    return Raster(raster.grid, {name: classes.astype(np.float64)}, raster.mask)


def class_masks(classified: Raster, n_classes: int, band: Optional[str] = None) -> list[Raster]:
    """One 1/0 mask per class, in class order; together they partition the valid pixels."""
    values = classified.band(band or classified.band_names[0])
    masks = []
    for k in range(1, n_classes + 1):
        with np.errstate(invalid="ignore"):
            selected = (values == k).astype(np.float64)
        masks.append(Raster(classified.grid, {f"class_{k}": selected}, classified.mask))
    return masks
