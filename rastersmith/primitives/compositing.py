"""Temporal compositing primitives.

Reduce a scene list to one raster per band. Invalid scene pixels are ignored;
a composite pixel is valid when at least one scene is valid there. An empty
scene list gives the all-invalid raster rather than an error.
"""

import logging
import warnings
from typing import Literal, Optional, Sequence

import numpy as np

from rastersmith.objects.raster import Raster
from rastersmith.objects.scene import SceneList

logger = logging.getLogger(__name__)

ReducerKind = Literal["median", "mode", "mean", "min", "max"]
REDUCERS: tuple[str, ...] = ("median", "mode", "mean", "min", "max")


def _mode(stack: np.ndarray) -> np.ndarray:
    """Per-pixel most frequent value of a (time, rows, cols) stack, NaN-aware.

    Ties resolve to the smallest class value.
    """
    valid = np.isfinite(stack)
    result = np.full(stack.shape[1:], np.nan)
    if not valid.any():
        return result
    classes = np.unique(stack[valid])
    best_count = np.zeros(stack.shape[1:], dtype=np.int64)
    for value in classes:
        count = np.sum(valid & (stack == value), axis=0)
        better = count > best_count
        result[better] = value
        best_count[better] = count[better]
    return result


def _reduce_stack(stack: np.ndarray, reducer: str) -> np.ndarray:
    if reducer == "mode":
        return _mode(stack)
    funcs = {
        "median": np.nanmedian,
        "mean": np.nanmean,
        "min": np.nanmin,
        "max": np.nanmax,
    }
    with warnings.catch_warnings():
        # all-NaN pixels are expected and stay NaN (invalid)
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return funcs[reducer](stack, axis=0)


def composite(
    scenes: SceneList,
    reducer: ReducerKind = "median",
    bands: Optional[Sequence[str]] = None,
    scale_factor: Optional[float] = None,
    offset: Optional[float] = None,
) -> Raster:
    """Reduce ``scenes`` to a single composite raster.

    Args:
        scenes: Scenes on one grid.
        reducer: 'median' for continuous bands, 'mode' for categorical bands,
            or 'mean' / 'min' / 'max'.
        bands: Band subset (defaults to every band of the series).
        scale_factor: Multiplier converting digital numbers to physical units.
        offset: Added after scaling.

    Returns:
        Composite raster. All pixels are invalid when ``scenes`` is empty.

    Example:
        >>> comp = composite(scenes, "median", ["B4", "B8"], scale_factor=1e-4)
    """
    if reducer not in REDUCERS:
        raise ValueError(f"reducer must be one of {REDUCERS}, got {reducer!r}")

    names = list(bands) if bands is not None else list(scenes.band_names)
    if len(scenes) == 0:
        logger.warning(f"Composite over empty series, returning all-invalid raster {names}")
        return Raster.invalid(scenes.grid, names)

    reduced: dict[str, np.ndarray] = {}
    for name in names:
        stack = np.stack([scene.raster.band(name) for scene in scenes])
        values = _reduce_stack(stack, reducer)
        if scale_factor is not None:
            values = values * scale_factor
        if offset is not None:
            values = values + offset
        reduced[name] = values

    logger.debug(f"Composited {len(scenes)} scenes with {reducer} over bands {names}")
    return Raster(scenes.grid, reduced)
