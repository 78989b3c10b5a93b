"""Pixel budgets and sampling.

Every reduction that may touch more pixels than allowed takes a
``ReductionPolicy``. Exact policies fail loudly when the budget is exceeded;
best-effort policies read a seeded uniform subset and flag the result as
approximate.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry
from rastersmith.primitives.geometry import region_mask
from rastersmith.utils.errors import BudgetExceededError

logger = logging.getLogger(__name__)

DEFAULT_MAX_PIXELS = 10**13


@dataclass(frozen=True)
class ReductionPolicy:
    """Pixel budget for a reduction.

    Attributes:
        max_pixels: Largest number of pixels a reduction may read.
        best_effort: Subsample instead of failing when over budget.
        seed: Seed for the best-effort subset (None = nondeterministic).
    """

    max_pixels: int = DEFAULT_MAX_PIXELS
    best_effort: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate ReductionPolicy parameters."""
        if self.max_pixels < 1:
            raise ValueError(f"max_pixels must be >= 1, got {self.max_pixels}")

    @classmethod
    def exact(cls, max_pixels: int = DEFAULT_MAX_PIXELS) -> "ReductionPolicy":
        return cls(max_pixels=int(max_pixels), best_effort=False)

    @classmethod
    def approximate(
        cls, max_pixels: int = DEFAULT_MAX_PIXELS, seed: Optional[int] = None
    ) -> "ReductionPolicy":
        return cls(max_pixels=int(max_pixels), best_effort=True, seed=seed)


def region_pixels(
    raster: Raster, region: RegionGeometry, scale: Optional[float] = None
) -> tuple[Raster, np.ndarray]:
    """Resample ``raster`` to ``scale`` and list the valid cells inside ``region``.

    Returns:
        Tuple of (raster on the evaluation grid, flat indices of valid region cells).
    """
    grid = raster.grid if scale is None else raster.grid.at_scale(scale)
    resampled = raster.resample(grid)
    selected = region_mask(region, grid) & resampled.mask
    return resampled, np.flatnonzero(selected)


def apply_budget(
    indices: np.ndarray, policy: ReductionPolicy, purpose: str = "reduction"
) -> tuple[np.ndarray, bool]:
    """Enforce ``policy`` on a set of candidate pixel indices.

    Returns:
        Tuple of (indices to read, approximate flag).

    Raises:
        BudgetExceededError: Over budget with best-effort disabled.
    """
    n = len(indices)
    if n <= policy.max_pixels:
        return indices, False

    if not policy.best_effort:
        raise BudgetExceededError(
            f"{purpose} needs {n} pixels but max_pixels is {policy.max_pixels}",
            suggestion="Increase max_pixels, use a coarser scale, or enable best-effort",
            details={"required": n, "max_pixels": policy.max_pixels},
        )

    logger.warning(
        f"{purpose}: {n} pixels over budget {policy.max_pixels}, "
        "using a best-effort subset (result is approximate)"
    )
    rng = np.random.default_rng(policy.seed)
    subset = rng.choice(indices, size=policy.max_pixels, replace=False)
    return np.sort(subset), True


def draw_sample(indices: np.ndarray, num_pixels: int, seed: Optional[int] = None) -> np.ndarray:
    """Uniform sample of up to ``num_pixels`` indices without replacement."""
    if num_pixels < 1:
        raise ValueError(f"num_pixels must be >= 1, got {num_pixels}")
    if len(indices) <= num_pixels:
        return indices
    rng = np.random.default_rng(seed)
    return np.sort(rng.choice(indices, size=num_pixels, replace=False))
