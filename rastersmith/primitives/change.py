"""Change detection between two binary masks."""

import numpy as np

from rastersmith.objects.raster import Raster

CHANGE_CATEGORIES = ("erosion", "accretion", "no_change")


def _presence(mask: Raster, missing_as_absent: bool) -> tuple[np.ndarray, np.ndarray]:
    present = mask.mask & (np.nan_to_num(mask.band(mask.band_names[0])) != 0)
    valid = np.ones(mask.grid.shape, dtype=bool) if missing_as_absent else mask.mask
    return present, valid


def detect_change(
    earlier: Raster, later: Raster, missing_as_absent: bool = True
) -> dict[str, Raster]:
    """Signed difference and loss/gain/stable categories of two binary masks.

    The difference is D = later − earlier ∈ {−1, 0, 1}:

    - ``erosion``: D == −1, present earlier and absent later (loss)
    - ``accretion``: D == 1, absent earlier and present later (gain)
    - ``no_change``: D == 0

    With ``missing_as_absent`` (default) invalid input pixels count as absent,
    so the three categories partition the full grid. Otherwise pixels invalid
    in either input are invalid in every output.

    Returns:
        Dict with 'difference', 'erosion', 'accretion' and 'no_change' rasters;
        the category rasters hold 1.0/0.0.

    Raises:
        ValueError: If the masks are on different grids.
    """
    if earlier.grid != later.grid:
        raise ValueError(f"Grid mismatch: {earlier.grid} vs {later.grid}")

    before, valid_before = _presence(earlier, missing_as_absent)
    after, valid_after = _presence(later, missing_as_absent)
    valid = valid_before & valid_after

    diff = after.astype(np.float64) - before.astype(np.float64)
    grid = earlier.grid
    return {
        "difference": Raster(grid, {"change": diff}, valid),
        "erosion": Raster(grid, {"erosion": (diff == -1).astype(np.float64)}, valid),
        "accretion": Raster(grid, {"accretion": (diff == 1).astype(np.float64)}, valid),
        "no_change": Raster(grid, {"no_change": (diff == 0).astype(np.float64)}, valid),
    }
