"""Raster: named bands on a grid with one shared validity mask."""

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence

import numpy as np

from rastersmith.objects.grid import GridSpec


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class Raster:
    """Immutable multi-band raster.

    All bands share the grid and a single validity mask (``True`` = valid).
    Invalid pixels are stored as NaN so numpy nan-reductions skip them, and
    non-finite input values are always treated as invalid.

    Attributes:
        grid: Grid the bands live on.
        bands: Ordered mapping of band name to 2-D array shaped like the grid.
        mask: Optional boolean validity mask. Defaults to "finite in every band".
    """

    grid: GridSpec
    bands: Mapping[str, np.ndarray]
    mask: Optional[np.ndarray] = field(default=None)

    def __post_init__(self) -> None:
        """Validate shapes and freeze the arrays."""
        if not self.bands:
            raise ValueError("Raster needs at least one band")

        shape = self.grid.shape
        arrays: dict[str, np.ndarray] = {}
        for name, values in self.bands.items():
            arr = np.array(values, dtype=np.float64)
            if arr.shape != shape:
                raise ValueError(
                    f"Band '{name}' has shape {arr.shape}, grid expects {shape}"
                )
            arrays[str(name)] = arr

        valid = np.ones(shape, dtype=bool)
        if self.mask is not None:
            mask = np.asarray(self.mask, dtype=bool)
            if mask.shape != shape:
                raise ValueError(f"mask has shape {mask.shape}, grid expects {shape}")
            valid &= mask
        for arr in arrays.values():
            valid &= np.isfinite(arr)
        for arr in arrays.values():
            arr[~valid] = np.nan
            _readonly(arr)

        object.__setattr__(self, "bands", arrays)
        object.__setattr__(self, "mask", _readonly(valid))

    # -- constructors ----------------------------------------------------

    @classmethod
    def constant(cls, grid: GridSpec, value: float, name: str = "constant") -> "Raster":
        """Raster with a single band holding ``value`` everywhere."""
        return cls(grid=grid, bands={name: np.full(grid.shape, float(value))})

    @classmethod
    def invalid(cls, grid: GridSpec, band_names: Sequence[str]) -> "Raster":
        """All-invalid raster, the "no data" sentinel for empty inputs."""
        names = list(band_names) or ["constant"]
        return cls(
            grid=grid,
            bands={name: np.full(grid.shape, np.nan) for name in names},
            mask=np.zeros(grid.shape, dtype=bool),
        )

    # -- inspection ------------------------------------------------------

    @property
    def band_names(self) -> tuple[str, ...]:
        return tuple(self.bands)

    def band(self, name: str) -> np.ndarray:
        """Band array (read-only, NaN where invalid)."""
        try:
            return self.bands[name]
        except KeyError:
            raise KeyError(
                f"Band '{name}' not found. Available bands: {list(self.bands)}"
            ) from None

    @property
    def valid_count(self) -> int:
        return int(self.mask.sum())

    @property
    def is_empty(self) -> bool:
        """True when no pixel is valid."""
        return not self.mask.any()

    # -- transforms (each returns a new Raster) --------------------------

    def select(self, names: Sequence[str]) -> "Raster":
        return Raster(self.grid, {n: self.band(n) for n in names}, self.mask)

    def rename(self, names: Sequence[str]) -> "Raster":
        if len(names) != len(self.bands):
            raise ValueError(
                f"rename needs {len(self.bands)} names, got {len(names)}"
            )
        return Raster(self.grid, dict(zip(names, self.bands.values())), self.mask)

    def add_bands(self, other: "Raster") -> "Raster":
        """Append ``other``'s bands; the result is valid where both are."""
        if other.grid != self.grid:
            raise ValueError(f"Grid mismatch: {self.grid} vs {other.grid}")
        bands = dict(self.bands)
        bands.update(other.bands)
        return Raster(self.grid, bands, self.mask & other.mask)

    def with_bands(self, bands: Mapping[str, np.ndarray]) -> "Raster":
        """Replace the band set, keeping the current mask."""
        return Raster(self.grid, bands, self.mask)

    def update_mask(self, mask: np.ndarray) -> "Raster":
        """Restrict validity to ``mask``; previously invalid pixels stay invalid."""
        return Raster(self.grid, self.bands, self.mask & np.asarray(mask, dtype=bool))

    def unmask(self, value: float = 0.0) -> "Raster":
        """Fill invalid pixels with ``value`` and mark the whole grid valid."""
        filled = {n: np.where(self.mask, a, value) for n, a in self.bands.items()}
        return Raster(self.grid, filled, np.ones(self.grid.shape, dtype=bool))

    def map_bands(self, func: Callable[[np.ndarray], np.ndarray]) -> "Raster":
        """Apply ``func`` to every band array."""
        with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
            bands = {n: func(a) for n, a in self.bands.items()}
        return Raster(self.grid, bands, self.mask)

    def resample(self, grid: GridSpec) -> "Raster":
        """Nearest-neighbour resample onto ``grid``; cells outside become invalid."""
        if grid == self.grid:
            return self
        lons, lats = grid.cell_centers()
        cols = np.floor((lons - self.grid.west) / self.grid.res).astype(int)
        rows = np.floor((self.grid.north - lats) / self.grid.res).astype(int)
        inside = (
            (rows >= 0) & (rows < self.grid.height) & (cols >= 0) & (cols < self.grid.width)
        )
        rows_c = np.clip(rows, 0, self.grid.height - 1)
        cols_c = np.clip(cols, 0, self.grid.width - 1)
        bands = {n: a[rows_c, cols_c] for n, a in self.bands.items()}
        mask = inside & self.mask[rows_c, cols_c]
        return Raster(grid, bands, mask)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"Raster(bands={list(self.bands)}, shape={self.grid.shape}, "
            f"valid={self.valid_count})"
        )
