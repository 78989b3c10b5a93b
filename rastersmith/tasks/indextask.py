"""Normalized-difference indices.

Layer 3: Tasks - User intent translation.
"""

from typing import Union

from rastersmith.tasks.expressions import LazyCollection, LazyRaster


class IndexComputer:
    """(A − B) / (A + B) for a configurable band pair.

    Works on a composite or per scene on a series. Pixels with a vanishing
    denominator are invalid and values are clipped to [-1, 1].

    Example:
        >>> ndvi = IndexComputer.ndvi().compute(composite)
        >>> ndwi_series = IndexComputer.ndwi("sur_refl_b01", "sur_refl_b02").compute(modis)
    """

    def __init__(self, band_a: str, band_b: str, name: str = "nd") -> None:
        if band_a == band_b:
            raise ValueError(f"Index bands must differ, got {band_a!r} twice")
        self.band_a = band_a
        self.band_b = band_b
        self.name = name

    @classmethod
    def ndvi(cls, nir: str = "B8", red: str = "B4", name: str = "NDVI") -> "IndexComputer":
        return cls(nir, red, name)

    @classmethod
    def ndwi(cls, band_a: str, band_b: str, name: str = "NDWI") -> "IndexComputer":
        return cls(band_a, band_b, name)

    def compute(
        self, target: Union[LazyRaster, LazyCollection]
    ) -> Union[LazyRaster, LazyCollection]:
        return target.normalized_difference(self.band_a, self.band_b, self.name)

    def __repr__(self) -> str:
        """String representation."""
        return f"IndexComputer({self.name}: {self.band_a}, {self.band_b})"
