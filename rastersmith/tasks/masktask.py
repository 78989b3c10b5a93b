"""Boolean mask construction.

Layer 3: Tasks - User intent translation.
"""

from typing import Optional

from rastersmith.tasks.expressions import LazyRaster


class MaskBuilder:
    """Build 1/0 masks and apply them to rasters.

    Masks keep the invalid pixels of their source raster. Applying a mask
    invalidates every pixel where the mask is zero or invalid.
    """

    def __init__(self, name: str = "mask") -> None:
        self.name = name

    def categorical(
        self, composite: LazyRaster, class_value: float, band: Optional[str] = None
    ) -> LazyRaster:
        """Pixels whose class equals ``class_value`` (e.g. forest in a land-cover mode)."""
        return composite.categorical_mask(class_value, band, self.name)

    def threshold(
        self, index: LazyRaster, threshold: float, band: Optional[str] = None
    ) -> LazyRaster:
        """Pixels strictly above ``threshold`` (e.g. NDWI > 0.1 for water)."""
        return index.threshold_mask(threshold, band, self.name)

    def in_range(
        self, raster: LazyRaster, low: float, high: float, band: Optional[str] = None
    ) -> LazyRaster:
        """Pixels inside the open interval (low, high)."""
        if high <= low:
            raise ValueError(f"high ({high}) must be greater than low ({low})")
        return raster.range_mask(low, high, band, self.name)

    @staticmethod
    def apply(raster: LazyRaster, mask: LazyRaster) -> LazyRaster:
        return raster.update_mask(mask)

    @staticmethod
    def self_mask(raster: LazyRaster) -> LazyRaster:
        return raster.self_mask()
