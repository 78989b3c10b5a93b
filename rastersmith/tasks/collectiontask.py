"""Loading filtered raster series.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Optional, Union

from rastersmith.objects.region import RegionGeometry, RegionSpec, TimeWindow
from rastersmith.objects.scene import PropertyFilter
from rastersmith.tasks.expressions import LazyCollection

logger = logging.getLogger(__name__)


class CollectionLoader:
    """Build a lazy series from one registered source.

    Example:
        >>> loader = CollectionLoader("COPERNICUS/S2_SR_HARMONIZED")
        >>> s2 = loader.load(
        ...     region.geometry,
        ...     TimeWindow("2025-01-01", "2025-12-31"),
        ...     quality=PropertyFilter.lt("CLOUDY_PIXEL_PERCENTAGE", 10),
        ... )
        >>> n_scenes = evaluator.evaluate(s2.size())
    """

    def __init__(self, source_id: str) -> None:
        """Initialize the loader.

        Args:
            source_id: Collection id registered in the evaluator's catalog.
        """
        if not source_id:
            raise ValueError("source_id must be a non-empty string")
        self.source_id = source_id

    def load(
        self,
        region: Union[RegionGeometry, RegionSpec],
        window: TimeWindow,
        quality: Optional[PropertyFilter] = None,
    ) -> LazyCollection:
        """Scenes intersecting ``region`` inside the half-open ``window``.

        Args:
            region: Spatial filter (a RegionSpec contributes its geometry).
            window: Date filter; scenes on ``window.end`` are excluded.
            quality: Optional metadata filter; scenes lacking the property
                are dropped.

        Returns:
            Lazy series ordered by timestamp; possibly empty, never an error.
        """
        geometry = region.geometry if isinstance(region, RegionSpec) else region
        collection = (
            LazyCollection.source(self.source_id)
            .filter_bounds(geometry)
            .filter_date(window)
        )
        if quality is not None:
            collection = collection.filter(quality)
        logger.debug(f"Built lazy collection {self.source_id} for {window}")
        return collection

    def __repr__(self) -> str:
        """String representation."""
        return f"CollectionLoader({self.source_id!r})"
