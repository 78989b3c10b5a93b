"""Quantile classification of continuous estimates.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Optional, Sequence

from rastersmith.objects.node import Node
from rastersmith.objects.region import RegionGeometry
from rastersmith.primitives.classification import validate_percentiles
from rastersmith.tasks.expressions import LazyRaster, LazyValue

logger = logging.getLogger(__name__)


class Classifier:
    """Ordinal classes from empirical percentiles of a pixel sample.

    With percentiles (33, 66) the classes are low (≤ q33), mid (q33, q66]
    and high (> q66). Thresholds only reproduce across runs when ``seed`` is
    fixed; ``seed=None`` draws a fresh sample every evaluation.

    Example:
        >>> classifier = Classifier((33, 66), num_pixels=5000, scale=100, seed=42)
        >>> thresholds = classifier.thresholds(estimate, region.geometry)
        >>> classes = classifier.classify(estimate, thresholds)
        >>> low, mid, high = classifier.class_masks(classes)
    """

    def __init__(
        self,
        percentiles: Sequence[float] = (33.0, 66.0),
        num_pixels: int = 5000,
        scale: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            percentiles: Cut percentiles, ascending within [0, 100].
            num_pixels: Maximum sample size.
            scale: Sampling scale in metres.
            seed: Sampling seed (None = nondeterministic).
        """
        self.percentiles = validate_percentiles(percentiles)
        if num_pixels < 1:
            raise ValueError(f"num_pixels must be >= 1, got {num_pixels}")
        self.num_pixels = int(num_pixels)
        self.scale = scale
        self.seed = seed
        if seed is None:
            logger.debug("Classifier without seed: thresholds will vary between runs")

    @property
    def n_classes(self) -> int:
        return len(self.percentiles) + 1

    def thresholds(
        self, raster: LazyRaster, region: RegionGeometry, band: Optional[str] = None
    ) -> LazyValue:
        """Lazy ``ClassificationThresholds``; empty when the region has no valid pixel."""
        return LazyValue(
            Node(
                "reduce.thresholds",
                (raster.node,),
                {
                    "region": region,
                    "percentiles": self.percentiles,
                    "scale": self.scale,
                    "num_pixels": self.num_pixels,
                    "seed": self.seed,
                    "band": band,
                },
            )
        )

    @staticmethod
    def classify(raster: LazyRaster, thresholds: LazyValue, name: str = "class") -> LazyRaster:
        return raster.classify(thresholds, name=name)

    def class_masks(self, classified: LazyRaster) -> list[LazyRaster]:
        """One 1/0 mask per class, class 1 first."""
        return [classified.class_mask(k) for k in range(1, self.n_classes + 1)]
