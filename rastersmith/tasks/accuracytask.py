"""Accuracy assessment of estimates.

Layer 3: Tasks - User intent translation.
"""

from typing import Optional

from rastersmith.objects.node import Node
from rastersmith.objects.region import RegionGeometry
from rastersmith.primitives.sampling import ReductionPolicy
from rastersmith.tasks.expressions import LazyRaster, LazyValue


class AccuracyEvaluator:
    """RMSE (plus MAE, R² and bias) of an estimate against a reference raster.

    Args:
        scale: Evaluation scale in metres.
        policy: Pixel budget.
    """

    def __init__(self, scale: Optional[float] = None, policy: Optional[ReductionPolicy] = None):
        self.scale = scale
        self.policy = policy

    def evaluate(
        self,
        estimate: LazyRaster,
        reference: LazyRaster,
        region: RegionGeometry,
        estimate_band: Optional[str] = None,
        reference_band: Optional[str] = None,
    ) -> LazyValue:
        """Lazy ``AccuracyReport``; its fields are None when no pixel pairs exist."""
        return LazyValue(
            Node(
                "reduce.accuracy",
                (estimate.node, reference.node),
                {
                    "region": region,
                    "scale": self.scale,
                    "policy": self.policy,
                    "estimate_band": estimate_band,
                    "reference_band": reference_band,
                },
            )
        )

    def rmse(self, estimate: LazyRaster, reference: LazyRaster, region: RegionGeometry) -> LazyValue:
        return self.evaluate(estimate, reference, region).get("rmse")
