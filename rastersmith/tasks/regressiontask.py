"""Regression-based inversion of a geophysical quantity.

Layer 3: Tasks - User intent translation.
"""

from typing import Optional

from rastersmith.objects.node import Node
from rastersmith.objects.region import RegionGeometry
from rastersmith.primitives.regression import CONSTANT_BAND
from rastersmith.primitives.sampling import ReductionPolicy
from rastersmith.tasks.expressions import LazyRaster, LazyValue


class RegressionInverter:
    """Fit robust linear coefficients against a reference raster and apply them.

    The fit pairs pixels valid in both the predictors and the target inside
    the region at the evaluation scale, then runs IRLS with Tukey bisquare
    weights. Too few samples or collinear predictors raise
    ``DegenerateFitError`` at evaluation time.

    Example:
        >>> inverter = RegressionInverter(scale=250, policy=ReductionPolicy.approximate(seed=0))
        >>> predictors = inverter.with_constant(composite.add_bands(ndvi)).update_mask(forest)
        >>> coefficients = inverter.fit(predictors, reference, region.geometry)
        >>> estimate = inverter.apply(predictors, coefficients)
    """

    def __init__(
        self,
        scale: Optional[float] = None,
        policy: Optional[ReductionPolicy] = None,
        target_band: Optional[str] = None,
    ) -> None:
        """Initialize the inverter.

        Args:
            scale: Sampling scale in metres (defaults to the predictor grid).
            policy: Pixel budget; over budget without best-effort raises
                ``BudgetExceededError``.
            target_band: Reference band (defaults to its first band).
        """
        self.scale = scale
        self.policy = policy
        self.target_band = target_band

    @staticmethod
    def with_constant(predictors: LazyRaster, name: str = CONSTANT_BAND) -> LazyRaster:
        """Prepend the intercept band of ones."""
        return predictors.add_constant(name)

    def fit(
        self,
        predictors: LazyRaster,
        target: LazyRaster,
        region: RegionGeometry,
        scale: Optional[float] = None,
        policy: Optional[ReductionPolicy] = None,
    ) -> LazyValue:
        """Lazy ``CoefficientVector`` with one coefficient per predictor band."""
        return LazyValue(
            Node(
                "reduce.regression",
                (predictors.node, target.node),
                {
                    "region": region,
                    "scale": scale if scale is not None else self.scale,
                    "policy": policy if policy is not None else self.policy,
                    "target_band": self.target_band,
                },
            )
        )

    @staticmethod
    def apply(predictors: LazyRaster, coefficients: LazyValue, name: str = "estimate") -> LazyRaster:
        """Σ coefficient × band as one band, masked like the predictors."""
        return predictors.apply_coefficients(coefficients, name)
