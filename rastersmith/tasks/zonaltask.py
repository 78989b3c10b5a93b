"""Zonal area statistics.

Layer 3: Tasks - User intent translation.
"""

from typing import Mapping, Optional, Sequence

import pandas as pd

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.node import Node
from rastersmith.objects.region import RegionGeometry
from rastersmith.objects.results import AreaRecord
from rastersmith.primitives.sampling import ReductionPolicy
from rastersmith.tasks.expressions import LazyRaster, LazyValue


class ZonalStatistics:
    """Areas of boolean masks inside a region.

    Area = Σ(mask × pixel area in km²) over region cells valid in the mask at
    the evaluation scale. A mask that selects nothing has area 0.0.

    Args:
        scale: Evaluation scale in metres (250 m for MODIS change, 100 m for
            carbon classes).
        policy: Pixel budget.
    """

    def __init__(self, scale: Optional[float] = None, policy: Optional[ReductionPolicy] = None):
        self.scale = scale
        self.policy = policy

    def area(self, mask: LazyRaster, region: RegionGeometry, label: str = "area") -> LazyValue:
        """Lazy ``AreaRecord`` for one mask."""
        return LazyValue(
            Node(
                "reduce.area",
                (mask.node,),
                {"region": region, "scale": self.scale, "label": label, "policy": self.policy},
            )
        )

    def areas(self, masks: Mapping[str, LazyRaster], region: RegionGeometry) -> list[LazyValue]:
        """One lazy ``AreaRecord`` per labelled mask, in mapping order."""
        return [self.area(mask, region, label) for label, mask in masks.items()]

    def total_area(self, grid: GridSpec, region: RegionGeometry, label: str = "total") -> LazyValue:
        """Area of the whole region on ``grid``."""
        return self.area(LazyRaster.constant(grid, 1.0, "domain"), region, label)

    @staticmethod
    def area_table(records: Sequence[AreaRecord]) -> pd.DataFrame:
        """Tabulate area records (label, area_km2, approximate) for charting."""
        return pd.DataFrame(
            {
                "label": [r.label for r in records],
                "area_km2": [r.area_km2 for r in records],
                "approximate": [r.approximate for r in records],
            }
        )
