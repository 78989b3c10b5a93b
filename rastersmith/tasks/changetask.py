"""Change detection between two binary masks.

Layer 3: Tasks - User intent translation.
"""

from dataclasses import dataclass
from typing import Optional

from rastersmith.objects.node import Node
from rastersmith.objects.region import RegionGeometry
from rastersmith.primitives.sampling import ReductionPolicy
from rastersmith.tasks.expressions import LazyRaster, LazyValue
from rastersmith.tasks.zonaltask import ZonalStatistics


@dataclass(frozen=True)
class ChangeResult:
    """Lazy change rasters.

    Attributes:
        difference: D = later − earlier, in {-1, 0, 1}.
        erosion: 1 where present earlier and absent later.
        accretion: 1 where absent earlier and present later.
        no_change: 1 where D == 0.
    """

    difference: LazyRaster
    erosion: LazyRaster
    accretion: LazyRaster
    no_change: LazyRaster

    def categories(self) -> dict[str, LazyRaster]:
        return {"erosion": self.erosion, "accretion": self.accretion, "no_change": self.no_change}


class ChangeDetector:
    """Compare a presence mask at two times (e.g. water in 2024 vs 2025).

    Args:
        missing_as_absent: Count invalid input pixels as absent so the three
            categories cover the whole grid. When False, pixels invalid in
            either input are invalid in every output.
    """

    def __init__(self, missing_as_absent: bool = True) -> None:
        self.missing_as_absent = missing_as_absent

    def _category(self, earlier: LazyRaster, later: LazyRaster, category: str) -> LazyRaster:
        return LazyRaster(
            Node(
                "raster.change",
                (earlier.node, later.node),
                {"category": category, "missing_as_absent": self.missing_as_absent},
            )
        )

    def detect(self, earlier: LazyRaster, later: LazyRaster) -> ChangeResult:
        return ChangeResult(
            difference=self._category(earlier, later, "difference"),
            erosion=self._category(earlier, later, "erosion"),
            accretion=self._category(earlier, later, "accretion"),
            no_change=self._category(earlier, later, "no_change"),
        )

    @staticmethod
    def summary(
        result: ChangeResult,
        region: RegionGeometry,
        scale: Optional[float] = None,
        policy: Optional[ReductionPolicy] = None,
    ) -> dict[str, LazyValue]:
        """Erosion and accretion areas in km² and net change = accretion − erosion."""
        zonal = ZonalStatistics(scale, policy)
        erosion = zonal.area(result.erosion, region, "erosion").get()
        accretion = zonal.area(result.accretion, region, "accretion").get()
        return {
            "erosion_km2": erosion,
            "accretion_km2": accretion,
            "net_change_km2": accretion - erosion,
        }
