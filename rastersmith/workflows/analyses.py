"""End-to-end estuary analyses.

Three analyses assemble the task components into complete pipelines over
the Pearl River Estuary:

- ``CarbonDensityAnalysis``: carbon density inversion from Sentinel-2,
  quantile classes, class areas and a monthly mean series
- ``CoastlineChangeAnalysis``: MODIS water masks for two years, erosion and
  accretion areas, and a month-over-month change series
- ``SalinityAnalysis``: HYCOM sea-surface salinity monthly means, the period
  mean and point time series

Every analysis reads its parameters from a ``ConfigManager``, builds the
whole lazy graph first, then evaluates the terminal values concurrently
through one ``Evaluator`` so shared sub-graphs run once. Layers go to a
``LayerSink``; nothing here renders.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd

from rastersmith.config import ConfigManager, get_config
from rastersmith.objects.region import Point, Polygon, RegionSpec, TimeWindow
from rastersmith.objects.results import (
    AccuracyReport,
    AreaRecord,
    ClassificationThresholds,
    CoefficientVector,
    TimeSeriesRecord,
    as_optional_float,
)
from rastersmith.objects.scene import PropertyFilter
from rastersmith.primitives.sampling import DEFAULT_MAX_PIXELS, ReductionPolicy
from rastersmith.tasks import (
    AccuracyEvaluator,
    ChangeDetector,
    Classifier,
    CollectionLoader,
    Compositor,
    IndexComputer,
    LazyCollection,
    LazyRaster,
    LazyValue,
    MaskBuilder,
    RegressionInverter,
    TimeSeriesAggregator,
    ZonalStatistics,
)
from rastersmith.utils.errors import raise_parameter_error
from rastersmith.workflows.presentation import Layer, LayerSink, NullSink, VisParams, area_table, records_to_frame

logger = logging.getLogger(__name__)


def _polygon(coordinates) -> Polygon:
    return Polygon.from_coordinates([tuple(c) for c in coordinates])


def _window(bounds) -> TimeWindow:
    start, end = bounds
    return TimeWindow(start, end)


def month_buckets(window: TimeWindow) -> list[TimeWindow]:
    """Calendar months starting inside ``window``, in order."""
    buckets = []
    current = TimeWindow.month(window.start.year, window.start.month)
    while current.start < window.end:
        buckets.append(current)
        current = current.advance_months(1)
    return buckets


class _Analysis:
    """Shared wiring: evaluator, config, sink and pixel budgets."""

    section = ""

    def __init__(self, evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
        self.evaluator = evaluator
        self.config = config if config is not None else get_config()
        self.sink = sink if sink is not None else NullSink()
        self.logger = logging.getLogger(self.__class__.__name__)

    def cfg(self, key: str, default: Any = None) -> Any:
        return self.config.get(f"{self.section}.{key}", default)

    def need(self, key: str) -> Any:
        return self.config.require(f"{self.section}.{key}")

    @property
    def max_pixels(self) -> int:
        return int(self.config.get("budget.max_pixels", DEFAULT_MAX_PIXELS))

    def best_effort_policy(self) -> ReductionPolicy:
        return ReductionPolicy.approximate(self.max_pixels, seed=self.config.get("budget.best_effort_seed"))

    def exact_policy(self) -> ReductionPolicy:
        return ReductionPolicy.exact(self.max_pixels)

    def vis(self, name: str) -> VisParams:
        return VisParams.from_config(self.config.get(f"visualization.{name}"))

    def study_region(self) -> RegionSpec:
        return RegionSpec(
            name=self.config.get("region.name", "region"),
            geometry=_polygon(self.config.require("region.polygon")),
            window=_window(self.need("window")),
        )

    def emit(self, label: str, raster: LazyRaster, vis: str, shown: bool = True) -> None:
        self.sink.add_layer(Layer(label, raster, self.vis(vis), shown))


# -- carbon density ------------------------------------------------------------


@dataclass
class CarbonDensityResult:
    """Results of the carbon density analysis.

    Attributes:
        coefficients: Regression coefficients (constant, bands, NDVI).
        accuracy: Agreement with the reference carbon raster.
        thresholds: Class cut points.
        class_areas: One area record per class, low to high.
        monthly: Monthly mean estimated carbon; None for months without clear scenes.
        estimate: Lazy estimated carbon raster.
        classes: Lazy class raster.
    """

    coefficients: CoefficientVector
    accuracy: AccuracyReport
    thresholds: ClassificationThresholds
    class_areas: list[AreaRecord]
    monthly: list[TimeSeriesRecord]
    estimate: Optional[LazyRaster] = None
    classes: Optional[LazyRaster] = None

    @property
    def rmse(self) -> Optional[float]:
        return self.accuracy.rmse

    @property
    def approximate(self) -> bool:
        return self.coefficients.approximate or self.accuracy.approximate

    def area_frame(self) -> pd.DataFrame:
        return area_table(self.class_areas)

    def monthly_frame(self, interpolate: bool = False) -> pd.DataFrame:
        return records_to_frame(self.monthly, interpolate=interpolate)

    def __repr__(self) -> str:
        """String representation."""
        rmse = "n/a" if self.rmse is None else f"{self.rmse:.2f}"
        return (
            f"CarbonDensityResult(n_coefficients={len(self.coefficients)}, rmse={rmse}, "
            f"thresholds={[round(t, 2) for t in self.thresholds.values]})"
        )


class CarbonDensityAnalysis(_Analysis):
    """Sentinel-2 carbon density inversion.

    Pipeline: cloud-filtered median composite of the reflectance bands,
    NDVI, forest mask from the land-cover mode, robust regression of the
    reference carbon on constant + bands + NDVI (best-effort), inversion,
    RMSE, quantile classes with class areas, and a monthly mean series.

    Example:
        >>> evaluator = Evaluator(load_demo_catalog(seed=0))
        >>> result = CarbonDensityAnalysis(evaluator).run()
        >>> result.area_frame()
    """

    section = "carbon"

    def __init__(self, evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
        super().__init__(evaluator, config, sink)
        self.region = self.study_region()
        self.quality = PropertyFilter.lt(self.need("cloud_property"), self.need("cloud_threshold"))
        self.optical = CollectionLoader(self.need("optical_collection"))
        self.compositor = Compositor(
            "median", bands=self.need("bands"), scale_factor=self.cfg("scale_factor")
        )
        self.ndvi = IndexComputer.ndvi(self.cfg("nir_band", "B8"), self.cfg("red_band", "B4"))

        labels = list(self.cfg("class_labels", []))
        percentiles = self.need("percentiles")
        if labels and len(labels) != len(percentiles) + 1:
            raise_parameter_error(
                "carbon.class_labels",
                labels,
                constraint=f"needs {len(percentiles) + 1} labels for {len(percentiles)} percentiles",
            )
        self.class_labels = labels or [f"class_{k}" for k in range(1, len(percentiles) + 2)]

    def _predictors(self, collection: LazyCollection, forest: LazyRaster) -> LazyRaster:
        composite = self.compositor.composite(collection)
        predictors = composite.add_bands(self.ndvi.compute(composite))
        return RegressionInverter.with_constant(predictors).update_mask(forest)

    def forest_mask(self) -> LazyRaster:
        landcover = CollectionLoader(self.need("landcover_collection")).load(self.region.geometry, self.region.window)
        band = self.cfg("landcover_band", "label")
        mode = Compositor("mode", bands=[band]).composite(landcover)
        return MaskBuilder("forest").categorical(mode, self.need("forest_class"))

    def reference(self) -> LazyRaster:
        return LazyCollection.source(self.need("reference_collection")).first()

    def build(self) -> dict[str, Any]:
        """Assemble the lazy graph without evaluating it."""
        geometry = self.region.geometry
        forest = self.forest_mask()
        scenes = self.optical.load(geometry, self.region.window, self.quality)
        predictors = self._predictors(scenes, forest)
        reference = self.reference()

        inverter = RegressionInverter(scale=self.need("fit_scale"), policy=self.best_effort_policy())
        coefficients = inverter.fit(predictors, reference, geometry)
        estimate = inverter.apply(predictors, coefficients, name="carbon")
        accuracy = AccuracyEvaluator(self.need("fit_scale"), self.best_effort_policy()).evaluate(
            estimate, reference, geometry
        )

        classifier = Classifier(
            self.need("percentiles"),
            num_pixels=self.need("sample_pixels"),
            scale=self.need("class_scale"),
            seed=self.cfg("sample_seed"),
        )
        thresholds = classifier.thresholds(estimate, geometry)
        classes = classifier.classify(estimate, thresholds)
        masks = dict(zip(self.class_labels, classifier.class_masks(classes)))
        areas = ZonalStatistics(self.need("area_scale"), self.exact_policy()).areas(masks, geometry)

        return {
            "forest": forest,
            "predictors": predictors,
            "reference": reference,
            "coefficients": coefficients,
            "estimate": estimate,
            "accuracy": accuracy,
            "thresholds": thresholds,
            "classes": classes,
            "areas": areas,
        }

    def monthly_value(self, window: TimeWindow, plan: dict[str, Any]) -> LazyValue:
        """Mean estimated carbon for one month, absent when no clear scene exists."""
        scenes = self.optical.load(self.region.geometry, window, self.quality)
        predictors = self._predictors(scenes, plan["forest"])
        estimate = RegressionInverter.apply(predictors, plan["coefficients"], name="carbon")
        mean = estimate.reduce_region(
            "mean", self.region.geometry, self.need("monthly_scale"), self.exact_policy()
        ).get("carbon")
        return LazyValue.if_nonempty(scenes, mean)

    def run(self) -> CarbonDensityResult:
        plan = self.build()
        self.emit("reference carbon", plan["reference"].clip(self.region.geometry), "carbon", shown=False)
        self.emit("forest mask", plan["forest"].self_mask().clip(self.region.geometry), "forest", shown=False)
        self.emit("estimated carbon", plan["estimate"].clip(self.region.geometry), "carbon")
        self.emit("carbon classes", plan["classes"].clip(self.region.geometry), "carbon_class")

        coefficients, accuracy, thresholds, *areas = self.evaluator.evaluate_many(
            [plan["coefficients"], plan["accuracy"], plan["thresholds"], *plan["areas"]]
        )
        self.logger.info(
            f"Carbon fit: {len(coefficients)} coefficients on {coefficients.n_samples} pixels, "
            f"RMSE={accuracy.rmse}"
        )

        year = int(self.cfg("year", self.region.window.start.year))
        monthly = TimeSeriesAggregator(self.evaluator).run(
            TimeWindow.months(year), lambda index, window: {"carbon": self.monthly_value(window, plan)}
        )
        return CarbonDensityResult(
            coefficients=coefficients,
            accuracy=accuracy,
            thresholds=thresholds,
            class_areas=list(areas),
            monthly=monthly,
            estimate=plan["estimate"],
            classes=plan["classes"],
        )


# -- coastline change ------------------------------------------------------------


def _when_nonempty(collections, value: LazyValue) -> LazyValue:
    """``value`` guarded so it is missing unless every collection has scenes."""
    for scenes in reversed(tuple(collections)):
        value = LazyValue.if_nonempty(scenes, value)
    return value


@dataclass
class CoastlineChangeResult:
    """Results of the coastline change analysis.

    Areas are km²; net change = accretion − erosion. Areas are None when
    either compared year has no scenes.
    """

    erosion_km2: Optional[float]
    accretion_km2: Optional[float]
    net_change_km2: Optional[float]
    monthly: list[TimeSeriesRecord] = field(default_factory=list)

    def monthly_frame(self, interpolate: bool = False) -> pd.DataFrame:
        return records_to_frame(self.monthly, interpolate=interpolate)

    def __repr__(self) -> str:
        """String representation."""

        def area(value: Optional[float]) -> str:
            return "n/a" if value is None else f"{value:.2f} km²"

        return (
            f"CoastlineChangeResult(erosion={area(self.erosion_km2)}, "
            f"accretion={area(self.accretion_km2)}, net={area(self.net_change_km2)})"
        )


class CoastlineChangeAnalysis(_Analysis):
    """Water extent change from MODIS NDWI.

    Water = median of per-scene NDWI > threshold. Two years are compared for
    the change map and areas; the monthly series compares each month with
    the previous one. Pixels without valid data in either period are left out
    of the change areas, and a period without scenes gives no areas at all.
    """

    section = "coastline"

    def __init__(self, evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
        super().__init__(evaluator, config, sink)
        self.geometry = _polygon(self.config.require("region.polygon"))
        self.loader = CollectionLoader(self.need("collection"))
        band_a, band_b = self.need("ndwi_bands")
        self.ndwi = IndexComputer.ndwi(band_a, band_b)
        self.detector = ChangeDetector(missing_as_absent=bool(self.cfg("missing_as_absent", False)))
        self.zonal = ZonalStatistics(self.need("area_scale"), self.exact_policy())

    def scenes(self, window: TimeWindow) -> LazyCollection:
        return self.loader.load(self.geometry, window).select(self.need("bands")).scale(self.need("scale_factor"))

    def water_mask(self, scenes: LazyCollection) -> LazyRaster:
        ndwi = self.ndwi.compute(scenes).median()
        return MaskBuilder("water").threshold(ndwi, self.need("water_threshold"))

    def build(self) -> dict[str, Any]:
        earlier_scenes = self.scenes(TimeWindow.year(int(self.need("earlier_year"))))
        later_scenes = self.scenes(TimeWindow.year(int(self.need("later_year"))))
        earlier = self.water_mask(earlier_scenes)
        later = self.water_mask(later_scenes)
        change = self.detector.detect(earlier, later)
        summary = {
            key: _when_nonempty((earlier_scenes, later_scenes), value)
            for key, value in ChangeDetector.summary(
                change, self.geometry, self.need("area_scale"), self.exact_policy()
            ).items()
        }
        return {"earlier": earlier, "later": later, "change": change, "summary": summary}

    def monthly_values(self, window: TimeWindow) -> dict[str, LazyValue]:
        current_scenes = self.scenes(window)
        previous_scenes = self.scenes(window.advance_months(-1))
        water = self.water_mask(current_scenes)
        change = self.detector.detect(self.water_mask(previous_scenes), water)
        both = (previous_scenes, current_scenes)
        return {
            "water": LazyValue.if_nonempty(current_scenes, self.zonal.area(water, self.geometry, "water").get()),
            "erosion": _when_nonempty(both, self.zonal.area(change.erosion, self.geometry, "erosion").get()),
            "accretion": _when_nonempty(both, self.zonal.area(change.accretion, self.geometry, "accretion").get()),
        }

    def run(self) -> CoastlineChangeResult:
        plan = self.build()
        earlier_year, later_year = self.need("earlier_year"), self.need("later_year")
        self.emit(f"water {earlier_year}", plan["earlier"].clip(self.geometry), "water")
        self.emit(f"water {later_year}", plan["later"].clip(self.geometry), "water", shown=False)
        self.emit(
            f"coastline change {earlier_year}-{later_year}",
            plan["change"].difference.clip(self.geometry),
            "change",
        )

        summary = plan["summary"]
        erosion, accretion, net = (
            as_optional_float(value)
            for value in self.evaluator.evaluate_many(
                [summary["erosion_km2"], summary["accretion_km2"], summary["net_change_km2"]]
            )
        )
        if erosion is None:
            self.logger.warning(f"No coastline change areas: {earlier_year} or {later_year} has no scenes")
        else:
            self.logger.info(f"Coastline change: erosion={erosion} km², accretion={accretion} km²")

        monthly = TimeSeriesAggregator(self.evaluator).run(
            TimeWindow.months(int(self.need("monthly_year"))),
            lambda index, window: self.monthly_values(window),
        )
        return CoastlineChangeResult(
            erosion_km2=erosion,
            accretion_km2=accretion,
            net_change_km2=net,
            monthly=monthly,
        )


# -- salinity ------------------------------------------------------------------


@dataclass
class SalinityResult:
    """Results of the salinity analysis.

    Attributes:
        months: Month buckets of the analysis window.
        n_valid_months: Months with at least one scene.
        period_mean: Region mean of the period-mean salinity (PSU); None without data.
        core: Monthly salinity at the core monitoring point.
        comparison: Monthly salinity at each comparison point.
        period_mean_raster: Lazy period-mean salinity raster.
    """

    months: list[TimeWindow]
    n_valid_months: int
    period_mean: Optional[float]
    core: list[TimeSeriesRecord]
    comparison: list[TimeSeriesRecord]
    period_mean_raster: Optional[LazyRaster] = None

    def core_frame(self, interpolate: bool = False) -> pd.DataFrame:
        return records_to_frame(self.core, interpolate=interpolate)

    def comparison_frame(self, interpolate: bool = False) -> pd.DataFrame:
        return records_to_frame(self.comparison, interpolate=interpolate)

    def __repr__(self) -> str:
        """String representation."""
        mean = "n/a" if self.period_mean is None else f"{self.period_mean:.2f} PSU"
        return f"SalinityResult(valid_months={self.n_valid_months}/{len(self.months)}, mean={mean})"


class SalinityAnalysis(_Analysis):
    """HYCOM sea-surface salinity over the estuary mouth.

    Raw values become PSU as value × 0.001 + 20 and are kept only inside
    the open valid range (20, 40). Monthly means cover the analysis window;
    point series use the 'first' reducer at the native 9 km scale.
    """

    section = "salinity"

    def __init__(self, evaluator, config: Optional[ConfigManager] = None, sink: Optional[LayerSink] = None):
        super().__init__(evaluator, config, sink)
        points = {"core": Point(*self.need("core_point"))}
        for name, coords in (self.cfg("comparison_points") or {}).items():
            points[name] = Point(*coords)
        self.region = RegionSpec(
            name="salinity",
            geometry=_polygon(self.need("region")),
            window=_window(self.need("window")),
            points=points,
        )
        self.loader = CollectionLoader(self.need("collection"))
        self.months = month_buckets(self.region.window)

    def scenes(self) -> LazyCollection:
        low, high = self.need("valid_range")
        return (
            self.loader.load(self.region.geometry, self.region.window)
            .select([self.need("band")])
            .scale(self.need("scale_factor"), self.need("offset"))
            .mask_range(low, high)
            .rename(["SSS"])
        )

    def build(self) -> dict[str, Any]:
        scenes = self.scenes()
        monthly_scenes = [scenes.filter_date(window) for window in self.months]
        monthly_means = [s.mean() for s in monthly_scenes]
        period_mean = LazyCollection.from_rasters(monthly_means, [w.start for w in self.months]).mean()
        return {
            "scenes": scenes,
            "monthly_scenes": monthly_scenes,
            "monthly_means": monthly_means,
            "period_mean": period_mean,
            "period_value": period_mean.reduce_region("mean", self.region.geometry, self.need("point_scale")).get("SSS"),
            "sizes": [s.size() for s in monthly_scenes],
        }

    def point_value(self, plan: dict[str, Any], index: int, point: Point) -> LazyValue:
        value = plan["monthly_means"][index - 1].reduce_region("first", point, self.need("point_scale")).get("SSS")
        return LazyValue.if_nonempty(plan["monthly_scenes"][index - 1], value)

    def run(self) -> SalinityResult:
        plan = self.build()
        self.emit("mean salinity", plan["period_mean"].clip(self.region.geometry), "salinity")

        period_value, *sizes = self.evaluator.evaluate_many([plan["period_value"], *plan["sizes"]])
        n_valid = sum(1 for n in sizes if n > 0)
        self.logger.info(f"Salinity: {n_valid} of {len(self.months)} months have data")

        aggregator = TimeSeriesAggregator(self.evaluator)
        core = aggregator.run(
            self.months,
            lambda index, window: {"core": self.point_value(plan, index, self.region.point("core"))},
        )
        others = [name for name in self.region.point_names if name != "core"]
        comparison = aggregator.run(
            self.months,
            lambda index, window: {name: self.point_value(plan, index, self.region.point(name)) for name in others},
        )
        return SalinityResult(
            months=self.months,
            n_valid_months=n_valid,
            period_mean=as_optional_float(period_value),
            core=core,
            comparison=comparison,
            period_mean_raster=plan["period_mean"],
        )
