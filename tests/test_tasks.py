"""Tests for the task components building lazy graphs."""

import numpy as np
import pandas as pd
import pytest

from rastersmith.objects import (
    AccuracyReport,
    ClassificationThresholds,
    CoefficientVector,
    GridSpec,
    Polygon,
    PropertyFilter,
    Raster,
    Scene,
    TimeWindow,
)
from rastersmith.primitives import ReductionPolicy
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
from rastersmith.utils.errors import BudgetExceededError, DegenerateFitError
from rastersmith.workflows import Evaluator, InMemorySource, SourceCatalog

JANUARY = TimeWindow("2024-01-01", "2024-02-01")
FEBRUARY = TimeWindow("2024-02-01", "2024-03-01")


@pytest.fixture
def fine_grid():
    return GridSpec(west=0.0, north=1.0, res=0.05, width=10, height=10)


@pytest.fixture
def predictors(fine_grid):
    rng = np.random.default_rng(11)
    return Raster(
        fine_grid,
        {"A": rng.uniform(0.0, 1.0, fine_grid.shape), "B": rng.uniform(0.0, 1.0, fine_grid.shape)},
    )


class TestCollectionLoader:
    """Tests for CollectionLoader."""

    def test_window_and_quality_filters(self, evaluator, everywhere):
        """Test date windows are half-open and quality filters drop scenes."""
        loader = CollectionLoader("test/series")

        january = loader.load(everywhere, JANUARY)
        clear = loader.load(everywhere, JANUARY, quality=PropertyFilter.lt("cloud", 10))
        whole = loader.load(everywhere, TimeWindow("2024-01-05", "2024-03-10"))

        assert evaluator.evaluate_many([january.size(), clear.size(), whole.size()]) == [2, 1, 2]

    def test_missing_property_never_matches(self, evaluator, everywhere):
        """Test scenes lacking the filtered property are dropped."""
        loader = CollectionLoader("test/series")

        filtered = loader.load(everywhere, JANUARY, quality=PropertyFilter.lt("haze", 100))

        assert evaluator.evaluate(filtered.size()) == 0

    def test_disjoint_region(self, evaluator, nowhere):
        """Test a region away from the footprints yields an empty series."""
        scenes = CollectionLoader("test/series").load(nowhere, JANUARY)

        assert evaluator.evaluate(scenes.size()) == 0

    def test_footprint_outside_polygon(self):
        """Test scenes inside the region's bounding box but outside the polygon are dropped."""
        triangle = Polygon.from_coordinates([(0, 0), (10, 0), (0, 10), (0, 0)])
        corner = GridSpec(west=8.0, north=10.0, res=0.5, width=4, height=4)
        raster = Raster.constant(corner, 1.0, "b1")
        scenes = [
            Scene(raster, pd.Timestamp("2024-01-10"), scene_id="corner"),
            Scene(raster, pd.Timestamp("2024-01-12"), scene_id="inland", footprint=(1.0, 1.0, 3.0, 3.0)),
        ]
        catalog = SourceCatalog([InMemorySource("test/corner", corner, ("b1",), scenes)])

        with Evaluator(catalog) as ev:
            loaded = CollectionLoader("test/corner").load(triangle, JANUARY)
            corner_only = LazyCollection.source("test/corner").filter_date(JANUARY)
            kept, everything = ev.evaluate_many([loaded, corner_only])

        assert [s.scene_id for s in kept] == ["inland"]
        assert len(everything) == 2

    def test_requires_source_id(self):
        """Test an empty source id is rejected."""
        with pytest.raises(ValueError):
            CollectionLoader("")


class TestCompositor:
    """Tests for Compositor."""

    def test_median_of_window(self, evaluator, everywhere):
        """Test the January median of 1 and 3 is 2."""
        scenes = CollectionLoader("test/series").load(everywhere, JANUARY)

        composite = evaluator.evaluate(Compositor("median").composite(scenes))

        np.testing.assert_allclose(composite.band("b1"), 2.0)

    def test_empty_window(self, evaluator, everywhere):
        """Test an empty window composites to an all-invalid raster."""
        scenes = CollectionLoader("test/series").load(everywhere, FEBRUARY)

        composite = evaluator.evaluate(Compositor("median", scale_factor=1e-4).composite(scenes))

        assert composite.is_empty
        assert composite.band_names == ("b1",)

    def test_rejects_unknown_reducer(self):
        """Test unsupported reducers fail at construction."""
        with pytest.raises(ValueError):
            Compositor("p95")


class TestIndicesAndMasks:
    """Tests for IndexComputer and MaskBuilder."""

    def test_ndvi_and_threshold(self, evaluator, grid):
        """Test an NDVI threshold mask applied to a composite."""
        nir = np.full(grid.shape, 0.5)
        nir[0, :] = 0.1
        composite = LazyRaster.literal(Raster(grid, {"B8": nir, "B4": np.full(grid.shape, 0.1)}))

        ndvi = IndexComputer.ndvi().compute(composite)
        vegetation = MaskBuilder("vegetation").threshold(ndvi, 0.2)
        masked = MaskBuilder.apply(composite, vegetation)

        index, mask, result = evaluator.evaluate_many([ndvi, vegetation, masked])
        assert index.band("NDVI")[1, 0] == pytest.approx(2.0 / 3.0)
        assert index.band("NDVI")[0, 0] == pytest.approx(0.0)
        assert mask.band_names == ("vegetation",)
        assert result.valid_count == 8

    def test_index_bands_must_differ(self):
        """Test an index needs two distinct bands."""
        with pytest.raises(ValueError):
            IndexComputer("B8", "B8")

    def test_range_bounds(self):
        """Test inverted ranges are rejected before evaluation."""
        with pytest.raises(ValueError):
            MaskBuilder().in_range(LazyValue.constant(1.0), 40.0, 20.0)


class TestRegressionAndAccuracy:
    """Tests for RegressionInverter and AccuracyEvaluator."""

    def test_fit_apply_and_assess(self, evaluator, predictors, everywhere):
        """Test the inverted estimate reproduces a noiseless target."""
        target = LazyRaster.literal(
            Raster(predictors.grid, {"carbon": 5.0 + 2.0 * predictors.band("A") - predictors.band("B")})
        )
        inverter = RegressionInverter()
        design = inverter.with_constant(LazyRaster.literal(predictors))

        coefficients = inverter.fit(design, target, everywhere)
        estimate = inverter.apply(design, coefficients, name="carbon")
        report = AccuracyEvaluator().evaluate(estimate, target, everywhere)

        coefs, accuracy, rmse = evaluator.evaluate_many([coefficients, report, report.get("rmse")])
        assert isinstance(coefs, CoefficientVector)
        np.testing.assert_allclose(coefs.values, [5.0, 2.0, -1.0], atol=1e-8)
        assert isinstance(accuracy, AccuracyReport)
        assert accuracy.n == 100
        assert rmse == pytest.approx(0.0, abs=1e-8)

    def test_fit_budget(self, evaluator, predictors, everywhere):
        """Test exact fits fail over budget and best-effort fits are flagged."""
        target = LazyRaster.literal(Raster(predictors.grid, {"t": predictors.band("A")}))
        design = RegressionInverter.with_constant(LazyRaster.literal(predictors))

        with pytest.raises(BudgetExceededError):
            evaluator.evaluate(
                RegressionInverter(policy=ReductionPolicy.exact(10)).fit(design, target, everywhere)
            )
        coefs = evaluator.evaluate(
            RegressionInverter(policy=ReductionPolicy.approximate(20, seed=1)).fit(design, target, everywhere)
        )
        assert coefs.approximate

    def test_empty_region_fit_fails(self, evaluator, predictors, nowhere):
        """Test a fit with no samples is a hard failure."""
        target = LazyRaster.literal(Raster(predictors.grid, {"t": predictors.band("A")}))
        design = RegressionInverter.with_constant(LazyRaster.literal(predictors))

        with pytest.raises(DegenerateFitError):
            evaluator.evaluate(RegressionInverter().fit(design, target, nowhere))

    def test_rmse_without_pairs(self, evaluator, grid, everywhere):
        """Test RMSE is missing when no pixel pairs exist."""
        estimate = LazyRaster.literal(Raster.invalid(grid, ["e"]))
        reference = LazyRaster.constant(grid, 1.0)

        assert evaluator.evaluate(AccuracyEvaluator().rmse(estimate, reference, everywhere)) is None


class TestClassifierAndZonal:
    """Tests for Classifier and ZonalStatistics."""

    def test_seed_reproducibility(self, catalog, predictors, everywhere):
        """Test equal seeds give equal thresholds across evaluators."""
        raster = LazyRaster.literal(predictors.select(["A"]))
        classifier = Classifier((33, 66), num_pixels=40, seed=7)
        thresholds = classifier.thresholds(raster, everywhere)

        with Evaluator(catalog) as first, Evaluator(catalog) as second:
            a = first.evaluate(thresholds)
            b = second.evaluate(thresholds)

        assert isinstance(a, ClassificationThresholds)
        assert a.values == b.values
        assert a.sample_size == 40

    def test_class_areas_partition_region(self, evaluator, predictors, everywhere):
        """Test class areas sum to the area of the valid region."""
        raster = LazyRaster.literal(predictors.select(["A"]))
        classifier = Classifier((33, 66), num_pixels=100, seed=0)
        classes = classifier.classify(raster, classifier.thresholds(raster, everywhere))
        zonal = ZonalStatistics()

        masks = {f"class_{k}": m for k, m in enumerate(classifier.class_masks(classes), start=1)}
        records = evaluator.evaluate_many(zonal.areas(masks, everywhere))
        total = evaluator.evaluate(zonal.total_area(predictors.grid, everywhere))

        assert [r.label for r in records] == ["class_1", "class_2", "class_3"]
        assert sum(r.area_km2 for r in records) == pytest.approx(total.area_km2, rel=1e-12)
        table = ZonalStatistics.area_table(records)
        assert list(table.columns) == ["label", "area_km2", "approximate"]
        assert not table["approximate"].any()

    def test_classifier_validation(self):
        """Test invalid percentiles and sample sizes."""
        assert Classifier((20, 40, 60)).n_classes == 4
        with pytest.raises(ValueError):
            Classifier((66, 33))
        with pytest.raises(ValueError):
            Classifier((33, 66), num_pixels=0)


class TestChangeDetector:
    """Tests for ChangeDetector."""

    def test_summary_areas(self, evaluator, grid, everywhere):
        """Test erosion and accretion areas for single-cell water moves."""
        earlier = np.zeros(grid.shape)
        earlier[1, 1] = 1.0
        later = np.zeros(grid.shape)
        later[2, 1] = 1.0
        detector = ChangeDetector()
        result = detector.detect(
            LazyRaster.literal(Raster(grid, {"water": earlier})),
            LazyRaster.literal(Raster(grid, {"water": later})),
        )

        summary = detector.summary(result, everywhere)
        erosion, accretion, net = evaluator.evaluate_many(
            [summary["erosion_km2"], summary["accretion_km2"], summary["net_change_km2"]]
        )

        areas = grid.pixel_area_km2()
        assert erosion == pytest.approx(areas[1, 1])
        assert accretion == pytest.approx(areas[2, 1])
        assert net == pytest.approx(areas[2, 1] - areas[1, 1])
        assert set(result.categories()) == {"erosion", "accretion", "no_change"}


class TestTimeSeriesAggregator:
    """Tests for TimeSeriesAggregator."""

    @pytest.fixture
    def records(self, evaluator, everywhere):
        loader = CollectionLoader("test/series")

        def monthly(index, window):
            scenes = loader.load(everywhere, window)
            mean = scenes.mean().reduce_region("mean", everywhere).get("b1")
            return {"b1": LazyValue.if_nonempty(scenes, mean), "n": scenes.size()}

        return TimeSeriesAggregator(evaluator).run(TimeWindow.months(2024, [1, 2, 3]), monthly)

    def test_one_record_per_bucket(self, records):
        """Test buckets keep their order, indices and nulls."""
        assert [r.index for r in records] == [1, 2, 3]
        assert [r.get("b1") for r in records] == [pytest.approx(2.0), None, pytest.approx(10.0)]
        assert [r.get("n") for r in records] == [2.0, 0.0, 1.0]
        assert records[1].window == FEBRUARY
        assert not records[1].is_null

    def test_frame(self, records):
        """Test tabulation with and without interpolation."""
        frame = TimeSeriesAggregator.to_frame(records)
        filled = TimeSeriesAggregator.to_frame(records, interpolate=True)

        assert list(frame.index) == [1, 2, 3]
        assert pd.isna(frame.loc[2, "b1"])
        assert filled.loc[2, "b1"] == pytest.approx(6.0)
        assert frame.loc[1, "start"] == pd.Timestamp("2024-01-01")

    def test_empty_buckets(self, evaluator):
        """Test no buckets give no records."""
        records = TimeSeriesAggregator(evaluator).run([], lambda i, w: {})

        assert records == []
        assert TimeSeriesAggregator.to_frame(records).empty
