"""Tests for the pure numpy primitives."""

import numpy as np
import pytest

from rastersmith.objects import (
    ClassificationThresholds,
    CoefficientVector,
    GridSpec,
    Point,
    Polygon,
    Raster,
    SceneList,
)
from rastersmith.primitives import (
    ReductionPolicy,
    accuracy_report,
    add_constant,
    apply_budget,
    apply_coefficients,
    apply_mask,
    binary_op,
    categorical_mask,
    class_masks,
    classify,
    composite,
    detect_change,
    draw_sample,
    fit_coefficients,
    footprint_intersects,
    mask_area,
    normalized_difference,
    pixel_area,
    point_in_polygon,
    quantile_thresholds,
    range_mask,
    reduce_bands,
    reduce_region,
    region_mask,
    robust_linear_regression,
    sample_region,
    self_mask,
    threshold_mask,
    unary_op,
)
from rastersmith.utils.errors import BudgetExceededError, DegenerateFitError


def _flat_mask(grid, cells):
    values = np.zeros(grid.width * grid.height)
    values[list(cells)] = 1.0
    return Raster(grid, {"water": values.reshape(grid.shape)})


class TestCompositing:
    """Tests for composite."""

    def test_median_ignores_invalid_pixels(self, grid, scene_factory):
        """Test the median skips masked scene pixels."""
        mask = np.ones(grid.shape, dtype=bool)
        mask[0, 0] = False
        scenes = SceneList(
            grid,
            ("b1",),
            (
                scene_factory("2024-01-01", 1.0),
                scene_factory("2024-01-02", 2.0),
                scene_factory("2024-01-03", 10.0, mask=mask),
            ),
        )

        result = composite(scenes, "median")

        assert result.band("b1")[0, 0] == pytest.approx(1.5)
        assert result.band("b1")[1, 1] == pytest.approx(2.0)
        assert result.mask.all()

    def test_mode_ties_pick_smallest(self, grid, scene_factory):
        """Test the mode breaks ties towards the smallest class."""
        scenes = SceneList(
            grid,
            ("b1",),
            tuple(scene_factory(f"2024-01-0{i + 1}", v) for i, v in enumerate([3.0, 1.0, 3.0, 1.0, 6.0])),
        )

        result = composite(scenes, "mode")

        np.testing.assert_array_equal(result.band("b1"), np.ones(grid.shape))

    def test_empty_series_gives_invalid_raster(self, grid):
        """Test compositing an empty series is not an error."""
        result = composite(SceneList(grid, ("b1", "b2")), "median")

        assert result.is_empty
        assert result.band_names == ("b1", "b2")

    def test_scale_and_offset(self, grid, scene_factory):
        """Test digital numbers are scaled after reduction."""
        scenes = SceneList(grid, ("b1",), (scene_factory("2024-01-01", 20000.0),))

        result = composite(scenes, "mean", scale_factor=0.001, offset=20.0)

        assert result.band("b1")[0, 0] == pytest.approx(40.0)

    def test_pixel_invalid_in_every_scene(self, grid, scene_factory):
        """Test a pixel never observed stays invalid."""
        mask = np.ones(grid.shape, dtype=bool)
        mask[2, 3] = False
        scenes = SceneList(grid, ("b1",), (scene_factory("2024-01-01", 1.0, mask=mask),))

        result = composite(scenes, "max")

        assert not result.mask[2, 3]
        assert result.valid_count == grid.width * grid.height - 1

    def test_unknown_reducer(self, grid):
        """Test unknown reducers are rejected."""
        with pytest.raises(ValueError, match="reducer"):
            composite(SceneList(grid, ("b1",)), "p90")


class TestIndices:
    """Tests for normalized_difference."""

    def test_values_and_zero_denominator(self, grid):
        """Test (A - B) / (A + B) and invalid zero sums."""
        a = np.full(grid.shape, 0.3)
        b = np.full(grid.shape, 0.1)
        a[0, 0] = 0.0
        b[0, 0] = 0.0
        raster = Raster(grid, {"nir": a, "red": b})

        nd = normalized_difference(raster, "nir", "red", name="NDVI")

        assert nd.band_names == ("NDVI",)
        assert nd.band("NDVI")[1, 1] == pytest.approx(0.5)
        assert not nd.mask[0, 0]
        assert nd.valid_count == grid.width * grid.height - 1

    def test_clipped_to_unit_range(self, grid):
        """Test values with opposite signs are clipped to [-1, 1]."""
        raster = Raster(grid, {"a": np.full(grid.shape, 2.0), "b": np.full(grid.shape, -1.0)})

        nd = normalized_difference(raster, "a", "b")

        assert np.nanmax(nd.band("nd")) == 1.0


class TestMasks:
    """Tests for mask construction and application."""

    def test_categorical_and_threshold(self, grid):
        """Test class equality and strict thresholds."""
        values = np.array([[0, 1, 1, 6], [1, 0, 6, 1], [0.1, 0.2, 0.05, 1]], dtype=float)
        raster = Raster(grid, {"v": values})

        forest = categorical_mask(raster, 1, name="forest")
        water = threshold_mask(raster, 0.1)

        assert forest.band("forest").sum() == 5
        assert water.band("mask")[2, 0] == 0.0
        assert water.band("mask")[2, 1] == 1.0

    def test_range_mask_is_open(self, grid):
        """Test range bounds are excluded."""
        values = np.array([[20, 25, 40, 41], [19, 30, 35, 39.9], [20.1, 0, 0, 0]], dtype=float)
        mask = range_mask(Raster(grid, {"psu": values}), 20.0, 40.0)

        expected = np.array([[0, 1, 0, 0], [0, 1, 1, 1], [1, 0, 0, 0]], dtype=float)
        np.testing.assert_array_equal(mask.band("mask"), expected)
        with pytest.raises(ValueError):
            range_mask(Raster(grid, {"psu": values}), 40.0, 20.0)

    def test_apply_mask_union_of_invalid(self, grid):
        """Test invalid mask pixels and zero mask pixels both invalidate."""
        raster = Raster.constant(grid, 5.0, "v")
        mask_values = np.ones(grid.shape)
        mask_values[0, 0] = 0.0
        mask_valid = np.ones(grid.shape, dtype=bool)
        mask_valid[1, 1] = False
        mask = Raster(grid, {"m": mask_values}, mask_valid)

        masked = apply_mask(raster, mask)

        assert not masked.mask[0, 0]
        assert not masked.mask[1, 1]
        assert masked.valid_count == grid.width * grid.height - 2

    def test_self_mask(self, grid):
        """Test zero pixels are dropped."""
        masked = self_mask(_flat_mask(grid, [0, 5]))

        assert masked.valid_count == 2


class TestGeometry:
    """Tests for point-in-polygon and region rasterisation."""

    def test_point_in_polygon(self):
        """Test the even-odd rule on a square."""
        ring = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
        inside = point_in_polygon(np.array([0.5, 1.5, 0.2]), np.array([0.5, 0.5, 0.9]), ring)

        np.testing.assert_array_equal(inside, [True, False, True])

    def test_region_mask(self, grid, everywhere, nowhere):
        """Test polygons, points and disjoint regions."""
        assert region_mask(everywhere, grid).all()
        assert not region_mask(nowhere, grid).any()

        point = region_mask(Point(0.15, 0.85), grid)
        assert point.sum() == 1
        assert point[1, 1]
        assert not region_mask(Point(5.0, 5.0), grid).any()

    def test_partial_polygon(self, grid):
        """Test only cells whose centre is inside are selected."""
        west_half = Polygon.from_coordinates([(-1, -1), (0.2, -1), (0.2, 2), (-1, 2), (-1, -1)])

        selected = region_mask(west_half, grid)

        assert selected[:, :2].all()
        assert not selected[:, 2:].any()

    def test_footprint_in_polygon_bbox_only(self):
        """Test a footprint inside the bounding box but outside a triangle is disjoint."""
        triangle = Polygon.from_coordinates([(0, 0), (10, 0), (0, 10), (0, 0)])

        assert not footprint_intersects((8.0, 8.0, 10.0, 10.0), triangle)
        assert footprint_intersects((4.0, 4.0, 6.0, 6.0), triangle)
        assert not footprint_intersects((20.0, 20.0, 21.0, 21.0), triangle)

    def test_footprint_overlaps(self):
        """Test small polygons inside a footprint and thin strips crossing it."""
        inner = Polygon.from_coordinates([(0.4, 0.4), (0.6, 0.4), (0.6, 0.6), (0.4, 0.6), (0.4, 0.4)])
        strip = Polygon.from_coordinates([(-5, 0.1), (5, 0.1), (5, 0.2), (-5, 0.2), (-5, 0.1)])
        footprint = (0.0, 0.0, 1.0, 1.0)

        assert footprint_intersects(footprint, inner)
        assert footprint_intersects(footprint, strip)
        assert footprint_intersects(footprint, Point(0.5, 1.0))
        assert not footprint_intersects(footprint, Point(1.5, 0.5))


class TestReducers:
    """Tests for region reductions and sampling."""

    def test_reducers(self, grid, everywhere):
        """Test mean, sum, count, min, max and first."""
        values = np.arange(12, dtype=float).reshape(grid.shape)
        raster = Raster(grid, {"v": values})

        assert reduce_region(raster, everywhere, "mean").get() == pytest.approx(5.5)
        assert reduce_region(raster, everywhere, "sum").get() == pytest.approx(66.0)
        assert reduce_region(raster, everywhere, "count").get() == 12
        assert reduce_region(raster, everywhere, "min").get() == 0.0
        assert reduce_region(raster, everywhere, "max").get() == 11.0
        assert reduce_region(raster, Point(0.25, 0.85), "first").get() == 6.0

    def test_empty_region(self, grid, nowhere):
        """Test sums are zero and means are missing over no pixels."""
        raster = Raster.constant(grid, 3.0, "v")

        assert reduce_region(raster, nowhere, "sum").get() == 0.0
        assert reduce_region(raster, nowhere, "count").get() == 0.0
        result = reduce_region(raster, nowhere, "mean")
        assert result.get() is None
        assert result.pixel_count == 0

    def test_budget_exceeded(self, grid, everywhere):
        """Test exact policies fail over budget."""
        raster = Raster.constant(grid, 1.0, "v")

        with pytest.raises(BudgetExceededError) as info:
            reduce_region(raster, everywhere, "sum", policy=ReductionPolicy.exact(max_pixels=5))
        assert info.value.details["required"] == 12

    def test_best_effort_expands_sums(self, grid, everywhere):
        """Test best-effort sums are scaled up and flagged approximate."""
        raster = Raster.constant(grid, 1.0, "v")

        result = reduce_region(raster, everywhere, "sum", policy=ReductionPolicy.approximate(5, seed=0))

        assert result.approximate
        assert result.used_count == 5
        assert result.pixel_count == 12
        assert result.get() == pytest.approx(12.0)

    def test_exact_within_budget(self, grid, everywhere):
        """Test results within budget are not approximate."""
        result = reduce_region(Raster.constant(grid, 1.0, "v"), everywhere, "sum", policy=ReductionPolicy.exact(12))

        assert not result.approximate

    def test_sample_region(self, grid, everywhere):
        """Test sampling size, reproducibility and coordinates."""
        raster = Raster(grid, {"v": np.arange(12, dtype=float).reshape(grid.shape)})

        first = sample_region(raster, everywhere, num_pixels=5, seed=3, geometries=True)
        second = sample_region(raster, everywhere, num_pixels=5, seed=3)

        assert len(first) == 5
        assert list(first.columns) == ["v", "lon", "lat"]
        np.testing.assert_array_equal(first["v"].to_numpy(), second["v"].to_numpy())

    def test_draw_sample(self):
        """Test draws never exceed the population."""
        indices = np.arange(10)

        assert len(draw_sample(indices, 20)) == 10
        assert len(draw_sample(indices, 4, seed=1)) == 4
        with pytest.raises(ValueError):
            draw_sample(indices, 0)

    def test_apply_budget(self):
        """Test budgets on raw index sets."""
        indices = np.arange(100)

        used, approximate = apply_budget(indices, ReductionPolicy.approximate(10, seed=0))

        assert len(used) == 10
        assert approximate
        assert len(np.unique(used)) == 10


class TestRegression:
    """Tests for robust regression and coefficient application."""

    @pytest.fixture
    def predictors(self):
        rng = np.random.default_rng(0)
        grid = GridSpec(west=0.0, north=1.0, res=0.05, width=10, height=10)
        a = rng.uniform(0.0, 1.0, grid.shape)
        b = rng.uniform(0.0, 1.0, grid.shape)
        return Raster(grid, {"A": a, "B": b})

    def test_recovers_noiseless_relation(self, predictors, everywhere):
        """Test target = 2A + 3B + 1 is recovered exactly."""
        target = Raster(
            predictors.grid,
            {"t": 2 * predictors.band("A") + 3 * predictors.band("B") + 1},
        )
        design = add_constant(predictors)

        coefs = fit_coefficients(design, target, everywhere)

        assert coefs.band_names == ("constant", "A", "B")
        np.testing.assert_allclose(coefs.values, [1.0, 2.0, 3.0], atol=1e-8)
        assert coefs.n_samples == 100
        assert not coefs.approximate

    def test_down_weights_outliers(self):
        """Test a gross outlier does not pull the robust fit."""
        rng = np.random.default_rng(1)
        x = rng.uniform(0.0, 10.0, 200)
        X = np.column_stack([np.ones_like(x), x])
        y = 1.0 + 2.0 * x
        y[0] += 500.0

        beta, iterations = robust_linear_regression(X, y)
        ols, *_ = np.linalg.lstsq(X, y, rcond=None)

        np.testing.assert_allclose(beta, [1.0, 2.0], atol=1e-6)
        assert np.abs(ols - [1.0, 2.0]).max() > 1e-3
        assert iterations >= 1

    def test_too_few_samples(self, predictors, everywhere):
        """Test fewer samples than coefficients is a hard failure."""
        mask = np.zeros(predictors.grid.shape, dtype=bool)
        mask[0, :2] = True
        sparse = add_constant(predictors.update_mask(mask))
        target = Raster.constant(predictors.grid, 1.0, "t")

        with pytest.raises(DegenerateFitError, match="at least 3 samples"):
            fit_coefficients(sparse, target, everywhere)

    def test_collinear_predictors(self, predictors, everywhere):
        """Test a singular design is a hard failure."""
        collinear = Raster(
            predictors.grid, {"A": predictors.band("A"), "B": 2 * predictors.band("A")}
        )
        target = Raster.constant(predictors.grid, 1.0, "t")

        with pytest.raises(DegenerateFitError, match="singular"):
            fit_coefficients(add_constant(collinear), target, everywhere)

    def test_best_effort_fit(self, predictors, everywhere):
        """Test an over-budget fit uses a flagged subset."""
        target = Raster(predictors.grid, {"t": predictors.band("A") - predictors.band("B")})

        coefs = fit_coefficients(
            add_constant(predictors), target, everywhere, policy=ReductionPolicy.approximate(30, seed=0)
        )

        assert coefs.approximate
        assert coefs.n_samples == 30
        np.testing.assert_allclose(coefs.values, [0.0, 1.0, -1.0], atol=1e-8)

    def test_apply_coefficients(self, predictors):
        """Test the estimate keeps the predictor mask."""
        mask = np.ones(predictors.grid.shape, dtype=bool)
        mask[3, 3] = False
        design = add_constant(predictors.update_mask(mask))
        vector = CoefficientVector(("constant", "A", "B"), (1.0, 2.0, 3.0))
        estimate = apply_coefficients(design, vector, name="carbon")

        expected = 1.0 + 2.0 * predictors.band("A") + 3.0 * predictors.band("B")
        assert estimate.band_names == ("carbon",)
        assert not estimate.mask[3, 3]
        np.testing.assert_allclose(estimate.band("carbon")[0], expected[0])

        with pytest.raises(ValueError, match="missing bands"):
            apply_coefficients(predictors, vector)


class TestAccuracy:
    """Tests for accuracy_report."""

    def test_rmse_against_itself_is_zero(self, grid, everywhere):
        """Test RMSE(X, X) == 0."""
        raster = Raster(grid, {"v": np.random.default_rng(0).normal(size=grid.shape)})

        report = accuracy_report(raster, raster, everywhere)

        assert report.rmse == 0.0
        assert report.mae == 0.0
        assert report.n == 12

    def test_constant_offset(self, grid, everywhere):
        """Test a constant offset shows up as RMSE and bias."""
        reference = Raster(grid, {"ref": np.arange(12, dtype=float).reshape(grid.shape)})
        estimate = Raster(grid, {"est": reference.band("ref") + 2.0})

        report = accuracy_report(estimate, reference, everywhere)

        assert report.rmse == pytest.approx(2.0)
        assert report.bias == pytest.approx(2.0)
        assert report.r2 is not None

    def test_no_overlap(self, grid, everywhere):
        """Test missing pairs give missing metrics."""
        report = accuracy_report(Raster.invalid(grid, ["e"]), Raster.constant(grid, 1.0), everywhere)

        assert report.rmse is None
        assert not report.is_present


class TestClassification:
    """Tests for quantile thresholds and classification."""

    def test_thresholds_non_decreasing(self):
        """Test thresholds follow ascending percentiles."""
        values = np.random.default_rng(0).lognormal(size=500)

        thresholds = quantile_thresholds(values, [10, 33, 66, 90])

        assert list(thresholds.values) == sorted(thresholds.values)
        assert thresholds.sample_size == 500

    def test_constant_values(self):
        """Test ties give equal, still monotone, thresholds."""
        thresholds = quantile_thresholds(np.full(50, 7.0), [33, 66])

        assert thresholds.values == (7.0, 7.0)

    def test_empty_sample(self):
        """Test no finite values give empty thresholds."""
        thresholds = quantile_thresholds(np.array([np.nan, np.nan]), [33, 66])

        assert thresholds.is_empty
        assert thresholds.n_classes == 3

    def test_invalid_percentiles(self):
        """Test percentile validation."""
        with pytest.raises(ValueError):
            quantile_thresholds(np.ones(3), [66, 33])
        with pytest.raises(ValueError):
            quantile_thresholds(np.ones(3), [120])
        with pytest.raises(ValueError):
            quantile_thresholds(np.ones(3), [])

    def test_repeated_percentiles(self, grid):
        """Test a repeated percentile gives equal thresholds and an empty middle class."""
        values = np.arange(12, dtype=float).reshape(grid.shape)

        thresholds = quantile_thresholds(values.ravel(), [33, 33])
        classes = classify(Raster(grid, {"v": values}), thresholds).band("class")

        assert thresholds.values[0] == thresholds.values[1]
        assert thresholds.n_classes == 3
        assert not (classes == 2).any()
        assert (classes == 1).any() and (classes == 3).any()

    def test_classify_boundaries(self, grid):
        """Test values equal to a threshold fall in the lower class."""
        values = np.array([[0, 1, 2, 3], [4, 5, 6, 7], [8, 9, 10, 11]], dtype=float)
        thresholds = ClassificationThresholds((33, 66), (3.0, 7.0))

        classes = classify(Raster(grid, {"v": values}), thresholds)

        expected = np.array([[1, 1, 1, 1], [2, 2, 2, 2], [3, 3, 3, 3]], dtype=float)
        np.testing.assert_array_equal(classes.band("class"), expected)

    def test_classify_with_empty_thresholds(self, grid):
        """Test empty thresholds classify nothing."""
        classes = classify(Raster.constant(grid, 1.0), ClassificationThresholds((50,), ()))

        assert classes.is_empty

    def test_class_masks_partition(self, grid):
        """Test class masks cover each valid pixel exactly once."""
        values = np.random.default_rng(2).normal(size=grid.shape)
        mask = np.ones(grid.shape, dtype=bool)
        mask[0, 0] = False
        raster = Raster(grid, {"v": values}, mask)
        thresholds = quantile_thresholds(raster.band("v")[raster.mask], [33, 66])

        masks = class_masks(classify(raster, thresholds), thresholds.n_classes)

        total = sum(m.band(m.band_names[0]) for m in masks)
        np.testing.assert_array_equal(total[raster.mask], np.ones(raster.valid_count))
        assert [m.band_names[0] for m in masks] == ["class_1", "class_2", "class_3"]


class TestZonal:
    """Tests for pixel areas and mask areas."""

    def test_class_areas_sum_to_domain(self, grid, everywhere):
        """Test areas of a partition add up to the domain area."""
        values = np.random.default_rng(3).uniform(size=grid.shape)
        raster = Raster(grid, {"v": values})
        thresholds = quantile_thresholds(values.ravel(), [33, 66])
        masks = class_masks(classify(raster, thresholds), 3)

        areas = [mask_area(m, everywhere).area_km2 for m in masks]
        domain = mask_area(Raster.constant(grid, 1.0), everywhere).area_km2

        assert sum(areas) == pytest.approx(domain, rel=1e-12)
        assert domain == pytest.approx(grid.pixel_area_km2().sum())

    def test_empty_mask_has_zero_area(self, grid, everywhere):
        """Test a mask selecting nothing has area 0.0."""
        record = mask_area(Raster.constant(grid, 0.0, "m"), everywhere, label="none")

        assert record.area_km2 == 0.0
        assert record.label == "none"

    def test_pixel_area_raster(self, grid):
        """Test pixel areas are positive and valid everywhere."""
        areas = pixel_area(Raster.invalid(grid, ["x"]))

        assert areas.valid_count == 12
        assert np.all(areas.band("area") > 0)


class TestChange:
    """Tests for detect_change."""

    def test_cell_scenario(self, grid, everywhere):
        """Test water in cell 5 then cell 9 gives erosion {5} and accretion {9}."""
        earlier = _flat_mask(grid, [5])
        later = _flat_mask(grid, [9])

        result = detect_change(earlier, later)

        assert np.flatnonzero(result["erosion"].band("erosion")).tolist() == [5]
        assert np.flatnonzero(result["accretion"].band("accretion")).tolist() == [9]
        no_change = np.flatnonzero(result["no_change"].band("no_change")).tolist()
        assert no_change == [i for i in range(12) if i not in (5, 9)]

        area = grid.pixel_area_km2().ravel()
        eroded = mask_area(result["erosion"], everywhere).area_km2
        accreted = mask_area(result["accretion"], everywhere).area_km2
        assert accreted - eroded == pytest.approx(area[9] - area[5])

    def test_categories_partition_grid(self, grid):
        """Test erosion, accretion and no-change are disjoint and exhaustive."""
        rng = np.random.default_rng(4)
        earlier = Raster(grid, {"w": (rng.random(grid.shape) > 0.5).astype(float)})
        later_mask = np.ones(grid.shape, dtype=bool)
        later_mask[0, 0] = False
        later = Raster(grid, {"w": (rng.random(grid.shape) > 0.5).astype(float)}, later_mask)

        result = detect_change(earlier, later)

        total = sum(result[k].band(k) for k in ("erosion", "accretion", "no_change"))
        np.testing.assert_array_equal(total, np.ones(grid.shape))
        assert set(np.unique(result["difference"].band("change"))) <= {-1.0, 0.0, 1.0}

    def test_missing_kept_invalid(self, grid):
        """Test missing pixels stay invalid when not counted as absent."""
        mask = np.ones(grid.shape, dtype=bool)
        mask[1, 2] = False
        earlier = Raster(grid, {"w": np.ones(grid.shape)}, mask)
        later = Raster.constant(grid, 1.0, "w")

        result = detect_change(earlier, later, missing_as_absent=False)

        assert not result["erosion"].mask[1, 2]
        assert result["no_change"].valid_count == 11

    def test_grid_mismatch(self, grid):
        """Test masks on different grids are rejected."""
        other = GridSpec(west=0.0, north=1.0, res=0.1, width=3, height=3)
        with pytest.raises(ValueError, match="Grid mismatch"):
            detect_change(Raster.constant(grid, 1.0), Raster.constant(other, 1.0))


class TestAlgebra:
    """Tests for band arithmetic."""

    def test_binary_ops(self, grid):
        """Test raster-raster and raster-scalar operations."""
        a = Raster.constant(grid, 4.0, "a")
        b = Raster.constant(grid, 2.0, "b")

        assert binary_op(a, b, "subtract").band("a")[0, 0] == 2.0
        assert binary_op(a, 3.0, "multiply").band("a")[0, 0] == 12.0
        assert binary_op(a, b, "gt").band("a")[0, 0] == 1.0
        with pytest.raises(ValueError, match="Unknown operator"):
            binary_op(a, b, "modulo")

    def test_binary_mask_intersection(self, grid):
        """Test the result is valid where both operands are."""
        mask = np.ones(grid.shape, dtype=bool)
        mask[0, 0] = False
        a = Raster(grid, {"a": np.ones(grid.shape)}, mask)

        result = binary_op(a, Raster.constant(grid, 1.0, "b"), "add")

        assert not result.mask[0, 0]
        assert result.band("a")[1, 1] == 2.0

    def test_unary_and_band_reduction(self, grid):
        """Test unary functions and reductions across bands."""
        raster = Raster(grid, {"a": np.full(grid.shape, 9.0), "b": np.full(grid.shape, 1.0)})

        assert unary_op(raster, "sqrt").band("a")[0, 0] == 3.0
        total = reduce_bands(raster, "sum", name="total")
        assert total.band_names == ("total",)
        assert total.band("total")[0, 0] == 10.0
        with pytest.raises(ValueError):
            unary_op(raster, "cube")
