"""Tests for the presentation boundary."""

import numpy as np
import pytest

from rastersmith.objects import AreaRecord, Raster, TimeSeriesRecord, TimeWindow
from rastersmith.tasks import LazyRaster
from rastersmith.workflows import (
    CollectingSink,
    Layer,
    LayerSink,
    NullSink,
    VisParams,
    area_table,
    records_to_frame,
)


class TestVisParams:
    """Tests for VisParams."""

    def test_from_config(self):
        """Test display parameters come from a config section."""
        vis = VisParams.from_config({"min": -1, "max": 1, "palette": ["red", "white", "green"]})

        assert vis.min == -1.0
        assert vis.palette == ("red", "white", "green")
        assert VisParams.from_config(None) == VisParams()

    def test_range_validation(self):
        """Test max below min is rejected."""
        with pytest.raises(ValueError):
            VisParams(min=2.0, max=1.0)


class TestSinks:
    """Tests for NullSink and CollectingSink."""

    def test_protocol(self):
        """Test both sinks satisfy the LayerSink protocol."""
        assert isinstance(NullSink(), LayerSink)
        assert isinstance(CollectingSink(), LayerSink)

    def test_collecting_sink(self, evaluator, grid):
        """Test layers keep arrival order and materialise to rasters."""
        sink = CollectingSink()
        concrete = Raster.constant(grid, 2.0, "v")
        sink.add_layer(Layer("lazy", LazyRaster.constant(grid, 1.0, "v") * 3.0))
        sink.add_layer(Layer("concrete", concrete, VisParams(0, 5), shown=False))

        rasters = sink.materialize(evaluator)

        assert sink.labels == ["lazy", "concrete"]
        assert len(sink) == 2
        assert not sink.get("concrete").shown
        assert list(rasters) == ["lazy", "concrete"]
        np.testing.assert_allclose(rasters["lazy"].band("v"), 3.0)
        assert rasters["concrete"] is concrete
        with pytest.raises(KeyError):
            sink.get("missing")

    def test_null_sink_discards(self, grid):
        """Test the null sink accepts layers without keeping them."""
        NullSink().add_layer(Layer("x", Raster.constant(grid, 1.0)))


class TestTables:
    """Tests for chart-ready tables."""

    def test_records_to_frame(self):
        """Test nulls are kept unless interpolation is requested."""
        records = [
            TimeSeriesRecord(i, window, {"psu": value})
            for i, (window, value) in enumerate(
                zip(TimeWindow.months(2024, [1, 2, 3]), [30.0, None, 32.0]), start=1
            )
        ]

        raw = records_to_frame(records)
        filled = records_to_frame(records, interpolate=True)

        assert raw["psu"].isna().sum() == 1
        assert filled.loc[2, "psu"] == pytest.approx(31.0)

    def test_trailing_nulls_not_extrapolated(self):
        """Test interpolation only fills interior gaps."""
        records = [
            TimeSeriesRecord(1, TimeWindow.month(2024, 1), {"psu": 30.0}),
            TimeSeriesRecord(2, TimeWindow.month(2024, 2), {"psu": None}),
        ]

        filled = records_to_frame(records, interpolate=True)

        assert np.isnan(filled.loc[2, "psu"])

    def test_area_table(self):
        """Test area records tabulate in order."""
        table = area_table([AreaRecord("low", 1.5), AreaRecord("high", 2.5, approximate=True)])

        assert table["label"].tolist() == ["low", "high"]
        assert table["area_km2"].sum() == pytest.approx(4.0)
        assert table["approximate"].tolist() == [False, True]
