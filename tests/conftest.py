"""Shared fixtures for RasterSmith tests."""

import numpy as np
import pandas as pd
import pytest

from rastersmith.objects import GridSpec, Polygon, Raster, Scene, SceneList
from rastersmith.workflows import Evaluator, InMemorySource, SourceCatalog


@pytest.fixture
def grid():
    """4 x 3 grid just north of the equator."""
    return GridSpec(west=0.0, north=1.0, res=0.1, width=4, height=3)


@pytest.fixture
def everywhere():
    """Polygon covering the whole test grid."""
    return Polygon.from_coordinates([(-1.0, -1.0), (2.0, -1.0), (2.0, 2.0), (-1.0, 2.0), (-1.0, -1.0)])


@pytest.fixture
def nowhere():
    """Polygon far away from the test grid."""
    return Polygon.from_coordinates([(10.0, 10.0), (11.0, 10.0), (11.0, 11.0), (10.0, 11.0), (10.0, 10.0)])


def make_scene(grid, when, value, band="b1", mask=None, **properties):
    values = np.full(grid.shape, float(value)) if np.isscalar(value) else np.asarray(value, dtype=float)
    return Scene(Raster(grid, {band: values}, mask), pd.Timestamp(when), properties=properties)


@pytest.fixture
def scene_factory(grid):
    """Build single-band scenes on the test grid."""

    def factory(when, value, band="b1", mask=None, **properties):
        return make_scene(grid, when, value, band, mask, **properties)

    return factory


@pytest.fixture
def series(grid, scene_factory):
    """Two January scenes (one cloudy) and one in March; nothing in February."""
    scenes = [
        scene_factory("2024-01-05", 1.0, cloud=5.0),
        scene_factory("2024-01-20", 3.0, cloud=50.0),
        scene_factory("2024-03-10", 10.0, cloud=2.0),
    ]
    return SceneList(grid, ("b1",), tuple(scenes))


@pytest.fixture
def catalog(grid, series):
    return SourceCatalog([InMemorySource("test/series", grid, ("b1",), series.scenes)])


@pytest.fixture
def evaluator(catalog):
    with Evaluator(catalog, max_workers=4) as ev:
        yield ev
