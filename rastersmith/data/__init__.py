"""Deterministic synthetic collections for examples and tests.

``load_demo_catalog`` builds a ``SourceCatalog`` with Sentinel-2-like
reflectance, a Dynamic-World-like land-cover label, a reference carbon
density raster, MODIS-like surface reflectance and HYCOM-like salinity over
the Pearl River Estuary. The scene layout mirrors the real collections
(ids, band names, digital-number scaling, cloud metadata) so the analyses
run unchanged against it.

A land/sea boundary runs east-west across the grid and drifts south over
time, so water masks of different years differ. Sentinel-2 scenes in June
and July are all cloudy, which leaves those months empty after cloud
filtering; every other month has a clear scene in its first five days.
"""

import logging

import numpy as np
import pandas as pd

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.raster import Raster
from rastersmith.objects.scene import Scene
from rastersmith.workflows.sources import InMemorySource, SourceCatalog

logger = logging.getLogger(__name__)

DEMO_BOUNDS = (112.9, 21.4, 114.6, 22.6)
S2_BANDS = ("B2", "B3", "B4", "B8", "B11", "B12")
MODIS_BANDS = ("sur_refl_b01", "sur_refl_b02")
CLOUDY_MONTHS = (6, 7)

# land-cover classes
WATER, TREES, BUILT = 0, 1, 6


def _demo_grid(res: float) -> GridSpec:
    return GridSpec.from_bounds(*DEMO_BOUNDS, res=res)


def _years_since_2024(when: pd.Timestamp) -> float:
    return (when - pd.Timestamp("2024-01-01")).days / 365.25


def _coast_latitude(lons: np.ndarray, when: pd.Timestamp) -> np.ndarray:
    """Latitude of the shoreline; sea lies south of it."""
    t = _years_since_2024(when)
    seasonal = 0.01 * np.sin(2 * np.pi * when.month / 12.0)
    return 22.15 + 0.1 * np.sin(2 * np.pi * (lons - 113.0) / 1.5) - 0.04 * t + seasonal


def _vegetation(grid: GridSpec) -> np.ndarray:
    """Smooth vegetation fraction in [0, 1]."""
    lons, lats = grid.cell_centers()
    field = 0.5 + 0.3 * np.sin(3.0 * lons) * np.cos(4.0 * lats) + 0.2 * np.cos(7.0 * (lons + lats))
    return np.clip(field, 0.0, 1.0)


def _sentinel2(grid: GridSpec, rng: np.random.Generator) -> InMemorySource:
    lons, lats = grid.cell_centers()
    veg = _vegetation(grid)
    scenes = []
    for i, when in enumerate(pd.date_range("2025-01-03", "2025-12-28", freq="5D")):
        sea = lats < _coast_latitude(lons, when)
        v = np.where(sea, 0.0, veg)
        reflectance = {
            "B2": 0.06 + 0.02 * (1 - v) + rng.normal(0.0, 0.004, grid.shape),
            "B3": 0.08 + 0.01 * v + rng.normal(0.0, 0.004, grid.shape),
            "B4": 0.10 - 0.06 * v + rng.normal(0.0, 0.004, grid.shape),
            "B8": np.where(sea, 0.03, 0.18 + 0.30 * v) + rng.normal(0.0, 0.006, grid.shape),
            "B11": np.where(sea, 0.02, 0.22 - 0.08 * v) + rng.normal(0.0, 0.005, grid.shape),
            "B12": np.where(sea, 0.01, 0.15 - 0.07 * v) + rng.normal(0.0, 0.005, grid.shape),
        }
        bands = {name: np.clip(values, 0.0, 1.0) * 10000.0 for name, values in reflectance.items()}
        mask = rng.random(grid.shape) > 0.05
        if when.month in CLOUDY_MONTHS:
            cloud = float(rng.uniform(20.0, 60.0))
        else:
            clear = rng.random() < 0.7 or when.day <= 5
            cloud = float(rng.uniform(0.0, 9.0) if clear else rng.uniform(10.0, 40.0))
        scenes.append(
            Scene(
                Raster(grid, bands, mask),
                when,
                scene_id=f"S2_{when:%Y%m%d}_{i:03d}",
                properties={"CLOUDY_PIXEL_PERCENTAGE": cloud},
            )
        )
    return InMemorySource("COPERNICUS/S2_SR_HARMONIZED", grid, S2_BANDS, scenes)


def _dynamic_world(grid: GridSpec, rng: np.random.Generator) -> InMemorySource:
    lons, lats = grid.cell_centers()
    veg = _vegetation(grid)
    scenes = []
    for when in pd.date_range("2025-01-05", "2025-12-25", freq="10D"):
        sea = lats < _coast_latitude(lons, when)
        label = np.where(veg > 0.45, TREES, BUILT).astype(float)
        label = np.where(sea, WATER, label)
        flips = (rng.random(grid.shape) < 0.1) & ~sea
        label = np.where(flips, BUILT, label)
        scenes.append(Scene(Raster(grid, {"label": label}), when, scene_id=f"DW_{when:%Y%m%d}"))
    return InMemorySource("GOOGLE/DYNAMICWORLD/V1", grid, ("label",), scenes)


def _reference_carbon(grid: GridSpec, rng: np.random.Generator) -> InMemorySource:
    lons, lats = grid.cell_centers()
    veg = _vegetation(grid)
    sea = lats < _coast_latitude(lons, pd.Timestamp("2025-06-01"))
    carbon = 20.0 + 110.0 * veg + rng.normal(0.0, 4.0, grid.shape)
    raster = Raster(grid, {"carbon_tonnes_per_ha": np.clip(carbon, 0.0, None)}, ~sea)
    scene = Scene(raster, pd.Timestamp("2010-01-01"), scene_id="WCMC_2010")
    return InMemorySource(
        "WCMC/biomass_carbon_density/v1_0", grid, ("carbon_tonnes_per_ha",), [scene]
    )


def _modis(grid: GridSpec, rng: np.random.Generator) -> InMemorySource:
    lons, lats = grid.cell_centers()
    scenes = []
    for when in pd.date_range("2023-11-01", "2025-12-31", freq="8D"):
        water = lats < _coast_latitude(lons, when)
        b01 = np.where(water, 0.06, 0.08) + rng.normal(0.0, 0.005, grid.shape)
        b02 = np.where(water, 0.03, 0.30) + rng.normal(0.0, 0.01, grid.shape)
        bands = {
            "sur_refl_b01": np.clip(b01, 0.0, 1.0) * 10000.0,
            "sur_refl_b02": np.clip(b02, 0.0, 1.0) * 10000.0,
        }
        mask = rng.random(grid.shape) > 0.1
        scenes.append(Scene(Raster(grid, bands, mask), when, scene_id=f"MOD09Q1_{when:%Y%m%d}"))
    return InMemorySource("MODIS/061/MOD09Q1", grid, MODIS_BANDS, scenes)


def _hycom(grid: GridSpec, rng: np.random.Generator) -> InMemorySource:
    lons, lats = grid.cell_centers()
    scenes = []
    for when in pd.date_range("2024-01-01", "2024-07-31", freq="3D"):
        sea = lats < _coast_latitude(lons, when)
        # fresher near the river mouth and into the wet season
        offshore = np.clip((_coast_latitude(lons, when) - lats) / 1.0, 0.0, 1.0)
        psu = 27.0 + 7.0 * offshore - 1.5 * np.sin(np.pi * (when.month - 1) / 6.0)
        psu = psu + rng.normal(0.0, 0.2, grid.shape)
        raw = (psu - 20.0) / 0.001
        # occasional fill values fall outside the valid salinity range
        raw = np.where(rng.random(grid.shape) < 0.02, -5000.0, raw)
        scenes.append(
            Scene(Raster(grid, {"salinity_0": raw}, sea), when, scene_id=f"HYCOM_{when:%Y%m%d}")
        )
    return InMemorySource("HYCOM/sea_temp_salinity", grid, ("salinity_0",), scenes)


def load_demo_catalog(seed: int = 0, res: float = 0.02) -> SourceCatalog:
    """Synthetic catalog for the Pearl River Estuary analyses.

    Args:
        seed: Seed for all noise; the same seed gives identical collections.
        res: Grid resolution in degrees.

    Returns:
        SourceCatalog with the Sentinel-2, Dynamic World, WCMC carbon, MODIS
        and HYCOM collection ids used by the default configuration.

    Example:
        >>> catalog = load_demo_catalog(seed=0)
        >>> catalog.ids()[:2]
        ['COPERNICUS/S2_SR_HARMONIZED', 'GOOGLE/DYNAMICWORLD/V1']
    """
    rng = np.random.default_rng(seed)
    grid = _demo_grid(res)
    catalog = SourceCatalog(
        [
            _sentinel2(grid, rng),
            _dynamic_world(grid, rng),
            _reference_carbon(grid, rng),
            _modis(grid, rng),
            _hycom(grid, rng),
        ]
    )
    logger.info(f"Built demo catalog on {grid} with {len(catalog)} collections")
    return catalog


__all__ = ["DEMO_BOUNDS", "load_demo_catalog"]
