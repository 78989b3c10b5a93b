"""RasterSmith: lazy raster analytics for estuary monitoring.

Layers:

- ``rastersmith.objects``: immutable data types (grids, rasters, regions, results)
- ``rastersmith.primitives``: pure numpy algorithms and the operation registry
- ``rastersmith.tasks``: lazy handles and analysis components
- ``rastersmith.workflows``: evaluation, sources, presentation and analyses
"""

__version__ = "0.1.0"
