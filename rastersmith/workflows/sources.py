"""Raster sources and the source catalog.

A source yields the scenes of one collection id; the catalog maps ids to
sources and is what ``collection.source`` nodes resolve against.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np
import pandas as pd

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.raster import Raster
from rastersmith.objects.scene import Scene, SceneList
from rastersmith.utils.errors import DataValidationError, UnknownSourceError, raise_validation_error

logger = logging.getLogger(__name__)


@runtime_checkable
class RasterSource(Protocol):
    """Re-iterable provider of the scenes of one collection."""

    source_id: str
    grid: GridSpec
    band_names: tuple[str, ...]

    def scenes(self) -> Iterable[Scene]:
        ...


class InMemorySource:
    """Source backed by a list of scenes held in memory.

    Args:
        source_id: Collection id.
        grid: Grid every scene is on.
        band_names: Bands every scene carries.
        scenes: Scenes in any order.
    """

    def __init__(
        self,
        source_id: str,
        grid: GridSpec,
        band_names: Sequence[str],
        scenes: Iterable[Scene] = (),
    ) -> None:
        self.source_id = source_id
        self.grid = grid
        self.band_names = tuple(band_names)
        self._scenes = tuple(scenes)
        for scene in self._scenes:
            missing = [b for b in self.band_names if b not in scene.raster.bands]
            if missing:
                raise DataValidationError(
                    f"Scene {scene.scene_id} of {source_id} lacks bands {missing}",
                    details={"scene_id": scene.scene_id, "missing": missing},
                )
            if scene.raster.grid != grid:
                raise_validation_error(
                    f"Scene {scene.scene_id} of {source_id} is not on the source grid",
                    expected=str(grid),
                    received=str(scene.raster.grid),
                )

    def scenes(self) -> Iterator[Scene]:
        return iter(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)

    def __repr__(self) -> str:
        """String representation."""
        return f"InMemorySource({self.source_id!r}, n={len(self._scenes)}, bands={list(self.band_names)})"


class NpzDirectorySource:
    """Source reading one ``.npz`` file per scene from a directory.

    Each file holds one array per band, an optional boolean ``mask``, the
    grid as ``__grid__`` = [west, north, res, width, height], the ISO
    ``__timestamp__`` and JSON-encoded ``__properties__``. Files are read on
    every iteration, in file-name order.
    """

    def __init__(self, source_id: str, directory: Union[str, Path]) -> None:
        self.source_id = source_id
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Scene directory not found: {self.directory}")
        self._files = sorted(self.directory.glob("*.npz"))
        if not self._files:
            raise DataValidationError(
                f"No .npz scenes in {self.directory}",
                suggestion="Write scenes with NpzDirectorySource.write()",
            )
        first = self._read(self._files[0])
        self.grid = first.raster.grid
        self.band_names = first.raster.band_names

    @staticmethod
    def _read(path: Path) -> Scene:
        with np.load(path, allow_pickle=False) as data:
            west, north, res, width, height = data["__grid__"]
            grid = GridSpec(float(west), float(north), float(res), int(width), int(height))
            bands = {
                key: data[key]
                for key in data.files
                if not key.startswith("__") and key != "mask"
            }
            mask = data["mask"] if "mask" in data.files else None
            timestamp = pd.Timestamp(str(data["__timestamp__"]))
            properties = json.loads(str(data["__properties__"]))
        return Scene(Raster(grid, bands, mask), timestamp, scene_id=path.stem, properties=properties)

    def scenes(self) -> Iterator[Scene]:
        for path in self._files:
            yield self._read(path)

    @staticmethod
    def write(directory: Union[str, Path], scenes: Iterable[Scene]) -> list[Path]:
        """Store scenes as ``<scene_id>.npz`` files readable by this source."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for scene in scenes:
            grid = scene.raster.grid
            path = directory / f"{scene.scene_id}.npz"
            np.savez(
                path,
                __grid__=np.array([grid.west, grid.north, grid.res, grid.width, grid.height]),
                __timestamp__=np.array(scene.timestamp.isoformat()),
                __properties__=np.array(json.dumps(dict(scene.properties))),
                mask=scene.raster.mask,
                **scene.raster.bands,
            )
            paths.append(path)
        logger.info(f"Wrote {len(paths)} scenes to {directory}")
        return paths

    def __repr__(self) -> str:
        """String representation."""
        return f"NpzDirectorySource({self.source_id!r}, {self.directory}, n={len(self._files)})"


class SourceCatalog:
    """Registry of raster sources by collection id."""

    def __init__(self, sources: Optional[Iterable[RasterSource]] = None) -> None:
        self._sources: dict[str, RasterSource] = {}
        for source in sources or ():
            self.register(source)

    def register(self, source: RasterSource) -> "SourceCatalog":
        if source.source_id in self._sources:
            logger.warning(f"Replacing source {source.source_id}")
        self._sources[source.source_id] = source
        return self

    def get(self, source_id: str) -> RasterSource:
        """Registered source.

        Raises:
            UnknownSourceError: If ``source_id`` is not registered.
        """
        try:
            return self._sources[source_id]
        except KeyError:
            raise UnknownSourceError(
                f"Unknown collection '{source_id}'",
                suggestion=f"Register it first; known collections: {sorted(self._sources)}",
            ) from None

    def scene_list(self, source_id: str) -> SceneList:
        """Materialise every scene of a source, ordered by timestamp."""
        source = self.get(source_id)
        scenes = SceneList(source.grid, source.band_names, tuple(source.scenes()))
        logger.debug(f"Loaded {len(scenes)} scenes from {source_id}")
        return scenes

    def ids(self) -> list[str]:
        return sorted(self._sources)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        """String representation."""
        return f"SourceCatalog({self.ids()})"
