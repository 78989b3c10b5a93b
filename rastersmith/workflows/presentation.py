"""Presentation boundary.

Analyses hand layers to a ``LayerSink`` one-way and never depend on how a
sink renders them. Map widgets, legends and charts live behind this
interface; ``CollectingSink`` keeps layers for inspection and ``NullSink``
drops them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

import pandas as pd

from rastersmith.objects.raster import Raster
from rastersmith.objects.results import AreaRecord, TimeSeriesRecord
from rastersmith.tasks.expressions import LazyRaster
from rastersmith.tasks.timeseriestask import TimeSeriesAggregator
from rastersmith.tasks.zonaltask import ZonalStatistics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisParams:
    """Display range and colour ramp of a layer."""

    min: float = 0.0
    max: float = 1.0
    palette: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate the display range."""
        object.__setattr__(self, "palette", tuple(self.palette))
        if self.max < self.min:
            raise ValueError(f"VisParams max ({self.max}) is below min ({self.min})")

    @classmethod
    def from_config(cls, section: Optional[dict[str, Any]]) -> "VisParams":
        section = section or {}
        return cls(
            min=float(section.get("min", 0.0)),
            max=float(section.get("max", 1.0)),
            palette=tuple(section.get("palette", ())),
        )


@dataclass(frozen=True)
class Layer:
    """A raster offered to the presentation collaborator.

    Attributes:
        label: Display name.
        raster: Lazy or concrete raster.
        vis: Display parameters.
        shown: Whether the layer starts visible.
    """

    label: str
    raster: Union[LazyRaster, Raster]
    vis: VisParams = field(default_factory=VisParams)
    shown: bool = True


@runtime_checkable
class LayerSink(Protocol):
    """Receiver of analysis layers."""

    def add_layer(self, layer: Layer) -> None:
        ...


class NullSink:
    """Sink that discards every layer."""

    def add_layer(self, layer: Layer) -> None:
        logger.debug(f"Discarding layer {layer.label}")


class CollectingSink:
    """Sink that keeps layers in arrival order."""

    def __init__(self) -> None:
        self.layers: list[Layer] = []

    def add_layer(self, layer: Layer) -> None:
        self.layers.append(layer)

    @property
    def labels(self) -> list[str]:
        return [layer.label for layer in self.layers]

    def get(self, label: str) -> Layer:
        for layer in self.layers:
            if layer.label == label:
                return layer
        raise KeyError(f"No layer labelled '{label}'. Layers: {self.labels}")

    def materialize(self, evaluator) -> dict[str, Raster]:
        """Evaluate every lazy layer (concurrently) into concrete rasters."""
        lazy = [layer for layer in self.layers if isinstance(layer.raster, LazyRaster)]
        values = evaluator.evaluate_many([layer.raster for layer in lazy]) if lazy else []
        rasters = {layer.label: value for layer, value in zip(lazy, values)}
        for layer in self.layers:
            if isinstance(layer.raster, Raster):
                rasters[layer.label] = layer.raster
        return {layer.label: rasters[layer.label] for layer in self.layers}

    def __len__(self) -> int:
        return len(self.layers)


def records_to_frame(records: Sequence[TimeSeriesRecord], interpolate: bool = False) -> pd.DataFrame:
    """Time-series records as a DataFrame; ``interpolate`` fills interior nulls for charting."""
    return TimeSeriesAggregator.to_frame(records, interpolate=interpolate)


def area_table(records: Sequence[AreaRecord]) -> pd.DataFrame:
    return ZonalStatistics.area_table(records)
