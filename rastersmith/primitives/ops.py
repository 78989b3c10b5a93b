"""Registry binding graph operation names to primitive functions.

Every ``Node.op`` the evaluator meets must be registered here. Ordinary ops
receive their evaluated inputs positionally and the node parameters as
keyword arguments. Lazy ops receive a ``resolve`` callable plus the raw input
nodes so they can decide which inputs to evaluate (``value.if_nonempty``
never evaluates its value for an empty collection).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry, TimeWindow
from rastersmith.objects.results import (
    AccuracyReport,
    AreaRecord,
    ClassificationThresholds,
    CoefficientVector,
    Maybe,
    Reduction,
)
from rastersmith.objects.scene import PropertyFilter, Scene, SceneList
from rastersmith.primitives import algebra, change, classification, compositing, indices, masks
from rastersmith.primitives.accuracy import accuracy_report
from rastersmith.primitives.geometry import footprint_intersects, region_mask
from rastersmith.primitives.reducers import reduce_region, sample_region
from rastersmith.primitives.regression import add_constant, apply_coefficients, fit_coefficients
from rastersmith.primitives.sampling import draw_sample, region_pixels
from rastersmith.primitives.zonal import mask_area, pixel_area
from rastersmith.utils.errors import UnknownSourceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpSpec:
    """Registered operation.

    Attributes:
        name: Op name used in ``Node.op``.
        func: Implementation.
        lazy: Receives ``(resolve, *input_nodes, **params)`` instead of values.
        needs_catalog: Receives the evaluator's source catalog as ``catalog=``.
    """

    name: str
    func: Callable
    lazy: bool = False
    needs_catalog: bool = False


# Registry of graph operations
OP_REGISTRY: dict[str, OpSpec] = {}


def register_op(name: str, lazy: bool = False, needs_catalog: bool = False):
    """Decorator registering a function as graph operation ``name``."""

    def decorator(func: Callable) -> Callable:
        OP_REGISTRY[name] = OpSpec(name, func, lazy=lazy, needs_catalog=needs_catalog)
        return func

    return decorator


def get_op(name: str) -> OpSpec:
    """Look up a registered op.

    Raises:
        KeyError: If ``name`` is not registered.
    """
    try:
        return OP_REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown graph op '{name}'. Registered ops: {sorted(OP_REGISTRY)}"
        ) from None


# -- collections -------------------------------------------------------------


@register_op("collection.source", needs_catalog=True)
def _collection_source(source_id: str, catalog=None) -> SceneList:
    if catalog is None:
        raise UnknownSourceError(
            f"Cannot load '{source_id}': the evaluator has no source catalog",
            suggestion="Create the Evaluator with a SourceCatalog",
        )
    return catalog.scene_list(source_id)


@register_op("collection.from_rasters")
def _collection_from_rasters(*rasters: Raster, timestamps=()) -> SceneList:
    if not rasters:
        raise ValueError("from_rasters needs at least one raster")
    stamps = list(timestamps) or [
        pd.Timestamp(2000, 1, 1) + pd.Timedelta(days=i) for i in range(len(rasters))
    ]
    if len(stamps) != len(rasters):
        raise ValueError(f"{len(rasters)} rasters but {len(stamps)} timestamps")
    scenes = [
        Scene(r, ts, scene_id=f"scene_{i}") for i, (r, ts) in enumerate(zip(rasters, stamps))
    ]
    return SceneList(rasters[0].grid, rasters[0].band_names, tuple(scenes))


@register_op("collection.filter_bounds")
def _collection_filter_bounds(scenes: SceneList, region: RegionGeometry) -> SceneList:
    kept = [s for s in scenes if footprint_intersects(s.footprint, region)]
    return scenes.replace(kept)


@register_op("collection.filter_date")
def _collection_filter_date(scenes: SceneList, window: TimeWindow) -> SceneList:
    return scenes.replace([s for s in scenes if window.contains(s.timestamp)])


@register_op("collection.filter")
def _collection_filter(scenes: SceneList, predicate: PropertyFilter) -> SceneList:
    return scenes.replace([s for s in scenes if predicate.matches(s)])


@register_op("collection.map")
def _collection_map(scenes: SceneList, fn: str, fn_params=None) -> SceneList:
    """Apply a single-input raster op to every scene."""
    spec = get_op(fn)
    fn_params = dict(fn_params or {})
    # output band names come from the op itself so empty series keep them too
    template = spec.func(Raster.invalid(scenes.grid, scenes.band_names), **fn_params)
    mapped = [s.with_raster(spec.func(s.raster, **fn_params)) for s in scenes]
    return scenes.replace(mapped, band_names=template.band_names)


@register_op("collection.size")
def _collection_size(scenes: SceneList) -> int:
    return len(scenes)


@register_op("collection.first")
def _collection_first(scenes: SceneList) -> Raster:
    if len(scenes) == 0:
        return Raster.invalid(scenes.grid, scenes.band_names)
    return scenes.scenes[0].raster


register_op("collection.reduce")(compositing.composite)


# -- rasters -----------------------------------------------------------------


@register_op("raster.literal")
def _raster_literal(raster: Raster) -> Raster:
    return raster


@register_op("raster.constant")
def _raster_constant(grid, value: float, name: str = "constant") -> Raster:
    return Raster.constant(grid, value, name)


@register_op("raster.select")
def _raster_select(raster: Raster, names) -> Raster:
    return raster.select(names)


@register_op("raster.rename")
def _raster_rename(raster: Raster, names) -> Raster:
    return raster.rename(names)


@register_op("raster.add_bands")
def _raster_add_bands(raster: Raster, other: Raster) -> Raster:
    if other.grid != raster.grid:
        other = other.resample(raster.grid)
    return raster.add_bands(other)


@register_op("raster.scale")
def _raster_scale(raster: Raster, factor: float = 1.0, offset: float = 0.0) -> Raster:
    return raster.map_bands(lambda a: a * factor + offset)


@register_op("raster.binary")
def _raster_binary(raster: Raster, other: Optional[Raster] = None, op: str = "add", value=None) -> Raster:
    return algebra.binary_op(raster, other if other is not None else value, op)


register_op("raster.unary")(algebra.unary_op)
register_op("raster.reduce_bands")(algebra.reduce_bands)
register_op("raster.add_constant")(add_constant)
register_op("raster.normalized_difference")(indices.normalized_difference)
register_op("raster.categorical_mask")(masks.categorical_mask)
register_op("raster.threshold_mask")(masks.threshold_mask)
register_op("raster.range_mask")(masks.range_mask)
register_op("raster.update_mask")(masks.apply_mask)
register_op("raster.self_mask")(masks.self_mask)
register_op("raster.apply_coefficients")(apply_coefficients)
register_op("raster.classify")(classification.classify)
register_op("raster.pixel_area")(pixel_area)


@register_op("raster.mask_range")
def _raster_mask_range(raster: Raster, low: float, high: float, band: Optional[str] = None) -> Raster:
    """Keep pixels whose band value lies in (low, high)."""
    return masks.apply_mask(raster, masks.range_mask(raster, low, high, band))


@register_op("raster.unmask")
def _raster_unmask(raster: Raster, value: float = 0.0) -> Raster:
    return raster.unmask(value)


@register_op("raster.clip")
def _raster_clip(raster: Raster, region: RegionGeometry) -> Raster:
    return raster.update_mask(region_mask(region, raster.grid))


@register_op("raster.class_mask")
def _raster_class_mask(classified: Raster, class_value: int) -> Raster:
    return masks.categorical_mask(classified, class_value, name=f"class_{class_value}")


@register_op("raster.change")
def _raster_change(
    earlier: Raster, later: Raster, category: str = "difference", missing_as_absent: bool = True
) -> Raster:
    return change.detect_change(earlier, later, missing_as_absent)[category]


# -- reductions --------------------------------------------------------------


register_op("reduce.region")(reduce_region)
register_op("reduce.sample")(sample_region)
register_op("reduce.regression")(fit_coefficients)
register_op("reduce.accuracy")(accuracy_report)
register_op("reduce.area")(mask_area)


@register_op("reduce.thresholds")
def _reduce_thresholds(
    raster: Raster,
    region: RegionGeometry,
    percentiles,
    scale: Optional[float] = None,
    num_pixels: int = 5000,
    seed: Optional[int] = None,
    band: Optional[str] = None,
) -> ClassificationThresholds:
    resampled, indices_ = region_pixels(raster, region, scale)
    chosen = draw_sample(indices_, num_pixels, seed)
    values = resampled.band(band or resampled.band_names[0]).ravel()[chosen]
    return classification.quantile_thresholds(values, percentiles, seed)


# -- scalar values -----------------------------------------------------------


@register_op("value.constant")
def _value_constant(value: Any) -> Any:
    return value


@register_op("value.get")
def _value_get(result: Any, key: Any = None) -> Optional[float]:
    """Scalar out of a result record; None stands for missing."""
    if isinstance(result, Maybe):
        if not result.is_present:
            return None
        result = result.value
    if isinstance(result, Reduction):
        return result.get(key)
    if isinstance(result, AccuracyReport):
        return getattr(result, key or "rmse")
    if isinstance(result, AreaRecord):
        return result.area_km2
    if isinstance(result, CoefficientVector):
        return result.as_dict()[key]
    if isinstance(result, ClassificationThresholds):
        return result.values[key] if not result.is_empty else None
    if isinstance(result, (dict, tuple, list)) and key is not None:
        return result[key]
    return result


_VALUE_BINARY: dict[str, Callable[[float, float], Any]] = {
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b if b != 0 else None,
    "pow": lambda a, b: a**b,
}
_VALUE_UNARY: dict[str, Callable[[float], Any]] = {
    "sqrt": lambda a: float(np.sqrt(a)) if a >= 0 else None,
    "abs": abs,
    "negate": lambda a: -a,
}


def _scalar(value: Any) -> Optional[float]:
    if isinstance(value, Maybe):
        value = value.value if value.is_present else None
    if value is None:
        return None
    value = float(value)
    return None if np.isnan(value) else value


@register_op("value.binary")
def _value_binary(left: Any, right: Any = None, op: str = "add", value=None) -> Optional[float]:
    """Scalar arithmetic; a missing operand gives a missing result."""
    a = _scalar(left)
    b = _scalar(right if right is not None else value)
    if a is None or b is None:
        return None
    return _VALUE_BINARY[op](a, b)


@register_op("value.unary")
def _value_unary(operand: Any, op: str = "sqrt") -> Optional[float]:
    a = _scalar(operand)
    if a is None:
        return None
    return _VALUE_UNARY[op](a)


@register_op("value.if_nonempty", lazy=True)
def _value_if_nonempty(resolve: Callable, collection, value) -> Maybe:
    """Evaluate ``value`` only when ``collection`` holds at least one scene."""
    scenes = resolve(collection)
    if len(scenes) == 0:
        logger.debug("Conditional value skipped: collection is empty")
        return Maybe.none()
    result = resolve(value)
    if isinstance(result, Maybe):
        return result
    return Maybe.of(_scalar(result) if isinstance(result, (int, float, np.number)) else result)
