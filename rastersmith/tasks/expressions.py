"""Lazy handles over graph nodes.

Layer 3: Tasks - User intent translation.

``LazyCollection``, ``LazyRaster`` and ``LazyValue`` are thin, immutable
wrappers around a ``Node``. Every builder method returns a new handle over a
new node; nothing is computed until an ``Evaluator`` is asked for a value.
"""

from typing import Any, Optional, Sequence, Union

from rastersmith.objects.grid import GridSpec
from rastersmith.objects.node import Node
from rastersmith.objects.raster import Raster
from rastersmith.objects.region import RegionGeometry, TimeWindow
from rastersmith.objects.scene import PropertyFilter
from rastersmith.primitives.sampling import ReductionPolicy

Number = Union[int, float]


class _Lazy:
    __slots__ = ("node",)

    def __init__(self, node: Node):
        if not isinstance(node, Node):
            raise TypeError(f"Expected a Node, got {type(node).__name__}")
        object.__setattr__(self, "node", node)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def fingerprint(self) -> str:
        return self.node.fingerprint

    def __repr__(self) -> str:
        """String representation."""
        return f"{type(self).__name__}({self.node.op}, id={self.fingerprint[:10]})"


class LazyCollection(_Lazy):
    """Lazy raster series: a finite, time-ordered set of scenes.

    Filters return new handles and never mutate the source.

    Example:
        >>> s2 = (
        ...     LazyCollection.source("COPERNICUS/S2")
        ...     .filter_bounds(region)
        ...     .filter_date(TimeWindow.year(2024))
        ...     .filter(PropertyFilter.lt("CLOUDY_PIXEL_PERCENTAGE", 10))
        ... )
        >>> composite = s2.reduce("median")
    """

    __slots__ = ()

    @classmethod
    def source(cls, source_id: str) -> "LazyCollection":
        return cls(Node("collection.source", params={"source_id": source_id}))

    @classmethod
    def from_rasters(
        cls, rasters: Sequence[Union[Raster, "LazyRaster"]], timestamps: Optional[Sequence] = None
    ) -> "LazyCollection":
        """Series built from rasters on one grid (optionally time-stamped)."""
        nodes = tuple(LazyRaster.wrap(r).node for r in rasters)
        return cls(
            Node("collection.from_rasters", nodes, {"timestamps": tuple(timestamps or ())})
        )

    def _chain(self, op: str, **params: Any) -> "LazyCollection":
        return LazyCollection(Node(op, (self.node,), params))

    def filter_bounds(self, region: RegionGeometry) -> "LazyCollection":
        """Keep scenes whose footprint overlaps the region geometry."""
        return self._chain("collection.filter_bounds", region=region)

    def filter_date(self, start, end=None) -> "LazyCollection":
        """Keep scenes inside a half-open window (a TimeWindow or start/end dates)."""
        window = start if isinstance(start, TimeWindow) else TimeWindow(start, end)
        return self._chain("collection.filter_date", window=window)

    def filter(self, predicate: PropertyFilter) -> "LazyCollection":
        """Keep scenes whose metadata satisfies ``predicate``."""
        return self._chain("collection.filter", predicate=predicate)

    def map(self, op: str, **params: Any) -> "LazyCollection":
        """Apply a single-input raster op (e.g. 'raster.scale') to every scene."""
        return self._chain("collection.map", fn=op, fn_params=params)

    def select(self, names: Sequence[str]) -> "LazyCollection":
        return self.map("raster.select", names=tuple(names))

    def rename(self, names: Sequence[str]) -> "LazyCollection":
        return self.map("raster.rename", names=tuple(names))

    def scale(self, factor: float, offset: float = 0.0) -> "LazyCollection":
        """Per-scene ``value * factor + offset``."""
        return self.map("raster.scale", factor=float(factor), offset=float(offset))

    def normalized_difference(self, band_a: str, band_b: str, name: str = "nd") -> "LazyCollection":
        return self.map("raster.normalized_difference", band_a=band_a, band_b=band_b, name=name)

    def mask_range(self, low: float, high: float, band: Optional[str] = None) -> "LazyCollection":
        """Invalidate scene pixels outside the open interval (low, high)."""
        return self.map("raster.mask_range", low=float(low), high=float(high), band=band)

    def size(self) -> "LazyValue":
        return LazyValue(Node("collection.size", (self.node,)))

    def first(self) -> "LazyRaster":
        """Earliest scene (all-invalid raster when the series is empty)."""
        return LazyRaster(Node("collection.first", (self.node,)))

    def reduce(
        self,
        reducer: str = "median",
        bands: Optional[Sequence[str]] = None,
        scale_factor: Optional[float] = None,
        offset: Optional[float] = None,
    ) -> "LazyRaster":
        return LazyRaster(
            Node(
                "collection.reduce",
                (self.node,),
                {
                    "reducer": reducer,
                    "bands": tuple(bands) if bands is not None else None,
                    "scale_factor": scale_factor,
                    "offset": offset,
                },
            )
        )

    def median(self) -> "LazyRaster":
        return self.reduce("median")

    def mode(self) -> "LazyRaster":
        return self.reduce("mode")

    def mean(self) -> "LazyRaster":
        return self.reduce("mean")


class LazyRaster(_Lazy):
    """Lazy single- or multi-band raster."""

    __slots__ = ()

    @classmethod
    def literal(cls, raster: Raster) -> "LazyRaster":
        """Wrap a concrete raster (fingerprinted by content)."""
        return cls(Node("raster.literal", params={"raster": raster}))

    @classmethod
    def wrap(cls, value: Union[Raster, "LazyRaster"]) -> "LazyRaster":
        if isinstance(value, LazyRaster):
            return value
        if isinstance(value, Raster):
            return cls.literal(value)
        raise TypeError(f"Expected Raster or LazyRaster, got {type(value).__name__}")

    @classmethod
    def constant(cls, grid: GridSpec, value: float, name: str = "constant") -> "LazyRaster":
        return cls(Node("raster.constant", params={"grid": grid, "value": float(value), "name": name}))

    def _chain(self, op: str, /, *others: "LazyRaster", **params: Any) -> "LazyRaster":
        inputs = (self.node,) + tuple(o.node for o in others)
        return LazyRaster(Node(op, inputs, params))

    # -- band management -------------------------------------------------

    def select(self, names: Union[str, Sequence[str]]) -> "LazyRaster":
        names = (names,) if isinstance(names, str) else tuple(names)
        return self._chain("raster.select", names=names)

    def rename(self, names: Union[str, Sequence[str]]) -> "LazyRaster":
        names = (names,) if isinstance(names, str) else tuple(names)
        return self._chain("raster.rename", names=names)

    def add_bands(self, other: "LazyRaster") -> "LazyRaster":
        return self._chain("raster.add_bands", LazyRaster.wrap(other))

    def add_constant(self, name: str = "constant") -> "LazyRaster":
        """Prepend a band of ones (regression intercept)."""
        return self._chain("raster.add_constant", name=name)

    def scale(self, factor: float, offset: float = 0.0) -> "LazyRaster":
        return self._chain("raster.scale", factor=float(factor), offset=float(offset))

    def reduce_bands(self, reducer: str = "sum", name: str = "sum") -> "LazyRaster":
        return self._chain("raster.reduce_bands", reducer=reducer, name=name)

    # -- algebra -----------------------------------------------------------

    def _binary(self, other: Union["LazyRaster", Raster, Number], op: str) -> "LazyRaster":
        if isinstance(other, (LazyRaster, Raster)):
            return self._chain("raster.binary", LazyRaster.wrap(other), op=op)
        return self._chain("raster.binary", op=op, value=float(other))

    def add(self, other) -> "LazyRaster":
        return self._binary(other, "add")

    def subtract(self, other) -> "LazyRaster":
        return self._binary(other, "subtract")

    def multiply(self, other) -> "LazyRaster":
        return self._binary(other, "multiply")

    def divide(self, other) -> "LazyRaster":
        return self._binary(other, "divide")

    def pow(self, other) -> "LazyRaster":
        return self._binary(other, "pow")

    def gt(self, other) -> "LazyRaster":
        return self._binary(other, "gt")

    def gte(self, other) -> "LazyRaster":
        return self._binary(other, "gte")

    def lt(self, other) -> "LazyRaster":
        return self._binary(other, "lt")

    def lte(self, other) -> "LazyRaster":
        return self._binary(other, "lte")

    def eq(self, other) -> "LazyRaster":
        return self._binary(other, "eq")

    def neq(self, other) -> "LazyRaster":
        return self._binary(other, "neq")

    def and_(self, other) -> "LazyRaster":
        return self._binary(other, "and")

    def or_(self, other) -> "LazyRaster":
        return self._binary(other, "or")

    def not_(self) -> "LazyRaster":
        return self._chain("raster.unary", op="not")

    def abs(self) -> "LazyRaster":
        return self._chain("raster.unary", op="abs")

    def sqrt(self) -> "LazyRaster":
        return self._chain("raster.unary", op="sqrt")

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
    __pow__ = pow

    # -- indices and masks ---------------------------------------------------

    def normalized_difference(self, band_a: str, band_b: str, name: str = "nd") -> "LazyRaster":
        return self._chain("raster.normalized_difference", band_a=band_a, band_b=band_b, name=name)

    def categorical_mask(
        self, class_value: float, band: Optional[str] = None, name: str = "mask"
    ) -> "LazyRaster":
        return self._chain("raster.categorical_mask", class_value=float(class_value), band=band, name=name)

    def threshold_mask(
        self, threshold: float, band: Optional[str] = None, name: str = "mask"
    ) -> "LazyRaster":
        return self._chain("raster.threshold_mask", threshold=float(threshold), band=band, name=name)

    def range_mask(
        self, low: float, high: float, band: Optional[str] = None, name: str = "mask"
    ) -> "LazyRaster":
        return self._chain("raster.range_mask", low=float(low), high=float(high), band=band, name=name)

    def mask_range(self, low: float, high: float, band: Optional[str] = None) -> "LazyRaster":
        return self._chain("raster.mask_range", low=float(low), high=float(high), band=band)

    def update_mask(self, mask: "LazyRaster") -> "LazyRaster":
        """Invalidate pixels where ``mask`` is zero or invalid."""
        return self._chain("raster.update_mask", LazyRaster.wrap(mask))

    def self_mask(self) -> "LazyRaster":
        return self._chain("raster.self_mask")

    def unmask(self, value: float = 0.0) -> "LazyRaster":
        return self._chain("raster.unmask", value=float(value))

    def clip(self, region: RegionGeometry) -> "LazyRaster":
        return self._chain("raster.clip", region=region)

    def pixel_area(self, name: str = "area") -> "LazyRaster":
        """Cell area in km² on this raster's grid."""
        return self._chain("raster.pixel_area", name=name)

    # -- models --------------------------------------------------------------

    def apply_coefficients(self, coefficients: "LazyValue", name: str = "estimate") -> "LazyRaster":
        return LazyRaster(
            Node("raster.apply_coefficients", (self.node, coefficients.node), {"name": name})
        )

    def classify(
        self, thresholds: "LazyValue", band: Optional[str] = None, name: str = "class"
    ) -> "LazyRaster":
        return LazyRaster(
            Node("raster.classify", (self.node, thresholds.node), {"band": band, "name": name})
        )

    def class_mask(self, class_value: int) -> "LazyRaster":
        return self._chain("raster.class_mask", class_value=int(class_value))

    # -- reductions ------------------------------------------------------------

    def reduce_region(
        self,
        reducer: str,
        region: RegionGeometry,
        scale: Optional[float] = None,
        policy: Optional[ReductionPolicy] = None,
    ) -> "LazyValue":
        """Reduce every band over ``region``; evaluates to a ``Reduction``."""
        return LazyValue(
            Node(
                "reduce.region",
                (self.node,),
                {"region": region, "reducer": reducer, "scale": scale, "policy": policy},
            )
        )

    def sample(
        self,
        region: RegionGeometry,
        scale: Optional[float] = None,
        num_pixels: Optional[int] = None,
        seed: Optional[int] = None,
        geometries: bool = False,
    ) -> "LazyValue":
        """Sample valid pixels; evaluates to a DataFrame."""
        return LazyValue(
            Node(
                "reduce.sample",
                (self.node,),
                {
                    "region": region,
                    "scale": scale,
                    "num_pixels": num_pixels,
                    "seed": seed,
                    "geometries": geometries,
                },
            )
        )


class LazyValue(_Lazy):
    """Lazy scalar or result record.

    Arithmetic propagates missing values: any None operand gives None.
    """

    __slots__ = ()

    @classmethod
    def constant(cls, value: Any) -> "LazyValue":
        return cls(Node("value.constant", params={"value": value}))

    @staticmethod
    def if_nonempty(collection: LazyCollection, value: "LazyValue") -> "LazyValue":
        """``Maybe`` of ``value``, absent without evaluating it when the series is empty."""
        return LazyValue(Node("value.if_nonempty", (collection.node, value.node)))

    def get(self, key: Any = None) -> "LazyValue":
        """Scalar field of a result (band of a Reduction, metric of an AccuracyReport, ...)."""
        return LazyValue(Node("value.get", (self.node,), {"key": key}))

    def _binary(self, other: Union["LazyValue", Number], op: str) -> "LazyValue":
        if isinstance(other, LazyValue):
            return LazyValue(Node("value.binary", (self.node, other.node), {"op": op}))
        return LazyValue(Node("value.binary", (self.node,), {"op": op, "value": float(other)}))

    def add(self, other) -> "LazyValue":
        return self._binary(other, "add")

    def subtract(self, other) -> "LazyValue":
        return self._binary(other, "subtract")

    def multiply(self, other) -> "LazyValue":
        return self._binary(other, "multiply")

    def divide(self, other) -> "LazyValue":
        return self._binary(other, "divide")

    def sqrt(self) -> "LazyValue":
        return LazyValue(Node("value.unary", (self.node,), {"op": "sqrt"}))

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
