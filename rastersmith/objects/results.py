"""Terminal result records produced by the pipeline.

These are the values handed to presentation and export collaborators:
scalars wrapped with an approximation flag, coefficient vectors, thresholds,
area records and time-series records.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

import numpy as np

from rastersmith.objects.region import TimeWindow
from rastersmith.utils.errors import EmptyInputError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """Explicit optional value.

    Missing data (an empty collection for a month, a region with no valid
    pixels) is carried as ``Maybe.none()`` instead of raising, and consumers
    must check ``is_present`` or use ``default``.

    Attributes:
        value: Wrapped value, None when absent.
        is_present: Whether a value exists.
    """

    value: Optional[T] = None
    is_present: bool = False

    @classmethod
    def some(cls, value: T) -> "Maybe[T]":
        return cls(value=value, is_present=True)

    @classmethod
    def none(cls) -> "Maybe[T]":
        return cls()

    @classmethod
    def of(cls, value: Optional[T]) -> "Maybe[T]":
        """Wrap ``value``; None becomes absent."""
        return cls.none() if value is None else cls.some(value)

    def map(self, func: Callable[[T], U]) -> "Maybe[U]":
        if not self.is_present:
            return Maybe.none()
        return Maybe.of(func(self.value))

    def default(self, fallback: U) -> "T | U":
        return self.value if self.is_present else fallback

    def unwrap(self) -> T:
        """Return the value or raise EmptyInputError when absent."""
        if not self.is_present:
            raise EmptyInputError(
                "Value is missing (no valid input data)",
                suggestion="Check is_present or use default() for empty periods",
            )
        return self.value

    def __repr__(self) -> str:
        """String representation."""
        return f"Maybe.some({self.value!r})" if self.is_present else "Maybe.none()"


@dataclass(frozen=True)
class Reduction:
    """Result of reducing raster bands over a region.

    Attributes:
        reducer: Reducer name ('mean', 'sum', ...).
        values: Band name to scalar; None where a mean-like reducer saw no pixels.
        pixel_count: Valid pixels in the region at the evaluated scale.
        used_count: Pixels actually read (smaller under best-effort sampling).
        approximate: True when the result comes from a best-effort subset.
    """

    reducer: str
    values: Mapping[str, Optional[float]]
    pixel_count: int
    used_count: int
    approximate: bool = False

    def get(self, band: Optional[str] = None) -> Optional[float]:
        """Value of ``band`` (or of the only band when omitted)."""
        if band is None:
            if len(self.values) != 1:
                raise KeyError(
                    f"Reduction has {len(self.values)} bands, name one of {list(self.values)}"
                )
            return next(iter(self.values.values()))
        return self.values[band]


@dataclass(frozen=True)
class CoefficientVector:
    """Fitted linear coefficients, one per predictor band (constant included).

    Attributes:
        band_names: Predictor bands in design-matrix order.
        values: Coefficients aligned with ``band_names``.
        n_samples: Samples used for the fit.
        iterations: Reweighting iterations performed.
        approximate: True when fitted on a best-effort subset.
    """

    band_names: tuple[str, ...]
    values: tuple[float, ...]
    n_samples: int = 0
    iterations: int = 0
    approximate: bool = False

    def __post_init__(self) -> None:
        """Validate lengths."""
        object.__setattr__(self, "band_names", tuple(self.band_names))
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        if len(self.band_names) != len(self.values):
            raise ValueError(
                f"{len(self.band_names)} band names for {len(self.values)} coefficients"
            )

    def __len__(self) -> int:
        return len(self.values)

    def as_dict(self) -> dict[str, float]:
        return dict(zip(self.band_names, self.values))

    def as_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=np.float64)


@dataclass(frozen=True)
class ClassificationThresholds:
    """Ordered cut points estimated from a pixel sample.

    Attributes:
        percentiles: Requested percentiles (ascending).
        values: Cut points aligned with ``percentiles``, non-decreasing.
            Empty when the sample held no valid pixels.
        sample_size: Number of sampled values.
        seed: Seed used to draw the sample (None = nondeterministic).
    """

    percentiles: tuple[float, ...]
    values: tuple[float, ...]
    sample_size: int = 0
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate monotonicity."""
        object.__setattr__(self, "percentiles", tuple(float(p) for p in self.percentiles))
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        if self.values and len(self.values) != len(self.percentiles):
            raise ValueError("values and percentiles must have the same length")
        if any(b < a for a, b in zip(self.values, self.values[1:])):
            raise ValueError(f"thresholds must be non-decreasing, got {self.values}")

    @property
    def is_empty(self) -> bool:
        return not self.values

    @property
    def n_classes(self) -> int:
        return len(self.percentiles) + 1


@dataclass(frozen=True)
class AreaRecord:
    """Area of one class or category.

    Attributes:
        label: Class or category label.
        area_km2: Area in km².
        approximate: True when computed from a best-effort subset.
    """

    label: str
    area_km2: float
    approximate: bool = False


@dataclass(frozen=True)
class AccuracyReport:
    """Agreement between an estimate and a reference raster.

    Fields are None when the region held no pixel valid in both rasters.
    """

    rmse: Optional[float]
    mae: Optional[float] = None
    r2: Optional[float] = None
    bias: Optional[float] = None
    n: int = 0
    approximate: bool = False

    @property
    def is_present(self) -> bool:
        return self.rmse is not None


@dataclass(frozen=True)
class TimeSeriesRecord:
    """One bucket of a time series.

    Attributes:
        index: 1-based bucket index, strictly increasing across a series.
        window: Time window of the bucket.
        values: Scalar per series name; None when the bucket had no input.
    """

    index: int
    window: TimeWindow
    values: Mapping[str, Optional[float]] = field(default_factory=dict)

    def get(self, name: str) -> Optional[float]:
        return self.values.get(name)

    @property
    def is_null(self) -> bool:
        """True when every value in the bucket is missing."""
        return all(v is None for v in self.values.values())


def as_optional_float(value: Any) -> Optional[float]:
    """Collapse Maybe / Reduction / numpy scalars into ``float | None``."""
    if isinstance(value, Maybe):
        value = value.value if value.is_present else None
    if isinstance(value, Reduction):
        value = value.get()
    if isinstance(value, AreaRecord):
        value = value.area_km2
    if value is None:
        return None
    value = float(value)
    return None if np.isnan(value) else value
