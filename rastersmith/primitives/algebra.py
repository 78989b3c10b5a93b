"""Band algebra: arithmetic, comparisons and logical operators on rasters."""

from typing import Union

import numpy as np

from rastersmith.objects.raster import Raster

ARITHMETIC_OPS = {
    "add": np.add,
    "subtract": np.subtract,
    "multiply": np.multiply,
    "divide": np.divide,
    "pow": np.power,
}
COMPARISON_OPS = {
    "gt": np.greater,
    "gte": np.greater_equal,
    "lt": np.less,
    "lte": np.less_equal,
    "eq": np.equal,
    "neq": np.not_equal,
}
LOGICAL_OPS = {
    "and": np.logical_and,
    "or": np.logical_or,
}
UNARY_OPS = {
    "not": lambda a: np.logical_not(a).astype(np.float64),
    "abs": np.abs,
    "sqrt": np.sqrt,
    "negate": np.negative,
}
BINARY_OPS = tuple(ARITHMETIC_OPS) + tuple(COMPARISON_OPS) + tuple(LOGICAL_OPS)


def _operand_bands(left: Raster, right: Raster) -> list[np.ndarray]:
    if len(right.bands) == 1:
        return [right.band(right.band_names[0])] * len(left.bands)
    if len(right.bands) != len(left.bands):
        raise ValueError(
            f"Band count mismatch: {len(left.bands)} vs {len(right.bands)} "
            "(the right operand must have one band or the same number)"
        )
    return [right.band(n) for n in right.band_names]


def binary_op(left: Raster, right: Union[Raster, float], op: str) -> Raster:
    """Apply ``op`` band-wise; a single-band or scalar right operand broadcasts.

    Output keeps the left raster's band names. With a raster operand the
    result is valid where both inputs are valid; comparisons and logical
    operators yield 1.0/0.0.
    """
    if op in ARITHMETIC_OPS:
        func = ARITHMETIC_OPS[op]
    elif op in COMPARISON_OPS:
        func = COMPARISON_OPS[op]
    elif op in LOGICAL_OPS:
        func = LOGICAL_OPS[op]
    else:
        raise ValueError(f"Unknown operator {op!r}; expected one of {BINARY_OPS}")

    if isinstance(right, Raster):
        if right.grid != left.grid:
            right = right.resample(left.grid)
        operands = _operand_bands(left, right)
        mask = left.mask & right.mask
    else:
        operands = [float(right)] * len(left.bands)
        mask = left.mask

    bands = {}
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for (name, values), other in zip(left.bands.items(), operands):
            bands[name] = np.asarray(func(values, other), dtype=np.float64)
    return Raster(left.grid, bands, mask)


def unary_op(raster: Raster, op: str) -> Raster:
    """Apply a unary operator ('not', 'abs', 'sqrt', 'negate') to every band."""
    if op not in UNARY_OPS:
        raise ValueError(f"Unknown unary operator {op!r}; expected one of {tuple(UNARY_OPS)}")
    return raster.map_bands(UNARY_OPS[op])


def reduce_bands(raster: Raster, reducer: str = "sum", name: str = "sum") -> Raster:
    """Collapse all bands into one per pixel ('sum', 'mean', 'min' or 'max')."""
    funcs = {"sum": np.sum, "mean": np.mean, "min": np.min, "max": np.max}
    if reducer not in funcs:
        raise ValueError(f"reducer must be one of {tuple(funcs)}, got {reducer!r}")
    stack = np.stack(list(raster.bands.values()))
    return Raster(raster.grid, {name: funcs[reducer](stack, axis=0)}, raster.mask)
