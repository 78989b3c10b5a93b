"""Layer 2: Primitives - Pure raster operations.

Functions here take and return objects from Layer 1 and never touch sources,
evaluators or presentation. ``rastersmith.primitives.ops`` binds them to the
operation names used by the lazy graph.
"""

from rastersmith.primitives.accuracy import accuracy_report
from rastersmith.primitives.algebra import binary_op, reduce_bands, unary_op
from rastersmith.primitives.change import CHANGE_CATEGORIES, detect_change
from rastersmith.primitives.classification import (
    class_masks,
    classify,
    quantile_thresholds,
    validate_percentiles,
)
from rastersmith.primitives.compositing import REDUCERS, composite
from rastersmith.primitives.geometry import (
    bounds_intersect,
    footprint_intersects,
    point_in_polygon,
    region_mask,
)
from rastersmith.primitives.indices import ndvi, ndwi, normalized_difference
from rastersmith.primitives.masks import (
    apply_mask,
    categorical_mask,
    range_mask,
    self_mask,
    threshold_mask,
)
from rastersmith.primitives.ops import OP_REGISTRY, get_op, register_op
from rastersmith.primitives.reducers import REGION_REDUCERS, reduce_region, sample_region
from rastersmith.primitives.regression import (
    CONSTANT_BAND,
    add_constant,
    apply_coefficients,
    fit_coefficients,
    robust_linear_regression,
)
from rastersmith.primitives.sampling import (
    DEFAULT_MAX_PIXELS,
    ReductionPolicy,
    apply_budget,
    draw_sample,
    region_pixels,
)
from rastersmith.primitives.zonal import mask_area, pixel_area

__all__ = [
    "CHANGE_CATEGORIES",
    "CONSTANT_BAND",
    "DEFAULT_MAX_PIXELS",
    "OP_REGISTRY",
    "REDUCERS",
    "REGION_REDUCERS",
    "ReductionPolicy",
    "accuracy_report",
    "add_constant",
    "apply_budget",
    "apply_coefficients",
    "apply_mask",
    "binary_op",
    "bounds_intersect",
    "footprint_intersects",
    "categorical_mask",
    "class_masks",
    "classify",
    "composite",
    "detect_change",
    "draw_sample",
    "fit_coefficients",
    "get_op",
    "mask_area",
    "ndvi",
    "ndwi",
    "normalized_difference",
    "pixel_area",
    "point_in_polygon",
    "quantile_thresholds",
    "range_mask",
    "reduce_bands",
    "reduce_region",
    "region_mask",
    "region_pixels",
    "register_op",
    "robust_linear_regression",
    "sample_region",
    "self_mask",
    "threshold_mask",
    "unary_op",
    "validate_percentiles",
]
