"""Utility modules for RasterSmith."""

from rastersmith.utils.errors import (
    BudgetExceededError,
    DataValidationError,
    DegenerateFitError,
    EmptyInputError,
    EvaluationCancelledError,
    EvaluationTimeoutError,
    ParameterError,
    RasterSmithError,
    UnknownSourceError,
    format_parameter_error,
    format_validation_error,
    raise_parameter_error,
    raise_validation_error,
)

__all__ = [
    "RasterSmithError",
    "DataValidationError",
    "ParameterError",
    "EmptyInputError",
    "DegenerateFitError",
    "BudgetExceededError",
    "EvaluationTimeoutError",
    "EvaluationCancelledError",
    "UnknownSourceError",
    "format_validation_error",
    "format_parameter_error",
    "raise_validation_error",
    "raise_parameter_error",
]
