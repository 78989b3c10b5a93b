"""Standardized errors for RasterSmith.

Two families of failure are kept distinct. Structural
failures (a model that cannot be fit, a pixel budget that cannot be met, an
evaluation that timed out) raise one of the classes below, while missing data
(empty collections, out-of-range pixels) never raises and flows through the
pipeline as invalid pixels or ``Maybe.none()``.
"""

from typing import Any, Optional


class RasterSmithError(Exception):
    """Base exception for RasterSmith errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize RasterSmith error.

        Args:
            message: Primary error message.
            suggestion: Optional suggestion for fixing the error.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with suggestion if available."""
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class DataValidationError(RasterSmithError):
    """Error raised when data validation fails."""

    pass


class ParameterError(RasterSmithError):
    """Error raised when parameters are invalid."""

    pass


class EmptyInputError(RasterSmithError):
    """Error raised when a missing value is explicitly unwrapped.

    The pipeline never raises this on its own: an empty collection yields an
    all-invalid composite and null scalars. Only ``Maybe.unwrap()`` turns the
    missing marker into an exception.
    """

    pass


class DegenerateFitError(RasterSmithError):
    """Error raised when a regression cannot be fit.

    Raised when the sample count is below the number of coefficients or the
    design matrix is rank deficient.
    """

    pass


class BudgetExceededError(RasterSmithError):
    """Error raised when a reduction needs more pixels than allowed."""

    pass


class EvaluationTimeoutError(RasterSmithError):
    """Error raised when a terminal evaluation exceeds its timeout."""

    pass


class EvaluationCancelledError(RasterSmithError):
    """Error raised when an evaluation was cancelled, timed out, or its
    evaluator was closed before it finished.

    The evaluation stops at the next node boundary; memoised intermediate
    results stay valid.
    """

    pass


class UnknownSourceError(RasterSmithError):
    """Error raised when a collection id is not registered in the catalog."""

    pass


def format_validation_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> str:
    """Format a standardized validation error message.

    Args:
        message: Primary error message.
        expected: What was expected (optional).
        received: What was received (optional).
        suggestion: How to fix the error (optional).

    Returns:
        Formatted error message string.
    """
    parts = [message]
    if expected and received:
        parts.append(f"Expected: {expected}, Received: {received}")
    elif expected:
        parts.append(f"Expected: {expected}")
    elif received:
        parts.append(f"Received: {received}")
    if suggestion:
        parts.append(f"Suggestion: {suggestion}")
    return "\n".join(parts)


def format_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> str:
    """Format a standardized parameter error message.

    Args:
        parameter_name: Name of the invalid parameter.
        value: Invalid value that was provided.
        valid_values: List of valid values (optional).
        constraint: Constraint that was violated (optional).
        suggestion: How to fix the error (optional).

    Returns:
        Formatted error message string.
    """
    parts = [f"Invalid value for parameter '{parameter_name}': {value}"]
    if valid_values:
        parts.append(f"Valid values: {', '.join(map(str, valid_values))}")
    if constraint:
        parts.append(f"Constraint: {constraint}")
    if suggestion:
        parts.append(f"Suggestion: {suggestion}")
    return "\n".join(parts)


def raise_validation_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized validation error.

    Raises:
        DataValidationError: Always raises this exception.
    """
    error_msg = format_validation_error(message, expected, received, suggestion)
    raise DataValidationError(error_msg, suggestion=suggestion)


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized parameter error.

    Raises:
        ParameterError: Always raises this exception.
    """
    error_msg = format_parameter_error(
        parameter_name, value, valid_values, constraint, suggestion
    )
    raise ParameterError(error_msg, suggestion=suggestion)
