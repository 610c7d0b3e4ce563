"""Standardized errors and warnings for FoldSmith.

Fatal problems (bad parameters, empty input, mismatched coordinate reference
systems) are exceptions raised before any fold is produced. Non-fatal
conditions (degenerate folds, searches that ran out of budget, points dropped
from a partition) are warnings: the result is still returned and the caller
decides what to do with it.
"""

import numbers
from typing import Any, Optional


class FoldSmithError(Exception):
    """Base exception for FoldSmith errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize FoldSmith error.

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


class ConfigError(FoldSmithError):
    """Error raised when a partitioning parameter is invalid."""

    pass


class EmptyInputError(FoldSmithError):
    """Error raised when there is nothing to partition."""

    pass


class EmptyIndexError(EmptyInputError):
    """Error raised when a spatial index is built from zero points."""

    pass


class CRSMismatchError(FoldSmithError):
    """Error raised when inputs use different coordinate reference systems."""

    pass


class PartitionDegenerate(UserWarning):
    """A fold has an empty or undersized train/test set."""


class SearchNotConverged(UserWarning):
    """A search exhausted its budget without meeting its tolerance."""


class PointsExcludedWarning(UserWarning):
    """Some points could not be placed in any fold."""


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


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized parameter error.

    Args:
        parameter_name: Name of the invalid parameter.
        value: Invalid value that was provided.
        valid_values: List of valid values (optional).
        constraint: Constraint that was violated (optional).
        suggestion: How to fix the error (optional).

    Raises:
        ConfigError: Always raises this exception.
    """
    # ConfigError appends the suggestion itself.
    error_msg = format_parameter_error(parameter_name, value, valid_values, constraint)
    raise ConfigError(
        error_msg,
        suggestion=suggestion,
        details={"parameter": parameter_name, "value": value},
    )


def check_choice(parameter_name: str, value: Any, choices: tuple) -> None:
    """Raise ConfigError unless ``value`` is one of ``choices``."""
    if value not in choices:
        raise_parameter_error(parameter_name, value, valid_values=list(choices))


def is_integer(value: Any) -> bool:
    """True for integral numbers (numpy integers included), False for bools."""
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def check_int(parameter_name: str, value: Any, minimum: int) -> None:
    """Raise ConfigError unless ``value`` is an integer ``>= minimum``."""
    if not is_integer(value) or value < minimum:
        raise_parameter_error(
            parameter_name, value, constraint=f"must be an integer >= {minimum}"
        )


def check_real(
    parameter_name: str, value: Any, minimum: float, inclusive: bool = True
) -> None:
    """Raise ConfigError unless ``value`` is a number above ``minimum``.

    NaN never passes.
    """
    if _is_real(value):
        if inclusive and value >= minimum:
            return
        if not inclusive and value > minimum:
            return
    sign = ">=" if inclusive else ">"
    raise_parameter_error(
        parameter_name, value, constraint=f"must be a number {sign} {minimum}"
    )


def check_fraction(parameter_name: str, value: Any) -> None:
    """Raise ConfigError unless ``0 < value < 1``."""
    if not (_is_real(value) and 0.0 < value < 1.0):
        raise_parameter_error(
            parameter_name, value, constraint="must lie in the open interval (0, 1)"
        )
