"""Utility modules for FoldSmith."""

from foldsmith.utils.errors import (
    ConfigError,
    CRSMismatchError,
    EmptyIndexError,
    EmptyInputError,
    FoldSmithError,
    PartitionDegenerate,
    PointsExcludedWarning,
    SearchNotConverged,
    check_choice,
    check_fraction,
    check_int,
    check_real,
    format_parameter_error,
    raise_parameter_error,
)

__all__ = [
    "FoldSmithError",
    "ConfigError",
    "EmptyInputError",
    "EmptyIndexError",
    "CRSMismatchError",
    "PartitionDegenerate",
    "SearchNotConverged",
    "PointsExcludedWarning",
    "check_choice",
    "check_fraction",
    "check_int",
    "check_real",
    "format_parameter_error",
    "raise_parameter_error",
]
