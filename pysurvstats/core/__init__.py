"""
Core infrastructure for pysurvstats.

Shared abstractions used by the survival estimators.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing and optimizer settings
"""

from pysurvstats.core.result import Result
from pysurvstats.core.exceptions import (
    SurvStatsError,
    ValidationError,
    DimensionError,
    InsufficientDataError,
    InvalidCovariateVectorError,
    NumericalError,
    SingularMatrixError,
    SingularInformationMatrixError,
    ConvergenceError,
    NonConvergenceError,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "SurvStatsError",
    "ValidationError",
    "DimensionError",
    "InsufficientDataError",
    "InvalidCovariateVectorError",
    "NumericalError",
    "SingularMatrixError",
    "SingularInformationMatrixError",
    "ConvergenceError",
    "NonConvergenceError",
]
