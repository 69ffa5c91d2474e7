"""
Input validation utilities for pysurvstats.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pysurvstats.core.exceptions import ValidationError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Accepts any array-like (booleans included) and converts to numpy.
    Rejects inputs that result in object dtype or non-numeric data.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with floating dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if result.dtype != np.bool_ and not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_nonnegative(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify all values are >= 0.

    Raises:
        ValidationError: If any value is negative
    """
    if np.any(array < 0):
        n_neg = int(np.sum(array < 0))
        raise ValidationError(
            f"{name} must be non-negative ({n_neg} negative values, "
            f"min={float(np.min(array))})"
        )


def check_positive(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify all values are > 0 (required where log(time) is taken).

    Raises:
        ValidationError: If any value is zero or negative
    """
    if np.any(array <= 0):
        n_bad = int(np.sum(array <= 0))
        raise ValidationError(
            f"{name} must be strictly positive ({n_bad} values <= 0)"
        )


def check_binary(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains only 0 and 1.

    Raises:
        ValidationError: If any other value is present
    """
    unique = np.unique(array[~np.isnan(array)])
    if not np.all(np.isin(unique, [0.0, 1.0])) or np.any(np.isnan(array)):
        raise ValidationError(
            f"{name} must contain only 0 and 1, got unique values: {unique}"
        )


def check_probability(value: float, name: str) -> None:
    """
    Verify a scalar lies in the open interval (0, 1).

    Raises:
        ValidationError: If value is outside (0, 1)
    """
    if not 0.0 < value < 1.0:
        raise ValidationError(f"{name} must be in (0, 1), got {value}")


def check_choice(value: str, choices: tuple[str, ...], name: str) -> None:
    """
    Verify a string option is one of the allowed values.

    Raises:
        ValidationError: If value is not allowed
    """
    if value not in choices:
        allowed = ", ".join(f"'{c}'" for c in choices)
        raise ValidationError(
            f"{name} must be one of {allowed}, got '{value}'"
        )
