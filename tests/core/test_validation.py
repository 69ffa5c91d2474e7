"""
Tests for input validation utilities.

Validates every function in core/validation.py.
"""

import numpy as np
import pytest

from pysurvstats.core.exceptions import ValidationError
from pysurvstats.core.validation import (
    check_array,
    check_binary,
    check_choice,
    check_finite,
    check_nonnegative,
    check_positive,
    check_probability,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:
    """check_array converts to float64 and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "time")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_bool_accepted(self):
        result = check_array([True, False, True], "event")
        np.testing.assert_array_equal(result, [1.0, 0.0, 1.0])

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="time"):
            check_array(["a", "b"], "time")

    def test_mixed_types_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array([1, "a", None], "X")


# ═══════════════════════════════════════════════════════════════════════
# Value checks
# ═══════════════════════════════════════════════════════════════════════


class TestValueChecks:

    def test_finite_ok(self):
        check_finite(np.array([1.0, 2.0]), "X")

    def test_finite_reports_counts(self):
        with pytest.raises(ValidationError, match="1 NaN, 1 Inf"):
            check_finite(np.array([1.0, np.nan, np.inf]), "X")

    def test_nonnegative_allows_zero(self):
        check_nonnegative(np.array([0.0, 1.0]), "time")

    def test_nonnegative_rejects_negative(self):
        with pytest.raises(ValidationError, match="non-negative"):
            check_nonnegative(np.array([-1.0, 1.0]), "time")

    def test_positive_rejects_zero(self):
        with pytest.raises(ValidationError, match="strictly positive"):
            check_positive(np.array([0.0, 1.0]), "time")

    def test_binary(self):
        check_binary(np.array([0.0, 1.0, 1.0]), "event")
        with pytest.raises(ValidationError, match="0 and 1"):
            check_binary(np.array([0.0, 2.0]), "event")

    def test_binary_rejects_nan(self):
        with pytest.raises(ValidationError, match="0 and 1"):
            check_binary(np.array([0.0, np.nan]), "event")

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.5, 1.5])
    def test_probability_bounds(self, value):
        with pytest.raises(ValidationError, match=r"\(0, 1\)"):
            check_probability(value, "conf_level")

    def test_choice(self):
        check_choice("efron", ("efron", "breslow"), "ties")
        with pytest.raises(ValidationError, match="ties must be one of"):
            check_choice("exact", ("efron", "breslow"), "ties")
