"""
Tests for SurvivalDesign and the model frame that encodes covariates.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from pysurvstats.core.exceptions import (
    DimensionError,
    InvalidCovariateVectorError,
    ValidationError,
)
from pysurvstats.datasets import Flag, Sex, Treatment
from pysurvstats.survival import EventTable, SurvivalDesign
from pysurvstats.survival._frame import encode_treatment, interaction_columns


def _table():
    rx = [Treatment.OBSERVATION, Treatment.LEVAMISOLE, Treatment.LEVAMISOLE_5FU] * 4
    sex = [Sex.FEMALE, Sex.MALE] * 6
    node4 = [Flag.NO, Flag.NO, Flag.YES, Flag.YES] * 3
    records = [
        {"id": i + 1, "time": float(10 + i), "event": i % 3 != 0,
         "rx": rx[i], "sex": sex[i], "node4": node4[i], "age": 40.0 + 2 * i}
        for i in range(12)
    ]
    return EventTable.from_records(records)


# =====================================================================
# for_survival
# =====================================================================


class TestForSurvival:
    """Array-based construction and validation."""

    def test_basic(self):
        design = SurvivalDesign.for_survival([1, 2, 3], [1, 0, True])
        assert design.n == 3
        assert design.n_events == 2
        assert design.p is None
        assert design.X is None
        assert design.strata_codes() == ((None,), None)

    def test_vector_x_and_default_names(self):
        design = SurvivalDesign.for_survival([1, 2, 3], [1, 0, 1], [0.1, 0.2, 0.3])
        assert design.X.shape == (3, 1)
        assert design.names == ("x0",)

    def test_custom_names(self):
        design = SurvivalDesign.for_survival(
            [1, 2, 3], [1, 0, 1], np.ones((3, 2)), names=["a", "b"],
        )
        assert design.names == ("a", "b")

    def test_names_length_mismatch(self):
        with pytest.raises(DimensionError, match="names must have 2 entries"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 0, 1], np.ones((3, 2)), names=["a"])

    def test_empty(self):
        with pytest.raises(ValidationError, match="at least one observation"):
            SurvivalDesign.for_survival([], [])

    def test_length_mismatch(self):
        with pytest.raises(DimensionError, match="same length"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 0])

    def test_negative_time(self):
        with pytest.raises(ValidationError, match="time"):
            SurvivalDesign.for_survival([1, -2, 3], [1, 0, 1])

    def test_non_binary_event(self):
        with pytest.raises(ValidationError, match="event"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 2, 0])

    def test_nan_in_x(self):
        with pytest.raises(ValidationError, match="non-finite"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 0, 1], [0.1, np.nan, 0.3])

    def test_x_rows_mismatch(self):
        with pytest.raises(DimensionError, match="X must have 3 rows"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 0, 1], np.ones((2, 1)))

    def test_strata(self):
        design = SurvivalDesign.for_survival(
            [1, 2, 3, 4], [1, 0, 1, 1], strata=["b", "a", "b", "a"],
        )
        levels, codes = design.strata_codes()
        assert levels == ("a", "b")
        assert_array_equal(codes, [1, 0, 1, 0])

    def test_strata_length_mismatch(self):
        with pytest.raises(DimensionError, match="strata must have 3 elements"):
            SurvivalDesign.for_survival([1, 2, 3], [1, 0, 1], strata=["a", "b"])

    def test_frozen(self):
        design = SurvivalDesign.for_survival([1, 2], [1, 0])
        with pytest.raises(AttributeError):
            design.time = np.array([3.0, 4.0])


# =====================================================================
# from_table: encoding
# =====================================================================


class TestFromTable:
    """Treatment coding, interactions and strata from an EventTable."""

    def test_time_and_event_follow_table(self):
        table = _table()
        design = SurvivalDesign.from_table(table)
        assert_array_equal(design.time, table.time)
        assert_array_equal(design.event, table.event)
        assert design.X is None
        assert design.frame is None

    def test_treatment_coding(self):
        design = SurvivalDesign.from_table(_table(), ["rx", "age"])
        assert design.names == ("rx[Lev]", "rx[Lev+5FU]", "age")
        assert_array_equal(design.X[:3, :2], [[0, 0], [1, 0], [0, 1]])
        assert_allclose(design.X[:, 2], 40.0 + 2 * np.arange(12))

    def test_frame_metadata(self):
        design = SurvivalDesign.from_table(_table(), ["rx", "age"])
        frame = design.frame
        assert frame.p == 3
        assert frame.required == ("rx", "age")
        assert frame.levels["rx"][0] is Treatment.OBSERVATION
        assert [t.kind for t in frame.terms] == ["categorical", "numeric"]
        assert_allclose(frame.means, design.X.mean(axis=0))

    def test_interaction(self):
        design = SurvivalDesign.from_table(
            _table(), ["node4", "age"], interactions=[("node4", "age")],
        )
        assert design.names == ("node4[yes]", "age", "node4[yes]:age")
        assert_allclose(design.X[:, 2], design.X[:, 0] * design.X[:, 1])

    def test_interaction_only_components(self):
        design = SurvivalDesign.from_table(_table(), interactions=[("sex", "node4")])
        assert design.names == ("sex[male]:node4[yes]",)
        assert design.frame.required == ("sex", "node4")

    def test_strata(self):
        design = SurvivalDesign.from_table(_table(), ["age"], strata=["sex"])
        assert design.strata[0] == (Sex.FEMALE,)
        assert design.frame.strata == ("sex",)
        assert design.frame.strata_levels == ((Sex.FEMALE,), (Sex.MALE,))
        assert design.frame.required == ("age", "sex")

    def test_strata_only(self):
        design = SurvivalDesign.from_table(_table(), strata=["sex", "node4"])
        assert design.X is None
        assert len(design.frame.strata_levels) == 4

    def test_covariate_used_as_stratum(self):
        with pytest.raises(ValidationError, match="both modeled and used as strata"):
            SurvivalDesign.from_table(_table(), ["sex"], strata=["sex"])

    def test_duplicate_covariates(self):
        with pytest.raises(ValidationError, match="duplicates"):
            SurvivalDesign.from_table(_table(), ["age", "age"])

    def test_self_interaction(self):
        with pytest.raises(ValidationError, match="distinct"):
            SurvivalDesign.from_table(_table(), interactions=[("age", "age")])

    def test_single_level_categorical(self):
        table = _table().subset(lambda s: s["sex"] is Sex.MALE)
        with pytest.raises(ValidationError, match="single level"):
            SurvivalDesign.from_table(table, ["sex"])

    def test_unknown_covariate(self):
        with pytest.raises(ValidationError, match="missing for 12 subject"):
            SurvivalDesign.from_table(_table(), ["bmi"])


# =====================================================================
# ModelFrame query encoding
# =====================================================================


class TestModelFrameEncode:
    """Encoding prediction queries the same way as the fitting data."""

    @pytest.fixture
    def frame(self):
        return SurvivalDesign.from_table(
            _table(), ["rx", "age"], interactions=[("node4", "age")], strata=["sex"],
        ).frame

    def test_encode_matches_design_rows(self):
        table = _table()
        design = SurvivalDesign.from_table(table, ["rx", "age"], interactions=[("node4", "age")])
        for i in (0, 4, 11):
            row = design.frame.encode(table[i].covariates)
            assert_allclose(row, design.X[i])

    def test_encode_many(self, frame):
        rows = [
            {"rx": Treatment.LEVAMISOLE, "age": 50, "node4": Flag.YES, "sex": Sex.MALE},
            {"rx": Treatment.OBSERVATION, "age": 30, "node4": Flag.NO, "sex": Sex.FEMALE},
        ]
        X = frame.encode_many(rows)
        assert X.shape == (2, frame.p)
        assert_allclose(X, [[1, 0, 50, 50], [0, 0, 30, 0]])
        assert frame.encode_many([]).shape == (0, frame.p)

    def test_stratum_of(self, frame):
        query = {"rx": Treatment.LEVAMISOLE, "age": 50, "node4": Flag.YES, "sex": Sex.MALE}
        assert frame.stratum_of(query) == (Sex.MALE,)

    def test_missing_reports_all_names(self, frame):
        with pytest.raises(InvalidCovariateVectorError) as exc_info:
            frame.encode({"rx": Treatment.LEVAMISOLE})
        assert exc_info.value.missing == ("age", "node4", "sex")

    def test_unseen_level(self, frame):
        query = {"rx": "Placebo", "age": 50, "node4": Flag.YES, "sex": Sex.MALE}
        with pytest.raises(InvalidCovariateVectorError, match="unseen categorical"):
            frame.encode(query)

    def test_numeric_given_level(self, frame):
        query = {"rx": Treatment.LEVAMISOLE, "age": "old", "node4": Flag.YES, "sex": Sex.MALE}
        with pytest.raises(InvalidCovariateVectorError, match="numeric in the model"):
            frame.encode(query)


# =====================================================================
# Coding helpers
# =====================================================================


class TestCodingHelpers:
    """encode_treatment / interaction_columns."""

    def test_encode_treatment(self):
        X = encode_treatment(["b", "a", "c", "b"], ("a", "b", "c"))
        assert_array_equal(X, [[1, 0], [0, 0], [0, 1], [1, 0]])

    def test_interaction_columns(self):
        A = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])
        B = np.array([[2.0], [3.0], [4.0]])
        assert_array_equal(interaction_columns(A, B), [[2.0, 0.0], [0.0, 3.0], [0.0, 0.0]])
