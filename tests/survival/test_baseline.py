"""
Tests for basehaz() and Cox model predictions.

R reference code:
    fit <- coxph(Surv(time, event) ~ x1 + x2)
    basehaz(fit, centered=TRUE)
    survfit(fit, newdata=data.frame(x1=..., x2=...))
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pysurvstats.core.exceptions import InvalidCovariateVectorError
from pysurvstats.datasets import Flag, Sex, Treatment
from pysurvstats.survival import (
    BaselineHazardSolution,
    CurvePoints,
    SurvivalDesign,
    basehaz,
    coxph,
    kaplan_meier,
)
from pysurvstats.survival._baseline import breslow_hazard


TIME = np.array([3, 5, 7, 11, 13, 15, 2, 4, 6, 8,
                 10, 12, 14, 16, 18, 20, 1, 9, 17, 19], dtype=np.float64)
EVENT = np.array([1, 1, 0, 1, 1, 0, 1, 0, 1, 1,
                  0, 1, 1, 0, 1, 1, 1, 1, 0, 1], dtype=np.float64)
X = np.column_stack([
    [0.5, 1.2, -0.3, 0.8, -0.5, 1.0, -1.2, 0.3, 0.7, -0.8,
     1.5, -0.2, 0.4, -1.0, 0.9, -0.6, 1.1, -0.4, 0.2, -0.1],
    [1, 0, 1, 0, 1, 1, 0, 1, 0, 1,
     0, 1, 0, 1, 1, 0, 0, 1, 0, 1],
]).astype(np.float64)
STRATA = ["early"] * 10 + ["late"] * 10


@pytest.fixture(scope="module")
def fit():
    return coxph(TIME, EVENT, X)


@pytest.fixture(scope="module")
def stratified_fit():
    return coxph(TIME, EVENT, X, strata=STRATA)


class TestBreslowHazard:
    """Breslow increments h0(t) = d / Σ_{risk} exp(eta)."""

    def test_zero_eta_is_nelson_aalen(self):
        base = breslow_hazard(TIME, EVENT, np.zeros(20), centered=True)
        km = kaplan_meier(TIME, EVENT)
        assert_allclose(base.time, km.time)
        assert_allclose(base.cumulative_hazard, km.cumulative_hazard, rtol=1e-12)
        assert_allclose(base.n_risk, km.n_risk)

    def test_matches_direct_sum(self, fit):
        base = basehaz(fit)
        eta = (X - X.mean(axis=0)) @ fit.coefficients
        for k in (0, 5, len(base.time) - 1):
            t = base.time[k]
            at_risk = TIME >= t
            deaths = np.sum((TIME == t) & (EVENT == 1))
            assert base.hazard[k] == pytest.approx(
                deaths / np.sum(np.exp(eta[at_risk])), rel=1e-10,
            )

    def test_cumulative_nondecreasing(self, fit):
        base = basehaz(fit)
        assert np.all(base.hazard > 0)
        assert np.all(np.diff(base.cumulative_hazard) >= 0)
        assert_allclose(base.cumulative_hazard, np.cumsum(base.hazard))

    def test_centered_vs_uncentered(self, fit):
        centered = basehaz(fit, centered=True)
        raw = basehaz(fit, centered=False)
        assert centered.centered is True
        assert raw.centered is False
        factor = np.exp(X.mean(axis=0) @ fit.coefficients)
        assert_allclose(raw.cumulative_hazard * factor, centered.cumulative_hazard,
                        rtol=1e-10)

    def test_step_evaluation(self, fit):
        base = basehaz(fit)
        assert base.cumulative_hazard_at(0.5) == 0.0
        assert base.cumulative_hazard_at(base.time[2]) == pytest.approx(
            base.cumulative_hazard[2])
        assert_allclose(base.cumulative_hazard_at([100.0]), base.cumulative_hazard[-1:])

    def test_solution_surface(self, fit):
        base = fit.baseline_hazard()
        assert isinstance(base, BaselineHazardSolution)
        assert base.strata == (None,)
        assert base.backend_name == "cpu_basehaz"
        curve = base.curve()
        assert curve.kind == "cumulative_hazard"
        assert "BaselineHazardSolution" in repr(base)


class TestStratifiedBaseline:
    """One baseline per stratum."""

    def test_one_curve_per_stratum(self, stratified_fit):
        base = basehaz(stratified_fit)
        assert base.strata == ("early", "late")
        early = base.for_stratum("early")
        late = base.for_stratum("late")
        assert early.time.max() <= 15
        assert late.time.min() >= 1

    def test_single_curve_accessors_raise(self, stratified_fit):
        base = basehaz(stratified_fit)
        with pytest.raises(ValueError, match="stratified"):
            base.cumulative_hazard

    def test_unknown_stratum(self, stratified_fit):
        with pytest.raises(InvalidCovariateVectorError, match="unknown stratum"):
            basehaz(stratified_fit).for_stratum("middle")

    def test_stratum_without_events_is_flat(self):
        time = np.concatenate([TIME, [30.0, 31.0]])
        event = np.concatenate([EVENT, [0.0, 0.0]])
        Xe = np.vstack([X, [[0.1, 1.0], [0.2, 0.0]]])
        result = coxph(time, event, Xe, strata=["a"] * 20 + ["b"] * 2)
        base = basehaz(result)
        assert len(base.for_stratum("b").time) == 0
        assert base.cumulative_hazard_at(40.0, stratum="b") == 0.0
        curve = result.predict_survival([0.0, 0.0], times=[5.0, 40.0], stratum="b")
        assert_allclose(curve.value, [1.0, 1.0])


class TestCoxPrediction:
    """predict_survival / predict_cumulative_hazard."""

    def test_average_subject_gets_baseline(self, fit):
        base = basehaz(fit)
        curve = fit.predict_survival(X.mean(axis=0))
        assert isinstance(curve, CurvePoints)
        assert curve.kind == "survival"
        assert_allclose(curve.time, base.time)
        assert_allclose(curve.value, np.exp(-base.cumulative_hazard), rtol=1e-10)

    def test_survival_is_decreasing_probability(self, fit):
        curve = fit.predict_survival({"x0": 0.3, "x1": 1.0})
        assert np.all(curve.value > 0)
        assert np.all(curve.value <= 1)
        assert np.all(np.diff(curve.value) <= 0)

    def test_cumulative_hazard_consistent(self, fit):
        query = {"x0": -0.5, "x1": 0.0}
        surv = fit.predict_survival(query)
        cumhaz = fit.predict_cumulative_hazard(query)
        assert cumhaz.kind == "cumulative_hazard"
        assert_allclose(surv.value, np.exp(-cumhaz.value), rtol=1e-12)

    def test_proportional_hazards(self, fit):
        low = fit.predict_cumulative_hazard({"x0": 0.0, "x1": 0.0})
        high = fit.predict_cumulative_hazard({"x0": 1.0, "x1": 0.0})
        assert_allclose(high.value / low.value, np.exp(fit.coefficients[0]), rtol=1e-10)

    def test_query_times(self, fit):
        curve = fit.predict_survival([0.0, 1.0], times=[0.5, 2.0, 50.0])
        assert_allclose(curve.time, [0.5, 2.0, 50.0])
        assert curve.value[0] == 1.0
        assert curve.value[1] < 1.0
        assert len(curve.pairs()) == 3

    def test_linear_predictor(self, fit):
        lp = fit.linear_predictor({"x0": 1.0, "x1": 1.0})
        assert lp == pytest.approx(float(np.sum(fit.coefficients)))

    def test_missing_covariate(self, fit):
        with pytest.raises(InvalidCovariateVectorError) as exc_info:
            fit.predict_survival({"x0": 1.0})
        assert exc_info.value.missing == ("x1",)

    def test_wrong_vector_length(self, fit):
        with pytest.raises(InvalidCovariateVectorError, match="entries"):
            fit.predict_survival([1.0, 2.0, 3.0])

    def test_non_numeric_value(self, fit):
        with pytest.raises(InvalidCovariateVectorError, match="numeric"):
            fit.predict_survival({"x0": "high", "x1": 0.0})

    def test_stratified_requires_stratum(self, stratified_fit):
        with pytest.raises(InvalidCovariateVectorError, match="stratified"):
            stratified_fit.predict_survival([0.0, 1.0])

    def test_stratified_prediction_uses_stratum_baseline(self, stratified_fit):
        base = basehaz(stratified_fit).for_stratum("late")
        curve = stratified_fit.predict_survival(X.mean(axis=0), stratum="late")
        assert_allclose(curve.time, base.time)
        assert_allclose(curve.value, np.exp(-base.cumulative_hazard), rtol=1e-10)


class TestCategoricalPrediction:
    """Predictions from a design built on recoded colon subjects."""

    @pytest.fixture(scope="class")
    def colon_fit(self, colon_deaths):
        design = SurvivalDesign.from_table(colon_deaths, ["rx", "age", "node4"])
        return coxph(design)

    @pytest.fixture(scope="class")
    def colon_stratified(self, colon_deaths):
        design = SurvivalDesign.from_table(colon_deaths, ["rx", "node4"], strata=["sex"])
        return coxph(design)

    def test_column_names(self, colon_fit):
        assert colon_fit.names == ("rx[Lev]", "rx[Lev+5FU]", "age", "node4[yes]")

    def test_node4_raises_hazard(self, colon_fit):
        base = {"rx": Treatment.OBSERVATION, "age": 60}
        no = colon_fit.predict_survival({**base, "node4": Flag.NO})
        yes = colon_fit.predict_survival({**base, "node4": Flag.YES})
        assert colon_fit.coefficients[3] > 0
        assert np.all(yes.value <= no.value)

    def test_unseen_level(self, colon_fit):
        query = {"rx": "Placebo", "age": 60, "node4": Flag.NO}
        with pytest.raises(InvalidCovariateVectorError, match="unseen") as exc_info:
            colon_fit.predict_survival(query)
        assert exc_info.value.unseen_levels == {"rx": "Placebo"}

    def test_missing_covariate(self, colon_fit):
        with pytest.raises(InvalidCovariateVectorError) as exc_info:
            colon_fit.predict_survival({"rx": Treatment.LEVAMISOLE, "node4": Flag.NO})
        assert exc_info.value.missing == ("age",)

    def test_level_for_numeric_covariate(self, colon_fit):
        query = {"rx": Treatment.LEVAMISOLE, "age": Flag.YES, "node4": Flag.NO}
        with pytest.raises(InvalidCovariateVectorError, match="numeric"):
            colon_fit.predict_survival(query)

    def test_stratum_taken_from_query(self, colon_stratified):
        query = {"rx": Treatment.LEVAMISOLE_5FU, "node4": Flag.NO, "sex": Sex.MALE}
        from_query = colon_stratified.predict_survival(query)
        explicit = colon_stratified.predict_survival(
            {"rx": Treatment.LEVAMISOLE_5FU, "node4": Flag.NO, "sex": Sex.MALE},
            stratum=(Sex.MALE,),
        )
        assert_allclose(from_query.value, explicit.value)
        base = basehaz(colon_stratified)
        assert base.strata == ((Sex.FEMALE,), (Sex.MALE,))

    def test_stratified_query_missing_stratum(self, colon_stratified):
        with pytest.raises(InvalidCovariateVectorError) as exc_info:
            colon_stratified.predict_survival({"rx": Treatment.LEVAMISOLE, "node4": Flag.NO})
        assert exc_info.value.missing == ("sex",)
