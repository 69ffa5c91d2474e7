"""
Solution wrappers for survival analysis results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with R-style summary() methods. Model solutions also keep the design they
were fitted on so they can answer prediction queries.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.exceptions import InvalidCovariateVectorError
from pysurvstats.core.result import Result
from pysurvstats.survival._aft import (
    predict_cumulative_hazard,
    predict_quantiles,
    predict_survival,
)
from pysurvstats.survival._baseline import predict_curve
from pysurvstats.survival._common import (
    AFTParams,
    BaselineHazardParams,
    CoxParams,
    CurvePoints,
    KMParams,
    LogRankParams,
    ZPHParams,
)
from pysurvstats.survival._km import evaluate_step
from pysurvstats.survival.design import SurvivalDesign


def _signif_stars(p: float) -> str:
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""


def _encode_query(design: SurvivalDesign, covariates) -> NDArray:
    """Turn a prediction query into a row of X.

    Mappings go through the model frame (or the column names for
    array-built designs); sequences must match the column count.
    """
    p = 0 if design.X is None else design.X.shape[1]
    if covariates is None:
        covariates = {}

    if isinstance(covariates, Mapping):
        if design.frame is not None:
            if p == 0:
                design.frame._check_query(covariates)
                return np.zeros(0)
            return design.frame.encode(covariates)
        names = design.names or ()
        missing = tuple(name for name in names if name not in covariates)
        if missing:
            raise InvalidCovariateVectorError(
                f"covariate vector is missing {list(missing)}; "
                f"the model uses {list(names)}",
                missing=missing,
            )
        try:
            return np.array([float(covariates[name]) for name in names])
        except (TypeError, ValueError) as exc:
            raise InvalidCovariateVectorError(
                f"covariate values must be numeric: {exc}",
            ) from exc

    x = np.asarray(covariates, dtype=np.float64).ravel()
    if len(x) != p:
        raise InvalidCovariateVectorError(
            f"covariate vector has {len(x)} entries, the model has {p}",
        )
    return x


class KMSolution:
    """Kaplan-Meier survival curve solution.

    Properties mirror R's survfit() output.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[KMParams]) -> None:
        self._result = _result

    # -- Properties delegating to KMParams --

    @property
    def time(self):
        """Unique event times."""
        return self._result.params.time

    @property
    def survival(self):
        """S(t) at each event time."""
        return self._result.params.survival

    @property
    def variance(self):
        """Greenwood variance of S(t)."""
        return self._result.params.variance

    @property
    def n_risk(self):
        """Number at risk just before each event time."""
        return self._result.params.n_risk

    @property
    def n_events(self):
        """Number of events at each event time."""
        return self._result.params.n_events

    @property
    def n_censored(self):
        """Number censored in each interval."""
        return self._result.params.n_censored

    @property
    def se(self):
        """Greenwood standard error of S(t)."""
        return self._result.params.se

    @property
    def ci_lower(self):
        """Lower confidence bound for S(t)."""
        return self._result.params.ci_lower

    @property
    def ci_upper(self):
        """Upper confidence bound for S(t)."""
        return self._result.params.ci_upper

    @property
    def cumulative_hazard(self):
        """Nelson-Aalen cumulative hazard at each event time."""
        return self._result.params.cumulative_hazard

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def conf_type(self) -> str:
        return self._result.params.conf_type

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_events_total(self) -> int:
        return self._result.params.n_events_total

    @property
    def stratum(self):
        return self._result.params.stratum

    @property
    def median_survival(self) -> float | None:
        """Median survival time (smallest t where S(t) <= 0.5)."""
        idx = self.survival <= 0.5
        if not idx.any():
            return None
        return float(self.time[idx][0])

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[KMParams]:
        return self._result

    def survival_at(self, t):
        """S(t) as a right-continuous step function; 1 before the first event."""
        values = evaluate_step(self.time, self.survival, t, 1.0)
        return float(values) if np.ndim(values) == 0 else values

    def cumulative_hazard_at(self, t):
        """Nelson-Aalen H(t); 0 before the first event."""
        values = evaluate_step(self.time, self.cumulative_hazard, t, 0.0)
        return float(values) if np.ndim(values) == 0 else values

    def curve(self, kind: str = "survival") -> CurvePoints:
        """(time, value) pairs starting from t=0 with S=1 (or H=0)."""
        if kind == "survival":
            values, start = self.survival, 1.0
        elif kind == "cumulative_hazard":
            values, start = self.cumulative_hazard, 0.0
        else:
            raise ValueError(
                f"kind must be 'survival' or 'cumulative_hazard', got '{kind}'"
            )
        return CurvePoints(
            time=np.concatenate(([0.0], self.time)),
            value=np.concatenate(([start], values)),
            kind=kind,
        )

    def summary(self) -> str:
        """R-style summary of Kaplan-Meier fit."""
        lines = []
        lines.append("Call: kaplan_meier()")
        if self.stratum is not None:
            lines.append(f"  stratum: {self.stratum}")
        lines.append("")
        lines.append(
            f"  n={self.n_observations}, "
            f"events={self.n_events_total}"
        )
        lines.append("")

        median = self.median_survival
        median_str = f"{median:.4g}" if median is not None else "NA"
        lines.append(f"  median survival = {median_str}")
        lines.append("")

        # Table header
        ci_pct = int(self.conf_level * 100)
        lines.append(
            f"  {'time':>8s}  {'n.risk':>8s}  {'n.event':>8s}  "
            f"{'survival':>10s}  {'se':>10s}  "
            f"{'lower {ci_pct}%':>10s}  {'upper {ci_pct}%':>10s}"
        )

        # Show up to 20 rows
        m = len(self.time)
        show = min(m, 20)
        for i in range(show):
            lines.append(
                f"  {self.time[i]:8.4g}  {self.n_risk[i]:8.0f}  "
                f"{self.n_events[i]:8.0f}  "
                f"{self.survival[i]:10.6f}  {self.se[i]:10.6f}  "
                f"{self.ci_lower[i]:10.6f}  {self.ci_upper[i]:10.6f}"
            )
        if m > 20:
            lines.append(f"  ... ({m - 20} more rows)")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"KMSolution(n={self.n_observations}, "
            f"events={self.n_events_total}, "
            f"median={self.median_survival})"
        )


class StratifiedKMSolution:
    """One Kaplan-Meier curve per stratum.

    Behaves as a read-only mapping from stratum label to KMSolution,
    in stratum level order.
    """

    __slots__ = ('_result', '_design')

    def __init__(
        self,
        _result: Result[tuple[KMParams, ...]],
        _design: SurvivalDesign,
    ) -> None:
        self._result = _result
        self._design = _design

    @property
    def strata(self) -> tuple:
        return tuple(params.stratum for params in self._result.params)

    @property
    def curves(self) -> dict[Any, KMSolution]:
        return {
            params.stratum: KMSolution(_result=Result(
                params=params,
                info=self._result.info,
                timing=self._result.timing,
                backend_name=self._result.backend_name,
                provenance=self._result.provenance,
            ))
            for params in self._result.params
        }

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[tuple[KMParams, ...]]:
        return self._result

    def __getitem__(self, stratum) -> KMSolution:
        curves = self.curves
        if stratum not in curves:
            raise KeyError(
                f"unknown stratum {stratum!r}; strata: {list(curves)}"
            )
        return curves[stratum]

    def __iter__(self) -> Iterator:
        return iter(self.strata)

    def __len__(self) -> int:
        return len(self._result.params)

    def survival_at(self, t) -> dict[Any, Any]:
        """S(t) for every stratum."""
        return {label: km.survival_at(t) for label, km in self.curves.items()}

    def logrank(self, rho: float = 0.0) -> LogRankSolution:
        """Log-rank test comparing the strata curves."""
        from pysurvstats.survival.solvers import survdiff
        return survdiff(self._design, rho=rho)

    def summary(self) -> str:
        blocks = [km.summary() for km in self.curves.values()]
        return "\n\n".join(blocks)

    def __repr__(self) -> str:
        return f"StratifiedKMSolution(strata={list(self.strata)})"


class LogRankSolution:
    """Log-rank test solution.

    Properties mirror R's survdiff() output.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[LogRankParams]) -> None:
        self._result = _result

    @property
    def statistic(self) -> float:
        return self._result.params.statistic

    @property
    def df(self) -> int:
        return self._result.params.df

    @property
    def p_value(self) -> float:
        return self._result.params.p_value

    @property
    def n_groups(self) -> int:
        return self._result.params.n_groups

    @property
    def observed(self):
        return self._result.params.observed

    @property
    def expected(self):
        return self._result.params.expected

    @property
    def variance(self):
        return self._result.params.variance

    @property
    def n_per_group(self):
        return self._result.params.n_per_group

    @property
    def rho(self) -> float:
        return self._result.params.rho

    @property
    def group_labels(self):
        return self._result.params.group_labels

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[LogRankParams]:
        return self._result

    def summary(self) -> str:
        """R-style summary of log-rank test."""
        lines = []
        lines.append("Call: survdiff()")
        lines.append("")

        # Group table
        lines.append(f"  {'':>12s}  {'N':>6s}  {'Observed':>10s}  {'Expected':>10s}  {'(O-E)^2/E':>10s}")
        for i in range(self.n_groups):
            oe = ((self.observed[i] - self.expected[i]) ** 2
                  / self.expected[i]) if self.expected[i] > 0 else 0
            label = str(self.group_labels[i])
            lines.append(
                f"  {label:>12s}  {self.n_per_group[i]:6.0f}  "
                f"{self.observed[i]:10.1f}  {self.expected[i]:10.1f}  "
                f"{oe:10.3f}"
            )

        lines.append("")
        lines.append(
            f"  Chisq= {self.statistic:.4f} on {self.df} degrees of freedom, "
            f"p= {self.p_value:.4g}"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LogRankSolution(chisq={self.statistic:.4f}, "
            f"df={self.df}, p={self.p_value:.4g})"
        )


class CoxSolution:
    """Cox proportional hazards solution.

    Properties mirror R's coxph() output. Prediction methods accept a
    covariate mapping (or a numeric vector in column order).
    """

    __slots__ = ('_result', '_design')

    def __init__(self, _result: Result[CoxParams], _design: SurvivalDesign) -> None:
        self._result = _result
        self._design = _design

    @property
    def coefficients(self):
        return self._result.params.coefficients

    @property
    def hazard_ratios(self):
        return self._result.params.hazard_ratios

    @property
    def covariance(self):
        return self._result.params.covariance

    @property
    def standard_errors(self):
        return self._result.params.standard_errors

    @property
    def z_statistics(self):
        return self._result.params.z_statistics

    @property
    def p_values(self):
        return self._result.params.p_values

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def loglik(self):
        return self._result.params.loglik

    @property
    def loglik_history(self):
        return self._result.params.loglik_history

    @property
    def concordance(self) -> float:
        return self._result.params.concordance

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def lr_test(self) -> tuple[float, int, float]:
        """(statistic, df, p-value) of the likelihood ratio test."""
        stat = self._result.params.lr_statistic
        df = len(self.coefficients)
        return stat, df, float(stats.chi2.sf(stat, df))

    @property
    def wald_test(self) -> tuple[float, int, float]:
        """(statistic, df, p-value) of the global Wald test."""
        stat = self._result.params.wald_statistic
        df = len(self.coefficients)
        return stat, df, float(stats.chi2.sf(stat, df))

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_strata(self) -> int:
        return self._result.params.n_strata

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def score_norm(self) -> float:
        """max |U(β)| at the reported coefficients."""
        return self._result.params.score_norm

    @property
    def ties(self) -> str:
        return self._result.params.ties

    @property
    def separation(self):
        """Per-coefficient flag for a suspected monotone likelihood."""
        return self._result.params.separation

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def design(self) -> SurvivalDesign:
        return self._design

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[CoxParams]:
        return self._result

    def confint(self, conf_level: float = 0.95) -> NDArray:
        """(p, 2) Wald confidence intervals for the coefficients."""
        z = stats.norm.ppf((1.0 + conf_level) / 2.0)
        half = z * self.standard_errors
        return np.column_stack([self.coefficients - half, self.coefficients + half])

    def coef_table(self) -> dict[str, dict[str, float]]:
        """Coefficient records keyed by column name."""
        return {
            name: {
                'coef': float(self.coefficients[i]),
                'exp_coef': float(self.hazard_ratios[i]),
                'se': float(self.standard_errors[i]),
                'z': float(self.z_statistics[i]),
                'p_value': float(self.p_values[i]),
            }
            for i, name in enumerate(self.names)
        }

    def baseline_hazard(self, centered: bool = True) -> BaselineHazardSolution:
        """Breslow baseline hazard (R's basehaz)."""
        from pysurvstats.survival.solvers import basehaz
        return basehaz(self, centered=centered)

    def zph(self, transform: str = "km") -> ZPHSolution:
        """Proportional hazards test (R's cox.zph)."""
        from pysurvstats.survival.solvers import cox_zph
        return cox_zph(self, transform=transform)

    def linear_predictor(self, covariates) -> float:
        """x @ β for one covariate vector."""
        return float(_encode_query(self._design, covariates) @ self.coefficients)

    def predict_survival(self, covariates, times=None, *, stratum=None) -> CurvePoints:
        """Predicted S(t|x) = exp(-Λ0(t) exp(x @ β)).

        Evaluated at the baseline event times unless times is given.
        """
        return self._predict(covariates, times, stratum, "survival")

    def predict_cumulative_hazard(self, covariates, times=None, *, stratum=None) -> CurvePoints:
        """Predicted Λ(t|x) = Λ0(t) exp(x @ β)."""
        return self._predict(covariates, times, stratum, "cumulative_hazard")

    def _predict(self, covariates, times, stratum, kind: str) -> CurvePoints:
        x = _encode_query(self._design, covariates)
        baseline = self.baseline_hazard(centered=True)
        curve = baseline.for_stratum(self._query_stratum(covariates, stratum))
        relative_eta = float((x - self._design.X.mean(axis=0)) @ self.coefficients)
        return predict_curve(curve, relative_eta, kind=kind, times=times)

    def _query_stratum(self, covariates, stratum):
        if self._design.strata is None:
            return None
        if stratum is not None:
            return stratum
        frame = self._design.frame
        if frame is not None and frame.strata and isinstance(covariates, Mapping):
            return frame.stratum_of(covariates)
        raise InvalidCovariateVectorError(
            "model is stratified; pass stratum= or include the strata "
            "covariates in the query",
            missing=frame.strata if frame is not None else (),
        )

    def summary(self) -> str:
        """R-style summary of Cox PH fit."""
        lines = []
        lines.append("Call: coxph()")
        lines.append("")
        lines.append(
            f"  n= {self.n_observations}, "
            f"number of events= {self.n_events}"
            + (f", strata= {self.n_strata}" if self.n_strata > 1 else "")
        )
        lines.append("")

        width = max([10] + [len(name) for name in self.names])

        # Coefficient table
        lines.append(
            f"  {'':>{width}s}  {'coef':>10s}  {'exp(coef)':>10s}  "
            f"{'se(coef)':>10s}  {'z':>10s}  {'Pr(>|z|)':>12s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.coefficients[i]:10.6f}  "
                f"{self.hazard_ratios[i]:10.6f}  "
                f"{self.standard_errors[i]:10.6f}  "
                f"{self.z_statistics[i]:10.4f}  "
                f"{self.p_values[i]:12.4g} {_signif_stars(self.p_values[i])}"
            )

        lines.append("")
        ci = np.exp(self.confint())
        lines.append(
            f"  {'':>{width}s}  {'exp(coef)':>10s}  {'exp(-coef)':>10s}  "
            f"{'lower .95':>10s}  {'upper .95':>10s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.hazard_ratios[i]:10.4f}  "
                f"{1.0 / self.hazard_ratios[i]:10.4f}  "
                f"{ci[i, 0]:10.4f}  {ci[i, 1]:10.4f}"
            )

        lines.append("")
        lines.append(f"  Concordance= {self.concordance:.4f}")
        lr_stat, df, lr_p = self.lr_test
        wald_stat, _, wald_p = self.wald_test
        lines.append(
            f"  Likelihood ratio test= {lr_stat:.4f} on {df} df,   p={lr_p:.4g}"
        )
        lines.append(
            f"  Wald test            = {wald_stat:.4f} on {df} df,   p={wald_p:.4g}"
        )
        lines.append(f"  AIC= {self.aic:.4f}, ties= {self.ties}")

        for message in self.warnings:
            lines.append(f"  Warning: {message}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CoxSolution(n={self.n_observations}, "
            f"events={self.n_events}, "
            f"concordance={self.concordance:.4f})"
        )


class BaselineHazardSolution:
    """Breslow baseline hazard, one curve per stratum."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[tuple[BaselineHazardParams, ...]]) -> None:
        self._result = _result

    @property
    def strata(self) -> tuple:
        return tuple(params.stratum for params in self._result.params)

    @property
    def centered(self) -> bool:
        return self._result.params[0].centered

    def for_stratum(self, stratum=None) -> BaselineHazardParams:
        """Curve for one stratum (None for an unstratified model)."""
        for params in self._result.params:
            if params.stratum == stratum:
                return params
        raise InvalidCovariateVectorError(
            f"unknown stratum {stratum!r}; strata: {list(self.strata)}",
            unseen_levels={'stratum': stratum},
        )

    def _single(self) -> BaselineHazardParams:
        if len(self._result.params) != 1:
            raise ValueError(
                "model is stratified; use for_stratum(label) to pick a curve"
            )
        return self._result.params[0]

    @property
    def time(self):
        return self._single().time

    @property
    def hazard(self):
        return self._single().hazard

    @property
    def cumulative_hazard(self):
        return self._single().cumulative_hazard

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[tuple[BaselineHazardParams, ...]]:
        return self._result

    def cumulative_hazard_at(self, t, stratum=None):
        curve = self.for_stratum(stratum)
        values = evaluate_step(curve.time, curve.cumulative_hazard, t, 0.0)
        return float(values) if np.ndim(values) == 0 else values

    def curve(self, stratum=None) -> CurvePoints:
        curve = self.for_stratum(stratum)
        return CurvePoints(curve.time, curve.cumulative_hazard, "cumulative_hazard")

    def __repr__(self) -> str:
        return (
            f"BaselineHazardSolution(strata={len(self._result.params)}, "
            f"centered={self.centered})"
        )


class ZPHSolution:
    """Proportional hazards test solution.

    Properties mirror R's cox.zph() output.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[ZPHParams]) -> None:
        self._result = _result

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def chisq(self):
        return self._result.params.chisq

    @property
    def p_values(self):
        return self._result.params.p_values

    @property
    def correlation(self):
        return self._result.params.correlation

    @property
    def global_chisq(self) -> float:
        return self._result.params.global_chisq

    @property
    def global_df(self) -> int:
        return self._result.params.global_df

    @property
    def global_p_value(self) -> float:
        return self._result.params.global_p_value

    @property
    def transform(self) -> str:
        return self._result.params.transform

    @property
    def event_times(self):
        return self._result.params.event_times

    @property
    def transformed_times(self):
        return self._result.params.transformed_times

    @property
    def residuals(self):
        """Schoenfeld residuals, one row per event."""
        return self._result.params.residuals

    @property
    def scaled_residuals(self):
        """Scaled Schoenfeld residuals (estimates of β(t))."""
        return self._result.params.scaled_residuals

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[ZPHParams]:
        return self._result

    def table(self) -> dict[str, dict[str, float]]:
        rows = {
            name: {
                'rho': float(self.correlation[i]),
                'chisq': float(self.chisq[i]),
                'p_value': float(self.p_values[i]),
            }
            for i, name in enumerate(self.names)
        }
        rows['GLOBAL'] = {
            'rho': float('nan'),
            'chisq': self.global_chisq,
            'p_value': self.global_p_value,
        }
        return rows

    def summary(self) -> str:
        """R-style cox.zph table."""
        width = max([10] + [len(name) for name in self.names])
        lines = []
        lines.append(f"Call: cox_zph(transform='{self.transform}')")
        lines.append("")
        lines.append(
            f"  {'':>{width}s}  {'rho':>10s}  {'chisq':>10s}  {'p':>10s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.correlation[i]:10.4f}  "
                f"{self.chisq[i]:10.4f}  {self.p_values[i]:10.4g}"
            )
        lines.append(
            f"  {'GLOBAL':>{width}s}  {'NA':>10s}  "
            f"{self.global_chisq:10.4f}  {self.global_p_value:10.4g}"
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"ZPHSolution(global_chisq={self.global_chisq:.4f}, "
            f"df={self.global_df}, p={self.global_p_value:.4g})"
        )


class AFTSolution:
    """Parametric AFT solution.

    Properties mirror R's survreg() output.
    """

    __slots__ = ('_result', '_design')

    def __init__(self, _result: Result[AFTParams], _design: SurvivalDesign) -> None:
        self._result = _result
        self._design = _design

    @property
    def distribution(self) -> str:
        return self._result.params.distribution

    @property
    def coefficients(self):
        """Intercept first, then covariates, on the log-time scale."""
        return self._result.params.coefficients

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def scale(self) -> float:
        return self._result.params.scale

    @property
    def shape(self) -> float | None:
        """Weibull shape 1/scale (None for other families)."""
        return self._result.params.shape

    @property
    def covariance(self):
        return self._result.params.covariance

    @property
    def standard_errors(self):
        return self._result.params.standard_errors

    @property
    def z_statistics(self):
        return self._result.params.z_statistics

    @property
    def p_values(self):
        return self._result.params.p_values

    @property
    def loglik(self):
        return self._result.params.loglik

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def result(self) -> Result[AFTParams]:
        return self._result

    def coef_table(self) -> dict[str, dict[str, float]]:
        return {
            name: {
                'value': float(self.coefficients[i]),
                'se': float(self.standard_errors[i]),
                'z': float(self.z_statistics[i]),
                'p_value': float(self.p_values[i]),
            }
            for i, name in enumerate(self.names)
        }

    def predict_quantiles(self, covariates=None, probs=None) -> CurvePoints:
        """Event-time quantiles for one covariate vector.

        Returns pairs (t_p, 1 - p): the survival curve traced by
        inverting the fitted CDF at the cumulative probabilities probs
        (default 0.01, 0.02, ..., 0.99).
        """
        if probs is None:
            probs = np.linspace(0.01, 0.99, 99)
        probs = np.asarray(probs, dtype=np.float64)
        if np.any((probs <= 0) | (probs >= 1)):
            raise ValueError("probs must lie in (0, 1)")
        x = _encode_query(self._design, covariates)
        return CurvePoints(
            time=predict_quantiles(self._result.params, x, probs),
            value=1.0 - probs,
            kind="quantile",
        )

    def predict_survival(self, covariates=None, times=None) -> CurvePoints:
        """S(t|x) at the given times (default: the observed event times)."""
        x = _encode_query(self._design, covariates)
        if times is None:
            times = np.unique(self._design.time[self._design.event == 1])
        times = np.asarray(times, dtype=np.float64)
        return CurvePoints(
            time=times,
            value=predict_survival(self._result.params, x, times),
            kind="survival",
        )

    def predict_cumulative_hazard(self, covariates=None, times=None) -> CurvePoints:
        """Λ(t|x) = -log S(t|x) at the given times (default: the observed event times)."""
        x = _encode_query(self._design, covariates)
        if times is None:
            times = np.unique(self._design.time[self._design.event == 1])
        times = np.asarray(times, dtype=np.float64)
        return CurvePoints(
            time=times,
            value=predict_cumulative_hazard(self._result.params, x, times),
            kind="cumulative_hazard",
        )

    def predict_median(self, covariates=None) -> float:
        x = _encode_query(self._design, covariates)
        return float(predict_quantiles(self._result.params, x, np.array([0.5]))[0])

    def summary(self) -> str:
        """R-style summary of survreg fit."""
        width = max([12] + [len(name) for name in self.names])
        lines = []
        lines.append(f"Call: survreg(dist='{self.distribution}')")
        lines.append("")
        lines.append(
            f"  {'':>{width}s}  {'Value':>10s}  {'Std. Error':>10s}  "
            f"{'z':>10s}  {'p':>12s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>{width}s}  {self.coefficients[i]:10.6f}  "
                f"{self.standard_errors[i]:10.6f}  "
                f"{self.z_statistics[i]:10.4f}  "
                f"{self.p_values[i]:12.4g} {_signif_stars(self.p_values[i])}"
            )
        log_scale_se = self._result.params.log_scale_se
        if log_scale_se is not None:
            lines.append(
                f"  {'Log(scale)':>{width}s}  {self._result.params.log_scale:10.6f}  "
                f"{log_scale_se:10.6f}"
            )
            lines.append("")
            lines.append(f"  Scale= {self.scale:.4g}")
        else:
            lines.append("")
            lines.append("  Scale fixed at 1")
        if self.shape is not None:
            lines.append(f"  Weibull shape= {self.shape:.4g}")
        lines.append("")
        null_ll, model_ll = self.loglik
        df = len(self.coefficients) - 1
        chisq = 2.0 * (model_ll - null_ll)
        lines.append(
            f"  Loglik(model)= {model_ll:.2f}   Loglik(intercept only)= {null_ll:.2f}"
        )
        if df > 0:
            lines.append(
                f"  Chisq= {chisq:.2f} on {df} degrees of freedom, "
                f"p= {stats.chi2.sf(chisq, df):.4g}"
            )
        lines.append(
            f"  n= {self.n_observations}, events= {self.n_events}, "
            f"iterations= {self.n_iter}, AIC= {self.aic:.2f}"
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"AFTSolution(distribution='{self.distribution}', "
            f"n={self.n_observations}, scale={self.scale:.4g})"
        )
