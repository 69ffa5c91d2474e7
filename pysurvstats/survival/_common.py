"""
Parameter payloads for survival analysis results.

Each dataclass is a frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class KMParams:
    """Kaplan-Meier survival curve parameters.

    Matches the output of R's survival::survfit().
    """

    time: NDArray                # (m,) unique event times
    survival: NDArray            # (m,) S(t) at each event time
    variance: NDArray            # (m,) Greenwood Var(S(t))
    n_risk: NDArray              # (m,) number at risk just before each time
    n_events: NDArray            # (m,) events at each time
    n_censored: NDArray          # (m,) censored in [t, next event time)
    se: NDArray                  # (m,) Greenwood standard error
    ci_lower: NDArray            # (m,) lower CI for S(t)
    ci_upper: NDArray            # (m,) upper CI for S(t)
    cumulative_hazard: NDArray   # (m,) Nelson-Aalen H(t)
    conf_level: float            # confidence level (e.g. 0.95)
    conf_type: str               # CI type: "log" (default), "plain", "log-log"
    n_observations: int          # total n
    n_events_total: int          # total events
    stratum: Any = None          # stratum label, None when unstratified


@dataclass(frozen=True)
class LogRankParams:
    """Log-rank test parameters.

    Matches the output of R's survival::survdiff().
    """

    statistic: float             # chi-squared statistic
    df: int                      # degrees of freedom (n_groups - 1)
    p_value: float
    n_groups: int
    observed: NDArray            # (n_groups,) observed events per group
    expected: NDArray            # (n_groups,) expected events per group
    variance: NDArray            # (n_groups, n_groups) Var(O - E)
    n_per_group: NDArray         # (n_groups,) subjects per group
    rho: float                   # weight parameter (0=log-rank, 1=Peto-Peto)
    group_labels: tuple          # group labels in level order


@dataclass(frozen=True)
class CoxParams:
    """Cox proportional hazards model parameters.

    Matches the output of R's survival::coxph().
    """

    coefficients: NDArray        # (p,) log hazard ratios
    hazard_ratios: NDArray       # (p,) exp(coef)
    covariance: NDArray          # (p, p) inverse observed information
    standard_errors: NDArray     # (p,) sqrt(diag(covariance))
    z_statistics: NDArray        # (p,) coef / se
    p_values: NDArray            # (p,) two-sided Wald test
    names: tuple[str, ...]       # (p,) column labels
    loglik: tuple[float, float]  # (null log-lik, model log-lik)
    loglik_history: NDArray      # log-lik after each accepted iteration
    score_norm: float            # max |U(beta)| at convergence
    lr_statistic: float          # 2 * (model - null) log-lik
    wald_statistic: float        # beta' I beta
    concordance: float           # Harrell's C-statistic
    aic: float                   # -2 loglik + 2p
    n_events: int
    n_observations: int
    n_strata: int
    n_iter: int                  # Newton-Raphson iterations
    converged: bool
    ties: str                    # "efron" or "breslow"
    separation: NDArray          # (p,) bool, suspected monotone likelihood


@dataclass(frozen=True)
class BaselineHazardParams:
    """Breslow baseline hazard for one stratum.

    Matches R's survival::basehaz().
    """

    time: NDArray                # (m,) distinct event times in the stratum
    hazard: NDArray              # (m,) increments h0(t_i)
    cumulative_hazard: NDArray   # (m,) Lambda0(t)
    n_risk: NDArray              # (m,)
    n_events: NDArray            # (m,)
    centered: bool               # evaluated at the covariate means
    stratum: Any = None


@dataclass(frozen=True)
class ZPHParams:
    """Proportional hazards test parameters.

    Matches R's survival::cox.zph() (Grambsch-Therneau score test).
    """

    names: tuple[str, ...]       # (p,)
    chisq: NDArray               # (p,) per-covariate statistic (1 df)
    p_values: NDArray            # (p,)
    correlation: NDArray         # (p,) corr(g(t), scaled residual)
    global_chisq: float
    global_df: int
    global_p_value: float
    transform: str               # "km", "rank", "identity" or "log"
    event_times: NDArray         # (d,) time of each event
    transformed_times: NDArray   # (d,) g(t) for each event
    residuals: NDArray           # (d, p) Schoenfeld residuals
    scaled_residuals: NDArray    # (d, p) beta + d * r @ V


@dataclass(frozen=True)
class AFTParams:
    """Parametric accelerated failure time model parameters.

    Matches the output of R's survival::survreg().
    """

    distribution: str            # "exponential", "weibull" or "lognormal"
    coefficients: NDArray        # (p+1,) intercept first, log-time scale
    names: tuple[str, ...]       # (p+1,)
    scale: float                 # sigma of log T (1 for exponential)
    log_scale: float
    shape: float | None          # Weibull shape 1/sigma, None otherwise
    covariance: NDArray          # (k, k) over (coefficients, log_scale)
    standard_errors: NDArray     # (p+1,)
    z_statistics: NDArray        # (p+1,)
    p_values: NDArray            # (p+1,)
    log_scale_se: float | None   # None for exponential
    loglik: tuple[float, float]  # (intercept-only log-lik, model log-lik)
    aic: float
    n_events: int
    n_observations: int
    n_iter: int
    converged: bool


@dataclass(frozen=True)
class CurvePoints:
    """A predicted curve as ordered (time, value) pairs.

    kind is "survival", "cumulative_hazard" or "quantile".
    """

    time: NDArray
    value: NDArray
    kind: str

    def pairs(self) -> list[tuple[float, float]]:
        return [(float(t), float(v)) for t, v in zip(self.time, self.value)]

    def __len__(self) -> int:
        return len(self.time)
