"""
Kaplan-Meier product-limit estimator.

Matches R's survival::survfit(Surv(time, event) ~ 1):
- Product-limit survival estimate: S(t) = ∏(1 - d_j / n_j)
- Greenwood variance: Var(S(t)) = S(t)^2 * Σ(d_j / (n_j * (n_j - d_j)))
- Confidence intervals via log, plain, or log-log transformation
- Nelson-Aalen cumulative hazard: H(t) = Σ d_j / n_j

All deaths tied at t_j are handled simultaneously; subjects censored at
t_j are still at risk at t_j.

References:
    Kaplan, E. L., & Meier, P. (1958). Nonparametric estimation from
        incomplete observations. JASA, 53(282), 457-481.
    R Core Team. survival::survfit.formula
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.exceptions import InsufficientDataError
from pysurvstats.survival._common import KMParams


def kaplan_meier_fit(
    time: NDArray,
    event: NDArray,
    conf_level: float,
    conf_type: str,
    stratum: Any = None,
) -> KMParams:
    """Compute Kaplan-Meier survival curve.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    conf_level : float
        Confidence level for CI (e.g. 0.95).
    conf_type : str
        CI type: "log" (default, matches R), "plain", "log-log".
    stratum : any
        Label carried into the result (and into error messages).

    Returns
    -------
    KMParams

    Raises
    ------
    InsufficientDataError
        If the data hold fewer than two distinct event times.
    """
    n_total = len(time)
    is_event = event == 1
    n_events_total = int(np.sum(is_event))

    unique_event_times = np.unique(time[is_event])
    m = len(unique_event_times)

    if m < 2:
        where = "" if stratum is None else f" in stratum {stratum!r}"
        raise InsufficientDataError(
            f"Kaplan-Meier needs at least two distinct event times{where}, "
            f"got {m} ({n_events_total} events among {n_total} subjects)",
            stratum=stratum,
            n_events=n_events_total,
            n_event_times=m,
        )

    sorted_time = np.sort(time)
    sorted_event_time = np.sort(time[is_event])
    sorted_cens_time = np.sort(time[~is_event])

    # n_j: subjects with time >= t_j
    n_risk = (n_total - np.searchsorted(sorted_time, unique_event_times, side='left')).astype(np.float64)

    # d_j: events exactly at t_j
    n_events = (
        np.searchsorted(sorted_event_time, unique_event_times, side='right')
        - np.searchsorted(sorted_event_time, unique_event_times, side='left')
    ).astype(np.float64)

    # censored in [t_j, t_{j+1}); the last interval is open-ended
    upper = np.append(unique_event_times[1:], np.inf)
    n_censored = (
        np.searchsorted(sorted_cens_time, upper, side='left')
        - np.searchsorted(sorted_cens_time, unique_event_times, side='left')
    ).astype(np.float64)

    # Product-limit estimate: S(t) = ∏_{j: t_j <= t} (1 - d_j / n_j)
    hazard_component = n_events / n_risk
    survival = np.cumprod(1.0 - hazard_component)

    # Greenwood variance: Var(S(t)) = S(t)^2 * Σ(d_j / (n_j * (n_j - d_j)))
    # Avoid division by zero when n_j == d_j (all at risk die)
    denom = n_risk * (n_risk - n_events)
    denom = np.where(denom > 0, denom, np.inf)
    greenwood_sum = np.cumsum(n_events / denom)
    variance = survival ** 2 * greenwood_sum
    se = np.sqrt(variance)

    z = stats.norm.ppf((1.0 + conf_level) / 2.0)
    ci_lower, ci_upper = _compute_ci(survival, se, z, conf_type)

    return KMParams(
        time=unique_event_times,
        survival=survival,
        variance=variance,
        n_risk=n_risk,
        n_events=n_events,
        n_censored=n_censored,
        se=se,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        cumulative_hazard=np.cumsum(hazard_component),
        conf_level=conf_level,
        conf_type=conf_type,
        n_observations=n_total,
        n_events_total=n_events_total,
        stratum=stratum,
    )


def evaluate_step(
    knots: NDArray,
    values: NDArray,
    t,
    before: float,
) -> NDArray:
    """Evaluate a right-continuous step function.

    Returns values[k] for the largest knots[k] <= t, and `before` when t
    precedes the first knot.

    Parameters
    ----------
    knots : (m,) ascending jump times
    values : (m,) function value from each knot onward
    t : scalar or array of query times
    before : value on (-inf, knots[0])
    """
    t_arr = np.asarray(t, dtype=np.float64)
    idx = np.searchsorted(knots, t_arr, side='right') - 1
    padded = np.concatenate(([before], values))
    return padded[idx + 1]


def _compute_ci(
    survival: NDArray,
    se: NDArray,
    z: float,
    conf_type: str,
) -> tuple[NDArray, NDArray]:
    """Compute CI for survival function.

    Parameters
    ----------
    survival : S(t) values
    se : Greenwood standard errors
    z : normal quantile (e.g. 1.96 for 95%)
    conf_type : "log", "plain", or "log-log"

    Returns
    -------
    (ci_lower, ci_upper) clipped to [0, 1]
    """
    if conf_type == "plain":
        ci_lower = survival - z * se
        ci_upper = survival + z * se

    elif conf_type == "log":
        # exp(log(S) ± z * se / S), R's default
        with np.errstate(divide='ignore', invalid='ignore'):
            log_s = np.log(survival)
            se_log = se / survival
            ci_lower = np.exp(log_s - z * se_log)
            ci_upper = np.exp(log_s + z * se_log)

    elif conf_type == "log-log":
        # exp(-exp(log(-log(S)) ± z * se / (S * |log(S)|)))
        with np.errstate(divide='ignore', invalid='ignore'):
            log_s = np.log(survival)
            log_neg_log_s = np.log(-log_s)
            se_loglog = se / (survival * np.abs(log_s))
            ci_lower = np.exp(-np.exp(log_neg_log_s + z * se_loglog))
            ci_upper = np.exp(-np.exp(log_neg_log_s - z * se_loglog))
    else:
        raise ValueError(
            f"Unknown conf_type '{conf_type}'. "
            f"Choose from 'log', 'plain', 'log-log'."
        )

    ci_lower = np.clip(ci_lower, 0.0, 1.0)
    ci_upper = np.clip(ci_upper, 0.0, 1.0)

    # NaN from S=0 or S=1 edge cases
    ci_lower = np.where(np.isnan(ci_lower), 0.0, ci_lower)
    ci_upper = np.where(np.isnan(ci_upper), 1.0, ci_upper)

    return ci_lower, ci_upper
