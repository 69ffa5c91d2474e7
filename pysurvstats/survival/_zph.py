"""
Proportional hazards diagnostic from Schoenfeld residuals.

Matches the Grambsch-Therneau score test of R's survival::cox.zph()
(the form used before survival 3.0):

    r_i   = x_i - E[x | R(t_i)]                 Schoenfeld residual, one per event
    r*_i  = β + d * r_i @ V                     scaled residual (β(t) estimate)
    g     = transformed event times, centered
    T_k   = (g @ r*_k)^2 / (d * V_kk * Σ g^2)   per covariate, 1 df
    T     = (g @ r) @ V @ (g @ r) * d / Σ g^2   global, p df

d is the number of events and V the model covariance. For tied deaths
under Efron's approximation the expectation is averaged over the d_j
fractional risk sets.

References:
    Grambsch, P. M. & Therneau, T. M. (1994). Proportional hazards tests
        and diagnostics based on weighted residuals. Biometrika, 81(3),
        515-526.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.exceptions import InsufficientDataError
from pysurvstats.survival._common import ZPHParams
from pysurvstats.survival._cox import CoxData, tied_event_sums
from pysurvstats.survival._km import evaluate_step

TRANSFORMS = ("km", "rank", "identity", "log")


def schoenfeld_residuals(
    beta: NDArray,
    data: CoxData,
    ties: str,
) -> tuple[NDArray, NDArray]:
    """Schoenfeld residuals for every event, sorted by event time.

    Returns
    -------
    (event_times, residuals) with shapes (d,) and (d, p)
    """
    times = []
    residuals = []

    for s in data.slices:
        t, e, X = data.time[s], data.event[s], data.X[s]
        sums = tied_event_sums(beta, t, e, X, ties)
        if sums is None:
            continue
        d = sums.d.astype(np.intp)
        row_starts = np.concatenate(([0], np.cumsum(d)[:-1]))
        expected = np.add.reduceat(sums.mean, row_starts, axis=0) / sums.d[:, np.newaxis]

        is_event = e == 1
        times.append(t[is_event])
        residuals.append(X[is_event] - np.repeat(expected, d, axis=0))

    event_times = np.concatenate(times)
    resid = np.vstack(residuals)
    order = np.argsort(event_times, kind='stable')
    return event_times[order], resid[order]


def transform_times(
    event_times: NDArray,
    time: NDArray,
    event: NDArray,
    transform: str,
) -> NDArray:
    """Time scale g(t) against which residuals are tested."""
    if transform == "identity":
        return event_times.astype(np.float64)
    if transform == "log":
        return np.log(event_times)
    if transform == "rank":
        return stats.rankdata(event_times)
    if transform == "km":
        # 1 - pooled KM just before each event time
        uniq, d = np.unique(time[event == 1], return_counts=True)
        sorted_time = np.sort(time)
        n_risk = len(time) - np.searchsorted(sorted_time, uniq, side='left')
        surv = np.cumprod(1.0 - d / n_risk)
        before = np.concatenate(([1.0], surv[:-1]))
        return 1.0 - evaluate_step(uniq, before, event_times, 1.0)
    raise ValueError(
        f"Unknown transform '{transform}'. Choose from {', '.join(TRANSFORMS)}."
    )


def zph_test(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    coefficients: NDArray,
    covariance: NDArray,
    names: tuple[str, ...],
    ties: str = "efron",
    strata_codes: NDArray | None = None,
    strata_labels: tuple | None = None,
    transform: str = "km",
) -> ZPHParams:
    """Test the proportional hazards assumption for a fitted Cox model.

    Raises
    ------
    InsufficientDataError
        If the transformed event times do not vary (fewer than two
        distinct event times).
    """
    data = CoxData.build(time, event, X, strata_codes, strata_labels)
    event_times, resid = schoenfeld_residuals(coefficients, data, ties)
    n_dead = len(event_times)

    g = transform_times(event_times, time, event, transform)
    g_c = g - g.mean()
    g_ss = float(g_c @ g_c)
    if g_ss <= 0:
        raise InsufficientDataError(
            "proportionality test needs at least two distinct event times",
            n_events=n_dead,
            n_event_times=len(np.unique(event_times)),
        )

    scaled_part = resid @ covariance * n_dead
    scaled = scaled_part + coefficients

    u = g_c @ scaled_part
    chisq = u ** 2 / (np.diag(covariance) * n_dead * g_ss)
    p_values = stats.chi2.sf(chisq, 1)

    xx = g_c @ resid
    global_chisq = float(xx @ covariance @ xx * n_dead / g_ss)
    global_df = len(coefficients)

    with np.errstate(divide='ignore', invalid='ignore'):
        sd = scaled.std(axis=0)
        correlation = np.where(
            sd > 0,
            (g_c @ (scaled - scaled.mean(axis=0))) / (n_dead * g.std() * sd),
            np.nan,
        )

    return ZPHParams(
        names=tuple(names),
        chisq=chisq,
        p_values=p_values,
        correlation=correlation,
        global_chisq=global_chisq,
        global_df=global_df,
        global_p_value=float(stats.chi2.sf(global_chisq, global_df)),
        transform=transform,
        event_times=event_times,
        transformed_times=g,
        residuals=resid,
        scaled_residuals=scaled,
    )
