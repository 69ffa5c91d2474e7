"""
Cox Proportional Hazards model via Newton-Raphson.

Implements Efron's and Breslow's methods for tied event times,
matching R's survival::coxph().

Algorithm:
    Center and scale the columns of X
    Initialize β = 0
    For iteration 1..max_iter:
        Compute: partial log-likelihood L(β), score U(β), information I(β)
        step = I(β)^{-1} @ U(β), capped at max_step
        Halve the step until L does not decrease
        Converged when the relative change in L, or |U|, is below tol
    Covariance = I(β)^{-1}, mapped back to the caller's scale

Efron's partial likelihood (R default):
    L(β) = Σ_{j: event times} [ Σ_{i ∈ D_j} x_i @ β
            - Σ_{s=0}^{d_j-1} log(Σ_{l ∈ R_j} exp(x_l @ β)
                - (s/d_j) * Σ_{i ∈ D_j} exp(x_i @ β)) ]

    where D_j = set of events at time t_j, d_j = |D_j|,
          R_j = risk set at time t_j (alive just before t_j).
    Breslow's likelihood is the same expression with s/d_j replaced by 0.

Stratified fits sum these terms over strata, each with its own risk sets.

References:
    Cox, D. R. (1972). Regression models and life-tables. JRSS-B, 34(2), 187-220.
    Efron, B. (1977). The efficiency of Cox's likelihood function for
        censored data. JASA, 72(359), 557-565.
    R Core Team. survival::coxph, agreg.fit
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.compute.newton import ascent_step, at_maximum
from pysurvstats.core.compute.tolerances import (
    COX_DEFAULTS,
    SEPARATION_SE_THRESHOLD,
    SINGULAR_RTOL,
    OptimizerSettings,
)
from pysurvstats.core.exceptions import (
    InsufficientDataError,
    NonConvergenceError,
    SingularInformationMatrixError,
)
from pysurvstats.survival._common import CoxParams


@dataclass(frozen=True)
class TiedEventSums:
    """Risk-set sums at each distinct event time of one stratum.

    Rows of the (k, ...) arrays are expanded so that a time with d tied
    deaths contributes d rows, one per Efron fraction s/d (all fractions
    are 0 for Breslow).
    """
    time: NDArray          # (m,) distinct event times
    d: NDArray             # (m,) deaths at each time
    row_time: NDArray      # (k,) index into time for each expanded row
    denom: NDArray         # (k,) S0 - f * D0
    mean: NDArray          # (k, p) (S1 - f * D1) / denom
    second: NDArray        # (k, p, p) (S2 - f * D2) / denom
    x_sum: NDArray         # (m, p) Σ x over deaths at each time
    eta_sum: NDArray       # (m,) Σ η over deaths at each time
    shift: float           # constant subtracted from η before exp


@dataclass(frozen=True)
class CoxData:
    """Observations sorted by (stratum, time), with stratum boundaries."""
    time: NDArray
    event: NDArray
    X: NDArray
    order: NDArray                  # sorted position -> original row
    slices: tuple[slice, ...]       # one per stratum
    labels: tuple                   # stratum label per slice

    @classmethod
    def build(
        cls,
        time: NDArray,
        event: NDArray,
        X: NDArray,
        strata_codes: NDArray | None = None,
        strata_labels: tuple | None = None,
    ) -> CoxData:
        n = len(time)
        codes = np.zeros(n, dtype=np.intp) if strata_codes is None else strata_codes
        if strata_labels is None:
            # label each stratum by its code
            strata_labels = (None,) if strata_codes is None else tuple(range(int(codes.max()) + 1))
        order = np.lexsort((time, codes))
        codes_sorted = codes[order]
        bounds = np.flatnonzero(np.diff(codes_sorted)) + 1
        starts = np.concatenate(([0], bounds))
        stops = np.concatenate((bounds, [n]))
        slices = tuple(slice(int(a), int(b)) for a, b in zip(starts, stops))
        labels = tuple(strata_labels[codes_sorted[s.start]] for s in slices)
        return cls(
            time=time[order],
            event=event[order],
            X=X[order],
            order=order,
            slices=slices,
            labels=labels,
        )


def tied_event_sums(
    beta: NDArray,
    time: NDArray,
    event: NDArray,
    X: NDArray,
    ties: str,
) -> TiedEventSums | None:
    """Risk-set sums for one stratum sorted by ascending time.

    Returns None when the stratum has no events.
    """
    is_event = event == 1
    if not np.any(is_event):
        return None

    eta = X @ beta
    # A constant shift cancels in the partial likelihood
    shift = float(np.max(eta))
    w = np.exp(eta - shift)

    # Reverse cumulative sums: index i holds Σ over subjects with t >= t_i
    wX = w[:, np.newaxis] * X
    wXX = wX[:, :, np.newaxis] * X[:, np.newaxis, :]
    rc0 = np.cumsum(w[::-1])[::-1]
    rc1 = np.cumsum(wX[::-1], axis=0)[::-1]
    rc2 = np.cumsum(wXX[::-1], axis=0)[::-1]

    ev_time = time[is_event]
    unique_times, starts, d = np.unique(ev_time, return_index=True, return_counts=True)
    risk_idx = np.searchsorted(time, unique_times, side='left')

    S0 = rc0[risk_idx]
    S1 = rc1[risk_idx]
    S2 = rc2[risk_idx]

    D0 = np.add.reduceat(w[is_event], starts)
    D1 = np.add.reduceat(wX[is_event], starts, axis=0)
    D2 = np.add.reduceat(wXX[is_event], starts, axis=0)

    row_time = np.repeat(np.arange(len(unique_times)), d)
    if ties == "efron":
        frac = np.concatenate([np.arange(k) / k for k in d])
    else:
        frac = np.zeros(len(row_time), dtype=np.float64)

    denom = S0[row_time] - frac * D0[row_time]
    s1 = S1[row_time] - frac[:, np.newaxis] * D1[row_time]
    s2 = S2[row_time] - frac[:, np.newaxis, np.newaxis] * D2[row_time]

    return TiedEventSums(
        time=unique_times,
        d=d.astype(np.float64),
        row_time=row_time,
        denom=denom,
        mean=s1 / denom[:, np.newaxis],
        second=s2 / denom[:, np.newaxis, np.newaxis],
        x_sum=np.add.reduceat(X[is_event], starts, axis=0),
        eta_sum=np.add.reduceat(eta[is_event], starts),
        shift=shift,
    )


def score_and_information(
    beta: NDArray,
    data: CoxData,
    ties: str,
) -> tuple[float, NDArray, NDArray]:
    """Compute log-likelihood, score vector, and observed information matrix.

    Returns
    -------
    (loglik, score, info_matrix)
        loglik : float
        score : (p,) gradient of log-likelihood
        info_matrix : (p, p) negative Hessian (observed information)
    """
    p = data.X.shape[1]
    loglik = 0.0
    score = np.zeros(p, dtype=np.float64)
    info_matrix = np.zeros((p, p), dtype=np.float64)

    for s in data.slices:
        sums = tied_event_sums(beta, data.time[s], data.event[s], data.X[s], ties)
        if sums is None:
            continue
        # log(denom) is on the shifted scale; add the shift back per row
        loglik += float(
            np.sum(sums.eta_sum)
            - np.sum(np.log(sums.denom) + sums.shift)
        )
        score += sums.x_sum.sum(axis=0) - sums.mean.sum(axis=0)
        info_matrix += (
            sums.second.sum(axis=0)
            - sums.mean.T @ sums.mean
        )

    return loglik, score, info_matrix


def cox_fit(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    ties: str = "efron",
    settings: OptimizerSettings = COX_DEFAULTS,
    strata_codes: NDArray | None = None,
    strata_labels: tuple | None = None,
    names: tuple[str, ...] | None = None,
    init: NDArray | None = None,
) -> CoxParams:
    """Fit Cox proportional hazards model.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    X : NDArray
        (n, p) covariate matrix (NO intercept).
    ties : str
        Method for handling tied event times: "efron" (default) or "breslow".
    settings : OptimizerSettings
        Tolerance, iteration budget, step cap and step-halving budget.
    strata_codes : NDArray or None
        (n,) integer stratum index per subject.
    strata_labels : tuple
        Label for each stratum index.
    names : tuple of str or None
        Column labels.
    init : NDArray or None
        Starting coefficients on the caller's scale (default zeros).

    Returns
    -------
    CoxParams

    Raises
    ------
    InsufficientDataError
        If there are no events.
    NonConvergenceError
        If the iteration budget is exhausted, or step-halving stalls away
        from a maximum (reason "stalled").
    SingularInformationMatrixError
        If the information matrix is singular at convergence.
    """
    n, p = X.shape
    n_events_total = int(np.sum(event))
    if names is None:
        names = tuple(f"x{j}" for j in range(p))

    if n_events_total == 0:
        raise InsufficientDataError(
            "coxph requires at least one event; all observations are censored",
            n_events=0,
            n_event_times=0,
        )

    # Internal centering/scaling keeps the information matrix well conditioned
    center = X.mean(axis=0)
    scale = X.std(axis=0)
    scale = np.where(scale > 0, scale, 1.0)
    Xs = (X - center) / scale

    data = CoxData.build(time, event, Xs, strata_codes, strata_labels)

    beta = np.zeros(p, dtype=np.float64) if init is None else np.asarray(init, dtype=np.float64) * scale

    loglik, score, info_matrix = score_and_information(beta, data, ties)
    null_loglik = loglik if init is None else score_and_information(np.zeros(p), data, ties)[0]

    history = [loglik]
    converged = bool(np.max(np.abs(score)) < settings.tol)
    n_iter = 0
    change = np.inf

    while not converged and n_iter < settings.max_iter:
        n_iter += 1

        newton = ascent_step(info_matrix, score, settings)

        # Step-halving: never accept a decrease in the log-likelihood
        step = newton
        accepted = False
        for _ in range(settings.max_halving):
            candidate = beta + step
            ll_new, score_new, info_new = score_and_information(candidate, data, ties)
            if np.isfinite(ll_new) and ll_new >= loglik:
                accepted = True
                break
            step = step / 2.0

        if not accepted:
            if not at_maximum(loglik, score, newton, settings.tol):
                raise NonConvergenceError(
                    f"Cox Newton-Raphson stalled after {n_iter} iterations: "
                    f"no step-halved step increases the log-likelihood but "
                    f"max |score| is {np.max(np.abs(score)):.3g}",
                    iterations=n_iter,
                    final_change=float(change),
                    threshold=settings.tol,
                    model="coxph",
                    reason="stalled",
                )
            converged = True
            break

        change = abs(ll_new - loglik) / (abs(loglik) + 0.1)
        beta, loglik, score, info_matrix = candidate, ll_new, score_new, info_new
        history.append(loglik)

        if change < settings.tol or np.max(np.abs(score)) < settings.tol:
            converged = True

    if not converged:
        raise NonConvergenceError(
            f"Cox Newton-Raphson did not converge in {settings.max_iter} "
            f"iterations (relative log-likelihood change {change:.3g}, "
            f"tolerance {settings.tol:g})",
            iterations=n_iter,
            final_change=float(change),
            threshold=settings.tol,
            model="coxph",
        )

    coefficients = beta / scale

    eigvals = np.linalg.eigvalsh(info_matrix)
    if eigvals[-1] <= 0 or eigvals[0] <= SINGULAR_RTOL * eigvals[-1]:
        rank = int(np.sum(eigvals > SINGULAR_RTOL * max(eigvals[-1], 0.0)))
        raise SingularInformationMatrixError(
            f"information matrix is singular at convergence (rank {rank} "
            f"of {p}); covariates may be collinear, standard errors "
            f"cannot be computed",
            coefficients=coefficients,
            loglik=loglik,
            rank=rank,
            expected_rank=p,
            condition_number=float(eigvals[-1] / eigvals[0]) if eigvals[0] > 0 else np.inf,
        )

    cov_scaled = np.linalg.inv(info_matrix)
    se_scaled = np.sqrt(np.maximum(np.diag(cov_scaled), 0.0))
    covariance = cov_scaled / np.outer(scale, scale)
    se = np.sqrt(np.maximum(np.diag(covariance), 0.0))

    z = np.where(se > 0, coefficients / se, 0.0)
    p_values = 2.0 * stats.norm.sf(np.abs(z))

    concordance = harrell_concordance(
        X @ coefficients, time, event,
        strata_codes if strata_codes is not None else None,
    )

    return CoxParams(
        coefficients=coefficients,
        hazard_ratios=np.exp(coefficients),
        covariance=covariance,
        standard_errors=se,
        z_statistics=z,
        p_values=p_values,
        names=tuple(names),
        loglik=(null_loglik, loglik),
        loglik_history=np.array(history),
        score_norm=float(np.max(np.abs(score * scale))) if p else 0.0,
        lr_statistic=2.0 * (loglik - null_loglik),
        wald_statistic=float(beta @ info_matrix @ beta),
        concordance=concordance,
        aic=-2.0 * loglik + 2.0 * p,
        n_events=n_events_total,
        n_observations=n,
        n_strata=len(data.slices),
        n_iter=n_iter,
        converged=converged,
        ties=ties,
        separation=se_scaled > SEPARATION_SE_THRESHOLD,
    )


def harrell_concordance(
    risk: NDArray,
    time: NDArray,
    event: NDArray,
    strata_codes: NDArray | None = None,
) -> float:
    """Harrell's concordance statistic (C-statistic).

    C = P(risk_i > risk_j | T_i < T_j, event_i = 1), pairs formed
    within strata.
    """
    codes = np.zeros(len(time), dtype=np.intp) if strata_codes is None else strata_codes

    concordant = 0.0
    discordant = 0.0
    tied_risk = 0.0

    for i in np.flatnonzero(event == 1):
        comparable = (time > time[i]) & (codes == codes[i])
        if not np.any(comparable):
            continue
        other = risk[comparable]
        concordant += np.sum(risk[i] > other)
        discordant += np.sum(risk[i] < other)
        tied_risk += np.sum(risk[i] == other)

    total = concordant + discordant + tied_risk
    if total == 0:
        return 0.5

    return float((concordant + 0.5 * tied_risk) / total)
