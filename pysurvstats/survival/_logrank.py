"""
Log-rank test (G-rho family) for comparing survival curves across groups.

Matches R's survival::survdiff(Surv(time, event) ~ group, rho=0):
- Standard log-rank test (rho=0): Mantel-Haenszel / Cochran-Mantel
- G-rho family (rho>0): Fleming-Harrington weighted variant
  When rho=1, gives the Peto & Peto modification of the Gehan-Wilcoxon test.

Algorithm:
    1. Sort all observations by time
    2. At each distinct event time t_j:
       - n_kj = number at risk in group k at t_j
       - d_kj = observed events in group k at t_j
       - N_j = total at risk, D_j = total events
       - Expected events in group k: E_kj = n_kj * D_j / N_j
       - Weight w_j = S_hat(t_j-)^rho (pooled KM just before t_j)
    3. Test statistic: (O - E)' V^- (O - E) on the first k-1 groups

References:
    Harrington, D. P. & Fleming, T. R. (1982). A class of rank test
        procedures for censored survival data. Biometrika, 69(3), 553-566.
    R Core Team. survival::survdiff
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.exceptions import InsufficientDataError, ValidationError
from pysurvstats.survival._common import LogRankParams
from pysurvstats.survival.table import factorize


def logrank_test(
    time: NDArray,
    event: NDArray,
    group,
    rho: float = 0.0,
) -> LogRankParams:
    """Compute log-rank test (G-rho family).

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    group : sequence
        (n,) group labels (any hashable values, e.g. stratum keys).
    rho : float
        G-rho weight parameter: rho=0 is standard log-rank,
        rho=1 is Peto & Peto / Gehan-Wilcoxon.

    Returns
    -------
    LogRankParams

    Raises
    ------
    InsufficientDataError
        If any group has zero events.
    """
    n = len(time)

    group_labels, group_idx = factorize(group)
    n_groups = len(group_labels)

    if n_groups < 2:
        raise ValidationError(
            f"Need at least 2 groups for log-rank test, got {n_groups}"
        )

    n_per_group = np.bincount(group_idx, minlength=n_groups).astype(np.float64)
    events_per_group = np.bincount(
        group_idx, weights=event, minlength=n_groups,
    )
    empty = [group_labels[k] for k in range(n_groups) if events_per_group[k] == 0]
    if empty:
        raise InsufficientDataError(
            f"log-rank test needs events in every group; "
            f"no events in {empty}",
            stratum=empty[0],
            n_events=0,
            n_event_times=0,
        )

    # Sort by time (events before censoring at ties, matching R)
    order = np.lexsort((-event, time))
    t_sorted = time[order]
    e_sorted = event[order]
    g_sorted = group_idx[order]

    unique_event_times = np.unique(t_sorted[e_sorted == 1])
    m = len(unique_event_times)

    # Arrays: per event time × per group
    d_kg = np.zeros((m, n_groups), dtype=np.float64)  # events per group
    n_kg = np.zeros((m, n_groups), dtype=np.float64)  # at risk per group

    at_risk = n_per_group.copy()
    ptr = 0

    for j, t_j in enumerate(unique_event_times):
        # Remove subjects with time < t_j from risk sets
        while ptr < n and t_sorted[ptr] < t_j:
            at_risk[g_sorted[ptr]] -= 1
            ptr += 1

        n_kg[j] = at_risk

        # Events and censored at exactly t_j leave after being counted
        while ptr < n and t_sorted[ptr] == t_j:
            if e_sorted[ptr] == 1:
                d_kg[j, g_sorted[ptr]] += 1
            at_risk[g_sorted[ptr]] -= 1
            ptr += 1

    D_j = d_kg.sum(axis=1)     # (m,) total events at each time
    N_j = n_kg.sum(axis=1)     # (m,) total at risk at each time

    if rho == 0.0:
        weights = np.ones(m, dtype=np.float64)
    else:
        # S_hat(t_j-) from the pooled Kaplan-Meier estimate
        cum_surv = np.cumprod(1.0 - D_j / N_j)
        s_before = np.ones(m, dtype=np.float64)
        s_before[1:] = cum_surv[:-1]
        weights = s_before ** rho

    # O_k = Σ_j w_j d_kj, E_k = Σ_j w_j n_kj D_j / N_j
    observed = weights @ d_kg
    expected = weights @ (n_kg * (D_j / N_j)[:, np.newaxis])

    # V_kl = Σ_j w_j^2 D_j (N_j - D_j) / (N_j^2 (N_j - 1))
    #            * n_kj (δ_kl N_j - n_lj)
    V = np.zeros((n_groups, n_groups), dtype=np.float64)
    for j in range(m):
        if N_j[j] <= 1:
            continue
        factor = (
            weights[j] ** 2 * D_j[j] * (N_j[j] - D_j[j])
            / (N_j[j] ** 2 * (N_j[j] - 1))
        )
        n_j = n_kg[j]
        V += factor * (np.diag(n_j * N_j[j]) - np.outer(n_j, n_j))

    # The last group is linearly dependent since Σ(O_k - E_k) = 0
    df = n_groups - 1
    oe_diff = (observed - expected)[:df]
    V_sub = V[:df, :df]
    try:
        statistic = float(oe_diff @ np.linalg.solve(V_sub, oe_diff))
    except np.linalg.LinAlgError:
        statistic = float(oe_diff @ np.linalg.pinv(V_sub) @ oe_diff)
    statistic = max(statistic, 0.0)

    p_value = float(stats.chi2.sf(statistic, df))

    return LogRankParams(
        statistic=statistic,
        df=df,
        p_value=p_value,
        n_groups=n_groups,
        observed=observed,
        expected=expected,
        variance=V,
        n_per_group=n_per_group,
        rho=rho,
        group_labels=group_labels,
    )
