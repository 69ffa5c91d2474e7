"""
Breslow baseline hazard for a fitted Cox model.

    h0(t_i) = d_i / Σ_{j ∈ R(t_i)} exp(x_j @ β)
    Λ0(t)   = Σ_{t_i <= t} h0(t_i)
    S(t|x)  = exp(-Λ0(t) * exp(x @ β))

With centered=True the linear predictor is taken relative to the
covariate means, so Λ0 is the cumulative hazard of an average subject
(R's basehaz(fit, centered=TRUE)). Stratified fits get one baseline per
stratum.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pysurvstats.survival._common import BaselineHazardParams, CurvePoints
from pysurvstats.survival._km import evaluate_step


def breslow_hazard(
    time: NDArray,
    event: NDArray,
    eta: NDArray,
    centered: bool,
    stratum: Any = None,
) -> BaselineHazardParams:
    """Breslow hazard increments for one stratum.

    Parameters
    ----------
    time, event : (n,) arrays for the stratum
    eta : (n,) linear predictor x @ β (centered or not)
    """
    order = np.argsort(time, kind='stable')
    t_sorted = time[order]
    eta_sorted = eta[order]
    is_event = event[order] == 1

    shift = float(np.max(eta_sorted))
    w = np.exp(eta_sorted - shift)
    rc0 = np.cumsum(w[::-1])[::-1]

    unique_times, d = np.unique(t_sorted[is_event], return_counts=True)
    risk_idx = np.searchsorted(t_sorted, unique_times, side='left')

    d = d.astype(np.float64)
    hazard = d / rc0[risk_idx] * np.exp(-shift)

    return BaselineHazardParams(
        time=unique_times,
        hazard=hazard,
        cumulative_hazard=np.cumsum(hazard),
        n_risk=(len(t_sorted) - risk_idx).astype(np.float64),
        n_events=d,
        centered=centered,
        stratum=stratum,
    )


def baseline_hazards(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    coefficients: NDArray,
    means: NDArray,
    strata_codes: NDArray | None,
    strata_labels: tuple,
    centered: bool = True,
) -> list[BaselineHazardParams]:
    """One Breslow baseline per stratum, in stratum-level order."""
    X_eff = X - means if centered else X
    eta = X_eff @ coefficients

    if strata_codes is None:
        return [breslow_hazard(time, event, eta, centered)]

    result = []
    for code, label in enumerate(strata_labels):
        mask = strata_codes == code
        if not np.any(event[mask] == 1):
            # A stratum without events has Λ0 = 0 everywhere
            result.append(BaselineHazardParams(
                time=np.empty(0), hazard=np.empty(0),
                cumulative_hazard=np.empty(0), n_risk=np.empty(0),
                n_events=np.empty(0), centered=centered, stratum=label,
            ))
            continue
        result.append(breslow_hazard(time[mask], event[mask], eta[mask], centered, label))
    return result


def predict_curve(
    baseline: BaselineHazardParams,
    relative_eta: float,
    kind: str = "survival",
    times: NDArray | None = None,
) -> CurvePoints:
    """Predicted survival or cumulative hazard for one covariate vector.

    relative_eta must be on the same footing as the baseline: x @ β for an
    uncentered baseline, (x - means) @ β for a centered one.
    """
    if times is None:
        t = baseline.time
        cumhaz = baseline.cumulative_hazard
    else:
        t = np.asarray(times, dtype=np.float64)
        cumhaz = evaluate_step(baseline.time, baseline.cumulative_hazard, t, 0.0)

    cumhaz = cumhaz * np.exp(relative_eta)
    if kind == "cumulative_hazard":
        return CurvePoints(time=t, value=cumhaz, kind=kind)
    return CurvePoints(time=t, value=np.exp(-cumhaz), kind="survival")
