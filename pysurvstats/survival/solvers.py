"""
Public API for survival analysis.

    kaplan_meier(time, event) → KMSolution | StratifiedKMSolution
    survdiff(time, event, group) → LogRankSolution
    coxph(time, event, X) → CoxSolution
    basehaz(fit) → BaselineHazardSolution
    cox_zph(fit) → ZPHSolution
    survreg(time, event, X, distribution=...) → AFTSolution

Each function validates inputs, creates a SurvivalDesign (or takes one
built with SurvivalDesign.from_table as its first argument), runs the
estimator under a Timer, and wraps the Result in a Solution.
"""

from __future__ import annotations

import warnings
from typing import Literal

import numpy as np

from pysurvstats.core.compute.timing import Timer
from pysurvstats.core.compute.tolerances import (
    AFT_DEFAULTS,
    COX_DEFAULTS,
    OptimizerSettings,
)
from pysurvstats.core.exceptions import DimensionError, ValidationError
from pysurvstats.core.result import Result
from pysurvstats.core.validation import check_choice, check_positive, check_probability
from pysurvstats.survival._aft import DISTRIBUTIONS, aft_fit
from pysurvstats.survival._baseline import baseline_hazards
from pysurvstats.survival._cox import cox_fit
from pysurvstats.survival._km import kaplan_meier_fit
from pysurvstats.survival._logrank import logrank_test
from pysurvstats.survival._zph import TRANSFORMS, zph_test
from pysurvstats.survival.design import SurvivalDesign
from pysurvstats.survival.solution import (
    AFTSolution,
    BaselineHazardSolution,
    CoxSolution,
    KMSolution,
    LogRankSolution,
    StratifiedKMSolution,
    ZPHSolution,
)


def _resolve_design(time, event, X=None, *, strata=None, names=None) -> SurvivalDesign:
    if isinstance(time, SurvivalDesign):
        if event is not None or X is not None or strata is not None:
            raise ValidationError(
                "pass either a SurvivalDesign or time/event arrays, not both"
            )
        return time
    if event is None:
        raise ValidationError("event is required when time is an array")
    return SurvivalDesign.for_survival(time, event, X, strata=strata, names=names)


def kaplan_meier(
    time,
    event=None,
    *,
    strata=None,
    conf_level: float = 0.95,
    conf_type: Literal["log", "plain", "log-log"] = "log",
) -> KMSolution | StratifiedKMSolution:
    """Kaplan-Meier survival curve estimation.

    Matches R's survival::survfit(Surv(time, event) ~ strata).

    Parameters
    ----------
    time : array-like or SurvivalDesign
        Time to event or censoring, or a prepared design (its strata are
        used).
    event : array-like
        Event indicator (1=event, 0=censored).
    strata : array-like or None
        Strata labels; one curve is estimated per stratum.
    conf_level : float
        Confidence level for CI (default 0.95).
    conf_type : str
        CI transformation: "log" (R default), "plain", "log-log".

    Returns
    -------
    KMSolution, or StratifiedKMSolution when strata are given

    Raises
    ------
    InsufficientDataError
        If any stratum has fewer than two distinct event times.
    """
    design = _resolve_design(time, event, strata=strata)
    check_probability(conf_level, 'conf_level')
    check_choice(conf_type, ("log", "plain", "log-log"), 'conf_type')

    timer = Timer()
    timer.start()

    labels, codes = design.strata_codes()
    if codes is None:
        params = kaplan_meier_fit(
            design.time, design.event,
            conf_level=conf_level,
            conf_type=conf_type,
        )
    else:
        params = tuple(
            kaplan_meier_fit(
                design.time[codes == k], design.event[codes == k],
                conf_level=conf_level,
                conf_type=conf_type,
                stratum=label,
            )
            for k, label in enumerate(labels)
        )

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Kaplan-Meier", "n_strata": len(labels)},
        timing=timer.result(),
        backend_name="cpu_km",
        warnings=(),
    )

    if codes is None:
        return KMSolution(_result=result)
    return StratifiedKMSolution(_result=result, _design=design)


def survdiff(
    time,
    event=None,
    group=None,
    *,
    rho: float = 0.0,
) -> LogRankSolution:
    """Log-rank test (and G-rho family).

    Matches R's survival::survdiff().

    Parameters
    ----------
    time : array-like or SurvivalDesign
        Time to event or censoring, or a stratified design (the strata
        are the groups compared).
    event : array-like
        Event indicator (1=event, 0=censored).
    group : array-like
        Group labels (e.g. treatment vs control).
    rho : float
        G-rho weight parameter. rho=0 (default) gives the standard
        log-rank test. rho=1 gives Peto & Peto / Gehan-Wilcoxon.

    Returns
    -------
    LogRankSolution

    Raises
    ------
    InsufficientDataError
        If any group has zero events.
    """
    if isinstance(time, SurvivalDesign):
        design = _resolve_design(time, event)
        if group is not None:
            raise ValidationError(
                "group must not be passed with a SurvivalDesign; "
                "the design's strata are the groups"
            )
        if design.strata is None:
            raise ValidationError("survdiff needs a design built with strata")
        group = design.strata
    else:
        design = _resolve_design(time, event)
        if group is None:
            raise ValidationError("group is required")
        group = list(group)
        if len(group) != design.n:
            raise DimensionError(
                f"group must have {design.n} elements to match time, "
                f"got {len(group)}"
            )

    if rho < 0:
        raise ValidationError(f"rho must be non-negative, got {rho}")

    timer = Timer()
    timer.start()

    params = logrank_test(
        design.time, design.event, group,
        rho=rho,
    )

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Log-rank test", "rho": rho},
        timing=timer.result(),
        backend_name="cpu_logrank",
        warnings=(),
    )

    return LogRankSolution(_result=result)


def coxph(
    time,
    event=None,
    X=None,
    *,
    strata=None,
    names=None,
    ties: Literal["efron", "breslow"] = "efron",
    tol: float | None = None,
    max_iter: int | None = None,
    settings: OptimizerSettings = COX_DEFAULTS,
    init=None,
) -> CoxSolution:
    """Cox proportional hazards model.

    Matches R's survival::coxph().

    Parameters
    ----------
    time : array-like or SurvivalDesign
        Time to event or censoring, or a prepared design.
    event : array-like
        Event indicator (1=event, 0=censored).
    X : array-like
        Covariate matrix (n, p). No intercept column; the baseline hazard absorbs it.
    strata : array-like or None
        Strata labels; each stratum has its own baseline hazard.
    names : sequence of str or None
        Column labels for X.
    ties : str
        Method for handling tied event times: "efron" (default) or "breslow".
    tol : float or None
        Convergence tolerance (default settings.tol).
    max_iter : int or None
        Maximum Newton-Raphson iterations (default settings.max_iter).
    settings : OptimizerSettings
        Full optimizer policy.
    init : array-like or None
        Starting coefficients.

    Returns
    -------
    CoxSolution

    Raises
    ------
    NonConvergenceError
        If Newton-Raphson exhausts max_iter.
    SingularInformationMatrixError
        If the information matrix is singular at convergence.
    """
    design = _resolve_design(time, event, X, strata=strata, names=names)

    if design.X is None:
        raise ValidationError("X (covariates) is required for coxph()")

    check_choice(ties, ("efron", "breslow"), 'ties')
    settings = settings.with_overrides(tol=tol, max_iter=max_iter)

    init_arr = None
    if init is not None:
        init_arr = np.asarray(init, dtype=np.float64).ravel()
        if len(init_arr) != design.p:
            raise DimensionError(
                f"init must have {design.p} entries, got {len(init_arr)}"
            )

    labels, codes = design.strata_codes()

    timer = Timer()
    timer.start()

    with timer.section('newton_raphson'):
        params = cox_fit(
            design.time, design.event, design.X,
            ties=ties,
            settings=settings,
            strata_codes=codes,
            strata_labels=labels,
            names=design.names,
            init=init_arr,
        )

    timer.stop()

    warnings_list = []
    if np.any(params.separation):
        flagged = [name for name, flag in zip(params.names, params.separation) if flag]
        warnings_list.append(
            f"possible separation (monotone likelihood) for {flagged}: "
            f"coefficients diverge and standard errors are very large"
        )
    for message in warnings_list:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    result = Result(
        params=params,
        info={
            "method": "Cox PH",
            "ties": ties,
            "n_iter": params.n_iter,
            "converged": params.converged,
            "tol": settings.tol,
            "max_iter": settings.max_iter,
        },
        timing=timer.result(),
        backend_name="cpu_cox",
        warnings=tuple(warnings_list),
    )

    return CoxSolution(_result=result, _design=design)


def basehaz(fit: CoxSolution, *, centered: bool = True) -> BaselineHazardSolution:
    """Breslow baseline cumulative hazard of a fitted Cox model.

    Matches R's survival::basehaz().

    Parameters
    ----------
    fit : CoxSolution
    centered : bool
        If True (default), the hazard at the covariate means; otherwise
        at x = 0.

    Returns
    -------
    BaselineHazardSolution
    """
    design = fit.design
    labels, codes = design.strata_codes()

    timer = Timer()
    timer.start()

    params = tuple(baseline_hazards(
        design.time, design.event, design.X,
        fit.coefficients,
        means=design.X.mean(axis=0),
        strata_codes=codes,
        strata_labels=labels,
        centered=centered,
    ))

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Breslow", "centered": centered},
        timing=timer.result(),
        backend_name="cpu_basehaz",
        warnings=(),
    )

    return BaselineHazardSolution(_result=result)


def cox_zph(
    fit: CoxSolution,
    *,
    transform: Literal["km", "rank", "identity", "log"] = "km",
) -> ZPHSolution:
    """Test the proportional hazards assumption.

    Matches R's survival::cox.zph(). Reports statistics only; choosing a
    significance threshold is up to the caller.

    Parameters
    ----------
    fit : CoxSolution
    transform : str
        Time scale: "km" (default), "rank", "identity" or "log".

    Returns
    -------
    ZPHSolution
    """
    check_choice(transform, TRANSFORMS, 'transform')
    design = fit.design
    labels, codes = design.strata_codes()

    timer = Timer()
    timer.start()

    params = zph_test(
        design.time, design.event, design.X,
        fit.coefficients, fit.covariance,
        names=fit.names,
        ties=fit.ties,
        strata_codes=codes,
        strata_labels=labels,
        transform=transform,
    )

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Grambsch-Therneau", "transform": transform},
        timing=timer.result(),
        backend_name="cpu_zph",
        warnings=(),
    )

    return ZPHSolution(_result=result)


def survreg(
    time,
    event=None,
    X=None,
    *,
    distribution: Literal["exponential", "weibull", "lognormal"] = "weibull",
    names=None,
    tol: float | None = None,
    max_iter: int | None = None,
    settings: OptimizerSettings = AFT_DEFAULTS,
) -> AFTSolution:
    """Parametric accelerated failure time model.

    Matches R's survival::survreg(). An intercept is always included.

    Parameters
    ----------
    time : array-like or SurvivalDesign
        Strictly positive event or censoring times, or a prepared design.
    event : array-like
        Event indicator (1=event, 0=censored).
    X : array-like or None
        Covariate matrix (n, p) without intercept.
    distribution : str
        "exponential", "weibull" (default) or "lognormal".
    names : sequence of str or None
        Column labels for X.
    tol, max_iter : optional overrides of settings
    settings : OptimizerSettings

    Returns
    -------
    AFTSolution

    Raises
    ------
    NonConvergenceError
        If Newton-Raphson exhausts max_iter.
    SingularInformationMatrixError
        If the information matrix is singular at convergence.
    """
    design = _resolve_design(time, event, X, names=names)
    check_choice(distribution, DISTRIBUTIONS, 'distribution')
    check_positive(design.time, 'time')
    if design.strata is not None:
        raise ValidationError("survreg does not support strata")
    if design.n_events == 0:
        raise ValidationError("survreg requires at least one event")
    settings = settings.with_overrides(tol=tol, max_iter=max_iter)

    timer = Timer()
    timer.start()

    with timer.section('newton_raphson'):
        params = aft_fit(
            design.time, design.event, design.X,
            distribution=distribution,
            settings=settings,
            names=design.names,
        )

    timer.stop()

    result = Result(
        params=params,
        info={
            "method": "AFT",
            "distribution": distribution,
            "n_iter": params.n_iter,
            "converged": params.converged,
        },
        timing=timer.result(),
        backend_name="cpu_aft",
        warnings=(),
    )

    return AFTSolution(_result=result, _design=design)
