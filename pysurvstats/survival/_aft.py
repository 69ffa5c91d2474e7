"""
Parametric accelerated failure time models via Newton-Raphson.

Location-scale form on the log-time axis, matching R's survival::survreg():

    log T = X @ β + σ W

    distribution   W                 σ
    exponential    extreme value     fixed at 1
    weibull        extreme value     free (shape γ = 1/σ)
    lognormal      standard normal   free

With z_i = (log t_i - η_i) / σ, τ = log σ, and g_f, g_S the log density
and log survival of W, each subject contributes

    ℓ_i = δ_i [g_f(z_i) - τ - log t_i] + (1 - δ_i) g_S(z_i)

For the exponential model this is δ log λ - λ t with rate λ = exp(-η).
Score and observed information are analytic; parameters are (β, τ).

References:
    Kalbfleisch, J. D. & Prentice, R. L. (2002). The Statistical Analysis
        of Failure Time Data, 2nd ed., ch. 3.
    R Core Team. survival::survreg, survreg.distributions
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pysurvstats.core.compute.newton import ascent_step, at_maximum
from pysurvstats.core.compute.tolerances import (
    AFT_DEFAULTS,
    SINGULAR_RTOL,
    OptimizerSettings,
)
from pysurvstats.core.exceptions import (
    NonConvergenceError,
    SingularInformationMatrixError,
)
from pysurvstats.survival._common import AFTParams

DISTRIBUTIONS = ("exponential", "weibull", "lognormal")


def _extreme_value(z: NDArray, event: NDArray) -> tuple[NDArray, NDArray, NDArray]:
    # log f = z - e^z,  log S = -e^z
    ez = np.exp(z)
    g = np.where(event == 1, z - ez, -ez)
    g1 = np.where(event == 1, 1.0 - ez, -ez)
    g2 = -ez
    return g, g1, g2


def _normal(z: NDArray, event: NDArray) -> tuple[NDArray, NDArray, NDArray]:
    logpdf = stats.norm.logpdf(z)
    logsf = stats.norm.logsf(z)
    # Inverse Mills ratio φ(z) / (1 - Φ(z))
    mills = np.exp(logpdf - logsf)
    g = np.where(event == 1, logpdf, logsf)
    g1 = np.where(event == 1, -z, -mills)
    g2 = np.where(event == 1, -1.0, -mills * (mills - z))
    return g, g1, g2


_FAMILIES = {
    "exponential": (_extreme_value, True),
    "weibull": (_extreme_value, False),
    "lognormal": (_normal, False),
}


def aft_loglik(
    params: NDArray,
    log_time: NDArray,
    event: NDArray,
    X: NDArray,
    distribution: str,
) -> tuple[float, NDArray, NDArray]:
    """Log-likelihood, score and Hessian.

    params is β for the exponential model and (β, log σ) otherwise.

    Returns
    -------
    (loglik, score, hessian)
    """
    family, fixed_scale = _FAMILIES[distribution]
    p = X.shape[1]
    beta = params[:p]
    tau = 0.0 if fixed_scale else params[p]
    sigma = np.exp(tau)

    eta = X @ beta
    z = (log_time - eta) / sigma
    g, g1, g2 = family(z, event)

    loglik = float(np.sum(g - event * (tau + log_time)))

    d_eta = -g1 / sigma
    d2_eta = g2 / sigma ** 2
    score_beta = X.T @ d_eta
    hess_beta = (X * d2_eta[:, np.newaxis]).T @ X

    if fixed_scale:
        return loglik, score_beta, hess_beta

    d_tau = -z * g1 - event
    d2_eta_tau = (z * g2 + g1) / sigma
    d2_tau = z * g1 + z ** 2 * g2

    score = np.append(score_beta, np.sum(d_tau))
    hessian = np.empty((p + 1, p + 1), dtype=np.float64)
    hessian[:p, :p] = hess_beta
    hessian[:p, p] = hessian[p, :p] = X.T @ d2_eta_tau
    hessian[p, p] = np.sum(d2_tau)
    return loglik, score, hessian


def aft_fit(
    time: NDArray,
    event: NDArray,
    X: NDArray | None,
    distribution: str = "weibull",
    settings: OptimizerSettings = AFT_DEFAULTS,
    names: tuple[str, ...] | None = None,
    fit_null: bool = True,
) -> AFTParams:
    """Fit an AFT model by maximum likelihood.

    Parameters
    ----------
    time : NDArray
        (n,) strictly positive times.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    X : NDArray or None
        (n, p) covariates without intercept; an intercept is always added.
    distribution : str
        "exponential", "weibull" or "lognormal".
    settings : OptimizerSettings
        Tolerance, iteration budget, step cap and step-halving budget.
    names : tuple of str or None
        Covariate labels.
    fit_null : bool
        Also fit the intercept-only model for the reported null log-likelihood.

    Returns
    -------
    AFTParams

    Raises
    ------
    NonConvergenceError
        If the iteration budget is exhausted, or step-halving stalls away
        from a maximum (reason "stalled").
    SingularInformationMatrixError
        If the information matrix is singular at convergence.
    """
    n = len(time)
    if X is None:
        X = np.empty((n, 0), dtype=np.float64)
    p = X.shape[1]
    if names is None:
        names = tuple(f"x{j}" for j in range(p))
    fixed_scale = _FAMILIES[distribution][1]
    log_time = np.log(time)

    # Standardize covariates; A maps standardized coefficients back
    center = X.mean(axis=0)
    spread = X.std(axis=0)
    spread = np.where(spread > 0, spread, 1.0)
    Z = np.column_stack([np.ones(n), (X - center) / spread])

    k = p + 1 if fixed_scale else p + 2
    A = np.eye(k)
    A[1:p + 1, 1:p + 1] = np.diag(1.0 / spread)
    A[0, 1:p + 1] = -center / spread

    # Least squares start on log time
    beta0 = np.linalg.lstsq(Z, log_time, rcond=None)[0]
    params = beta0
    if not fixed_scale:
        resid_sd = np.std(log_time - Z @ beta0)
        params = np.append(beta0, np.log(resid_sd) if resid_sd > 0 else 0.0)

    loglik, score, hessian = aft_loglik(params, log_time, event, Z, distribution)
    converged = bool(np.max(np.abs(score)) < settings.tol)
    n_iter = 0
    change = np.inf

    while not converged and n_iter < settings.max_iter:
        n_iter += 1

        newton = ascent_step(-hessian, score, settings)

        step = newton
        accepted = False
        for _ in range(settings.max_halving):
            candidate = params + step
            ll_new, score_new, hess_new = aft_loglik(
                candidate, log_time, event, Z, distribution,
            )
            if np.isfinite(ll_new) and ll_new >= loglik:
                accepted = True
                break
            step = step / 2.0

        if not accepted:
            if not at_maximum(loglik, score, newton, settings.tol):
                raise NonConvergenceError(
                    f"{distribution} AFT Newton-Raphson stalled after {n_iter} "
                    f"iterations: no step-halved step increases the "
                    f"log-likelihood but max |score| is {np.max(np.abs(score)):.3g}",
                    iterations=n_iter,
                    final_change=float(change),
                    threshold=settings.tol,
                    model=distribution,
                    reason="stalled",
                )
            converged = True
            break

        change = abs(ll_new - loglik) / (abs(loglik) + 0.1)
        params, loglik, score, hessian = candidate, ll_new, score_new, hess_new

        if change < settings.tol or np.max(np.abs(score)) < settings.tol:
            converged = True

    if not converged:
        raise NonConvergenceError(
            f"{distribution} AFT Newton-Raphson did not converge in "
            f"{settings.max_iter} iterations (relative log-likelihood change "
            f"{change:.3g}, tolerance {settings.tol:g})",
            iterations=n_iter,
            final_change=float(change),
            threshold=settings.tol,
            model=distribution,
        )

    estimates = A @ params
    info = -hessian
    eigvals = np.linalg.eigvalsh(info)
    if eigvals[-1] <= 0 or eigvals[0] <= SINGULAR_RTOL * eigvals[-1]:
        rank = int(np.sum(eigvals > SINGULAR_RTOL * max(eigvals[-1], 0.0)))
        raise SingularInformationMatrixError(
            f"{distribution} AFT information matrix is singular at "
            f"convergence (rank {rank} of {k})",
            coefficients=estimates[:p + 1],
            loglik=loglik,
            rank=rank,
            expected_rank=k,
            condition_number=float(eigvals[-1] / eigvals[0]) if eigvals[0] > 0 else np.inf,
        )

    covariance = A @ np.linalg.inv(info) @ A.T
    se_all = np.sqrt(np.maximum(np.diag(covariance), 0.0))

    coefficients = estimates[:p + 1]
    se = se_all[:p + 1]
    z = np.where(se > 0, coefficients / se, 0.0)

    if fixed_scale:
        log_scale = 0.0
        log_scale_se = None
    else:
        log_scale = float(estimates[p + 1])
        log_scale_se = float(se_all[p + 1])
    scale = float(np.exp(log_scale))

    if fit_null and p > 0:
        null_loglik = aft_fit(
            time, event, None, distribution, settings, fit_null=False,
        ).loglik[1]
    else:
        null_loglik = loglik

    return AFTParams(
        distribution=distribution,
        coefficients=coefficients,
        names=("(Intercept)",) + tuple(names),
        scale=scale,
        log_scale=log_scale,
        shape=1.0 / scale if distribution == "weibull" else None,
        covariance=covariance,
        standard_errors=se,
        z_statistics=z,
        p_values=2.0 * stats.norm.sf(np.abs(z)),
        log_scale_se=log_scale_se,
        loglik=(null_loglik, loglik),
        aic=-2.0 * loglik + 2.0 * k,
        n_events=int(np.sum(event)),
        n_observations=n,
        n_iter=n_iter,
        converged=converged,
    )


def standard_quantile(distribution: str, probs: NDArray) -> NDArray:
    """Quantiles W_p of the standardized error distribution."""
    probs = np.asarray(probs, dtype=np.float64)
    if distribution == "lognormal":
        return stats.norm.ppf(probs)
    return np.log(-np.log1p(-probs))


def standard_survival(distribution: str, z: NDArray) -> NDArray:
    """Survival function of the standardized error distribution."""
    if distribution == "lognormal":
        return stats.norm.sf(z)
    return np.exp(-np.exp(z))


def predict_quantiles(
    params: AFTParams,
    x_row: NDArray,
    probs: NDArray,
) -> NDArray:
    """Event-time quantiles t_p = exp(η + σ W_p) for one covariate row.

    x_row excludes the intercept.
    """
    eta = params.coefficients[0] + x_row @ params.coefficients[1:]
    return np.exp(eta + params.scale * standard_quantile(params.distribution, probs))


def predict_survival(
    params: AFTParams,
    x_row: NDArray,
    times: NDArray,
) -> NDArray:
    """S(t | x) = S_W((log t - η) / σ); S(0) = 1."""
    eta = params.coefficients[0] + x_row @ params.coefficients[1:]
    times = np.asarray(times, dtype=np.float64)
    with np.errstate(divide='ignore'):
        z = (np.log(times) - eta) / params.scale
    return standard_survival(params.distribution, z)


def predict_cumulative_hazard(
    params: AFTParams,
    x_row: NDArray,
    times: NDArray,
) -> NDArray:
    """Λ(t | x) = -log S(t | x); Λ(0) = 0."""
    eta = params.coefficients[0] + x_row @ params.coefficients[1:]
    times = np.asarray(times, dtype=np.float64)
    with np.errstate(divide='ignore'):
        z = (np.log(times) - eta) / params.scale
    if params.distribution == "lognormal":
        return -stats.norm.logsf(z)
    # -log S_W(z) = e^z for the extreme value family
    return np.exp(z)
