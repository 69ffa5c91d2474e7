"""
Newton-Raphson step rules shared by the Cox and AFT solvers.

Both solvers maximize a log-likelihood with the same loop: compute an
ascent step from the score and observed information, cap it, halve it
until the log-likelihood does not decrease, and stop once the relative
change or the score falls below tol. The pieces of that loop that decide
numerical policy live here.
"""

import numpy as np
from numpy.typing import NDArray

from pysurvstats.core.compute.tolerances import (
    LEVENBERG_FLOOR,
    SINGULAR_RTOL,
    OptimizerSettings,
)


def ascent_step(
    info: NDArray,
    score: NDArray,
    settings: OptimizerSettings,
) -> NDArray:
    """
    Newton step info^{-1} @ score, capped at settings.max_step.

    info is the observed information (negative Hessian). Away from the
    maximum it can be indefinite, in which case the plain Newton step
    need not point uphill; the diagonal is then shifted past the most
    negative eigenvalue (Levenberg damping) so the step is always an
    ascent direction.
    """
    eigvals = np.linalg.eigvalsh(info)
    if eigvals[0] < 0:
        shift = -eigvals[0] + LEVENBERG_FLOOR * max(abs(eigvals[-1]), 1.0)
        step = np.linalg.solve(info + shift * np.eye(len(score)), score)
    else:
        step = np.linalg.lstsq(info, score, rcond=SINGULAR_RTOL)[0]

    largest = float(np.max(np.abs(step)))
    if largest > settings.max_step:
        step = step * (settings.max_step / largest)
    return step


def at_maximum(
    loglik: float,
    score: NDArray,
    step: NDArray,
    tol: float,
) -> bool:
    """
    Whether a point where no halved step was accepted is a maximum.

    True when the score is below tol, or when the gain predicted for the
    full step, score @ step / 2, is below tol relative to |loglik| (the
    same scale as the convergence test on the log-likelihood change).
    """
    if np.max(np.abs(score)) < tol:
        return True
    gain = 0.5 * abs(float(score @ step))
    return gain / (abs(loglik) + 0.1) < tol
