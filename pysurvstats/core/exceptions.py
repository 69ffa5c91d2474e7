"""
Exception hierarchy for pysurvstats.

All exceptions inherit from SurvStatsError to allow catching any
library-specific error. Domain-specific exceptions inherit from the
appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from __future__ import annotations

from typing import Any


class SurvStatsError(Exception):
    """Base exception for all pysurvstats errors."""
    pass


class ValidationError(SurvStatsError, ValueError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks. Also a
    ValueError so array-level misuse can be caught the usual way.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class InsufficientDataError(ValidationError):
    """
    Not enough events to estimate.

    Raised by Kaplan-Meier when a stratum has fewer than two distinct
    event times (or no events at all) and by the log-rank test when any
    group has zero events.

    Attributes:
        stratum: Label of the offending stratum, if any
        n_events: Events observed in that stratum
        n_event_times: Distinct event times observed in that stratum
    """

    def __init__(
        self,
        message: str,
        stratum: Any = None,
        n_events: int | None = None,
        n_event_times: int | None = None,
    ):
        super().__init__(message)
        self.stratum = stratum
        self.n_events = n_events
        self.n_event_times = n_event_times


class InvalidCovariateVectorError(ValidationError):
    """
    A prediction query does not match the fitted model's covariates.

    Attributes:
        missing: Covariate names the query omits
        unseen_levels: {covariate: level} pairs not seen during fitting
    """

    def __init__(
        self,
        message: str,
        missing: tuple[str, ...] = (),
        unseen_levels: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.missing = tuple(missing)
        self.unseen_levels = dict(unseen_levels or {})


class NumericalError(SurvStatsError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but the matrix
    is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically min(n, p))
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class SingularInformationMatrixError(SingularMatrixError):
    """
    The information matrix is not invertible at the optimum.

    The coefficients reached may still be meaningful, but standard errors
    cannot be computed, so they are carried on the exception.

    Attributes:
        coefficients: Coefficient vector at the point of failure
        loglik: Log-likelihood at the point of failure
    """

    def __init__(
        self,
        message: str,
        coefficients: Any = None,
        loglik: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        condition_number: float | None = None,
    ):
        super().__init__(
            message,
            matrix_name="information matrix",
            condition_number=condition_number,
            rank=rank,
            expected_rank=expected_rank,
        )
        self.coefficients = coefficients
        self.loglik = loglik


class ConvergenceError(SurvStatsError):
    """
    Iterative algorithm failed to converge.

    Raised when an iterative optimization method fails to meet convergence
    criteria within the maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final parameter or objective change
        reason: Why convergence failed (e.g., 'max_iterations', 'diverging')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class NonConvergenceError(ConvergenceError):
    """
    Newton-Raphson stopped short of a maximum (Cox and AFT solvers).

    Raised when the iteration budget is exhausted (reason
    'max_iterations') or when no step-halved Newton step increases the
    log-likelihood while the score is still non-zero (reason 'stalled').
    Callers may retry with different starting values or a relaxed
    tolerance.

    Attributes:
        model: Which solver failed ('coxph' or the AFT distribution name)
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        threshold: float | None = None,
        model: str | None = None,
        reason: str = "max_iterations",
    ):
        super().__init__(
            message,
            iterations=iterations,
            final_change=final_change,
            reason=reason,
            threshold=threshold,
        )
        self.model = model
