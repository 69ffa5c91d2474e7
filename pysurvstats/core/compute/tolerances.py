"""
Optimizer settings and numerical thresholds.

Defines the convergence policy shared by the Newton-Raphson solvers
(Cox partial likelihood, parametric AFT likelihood) and the thresholds
used to flag degenerate fits. Public functions take these as keyword
defaults; pass a different OptimizerSettings to change them all at once.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class OptimizerSettings:
    """Convergence policy for a Newton-Raphson solver."""
    tol: float
    max_iter: int
    max_step: float
    max_halving: int
    name: str
    description: str

    def with_overrides(
        self,
        tol: float | None = None,
        max_iter: int | None = None,
    ) -> 'OptimizerSettings':
        """Copy with tol/max_iter replaced where given."""
        changes = {}
        if tol is not None:
            changes['tol'] = tol
        if max_iter is not None:
            changes['max_iter'] = max_iter
        return replace(self, **changes)


# Cox partial likelihood. Mirrors R coxph.control(eps=1e-9) with a
# larger iteration budget so monotone likelihoods (separation) settle.
COX_DEFAULTS = OptimizerSettings(
    tol=1e-9,
    max_iter=50,
    max_step=5.0,
    max_halving=30,
    name='cox',
    description='Cox PH Newton-Raphson with step-halving',
)

# Parametric AFT full likelihood over (beta, log sigma).
AFT_DEFAULTS = OptimizerSettings(
    tol=1e-9,
    max_iter=100,
    max_step=5.0,
    max_halving=30,
    name='aft',
    description='AFT Newton-Raphson with step-halving',
)

# Standard error (on the standardized covariate scale) above which a
# coefficient is flagged as a likely monotone likelihood / separation.
SEPARATION_SE_THRESHOLD = 100.0

# Relative eigenvalue below which an information matrix is treated as
# singular (collinear covariates).
SINGULAR_RTOL = 1e-12

# Diagonal shift, relative to the largest eigenvalue, added on top of
# the most negative eigenvalue when the observed information is not
# positive definite.
LEVENBERG_FLOOR = 1e-4
