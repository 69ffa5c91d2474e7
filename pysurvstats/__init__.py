"""
pysurvstats: survival analysis for Python.

Kaplan-Meier curves, log-rank tests, Cox proportional hazards regression
(with proportionality diagnostics and Breslow baseline hazard) and
parametric accelerated failure time models, each implemented from its
estimating equations on NumPy/SciPy and checked against R's survival
package.

Submodules:
    survival: Estimators, designs and event tables
    datasets: Bundled-dataset recoding (colon cancer trial)
    core: Result envelope, exceptions, validation, optimizer settings
"""

__version__ = "0.1.0"

from pysurvstats import survival
from pysurvstats import datasets

__all__ = [
    "__version__",
    "survival",
    "datasets",
]
