"""
Shared compute infrastructure for pysurvstats.

Submodules:
    timing: Execution timing utilities
    tolerances: Optimizer settings and degeneracy thresholds
    newton: Newton-Raphson step and stopping rules
"""

from pysurvstats.core.compute.timing import Timer, timed
from pysurvstats.core.compute.tolerances import (
    AFT_DEFAULTS,
    COX_DEFAULTS,
    OptimizerSettings,
)

__all__ = [
    "Timer",
    "timed",
    "OptimizerSettings",
    "COX_DEFAULTS",
    "AFT_DEFAULTS",
]
