"""
Survival analysis.

Public API:
    kaplan_meier(...) -> KMSolution | StratifiedKMSolution
    survdiff(...) -> LogRankSolution
    coxph(...) -> CoxSolution
    basehaz(fit) -> BaselineHazardSolution
    cox_zph(fit) -> ZPHSolution
    survreg(...) -> AFTSolution

Data:
    Subject, EventTable -> SurvivalDesign.from_table(...)
"""

from pysurvstats.survival.table import EventTable, Subject
from pysurvstats.survival.design import SurvivalDesign
from pysurvstats.survival._common import CurvePoints
from pysurvstats.survival.solvers import (
    basehaz,
    cox_zph,
    coxph,
    kaplan_meier,
    survdiff,
    survreg,
)
from pysurvstats.survival.solution import (
    AFTSolution,
    BaselineHazardSolution,
    CoxSolution,
    KMSolution,
    LogRankSolution,
    StratifiedKMSolution,
    ZPHSolution,
)

__all__ = [
    "EventTable",
    "Subject",
    "SurvivalDesign",
    "CurvePoints",
    "kaplan_meier",
    "survdiff",
    "coxph",
    "basehaz",
    "cox_zph",
    "survreg",
    "KMSolution",
    "StratifiedKMSolution",
    "LogRankSolution",
    "CoxSolution",
    "BaselineHazardSolution",
    "ZPHSolution",
    "AFTSolution",
]
