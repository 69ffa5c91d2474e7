"""
Dataset recoding helpers.

    colon: R's survival::colon trial data, recoded to typed levels
"""

from pysurvstats.datasets.colon import (
    CodedLevel,
    Differentiation,
    EventType,
    Extent,
    Flag,
    Sex,
    SurgeryDelay,
    Treatment,
    colon_table,
    load_colon,
    recode_colon,
)

__all__ = [
    "CodedLevel",
    "Treatment",
    "Sex",
    "Flag",
    "Differentiation",
    "Extent",
    "SurgeryDelay",
    "EventType",
    "recode_colon",
    "colon_table",
    "load_colon",
]
