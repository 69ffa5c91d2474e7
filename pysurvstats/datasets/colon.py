"""
Colon cancer adjuvant chemotherapy trial (Moertel et al., 1990).

Recodes the numeric columns of R's survival::colon data to typed
categorical levels before modeling. Each recoded column maps to an Enum
whose definition order is the level order, so the first member is the
baseline under treatment coding.

Columns:
    id, study, rx, sex, age, obstruct, perfor, adhere, nodes, status,
    differ, extent, surg, node4, time, etype

The trial records two rows per patient (etype recurrence and death).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from pysurvstats.core.exceptions import ValidationError
from pysurvstats.survival.table import EventTable

if TYPE_CHECKING:
    import pandas as pd


class CodedLevel(Enum):
    """Categorical level recoded from a numeric (or string) code."""

    def __new__(cls, code, label):
        obj = object.__new__(cls)
        obj._value_ = code
        obj.label = label
        return obj

    @classmethod
    def from_code(cls, code: Any) -> CodedLevel:
        if isinstance(code, (float, np.floating)) and float(code).is_integer():
            code = int(code)
        try:
            return cls(code)
        except ValueError:
            codes = [member.value for member in cls]
            raise ValidationError(
                f"{cls.__name__}: unknown code {code!r}, expected one of {codes}"
            ) from None

    def __str__(self) -> str:
        return self.label


class Treatment(CodedLevel):
    OBSERVATION = ("Obs", "Obs")
    LEVAMISOLE = ("Lev", "Lev")
    LEVAMISOLE_5FU = ("Lev+5FU", "Lev+5FU")


class Sex(CodedLevel):
    FEMALE = (0, "female")
    MALE = (1, "male")


class Flag(CodedLevel):
    NO = (0, "no")
    YES = (1, "yes")


class Differentiation(CodedLevel):
    WELL = (1, "well")
    MODERATE = (2, "moderate")
    POOR = (3, "poor")


class Extent(CodedLevel):
    SUBMUCOSA = (1, "submucosa")
    MUSCLE = (2, "muscle")
    SEROSA = (3, "serosa")
    CONTIGUOUS = (4, "contiguous")


class SurgeryDelay(CodedLevel):
    SHORT = (0, "short")
    LONG = (1, "long")


class EventType(CodedLevel):
    RECURRENCE = (1, "recurrence")
    DEATH = (2, "death")


RECODINGS: dict[str, type[CodedLevel]] = {
    'rx': Treatment,
    'sex': Sex,
    'obstruct': Flag,
    'perfor': Flag,
    'adhere': Flag,
    'differ': Differentiation,
    'extent': Extent,
    'surg': SurgeryDelay,
    'node4': Flag,
    'etype': EventType,
}

NUMERIC = ('age', 'nodes')

REQUIRED_COLUMNS = ('id', 'time', 'status') + NUMERIC + tuple(RECODINGS)


def recode_colon(df: 'pd.DataFrame') -> 'pd.DataFrame':
    """
    Replace numeric codes with CodedLevel members.

    Missing codes stay missing (None). Returns a new DataFrame.
    """
    import pandas as pd

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(
            f"colon data is missing column(s) {missing}. "
            f"Available: {list(df.columns)}"
        )

    out = df.copy()
    for column, levels in RECODINGS.items():
        out[column] = [
            None if pd.isna(code) else levels.from_code(code)
            for code in df[column]
        ]
    return out


def colon_table(
    df: 'pd.DataFrame',
    *,
    etype: EventType | str | None = None,
    covariates: tuple[str, ...] | None = None,
    dropna: bool = True,
) -> EventTable:
    """
    Build an EventTable from the raw colon DataFrame.

    Args:
        df: Raw colon data (numeric codes)
        etype: Keep only one event type ('recurrence' or 'death');
            None keeps both and identifies subjects by (id, etype)
        covariates: Covariate columns to carry (default: all modeled columns)
        dropna: Drop subjects with a missing value in any carried covariate
    """
    recoded = recode_colon(df)

    if etype is not None:
        if not isinstance(etype, EventType):
            by_label = {member.label: member for member in EventType}
            if etype not in by_label:
                raise ValidationError(
                    f"etype must be one of {list(by_label)}, got {etype!r}"
                )
            etype = by_label[etype]
        recoded = recoded[[e is etype for e in recoded['etype']]]

    if covariates is None:
        covariates = NUMERIC + tuple(RECODINGS)
    covariates = tuple(covariates)

    if dropna:
        recoded = recoded.dropna(subset=list(covariates))
    if len(recoded) == 0:
        raise ValidationError("no colon subjects left after filtering")

    recoded = recoded.copy()
    if etype is None:
        recoded['subject'] = list(zip(recoded['id'], [e.label for e in recoded['etype']]))
    else:
        recoded['subject'] = recoded['id']

    return EventTable.from_dataframe(
        recoded,
        id_col='subject',
        time_col='time',
        event_col='status',
        covariates=covariates,
    )


def load_colon(
    path: str | Path,
    *,
    etype: EventType | str | None = None,
    covariates: tuple[str, ...] | None = None,
    dropna: bool = True,
) -> EventTable:
    """Read the colon CSV (as written by R's write.csv) into an EventTable."""
    import pandas as pd

    path = Path(path)
    df = pd.read_csv(path)
    df = df.loc[:, [c for c in df.columns if not str(c).startswith('Unnamed')]]
    return colon_table(df, etype=etype, covariates=covariates, dropna=dropna)
