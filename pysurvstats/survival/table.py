"""
EventTable: the in-memory subject table every estimator reads from.

A table is an immutable, non-empty, ordered sequence of Subjects. Each
Subject carries its own follow-up time, event indicator and a read-only
mapping of covariates (numeric values or categorical levels, typically
Enum members produced by a recoding step such as datasets.colon).

Tables are never mutated: subsetting and stratification return new
tables, so any number of models can be fit on the same table without
shared mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pysurvstats.core.exceptions import ValidationError

if TYPE_CHECKING:
    import pandas as pd


StratumKey = tuple


def is_categorical_value(value: Any) -> bool:
    """True for Enum members, strings and any other non-real value."""
    if isinstance(value, Enum):
        return True
    return not isinstance(value, (Real, np.number))


def _level_sort_key(value: Any) -> tuple:
    if isinstance(value, tuple):
        return (3, 0.0, tuple(_level_sort_key(v) for v in value))
    if isinstance(value, Enum):
        return (0, float(list(type(value)).index(value)), ())
    if isinstance(value, (Real, np.number)):
        return (1, float(value), ())
    return (2, 0.0, (str(value),))


def level_order(values: Iterable[Any]) -> tuple:
    """
    Distinct values in canonical level order.

    Enum members follow their definition order, numbers sort numerically,
    everything else sorts by its string form. Tuples (stratum keys) sort
    component-wise by the same rules.
    """
    uniques = list(dict.fromkeys(values))
    return tuple(sorted(uniques, key=_level_sort_key))


def factorize(values: Iterable[Any]) -> tuple[tuple, NDArray]:
    """
    Map labels to integer codes.

    Returns:
        (levels, codes) where levels is in level_order() and
        codes[i] indexes levels for the i-th value.
    """
    values = list(values)
    levels = level_order(values)
    index = {level: k for k, level in enumerate(levels)}
    codes = np.fromiter((index[v] for v in values), dtype=np.intp, count=len(values))
    return levels, codes


@dataclass(frozen=True)
class Subject:
    """
    One study subject.

    Attributes:
        id: Subject identifier (unique within a table)
        time: Event or censoring time, >= 0
        event: True if the event was observed, False if censored
        covariates: Read-only mapping covariate name -> value
    """

    id: Any
    time: float
    event: bool
    covariates: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        time = float(self.time)
        if not np.isfinite(time) or time < 0:
            raise ValidationError(
                f"Subject {self.id!r}: time must be finite and non-negative, "
                f"got {self.time}"
            )
        if self.event not in (0, 1, True, False):
            raise ValidationError(
                f"Subject {self.id!r}: event must be 0/1 or bool, got {self.event!r}"
            )
        object.__setattr__(self, 'time', time)
        object.__setattr__(self, 'event', bool(self.event))
        object.__setattr__(
            self, 'covariates', MappingProxyType(dict(self.covariates))
        )

    def __getitem__(self, name: str) -> Any:
        return self.covariates[name]


@dataclass(frozen=True)
class EventTable:
    """Immutable ordered collection of Subjects."""

    subjects: tuple[Subject, ...]

    def __post_init__(self) -> None:
        subjects = tuple(self.subjects)
        if len(subjects) == 0:
            raise ValidationError("EventTable must contain at least one subject")
        ids = [s.id for s in subjects]
        if len(set(ids)) != len(ids):
            seen: set = set()
            dupes = [i for i in ids if i in seen or seen.add(i)]
            raise ValidationError(
                f"EventTable: subject ids must be unique, duplicated: {dupes[:5]}"
            )
        object.__setattr__(self, 'subjects', subjects)

    # === Construction ===

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        *,
        id_key: str = 'id',
        time_key: str = 'time',
        event_key: str = 'event',
    ) -> EventTable:
        """
        Build a table from dict-like records.

        Every key other than id/time/event becomes a covariate. Records
        without an id are numbered from 1 in input order.
        """
        subjects = []
        for k, record in enumerate(records, start=1):
            missing = [key for key in (time_key, event_key) if key not in record]
            if missing:
                raise ValidationError(f"record {k}: missing field(s) {missing}")
            covariates = {
                name: value for name, value in record.items()
                if name not in (id_key, time_key, event_key)
            }
            subjects.append(Subject(
                id=record.get(id_key, k),
                time=record[time_key],
                event=record[event_key],
                covariates=covariates,
            ))
        return cls(tuple(subjects))

    @classmethod
    def from_dataframe(
        cls,
        df: 'pd.DataFrame',
        *,
        id_col: str | None = 'id',
        time_col: str = 'time',
        event_col: str = 'status',
        covariates: Sequence[str] | None = None,
    ) -> EventTable:
        """
        Build a table from a pandas DataFrame.

        Args:
            df: One row per subject
            id_col: Identifier column, or None to number rows from 1
            time_col: Follow-up time column
            event_col: Event indicator column (0/1 or bool)
            covariates: Columns to carry as covariates (default: all others)
        """
        for col in (time_col, event_col) + ((id_col,) if id_col else ()):
            if col not in df.columns:
                raise ValidationError(
                    f"DataFrame has no column '{col}'. Available: {list(df.columns)}"
                )
        if df[[time_col, event_col]].isna().any().any():
            raise ValidationError(
                f"DataFrame: '{time_col}' and '{event_col}' must not contain missing values"
            )

        if covariates is None:
            reserved = {time_col, event_col, id_col}
            covariates = [c for c in df.columns if c not in reserved]
        else:
            absent = [c for c in covariates if c not in df.columns]
            if absent:
                raise ValidationError(f"DataFrame has no covariate column(s) {absent}")

        ids = df[id_col].tolist() if id_col else range(1, len(df) + 1)
        times = df[time_col].to_numpy(dtype=np.float64)
        events = df[event_col].to_numpy(dtype=np.float64)
        columns = {name: df[name].tolist() for name in covariates}

        subjects = tuple(
            Subject(
                id=subject_id,
                time=times[i],
                event=events[i],
                covariates={name: values[i] for name, values in columns.items()},
            )
            for i, subject_id in enumerate(ids)
        )
        return cls(subjects)

    # === Sequence protocol ===

    def __len__(self) -> int:
        return len(self.subjects)

    def __iter__(self) -> Iterator[Subject]:
        return iter(self.subjects)

    def __getitem__(self, index: int) -> Subject:
        return self.subjects[index]

    # === Column access ===

    @property
    def n(self) -> int:
        """Number of subjects."""
        return len(self.subjects)

    @property
    def time(self) -> NDArray:
        """(n,) follow-up times."""
        return np.array([s.time for s in self.subjects], dtype=np.float64)

    @property
    def event(self) -> NDArray:
        """(n,) event indicators as 0.0/1.0."""
        return np.array([s.event for s in self.subjects], dtype=np.float64)

    @property
    def ids(self) -> tuple:
        return tuple(s.id for s in self.subjects)

    @property
    def n_events(self) -> int:
        return sum(1 for s in self.subjects if s.event)

    @property
    def covariate_names(self) -> tuple[str, ...]:
        """Covariate names in first-seen order."""
        names: dict[str, None] = {}
        for s in self.subjects:
            names.update(dict.fromkeys(s.covariates))
        return tuple(names)

    def values(self, name: str) -> list:
        """Raw covariate values for every subject, in table order."""
        missing = [s.id for s in self.subjects if name not in s.covariates]
        if missing:
            raise ValidationError(
                f"covariate '{name}' is missing for {len(missing)} subject(s), "
                f"e.g. id={missing[0]!r}"
            )
        return [s.covariates[name] for s in self.subjects]

    def is_categorical(self, name: str) -> bool:
        """A covariate is categorical if any subject holds a non-real value."""
        return any(is_categorical_value(v) for v in self.values(name))

    def levels(self, name: str) -> tuple:
        """Distinct values of a covariate in level order."""
        return level_order(self.values(name))

    # === Derived tables ===

    def subset(self, predicate: Callable[[Subject], bool]) -> EventTable:
        """Subjects for which predicate(subject) is true, order preserved."""
        kept = tuple(s for s in self.subjects if predicate(s))
        if not kept:
            raise ValidationError("subset selected no subjects")
        return EventTable(kept)

    def stratum_keys(self, by: Sequence[str]) -> list[StratumKey]:
        """Stratum key (tuple of covariate values) for every subject."""
        by = tuple(by)
        if not by:
            return [()] * self.n
        columns = [self.values(name) for name in by]
        return [tuple(col[i] for col in columns) for i in range(self.n)]

    def strata(self, by: Sequence[str]) -> dict[StratumKey, EventTable]:
        """
        Partition into disjoint sub-tables keyed by stratum.

        Keys are tuples of the `by` covariate values, in level order.
        Every subject lands in exactly one sub-table.
        """
        keys = self.stratum_keys(by)
        groups: dict[StratumKey, list[Subject]] = {}
        for key, subject in zip(keys, self.subjects):
            groups.setdefault(key, []).append(subject)
        return {key: EventTable(tuple(groups[key])) for key in level_order(groups)}
