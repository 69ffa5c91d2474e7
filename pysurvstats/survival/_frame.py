"""
Model frame: from named covariates to a numeric design matrix.

Handles the translation from a caller's covariate list (numeric and
categorical covariates, optional pairwise interactions) to the X matrix
the solvers consume, and keeps enough metadata to encode new covariate
vectors identically at prediction time.

Key concepts:
    - Treatment coding: k-1 indicator columns, baseline = first level
    - Interaction: element-wise products of the component columns
    - ModelFrame.encode(): same coding applied to a query mapping;
      missing covariates or unseen levels raise
      InvalidCovariateVectorError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from pysurvstats.core.exceptions import InvalidCovariateVectorError, ValidationError
from pysurvstats.core.validation import check_finite
from pysurvstats.survival.table import EventTable, is_categorical_value


@dataclass(frozen=True)
class Term:
    """
    One model term and the columns it owns.

    Attributes:
        name: 'age', 'rx' or 'rx:sex'
        kind: 'numeric', 'categorical' or 'interaction'
        columns: column labels contributed to X
        factors: component covariate names (one for main effects)
    """
    name: str
    kind: str
    columns: tuple[str, ...]
    factors: tuple[str, ...]


@dataclass(frozen=True)
class ModelFrame:
    """
    Encoding metadata for a fitted design matrix.

    Attributes:
        terms: model terms in column order
        column_names: labels of the X columns
        levels: categorical covariate -> levels, baseline first
        strata: stratification covariate names (empty if unstratified)
        strata_levels: observed stratum keys, in level order
        means: (p,) column means of X over the fitting data
    """
    terms: tuple[Term, ...]
    column_names: tuple[str, ...]
    levels: dict[str, tuple]
    strata: tuple[str, ...]
    strata_levels: tuple[tuple, ...]
    means: NDArray

    @property
    def p(self) -> int:
        return len(self.column_names)

    @property
    def required(self) -> tuple[str, ...]:
        """Covariate names a query must supply."""
        names: dict[str, None] = {}
        for term in self.terms:
            names.update(dict.fromkeys(term.factors))
        names.update(dict.fromkeys(self.strata))
        return tuple(names)

    def encode(self, values: Mapping[str, Any]) -> NDArray:
        """
        Encode one covariate mapping into a (p,) row of X.

        Raises:
            InvalidCovariateVectorError: if a covariate is missing, a
                categorical level was not seen during fitting, or a
                numeric covariate is given a non-numeric value
        """
        self._check_query(values)
        columns = {
            name: _encode_values(name, [values[name]], self.levels.get(name))
            for name in self.required if name not in self.strata
        }
        return _assemble(self.terms, columns, 1)[0]

    def encode_many(self, rows: Sequence[Mapping[str, Any]]) -> NDArray:
        """Encode several covariate mappings into an (m, p) matrix."""
        if len(rows) == 0:
            return np.empty((0, self.p), dtype=np.float64)
        return np.vstack([self.encode(row) for row in rows])

    def stratum_of(self, values: Mapping[str, Any]) -> tuple:
        """Stratum key of a query mapping (empty tuple if unstratified)."""
        self._check_query(values)
        key = tuple(values[name] for name in self.strata)
        if self.strata and key not in self.strata_levels:
            raise InvalidCovariateVectorError(
                f"stratum {key!r} was not seen during fitting; "
                f"known strata: {list(self.strata_levels)}",
                unseen_levels=dict(zip(self.strata, key)),
            )
        return key

    def _check_query(self, values: Mapping[str, Any]) -> None:
        missing = tuple(name for name in self.required if name not in values)
        if missing:
            raise InvalidCovariateVectorError(
                f"covariate vector is missing {list(missing)}; "
                f"the model uses {list(self.required)}",
                missing=missing,
            )
        unseen = {
            name: values[name]
            for name, levels in self.levels.items()
            if values[name] not in levels
        }
        if unseen:
            details = ", ".join(
                f"{name}={value!r} (known: {list(self.levels[name])})"
                for name, value in unseen.items()
            )
            raise InvalidCovariateVectorError(
                f"unseen categorical level(s): {details}",
                unseen_levels=unseen,
            )
        for term in self.terms:
            for name in term.factors:
                if name not in self.levels and is_categorical_value(values[name]):
                    raise InvalidCovariateVectorError(
                        f"covariate '{name}' is numeric in the model, "
                        f"got {values[name]!r}",
                        unseen_levels={name: values[name]},
                    )


def encode_treatment(
    values: Sequence[Any],
    levels: tuple,
) -> NDArray:
    """
    Treatment (dummy) coding for a single categorical covariate.

    Drops the first level (baseline) and creates k-1 indicator columns.

    Args:
        values: n category values
        levels: all levels, baseline first

    Returns:
        (n, k-1) float64 indicator matrix
    """
    n = len(values)
    X = np.zeros((n, len(levels) - 1), dtype=np.float64)
    for j, level in enumerate(levels[1:]):
        X[:, j] = [v == level for v in values]
    return X


def interaction_columns(
    X_a: NDArray, X_b: NDArray,
) -> NDArray:
    """
    Compute interaction columns as the element-wise product of all
    column pairs from X_a and X_b.

    Returns:
        (n, p_a * p_b) interaction columns
    """
    n = X_a.shape[0]
    p_a = X_a.shape[1]
    p_b = X_b.shape[1]
    X_int = np.empty((n, p_a * p_b), dtype=np.float64)

    col = 0
    for i in range(p_a):
        for j in range(p_b):
            X_int[:, col] = X_a[:, i] * X_b[:, j]
            col += 1

    return X_int


def _encode_values(name: str, values: Sequence[Any], levels: tuple | None) -> NDArray:
    if levels is not None:
        return encode_treatment(values, levels)
    col = np.asarray(values, dtype=np.float64).reshape(-1, 1)
    return col


def _column_labels(name: str, levels: tuple | None) -> tuple[str, ...]:
    if levels is None:
        return (name,)
    return tuple(f"{name}[{_level_label(level)}]" for level in levels[1:])


def _level_label(level: Any) -> str:
    return str(getattr(level, 'label', None) or getattr(level, 'name', None) or level)


def _assemble(
    terms: tuple[Term, ...],
    columns: dict[str, NDArray],
    n: int,
) -> NDArray:
    blocks = []
    for term in terms:
        if term.kind == 'interaction':
            a, b = term.factors
            blocks.append(interaction_columns(columns[a], columns[b]))
        else:
            blocks.append(columns[term.name])
    if not blocks:
        return np.empty((n, 0), dtype=np.float64)
    return np.hstack(blocks)


def build_model_frame(
    table: EventTable,
    covariates: Sequence[str],
    *,
    interactions: Sequence[tuple[str, str]] = (),
    strata: Sequence[str] = (),
) -> tuple[NDArray, ModelFrame]:
    """
    Build the design matrix for a covariate selection.

    Args:
        table: source subjects
        covariates: main-effect covariate names, in column order
        interactions: (a, b) pairs; components need not be main effects
        strata: stratification covariates (not encoded into X)

    Returns:
        (X, frame) with X of shape (n, p)
    """
    covariates = tuple(covariates)
    interactions = tuple(tuple(pair) for pair in interactions)
    strata = tuple(strata)

    if len(set(covariates)) != len(covariates):
        raise ValidationError(f"covariates contain duplicates: {list(covariates)}")
    for pair in interactions:
        if len(pair) != 2 or pair[0] == pair[1]:
            raise ValidationError(
                f"interactions must be pairs of distinct covariates, got {pair!r}"
            )
    overlap = set(strata) & (set(covariates) | {f for pair in interactions for f in pair})
    if overlap:
        raise ValidationError(
            f"covariates {sorted(overlap)} cannot be both modeled and used as strata"
        )

    involved = tuple(dict.fromkeys(covariates + tuple(f for pair in interactions for f in pair)))
    levels: dict[str, tuple] = {}
    columns: dict[str, NDArray] = {}
    for name in involved:
        raw = table.values(name)
        name_levels = table.levels(name) if table.is_categorical(name) else None
        if name_levels is not None:
            if len(name_levels) < 2:
                raise ValidationError(
                    f"categorical covariate '{name}' has a single level "
                    f"{name_levels[0]!r}; it cannot be estimated"
                )
            levels[name] = name_levels
        columns[name] = _encode_values(name, raw, name_levels)
        check_finite(columns[name], name)

    terms = []
    for name in covariates:
        kind = 'categorical' if name in levels else 'numeric'
        terms.append(Term(name, kind, _column_labels(name, levels.get(name)), (name,)))
    for a, b in interactions:
        labels_a = _column_labels(a, levels.get(a))
        labels_b = _column_labels(b, levels.get(b))
        labels = tuple(f"{la}:{lb}" for la in labels_a for lb in labels_b)
        terms.append(Term(f"{a}:{b}", 'interaction', labels, (a, b)))
    terms = tuple(terms)

    X = _assemble(terms, columns, table.n)
    column_names = tuple(label for term in terms for label in term.columns)

    strata_levels: tuple[tuple, ...] = ()
    if strata:
        strata_levels = tuple(table.strata(strata).keys())

    frame = ModelFrame(
        terms=terms,
        column_names=column_names,
        levels=levels,
        strata=strata,
        strata_levels=strata_levels,
        means=X.mean(axis=0) if X.shape[1] else np.empty(0),
    )
    return X, frame
