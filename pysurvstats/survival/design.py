"""
SurvivalDesign: immutable container for time-to-event data.

Wraps time, event indicator, optional covariates, and optional strata.
Validates inputs at construction time; all downstream code trusts clean data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from pysurvstats.core.exceptions import DimensionError, ValidationError
from pysurvstats.core.validation import (
    check_array,
    check_binary,
    check_finite,
    check_nonnegative,
)
from pysurvstats.survival._frame import ModelFrame, build_model_frame
from pysurvstats.survival.table import EventTable, factorize


@dataclass(frozen=True)
class SurvivalDesign:
    """Immutable survival data container.

    Parameters
    ----------
    time : NDArray
        Time to event or censoring. Must be non-negative.
    event : NDArray
        Event indicator: 1 = event observed, 0 = censored.
    X : NDArray or None
        Covariate matrix (n, p). None for KM / log-rank.
    strata : NDArray or None
        Strata labels for stratified analyses (object array).
    names : tuple of str or None
        Column labels for X.
    frame : ModelFrame or None
        Encoding metadata when built from an EventTable.
    """

    time: NDArray
    event: NDArray
    X: NDArray | None
    strata: NDArray | None
    names: tuple[str, ...] | None = None
    frame: ModelFrame | None = None

    @classmethod
    def for_survival(
        cls,
        time,
        event,
        X=None,
        *,
        strata=None,
        names: Sequence[str] | None = None,
    ) -> SurvivalDesign:
        """Create and validate survival data.

        Parameters
        ----------
        time : array-like
            Time to event or censoring.
        event : array-like
            Event indicator (0/1 or bool).
        X : array-like or None
            Optional covariate matrix.
        strata : array-like or None
            Optional strata labels (one per subject).
        names : sequence of str or None
            Optional column labels for X (default x0, x1, ...).

        Returns
        -------
        SurvivalDesign

        Raises
        ------
        ValidationError
            If inputs are invalid (also a ValueError).
        """
        time = check_array(time, 'time').ravel()
        event = check_array(event, 'event').ravel()

        n = len(time)

        if n == 0:
            raise ValidationError("time must have at least one observation")

        if len(event) != n:
            raise DimensionError(
                f"time and event must have the same length: "
                f"got {n} and {len(event)}"
            )

        check_finite(time, 'time')
        check_nonnegative(time, 'time')
        check_binary(event, 'event')

        X_arr = None
        if X is not None:
            X_arr = check_array(X, 'X')
            if X_arr.ndim == 1:
                X_arr = X_arr.reshape(-1, 1)
            if X_arr.ndim != 2:
                raise DimensionError(
                    f"X must be 1D or 2D, got {X_arr.ndim}D"
                )
            if X_arr.shape[0] != n:
                raise DimensionError(
                    f"X must have {n} rows to match time, "
                    f"got {X_arr.shape[0]}"
                )
            check_finite(X_arr, 'X')

        strata_arr = None
        if strata is not None:
            strata_list = list(strata)
            if len(strata_list) != n:
                raise DimensionError(
                    f"strata must have {n} elements to match time, "
                    f"got {len(strata_list)}"
                )
            # element-wise so tuple keys stay scalars in the object array
            strata_arr = np.empty(n, dtype=object)
            for i, label in enumerate(strata_list):
                strata_arr[i] = label

        names_tuple = None
        if X_arr is not None:
            if names is None:
                names_tuple = tuple(f"x{j}" for j in range(X_arr.shape[1]))
            else:
                names_tuple = tuple(str(s) for s in names)
                if len(names_tuple) != X_arr.shape[1]:
                    raise DimensionError(
                        f"names must have {X_arr.shape[1]} entries to match X, "
                        f"got {len(names_tuple)}"
                    )

        return cls(
            time=time,
            event=event,
            X=X_arr,
            strata=strata_arr,
            names=names_tuple,
        )

    @classmethod
    def from_table(
        cls,
        table: EventTable,
        covariates: Sequence[str] = (),
        *,
        interactions: Sequence[tuple[str, str]] = (),
        strata: Sequence[str] = (),
    ) -> SurvivalDesign:
        """Create a design from an EventTable and a covariate selection.

        Parameters
        ----------
        table : EventTable
            Source subjects.
        covariates : sequence of str
            Main-effect covariates. Categorical covariates are
            treatment-coded against their first level.
        interactions : sequence of (str, str)
            Pairwise interaction terms.
        strata : sequence of str
            Stratification covariates. Each subject's stratum is the
            tuple of its values for these covariates.

        Returns
        -------
        SurvivalDesign
        """
        strata_labels = table.stratum_keys(strata) if strata else None

        X = None
        frame = None
        if covariates or interactions or strata:
            X, frame = build_model_frame(
                table, covariates, interactions=interactions, strata=strata,
            )
            if X.shape[1] == 0:
                X = None

        design = cls.for_survival(
            table.time, table.event, X,
            strata=strata_labels,
            names=frame.column_names if X is not None else None,
        )
        return cls(
            time=design.time,
            event=design.event,
            X=design.X,
            strata=design.strata,
            names=design.names,
            frame=frame,
        )

    @property
    def n(self) -> int:
        """Number of observations."""
        return len(self.time)

    @property
    def p(self) -> int | None:
        """Number of covariates (None if no covariates)."""
        return self.X.shape[1] if self.X is not None else None

    @property
    def n_events(self) -> int:
        """Number of observed events."""
        return int(np.sum(self.event))

    def strata_codes(self) -> tuple[tuple, NDArray | None]:
        """(labels, codes) for the strata, or ((None,), None) if unstratified."""
        if self.strata is None:
            return (None,), None
        return factorize(self.strata)
