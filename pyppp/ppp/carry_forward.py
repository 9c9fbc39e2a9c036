# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
State Carry-Forward Between Epochs
==================================

The posterior of an epoch is stored keyed by Variable identity so that the
next epoch, whose unknown set may differ, can pick up the values of the
unknowns it shares with the previous one. Unknowns that appear for the first
time get their a-priori variance and no correlation; unknowns that vanish are
dropped.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..core.exceptions import DimensionMismatch
from .variable import Variable, VariableSet

logger = logging.getLogger(__name__)


class StateSnapshot:
    """
    Variable-keyed mean and covariance of one epoch

    Only the diagonal and the upper triangle (in canonical order) of the
    covariance are stored; reads are mirrored.

    Attributes
    ----------
    variables : VariableSet
        Unknowns of the stored epoch
    time : float
        Epoch time (GPST seconds)
    state : Dict[Variable, float]
        Mean per unknown
    """

    def __init__(self, variables: VariableSet, state: np.ndarray,
                 covariance: np.ndarray, time: float = 0.0):
        n = len(variables)
        state = np.asarray(state, dtype=float)
        covariance = np.asarray(covariance, dtype=float)
        if state.shape != (n,) or covariance.shape != (n, n):
            raise DimensionMismatch(
                f"Snapshot of {n} unknowns with state {state.shape} "
                f"and covariance {covariance.shape}")

        self.variables = variables
        self.time = time
        self.state: Dict[Variable, float] = {
            var: float(state[i]) for i, var in enumerate(variables)}
        self._cov: Dict[Variable, Dict[Variable, float]] = {}
        for i, var_i in enumerate(variables):
            row = {}
            for j in range(i, n):
                row[variables[j]] = float(covariance[i, j])
            self._cov[var_i] = row

    def __contains__(self, var) -> bool:
        return var in self.state

    def __len__(self):
        return len(self.state)

    def covariance(self, var1: Variable, var2: Variable) -> float:
        """Covariance between two stored unknowns"""
        if var2 in self._cov.get(var1, {}):
            return self._cov[var1][var2]
        if var1 in self._cov.get(var2, {}):
            return self._cov[var2][var1]
        raise KeyError(f"No covariance stored for ({var1}, {var2})")

    def variance(self, var: Variable) -> float:
        return self._cov[var][var]

    def values(self, variables: Iterable[Variable]) -> np.ndarray:
        """Means of the given unknowns, in the given order"""
        return np.array([self.state[var] for var in variables])

    def submatrix(self, variables: Iterable[Variable]) -> np.ndarray:
        """Covariance block of the given unknowns, in the given order"""
        variables = list(variables)
        n = len(variables)
        P = np.zeros((n, n))
        for i in range(n):
            for j in range(i, n):
                P[i, j] = P[j, i] = self.covariance(variables[i], variables[j])
        return P

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """State vector and full covariance in canonical order"""
        return self.values(self.variables), self.submatrix(self.variables)


class StateCarryForward:
    """
    Snapshots posteriors and materializes priors for new unknown sets

    Examples
    --------
    >>> carry = StateCarryForward()
    >>> carry.snapshot(variables, x_post, P_post, time=t0)
    >>> x_prior, P_prior = carry.materialize(next_variables)
    """

    def __init__(self):
        self._latest: Optional[StateSnapshot] = None

    @property
    def latest(self) -> Optional[StateSnapshot]:
        """Most recent snapshot, None before the first successful epoch"""
        return self._latest

    def reset(self):
        self._latest = None

    def snapshot(self, variables: VariableSet, state: np.ndarray,
                 covariance: np.ndarray, time: float = 0.0) -> StateSnapshot:
        """Store a posterior keyed by Variable identity"""
        snap = StateSnapshot(variables, state, covariance, time)
        self._latest = snap
        logger.debug(f"Stored {len(snap)} unknowns at t={time:.1f}")
        return snap

    def materialize(self, variables: VariableSet,
                    snapshot: Optional[StateSnapshot] = None
                    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Prior state and covariance for a new unknown set

        Parameters
        ----------
        variables : VariableSet
            Unknowns of the current epoch, canonical order
        snapshot : StateSnapshot, optional
            Source of carried values; the latest snapshot when omitted. With
            no snapshot at all every unknown gets its a-priori variance.

        Returns
        -------
        state : np.ndarray
            Prior state aligned with ``variables``
        covariance : np.ndarray
            Prior covariance aligned with ``variables``
        """
        if snapshot is None:
            snapshot = self._latest

        n = len(variables)
        x = np.zeros(n)
        P = np.zeros((n, n))

        carried = []
        for i, var in enumerate(variables):
            if snapshot is not None and var in snapshot:
                carried.append(i)
                x[i] = snapshot.state[var]
            else:
                P[i, i] = variables.spec(var).initial_variance

        for a, i in enumerate(carried):
            var_i = variables[i]
            for j in carried[a:]:
                P[i, j] = P[j, i] = snapshot.covariance(var_i, variables[j])

        if snapshot is not None:
            new = n - len(carried)
            dropped = len(snapshot) - len(carried)
            if new or dropped:
                logger.debug(f"Carry-forward: {len(carried)} carried, {new} new, "
                             f"{dropped} dropped")
        return x, P
