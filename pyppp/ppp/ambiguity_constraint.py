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
Fixed Ambiguity Pseudo-Observations
===================================

Integer ambiguities certified by an external resolver enter the measurement
update as heavily weighted pseudo-observations

    N_fixed = 1.0 * N

appended after the regular equations. A large but finite weight keeps the
information-form update invertible while pulling the ambiguity onto the
integer.
"""

import logging
from typing import Callable, Dict, Protocol, Tuple, Union

import numpy as np

from ..core import stats
from ..core.data_structures import EpochData, Observable, ObsType
from ..core.exceptions import NoFixableAmbiguity
from .carry_forward import StateSnapshot
from .equations import EquationSystem, RowKind, RowLabel
from .variable import Variable, VariableSet

logger = logging.getLogger(__name__)

# Ambiguity unknown -> certified integer value (cycles)
AmbFixedMap = Dict[Variable, float]


class AmbiguityResolver(Protocol):
    """Produces the fixed ambiguities of an epoch from the predicted state"""

    def resolve(self, prior: StateSnapshot, epoch: EpochData) -> AmbFixedMap:
        ...


ResolverLike = Union[AmbiguityResolver, Callable[[StateSnapshot, EpochData], AmbFixedMap]]


class AmbiguityConstraintInjector:
    """
    Appends fixed-ambiguity rows to an epoch equation system

    Parameters
    ----------
    resolver : AmbiguityResolver or callable
        Object with ``resolve(prior, epoch)`` or a plain callable with the
        same signature
    weight : float
        Weight of every appended row
    """

    def __init__(self, resolver: ResolverLike, weight: float = stats.WEIGHT_FIXED_AMB):
        if weight <= 0.0:
            raise ValueError("Fixed ambiguity weight must be positive")
        self.resolver = resolver
        self.weight = weight

    def _resolve(self, prior: StateSnapshot, epoch: EpochData) -> AmbFixedMap:
        if hasattr(self.resolver, "resolve"):
            return self.resolver.resolve(prior, epoch)
        return self.resolver(prior, epoch)

    def inject(self, variables: VariableSet, state: np.ndarray, covariance: np.ndarray,
               epoch: EpochData, system: EquationSystem
               ) -> Tuple[EquationSystem, AmbFixedMap]:
        """
        Extend the equation system with fixed ambiguity constraints

        Parameters
        ----------
        variables : VariableSet
            Current unknowns
        state : np.ndarray
            Predicted state aligned with ``variables``
        covariance : np.ndarray
            Predicted covariance aligned with ``variables``
        epoch : EpochData
            Epoch inputs, handed through to the resolver
        system : EquationSystem
            Regular equations of the epoch

        Returns
        -------
        system : EquationSystem
            Regular rows followed by one row per fixed ambiguity
        fixed : AmbFixedMap
            Fixed ambiguities actually applied

        Raises
        ------
        NoFixableAmbiguity
            If the resolver fixed nothing usable
        """
        prior = StateSnapshot(variables, state, covariance, epoch.time)
        amb_map = self._resolve(prior, epoch) or {}

        fixed: AmbFixedMap = {}
        for var in sorted(amb_map):
            if not var.is_ambiguity:
                raise ValueError(f"{var} is not an ambiguity and cannot be fixed")
            if var not in variables:
                logger.warning(f"Fixed ambiguity {var} is not estimated this epoch, ignored")
                continue
            fixed[var] = float(amb_map[var])

        if not fixed:
            raise NoFixableAmbiguity("The ambiguity constraint equation number is 0")

        k = len(fixed)
        prefit = np.zeros(k)
        H = np.zeros((k, len(variables)))
        labels = []
        for row, (var, value) in enumerate(fixed.items()):
            prefit[row] = value
            H[row, variables.index(var)] = 1.0
            obs = Observable.L1 if var.obs_type == ObsType.AMB_L1 else Observable.L2
            labels.append(RowLabel(RowKind.AMBIGUITY_FIX, var.satellite, obs))

        logger.debug(f"Injected {k} fixed ambiguities at t={epoch.time:.1f}")
        return system.extended(prefit, H, np.full(k, self.weight), labels), fixed
