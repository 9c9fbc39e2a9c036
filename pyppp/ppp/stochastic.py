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
Stochastic Models for Filter Unknowns
=====================================

Each unknown follows one of three scalar processes:

- constant: phi = 1, q = 0 (static coordinates, ambiguities)
- white noise: phi = 0, q = sigma^2 (receiver clock)
- random walk: phi = 1, q = qprime * dt (troposphere, ionosphere)

No cross-unknown coupling is modelled, so the transition and process noise
matrices are diagonal.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..core.data_structures import ALL_SATELLITES, ALL_SOURCES, ObsType

logger = logging.getLogger(__name__)


class StochasticKind(Enum):
    """Scalar process type"""
    CONSTANT = "constant"
    WHITE_NOISE = "white_noise"
    RANDOM_WALK = "random_walk"


@dataclass(frozen=True)
class StochasticModel:
    """Stochastic model of a single unknown

    Attributes
    ----------
    kind : StochasticKind
        Process type
    sigma : float
        White noise standard deviation (m)
    qprime : float
        Random walk spectral density (m^2/s)
    """
    kind: StochasticKind = StochasticKind.WHITE_NOISE
    sigma: float = 0.0
    qprime: float = 0.0

    def __post_init__(self):
        if self.sigma < 0.0 or self.qprime < 0.0:
            raise ValueError("Stochastic model parameters must be non-negative")

    @classmethod
    def constant(cls) -> 'StochasticModel':
        return cls(StochasticKind.CONSTANT)

    @classmethod
    def white_noise(cls, sigma: float) -> 'StochasticModel':
        return cls(StochasticKind.WHITE_NOISE, sigma=sigma)

    @classmethod
    def random_walk(cls, prn: float) -> 'StochasticModel':
        """Random walk from a process noise in m/sqrt(s)"""
        return cls(StochasticKind.RANDOM_WALK, qprime=prn ** 2)


def transition(model: StochasticModel, dt: float,
               prior_value: Optional[float] = None) -> Tuple[float, float]:
    """
    Transition coefficient and process noise variance of one unknown

    Parameters
    ----------
    model : StochasticModel
        Stochastic model of the unknown
    dt : float
        Elapsed time since the last update (s)
    prior_value : float, optional
        Previous estimate; none of the built-in kinds depend on it

    Returns
    -------
    phi : float
        Transition coefficient
    q : float
        Process noise variance
    """
    if model.kind is StochasticKind.CONSTANT:
        return 1.0, 0.0
    if model.kind is StochasticKind.WHITE_NOISE:
        return 0.0, model.sigma ** 2
    if model.kind is StochasticKind.RANDOM_WALK:
        return 1.0, model.qprime * abs(dt)
    raise ValueError(f"Unknown stochastic kind: {model.kind}")


class StochasticModelBank:
    """
    Generates the diagonal transition and process noise matrices

    Every unknown uses the model from its VariableSpec unless an override
    has been registered. Overrides may use ALL_SOURCES / ALL_SATELLITES as
    wildcards; the most specific match wins.
    """

    def __init__(self):
        self._overrides: Dict[Tuple[ObsType, str, str], StochasticModel] = {}

    def set_model(self, obs_type: ObsType, model: StochasticModel,
                  source: str = ALL_SOURCES, satellite: str = ALL_SATELLITES):
        """Register a model override for a type, optionally per source/satellite"""
        self._overrides[(ObsType(obs_type), source, satellite)] = model

    def clear(self):
        self._overrides.clear()

    def model_for(self, var, default: StochasticModel) -> StochasticModel:
        """Resolve the model of a Variable"""
        for key in ((var.obs_type, var.source, var.satellite),
                    (var.obs_type, var.source, ALL_SATELLITES),
                    (var.obs_type, ALL_SOURCES, var.satellite),
                    (var.obs_type, ALL_SOURCES, ALL_SATELLITES)):
            if key in self._overrides:
                return self._overrides[key]
        return default

    def build(self, variables, dt: float, prior_state: Optional[np.ndarray] = None,
              fresh: Iterable = ()) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build phi and Q for the current unknown set

        Parameters
        ----------
        variables : VariableSet
            Current unknowns in canonical order
        dt : float
            Elapsed time since the previous successful update (s)
        prior_state : np.ndarray, optional
            Prior state aligned with variables
        fresh : iterable of Variable
            Unknowns first seen this epoch, always given (1, 0)

        Returns
        -------
        phi : np.ndarray
            Diagonal transition matrix (n x n)
        Q : np.ndarray
            Diagonal process noise matrix (n x n)
        """
        n = len(variables)
        phi_diag = np.zeros(n)
        q_diag = np.zeros(n)
        fresh = set(fresh)
        for i, var in enumerate(variables):
            if var in fresh:
                phi_diag[i] = 1.0
                continue
            model = self.model_for(var, variables.spec(var).model)
            prior = None if prior_state is None else float(prior_state[i])
            phi_diag[i], q_diag[i] = transition(model, dt, prior)

        logger.trace("Transition dt=%.1f s, phi=%s, q=%s", dt, phi_diag, q_diag)
        return np.diag(phi_diag), np.diag(q_diag)
