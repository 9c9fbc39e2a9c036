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

"""Uncombined PPP filter module for pyppp"""

from .ambiguity_constraint import AmbFixedMap, AmbiguityConstraintInjector, AmbiguityResolver
from .carry_forward import StateCarryForward, StateSnapshot
from .config import SolverConfig
from .equations import (
    EquationAssembler,
    EquationSystem,
    RowKind,
    RowLabel,
    SatelliteValidity,
    select_reference_satellite,
)
from .kalman import KalmanCore, MeasUpdateResult, TimeUpdateResult
from .solution import EpochSolution, FixingStatistics, FixingStats
from .solver import EstimatorKind, EstimatorState, UncombinedPPPSolver
from .stochastic import StochasticKind, StochasticModel, StochasticModelBank, transition
from .variable import Variable, VariableCatalog, VariableSet, VariableSpec

__all__ = [
    'Variable',
    'VariableSpec',
    'VariableSet',
    'VariableCatalog',
    'StochasticKind',
    'StochasticModel',
    'StochasticModelBank',
    'transition',
    'EquationAssembler',
    'EquationSystem',
    'RowKind',
    'RowLabel',
    'SatelliteValidity',
    'select_reference_satellite',
    'KalmanCore',
    'TimeUpdateResult',
    'MeasUpdateResult',
    'StateCarryForward',
    'StateSnapshot',
    'AmbFixedMap',
    'AmbiguityResolver',
    'AmbiguityConstraintInjector',
    'EpochSolution',
    'FixingStats',
    'FixingStatistics',
    'SolverConfig',
    'EstimatorKind',
    'EstimatorState',
    'UncombinedPPPSolver'
]
