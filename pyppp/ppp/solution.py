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

"""Per-epoch filter output and ambiguity fixing statistics"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..core.constants import SOLQ_FIX, SOLQ_FLOAT, ionofree_ambiguity, widelane_ambiguity
from ..core.data_structures import OBSERVABLES, Observable, ObsType
from .equations import EquationSystem, RowKind, SatelliteValidity
from .variable import Variable, VariableSet


@dataclass
class FixingStats:
    """Fixed/float ambiguity counts of one satellite"""
    float_count: int = 0
    fixed_count: int = 0

    @property
    def fixing_rate(self) -> float:
        return self.fixed_count / self.float_count if self.float_count else 0.0


def fixing_stats(variables: VariableSet, fixed: Dict[Variable, float]) -> Dict[str, FixingStats]:
    """Per-satellite counts of estimated and fixed ambiguities"""
    stats: Dict[str, FixingStats] = {sat: FixingStats() for sat in variables.satellites}
    for var in variables:
        if var.is_ambiguity:
            stats[var.satellite].float_count += 1
    for var in fixed:
        if var.satellite in stats:
            stats[var.satellite].fixed_count += 1
    return stats


@dataclass
class EpochSolution:
    """
    Result of one processed epoch

    Attributes
    ----------
    time : float
        Epoch time (GPST seconds)
    epoch : int
        Epoch sequence number of the solver
    variables : VariableSet
        Unknowns in column order
    state : np.ndarray
        Posterior state
    covariance : np.ndarray
        Posterior covariance
    system : EquationSystem
        Equations used in the update, fixed ambiguity rows included
    postfit : np.ndarray
        Postfit residuals aligned with ``system`` rows
    fixed : Dict[Variable, float]
        Ambiguities constrained to integers this epoch
    validity : List[SatelliteValidity]
        Screening result of every satellite in the input
    """
    time: float
    epoch: int
    variables: VariableSet
    state: np.ndarray
    covariance: np.ndarray
    system: EquationSystem
    postfit: np.ndarray
    fixed: Dict[Variable, float] = field(default_factory=dict)
    validity: List[SatelliteValidity] = field(default_factory=list)

    @property
    def status(self) -> int:
        return SOLQ_FIX if self.fixed else SOLQ_FLOAT

    @property
    def satellites(self) -> List[str]:
        return self.variables.satellites

    @property
    def excluded(self) -> Dict[str, str]:
        """Excluded satellite -> reason"""
        return {v.sat: v.reason for v in self.validity if not v.valid}

    def value(self, obs_type: ObsType, satellite: str = "") -> float:
        return float(self.state[self.variables.index(self.variables.lookup(obs_type, satellite))])

    def sigma(self, obs_type: ObsType, satellite: str = "") -> float:
        i = self.variables.index(self.variables.lookup(obs_type, satellite))
        return float(np.sqrt(self.covariance[i, i]))

    @property
    def core(self) -> Dict[ObsType, float]:
        """Estimates of troposphere, coordinates and clock"""
        return {var.obs_type: float(self.state[self.variables.index(var)])
                for var in self.variables.core_variables}

    def _per_satellite(self, obs_type: ObsType) -> np.ndarray:
        return np.array([self.value(obs_type, sat) for sat in self.satellites])

    @property
    def ionosphere(self) -> Dict[str, float]:
        return dict(zip(self.satellites, self._per_satellite(ObsType.IONO_L1)))

    @property
    def widelane(self) -> Dict[str, float]:
        """Wide lane ambiguity lambda_WL * (N1 - N2) per satellite (m)"""
        bwl = widelane_ambiguity(self._per_satellite(ObsType.AMB_L1),
                                 self._per_satellite(ObsType.AMB_L2))
        return dict(zip(self.satellites, bwl))

    @property
    def ionofree(self) -> Dict[str, float]:
        """Ionosphere-free ambiguity per satellite (m)"""
        blc = ionofree_ambiguity(self._per_satellite(ObsType.AMB_L1),
                                 self._per_satellite(ObsType.AMB_L2))
        return dict(zip(self.satellites, blc))

    def postfit_residuals(self) -> Dict[Tuple[Observable, str], float]:
        """Postfit residual per (observable, satellite) measurement row"""
        out = {}
        for i in self.system.rows_of(RowKind.MEASUREMENT):
            label = self.system.labels[i]
            out[(label.observable, label.satellite)] = float(self.postfit[i])
        return out

    def constraint_residuals(self) -> Dict[Tuple[RowKind, str, Optional[Observable]], float]:
        """Postfit residual of every pseudo-observation row"""
        out = {}
        for i, label in enumerate(self.system.labels):
            if label.kind != RowKind.MEASUREMENT:
                out[(label.kind, label.satellite, label.observable)] = float(self.postfit[i])
        return out

    @property
    def fixing(self) -> Dict[str, FixingStats]:
        return fixing_stats(self.variables, self.fixed)

    def to_dataframe(self) -> pd.DataFrame:
        """Per-satellite table of estimates, residuals and fixing statistics"""
        residuals = self.postfit_residuals()
        fixing = self.fixing
        iono = self.ionosphere
        bwl = self.widelane
        blc = self.ionofree
        rows = []
        for sat in self.satellites:
            row = {
                'sat': sat,
                'iono': iono[sat],
                'amb_l1': self.value(ObsType.AMB_L1, sat),
                'amb_l2': self.value(ObsType.AMB_L2, sat),
                'bwl': bwl[sat],
                'blc': blc[sat],
                'reference': sat == self.system.reference_sat,
                'fixed_count': fixing[sat].fixed_count,
                'float_count': fixing[sat].float_count,
                'fixing_rate': fixing[sat].fixing_rate,
            }
            for obs in OBSERVABLES:
                row[f'postfit_{obs.value}'] = residuals.get((obs, sat), np.nan)
            rows.append(row)
        return pd.DataFrame(rows).set_index('sat') if rows else pd.DataFrame()


class FixingStatistics:
    """Cumulative per-satellite fixing statistics over processed epochs"""

    def __init__(self):
        self._totals: Dict[str, FixingStats] = {}
        self._epochs: Dict[str, int] = {}

    def update(self, per_sat: Dict[str, FixingStats]):
        for sat, s in per_sat.items():
            total = self._totals.setdefault(sat, FixingStats())
            total.float_count += s.float_count
            total.fixed_count += s.fixed_count
            self._epochs[sat] = self._epochs.get(sat, 0) + 1

    def reset(self):
        self._totals.clear()
        self._epochs.clear()

    def __getitem__(self, sat: str) -> FixingStats:
        return self._totals[sat]

    def to_dataframe(self) -> pd.DataFrame:
        columns = ['epochs', 'float_count', 'fixed_count', 'fixing_rate']
        if not self._totals:
            return pd.DataFrame(columns=columns)
        df = pd.DataFrame(
            [{'sat': sat, 'epochs': self._epochs[sat], 'float_count': s.float_count,
              'fixed_count': s.fixed_count, 'fixing_rate': s.fixing_rate}
             for sat, s in sorted(self._totals.items())])
        return df.set_index('sat')[columns]
