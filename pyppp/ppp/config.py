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

"""Configuration of the uncombined PPP solver"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from ..core import stats


@dataclass
class SolverConfig:
    """
    Options of UncombinedPPPSolver

    Defaults come from pyppp.core.stats.

    Attributes
    ----------
    use_neu : bool
        Estimate dLat/dLon/dH instead of dx/dy/dz
    fix_coordinates : bool
        Coordinates are known; only troposphere and clock are estimated
    kinematic : bool
        Coordinates follow white noise instead of staying constant
    require_fix : bool
        Raise NoFixableAmbiguity instead of falling back to a float update
    logging : dict, optional
        Passed to setup_logger_from_config when the solver is created
    """
    use_neu: bool = False
    fix_coordinates: bool = False
    kinematic: bool = False

    code_sigma: float = stats.SIGMA_CODE
    phase_sigma: float = stats.SIGMA_PHASE
    trop_constraint_var: float = stats.VAR_TROP_CONSTRAINT
    iono_constraint_var: float = stats.VAR_IONO_CONSTRAINT
    fix_weight: float = stats.WEIGHT_FIXED_AMB
    min_satellites: int = stats.MIN_SATELLITES
    require_fix: bool = False

    # Process noise
    prn_trop: float = stats.PRN_TROP
    prn_iono: float = stats.PRN_IONO
    sigma_clock: float = stats.SIGMA_CLOCK
    sigma_kin_pos: float = stats.SIGMA_KIN_POS

    # Initial variances
    var_trop: float = stats.VAR_TROP
    var_coord: float = stats.VAR_COORD
    var_clock: float = stats.VAR_CLOCK
    var_iono: float = stats.VAR_IONO
    var_amb: float = stats.VAR_AMB

    logging: Optional[Dict[str, Any]] = field(default=None)

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ValueError on inconsistent options"""
        for name in ('code_sigma', 'phase_sigma', 'trop_constraint_var',
                     'iono_constraint_var', 'fix_weight',
                     'var_trop', 'var_coord', 'var_clock', 'var_iono', 'var_amb'):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ('prn_trop', 'prn_iono', 'sigma_clock', 'sigma_kin_pos'):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.min_satellites < 2:
            raise ValueError(f"min_satellites must be at least 2, got {self.min_satellites}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'SolverConfig':
        """
        Create a configuration from a dictionary

        Unknown keys raise ValueError so that typos do not pass silently.

        Examples
        --------
        >>> cfg = SolverConfig.from_dict({'code_sigma': 0.5, 'kinematic': True})
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown solver options: {', '.join(unknown)}")
        return cls(**data)
