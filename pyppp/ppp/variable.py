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
Filter Unknowns and Their Canonical Ordering
============================================

A Variable is the identity of one unknown: its type, the receiver it belongs
to and the satellite it belongs to. Identity is immutable and totally
ordered; the ordering defines the column order of every state vector,
covariance and design matrix built for an epoch. Attributes that may change
(stochastic model, a-priori variance, coefficient) live in a separate
VariableSpec so that they can never disturb container ordering.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core import stats
from ..core.data_structures import (
    ALL_SATELLITES,
    ALL_SOURCES,
    COORD_TYPES_NEU,
    COORD_TYPES_XYZ,
    SAT_INDEXED_TYPES,
    ObsType,
)
from .stochastic import StochasticModel

logger = logging.getLogger(__name__)

WILDCARDS = (ALL_SOURCES, ALL_SATELLITES)


@dataclass(frozen=True, order=True)
class Variable:
    """Identity of a filter unknown.

    Attributes
    ----------
    obs_type : ObsType
        Type of the unknown (primary ordering key)
    source : str
        Receiver the unknown belongs to, '' if not source-indexed
    satellite : str
        Satellite the unknown belongs to, '' if not satellite-indexed
    source_indexed : bool
        Whether the unknown differs per receiver
    sat_indexed : bool
        Whether the unknown differs per satellite
    """
    obs_type: ObsType
    source: str = ""
    satellite: str = ""
    source_indexed: bool = True
    sat_indexed: bool = False

    @property
    def is_wildcard(self) -> bool:
        return self.source in WILDCARDS or self.satellite in WILDCARDS

    @property
    def is_ambiguity(self) -> bool:
        return self.obs_type.is_ambiguity

    def __str__(self):
        name = self.obs_type.name
        if self.source_indexed and self.source:
            name += f"[{self.source}]"
        if self.sat_indexed and self.satellite:
            name += f"[{self.satellite}]"
        return name


@dataclass
class VariableSpec:
    """Mutable attributes of an unknown, referenced by its identity

    Attributes
    ----------
    model : StochasticModel
        Transition/process noise model
    initial_variance : float
        A-priori variance used on the first epoch or when first tracked
    default_coefficient : float
        Coefficient written into the design matrix when forced
    force_coefficient : bool
        Always use default_coefficient in the design matrix
    """
    model: StochasticModel
    initial_variance: float = 1.0e10
    default_coefficient: float = 1.0
    force_coefficient: bool = False


class VariableSet:
    """Immutable, canonically ordered set of unknowns for one epoch"""

    def __init__(self, variables: Iterable[Variable],
                 specs: Optional[Dict[Variable, VariableSpec]] = None):
        ordered = sorted(set(variables))
        for var in ordered:
            if var.is_wildcard:
                raise ValueError(f"Wildcard variable {var} cannot be a state entry")
        self._variables: Tuple[Variable, ...] = tuple(ordered)
        self._index = {var: i for i, var in enumerate(self._variables)}
        self._by_key = {(var.obs_type, var.satellite): var for var in self._variables}
        self._specs = dict(specs or {})

    def __len__(self):
        return len(self._variables)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables)

    def __contains__(self, var) -> bool:
        return var in self._index

    def __getitem__(self, i) -> Variable:
        return self._variables[i]

    def __eq__(self, other):
        if not isinstance(other, VariableSet):
            return NotImplemented
        return self._variables == other._variables

    def __repr__(self):
        return f"VariableSet({[str(v) for v in self._variables]})"

    def index(self, var: Variable) -> int:
        """Column index of a Variable in this epoch"""
        try:
            return self._index[var]
        except KeyError:
            raise KeyError(f"{var} is not in the current unknown set") from None

    def get_index(self, var: Variable) -> Optional[int]:
        return self._index.get(var)

    def spec(self, var: Variable) -> VariableSpec:
        return self._specs[var]

    def lookup(self, obs_type: ObsType, satellite: str = "") -> Variable:
        """Variable of a type (and satellite) in this set"""
        try:
            return self._by_key[(obs_type, satellite)]
        except KeyError:
            raise KeyError(f"No {obs_type.name} unknown for '{satellite}'") from None

    @property
    def variables(self) -> Tuple[Variable, ...]:
        return self._variables

    @property
    def core_variables(self) -> List[Variable]:
        """Source-indexed unknowns (troposphere, coordinates, clock)"""
        return [v for v in self._variables if not v.sat_indexed]

    @property
    def satellites(self) -> List[str]:
        return sorted({v.satellite for v in self._variables if v.sat_indexed})

    def of_type(self, obs_type: ObsType) -> List[Variable]:
        return [v for v in self._variables if v.obs_type == obs_type]


class VariableCatalog:
    """
    Builds Variable identities and their attributes for a receiver

    Parameters
    ----------
    source : str
        Receiver name
    use_neu : bool
        Estimate dLat/dLon/dH instead of dx/dy/dz
    fix_coordinates : bool
        Coordinates are known, only troposphere and clock form the core
    kinematic : bool
        Coordinates follow white noise instead of staying constant

    Examples
    --------
    >>> catalog = VariableCatalog('WUHN')
    >>> variables = catalog.build(['G05', 'G12', 'G20', 'G24'])
    >>> [str(v) for v in variables.core_variables]
    ['WET_TROP[WUHN]', 'DX[WUHN]', 'DY[WUHN]', 'DZ[WUHN]', 'CDT[WUHN]']
    """

    def __init__(self, source: str, use_neu: bool = False,
                 fix_coordinates: bool = False, kinematic: bool = False):
        self.source = source
        self._specs: Dict[Tuple[ObsType, str, str], VariableSpec] = {}
        self._install_defaults(kinematic)
        self.set_coordinates(use_neu, fix_coordinates)
        self.sat_types: Tuple[ObsType, ...] = SAT_INDEXED_TYPES

    def _install_defaults(self, kinematic: bool):
        coord_model = (StochasticModel.white_noise(stats.SIGMA_KIN_POS)
                       if kinematic else StochasticModel.constant())
        self.set_spec(ObsType.WET_TROP, VariableSpec(
            StochasticModel.random_walk(stats.PRN_TROP), stats.VAR_TROP))
        for obs_type in COORD_TYPES_XYZ + COORD_TYPES_NEU:
            self.set_spec(obs_type, VariableSpec(coord_model, stats.VAR_COORD))
        self.set_spec(ObsType.CDT, VariableSpec(
            StochasticModel.white_noise(stats.SIGMA_CLOCK), stats.VAR_CLOCK,
            default_coefficient=1.0, force_coefficient=True))
        self.set_spec(ObsType.IONO_L1, VariableSpec(
            StochasticModel.random_walk(stats.PRN_IONO), stats.VAR_IONO))
        for obs_type in (ObsType.AMB_L1, ObsType.AMB_L2):
            self.set_spec(obs_type, VariableSpec(StochasticModel.constant(), stats.VAR_AMB))

    def set_coordinates(self, use_neu: bool = False, fix_coordinates: bool = False):
        """Select the coordinate unknowns of the core block"""
        self.use_neu = use_neu
        self.fix_coordinates = fix_coordinates
        coords = () if fix_coordinates else (COORD_TYPES_NEU if use_neu else COORD_TYPES_XYZ)
        self.core_types: Tuple[ObsType, ...] = (ObsType.WET_TROP,) + coords + (ObsType.CDT,)

    def set_spec(self, obs_type: ObsType, spec: VariableSpec,
                 source: str = ALL_SOURCES, satellite: str = ALL_SATELLITES):
        """Register attributes for a type, optionally per source/satellite"""
        self._specs[(ObsType(obs_type), source, satellite)] = spec

    def update_spec(self, obs_type: ObsType, **changes):
        """Change fields of the type-wide default spec"""
        key = (ObsType(obs_type), ALL_SOURCES, ALL_SATELLITES)
        self._specs[key] = replace(self._specs[key], **changes)

    def spec_for(self, var: Variable) -> VariableSpec:
        """Most specific spec registered for a Variable"""
        for key in ((var.obs_type, var.source, var.satellite),
                    (var.obs_type, var.source, ALL_SATELLITES),
                    (var.obs_type, ALL_SOURCES, var.satellite),
                    (var.obs_type, ALL_SOURCES, ALL_SATELLITES)):
            if key in self._specs:
                return self._specs[key]
        raise KeyError(f"No attributes registered for {var}")

    def core_variable(self, obs_type: ObsType) -> Variable:
        return Variable(ObsType(obs_type), source=self.source,
                        source_indexed=True, sat_indexed=False)

    def satellite_variable(self, obs_type: ObsType, sat: str) -> Variable:
        return Variable(ObsType(obs_type), source=self.source, satellite=sat,
                        source_indexed=True, sat_indexed=True)

    def core_variables(self) -> List[Variable]:
        return sorted(self.core_variable(t) for t in self.core_types)

    def build(self, satellites: Sequence[str]) -> VariableSet:
        """
        Build the unknown set of an epoch

        Parameters
        ----------
        satellites : Sequence[str]
            Satellites kept in the epoch system

        Returns
        -------
        VariableSet
            Core unknowns plus ionosphere and two ambiguities per satellite
        """
        variables = self.core_variables()
        for obs_type in self.sat_types:
            for sat in satellites:
                variables.append(self.satellite_variable(obs_type, sat))
        specs = {var: self.spec_for(var) for var in variables}
        var_set = VariableSet(variables, specs)
        logger.debug(f"Unknowns: {len(var_set)} ({len(self.core_types)} core, "
                     f"{len(satellites)} satellites)")
        return var_set
