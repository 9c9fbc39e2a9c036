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

"""Core data structures for uncombined PPP processing"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional

import numpy as np


class ObsType(IntEnum):
    """Types of unknowns estimated by the filter.

    The integer value defines the canonical ordering of unknowns: the
    source-indexed core block first, then the satellite-indexed blocks.
    """
    WET_TROP = 1   # zenith wet tropospheric delay (m)
    DX = 2         # ECEF coordinate corrections (m)
    DY = 3
    DZ = 4
    DLAT = 5       # local NEU coordinate corrections (m)
    DLON = 6
    DH = 7
    CDT = 8        # receiver clock offset (m)
    IONO_L1 = 20   # slant ionospheric delay on L1 (m)
    AMB_L1 = 21    # L1 carrier phase ambiguity (cycles)
    AMB_L2 = 22    # L2 carrier phase ambiguity (cycles)

    @property
    def is_ambiguity(self) -> bool:
        return self in (ObsType.AMB_L1, ObsType.AMB_L2)

    @property
    def is_coordinate(self) -> bool:
        return self in COORD_TYPES_XYZ or self in COORD_TYPES_NEU


COORD_TYPES_XYZ = (ObsType.DX, ObsType.DY, ObsType.DZ)
COORD_TYPES_NEU = (ObsType.DLAT, ObsType.DLON, ObsType.DH)
SAT_INDEXED_TYPES = (ObsType.IONO_L1, ObsType.AMB_L1, ObsType.AMB_L2)

# Wildcards used only as keys for default-attribute lookups
ALL_SOURCES = "*"
ALL_SATELLITES = "*"


class Observable(Enum):
    """Uncombined observables, in measurement-row order"""
    C1 = "C1"   # L1 code
    P2 = "P2"   # L2 code
    L1 = "L1"   # L1 phase
    L2 = "L2"   # L2 phase

    @property
    def is_phase(self) -> bool:
        return self in (Observable.L1, Observable.L2)


OBSERVABLES = (Observable.C1, Observable.P2, Observable.L1, Observable.L2)


@dataclass
class SatelliteData:
    """Per-satellite inputs for one epoch.

    All fields are already corrected for deterministic effects by upstream
    processing. A value of None (or NaN) marks a missing field; the
    satellite is then excluded from the epoch.

    Attributes
    ----------
    sat : str
        Satellite identifier, e.g. 'G05'
    prefit : Dict[Observable, float]
        Prefit residuals for C1, P2, L1, L2 (m)
    elevation : float
        Elevation angle (deg)
    iono_apriori : float
        A-priori slant ionospheric delay on L1 (m)
    partials : Dict[ObsType, float]
        Partial derivatives for the core unknowns (wet mapping function,
        line-of-sight components)
    weight : float
        Relative weight factor applied to all rows of this satellite
    """
    sat: str
    prefit: Dict[Observable, float] = field(default_factory=dict)
    elevation: Optional[float] = None
    iono_apriori: Optional[float] = None
    partials: Dict[ObsType, float] = field(default_factory=dict)
    weight: float = 1.0

    def missing_fields(self, core_types=()) -> List[str]:
        """Names of required fields that are missing or not finite"""
        missing = []
        for obs in OBSERVABLES:
            if not _is_finite(self.prefit.get(obs)):
                missing.append(f"prefit {obs.value}")
        if not _is_finite(self.elevation):
            missing.append("elevation")
        if not _is_finite(self.iono_apriori):
            missing.append("iono_apriori")
        for obs_type in core_types:
            if not _is_finite(self.partials.get(obs_type)):
                missing.append(f"partial {obs_type.name}")
        if not _is_finite(self.weight) or self.weight <= 0.0:
            missing.append("weight")
        return missing


@dataclass
class EpochData:
    """All inputs of one epoch for a single receiver.

    Attributes
    ----------
    time : float
        Epoch time (GPST seconds)
    source : str
        Receiver (station) name
    trop_wet_apriori : float
        A-priori zenith wet delay (m)
    satellites : Dict[str, SatelliteData]
        Satellite id -> satellite data
    """
    time: float
    source: str
    trop_wet_apriori: float = 0.0
    satellites: Dict[str, SatelliteData] = field(default_factory=dict)

    def add(self, sat_data: SatelliteData):
        """Add or replace a satellite"""
        self.satellites[sat_data.sat] = sat_data

    @property
    def sat_ids(self) -> List[str]:
        """Satellite ids in canonical (sorted) order"""
        return sorted(self.satellites)

    def num_sats(self) -> int:
        return len(self.satellites)


def _is_finite(value) -> bool:
    if value is None:
        return False
    try:
        return bool(np.isfinite(value))
    except TypeError:
        return False
