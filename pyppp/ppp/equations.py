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
Uncombined PPP Observation Equations
====================================

Builds the prefit vector, design matrix and weight matrix of one epoch from
undifferenced dual-frequency code and phase prefit residuals.

Row layout for n satellites (satellites in canonical order):

    [0,   n)    C1 code
    [n,  2n)    P2 code
    [2n, 3n)    L1 phase
    [3n, 4n)    L2 phase
    [4n, 5n-1)  ionosphere single differences w.r.t. the reference satellite
    5n-1        zenith wet delay constraint

Per-satellite columns use the uncombined model

    C1 =  ... + I
    P2 =  ... + gamma * I
    L1 =  ... - I         + lambda1 * N1
    L2 =  ... - gamma * I + lambda2 * N2

with gamma = (f1/f2)^2 and I the slant ionospheric delay on L1.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core import stats
from ..core.constants import GAMMA_L2, LAMBDA_L1, LAMBDA_L2
from ..core.data_structures import OBSERVABLES, EpochData, Observable, ObsType
from ..core.exceptions import DimensionMismatch, InsufficientGeometry
from .variable import VariableSet

logger = logging.getLogger(__name__)

# Ionosphere coefficient per observable
IONO_COEFFICIENTS = {
    Observable.C1: 1.0,
    Observable.P2: GAMMA_L2,
    Observable.L1: -1.0,
    Observable.L2: -GAMMA_L2,
}

# Ambiguity unknown and coefficient (wavelength) per phase observable
AMBIGUITY_COEFFICIENTS = {
    Observable.L1: (ObsType.AMB_L1, LAMBDA_L1),
    Observable.L2: (ObsType.AMB_L2, LAMBDA_L2),
}


class RowKind(Enum):
    """Kind of an equation row"""
    MEASUREMENT = "measurement"
    IONO_CONSTRAINT = "iono_constraint"
    TROP_CONSTRAINT = "trop_constraint"
    AMBIGUITY_FIX = "ambiguity_fix"


@dataclass(frozen=True)
class RowLabel:
    """What an equation row stands for"""
    kind: RowKind
    satellite: str = ""
    observable: Optional[Observable] = None


@dataclass(frozen=True)
class SatelliteValidity:
    """Whether a satellite can enter the epoch system, and why not"""
    sat: str
    valid: bool
    reason: str = ""


@dataclass
class EquationSystem:
    """
    Equations of one epoch

    Attributes
    ----------
    prefit : np.ndarray
        Prefit residuals (m)
    H : np.ndarray
        Design matrix (rows x unknowns)
    R : np.ndarray
        Diagonal weight matrix (inverse variances)
    labels : List[RowLabel]
        Meaning of each row
    satellites : List[str]
        Satellites in the system, canonical order
    reference_sat : str
        Reference satellite of the ionospheric constraints
    """
    prefit: np.ndarray
    H: np.ndarray
    R: np.ndarray
    labels: List[RowLabel] = field(default_factory=list)
    satellites: List[str] = field(default_factory=list)
    reference_sat: str = ""

    def __post_init__(self):
        self.check()

    @property
    def num_rows(self) -> int:
        return len(self.prefit)

    @property
    def num_unknowns(self) -> int:
        return self.H.shape[1]

    def check(self):
        """Validate shapes, raising DimensionMismatch on any inconsistency"""
        m = self.prefit.shape[0] if self.prefit.ndim == 1 else -1
        if m < 0:
            raise DimensionMismatch(f"Prefit must be a vector, got shape {self.prefit.shape}")
        if self.H.ndim != 2 or self.H.shape[0] != m:
            raise DimensionMismatch(f"Design matrix {self.H.shape} does not match {m} prefits")
        if self.R.shape != (m, m):
            raise DimensionMismatch(f"Weight matrix {self.R.shape} does not match {m} prefits")
        if self.labels and len(self.labels) != m:
            raise DimensionMismatch(f"{len(self.labels)} row labels for {m} rows")

    def extended(self, prefit: np.ndarray, H: np.ndarray, weights: np.ndarray,
                 labels: Sequence[RowLabel]) -> 'EquationSystem':
        """New system with extra rows appended after the existing ones"""
        k = len(prefit)
        if H.shape != (k, self.num_unknowns) or len(weights) != k or len(labels) != k:
            raise DimensionMismatch(
                f"Cannot append {k} rows with H {H.shape} to {self.num_unknowns} unknowns")
        m = self.num_rows
        R = np.zeros((m + k, m + k))
        R[:m, :m] = self.R
        R[m:, m:] = np.diag(weights)
        return EquationSystem(
            prefit=np.concatenate([self.prefit, prefit]),
            H=np.vstack([self.H, H]),
            R=R,
            labels=list(self.labels) + list(labels),
            satellites=list(self.satellites),
            reference_sat=self.reference_sat,
        )

    def rows_of(self, kind: RowKind) -> List[int]:
        return [i for i, label in enumerate(self.labels) if label.kind == kind]


def select_reference_satellite(satellites: Sequence[str],
                               elevations: Dict[str, float]) -> str:
    """
    Reference satellite for the ionospheric constraints

    The satellite with the highest positive elevation; the first satellite
    in canonical order when ties occur or when no elevation is positive.
    """
    if not satellites:
        raise InsufficientGeometry("No satellites to select a reference from")
    ordered = sorted(satellites)
    ref = ordered[0]
    max_elev = 0.0
    for sat in ordered:
        elev = elevations.get(sat)
        if elev is not None and elev > max_elev:
            max_elev = elev
            ref = sat
    if max_elev <= 0.0:
        logger.warning(f"No satellite above the horizon, using {ref} as reference")
    return ref


class EquationAssembler:
    """
    Assembles the uncombined PPP equation system of an epoch

    Parameters
    ----------
    code_sigma : float
        Code measurement std (m)
    phase_sigma : float
        Phase measurement std (m)
    trop_constraint_var : float
        Variance of the a-priori zenith wet delay pseudo-observation (m^2)
    iono_constraint_var : float
        Variance of the ionosphere single-difference pseudo-observations (m^2)
    min_satellites : int
        Minimum satellites for a well-posed system
    """

    def __init__(self, code_sigma: float = stats.SIGMA_CODE,
                 phase_sigma: float = stats.SIGMA_PHASE,
                 trop_constraint_var: float = stats.VAR_TROP_CONSTRAINT,
                 iono_constraint_var: float = stats.VAR_IONO_CONSTRAINT,
                 min_satellites: int = stats.MIN_SATELLITES):
        self.code_weight = 1.0 / code_sigma ** 2
        self.phase_weight = 1.0 / phase_sigma ** 2
        self.trop_constraint_var = trop_constraint_var
        self.iono_constraint_var = iono_constraint_var
        self.min_satellites = min_satellites

    def validate(self, epoch: EpochData, catalog) -> List[SatelliteValidity]:
        """
        Check every satellite of the epoch for missing inputs

        Parameters
        ----------
        epoch : EpochData
            Epoch inputs
        catalog : VariableCatalog
            Catalog defining the core unknowns and their coefficient rules

        Returns
        -------
        List[SatelliteValidity]
            One result per satellite, canonical order
        """
        required = [var.obs_type for var in catalog.core_variables()
                    if not catalog.spec_for(var).force_coefficient]
        results = []
        for sat in epoch.sat_ids:
            missing = epoch.satellites[sat].missing_fields(required)
            if missing:
                reason = "missing " + ", ".join(missing)
                logger.warning(f"Excluding {sat} at t={epoch.time:.1f}: {reason}")
                results.append(SatelliteValidity(sat, False, reason))
            else:
                results.append(SatelliteValidity(sat, True))
        return results

    def check_geometry(self, num_satellites: int):
        if num_satellites < self.min_satellites:
            raise InsufficientGeometry(
                f"{num_satellites} satellites, at least {self.min_satellites} required",
                num_satellites=num_satellites, required=self.min_satellites)

    def assemble(self, epoch: EpochData, variables: VariableSet) -> EquationSystem:
        """
        Build prefit vector, design matrix and weight matrix

        Parameters
        ----------
        epoch : EpochData
            Epoch inputs; every satellite of ``variables`` must be present
        variables : VariableSet
            Current unknowns; their order defines the design matrix columns

        Returns
        -------
        EquationSystem
            4n measurement rows, n-1 ionosphere rows and 1 troposphere row
        """
        sats = variables.satellites
        n = len(sats)
        self.check_geometry(n)
        missing = [sat for sat in sats if sat not in epoch.satellites]
        if missing:
            raise DimensionMismatch(f"Unknowns defined for satellites without data: {missing}")

        core = variables.core_variables
        num_meas = len(OBSERVABLES) * n + (n - 1) + 1
        num_unknowns = len(variables)

        prefit = np.zeros(num_meas)
        H = np.zeros((num_meas, num_unknowns))
        weights = np.zeros(num_meas)
        labels: List[Optional[RowLabel]] = [None] * num_meas

        # Core coefficients, identical for all four observables
        core_rows = np.zeros((n, len(core)))
        for i, sat in enumerate(sats):
            partials = epoch.satellites[sat].partials
            for j, var in enumerate(core):
                spec = variables.spec(var)
                if spec.force_coefficient:
                    core_rows[i, j] = spec.default_coefficient
                elif var.obs_type in partials:
                    core_rows[i, j] = partials[var.obs_type]
                else:
                    raise ValueError(f"No partial for {var} from {sat}")
        core_cols = [variables.index(var) for var in core]

        for k, obs in enumerate(OBSERVABLES):
            base_weight = self.phase_weight if obs.is_phase else self.code_weight
            for i, sat in enumerate(sats):
                sat_data = epoch.satellites[sat]
                row = k * n + i
                prefit[row] = sat_data.prefit[obs]
                H[row, core_cols] = core_rows[i]
                H[row, variables.index(variables.lookup(ObsType.IONO_L1, sat))] = \
                    IONO_COEFFICIENTS[obs]
                if obs in AMBIGUITY_COEFFICIENTS:
                    amb_type, wavelength = AMBIGUITY_COEFFICIENTS[obs]
                    H[row, variables.index(variables.lookup(amb_type, sat))] = wavelength
                weights[row] = base_weight * sat_data.weight
                labels[row] = RowLabel(RowKind.MEASUREMENT, sat, obs)

        # Ionosphere single differences against the reference satellite
        elevations = {sat: epoch.satellites[sat].elevation for sat in sats}
        ref = select_reference_satellite(sats, elevations)
        ref_col = variables.index(variables.lookup(ObsType.IONO_L1, ref))
        ref_iono = epoch.satellites[ref].iono_apriori
        row = len(OBSERVABLES) * n
        for sat in sats:
            if sat == ref:
                continue
            sat_data = epoch.satellites[sat]
            prefit[row] = sat_data.iono_apriori - ref_iono
            H[row, variables.index(variables.lookup(ObsType.IONO_L1, sat))] = 1.0
            H[row, ref_col] = -1.0
            weights[row] = sat_data.weight / self.iono_constraint_var
            labels[row] = RowLabel(RowKind.IONO_CONSTRAINT, sat)
            row += 1

        # Zenith wet delay anchored to its a-priori value
        prefit[row] = epoch.trop_wet_apriori
        H[row, variables.index(variables.lookup(ObsType.WET_TROP))] = 1.0
        weights[row] = 1.0 / self.trop_constraint_var
        labels[row] = RowLabel(RowKind.TROP_CONSTRAINT)

        logger.debug(f"Assembled {num_meas} rows x {num_unknowns} unknowns, "
                     f"{n} satellites, reference {ref}")
        return EquationSystem(prefit, H, np.diag(weights), labels, list(sats), ref)
