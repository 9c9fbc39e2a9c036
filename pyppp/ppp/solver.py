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
Uncombined PPP Solver
=====================

Runs one epoch at a time through the fixed sequence

    validate -> unknown set -> equations -> stochastic models -> prior
    -> time update -> (fixed ambiguities) -> measurement update -> snapshot

Only a complete pass commits anything: a failing epoch leaves the stored
posterior and the estimator state as they were, so the next epoch starts
from the last good solution.
"""

import logging
from enum import Enum
from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..core.data_structures import COORD_TYPES_NEU, COORD_TYPES_XYZ, EpochData, ObsType
from ..core.exceptions import NoFixableAmbiguity, PPPError
from ..logger import setup_logger_from_config
from .ambiguity_constraint import AmbFixedMap, AmbiguityConstraintInjector, ResolverLike
from .carry_forward import StateCarryForward, StateSnapshot
from .config import SolverConfig
from .equations import EquationAssembler
from .kalman import KalmanCore
from .solution import EpochSolution, FixingStatistics
from .stochastic import StochasticModel, StochasticModelBank
from .variable import VariableCatalog, VariableSet

logger = logging.getLogger(__name__)


class EstimatorKind(Enum):
    """Kind of estimator a solver instance runs as"""
    PPP_FLOAT = "ppp_float"
    PPP_FIXED = "ppp_fixed"


class EstimatorState(Enum):
    FIRST_EPOCH = "first_epoch"
    STEADY_STATE = "steady_state"


def build_catalog(source: str, config: SolverConfig) -> VariableCatalog:
    """Variable catalog of a receiver with the configured models and variances"""
    catalog = VariableCatalog(source, use_neu=config.use_neu,
                              fix_coordinates=config.fix_coordinates,
                              kinematic=config.kinematic)
    coord_model = (StochasticModel.white_noise(config.sigma_kin_pos)
                   if config.kinematic else StochasticModel.constant())
    catalog.update_spec(ObsType.WET_TROP, initial_variance=config.var_trop,
                        model=StochasticModel.random_walk(config.prn_trop))
    for obs_type in COORD_TYPES_XYZ + COORD_TYPES_NEU:
        catalog.update_spec(obs_type, initial_variance=config.var_coord, model=coord_model)
    catalog.update_spec(ObsType.CDT, initial_variance=config.var_clock,
                        model=StochasticModel.white_noise(config.sigma_clock))
    catalog.update_spec(ObsType.IONO_L1, initial_variance=config.var_iono,
                        model=StochasticModel.random_walk(config.prn_iono))
    for obs_type in (ObsType.AMB_L1, ObsType.AMB_L2):
        catalog.update_spec(obs_type, initial_variance=config.var_amb)
    return catalog


class UncombinedPPPSolver:
    """
    Kalman filter for uncombined dual-frequency PPP

    Parameters
    ----------
    kind : EstimatorKind
        PPP_FLOAT runs without ambiguity constraints, PPP_FIXED requires a
        resolver
    config : SolverConfig, optional
        Solver options
    resolver : AmbiguityResolver or callable, optional
        Supplies fixed ambiguities from the predicted state each epoch

    Examples
    --------
    >>> solver = UncombinedPPPSolver(EstimatorKind.PPP_FLOAT)
    >>> for epoch in epochs:
    ...     sol = solver.process(epoch)
    ...     print(sol.time, sol.core[ObsType.DX])
    """

    def __init__(self, kind: EstimatorKind, config: Optional[SolverConfig] = None,
                 resolver: Optional[ResolverLike] = None):
        self.kind = EstimatorKind(kind)
        self.config = config or SolverConfig()
        if self.kind == EstimatorKind.PPP_FIXED and resolver is None:
            raise ValueError("PPP_FIXED estimator requires an ambiguity resolver")
        if self.kind == EstimatorKind.PPP_FLOAT and resolver is not None:
            raise ValueError("PPP_FLOAT estimator does not use an ambiguity resolver")

        if self.config.logging:
            setup_logger_from_config(self.config.logging)

        self.assembler = EquationAssembler(
            code_sigma=self.config.code_sigma,
            phase_sigma=self.config.phase_sigma,
            trop_constraint_var=self.config.trop_constraint_var,
            iono_constraint_var=self.config.iono_constraint_var,
            min_satellites=self.config.min_satellites)
        self.bank = StochasticModelBank()
        self.kalman = KalmanCore()
        self.carry = StateCarryForward()
        self.injector = (AmbiguityConstraintInjector(resolver, self.config.fix_weight)
                         if resolver is not None else None)
        self.statistics = FixingStatistics()

        self._catalogs: Dict[str, VariableCatalog] = {}
        self.estimator_state = EstimatorState.FIRST_EPOCH
        self.epoch_count = 0

    @property
    def name(self) -> str:
        return self.kind.name

    def catalog(self, source: str) -> VariableCatalog:
        """Catalog of a receiver, created on first use"""
        if source not in self._catalogs:
            self._catalogs[source] = build_catalog(source, self.config)
        return self._catalogs[source]

    @property
    def latest(self) -> Optional[StateSnapshot]:
        return self.carry.latest

    @property
    def variables(self) -> Optional[VariableSet]:
        """Unknowns of the last good posterior"""
        return None if self.carry.latest is None else self.carry.latest.variables

    @property
    def state(self) -> Optional[np.ndarray]:
        return None if self.carry.latest is None else self.carry.latest.as_arrays()[0]

    @property
    def covariance(self) -> Optional[np.ndarray]:
        return None if self.carry.latest is None else self.carry.latest.as_arrays()[1]

    def reset(self):
        """Forget the carried state and start over with a first epoch"""
        self.carry.reset()
        self.statistics.reset()
        self.estimator_state = EstimatorState.FIRST_EPOCH
        self.epoch_count = 0
        logger.info(f"{self.name}: reset")

    def fixing_summary(self) -> pd.DataFrame:
        """Cumulative per-satellite fixing statistics"""
        return self.statistics.to_dataframe()

    def process(self, epoch: EpochData) -> EpochSolution:
        """
        Process one epoch

        Parameters
        ----------
        epoch : EpochData
            Prefit residuals and a-priori values of the epoch

        Returns
        -------
        EpochSolution
            Posterior of the epoch

        Raises
        ------
        PPPError
            Any filter error, tagged with the failing component and the
            epoch sequence number. The stored posterior is left untouched.
        """
        seq = self.epoch_count
        self.epoch_count += 1
        catalog = self.catalog(epoch.source)
        component = "EquationAssembler"
        try:
            validity = self.assembler.validate(epoch, catalog)
            valid = [v.sat for v in validity if v.valid]
            self.assembler.check_geometry(len(valid))

            component = "VariableCatalog"
            variables = catalog.build(valid)

            component = "EquationAssembler"
            system = self.assembler.assemble(epoch, variables)

            component = "StochasticModelBank"
            latest = self.carry.latest
            dt = epoch.time - latest.time if latest is not None else 0.0
            fresh = [var for var in variables if latest is None or var not in latest]
            phi, Q = self.bank.build(variables, dt, fresh=fresh)

            component = "StateCarryForward"
            x_prior, P_prior = self.carry.materialize(variables, latest)

            component = "KalmanCore"
            predicted = self.kalman.time_update(phi, Q, x_prior, P_prior)

            fixed: AmbFixedMap = {}
            if self.injector is not None:
                component = "AmbiguityConstraintInjector"
                try:
                    system, fixed = self.injector.inject(
                        variables, predicted.state, predicted.covariance, epoch, system)
                except NoFixableAmbiguity:
                    if self.config.require_fix:
                        raise
                    logger.info(f"{self.name}: no fixed ambiguities at epoch {seq}, "
                                f"float update")

            component = "KalmanCore"
            posterior = self.kalman.meas_update(
                system.prefit, system.H, system.R, predicted.state, predicted.covariance)
        except PPPError as exc:
            logger.warning(f"{self.name}: epoch {seq} failed in {component}: {exc}")
            raise exc.with_context(f"{self.name}.{component}", seq) from exc

        self.carry.snapshot(variables, posterior.state, posterior.covariance, epoch.time)
        if self.estimator_state == EstimatorState.FIRST_EPOCH:
            self.estimator_state = EstimatorState.STEADY_STATE
            logger.debug(f"{self.name}: first epoch done, steady state from now on")

        solution = EpochSolution(
            time=epoch.time,
            epoch=seq,
            variables=variables,
            state=posterior.state,
            covariance=posterior.covariance,
            system=system,
            postfit=posterior.postfit,
            fixed=fixed,
            validity=validity,
        )
        self.statistics.update(solution.fixing)

        logger.info(f"{self.name}: epoch {seq} t={epoch.time:.1f} "
                    f"{len(valid)}/{epoch.num_sats()} satellites, "
                    f"{len(variables)} unknowns, {len(fixed)} fixed")
        return solution
