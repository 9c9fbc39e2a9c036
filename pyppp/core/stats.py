#!/usr/bin/env python
# Copyright 2024 pyins
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
Uncombined PPP Statistical Parameters
=====================================

Default measurement noise, a-priori variances, process noise and constraint
weights for the uncombined PPP filter. SolverConfig uses these as defaults.
"""

# ============================================================================
# OBSERVATION ERROR MODEL
# ============================================================================
SIGMA_CODE = 0.3       # Code (C1/P2) measurement std (m)
SIGMA_PHASE = 0.003    # Phase (L1/L2) measurement std (m)

# ============================================================================
# INITIAL STATE VARIANCES (first epoch / newly tracked unknowns)
# ============================================================================
VAR_TROP = 0.25        # Zenith wet delay (0.5 m)^2
VAR_COORD = 0.25       # Coordinates (0.5 m)^2
VAR_CLOCK = 9.0e10     # Receiver clock (3e5 m)^2
VAR_IONO = 2500.0      # Slant ionosphere (50 m)^2
VAR_AMB = 4.0e14       # Phase ambiguity (2e7 cycles)^2

# ============================================================================
# PROCESS NOISE
# ============================================================================
PRN_TROP = 1e-4        # Troposphere random walk (m/sqrt(s))
PRN_IONO = 1e-3        # Ionosphere random walk (m/sqrt(s))
SIGMA_CLOCK = 3.0e5    # Receiver clock white noise (m)
SIGMA_KIN_POS = 100.0  # Kinematic coordinates white noise (m)

# ============================================================================
# PSEUDO-OBSERVATION CONSTRAINTS
# ============================================================================
VAR_TROP_CONSTRAINT = 1.0e9   # A-priori zenith wet delay constraint (m^2)
VAR_IONO_CONSTRAINT = 1.0     # Between-satellite ionosphere constraint (m^2)
WEIGHT_FIXED_AMB = 1.0e14     # Weight of fixed ambiguity pseudo-observations

# ============================================================================
# GEOMETRY
# ============================================================================
MIN_SATELLITES = 4     # Minimum satellites for a well-posed epoch
