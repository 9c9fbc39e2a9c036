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

"""GNSS Constants and Linear Combination Factors"""

import numpy as np

# Physical Constants
CLIGHT = 299792458.0  # speed of light (m/s)

# GPS frequencies
FREQ_L1 = 1.57542E9   # L1 frequency (Hz)
FREQ_L2 = 1.22760E9   # L2 frequency (Hz)

# Carrier wavelengths
LAMBDA_L1 = CLIGHT / FREQ_L1   # L1 wavelength (~0.1903 m)
LAMBDA_L2 = CLIGHT / FREQ_L2   # L2 wavelength (~0.2442 m)

# Wide lane / narrow lane wavelengths
LAMBDA_WL = CLIGHT / (FREQ_L1 - FREQ_L2)   # wide lane (~0.8619 m)
LAMBDA_NL = CLIGHT / (FREQ_L1 + FREQ_L2)   # narrow lane (~0.1070 m)

# First-order ionospheric scale factor of L2 relative to L1: (f1/f2)^2
GAMMA_L2 = (FREQ_L1 / FREQ_L2) ** 2

# Factor applied to the wide lane ambiguity when forming the
# ionosphere-free ambiguity from N1 and N1 - N2
IF_WL_FACTOR = FREQ_L2 / (FREQ_L1 - FREQ_L2)

# Solution Status
SOLQ_NONE = 0       # no solution
SOLQ_FIX = 1        # fixed solution
SOLQ_FLOAT = 2      # float solution
SOLQ_PPP = 6        # PPP solution


def lam_carr(freq):
    """Get carrier wavelength"""
    return CLIGHT / freq if freq > 0 else 0.0


def widelane_ambiguity(amb_l1, amb_l2):
    """Wide lane ambiguity in meters from L1/L2 ambiguities in cycles.

    Works element-wise on arrays.
    """
    return LAMBDA_WL * (np.asarray(amb_l1) - np.asarray(amb_l2))


def ionofree_ambiguity(amb_l1, amb_l2):
    """Ionosphere-free (narrow lane scaled) ambiguity in meters.

    BLC = lambda_NL * (N1 + f2 / (f1 - f2) * (N1 - N2))
    """
    n1 = np.asarray(amb_l1)
    nw = n1 - np.asarray(amb_l2)
    return LAMBDA_NL * (n1 + IF_WL_FACTOR * nw)
