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

"""Core PPP Module.

This module provides the fundamental pieces shared by the filter:

- **Constants**: GPS L1/L2 frequencies, wavelengths and the factors used for
  the ionospheric scaling and the wide lane / ionosphere-free combinations
- **Statistical Parameters**: default measurement noise, a-priori variances,
  process noise and constraint weights
- **Data Structures**: unknown types, observables and the per-epoch input
  containers
- **Exceptions**: typed errors raised by the filter components

Example Usage:
    >>> from pyppp.core import *
    >>>
    >>> sat = SatelliteData('G05', elevation=45.0, iono_apriori=3.2)
    >>> sat.prefit[Observable.C1] = 1.25
    >>> epoch = EpochData(time=345600.0, source='WUHN', trop_wet_apriori=0.12)
    >>> epoch.add(sat)
"""

from .constants import *
from .data_structures import *
from .exceptions import *
