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
PyPPP - Uncombined Precise Point Positioning Filter

A Python library estimating receiver coordinates, clock, zenith wet delay,
slant ionospheric delays and L1/L2 carrier phase ambiguities from
undifferenced dual-frequency GNSS prefit residuals with a Kalman filter
whose set of unknowns changes from epoch to epoch.
"""

__version__ = "1.0.0"
__author__ = "PyPPP Development Team"
__title__ = "pyppp"
__description__ = "Uncombined PPP Kalman filter with a dynamic unknown set"

from . import logger
from .core import *
from .ppp import *
