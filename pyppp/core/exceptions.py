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

"""Exceptions raised by the PPP filter"""

import copy
from typing import Optional


class PPPError(Exception):
    """Base class for filter errors.

    Parameters
    ----------
    message : str
        Error description
    component : str, optional
        Name of the component that re-raised the error
    epoch : int, optional
        Epoch sequence number the error belongs to
    """

    def __init__(self, message: str = "", component: Optional[str] = None,
                 epoch: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.epoch = epoch

    def __str__(self):
        if self.component is None and self.epoch is None:
            return self.message
        prefix = []
        if self.component is not None:
            prefix.append(self.component)
        if self.epoch is not None:
            prefix.append(f"epoch {self.epoch}")
        return f"{':'.join(prefix)}: {self.message}"

    def with_context(self, component: str, epoch: int) -> 'PPPError':
        """Return a copy of this error tagged with component and epoch"""
        err = copy.copy(self)
        err.component = component
        err.epoch = epoch
        err.args = (str(err),)
        return err


class DimensionMismatch(PPPError, ValueError):
    """Matrix or vector shapes are inconsistent"""


class InsufficientGeometry(PPPError):
    """Too few usable satellites to solve the epoch"""

    def __init__(self, message: str = "", num_satellites: int = 0,
                 required: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.num_satellites = num_satellites
        self.required = required


class SingularSystem(PPPError, ArithmeticError):
    """A covariance or normal matrix is not positive definite"""


class NoFixableAmbiguity(PPPError):
    """The ambiguity resolver returned no fixed ambiguities"""
