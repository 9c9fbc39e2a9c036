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

"""Kalman filter time and measurement update in information form"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from ..core.exceptions import DimensionMismatch, SingularSystem

logger = logging.getLogger(__name__)


@dataclass
class TimeUpdateResult:
    """Predicted state and covariance"""
    state: np.ndarray
    covariance: np.ndarray


@dataclass
class MeasUpdateResult:
    """Posterior state, covariance and postfit residuals"""
    state: np.ndarray
    covariance: np.ndarray
    postfit: np.ndarray


def inverse_chol(A: np.ndarray, name: str = "matrix") -> np.ndarray:
    """
    Inverse of a symmetric positive definite matrix via Cholesky

    Raises
    ------
    SingularSystem
        If the matrix is not positive definite
    """
    n = A.shape[0]
    if n == 0:
        return np.zeros((0, 0))
    try:
        c = cho_factor(A, lower=True, check_finite=True)
        inv = cho_solve(c, np.eye(n), check_finite=False)
    except (LinAlgError, ValueError) as e:
        raise SingularSystem(f"Unable to invert {name}: {e}") from e
    return 0.5 * (inv + inv.T)


def _check_square(M: np.ndarray, n: int, name: str):
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise DimensionMismatch(f"{name} is not square: {M.shape}")
    if M.shape[0] != n:
        raise DimensionMismatch(f"{name} {M.shape} does not match {n} unknowns")


def _check_vector(v: np.ndarray, n: int, name: str):
    if v.ndim != 1 or v.shape[0] != n:
        raise DimensionMismatch(f"{name} {v.shape} does not match size {n}")


class KalmanCore:
    """
    Numeric Kalman filter operations

    Both operations validate all shapes before computing and never modify
    their inputs. The measurement update uses the information form

        P+ = (H' R H + inv(P-))^-1
        x+ = P+ (H' R y + inv(P-) x-) = x- + P+ H' R (y - H x-)

    where R is the weight (inverse variance) matrix. Appending rows with very
    large weights therefore never forms a singular gain matrix.
    """

    def time_update(self, phi: np.ndarray, Q: np.ndarray,
                    state: np.ndarray, covariance: np.ndarray) -> TimeUpdateResult:
        """
        Predict state and covariance

        Parameters
        ----------
        phi : np.ndarray
            State transition matrix (n x n)
        Q : np.ndarray
            Process noise covariance (n x n)
        state : np.ndarray
            Previous posterior state (n,)
        covariance : np.ndarray
            Previous posterior covariance (n x n)

        Returns
        -------
        TimeUpdateResult
            x- = phi x, P- = phi P phi' + Q
        """
        phi = np.asarray(phi, dtype=float)
        Q = np.asarray(Q, dtype=float)
        state = np.asarray(state, dtype=float)
        covariance = np.asarray(covariance, dtype=float)

        n = state.shape[0] if state.ndim == 1 else -1
        if n < 0:
            raise DimensionMismatch(f"State must be a vector, got shape {state.shape}")
        _check_square(phi, n, "Transition matrix")
        _check_square(Q, n, "Process noise matrix")
        _check_square(covariance, n, "Covariance matrix")

        x_pred = phi @ state
        P_pred = phi @ covariance @ phi.T + Q
        P_pred = 0.5 * (P_pred + P_pred.T)

        logger.trace("Time update: n=%d", n)
        return TimeUpdateResult(x_pred, P_pred)

    def meas_update(self, prefit: np.ndarray, H: np.ndarray, R: np.ndarray,
                    state: np.ndarray, covariance: np.ndarray) -> MeasUpdateResult:
        """
        Correct the predicted state with measurements

        Parameters
        ----------
        prefit : np.ndarray
            Prefit residuals (m,)
        H : np.ndarray
            Design matrix (m x n)
        R : np.ndarray
            Weight matrix (m x m)
        state : np.ndarray
            Predicted state (n,)
        covariance : np.ndarray
            Predicted covariance (n x n)

        Returns
        -------
        MeasUpdateResult
            Posterior state, covariance and postfit residuals prefit - H x+

        Raises
        ------
        DimensionMismatch
            On any shape inconsistency
        SingularSystem
            If the predicted covariance or the normal matrix cannot be inverted
        """
        prefit = np.asarray(prefit, dtype=float)
        H = np.asarray(H, dtype=float)
        R = np.asarray(R, dtype=float)
        state = np.asarray(state, dtype=float)
        covariance = np.asarray(covariance, dtype=float)

        if prefit.ndim != 1:
            raise DimensionMismatch(f"Prefit must be a vector, got shape {prefit.shape}")
        m = prefit.shape[0]
        n = state.shape[0] if state.ndim == 1 else -1
        if n < 0:
            raise DimensionMismatch(f"State must be a vector, got shape {state.shape}")
        _check_square(R, m, "Weight matrix")
        if H.ndim != 2 or H.shape[0] != m:
            raise DimensionMismatch(f"Design matrix {H.shape} does not match {m} prefits")
        if H.shape[1] != n:
            raise DimensionMismatch(f"Design matrix {H.shape} does not match {n} unknowns")
        _check_square(covariance, n, "Covariance matrix")

        inv_P_pred = inverse_chol(covariance, "predicted covariance")
        HtR = H.T @ R
        normal = HtR @ H + inv_P_pred
        P_post = inverse_chol(normal, "normal matrix")
        # Innovation form of P+ (H' R y + inv(P-) x-)
        x_post = state + P_post @ (HtR @ (prefit - H @ state))
        postfit = prefit - H @ x_post

        logger.trace("Measurement update: m=%d n=%d, postfit rms=%.4f", m, n,
                     float(np.sqrt(np.mean(postfit ** 2))) if m else 0.0)
        return MeasUpdateResult(x_post, P_post, postfit)
