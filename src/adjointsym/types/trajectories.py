# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Trajectory and Result Types

Time arrays, spans and the TypedDict bundles returned by integrators and
drivers.

Shape Conventions:
- Single time: scalar
- Time points: (T,)
- State trajectory: (T, nx), time-major ordering

Usage
-----
>>> from adjointsym.types.trajectories import IntegrationResult
>>> result: IntegrationResult = integrator.integrate_to(t_final)
>>> result["x"][-1]
"""

from typing import Any, Dict, Tuple

import numpy as np
from typing_extensions import TypedDict

from .core import ArrayLike

# ============================================================================
# Time Types
# ============================================================================

TimePoints = ArrayLike
"""
Sorted array of time points (T,).

Examples
--------
>>> t: TimePoints = np.linspace(0.0, 1.0, 3)
"""

TimeSpan = Tuple[float, float]
"""Integration interval (t_start, t_end)."""


# ============================================================================
# Integration and Adjoint Result Types
# ============================================================================


class IntegrationResult(TypedDict, total=False):
    """
    Result from integrating a model over a time interval.

    Attributes
    ----------
    t : np.ndarray
        Accepted time points (T,)
    x : np.ndarray
        State trajectory (T, nx)
    x_dot : np.ndarray
        State derivative trajectory (T, nx)
    success : bool
        Whether integration reached the final time
    message : str
        Status message
    nsteps : int
        Number of accepted steps
    nfailures : int
        Number of rejected steps
    integration_time : float
        Computation time in seconds
    solver : str
        Name of the stepper used
    """

    t: np.ndarray
    x: np.ndarray
    x_dot: np.ndarray
    success: bool
    message: str
    nsteps: int
    nfailures: int
    integration_time: float
    solver: str


class AdjointSolveResult(TypedDict, total=False):
    """
    Result of a forward solve followed by a backward (adjoint) solve.

    The adjoint is integrated in reversed time tau = t_final - t, so
    ``adj_t_final`` equals the length of the forward time range and
    ``lambda_final`` is the adjoint at forward time ``t_initial``.

    Attributes
    ----------
    t_final : float
        Forward final time
    x_final, x_dot_final : np.ndarray
        Forward state and state derivative at t_final
    adj_t_final : float
        Adjoint final time (reversed coordinate)
    lambda_final, lambda_dot_final : np.ndarray
        Adjoint and its derivative at adj_t_final
    fwd_stats, adj_stats : dict
        Integrator statistics for each solve
    """

    t_final: float
    x_final: np.ndarray
    x_dot_final: np.ndarray
    adj_t_final: float
    lambda_final: np.ndarray
    lambda_dot_final: np.ndarray
    fwd_stats: Dict[str, Any]
    adj_stats: Dict[str, Any]
