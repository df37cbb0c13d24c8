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
Solver and Stepper Status Types

TypedDict bundles reported by the time-step solvers, the steppers and the
model evaluators.
"""

from enum import Enum
from typing import Optional

import numpy as np
from typing_extensions import TypedDict


class StepSizeType(Enum):
    """
    How a stepper should treat a requested step size.

    Attributes
    ----------
    FIXED : str
        Take exactly the requested dt (fail rather than shrink)
    VARIABLE : str
        The requested dt is an upper bound; the stepper may take less
    """

    FIXED = "fixed"
    VARIABLE = "variable"


class StepStatusCode(Enum):
    """Lifecycle state of a stepper."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    STEP_ACCEPTED = "step accepted"
    STEP_FAILED = "step failed"


class SolveStatus(TypedDict, total=False):
    """
    Result of a nonlinear (or linear) solve.

    Attributes
    ----------
    converged : bool
        Whether the stopping criterion was met
    iterations : int
        Newton iterations performed
    achieved_tol : float
        Final error estimate
    message : str
        Human-readable status
    """

    converged: bool
    iterations: int
    achieved_tol: float
    message: str


class StepStatus(TypedDict, total=False):
    """
    Status of the last step taken by a stepper.

    Attributes
    ----------
    status : StepStatusCode
    step_size : float
        Size of the last accepted step (0.0 before any step)
    time : float
        Current stepper time
    order : int
        Order of the method
    solve_status : SolveStatus
        Status of the last nonlinear solve (implicit steppers)
    message : str
    """

    status: StepStatusCode
    step_size: float
    time: float
    order: int
    solve_status: Optional[SolveStatus]
    message: str


class ModelOutputs(TypedDict, total=False):
    """
    Quantities computed by ``ModelEvaluator.evaluate``.

    Attributes
    ----------
    f : np.ndarray
        Residual (implicit) or state derivative (explicit), shape (nx,)
    W : np.ndarray
        Iteration matrix alpha*df/dx_dot + beta*df/dx, shape (nx, nx)
    DfDp : np.ndarray
        Sensitivity of f with respect to the parameters, shape (nx, np)
    """

    f: np.ndarray
    W: np.ndarray
    DfDp: np.ndarray
