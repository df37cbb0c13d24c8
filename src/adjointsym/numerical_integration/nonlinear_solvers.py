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
Time-Step Solvers

Solvers for the (non)linear system R(x) = 0 that an implicit stepper
forms at every step. For Backward Euler on f(x_dot, x, t) = 0:

    R(x) = f((x - x_old)/dt, x, t_new)
    J(x) = (1/dt) df/dx_dot + df/dx

Two solvers are provided:

- TimeStepNonlinearSolver: Newton's method with a convergence-rate
  corrected stopping test, suited to the nonlinear state equations
- LinearNonlinearSolver: a single Newton step, exact when R is affine
  (the adjoint equations are always linear in the adjoint variable)

Dense linear systems are solved with scipy.linalg.solve.
"""

import copy
import time
import warnings
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import numpy as np
import scipy.linalg

from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.core import JacobianFunction, ResidualFunction
from adjointsym.types.solvers import SolveStatus


class NonlinearSolveError(RuntimeError):
    """Raised when a time-step solve cannot proceed (e.g. singular Jacobian)"""

    pass


class NonlinearSolverBase(ParameterListAcceptor, ABC):
    """
    Abstract base class for time-step solvers.

    All solvers implement:
    - solve(): solve R(x) = 0 from an initial guess
    - name: solver name for display
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self._stats = {"total_solves": 0, "total_iterations": 0, "total_time": 0.0}
        self.set_parameter_list(parameter_list)

    @abstractmethod
    def solve(
        self,
        residual: ResidualFunction,
        jacobian: JacobianFunction,
        x_guess: np.ndarray,
        tol: Optional[float] = None,
    ) -> Tuple[np.ndarray, SolveStatus]:
        """
        Solve R(x) = 0.

        Parameters
        ----------
        residual : Callable[[np.ndarray], np.ndarray]
            R(x)
        jacobian : Callable[[np.ndarray], np.ndarray]
            dR/dx
        x_guess : np.ndarray
            Initial guess (not modified)
        tol : Optional[float]
            Overrides the configured tolerance for this solve

        Returns
        -------
        Tuple[np.ndarray, SolveStatus]
            Solution estimate and solve status
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def clone(self) -> "NonlinearSolverBase":
        """Copy with the same configuration and fresh statistics."""
        other = copy.deepcopy(self)
        other.reset_stats()
        return other

    def _linear_solve(self, J: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        return scipy.linalg.solve(np.atleast_2d(J), rhs)

    def get_stats(self) -> Dict[str, Any]:
        avg = self._stats["total_iterations"] / max(1, self._stats["total_solves"])
        return {**self._stats, "avg_iterations_per_solve": avg}

    def reset_stats(self):
        self._stats["total_solves"] = 0
        self._stats["total_iterations"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class TimeStepNonlinearSolver(NonlinearSolverBase):
    """
    Newton solver with a rate-corrected convergence test.

    Each iteration solves J(x_k) dx = -R(x_k) and sets x_{k+1} = x_k + dx.
    The contraction rate is estimated from successive update norms,

        R_k = max(R_min_fraction * R_{k-1}, ||dx_k|| / ||dx_{k-1}||)

    and the solve is converged when the predicted remaining error
    R_k/(1 - R_k) * ||dx_k|| drops below safety * tol. On the first
    iteration (no rate yet) the update norm itself is tested.

    Parameters (ParameterList):
    --------------------------
    Default Tol : float, default=1.0e-2
    Default Max Iters : int, default=3
    Nonlinear Safety Factor : float, default=0.1
    R Min Fraction : float, default=0.3
    Thrown on Linear Solve Failure : bool, default=False
        Raise NonlinearSolveError instead of returning an unconverged
        status when the Jacobian is singular

    Examples
    --------
    >>> solver = TimeStepNonlinearSolver(ParameterList.from_dict(
    ...     {"Default Tol": 1.0e-10, "Default Max Iters": 20}))
    >>> x, status = solver.solve(lambda x: x**2 - 2.0,
    ...                          lambda x: np.diag(2.0 * x),
    ...                          np.array([1.0]))
    >>> status["converged"]
    True
    """

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("TimeStepNonlinearSolver")
        pl.set("Default Tol", 1.0e-2, doc="Stopping tolerance on the Newton error estimate")
        pl.set("Default Max Iters", 3, doc="Maximum Newton iterations per solve")
        pl.set("Nonlinear Safety Factor", 0.1)
        pl.set("R Min Fraction", 0.3)
        pl.set("Thrown on Linear Solve Failure", False)
        return pl

    def _read_parameters(self, pl: ParameterList):
        self.default_tol = pl.get("Default Tol")
        self.default_max_iters = pl.get("Default Max Iters")
        self.nonlinear_safety_factor = pl.get("Nonlinear Safety Factor")
        self.r_min_fraction = pl.get("R Min Fraction")
        self.throw_on_linear_failure = pl.get("Thrown on Linear Solve Failure")
        if self.default_tol <= 0.0:
            raise ValueError(f"Default Tol must be positive, got {self.default_tol}")
        if self.default_max_iters < 1:
            raise ValueError(f"Default Max Iters must be >= 1, got {self.default_max_iters}")

    @property
    def name(self) -> str:
        return "Newton (Time Step)"

    def solve(self, residual, jacobian, x_guess, tol=None):
        start_time = time.time()
        tol = self.default_tol if tol is None else tol
        target = self.nonlinear_safety_factor * tol

        x = np.array(x_guess, dtype=float).reshape(-1)
        rate = 1.0
        nrm_last = None
        err_est = np.inf
        converged = False
        message = f"Newton did not converge in {self.default_max_iters} iterations"
        iteration = 0

        for iteration in range(1, self.default_max_iters + 1):
            r = np.asarray(residual(x), dtype=float).reshape(-1)
            J = jacobian(x)
            try:
                dx = self._linear_solve(J, -r)
            except (np.linalg.LinAlgError, ValueError) as e:
                if self.throw_on_linear_failure:
                    raise NonlinearSolveError(
                        f"Linear solve failed in Newton iteration {iteration}: {e}"
                    ) from e
                message = f"Linear solve failed in Newton iteration {iteration}: {e}"
                break

            x = x + dx
            nrm = float(np.linalg.norm(dx))

            if nrm == 0.0:
                err_est, converged = 0.0, True
            elif nrm_last is None:
                err_est = nrm
                converged = nrm <= target
            else:
                rate = max(self.r_min_fraction * rate, nrm / nrm_last)
                err_est = rate / (1.0 - rate) * nrm if rate < 1.0 else np.inf
                converged = err_est <= target
            nrm_last = nrm

            if converged:
                message = f"Newton converged in {iteration} iterations"
                break

        self._stats["total_solves"] += 1
        self._stats["total_iterations"] += iteration
        self._stats["total_time"] += time.time() - start_time

        status: SolveStatus = {
            "converged": converged,
            "iterations": iteration,
            "achieved_tol": float(err_est),
            "message": message,
        }
        return x, status


class LinearNonlinearSolver(NonlinearSolverBase):
    """
    Solve an affine system R(x) = 0 with a single Newton step.

        x = x_guess - J(x_guess)^{-1} R(x_guess)

    Used for the adjoint time steps, whose residual is linear in the
    adjoint variable. No parameters.

    Examples
    --------
    >>> A = np.array([[2.0, 0.0], [0.0, 4.0]])
    >>> solver = LinearNonlinearSolver()
    >>> x, status = solver.solve(lambda x: A @ x - 2.0, lambda x: A, np.zeros(2))
    >>> x
    array([1. , 0.5])
    """

    def get_valid_parameters(self) -> ParameterList:
        return ParameterList("LinearNonlinearSolver")

    @property
    def name(self) -> str:
        return "Linear (Single Newton Step)"

    def solve(self, residual, jacobian, x_guess, tol=None):
        start_time = time.time()
        x = np.array(x_guess, dtype=float).reshape(-1)
        r = np.asarray(residual(x), dtype=float).reshape(-1)
        J = jacobian(x)
        try:
            dx = self._linear_solve(J, -r)
        except (np.linalg.LinAlgError, ValueError) as e:
            raise NonlinearSolveError(f"Linear solve failed: {e}") from e

        if not np.all(np.isfinite(dx)):
            warnings.warn(f"{self.name}: non-finite update in linear solve")

        self._stats["total_solves"] += 1
        self._stats["total_iterations"] += 1
        self._stats["total_time"] += time.time() - start_time

        status: SolveStatus = {
            "converged": True,
            "iterations": 1,
            "achieved_tol": 0.0,
            "message": "Linear solve completed",
        }
        return x + dx, status


def time_step_nonlinear_solver(parameter_list=None) -> TimeStepNonlinearSolver:
    """Nonmember constructor."""
    return TimeStepNonlinearSolver(parameter_list)


def linear_nonlinear_solver() -> LinearNonlinearSolver:
    """Nonmember constructor."""
    return LinearNonlinearSolver()
