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
Stepper Base - Abstract Interface for Single-Step Time Marching

A stepper owns the current solution (t, x, x_dot) of one model and
advances it one step at a time. Integrators drive steppers; steppers know
nothing about final times or solution history beyond their last step.

Lifecycle:
    set_model() -> [set_solver()] -> set_initial_condition() -> take_step()...

Every stepper can interpolate inside its last step (get_points) and can
clone its algorithm (same class and configuration, no model or state),
which is how the adjoint solve reuses the forward time discretization.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import numpy as np

from adjointsym.models.model_evaluator import InArgs, ModelEvaluatorBase
from adjointsym.numerical_integration.interpolation_buffer import (
    HermiteInterpolator,
    InterpolationError,
    InterpolatorBase,
    interpolate_between,
)
from adjointsym.numerical_integration.nonlinear_solvers import NonlinearSolverBase
from adjointsym.numerical_integration.time_range import (
    TimeRange,
    invalid_time_range,
    time_tolerance,
)
from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.core import PointsTuple, ScalarLike
from adjointsym.types.solvers import StepSizeType, StepStatus, StepStatusCode
from adjointsym.types.trajectories import TimePoints


class StepperError(RuntimeError):
    """Raised when a stepper is misused or a step cannot be completed"""

    pass


class StepperBase(ParameterListAcceptor, ABC):
    """
    Abstract base class for steppers.

    All steppers must implement:
    - _compute_step(): advance (x, x_dot) from t to t + dt
    - is_implicit, order, name

    Examples
    --------
    >>> stepper = BackwardEulerStepper()
    >>> stepper.set_model(model)
    >>> stepper.set_solver(TimeStepNonlinearSolver())
    >>> stepper.set_initial_condition(model.get_nominal_values())
    >>> dt_taken = stepper.take_step(0.1)
    >>> stepper.get_time_range()
    TimeRange(0.0, 0.1)
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self._model: Optional[ModelEvaluatorBase] = None
        self._solver: Optional[NonlinearSolverBase] = None
        self._interpolator: InterpolatorBase = HermiteInterpolator()
        self._initial_condition: Optional[InArgs] = None
        self._reset_state()
        self._stats = {"total_steps": 0, "failed_steps": 0, "total_time": 0.0}
        self.set_parameter_list(parameter_list)

    def _reset_state(self):
        self._t = self._t_old = 0.0
        self._x = self._x_old = None
        self._x_dot = self._x_dot_old = None
        self._p = np.zeros(0)
        self._dt = 0.0
        self._status_code = StepStatusCode.UNINITIALIZED
        self._last_solve_status = None

    def get_valid_parameters(self) -> ParameterList:
        return ParameterList(self.name)

    # ========================================================================
    # Abstract Interface
    # ========================================================================

    @property
    @abstractmethod
    def is_implicit(self) -> bool:
        pass

    @property
    @abstractmethod
    def order(self) -> int:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def _compute_step(
        self, dt: float, step_type: StepSizeType
    ) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Compute the step from the current state.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray, float]
            (x_new, x_dot_new, dt_taken)

        Raises
        ------
        StepperError
            If the step cannot be completed
        """
        pass

    # ========================================================================
    # Setup
    # ========================================================================

    def set_model(self, model: ModelEvaluatorBase):
        """Set the model to integrate. Resets any current state."""
        if not self.is_implicit and model.is_implicit:
            raise StepperError(
                f"{self.name} is explicit and requires an explicit model; "
                f"got implicit {model.__class__.__name__}"
            )
        self._model = model
        self._initial_condition = None
        self._reset_state()

    def get_model(self) -> Optional[ModelEvaluatorBase]:
        return self._model

    def set_solver(self, solver: NonlinearSolverBase):
        """Set the time-step solver (implicit steppers only)."""
        if not self.is_implicit:
            raise StepperError(f"{self.name} is explicit and does not use a solver")
        self._solver = solver

    def get_solver(self) -> Optional[NonlinearSolverBase]:
        return self._solver

    def set_interpolator(self, interpolator: InterpolatorBase):
        self._interpolator = interpolator

    def set_initial_condition(self, initial_condition: InArgs):
        """
        Set the initial time, state and state derivative.

        A missing x_dot is computed from an explicit model, or set to zero
        for an implicit one.
        """
        if self._model is None:
            raise StepperError(f"{self.name}: set_model() must be called before the initial condition")
        if initial_condition.x is None:
            raise StepperError(f"{self.name}: initial condition has no state x")
        nx = self._model.nx
        if initial_condition.x.size != nx:
            raise StepperError(
                f"{self.name}: initial state has size {initial_condition.x.size}, model has nx={nx}"
            )

        ic = initial_condition.copy()
        self._initial_condition = ic
        self._t = self._t_old = ic.t
        self._x = ic.x.copy()
        self._p = ic.p.copy()
        if ic.x_dot is not None:
            self._x_dot = ic.x_dot.copy()
        elif self._model.is_implicit:
            self._x_dot = np.zeros(nx)
        else:
            self._x_dot = self._evaluate_explicit(self._x, self._t)
        self._x_old, self._x_dot_old = self._x.copy(), self._x_dot.copy()
        self._dt = 0.0
        self._status_code = StepStatusCode.INITIALIZED

    def get_initial_condition(self) -> Optional[InArgs]:
        return self._initial_condition

    def clone_stepper_algorithm(self) -> "StepperBase":
        """
        New stepper of the same class and configuration, without model,
        solver or state.
        """
        other = self.__class__(self.get_parameter_list().copy())
        other.set_interpolator(self._interpolator)
        return other

    @property
    def supports_cloning(self) -> bool:
        return True

    # ========================================================================
    # Stepping
    # ========================================================================

    def take_step(self, dt: ScalarLike, step_type: StepSizeType = StepSizeType.FIXED) -> float:
        """
        Advance the solution by one step.

        Parameters
        ----------
        dt : float
            Step size (FIXED) or upper bound on it (VARIABLE)
        step_type : StepSizeType

        Returns
        -------
        float
            Step size actually taken
        """
        if self._status_code == StepStatusCode.UNINITIALIZED:
            raise StepperError(f"{self.name}: set_initial_condition() must be called first")
        if self.is_implicit and self._solver is None:
            raise StepperError(f"{self.name}: implicit stepper has no solver")
        dt = float(dt)
        if not dt > 0.0:
            raise StepperError(f"{self.name}: step size must be positive, got {dt}")

        start_time = time.time()
        try:
            x_new, x_dot_new, dt_taken = self._compute_step(dt, step_type)
        except StepperError:
            self._status_code = StepStatusCode.STEP_FAILED
            self._stats["failed_steps"] += 1
            raise

        self._t_old, self._x_old, self._x_dot_old = self._t, self._x, self._x_dot
        self._t = self._t_old + dt_taken
        self._x, self._x_dot = x_new, x_dot_new
        self._dt = dt_taken
        self._status_code = StepStatusCode.STEP_ACCEPTED

        self._stats["total_steps"] += 1
        self._stats["total_time"] += time.time() - start_time
        return dt_taken

    def _in_args(self, x: np.ndarray, t: float, x_dot: Optional[np.ndarray] = None) -> InArgs:
        return InArgs(t=t, x=x, x_dot=x_dot, p=self._p)

    def _evaluate_explicit(self, x: np.ndarray, t: float) -> np.ndarray:
        return self._model.evaluate(self._in_args(x, t))["f"]

    # ========================================================================
    # Queries
    # ========================================================================

    def get_time_range(self) -> TimeRange:
        """[t_old, t] of the last step ([t0, t0] right after initialization)."""
        if self._status_code == StepStatusCode.UNINITIALIZED:
            return invalid_time_range()
        return TimeRange(self._t_old, self._t)

    def get_current_time(self) -> float:
        return self._t

    def get_points(self, times: TimePoints) -> PointsTuple:
        """
        Interpolated (x_list, x_dot_list) inside the last step.

        Raises
        ------
        InterpolationError
            If a time lies outside get_time_range()
        """
        time_range = self.get_time_range()
        if not time_range.is_valid():
            raise InterpolationError(f"{self.name}: stepper has no solution yet")
        nodes_t = [self._t_old] if self._t == self._t_old else [self._t_old, self._t]
        nodes_x = [self._x_old] if self._t == self._t_old else [self._x_old, self._x]
        nodes_xd = (
            [self._x_dot_old] if self._t == self._t_old else [self._x_dot_old, self._x_dot]
        )

        x_list, x_dot_list = [], []
        for t in times:
            tol = time_tolerance(t)
            if not time_range.is_in_range(t, tol):
                raise InterpolationError(
                    f"{self.name}: t = {t} is outside the last step "
                    f"[{time_range.lower()}, {time_range.upper()}]"
                )
            t = time_range.clamp(t, tol)
            x, x_dot = interpolate_between(self._interpolator, nodes_t, nodes_x, nodes_xd, t)
            x_list.append(x)
            x_dot_list.append(x_dot)
        return x_list, x_dot_list

    def get_step_status(self) -> StepStatus:
        status: StepStatus = {
            "status": self._status_code,
            "step_size": self._dt,
            "time": self._t,
            "order": self.order,
            "solve_status": self._last_solve_status,
            "message": self._status_code.value,
        }
        return status

    def get_stats(self) -> Dict[str, Any]:
        return dict(self._stats)

    def reset_stats(self):
        self._stats["total_steps"] = 0
        self._stats["failed_steps"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        model = self._model.__class__.__name__ if self._model is not None else None
        return f"{self.__class__.__name__}(model={model}, t={self._t})"

    def __str__(self) -> str:
        return f"{self.name} (order {self.order})"
