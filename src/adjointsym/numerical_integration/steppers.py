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
Steppers - Backward Euler, Forward Euler and Classic RK4

Concrete single-step methods built on StepperBase.

Backward Euler (implicit, order 1):
    f((x_{n+1} - x_n)/dt, x_{n+1}, t_{n+1}) = 0
    solved for x_{n+1} by the attached nonlinear solver with Jacobian
    (1/dt) df/dx_dot + df/dx. Explicit models use the residual x_dot - g.

Forward Euler (explicit, order 1):
    x_{n+1} = x_n + dt * g(x_n, t_n)

Classic RK4 (explicit, order 4):
    k1 = g(x_n, t_n)
    k2 = g(x_n + dt/2 k1, t_n + dt/2)
    k3 = g(x_n + dt/2 k2, t_n + dt/2)
    k4 = g(x_n + dt k3, t_n + dt)
    x_{n+1} = x_n + dt/6 (k1 + 2 k2 + 2 k3 + k4)
"""

import warnings
from typing import Dict, Optional, Type

import numpy as np

from adjointsym.models.model_evaluator import InArgs
from adjointsym.numerical_integration.stepper_base import StepperBase, StepperError
from adjointsym.parameters import ParameterList
from adjointsym.types.solvers import StepSizeType

# ============================================================================
# Backward Euler
# ============================================================================


class BackwardEulerStepper(StepperBase):
    """
    Implicit Backward Euler stepper with optional error-controlled steps.

    Fixed steps (StepSizeType.FIXED) take exactly the requested dt. When
    the nonlinear solve does not converge the last Newton iterate is
    accepted with a warning, unless Accept Unconverged Fixed Steps is
    False, in which case the step fails with StepperError. A non-finite
    iterate always fails.

    Variable steps (StepSizeType.VARIABLE) treat dt as an upper bound. The
    local error is estimated from the explicit predictor,

        err = 0.5 * (x_{n+1} - (x_n + dt * x_dot_n))

    measured in the weighted RMS norm with weights atol + rtol*|x_{n+1}|.
    A step is accepted when the norm is <= 1; the next step size is scaled
    by 0.9/sqrt(norm), bounded to [0.2, 2].

    Parameters (Step Control Settings):
    ----------------------------------
    Relative Error Tolerance : float, default=1.0e-6
    Absolute Error Tolerance : float, default=1.0e-6
    Min dt : float, default=1.0e-12
    Max Step Failures : int, default=10
    Accept Unconverged Fixed Steps : bool, default=True

    Examples
    --------
    >>> stepper = BackwardEulerStepper()
    >>> stepper.set_model(vanderpol_model({"Implicit model formulation": True}))
    >>> stepper.set_solver(TimeStepNonlinearSolver())
    >>> stepper.set_initial_condition(stepper.get_model().get_nominal_values())
    >>> stepper.take_step(0.5)
    0.5
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self._dt_next: Optional[float] = None
        super().__init__(parameter_list)

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("Step Control Settings")
        pl.set("Relative Error Tolerance", 1.0e-6)
        pl.set("Absolute Error Tolerance", 1.0e-6)
        pl.set("Min dt", 1.0e-12, doc="Smallest step a variable step may shrink to")
        pl.set("Max Step Failures", 10, doc="Rejected attempts allowed per step")
        pl.set(
            "Accept Unconverged Fixed Steps",
            True,
            doc="Keep the last Newton iterate of a fixed step that did not converge",
        )
        return pl

    def _read_parameters(self, pl: ParameterList):
        self.rtol = pl.get("Relative Error Tolerance")
        self.atol = pl.get("Absolute Error Tolerance")
        self.min_dt = pl.get("Min dt")
        self.max_step_failures = pl.get("Max Step Failures")
        self.accept_unconverged = pl.get("Accept Unconverged Fixed Steps")
        if self.rtol < 0.0 or self.atol < 0.0 or self.rtol + self.atol == 0.0:
            raise ValueError(
                f"Error tolerances must be non-negative and not both zero "
                f"(rtol={self.rtol}, atol={self.atol})"
            )

    def _reset_state(self):
        super()._reset_state()
        self._dt_next = None

    @property
    def is_implicit(self) -> bool:
        return True

    @property
    def order(self) -> int:
        return 1

    @property
    def name(self) -> str:
        return "Backward Euler"

    def _solve_step(self, dt: float):
        """Solve the implicit step of size dt. Returns (x_new, x_dot_new, status)."""
        model = self._model
        x_old = self._x
        t_new = self._t + dt
        p = self._p

        if model.is_implicit:

            def residual(x):
                in_args = InArgs(t=t_new, x=x, x_dot=(x - x_old) / dt, p=p)
                return model.evaluate(in_args)["f"]

            def jacobian(x):
                in_args = InArgs(t=t_new, x=x, x_dot=(x - x_old) / dt, p=p)
                in_args.set_alpha_beta(1.0 / dt, 1.0)
                return model.evaluate(in_args, outputs=("W",))["W"]

        else:
            identity = np.eye(model.nx)

            def residual(x):
                g = model.evaluate(InArgs(t=t_new, x=x, p=p))["f"]
                return (x - x_old) / dt - g

            def jacobian(x):
                dgdx = model.evaluate(InArgs(t=t_new, x=x, p=p), outputs=("W",))["W"]
                return identity / dt - dgdx

        x_guess = x_old + dt * self._x_dot
        x_new, status = self._solver.solve(residual, jacobian, x_guess)
        self._last_solve_status = status
        return x_new, (x_new - x_old) / dt, status

    def _error_norm(self, x_new: np.ndarray, dt: float) -> float:
        x_pred = self._x + dt * self._x_dot
        weights = self.atol + self.rtol * np.abs(x_new)
        err = 0.5 * (x_new - x_pred) / weights
        return float(np.sqrt(np.mean(err**2)))

    def _compute_step(self, dt, step_type):
        if step_type == StepSizeType.FIXED:
            x_new, x_dot_new, status = self._solve_step(dt)
            if not status["converged"]:
                message = (
                    f"{self.name}: nonlinear solve failed at t = {self._t + dt}: "
                    f"{status['message']}"
                )
                if not (self.accept_unconverged and np.all(np.isfinite(x_new))):
                    raise StepperError(message)
                warnings.warn(f"{message}; accepting the fixed step")
            return x_new, x_dot_new, dt

        dt_try = dt if self._dt_next is None else min(dt, self._dt_next)
        failures = 0
        while True:
            x_new, x_dot_new, status = self._solve_step(dt_try)
            if status["converged"]:
                err = self._error_norm(x_new, dt_try)
                factor = 2.0 if err == 0.0 else min(2.0, max(0.2, 0.9 / np.sqrt(err)))
                if err <= 1.0:
                    self._dt_next = dt_try * factor
                    return x_new, x_dot_new, dt_try
            else:
                factor = 0.5

            failures += 1
            self._stats["failed_steps"] += 1
            dt_try *= factor
            if failures > self.max_step_failures or dt_try < self.min_dt:
                raise StepperError(
                    f"{self.name}: variable step rejected {failures} times at "
                    f"t = {self._t} (last dt = {dt_try:.3e})"
                )


# ============================================================================
# Explicit Steppers
# ============================================================================


class ForwardEulerStepper(StepperBase):
    """
    Explicit Forward Euler stepper. Requires an explicit model.

    Always takes the requested dt; variable stepping is treated as fixed.
    """

    @property
    def is_implicit(self) -> bool:
        return False

    @property
    def order(self) -> int:
        return 1

    @property
    def name(self) -> str:
        return "Forward Euler"

    def _compute_step(self, dt, step_type):
        x_new = self._x + dt * self._x_dot
        x_dot_new = self._evaluate_explicit(x_new, self._t + dt)
        return x_new, x_dot_new, dt


class ExplicitRKStepper(StepperBase):
    """
    Classic 4th-order Runge-Kutta stepper. Requires an explicit model.

    Four right-hand side evaluations per step, plus one at the new point
    for the stored x_dot (reused as k1 of the next step).
    """

    @property
    def is_implicit(self) -> bool:
        return False

    @property
    def order(self) -> int:
        return 4

    @property
    def name(self) -> str:
        return "Explicit RK"

    def _compute_step(self, dt, step_type):
        t, x = self._t, self._x

        k1 = self._x_dot
        k2 = self._evaluate_explicit(x + 0.5 * dt * k1, t + 0.5 * dt)
        k3 = self._evaluate_explicit(x + 0.5 * dt * k2, t + 0.5 * dt)
        k4 = self._evaluate_explicit(x + dt * k3, t + dt)

        x_new = x + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)
        return x_new, self._evaluate_explicit(x_new, t + dt), dt


# ============================================================================
# Registry
# ============================================================================


STEPPER_TYPES: Dict[str, Type[StepperBase]] = {
    "Backward Euler": BackwardEulerStepper,
    "Forward Euler": ForwardEulerStepper,
    "Explicit RK": ExplicitRKStepper,
}


def create_stepper(stepper_type: str, parameter_list: Optional[ParameterList] = None) -> StepperBase:
    """
    Create a stepper by name.

    Parameters
    ----------
    stepper_type : str
        One of STEPPER_TYPES ("Backward Euler", "Forward Euler", "Explicit RK")
    parameter_list : Optional[ParameterList]
        Step control settings (only used by Backward Euler)

    Raises
    ------
    ValueError
        If the stepper type is unknown
    """
    if stepper_type not in STEPPER_TYPES:
        raise ValueError(
            f"Unknown stepper type '{stepper_type}'. Choose from: {list(STEPPER_TYPES)}"
        )
    cls = STEPPER_TYPES[stepper_type]
    if cls is BackwardEulerStepper:
        return cls(parameter_list)
    return cls()


def backward_euler_stepper(parameter_list=None) -> BackwardEulerStepper:
    """Nonmember constructor."""
    return BackwardEulerStepper(parameter_list)
