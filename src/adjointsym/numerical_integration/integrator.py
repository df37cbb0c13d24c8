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
Default Integrator - Drives a Stepper to a Final Time

The integrator owns a stepper (already holding its initial condition), an
optional integration control strategy and an optional trailing
interpolation buffer. Points are requested by time; the integrator takes
as many steps as needed to cover them and stores every accepted step in
the trailing buffer, so that earlier times remain available afterwards
(the adjoint solve reads the forward solution this way).

Step size policy:
    - with a control strategy: its (dt, step type)
    - without one: the remaining time as a VARIABLE upper bound

Final-time landing ("land on final time"):
    dt = min(dt, t_final - t); a step leaving a remainder below the time
    rounding tolerance is stretched to end exactly on t_final.
"""

import time
import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np

from adjointsym.numerical_integration.integration_control import (
    SimpleIntegrationControlStrategy,
)
from adjointsym.numerical_integration.interpolation_buffer import (
    InterpolationBuffer,
    InterpolationError,
)
from adjointsym.numerical_integration.stepper_base import StepperBase, StepperError
from adjointsym.numerical_integration.time_range import (
    TimeRange,
    invalid_time_range,
    time_tolerance,
)
from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.core import PointsTuple, ScalarLike
from adjointsym.types.solvers import StepSizeType, StepStatusCode
from adjointsym.types.trajectories import IntegrationResult, TimePoints


class DefaultIntegrator(ParameterListAcceptor):
    """
    Forward integrator over [t0, t_final].

    Parameters (ParameterList):
    --------------------------
    Max Number Time Steps : int, default=10000
        Steps allowed in one integration before StepperError is raised

    Examples
    --------
    >>> integrator = DefaultIntegrator()
    >>> integrator.set_stepper(stepper, final_time=1.0)
    >>> integrator.set_trailing_interpolation_buffer(InterpolationBuffer())
    >>> x_list, x_dot_list = integrator.get_fwd_points([1.0])
    >>> integrator.get_fwd_time_range()
    TimeRange(0.0, 1.0)
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self._stepper: Optional[StepperBase] = None
        self._buffer: Optional[InterpolationBuffer] = None
        self._control: Optional[SimpleIntegrationControlStrategy] = None
        self._t_final = 0.0
        self._land_on_final_time = True
        self._fwd_time_range = invalid_time_range()
        self._stats = {"total_steps": 0, "failed_steps": 0, "total_time": 0.0}
        self.set_parameter_list(parameter_list)

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("Default Integrator")
        pl.set("Max Number Time Steps", 10000)
        return pl

    def _read_parameters(self, pl: ParameterList):
        self.max_num_time_steps = pl.get("Max Number Time Steps")
        if self.max_num_time_steps < 1:
            raise ValueError(
                f"Max Number Time Steps must be >= 1, got {self.max_num_time_steps}"
            )

    # ========================================================================
    # Setup
    # ========================================================================

    def set_stepper(
        self, stepper: StepperBase, final_time: ScalarLike, land_on_final_time: bool = True
    ):
        """
        Attach a stepper holding its initial condition.

        Raises
        ------
        StepperError
            If the stepper is not initialized
        ValueError
            If final_time precedes the stepper's initial time
        """
        if stepper.get_step_status()["status"] == StepStatusCode.UNINITIALIZED:
            raise StepperError(
                f"{stepper.name}: set_initial_condition() must be called before set_stepper()"
            )
        t0 = stepper.get_time_range().upper()
        final_time = float(final_time)
        if final_time < t0:
            raise ValueError(f"Final time {final_time} precedes the initial time {t0}")

        self._stepper = stepper
        self._t_final = final_time
        self._land_on_final_time = land_on_final_time
        self._fwd_time_range = TimeRange(t0, final_time)
        if self._control is not None:
            self._control.reset_for_time_range(self._fwd_time_range)
        if self._buffer is not None:
            self._seed_buffer()

    def get_stepper(self) -> Optional[StepperBase]:
        return self._stepper

    def set_trailing_interpolation_buffer(self, buffer: InterpolationBuffer):
        """Store accepted steps in ``buffer`` (seeded with the current point)."""
        self._buffer = buffer
        if self._stepper is not None:
            self._seed_buffer()

    def get_trailing_interpolation_buffer(self) -> Optional[InterpolationBuffer]:
        return self._buffer

    def set_integration_control_strategy(self, control: SimpleIntegrationControlStrategy):
        self._control = control
        if self._fwd_time_range.is_valid():
            control.reset_for_time_range(self._fwd_time_range)

    def get_integration_control_strategy(self) -> Optional[SimpleIntegrationControlStrategy]:
        return self._control

    def _seed_buffer(self):
        t = self._stepper.get_time_range().upper()
        x_list, x_dot_list = self._stepper.get_points([t])
        self._buffer.add_points([t], x_list, x_dot_list)

    def _require_stepper(self):
        if self._stepper is None:
            raise StepperError("DefaultIntegrator: set_stepper() must be called first")

    # ========================================================================
    # Time Ranges
    # ========================================================================

    def get_fwd_time_range(self) -> TimeRange:
        """The range [t0, t_final] this integrator can produce points on."""
        return self._fwd_time_range

    def get_time_range(self) -> TimeRange:
        """The range already integrated (and still retrievable)."""
        if self._stepper is None:
            return invalid_time_range()
        stepper_range = self._stepper.get_time_range()
        if self._buffer is not None and len(self._buffer) > 0:
            return TimeRange(self._buffer.get_time_range().lower(), stepper_range.upper())
        return stepper_range

    # ========================================================================
    # Stepping
    # ========================================================================

    def _next_step(self, t_current: float) -> Tuple[float, StepSizeType]:
        if self._control is not None:
            dt, step_type = self._control.get_next_step_info(t_current, self._t_final)
        else:
            dt, step_type = self._t_final - t_current, StepSizeType.VARIABLE

        if self._land_on_final_time:
            remaining = self._t_final - t_current
            dt = min(dt, remaining)
            if remaining - dt <= time_tolerance(self._t_final):
                dt = remaining
        return dt, step_type

    def _advance_to(self, t_target: float):
        """Take steps until the stepper time reaches ``t_target``."""
        stepper = self._stepper
        tol = time_tolerance(t_target)
        n_steps = 0
        start_time = time.time()
        failed_before = stepper.get_stats()["failed_steps"]

        try:
            while stepper.get_current_time() < t_target - tol:
                if n_steps >= self.max_num_time_steps:
                    raise StepperError(
                        f"DefaultIntegrator: exceeded Max Number Time Steps "
                        f"({self.max_num_time_steps}) at t = {stepper.get_current_time()}"
                    )
                dt, step_type = self._next_step(stepper.get_current_time())
                if not dt > 0.0:
                    raise StepperError(
                        f"DefaultIntegrator: no time left to step at "
                        f"t = {stepper.get_current_time()}"
                    )
                stepper.take_step(dt, step_type)
                n_steps += 1

                if self._buffer is not None:
                    t_new = stepper.get_current_time()
                    x_list, x_dot_list = stepper.get_points([t_new])
                    self._buffer.add_points([t_new], x_list, x_dot_list)
        finally:
            self._stats["total_steps"] += n_steps
            self._stats["failed_steps"] += stepper.get_stats()["failed_steps"] - failed_before
            self._stats["total_time"] += time.time() - start_time

    def get_fwd_points(self, times: TimePoints) -> PointsTuple:
        """
        Points at ``times``, integrating forward as far as needed.

        Raises
        ------
        InterpolationError
            If a time lies outside the forward time range
        StepperError
            If a step fails or the step limit is exceeded
        """
        self._require_stepper()
        times = [float(t) for t in times]
        if not times:
            return [], []
        for t in times:
            if not self._fwd_time_range.is_in_range(t, time_tolerance(t)):
                raise InterpolationError(
                    f"t = {t} is outside the forward time range {self._fwd_time_range}"
                )
        self._advance_to(self._fwd_time_range.clamp(max(times), time_tolerance(max(times))))
        return self.get_points(times)

    def get_points(self, times: TimePoints) -> PointsTuple:
        """
        Points at ``times`` inside the already integrated range (no stepping).

        Raises
        ------
        InterpolationError
            If a time is not covered by the last step or the trailing buffer
        """
        self._require_stepper()
        stepper_range = self._stepper.get_time_range()
        x_list, x_dot_list = [], []
        for t in times:
            tol = time_tolerance(t)
            if stepper_range.is_in_range(t, tol):
                source = self._stepper
            elif self._buffer is not None and self._buffer.get_time_range().is_in_range(t, tol):
                source = self._buffer
            else:
                raise InterpolationError(
                    f"t = {t} is outside the integrated time range {self.get_time_range()}"
                )
            xs, x_dots = source.get_points([t])
            x_list.append(xs[0])
            x_dot_list.append(x_dots[0])
        return x_list, x_dot_list

    def integrate_to(self, t_final: Optional[ScalarLike] = None) -> IntegrationResult:
        """
        Integrate to ``t_final`` (default: the forward final time).

        The trajectory holds every node of the trailing buffer, or only the
        end point when there is no buffer. Step failures are reported in the
        result rather than raised.
        """
        self._require_stepper()
        t_end = self._t_final if t_final is None else float(t_final)
        start_time = time.time()
        steps_before = self._stats["total_steps"]
        failures_before = self._stats["failed_steps"]

        success, message = True, "Integration successful"
        try:
            self.get_fwd_points([t_end])
        except (StepperError, InterpolationError) as e:
            success, message = False, str(e)
            warnings.warn(f"Integration to t = {t_end} failed: {e}")

        if self._buffer is not None and len(self._buffer) > 0:
            t, x, x_dot = self._buffer.get_trajectory()
        else:
            t_now = self._stepper.get_current_time()
            xs, x_dots = self._stepper.get_points([t_now])
            t, x, x_dot = np.array([t_now]), np.stack(xs), np.stack(x_dots)

        result: IntegrationResult = {
            "t": t,
            "x": x,
            "x_dot": x_dot,
            "success": success,
            "message": message,
            "nsteps": self._stats["total_steps"] - steps_before,
            "nfailures": self._stats["failed_steps"] - failures_before,
            "integration_time": time.time() - start_time,
            "solver": self._stepper.name,
        }
        return result

    # ========================================================================
    # Statistics
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        if self._stepper is not None:
            stats["stepper"] = self._stepper.get_stats()
            solver = self._stepper.get_solver()
            if solver is not None:
                stats["solver"] = solver.get_stats()
        return stats

    def reset_stats(self):
        self._stats["total_steps"] = 0
        self._stats["failed_steps"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        stepper = self._stepper.name if self._stepper is not None else None
        return f"DefaultIntegrator(stepper={stepper}, fwd_time_range={self._fwd_time_range})"


def default_integrator(parameter_list=None) -> DefaultIntegrator:
    """Nonmember constructor."""
    return DefaultIntegrator(parameter_list)


def get_fwd_x_and_x_dot(
    integrator: DefaultIntegrator, t: ScalarLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    State and state derivative at ``t``, integrating forward if needed.

    Examples
    --------
    >>> x_final, x_dot_final = get_fwd_x_and_x_dot(integrator, 1.0)
    """
    x_list, x_dot_list = integrator.get_fwd_points([t])
    return x_list[0], x_dot_list[0]
