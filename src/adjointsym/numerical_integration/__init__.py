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
Numerical Integration
=====================

Steppers, time-step solvers, interpolation buffers and the integrator that
drives them.

Typical use goes through the builder:

>>> from adjointsym.numerical_integration import IntegratorBuilder
>>> builder = IntegratorBuilder(pl)
>>> integrator = builder.create(model, model.get_nominal_values())
>>> x_final, x_dot_final = get_fwd_x_and_x_dot(integrator, 1.0)
"""

from .integration_control import (
    SimpleIntegrationControlStrategy,
    simple_integration_control_strategy,
)
from .integrator import DefaultIntegrator, default_integrator, get_fwd_x_and_x_dot
from .integrator_builder import IntegratorBuilder, integrator_builder
from .interpolation_buffer import (
    INTERPOLATOR_TYPES,
    HermiteInterpolator,
    InterpolationBuffer,
    InterpolationError,
    InterpolatorBase,
    LinearInterpolator,
    interpolation_buffer,
)
from .nonlinear_solvers import (
    LinearNonlinearSolver,
    NonlinearSolveError,
    NonlinearSolverBase,
    TimeStepNonlinearSolver,
    linear_nonlinear_solver,
    time_step_nonlinear_solver,
)
from .stepper_base import StepperBase, StepperError
from .steppers import (
    STEPPER_TYPES,
    BackwardEulerStepper,
    ExplicitRKStepper,
    ForwardEulerStepper,
    backward_euler_stepper,
    create_stepper,
)
from .time_range import TimeRange, invalid_time_range, time_range, time_tolerance

__all__ = [
    # Time ranges
    "TimeRange",
    "time_range",
    "invalid_time_range",
    "time_tolerance",
    # Solvers
    "NonlinearSolverBase",
    "NonlinearSolveError",
    "TimeStepNonlinearSolver",
    "LinearNonlinearSolver",
    "time_step_nonlinear_solver",
    "linear_nonlinear_solver",
    # Steppers
    "StepperBase",
    "StepperError",
    "BackwardEulerStepper",
    "ForwardEulerStepper",
    "ExplicitRKStepper",
    "STEPPER_TYPES",
    "create_stepper",
    "backward_euler_stepper",
    # Interpolation
    "InterpolatorBase",
    "LinearInterpolator",
    "HermiteInterpolator",
    "INTERPOLATOR_TYPES",
    "InterpolationBuffer",
    "InterpolationError",
    "interpolation_buffer",
    # Control and integration
    "SimpleIntegrationControlStrategy",
    "simple_integration_control_strategy",
    "DefaultIntegrator",
    "default_integrator",
    "get_fwd_x_and_x_dot",
    "IntegratorBuilder",
    "integrator_builder",
]
