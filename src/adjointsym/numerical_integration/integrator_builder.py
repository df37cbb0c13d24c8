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
Integrator Builder - Assemble an Integrator from a Parameter List

Reads one nested ParameterList and wires a stepper, its solver, an
optional integration control strategy and an optional trailing
interpolation buffer into a DefaultIntegrator:

    Integrator Settings
        Final Time, Land On Final Time
        Integrator Selection
            Integrator Type ("Default Integrator")
            Default Integrator -> Max Number Time Steps
    Integration Control Strategy Selection
        Integration Control Strategy Type ("None" | "Simple Integration Control Strategy")
        Simple Integration Control Strategy -> ...
    Stepper Settings
        Stepper Selection -> Stepper Type ("Backward Euler" | "Forward Euler" | "Explicit RK")
        Step Control Settings -> ...
    Interpolation Buffer Settings
        Trailing Interpolation Buffer Selection
            Interpolation Buffer Type ("None" | "Interpolation Buffer")
            Interpolation Buffer -> Storage Limit
        Interpolator Selection
            Interpolator Type ("Linear Interpolator" | "Hermite Interpolator")

Unknown keys, wrong types and unknown type names raise
ParameterValidationError when the list is set.
"""

from typing import Optional

from adjointsym.models.model_evaluator import InArgs, ModelEvaluatorBase
from adjointsym.numerical_integration.integration_control import (
    SimpleIntegrationControlStrategy,
)
from adjointsym.numerical_integration.integrator import DefaultIntegrator
from adjointsym.numerical_integration.interpolation_buffer import (
    INTERPOLATOR_TYPES,
    InterpolationBuffer,
)
from adjointsym.numerical_integration.nonlinear_solvers import (
    NonlinearSolverBase,
    TimeStepNonlinearSolver,
)
from adjointsym.numerical_integration.stepper_base import StepperBase
from adjointsym.numerical_integration.steppers import (
    STEPPER_TYPES,
    BackwardEulerStepper,
    create_stepper,
)
from adjointsym.parameters import ParameterList, ParameterListAcceptor

NONE = "None"
DEFAULT_INTEGRATOR = "Default Integrator"
SIMPLE_CONTROL = "Simple Integration Control Strategy"
INTERPOLATION_BUFFER = "Interpolation Buffer"


class IntegratorBuilder(ParameterListAcceptor):
    """
    Factory for fully configured DefaultIntegrator objects.

    Examples
    --------
    >>> builder = IntegratorBuilder()
    >>> builder.set_parameter_list(ParameterList.from_dict({
    ...     "Integration Control Strategy Selection": {
    ...         "Integration Control Strategy Type": "Simple Integration Control Strategy",
    ...         "Simple Integration Control Strategy": {
    ...             "Take Variable Steps": False, "Fixed dt": 0.5}},
    ...     "Interpolation Buffer Settings": {
    ...         "Trailing Interpolation Buffer Selection": {
    ...             "Interpolation Buffer Type": "Interpolation Buffer"}},
    ... }))
    >>> integrator = builder.create(model, model.get_nominal_values())
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self.set_parameter_list(parameter_list)

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("Integrator Builder")

        settings = pl.sublist("Integrator Settings")
        settings.set("Final Time", 1.0)
        settings.set("Land On Final Time", True)
        selection = settings.sublist("Integrator Selection")
        selection.set("Integrator Type", DEFAULT_INTEGRATOR, valid_values=[DEFAULT_INTEGRATOR])
        selection.set(DEFAULT_INTEGRATOR, DefaultIntegrator().get_valid_parameters())

        control = pl.sublist("Integration Control Strategy Selection")
        control.set(
            "Integration Control Strategy Type",
            NONE,
            valid_values=[NONE, SIMPLE_CONTROL],
        )
        control.set(SIMPLE_CONTROL, SimpleIntegrationControlStrategy().get_valid_parameters())

        stepper = pl.sublist("Stepper Settings")
        stepper.sublist("Stepper Selection").set(
            "Stepper Type", "Backward Euler", valid_values=list(STEPPER_TYPES)
        )
        stepper.set("Step Control Settings", BackwardEulerStepper().get_valid_parameters())

        buffers = pl.sublist("Interpolation Buffer Settings")
        trailing = buffers.sublist("Trailing Interpolation Buffer Selection")
        trailing.set(
            "Interpolation Buffer Type", NONE, valid_values=[NONE, INTERPOLATION_BUFFER]
        )
        trailing.set(INTERPOLATION_BUFFER, InterpolationBuffer().get_valid_parameters())
        buffers.sublist("Interpolator Selection").set(
            "Interpolator Type", "Hermite Interpolator", valid_values=list(INTERPOLATOR_TYPES)
        )
        return pl

    def _read_parameters(self, pl: ParameterList):
        settings = pl.sublist("Integrator Settings")
        self.final_time = settings.get("Final Time")
        self.land_on_final_time = settings.get("Land On Final Time")

    # ========================================================================
    # Component Factories
    # ========================================================================

    def create_stepper(self) -> StepperBase:
        """Unconfigured stepper of the selected type."""
        stepper_settings = self.get_parameter_list().sublist("Stepper Settings")
        stepper_type = stepper_settings.sublist("Stepper Selection").get("Stepper Type")
        step_control = stepper_settings.sublist("Step Control Settings").copy()
        return create_stepper(stepper_type, step_control)

    def create_integration_control_strategy(self) -> Optional[SimpleIntegrationControlStrategy]:
        control = self.get_parameter_list().sublist("Integration Control Strategy Selection")
        if control.get("Integration Control Strategy Type") == NONE:
            return None
        return SimpleIntegrationControlStrategy(control.sublist(SIMPLE_CONTROL).copy())

    def create_interpolator(self):
        buffers = self.get_parameter_list().sublist("Interpolation Buffer Settings")
        interpolator_type = buffers.sublist("Interpolator Selection").get("Interpolator Type")
        return INTERPOLATOR_TYPES[interpolator_type]()

    def create_trailing_interpolation_buffer(self) -> Optional[InterpolationBuffer]:
        buffers = self.get_parameter_list().sublist("Interpolation Buffer Settings")
        trailing = buffers.sublist("Trailing Interpolation Buffer Selection")
        if trailing.get("Interpolation Buffer Type") == NONE:
            return None
        return InterpolationBuffer(
            self.create_interpolator(),
            parameter_list=trailing.sublist(INTERPOLATION_BUFFER).copy(),
        )

    def create_integrator(self) -> DefaultIntegrator:
        selection = self.get_parameter_list().sublist("Integrator Settings").sublist(
            "Integrator Selection"
        )
        return DefaultIntegrator(selection.sublist(DEFAULT_INTEGRATOR).copy())

    # ========================================================================
    # Assembly
    # ========================================================================

    def create(
        self,
        model: ModelEvaluatorBase,
        initial_condition: InArgs,
        nonlinear_solver: Optional[NonlinearSolverBase] = None,
    ) -> DefaultIntegrator:
        """
        Build an integrator for ``model`` starting at ``initial_condition``.

        Parameters
        ----------
        model : ModelEvaluatorBase
        initial_condition : InArgs
        nonlinear_solver : Optional[NonlinearSolverBase]
            Solver for implicit steppers (default: TimeStepNonlinearSolver)

        Returns
        -------
        DefaultIntegrator
            Ready to produce points on [t0, Final Time]
        """
        stepper = self.create_stepper()
        stepper.set_model(model)
        if stepper.is_implicit:
            stepper.set_solver(
                nonlinear_solver if nonlinear_solver is not None else TimeStepNonlinearSolver()
            )
        stepper.set_interpolator(self.create_interpolator())
        stepper.set_initial_condition(initial_condition)

        integrator = self.create_integrator()
        control = self.create_integration_control_strategy()
        if control is not None:
            integrator.set_integration_control_strategy(control)
        buffer = self.create_trailing_interpolation_buffer()
        if buffer is not None:
            integrator.set_trailing_interpolation_buffer(buffer)
        integrator.set_stepper(stepper, self.final_time, self.land_on_final_time)
        return integrator

    def __repr__(self) -> str:
        return f"IntegratorBuilder(final_time={self.final_time})"


def integrator_builder(parameter_list=None) -> IntegratorBuilder:
    """Nonmember constructor."""
    return IntegratorBuilder(parameter_list)
