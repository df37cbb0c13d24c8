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
Raw Nonlinear Adjoint Driver

Forward solve of the implicit Van der Pol model with Backward Euler on two
fixed steps (dt = 0.5 over [0, 1]), followed by the adjoint solve seeded
from the forward solution:

    A) Create the nonlinear model
    B) Create the nonlinear solver
    C) Create the integrator for the forward state problem
    D) Solve the basic forward problem
    E) Create the basic adjoint model
    F) Create a stepper and integrator for the adjoint
    G) Set up the adjoint initial condition at the final time
       (lambda(t_final) = x_final, lambda_dot(t_final) = 0)
    H) Integrate the adjoint backwards in time (reversed time tau)

With epsilon = 0.1 a step of 0.5 is far larger than the fast time scale of
the oscillator and the Backward Euler equation has no root near the
predictor, so Newton stops at its iteration limit. The stepper keeps that
iterate with a warning and the adjoint solve proceeds from it.
"""

import sys
from typing import Optional, TextIO

import numpy as np

from adjointsym.models.adjoint_model import AdjointModelEvaluator
from adjointsym.models.vanderpol import VanderPolModel
from adjointsym.numerical_integration.integrator import get_fwd_x_and_x_dot
from adjointsym.numerical_integration.integrator_builder import IntegratorBuilder
from adjointsym.numerical_integration.nonlinear_solvers import (
    LinearNonlinearSolver,
    TimeStepNonlinearSolver,
)
from adjointsym.parameters import ParameterList
from adjointsym.types.trajectories import AdjointSolveResult


def default_builder_parameters() -> ParameterList:
    """Builder settings of the forward problem: Backward Euler, fixed dt = 0.5."""
    return ParameterList.from_dict(
        {
            "Stepper Settings": {"Stepper Selection": {"Stepper Type": "Backward Euler"}},
            "Integration Control Strategy Selection": {
                "Integration Control Strategy Type": "Simple Integration Control Strategy",
                "Simple Integration Control Strategy": {
                    "Take Variable Steps": False,
                    "Fixed dt": 0.5,
                },
            },
            "Interpolation Buffer Settings": {
                "Trailing Interpolation Buffer Selection": {
                    "Interpolation Buffer Type": "Interpolation Buffer"
                }
            },
        },
        name="Integrator Builder",
    )


def run_raw_nonlinear_adjoint(
    out: Optional[TextIO] = None,
    builder_parameters: Optional[ParameterList] = None,
    model_parameters: Optional[ParameterList] = None,
    solver_parameters: Optional[ParameterList] = None,
) -> AdjointSolveResult:
    """
    Run the forward and adjoint solves, reporting progress to ``out``.

    Parameters
    ----------
    out : Optional[TextIO]
        Progress stream (default: sys.stdout)
    builder_parameters : Optional[ParameterList]
        Integrator builder settings (default: default_builder_parameters())
    model_parameters : Optional[ParameterList]
        Van der Pol settings (default: implicit formulation)
    solver_parameters : Optional[ParameterList]
        Forward Newton settings (default: Default Tol 1e-10, Default Max Iters 20)

    Returns
    -------
    AdjointSolveResult
        Forward final state and adjoint final state

    Examples
    --------
    >>> result = run_raw_nonlinear_adjoint(out=io.StringIO())
    >>> result["t_final"], result["adj_t_final"]
    (1.0, 1.0)
    """
    out = sys.stdout if out is None else out

    out.write("\nA) Create the nonlinear model ...\n")
    if model_parameters is None:
        model_parameters = ParameterList.from_dict({"Implicit model formulation": True})
    state_model = VanderPolModel(model_parameters)

    out.write("\nB) Create the nonlinear solver ...\n")
    if solver_parameters is None:
        solver_parameters = ParameterList.from_dict(
            {"Default Tol": 1.0e-10, "Default Max Iters": 20}
        )
    nl_solver = TimeStepNonlinearSolver(solver_parameters)

    out.write("\nC) Create the integrator for the forward state problem ...\n")
    if builder_parameters is None:
        builder_parameters = default_builder_parameters()
    builder = IntegratorBuilder(builder_parameters)
    ic = state_model.get_nominal_values()
    integrator = builder.create(state_model, ic, nl_solver)

    out.write("\nD) Solve the basic forward problem ...\n")
    fwd_time_range = integrator.get_fwd_time_range()
    t_final = fwd_time_range.upper()
    x_final, x_dot_final = get_fwd_x_and_x_dot(integrator, t_final)
    out.write(f"\nt_final = {t_final:g}\n")
    out.write(f"\nx_final: {x_final}\n")
    out.write(f"\nx_dot_final: {x_dot_final}\n")

    out.write("\nE) Create the basic adjoint model (no distributed response) ...\n")
    adj_model = AdjointModelEvaluator(state_model, fwd_time_range)
    adj_model.set_fwd_state_solution_buffer(integrator)

    out.write("\nF) Create a stepper and integrator for the adjoint ...\n")
    adj_solver = LinearNonlinearSolver()
    adj_stepper = integrator.get_stepper().clone_stepper_algorithm()

    out.write("\nG) Set up the initial condition for the adjoint at the final time ...\n")
    adj_ic = adj_model.get_nominal_values()
    adj_ic.set_x(x_final)
    adj_ic.set_x_dot(np.zeros(state_model.get_f_space_dim()))
    out.write(f"\nadj_ic: {adj_ic.describe()}\n")
    adj_integrator = builder.create(adj_model, adj_ic, adj_solver)

    out.write("\nH) Integrate the adjoint backwards in time (using backward time) ...\n")
    adj_stepper.set_model(adj_model)
    adj_stepper.set_solver(adj_solver)
    adj_stepper.set_initial_condition(adj_ic)
    adj_integrator.set_stepper(adj_stepper, fwd_time_range.length())

    adj_t_final = fwd_time_range.length()
    lambda_final, lambda_dot_final = get_fwd_x_and_x_dot(adj_integrator, adj_t_final)
    out.write(f"\nadj_t_final = {adj_t_final:g}\n")
    out.write(f"\nlambda_final: {lambda_final}\n")
    out.write(f"\nlambda_dot_final: {lambda_dot_final}\n")

    result: AdjointSolveResult = {
        "t_final": t_final,
        "x_final": x_final,
        "x_dot_final": x_dot_final,
        "adj_t_final": adj_t_final,
        "lambda_final": lambda_final,
        "lambda_dot_final": lambda_dot_final,
        "fwd_stats": integrator.get_stats(),
        "adj_stats": adj_integrator.get_stats(),
    }
    return result
