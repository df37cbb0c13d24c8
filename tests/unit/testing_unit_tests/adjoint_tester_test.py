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
Unit tests for BasicDiscreteAdjointStepperTester

The adjoint identity <lambda(t0), dx0> = <d, dx(t_final)> is exact (to
round-off) for the linear SinCos model on equal Backward Euler steps, and
holds to O(dt) for the nonlinear Van der Pol model.
"""

import io

import numpy as np
import pytest

from adjointsym.models import SinCosModel, VanderPolModel
from adjointsym.numerical_integration import IntegratorBuilder, TimeStepNonlinearSolver
from adjointsym.parameters import ParameterList
from adjointsym.testing import (
    BasicDiscreteAdjointStepperTester,
    basic_discrete_adjoint_stepper_tester,
)

# ============================================================================
# Fixtures
# ============================================================================


def fixed_step_builder(dt, final_time=1.0, buffer=True):
    buffer_type = "Interpolation Buffer" if buffer else "None"
    return IntegratorBuilder(
        ParameterList.from_dict(
            {
                "Integrator Settings": {"Final Time": final_time},
                "Stepper Settings": {"Stepper Selection": {"Stepper Type": "Backward Euler"}},
                "Integration Control Strategy Selection": {
                    "Integration Control Strategy Type": "Simple Integration Control Strategy",
                    "Simple Integration Control Strategy": {
                        "Take Variable Steps": False,
                        "Fixed dt": dt,
                    },
                },
                "Interpolation Buffer Settings": {
                    "Trailing Interpolation Buffer Selection": {
                        "Interpolation Buffer Type": buffer_type
                    }
                },
            }
        )
    )


@pytest.fixture
def tight_solver():
    return TimeStepNonlinearSolver({"Default Tol": 1.0e-10, "Default Max Iters": 20})


@pytest.fixture
def out():
    return io.StringIO()


# ============================================================================
# Test Class 1: Linear Model
# ============================================================================


class TestLinearModel:
    """The discrete adjoint of a linear model is exact"""

    @pytest.mark.parametrize("implicit", [True, False])
    def test_sincos_two_steps(self, tight_solver, out, implicit):
        """Test that the Backward Euler adjoint of the linear model passes."""
        tester = BasicDiscreteAdjointStepperTester()
        model = SinCosModel({"Implicit model formulation": implicit})

        assert tester.test_adjoint_stepper(model, fixed_step_builder(0.5), tight_solver, out=out)
        assert "passed" in out.getvalue()

    def test_directions(self, tight_solver, out):
        """Test user-supplied perturbation and response directions."""
        tester = BasicDiscreteAdjointStepperTester({"Error Tol": 1.0e-8})
        model = SinCosModel({"Implicit model formulation": True})

        assert tester.test_adjoint_stepper(
            model, fixed_step_builder(0.1), tight_solver, dx0=[1.0, -2.0], d=[0.5, 3.0], out=out
        )

    def test_buffer_added_when_missing(self, tight_solver, out):
        """Test that the tester adds a trailing buffer when missing."""
        model = SinCosModel({"Implicit model formulation": True})
        builder = fixed_step_builder(0.25, buffer=False)

        assert basic_discrete_adjoint_stepper_tester().test_adjoint_stepper(
            model, builder, tight_solver, out=out
        )

    def test_report(self, tight_solver, out):
        """Test the report written to the output stream."""
        BasicDiscreteAdjointStepperTester().test_adjoint_stepper(
            SinCosModel(), fixed_step_builder(0.5), tight_solver, out=out
        )
        report = out.getvalue()
        assert "Forward solve over TimeRange(0.0, 1.0)" in report
        assert "Central difference dx(t_final)" in report
        assert "Comparing <lambda(t0), dx0>" in report


# ============================================================================
# Test Class 2: Nonlinear Model
# ============================================================================


class TestNonlinearModel:
    """The identity holds up to the time discretization error"""

    def test_vanderpol_small_steps(self, tight_solver, out):
        """Test the nonlinear model with small steps and a loose tolerance."""
        tester = BasicDiscreteAdjointStepperTester({"Error Tol": 1.0e-2})
        model = VanderPolModel({"Implicit model formulation": True, "Coeff epsilon": 10.0})

        assert tester.test_adjoint_stepper(model, fixed_step_builder(0.01), tight_solver, out=out)

    def test_vanderpol_tight_tolerance_fails(self, tight_solver, out):
        """Test that the first-order Jacobian lag is caught at a tight tolerance."""
        tester = BasicDiscreteAdjointStepperTester({"Error Tol": 1.0e-10})
        model = VanderPolModel({"Implicit model formulation": True})

        assert not tester.test_adjoint_stepper(
            model, fixed_step_builder(0.05), tight_solver, out=out
        )
        assert "failed!" in out.getvalue()


# ============================================================================
# Test Class 3: Configuration
# ============================================================================


class TestConfiguration:
    """Test parameters and argument checks"""

    def test_defaults(self):
        """Test the default settings."""
        tester = BasicDiscreteAdjointStepperTester()
        assert tester.error_tol == 1.0e-6
        assert tester.fd_step == 1.0e-6

    def test_invalid_fd_step(self):
        """Test that a non-positive finite difference step is rejected."""
        with pytest.raises(ValueError, match="Finite Difference Step"):
            BasicDiscreteAdjointStepperTester({"Finite Difference Step": 0.0})

    def test_direction_size_checked(self, out):
        """Test that direction sizes are checked."""
        with pytest.raises(ValueError, match="size 2"):
            BasicDiscreteAdjointStepperTester().test_adjoint_stepper(
                SinCosModel(), fixed_step_builder(0.5), dx0=np.ones(3), out=out
            )
