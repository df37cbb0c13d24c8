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
Unit tests for the symbolic model evaluators

Tests cover:
1. InArgs construction and chaining
2. Explicit and implicit formulations of VanderPolModel
3. Iteration matrix W and DfDp against hand-derived Jacobians
4. SinCosModel exact solution
5. Definition errors and parameter validation
"""

import numpy as np
import pytest
import sympy as sp

from adjointsym.models import (
    InArgs,
    ModelDefinitionError,
    ModelEvaluator,
    SinCosModel,
    VanderPolModel,
    sincos_model,
    vanderpol_model,
)
from adjointsym.parameters import ParameterList, ParameterValidationError

# ============================================================================
# Helpers
# ============================================================================


def vdp_rhs(x, eps):
    return np.array([x[1], ((1 - x[0] ** 2) * x[1] - x[0]) / eps])


def vdp_dgdx(x, eps):
    return np.array(
        [
            [0.0, 1.0],
            [(-2.0 * x[0] * x[1] - 1.0) / eps, (1.0 - x[0] ** 2) / eps],
        ]
    )


class Decay(ModelEvaluator):
    """x' = -k x"""

    def get_valid_parameters(self):
        pl = super().get_valid_parameters()
        pl.set("Coeff k", 1.0)
        return pl

    def define_model(self, pl):
        x = sp.symbols("x", real=True)
        k = sp.symbols("k", positive=True)
        self.state_vars = [x]
        self.parameters = {k: pl.get("Coeff k")}
        self.param_vars = [k]
        self._g_sym = sp.Matrix([-k * x])
        self._x0 = [1.0]


class NoRhs(ModelEvaluator):
    def define_model(self, pl):
        self.state_vars = [sp.Symbol("x")]
        self._x0 = [0.0]


class WrongInitialState(ModelEvaluator):
    def define_model(self, pl):
        x = sp.Symbol("x")
        self.state_vars = [x]
        self._g_sym = sp.Matrix([x])
        self._x0 = [0.0, 1.0]


# ============================================================================
# Test Class 1: InArgs
# ============================================================================


class TestInArgs:
    """Test the input argument bundle"""

    def test_defaults(self):
        """Test default time, state and parameters."""
        in_args = InArgs()
        assert in_args.t == 0.0
        assert in_args.x is None
        assert in_args.p.size == 0
        assert (in_args.alpha, in_args.beta) == (0.0, 1.0)

    def test_chaining_converts_to_arrays(self):
        """Test chained setters and float conversion."""
        in_args = InArgs().set_t(2).set_x([1, 2]).set_x_dot([0, 0]).set_alpha_beta(3, 1)

        assert isinstance(in_args.t, float)
        np.testing.assert_array_equal(in_args.x, [1.0, 2.0])
        assert in_args.x.dtype == float
        assert in_args.alpha == 3.0

    def test_copy_is_independent(self):
        """Test that copy() does not share arrays."""
        in_args = InArgs(x=[1.0, 2.0])
        other = in_args.copy()
        other.x[0] = 5.0
        assert in_args.x[0] == 1.0

    def test_describe(self):
        """Test the text description skips unset fields."""
        text = InArgs(t=1.0, x=[1.0]).describe()
        assert "t = 1.0" in text
        assert "x = [1.]" in text
        assert "x_dot" not in text


# ============================================================================
# Test Class 2: Van der Pol
# ============================================================================


class TestVanderPol:
    """Test VanderPolModel in both formulations"""

    @pytest.fixture
    def explicit_model(self):
        return VanderPolModel()

    @pytest.fixture
    def implicit_model(self):
        return VanderPolModel({"Implicit model formulation": True})

    def test_dimensions(self, explicit_model):
        """Test state, residual and parameter dimensions."""
        assert explicit_model.nx == 2
        assert explicit_model.get_f_space_dim() == 2
        assert explicit_model.n_params == 0
        assert not explicit_model.is_implicit

    def test_nominal_values_consistent(self, implicit_model):
        """Test the default initial condition and its consistent x_dot."""
        ic = implicit_model.get_nominal_values()
        np.testing.assert_array_equal(ic.x, [2.0, 0.0])
        np.testing.assert_allclose(ic.x_dot, [0.0, -20.0])
        assert ic.t == 0.0

    def test_explicit_f_is_rhs(self, explicit_model):
        """Test that the explicit f is the right-hand side g."""
        x = np.array([0.5, -1.0])
        f = explicit_model.evaluate(InArgs(x=x))["f"]
        np.testing.assert_allclose(f, vdp_rhs(x, 0.1))

    def test_implicit_f_is_residual(self, implicit_model):
        """Test that the implicit f is x_dot - g."""
        x = np.array([0.5, -1.0])
        x_dot = np.array([1.0, 2.0])
        f = implicit_model.evaluate(InArgs(x=x, x_dot=x_dot))["f"]
        np.testing.assert_allclose(f, x_dot - vdp_rhs(x, 0.1))

    def test_implicit_residual_zero_at_nominal(self, implicit_model):
        """Test the zero residual at the nominal values."""
        f = implicit_model.evaluate(implicit_model.get_nominal_values())["f"]
        np.testing.assert_allclose(f, 0.0, atol=1e-12)

    @pytest.mark.parametrize("alpha,beta", [(0.0, 1.0), (1.0, 0.0), (2.0, 1.0), (10.0, 0.5)])
    def test_implicit_W(self, implicit_model, alpha, beta):
        """Test W = alpha I - beta dg/dx."""
        x = np.array([1.5, 0.3])
        in_args = InArgs(x=x, x_dot=np.zeros(2)).set_alpha_beta(alpha, beta)
        W = implicit_model.evaluate(in_args, outputs=("W",))["W"]
        expected = alpha * np.eye(2) - beta * vdp_dgdx(x, 0.1)
        np.testing.assert_allclose(W, expected)

    def test_explicit_W_is_beta_dgdx(self, explicit_model):
        """Test W = beta dg/dx for the explicit formulation."""
        x = np.array([1.5, 0.3])
        W = explicit_model.evaluate(InArgs(x=x).set_alpha_beta(5.0, 2.0), outputs=("W",))["W"]
        np.testing.assert_allclose(W, 2.0 * vdp_dgdx(x, 0.1))

    @pytest.mark.parametrize("implicit", [False, True])
    def test_state_jacobians(self, implicit):
        """Test df/dx_dot and df/dx in both formulations."""
        model = VanderPolModel({"Implicit model formulation": implicit})
        x = np.array([1.5, 0.3])
        dfdxdot, dfdx = model.state_jacobians(np.zeros(2), x, 0.0)
        np.testing.assert_allclose(dfdxdot, np.eye(2))
        np.testing.assert_allclose(dfdx, -vdp_dgdx(x, 0.1))

    def test_accept_model_parameters(self):
        """Test epsilon exposed as the parameter vector."""
        model = VanderPolModel({"Accept model parameters": True, "Coeff epsilon": 0.5})
        x = np.array([1.0, 1.0])

        assert model.n_params == 1
        np.testing.assert_allclose(model.get_parameter_values(), [0.5])

        f = model.evaluate(InArgs(x=x, p=[2.0]))["f"]
        np.testing.assert_allclose(f, vdp_rhs(x, 2.0))

        dfdp = model.evaluate(InArgs(x=x, p=[2.0]), outputs=("DfDp",))["DfDp"]
        # d/deps of ((1 - x0^2) x1 - x0)/eps = -(...)/eps^2
        np.testing.assert_allclose(dfdp, [[0.0], [1.0 / 4.0]])

    def test_coefficient_parameter(self):
        """Test the Coeff epsilon setting."""
        model = VanderPolModel({"Coeff epsilon": 1.0})
        x = np.array([0.5, -1.0])
        np.testing.assert_allclose(model.evaluate_rhs(x), vdp_rhs(x, 1.0))

    def test_unknown_output_rejected(self, explicit_model):
        """Test that unknown outputs are rejected."""
        with pytest.raises(ValueError, match="Unknown model outputs"):
            explicit_model.evaluate(explicit_model.get_nominal_values(), outputs=("J",))

    def test_wrong_state_size(self, explicit_model):
        """Test that a state of the wrong size is rejected."""
        with pytest.raises(ValueError, match="size 2"):
            explicit_model.evaluate(InArgs(x=[1.0, 2.0, 3.0]))

    def test_invalid_parameter_rejected(self):
        """Test that unknown settings are rejected."""
        with pytest.raises(ParameterValidationError):
            VanderPolModel({"Coeff mu": 1.0})

    def test_statistics(self, explicit_model):
        """Test the evaluation counters."""
        explicit_model.evaluate(explicit_model.get_nominal_values(), outputs=("f", "W"))
        stats = explicit_model.get_stats()
        assert stats["W_evals"] == 1
        assert stats["f_evals"] >= 1

        explicit_model.reset_stats()
        assert explicit_model.get_stats()["f_evals"] == 0

    def test_nonmember_constructor(self):
        """Test vanderpol_model()."""
        model = vanderpol_model(ParameterList().set("Implicit model formulation", True))
        assert model.is_implicit


# ============================================================================
# Test Class 3: SinCos
# ============================================================================


class TestSinCos:
    """Test SinCosModel"""

    def test_default_exact_solution(self):
        """Test x = (sin t, cos t) with default coefficients."""
        model = SinCosModel()
        for t in [0.0, 0.3, 1.0, 2.5]:
            x, x_dot = model.get_exact_solution(t)
            np.testing.assert_allclose(x, [np.sin(t), np.cos(t)], atol=1e-14)
            np.testing.assert_allclose(x_dot, [np.cos(t), -np.sin(t)], atol=1e-14)

    def test_exact_solution_satisfies_ode(self):
        """Test that the exact solution satisfies the ODE."""
        model = sincos_model({"Coeff a": 0.5, "Coeff f": 2.0, "Coeff L": 3.0, "IC x_0": 1.0})
        x, x_dot = model.get_exact_solution(0.7)
        np.testing.assert_allclose(model.evaluate_rhs(x), x_dot)

    def test_exact_solution_at_initial_time(self):
        """Test that the exact solution matches the initial condition."""
        model = SinCosModel({"IC x_0": 0.2, "IC x_1": -0.4, "IC t_0": 1.0})
        x, _ = model.get_exact_solution(1.0)
        np.testing.assert_allclose(x, [0.2, -0.4])

    def test_jacobian_is_constant(self):
        """Test that the linear model has a constant W."""
        model = SinCosModel({"Implicit model formulation": True, "Coeff f": 2.0})
        W1 = model.evaluate(InArgs(x=[0.0, 0.0], x_dot=[0.0, 0.0]), outputs=("W",))["W"]
        W2 = model.evaluate(InArgs(x=[5.0, -3.0], x_dot=[1.0, 1.0]), outputs=("W",))["W"]
        np.testing.assert_allclose(W1, W2)
        np.testing.assert_allclose(W1, [[0.0, -1.0], [4.0, 0.0]])

    def test_exposes_three_parameters(self):
        """Test the (a, f, L) parameter vector."""
        model = SinCosModel({"Accept model parameters": True})
        np.testing.assert_allclose(model.get_parameter_values(), [0.0, 1.0, 1.0])


# ============================================================================
# Test Class 4: Definition Errors
# ============================================================================


class TestDefinitionErrors:
    """Test validation of define_model() results"""

    def test_missing_rhs(self):
        """Test that a model without _g_sym is rejected."""
        with pytest.raises(ModelDefinitionError, match="_g_sym"):
            NoRhs()

    def test_initial_state_size(self):
        """Test that _x0 must match the state size."""
        with pytest.raises(ModelDefinitionError, match="_x0"):
            WrongInitialState()

    def test_custom_model(self):
        """Test a user-defined model."""
        model = Decay({"Implicit model formulation": True, "Coeff k": 2.0})
        f = model.evaluate(model.get_nominal_values())["f"]
        np.testing.assert_allclose(f, [0.0])
        assert "Decay" in repr(model)
