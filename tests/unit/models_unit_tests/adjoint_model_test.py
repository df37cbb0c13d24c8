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
Unit tests for AdjointModelEvaluator

Tests cover:
1. Residual and W against the transposed state Jacobians
2. Explicit and implicit state formulations
3. Reversed time lookup of the forward solution
4. Error handling and nominal values
"""

import numpy as np
import pytest

from adjointsym.models import (
    AdjointModelEvaluator,
    InArgs,
    ModelEvaluatorBase,
    SinCosModel,
    VanderPolModel,
    adjoint_model_evaluator,
)
from adjointsym.numerical_integration import InterpolationBuffer, time_range

# ============================================================================
# Helpers
# ============================================================================


class ConstantSolution:
    """Forward solution frozen at one state, recording requested times."""

    def __init__(self, x, x_dot):
        self.x = np.asarray(x, dtype=float)
        self.x_dot = np.asarray(x_dot, dtype=float)
        self.requested = []

    def get_points(self, times):
        self.requested.extend(times)
        return [self.x.copy() for _ in times], [self.x_dot.copy() for _ in times]


class GenericModel(ModelEvaluatorBase):
    """Wraps a symbolic model behind the bare numeric interface."""

    def __init__(self, inner):
        super().__init__()
        self.inner = inner

    @property
    def nx(self):
        return self.inner.nx

    @property
    def is_implicit(self):
        return self.inner.is_implicit

    def get_nominal_values(self):
        return self.inner.get_nominal_values()

    def evaluate(self, in_args, outputs=("f",)):
        return self.inner.evaluate(in_args, outputs)


def vanderpol_dgdx(x, epsilon=0.1):
    return np.array(
        [[0.0, 1.0], [(-2.0 * x[0] * x[1] - 1.0) / epsilon, (1.0 - x[0] ** 2) / epsilon]]
    )


X_FWD = np.array([1.5, -0.5])
LAMBDA = np.array([0.3, -1.2])
LAMBDA_DOT = np.array([2.0, 0.7])


@pytest.fixture(params=[False, True], ids=["explicit", "implicit"])
def adjoint(request):
    state_model = VanderPolModel({"Implicit model formulation": request.param})
    model = AdjointModelEvaluator(state_model, time_range(0.0, 2.0))
    model.set_fwd_state_solution_buffer(ConstantSolution(X_FWD, np.zeros(2)))
    return model


# ============================================================================
# Test Class 1: Evaluation
# ============================================================================


class TestEvaluation:
    """Test f_bar and W_bar"""

    def test_residual(self, adjoint):
        """Test f_bar = (df/dx_dot)^T lambda_dot + (df/dx)^T lambda."""
        in_args = InArgs(t=0.5, x=LAMBDA, x_dot=LAMBDA_DOT)
        f_bar = adjoint.evaluate(in_args)["f"]

        # df/dx_dot = I and df/dx = -dg/dx for both formulations
        expected = LAMBDA_DOT - vanderpol_dgdx(X_FWD).T @ LAMBDA
        np.testing.assert_allclose(f_bar, expected)

    @pytest.mark.parametrize("alpha,beta", [(1.0, 0.0), (0.0, 1.0), (4.0, 1.0)])
    def test_w(self, adjoint, alpha, beta):
        """Test W_bar = alpha (df/dx_dot)^T + beta (df/dx)^T."""
        in_args = InArgs(t=0.5, x=LAMBDA, x_dot=LAMBDA_DOT).set_alpha_beta(alpha, beta)
        W_bar = adjoint.evaluate(in_args, outputs=("W",))["W"]

        expected = alpha * np.eye(2) - beta * vanderpol_dgdx(X_FWD).T
        np.testing.assert_allclose(W_bar, expected)

    def test_residual_linear_in_lambda(self, adjoint):
        """Test that f_bar is linear with Jacobian W_bar."""
        def f_bar(lam, lam_dot):
            return adjoint.evaluate(InArgs(t=0.0, x=lam, x_dot=lam_dot))["f"]

        W = adjoint.evaluate(
            InArgs(t=0.0, x=LAMBDA).set_alpha_beta(1.0, 1.0), outputs=("W",)
        )["W"]
        np.testing.assert_allclose(f_bar(LAMBDA, LAMBDA), W @ LAMBDA)
        np.testing.assert_allclose(f_bar(2 * LAMBDA, 2 * LAMBDA), 2 * f_bar(LAMBDA, LAMBDA))

    def test_missing_lambda_dot_treated_as_zero(self, adjoint):
        """Test that an absent lambda_dot counts as zero."""
        f_bar = adjoint.evaluate(InArgs(t=0.0, x=LAMBDA))["f"]
        np.testing.assert_allclose(f_bar, -vanderpol_dgdx(X_FWD).T @ LAMBDA)

    def test_both_outputs(self, adjoint):
        """Test evaluating f and W together and counting evaluations."""
        out = adjoint.evaluate(InArgs(t=0.0, x=LAMBDA, x_dot=LAMBDA_DOT), outputs=("f", "W"))
        assert set(out) == {"f", "W"}
        assert adjoint.get_stats()["f_evals"] == 1
        assert adjoint.get_stats()["W_evals"] == 1

    def test_unknown_output(self, adjoint):
        """Test that DfDp is not available from the adjoint."""
        with pytest.raises(ValueError, match="DfDp"):
            adjoint.evaluate(InArgs(t=0.0, x=LAMBDA), outputs=("DfDp",))


# ============================================================================
# Test Class 2: Forward Solution Lookup
# ============================================================================


class TestForwardLookup:
    """Test reversed time and the forward solution source"""

    def test_reversed_time(self):
        """Test the mapping tau -> t_final - tau."""
        solution = ConstantSolution(X_FWD, np.zeros(2))
        model = adjoint_model_evaluator(VanderPolModel(), time_range(1.0, 3.0), solution)

        assert model.forward_time(0.5) == 2.5
        model.evaluate(InArgs(t=0.5, x=LAMBDA))
        model.evaluate(InArgs(t=2.0, x=LAMBDA))
        assert solution.requested == [2.5, 1.0]

    def test_buffer_as_solution(self):
        """Test reading the forward state from an interpolation buffer."""
        state_model = SinCosModel()
        buffer = InterpolationBuffer()
        buffer.add_points([0.0, 1.0], [np.zeros(2), np.ones(2)], [np.zeros(2), np.zeros(2)])
        model = adjoint_model_evaluator(state_model, time_range(0.0, 1.0), buffer)

        # Linear model: the Jacobians do not depend on the state
        f_bar = model.evaluate(InArgs(t=0.25, x=LAMBDA, x_dot=LAMBDA_DOT))["f"]
        A = np.array([[0.0, 1.0], [-1.0, 0.0]])
        np.testing.assert_allclose(f_bar, LAMBDA_DOT - A.T @ LAMBDA)

    def test_missing_solution(self):
        """Test evaluation before a forward solution is attached."""
        model = AdjointModelEvaluator(VanderPolModel(), time_range(0.0, 1.0))
        with pytest.raises(RuntimeError, match="set_fwd_state_solution_buffer"):
            model.evaluate(InArgs(t=0.0, x=LAMBDA))

    def test_solution_needs_get_points(self):
        """Test that the forward solution must provide get_points."""
        model = AdjointModelEvaluator(VanderPolModel(), time_range(0.0, 1.0))
        with pytest.raises(TypeError, match="get_points"):
            model.set_fwd_state_solution_buffer(object())

    def test_invalid_time_range(self):
        """Test that a reversed forward range is rejected."""
        with pytest.raises(ValueError, match="not valid"):
            AdjointModelEvaluator(VanderPolModel(), time_range(1.0, 0.0))


# ============================================================================
# Test Class 3: Model Interface
# ============================================================================


class TestInterface:
    """Test the ModelEvaluatorBase surface of the adjoint"""

    def test_nominal_values(self):
        """Test zero lambda and lambda_dot at tau = 0."""
        model = AdjointModelEvaluator(VanderPolModel(), time_range(0.0, 1.0))
        ic = model.get_nominal_values()

        assert ic.t == 0.0
        np.testing.assert_array_equal(ic.x, [0.0, 0.0])
        np.testing.assert_array_equal(ic.x_dot, [0.0, 0.0])
        assert model.is_implicit
        assert model.nx == 2
        assert model.get_f_space_dim() == 2

    def test_accessors(self):
        """Test the state model and forward range accessors."""
        state_model = VanderPolModel()
        fwd_range = time_range(0.0, 1.0)
        model = AdjointModelEvaluator(state_model, fwd_range)
        assert model.get_state_model() is state_model
        assert model.get_fwd_time_range() == fwd_range

    @pytest.mark.parametrize("implicit", [False, True])
    def test_generic_state_jacobians_match_generated(self, implicit):
        """Test the generic state_jacobians against the generated Jacobians."""
        inner = VanderPolModel({"Implicit model formulation": implicit})
        x_dot = np.array([0.1, 0.2])

        generic = GenericModel(inner).state_jacobians(x_dot, X_FWD, 0.0)
        generated = inner.state_jacobians(x_dot, X_FWD, 0.0)
        np.testing.assert_allclose(generic[0], generated[0])
        np.testing.assert_allclose(generic[1], generated[1])
