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
Adjoint Model Evaluator

Wraps a state model f(x_dot, x, t) = 0 and evaluates its linear adjoint in
reversed time tau = t_final - t:

    f_bar(lambda_dot, lambda, tau) = (df/dx_dot)^T lambda_dot + (df/dx)^T lambda
    W_bar = alpha (df/dx_dot)^T + beta (df/dx)^T

The state Jacobians are evaluated at the forward solution x(t), x_dot(t),
read back from the forward state solution (an integrator or interpolation
buffer exposing get_points). The adjoint model is always implicit.
"""

from typing import Optional, Sequence

import numpy as np

from adjointsym.models.model_evaluator import InArgs, ModelEvaluatorBase
from adjointsym.parameters import ParameterList
from adjointsym.types.solvers import ModelOutputs


class AdjointModelEvaluator(ModelEvaluatorBase):
    """
    Linear implicit adjoint of a state model over a forward time range.

    Parameters
    ----------
    state_model : ModelEvaluatorBase
        Forward model (explicit or implicit formulation)
    fwd_time_range : TimeRange
        Time range [t0, t_final] of the forward solution; the adjoint runs
        over tau in [0, t_final - t0]

    Examples
    --------
    >>> adj_model = AdjointModelEvaluator(state_model, fwd_integrator.get_fwd_time_range())
    >>> adj_model.set_fwd_state_solution_buffer(fwd_integrator)
    >>> adj_model.get_nominal_values().x
    array([0., 0.])
    """

    def __init__(self, state_model: ModelEvaluatorBase, fwd_time_range):
        super().__init__()
        if not fwd_time_range.is_valid():
            raise ValueError(f"Forward time range {fwd_time_range} is not valid")
        self._state_model = state_model
        self._fwd_time_range = fwd_time_range
        self._fwd_solution = None
        self._state_p = state_model.get_nominal_values().p

    def get_valid_parameters(self) -> ParameterList:
        return ParameterList("AdjointModelEvaluator")

    def set_fwd_state_solution_buffer(self, fwd_solution):
        """
        Set the source of the forward solution.

        Parameters
        ----------
        fwd_solution
            Any object with ``get_points(times) -> (x_list, x_dot_list)``
            covering the forward time range (DefaultIntegrator or
            InterpolationBuffer)
        """
        if not hasattr(fwd_solution, "get_points"):
            raise TypeError(
                f"{fwd_solution.__class__.__name__} does not provide get_points(times)"
            )
        self._fwd_solution = fwd_solution

    def get_state_model(self) -> ModelEvaluatorBase:
        return self._state_model

    def get_fwd_time_range(self):
        return self._fwd_time_range

    @property
    def nx(self) -> int:
        return self._state_model.nx

    @property
    def is_implicit(self) -> bool:
        return True

    def get_nominal_values(self) -> InArgs:
        nx = self.nx
        return InArgs(t=0.0, x=np.zeros(nx), x_dot=np.zeros(nx))

    def forward_time(self, tau: float) -> float:
        """Forward time t = t_final - tau."""
        return self._fwd_time_range.upper() - tau

    def _state_jacobians_at(self, tau: float):
        if self._fwd_solution is None:
            raise RuntimeError(
                "AdjointModelEvaluator: set_fwd_state_solution_buffer() must be "
                "called before evaluation"
            )
        t = self.forward_time(tau)
        x_list, x_dot_list = self._fwd_solution.get_points([t])
        return self._state_model.state_jacobians(x_dot_list[0], x_list[0], t, self._state_p)

    def evaluate(self, in_args: InArgs, outputs: Sequence[str] = ("f",)) -> ModelOutputs:
        unknown = set(outputs) - {"f", "W"}
        if unknown:
            raise ValueError(f"Unknown adjoint model outputs requested: {sorted(unknown)}")

        dfdxdot, dfdx = self._state_jacobians_at(in_args.t)
        result: ModelOutputs = {}
        if "f" in outputs:
            self._stats["f_evals"] += 1
            lam = in_args.x
            lam_dot = np.zeros(self.nx) if in_args.x_dot is None else in_args.x_dot
            result["f"] = dfdxdot.T @ lam_dot + dfdx.T @ lam
        if "W" in outputs:
            self._stats["W_evals"] += 1
            result["W"] = in_args.alpha * dfdxdot.T + in_args.beta * dfdx.T
        return result

    def __repr__(self) -> str:
        return (
            f"AdjointModelEvaluator(state_model={self._state_model.__class__.__name__}, "
            f"fwd_time_range={self._fwd_time_range})"
        )


def adjoint_model_evaluator(
    state_model: ModelEvaluatorBase, fwd_time_range, fwd_solution: Optional[object] = None
) -> AdjointModelEvaluator:
    """Nonmember constructor."""
    model = AdjointModelEvaluator(state_model, fwd_time_range)
    if fwd_solution is not None:
        model.set_fwd_state_solution_buffer(fwd_solution)
    return model
