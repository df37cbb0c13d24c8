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

import sympy as sp

from adjointsym.models.model_evaluator import ModelEvaluator
from adjointsym.parameters import ParameterList


class VanderPolModel(ModelEvaluator):
    """
    Van der Pol oscillator - stiff self-excited oscillator with limit cycle.

    State Space:
    -----------
    State: x = [x_0, x_1]
        - x_0: oscillating quantity
        - x_1: its time derivative

    Dynamics:
    --------
        ẋ_0 = x_1
        ẋ_1 = ((1 - x_0²)·x_1 - x_0) / ε

    Small ε makes the problem stiff: the slow manifold x_1 ≈ x_0/(1 - x_0²)
    attracts trajectories on a time scale of order ε, which is why the
    forward and adjoint drivers use an implicit (Backward Euler) stepper.

    Implicit formulation:
        f(ẋ, x, t) = ẋ - g(x) = 0

    Parameters (ParameterList):
    --------------------------
    Implicit model formulation : bool, default=False
    Accept model parameters : bool, default=False
        Expose ε as the parameter vector p
    Coeff epsilon : float, default=0.1
    IC x_0 : float, default=2.0
    IC x_1 : float, default=0.0
    IC t_0 : float, default=0.0

    Jacobian:
    --------
        dg/dx = [[0, 1],
                 [(-2·x_0·x_1 - 1)/ε, (1 - x_0²)/ε]]

    Examples
    --------
    >>> model = VanderPolModel({"Implicit model formulation": True})
    >>> ic = model.get_nominal_values()
    >>> ic.x
    array([2., 0.])
    >>> ic.x_dot       # consistent: g(x0) = [0, -2/ε]
    array([  0., -20.])
    """

    def get_valid_parameters(self) -> ParameterList:
        pl = super().get_valid_parameters()
        pl.set("Coeff epsilon", 1.0e-1, doc="Stiffness parameter epsilon")
        pl.set("IC x_0", 2.0)
        pl.set("IC x_1", 0.0)
        pl.set("IC t_0", 0.0)
        return pl

    def define_model(self, pl: ParameterList):
        x0, x1 = sp.symbols("x_0 x_1", real=True)
        epsilon = sp.symbols("epsilon", positive=True)

        self.parameters = {epsilon: pl.get("Coeff epsilon")}
        self.param_vars = [epsilon]
        self.state_vars = [x0, x1]

        self._g_sym = sp.Matrix([x1, ((1 - x0**2) * x1 - x0) / epsilon])
        self._x0 = [pl.get("IC x_0"), pl.get("IC x_1")]
        self._t0 = pl.get("IC t_0")


def vanderpol_model(parameter_list=None) -> VanderPolModel:
    """Nonmember constructor."""
    return VanderPolModel(parameter_list)
