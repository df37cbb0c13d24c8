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

from typing import Tuple

import numpy as np
import sympy as sp

from adjointsym.models.model_evaluator import ModelEvaluator
from adjointsym.parameters import ParameterList
from adjointsym.types.core import ScalarLike


class SinCosModel(ModelEvaluator):
    """
    Linear oscillator with a closed-form solution.

    Dynamics:
    --------
        ẋ_0 = x_1
        ẋ_1 = (f/L)²·(a - x_0)

    With ω = f/L the exact solution is

        x_0(t) = a + (x_0(t0) - a)·cos(ω(t - t0)) + (x_1(t0)/ω)·sin(ω(t - t0))
        x_1(t) = -(x_0(t0) - a)·ω·sin(ω(t - t0)) + x_1(t0)·cos(ω(t - t0))

    so the defaults (a=0, f=1, L=1, x(0)=[0, 1]) give x = [sin t, cos t].

    The model is affine in x, which makes it the reference problem for
    checking adjoint consistency: with Backward Euler and equal fixed steps
    the adjoint solve is the exact transpose of the forward solve.

    Parameters (ParameterList):
    --------------------------
    Implicit model formulation : bool, default=False
    Accept model parameters : bool, default=False
        Expose [a, f, L] as the parameter vector p
    Coeff a : float, default=0.0
    Coeff f : float, default=1.0
    Coeff L : float, default=1.0
    IC x_0 : float, default=0.0
    IC x_1 : float, default=1.0
    IC t_0 : float, default=0.0
    """

    def get_valid_parameters(self) -> ParameterList:
        pl = super().get_valid_parameters()
        pl.set("Coeff a", 0.0)
        pl.set("Coeff f", 1.0)
        pl.set("Coeff L", 1.0)
        pl.set("IC x_0", 0.0)
        pl.set("IC x_1", 1.0)
        pl.set("IC t_0", 0.0)
        return pl

    def define_model(self, pl: ParameterList):
        x0, x1 = sp.symbols("x_0 x_1", real=True)
        a, f, L = sp.symbols("a f L", real=True)

        self.parameters = {a: pl.get("Coeff a"), f: pl.get("Coeff f"), L: pl.get("Coeff L")}
        self.param_vars = [a, f, L]
        self.state_vars = [x0, x1]

        self._g_sym = sp.Matrix([x1, (f / L) ** 2 * (a - x0)])
        self._x0 = [pl.get("IC x_0"), pl.get("IC x_1")]
        self._t0 = pl.get("IC t_0")

        self._a = pl.get("Coeff a")
        self._omega = pl.get("Coeff f") / pl.get("Coeff L")

    def get_exact_solution(self, t: ScalarLike) -> Tuple[np.ndarray, np.ndarray]:
        """
        Exact (x, x_dot) at time t for the configured coefficients.

        Examples
        --------
        >>> x, x_dot = SinCosModel().get_exact_solution(np.pi / 2)
        >>> np.round(x, 12)
        array([1., 0.])
        """
        w = self._omega
        c0 = self._x0[0] - self._a
        c1 = self._x0[1] / w
        s = w * (float(t) - self._t0)

        x = np.array(
            [
                self._a + c0 * np.cos(s) + c1 * np.sin(s),
                -c0 * w * np.sin(s) + c1 * w * np.cos(s),
            ]
        )
        x_dot = np.array([x[1], w**2 * (self._a - x[0])])
        return x, x_dot


def sincos_model(parameter_list=None) -> SinCosModel:
    """Nonmember constructor."""
    return SinCosModel(parameter_list)
