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
Code Generation Utilities

Turns SymPy expressions into NumPy callables with a fixed return-shape
convention, so model residuals and Jacobians can be declared symbolically
and evaluated numerically.

Return Shape Convention:
- Vector expressions (list, column Matrix, scalar): 1-D array (n,)
- Matrix expressions (``as_matrix=True``): 2-D array (m, n)
"""

from typing import Callable, List, Union

import numpy as np
import sympy as sp


def _as_matrix(expr: Union[sp.Expr, List[sp.Expr], sp.Matrix]) -> sp.Matrix:
    if isinstance(expr, sp.MatrixBase):
        return sp.Matrix(expr)
    if isinstance(expr, (list, tuple)):
        return sp.Matrix(expr)
    return sp.Matrix([expr])


def generate_numpy_function(
    expr: Union[sp.Expr, List[sp.Expr], sp.Matrix],
    symbols: List[sp.Symbol],
    as_matrix: bool = False,
) -> Callable[..., np.ndarray]:
    """
    Generate a NumPy function from SymPy expression(s).

    Args:
        expr: SymPy expression, list, or Matrix
        symbols: Input symbols in call order
        as_matrix: Keep the 2-D shape of ``expr`` instead of flattening

    Returns:
        Function of ``len(symbols)`` scalar arguments returning a float array

    Examples:
        >>> x, y = sp.symbols('x y')
        >>> f = generate_numpy_function([x * y, x + y], [x, y])
        >>> f(2.0, 3.0)
        array([6., 5.])
    """
    matrix = _as_matrix(expr)
    shape = matrix.shape
    func = sp.lambdify(symbols, matrix, modules="numpy")

    def wrapped_func(*args):
        result = np.asarray(func(*args), dtype=float)
        if as_matrix:
            return result.reshape(shape)
        return result.reshape(-1)

    return wrapped_func


def generate_jacobian_function(
    expr: Union[sp.Expr, List[sp.Expr], sp.Matrix],
    symbols: List[sp.Symbol],
    wrt_symbols: List[sp.Symbol],
) -> Callable[..., np.ndarray]:
    """
    Generate a Jacobian function d(expr)/d(wrt_symbols).

    The Jacobian is computed symbolically and compiled; the returned
    function always yields a 2-D array (len(expr), len(wrt_symbols)).
    """
    matrix = _as_matrix(expr)
    if len(wrt_symbols) == 0:
        rows = matrix.shape[0]

        def empty_jacobian(*args):
            return np.zeros((rows, 0))

        return empty_jacobian

    jacobian = matrix.jacobian(list(wrt_symbols))
    return generate_numpy_function(jacobian, symbols, as_matrix=True)
