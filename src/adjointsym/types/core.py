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
Core Types - Basic Building Blocks

Array, scalar, vector and matrix aliases shared by models, steppers,
solvers and the element-wise vector type.

All numerical work in AdjointSym is done with NumPy arrays. The aliases
below carry the *role* of an array (state, state derivative, adjoint,
Jacobian) so signatures read the way the mathematics does:

    f(x_dot, x, t, p) = 0                   (implicit formulation)
    x_dot = g(x, t, p)                      (explicit formulation)
    W = alpha * df/dx_dot + beta * df/dx    (iteration matrix)
"""

from typing import Callable, Sequence, Tuple, Union

import numpy as np

# ============================================================================
# Basic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, Sequence[float]]
"""
Anything NumPy can turn into a 1-D float array.

Examples
--------
>>> x: ArrayLike = [1.0, 0.0]
>>> x: ArrayLike = np.array([1.0, 0.0])
"""

NumpyArray = np.ndarray
"""Pure NumPy array."""

ScalarLike = Union[float, int, np.number]
"""
Scalar value (time, step size, tolerance, coefficient).

Examples
--------
>>> dt: ScalarLike = 0.5
"""

IntegerLike = Union[int, np.integer]
"""Integer value (dimensions, indices, iteration counts)."""


# ============================================================================
# Vector Types - Semantic Naming by Role
# ============================================================================

StateVector = np.ndarray
"""
State vector x, shape (nx,).

Examples
--------
>>> x: StateVector = np.array([2.0, 0.0])   # Van der Pol initial state
"""

StateDerivativeVector = np.ndarray
"""State time derivative x_dot, shape (nx,)."""

AdjointVector = np.ndarray
"""
Adjoint (co-state) vector lambda, shape (nx,).

Lives in the residual space of the state model; it is integrated in the
reversed time coordinate tau = t_final - t.
"""

ParameterVector = np.ndarray
"""Model parameter vector p, shape (np,). Empty when the model accepts none."""

ResidualVector = np.ndarray
"""Model residual f, shape (nx,)."""


# ============================================================================
# Matrix Types
# ============================================================================

JacobianMatrix = np.ndarray
"""
Jacobian of the residual, shape (nx, nx) or (nx, np).

Examples
--------
>>> W: JacobianMatrix = alpha * dfdxdot + beta * dfdx
"""

# ============================================================================
# Function Types
# ============================================================================

ResidualFunction = Callable[[np.ndarray], np.ndarray]
"""R(x) -> residual, used by the time-step solvers."""

JacobianFunction = Callable[[np.ndarray], np.ndarray]
"""J(x) -> dR/dx, used by the time-step solvers."""

PointsTuple = Tuple[list, list]
"""(x_list, x_dot_list) returned by get_points/get_fwd_points."""
