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
Element-Wise Vector

A resizable vector of float coefficients whose arithmetic is evaluated
element by element. A vector of size 1 (or a Python/NumPy scalar) acts as
a constant against a vector of any size:

    [1, 2, 3] + [10]     -> [11, 12, 13]
    [1, 2, 3] + [1, 2]   -> VectorSizeError

Arithmetic goes through NumPy ufuncs (``__array_ufunc__``), so operators,
the module-level math functions and NumPy calls such as ``np.exp(v)`` all
share one broadcasting rule and all return ``Vector`` objects.

Compound assignment on a constant left operand resizes it:

    >>> u = Vector.constant(3.1)
    >>> u += Vector([0.0, 1.0, 2.0])
    >>> u.size
    3

An empty left operand is treated as the constant 0. Comparisons return
0/1 vectors; as with NumPy arrays, only a size-1 result has a truth value.
"""

import numbers
from typing import Optional, Sequence, Union

import numpy as np
from numpy.lib.mixins import NDArrayOperatorsMixin

from adjointsym.types.core import ArrayLike, ScalarLike


class VectorSizeError(ValueError):
    """Raised when two non-constant vectors of different sizes are combined"""

    pass


class Vector(NDArrayOperatorsMixin):
    """
    Resizable element-wise vector.

    Parameters
    ----------
    values : int, sequence, np.ndarray or Vector, optional
        Size (filled with ``value``), coefficients, or a vector to copy.
        Omitted: empty vector.
    value : float
        Fill value when ``values`` is a size

    Examples
    --------
    >>> x = Vector([0.0, 0.1, 0.2])
    >>> y = 2.0 * x + Vector.constant(1.0)
    >>> str(y)
    '[ 1 1.2 1.4 ]'
    >>> np.exp(x)[0]
    1.0
    """

    def __init__(
        self, values: Optional[Union[int, ArrayLike, "Vector"]] = None, value: ScalarLike = 0.0
    ):
        if values is None:
            coeffs = np.zeros(0)
        elif isinstance(values, Vector):
            coeffs = values._coeffs.copy()
        elif isinstance(values, numbers.Integral) and not isinstance(values, bool):
            if values < 0:
                raise ValueError(f"Vector size must be non-negative, got {values}")
            coeffs = np.full(int(values), float(value))
        elif isinstance(values, numbers.Real):
            raise TypeError(
                f"Vector({values!r}) is ambiguous; use Vector.constant({values!r}) "
                "for a constant or Vector(n, value) for n copies"
            )
        else:
            coeffs = np.array(values, dtype=float).reshape(-1)
        self._coeffs = coeffs

    @classmethod
    def constant(cls, value: ScalarLike) -> "Vector":
        """Size-1 vector holding ``value``."""
        return cls(1, value)

    # ========================================================================
    # Size and Access
    # ========================================================================

    @property
    def size(self) -> int:
        return self._coeffs.size

    @property
    def coeffs(self) -> np.ndarray:
        """Coefficients as a NumPy view (writes go through)."""
        return self._coeffs

    def is_constant(self) -> bool:
        return self._coeffs.size == 1

    def reset(self, n: int):
        """Resize to ``n`` zeros."""
        self._coeffs = np.zeros(int(n))

    def resize(self, n: int):
        """Resize to ``n``, keeping the leading coefficients and padding with zeros."""
        n = int(n)
        coeffs = np.zeros(n)
        keep = n if n < self._coeffs.size else self._coeffs.size
        coeffs[:keep] = self._coeffs[:keep]
        self._coeffs = coeffs

    def coeff(self, i: int) -> float:
        return float(self._coeffs[i])

    def copy(self) -> "Vector":
        return Vector(self)

    def __len__(self) -> int:
        return self._coeffs.size

    def __bool__(self) -> bool:
        if self._coeffs.size != 1:
            raise ValueError(
                f"The truth value of a Vector of size {self._coeffs.size} is ambiguous; "
                "only size-1 vectors convert to bool"
            )
        return bool(self._coeffs[0])

    def __getitem__(self, i):
        if isinstance(i, slice):
            return Vector(self._coeffs[i])
        return float(self._coeffs[i])

    def __setitem__(self, i, value):
        self._coeffs[i] = value

    def __iter__(self):
        return iter(self._coeffs.tolist())

    # ========================================================================
    # NumPy Protocol
    # ========================================================================

    def __array__(self, dtype=None, copy=None):
        if copy:
            return np.array(self._coeffs, dtype=dtype)
        return np.asarray(self._coeffs, dtype=dtype)

    def __array_ufunc__(self, ufunc, method, *inputs, out=None, **kwargs):
        if method != "__call__":
            return NotImplemented

        # an empty target of a compound assignment acts as a zero constant
        empty_target = (
            out is not None and len(inputs) > 1 and isinstance(out[0], Vector) and out[0].size == 0
        )

        arrays = []
        for value in inputs:
            if empty_target and value is out[0]:
                arrays.append(np.zeros(1))
            elif isinstance(value, Vector):
                arrays.append(value._coeffs)
            elif isinstance(value, (numbers.Number, np.generic)):
                arrays.append(np.array([value], dtype=float))
            elif isinstance(value, np.ndarray) and value.ndim <= 1:
                arrays.append(value.astype(float).reshape(-1))
            else:
                return NotImplemented

        n = _broadcast_size([a.size for a in arrays], ufunc.__name__)
        arrays = [np.full(n, a[0]) if a.size == 1 and n != 1 else a for a in arrays]
        result = ufunc(*arrays, **kwargs)

        if out is not None:
            if len(out) != 1 or not isinstance(out[0], Vector):
                return NotImplemented
            target = out[0]
            if target.size != n and not (target.is_constant() or target.size == 0):
                raise VectorSizeError(
                    f"Cannot store a result of size {n} in a vector of size {target.size}"
                )
            target._coeffs = np.asarray(result, dtype=float)
            return target

        if isinstance(result, tuple):
            return tuple(Vector(r) for r in result)
        return Vector(result)

    # ========================================================================
    # String Representations
    # ========================================================================

    def __str__(self) -> str:
        return "[ " + "".join(f"{c:g} " for c in self._coeffs) + "]"

    def __repr__(self) -> str:
        return f"Vector({self._coeffs.tolist()})"


def _broadcast_size(sizes: Sequence[int], op_name: str) -> int:
    """Common size of the operands (size-1 operands are constants)."""
    sized = {s for s in sizes if s != 1}
    if len(sized) > 1:
        raise VectorSizeError(
            f"{op_name}: incompatible vector sizes {list(sizes)} "
            "(only size-1 vectors broadcast)"
        )
    return sized.pop() if sized else 1


# ============================================================================
# Math Functions
# ============================================================================


def _unary(ufunc, name: str, doc: str):
    def func(x):
        return ufunc(x)

    func.__name__ = name
    func.__doc__ = doc
    return func


def _binary(ufunc, name: str, doc: str):
    def func(x, y):
        return ufunc(x, y)

    func.__name__ = name
    func.__doc__ = doc
    return func


exp = _unary(np.exp, "exp", "Element-wise exponential.")
log = _unary(np.log, "log", "Element-wise natural logarithm.")
log10 = _unary(np.log10, "log10", "Element-wise base-10 logarithm.")
sqrt = _unary(np.sqrt, "sqrt", "Element-wise square root.")
cbrt = _unary(np.cbrt, "cbrt", "Element-wise cube root.")
sin = _unary(np.sin, "sin", "Element-wise sine.")
cos = _unary(np.cos, "cos", "Element-wise cosine.")
tan = _unary(np.tan, "tan", "Element-wise tangent.")
sinh = _unary(np.sinh, "sinh", "Element-wise hyperbolic sine.")
cosh = _unary(np.cosh, "cosh", "Element-wise hyperbolic cosine.")
tanh = _unary(np.tanh, "tanh", "Element-wise hyperbolic tangent.")
asin = _unary(np.arcsin, "asin", "Element-wise inverse sine.")
acos = _unary(np.arccos, "acos", "Element-wise inverse cosine.")
atan = _unary(np.arctan, "atan", "Element-wise inverse tangent.")
asinh = _unary(np.arcsinh, "asinh", "Element-wise inverse hyperbolic sine.")
acosh = _unary(np.arccosh, "acosh", "Element-wise inverse hyperbolic cosine.")
atanh = _unary(np.arctanh, "atanh", "Element-wise inverse hyperbolic tangent.")
abs = _unary(np.absolute, "abs", "Element-wise absolute value.")
fabs = _unary(np.fabs, "fabs", "Element-wise absolute value (floating point).")

atan2 = _binary(np.arctan2, "atan2", "Element-wise atan2(x, y).")
pow = _binary(np.power, "pow", "Element-wise x**y.")
max = _binary(np.maximum, "max", "Element-wise maximum.")
min = _binary(np.minimum, "min", "Element-wise minimum.")
