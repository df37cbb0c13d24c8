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

"""Element-wise vector type and its math functions."""

from .et_vector import (
    Vector,
    VectorSizeError,
    abs,
    acos,
    acosh,
    asin,
    asinh,
    atan,
    atan2,
    atanh,
    cbrt,
    cos,
    cosh,
    exp,
    fabs,
    log,
    log10,
    max,
    min,
    pow,
    sin,
    sinh,
    sqrt,
    tan,
    tanh,
)

UNARY_FUNCTIONS = {
    "exp": exp,
    "log": log,
    "log10": log10,
    "sqrt": sqrt,
    "cbrt": cbrt,
    "sin": sin,
    "cos": cos,
    "tan": tan,
    "sinh": sinh,
    "cosh": cosh,
    "tanh": tanh,
    "asin": asin,
    "acos": acos,
    "atan": atan,
    "asinh": asinh,
    "acosh": acosh,
    "atanh": atanh,
    "abs": abs,
    "fabs": fabs,
}

BINARY_FUNCTIONS = {"atan2": atan2, "pow": pow, "max": max, "min": min}

__all__ = ["Vector", "VectorSizeError", "UNARY_FUNCTIONS", "BINARY_FUNCTIONS"] + list(
    UNARY_FUNCTIONS
) + list(BINARY_FUNCTIONS)
