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
Tolerant Equality Checks

Element-wise comparison with a combined absolute/relative tolerance,

    |a1[i] - a2[i]| <= abs_tol + rel_tol * max(|a1[i]|, |a2[i]|)

reporting every failing index to a text stream. Used as the oracle in the
vector arithmetic tests and by the discrete adjoint tester.
"""

import sys
from typing import Optional, TextIO

import numpy as np

from adjointsym.types.core import ArrayLike, ScalarLike


def compare_vecs(
    a1: ArrayLike,
    a1_name: str,
    a2: ArrayLike,
    a2_name: str,
    rel_tol: float,
    abs_tol: float,
    out: Optional[TextIO] = None,
) -> bool:
    """
    Compare two vectors coefficient by coefficient.

    Parameters
    ----------
    a1, a2 : Vector, np.ndarray or sequence
        Vectors to compare
    a1_name, a2_name : str
        Names used in the report
    rel_tol, abs_tol : float
        Relative and absolute tolerances (both zero: exact equality)
    out : Optional[TextIO]
        Report stream (default: sys.stdout)

    Returns
    -------
    bool
        True when the sizes match and every coefficient is within tolerance

    Notes
    -----
    A size mismatch is reported and returns False without comparing any
    coefficient. Otherwise all indices are scanned; every failure is
    reported, followed by both vectors in full. Equal coefficients pass,
    including equal infinities and a NaN pair. A NaN or infinity against
    any other value fails.

    Examples
    --------
    >>> compare_vecs([0.1, 0.2], "a", [0.1, 0.2], "b", 1e-4, 1e-5)
    Comparing a == b ... passed
    True
    """
    out = sys.stdout if out is None else out
    out.write(f"Comparing {a1_name} == {a2_name} ... ")

    n1, n2 = len(a1), len(a2)
    if n1 != n2:
        out.write(
            f"\nError, {a1_name}.size() = {n1} == {a2_name}.size() = {n2} : failed!\n"
        )
        return False

    success = True
    for i in range(n1):
        v1, v2 = float(a1[i]), float(a2[i])
        err = abs(v1 - v2)
        tol = abs_tol + rel_tol * max(abs(v1), abs(v2))
        if not _coeffs_match(v1, v2, err, tol):
            out.write(
                f"\nError, relErr({a1_name}[{i}],{a2_name}[{i}]) = "
                f"relErr({v1:g},{v2:g}) = {err:g} <= tol = {tol:g}: failed!\n"
            )
            success = False

    if success:
        out.write("passed\n")
    else:
        out.write(f"\n{a1_name} = {_format_vector(a1)}\n{a2_name} = {_format_vector(a2)}\n")
    return success


def compare_floats(
    a1: ScalarLike,
    a1_name: str,
    a2: ScalarLike,
    a2_name: str,
    rel_tol: float,
    abs_tol: float,
    out: Optional[TextIO] = None,
) -> bool:
    """Scalar version of compare_vecs."""
    out = sys.stdout if out is None else out
    v1, v2 = float(a1), float(a2)
    err = abs(v1 - v2)
    tol = abs_tol + rel_tol * max(abs(v1), abs(v2))
    out.write(f"Comparing {a1_name} = {v1:.16g} == {a2_name} = {v2:.16g} ... ")
    if not _coeffs_match(v1, v2, err, tol):
        out.write(f"\nError, relErr = {err:g} <= tol = {tol:g}: failed!\n")
        return False
    out.write("passed\n")
    return True


def _format_vector(a: ArrayLike) -> str:
    return "[ " + "".join(f"{float(c):g} " for c in a) + "]"


def _coeffs_match(v1: float, v2: float, err: float, tol: float) -> bool:
    if v1 == v2 or (np.isnan(v1) and np.isnan(v2)):
        return True
    # inf - (-inf) is inf and would pass against an infinite tol
    return bool(np.isfinite(err)) and err <= tol
