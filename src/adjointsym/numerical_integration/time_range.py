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
Time Range - Closed Time Intervals

A ``TimeRange`` is the interval [lower, upper] over which a stepper,
interpolation buffer or integrator holds a solution. The adjoint solve
runs in the reversed coordinate tau = t_final - t over
[0, fwd_range.length()].
"""

import numpy as np

from adjointsym.types.core import ScalarLike


def time_tolerance(t: ScalarLike) -> float:
    """Absolute rounding tolerance used when comparing times near ``t``."""
    return 1.0e3 * np.finfo(float).eps * max(1.0, abs(float(t)))


class TimeRange:
    """
    Closed time interval [lower, upper].

    An invalid range (lower > upper) represents "no solution yet".

    Examples
    --------
    >>> r = TimeRange(0.0, 1.0)
    >>> r.length()
    1.0
    >>> r.is_in_range(0.5)
    True
    >>> invalid_time_range().is_valid()
    False
    """

    def __init__(self, lower: ScalarLike = 0.0, upper: ScalarLike = 0.0):
        self._lower = float(lower)
        self._upper = float(upper)

    def lower(self) -> float:
        return self._lower

    def upper(self) -> float:
        return self._upper

    def length(self) -> float:
        return self._upper - self._lower

    def is_valid(self) -> bool:
        return self._lower <= self._upper

    def is_in_range(self, t: ScalarLike, tol: float = 0.0) -> bool:
        """Whether lower - tol <= t <= upper + tol."""
        if not self.is_valid():
            return False
        return self._lower - tol <= float(t) <= self._upper + tol

    def contains_range(self, other: "TimeRange", tol: float = 0.0) -> bool:
        return (
            self.is_valid()
            and other.is_valid()
            and self.is_in_range(other.lower(), tol)
            and self.is_in_range(other.upper(), tol)
        )

    def clamp(self, t: ScalarLike, tol: float) -> float:
        """
        Snap ``t`` onto the nearest end point when it lies within ``tol``
        outside the range; otherwise return it unchanged.
        """
        t = float(t)
        if self._lower - tol <= t < self._lower:
            return self._lower
        if self._upper < t <= self._upper + tol:
            return self._upper
        return t

    def __eq__(self, other) -> bool:
        if not isinstance(other, TimeRange):
            return NotImplemented
        return self._lower == other._lower and self._upper == other._upper

    def __repr__(self) -> str:
        return f"TimeRange({self._lower}, {self._upper})"


def time_range(lower: ScalarLike, upper: ScalarLike) -> TimeRange:
    """Nonmember constructor."""
    return TimeRange(lower, upper)


def invalid_time_range() -> TimeRange:
    """A range representing "no solution"."""
    return TimeRange(0.0, -1.0)
