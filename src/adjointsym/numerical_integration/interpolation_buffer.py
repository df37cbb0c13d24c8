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
Interpolation Buffer - Stored Solution History

Keeps the accepted (t, x, x_dot) points of a solve and interpolates
between them. An integrator appends every accepted step to its trailing
buffer; the adjoint model reads the forward state back out of it at
t = t_final - tau.

Interpolators:
- LinearInterpolator: piecewise linear in x and x_dot (order 1)
- HermiteInterpolator: cubic Hermite in x using the node derivatives,
  x_dot from the derivative of the cubic (order 3)
"""

import bisect
import warnings
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from adjointsym.numerical_integration.time_range import (
    TimeRange,
    invalid_time_range,
    time_tolerance,
)
from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.core import PointsTuple
from adjointsym.types.trajectories import TimePoints


class InterpolationError(ValueError):
    """Raised when points are requested outside the stored time range"""

    pass


# ============================================================================
# Interpolators
# ============================================================================


class InterpolatorBase(ABC):
    """Interpolates (x, x_dot) at t between two bracketing nodes."""

    @abstractmethod
    def interpolate(
        self,
        t0: float,
        x0: np.ndarray,
        x_dot0: np.ndarray,
        t1: float,
        x1: np.ndarray,
        x_dot1: np.ndarray,
        t: float,
    ) -> Tuple[np.ndarray, np.ndarray]:
        pass

    @property
    @abstractmethod
    def order(self) -> int:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LinearInterpolator(InterpolatorBase):
    """Piecewise-linear interpolation of x and x_dot."""

    def interpolate(self, t0, x0, x_dot0, t1, x1, x_dot1, t):
        h = t1 - t0
        if h == 0.0:
            return x0.copy(), x_dot0.copy()
        s = (t - t0) / h
        return (1.0 - s) * x0 + s * x1, (1.0 - s) * x_dot0 + s * x_dot1

    @property
    def order(self) -> int:
        return 1

    @property
    def name(self) -> str:
        return "Linear Interpolator"


class HermiteInterpolator(InterpolatorBase):
    """
    Cubic Hermite interpolation.

    With s = (t - t0)/h:

        x(t) = h00(s) x0 + h h10(s) x_dot0 + h01(s) x1 + h h11(s) x_dot1

    where h00 = 2s³ - 3s² + 1, h10 = s³ - 2s² + s, h01 = -2s³ + 3s²,
    h11 = s³ - s². The returned x_dot is the time derivative of this cubic.
    """

    def interpolate(self, t0, x0, x_dot0, t1, x1, x_dot1, t):
        h = t1 - t0
        if h == 0.0:
            return x0.copy(), x_dot0.copy()
        s = (t - t0) / h
        s2, s3 = s * s, s * s * s

        h00 = 2 * s3 - 3 * s2 + 1
        h10 = s3 - 2 * s2 + s
        h01 = -2 * s3 + 3 * s2
        h11 = s3 - s2
        x = h00 * x0 + h * h10 * x_dot0 + h01 * x1 + h * h11 * x_dot1

        dh00 = (6 * s2 - 6 * s) / h
        dh10 = 3 * s2 - 4 * s + 1
        dh01 = (-6 * s2 + 6 * s) / h
        dh11 = 3 * s2 - 2 * s
        x_dot = dh00 * x0 + dh10 * x_dot0 + dh01 * x1 + dh11 * x_dot1
        return x, x_dot

    @property
    def order(self) -> int:
        return 3

    @property
    def name(self) -> str:
        return "Hermite Interpolator"


INTERPOLATOR_TYPES = {
    "Linear Interpolator": LinearInterpolator,
    "Hermite Interpolator": HermiteInterpolator,
}


def interpolate_between(
    interpolator: InterpolatorBase,
    times: Sequence[float],
    xs: Sequence[np.ndarray],
    x_dots: Sequence[np.ndarray],
    t: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Interpolate at ``t`` over sorted nodes (t must lie in [times[0], times[-1]]).
    Exact node times return copies of the stored values.
    """
    i = bisect.bisect_left(times, t)
    if i < len(times) and times[i] == t:
        return xs[i].copy(), x_dots[i].copy()
    if i == 0 or i == len(times):
        raise InterpolationError(
            f"t = {t} is outside the node range [{times[0]}, {times[-1]}]"
        )
    return interpolator.interpolate(
        times[i - 1], xs[i - 1], x_dots[i - 1], times[i], xs[i], x_dots[i], t
    )


# ============================================================================
# Interpolation Buffer
# ============================================================================


class InterpolationBuffer(ParameterListAcceptor):
    """
    Sorted store of solution points with interpolation.

    Parameters (ParameterList):
    --------------------------
    Storage Limit : int, default=-1
        Maximum number of stored nodes (-1 for unlimited). When exceeded,
        the oldest nodes are dropped with a warning.

    Examples
    --------
    >>> buffer = InterpolationBuffer(LinearInterpolator())
    >>> buffer.add_points([0.0, 1.0], [np.zeros(2), np.ones(2)],
    ...                   [np.ones(2), np.ones(2)])
    >>> x, x_dot = buffer.get_points([0.5])
    >>> x[0]
    array([0.5, 0.5])
    """

    def __init__(
        self,
        interpolator: Optional[InterpolatorBase] = None,
        storage_limit: Optional[int] = None,
        parameter_list: Optional[ParameterList] = None,
    ):
        self._interpolator = interpolator if interpolator is not None else HermiteInterpolator()
        self._times: List[float] = []
        self._xs: List[np.ndarray] = []
        self._x_dots: List[np.ndarray] = []
        self.set_parameter_list(parameter_list)
        if storage_limit is not None:
            self.get_parameter_list().set("Storage Limit", int(storage_limit))
            self.storage_limit = int(storage_limit)

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("Interpolation Buffer")
        pl.set("Storage Limit", -1, doc="Maximum number of stored points (-1: unlimited)")
        return pl

    def _read_parameters(self, pl: ParameterList):
        self.storage_limit = pl.get("Storage Limit")

    # ========================================================================
    # Interpolator
    # ========================================================================

    def set_interpolator(self, interpolator: InterpolatorBase):
        self._interpolator = interpolator

    def get_interpolator(self) -> InterpolatorBase:
        return self._interpolator

    def get_order(self) -> int:
        return self._interpolator.order

    # ========================================================================
    # Storage
    # ========================================================================

    def add_points(
        self,
        times: TimePoints,
        xs: Sequence[np.ndarray],
        x_dots: Sequence[np.ndarray],
    ):
        """
        Insert points, keeping nodes sorted. A time already stored is
        overwritten.
        """
        if not (len(times) == len(xs) == len(x_dots)):
            raise ValueError(
                f"add_points: got {len(times)} times, {len(xs)} states, "
                f"{len(x_dots)} derivatives"
            )
        for t, x, x_dot in zip(times, xs, x_dots):
            t = float(t)
            x = np.array(x, dtype=float).reshape(-1)
            x_dot = np.array(x_dot, dtype=float).reshape(-1)
            i = bisect.bisect_left(self._times, t)
            if i < len(self._times) and self._times[i] == t:
                self._xs[i], self._x_dots[i] = x, x_dot
            else:
                self._times.insert(i, t)
                self._xs.insert(i, x)
                self._x_dots.insert(i, x_dot)

        if 0 <= self.storage_limit < len(self._times):
            n_drop = len(self._times) - self.storage_limit
            warnings.warn(
                f"Interpolation buffer storage limit {self.storage_limit} reached; "
                f"dropping {n_drop} oldest point(s)"
            )
            del self._times[:n_drop]
            del self._xs[:n_drop]
            del self._x_dots[:n_drop]

    def get_points(self, times: TimePoints) -> PointsTuple:
        """
        Interpolated (x_list, x_dot_list) at each requested time.

        Raises
        ------
        InterpolationError
            If a time lies outside the stored range (beyond rounding)
        """
        time_range = self.get_time_range()
        if not time_range.is_valid():
            raise InterpolationError("Interpolation buffer is empty")

        x_list, x_dot_list = [], []
        for t in times:
            tol = time_tolerance(t)
            if not time_range.is_in_range(t, tol):
                raise InterpolationError(
                    f"t = {t} is outside the buffer time range "
                    f"[{time_range.lower()}, {time_range.upper()}]"
                )
            t = time_range.clamp(t, tol)
            x, x_dot = interpolate_between(
                self._interpolator, self._times, self._xs, self._x_dots, t
            )
            x_list.append(x)
            x_dot_list.append(x_dot)
        return x_list, x_dot_list

    def get_time_range(self) -> TimeRange:
        if not self._times:
            return invalid_time_range()
        return TimeRange(self._times[0], self._times[-1])

    def get_nodes(self) -> List[float]:
        return list(self._times)

    def remove_nodes(self, times: TimePoints):
        """Remove stored nodes at exactly the given times."""
        for t in times:
            i = bisect.bisect_left(self._times, float(t))
            if i == len(self._times) or self._times[i] != float(t):
                raise InterpolationError(f"No node at t = {t} to remove")
            del self._times[i]
            del self._xs[i]
            del self._x_dots[i]

    def get_trajectory(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Stored nodes as arrays (t (T,), x (T, nx), x_dot (T, nx))."""
        if not self._times:
            return np.zeros(0), np.zeros((0, 0)), np.zeros((0, 0))
        return np.array(self._times), np.stack(self._xs), np.stack(self._x_dots)

    def __len__(self) -> int:
        return len(self._times)

    def __repr__(self) -> str:
        return (
            f"InterpolationBuffer(n={len(self._times)}, range={self.get_time_range()}, "
            f"interpolator={self._interpolator.name})"
        )


def interpolation_buffer(
    interpolator: Optional[InterpolatorBase] = None, storage_limit: int = -1
) -> InterpolationBuffer:
    """Nonmember constructor."""
    return InterpolationBuffer(interpolator, storage_limit)
