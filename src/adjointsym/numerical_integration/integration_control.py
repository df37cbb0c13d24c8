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
Integration Control - Step Size Policy of an Integrator

The integrator asks its control strategy for the next step size before
every step. The strategy answers with a size and whether the stepper must
take it exactly (FIXED) or may take less (VARIABLE).
"""

import sys
from typing import Optional, Tuple

from adjointsym.numerical_integration.time_range import TimeRange
from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.solvers import StepSizeType


class SimpleIntegrationControlStrategy(ParameterListAcceptor):
    """
    Fixed or bounded-variable step size policy.

    Parameters (ParameterList):
    --------------------------
    Take Variable Steps : bool, default=True
        Let the stepper choose dt (bounded by "Max dt")
    Max dt : float, default=sys.float_info.max
    Number of Time Steps : int, default=-1
        Fixed steps only: split the time range into this many equal steps
    Fixed dt : float, default=-1.0
        Fixed steps only: constant step size (takes precedence over
        "Number of Time Steps")

    Examples
    --------
    >>> control = SimpleIntegrationControlStrategy(ParameterList.from_dict(
    ...     {"Take Variable Steps": False, "Fixed dt": 0.5}))
    >>> control.reset_for_time_range(TimeRange(0.0, 1.0))
    >>> control.get_next_step_info(0.0, 1.0)
    (0.5, <StepSizeType.FIXED: 'fixed'>)
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        self._time_range: Optional[TimeRange] = None
        self.set_parameter_list(parameter_list)

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList("Simple Integration Control Strategy")
        pl.set("Take Variable Steps", True)
        pl.set("Max dt", sys.float_info.max)
        pl.set("Number of Time Steps", -1)
        pl.set("Fixed dt", -1.0)
        return pl

    def _read_parameters(self, pl: ParameterList):
        self.take_variable_steps = pl.get("Take Variable Steps")
        self.max_dt = pl.get("Max dt")
        self.num_time_steps = pl.get("Number of Time Steps")
        self.fixed_dt = pl.get("Fixed dt")
        if self.max_dt <= 0.0:
            raise ValueError(f"Max dt must be positive, got {self.max_dt}")
        if not self.take_variable_steps and self.fixed_dt <= 0.0 and self.num_time_steps <= 0:
            raise ValueError(
                "Fixed stepping requires a positive 'Fixed dt' or 'Number of Time Steps'"
            )

    def reset_for_time_range(self, time_range: TimeRange):
        """Bind the strategy to the integration range (needed for step counts)."""
        self._time_range = time_range

    def clone(self) -> "SimpleIntegrationControlStrategy":
        return SimpleIntegrationControlStrategy(self.get_parameter_list().copy())

    def get_next_step_info(self, t_current: float, t_final: float) -> Tuple[float, StepSizeType]:
        """
        Next step size and its type.

        Parameters
        ----------
        t_current : float
            Current stepper time
        t_final : float
            Final integration time

        Returns
        -------
        Tuple[float, StepSizeType]
        """
        if self.take_variable_steps:
            return min(self.max_dt, t_final - t_current), StepSizeType.VARIABLE

        if self.fixed_dt > 0.0:
            return self.fixed_dt, StepSizeType.FIXED

        time_range = self._time_range or TimeRange(t_current, t_final)
        return time_range.length() / self.num_time_steps, StepSizeType.FIXED

    def __repr__(self) -> str:
        mode = "variable" if self.take_variable_steps else "fixed"
        return f"SimpleIntegrationControlStrategy(mode={mode}, fixed_dt={self.fixed_dt})"


def simple_integration_control_strategy(parameter_list=None) -> SimpleIntegrationControlStrategy:
    """Nonmember constructor."""
    return SimpleIntegrationControlStrategy(parameter_list)
