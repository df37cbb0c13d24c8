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

"""Correctness-check utilities: tolerant comparisons and the discrete adjoint tester."""

from .adjoint_tester import BasicDiscreteAdjointStepperTester, basic_discrete_adjoint_stepper_tester
from .comparisons import compare_floats, compare_vecs

__all__ = [
    "compare_vecs",
    "compare_floats",
    "BasicDiscreteAdjointStepperTester",
    "basic_discrete_adjoint_stepper_tester",
]
