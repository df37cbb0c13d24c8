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
Types Module - Type Definitions for AdjointSym

Central import point for the type aliases and TypedDict bundles used
across the framework.

Module Organization
------------------
- core: arrays, vectors, matrices, callables
- trajectories: time points, integration and adjoint results
- solvers: solve/step status, step-size type, model outputs
"""

from .core import (
    AdjointVector,
    ArrayLike,
    IntegerLike,
    JacobianFunction,
    JacobianMatrix,
    NumpyArray,
    ParameterVector,
    PointsTuple,
    ResidualFunction,
    ResidualVector,
    ScalarLike,
    StateDerivativeVector,
    StateVector,
)
from .solvers import ModelOutputs, SolveStatus, StepSizeType, StepStatus, StepStatusCode
from .trajectories import AdjointSolveResult, IntegrationResult, TimePoints, TimeSpan

__all__ = [
    "AdjointVector",
    "ArrayLike",
    "IntegerLike",
    "JacobianFunction",
    "JacobianMatrix",
    "NumpyArray",
    "ParameterVector",
    "PointsTuple",
    "ResidualFunction",
    "ResidualVector",
    "ScalarLike",
    "StateDerivativeVector",
    "StateVector",
    "ModelOutputs",
    "SolveStatus",
    "StepSizeType",
    "StepStatus",
    "StepStatusCode",
    "AdjointSolveResult",
    "IntegrationResult",
    "TimePoints",
    "TimeSpan",
]
