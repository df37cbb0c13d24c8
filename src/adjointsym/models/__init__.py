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
Models
======

Symbolic ODE models evaluated through generated NumPy residuals, and the
adjoint model built on top of any state model.

>>> from adjointsym.models import VanderPolModel, AdjointModelEvaluator
>>> model = VanderPolModel({"Implicit model formulation": True})
>>> out = model.evaluate(model.get_nominal_values(), outputs=("f", "W"))
"""

from .adjoint_model import AdjointModelEvaluator, adjoint_model_evaluator
from .model_evaluator import InArgs, ModelDefinitionError, ModelEvaluator, ModelEvaluatorBase
from .sincos import SinCosModel, sincos_model
from .vanderpol import VanderPolModel, vanderpol_model

__all__ = [
    "InArgs",
    "ModelDefinitionError",
    "ModelEvaluatorBase",
    "ModelEvaluator",
    "VanderPolModel",
    "vanderpol_model",
    "SinCosModel",
    "sincos_model",
    "AdjointModelEvaluator",
    "adjoint_model_evaluator",
]
