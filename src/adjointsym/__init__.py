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
AdjointSym
==========

Forward and discrete adjoint time integration of symbolic ODE models,
together with an element-wise vector type and tolerant comparison helpers.

Forward and Adjoint Solves
--------------------------
>>> from adjointsym.models import VanderPolModel, AdjointModelEvaluator
>>> from adjointsym.numerical_integration import IntegratorBuilder, get_fwd_x_and_x_dot
>>>
>>> model = VanderPolModel({"Implicit model formulation": True})
>>> integrator = IntegratorBuilder(pl).create(model, model.get_nominal_values())
>>> x_final, x_dot_final = get_fwd_x_and_x_dot(integrator, 1.0)
>>>
>>> # Or run the whole forward/adjoint scenario
>>> from adjointsym.drivers import run_raw_nonlinear_adjoint
>>> result = run_raw_nonlinear_adjoint()

Element-Wise Vectors
--------------------
>>> from adjointsym.vectors import Vector, exp
>>> from adjointsym.testing import compare_vecs
>>>
>>> x = Vector([0.0, 0.1, 0.2])
>>> compare_vecs(exp(x), "exp(x)", np.exp(x.coeffs), "ref", 1e-4, 1e-5)

Authors
-------
Gil Benezer

License
-------
GNU Affero General Public License v3.0
"""

__version__ = "0.1.0"

from .parameters import ParameterList, ParameterValidationError
from .vectors import Vector, VectorSizeError

__all__ = [
    "__version__",
    "ParameterList",
    "ParameterValidationError",
    "Vector",
    "VectorSizeError",
]
