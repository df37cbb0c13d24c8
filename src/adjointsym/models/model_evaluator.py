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
Model Evaluator - Symbolic ODE Models with Generated Residuals

A model evaluator describes an ODE in one of two formulations:

    explicit:  x_dot = g(x, t, p)                 ->  f = g
    implicit:  f(x_dot, x, t, p) = x_dot - g = 0  ->  f = residual

and evaluates, on request:

    f      residual (implicit) or state derivative (explicit)
    W      iteration matrix alpha*df/dx_dot + beta*df/dx
           (explicit: beta*dg/dx)
    DfDp   sensitivity of f with respect to the model parameters

Subclasses never override ``__init__``. They implement ``define_model()``,
which declares SymPy symbols for the state, the right-hand side ``g``, the
parameter values and the initial condition. The base class then validates
the definition and generates NumPy callables for f and its Jacobians.

Configuration (common to every model):

- "Implicit model formulation" (bool, false)
- "Accept model parameters" (bool, false): expose ``param_vars`` as the
  model parameter vector p instead of baking their values in
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import sympy as sp

from adjointsym.models.codegen_utils import generate_jacobian_function, generate_numpy_function
from adjointsym.parameters import ParameterList, ParameterListAcceptor
from adjointsym.types.core import ArrayLike, ScalarLike
from adjointsym.types.solvers import ModelOutputs


class ModelDefinitionError(ValueError):
    """Raised when define_model() leaves the model incomplete or inconsistent"""

    pass


def _as_vector(value: Optional[ArrayLike]) -> Optional[np.ndarray]:
    if value is None:
        return None
    return np.array(value, dtype=float).reshape(-1)


@dataclass
class InArgs:
    """
    Input arguments of a model evaluation.

    Attributes
    ----------
    t : float
        Time
    x : np.ndarray
        State (nx,)
    x_dot : np.ndarray
        State derivative (nx,), used by implicit models
    p : np.ndarray
        Model parameters (np,), empty when the model accepts none
    alpha : float
        Weight of df/dx_dot in W
    beta : float
        Weight of df/dx in W

    Examples
    --------
    >>> ic = model.get_nominal_values()
    >>> ic.set_x(np.array([1.0, 0.0]))
    >>> ic.t
    0.0
    """

    t: float = 0.0
    x: Optional[np.ndarray] = None
    x_dot: Optional[np.ndarray] = None
    p: np.ndarray = field(default_factory=lambda: np.zeros(0))
    alpha: float = 0.0
    beta: float = 1.0

    def __post_init__(self):
        self.t = float(self.t)
        self.x = _as_vector(self.x)
        self.x_dot = _as_vector(self.x_dot)
        self.p = _as_vector(self.p)

    def set_t(self, t: ScalarLike) -> "InArgs":
        self.t = float(t)
        return self

    def set_x(self, x: ArrayLike) -> "InArgs":
        self.x = _as_vector(x)
        return self

    def set_x_dot(self, x_dot: ArrayLike) -> "InArgs":
        self.x_dot = _as_vector(x_dot)
        return self

    def set_p(self, p: ArrayLike) -> "InArgs":
        self.p = _as_vector(p)
        return self

    def set_alpha_beta(self, alpha: ScalarLike, beta: ScalarLike) -> "InArgs":
        self.alpha = float(alpha)
        self.beta = float(beta)
        return self

    def copy(self) -> "InArgs":
        return copy.deepcopy(self)

    def describe(self) -> str:
        """Multi-line description of every set argument."""
        lines = [f"InArgs:", f"  t = {self.t}"]
        for name in ("x", "x_dot", "p"):
            value = getattr(self, name)
            if value is not None and value.size > 0:
                lines.append(f"  {name} = {np.array2string(value, precision=16)}")
        lines.append(f"  alpha = {self.alpha}, beta = {self.beta}")
        return "\n".join(lines)


class ModelEvaluatorBase(ParameterListAcceptor, ABC):
    """
    Minimal numeric interface shared by every model.

    Steppers and solvers only use this interface, so hand-written models
    (such as the adjoint model) plug in next to the symbolic ones.
    """

    def __init__(self):
        self._stats = {"f_evals": 0, "W_evals": 0, "DfDp_evals": 0}

    def get_valid_parameters(self) -> ParameterList:
        return ParameterList(self.__class__.__name__)

    @property
    @abstractmethod
    def nx(self) -> int:
        """Dimension of the state (and residual) space."""
        pass

    @property
    def n_params(self) -> int:
        return 0

    def get_f_space_dim(self) -> int:
        """Dimension of the residual space (equal to nx for ODEs)."""
        return self.nx

    @property
    @abstractmethod
    def is_implicit(self) -> bool:
        pass

    @abstractmethod
    def get_nominal_values(self) -> InArgs:
        """Nominal (initial) time, state, state derivative and parameters."""
        pass

    @abstractmethod
    def evaluate(self, in_args: InArgs, outputs: Sequence[str] = ("f",)) -> ModelOutputs:
        """
        Evaluate the requested outputs ("f", "W", "DfDp") at ``in_args``.
        """
        pass

    def create_in_args(self) -> InArgs:
        return self.get_nominal_values().copy()

    def state_jacobians(self, x_dot, x, t, p=None):
        """
        Return (df/dx_dot, df/dx) of the implicit residual x_dot - g.

        Explicit models report df/dx_dot = I and df/dx = -dg/dx.
        """
        in_args = InArgs(t=t, x=x, x_dot=x_dot, p=np.zeros(0) if p is None else p)
        if not self.is_implicit:
            dgdx = self.evaluate(in_args.set_alpha_beta(0.0, 1.0), outputs=("W",))["W"]
            return np.eye(self.nx), -dgdx
        dfdxdot = self.evaluate(in_args.copy().set_alpha_beta(1.0, 0.0), outputs=("W",))["W"]
        dfdx = self.evaluate(in_args.set_alpha_beta(0.0, 1.0), outputs=("W",))["W"]
        return dfdxdot, dfdx

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def reset_stats(self):
        for key in self._stats:
            self._stats[key] = 0


class ModelEvaluator(ModelEvaluatorBase):
    """
    Symbolically defined ODE model.

    Subclasses implement ``define_model(pl)`` and must populate:

    - ``self.state_vars``: List[sp.Symbol], state variables (non-empty)
    - ``self._g_sym``: sp.Matrix, explicit right-hand side g(x, t, p)
    - ``self.parameters``: Dict[sp.Symbol, float], parameter values
    - ``self._x0``: initial state (len(state_vars),)

    and may populate:

    - ``self.param_vars``: parameters exposed as p when
      "Accept model parameters" is true (must be keys of ``parameters``)
    - ``self._t0``: initial time (default 0.0)
    - ``self.time_var``: the symbol used for time in ``_g_sym``

    Examples
    --------
    >>> class Decay(ModelEvaluator):
    ...     def get_valid_parameters(self):
    ...         pl = super().get_valid_parameters()
    ...         pl.set("Coeff k", 1.0)
    ...         return pl
    ...
    ...     def define_model(self, pl):
    ...         x = sp.symbols("x", real=True)
    ...         k = sp.symbols("k", real=True)
    ...         self.state_vars = [x]
    ...         self.parameters = {k: pl.get("Coeff k")}
    ...         self.param_vars = [k]
    ...         self._g_sym = sp.Matrix([-k * x])
    ...         self._x0 = [1.0]
    >>> model = Decay({"Implicit model formulation": True})
    >>> model.evaluate(model.get_nominal_values())["f"]
    array([0.])
    """

    def __init__(self, parameter_list: Optional[ParameterList] = None):
        super().__init__()
        self.state_vars: List[sp.Symbol] = []
        self.param_vars: List[sp.Symbol] = []
        self.parameters: Dict[sp.Symbol, float] = {}
        self.time_var: sp.Symbol = sp.Symbol("t", real=True)
        self._g_sym: Optional[sp.Matrix] = None
        self._x0: Optional[ArrayLike] = None
        self._t0: float = 0.0
        self._implicit = False
        self._accept_params = False
        self._initialized = False
        self.set_parameter_list(parameter_list)

    # ========================================================================
    # Configuration
    # ========================================================================

    def get_valid_parameters(self) -> ParameterList:
        pl = ParameterList(self.__class__.__name__)
        pl.set(
            "Implicit model formulation",
            False,
            doc="Evaluate the residual x_dot - g instead of g",
        )
        pl.set(
            "Accept model parameters",
            False,
            doc="Expose the model coefficients as the parameter vector p",
        )
        return pl

    def _read_parameters(self, pl: ParameterList):
        self._implicit = pl.get("Implicit model formulation")
        self._accept_params = pl.get("Accept model parameters")

        self.state_vars = []
        self.param_vars = []
        self.parameters = {}
        self._g_sym = None
        self._x0 = None
        self._t0 = 0.0

        self.define_model(pl)
        self._validate_definition()
        self._generate_functions()
        self._initialized = True

    @abstractmethod
    def define_model(self, pl: ParameterList):
        """Declare symbols, right-hand side, parameters and initial state."""
        pass

    def _validate_definition(self):
        name = self.__class__.__name__
        if not self.state_vars:
            raise ModelDefinitionError(f"{name}: state_vars is empty")
        if self._g_sym is None:
            raise ModelDefinitionError(f"{name}: _g_sym was not defined")
        self._g_sym = sp.Matrix(self._g_sym)
        if self._g_sym.shape != (len(self.state_vars), 1):
            raise ModelDefinitionError(
                f"{name}: _g_sym has shape {self._g_sym.shape}, "
                f"expected ({len(self.state_vars)}, 1)"
            )
        for p in self.param_vars:
            if p not in self.parameters:
                raise ModelDefinitionError(f"{name}: parameter {p} has no value")
        if self._x0 is None:
            raise ModelDefinitionError(f"{name}: _x0 was not defined")
        self._x0 = np.array(self._x0, dtype=float).reshape(-1)
        if self._x0.size != len(self.state_vars):
            raise ModelDefinitionError(
                f"{name}: _x0 has {self._x0.size} entries, expected {len(self.state_vars)}"
            )

    def _generate_functions(self):
        nx = len(self.state_vars)
        self.state_dot_vars = [sp.Symbol(f"{s.name}_dot", real=True) for s in self.state_vars]

        exposed = list(self.param_vars) if self._accept_params else []
        fixed = {s: v for s, v in self.parameters.items() if s not in exposed}
        g = self._g_sym.subs(fixed)

        self._exposed_params = exposed
        self._symbols = self.state_dot_vars + list(self.state_vars) + [self.time_var] + exposed

        x_dot = sp.Matrix(self.state_dot_vars)
        self._f_sym = (x_dot - g) if self._implicit else g

        self._f_func = generate_numpy_function(self._f_sym, self._symbols)
        self._g_func = generate_numpy_function(g, self._symbols)
        self._dfdx_func = generate_jacobian_function(self._f_sym, self._symbols, self.state_vars)
        self._dfdp_func = generate_jacobian_function(self._f_sym, self._symbols, exposed)
        self._dfdxdot = np.eye(nx) if self._implicit else np.zeros((nx, nx))

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def nx(self) -> int:
        return len(self.state_vars)

    @property
    def n_params(self) -> int:
        return len(self._exposed_params)

    @property
    def is_implicit(self) -> bool:
        return self._implicit

    @property
    def accepts_parameters(self) -> bool:
        return self._accept_params

    def get_parameter_values(self) -> np.ndarray:
        """Nominal values of the exposed parameters p."""
        return np.array([float(self.parameters[s]) for s in self._exposed_params])

    # ========================================================================
    # Evaluation
    # ========================================================================

    def _pack(self, x_dot, x, t, p) -> list:
        nx = self.nx
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.size != nx:
            raise ValueError(f"Expected state of size {nx}, got {x.size}")
        x_dot = np.zeros(nx) if x_dot is None else np.asarray(x_dot, dtype=float).reshape(-1)
        if p is None or np.size(p) == 0:
            p = self.get_parameter_values()
        p = np.asarray(p, dtype=float).reshape(-1)
        if p.size != self.n_params:
            raise ValueError(f"Expected {self.n_params} parameters, got {p.size}")
        return list(x_dot) + list(x) + [float(t)] + list(p)

    def evaluate_rhs(self, x: ArrayLike, t: ScalarLike = 0.0, p: Optional[ArrayLike] = None):
        """Explicit right-hand side g(x, t, p), regardless of formulation."""
        self._stats["f_evals"] += 1
        return self._g_func(*self._pack(None, x, t, p))

    def state_jacobians(self, x_dot, x, t, p=None):
        # One generated Jacobian instead of two W evaluations
        self._stats["W_evals"] += 1
        dfdx = self._dfdx_func(*self._pack(x_dot, x, t, p))
        if self._implicit:
            return np.eye(self.nx), dfdx
        return np.eye(self.nx), -dfdx

    def evaluate(self, in_args: InArgs, outputs: Sequence[str] = ("f",)) -> ModelOutputs:
        """
        Evaluate the model.

        Parameters
        ----------
        in_args : InArgs
            Time, state, state derivative (implicit only), parameters and
            the W weights alpha/beta
        outputs : Sequence[str]
            Any of "f", "W", "DfDp"

        Returns
        -------
        ModelOutputs
            Requested quantities

        Examples
        --------
        >>> in_args = model.get_nominal_values().set_alpha_beta(2.0, 1.0)
        >>> out = model.evaluate(in_args, outputs=("f", "W"))
        >>> out["W"].shape
        (2, 2)
        """
        unknown = set(outputs) - {"f", "W", "DfDp"}
        if unknown:
            raise ValueError(f"Unknown model outputs requested: {sorted(unknown)}")

        args = self._pack(in_args.x_dot, in_args.x, in_args.t, in_args.p)
        result: ModelOutputs = {}

        if "f" in outputs:
            self._stats["f_evals"] += 1
            result["f"] = self._f_func(*args)
        if "W" in outputs:
            self._stats["W_evals"] += 1
            dfdx = self._dfdx_func(*args)
            result["W"] = in_args.alpha * self._dfdxdot + in_args.beta * dfdx
        if "DfDp" in outputs:
            self._stats["DfDp_evals"] += 1
            result["DfDp"] = self._dfdp_func(*args)
        return result

    def get_nominal_values(self) -> InArgs:
        """
        Nominal values with a consistent state derivative x_dot0 = g(x0).
        """
        p = self.get_parameter_values()
        x0 = self._x0.copy()
        x_dot0 = self._g_func(*self._pack(None, x0, self._t0, p))
        return InArgs(t=self._t0, x=x0, x_dot=x_dot0, p=p)

    def print_equations(self, simplify: bool = True):
        """Print the residual definition."""
        print("=" * 70)
        print(f"{self.__class__.__name__} ({'implicit' if self._implicit else 'explicit'})")
        print("=" * 70)
        lhs = "f" if self._implicit else "d/dt"
        for i, (var, expr) in enumerate(zip(self.state_vars, self._f_sym)):
            expr = sp.simplify(expr) if simplify else expr
            label = f"f[{i}]" if self._implicit else f"{lhs} {var}"
            print(f"  {label} = {expr}")
        print("=" * 70)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nx={self.nx}, np={self.n_params}, "
            f"implicit={self._implicit})"
        )
