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
Parameter List - Nested, Typed Configuration

A ``ParameterList`` is an ordered mapping from names to scalar values
(bool, int, float, str) or to nested ``ParameterList`` objects. Every
configurable component (models, solvers, steppers, integrators, the
integrator builder) exposes:

- ``get_valid_parameters()``: a list holding every accepted key with its
  default value (and, for string selectors, the allowed choices)
- ``set_parameter_list(pl)``: validate ``pl`` against the valid list, fill
  in defaults, then read the settings
- ``get_parameter_list()``: the list currently in use

Parameter lists are built in code, from plain dictionaries, or from JSON:

>>> pl = ParameterList.from_dict({
...     "Stepper Settings": {
...         "Stepper Selection": {"Stepper Type": "Backward Euler"},
...     },
... })
>>> pl.sublist("Stepper Settings").sublist("Stepper Selection").get("Stepper Type")
'Backward Euler'
"""

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple, Union

_MISSING = object()


class ParameterValidationError(ValueError):
    """Raised when a parameter list does not match its valid parameters"""

    pass


def _type_name(value: Any) -> str:
    """Name used to compare parameter types (bool is checked before int)."""
    if isinstance(value, ParameterList):
        return "ParameterList"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


class ParameterList:
    """
    Ordered, nested, typed key/value configuration.

    Parameters
    ----------
    name : str
        Name of the list (used in error messages and printing)

    Examples
    --------
    >>> pl = ParameterList("Solver")
    >>> pl.set("Default Tol", 1.0e-10).set("Default Max Iters", 20)
    >>> pl.get("Default Tol")
    1e-10
    >>> pl.get("Missing", 3)     # stores and returns the default
    3
    """

    def __init__(self, name: str = "ANONYMOUS"):
        self._name = name
        self._entries: Dict[str, Any] = {}
        self._valid_values: Dict[str, Tuple[str, ...]] = {}
        self._docs: Dict[str, str] = {}

    # ========================================================================
    # Construction Helpers
    # ========================================================================

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: str = "ANONYMOUS") -> "ParameterList":
        """
        Build a parameter list from a (nested) dictionary.

        Nested dictionaries become sublists.
        """
        pl = cls(name)
        for key, value in data.items():
            pl.set(key, value)
        return pl

    @classmethod
    def from_json(cls, text: str, name: str = "ANONYMOUS") -> "ParameterList":
        """Build a parameter list from JSON text holding an object."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ParameterValidationError(
                f"JSON parameter list must be an object, got {type(data).__name__}"
            )
        return cls.from_dict(data, name=name)

    @classmethod
    def load_json(cls, filename: Union[str, Path], name: str = "ANONYMOUS") -> "ParameterList":
        """Read a parameter list from a JSON file."""
        with open(filename, "r") as f:
            return cls.from_json(f.read(), name=name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a nested dictionary (sublists become dictionaries)."""
        out = {}
        for key, value in self._entries.items():
            out[key] = value.to_dict() if isinstance(value, ParameterList) else value
        return out

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save_json(self, filename: Union[str, Path]):
        """Write the parameter list to a JSON file."""
        with open(filename, "w") as f:
            f.write(self.to_json())

    def copy(self) -> "ParameterList":
        """Deep copy (sublists are copied too)."""
        return copy.deepcopy(self)

    # ========================================================================
    # Access
    # ========================================================================

    @property
    def name(self) -> str:
        return self._name

    def set(
        self,
        name: str,
        value: Any,
        doc: str = "",
        valid_values: Optional[Sequence[str]] = None,
    ) -> "ParameterList":
        """
        Set a parameter or sublist.

        Parameters
        ----------
        name : str
            Parameter name
        value : bool, int, float, str, dict or ParameterList
            Dictionaries are converted to sublists
        doc : str
            Optional documentation (kept for printing valid parameters)
        valid_values : Optional[Sequence[str]]
            Allowed choices for a string parameter

        Returns
        -------
        ParameterList
            self, so calls can be chained
        """
        if isinstance(value, dict):
            value = ParameterList.from_dict(value, name=name)
        elif isinstance(value, ParameterList) and value.name != name:
            renamed = value.copy()
            renamed._name = name
            value = renamed
        elif not isinstance(value, (bool, int, float, str, ParameterList)):
            raise ParameterValidationError(
                f"Parameter '{name}' in list '{self._name}' has unsupported type "
                f"{type(value).__name__}"
            )
        self._entries[name] = value
        if doc:
            self._docs[name] = doc
        if valid_values is not None:
            self._valid_values[name] = tuple(valid_values)
        return self

    def get(self, name: str, default: Any = _MISSING) -> Any:
        """
        Get a parameter value.

        If the parameter is absent and a default is given, the default is
        stored in the list and returned.

        Raises
        ------
        KeyError
            If the parameter is absent and no default is given
        """
        if name in self._entries:
            return self._entries[name]
        if default is _MISSING:
            raise KeyError(f"Parameter '{name}' not found in list '{self._name}'")
        self.set(name, default)
        return self._entries[name]

    def sublist(self, name: str, must_already_exist: bool = False) -> "ParameterList":
        """
        Get a sublist, creating it when absent.

        Raises
        ------
        KeyError
            If ``must_already_exist`` and the sublist is absent
        ParameterValidationError
            If ``name`` holds a parameter rather than a sublist
        """
        if name not in self._entries:
            if must_already_exist:
                raise KeyError(f"Sublist '{name}' not found in list '{self._name}'")
            self._entries[name] = ParameterList(name)
        entry = self._entries[name]
        if not isinstance(entry, ParameterList):
            raise ParameterValidationError(
                f"Entry '{name}' in list '{self._name}' is a parameter, not a sublist"
            )
        return entry

    def remove(self, name: str):
        del self._entries[name]
        self._docs.pop(name, None)
        self._valid_values.pop(name, None)

    def is_sublist(self, name: str) -> bool:
        return isinstance(self._entries.get(name), ParameterList)

    def is_parameter(self, name: str) -> bool:
        return name in self._entries and not self.is_sublist(name)

    def valid_values(self, name: str) -> Optional[Tuple[str, ...]]:
        """Allowed string choices for ``name`` (None if unrestricted)."""
        return self._valid_values.get(name)

    def keys(self):
        return self._entries.keys()

    def items(self):
        return self._entries.items()

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any):
        self.set(name, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParameterList):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    # ========================================================================
    # Validation
    # ========================================================================

    def validate_parameters(self, valid: "ParameterList", depth: Optional[int] = None):
        """
        Check this list against a list of valid parameters.

        Every entry must exist in ``valid`` and have a compatible type
        (an int is accepted where a double is expected). String entries
        with declared choices must be one of them. Sublists are checked
        recursively up to ``depth`` levels (all levels when None).

        Raises
        ------
        ParameterValidationError
            On the first invalid entry found
        """
        for key, value in self._entries.items():
            if key not in valid:
                raise ParameterValidationError(
                    f"The parameter '{key}' in list '{self._name}' is not valid. "
                    f"Valid parameters: {list(valid.keys())}"
                )
            expected = valid._entries[key]
            got_type, expected_type = _type_name(value), _type_name(expected)
            compatible = got_type == expected_type or (
                got_type == "int" and expected_type == "double"
            )
            if not compatible:
                raise ParameterValidationError(
                    f"The parameter '{key}' in list '{self._name}' has type {got_type}, "
                    f"expected {expected_type}"
                )
            choices = valid.valid_values(key)
            if choices is not None and value not in choices:
                raise ParameterValidationError(
                    f"The value '{value}' for parameter '{key}' in list '{self._name}' "
                    f"is not valid. Choose from: {list(choices)}"
                )
            if isinstance(value, ParameterList) and (depth is None or depth > 0):
                value.validate_parameters(expected, None if depth is None else depth - 1)

    def set_defaults_from(self, valid: "ParameterList"):
        """
        Fill missing entries with the defaults of ``valid`` (recursively).

        Ints stored where a double is expected are converted to float.
        """
        for key, expected in valid._entries.items():
            if isinstance(expected, ParameterList):
                self.sublist(key).set_defaults_from(expected)
            elif key not in self._entries:
                self._entries[key] = expected
            elif _type_name(expected) == "double" and _type_name(self._entries[key]) == "int":
                self._entries[key] = float(self._entries[key])

    def validate_parameters_and_set_defaults(self, valid: "ParameterList"):
        """Validate against ``valid`` and then fill in its defaults."""
        self.validate_parameters(valid)
        self.set_defaults_from(valid)

    # ========================================================================
    # String Representations
    # ========================================================================

    def _format(self, indent: int) -> str:
        lines = []
        pad = "  " * indent
        for key, value in self._entries.items():
            if isinstance(value, ParameterList):
                lines.append(f"{pad}{key} ->")
                body = value._format(indent + 1)
                if body:
                    lines.append(body)
            else:
                lines.append(f"{pad}{key} : {_type_name(value)} = {value}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ParameterList(name={self._name!r}, entries={len(self._entries)})"

    def __str__(self) -> str:
        return self._format(0)


def parameter_list(name: str = "ANONYMOUS", **entries) -> ParameterList:
    """
    Convenience constructor from keyword arguments.

    Only usable for names that are valid Python identifiers; use
    ``ParameterList.from_dict`` for names with spaces.
    """
    return ParameterList.from_dict(entries, name=name)


class ParameterListAcceptor(ABC):
    """
    Mixin for components configured through a ParameterList.

    Subclasses implement ``get_valid_parameters()`` and may override
    ``_read_parameters(pl)`` to cache settings after validation.
    """

    _param_list: Optional[ParameterList] = None

    @abstractmethod
    def get_valid_parameters(self) -> ParameterList:
        """Valid keys, types and defaults of this component."""
        pass

    def set_parameter_list(self, pl: Optional[ParameterList]):
        """
        Validate ``pl``, fill in defaults and read the settings.

        Passing None resets to the defaults.

        Raises
        ------
        ParameterValidationError
            If ``pl`` holds unknown keys, wrong types or invalid choices
        """
        pl = ParameterList() if pl is None else pl
        if isinstance(pl, dict):
            pl = ParameterList.from_dict(pl)
        pl.validate_parameters_and_set_defaults(self.get_valid_parameters())
        self._param_list = pl
        self._read_parameters(pl)

    def get_parameter_list(self) -> ParameterList:
        if self._param_list is None:
            self.set_parameter_list(None)
        return self._param_list

    def _read_parameters(self, pl: ParameterList):
        pass
