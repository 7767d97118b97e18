"""Parameters of a :class:`~structs.model.DescribableModel` and how optional ones are applied."""

import inspect
import logging
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional

from structs.domain import Secret
from structs.errors import StructsError, UnsupportedOperationError
from structs.parameter_types import (
    MISSING,
    ParameterType,
    classify,
    erasure,
    map_shape,
    sequence_shape,
    string_backed,
    strip_type,
    zero_value,
)
from structs.registry import qualified_name

if TYPE_CHECKING:
    from structs.model import DescribableModel

__all__ = ["Setter", "FieldSetter", "MethodSetter", "DescribableParameter"]

logger = logging.getLogger(__name__)

_SCALARS = (str, bool, int, float, complex, Enum)


class Setter(ABC):
    """Abstracts away how to apply a value to a field or through a setter method."""

    @abstractmethod
    def set(self, instance: Any, value: Any):
        """Apply ``value`` to ``instance``."""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human readable location, used when reporting a problem."""


class FieldSetter(Setter):
    def __init__(self, owner: type, name: str):
        self._owner = owner
        self._name = name

    def set(self, instance, value):
        setattr(instance, self._name, value)

    @property
    def display_name(self) -> str:
        return f"{self._owner.__qualname__}.{self._name}"


class MethodSetter(Setter):
    def __init__(self, owner: type, method_name: str):
        self._owner = owner
        self._method_name = method_name

    def set(self, instance, value):
        getattr(instance, self._method_name)(value)

    @property
    def display_name(self) -> str:
        return f"{self._owner.__qualname__}.{self._method_name}()"


class DescribableParameter:
    """One named, typed input slot of a model.

    A parameter without a setter is required: it is passed to the primary
    construction operation. A parameter with a setter is optional.

    Attributes:
        name: The parameter name.
        raw_type: The declared type, as written on the constructor or setter.
        type: The classified :class:`~structs.parameter_types.ParameterType`.
        setter: How to apply the value of an optional parameter, else None.
        deprecated: Whether the setter is marked deprecated.
        default: The constructor default of a required parameter, or MISSING.
    """

    def __init__(
        self,
        parent: "DescribableModel",
        raw_type: Any,
        name: str,
        setter: Optional[Setter] = None,
        deprecated: bool = False,
        default: Any = MISSING,
    ):
        self.parent = parent
        self.raw_type = raw_type
        self.name = name
        self.setter = setter
        self.deprecated = deprecated
        self.default = default
        self.type: ParameterType = classify(raw_type, parent.binder)

    @property
    def required(self) -> bool:
        return self.setter is None

    @property
    def help(self) -> Optional[str]:
        """Help text for this parameter, if the host has any."""
        return self.parent.get_help(self.name)

    def inspect(self, instance: Any) -> Any:
        """Read this parameter off an instance and convert it to generic form.

        Raises:
            UnsupportedOperationError: If the instance has no attribute or getter for it.
        """
        return self.uncoerce(self._read(instance), self.raw_type)

    def _read(self, instance: Any) -> Any:
        for attribute in (self.name, f"_{self.name}"):
            value = getattr(instance, attribute, MISSING)
            if value is MISSING:
                continue
            if inspect.ismethod(value) and value.__self__ is instance:
                continue
            return value
        for prefix in ("get_", "is_"):
            getter = getattr(instance, prefix + self.name, None)
            if callable(getter):
                return getter()
        raise UnsupportedOperationError(
            f"no attribute '{self.name}' (or getter method) found in {type(instance).__qualname__}"
        )

    def uncoerce(self, value: Any, declared: Any) -> Any:
        """Inverse of coercion: turn a property value into its generic form."""
        if value is None:
            return None
        if isinstance(value, Enum):
            return value.name
        backed = string_backed(declared)
        if backed is not None and isinstance(value, strip_type(declared)):
            return backed[1](value)
        if isinstance(value, (list, tuple, set, frozenset)):
            shape = sequence_shape(declared)
            element_type = shape[1] if shape else Any
            return [self.uncoerce(element, element_type) for element in value]
        if isinstance(value, Mapping):
            shape = map_shape(declared)
            key_type, value_type = shape if shape else (Any, Any)
            return {self.uncoerce(k, key_type): self.uncoerce(v, value_type) for k, v in value.items()}
        if _is_describable_candidate(value):
            binder = self.parent.binder
            try:
                ud = binder.model_of(type(value)).uninstantiate(value)
            except StructsError as x:
                logger.warning(f"Failed to uncoerce {type(value).__qualname__} for {self.name}: {x}")
                return value
            if type(value) is not erasure(declared):
                # Name the implementation, briefly where the simple name is unambiguous.
                same_name = [c for c in binder.find_subtypes(erasure(declared)) if c.__name__ == type(value).__name__]
                ud.klass = type(value).__name__ if len(same_name) == 1 else qualified_name(type(value))
            return ud
        return value

    def absent_value(self) -> Any:
        """The value this required parameter takes when left out of an argument map."""
        if self.default is not MISSING:
            return self.default
        zero = zero_value(self.raw_type)
        return None if zero is MISSING else zero

    def is_absent_equivalent(self, generic_value: Any) -> bool:
        """True if leaving this required parameter out would produce the same value."""
        if generic_value is None:
            return True
        absent = self.absent_value()
        if absent is None or not isinstance(absent, _SCALARS):
            return False
        return self.uncoerce(absent, self.raw_type) == generic_value

    def describe(self, out: list[str], model_types: list[type]):
        out.append(self.name)
        if not self.required:
            out.append("?")
        if self.deprecated:
            out.append("(deprecated)")
        out.append(": ")
        self.type.describe(out, model_types)

    def __str__(self):
        out: list[str] = []
        self.describe(out, [])
        return "".join(out)

    def __repr__(self):
        return f"<DescribableParameter {self}>"


def _is_describable_candidate(value: Any) -> bool:
    """Objects of library types are passed through as they are."""
    module = type(value).__module__.split(".")[0]
    if isinstance(value, Secret):
        return False
    return module != "builtins" and module not in sys.stdlib_module_names
