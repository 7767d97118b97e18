"""Classification of declared parameter types into a closed set of shapes.

Nested object types are expanded lazily: a :class:`HomogeneousObjectType` or
:class:`HeterogeneousObjectType` only builds the models of its implementations when
they are asked for, so classifying a self-referential type always terminates. The
schema rendering keeps a stack of the types being expanded and prints a type that
recurs as ``Name…`` instead of expanding it again.
"""

import collections.abc as abc
import inspect
import logging
import types
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from functools import cached_property
from pathlib import PurePath
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Callable,
    Optional,
    Union,
    get_args,
    get_origin,
)
from uuid import UUID

from structs.domain import Secret
from structs.errors import StructsError, UnsupportedOperationError

if TYPE_CHECKING:
    from structs.binder import Binder
    from structs.model import DescribableModel

__all__ = [
    "ParameterType",
    "AtomicType",
    "EnumType",
    "ArrayType",
    "MapType",
    "HomogeneousObjectType",
    "HeterogeneousObjectType",
    "ErrorType",
    "classify",
    "strip_type",
    "erasure",
    "sequence_shape",
    "map_shape",
    "string_backed",
    "zero_value",
    "is_abstract",
    "MISSING",
]

logger = logging.getLogger(__name__)

MISSING = object()
"""Sentinel for "no value" where None is a legitimate value."""

ATOMIC_TYPES = (str, bool, int, float, complex, bytes)

_ZERO_VALUES = {bool: False, int: 0, float: 0.0, complex: 0j}

_LIST_ORIGINS = (list, abc.Sequence, abc.MutableSequence, abc.Collection, abc.Iterable)

_SET_ORIGINS = {set: set, frozenset: frozenset, abc.Set: frozenset, abc.MutableSet: set}

_MAP_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)

# Types rendered as strings: (base type, coerce from str, uncoerce to generic form).
_STRING_BACKED: list[tuple[type, Callable[[type, str], Any], Callable[[Any], Any]]] = [
    (PurePath, lambda t, s: t(s), str),
    (UUID, lambda t, s: t(s), str),
    (Decimal, lambda t, s: t(s), str),
    (Secret, lambda t, s: t.from_string(s), lambda v: v),
]


def strip_type(declared: Any) -> Any:
    """Remove ``Annotated`` wrappers and a single ``Optional`` from a declared type.

    ``Any`` and missing annotations are treated as ``object``.
    """
    if declared is Any:
        return object
    if get_origin(declared) is Annotated:
        return strip_type(get_args(declared)[0])
    if get_origin(declared) in (Union, types.UnionType):
        members = [a for a in get_args(declared) if a is not type(None)]
        if len(members) == 1:
            return strip_type(members[0])
    return declared


def erasure(declared: Any) -> Any:
    """The runtime class behind a declared type, e.g. ``list`` for ``Optional[list[str]]``."""
    stripped = strip_type(declared)
    return get_origin(stripped) or stripped


def zero_value(declared: Any) -> Any:
    """The zero value of a primitive-like declared type, or MISSING.

    Only exact scalar declarations count; ``Optional[int]`` has no zero value.
    """
    if get_origin(declared) is Annotated:
        declared = get_args(declared)[0]
    if isinstance(declared, type) and declared in _ZERO_VALUES:
        return _ZERO_VALUES[declared]
    return MISSING


def sequence_shape(declared: Any) -> Optional[tuple[type, Any]]:
    """``(container, element type)`` if the declared type is array- or list-like."""
    t = strip_type(declared)
    origin = get_origin(t) or t
    args = get_args(t)
    if origin is tuple:
        if not args:
            return tuple, Any
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple, args[0]
        return None
    if origin in _LIST_ORIGINS:
        return list, args[0] if args else Any
    if origin in _SET_ORIGINS:
        return _SET_ORIGINS[origin], args[0] if args else Any
    return None


def map_shape(declared: Any) -> Optional[tuple[Any, Any]]:
    """``(key type, value type)`` if the declared type is map-like."""
    t = strip_type(declared)
    origin = get_origin(t) or t
    if origin in _MAP_ORIGINS:
        args = get_args(t)
        return (args[0], args[1]) if len(args) == 2 else (Any, Any)
    return None


def string_backed(declared: Any) -> Optional[tuple[Callable[[str], Any], Callable[[Any], Any]]]:
    """``(coerce, uncoerce)`` functions if the type is conventionally written as a string."""
    t = strip_type(declared)
    if not inspect.isclass(t) or get_origin(t) is not None:
        return None
    for base, coerce, uncoerce in _STRING_BACKED:
        if issubclass(t, base):
            return (lambda s: coerce(t, s)), uncoerce
    return None


def is_abstract(cls: type) -> bool:
    return inspect.isabstract(cls) or getattr(cls, "_is_protocol", False) or cls is object


class ParameterType(ABC):
    """A type of a parameter to a class."""

    def __init__(self, actual_type: Any):
        self.actual_type = actual_type

    @abstractmethod
    def describe(self, out: list[str], model_types: list[type]):
        """Append a schema rendering to ``out``; ``model_types`` are the types being expanded."""

    def __str__(self):
        out: list[str] = []
        self.describe(out, [])
        return "".join(out)

    def __repr__(self):
        return f"<{type(self).__name__} {self}>"


class AtomicType(ParameterType):
    """A leaf scalar or string. String-backed types report ``str`` as their type."""

    def __init__(self, actual_type: type, type_: Optional[type] = None):
        super().__init__(actual_type)
        self.type = type_ or actual_type

    def describe(self, out, model_types):
        out.append(self.type.__name__)


class EnumType(ParameterType):
    def __init__(self, actual_type: type, values: list[str]):
        super().__init__(actual_type)
        self.values = tuple(values)

    @property
    def type(self) -> type:
        return self.actual_type

    def describe(self, out, model_types):
        out.append(f"{self.actual_type.__name__}[{', '.join(self.values)}]")


class ArrayType(ParameterType):
    """An array or list; ``element_type`` is the classification of its elements."""

    def __init__(self, actual_type: Any, element_type: ParameterType):
        super().__init__(actual_type)
        self.element_type = element_type

    def describe(self, out, model_types):
        self.element_type.describe(out, model_types)
        out.append("[]")


class MapType(ParameterType):
    def __init__(self, actual_type: Any, key_type: ParameterType, value_type: ParameterType):
        super().__init__(actual_type)
        self.key_type = key_type
        self.value_type = value_type

    def describe(self, out, model_types):
        out.append("Map<")
        self.key_type.describe(out, model_types)
        out.append(", ")
        self.value_type.describe(out, model_types)
        out.append(">")


class HomogeneousObjectType(ParameterType):
    """A nested object with effectively one possible concrete class."""

    def __init__(self, actual_type: type, binder: "Binder"):
        super().__init__(actual_type)
        self._binder = binder

    @property
    def type(self) -> type:
        return self.actual_type

    @property
    def schema_type(self) -> "DescribableModel":
        """The model of the nested object's class."""
        return self._binder.model_of(self.actual_type)

    def describe(self, out, model_types):
        try:
            model = self.schema_type
        except StructsError as x:
            out.append(f"{self.actual_type.__name__}<{x}>")
            return
        model.describe(out, model_types)


class HeterogeneousObjectType(ParameterType):
    """A nested object which could be any of several registered implementations."""

    def __init__(self, actual_type: type, binder: "Binder"):
        super().__init__(actual_type)
        self._binder = binder

    @property
    def type(self) -> type:
        return self.actual_type

    @cached_property
    def types(self) -> dict[str, "DescribableModel"]:
        """Map from names usable as ``$class`` to models of allowable nested objects.

        Simple class names are used where unique among the implementations; members
        of a group sharing a simple name are keyed by their fully qualified names.
        Implementations whose model cannot be built are left out.
        """
        from structs.registry import qualified_name

        by_simple_name: dict[str, list[type]] = {}
        for subtype in self._binder.find_subtypes(self.actual_type):
            by_simple_name.setdefault(subtype.__name__, []).append(subtype)

        models: dict[str, "DescribableModel"] = {}
        for simple_name, subtypes in by_simple_name.items():
            for subtype in subtypes:
                key = simple_name if len(subtypes) == 1 else qualified_name(subtype)
                try:
                    models[key] = self._binder.model_of(subtype)
                except StructsError as x:
                    logger.debug(f"Skipping subtype {key} of {self.actual_type.__name__}: {x}")
        return dict(sorted(models.items()))

    def describe(self, out, model_types):
        out.append(self.actual_type.__name__)
        if self.actual_type in model_types:
            out.append("…")
            return
        model_types.append(self.actual_type)
        try:
            out.append("{")
            for i, (key, model) in enumerate(self.types.items()):
                if i:
                    out.append(" | ")
                if key != model.type.__name__:
                    out.append(f"{key}~")
                model.describe(out, model_types)
            out.append("}")
        finally:
            model_types.pop()


class ErrorType(ParameterType):
    """A type that could not be classified; ``error`` is raised only on coercion."""

    def __init__(self, error: Exception, actual_type: Any):
        super().__init__(actual_type)
        self.error = error
        logger.debug(f"Cannot classify {actual_type}: {error}")

    def describe(self, out, model_types):
        out.append(f"{type(self.error).__name__}: {self.error}")


def classify(declared: Any, binder: "Binder") -> ParameterType:
    """Categorize a declared type.

    Args:
        declared: The declared type of a constructor argument or setter.
        binder: Supplies the known implementations of nested object types.

    Returns:
        The ParameterType; classification failures are returned as ErrorType.

    Example:
        >>> classify(Optional[list[str]], binder)  # ArrayType rendered as "str[]"
    """
    try:
        t = strip_type(declared)
        if t in ATOMIC_TYPES:
            return AtomicType(t)
        if inspect.isclass(t) and get_origin(t) is None and issubclass(t, Enum):
            return EnumType(t, [member.name for member in t])
        if string_backed(t) is not None:
            return AtomicType(t, str)
        sequence = sequence_shape(t)
        if sequence is not None:
            return ArrayType(t, classify(sequence[1], binder))
        mapping = map_shape(t)
        if mapping is not None:
            return MapType(t, classify(mapping[0], binder), classify(mapping[1], binder))
        if inspect.isclass(t) and get_origin(t) is None:
            # Assume it is a nested object of some sort.
            subtypes = binder.find_subtypes(t)
            if (not subtypes and not is_abstract(t)) or subtypes == {t}:
                # Probably homogeneous (might be concrete but subclassable).
                return HomogeneousObjectType(t, binder)
            return HeterogeneousObjectType(t, binder)
        raise UnsupportedOperationError(f"do not know how to categorize attributes of type {t}")
    except (StructsError, TypeError) as x:
        return ErrorType(x, declared)
