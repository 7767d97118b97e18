"""The intermediate representation between instances and generic argument maps."""

import inspect
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

from structs.errors import ArgumentError
from structs.registry import qualified_name

if TYPE_CHECKING:
    import logging

    from structs.binder import Binder
    from structs.model import DescribableModel
    from structs.symbol_lookup import SymbolLookup

__all__ = [
    "CLAZZ",
    "SYMBOL",
    "ANONYMOUS_KEY",
    "UninstantiatedDescribable",
    "UninstantiatedConstant",
]

CLAZZ = "$class"
"""Reserved key naming the implementation class of a nested argument map."""

SYMBOL = "$symbol"
"""Reserved key naming the implementation of a nested argument map by symbol."""

ANONYMOUS_KEY = "<anonymous>"
"""Reserved key standing for the sole required parameter of a model, whatever its name."""


class UninstantiatedDescribable:
    """A not-yet-instantiated object: an implementation tag plus its arguments.

    The implementation is identified by ``symbol`` or ``klass``, or by neither when
    the expected type is known from context. Argument values are scalars, lists,
    maps or nested UninstantiatedDescribable objects.

    Equality is structural over symbol, class and arguments. The bound model is not
    part of the pickled state; it is bound again from the class it described on
    first use after unpickling.

    Attributes:
        symbol: Symbol of the implementation, if known.
        klass: Simple or fully qualified class name of the implementation, if known.
    """

    def __init__(
        self,
        symbol: Optional[str] = None,
        klass: Optional[str] = None,
        arguments: Optional[Mapping[str, Any]] = None,
        model: Optional["DescribableModel"] = None,
    ):
        self.symbol = symbol
        self.klass = klass
        self._arguments = MappingProxyType(dict(arguments or {}))
        self._model = model
        self._model_type: Optional[str] = None

    @property
    def arguments(self) -> Mapping[str, Any]:
        """Read-only view of the arguments. Use :meth:`with_arguments` to change them."""
        return self._arguments

    def with_arguments(self, arguments: Mapping[str, Any]) -> "UninstantiatedDescribable":
        """Copy of this object with the given arguments and the same tags and model."""
        copy = UninstantiatedDescribable(self.symbol, self.klass, arguments, self._model)
        copy._model_type = self._model_type
        return copy

    @property
    def model(self) -> Optional["DescribableModel"]:
        """The model of the type this object was created from, if any."""
        if self._model is None and self._model_type is not None:
            from structs.binder import get_binder

            binder = get_binder()
            self._model = binder.model_of(binder.registry.load_class(self._model_type))
        return self._model

    @model.setter
    def model(self, model: Optional["DescribableModel"]):
        self._model = model
        self._model_type = None

    def has_sole_required_argument(self) -> bool:
        """True if the only argument is the sole required parameter of the model.

        Such an object can be written in a compact form using :data:`ANONYMOUS_KEY`.
        """
        if len(self._arguments) != 1 or self.model is None:
            return False
        sole = self.model.sole_required_parameter
        return sole is not None and sole.name in self._arguments

    def to_map(self) -> dict[str, Any]:
        """Arguments as plain nested maps, with ``$class`` added where a class is carried."""
        result = self.to_shallow_map()
        for key, value in self._arguments.items():
            result[key] = _to_map(value)
        return result

    def to_shallow_map(self) -> dict[str, Any]:
        """Sorted arguments, with ``$class`` added; nested objects are left as they are."""
        result = dict(self._arguments)
        if self.klass is not None:
            result[CLAZZ] = self.klass
        return dict(sorted(result.items()))

    def instantiate(
        self,
        base: Optional[type] = None,
        listener: Optional["logging.Logger"] = None,
        binder: Optional["Binder"] = None,
    ) -> Any:
        """Instantiate this object as an implementation of ``base``.

        Args:
            base: Expected type of the result; defaults to the type of the model.
            listener: Logger receiving warnings about ignored arguments.
            binder: Binder to resolve the implementation with; defaults to the binder
                of the model, else the process-wide binder.

        Raises:
            ArgumentError: If the implementation cannot be resolved or instantiated.
        """
        model = self.model
        if binder is None:
            from structs.binder import get_binder

            binder = model.binder if model is not None else get_binder()
        if base is None:
            base = model.type if model is not None else object
        if self.klass is None and self.symbol is None and model is not None:
            # Untagged: the class it was taken from.
            if not issubclass(model.type, base):
                raise ArgumentError(f"{qualified_name(model.type)} is not an implementation of {qualified_name(base)}")
            cls = model.type
        else:
            cls = binder.resolve_class(base, self.klass, self.symbol)
        return binder.model_of(cls).instantiate(self._arguments, listener)

    @staticmethod
    def from_object(obj: Any, binder: Optional["Binder"] = None) -> "UninstantiatedDescribable":
        """Uninstantiate a single object with the model of its own class."""
        if binder is None:
            from structs.binder import get_binder

            binder = get_binder()
        return binder.model_of(type(obj)).uninstantiate(obj)

    def __eq__(self, other):
        if not isinstance(other, UninstantiatedDescribable):
            return NotImplemented
        return (
            self.symbol == other.symbol
            and self.klass == other.klass
            and dict(self._arguments) == dict(other._arguments)
        )

    def __hash__(self):
        return hash((self.symbol, self.klass, tuple(sorted(self._arguments))))

    def __str__(self):
        prefix = ""
        if self.symbol is not None:
            prefix += f"@{self.symbol}"
        if self.klass is not None:
            prefix += f"${self.klass}"
        return f"{prefix}({','.join(f'{k}={v}' for k, v in self._arguments.items())})"

    def __repr__(self):
        return f"<UninstantiatedDescribable {self}>"

    def __getstate__(self):
        model = self._model
        return {
            "symbol": self.symbol,
            "klass": self.klass,
            "arguments": _to_plain(self._arguments),
            "model_type": qualified_name(model.type) if model is not None else self._model_type,
        }

    def __setstate__(self, state):
        self.symbol = state["symbol"]
        self.klass = state["klass"]
        self._arguments = MappingProxyType(state["arguments"])
        self._model = None
        self._model_type = state["model_type"]


def _to_map(value: Any) -> Any:
    if isinstance(value, UninstantiatedDescribable):
        return value.to_map()
    if isinstance(value, (list, tuple)):
        return [_to_map(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _to_map(v) for k, v in value.items()}
    return value


def _to_plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class UninstantiatedConstant:
    """A named constant, resolved against the expected type when it is instantiated.

    Example:
        >>> UninstantiatedConstant("ONE").instantiate(Values, binder.symbols)  # Values.ONE
    """

    name: str

    def instantiate(self, base: type, lookup: "SymbolLookup") -> Any:
        """Resolve this constant as a value of ``base``.

        A constant carrying a matching symbol wins; otherwise an enum member of the
        same name is used.

        Raises:
            ArgumentError: If nothing of that name is known for ``base``.
        """
        candidate = lookup.find_const(base, self.name)
        if candidate is not None:
            return candidate
        if inspect.isclass(base) and issubclass(base, Enum) and self.name in base.__members__:
            return base[self.name]
        raise ArgumentError(f"No such property: {self.name}")
