"""The binding engine: model cache, implementation discovery and class resolution."""

import inspect
import logging
import threading
from typing import Any, Mapping, Optional

from structs.config import Settings
from structs.domain import Symbol
from structs.errors import ArgumentError
from structs.model import DescribableModel
from structs.parameter_types import is_abstract
from structs.parameters import (
    ParameterDefinition,
    ParameterValue,
    parameter_definition_class,
    parameter_value_class,
)
from structs.registry import ExtensionRegistry, qualified_name
from structs.symbol_lookup import SymbolLookup
from structs.uninstantiated import CLAZZ, UninstantiatedDescribable

__all__ = ["Binder", "get_binder", "set_binder"]

logger = logging.getLogger(__name__)


class Binder:
    """Converts between typed objects and generic argument maps for one registry.

    Models are cached per class for the life of the binder. Concurrent callers may
    build the same model twice; the first one stored wins.

    Attributes:
        registry: The host registry listing implementations, symbols and components.
        settings: Settings consulted by the models.
        symbols: The symbol lookup over ``registry``.

    Example:
        >>> binder = Binder(registry, Settings(strict_parameter_checking=True))
        >>> tech = binder.instantiate(Internet, {"$symbol": "net"})
    """

    def __init__(self, registry: ExtensionRegistry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings if settings is not None else Settings.from_env()
        self.symbols = SymbolLookup(registry)
        self._models: dict[type, DescribableModel] = {}

    def model_of(self, cls: type) -> DescribableModel:
        """The model of a class, built on first use.

        Raises:
            ConfigurationError: If the class has a malformed construction contract.
        """
        model = self._models.get(cls)
        if model is None:
            model = self._models.setdefault(cls, DescribableModel(cls, self))
        return model

    def instantiate(self, cls: type, arguments: Mapping[str, Any], listener: Optional[logging.Logger] = None) -> Any:
        return self.model_of(cls).instantiate(arguments, listener)

    def uninstantiate(self, instance: Any) -> UninstantiatedDescribable:
        return self.model_of(type(instance)).uninstantiate(instance)

    def find_subtypes(self, supertype: Any) -> set[type]:
        """Known implementation classes assignable to ``supertype``.

        Value classes paired with registered parameter definitions count as
        implementations of :class:`~structs.parameters.ParameterValue`.
        """
        subtypes = self.registry.list_implementations(supertype)
        if supertype is ParameterValue:
            for definition in self.find_subtypes(ParameterDefinition):
                value_class = parameter_value_class(definition, self.registry)
                if value_class is not None:
                    subtypes.add(value_class)
        return subtypes

    def resolve_class(self, base: type, name: Optional[str] = None, symbol: Optional[str] = None) -> type:
        """Resolve the implementation of ``base`` named by class name or symbol.

        Args:
            base: Type the resolved class must be assignable to.
            name: Simple or fully qualified class name.
            symbol: Symbol of the implementation; consulted only without ``name``.

        Returns:
            The implementation class, or ``base`` itself when neither is given and it
            is concrete.

        Raises:
            ArgumentError: If the name is unknown or ambiguous, the symbol is unknown,
                or ``base`` is abstract and no implementation was named.
        """
        if name is not None:
            if "." in name:
                cls = self.registry.load_class(name)
                if not issubclass(cls, base):
                    raise ArgumentError(f"{name} is not an implementation of {qualified_name(base)}")
                return cls
            found = None
            for candidate in sorted(self.find_subtypes(base), key=qualified_name):
                if candidate.__name__ == name:
                    if found is not None:
                        raise ArgumentError(
                            f"{name} as a {qualified_name(base)} could mean either "
                            f"{qualified_name(found)} or {qualified_name(candidate)}"
                        )
                    found = candidate
            if found is None:
                raise ArgumentError(f"no known implementation of {qualified_name(base)} is named {name}")
            return found

        if symbol is not None:
            # The usual case: the descriptor carries the symbol.
            descriptor = self.symbols.find_descriptor(base, symbol)
            if descriptor is not None:
                return descriptor.clazz
            if base is ParameterValue:
                descriptor = self.symbols.find_descriptor(ParameterDefinition, symbol)
                if descriptor is not None:
                    value_class = parameter_value_class(descriptor.clazz, self.registry)
                    if value_class is not None:
                        return value_class
            if symbol in self.symbol_values(base):
                return base
            raise ArgumentError(f"no known implementation of {qualified_name(base)} is using symbol ‘{symbol}’")

        if is_abstract(base):
            raise ArgumentError(f"must specify {CLAZZ} with an implementation of {qualified_name(base)}")
        return base

    def symbol_values(self, target: Any) -> tuple[str, ...]:
        """Declared symbols of a describable class or instance, or of a plain marked class.

        A parameter value class with no symbols of its own answers with those of its
        paired definition.
        """
        cls = target if inspect.isclass(target) else type(target)
        descriptor = self.registry.descriptor_for(cls)
        if descriptor is not None:
            return descriptor.symbols
        for marked in self.registry.list_marked(Symbol):
            if marked.target is cls:
                return marked.marker.values
        if issubclass(cls, ParameterValue):
            definition = parameter_definition_class(cls, self.registry)
            if definition is not None:
                return self.symbol_values(definition)
        return ()

    def symbol_of(self, instance: Any) -> Optional[str]:
        """The first declared symbol of an instance, or None."""
        values = self.symbol_values(instance)
        return values[0] if values else None

    def customizer_for(self, cls: type) -> Any:
        descriptor = self.registry.descriptor_for(cls)
        return descriptor.customizer if descriptor is not None else None


_binder: Optional[Binder] = None
_binder_lock = threading.Lock()


def get_binder() -> Binder:
    """The process-wide binder, created over an empty registry on first use."""
    global _binder
    with _binder_lock:
        if _binder is None:
            _binder = Binder(ExtensionRegistry())
        return _binder


def set_binder(binder: Optional[Binder]):
    """Replace the process-wide binder; None discards it."""
    global _binder
    with _binder_lock:
        _binder = binder
