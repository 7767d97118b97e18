"""Registration and lookup of extension implementations.

The registry is the host side of the binding engine: it knows which implementation
classes exist for a base type, which classes and constants carry symbols, which
components contributed them, and how to load a class by name.
"""

import inspect
import logging
import pkgutil
import threading
from typing import Any, Callable, Iterable, Optional, Union

from structs.domain import (
    DEFAULT_COMPONENT,
    ConstSymbol,
    Descriptor,
    Marked,
    Symbol,
)
from structs.errors import ArgumentError, ConfigurationError

__all__ = [
    "ExtensionRegistry",
    "qualified_name",
]

logger = logging.getLogger(__name__)

SymbolSpec = Union[None, str, Iterable[str]]


def qualified_name(cls: type) -> str:
    """Fully qualified name of a class, used as its ``$class`` reference.

    Example:
        >>> qualified_name(pathlib.PurePosixPath)  # Returns "pathlib.PurePosixPath"
    """
    return f"{cls.__module__}.{cls.__qualname__}"


def _symbol_values(symbols: SymbolSpec) -> tuple[str, ...]:
    if symbols is None:
        return ()
    if isinstance(symbols, str):
        return (symbols,)
    return tuple(symbols)


class ExtensionRegistry:
    """Registry of describable implementations, symbol-marked classes and constants.

    Registrations are grouped by component name. The set of component names is what
    :class:`~structs.symbol_lookup.SymbolLookup` watches to decide when negative
    lookups may have become stale.

    Example:
        >>> registry = ExtensionRegistry()
        >>>
        >>> @registry.extension(symbols="net", display_name="internet")
        ... class Internet(Tech):
        ...     pass
        >>>
        >>> registry.list_implementations(Tech)  # Returns {Internet}
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._descriptors: dict[type, Descriptor] = {}
        self._marked: list[Marked] = []
        self._instances: dict[type, Any] = {}
        self._help: dict[str, str] = {}

    def register(self, descriptor: Descriptor):
        """Register a descriptor explicitly.

        Args:
            descriptor: The Descriptor to be registered. A later registration for the
                same class replaces the earlier one.
        """
        with self._lock:
            self._descriptors[descriptor.clazz] = descriptor
        logger.debug(f"Registered {qualified_name(descriptor.clazz)} from {descriptor.component}")

    def extension(
        self,
        symbols: SymbolSpec = None,
        context: Iterable[type] = (),
        display_name: Optional[str] = None,
        component: str = DEFAULT_COMPONENT,
        customizer: Any = None,
    ) -> Callable[[type], type]:
        """Decorator registering a class as a describable implementation.

        Args:
            symbols: Optional symbol token(s) naming the class.
            context: Types in whose context the symbols are preferred.
            display_name: Human readable name; defaults to the class name.
            component: Name of the component contributing the class.
            customizer: Optional CustomDescribableModel for the class.

        Returns:
            A decorator that registers the class and returns it unchanged.
        """

        def decorator(cls: type) -> type:
            if not inspect.isclass(cls):
                raise ConfigurationError(f"{cls} is not a class")
            values = _symbol_values(symbols)
            self.register(
                Descriptor(
                    cls,
                    Symbol(values, tuple(context)) if values else None,
                    display_name or cls.__name__,
                    component,
                    customizer,
                )
            )
            return cls

        return decorator

    def symbol(
        self,
        symbols: SymbolSpec,
        context: Iterable[type] = (),
        component: str = DEFAULT_COMPONENT,
    ) -> Callable[[type], type]:
        """Decorator marking a plain class with symbol token(s).

        Marked classes are found by :meth:`SymbolLookup.find`, which returns their
        singleton instance.
        """

        def decorator(cls: type) -> type:
            marker = Symbol(_symbol_values(symbols), tuple(context))
            with self._lock:
                self._marked.append(Marked(cls, marker, component))
            return cls

        return decorator

    def constants(self, component: str = DEFAULT_COMPONENT, **symbols: SymbolSpec) -> Callable[[type], type]:
        """Decorator giving symbol token(s) to constant attributes of a class.

        Example:
            >>> @registry.constants(ONE="One", TWO="Two")
            ... class Values:
            ...     ONE = ...
        """

        def decorator(owner: type) -> type:
            with self._lock:
                for attribute, values in symbols.items():
                    self._marked.append(
                        Marked(owner, ConstSymbol(_symbol_values(values)), component, attribute)
                    )
            return owner

        return decorator

    def register_help(self, target: type, text: str, parameter: Optional[str] = None):
        """Register help text for a class, or for one of its parameters."""
        with self._lock:
            self._help[_help_key(target, parameter)] = text

    def descriptors(self) -> list[Descriptor]:
        """All registered descriptors, in registration order."""
        with self._lock:
            return list(self._descriptors.values())

    def descriptor_for(self, cls: type) -> Optional[Descriptor]:
        return self._descriptors.get(cls)

    def list_implementations(self, base: Any) -> set[type]:
        """All registered implementation classes assignable to ``base``."""
        if not inspect.isclass(base):
            return set()
        return {d.clazz for d in self.descriptors() if issubclass(d.clazz, base)}

    def list_marked(self, marker_type: type) -> list[Marked]:
        """All registered targets carrying a marker of the given type."""
        with self._lock:
            return [m for m in self._marked if isinstance(m.marker, marker_type)]

    def loaded_component_names(self) -> frozenset[str]:
        """Names of the components that have contributed registrations so far."""
        with self._lock:
            return frozenset(
                [d.component for d in self._descriptors.values()]
                + [m.component for m in self._marked]
            )

    def load_class(self, name: str) -> type:
        """Load a class by fully qualified name.

        Registered classes are matched first, so classes that are not importable by
        module path (for example those defined inside functions) still resolve.

        Raises:
            ArgumentError: If no class can be found under that name.
        """
        with self._lock:
            known = list(self._descriptors) + [m.target for m in self._marked]
        for cls in known:
            if qualified_name(cls) == name:
                return cls
        try:
            resolved = pkgutil.resolve_name(name)
        except (ImportError, AttributeError, ValueError) as x:
            raise ArgumentError(f"Unable to load class {name}") from x
        if not inspect.isclass(resolved):
            raise ArgumentError(f"{name} is not a class")
        return resolved

    def instance_of(self, cls: type) -> Any:
        """Singleton instance of a symbol-marked class, created on first use."""
        with self._lock:
            if cls not in self._instances:
                self._instances[cls] = cls()
            return self._instances[cls]

    def resolve_text(self, target: type, parameter: Optional[str] = None) -> Optional[str]:
        return self._help.get(_help_key(target, parameter))


def _help_key(target: type, parameter: Optional[str]) -> str:
    if parameter is None:
        return qualified_name(target)
    return f"{qualified_name(target)}#{parameter}"
