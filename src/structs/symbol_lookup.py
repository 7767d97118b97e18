"""Resolution of symbol tokens to implementations, with positive and negative caching.

Positive results are kept for the life of the lookup. Negative results are kept
until the set of loaded components changes, since a newly loaded component may
supply a symbol that was previously missing.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from structs.domain import ConstSymbol, Descriptor, Symbol
from structs.registry import ExtensionRegistry

__all__ = ["SymbolLookup"]

logger = logging.getLogger(__name__)

NO_HIT = object()


@dataclass(frozen=True)
class _Key:
    tag: str
    type: Any
    symbol: str
    context: Optional[type]


def _prefers_context(marker: Symbol, context: Optional[type]) -> bool:
    return context is not None and any(
        isinstance(c, type) and issubclass(c, context) for c in marker.context
    )


class SymbolLookup:
    """Finds implementations by symbol.

    Safe for concurrent use: the caches are plain dictionaries whose entries are
    written idempotently, and the negative cache is invalidated by swapping in a
    fresh dictionary under a lock so that readers see either the old or the new
    cache, never a partially cleared one.
    """

    def __init__(self, registry: ExtensionRegistry):
        self._registry = registry
        self._cache: dict[_Key, Any] = {}
        self._no_hit_cache: dict[_Key, object] = {}
        self._component_names: frozenset[str] = frozenset()
        self._lock = threading.Lock()

    def find(self, type_: type, symbol: str, context: Optional[type] = None) -> Optional[Any]:
        """Find the singleton instance of a symbol-marked class.

        Args:
            type_: Restrict the search to classes assignable to this type.
            symbol: The symbol token.
            context: Prefer classes listing a subclass of this type in their context.

        Returns:
            The instance, or None if no marked class matches.
        """
        if not _is_identifier(symbol):
            return None
        key = _Key("find", type_, symbol, context)
        hit = self._cache.get(key)
        if hit is not None:
            return hit
        if self._known_missing(key):
            return None

        candidates = [
            m for m in self._registry.list_marked(Symbol)
            if issubclass(m.target, type_) and symbol in m.marker.values
        ]
        if not candidates:
            self._no_hit_cache[key] = NO_HIT
            return None

        chosen = next(
            (m for m in candidates if _prefers_context(m.marker, context)), candidates[0]
        )
        instance = self._registry.instance_of(chosen.target)
        self._cache[key] = instance
        return instance

    def find_descriptor(
        self, type_: type, symbol: str, context: Optional[type] = None
    ) -> Optional[Descriptor]:
        """Find the descriptor of a describable class whose symbol matches.

        Args:
            type_: Restrict the search to descriptors governing a subclass of this type.
            symbol: The symbol token.
            context: Prefer descriptors listing a subclass of this type in their context.
        """
        if not _is_identifier(symbol):
            return None
        key = _Key("find_descriptor", type_, symbol, context)
        hit = self._cache.get(key)
        if hit is not None:
            return hit
        if self._known_missing(key):
            return None

        candidates = [
            d for d in self._registry.descriptors()
            if d.symbol is not None
            and symbol in d.symbol.values
            and issubclass(d.clazz, type_)
        ]
        if not candidates:
            self._no_hit_cache[key] = NO_HIT
            return None

        descriptor = next(
            (d for d in candidates if _prefers_context(d.symbol, context)), candidates[0]
        )
        self._cache[key] = descriptor
        return descriptor

    def find_const(self, type_: type, symbol: str) -> Optional[Any]:
        """Find a constant of the given type named by a constant symbol.

        Constants do not change once registered, so misses are not cached.
        """
        for marked in self._registry.list_marked(ConstSymbol):
            if symbol not in marked.marker.values:
                continue
            value = getattr(marked.target, marked.attribute, None)
            if isinstance(value, type_):
                return value
        return None

    def _known_missing(self, key: _Key) -> bool:
        self._check_components_for_change_and_refresh()
        return self._no_hit_cache.get(key) is NO_HIT

    def _check_components_for_change_and_refresh(self):
        """Purge the negative cache if the set of loaded components has changed."""
        names = self._registry.loaded_component_names()
        with self._lock:
            if names != self._component_names:
                if self._no_hit_cache:
                    logger.debug(
                        f"Components changed to {sorted(names)}, dropping "
                        f"{len(self._no_hit_cache)} negative symbol lookups"
                    )
                self._component_names = names
                self._no_hit_cache = {}


def _is_identifier(symbol: Any) -> bool:
    return isinstance(symbol, str) and symbol.isidentifier()
