"""Structs: binding between typed objects and generic, JSON-like argument maps.

Structs lets configuration files, textual front ends or remote callers build and
inspect typed object graphs without importing the concrete classes. A class's
construction contract (its ``__init__`` or a designated classmethod) and its data
bound setters are introspected into a model; the model instantiates the class from
a map of arguments and dissects instances back into such maps, leaving out
optional values that are still at their default. Implementations of a base type
are chosen by class name or by a short symbol registered with the class.

Key Features:
    - Decorator-driven registration of implementations, symbols and constants
    - Polymorphic nested objects, lists, maps, enums and string-backed types
    - Default elision through control objects, including deprecated aliases
    - Symbol lookup with negative caching invalidated by newly loaded components
    - Schema rendering for documentation, safe for self-referential types

Basic Usage:
    >>> from structs.binder import Binder
    >>> from structs.registry import ExtensionRegistry
    >>>
    >>> registry = ExtensionRegistry()
    >>>
    >>> @registry.extension(symbols="echo")
    ... class Echo(Step):
    ...     def __init__(self, message: str):
    ...         self.message = message
    >>>
    >>> binder = Binder(registry)
    >>> step = binder.model_of(Pipeline).instantiate({"steps": [{"$symbol": "echo", "message": "hi"}]})
    >>> binder.uninstantiate(step).to_map()

The framework consists of several core modules:
    - registry: Registration of implementations, symbols, constants and help text
    - symbol_lookup: Symbol resolution with positive and negative caches
    - parameter_types: Classification of declared types
    - model: Introspection, instantiation and uninstantiation
    - uninstantiated: The intermediate representation and reserved keys
    - binder: Model cache, class resolution and the process-wide binder
    - custom: Per-type customization hooks
    - parameters: Build parameter definitions and their paired values
    - config: Runtime settings
    - errors: Framework-specific exceptions
"""
