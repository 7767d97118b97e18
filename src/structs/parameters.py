"""Build parameters: definitions declare them, values carry what a run was given.

Only definitions are registered as extensions. The value class belonging to a
definition is found by naming convention: ``FooDefinition`` pairs with ``FooValue``
in the same module.
"""

import inspect
import logging
from typing import Optional

from structs.errors import ArgumentError
from structs.registry import ExtensionRegistry, qualified_name

__all__ = [
    "ParameterDefinition",
    "ParameterValue",
    "parameter_value_class",
    "parameter_definition_class",
]

logger = logging.getLogger(__name__)


class ParameterDefinition:
    """Declares a named build parameter."""

    def __init__(self, name: str):
        self.name = name


class ParameterValue:
    """The value of a named build parameter."""

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return type(other) is type(self) and vars(other) == vars(self)

    def __hash__(self):
        return hash((type(self), self.name))


def _paired_class(cls: type, suffix: str, replacement: str, base: type, registry: ExtensionRegistry) -> Optional[type]:
    name = qualified_name(cls)
    if not name.endswith(suffix):
        return None
    paired_name = name[: -len(suffix)] + replacement
    try:
        paired = registry.load_class(paired_name)
    except ArgumentError:
        logger.debug(f"No {replacement.lower()} class {paired_name} for {name}")
        return None
    return paired if inspect.isclass(paired) and issubclass(paired, base) else None


def parameter_value_class(definition_class: type, registry: ExtensionRegistry) -> Optional[type]:
    """The ParameterValue class named after a ParameterDefinition class, if there is one.

    Example:
        >>> parameter_value_class(BooleanParameterDefinition, registry)  # BooleanParameterValue
    """
    return _paired_class(definition_class, "Definition", "Value", ParameterValue, registry)


def parameter_definition_class(value_class: type, registry: ExtensionRegistry) -> Optional[type]:
    """The ParameterDefinition class named after a ParameterValue class, if there is one."""
    return _paired_class(value_class, "Value", "Definition", ParameterDefinition, registry)
