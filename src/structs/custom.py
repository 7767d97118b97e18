"""Fine-tuning of model behaviour for special cases such as backwards compatibility."""

from types import MappingProxyType
from typing import Any, Mapping

from structs.uninstantiated import UninstantiatedDescribable

__all__ = ["CustomDescribableModel", "deeply_immutable"]


class CustomDescribableModel:
    """Accepts variant inputs to ``instantiate`` or recommends variant outputs of ``uninstantiate``.

    Attach an instance to a type's descriptor through the ``customizer`` argument of
    :meth:`ExtensionRegistry.extension <structs.registry.ExtensionRegistry.extension>`.
    These are syntactic transformations: implementations see the reserved keys such
    as ``<anonymous>`` and ``$class`` exactly as the caller wrote them.

    Arguments passed to the hooks are immutable. To make changes, return a copy.

    Example:
        >>> class RenamedOption(CustomDescribableModel):
        ...     def custom_instantiate(self, arguments):
        ...         arguments = dict(arguments)
        ...         if "old_name" in arguments:
        ...             arguments["name"] = arguments.pop("old_name")
        ...         return arguments
    """

    def custom_instantiate(self, arguments: Mapping[str, Any]) -> Mapping[str, Any]:
        return arguments

    def custom_uninstantiate(self, ud: UninstantiatedDescribable) -> UninstantiatedDescribable:
        return ud


def deeply_immutable(value: Any) -> Any:
    """Read-only view of an argument map, or of the arguments of an UninstantiatedDescribable.

    Nested maps become read-only mappings and lists become tuples.
    """
    if isinstance(value, UninstantiatedDescribable):
        return value.with_arguments(deeply_immutable(value.arguments))
    if isinstance(value, Mapping):
        return MappingProxyType({k: deeply_immutable(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(deeply_immutable(v) for v in value)
    return value
