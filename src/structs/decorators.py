"""Decorators marking the construction and mutation contract of bindable types."""

from typing import Any, Callable, Optional

from structs.domain import DataBoundSetter

__all__ = ["data_bound_constructor", "data_bound_setter", "set_metadata"]


def set_metadata(target: Any, attribute: str, value: Any) -> Any:
    """Attach a marker to a function, unwrapping classmethods and staticmethods."""
    func = getattr(target, "__func__", target)
    setattr(func, attribute, value)
    return target


def data_bound_constructor(target: Callable) -> Callable:
    """Designate ``__init__`` or a classmethod as the primary construction operation.

    Example:
        >>> class Point:
        ...     @classmethod
        ...     @data_bound_constructor
        ...     def of(cls, x: int, y: int) -> "Point":
        ...         ...
    """
    return set_metadata(target, "__data_bound_constructor__", True)


def data_bound_setter(
    target: Optional[Callable] = None, *, deprecated: bool = False
) -> Callable:
    """Mark a ``set_<name>`` method as the mutator of optional parameter ``<name>``.

    Usable bare (``@data_bound_setter``) or with arguments
    (``@data_bound_setter(deprecated=True)``).
    """
    marker = DataBoundSetter(deprecated=deprecated)

    def decorator(func: Callable) -> Callable:
        return set_metadata(func, "__data_bound_setter__", marker)

    if target is not None:
        return decorator(target)
    return decorator
