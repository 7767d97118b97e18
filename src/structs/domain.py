"""Domain models used throughout the framework."""

from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = [
    "DEFAULT_COMPONENT",
    "Symbol",
    "ConstSymbol",
    "DataBoundSetter",
    "DATA_BOUND",
    "Descriptor",
    "Marked",
    "Secret",
]

DEFAULT_COMPONENT = "core"
"""Component name given to registrations that do not state one."""


@dataclass(frozen=True)
class Symbol:
    """Short names by which an implementation can be referred to.

    Attributes:
        values: The symbol tokens. Each must be a valid identifier to be found.
        context: Types in whose context this symbol is preferred when several
            implementations share a token.
    """

    values: tuple[str, ...]
    context: tuple[type, ...] = ()


@dataclass(frozen=True)
class ConstSymbol:
    """Symbol tokens naming a constant attribute of a class."""

    values: tuple[str, ...]


@dataclass(frozen=True)
class DataBoundSetter:
    """Marks an optional parameter, either on a setter method or inside ``Annotated``.

    Example:
        >>> class Widget:
        ...     label: Annotated[Optional[str], DATA_BOUND] = None
    """

    deprecated: bool = False


DATA_BOUND = DataBoundSetter()


@dataclass(frozen=True)
class Descriptor:
    """Registration metadata about a describable implementation class.

    Attributes:
        clazz: The class this descriptor governs.
        symbol: Symbol tokens the class can be referred to by, if any.
        display_name: Human readable name of the class.
        component: Name of the component that contributed the registration.
        customizer: Optional :class:`~structs.custom.CustomDescribableModel`.
    """

    clazz: type
    symbol: Optional[Symbol]
    display_name: str
    component: str = DEFAULT_COMPONENT
    customizer: Any = field(default=None, compare=False)

    @property
    def symbols(self) -> tuple[str, ...]:
        return self.symbol.values if self.symbol else ()


@dataclass(frozen=True)
class Marked:
    """A registered target carrying a marker.

    For a :class:`Symbol` the target is the marked class; for a :class:`ConstSymbol`
    it is the class owning the constant named by ``attribute``.
    """

    target: type
    marker: Any
    component: str = DEFAULT_COMPONENT
    attribute: Optional[str] = None


class Secret:
    """A sensitive string that never renders its plain text.

    Values of this type are redacted from error messages and log records.
    """

    __slots__ = ("_plain_text",)

    def __init__(self, plain_text: str):
        self._plain_text = plain_text

    @classmethod
    def from_string(cls, value: Any) -> "Secret":
        if isinstance(value, Secret):
            return value
        return cls(str(value))

    def get_plain_text(self) -> str:
        return self._plain_text

    def __eq__(self, other):
        return isinstance(other, Secret) and other._plain_text == self._plain_text

    def __hash__(self):
        return hash(self._plain_text)

    def __repr__(self):
        return "Secret(******)"

    __str__ = __repr__
