__all__ = [
    "StructsError",
    "ConfigurationError",
    "ArgumentError",
    "UnsupportedOperationError",
]


class StructsError(Exception):
    """Base class for errors raised while binding generic arguments to typed objects."""

    pass


class ConfigurationError(StructsError):
    """Raised when a type's construction contract is malformed.

    Examples are a designated constructor whose arity disagrees with the declared
    parameter names, or a data-bound setter that does not follow the ``set_<name>``
    single-argument convention. These are fatal at model build time.
    """

    pass


class ArgumentError(StructsError, ValueError):
    """Raised when a generic argument map cannot be turned into an instance."""

    pass


class UnsupportedOperationError(StructsError):
    """Raised when an instance or type does not follow the expected structure."""

    pass
