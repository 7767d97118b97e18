"""Runtime settings for the binding engine."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

__all__ = ["Settings", "STRICT_PARAMETER_CHECKING_ENV"]

STRICT_PARAMETER_CHECKING_ENV = "STRUCTS_STRICT_PARAMETER_CHECKING"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Settings consulted by :class:`~structs.model.DescribableModel`.

    Attributes:
        strict_parameter_checking: When True, unknown keys in an argument map make
            ``instantiate`` fail with an ArgumentError. When False (the default) they
            are reported to the caller's listener and otherwise ignored.
    """

    strict_parameter_checking: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Example:
            >>> Settings.from_env({"STRUCTS_STRICT_PARAMETER_CHECKING": "true"})
            Settings(strict_parameter_checking=True)
        """
        environ = os.environ if environ is None else environ
        value = environ.get(STRICT_PARAMETER_CHECKING_ENV, "")
        return cls(strict_parameter_checking=value.strip().lower() in _TRUTHY)
