"""Exception hierarchy for the extremes engine.

All engine-specific exceptions derive from :class:`HiloError` so callers can
catch every failure of a symbol's pipeline uniformly.
"""

from __future__ import annotations


class HiloError(Exception):
    """Base class for extremes-engine exceptions.

    Derived exceptions should extend this class so that callers can catch all
    engine-specific errors uniformly.
    """


class ConfigError(HiloError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(HiloError):
    """Raised when reading bars from a bar source fails."""


class DataValidationError(HiloError):
    """Raised when input data fails validation checks.

    Named DataValidationError to avoid conflict with pydantic's ValidationError.
    """


class MisalignedBasesError(DataValidationError):
    """Raised when the HIGH and CLOSE basis series of a symbol do not line up.

    This is an upstream input-consistency bug, so the symbol's computation is
    aborted instead of silently truncated.

    :param symbol: Symbol whose series are misaligned.
    :param message: Description of the mismatch.
    """

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol


__all__ = [
    "HiloError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
    "MisalignedBasesError",
]
