"""Rolling highs/lows analytics package root."""

from hilo.exceptions import (
    ConfigError,
    DataSourceError,
    DataValidationError,
    HiloError,
    MisalignedBasesError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "HiloError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
    "MisalignedBasesError",
]
