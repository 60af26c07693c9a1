"""Bar sources feeding the extremes engine."""

from hilo.data.sources import (
    BarSource,
    CSVBarSource,
    CSVDirectoryBarSource,
    InMemoryBarSource,
    SyntheticBarSource,
    resolve_bar_source,
)

__all__ = [
    "BarSource",
    "CSVBarSource",
    "CSVDirectoryBarSource",
    "InMemoryBarSource",
    "SyntheticBarSource",
    "resolve_bar_source",
]
