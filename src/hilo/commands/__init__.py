"""CLI command implementations for the extremes engine.

Each command module provides configuration loading and validation for one
family of CLI commands.
"""

from hilo.commands.scan import load_scan_config

__all__ = [
    "load_scan_config",
]
