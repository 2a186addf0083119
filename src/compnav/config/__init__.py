"""Config module exports."""

from compnav.config.loader import load_config
from compnav.config.models import (
    CompNavConfig,
    IndexConfig,
    LoggingConfig,
    ResolverConfig,
    ScriptsConfig,
)

__all__ = [
    "load_config",
    "CompNavConfig",
    "IndexConfig",
    "LoggingConfig",
    "ResolverConfig",
    "ScriptsConfig",
]
