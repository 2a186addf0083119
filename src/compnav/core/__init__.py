"""Core module exports."""

from compnav.core.errors import (
    CacheInconsistency,
    CompNavError,
    ConfigError,
    ErrorCode,
    FileAccessError,
    InternalError,
    ParseError,
)
from compnav.core.hashing import combine_hashes, content_hash
from compnav.core.logging import (
    configure_logging,
    current_resolution,
    get_logger,
    resolution_context,
)

__all__ = [
    # Errors
    "CacheInconsistency",
    "CompNavError",
    "ConfigError",
    "ErrorCode",
    "FileAccessError",
    "InternalError",
    "ParseError",
    # Hashing
    "combine_hashes",
    "content_hash",
    # Logging
    "configure_logging",
    "current_resolution",
    "get_logger",
    "resolution_context",
]
