"""compnav error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index (parsing, caches, file access)
- 9xxx: Internal

Errors never escape the resolver boundary. They are logged and kept in the
resolver's diagnostics ring so a host can display them.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    PARSE_GRAMMAR_UNAVAILABLE = 3001
    CACHE_INCONSISTENCY = 3002
    FILE_ACCESS_ERROR = 3003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CompNavError(Exception):
    """Base error with structured context for diagnostics."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'FILE_ACCESS_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for diagnostics snapshots."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CompNavError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ParseError(CompNavError):
    """Source could not be parsed at all (malformed input is tolerated)."""

    @classmethod
    def grammar_unavailable(cls, language: str, reason: str) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_GRAMMAR_UNAVAILABLE,
            message=f"Grammar not available for {language}: {reason}",
            details={"language": language, "reason": reason},
        )


class CacheInconsistency(CompNavError):
    """A cached index no longer matches the document it was built from."""

    @classmethod
    def stale(
        cls,
        key: str,
        *,
        cached_hash: str,
        cached_version: int,
        content_hash: str,
        version: int,
    ) -> "CacheInconsistency":
        return cls(
            code=ErrorCode.CACHE_INCONSISTENCY,
            message=f"Stale index for {key}",
            retryable=True,
            details={
                "key": key,
                "cached_hash": cached_hash,
                "cached_version": cached_version,
                "content_hash": content_hash,
                "version": version,
            },
        )


class FileAccessError(CompNavError):
    """A sibling script or directory could not be read."""

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.FILE_ACCESS_ERROR,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(CompNavError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
