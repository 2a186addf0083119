"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (COMPNAV__SECTION__KEY)
3. Repo YAML (.compnav/config.yaml)
4. Global YAML (~/.config/compnav/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    COMPNAV__<SECTION>__<KEY>=<VALUE>

Examples:
    COMPNAV__LOGGING__LEVEL=DEBUG
    COMPNAV__INDEX__MAX_INDEX_ENTRIES=120
    COMPNAV__RESOLVER__ALIAS_SCAN_WINDOW=200
    COMPNAV__SCRIPTS__SCRIPT_DIR=static/js
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        COMPNAV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every cache hit and build.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index cache configuration.

    Env vars:
        COMPNAV__INDEX__MAX_INDEX_ENTRIES: Component indices kept in memory
        COMPNAV__INDEX__MAX_TEMPLATE_ENTRIES: Template indices kept in memory
        COMPNAV__INDEX__PRUNE_AGE_SEC: Age after which unused entries are pruned
        COMPNAV__INDEX__DIAGNOSTICS_MAX: Recorded internal failures to keep
    """

    max_index_entries: int = Field(
        default=60,
        description="Component indices kept before the oldest is evicted.",
    )
    max_template_entries: int = Field(
        default=50,
        description="Template scope indices kept before the oldest is evicted.",
    )
    prune_age_sec: float = Field(
        default=3600.0,
        description="Default age for prune_by_age when the host passes none.",
    )
    diagnostics_max: int = Field(
        default=100,
        description="Size of the diagnostics ring of recorded internal failures.",
    )

    @field_validator("max_index_entries", "max_template_entries", "diagnostics_max")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Capacity must be at least 1, got {v}")
        return v


class ResolverConfig(BaseModel):
    """Definition resolver configuration.

    Env vars:
        COMPNAV__RESOLVER__ALIAS_SCAN_WINDOW: Lines scanned backward for `x = this`
    """

    alias_scan_window: int = Field(
        default=400,
        description="Lines scanned backward from the cursor to prove a self-reference alias.",
    )
    self_ref_keywords: list[str] = Field(
        default_factory=lambda: ["this"],
        description="Keywords that denote the component instance.",
    )
    known_aliases: list[str] = Field(
        default_factory=lambda: ["that"],
        description="Identifiers always treated as self-reference aliases, without scanning.",
    )
    attribute_blacklist: list[str] = Field(
        default_factory=lambda: [
            "class",
            "id",
            "style",
            "src",
            "href",
            "alt",
            "title",
            "width",
            "height",
            "type",
            "value",
            "name",
            "placeholder",
            "rel",
            "for",
            "aria-label",
        ],
        description="Plain HTML attribute names never resolved as component members.",
    )

    @field_validator("alias_scan_window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Alias scan window must be at least 1, got {v}")
        return v


class ScriptsConfig(BaseModel):
    """Sibling script discovery configuration.

    Env vars:
        COMPNAV__SCRIPTS__SCRIPT_DIR: Directory (relative to the page) searched for scripts
        COMPNAV__SCRIPTS__SCRIPT_SUFFIX: Suffix appended to the page stem
        COMPNAV__SCRIPTS__DISCOVERY_TTL_SEC: How long a discovery result is reused
    """

    script_dir: str = Field(
        default="js",
        description="Directory next to the page that holds its component scripts.",
    )
    script_suffix: str = Field(
        default=".dev.js",
        description="File name suffix: page.html -> page.dev.js.",
    )
    script_patterns: list[str] = Field(
        default_factory=list,
        description="Explicit script paths tried first. ${dir} and ${base} are expanded.",
    )
    discovery_ttl_sec: float = Field(
        default=30.0,
        description="Reuse window for sibling discovery results.",
    )
    max_search_depth: int = Field(
        default=8,
        description="Maximum directory depth below script_dir.",
    )

    @field_validator("max_search_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Search depth must be non-negative, got {v}")
        return v


class CompNavConfig(BaseModel):
    """Root configuration for compnav.

    All settings can be configured via:
    1. Environment variables: COMPNAV__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    scripts: ScriptsConfig = Field(default_factory=ScriptsConfig)
