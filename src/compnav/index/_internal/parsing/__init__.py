"""Tree-sitter parsing for component scripts."""

from compnav.index._internal.parsing.sanitize import sanitize_script
from compnav.index._internal.parsing.treesitter import (
    JAVASCRIPT,
    TYPESCRIPT,
    ParseResult,
    TreeSitterParser,
    language_for,
)

__all__ = [
    "TreeSitterParser",
    "ParseResult",
    "JAVASCRIPT",
    "TYPESCRIPT",
    "language_for",
    "sanitize_script",
]
