"""Tree-sitter parsing for component scripts.

This module provides an error-recovering JavaScript/TypeScript parser:
- Grammar loading (cached per parser instance)
- Best-effort trees for malformed input (tree-sitter never aborts a parse)
- Character-based positions (tree-sitter reports byte columns)

`TreeSitterParser.parse` never raises. When a grammar cannot be loaded the
result has no root node and carries the ParseError that explains why.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

import structlog
import tree_sitter

from compnav.config.constants import TYPESCRIPT_EXTENSIONS
from compnav.core.errors import ParseError
from compnav.index._internal.parsing.sanitize import sanitize_script

log = structlog.get_logger()

JAVASCRIPT = "javascript"
TYPESCRIPT = "typescript"

# language -> (module, language function)
_GRAMMARS: dict[str, tuple[str, str]] = {
    JAVASCRIPT: ("tree_sitter_javascript", "language"),
    TYPESCRIPT: ("tree_sitter_typescript", "language_typescript"),
}


def language_for(resource_id: str) -> str:
    """Grammar name for a resource, from its extension."""
    if PurePath(resource_id).suffix.lower() in TYPESCRIPT_EXTENSIONS:
        return TYPESCRIPT
    return JAVASCRIPT


@dataclass
class ParseResult:
    """Result of parsing one script."""

    tree: Any  # Tree-sitter Tree (not serializable)
    root_node: Any  # Tree-sitter Node, None when the grammar failed to load
    language: str
    error_count: int
    total_nodes: int
    source: bytes = b""
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.root_node is not None

    def text(self, node: Any) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", "replace")

    def position(self, node: Any) -> tuple[int, int]:
        """(row, column) of the node start, column counted in characters."""
        row, byte_col = node.start_point
        line_start = node.start_byte - byte_col
        column = len(self.source[line_start : node.start_byte].decode("utf-8", "replace"))
        return row, column


@dataclass
class TreeSitterParser:
    """
    Tree-sitter parser for component scripts.

    Usage::

        parser = TreeSitterParser()
        result = parser.parse(source_text, language="javascript")
        if result.ok:
            walk(result.root_node)
    """

    sanitize: bool = True
    _parser: Any = field(default=None, repr=False)
    _languages: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        """Initialize the parser."""
        self._parser = tree_sitter.Parser()
        self._languages = {}

    def _get_language(self, lang_name: str) -> Any:
        """Get or load a Tree-sitter language."""
        if lang_name in self._languages:
            return self._languages[lang_name]

        module_name, func_name = _GRAMMARS.get(lang_name, _GRAMMARS[JAVASCRIPT])
        try:
            mod = importlib.import_module(module_name)
            lang = tree_sitter.Language(getattr(mod, func_name)())
        except (ImportError, AttributeError, TypeError, ValueError) as err:
            raise ParseError.grammar_unavailable(lang_name, str(err)) from err
        self._languages[lang_name] = lang
        return lang

    def parse(self, text: str, *, language: str = JAVASCRIPT) -> ParseResult:
        """
        Parse script text with Tree-sitter.

        Args:
            text: Script source. Server-side template islands are masked first.
            language: "javascript" or "typescript".

        Returns:
            ParseResult with tree, language, and error info.
        """
        source = (sanitize_script(text) if self.sanitize else text).encode(
            "utf-8", "surrogatepass"
        )
        try:
            ts_lang = self._get_language(language)
        except ParseError as err:
            log.warning("parse_failed", language=language, reason=err.message)
            return ParseResult(
                tree=None,
                root_node=None,
                language=language,
                error_count=0,
                total_nodes=0,
                source=source,
                error=err,
            )

        self._parser.language = ts_lang
        tree = self._parser.parse(source)

        # Count errors and total nodes
        error_count = 0
        total_nodes = 0
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            total_nodes += 1
            if node.type == "ERROR" or node.is_missing:
                error_count += 1
            stack.extend(node.children)

        if error_count:
            log.debug("parse_recovered", language=language, error_count=error_count)

        return ParseResult(
            tree=tree,
            root_node=tree.root_node,
            language=language,
            error_count=error_count,
            total_nodes=total_nodes,
            source=source,
        )
