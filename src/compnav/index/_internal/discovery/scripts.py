"""Script discovery for markup pages.

A page's component usually lives in a sibling script found by convention
(`js/**/<stem>.dev.js`), or in an inline `<script>` block of the page itself.
Sub-components may be bound to `<script type="text/x-template">` blocks.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from compnav.config.constants import INLINE_COMPONENT_PATTERN, PRUNABLE_DIRS, X_TEMPLATE_TYPE
from compnav.config.models import ScriptsConfig

log = structlog.get_logger()

_SCRIPT_BLOCK = re.compile(r"<script\b([^>]*)>([\s\S]*?)</script\s*>", re.IGNORECASE)
_SRC_ATTR = re.compile(r"\bsrc\s*=", re.IGNORECASE)
_TYPE_ATTR = re.compile(r"\btype\s*=\s*[\"']?([^\"'\s>]+)", re.IGNORECASE)
_ID_ATTR = re.compile(r"\bid\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_GLOB_CHARS = ("*", "?", "[")


@dataclass(frozen=True, slots=True)
class InlineScript:
    """Body of an inline `<script>` block and where it starts in the page."""

    text: str
    line_offset: int
    column_offset: int


def _is_x_template(attrs: str) -> bool:
    m = _TYPE_ATTR.search(attrs)
    return m is not None and m.group(1).lower() == X_TEMPLATE_TYPE


def _line_col(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start


def find_inline_component_script(markup_text: str) -> InlineScript | None:
    """First inline script block that declares a component.

    Blocks with `src=` and x-template blocks are skipped.
    """
    for m in _SCRIPT_BLOCK.finditer(markup_text):
        attrs, body = m.group(1), m.group(2)
        if _SRC_ATTR.search(attrs) or _is_x_template(attrs):
            continue
        if not INLINE_COMPONENT_PATTERN.search(body):
            continue
        line, column = _line_col(markup_text, m.start(2))
        return InlineScript(body, line, column)
    return None


def x_template_id_at(markup_text: str, line: int) -> str | None:
    """`id` of the x-template block whose lines contain `line`."""
    for m in _SCRIPT_BLOCK.finditer(markup_text):
        attrs = m.group(1)
        if not _is_x_template(attrs):
            continue
        start = markup_text.count("\n", 0, m.start())
        end = start + markup_text.count("\n", m.start(), m.end())
        if start <= line <= end:
            id_match = _ID_ATTR.search(attrs)
            return id_match.group(1) if id_match else None
        if start > line:
            break
    return None


@dataclass
class _Discovery:
    paths: list[Path]
    checked_at: float


class ScriptLocator:
    """Finds the sibling scripts of markup pages, memoizing results briefly."""

    def __init__(
        self,
        config: ScriptsConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ScriptsConfig()
        self._clock = clock
        self._memo: dict[Path, _Discovery] = {}

    def find_sibling_scripts(self, markup_path: Path) -> list[Path]:
        """Scripts holding the component of a markup page.

        Configured patterns win; otherwise the first `<stem><suffix>` found
        by a sorted depth-first search of `<dir>/<script_dir>`.
        """
        markup_path = Path(markup_path)
        now = self._clock()
        cached = self._memo.get(markup_path)
        if cached is not None and now - cached.checked_at < self.config.discovery_ttl_sec:
            existing = [p for p in cached.paths if p.is_file()]
            if existing or not cached.paths:
                return existing

        paths = self._from_patterns(markup_path) or self._search(markup_path)
        self._memo[markup_path] = _Discovery(paths, now)
        for path in paths:
            log.debug("sibling_script_found", markup=str(markup_path), script=str(path))
        return list(paths)

    def forget(self, markup_path: Path) -> None:
        self._memo.pop(Path(markup_path), None)

    def clear(self) -> None:
        self._memo.clear()

    def _from_patterns(self, markup_path: Path) -> list[Path]:
        directory = str(markup_path.parent)
        base = markup_path.stem
        found: list[Path] = []
        for pattern in self.config.script_patterns:
            if not pattern:
                continue
            expanded = pattern.replace("${dir}", directory).replace("${base}", base)
            if any(ch in expanded for ch in _GLOB_CHARS):
                continue
            candidate = Path(expanded)
            if not candidate.is_absolute() and "${dir}" not in pattern:
                candidate = markup_path.parent / candidate
            if candidate.is_file():
                found.append(candidate)
        return found

    def _search(self, markup_path: Path) -> list[Path]:
        root = markup_path.parent / self.config.script_dir
        if not root.is_dir():
            return []
        target = f"{markup_path.stem}{self.config.script_suffix}"
        max_depth = self.config.max_search_depth

        def on_error(err: OSError) -> None:
            log.debug("script_dir_unreadable", path=err.filename, error=str(err))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in PRUNABLE_DIRS)
            if target in filenames:
                return [Path(dirpath) / target]
            if len(Path(dirpath).relative_to(root).parts) >= max_depth:
                dirnames[:] = []
        return []
