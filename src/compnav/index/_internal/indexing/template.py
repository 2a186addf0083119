"""Template scope indexer.

Scans markup for template-local bindings and the line range in which each is
visible. The scanner is a deliberately approximate tag-stack state machine,
not an HTML parser:

- DEFAULT: copy text until `<`
- SEEN_OPEN_TAG: read a tag name and its attributes, push it
- SEEN_CLOSE_TAG: read a tag name, pop the nearest open tag with that name

Binding attributes:
- `v-for="<head> in|of <collection>"`
- `slot-scope="..."`, `v-slot="..."`, `v-slot:name="..."`, `#name="..."`

A binding's scope starts on its tag's first line and ends on the line of the
matching close tag (or the tag's own last line for void and self-closing
tags). Bindings never closed stay visible to the end of the document.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

import structlog

from compnav.config.constants import RAW_TEXT_ELEMENTS, VOID_ELEMENTS, X_TEMPLATE_TYPE
from compnav.core.hashing import content_hash
from compnav.index.models import Location, TemplateIndex, TemplateVariable

log = structlog.get_logger()

_TAG_NAME = re.compile(r"[A-Za-z][\w:.-]*")
_ATTR_NAME = re.compile(r"[^\s\"'>/=]+")
_UNQUOTED_VALUE = re.compile(r"[^\s>]+")
_IDENT = re.compile(r"[A-Za-z_$][\w$]*")
_LOOP_SEPARATOR = re.compile(r"\s+(?:in|of)\s+")
_SLOT_ATTR = re.compile(r"^(?:slot-scope|v-slot(?::[\w.-]+)?|#[\w.-]*)$")

_OPENERS = {"(": ")", "{": "}", "[": "]"}


class ScanState(Enum):
    DEFAULT = "default"
    SEEN_OPEN_TAG = "seen_open_tag"
    SEEN_CLOSE_TAG = "seen_close_tag"


# =============================================================================
# Binding patterns
# =============================================================================


def _split_top(text: str, sep: str) -> Iterator[tuple[str, int]]:
    """Segments of `text` split on `sep` outside brackets and quotes."""
    depth = 0
    quote: str | None = None
    start = 0
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == sep and depth == 0:
            yield text[start:i], start
            start = i + 1
    yield text[start:], start


def _find_top(text: str, ch: str) -> int:
    for segment, start in _split_top(text, ch):
        if start + len(segment) < len(text):
            return start + len(segment)
        break
    return -1


def binding_names(pattern: str) -> list[tuple[str, int]]:
    """Names bound by a destructuring pattern, with their offsets.

    Handles bare names, `a, b` and `(a, b)` lists, `{a, b}` and `[a, b]`
    destructures, aliases (`key: alias`), defaults (`a = 1`), rest (`...r`)
    and nesting.
    """
    out: list[tuple[str, int]] = []
    for part, start in _split_top(pattern, ","):
        _collect(part, start, out)
    return out


def _collect(text: str, offset: int, out: list[tuple[str, int]]) -> None:
    lead = len(text) - len(text.lstrip())
    text = text.strip()
    offset += lead
    if not text:
        return
    if text.startswith("..."):
        _collect(text[3:], offset + 3, out)
        return
    eq = _find_top(text, "=")
    if eq >= 0:
        _collect(text[:eq], offset, out)
        return
    colon = _find_top(text, ":")
    if colon >= 0:
        _collect(text[colon + 1 :], offset + colon + 1, out)
        return
    if text[0] in _OPENERS and text[-1] == _OPENERS[text[0]]:
        for part, start in _split_top(text[1:-1], ","):
            _collect(part, offset + 1 + start, out)
        return
    if _IDENT.fullmatch(text):
        out.append((text, offset))


def loop_head(expression: str) -> tuple[str, int] | None:
    """Binding head of a `v-for` expression and its offset."""
    lead = len(expression) - len(expression.lstrip())
    text = expression[lead:]
    if not text:
        return None
    if text[0] in _OPENERS:
        depth = 0
        end = -1
        for i, ch in enumerate(text):
            if ch in _OPENERS:
                depth += 1
            elif ch in _OPENERS.values():
                depth -= 1
                if depth == 0:
                    end = i + 1
                    break
        if end < 0:
            return None
    else:
        m = re.match(r"\S+", text)
        end = m.end() if m else 0
    if not _LOOP_SEPARATOR.match(text, end):
        return None
    head = text[:end]
    if head.startswith("("):
        return head[1:-1], lead + 1
    return head, lead


# =============================================================================
# Scanner
# =============================================================================


@dataclass
class _Binding:
    name: str
    location: Location
    scope_start: int
    scope_end: int = -1
    open: bool = True


@dataclass
class _OpenTag:
    tag: str
    start_line: int


class TemplateScanner:
    """One pass over one markup document."""

    def __init__(self, text: str, resource_id: str) -> None:
        self.text = text
        self.resource_id = resource_id
        self.line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]
        self.last_line = len(self.line_starts) - 1
        self.stack: list[_OpenTag] = []
        self.bindings: list[_Binding] = []

    def line_of(self, offset: int) -> int:
        return bisect_right(self.line_starts, offset) - 1

    def location_of(self, offset: int) -> Location:
        line = self.line_of(offset)
        return Location(self.resource_id, line, offset - self.line_starts[line])

    def scan(self) -> list[TemplateVariable]:
        text = self.text
        n = len(text)
        state = ScanState.DEFAULT
        pos = 0
        tag_start = 0
        while pos < n:
            if state is ScanState.DEFAULT:
                lt = text.find("<", pos)
                if lt < 0:
                    break
                if text.startswith("<!--", lt):
                    end = text.find("-->", lt + 4)
                    pos = n if end < 0 else end + 3
                    continue
                nxt = text[lt + 1 : lt + 2]
                tag_start = lt
                if nxt == "/":
                    state = ScanState.SEEN_CLOSE_TAG
                    pos = lt + 2
                elif nxt.isalpha():
                    state = ScanState.SEEN_OPEN_TAG
                    pos = lt + 1
                else:
                    pos = lt + 1
            elif state is ScanState.SEEN_OPEN_TAG:
                pos = self._open_tag(pos, tag_start)
                state = ScanState.DEFAULT
            else:
                pos = self._close_tag(pos, tag_start)
                state = ScanState.DEFAULT

        return [
            TemplateVariable(
                name=b.name,
                location=b.location,
                scope_start=b.scope_start,
                scope_end=self.last_line if b.open else b.scope_end,
            )
            for b in self.bindings
        ]

    def _open_tag(self, pos: int, tag_start: int) -> int:
        text = self.text
        n = len(text)
        m = _TAG_NAME.match(text, pos)
        if m is None:
            return pos
        tag = m.group(0).lower()
        pos = m.end()
        self_closing = False
        attrs: list[tuple[str, str, int]] = []
        while pos < n:
            while pos < n and text[pos].isspace():
                pos += 1
            if pos >= n:
                break
            ch = text[pos]
            if ch == ">":
                pos += 1
                break
            if text.startswith("/>", pos):
                self_closing = True
                pos += 2
                break
            am = _ATTR_NAME.match(text, pos)
            if am is None:
                pos += 1
                continue
            name = am.group(0)
            pos = am.end()
            while pos < n and text[pos].isspace():
                pos += 1
            if pos < n and text[pos] == "=":
                pos += 1
                while pos < n and text[pos].isspace():
                    pos += 1
                if pos < n and text[pos] in "\"'":
                    quote = text[pos]
                    end = text.find(quote, pos + 1)
                    end = n if end < 0 else end
                    attrs.append((name, text[pos + 1 : end], pos + 1))
                    pos = end + 1
                else:
                    vm = _UNQUOTED_VALUE.match(text, pos)
                    value = vm.group(0) if vm else ""
                    attrs.append((name, value, pos))
                    pos += len(value)
            else:
                attrs.append((name, "", pos))

        start_line = self.line_of(tag_start)
        end_line = self.line_of(max(pos - 1, tag_start))
        first_new = len(self.bindings)
        for name, value, value_start in attrs:
            self._bind(name, value, value_start, start_line)

        if tag in VOID_ELEMENTS or self_closing:
            for b in self.bindings[first_new:]:
                b.scope_end = end_line
                b.open = False
            return pos

        if tag in RAW_TEXT_ELEMENTS:
            types = [v.strip().lower() for k, v, _ in attrs if k.lower() == "type"]
            if not (tag == "script" and X_TEMPLATE_TYPE in types):
                close = re.compile(rf"</{tag}\s*>", re.IGNORECASE).search(text, pos)
                return n if close is None else close.end()

        self.stack.append(_OpenTag(tag, start_line))
        return pos

    def _bind(self, attr: str, value: str, value_start: int, line: int) -> None:
        if attr == "v-for":
            head = loop_head(value)
            if head is None:
                return
            pattern, offset = head
            names = binding_names(pattern)
            base = value_start + offset
        elif _SLOT_ATTR.match(attr):
            names = binding_names(value)
            base = value_start
        else:
            return
        for name, rel in names:
            self.bindings.append(_Binding(name, self.location_of(base + rel), line))

    def _close_tag(self, pos: int, tag_start: int) -> int:
        text = self.text
        m = _TAG_NAME.match(text, pos)
        gt = text.find(">", pos)
        end = len(text) if gt < 0 else gt + 1
        if m is None:
            return end
        tag = m.group(0).lower()
        close_line = self.line_of(tag_start)
        for i in range(len(self.stack) - 1, -1, -1):
            if self.stack[i].tag != tag:
                continue
            popped = self.stack.pop(i)
            for b in self.bindings:
                if b.open and b.scope_start >= popped.start_line:
                    b.scope_end = close_line
                    b.open = False
            break
        return end


def build_template_index(text: str, resource_id: str, version: int = 0) -> TemplateIndex:
    """Index the loop and slot bindings of one markup document."""
    variables = TemplateScanner(text, resource_id).scan()
    index = TemplateIndex(
        variables=tuple(variables),
        content_hash=content_hash(text),
        version=version,
    )
    log.debug("template_index_built", resource_id=resource_id, variables=len(variables))
    return index
