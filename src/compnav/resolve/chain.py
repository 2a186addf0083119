"""Query parsing: which name does `this.foo`, `vm.foo` or `item.bar` ask for?

A chain rooted at the component instance (a self-reference keyword, a known
alias such as `that`, or a local proven to be assigned from `this`) asks for
its first member. Any other chain asks for its root.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from compnav.config.models import ResolverConfig

_IDENT = r"[A-Za-z_$][\w$]*"
_CHAIN = re.compile(rf"^{_IDENT}(?:\s*\??\.\s*{_IDENT})*$")
_CHAIN_SEP = re.compile(r"\s*\??\.\s*")
_INDEXING = re.compile(r"\[[^\]]*\]")
_WORD = re.compile(_IDENT)
_CHAIN_BEFORE = re.compile(rf"((?:{_IDENT}\s*\??\.\s*)*){_IDENT}$")

_EVENT_ATTR_BEFORE = re.compile(r"(@[\w.:-]+|v-on:[\w.:-]+)\s*=\s*[\"'][^\"']*$")
_CALL_AFTER = re.compile(r"^\s*\(")
_ATTR_NAME_AFTER = re.compile(r"^\s*=")


@dataclass(frozen=True, slots=True)
class Query:
    """A parsed identifier or chain."""

    name: str
    root: str
    members: tuple[str, ...]
    self_rooted: bool

    @property
    def chain(self) -> str:
        return ".".join((self.root, *self.members))


@dataclass(frozen=True, slots=True)
class CursorQuery:
    """Chain under a cursor, ending at the word the cursor is on."""

    chain: str
    word: str
    start: int
    end: int


def split_chain(text: str) -> list[str] | None:
    """`this.items[0]?.name` -> ['this', 'items', 'name']; None if not a chain."""
    text = _INDEXING.sub("", text).strip()
    if not _CHAIN.match(text):
        return None
    return _CHAIN_SEP.split(text)


def is_self_alias(
    lines: Sequence[str],
    cursor_line: int,
    alias: str,
    window: int = 400,
    self_refs: Sequence[str] = ("this",),
) -> bool:
    """True if `alias = this` appears within `window` lines at or above the cursor."""
    if not lines or not _WORD.fullmatch(alias):
        return False
    refs = "|".join(re.escape(r) for r in self_refs)
    pattern = re.compile(
        rf"(?:(?:const|let|var)\s+)?(?<![\w$.]){re.escape(alias)}\s*=\s*(?:{refs})(?:\s*[;,)]|\s*$)"
    )
    start = min(cursor_line, len(lines) - 1)
    stop = max(-1, start - window)
    return any(pattern.search(lines[i]) for i in range(start, stop, -1))


def parse_query(
    text: str,
    *,
    lines: Sequence[str] = (),
    cursor_line: int = 0,
    config: ResolverConfig | None = None,
) -> Query | None:
    """Parse an identifier or chain into the name to resolve."""
    parts = split_chain(text)
    if not parts:
        return None
    config = config or ResolverConfig()
    root, members = parts[0], tuple(parts[1:])
    self_rooted = bool(members) and (
        root in config.self_ref_keywords
        or root in config.known_aliases
        or is_self_alias(
            lines, cursor_line, root, config.alias_scan_window, config.self_ref_keywords
        )
    )
    return Query(
        name=members[0] if self_rooted else root,
        root=root,
        members=members,
        self_rooted=self_rooted,
    )


def extract_query(line_text: str, column: int) -> CursorQuery | None:
    """Word under `column` plus the `a.b.` chain written before it."""
    for m in _WORD.finditer(line_text):
        if m.start() <= column <= m.end():
            break
    else:
        return None
    before = _CHAIN_BEFORE.search(line_text[: m.end()])
    chain = before.group(0) if before else m.group(0)
    return CursorQuery(chain=chain, word=m.group(0), start=m.start(), end=m.end())


def prefers_methods(line_text: str, start: int, end: int, *, markup: bool) -> bool:
    """Word is called (`foo(`) or sits in an `@event=` / `v-on:` handler value."""
    if _CALL_AFTER.match(line_text[end:]):
        return True
    return markup and bool(_EVENT_ATTR_BEFORE.search(line_text[:start]))


def is_attribute_name(line_text: str, end: int) -> bool:
    """Word is directly followed by `=`, i.e. it names a markup attribute."""
    return bool(_ATTR_NAME_AFTER.match(line_text[end:]))
