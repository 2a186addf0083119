"""Indirection table: which names denote object literals.

Components rarely spell every section inline. Sections and mixins are often
variables, functions returning an object, or factory calls. The table is
collected in one pass over the tree, then sources are resolved on demand.

Source kinds:
- ObjectLiteral: `{...}` itself
- Identifier: a name to look up (one hop per step)
- FunctionReturn: a function; its first return that resolves to an object
  literal is the object, so guard returns such as `return null` are skipped
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from compnav.index._internal.indexing.nodes import (
    is_function,
    return_values,
    unwrap,
    walk,
)
from compnav.index._internal.parsing import ParseResult

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ObjectLiteral:
    node: Any


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str


@dataclass(frozen=True, slots=True)
class FunctionReturn:
    node: Any


ObjectSource = ObjectLiteral | Identifier | FunctionReturn


def classify(node: Any | None, result: ParseResult) -> ObjectSource | None:
    """Object source for an expression, or None if it cannot denote an object.

    A call to a named function (`makeMixin()`) is the named function's
    return value, so it classifies as that name.
    """
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "object":
        return ObjectLiteral(node)
    if node.type in ("identifier", "shorthand_property_identifier"):
        return Identifier(result.text(node))
    if is_function(node):
        return FunctionReturn(node)
    if node.type == "call_expression":
        callee = unwrap(node.child_by_field_name("function"))
        if callee is not None and callee.type == "identifier":
            return Identifier(result.text(callee))
    return None


@dataclass
class IndirectionTable:
    """Name -> ObjectSource for every declaration in a script."""

    result: ParseResult
    entries: dict[str, ObjectSource] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, name: str, source: ObjectSource) -> None:
        # First declaration in document order wins
        self.entries.setdefault(name, source)

    def resolve(self, source: ObjectSource | None, visited: set[str] | None = None) -> Any | None:
        """Object literal node a source denotes, or None.

        `visited` holds names already followed; reaching one again is a cycle
        and resolves to None.
        """
        visited = set() if visited is None else visited
        while source is not None:
            if isinstance(source, ObjectLiteral):
                return source.node
            if isinstance(source, FunctionReturn):
                return self._returned_object(source.node, visited)
            if source.name in visited:
                log.debug("indirection_cycle", name=source.name, chain=sorted(visited))
                return None
            visited.add(source.name)
            source = self.entries.get(source.name)
        return None

    def _returned_object(self, fn: Any, visited: set[str]) -> Any | None:
        for value in return_values(fn):
            returned = classify(value, self.result)
            if returned is None or isinstance(returned, FunctionReturn):
                continue
            obj = self.resolve(returned, set(visited))
            if obj is not None:
                return obj
        return None

    def resolve_node(self, node: Any | None, visited: set[str] | None = None) -> Any | None:
        return self.resolve(classify(node, self.result), visited)


def collect_indirections(result: ParseResult) -> IndirectionTable:
    """Collect object-denoting declarations at any depth, in document order."""
    table = IndirectionTable(result)
    if result.root_node is None:
        return table
    for node in walk(result.root_node):
        if node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            source = classify(node.child_by_field_name("value"), result)
            if source is not None:
                table.add(result.text(name_node), source)
        elif node.type in ("function_declaration", "generator_function_declaration"):
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                table.add(result.text(name_node), FunctionReturn(node))
    return table
