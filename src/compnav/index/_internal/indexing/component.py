"""Component index builder.

Two passes over one script (or one inline script fragment):

1. Collect the indirection table (see indirection.py).
2. Locate every component declaration and extract its sections:
   - data      -> state fields
   - methods   -> methods
   - computed  -> computed values
   - props     -> inputs
   - emits     -> emitted-event names (plus `$emit('x')` calls)
   - mixins    -> mixin_state / mixin_methods / mixin_computed, tagged with
                  the mixin's name as context

Declarations recognized: `new Vue({...})`, `Vue.extend({...})`,
`Vue.createApp({...})`, `createApp({...})`, `defineComponent({...})` and
`export default {...}`. Every match is folded into one index; the first
writer of a name wins within each category.

Sub-components bound to an x-template (`template: '#id'`) get their own
index under `components_by_template_id`.

Not handled: destructured mixin bindings, computed getters reached through
more than one level of indirection, and `mapState`-style helper spreads.
Such names simply do not resolve.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from compnav.config.constants import (
    CONSTRUCTOR_NAMES,
    EMIT_METHOD,
    FACTORY_CALLS,
    FACTORY_MEMBER_CALLS,
    INLINE_MIXIN_CONTEXT,
    REGISTRATION_CALL,
    SECTION_COMPONENTS,
    SECTION_COMPUTED,
    SECTION_EMITS,
    SECTION_INPUTS,
    SECTION_METHODS,
    SECTION_MIXINS,
    SECTION_STATE,
    SECTION_TEMPLATE,
)
from compnav.core.hashing import content_hash
from compnav.index._internal.indexing.indirection import (
    FunctionReturn,
    IndirectionTable,
    collect_indirections,
)
from compnav.index._internal.indexing.nodes import (
    accessor_kind,
    is_function,
    named,
    parameter_labels,
    property_key,
    property_name,
    property_value,
    string_anchor,
    string_value,
    unwrap,
    walk,
)
from compnav.index._internal.parsing import JAVASCRIPT, ParseResult, TreeSitterParser
from compnav.index.models import ALL_PRIORITY, Category, ComponentIndex, Location, MemberMeta

log = structlog.get_logger()

_BLOCK_COMMENT_LINE = re.compile(r"^\s*\*? ?")

# Section -> (own category, mixin-variant category)
_SECTION_CATEGORIES: dict[str, tuple[Category, Category]] = {
    SECTION_STATE: (Category.STATE, Category.MIXIN_STATE),
    SECTION_METHODS: (Category.METHODS, Category.MIXIN_METHODS),
    SECTION_COMPUTED: (Category.COMPUTED, Category.MIXIN_COMPUTED),
}


@dataclass
class _Members:
    """Mutable accumulator, frozen into a ComponentIndex at the end."""

    maps: dict[Category, dict[str, Location]] = field(
        default_factory=lambda: {c: {} for c in Category}
    )
    meta: dict[str, MemberMeta] = field(default_factory=dict)

    def add(
        self,
        category: Category,
        name: str,
        location: Location,
        meta: MemberMeta | None = None,
    ) -> None:
        self.maps[category].setdefault(name, location)
        if meta is not None and (meta.params or meta.doc):
            self.meta.setdefault(name, meta)

    def freeze(
        self,
        content_hash: str,
        version: int,
        templates: dict[str, ComponentIndex] | None = None,
    ) -> ComponentIndex:
        merged: dict[str, Location] = {}
        for category in ALL_PRIORITY:
            for name, loc in self.maps[category].items():
                merged.setdefault(name, loc)
        return ComponentIndex(
            state=dict(self.maps[Category.STATE]),
            methods=dict(self.maps[Category.METHODS]),
            computed=dict(self.maps[Category.COMPUTED]),
            inputs=dict(self.maps[Category.INPUTS]),
            emits=dict(self.maps[Category.EMITS]),
            mixin_state=dict(self.maps[Category.MIXIN_STATE]),
            mixin_methods=dict(self.maps[Category.MIXIN_METHODS]),
            mixin_computed=dict(self.maps[Category.MIXIN_COMPUTED]),
            all=merged,
            meta=dict(self.meta),
            components_by_template_id=dict(templates or {}),
            content_hash=content_hash,
            document_version=version,
        )


def _span(node: Any) -> tuple[int, int]:
    return node.start_byte, node.end_byte


class _Extractor:
    """Section extraction over one parsed script."""

    def __init__(
        self,
        result: ParseResult,
        table: IndirectionTable,
        resource_id: str,
        line_offset: int,
        column_offset: int,
    ) -> None:
        self.result = result
        self.table = table
        self.resource_id = resource_id
        self.line_offset = line_offset
        self.column_offset = column_offset

    # ------------------------------------------------------------------
    # Positions and docs
    # ------------------------------------------------------------------

    def location(self, node: Any, context: str | None = None) -> Location:
        row, column = self.result.position(node)
        if row == 0:
            column += self.column_offset
        return Location(self.resource_id, self.line_offset + row, column, context)

    def doc(self, member: Any) -> str | None:
        """Leading comment block, else a trailing comment on the member's last line."""
        leading: list[Any] = []
        prev = member.prev_named_sibling
        expected_row = member.start_point[0]
        while prev is not None and prev.type == "comment" and prev.end_point[0] >= expected_row - 1:
            before = prev.prev_named_sibling
            if before is not None and before.type != "comment" and before.end_point[0] == prev.start_point[0]:
                # trailing comment of the previous member
                break
            leading.insert(0, prev)
            expected_row = prev.start_point[0]
            prev = before
        if leading:
            return self._format_comments(leading)
        nxt = member.next_named_sibling
        if nxt is not None and nxt.type == "comment" and nxt.start_point[0] == member.end_point[0]:
            return self._format_comments([nxt])
        return None

    def _format_comments(self, comments: list[Any]) -> str | None:
        lines: list[str] = []
        for comment in comments:
            text = self.result.text(comment)
            if text.startswith("//"):
                lines.append(text[2:].strip())
            else:
                body = text[2:-2] if text.endswith("*/") else text[2:]
                lines.extend(_BLOCK_COMMENT_LINE.sub("", ln).rstrip() for ln in body.splitlines())
        doc = "\n".join(lines).strip()
        return doc or None

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def members(self, obj: Any, seen: set[tuple[int, int]] | None = None) -> list[Any]:
        """Object members, with `...ident` spreads expanded in place."""
        seen = set() if seen is None else seen
        if _span(obj) in seen:
            return []
        seen.add(_span(obj))
        out: list[Any] = []
        for member in named(obj):
            if member.type == "spread_element":
                inner = named(member)
                spread = self.table.resolve_node(inner[0]) if inner else None
                if spread is not None:
                    out.extend(self.members(spread, seen))
            elif property_key(member) is not None:
                out.append(member)
        return out

    def section(self, options: Any, name: str) -> Any | None:
        """First member of the options object named `name`."""
        for member in self.members(options):
            if property_name(member, self.result) == name:
                return member
        return None

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def extract_options(
        self,
        options: Any,
        acc: _Members,
        *,
        context: str | None = None,
        path: set[tuple[int, int]] | None = None,
    ) -> None:
        """Feed one options object into the accumulator.

        With a context the object is a mixin: only data, methods and computed
        are read, into the mixin-variant maps.
        """
        path = set() if path is None else path
        if _span(options) in path:
            log.debug("indirection_cycle", kind="mixin", context=context)
            return
        path = path | {_span(options)}

        for member in self.members(options):
            name = property_name(member, self.result)
            if name in _SECTION_CATEGORIES:
                own, variant = _SECTION_CATEGORIES[name]
                category = own if context is None else variant
                if name == SECTION_STATE:
                    self._extract_state(member, acc, category, context)
                elif name == SECTION_METHODS:
                    self._extract_methods(member, acc, category, context)
                else:
                    self._extract_computed(member, acc, category, context)
            elif name == SECTION_MIXINS:
                self._extract_mixins(member, acc, context, path)
            elif context is None and name == SECTION_INPUTS:
                self._extract_names(member, acc, Category.INPUTS)
            elif context is None and name == SECTION_EMITS:
                self._extract_names(member, acc, Category.EMITS)

        if context is None:
            self._detect_emits(options, acc)

    def section_object(self, member: Any) -> Any | None:
        value = property_value(member)
        if value is None:
            # shorthand `methods,` refers to a variable
            return self.table.resolve_node(property_key(member))
        if value.type == "object":
            return value
        return self.table.resolve_node(value)

    def _extract_state(
        self, member: Any, acc: _Members, category: Category, context: str | None
    ) -> None:
        value = property_value(member)
        if value is not None and is_function(value):
            obj = self.table.resolve(FunctionReturn(value))
        else:
            obj = self.section_object(member)
        if obj is None:
            return
        for prop in self.members(obj):
            name = property_name(prop, self.result)
            if name is None:
                continue
            acc.add(
                category,
                name,
                self.location(property_key(prop), context),
                MemberMeta(doc=self.doc(prop)),
            )

    def _extract_methods(
        self, member: Any, acc: _Members, category: Category, context: str | None
    ) -> None:
        obj = self.section_object(member)
        if obj is None:
            return
        for prop in self.members(obj):
            fn = property_value(prop)
            if not is_function(fn):
                continue
            name = property_name(prop, self.result)
            if name is None:
                continue
            acc.add(
                category,
                name,
                self.location(property_key(prop), context),
                MemberMeta(parameter_labels(fn, self.result), self.doc(prop)),
            )

    def _extract_computed(
        self, member: Any, acc: _Members, category: Category, context: str | None
    ) -> None:
        obj = self.section_object(member)
        if obj is None:
            return
        for prop in self.members(obj):
            name = property_name(prop, self.result)
            if name is None:
                continue
            value = property_value(prop)
            fn = value if is_function(value) else self._getter(value)
            if fn is None:
                continue
            acc.add(
                category,
                name,
                self.location(property_key(prop), context),
                MemberMeta(parameter_labels(fn, self.result), self.doc(fn) or self.doc(prop)),
            )

    def _getter(self, value: Any | None) -> Any | None:
        """`get` member of a `{ get() {...}, set(v) {...} }` computed value."""
        if value is None or value.type != "object":
            return None
        for prop in named(value):
            if property_name(prop, self.result) != "get":
                continue
            fn = property_value(prop)
            if is_function(fn):
                return fn
        for prop in named(value):
            if prop.type == "method_definition" and accessor_kind(prop) == "get":
                return prop
        return None

    def _extract_names(self, member: Any, acc: _Members, category: Category) -> None:
        """Names declared as `['a', 'b']` or `{ a: ..., b: ... }`."""
        value = property_value(member)
        if value is None:
            return
        if value.type == "array":
            for element in named(value):
                name = string_value(element, self.result)
                if name:
                    acc.add(category, name, self.location(string_anchor(element)))
            return
        obj = value if value.type == "object" else self.table.resolve_node(value)
        if obj is None:
            return
        for prop in self.members(obj):
            name = property_name(prop, self.result)
            if name:
                acc.add(
                    category,
                    name,
                    self.location(property_key(prop)),
                    MemberMeta(doc=self.doc(prop)),
                )

    def _detect_emits(self, options: Any, acc: _Members) -> None:
        """`$emit('name', ...)` calls with a literal event name."""
        for member in named(options):
            if property_name(member, self.result) == SECTION_COMPONENTS:
                continue
            for node in walk(member):
                if node.type != "call_expression":
                    continue
                callee = node.child_by_field_name("function")
                if callee is None or callee.type != "member_expression":
                    continue
                prop = callee.child_by_field_name("property")
                if prop is None or self.result.text(prop) != EMIT_METHOD:
                    continue
                args = node.child_by_field_name("arguments")
                first = named(args)[0] if args is not None and named(args) else None
                name = string_value(first, self.result)
                if name:
                    acc.add(Category.EMITS, name, self.location(string_anchor(first)))

    def _extract_mixins(
        self,
        member: Any,
        acc: _Members,
        context: str | None,
        path: set[tuple[int, int]],
    ) -> None:
        value = property_value(member)
        if value is None or value.type != "array":
            return
        for element in named(value):
            element = unwrap(element)
            if element is None:
                continue
            if element.type == "identifier":
                mixin_context = self.result.text(element)
            elif element.type == "object":
                mixin_context = context or INLINE_MIXIN_CONTEXT
            elif element.type == "call_expression":
                callee = unwrap(element.child_by_field_name("function"))
                if callee is None or callee.type != "identifier":
                    continue
                mixin_context = self.result.text(callee)
            else:
                continue
            obj = self.table.resolve_node(element)
            if obj is None:
                log.debug("mixin_unresolved", mixin=mixin_context, resource_id=self.resource_id)
                continue
            self.extract_options(obj, acc, context=mixin_context, path=path)

    # ------------------------------------------------------------------
    # x-templates
    # ------------------------------------------------------------------

    def template_id(self, options: Any) -> str | None:
        member = self.section(options, SECTION_TEMPLATE)
        if member is None or member.type != "pair":
            return None
        return self._template_id_from(property_value(member))

    def _template_id_from(self, node: Any | None) -> str | None:
        node = unwrap(node)
        if node is None:
            return None
        text = string_value(node, self.result)
        if text is not None:
            text = text.strip()
            return text[1:] if text.startswith("#") and len(text) > 1 else None
        if node.type == "member_expression":
            prop = node.child_by_field_name("property")
            if prop is not None and self.result.text(prop) == "innerHTML":
                return self._template_id_from(node.child_by_field_name("object"))
            return None
        if node.type == "call_expression":
            callee = node.child_by_field_name("function")
            if callee is None or callee.type != "member_expression":
                return None
            obj = callee.child_by_field_name("object")
            prop = callee.child_by_field_name("property")
            if obj is None or prop is None or self.result.text(obj) != "document":
                return None
            args = node.child_by_field_name("arguments")
            first = named(args)[0] if args is not None and named(args) else None
            arg = string_value(first, self.result)
            if arg is None:
                return None
            arg = arg.strip()
            method = self.result.text(prop)
            if method == "getElementById":
                return arg or None
            if method in ("querySelector", "querySelectorAll") and arg.startswith("#"):
                return arg[1:] or None
        return None


class ComponentIndexBuilder:
    """Builds ComponentIndex records from script text.

    The builder holds a parser (and its grammar cache) but no per-document
    state; each build returns a fresh index.
    """

    def __init__(self, parser: TreeSitterParser | None = None) -> None:
        self._parser = parser or TreeSitterParser()

    def build(
        self,
        text: str,
        resource_id: str,
        *,
        version: int = 0,
        line_offset: int = 0,
        column_offset: int = 0,
        language: str = JAVASCRIPT,
    ) -> ComponentIndex:
        """Build the index of every component declared in `text`.

        Positions are shifted by `line_offset`; `column_offset` applies to
        the first line only (inline scripts start mid-line).
        """
        digest = content_hash(text)
        result = self._parser.parse(text, language=language)
        if not result.ok:
            return ComponentIndex.empty(digest, version)

        table = collect_indirections(result)
        ex = _Extractor(result, table, resource_id, line_offset, column_offset)

        acc = _Members()
        registrations: list[Any] = []
        for options in self._declarations(result, table, registrations):
            ex.extract_options(options, acc)
            components = ex.section(options, SECTION_COMPONENTS)
            if components is not None:
                comps = ex.section_object(components)
                if comps is not None:
                    for comp in ex.members(comps):
                        value = property_value(comp)
                        if value is None or value.type != "object":
                            value = table.resolve_node(value or property_key(comp))
                        if value is not None:
                            registrations.append(value)

        templates: dict[str, ComponentIndex] = {}
        for options in registrations:
            template_id = ex.template_id(options)
            if template_id is None or template_id in templates:
                continue
            sub = _Members()
            ex.extract_options(options, sub)
            templates[template_id] = sub.freeze(digest, version)

        index = acc.freeze(digest, version, templates)
        log.debug(
            "component_index_built",
            resource_id=resource_id,
            members=len(index.all),
            templates=len(templates),
            parse_errors=result.error_count,
        )
        return index

    @staticmethod
    def _declarations(
        result: ParseResult, table: IndirectionTable, registrations: list[Any]
    ) -> list[Any]:
        """Options objects of every component declaration, in document order.

        `Vue.component('tag', options)` calls are appended to `registrations`.
        """
        found: list[Any] = []
        for node in walk(result.root_node):
            arg: Any | None = None
            if node.type == "new_expression":
                ctor = node.child_by_field_name("constructor")
                if ctor is not None and result.text(ctor) in CONSTRUCTOR_NAMES:
                    arg = _argument(node, 0)
            elif node.type == "call_expression":
                callee = unwrap(node.child_by_field_name("function"))
                if callee is None:
                    continue
                if callee.type == "identifier" and result.text(callee) in FACTORY_CALLS:
                    arg = _argument(node, 0)
                elif callee.type == "member_expression":
                    obj = callee.child_by_field_name("object")
                    prop = callee.child_by_field_name("property")
                    if obj is None or prop is None:
                        continue
                    pair = (result.text(obj), result.text(prop))
                    if pair in FACTORY_MEMBER_CALLS:
                        arg = _argument(node, 0)
                    elif pair == REGISTRATION_CALL:
                        options = table.resolve_node(_argument(node, 1))
                        if options is not None:
                            registrations.append(options)
                        continue
            elif node.type == "export_statement":
                arg = node.child_by_field_name("value")
            if arg is None:
                continue
            options = table.resolve_node(arg)
            if options is not None:
                found.append(options)
        return found


def _argument(call: Any, position: int) -> Any | None:
    args = call.child_by_field_name("arguments")
    if args is None:
        return None
    values = named(args)
    return values[position] if len(values) > position else None
