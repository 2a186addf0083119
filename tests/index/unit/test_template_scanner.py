"""Tests for the template scope indexer."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from compnav.index._internal.indexing import binding_names, build_template_index
from compnav.index._internal.indexing.template import loop_head
from compnav.index.models import Location

Locate = Callable[..., tuple[int, int]]

PAGE = "/site/page.html"


class TestBindingNames:
    """Names bound by loop heads and slot patterns."""

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("item", ["item"]),
            ("item, index", ["item", "index"]),
            ("(item, index)", ["item", "index"]),
            ("{ id, label }", ["id", "label"]),
            ("{ id: key, label = 'x' }", ["key", "label"]),
            ("[first, ...rest]", ["first", "rest"]),
            ("{ user: { name }, tags: [tag] }", ["name", "tag"]),
            ("", []),
        ],
    )
    def test_names(self, pattern: str, expected: list[str]) -> None:
        assert [name for name, _ in binding_names(pattern)] == expected

    def test_offsets_point_at_names(self) -> None:
        pattern = "{ id: key, label }"

        names = binding_names(pattern)

        assert names == [("key", pattern.index("key")), ("label", pattern.index("label"))]


class TestLoopHead:
    """Splitting `v-for` expressions."""

    def test_simple(self) -> None:
        assert loop_head("item in items") == ("item", 0)

    def test_parenthesized(self) -> None:
        assert loop_head("(item, i) of items") == ("item, i", 1)

    def test_destructured(self) -> None:
        assert loop_head("  { id, name } in rows") == ("{ id, name }", 2)

    def test_no_separator(self) -> None:
        assert loop_head("items") is None


class TestTemplateScopes:
    """Scope ranges of bindings."""

    def test_loop_variable_scoped_to_element(self, locate: Locate) -> None:
        text = (
            "<ul>\n"
            '  <li v-for="item in items">\n'
            "    {{ item.name }}\n"
            "  </li>\n"
            "  <p>{{ item }}</p>\n"
            "</ul>\n"
        )

        index = build_template_index(text, PAGE)

        (var,) = index.variables
        assert var.name == "item"
        assert (var.scope_start, var.scope_end) == (1, 3)
        assert var.location == Location(PAGE, *locate(text, "item in"))
        assert index.find("item", 2) == var.location
        assert index.find("item", 4) is None

    def test_parenthesized_loop_head_binds_each_name(self, locate: Locate) -> None:
        text = (
            "<ul>\n"
            '<li v-for="(item, idx) in list">\n'
            "{{ item }}\n"
            "</li>\n"
            "<span>{{ item }}</span>\n"
            "</ul>\n"
        )

        index = build_template_index(text, PAGE)

        assert index.names() == ["item", "idx"]
        assert index.find("item", 2) == Location(PAGE, *locate(text, "item, idx"))
        assert index.find("idx", 2) == Location(PAGE, *locate(text, "idx)"))
        assert index.find("item", 4) is None

    def test_index_and_destructured_names(self) -> None:
        text = '<div v-for="({ id, title }, idx) in rows">\n  {{ idx }}\n</div>\n'

        index = build_template_index(text, PAGE)

        assert index.names() == ["id", "title", "idx"]
        assert all((v.scope_start, v.scope_end) == (0, 2) for v in index.variables)

    def test_nested_scopes(self) -> None:
        text = (
            '<div v-for="group in groups">\n'
            '  <span v-for="entry in group.entries">\n'
            "    {{ entry }}\n"
            "  </span>\n"
            "  {{ group }}\n"
            "</div>\n"
        )

        index = build_template_index(text, PAGE)

        scopes = {v.name: (v.scope_start, v.scope_end) for v in index.variables}
        assert scopes == {"group": (0, 5), "entry": (1, 3)}

    def test_same_tag_nesting_pops_innermost(self) -> None:
        text = (
            '<div v-for="a in as">\n'
            '  <div v-for="b in bs">\n'
            "  </div>\n"
            "  {{ a }}\n"
            "</div>\n"
        )

        index = build_template_index(text, PAGE)

        scopes = {v.name: (v.scope_start, v.scope_end) for v in index.variables}
        assert scopes == {"a": (0, 4), "b": (1, 2)}

    def test_self_closing_and_void_tags(self) -> None:
        text = (
            '<my-row v-for="row in rows" :row="row" />\n'
            '<input v-for="field in fields"\n'
            '       :value="field">\n'
            "<p>after</p>\n"
        )

        index = build_template_index(text, PAGE)

        scopes = {v.name: (v.scope_start, v.scope_end) for v in index.variables}
        assert scopes == {"row": (0, 0), "field": (1, 2)}

    def test_unclosed_binding_extends_to_end(self) -> None:
        text = '<section v-for="x in xs">\n  {{ x }}\n\n'

        index = build_template_index(text, PAGE)

        (var,) = index.variables
        assert var.scope_end == text.count("\n")

    def test_slot_scopes(self) -> None:
        text = (
            '<my-list :items="items">\n'
            '  <template v-slot:row="{ item, index }">\n'
            "    {{ item }}\n"
            "  </template>\n"
            '  <template #footer="footerProps">{{ footerProps }}</template>\n'
            '  <div slot-scope="legacy"></div>\n'
            "</my-list>\n"
        )

        index = build_template_index(text, PAGE)

        scopes = {v.name: (v.scope_start, v.scope_end) for v in index.variables}
        assert scopes == {
            "item": (1, 3),
            "index": (1, 3),
            "footerProps": (4, 4),
            "legacy": (5, 5),
        }

    def test_comments_and_scripts_are_ignored(self) -> None:
        text = (
            '<!-- <li v-for="ghost in ghosts"> -->\n'
            "<script>\n"
            "  var s = '<div v-for=\"fake in list\">';\n"
            "</script>\n"
            '<li v-for="real in list"></li>\n'
        )

        index = build_template_index(text, PAGE)

        assert index.names() == ["real"]

    def test_x_template_contents_are_scanned(self) -> None:
        text = (
            '<script type="text/x-template" id="row-tpl">\n'
            '  <tr v-for="cell in cells"><td>{{ cell }}</td></tr>\n'
            "</script>\n"
        )

        index = build_template_index(text, PAGE)

        assert index.names() == ["cell"]
        assert (index.variables[0].scope_start, index.variables[0].scope_end) == (1, 1)

    def test_overlapping_same_name_resolves_in_registration_order(self) -> None:
        """The outer binding is registered first and wins where both are visible."""
        text = (
            '<div v-for="item in outer">\n'
            '  <p v-for="item in item.children">\n'
            "    {{ item }}\n"
            "  </p>\n"
            "</div>\n"
        )

        index = build_template_index(text, PAGE)

        outer, inner = index.variables
        assert index.find("item", 2) == outer.location
        assert inner.contains(2)

    def test_unquoted_attribute_values(self) -> None:
        text = "<li v-for=item>\n</li>\n<li class=row v-for='x in y'></li>\n"

        index = build_template_index(text, PAGE)

        assert index.names() == ["x"]

    def test_version_and_hash(self) -> None:
        index = build_template_index("<p></p>", PAGE, version=3)

        assert index.version == 3
        assert index.document_version == 3
        assert index.variables == ()
