"""Tests for query parsing and cursor extraction."""

from __future__ import annotations

import pytest

from compnav.config.models import ResolverConfig
from compnav.resolve.chain import (
    extract_query,
    is_attribute_name,
    is_self_alias,
    parse_query,
    prefers_methods,
    split_chain,
)


class TestSplitChain:
    """Chain splitting."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("count", ["count"]),
            ("this.count", ["this", "count"]),
            ("this.items[0].name", ["this", "items", "name"]),
            ("a?.b", ["a", "b"]),
            ("  this . x ", ["this", "x"]),
            ("$refs.form", ["$refs", "form"]),
        ],
    )
    def test_valid(self, text: str, expected: list[str]) -> None:
        assert split_chain(text) == expected

    @pytest.mark.parametrize("text", ["", "1abc", "a..b", "a + b", "foo()", "a."])
    def test_invalid(self, text: str) -> None:
        assert split_chain(text) is None


class TestIsSelfAlias:
    """Backward scan for `alias = this`."""

    LINES = [
        "methods: {",
        "  load() {",
        "    var vm = this;",
        "    fetch(url).then(function (r) {",
        "      vm.items = r;",
        "    });",
        "  },",
    ]

    def test_alias_above_cursor(self) -> None:
        assert is_self_alias(self.LINES, 4, "vm")

    def test_alias_below_cursor_does_not_count(self) -> None:
        assert not is_self_alias(self.LINES, 1, "vm")

    def test_window_bounds_the_scan(self) -> None:
        assert not is_self_alias(self.LINES, 4, "vm", window=2)
        assert is_self_alias(self.LINES, 4, "vm", window=3)

    def test_other_assignments_do_not_count(self) -> None:
        lines = ["var vm = thisThing;", "var x = self.vm = this.y;"]
        assert not is_self_alias(lines, 1, "vm")

    def test_custom_self_refs(self) -> None:
        assert is_self_alias(["let me = self"], 0, "me", self_refs=("self",))


class TestParseQuery:
    """Which name a query asks for."""

    def test_plain_identifier(self) -> None:
        query = parse_query("count")

        assert query is not None
        assert (query.name, query.self_rooted) == ("count", False)

    def test_self_rooted(self) -> None:
        query = parse_query("this.count.value")

        assert query is not None
        assert query.name == "count"
        assert query.self_rooted
        assert query.chain == "this.count.value"

    def test_known_alias(self) -> None:
        query = parse_query("that.count")

        assert query is not None
        assert query.name == "count"

    def test_proven_alias(self) -> None:
        lines = ["var vm = this;", "vm.count"]

        query = parse_query("vm.count", lines=lines, cursor_line=1)

        assert query is not None
        assert query.name == "count"

    def test_unproven_alias_asks_for_root(self) -> None:
        query = parse_query("item.name", lines=["<li v-for='item in items'>"], cursor_line=0)

        assert query is not None
        assert (query.name, query.self_rooted) == ("item", False)

    def test_bare_keyword(self) -> None:
        query = parse_query("this")

        assert query is not None
        assert not query.self_rooted

    def test_config_aliases(self) -> None:
        config = ResolverConfig(known_aliases=["self"])

        assert parse_query("self.x", config=config).name == "x"  # type: ignore[union-attr]
        assert parse_query("that.x", config=config).name == "that"  # type: ignore[union-attr]

    def test_not_a_chain(self) -> None:
        assert parse_query("a + b") is None


class TestCursorHelpers:
    """Word and chain under a cursor."""

    def test_extract_chain_before_word(self) -> None:
        line = "    this.user.name = x;"

        query = extract_query(line, line.index("user") + 2)

        assert query is not None
        assert query.chain == "this.user"
        assert query.word == "user"
        assert (query.start, query.end) == (line.index("user"), line.index("user") + 4)

    def test_extract_at_word_end(self) -> None:
        query = extract_query("count", 5)

        assert query is not None
        assert query.word == "count"

    def test_extract_outside_word(self) -> None:
        assert extract_query("a  =  b", 2) is None

    def test_prefers_methods_for_calls(self) -> None:
        line = "this.save(1)"
        start = line.index("save")

        assert prefers_methods(line, start, start + 4, markup=False)

    def test_prefers_methods_in_event_attributes(self) -> None:
        line = '<button @click="save">'
        start = line.index("save")

        assert prefers_methods(line, start, start + 4, markup=True)
        assert not prefers_methods(line, start, start + 4, markup=False)

    def test_plain_attribute_value_has_no_preference(self) -> None:
        line = '<input :value="save">'
        start = line.index("save")

        assert not prefers_methods(line, start, start + 4, markup=True)

    def test_is_attribute_name(self) -> None:
        line = '<div class="x">'

        assert is_attribute_name(line, line.index("class") + 5)
        assert not is_attribute_name(line, line.index("div") + 3)
