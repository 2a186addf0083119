"""Tests for DefinitionResolver.

Covers:
- Script resolution (sections, chains, aliases, mixins)
- Category priority and method preference
- Markup pages: template scopes, sibling scripts, inline scripts, x-templates
- Cache behavior through the resolver (hash and version invalidation)
- Workspace operations and the failure boundary
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from compnav.config.models import CompNavConfig, IndexConfig, ResolverConfig, ScriptsConfig
from compnav.index import IndexCacheService, Location
from compnav.index._internal.indexing import ComponentIndexBuilder
from compnav.resolve import DefinitionResolver, InMemoryDocumentStore, Preference, lookup

Locate = Callable[..., tuple[int, int]]

SCRIPT = "/site/js/app.dev.js"

APP = """\
var shared = { methods: { greet() {} } };
new Vue({
  mixins: [shared],
  data() {
    return { count: 0, dup: 'state' };
  },
  methods: {
    inc() {
      this.count++;
      var vm = this;
      setTimeout(function () {
        vm.count = 0;
      });
    },
    dup() {},
  },
});
"""


@pytest.fixture
def docs() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def resolver(docs: InMemoryDocumentStore) -> DefinitionResolver:
    return DefinitionResolver(docs)


@pytest.fixture
def app(docs: InMemoryDocumentStore) -> str:
    docs.open(SCRIPT, APP, version=1)
    return SCRIPT


class TestScriptResolution:
    """Resolving names in component scripts."""

    def test_scenario_state_and_method(
        self, resolver: DefinitionResolver, app: str, locate: Locate
    ) -> None:
        """`count` resolves into the returned data object, `inc` to the method."""
        assert resolver.resolve(app, "count", 8) == Location(SCRIPT, *locate(APP, "count: 0"))
        assert resolver.resolve(app, "inc", 8) == Location(SCRIPT, *locate(APP, "inc()"))

    def test_scenario_mixin_context(self, resolver: DefinitionResolver, app: str) -> None:
        loc = resolver.resolve(app, "greet", 8)

        assert loc is not None
        assert loc.context == "shared"

    def test_chain_equivalence(self, resolver: DefinitionResolver, app: str) -> None:
        """`this.<name>` and `<name>` resolve to the same state field."""
        direct = resolver.resolve(app, "count", 8)

        assert direct is not None
        assert resolver.resolve(app, "this.count", 8) == direct
        assert resolver.resolve(app, "that.count", 8) == direct

    def test_proven_alias(self, resolver: DefinitionResolver, app: str) -> None:
        direct = resolver.resolve(app, "count", 11)

        assert resolver.resolve(app, "vm.count", 11) == direct

    def test_alias_not_yet_assigned(self, resolver: DefinitionResolver, app: str) -> None:
        """Above the assignment `vm` is not an alias, so the root is looked up."""
        assert resolver.resolve(app, "vm.count", 2) is None

    def test_state_wins_over_methods(self, resolver: DefinitionResolver, app: str, locate: Locate) -> None:
        loc = resolver.resolve(app, "dup", 8)

        assert loc == Location(SCRIPT, *locate(APP, "dup: 'state'"))

    def test_method_preference(self, resolver: DefinitionResolver, app: str, locate: Locate) -> None:
        loc = resolver.resolve(app, "dup", 8, prefer=Preference.METHODS)

        assert loc == Location(SCRIPT, *locate(APP, "dup() {}"))

    def test_miss(self, resolver: DefinitionResolver, app: str) -> None:
        assert resolver.resolve(app, "nothing", 8) is None
        assert resolver.resolve(app, "this.nothing", 8) is None
        assert resolver.resolve(app, "1 + 2", 8) is None

    def test_unknown_document(self, resolver: DefinitionResolver) -> None:
        assert resolver.resolve("/nowhere.js", "count", 0) is None

    def test_determinism(self, app: str, docs: InMemoryDocumentStore) -> None:
        """Two independent resolvers produce identical results."""
        first = DefinitionResolver(docs)
        second = DefinitionResolver(docs)

        for name in ("count", "inc", "greet", "dup"):
            assert first.resolve(app, name, 8) == second.resolve(app, name, 8)
        assert first.component_index(app).all == second.component_index(app).all  # type: ignore[union-attr]

    def test_alias_scan_counts_line_feeds_only(self, docs: InMemoryDocumentStore) -> None:
        text = (
            "var a = 1;\x0cvar b = 2;\n"
            "new Vue({\n"
            "  data() { return { count: 0 }; },\n"
            "  methods: { inc() { var vm = this; vm.count++; } },\n"
            "});\n"
        )
        docs.open(SCRIPT, text)
        resolver = DefinitionResolver(
            docs, config=CompNavConfig(resolver=ResolverConfig(alias_scan_window=1))
        )

        loc = resolver.resolve(SCRIPT, "vm.count", 3)

        assert loc is not None
        assert (loc.line, loc.context) == (2, None)


class TestLookup:
    """Priority order of lookup()."""

    def test_mixin_state_before_own_methods(self, resolver: DefinitionResolver, docs: InMemoryDocumentStore) -> None:
        text = (
            "var m = { data() { return { shared: 1 }; } };\n"
            "new Vue({ mixins: [m], methods: { shared() {} } });\n"
        )
        docs.open(SCRIPT, text)

        index = resolver.component_index(SCRIPT)

        assert index is not None
        assert lookup(index, "shared") == index.mixin_state["shared"]
        assert lookup(index, "shared", Preference.METHODS) == index.methods["shared"]

    def test_falls_back_to_all(self, resolver: DefinitionResolver, docs: InMemoryDocumentStore) -> None:
        docs.open(SCRIPT, "new Vue({ props: ['label'], computed: { total() {} } });\n")

        index = resolver.component_index(SCRIPT)

        assert index is not None
        assert lookup(index, "label") == index.inputs["label"]
        assert lookup(index, "total") == index.computed["total"]


class TestCaching:
    """Index reuse and invalidation through the resolver."""

    @staticmethod
    def _builds(resolver: DefinitionResolver) -> int:
        return resolver.stats()["components"].builds

    def test_repeat_queries_reuse_index(self, resolver: DefinitionResolver, app: str) -> None:
        resolver.resolve(app, "count", 8)
        resolver.resolve(app, "inc", 8)
        resolver.resolve(app, "this.count", 8)

        assert self._builds(resolver) == 1

    def test_scenario_same_version_new_content_rebuilds(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, app: str
    ) -> None:
        """A content change is caught by the hash even if the version is reused."""
        resolver.resolve(app, "count", 8)

        docs.update(app, APP.replace("count: 0", "total: 0"), version=1)

        assert resolver.resolve(app, "total", 8) is not None
        assert resolver.resolve(app, "count", 8) is None
        assert self._builds(resolver) == 2

    def test_version_bump_rebuilds(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, app: str
    ) -> None:
        resolver.resolve(app, "count", 8)

        docs.update(app, APP)
        resolver.resolve(app, "count", 8)

        assert self._builds(resolver) == 2

    def test_cached_index_equals_fresh_build(self, resolver: DefinitionResolver, app: str) -> None:
        cached = resolver.component_index(app)
        fresh = ComponentIndexBuilder().build(APP, SCRIPT, version=1)

        assert cached is not None
        assert cached.all == fresh.all
        assert cached.content_hash == fresh.content_hash

    def test_shared_caches(self, docs: InMemoryDocumentStore, app: str) -> None:
        caches = IndexCacheService()
        one = DefinitionResolver(docs, caches)
        two = DefinitionResolver(docs, caches)

        one.resolve(app, "count", 8)
        two.resolve(app, "count", 8)

        assert caches.stats()["components"].builds == 1

    def test_prune_and_clear(self, resolver: DefinitionResolver, app: str) -> None:
        resolver.resolve(app, "count", 8)

        assert resolver.prune_by_age(0) == 1
        resolver.resolve(app, "count", 8)
        resolver.clear_all()

        assert resolver.stats()["components"].entry_count == 0


PAGE_MARKUP = """\
<div id="app">
  <ul>
    <li v-for="(item, idx) in list">{{ item }}</li>
  </ul>
  <span>{{ item }}</span>
  <button @click="save" class="btn">{{ title }}</button>
</div>
"""

PAGE_SCRIPT = """\
new Vue({
  el: '#app',
  data: { title: 'Orders', list: [], save: null },
  methods: {
    save() {},
  },
});
"""


@pytest.fixture
def site(tmp_path: Path) -> tuple[Path, Path]:
    page = tmp_path / "orders.html"
    page.write_text(PAGE_MARKUP)
    script = tmp_path / "js" / "orders.dev.js"
    script.parent.mkdir()
    script.write_text(PAGE_SCRIPT)
    return page, script


class TestMarkupResolution:
    """Resolving names in markup pages."""

    def test_scenario_loop_variable_scope(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        """`item` resolves inside the <li> and not in the trailing <span>."""
        page, _ = site
        docs.open(str(page), PAGE_MARKUP)

        loc = resolver.resolve(str(page), "item", 2)

        assert loc is not None
        assert (loc.resource_id, loc.line) == (str(page), 2)
        assert resolver.resolve(str(page), "item", 4) is None

    def test_scope_boundary(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, tmp_path: Path
    ) -> None:
        text = '<ul>\n  <li v-for="row in rows">\n    {{ row }}\n  </li>\n</ul>\n'
        page = tmp_path / "rows.html"
        docs.open(str(page), text)

        variable = resolver.template_index(str(page)).variables[0]  # type: ignore[union-attr]

        for line in range(variable.scope_start, variable.scope_end + 1):
            assert resolver.resolve(str(page), "row", line) is not None
        assert resolver.resolve(str(page), "row", variable.scope_end + 1) is None

    def test_component_members_from_sibling_script(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        docs.open(str(page), PAGE_MARKUP)

        loc = resolver.resolve(str(page), "title", 5)

        assert loc is not None
        assert loc.resource_id == str(script.absolute())
        assert loc.line == 2

    def test_open_sibling_script_preferred_over_disk(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        docs.open(str(page), PAGE_MARKUP)
        docs.open(str(script), "\n\n" + PAGE_SCRIPT)

        loc = resolver.resolve(str(page), "title", 5)

        assert loc is not None
        assert loc.line == 4

    def test_self_rooted_chain_skips_template(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, _ = site
        docs.open(str(page), PAGE_MARKUP)

        assert resolver.resolve(str(page), "this.item", 2) is None

    def test_resolve_at_event_handler_prefers_methods(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        docs.open(str(page), PAGE_MARKUP)
        line = PAGE_MARKUP.splitlines()[5]

        loc = resolver.resolve_at(str(page), 5, line.index("save") + 1)

        assert loc is not None
        assert loc.resource_id == str(script.absolute())
        assert loc.line == 4

    def test_resolve_at_skips_attribute_names(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, _ = site
        docs.open(str(page), PAGE_MARKUP)
        line = PAGE_MARKUP.splitlines()[5]

        assert resolver.resolve_at(str(page), 5, line.index("class") + 1) is None
        assert resolver.resolve_at(str(page), 99, 0) is None

    def test_referring_templates(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        docs.open(str(page), PAGE_MARKUP)
        docs.open("/elsewhere/other.html", "<p></p>")

        assert resolver.referring_templates(script) == [str(page)]

    def test_external_script_edit_is_picked_up(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        docs.open(str(page), PAGE_MARKUP)
        assert resolver.resolve(str(page), "title", 5) is not None

        script.write_text(PAGE_SCRIPT.replace("title", "heading"))
        resolver.invalidate(str(script))

        assert resolver.resolve(str(page), "title", 5) is None
        assert resolver.resolve(str(page), "heading", 5) is not None

    def test_several_sibling_scripts_merge_once(
        self, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        helpers = script.parent / "helpers.js"
        helpers.write_text("new Vue({ data: { title: 1, extra: 2 } });\n")
        scripts = ScriptsConfig(script_patterns=[str(script), str(helpers)])
        resolver = DefinitionResolver(docs, config=CompNavConfig(scripts=scripts))
        docs.open(str(page), PAGE_MARKUP)

        title = resolver.resolve(str(page), "title", 5)
        extra = resolver.resolve(str(page), "extra", 5)

        assert title is not None and title.resource_id == str(script.absolute())
        assert extra is not None and extra.resource_id == str(helpers.absolute())
        assert resolver.stats()["merged"].builds == 1


INLINE_PAGE = """\
<div id="app">
  <todo-row></todo-row>
</div>
<script type="text/x-template" id="todo-row-tpl">
  <li>{{ label }} {{ count }}</li>
</script>
<script>new Vue({
  el: '#app',
  data: { count: 1 },
  components: {
    'todo-row': {
      template: '#todo-row-tpl',
      data() { return { label: 'x' }; },
    },
  },
});
</script>
"""


class TestInlineScripts:
    """Pages without a sibling script."""

    def test_inline_component_positions(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, tmp_path: Path, locate: Locate
    ) -> None:
        page = str(tmp_path / "inline.html")
        docs.open(page, INLINE_PAGE)

        loc = resolver.resolve(page, "count", 1)

        assert loc == Location(page, *locate(INLINE_PAGE, "count: 1"))

    def test_x_template_uses_sub_component(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, tmp_path: Path, locate: Locate
    ) -> None:
        page = str(tmp_path / "inline.html")
        docs.open(page, INLINE_PAGE)

        assert resolver.resolve(page, "label", 4) == Location(page, *locate(INLINE_PAGE, "label: 'x'"))
        assert resolver.resolve(page, "count", 4) is None
        assert resolver.resolve(page, "label", 1) is None

    def test_page_without_component(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, tmp_path: Path
    ) -> None:
        page = str(tmp_path / "static.html")
        docs.open(page, "<p>{{ nothing }}</p>\n")

        assert resolver.resolve(page, "nothing", 0) is None
        assert resolver.component_index(page) is None


class TestFailureBoundary:
    """Internal failures become misses and are recorded."""

    def test_unexpected_error_is_recorded(
        self, resolver: DefinitionResolver, app: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(*_args: object, **_kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(resolver.caches, "component_index", explode)

        assert resolver.resolve(app, "count", 8) is None
        (entry,) = resolver.diagnostics()
        assert entry["operation"] == "resolve"
        assert entry["error"] == "INTERNAL_ERROR"
        assert entry["details"]["exception"] == "RuntimeError"
        assert (entry["resource_id"], entry["query"], entry["cursor_line"]) == (app, "count", 8)
        assert len(entry["resolution_id"]) == 12

    def test_failures_outside_resolution_carry_no_query(
        self, resolver: DefinitionResolver, app: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(*_args: object, **_kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(resolver.caches, "component_index", explode)

        assert resolver.component_index(app) is None
        (entry,) = resolver.diagnostics()
        assert entry["operation"] == "component_index"
        assert "query" not in entry

    def test_diagnostics_are_bounded(self, docs: InMemoryDocumentStore, app: str, monkeypatch: pytest.MonkeyPatch) -> None:
        resolver = DefinitionResolver(docs, config=CompNavConfig(index=IndexConfig(diagnostics_max=2)))

        def explode(*_args: object, **_kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(resolver.caches, "component_index", explode)
        for _ in range(5):
            resolver.resolve(app, "count", 8)

        assert len(resolver.diagnostics()) == 2

    def test_unreadable_sibling_script_is_skipped(
        self, resolver: DefinitionResolver, docs: InMemoryDocumentStore, site: tuple[Path, Path]
    ) -> None:
        page, script = site
        script.write_bytes(b"\xff\xfe not utf-8 \xff")
        docs.open(str(page), PAGE_MARKUP)

        assert resolver.resolve(str(page), "title", 5) is None
        assert resolver.resolve(str(page), "item", 2) is not None
        assert any(d["error"] == "FILE_ACCESS_ERROR" for d in resolver.diagnostics())

    def test_dispose(self, resolver: DefinitionResolver, app: str) -> None:
        resolver.resolve(app, "count", 8)

        resolver.dispose()

        assert resolver.stats()["components"].entry_count == 0
        assert resolver.diagnostics() == []
