"""Definition resolver: the entry point for "where is this defined?".

Per call:
1. Parse the query. A self-rooted chain (`this.x`, `that.x`, `vm.x` with
   `vm = this` in scope) asks for its first member; anything else for its root.
2. Markup only: template-local bindings (v-for, slot scopes) shadow component
   members, so the template index is asked first.
3. Find the owning component index: the script itself, or for markup the
   sibling scripts (merged), else the inline component script; inside an
   x-template the sub-component's index.
4. Look the name up: state -> mixin state -> methods -> mixin methods -> all.

Every public operation converts internal failures into a miss (None, empty
result, 0). Failures are logged and kept in a bounded diagnostics list.
"""

from __future__ import annotations

import functools
from collections import deque
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import structlog

from compnav.config.models import CompNavConfig
from compnav.core.errors import CompNavError, FileAccessError, InternalError
from compnav.core.logging import current_resolution, resolution_context
from compnav.index._internal.discovery import find_inline_component_script, x_template_id_at
from compnav.index._internal.parsing import JAVASCRIPT
from compnav.index.cache import IndexCacheService
from compnav.index.models import CacheStats, Category, ComponentIndex, Location, TemplateIndex
from compnav.resolve.chain import (
    extract_query,
    is_attribute_name,
    parse_query,
    prefers_methods,
)
from compnav.resolve.documents import Document, DocumentStore

log = structlog.get_logger()

R = TypeVar("R")


class Preference(str, Enum):
    """Lookup bias for a query."""

    METHODS = "methods"


_DEFAULT_ORDER = (
    Category.STATE,
    Category.MIXIN_STATE,
    Category.METHODS,
    Category.MIXIN_METHODS,
)
_METHODS_ORDER = (
    Category.METHODS,
    Category.MIXIN_METHODS,
    Category.STATE,
    Category.MIXIN_STATE,
)


def lookup(index: ComponentIndex, name: str, prefer: Preference | None = None) -> Location | None:
    """Definition of `name` in priority order, falling back to the merged map."""
    order = _METHODS_ORDER if prefer is Preference.METHODS else _DEFAULT_ORDER
    for category in order:
        loc = index.category(category).get(name)
        if loc is not None:
            return loc
    return index.all.get(name)


def _resolution_scope(
    _self: DefinitionResolver,
    resource_id: str,
    identifier_or_chain: str,
    cursor_line: int,
    **_: Any,
) -> AbstractContextManager[Any]:
    return resolution_context(resource_id, identifier_or_chain, cursor_line)


def _boundary(
    default: Callable[[], Any],
    scope: Callable[..., AbstractContextManager[Any]] | None = None,
) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Convert failures of a public operation into `default()` and record them.

    `scope` builds a context entered around the call and the recording, so
    failures are recorded with the context it binds.
    """

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(func)
        def wrapper(self: DefinitionResolver, *args: Any, **kwargs: Any) -> R:
            with scope(self, *args, **kwargs) if scope is not None else nullcontext():
                try:
                    return func(self, *args, **kwargs)
                except CompNavError as e:
                    self._record(e, func.__name__)
                except Exception as e:
                    err = InternalError.unexpected(
                        str(e), operation=func.__name__, exception=type(e).__name__
                    )
                    self._record(err, func.__name__, exc_info=True)
            return default()  # type: ignore[no-any-return]

        return wrapper

    return decorator


class DefinitionResolver:
    """Resolves identifiers in scripts and markup pages to definition sites.

    Usage::

        docs = InMemoryDocumentStore()
        docs.open("/site/page.html", html)
        resolver = DefinitionResolver(docs)
        loc = resolver.resolve("/site/page.html", "this.count", cursor_line=12)
    """

    def __init__(
        self,
        documents: DocumentStore,
        caches: IndexCacheService | None = None,
        config: CompNavConfig | None = None,
    ) -> None:
        self.documents = documents
        self.config = config or (caches.config if caches is not None else CompNavConfig())
        self.caches = caches or IndexCacheService(self.config)
        self._diagnostics: deque[dict[str, Any]] = deque(
            maxlen=self.config.index.diagnostics_max
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @_boundary(lambda: None, scope=_resolution_scope)
    def resolve(
        self,
        resource_id: str,
        identifier_or_chain: str,
        cursor_line: int,
        *,
        prefer: Preference | None = None,
    ) -> Location | None:
        """Definition of an identifier or chain as seen from `cursor_line`."""
        return self._resolve(resource_id, identifier_or_chain, cursor_line, prefer)

    def _resolve(
        self,
        resource_id: str,
        text: str,
        cursor_line: int,
        prefer: Preference | None,
    ) -> Location | None:
        doc = self.documents.get(resource_id)
        if doc is None:
            log.debug("resolve_miss", reason="unknown_document")
            return None
        query = parse_query(
            text,
            lines=doc.lines(),
            cursor_line=cursor_line,
            config=self.config.resolver,
        )
        if query is None:
            log.debug("resolve_miss", reason="not_an_identifier")
            return None

        if doc.is_markup and not query.self_rooted:
            hit = self._template_index(doc).find(query.name, cursor_line)
            if hit is not None:
                log.debug("resolve_hit", name=query.name, source="template")
                return hit

        index = self._owning_index(doc, cursor_line)
        loc = lookup(index, query.name, prefer) if index is not None else None
        if loc is None:
            log.debug("resolve_miss", name=query.name)
            return None
        log.debug(
            "resolve_hit",
            name=query.name,
            target=loc.resource_id,
            line=loc.line,
            context=loc.context,
        )
        return loc

    @_boundary(lambda: None)
    def resolve_at(self, resource_id: str, line: int, column: int) -> Location | None:
        """Definition of the word (or chain) under a cursor position."""
        doc = self.documents.get(resource_id)
        if doc is None:
            return None
        lines = doc.lines()
        if not 0 <= line < len(lines):
            return None
        line_text = lines[line]
        query = extract_query(line_text, column)
        if query is None:
            return None
        if (
            doc.is_markup
            and query.chain == query.word
            and query.word in self.config.resolver.attribute_blacklist
            and is_attribute_name(line_text, query.end)
        ):
            return None
        prefer = (
            Preference.METHODS
            if prefers_methods(line_text, query.start, query.end, markup=doc.is_markup)
            else None
        )
        return self.resolve(resource_id, query.chain, line, prefer=prefer)

    @_boundary(lambda: None)
    def component_index(self, resource_id: str, cursor_line: int = 0) -> ComponentIndex | None:
        """Component index that owns `resource_id` at `cursor_line`."""
        doc = self.documents.get(resource_id)
        return self._owning_index(doc, cursor_line) if doc is not None else None

    @_boundary(lambda: None)
    def template_index(self, resource_id: str) -> TemplateIndex | None:
        """Template scope index of a markup resource."""
        doc = self.documents.get(resource_id)
        if doc is None or not doc.is_markup:
            return None
        return self._template_index(doc)

    def _template_index(self, doc: Document) -> TemplateIndex:
        return self.caches.template_index(doc.resource_id, doc.text, doc.version)

    def _owning_index(self, doc: Document, cursor_line: int) -> ComponentIndex | None:
        if not doc.is_markup:
            return self.caches.component_index(doc.resource_id, doc.text, doc.version)
        index = self._markup_index(doc)
        if index is None:
            return None
        template_id = x_template_id_at(doc.text, cursor_line)
        if template_id is not None and template_id in index.components_by_template_id:
            return index.components_by_template_id[template_id]
        return index

    def _markup_index(self, doc: Document) -> ComponentIndex | None:
        indices: list[ComponentIndex] = []
        for path in self.caches.scripts.find_sibling_scripts(Path(doc.resource_id)):
            opened = self.documents.get(str(path))
            if opened is not None:
                indices.append(
                    self.caches.component_index(opened.resource_id, opened.text, opened.version)
                )
                continue
            try:
                indices.append(self.caches.external_index(path))
            except FileAccessError as e:
                # The page still resolves through its other sources
                self._record(e, "sibling_script")
        if indices:
            return self.caches.merged_index(doc.resource_id, indices)

        inline = find_inline_component_script(doc.text)
        if inline is None:
            return None
        return self.caches.component_index(
            doc.resource_id,
            inline.text,
            doc.version,
            line_offset=inline.line_offset,
            column_offset=inline.column_offset,
            language=JAVASCRIPT,
        )

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------

    @_boundary(list)
    def referring_templates(self, script_path: str | Path) -> list[str]:
        """Open markup pages whose sibling script is `script_path`."""
        target = Path(script_path).absolute()
        return [
            doc.resource_id
            for doc in self.documents.open_markup_documents()
            if any(
                p.absolute() == target
                for p in self.caches.scripts.find_sibling_scripts(Path(doc.resource_id))
            )
        ]

    @_boundary(lambda: None)
    def invalidate(self, resource_id: str) -> None:
        """Drop cached indices of one resource (and discovery of its pages)."""
        doc = self.documents.get(resource_id)
        if doc is not None and doc.is_markup:
            self.caches.scripts.forget(Path(resource_id))
        else:
            for page in self.referring_templates(resource_id):
                self.caches.scripts.forget(Path(page))
        self.caches.invalidate(resource_id)

    @_boundary(lambda: None)
    def clear_all(self) -> None:
        self.caches.clear_all()

    @_boundary(lambda: 0)
    def prune_by_age(self, max_age_ms: float | None = None) -> int:
        return self.caches.prune_by_age(max_age_ms)

    @_boundary(dict)
    def stats(self) -> dict[str, CacheStats]:
        return self.caches.stats()

    @_boundary(lambda: None)
    def dispose(self) -> None:
        self.caches.dispose()
        self._diagnostics.clear()

    def diagnostics(self) -> list[dict[str, Any]]:
        """Recorded internal failures, oldest first."""
        return list(self._diagnostics)

    def _record(self, err: CompNavError, operation: str, *, exc_info: bool = False) -> None:
        entry = {"operation": operation, **current_resolution(), **err.to_dict()}
        self._diagnostics.append(entry)
        log.warning(
            "resolve_failed",
            operation=operation,
            error=err.error_name,
            message=err.message,
            exc_info=exc_info,
        )
