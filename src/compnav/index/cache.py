"""Content-addressed index caches.

Design:
- IndexCache: per-resource memo of the latest index, valid only while both
  the content hash AND the document version match
- Bounded by capacity, oldest-in-order evicted first; a hit moves the entry
  to the end
- ExternalFileCache: sibling scripts on disk, keyed by absolute path and
  valid while the file's mtime is unchanged
- The merged cache holds the fold of a page's sibling-script indices,
  valid while the combined member hash and version match
- IndexCacheService owns all caches and the discovery memo. Each resolver
  gets its own service (or an injected one); nothing is module-global.

Single-threaded: there is no locking.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path
from typing import Generic, TypeVar

import structlog

from compnav.config.models import CompNavConfig
from compnav.core.errors import CacheInconsistency, FileAccessError
from compnav.core.hashing import combine_hashes, content_hash
from compnav.index._internal.discovery import ScriptLocator
from compnav.index._internal.indexing import ComponentIndexBuilder, build_template_index
from compnav.index._internal.parsing import language_for
from compnav.index.models import CacheEntry, CacheStats, ComponentIndex, TemplateIndex

log = structlog.get_logger()

IndexT = TypeVar("IndexT", ComponentIndex, TemplateIndex)


class IndexCache(Generic[IndexT]):
    """Bounded map of resource key -> latest index."""

    def __init__(self, name: str, capacity: int, clock: Callable[[], float] = time.time) -> None:
        self.name = name
        self.capacity = max(1, capacity)
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._builds = 0
        self._last_built_at: float | None = None
        self._total_accesses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str, content_hash: str, version: int) -> IndexT | None:
        """Cached index, only on an exact hash and version match."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        index = entry.index
        if index.content_hash != content_hash or index.document_version != version:
            stale = CacheInconsistency.stale(
                key,
                cached_hash=index.content_hash,
                cached_version=index.document_version,
                content_hash=content_hash,
                version=version,
            )
            log.debug("cache_stale", cache=self.name, **stale.details)
            return None
        self._entries.move_to_end(key)
        entry.touch(self._clock())
        self._total_accesses += 1
        return index  # type: ignore[return-value]

    def set(self, key: str, index: IndexT) -> None:
        self._entries[key] = CacheEntry(index, last_access=self._clock())
        self._entries.move_to_end(key)
        self._builds += 1
        self._last_built_at = max(self._last_built_at or 0.0, index.built_at)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("cache_evicted", cache=self.name, key=evicted)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def prune_by_age(self, max_age_ms: float) -> int:
        """Drop entries not accessed for `max_age_ms`. Returns the count removed."""
        cutoff = self._clock() - max_age_ms / 1000.0
        stale = [k for k, e in self._entries.items() if e.last_access <= cutoff]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def stats(self) -> CacheStats:
        return CacheStats(
            entry_count=len(self._entries),
            last_built_at=self._last_built_at,
            total_accesses=self._total_accesses,
            builds=self._builds,
        )


class ExternalFileCache:
    """Indices of on-disk scripts, keyed by absolute path and mtime."""

    def __init__(self, capacity: int, clock: Callable[[], float] = time.time) -> None:
        self.capacity = max(1, capacity)
        self._clock = clock
        self._entries: OrderedDict[Path, tuple[int, CacheEntry]] = OrderedDict()
        self._builds = 0
        self._last_built_at: float | None = None
        self._total_accesses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: Path) -> bool:
        return Path(path).absolute() in self._entries

    def get(self, path: Path) -> ComponentIndex | None:
        """Cached index while the file's mtime is unchanged."""
        path = Path(path).absolute()
        cached = self._entries.get(path)
        if cached is None:
            return None
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError:
            del self._entries[path]
            return None
        cached_mtime, entry = cached
        if cached_mtime != mtime_ns:
            return None
        self._entries.move_to_end(path)
        entry.touch(self._clock())
        self._total_accesses += 1
        return entry.index  # type: ignore[return-value]

    def load(self, path: Path, builder: Callable[[str], ComponentIndex]) -> ComponentIndex:
        """Read, build and store the index of a file.

        Raises:
            FileAccessError: The file cannot be read or decoded.
        """
        path = Path(path).absolute()
        try:
            mtime_ns = path.stat().st_mtime_ns
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._entries.pop(path, None)
            raise FileAccessError.unreadable(str(path), str(e)) from e
        index = builder(text)
        self._entries[path] = (mtime_ns, CacheEntry(index, last_access=self._clock()))
        self._entries.move_to_end(path)
        self._builds += 1
        self._last_built_at = max(self._last_built_at or 0.0, index.built_at)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return index

    def delete(self, path: Path) -> bool:
        return self._entries.pop(Path(path).absolute(), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def prune_by_age(self, max_age_ms: float) -> int:
        cutoff = self._clock() - max_age_ms / 1000.0
        stale = [p for p, (_, e) in self._entries.items() if e.last_access <= cutoff]
        for path in stale:
            del self._entries[path]
        return len(stale)

    def stats(self) -> CacheStats:
        return CacheStats(
            entry_count=len(self._entries),
            last_built_at=self._last_built_at,
            total_accesses=self._total_accesses,
            builds=self._builds,
        )


class IndexCacheService:
    """Owns the component, template, merged and external caches of one workspace.

    Usage::

        caches = IndexCacheService(config)
        index = caches.component_index("app.js", text, version)
        ...
        caches.dispose()
    """

    def __init__(
        self,
        config: CompNavConfig | None = None,
        *,
        builder: ComponentIndexBuilder | None = None,
        scripts: ScriptLocator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CompNavConfig()
        self.builder = builder or ComponentIndexBuilder()
        self.scripts = scripts or ScriptLocator(self.config.scripts)
        self.components: IndexCache[ComponentIndex] = IndexCache(
            "components", self.config.index.max_index_entries, clock
        )
        self.templates: IndexCache[TemplateIndex] = IndexCache(
            "templates", self.config.index.max_template_entries, clock
        )
        self.merged: IndexCache[ComponentIndex] = IndexCache(
            "merged", self.config.index.max_template_entries, clock
        )
        self.external = ExternalFileCache(self.config.index.max_index_entries, clock)

    def component_index(
        self,
        resource_id: str,
        text: str,
        version: int,
        *,
        line_offset: int = 0,
        column_offset: int = 0,
        language: str | None = None,
    ) -> ComponentIndex:
        """Index of `text`, built on a miss."""
        digest = content_hash(text)
        cached = self.components.get(resource_id, digest, version)
        if cached is not None:
            log.debug("component_index_hit", resource_id=resource_id, version=version)
            return cached
        index = self.builder.build(
            text,
            resource_id,
            version=version,
            line_offset=line_offset,
            column_offset=column_offset,
            language=language or language_for(resource_id),
        )
        self.components.set(resource_id, index)
        return index

    def template_index(self, resource_id: str, text: str, version: int) -> TemplateIndex:
        """Template scope index of markup `text`, built on a miss."""
        digest = content_hash(text)
        cached = self.templates.get(resource_id, digest, version)
        if cached is not None:
            return cached
        index = build_template_index(text, resource_id, version)
        self.templates.set(resource_id, index)
        return index

    def merged_index(self, resource_id: str, indices: list[ComponentIndex]) -> ComponentIndex:
        """Fold of a page's sibling-script indices, reused while they are unchanged."""
        if len(indices) == 1:
            return indices[0]
        digest = combine_hashes([i.content_hash for i in indices])
        version = max(i.document_version for i in indices)
        cached = self.merged.get(resource_id, digest, version)
        if cached is not None:
            return cached
        index = ComponentIndex.merge(indices)
        self.merged.set(resource_id, index)
        return index

    def external_index(self, path: Path) -> ComponentIndex:
        """Index of an on-disk script, rebuilt when its mtime changes.

        Raises:
            FileAccessError: The script cannot be read.
        """
        path = Path(path).absolute()
        cached = self.external.get(path)
        if cached is not None:
            log.debug("external_index_hit", path=str(path))
            return cached
        resource_id = str(path)
        return self.external.load(
            path,
            lambda text: self.builder.build(text, resource_id, language=language_for(resource_id)),
        )

    def invalidate(self, resource_id: str) -> None:
        self.components.delete(resource_id)
        self.templates.delete(resource_id)
        self.merged.delete(resource_id)
        self.external.delete(Path(resource_id))

    def clear_all(self) -> None:
        self.components.clear()
        self.templates.clear()
        self.merged.clear()
        self.external.clear()
        self.scripts.clear()

    def prune_by_age(self, max_age_ms: float | None = None) -> int:
        """Drop entries idle for `max_age_ms` (default from config) across all caches."""
        if max_age_ms is None:
            max_age_ms = self.config.index.prune_age_sec * 1000.0
        return (
            self.components.prune_by_age(max_age_ms)
            + self.templates.prune_by_age(max_age_ms)
            + self.merged.prune_by_age(max_age_ms)
            + self.external.prune_by_age(max_age_ms)
        )

    def dispose(self) -> None:
        self.clear_all()

    def stats(self) -> dict[str, CacheStats]:
        return {
            "components": self.components.stats(),
            "templates": self.templates.stats(),
            "merged": self.merged.stats(),
            "external": self.external.stats(),
        }
