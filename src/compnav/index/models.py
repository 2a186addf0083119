"""Index records: locations, component indices, template scopes, cache stats.

Index records are immutable. A rebuild always produces a fresh object, so a
host holding an old index never observes it change.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from compnav.core.hashing import combine_hashes


class Category(str, Enum):
    """Member categories of a component, in lookup priority order for `all`."""

    STATE = "state"
    COMPUTED = "computed"
    METHODS = "methods"
    INPUTS = "inputs"
    MIXIN_STATE = "mixin_state"
    MIXIN_COMPUTED = "mixin_computed"
    MIXIN_METHODS = "mixin_methods"
    EMITS = "emits"


ALL_PRIORITY: tuple[Category, ...] = (
    Category.STATE,
    Category.COMPUTED,
    Category.METHODS,
    Category.INPUTS,
    Category.MIXIN_STATE,
    Category.MIXIN_COMPUTED,
    Category.MIXIN_METHODS,
    Category.EMITS,
)


@dataclass(frozen=True, slots=True)
class Location:
    """Definition site. `line` and `column` are 0-based; `column` counts characters."""

    resource_id: str
    line: int
    column: int
    context: str | None = None  # mixin name for mixin-contributed members


@dataclass(frozen=True, slots=True)
class MemberMeta:
    """Parameter list and doc comment of a member."""

    params: tuple[str, ...] = ()
    doc: str | None = None


@dataclass(frozen=True)
class ComponentIndex:
    """Per-category name -> Location maps of one component.

    `all` is merged in ALL_PRIORITY order; on a name collision the
    higher-priority category keeps the entry.
    """

    state: dict[str, Location] = field(default_factory=dict)
    methods: dict[str, Location] = field(default_factory=dict)
    computed: dict[str, Location] = field(default_factory=dict)
    inputs: dict[str, Location] = field(default_factory=dict)
    emits: dict[str, Location] = field(default_factory=dict)
    mixin_state: dict[str, Location] = field(default_factory=dict)
    mixin_methods: dict[str, Location] = field(default_factory=dict)
    mixin_computed: dict[str, Location] = field(default_factory=dict)
    all: dict[str, Location] = field(default_factory=dict)
    meta: dict[str, MemberMeta] = field(default_factory=dict)
    components_by_template_id: dict[str, ComponentIndex] = field(default_factory=dict)
    content_hash: str = ""
    document_version: int = 0
    built_at: float = field(default_factory=time.time)

    @classmethod
    def empty(cls, content_hash: str = "", version: int = 0) -> ComponentIndex:
        """Degraded index for sources that could not be parsed."""
        return cls(content_hash=content_hash, document_version=version)

    def category(self, category: Category) -> dict[str, Location]:
        return getattr(self, category.value)

    @property
    def is_empty(self) -> bool:
        return not self.all and not self.components_by_template_id

    @classmethod
    def merge(cls, indices: list[ComponentIndex]) -> ComponentIndex:
        """Fold several indices into one; the earliest index wins each name."""
        if len(indices) == 1:
            return indices[0]
        fields: dict[str, dict] = {c.value: {} for c in Category}
        fields["meta"] = {}
        fields["components_by_template_id"] = {}
        for index in indices:
            for name, target in fields.items():
                for key, value in getattr(index, name).items():
                    target.setdefault(key, value)
        merged: dict[str, Location] = {}
        for category in ALL_PRIORITY:
            for name, loc in fields[category.value].items():
                merged.setdefault(name, loc)
        return cls(
            **fields,
            all=merged,
            content_hash=combine_hashes([i.content_hash for i in indices]),
            document_version=max((i.document_version for i in indices), default=0),
            built_at=max((i.built_at for i in indices), default=time.time()),
        )


@dataclass(frozen=True, slots=True)
class TemplateVariable:
    """Template-local binding visible on lines scope_start..scope_end inclusive."""

    name: str
    location: Location
    scope_start: int
    scope_end: int

    def contains(self, line: int) -> bool:
        return self.scope_start <= line <= self.scope_end


@dataclass(frozen=True)
class TemplateIndex:
    """Loop and slot bindings of one markup document, in registration order."""

    variables: tuple[TemplateVariable, ...] = ()
    content_hash: str = ""
    version: int = 0
    built_at: float = field(default_factory=time.time)

    def find(self, name: str, line: int) -> Location | None:
        """First variable named `name` whose scope contains `line`.

        Overlapping same-named scopes resolve in registration order, so an
        outer binding can shadow an inner one.
        """
        for var in self.variables:
            if var.name == name and var.contains(line):
                return var.location
        return None

    def names(self) -> list[str]:
        return [v.name for v in self.variables]

    # Uniform cache interface with ComponentIndex.
    @property
    def document_version(self) -> int:
        return self.version


@dataclass
class CacheEntry:
    """Cached index plus access bookkeeping."""

    index: ComponentIndex | TemplateIndex
    last_access: float = field(default_factory=time.time)

    def touch(self, now: float) -> None:
        self.last_access = now


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Read-only snapshot of one cache."""

    entry_count: int
    last_built_at: float | None
    total_accesses: int
    builds: int

    def to_dict(self) -> dict[str, int | float | None]:
        return {
            "entry_count": self.entry_count,
            "last_built_at": self.last_built_at,
            "total_accesses": self.total_accesses,
            "builds": self.builds,
        }
