"""Index module: component indices, template scopes and their caches.

Public API:
- IndexCacheService: owns the caches of one workspace
- ComponentIndex, TemplateIndex, Location: index records

Builders and scanners live in `compnav.index._internal/`.
"""

from compnav.index.cache import ExternalFileCache, IndexCache, IndexCacheService
from compnav.index.models import (
    ALL_PRIORITY,
    CacheEntry,
    CacheStats,
    Category,
    ComponentIndex,
    Location,
    MemberMeta,
    TemplateIndex,
    TemplateVariable,
)

__all__ = [
    # Caches
    "IndexCacheService",
    "IndexCache",
    "ExternalFileCache",
    # Records
    "ALL_PRIORITY",
    "CacheEntry",
    "CacheStats",
    "Category",
    "ComponentIndex",
    "Location",
    "MemberMeta",
    "TemplateIndex",
    "TemplateVariable",
]
