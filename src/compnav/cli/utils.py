"""Shared CLI helpers."""

from pathlib import Path

import click

from compnav.config.models import CompNavConfig
from compnav.core.errors import FileAccessError
from compnav.resolve import DefinitionResolver, Document, InMemoryDocumentStore


def open_resolver(ctx: click.Context, path: Path) -> tuple[DefinitionResolver, Document]:
    """Resolver over a single document read from disk."""
    try:
        doc = Document.from_path(path)
    except FileAccessError as e:
        raise click.ClickException(e.message) from e
    store = InMemoryDocumentStore()
    store.add(doc)
    config = ctx.obj.get("config") if ctx.obj else None
    return DefinitionResolver(store, config=config or CompNavConfig()), doc
