"""Documents as the host editor sees them.

The host owns document text and versions. The resolver only needs to look a
document up by resource id and to enumerate the open markup pages.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

from compnav.config.constants import MARKUP_EXTENSIONS, TYPESCRIPT_EXTENSIONS
from compnav.core.errors import FileAccessError

HTML = "html"
JAVASCRIPT = "javascript"
TYPESCRIPT = "typescript"


def language_id_for(resource_id: str) -> str:
    suffix = Path(resource_id).suffix.lower()
    if suffix in MARKUP_EXTENSIONS:
        return HTML
    if suffix in TYPESCRIPT_EXTENSIONS:
        return TYPESCRIPT
    return JAVASCRIPT


@dataclass(frozen=True, slots=True)
class Document:
    """Text of one resource at one version."""

    resource_id: str
    text: str
    version: int = 0
    language_id: str = JAVASCRIPT

    @property
    def is_markup(self) -> bool:
        return self.language_id == HTML

    def lines(self) -> list[str]:
        """Lines split on line feeds only, so indices match parser rows."""
        return [line.removesuffix("\r") for line in self.text.split("\n")]

    @classmethod
    def from_path(cls, path: Path) -> Document:
        """Read a file from disk at version 0.

        Raises:
            FileAccessError: The file cannot be read.
        """
        path = Path(path).absolute()
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError.unreadable(str(path), str(e)) from e
        return cls(str(path), text, 0, language_id_for(str(path)))


class DocumentStore(Protocol):
    """Host-side document access."""

    def get(self, resource_id: str) -> Document | None:
        """Current document for a resource, or None if unknown."""
        ...

    def open_markup_documents(self) -> list[Document]:
        """Markup documents currently open in the host."""
        ...


class InMemoryDocumentStore:
    """DocumentStore over a dict, for tests and the CLI."""

    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}

    def __contains__(self, resource_id: str) -> bool:
        return resource_id in self._docs

    def open(
        self,
        resource_id: str,
        text: str,
        *,
        version: int = 0,
        language_id: str | None = None,
    ) -> Document:
        doc = Document(resource_id, text, version, language_id or language_id_for(resource_id))
        self._docs[resource_id] = doc
        return doc

    def add(self, document: Document) -> Document:
        self._docs[document.resource_id] = document
        return document

    def update(self, resource_id: str, text: str, *, version: int | None = None) -> Document:
        """Replace a document's text; the version is bumped unless given."""
        current = self._docs[resource_id]
        doc = replace(
            current,
            text=text,
            version=current.version + 1 if version is None else version,
        )
        self._docs[resource_id] = doc
        return doc

    def close(self, resource_id: str) -> None:
        self._docs.pop(resource_id, None)

    def get(self, resource_id: str) -> Document | None:
        return self._docs.get(resource_id)

    def open_markup_documents(self) -> list[Document]:
        return [d for d in self._docs.values() if d.is_markup]
