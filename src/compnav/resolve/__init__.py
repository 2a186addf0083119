"""Resolve module: identifier -> definition site."""

from compnav.resolve.chain import Query, extract_query, is_self_alias, parse_query
from compnav.resolve.documents import Document, DocumentStore, InMemoryDocumentStore
from compnav.resolve.resolver import DefinitionResolver, Preference, lookup

__all__ = [
    "DefinitionResolver",
    "Preference",
    "lookup",
    "Query",
    "extract_query",
    "is_self_alias",
    "parse_query",
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
]
