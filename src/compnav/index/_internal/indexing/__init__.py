"""Index builders for component scripts and markup templates."""

from compnav.index._internal.indexing.component import ComponentIndexBuilder
from compnav.index._internal.indexing.indirection import (
    FunctionReturn,
    Identifier,
    IndirectionTable,
    ObjectLiteral,
    ObjectSource,
    collect_indirections,
)
from compnav.index._internal.indexing.template import (
    ScanState,
    TemplateScanner,
    binding_names,
    build_template_index,
)

__all__ = [
    "ComponentIndexBuilder",
    "FunctionReturn",
    "Identifier",
    "IndirectionTable",
    "ObjectLiteral",
    "ObjectSource",
    "collect_indirections",
    "ScanState",
    "TemplateScanner",
    "binding_names",
    "build_template_index",
]
