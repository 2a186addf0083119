"""Script discovery for markup pages."""

from compnav.index._internal.discovery.scripts import (
    InlineScript,
    ScriptLocator,
    find_inline_component_script,
    x_template_id_at,
)

__all__ = [
    "InlineScript",
    "ScriptLocator",
    "find_inline_component_script",
    "x_template_id_at",
]
