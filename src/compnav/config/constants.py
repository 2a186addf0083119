"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable:
the framework's section names, recognized declaration forms, and markup facts.

For configurable values, see models.py.
"""

import re

# =============================================================================
# Component sections
# =============================================================================

SECTION_STATE = "data"
SECTION_METHODS = "methods"
SECTION_COMPUTED = "computed"
SECTION_INPUTS = "props"
SECTION_EMITS = "emits"
SECTION_MIXINS = "mixins"
SECTION_COMPONENTS = "components"
SECTION_TEMPLATE = "template"

EMIT_METHOD = "$emit"
"""Member called to emit an event: this.$emit('name', ...)."""

INLINE_MIXIN_CONTEXT = "<inline>"
"""Context tag for members contributed by an inline mixin object literal."""

# =============================================================================
# Component declaration forms
# =============================================================================

CONSTRUCTOR_NAMES = frozenset({"Vue"})
"""`new <Name>({...})` declares a root component."""

FACTORY_MEMBER_CALLS = frozenset({("Vue", "extend"), ("Vue", "createApp")})
"""`<Object>.<member>({...})` declares a root component."""

FACTORY_CALLS = frozenset({"createApp", "defineComponent"})
"""`<name>({...})` declares a root component."""

REGISTRATION_CALL = ("Vue", "component")
"""`Vue.component('tag', {...})` registers a (possibly x-template) component."""

INLINE_COMPONENT_PATTERN = re.compile(
    r"new\s+Vue\s*\(|\bVue\s*\.\s*(?:extend|createApp|component)\s*\(|"
    r"\bcreateApp\s*\(|\bdefineComponent\s*\(|\bexport\s+default\s*\{"
)
"""Quick textual check that an inline <script> block declares a component."""

# =============================================================================
# Markup
# =============================================================================

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)
"""Elements that never have a closing tag."""

RAW_TEXT_ELEMENTS = frozenset({"script", "style"})
"""Elements whose content is not markup (x-template scripts excepted)."""

X_TEMPLATE_TYPE = "text/x-template"

MARKUP_EXTENSIONS = frozenset({".html", ".htm"})
TYPESCRIPT_EXTENSIONS = frozenset({".ts", ".mts", ".cts"})

# =============================================================================
# Discovery
# =============================================================================

PRUNABLE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "bower_components",
        "__pycache__",
        ".venv",
        "venv",
    }
)
"""Directories never descended into while searching for sibling scripts."""
