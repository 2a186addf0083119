"""compnav - go-to-definition for options-style UI components.

Resolves identifiers in component scripts and markup pages to the place they
are declared: state fields, methods, computed values, inputs, emitted events,
mixin members and template-local loop/slot bindings.
"""

__version__ = "0.1.0"
