"""Small helpers over tree-sitter JavaScript/TypeScript nodes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from compnav.index._internal.parsing import ParseResult

FUNCTION_TYPES = frozenset(
    {
        "function_expression",
        "function",
        "arrow_function",
        "generator_function",
        "function_declaration",
        "generator_function_declaration",
        "method_definition",
    }
)

# Wrappers that do not change the value of the wrapped expression
_TRANSPARENT = frozenset(
    {
        "parenthesized_expression",
        "as_expression",
        "satisfies_expression",
        "non_null_expression",
        "type_assertion",
    }
)


def walk(node: Any) -> Iterator[Any]:
    """Pre-order traversal in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def named(node: Any) -> list[Any]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type != "comment"]


def unwrap(node: Any | None) -> Any | None:
    while node is not None and node.type in _TRANSPARENT:
        inner = named(node)
        node = inner[0] if inner else None
    return node


def is_function(node: Any | None) -> bool:
    return node is not None and node.type in FUNCTION_TYPES


def string_value(node: Any | None, result: ParseResult) -> str | None:
    """Value of a plain string or a substitution-free template string."""
    if node is None:
        return None
    if node.type == "string":
        return result.text(node)[1:-1]
    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.named_children):
            return None
        return result.text(node)[1:-1]
    return None


def string_anchor(node: Any) -> Any:
    """Node to report for a string: its content when it has one."""
    for child in node.named_children:
        if child.type == "string_fragment":
            return child
    return node


def property_key(member: Any) -> Any | None:
    """Key node of an object member (pair, method, shorthand)."""
    if member.type == "pair":
        return member.child_by_field_name("key")
    if member.type == "method_definition":
        return member.child_by_field_name("name")
    if member.type == "shorthand_property_identifier":
        return member
    return None


def property_name(member: Any, result: ParseResult) -> str | None:
    key = property_key(member)
    if key is None:
        return None
    if key.type in ("string", "template_string"):
        return string_value(key, result)
    if key.type == "computed_property_name":
        return None
    return result.text(key)


def property_value(member: Any) -> Any | None:
    """Value of a pair, the method itself for methods, None for shorthand."""
    if member.type == "pair":
        return unwrap(member.child_by_field_name("value"))
    if member.type == "method_definition":
        return member
    return None


def accessor_kind(method: Any) -> str | None:
    """'get' or 'set' for accessor methods."""
    for child in method.children:
        if child.type in ("get", "set"):
            return child.type
        if child.type in ("property_identifier", "statement_block"):
            break
    return None


def function_body(fn: Any) -> Any | None:
    return fn.child_by_field_name("body")


def return_values(fn: Any) -> Iterator[Any]:
    """Returned expressions of a function, in document order.

    An arrow with an expression body returns that expression. Otherwise each
    `return <expr>` of the body is yielded; nested functions are not
    searched.
    """
    body = function_body(fn)
    if body is None:
        return
    if body.type != "statement_block":
        yield unwrap(body)
        return
    stack = list(reversed(named(body)))
    while stack:
        node = stack.pop()
        if node.type == "return_statement":
            values = named(node)
            if values:
                yield unwrap(values[0])
            continue
        if is_function(node) or node.type in ("class_declaration", "class"):
            continue
        stack.extend(reversed(named(node)))


def parameter_labels(fn: Any, result: ParseResult) -> tuple[str, ...]:
    """Display labels of a function's parameters: `a`, `b=?`, `...rest`, `{...}`."""
    params = fn.child_by_field_name("parameters")
    if params is None:
        single = fn.child_by_field_name("parameter")
        return (result.text(single),) if single is not None else ()
    return tuple(_param_label(p, result) for p in named(params))


def _param_label(node: Any, result: ParseResult) -> str:
    # TypeScript wraps parameters: required_parameter(pattern, type)
    if node.type in ("required_parameter", "optional_parameter"):
        pattern = node.child_by_field_name("pattern")
        if pattern is not None:
            label = _param_label(pattern, result)
            if node.child_by_field_name("value") is not None:
                return f"{label}=?"
            return label
    if node.type == "identifier":
        return result.text(node)
    if node.type == "assignment_pattern":
        left = node.child_by_field_name("left")
        return f"{_param_label(left, result)}=?" if left is not None else "param=?"
    if node.type == "rest_pattern":
        inner = named(node)
        return f"...{_param_label(inner[0], result)}" if inner else "..."
    if node.type == "object_pattern":
        return "{...}"
    if node.type == "array_pattern":
        return "[...]"
    return "param"
