"""
Tree-sitter node helpers shared by the extractors.

Stateless functions for reading text, positions, dotted names and literal
values out of tree-sitter-python nodes.
"""

import logging
from typing import Any, Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Type aliases
TreeSitterNode = Any  # tree_sitter.Node

DEFINITION_TYPES = frozenset({"function_definition", "class_definition", "decorated_definition"})

_STRING_TYPES = frozenset({"string", "concatenated_string"})


class _Unresolved:
    """Sentinel for expressions whose value cannot be read statically."""

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED = _Unresolved()


def tree_root(tree: Any) -> Optional[TreeSitterNode]:
    """Return the root node of a tree, or the node itself if already a node."""
    if tree is None:
        return None
    return getattr(tree, "root_node", tree)


def node_text(node: Optional[TreeSitterNode]) -> str:
    if node is None:
        return ""
    text = node.text
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return text or ""


def node_line(node: TreeSitterNode) -> int:
    """1-based start line."""
    return node.start_point[0] + 1


def node_end_line(node: TreeSitterNode) -> int:
    return node.end_point[0] + 1


def node_column(node: TreeSitterNode) -> int:
    return node.start_point[1]


def named_children(node: Optional[TreeSitterNode]) -> List[TreeSitterNode]:
    """Named children without comments."""
    if node is None:
        return []
    return [child for child in node.children if child.is_named and child.type != "comment"]


def has_child_type(node: TreeSitterNode, child_type: str) -> bool:
    return any(child.type == child_type for child in node.children)


def walk_tree(
    node: TreeSitterNode,
    prune: Optional[Callable[[TreeSitterNode], bool]] = None,
) -> Iterator[TreeSitterNode]:
    """
    Pre-order traversal without recursion.

    Args:
        node: Node to start from
        prune: Optional predicate; matching nodes (other than ``node``) are
            yielded but their subtrees are not visited

    Yields:
        Nodes in source order
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if prune is not None and current is not node and prune(current):
            continue
        stack.extend(reversed(current.children))


def dotted_name(node: Optional[TreeSitterNode]) -> Optional[str]:
    """
    Return ``a.b.c`` for an identifier/attribute chain, None otherwise.

    Examples:
        ``router.get`` -> "router.get"; ``get_router().get`` -> None
    """
    if node is None:
        return None
    if node.type in ("identifier", "dotted_name"):
        return node_text(node)
    if node.type == "attribute":
        obj = dotted_name(node.child_by_field_name("object"))
        attr = node.child_by_field_name("attribute")
        if obj is None or attr is None:
            return None
        return f"{obj}.{node_text(attr)}"
    return None


def _string_parts(node: TreeSitterNode) -> Tuple[str, str, bool]:
    """Return (prefix, content, has_interpolation) for a ``string`` node."""
    start = None
    pieces = []
    has_interpolation = False
    for child in node.children:
        if child.type == "string_start":
            start = node_text(child)
        elif child.type == "string_end":
            continue
        elif child.type == "interpolation":
            has_interpolation = True
            pieces.append(node_text(child))
        else:
            pieces.append(node_text(child))

    if start is None:
        # Grammar versions without string_start/string_content children
        raw = node_text(node)
        stripped = raw.lstrip("rRbBuUfF")
        prefix = raw[: len(raw) - len(stripped)]
        for quote in ('"""', "'''", '"', "'"):
            if stripped.startswith(quote) and stripped.endswith(quote) and len(stripped) >= 2 * len(quote):
                stripped = stripped[len(quote) : -len(quote)]
                break
        is_template = "f" in prefix.lower() and "{" in stripped
        return prefix, stripped, is_template

    prefix = start.rstrip("\"'")
    return prefix, "".join(pieces), has_interpolation


def string_literal(node: Optional[TreeSitterNode]) -> Tuple[Optional[str], bool]:
    """
    Read a string or implicitly concatenated string.

    Escape sequences are kept as written and f-string placeholders are kept
    verbatim, e.g. ``f"/items/{item_id}"`` -> ("/items/{item_id}", True).

    Returns:
        Tuple of (content or None if not a string, is_template)
    """
    if node is None:
        return None, False
    if node.type == "string":
        _, content, is_template = _string_parts(node)
        return content, is_template
    if node.type == "concatenated_string":
        content = []
        is_template = False
        for part in named_children(node):
            text, templated = string_literal(part)
            if text is None:
                return None, False
            content.append(text)
            is_template = is_template or templated
        return "".join(content), is_template
    if node.type == "parenthesized_expression":
        inner = named_children(node)
        if len(inner) == 1:
            return string_literal(inner[0])
    return None, False


def literal_value(node: Optional[TreeSitterNode]) -> Any:
    """
    Evaluate a literal expression without executing code.

    Supports strings, numbers, booleans, None and list/tuple/set displays of
    those. Anything else returns UNRESOLVED.
    """
    if node is None:
        return UNRESOLVED
    node_type = node.type
    if node_type in _STRING_TYPES:
        text, _ = string_literal(node)
        return UNRESOLVED if text is None else text
    if node_type == "integer":
        try:
            return int(node_text(node).replace("_", ""), 0)
        except ValueError:
            return UNRESOLVED
    if node_type == "float":
        try:
            return float(node_text(node).replace("_", ""))
        except ValueError:
            return UNRESOLVED
    if node_type == "true":
        return True
    if node_type == "false":
        return False
    if node_type == "none":
        return None
    if node_type in ("list", "tuple", "set"):
        values = []
        for element in named_children(node):
            value = literal_value(element)
            if value is UNRESOLVED:
                return UNRESOLVED
            values.append(value)
        return values
    if node_type == "parenthesized_expression":
        inner = named_children(node)
        if len(inner) == 1:
            return literal_value(inner[0])
    return UNRESOLVED


def call_arguments(call_node: TreeSitterNode) -> Tuple[List[TreeSitterNode], dict]:
    """
    Split a call's arguments into positional nodes and keyword value nodes.

    ``*args`` and ``**kwargs`` splats are skipped in both.
    """
    positional = []
    keywords = {}
    arguments = call_node.child_by_field_name("arguments")
    if arguments is None or arguments.type != "argument_list":
        return positional, keywords
    for arg in named_children(arguments):
        if arg.type == "keyword_argument":
            name = arg.child_by_field_name("name")
            value = arg.child_by_field_name("value")
            if name is not None and value is not None:
                keywords[node_text(name)] = value
        elif arg.type in ("list_splat", "dictionary_splat"):
            continue
        else:
            positional.append(arg)
    return positional, keywords


def docstring_of(block: Optional[TreeSitterNode]) -> Optional[str]:
    """Docstring of a module or block: its first statement, if it is a string."""
    statements = named_children(block)
    if not statements:
        return None
    first = statements[0]
    if first.type != "expression_statement":
        return None
    expressions = named_children(first)
    if len(expressions) != 1 or expressions[0].type not in _STRING_TYPES:
        return None
    text, _ = string_literal(expressions[0])
    return text.strip() if text is not None else None


def is_string_statement(node: TreeSitterNode) -> bool:
    expressions = named_children(node) if node.type == "expression_statement" else []
    return len(expressions) == 1 and expressions[0].type in _STRING_TYPES


def is_ellipsis_statement(node: TreeSitterNode) -> bool:
    expressions = named_children(node) if node.type == "expression_statement" else []
    return len(expressions) == 1 and expressions[0].type == "ellipsis"


def is_annotation_only(node: TreeSitterNode) -> bool:
    """``name: Type`` with no value."""
    expressions = named_children(node) if node.type == "expression_statement" else []
    if len(expressions) != 1 or expressions[0].type != "assignment":
        return False
    assignment = expressions[0]
    return (
        assignment.child_by_field_name("type") is not None
        and assignment.child_by_field_name("right") is None
    )
