"""
Decorator parsing from Tree-sitter.

Decorators are read structurally: the dotted name being applied plus, for
decorator calls, each argument with its literal value when it has one.
Non-literal arguments keep their source text only.
"""

import logging
from typing import List, Optional

from archscan.analyzer.models import Argument, Decorator
from archscan.analyzer.tree_sitter_adapter import (
    UNRESOLVED,
    TreeSitterNode,
    dotted_name,
    literal_value,
    named_children,
    node_line,
    node_text,
)

logger = logging.getLogger(__name__)


def _sanitize_value(value):
    """Keep literal values JSON-friendly (tuples and sets become lists)."""
    if isinstance(value, (list, tuple, set)):
        return [_sanitize_value(v) for v in value]
    return value


def parse_argument(node: TreeSitterNode) -> Argument:
    keyword = None
    value_node = node
    if node.type == "keyword_argument":
        keyword = node_text(node.child_by_field_name("name")) or None
        value_node = node.child_by_field_name("value")
    elif node.type in ("list_splat", "dictionary_splat"):
        return Argument(text=node_text(node))

    value = literal_value(value_node)
    if value is UNRESOLVED:
        return Argument(text=node_text(value_node), keyword=keyword)
    return Argument(
        text=node_text(value_node),
        keyword=keyword,
        value=_sanitize_value(value),
        is_literal=True,
    )


def parse_arguments(arguments: Optional[TreeSitterNode]) -> List[Argument]:
    """Parse an ``argument_list`` node into Arguments, in source order."""
    if arguments is None or arguments.type != "argument_list":
        return []
    return [parse_argument(arg) for arg in named_children(arguments)]


def parse_decorator(node: TreeSitterNode) -> Optional[Decorator]:
    """
    Parse a ``decorator`` node.

    Args:
        node: Tree-sitter decorator node

    Returns:
        Decorator, or None when the decorator has no expression
    """
    expressions = named_children(node)
    if not expressions:
        return None
    expression = expressions[0]

    if expression.type == "call":
        function = expression.child_by_field_name("function")
        return Decorator(
            text=node_text(expression),
            callee_path=dotted_name(function),
            line=node_line(node),
            is_call=True,
            arguments=parse_arguments(expression.child_by_field_name("arguments")),
        )

    return Decorator(
        text=node_text(expression),
        callee_path=dotted_name(expression),
        line=node_line(node),
    )


def parse_decorators(decorated: TreeSitterNode) -> List[Decorator]:
    """All decorators on a ``decorated_definition``, outermost first."""
    decorators = []
    for child in decorated.children:
        if child.type != "decorator":
            continue
        decorator = parse_decorator(child)
        if decorator is not None:
            decorators.append(decorator)
        else:
            logger.debug(f"Ignoring empty decorator at line {node_line(child)}")
    return decorators
