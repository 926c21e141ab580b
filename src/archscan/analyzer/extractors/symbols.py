"""
Symbol table extraction from Tree-sitter.

Walks statement structure (not expressions) and records every function,
method and class with its qualified name, decorators, parameters and base
classes. Nested definitions are qualified by their enclosing scope, e.g.
``Outer.method.helper``.
"""

import logging
from typing import List, Optional

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.extractors.decorators import parse_decorators
from archscan.analyzer.models import Decorator, FileAnalysis, Symbol, SymbolKind, VariableInfo
from archscan.analyzer.tree_sitter_adapter import (
    TreeSitterNode,
    docstring_of,
    has_child_type,
    is_annotation_only,
    is_ellipsis_statement,
    is_string_statement,
    named_children,
    node_column,
    node_end_line,
    node_line,
    node_text,
)

logger = logging.getLogger(__name__)

SIMPLE_STATEMENTS = frozenset(
    {
        "expression_statement",
        "return_statement",
        "pass_statement",
        "import_statement",
        "import_from_statement",
        "future_import_statement",
        "raise_statement",
        "assert_statement",
        "delete_statement",
        "global_statement",
        "nonlocal_statement",
        "break_statement",
        "continue_statement",
        "print_statement",
        "exec_statement",
        "type_alias_statement",
    }
)

COMPOUND_STATEMENTS = frozenset(
    {
        "if_statement",
        "for_statement",
        "while_statement",
        "try_statement",
        "with_statement",
        "match_statement",
        "elif_clause",
        "else_clause",
        "except_clause",
        "except_group_clause",
        "finally_clause",
        "case_clause",
    }
)


def is_constant_name(name: str) -> bool:
    """UPPER_CASE names (at least one letter) are treated as constants."""
    return any(ch.isalpha() for ch in name) and name == name.upper()


def _parameter_names(parameters: Optional[TreeSitterNode]) -> List[str]:
    names = []
    for param in named_children(parameters):
        param_type = param.type
        if param_type == "identifier":
            names.append(node_text(param))
        elif param_type in ("default_parameter", "typed_default_parameter"):
            names.append(node_text(param.child_by_field_name("name")))
        elif param_type == "typed_parameter":
            inner = named_children(param)
            if inner:
                names.append(node_text(inner[0]))
        elif param_type in ("list_splat_pattern", "dictionary_splat_pattern"):
            names.append(node_text(param))
        # keyword_separator (``*``) and positional_separator (``/``) bind nothing
    return names


def _is_stub_statement(node: TreeSitterNode) -> bool:
    if node.type == "pass_statement":
        return True
    if is_string_statement(node) or is_ellipsis_statement(node):
        return True
    if node.type == "raise_statement":
        raised = named_children(node)
        if not raised:
            return False
        target = raised[0]
        if target.type == "call":
            target = target.child_by_field_name("function")
        return node_text(target) == "NotImplementedError"
    return False


def is_stub_body(body: Optional[TreeSitterNode]) -> bool:
    """True when a function body only holds a docstring, ``...``, ``pass`` or ``raise NotImplementedError``."""
    statements = named_children(body)
    return bool(statements) and all(_is_stub_statement(stmt) for stmt in statements)


def _is_declaration(node: TreeSitterNode) -> bool:
    if node.type in ("function_definition", "pass_statement"):
        return True
    if node.type == "decorated_definition":
        definition = node.child_by_field_name("definition")
        return definition is not None and definition.type == "function_definition"
    return is_string_statement(node) or is_ellipsis_statement(node) or is_annotation_only(node)


def is_declarative_class_body(body: Optional[TreeSitterNode]) -> bool:
    """True when a class body only declares methods and annotated attributes."""
    statements = named_children(body)
    return bool(statements) and all(_is_declaration(stmt) for stmt in statements)


class SymbolTableBuilder(BaseExtractor):
    """Extracts functions, methods, classes and module-level variables."""

    stage = "symbols"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.symbols`` and ``result.variables``.

        Args:
            context: Per-file working state
            result: FileAnalysis to populate
        """
        result.docstring = docstring_of(context.root)
        self._visit_block(context.root, None, context, result)
        logger.debug(f"{result.file_path}: {len(result.symbols)} symbols")

    def _visit_block(
        self,
        block: TreeSitterNode,
        parent: Optional[Symbol],
        context: FileContext,
        result: FileAnalysis,
        lenient: bool = False,
    ) -> None:
        for statement in named_children(block):
            self._visit_statement(statement, parent, context, result, lenient)

    def _visit_statement(
        self,
        node: TreeSitterNode,
        parent: Optional[Symbol],
        context: FileContext,
        result: FileAnalysis,
        lenient: bool = False,
    ) -> None:
        node_type = node.type
        if node_type == "function_definition":
            self._add_function(node, [], parent, context, result)
        elif node_type == "class_definition":
            self._add_class(node, [], parent, context, result)
        elif node_type == "decorated_definition":
            definition = node.child_by_field_name("definition")
            decorators = parse_decorators(node)
            if definition is None:
                self.add_diagnostic(result, "skipped decorated statement without a definition", node)
            elif definition.type == "function_definition":
                self._add_function(definition, decorators, parent, context, result)
            elif definition.type == "class_definition":
                self._add_class(definition, decorators, parent, context, result)
        elif node_type in COMPOUND_STATEMENTS:
            for child in named_children(node):
                if child.type == "block":
                    self._visit_block(child, parent, context, result)
                elif child.type in COMPOUND_STATEMENTS:
                    self._visit_statement(child, parent, context, result)
        elif node_type == "expression_statement":
            if parent is None:
                self._add_variable(node, result)
        elif node_type == "ERROR":
            # Recovered fragments may still hold whole definitions
            self._visit_block(node, parent, context, result, lenient=True)
        elif node_type in SIMPLE_STATEMENTS or lenient:
            return
        else:
            self.add_diagnostic(result, f"skipped unrecognized statement '{node_type}'", node)

    def _add_function(
        self,
        node: TreeSitterNode,
        decorators: List[Decorator],
        parent: Optional[Symbol],
        context: FileContext,
        result: FileAnalysis,
    ) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.is_missing:
            self.add_diagnostic(result, "skipped function definition without a name", node)
            return
        name = node_text(name_node)
        qualified_name = f"{parent.qualified_name}.{name}" if parent else name
        is_method = parent is not None and parent.kind == SymbolKind.CLASS

        parameters_node = node.child_by_field_name("parameters")
        parameters = _parameter_names(parameters_node)
        return_type_node = node.child_by_field_name("return_type")
        return_type = node_text(return_type_node) or None
        is_async = has_child_type(node, "async")
        body = node.child_by_field_name("body")

        signature = f"{'async ' if is_async else ''}def {name}{node_text(parameters_node) or '()'}"
        if return_type:
            signature += f" -> {return_type}"

        docstring = docstring_of(body)
        symbol = Symbol(
            name=name,
            qualified_name=qualified_name,
            kind=SymbolKind.METHOD if is_method else SymbolKind.FUNCTION,
            line=node_line(node),
            end_line=node_end_line(node),
            column=node_column(node),
            parent=parent.qualified_name if parent else None,
            decorators=decorators,
            parameters=parameters,
            has_docstring=docstring is not None,
            docstring=docstring,
            is_async=is_async,
            is_stub=is_stub_body(body),
            return_type=return_type,
            signature=signature,
        )
        if is_method and parameters and not parameters[0].startswith("*") and not symbol.is_staticmethod:
            symbol.instance_param = parameters[0]
        self._register(node, symbol, parent, context, result)
        if body is not None:
            self._visit_block(body, symbol, context, result)

    def _add_class(
        self,
        node: TreeSitterNode,
        decorators: List[Decorator],
        parent: Optional[Symbol],
        context: FileContext,
        result: FileAnalysis,
    ) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.is_missing:
            self.add_diagnostic(result, "skipped class definition without a name", node)
            return
        name = node_text(name_node)
        qualified_name = f"{parent.qualified_name}.{name}" if parent else name

        bases = []
        for base in named_children(node.child_by_field_name("superclasses")):
            # metaclass=..., **kwargs and *bases are not base names
            if base.type in ("keyword_argument", "list_splat", "dictionary_splat"):
                continue
            bases.append(node_text(base))

        body = node.child_by_field_name("body")
        docstring = docstring_of(body)
        symbol = Symbol(
            name=name,
            qualified_name=qualified_name,
            kind=SymbolKind.CLASS,
            line=node_line(node),
            end_line=node_end_line(node),
            column=node_column(node),
            parent=parent.qualified_name if parent else None,
            decorators=decorators,
            bases=bases,
            has_docstring=docstring is not None,
            docstring=docstring,
            is_stub=is_declarative_class_body(body),
        )
        self._register(node, symbol, parent, context, result)
        if body is not None:
            self._visit_block(body, symbol, context, result)

    def _register(
        self,
        node: TreeSitterNode,
        symbol: Symbol,
        parent: Optional[Symbol],
        context: FileContext,
        result: FileAnalysis,
    ) -> None:
        result.symbols.append(symbol)
        context.symbols_by_node[node.start_byte] = symbol
        if parent is not None:
            parent.children.append(symbol.qualified_name)

    def _add_variable(self, node: TreeSitterNode, result: FileAnalysis) -> None:
        expressions = named_children(node)
        if not expressions or expressions[0].type != "assignment":
            return
        target = expressions[0].child_by_field_name("left")
        if target is None or target.type != "identifier":
            return
        name = node_text(target)
        result.variables.append(
            VariableInfo(name=name, line=node_line(node), is_constant=is_constant_name(name))
        )
