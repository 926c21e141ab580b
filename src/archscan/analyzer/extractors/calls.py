"""
Call graph extraction from Tree-sitter.

Every call expression becomes a CallSite attributed to its innermost
enclosing scope and classified by the first rule that applies:

1. self/cls (or ``super()``) method call resolved through the class and its
   same-file bases
2. bare name defined in the same file, found by lexical scope lookup
3. name reached through an import, or through a ``with`` alias bound to an
   object created by an imported factory
4. otherwise Unresolved
"""

import logging
from typing import Dict, List, Mapping, Optional, Set, Tuple

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.models import (
    MODULE_SCOPE,
    CallKind,
    CallSite,
    FileAnalysis,
    Import,
    ImportMap,
    Symbol,
    SymbolKind,
)
from archscan.analyzer.tree_sitter_adapter import (
    TreeSitterNode,
    dotted_name,
    has_child_type,
    named_children,
    node_column,
    node_line,
    node_text,
)

logger = logging.getLogger(__name__)

PYTHON_BUILTINS = frozenset(
    {
        "print", "len", "range", "int", "str", "list", "dict", "set", "tuple",
        "type", "isinstance", "issubclass", "super", "property", "staticmethod",
        "classmethod", "enumerate", "zip", "map", "filter", "sorted", "reversed",
        "any", "all", "min", "max", "sum", "abs", "round", "open", "getattr",
        "setattr", "hasattr", "delattr", "input", "format", "repr", "id", "dir",
        "vars", "globals", "locals", "callable", "iter", "next", "hash", "hex",
        "oct", "bin", "ord", "chr", "bool", "bytes", "bytearray", "memoryview",
        "complex", "float", "frozenset", "object", "slice", "divmod", "pow",
        "exec", "eval", "compile", "breakpoint", "aiter", "anext", "ascii",
        "__import__",
    }
)


class SymbolIndex:
    """Lookup tables over one file's symbol list.

    Later definitions of the same qualified name win.
    """

    def __init__(self, symbols: List[Symbol], local_imports: Optional[Dict[str, ImportMap]] = None):
        self.local_imports = local_imports or {}
        self.by_name: Dict[str, Symbol] = {}
        self.children: Dict[Optional[str], Dict[str, Symbol]] = {}
        self.classes: Dict[str, Symbol] = {}
        for symbol in symbols:
            self.by_name[symbol.qualified_name] = symbol
            self.children.setdefault(symbol.parent, {})[symbol.name] = symbol
            if symbol.kind == SymbolKind.CLASS:
                self.classes.setdefault(symbol.name, symbol)
        # Module-level classes take precedence for base-name lookups
        for symbol in symbols:
            if symbol.kind == SymbolKind.CLASS and symbol.parent is None:
                self.classes[symbol.name] = symbol

    def get(self, qualified_name: Optional[str]) -> Optional[Symbol]:
        if qualified_name is None:
            return None
        return self.by_name.get(qualified_name)

    def child(self, parent: Optional[str], name: str) -> Optional[Symbol]:
        return self.children.get(parent, {}).get(name)

    def methods_of(self, cls: Symbol) -> List[Symbol]:
        return [
            child
            for child in self.children.get(cls.qualified_name, {}).values()
            if child.kind == SymbolKind.METHOD
        ]

    def base_class(self, base_text: str) -> Optional[Symbol]:
        """Resolve a base expression to a same-file class, ignoring generics."""
        name = base_text.split("[", 1)[0].strip()
        if not name.isidentifier():
            return None
        return self.classes.get(name)

    def find_method(self, cls: Symbol, name: str, include_self: bool = True) -> Optional[Symbol]:
        """Depth-first search of ``cls`` and its same-file bases; nearest definition wins."""
        visited: Set[str] = set()

        def search(current: Symbol, check_current: bool) -> Optional[Symbol]:
            if current.qualified_name in visited:
                return None
            visited.add(current.qualified_name)
            if check_current:
                found = self.child(current.qualified_name, name)
                if found is not None and found.kind == SymbolKind.METHOD:
                    return found
            for base in current.bases:
                base_cls = self.base_class(base)
                if base_cls is not None:
                    found = search(base_cls, True)
                    if found is not None:
                        return found
            return None

        return search(cls, include_self)


class CallGraphResolver(BaseExtractor):
    """Extracts and classifies call sites."""

    stage = "calls"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.calls``.

        Args:
            context: Per-file working state (needs imports and symbols)
            result: FileAnalysis to populate
        """
        local_imports = {
            context.symbols_by_node[start].qualified_name: import_map
            for start, import_map in context.local_imports.items()
            if start in context.symbols_by_node
        }
        index = SymbolIndex(result.symbols, local_imports)
        empty_aliases: Dict[str, str] = {}
        stack: List[Tuple[TreeSitterNode, Optional[Symbol], Mapping[str, str]]] = [
            (context.root, None, empty_aliases)
        ]

        while stack:
            node, scope, aliases = stack.pop()
            node_type = node.type

            if node_type in ("function_definition", "class_definition"):
                symbol = context.symbols_by_node.get(node.start_byte)
                body = node.child_by_field_name("body")
                pending = []
                for child in node.children:
                    if symbol is not None and body is not None and child.start_byte == body.start_byte and child.type == "block":
                        pending.append((child, symbol, aliases))
                    else:
                        # decorators, defaults and annotations run in the enclosing scope
                        pending.append((child, scope, aliases))
                stack.extend(reversed(pending))
                continue

            if node_type == "with_statement":
                bound = self._with_aliases(node, scope, context, index)
                body = node.child_by_field_name("body")
                body_aliases = {**aliases, **bound} if bound else aliases
                pending = []
                for child in node.children:
                    if body is not None and child.start_byte == body.start_byte and child.type == "block":
                        pending.append((child, scope, body_aliases))
                    else:
                        pending.append((child, scope, aliases))
                stack.extend(reversed(pending))
                continue

            if node_type == "call":
                call = self._resolve(node, scope, aliases, context, index)
                result.calls.append(call)
                context.call_nodes[id(call)] = node

            stack.extend((child, scope, aliases) for child in reversed(node.children))

        unresolved = sum(1 for call in result.calls if call.kind == CallKind.UNRESOLVED)
        logger.debug(f"{result.file_path}: {len(result.calls)} calls, {unresolved} unresolved")

    def _resolve(
        self,
        node: TreeSitterNode,
        scope: Optional[Symbol],
        aliases: Mapping[str, str],
        context: FileContext,
        index: SymbolIndex,
    ) -> CallSite:
        function = node.child_by_field_name("function")
        call = CallSite(
            caller=scope.qualified_name if scope else MODULE_SCOPE,
            callee=node_text(function),
            kind=CallKind.UNRESOLVED,
            line=node_line(node),
            column=node_column(node),
            is_awaited=self._is_async_use(node),
        )
        if function is None:
            return call

        if self._resolve_self_call(call, function, scope, index):
            return call
        if function.type == "identifier" and self._resolve_same_file(call, node_text(function), scope, index):
            return call
        if self._resolve_imported(call, function, scope, aliases, context, index):
            return call

        call.is_builtin = function.type == "identifier" and call.callee in PYTHON_BUILTINS
        return call

    def _resolve_self_call(
        self,
        call: CallSite,
        function: TreeSitterNode,
        scope: Optional[Symbol],
        index: SymbolIndex,
    ) -> bool:
        if function.type != "attribute":
            return False
        receiver = function.child_by_field_name("object")
        attribute = function.child_by_field_name("attribute")
        if receiver is None or attribute is None:
            return False

        if receiver.type == "identifier":
            method = self._enclosing_method(scope, node_text(receiver), index)
            include_self = True
        elif receiver.type == "call" and dotted_name(receiver.child_by_field_name("function")) == "super":
            method = self._enclosing_method(scope, None, index)
            include_self = False
        else:
            return False
        if method is None:
            return False

        cls = index.get(method.parent)
        if cls is None:
            return False
        target = index.find_method(cls, node_text(attribute), include_self=include_self)
        if target is None:
            return False
        call.kind = CallKind.SELF_METHOD
        call.target_symbol = target.qualified_name
        return True

    def _enclosing_method(
        self,
        scope: Optional[Symbol],
        receiver: Optional[str],
        index: SymbolIndex,
    ) -> Optional[Symbol]:
        """The method whose instance parameter ``receiver`` refers to.

        Nested functions see the method's instance parameter unless one of
        them rebinds the same name. With ``receiver`` None any enclosing
        method with an instance parameter qualifies (``super()``).
        """
        shadowed: Set[str] = set()
        current = scope
        while current is not None and current.kind != SymbolKind.CLASS:
            if current.kind == SymbolKind.METHOD:
                if current.instance_param is None:
                    return None
                if receiver is None or (current.instance_param == receiver and receiver not in shadowed):
                    return current
                return None
            shadowed.update(current.parameters)
            current = index.get(current.parent)
        return None

    def _resolve_same_file(
        self,
        call: CallSite,
        name: str,
        scope: Optional[Symbol],
        index: SymbolIndex,
    ) -> bool:
        # Enclosing function scopes first; class bodies are not visible to nested code
        current = scope
        while current is not None:
            if current.kind != SymbolKind.CLASS or current is scope:
                found = index.child(current.qualified_name, name)
                if found is not None and found.kind in (SymbolKind.FUNCTION, SymbolKind.CLASS):
                    call.kind = CallKind.SAME_FILE
                    call.target_symbol = found.qualified_name
                    return True
            current = index.get(current.parent)

        found = index.child(None, name)
        if found is not None:
            call.kind = CallKind.SAME_FILE
            call.target_symbol = found.qualified_name
            return True
        return False

    def _lookup_import(
        self,
        name: str,
        scope: Optional[Symbol],
        context: FileContext,
        index: SymbolIndex,
    ) -> Optional[Import]:
        current = scope
        while current is not None:
            local_map = index.local_imports.get(current.qualified_name)
            if local_map is not None:
                entry = local_map.get(name)
                if entry is not None:
                    return entry
            current = index.get(current.parent)
        return context.import_map.get(name)

    def _resolve_imported(
        self,
        call: CallSite,
        function: TreeSitterNode,
        scope: Optional[Symbol],
        aliases: Mapping[str, str],
        context: FileContext,
        index: SymbolIndex,
    ) -> bool:
        chain = dotted_name(function)
        if chain is None:
            return False
        head, _, rest = chain.partition(".")

        if head in aliases:
            call.kind = CallKind.IMPORT_QUALIFIED
            call.target_module = aliases[head]
            call.target_symbol = rest or None
            call.receiver = head
            return True

        entry = self._lookup_import(head, scope, context, index)
        if entry is None:
            return False
        call.kind = CallKind.IMPORT_QUALIFIED
        call.target_module = entry.origin_module
        if entry.origin_symbol is None:
            call.target_symbol = rest or None
        else:
            call.target_symbol = f"{entry.origin_symbol}.{rest}" if rest else entry.origin_symbol
        return True

    def _with_aliases(
        self,
        node: TreeSitterNode,
        scope: Optional[Symbol],
        context: FileContext,
        index: SymbolIndex,
    ) -> Dict[str, str]:
        """Names bound by ``with factory() as name`` where ``factory`` is imported.

        Returns:
            Mapping of bound name to the factory's origin module
        """
        bound: Dict[str, str] = {}
        for clause in named_children(node):
            if clause.type != "with_clause":
                continue
            for item in named_children(clause):
                value = item.child_by_field_name("value") if item.type == "with_item" else None
                if value is None or value.type != "as_pattern":
                    continue
                expression = named_children(value)[0] if named_children(value) else None
                alias = value.child_by_field_name("alias")
                if expression is None or alias is None or expression.type != "call":
                    continue
                alias_name = node_text(alias)
                if not alias_name.isidentifier():
                    continue
                factory = dotted_name(expression.child_by_field_name("function"))
                if factory is None:
                    continue
                entry = self._lookup_import(factory.split(".")[0], scope, context, index)
                if entry is not None:
                    bound[alias_name] = entry.origin_module
        return bound

    @staticmethod
    def _is_async_use(node: TreeSitterNode) -> bool:
        """Awaited, or the context expression of an ``async with``."""
        parent = node.parent
        if parent is None:
            return False
        if parent.type == "await":
            return True
        while parent is not None and parent.type in ("as_pattern", "with_item", "with_clause"):
            parent = parent.parent
        return (
            parent is not None
            and parent.type == "with_statement"
            and node.parent.type in ("as_pattern", "with_item")
            and has_child_type(parent, "async")
        )
