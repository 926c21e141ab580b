"""
Import extraction from Tree-sitter.

Builds the per-file ImportMap from module-level imports (including those
nested in ``if``/``try``/``with`` blocks) and a separate map for each
function body that imports locally.
"""

import logging
from typing import List

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.models import FileAnalysis, Import, ImportMap
from archscan.analyzer.tree_sitter_adapter import (
    DEFINITION_TYPES,
    TreeSitterNode,
    has_child_type,
    node_line,
    node_text,
    walk_tree,
)

logger = logging.getLogger(__name__)

IMPORT_TYPES = frozenset({"import_statement", "import_from_statement"})


def _is_definition(node: TreeSitterNode) -> bool:
    return node.type in DEFINITION_TYPES


class ImportExtractor(BaseExtractor):
    """Extracts import statements into local-name bindings."""

    stage = "imports"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.imports`` and the import maps on ``context``.

        Args:
            context: Per-file working state
            result: FileAnalysis to populate
        """
        for node in walk_tree(context.root, prune=_is_definition):
            if node.type not in IMPORT_TYPES:
                continue
            for entry in self.imports_from_statement(node, context.import_map, result):
                result.imports.append(entry)
                context.import_map.add(entry)

        for node in walk_tree(context.root):
            if node.type != "function_definition":
                continue
            body = node.child_by_field_name("body")
            if body is None:
                continue
            local_map = ImportMap()
            for inner in walk_tree(body, prune=_is_definition):
                if inner.type in IMPORT_TYPES:
                    for entry in self.imports_from_statement(inner, local_map, result):
                        local_map.add(entry)
            if len(local_map) or local_map.wildcards:
                context.local_imports[node.start_byte] = local_map

        logger.debug(
            f"{result.file_path}: {len(context.import_map)} module imports, "
            f"{len(context.local_imports)} functions with local imports"
        )

    def imports_from_statement(
        self,
        node: TreeSitterNode,
        import_map: ImportMap,
        result: FileAnalysis,
    ) -> List[Import]:
        """Turn one import statement into Import bindings.

        Malformed statements yield nothing and record a diagnostic. Wildcard
        modules are recorded on ``import_map.wildcards``.

        Args:
            node: ``import_statement`` or ``import_from_statement`` node
            import_map: Map receiving wildcard modules
            result: FileAnalysis receiving diagnostics

        Returns:
            Bindings in statement order
        """
        if node.has_error:
            self.add_diagnostic(result, f"skipped malformed import: {node_text(node)!r}", node)
            return []

        line = node_line(node)
        if node.type == "import_statement":
            return self._plain_imports(node, line, result)
        return self._from_imports(node, line, import_map, result)

    def _plain_imports(self, node: TreeSitterNode, line: int, result: FileAnalysis) -> List[Import]:
        entries = []
        for name_node in node.children_by_field_name("name"):
            if name_node.type == "aliased_import":
                module = node_text(name_node.child_by_field_name("name"))
                alias = node_text(name_node.child_by_field_name("alias"))
                if not module or not alias:
                    self.add_diagnostic(result, "skipped aliased import without a name", node)
                    continue
                entries.append(Import(local_name=alias, origin_module=module, is_aliased=True, line=line))
            else:
                module = node_text(name_node)
                # ``import a.b`` binds ``a``
                top_level = module.split(".")[0]
                entries.append(Import(local_name=top_level, origin_module=top_level, line=line))
        if not entries:
            self.add_diagnostic(result, "skipped import without module names", node)
        return entries

    def _from_imports(
        self,
        node: TreeSitterNode,
        line: int,
        import_map: ImportMap,
        result: FileAnalysis,
    ) -> List[Import]:
        module_node = node.child_by_field_name("module_name")
        if module_node is None:
            self.add_diagnostic(result, "skipped from-import without a module", node)
            return []
        module = node_text(module_node)

        if has_child_type(node, "wildcard_import"):
            import_map.wildcards.append(module)
            return []

        entries = []
        for name_node in node.children_by_field_name("name"):
            if name_node.type == "aliased_import":
                symbol = node_text(name_node.child_by_field_name("name"))
                alias = node_text(name_node.child_by_field_name("alias"))
                if not symbol or not alias:
                    self.add_diagnostic(result, "skipped aliased import without a name", node)
                    continue
                entries.append(
                    Import(
                        local_name=alias,
                        origin_module=module,
                        origin_symbol=symbol,
                        is_aliased=True,
                        line=line,
                    )
                )
            else:
                symbol = node_text(name_node)
                entries.append(
                    Import(local_name=symbol, origin_module=module, origin_symbol=symbol, line=line)
                )
        if not entries:
            self.add_diagnostic(result, f"skipped from-import of {module} without names", node)
        return entries
