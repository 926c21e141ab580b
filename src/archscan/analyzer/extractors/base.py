"""
Base extractor interface.

All extractors inherit from BaseExtractor and implement ``extract``. They
share a FileContext: the per-file working state (syntax tree, import map,
definition lookup) that later stages build on but that never leaves the
analysis of one file.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from archscan.analyzer.models import Diagnostic, FileAnalysis, ImportMap, Symbol
from archscan.analyzer.tree_sitter_adapter import TreeSitterNode, node_line
from archscan.config import DEFAULT_CONFIG, AnalyzerConfig

logger = logging.getLogger(__name__)


@dataclass
class FileContext:
    """Working state for one file while its extractors run.

    Attributes:
        path: File path used in diagnostics
        root: Tree-sitter ``module`` node
        import_map: Module-level imports
        local_imports: Imports inside function bodies, keyed by the
            ``start_byte`` of the function_definition node
        symbols_by_node: Symbols keyed by the ``start_byte`` of their
            function_definition / class_definition node
        call_nodes: Call nodes keyed by ``id()`` of their CallSite
    """

    path: str
    root: TreeSitterNode
    import_map: ImportMap = field(default_factory=ImportMap)
    local_imports: Dict[int, ImportMap] = field(default_factory=dict)
    symbols_by_node: Dict[int, Symbol] = field(default_factory=dict)
    call_nodes: Dict[int, Any] = field(default_factory=dict)


class BaseExtractor(ABC):
    """Base class for all extractors.

    Each extractor is responsible for one stage of the per-file pipeline and
    reports recoverable problems as diagnostics instead of raising.
    """

    stage: str = "pipeline"

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or DEFAULT_CONFIG

    @abstractmethod
    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Extract facts from the file and populate result.

        Args:
            context: Per-file working state
            result: FileAnalysis object to populate
        """
        pass

    def add_diagnostic(
        self,
        result: FileAnalysis,
        message: str,
        node: Optional[TreeSitterNode] = None,
    ) -> None:
        line = node_line(node) if node is not None else None
        logger.debug(f"{result.file_path}:{line or '-'} [{self.stage}] {message}")
        result.diagnostics.append(
            Diagnostic(file=result.file_path, message=message, line=line, stage=self.stage)
        )
