"""
Test case detection by naming convention.

Module-level functions named ``test*`` are test functions; methods named
``test*`` on classes named ``Test*`` are test methods. Prefixes come from
AnalyzerConfig.
"""

import fnmatch
import logging
from pathlib import PurePath

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.extractors.calls import SymbolIndex
from archscan.analyzer.models import FileAnalysis, SymbolKind, TestCase, TestKind

logger = logging.getLogger(__name__)


class TestCaseDetector(BaseExtractor):
    """Detects test functions and test methods."""

    __test__ = False

    stage = "tests"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.tests`` and ``result.is_test_file``.

        Args:
            context: Per-file working state
            result: FileAnalysis to populate
        """
        result.is_test_file = self.is_test_file(result.file_path)
        index = SymbolIndex(result.symbols)

        for symbol in result.symbols:
            if not symbol.name.startswith(self.config.test_function_prefixes):
                continue
            if symbol.kind == SymbolKind.FUNCTION and symbol.parent is None:
                result.tests.append(
                    TestCase(
                        symbol=symbol.qualified_name,
                        kind=TestKind.TEST_FUNCTION,
                        owner=result.module_name,
                        line=symbol.line,
                    )
                )
            elif symbol.kind == SymbolKind.METHOD:
                cls = index.get(symbol.parent)
                if cls is not None and cls.name.startswith(self.config.test_class_prefixes):
                    result.tests.append(
                        TestCase(
                            symbol=symbol.qualified_name,
                            kind=TestKind.TEST_METHOD,
                            owner=cls.qualified_name,
                            line=symbol.line,
                        )
                    )

    def is_test_file(self, file_path: str) -> bool:
        name = PurePath(file_path).name
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self.config.test_file_patterns)
