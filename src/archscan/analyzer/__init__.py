"""
Analyzer package for architectural fact extraction.

- models: Data classes for extracted facts and reports
- parser: Tree-sitter parsing
- base_analyzer: CodeAnalyzer per-file pipeline and project runner
- extractors: One class per extraction stage
- aggregator: Deterministic merge of per-file results
- export_parquet: Parquet tables per fact kind
"""

from archscan.analyzer.aggregator import AnalysisError, aggregate
from archscan.analyzer.base_analyzer import CodeAnalyzer, discover_python_files, module_name_for
from archscan.analyzer.export_parquet import export_to_parquet
from archscan.analyzer.models import (
    CallKind,
    CallSite,
    ClientCall,
    Decorator,
    Diagnostic,
    Endpoint,
    FileAnalysis,
    Implementer,
    Import,
    ImportMap,
    MatchKind,
    ProjectReport,
    ProtocolDef,
    RouterMount,
    Symbol,
    SymbolKind,
    TestCase,
    TestKind,
)
from archscan.analyzer.parser import (
    ParseError,
    ParserInitializationError,
    parse_python_file,
    parse_python_source,
)

__all__ = [
    "CodeAnalyzer",
    "aggregate",
    "AnalysisError",
    "discover_python_files",
    "module_name_for",
    "export_to_parquet",
    "parse_python_file",
    "parse_python_source",
    "ParseError",
    "ParserInitializationError",
    "FileAnalysis",
    "ProjectReport",
    "Import",
    "ImportMap",
    "Symbol",
    "SymbolKind",
    "Decorator",
    "CallSite",
    "CallKind",
    "Endpoint",
    "RouterMount",
    "ClientCall",
    "ProtocolDef",
    "Implementer",
    "MatchKind",
    "TestCase",
    "TestKind",
    "Diagnostic",
]
