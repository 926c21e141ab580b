"""Per-file extraction stages, in pipeline order."""

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.extractors.calls import CallGraphResolver, SymbolIndex
from archscan.analyzer.extractors.endpoints import EndpointExtractor
from archscan.analyzer.extractors.http_clients import ClientCallDetector
from archscan.analyzer.extractors.imports import ImportExtractor
from archscan.analyzer.extractors.protocols import ProtocolExtractor
from archscan.analyzer.extractors.symbols import SymbolTableBuilder
from archscan.analyzer.extractors.testcases import TestCaseDetector

__all__ = [
    "BaseExtractor",
    "FileContext",
    "ImportExtractor",
    "SymbolTableBuilder",
    "CallGraphResolver",
    "SymbolIndex",
    "EndpointExtractor",
    "ClientCallDetector",
    "ProtocolExtractor",
    "TestCaseDetector",
]
