"""
Protocol and implementer detection.

A class is a protocol when its body only declares stub methods (docstring,
``...``, ``pass`` or ``raise NotImplementedError``) and annotated
attributes, with at least one method. Other classes implement a protocol
nominally (listed as a base) or structurally (declare every required
method).
"""

import logging
from typing import Dict, List

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.extractors.calls import SymbolIndex
from archscan.analyzer.models import (
    FileAnalysis,
    Implementer,
    MatchKind,
    ProtocolDef,
    Symbol,
    SymbolKind,
)

logger = logging.getLogger(__name__)


def _base_name(base: str) -> str:
    return base.split("[", 1)[0].strip()


def names_protocol(cls: Symbol, protocol: ProtocolDef) -> bool:
    """True when one of ``cls``'s bases names ``protocol``."""
    simple = protocol.name.rsplit(".", 1)[-1]
    for base in cls.bases:
        name = _base_name(base)
        if name in (protocol.name, simple) or name.endswith("." + simple):
            return True
    return False


class ProtocolExtractor(BaseExtractor):
    """Extracts protocol definitions and the classes that satisfy them."""

    stage = "protocols"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.protocols`` and ``result.implementers``.

        Args:
            context: Per-file working state
            result: FileAnalysis to populate
        """
        index = SymbolIndex(result.symbols)
        classes = [s for s in index.by_name.values() if s.kind == SymbolKind.CLASS]
        methods: Dict[str, List[Symbol]] = {cls.qualified_name: index.methods_of(cls) for cls in classes}

        protocols: List[ProtocolDef] = []
        for cls in classes:
            if self.is_protocol(cls, methods[cls.qualified_name]):
                protocols.append(
                    ProtocolDef(
                        name=cls.qualified_name,
                        required_members=tuple(sorted(m.name for m in methods[cls.qualified_name])),
                        line=cls.line,
                        declares_protocol=any(_base_name(b).rsplit(".", 1)[-1] == "Protocol" for b in cls.bases),
                        runtime_checkable=cls.has_decorator("runtime_checkable"),
                    )
                )
        result.protocols.extend(protocols)

        protocol_names = {p.name for p in protocols}
        for cls in classes:
            if cls.qualified_name in protocol_names:
                continue
            declared = {m.name for m in methods[cls.qualified_name]}
            for protocol in protocols:
                if names_protocol(cls, protocol):
                    match_kind = MatchKind.NOMINAL
                elif declared.issuperset(protocol.required_members):
                    match_kind = MatchKind.STRUCTURAL
                else:
                    continue
                result.implementers.append(
                    Implementer(
                        protocol=protocol.name,
                        class_name=cls.qualified_name,
                        match_kind=match_kind,
                        line=cls.line,
                    )
                )

        if protocols:
            logger.debug(
                f"{result.file_path}: {len(protocols)} protocols, "
                f"{len(result.implementers)} implementers"
            )

    @staticmethod
    def is_protocol(cls: Symbol, methods: List[Symbol]) -> bool:
        return cls.is_stub and bool(methods) and all(method.is_stub for method in methods)
