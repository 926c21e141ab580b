"""
Data models for extracted architectural facts.

One FileAnalysis holds everything recovered from a single syntax tree;
ProjectReport is the deterministic merge of many of them. Every fact keeps
its source position so facts can be ordered within a file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Caller name used for calls that run at module level (the scope tree root).
MODULE_SCOPE = "<module>"


class SymbolKind(str, Enum):
    FUNCTION = "Function"
    METHOD = "Method"
    CLASS = "Class"


class CallKind(str, Enum):
    SAME_FILE = "SameFileCall"
    IMPORT_QUALIFIED = "ImportQualifiedCall"
    SELF_METHOD = "SelfMethodCall"
    UNRESOLVED = "Unresolved"


class MatchKind(str, Enum):
    NOMINAL = "Nominal"
    STRUCTURAL = "Structural"


class TestKind(str, Enum):
    __test__ = False

    TEST_FUNCTION = "TestFunction"
    TEST_METHOD = "TestMethod"


@dataclass(frozen=True)
class Import:
    """A name bound by an import statement.

    ``import os`` binds ``os`` (whole-module import, ``origin_symbol`` is
    None); ``from json import dumps as d`` binds ``d`` to symbol ``dumps``
    of module ``json``.
    """

    local_name: str
    origin_module: str
    origin_symbol: Optional[str] = None
    is_aliased: bool = False
    line: int = 0

    @property
    def is_module_import(self) -> bool:
        return self.origin_symbol is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_name": self.local_name,
            "origin_module": self.origin_module,
            "origin_symbol": self.origin_symbol,
            "is_aliased": self.is_aliased,
            "line": self.line,
        }


class ImportMap:
    """Per-file mapping of local name to Import.

    Re-binding a local name replaces the earlier entry, mirroring how a
    later import shadows an earlier one at runtime.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Import] = {}
        self.wildcards: List[str] = []

    def add(self, entry: Import) -> None:
        self._entries.pop(entry.local_name, None)
        self._entries[entry.local_name] = entry

    def get(self, local_name: str) -> Optional[Import]:
        return self._entries.get(local_name)

    def top_level_modules(self) -> set:
        return {entry.origin_module.lstrip(".").split(".")[0] for entry in self._entries.values()}

    def __contains__(self, local_name: object) -> bool:
        return local_name in self._entries

    def __iter__(self) -> Iterator[Import]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class Argument:
    """One argument of a call or decorator call, with its literal value if any."""

    text: str
    keyword: Optional[str] = None
    value: Any = None
    is_literal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "keyword": self.keyword,
            "value": self.value,
            "is_literal": self.is_literal,
        }


@dataclass
class Decorator:
    """A decorator as written.

    ``callee_path`` is the dotted name being applied (``router.get`` for
    ``@router.get("/x")``) or None when the expression is not a plain name
    or attribute chain.
    """

    text: str
    callee_path: Optional[str]
    line: int
    is_call: bool = False
    arguments: List[Argument] = field(default_factory=list)

    @property
    def positional(self) -> List[Argument]:
        return [arg for arg in self.arguments if arg.keyword is None]

    def keyword(self, name: str) -> Optional[Argument]:
        for arg in self.arguments:
            if arg.keyword == name:
                return arg
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "callee": self.callee_path,
            "text": self.text,
            "line": self.line,
            "arguments": [arg.to_dict() for arg in self.arguments],
        }


@dataclass
class Symbol:
    """A Function, Method or Class definition."""

    name: str
    qualified_name: str
    kind: SymbolKind
    line: int
    end_line: int
    column: int = 0
    parent: Optional[str] = None
    decorators: List[Decorator] = field(default_factory=list)
    parameters: List[str] = field(default_factory=list)
    bases: List[str] = field(default_factory=list)
    has_docstring: bool = False
    docstring: Optional[str] = None
    is_async: bool = False
    is_stub: bool = False
    instance_param: Optional[str] = None
    return_type: Optional[str] = None
    signature: Optional[str] = None
    children: List[str] = field(default_factory=list)

    @property
    def is_exported(self) -> bool:
        return not self.name.startswith("_")

    @property
    def decorator_paths(self) -> List[str]:
        return [d.callee_path or d.text for d in self.decorators]

    def has_decorator(self, *names: str) -> bool:
        for path in self.decorator_paths:
            if path in names or path.rsplit(".", 1)[-1] in names:
                return True
        return False

    @property
    def is_property(self) -> bool:
        return self.has_decorator("property", "cached_property") or any(
            path.endswith((".setter", ".getter", ".deleter")) for path in self.decorator_paths
        )

    @property
    def is_classmethod(self) -> bool:
        return self.has_decorator("classmethod", "abstractclassmethod")

    @property
    def is_staticmethod(self) -> bool:
        return self.has_decorator("staticmethod", "abstractstaticmethod")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.qualified_name,
            "name": self.name,
            "kind": self.kind.value,
            "parent": self.parent,
            "line": self.line,
            "end_line": self.end_line,
            "decorators": self.decorator_paths,
            "bases": list(self.bases),
            "parameters": list(self.parameters),
            "has_docstring": self.has_docstring,
            "is_async": self.is_async,
            "is_exported": self.is_exported,
            "is_property": self.is_property,
            "is_classmethod": self.is_classmethod,
            "is_staticmethod": self.is_staticmethod,
            "signature": self.signature,
        }


@dataclass
class VariableInfo:
    """A module-level ``NAME = ...`` binding."""

    name: str
    line: int
    is_constant: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "line": self.line,
            "kind": "Constant" if self.is_constant else "Variable",
        }


@dataclass
class CallSite:
    """One call expression and how it was resolved.

    ``receiver`` is the ``with ... as name`` binding a client call went
    through (``client`` for ``client.get(...)``), when there is one.
    """

    caller: str
    callee: str
    kind: CallKind
    line: int
    column: int
    target_module: Optional[str] = None
    target_symbol: Optional[str] = None
    is_awaited: bool = False
    is_builtin: bool = False
    receiver: Optional[str] = None

    @property
    def target(self) -> Optional[Dict[str, Optional[str]]]:
        if self.kind == CallKind.UNRESOLVED:
            return None
        return {"module": self.target_module, "symbol": self.target_symbol}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller": self.caller,
            "callee": self.callee,
            "kind": self.kind.value,
            "target": self.target,
            "line": self.line,
            "column": self.column,
            "is_awaited": self.is_awaited,
            "is_builtin": self.is_builtin,
            "receiver": self.receiver,
        }


@dataclass
class Endpoint:
    """An HTTP route bound by a decorator."""

    http_method: str
    path: str
    handler: str
    framework: str
    line: int
    router: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.http_method,
            "path": self.path,
            "handler": self.handler,
            "framework": self.framework,
            "router": self.router,
            "line": self.line,
        }


@dataclass
class RouterMount:
    """``app.include_router(router, prefix=...)`` or ``app.register_blueprint(bp, url_prefix=...)``."""

    app: str
    router: Optional[str]
    prefix: Optional[str]
    framework: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app": self.app,
            "router": self.router,
            "prefix": self.prefix,
            "framework": self.framework,
            "line": self.line,
        }


@dataclass
class ClientCall:
    """An outbound HTTP call made through a known client library.

    ``path_kind`` is ``literal``, ``template`` (placeholders kept as
    written) or ``unresolved`` (``path`` is None, ``expression`` holds the
    source text when there was one).
    """

    http_method: str
    path: Optional[str]
    path_kind: str
    is_async: bool
    library: str
    caller: str
    line: int
    column: int
    expression: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.http_method,
            "path": self.path,
            "path_kind": self.path_kind,
            "isAsync": self.is_async,
            "library": self.library,
            "caller": self.caller,
            "line": self.line,
        }


@dataclass
class ProtocolDef:
    name: str
    required_members: Tuple[str, ...]
    line: int
    declares_protocol: bool = False
    runtime_checkable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "requiredMembers": list(self.required_members),
            "line": self.line,
            "declares_protocol": self.declares_protocol,
            "runtime_checkable": self.runtime_checkable,
        }


@dataclass
class Implementer:
    protocol: str
    class_name: str
    match_kind: MatchKind
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": self.protocol,
            "class": self.class_name,
            "matchKind": self.match_kind.value,
            "line": self.line,
        }


@dataclass
class TestCase:
    __test__ = False

    symbol: str
    kind: TestKind
    owner: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "kind": self.kind.value,
            "owner": self.owner,
            "line": self.line,
        }


@dataclass
class Diagnostic:
    """A recoverable problem met while analysing a file."""

    file: str
    message: str
    line: Optional[int] = None
    stage: str = "pipeline"

    def sort_key(self) -> Tuple[str, int, str, str]:
        return (self.file, self.line or 0, self.stage, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "message": self.message,
            "line": self.line,
            "stage": self.stage,
        }


def _position(fact: Any) -> Tuple[int, int]:
    return (getattr(fact, "line", 0) or 0, getattr(fact, "column", 0) or 0)


@dataclass
class FileAnalysis:
    """Complete analysis result for a single file."""

    file_path: str
    module_name: str
    content_hash: str
    docstring: Optional[str] = None
    is_test_file: bool = False
    imports: List[Import] = field(default_factory=list)
    symbols: List[Symbol] = field(default_factory=list)
    variables: List[VariableInfo] = field(default_factory=list)
    calls: List[CallSite] = field(default_factory=list)
    endpoints: List[Endpoint] = field(default_factory=list)
    router_mounts: List[RouterMount] = field(default_factory=list)
    client_calls: List[ClientCall] = field(default_factory=list)
    protocols: List[ProtocolDef] = field(default_factory=list)
    implementers: List[Implementer] = field(default_factory=list)
    tests: List[TestCase] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def get_symbol(self, qualified_name: str) -> Optional[Symbol]:
        """Return the last definition bound to ``qualified_name``."""
        found = None
        for symbol in self.symbols:
            if symbol.qualified_name == qualified_name:
                found = symbol
        return found

    def calls_from(self, caller: str) -> List[CallSite]:
        return [call for call in self.calls if call.caller == caller]

    def sort_facts(self) -> None:
        """Order every fact list by source position (stable, idempotent)."""
        self.imports.sort(key=lambda imp: imp.line)
        self.symbols.sort(key=_position)
        self.variables.sort(key=_position)
        self.calls.sort(key=_position)
        self.endpoints.sort(key=lambda ep: (ep.line, ep.handler))
        self.router_mounts.sort(key=_position)
        self.client_calls.sort(key=_position)
        self.protocols.sort(key=_position)
        self.implementers.sort(key=lambda imp: (imp.line, imp.protocol))
        self.tests.sort(key=_position)
        self.diagnostics.sort(key=Diagnostic.sort_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.file_path,
            "module": self.module_name,
            "content_hash": self.content_hash,
            "docstring": self.docstring,
            "is_test_file": self.is_test_file,
            "imports": [imp.to_dict() for imp in self.imports],
            "variables": [var.to_dict() for var in self.variables],
            "symbols": [sym.to_dict() for sym in self.symbols],
            "calls": [call.to_dict() for call in self.calls],
            "endpoints": [ep.to_dict() for ep in self.endpoints],
            "router_mounts": [mount.to_dict() for mount in self.router_mounts],
            "client_calls": [cc.to_dict() for cc in self.client_calls],
            "protocols": [proto.to_dict() for proto in self.protocols],
            "implementers": [impl.to_dict() for impl in self.implementers],
            "tests": [test.to_dict() for test in self.tests],
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
        }


# Fact lists flattened into the project-level report, in output order.
REPORT_SECTIONS = (
    "symbols",
    "calls",
    "endpoints",
    "router_mounts",
    "client_calls",
    "protocols",
    "implementers",
    "tests",
)


@dataclass
class ProjectReport:
    """Merged, deterministically ordered facts for a whole project."""

    files: List[FileAnalysis] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False

    def iter_facts(self, section: str) -> Iterator[Tuple[str, Any]]:
        """Yield ``(file_path, fact)`` pairs for one fact list across files."""
        for analysis in self.files:
            for fact in getattr(analysis, section):
                yield analysis.file_path, fact

    def call_counts(self) -> Dict[str, int]:
        counts = {kind.value: 0 for kind in CallKind}
        for _, call in self.iter_facts("calls"):
            counts[call.kind.value] += 1
        return counts

    def stats(self) -> Dict[str, int]:
        stats = {"files": len(self.files)}
        for section in REPORT_SECTIONS:
            stats[section] = sum(len(getattr(f, section)) for f in self.files)
        stats["diagnostics"] = len(self.diagnostics)
        stats["skipped"] = len(self.skipped)
        return stats

    def to_dict(self) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "files": [
                {
                    "path": f.file_path,
                    "module": f.module_name,
                    "content_hash": f.content_hash,
                    "docstring": f.docstring,
                    "is_test_file": f.is_test_file,
                    "imports": [imp.to_dict() for imp in f.imports],
                    "variables": [var.to_dict() for var in f.variables],
                }
                for f in self.files
            ]
        }
        for section in REPORT_SECTIONS:
            report[section] = [
                {"file": path, **fact.to_dict()} for path, fact in self.iter_facts(section)
            ]
        report["diagnostics"] = [diag.to_dict() for diag in self.diagnostics]
        report["skipped"] = list(self.skipped)
        report["cancelled"] = self.cancelled
        report["summary"] = self.stats()
        return report
