"""
Export a ProjectReport to Parquet tables.

One table per fact kind (files, symbols, calls, endpoints, ...) so reports
can be queried with polars or loaded into a database with bulk COPY.
Symbols get stable hash-based IDs that call edges reference.
"""

import hashlib
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl
from codetiming import Timer

from archscan.analyzer.models import MODULE_SCOPE, ProjectReport

logger = logging.getLogger(__name__)


@lru_cache(maxsize=100_000)
def make_symbol_id(file: str, qualified_name: str) -> str:
    """Create stable hash-based ID for a symbol.

    Args:
        file: Report-relative file path
        qualified_name: Dotted symbol path within the file

    Returns:
        Hash-based identifier (e.g., 'sym_a1b2c3d4e5f6')
    """
    content = f"{file}::{qualified_name}"
    return f"sym_{hashlib.sha256(content.encode()).hexdigest()[:12]}"


TABLE_SCHEMAS: Dict[str, Dict[str, pl.DataType]] = {
    "files": {
        "path": pl.Utf8,
        "module": pl.Utf8,
        "content_hash": pl.Utf8,
        "is_test_file": pl.Boolean,
        "import_count": pl.Int64,
    },
    "imports": {
        "file": pl.Utf8,
        "local_name": pl.Utf8,
        "origin_module": pl.Utf8,
        "origin_symbol": pl.Utf8,
        "line": pl.Int64,
    },
    "symbols": {
        "id": pl.Utf8,
        "file": pl.Utf8,
        "path": pl.Utf8,
        "name": pl.Utf8,
        "kind": pl.Utf8,
        "parent": pl.Utf8,
        "line": pl.Int64,
        "end_line": pl.Int64,
        "decorators": pl.List(pl.Utf8),
        "bases": pl.List(pl.Utf8),
        "has_docstring": pl.Boolean,
        "is_async": pl.Boolean,
        "is_exported": pl.Boolean,
        "is_property": pl.Boolean,
        "is_classmethod": pl.Boolean,
        "is_staticmethod": pl.Boolean,
    },
    "calls": {
        "file": pl.Utf8,
        "caller": pl.Utf8,
        "caller_id": pl.Utf8,
        "callee": pl.Utf8,
        "kind": pl.Utf8,
        "target_module": pl.Utf8,
        "target_symbol": pl.Utf8,
        "target_id": pl.Utf8,
        "line": pl.Int64,
        "is_awaited": pl.Boolean,
        "is_builtin": pl.Boolean,
        "receiver": pl.Utf8,
    },
    "endpoints": {
        "file": pl.Utf8,
        "method": pl.Utf8,
        "path": pl.Utf8,
        "handler": pl.Utf8,
        "handler_id": pl.Utf8,
        "framework": pl.Utf8,
        "router": pl.Utf8,
        "line": pl.Int64,
    },
    "router_mounts": {
        "file": pl.Utf8,
        "app": pl.Utf8,
        "router": pl.Utf8,
        "prefix": pl.Utf8,
        "framework": pl.Utf8,
        "line": pl.Int64,
    },
    "client_calls": {
        "file": pl.Utf8,
        "method": pl.Utf8,
        "path": pl.Utf8,
        "path_kind": pl.Utf8,
        "is_async": pl.Boolean,
        "library": pl.Utf8,
        "caller": pl.Utf8,
        "line": pl.Int64,
    },
    "protocols": {
        "file": pl.Utf8,
        "name": pl.Utf8,
        "required_members": pl.List(pl.Utf8),
        "runtime_checkable": pl.Boolean,
        "line": pl.Int64,
    },
    "implementers": {
        "file": pl.Utf8,
        "protocol": pl.Utf8,
        "class": pl.Utf8,
        "match_kind": pl.Utf8,
        "line": pl.Int64,
    },
    "tests": {
        "file": pl.Utf8,
        "symbol": pl.Utf8,
        "kind": pl.Utf8,
        "owner": pl.Utf8,
        "line": pl.Int64,
    },
    "diagnostics": {
        "file": pl.Utf8,
        "stage": pl.Utf8,
        "line": pl.Int64,
        "message": pl.Utf8,
    },
}


def _symbol_id(file: str, qualified_name: Optional[str]) -> Optional[str]:
    if not qualified_name or qualified_name == MODULE_SCOPE:
        return None
    return make_symbol_id(file, qualified_name)


def report_tables(report: ProjectReport) -> Dict[str, List[dict]]:
    """Flatten a report into rows per table."""
    tables: Dict[str, List[dict]] = {name: [] for name in TABLE_SCHEMAS}

    for analysis in report.files:
        file = analysis.file_path
        tables["files"].append(
            {
                "path": file,
                "module": analysis.module_name,
                "content_hash": analysis.content_hash,
                "is_test_file": analysis.is_test_file,
                "import_count": len(analysis.imports),
            }
        )
        for imp in analysis.imports:
            tables["imports"].append({"file": file, **imp.to_dict()})
        for symbol in analysis.symbols:
            tables["symbols"].append(
                {
                    "id": make_symbol_id(file, symbol.qualified_name),
                    "file": file,
                    "path": symbol.qualified_name,
                    "name": symbol.name,
                    "kind": symbol.kind.value,
                    "parent": symbol.parent,
                    "line": symbol.line,
                    "end_line": symbol.end_line,
                    "decorators": symbol.decorator_paths,
                    "bases": list(symbol.bases),
                    "has_docstring": symbol.has_docstring,
                    "is_async": symbol.is_async,
                    "is_exported": symbol.is_exported,
                    "is_property": symbol.is_property,
                    "is_classmethod": symbol.is_classmethod,
                    "is_staticmethod": symbol.is_staticmethod,
                }
            )
        for call in analysis.calls:
            local_target = call.target_module is None and call.target_symbol is not None
            tables["calls"].append(
                {
                    "file": file,
                    "caller": call.caller,
                    "caller_id": _symbol_id(file, call.caller),
                    "callee": call.callee,
                    "kind": call.kind.value,
                    "target_module": call.target_module,
                    "target_symbol": call.target_symbol,
                    "target_id": _symbol_id(file, call.target_symbol) if local_target else None,
                    "line": call.line,
                    "is_awaited": call.is_awaited,
                    "is_builtin": call.is_builtin,
                    "receiver": call.receiver,
                }
            )
        for endpoint in analysis.endpoints:
            row = endpoint.to_dict()
            row["handler_id"] = make_symbol_id(file, endpoint.handler)
            tables["endpoints"].append({"file": file, **row})
        for mount in analysis.router_mounts:
            tables["router_mounts"].append({"file": file, **mount.to_dict()})
        for client_call in analysis.client_calls:
            tables["client_calls"].append(
                {
                    "file": file,
                    "method": client_call.http_method,
                    "path": client_call.path,
                    "path_kind": client_call.path_kind,
                    "is_async": client_call.is_async,
                    "library": client_call.library,
                    "caller": client_call.caller,
                    "line": client_call.line,
                }
            )
        for protocol in analysis.protocols:
            tables["protocols"].append(
                {
                    "file": file,
                    "name": protocol.name,
                    "required_members": list(protocol.required_members),
                    "runtime_checkable": protocol.runtime_checkable,
                    "line": protocol.line,
                }
            )
        for implementer in analysis.implementers:
            tables["implementers"].append(
                {
                    "file": file,
                    "protocol": implementer.protocol,
                    "class": implementer.class_name,
                    "match_kind": implementer.match_kind.value,
                    "line": implementer.line,
                }
            )
        for test in analysis.tests:
            tables["tests"].append({"file": file, **test.to_dict()})

    for diagnostic in report.diagnostics:
        tables["diagnostics"].append(diagnostic.to_dict())

    return tables


def _write_table(data: List[dict], table: str, output_path: Path) -> None:
    """Write rows to Parquet with the table's schema (also when empty)."""
    schema = TABLE_SCHEMAS[table]
    if data:
        df = pl.DataFrame([{col: row.get(col) for col in schema} for row in data], schema=schema)
    else:
        df = pl.DataFrame(schema=schema)
    df.write_parquet(output_path)


def export_to_parquet(report: ProjectReport, output_dir: Path) -> Dict[str, int]:
    """
    Write every report table to ``output_dir/<table>.parquet``.

    Args:
        report: Aggregated project report
        output_dir: Directory to create or reuse

    Returns:
        Row count per table
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timer = Timer(logger=None)
    timer.start()
    tables = report_tables(report)
    for table, rows in tables.items():
        _write_table(rows, table, output_dir / f"{table}.parquet")
    elapsed = timer.stop()

    logger.info(f"Wrote {len(tables)} Parquet tables to {output_dir} in {elapsed:.3f}s")
    return {table: len(rows) for table, rows in tables.items()}
