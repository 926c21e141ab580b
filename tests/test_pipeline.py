"""Tests for the per-file pipeline and the concurrent project runner."""

import threading
import time

from archscan.analyzer import CodeAnalyzer, Diagnostic, FileAnalysis, module_name_for
from archscan.analyzer import parser as parser_module
from archscan.analyzer.base_analyzer import discover_python_files
from archscan.analyzer.extractors import BaseExtractor
from archscan.analyzer.parser import ParserInitializationError


def test_module_name_for():
    assert module_name_for("service/api.py") == "service.api"
    assert module_name_for("service/__init__.py") == "service"
    assert module_name_for("main.py") == "main"


def test_syntax_errors_become_diagnostics(analyze, malformed_source):
    result = analyze(malformed_source, path="malformed.py")

    parse_diagnostics = [d for d in result.diagnostics if d.stage == "parse"]
    assert parse_diagnostics
    assert all(d.file == "malformed.py" for d in parse_diagnostics)
    assert isinstance(result, FileAnalysis)


def test_non_module_tree_is_a_file_level_diagnostic():
    outcome = CodeAnalyzer().analyze_file("broken.py", None)

    assert isinstance(outcome, Diagnostic)
    assert outcome.file == "broken.py"
    assert outcome.stage == "parse"


def test_failing_stage_is_isolated(parse, calls_source):
    class ExplodingExtractor(BaseExtractor):
        stage = "explode"

        def extract(self, context, result):
            raise RuntimeError("boom")

    analyzer = CodeAnalyzer()
    analyzer.endpoint_extractor = ExplodingExtractor()
    result = analyzer.analyze_file("calls.py", parse(calls_source))

    assert isinstance(result, FileAnalysis)
    assert [d.message for d in result.diagnostics] == ["explode stage failed: boom"]
    assert result.calls
    assert result.symbols


def test_analysis_is_deterministic(parse, analyze, fastapi_source):
    first = analyze(fastapi_source).to_dict()
    second = analyze(fastapi_source).to_dict()

    assert first == second


def test_content_hash_changes_with_source(analyze):
    assert analyze("x = 1\n").content_hash != analyze("x = 2\n").content_hash


def test_discover_python_files_applies_exclusions(sample_project):
    files = discover_python_files(sample_project, ["__pycache__"])
    names = [f.relative_to(sample_project).as_posix() for f in files]

    assert "service/__pycache__/cached.py" not in names
    assert "service/api.py" in names
    assert names == sorted(names)


def test_analyze_directory(sample_project):
    report = CodeAnalyzer().analyze_directory(sample_project, max_workers=4)

    paths = [f.file_path for f in report.files]
    assert paths == sorted(paths)
    assert "service/tests/test_handlers.py" in paths
    assert not any("__pycache__" in p for p in paths)
    assert not report.cancelled
    assert report.skipped == []

    stats = report.stats()
    assert stats["endpoints"] == 6
    assert stats["client_calls"] == 5
    assert stats["tests"] == 4


def test_worker_count_does_not_change_report(sample_project):
    serial = CodeAnalyzer().analyze_directory(sample_project, max_workers=1)
    parallel = CodeAnalyzer().analyze_directory(sample_project, max_workers=8)

    assert serial.to_dict() == parallel.to_dict()


def test_cancelled_run_skips_files(sample_project):
    cancel_event = threading.Event()
    cancel_event.set()

    report = CodeAnalyzer().analyze_directory(sample_project, cancel_event=cancel_event)

    assert report.cancelled
    assert report.files == []
    assert "service/api.py" in report.skipped


def test_unreadable_file_is_reported(temp_dir):
    bad = temp_dir / "latin1.py"
    bad.write_bytes(b"name = '\xe9'\n")
    (temp_dir / "ok.py").write_text("def ok():\n    pass\n", encoding="utf-8")

    report = CodeAnalyzer().analyze_directory(temp_dir)

    assert [f.file_path for f in report.files] == ["ok.py"]
    [diagnostic] = report.diagnostics
    assert diagnostic.file == "latin1.py"
    assert diagnostic.stage == "parse"


def test_interrupt_cancels_files_not_started(temp_dir, monkeypatch):
    paths = []
    for i in range(8):
        path = temp_dir / f"mod_{i}.py"
        path.write_text(f"def func_{i}():\n    pass\n", encoding="utf-8")
        paths.append(path)

    started = []
    original = CodeAnalyzer.analyze_path

    def interrupting(self, file_path, display_path=None):
        started.append(display_path)
        if len(started) == 1:
            raise KeyboardInterrupt
        time.sleep(0.2)
        return original(self, file_path, display_path)

    monkeypatch.setattr(CodeAnalyzer, "analyze_path", interrupting)
    cancel_event = threading.Event()

    report = CodeAnalyzer().analyze_paths(paths, root_path=temp_dir, max_workers=1, cancel_event=cancel_event)

    assert cancel_event.is_set()
    assert report.cancelled
    assert len(started) <= 2
    assert "mod_0.py" in report.skipped
    assert "mod_7.py" in report.skipped
    assert len(report.files) + len(report.skipped) == 8


def test_parser_initialization_failure_is_a_parse_diagnostic(temp_dir, monkeypatch):
    source = temp_dir / "mod.py"
    source.write_text("x = 1\n", encoding="utf-8")

    def broken_parser():
        raise ParserInitializationError("Cannot load Python grammar: missing")

    monkeypatch.setattr(parser_module, "get_python_parser", broken_parser)

    outcome = CodeAnalyzer().analyze_path(source, "mod.py")

    assert isinstance(outcome, Diagnostic)
    assert outcome.stage == "parse"
    assert "Cannot load Python grammar" in outcome.message
