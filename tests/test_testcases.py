"""Tests for naming-convention test detection."""

from archscan.analyzer.extractors import TestCaseDetector
from archscan.analyzer.models import TestKind
from archscan.config import AnalyzerConfig


def test_functions_and_methods_detected(analyze, test_handlers_source):
    result = analyze(test_handlers_source, path="tests/test_handlers.py")

    summary = [(t.symbol, t.kind, t.owner) for t in result.tests]
    assert summary == [
        ("TestHandlerCreation.test_create_handler", TestKind.TEST_METHOD, "TestHandlerCreation"),
        ("TestHandlerCreation.test_handler_type", TestKind.TEST_METHOD, "TestHandlerCreation"),
        ("test_process_request", TestKind.TEST_FUNCTION, "tests.test_handlers"),
        ("test_empty_request", TestKind.TEST_FUNCTION, "tests.test_handlers"),
    ]
    assert result.is_test_file


def test_helpers_are_not_tests(analyze, test_handlers_source):
    result = analyze(test_handlers_source, path="tests/test_handlers.py")

    names = {t.symbol for t in result.tests}
    assert "TestHandlerCreation.helper_method" not in names
    assert "helper_function" not in names


def test_methods_outside_test_classes_and_nested_functions_ignored(analyze):
    source = """
class Helpers:
    def test_like(self):
        pass


def outer():
    def test_inner():
        pass
"""
    result = analyze(source, path="helpers.py")

    assert result.tests == []
    assert not result.is_test_file


def test_test_file_patterns():
    detector = TestCaseDetector()

    assert detector.is_test_file("pkg/test_api.py")
    assert detector.is_test_file("pkg/api_test.py")
    assert not detector.is_test_file("pkg/testing.py")
    assert not detector.is_test_file("pkg/contest.py")


def test_custom_prefixes(analyze):
    source = """
class CheckParser:
    def check_empty(self):
        pass


def check_module():
    pass
"""
    config = AnalyzerConfig().with_overrides(test_function_prefixes=["check_"], test_class_prefixes=["Check"])
    result = analyze(source, config=config)

    assert [(t.symbol, t.kind) for t in result.tests] == [
        ("CheckParser.check_empty", TestKind.TEST_METHOD),
        ("check_module", TestKind.TEST_FUNCTION),
    ]
