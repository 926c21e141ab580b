"""Tests for call site extraction and resolution."""

from archscan.analyzer.models import MODULE_SCOPE, CallKind


def _by_callee(result):
    return {call.callee: call for call in result.calls}


def test_resolution_kinds(analyze, calls_source):
    result = analyze(calls_source)
    calls = _by_callee(result)

    assert calls["helper"].kind == CallKind.SAME_FILE
    assert calls["helper"].target_symbol == "helper"
    assert calls["helper"].caller == "process_data"

    join = calls["os.path.join"]
    assert join.kind == CallKind.IMPORT_QUALIFIED
    assert (join.target_module, join.target_symbol) == ("os", "path.join")

    dumps = calls["json.dumps"]
    assert (dumps.target_module, dumps.target_symbol) == ("json", "dumps")

    now = calls["datetime.now"]
    assert now.kind == CallKind.IMPORT_QUALIFIED
    assert (now.target_module, now.target_symbol) == ("datetime", "datetime.now")

    validate = calls["self.validate"]
    assert validate.kind == CallKind.SELF_METHOD
    assert validate.target_symbol == "DataProcessor.validate"
    assert validate.caller == "DataProcessor.process"

    assert calls["json.loads"].caller == "DataProcessor.process"


def test_unresolved_and_builtins(analyze, calls_source):
    result = analyze(calls_source)
    calls = _by_callee(result)

    assert calls["print"].kind == CallKind.UNRESOLVED
    assert calls["print"].is_builtin
    assert calls["print"].target is None
    assert calls["unknown_function"].kind == CallKind.UNRESOLVED
    assert not calls["unknown_function"].is_builtin


def test_every_caller_is_a_known_scope(analyze, calls_source):
    result = analyze(calls_source)

    scopes = {s.qualified_name for s in result.symbols} | {MODULE_SCOPE}
    assert all(call.caller in scopes for call in result.calls)


def test_self_call_takes_priority_over_same_file_function(analyze):
    source = """
def validate(x):
    return x


class Checker:
    def validate(self, x):
        return True

    def run(self, x):
        self.validate(x)
        validate(x)
"""
    result = analyze(source)
    calls = {(c.callee, c.kind) for c in result.calls_from("Checker.run")}

    assert ("self.validate", CallKind.SELF_METHOD) in calls
    assert ("validate", CallKind.SAME_FILE) in calls
    targets = {c.callee: c.target_symbol for c in result.calls_from("Checker.run")}
    assert targets == {"self.validate": "Checker.validate", "validate": "validate"}


def test_same_file_takes_priority_over_import(analyze):
    source = """
from helpers import load


def load():
    return None


def main():
    return load()
"""
    result = analyze(source)
    [call] = result.calls_from("main")

    assert call.kind == CallKind.SAME_FILE
    assert call.target_symbol == "load"


def test_inherited_and_super_calls(analyze):
    source = """
class Base:
    def save(self):
        return 1

    def close(self):
        return 2


class Child(Base):
    def close(self):
        super().close()
        return self.save()
"""
    result = analyze(source)
    calls = _by_callee(result)

    assert calls["self.save"].kind == CallKind.SELF_METHOD
    assert calls["self.save"].target_symbol == "Base.save"
    assert calls["super().close"].kind == CallKind.SELF_METHOD
    assert calls["super().close"].target_symbol == "Base.close"


def test_unknown_self_method_is_unresolved(analyze):
    source = """
class Widget:
    def draw(self):
        self.render()
"""
    result = analyze(source)
    [call] = result.calls

    assert call.kind == CallKind.UNRESOLVED
    assert not call.is_builtin


def test_nested_function_resolves_enclosing_scope_first(analyze):
    source = """
def helper():
    return "module"


def outer():
    def helper():
        return "local"
    return helper()
"""
    result = analyze(source)
    [call] = result.calls_from("outer")

    assert call.target_symbol == "outer.helper"


def test_local_import_resolves_inside_function(analyze):
    source = """
def loader(text):
    import yaml
    return yaml.safe_load(text)
"""
    result = analyze(source)
    [call] = result.calls

    assert call.kind == CallKind.IMPORT_QUALIFIED
    assert (call.target_module, call.target_symbol) == ("yaml", "safe_load")


def test_module_level_and_decorator_calls_use_enclosing_scope(analyze):
    source = """
import functools
import logging

logger = logging.getLogger(__name__)


class Service:
    @functools.lru_cache(maxsize=None)
    def get(self, key=str(1)):
        return key
"""
    result = analyze(source)
    calls = _by_callee(result)

    assert calls["logging.getLogger"].caller == MODULE_SCOPE
    assert calls["functools.lru_cache"].caller == "Service"
    assert calls["str"].caller == "Service"


def test_awaited_calls(analyze):
    source = """
async def fetch(session):
    await session.close()
    session.reset()
"""
    result = analyze(source)
    calls = _by_callee(result)

    assert calls["session.close"].is_awaited
    assert not calls["session.reset"].is_awaited


def test_calls_sorted_by_position(analyze, calls_source):
    result = analyze(calls_source)

    positions = [(c.line, c.column) for c in result.calls]
    assert positions == sorted(positions)


def test_with_bound_receiver_is_recorded(analyze, http_clients_source):
    result = analyze(http_clients_source)
    calls = {c.callee: c for c in result.calls}

    client_get = calls["client.get"]
    assert client_get.receiver == "client"
    assert client_get.to_dict()["receiver"] == "client"
    assert calls["requests.get"].receiver is None
