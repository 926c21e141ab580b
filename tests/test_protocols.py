"""Tests for protocol and implementer detection."""

from archscan.analyzer.models import MatchKind


def test_protocol_definitions(analyze, protocols_source):
    result = analyze(protocols_source)

    protocols = {p.name: p for p in result.protocols}
    assert set(protocols) == {"Serializable", "Comparable"}
    assert protocols["Serializable"].required_members == ("deserialize", "serialize")
    assert protocols["Serializable"].declares_protocol
    assert not protocols["Serializable"].runtime_checkable
    assert protocols["Comparable"].required_members == ("compare",)
    assert protocols["Comparable"].runtime_checkable


def test_nominal_and_structural_implementers(analyze, protocols_source):
    result = analyze(protocols_source)

    matches = {(i.protocol, i.class_name): i.match_kind for i in result.implementers}
    assert matches == {
        ("Serializable", "JsonSerializer"): MatchKind.NOMINAL,
        ("Comparable", "UserComparator"): MatchKind.NOMINAL,
        ("Serializable", "DuckSerializer"): MatchKind.STRUCTURAL,
    }


def test_structural_match_covers_required_members(analyze, protocols_source):
    result = analyze(protocols_source)

    protocols = {p.name: p for p in result.protocols}
    for implementer in result.implementers:
        if implementer.match_kind != MatchKind.STRUCTURAL:
            continue
        declared = {
            s.name for s in result.symbols if s.parent == implementer.class_name
        }
        assert declared >= set(protocols[implementer.protocol].required_members)


def test_stub_bodies_with_pass_and_not_implemented(analyze):
    source = '''
class Repository:
    """Storage contract."""

    name: str

    def get(self, key):
        """Fetch one."""
        pass

    @property
    def size(self) -> int:
        raise NotImplementedError
'''
    result = analyze(source)

    [protocol] = result.protocols
    assert protocol.required_members == ("get", "size")
    assert not protocol.declares_protocol


def test_classes_without_methods_or_with_logic_are_not_protocols(analyze):
    source = """
class Settings:
    debug: bool
    name: str


class Marker:
    pass


class Concrete:
    def run(self):
        return 1


class WithState:
    counter = 0

    def run(self):
        ...
"""
    result = analyze(source)

    assert result.protocols == []
    assert result.implementers == []


def test_qualified_base_counts_as_nominal(analyze):
    source = """
class Reader(typing.Protocol):
    def read(self) -> bytes:
        ...


class FileReader(io_protocols.Reader):
    pass
"""
    result = analyze(source)

    [implementer] = result.implementers
    assert implementer.class_name == "FileReader"
    assert implementer.match_kind == MatchKind.NOMINAL


def test_class_can_implement_several_protocols(analyze):
    source = """
from typing import Protocol


class Reader(Protocol):
    def read(self) -> bytes:
        ...


class Writer(Protocol):
    def write(self, data: bytes) -> None:
        ...


class Buffer(Reader):
    def read(self) -> bytes:
        return b""

    def write(self, data: bytes) -> None:
        pass
"""
    result = analyze(source)

    matches = {(i.protocol, i.class_name): i.match_kind for i in result.implementers}
    assert matches == {
        ("Reader", "Buffer"): MatchKind.NOMINAL,
        ("Writer", "Buffer"): MatchKind.STRUCTURAL,
    }
