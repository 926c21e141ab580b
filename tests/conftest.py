"""
Pytest configuration and shared fixtures for archscan tests.
"""

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from archscan.analyzer import CodeAnalyzer, FileAnalysis, parse_python_source
from archscan.config import AnalyzerConfig


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after test.

    Yields:
        Path to temporary directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def parse() -> Callable:
    """Parse source text into a tree-sitter tree."""
    return parse_python_source


@pytest.fixture
def analyze() -> Callable[..., FileAnalysis]:
    """Analyze source text as if it were the file at ``path``.

    Returns:
        Function ``(source, path="sample.py", config=None) -> FileAnalysis``
    """

    def _analyze(source: str, path: str = "sample.py", config: AnalyzerConfig = None) -> FileAnalysis:
        result = CodeAnalyzer(config).analyze_file(path, parse_python_source(source, path))
        assert isinstance(result, FileAnalysis)
        return result

    return _analyze


class StubNode:
    """Hand-built stand-in for a tree-sitter node.

    Lets tests reach tree shapes the grammar never produces for valid input.
    """

    def __init__(self, type: str, text: str = "", fields=None, children=(), has_error: bool = False):
        self.type = type
        self.text = text.encode("utf-8")
        self.start_point = (0, 0)
        self.end_point = (0, len(text))
        self.start_byte = 0
        self.is_named = True
        self.is_missing = False
        self.has_error = has_error
        self.children = list(children)
        self._fields = fields or {}

    def child_by_field_name(self, name: str):
        values = self._fields.get(name, [])
        return values[0] if values else None

    def children_by_field_name(self, name: str):
        return list(self._fields.get(name, []))


@pytest.fixture
def stub_node():
    """The StubNode class."""
    return StubNode


CALLS_SOURCE = '''"""Call graph fixture."""

import os
import json
from datetime import datetime


def helper():
    return 42


def process_data(items):
    value = helper()
    path = os.path.join("a", "b")
    payload = json.dumps({"v": value})
    now = datetime.now()
    print(payload)
    return unknown_function(items)


class DataProcessor:
    """Processes records."""

    def validate(self, record):
        return bool(record)

    def process(self, record):
        if self.validate(record):
            return json.loads(record)
        return None
'''

FASTAPI_SOURCE = '''from fastapi import APIRouter, FastAPI

app = FastAPI()
router = APIRouter()


@router.get("/instances")
async def list_instances():
    return []


@router.get("/instances/{instance_id}")
async def get_instance(instance_id: str):
    return {}


@router.post("/instances")
async def create_instance(body: dict):
    return body


@router.put("/instances/{instance_id}")
async def update_instance(instance_id: str, body: dict):
    return body


@router.delete("/instances/{instance_id}")
async def delete_instance(instance_id: str):
    return None


@router.patch("/instances/{instance_id}/status")
async def patch_status(instance_id: str):
    return None


app.include_router(router, prefix="/api/v1")
'''

FLASK_SOURCE = '''from flask import Blueprint, Flask

app = Flask(__name__)
bp = Blueprint("users", __name__)


@app.route("/health")
def health():
    return "ok"


@app.route("/login", methods=["POST"])
def login():
    return "token"


@bp.route("/users")
def list_users():
    return []


@bp.route("/users/<user_id>", methods=["GET", "POST"])
def user_detail(user_id):
    return {}


app.register_blueprint(bp, url_prefix="/api")
'''

HTTP_CLIENTS_SOURCE = '''import httpx
import requests


def list_instances():
    return requests.get("/api/v1/instances")


def create_instance(data):
    return requests.post("/api/v1/instances", json=data)


def update_instance(instance_id, data):
    return requests.put(f"/api/v1/instances/{instance_id}", json=data)


async def get_agents(instance_id):
    async with httpx.AsyncClient() as client:
        response = await client.get(f"/api/v1/instances/{instance_id}/agents")
    return response


def delete_instance(instance_id):
    return requests.delete(f"/api/v1/instances/{instance_id}")
'''

PROTOCOLS_SOURCE = '''from typing import Any, Protocol, runtime_checkable


class Serializable(Protocol):
    """Something that round-trips through text."""

    def serialize(self) -> str:
        ...

    def deserialize(self, data: str) -> Any:
        ...


@runtime_checkable
class Comparable(Protocol):
    def compare(self, other: Any) -> int:
        ...


class JsonSerializer(Serializable):
    def serialize(self) -> str:
        return "{}"

    def deserialize(self, data: str) -> Any:
        return data


class UserComparator(Comparable):
    def compare(self, other: Any) -> int:
        return 0


class DuckSerializer:
    def serialize(self) -> str:
        return ""

    def deserialize(self, data: str) -> Any:
        return None


def process(item: Serializable) -> str:
    return item.serialize()
'''

TEST_HANDLERS_SOURCE = '''import pytest


class TestHandlerCreation:
    def test_create_handler(self):
        assert True

    def test_handler_type(self):
        assert True

    def helper_method(self):
        return None


def test_process_request():
    assert True


def test_empty_request():
    assert True


def helper_function():
    return None
'''


@pytest.fixture
def calls_source() -> str:
    return CALLS_SOURCE


@pytest.fixture
def fastapi_source() -> str:
    return FASTAPI_SOURCE


@pytest.fixture
def flask_source() -> str:
    return FLASK_SOURCE


@pytest.fixture
def http_clients_source() -> str:
    return HTTP_CLIENTS_SOURCE


@pytest.fixture
def protocols_source() -> str:
    return PROTOCOLS_SOURCE


@pytest.fixture
def test_handlers_source() -> str:
    return TEST_HANDLERS_SOURCE


@pytest.fixture
def malformed_source() -> str:
    return '''"""This file has syntax errors."""

def broken_function(
    """Missing closing parenthesis."""
    return "broken"

def another_broken():
    if True
        return "missing colon"


def still_fine():
    return 1
'''


@pytest.fixture
def sample_project(temp_dir: Path) -> Path:
    """Create a sample service project with multiple files.

    Args:
        temp_dir: Temporary directory fixture

    Returns:
        Path to project root directory
    """
    package = temp_dir / "service"
    package.mkdir()
    (package / "tests").mkdir()
    (package / "__pycache__").mkdir()

    (package / "__init__.py").write_text('"""Service package."""\n\n__version__ = "0.1.0"\n', encoding="utf-8")
    (package / "api.py").write_text(FASTAPI_SOURCE, encoding="utf-8")
    (package / "clients.py").write_text(HTTP_CLIENTS_SOURCE, encoding="utf-8")
    (package / "protocols.py").write_text(PROTOCOLS_SOURCE, encoding="utf-8")
    (package / "calls.py").write_text(CALLS_SOURCE, encoding="utf-8")
    (package / "tests" / "test_handlers.py").write_text(TEST_HANDLERS_SOURCE, encoding="utf-8")
    (package / "__pycache__" / "cached.py").write_text("def ignored():\n    pass\n", encoding="utf-8")

    return temp_dir
