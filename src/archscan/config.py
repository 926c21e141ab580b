"""
Analyzer configuration.

Every naming convention the extractors recognize (route decorator shapes,
HTTP client libraries, test prefixes) lives here so it can be changed
without touching extraction code.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    "__pycache__",
    ".pytest_cache",
    "htmlcov",
    "dist",
    "build",
    ".git",
    ".venv",
    "venv",
    ".tox",
    "node_modules",
)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable analyzer settings, shared read-only across worker threads."""

    route_decorator: str = "route"
    route_verbs: Tuple[str, ...] = ("get", "post", "put", "delete", "patch")
    router_mount_methods: Tuple[str, ...] = ("include_router", "register_blueprint")
    http_client_libraries: Tuple[str, ...] = ("requests", "httpx", "aiohttp")
    http_client_methods: Tuple[str, ...] = (
        "get",
        "post",
        "put",
        "delete",
        "patch",
        "head",
        "options",
    )
    test_function_prefixes: Tuple[str, ...] = ("test",)
    test_class_prefixes: Tuple[str, ...] = ("Test",)
    test_file_patterns: Tuple[str, ...] = ("test_*.py", "*_test.py")
    exclude_patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    max_workers: Optional[int] = None

    def with_overrides(self, **changes) -> "AnalyzerConfig":
        """Return a copy with the given fields replaced; None values are ignored."""
        updates = {}
        for name, value in changes.items():
            if value is None:
                continue
            if isinstance(value, list):
                value = tuple(value)
            updates[name] = value
        return dataclasses.replace(self, **updates)


DEFAULT_CONFIG = AnalyzerConfig()
