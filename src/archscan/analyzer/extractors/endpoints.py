"""
HTTP endpoint extraction.

Recognizes two decorator shapes on functions and methods:

- ``@<router>.<verb>(path)`` where verb is get/post/put/delete/patch
  (FastAPI style, one endpoint)
- ``@<router>.route(path, methods=[...])`` (Flask style, one endpoint per
  method, GET when ``methods`` is absent)

Also records router mounts (``app.include_router(router, prefix=...)``,
``app.register_blueprint(bp, url_prefix=...)``) so prefixes can be
composed downstream.
"""

import logging
from typing import List, Optional

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.extractors.decorators import parse_arguments
from archscan.analyzer.models import (
    Decorator,
    Endpoint,
    FileAnalysis,
    ImportMap,
    RouterMount,
    Symbol,
    SymbolKind,
)
from archscan.analyzer.tree_sitter_adapter import (
    DEFINITION_TYPES,
    dotted_name,
    node_line,
    node_text,
    walk_tree,
)

logger = logging.getLogger(__name__)

PREFIX_KEYWORDS = ("prefix", "url_prefix")
PATH_KEYWORDS = ("path", "rule")


def framework_hint(import_map: ImportMap) -> Optional[str]:
    """Framework implied by the file's imports, if exactly one is imported."""
    modules = import_map.top_level_modules()
    if "fastapi" in modules:
        return "fastapi"
    if "flask" in modules:
        return "flask"
    return None


class EndpointExtractor(BaseExtractor):
    """Extracts route decorators and router mounts."""

    stage = "endpoints"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.endpoints`` and ``result.router_mounts``.

        Args:
            context: Per-file working state
            result: FileAnalysis to populate
        """
        hint = framework_hint(context.import_map)
        for symbol in result.symbols:
            if symbol.kind == SymbolKind.CLASS:
                continue
            for decorator in symbol.decorators:
                result.endpoints.extend(self.match_decorator(decorator, symbol, hint))
        self._extract_router_mounts(context, result, hint)

    def match_decorator(
        self,
        decorator: Decorator,
        symbol: Symbol,
        hint: Optional[str] = None,
    ) -> List[Endpoint]:
        """
        Match one decorator against the route shapes.

        Args:
            decorator: Parsed decorator
            symbol: Decorated function or method
            hint: Framework implied by imports

        Returns:
            Endpoints bound by the decorator (empty when it is not a route
            or when its path or methods are not literals)
        """
        if not decorator.is_call or not decorator.callee_path or "." not in decorator.callee_path:
            return []
        router, _, attribute = decorator.callee_path.rpartition(".")

        if attribute == self.config.route_decorator:
            methods = self._route_methods(decorator)
            framework = "flask"
        elif attribute in self.config.route_verbs:
            methods = [attribute.upper()]
            framework = hint or "fastapi"
        else:
            return []

        path = self._route_path(decorator)
        if path is None or not methods:
            logger.debug(
                f"Skipping route decorator on {symbol.qualified_name} at line "
                f"{decorator.line}: path or methods not a literal"
            )
            return []

        return [
            Endpoint(
                http_method=method,
                path=path,
                handler=symbol.qualified_name,
                framework=framework,
                line=decorator.line,
                router=router,
            )
            for method in methods
        ]

    def _route_path(self, decorator: Decorator) -> Optional[str]:
        positional = decorator.positional
        if positional:
            first = positional[0]
            return first.value if first.is_literal and isinstance(first.value, str) else None
        for keyword in PATH_KEYWORDS:
            arg = decorator.keyword(keyword)
            if arg is not None:
                return arg.value if arg.is_literal and isinstance(arg.value, str) else None
        return None

    def _route_methods(self, decorator: Decorator) -> List[str]:
        arg = decorator.keyword("methods")
        if arg is None:
            return ["GET"]
        if not arg.is_literal:
            return []
        values = arg.value if isinstance(arg.value, list) else [arg.value]
        methods: List[str] = []
        for value in values:
            if not isinstance(value, str):
                return []
            method = value.upper()
            if method not in methods:
                methods.append(method)
        return methods

    def _extract_router_mounts(
        self,
        context: FileContext,
        result: FileAnalysis,
        hint: Optional[str],
    ) -> None:
        for node in walk_tree(context.root, prune=lambda n: n.type in DEFINITION_TYPES):
            if node.type != "call":
                continue
            callee = dotted_name(node.child_by_field_name("function"))
            if callee is None or "." not in callee:
                continue
            app, _, method = callee.rpartition(".")
            if method not in self.config.router_mount_methods:
                continue

            arguments = parse_arguments(node.child_by_field_name("arguments"))
            positional = [arg for arg in arguments if arg.keyword is None]
            router = positional[0].text if positional else None
            if router is None:
                for arg in arguments:
                    if arg.keyword in ("router", "blueprint"):
                        router = arg.text
                        break

            prefix = None
            for arg in arguments:
                if arg.keyword in PREFIX_KEYWORDS and arg.is_literal and isinstance(arg.value, str):
                    prefix = arg.value
                    break

            framework = "flask" if method == "register_blueprint" else (hint or "fastapi")
            result.router_mounts.append(
                RouterMount(
                    app=app,
                    router=router,
                    prefix=prefix,
                    framework=framework,
                    line=node_line(node),
                )
            )
            logger.debug(f"{result.file_path}: router mount {node_text(node)!r}")
