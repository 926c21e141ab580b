"""
Outbound HTTP client call detection.

Works on resolved call sites: a call counts when it resolved through an
import (or a ``with`` alias) to a known client library and the attribute
is an HTTP method, e.g. ``requests.get(url)`` or ``client.post(url)``
inside ``async with httpx.AsyncClient() as client``.
"""

import logging
from typing import Optional, Tuple

from archscan.analyzer.extractors.base import BaseExtractor, FileContext
from archscan.analyzer.models import CallKind, CallSite, ClientCall, FileAnalysis
from archscan.analyzer.tree_sitter_adapter import (
    TreeSitterNode,
    call_arguments,
    named_children,
    node_text,
    string_literal,
)

logger = logging.getLogger(__name__)

PATH_LITERAL = "literal"
PATH_TEMPLATE = "template"
PATH_UNRESOLVED = "unresolved"


def path_expression(node: Optional[TreeSitterNode]) -> Tuple[Optional[str], str]:
    """
    Read a URL argument without evaluating it.

    Returns:
        Tuple of (path or None, path kind)

    Examples:
        ``"/api/v1/items"`` -> ("/api/v1/items", "literal")
        ``f"/items/{item_id}"`` -> ("/items/{item_id}", "template")
        ``"/items/{}".format(i)`` -> ("/items/{}", "template")
        ``base_url + "/items"`` -> (None, "unresolved")
    """
    if node is None:
        return None, PATH_UNRESOLVED

    text, is_template = string_literal(node)
    if text is not None:
        return text, PATH_TEMPLATE if is_template else PATH_LITERAL

    if node.type == "call":
        function = node.child_by_field_name("function")
        if function is not None and function.type == "attribute":
            attribute = node_text(function.child_by_field_name("attribute"))
            template, _ = string_literal(function.child_by_field_name("object"))
            if attribute == "format" and template is not None:
                return template, PATH_TEMPLATE

    if node.type == "binary_operator":
        parts = named_children(node)
        operator = node.child_by_field_name("operator")
        if len(parts) == 2 and operator is not None and node_text(operator) == "+":
            left, left_kind = path_expression(parts[0])
            right, right_kind = path_expression(parts[1])
            if left is not None and right is not None:
                is_template = PATH_TEMPLATE in (left_kind, right_kind)
                return left + right, PATH_TEMPLATE if is_template else PATH_LITERAL

    return None, PATH_UNRESOLVED


class ClientCallDetector(BaseExtractor):
    """Detects outbound HTTP calls made through configured client libraries."""

    stage = "client_calls"

    def extract(self, context: FileContext, result: FileAnalysis) -> None:
        """Populate ``result.client_calls`` from resolved call sites.

        Args:
            context: Per-file working state (needs call nodes)
            result: FileAnalysis to populate
        """
        for call in result.calls:
            if call.kind != CallKind.IMPORT_QUALIFIED or not call.target_symbol:
                continue
            library = self.library_for(call.target_module)
            if library is None:
                continue
            node = context.call_nodes.get(id(call))
            if node is None:
                continue
            client_call = self._client_call(call, library, node)
            if client_call is not None:
                result.client_calls.append(client_call)

    def library_for(self, module: Optional[str]) -> Optional[str]:
        """Configured client library that ``module`` belongs to."""
        if not module:
            return None
        for library in self.config.http_client_libraries:
            if module == library or module.startswith(library + "."):
                return library
        return None

    def _client_call(self, call: CallSite, library: str, node: TreeSitterNode) -> Optional[ClientCall]:
        # Only direct attributes: aiohttp.web.get(...) registers a route
        method_name = call.target_symbol
        positional, keywords = call_arguments(node)

        if method_name in self.config.http_client_methods:
            http_method = method_name.upper()
            url_node = positional[0] if positional else keywords.get("url")
        elif method_name == "request":
            # requests.request("GET", url) / client.request(method="GET", url=...)
            method_node = positional[0] if positional else keywords.get("method")
            method_text, _ = string_literal(method_node)
            if not method_text or method_text.lower() not in self.config.http_client_methods:
                return None
            http_method = method_text.upper()
            url_node = positional[1] if len(positional) > 1 else keywords.get("url")
        else:
            return None

        path, path_kind = path_expression(url_node)
        if path is None:
            logger.debug(f"Unresolved URL in {call.callee} at line {call.line}")
        return ClientCall(
            http_method=http_method,
            path=path,
            path_kind=path_kind,
            is_async=call.is_awaited,
            library=library,
            caller=call.caller,
            line=call.line,
            column=call.column,
            expression=node_text(url_node) if url_node is not None else None,
        )
