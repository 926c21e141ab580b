"""
Tree-sitter Parser Module

Turns Python source into tree-sitter syntax trees. Syntax errors do not
raise: tree-sitter recovers and marks the damaged regions with ERROR
nodes, which the analyzer reports as diagnostics. Only I/O, decoding and
grammar loading failures raise ParseError.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Tuple, Union

import tree_sitter_python
from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)

# Type aliases
TreeSitterTree = Any  # tree_sitter.Tree


class ParseError(Exception):
    """Raised when a file cannot be read, decoded or parsed."""

    pass


class ParserInitializationError(ParseError):
    """Raised when Tree-sitter parser initialization fails."""

    pass


@lru_cache(maxsize=1)
def get_python_language() -> Language:
    """Load the tree-sitter-python grammar once per process."""
    try:
        return Language(tree_sitter_python.language())
    except Exception as e:
        logger.error(f"Failed to load tree-sitter-python grammar: {e}")
        raise ParserInitializationError(f"Cannot load Python grammar: {e}") from e


def get_python_parser() -> Parser:
    """
    Initialize and return a Tree-sitter parser for Python.

    Parsers are not shared between threads; each call returns a new one.

    Returns:
        Parser: Configured Tree-sitter parser for Python

    Raises:
        ParserInitializationError: If parser initialization fails
    """
    try:
        parser = Parser()
        parser.language = get_python_language()
        return parser
    except ParserInitializationError:
        raise
    except Exception as e:
        logger.error(f"Failed to initialize Tree-sitter parser: {e}")
        raise ParserInitializationError(f"Cannot initialize parser: {e}") from e


def parse_python_source(
    source: Union[str, bytes],
    filename: str = "<string>",
) -> TreeSitterTree:
    """
    Parse Python source code using Tree-sitter.

    Args:
        source: Python source code as text or UTF-8 bytes
        filename: Filename for error reporting

    Returns:
        Tree-sitter tree

    Raises:
        ParseError: If the parser itself fails
    """
    source_bytes = source.encode("utf-8") if isinstance(source, str) else source
    try:
        tree = get_python_parser().parse(source_bytes)
    except ParserInitializationError:
        raise
    except Exception as e:
        raise ParseError(f"Failed to parse {filename}: {e}") from e

    if tree.root_node.has_error:
        logger.debug(f"{filename} contains syntax errors, keeping recovered tree")
    return tree


def parse_python_file(file_path: Union[str, Path]) -> Tuple[TreeSitterTree, bytes]:
    """
    Read and parse a Python file.

    Args:
        file_path: Path to the Python file

    Returns:
        Tuple of (tree, source bytes)

    Raises:
        ParseError: If the file cannot be read or is not valid UTF-8
    """
    file_path = Path(file_path)

    try:
        source_bytes = file_path.read_bytes()
        source_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Encoding error reading {file_path}: {e}") from e
    except OSError as e:
        raise ParseError(f"Error reading {file_path}: {e}") from e

    return parse_python_source(source_bytes, filename=str(file_path)), source_bytes
