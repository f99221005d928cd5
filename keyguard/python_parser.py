"""
Python source loading and parsing using tree-sitter.

Wraps the tree-sitter Python grammar and provides:
  • Guarded file reading (missing, binary, oversized, undecodable files)
  • Parsing with optional rejection of trees that contain syntax errors
  • Node text extraction and cursor-based pre-order traversal helpers
"""

import os
import logging
from typing import Iterator, Optional

import tree_sitter_python as tspython
from tree_sitter import Language, Parser, Node, Tree

from .config import AnalyzerConfig
from .errors import ParseError, SourceReadError

logger = logging.getLogger(__name__)

PY_LANGUAGE = Language(tspython.language())
_parser = Parser(PY_LANGUAGE)

_BINARY_PROBE_BYTES = 8192


# ═══════════════════════════════════════════════════════════════════════
#  Reading
# ═══════════════════════════════════════════════════════════════════════

def read_source(file_path: str, config: Optional[AnalyzerConfig] = None) -> bytes:
    """Read a source file as UTF-8 bytes, raising SourceReadError on any problem."""
    config = config or AnalyzerConfig()

    if not os.path.exists(file_path):
        raise SourceReadError(file_path, "No such file or directory")
    if os.path.isdir(file_path):
        raise SourceReadError(file_path, "Is a directory")

    try:
        size = os.path.getsize(file_path)
        if size > config.max_file_bytes:
            raise SourceReadError(
                file_path, f"File is {size} bytes, limit is {config.max_file_bytes}"
            )
        with open(file_path, "rb") as f:
            source = f.read()
    except OSError as e:
        raise SourceReadError(file_path, e.strerror or str(e)) from e

    if b"\x00" in source[:_BINARY_PROBE_BYTES]:
        raise SourceReadError(file_path, "File appears to be binary")

    try:
        source.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SourceReadError(file_path, f"File is not valid UTF-8: {e.reason}") from e

    return source


# ═══════════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════════

def parse_source(source: bytes, file_path: str = "<source>",
                 strict: bool = False) -> Tree:
    """Parse Python source into a tree-sitter tree.

    tree-sitter recovers from syntax errors by inserting ERROR/MISSING
    nodes.  By default such a tree is still analyzed (a warning is
    logged); with ``strict`` the file is refused with ParseError.
    """
    try:
        tree = _parser.parse(source)
    except Exception as e:
        raise ParseError(file_path, f"Parser failed: {e}") from e
    if tree is None:
        raise ParseError(file_path, "Parser returned no tree")

    root = tree.root_node
    if root.has_error:
        line = first_error_line(root)
        if strict:
            raise ParseError(file_path, f"Syntax error at line {line}", line=line)
        logger.warning(
            "%s: syntax error at line %s, analyzing recovered tree", file_path, line
        )
    return tree


def first_error_line(root: Node) -> Optional[int]:
    """1-indexed line of the first ERROR or MISSING node, if any."""
    for node in walk_all(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
    return None


# ═══════════════════════════════════════════════════════════════════════
#  Node helpers
# ═══════════════════════════════════════════════════════════════════════

def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_line(node: Node) -> int:
    """1-indexed start line of a node."""
    return node.start_point[0] + 1


def walk_all(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all its descendants in pre-order."""
    cursor = node.walk()
    visited = False
    while True:
        if not visited:
            yield cursor.node
        if not visited and cursor.goto_first_child():
            continue
        if cursor.goto_next_sibling():
            visited = False
            continue
        if cursor.goto_parent():
            visited = True
            continue
        break


def walk_type(node: Node, type_name: str) -> Iterator[Node]:
    """Yield all nodes of a given type under ``node`` (inclusive), pre-order."""
    for child in walk_all(node):
        if child.type == type_name:
            yield child
