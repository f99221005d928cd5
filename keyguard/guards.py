"""
Guard checker — would an enclosing ``try`` catch a failure at this node?

The check is lexical: every ``try_statement`` on the ancestor chain is
considered, regardless of whether the node sits in the try body, a handler,
``else`` or ``finally``.  Handler types are compared textually against the
accepted names for the failure kind; there is no hierarchy resolution.
"""

import logging
from typing import Dict, Optional, Tuple

from tree_sitter import Node

from .config import AnalyzerConfig, KEY_ERROR
from .python_parser import node_text

logger = logging.getLogger(__name__)

_HANDLER_CLAUSES = ("except_clause", "except_group_clause")


def handler_type(clause: Node) -> Optional[Node]:
    """Return the declared exception type of a handler clause, or None for ``except:``."""
    declared = clause.child_by_field_name("value")
    if declared is None:
        # Older grammars carry no field names on except clauses
        for child in clause.named_children:
            if child.type not in ("block", "comment"):
                declared = child
                break
    if declared is not None and declared.type == "as_pattern" and declared.named_children:
        # except KeyError as e:
        declared = declared.named_children[0]
    return declared


class GuardChecker:
    """Answers ``is_guarded(node, failure_kind)`` for one source buffer.

    Results are memoized per node; they cannot change because the tree is
    immutable for the lifetime of the checker.
    """

    def __init__(self, source: bytes, config: Optional[AnalyzerConfig] = None):
        self.source = source
        self.config = config or AnalyzerConfig()
        self._cache: Dict[Tuple[int, str], bool] = {}

    def is_guarded(self, node: Node, failure_kind: str = KEY_ERROR) -> bool:
        key = (node.id, failure_kind)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = False
        accepted = self.config.accepted_handlers(failure_kind)
        current = node
        while current is not None:
            if current.type == "try_statement" and self._catches(current, accepted):
                result = True
                break
            current = current.parent

        self._cache[key] = result
        return result

    def _catches(self, try_node: Node, accepted) -> bool:
        """True if one of the try's own handler clauses matches."""
        for clause in try_node.children:
            if clause.type not in _HANDLER_CLAUSES:
                continue
            declared = handler_type(clause)
            if declared is None:
                return True  # bare except
            if node_text(declared, self.source) in accepted:
                return True
        return False
