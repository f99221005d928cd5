"""
Exception taxonomy for per-file analysis failures.

Every error is scoped to one file: batch callers catch ``KeyguardError``,
report it, and move on to the next path.
"""

from typing import Optional


class KeyguardError(Exception):
    """Base class for all analysis failures tied to a single file."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"{file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason


class SourceReadError(KeyguardError):
    """The file could not be read as text (missing, unreadable, binary, too large)."""


class ParseError(KeyguardError):
    """The parser produced no usable tree for the file."""

    def __init__(self, file_path: str, reason: str, line: Optional[int] = None):
        super().__init__(file_path, reason)
        self.line = line  # 1-indexed, first syntax error if known


class MalformedTreeError(KeyguardError):
    """A node lacks structure the analysis relies on (e.g. a nameless function)."""
