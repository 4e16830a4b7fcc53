"""
Custom exceptions for split network computations.
"""

from __future__ import annotations

from typing import Optional


class SplitArchitectError(Exception):
    """Base exception for split network errors."""

    pass


class InvalidSplitError(SplitArchitectError, ValueError):
    """Raised when a bipartition violates the split data model."""

    pass


class IncompatibleSplitsError(SplitArchitectError, ValueError):
    """Raised when an operation requires a pairwise compatible split system."""

    pass


class CancelledError(SplitArchitectError):
    """Raised by a progress listener when the running computation was cancelled."""

    pass


class NewickParseError(SplitArchitectError, IOError):
    """Raised when Newick or Split-Newick text is malformed.

    Attributes:
        position: 0-based offset of the offending character, if known
        line: 1-based line number of ``position``
        column: 1-based column of ``position``
    """

    def __init__(
        self, message: str, text: Optional[str] = None, position: Optional[int] = None
    ):
        self.reason = message
        self.position = position
        self.line: Optional[int] = None
        self.column: Optional[int] = None
        if text is not None and position is not None:
            self.line = text.count("\n", 0, position) + 1
            self.column = position - (text.rfind("\n", 0, position) + 1) + 1
            message = f"{message} (line {self.line}, column {self.column})"
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else self.reason
