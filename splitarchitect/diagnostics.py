"""Structured collection of internal-consistency anomalies.

Algorithms that tolerate slightly inconsistent input record what they found
here instead of failing. Every recorded diagnostic is also emitted on the
module logger so that it shows up in ordinary log output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    severity: Severity = Severity.WARNING

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class Diagnostics:
    """Append-only list of diagnostics with simple query helpers."""

    __slots__ = ("_items", "name")

    def __init__(self, name: str = "diagnostics"):
        self._items: List[Diagnostic] = []
        self.name = name

    def warn(self, code: str, message: str) -> Diagnostic:
        diagnostic = Diagnostic(code, message, Severity.WARNING)
        self._items.append(diagnostic)
        logger.warning("%s: %s", code, message)
        return diagnostic

    def info(self, code: str, message: str) -> Diagnostic:
        diagnostic = Diagnostic(code, message, Severity.INFO)
        self._items.append(diagnostic)
        logger.info("%s: %s", code, message)
        return diagnostic

    def extend(self, other: Iterable[Diagnostic]) -> None:
        self._items.extend(other)

    def count(self, code: Optional[str] = None) -> int:
        if code is None:
            return len(self._items)
        return sum(1 for d in self._items if d.code == code)

    def codes(self) -> Set[str]:
        return {d.code for d in self._items}

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self._items if d.severity is Severity.WARNING]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"Diagnostics({self.name!r}, {len(self._items)} entries)"
