"""
Tokenizer for Newick and Split-Newick text.

Every token keeps the 0-based offset of its first character so that parse
errors can point at the exact location. Split markers are recognised here:
``<7|`` opens split 7 and ``|7:0.5:90>`` closes it, optionally carrying up to
three numbers (weight, confidence, probability).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from splitarchitect.exceptions import NewickParseError

RESERVED = frozenset("()[]{}:;,'<>|")

NUMBER_PATTERN = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_NUMBER = re.compile(NUMBER_PATTERN + r"\Z")
_OPEN_MARKER = re.compile(r"<(\d+)\|")
_CLOSE_MARKER = re.compile(r"\|(\d+)((?::" + NUMBER_PATTERN + r"){0,3})>")


class TokenType(Enum):
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    COLON = ":"
    SEMICOLON = ";"
    LABEL = "label"
    COMMENT = "comment"
    OPEN_MARKER = "open marker"
    CLOSE_MARKER = "close marker"


@dataclass(frozen=True)
class Token:
    kind: TokenType
    text: str
    position: int
    quoted: bool = False
    marker_id: int = 0
    values: Tuple[float, ...] = field(default=())


def parse_number(text: str, source: str = "", position: Optional[int] = None) -> float:
    """Parse a floating-point literal, raising NewickParseError if malformed."""
    if not _NUMBER.match(text):
        raise NewickParseError(f"Invalid number {text!r}", source or None, position)
    return float(text)


def _read_quoted(text: str, start: int) -> Tuple[str, int]:
    """Read a single-quoted label starting at ``start``; ``''`` is an escaped quote."""
    chars: List[str] = []
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "'":
            if i + 1 < len(text) and text[i + 1] == "'":
                chars.append("'")
                i += 2
                continue
            return "".join(chars), i + 1
        chars.append(char)
        i += 1
    raise NewickParseError("Unterminated quoted label", text, start)


def tokenize(text: str) -> Iterator[Token]:
    """Yield the tokens of ``text``; whitespace between tokens is skipped."""
    i = 0
    n = len(text)
    while i < n:
        char = text[i]
        if char.isspace():
            i += 1
        elif char in "(),:;":
            yield Token(TokenType(char), char, i)
            i += 1
        elif char == "'":
            label, end = _read_quoted(text, i)
            yield Token(TokenType.LABEL, label, i, quoted=True)
            i = end
        elif char == "[":
            end = text.find("]", i + 1)
            if end < 0:
                raise NewickParseError("Unterminated comment", text, i)
            yield Token(TokenType.COMMENT, text[i + 1 : end], i)
            i = end + 1
        elif char == "<":
            match = _OPEN_MARKER.match(text, i)
            if match is None:
                raise NewickParseError("Malformed split marker", text, i)
            yield Token(
                TokenType.OPEN_MARKER,
                match.group(0),
                i,
                marker_id=int(match.group(1)),
            )
            i = match.end()
        elif char == "|":
            match = _CLOSE_MARKER.match(text, i)
            if match is None:
                raise NewickParseError("Malformed split marker", text, i)
            suffix = match.group(2)
            values = tuple(float(v) for v in suffix.split(":")[1:]) if suffix else ()
            yield Token(
                TokenType.CLOSE_MARKER,
                match.group(0),
                i,
                marker_id=int(match.group(1)),
                values=values,
            )
            i = match.end()
        elif char in RESERVED:
            raise NewickParseError(f"Unexpected character {char!r}", text, i)
        else:
            start = i
            while i < n and not text[i].isspace() and text[i] not in RESERVED:
                i += 1
            yield Token(TokenType.LABEL, text[start:i], start)
