# graphslick/errors.py
"""
GraphSlick Error Types
======================

Exception hierarchy shared by the group model, the sanitizer, the graph
synthesizer and the combiner.

Hierarchy:
──────────
┌─────────────────────────────────────────────────────────────────────┐
│  GraphSlickError (base)                                             │
│  ├── ParseError                  - malformed .bbgroup definition    │
│  ├── EmptyCfgError               - function has no basic blocks     │
│  ├── PreconditionError           - internal sequencing violation    │
│  ├── InsufficientSelectionError  - combine with < 2 groups          │
│  └── NotFoundError               - unknown id / address / function  │
└─────────────────────────────────────────────────────────────────────┘

Error codes follow the pattern ``GS-NNNN``:
  - 1000-1999: definition file errors
  - 2000-2999: CFG errors
  - 3000-3999: user selection / lookup errors
  - 9000-9999: internal contract violations

Stale references found while sanitizing are *not* errors; they are
reported as :class:`graphslick.sanitizer.SanitizeAction` records.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Structured error codes (``GS-NNNN``)."""

    PARSE_SYNTAX = 1000
    PARSE_DUPLICATE_ID = 1001
    PARSE_EMPTY_ID = 1002
    PARSE_BAD_RANGE = 1003
    EMPTY_CFG = 2000
    INSUFFICIENT_SELECTION = 3000
    NOT_FOUND = 3001
    PRECONDITION = 9000

    @property
    def code(self) -> str:
        return f"GS-{self.value:04d}"

    @property
    def recoverable(self) -> bool:
        """User-facing errors leave the model unchanged and can be retried."""
        return self.value < 9000

    def __str__(self) -> str:
        return self.code


class GraphSlickError(Exception):
    """
    Base exception for all GraphSlick errors.

    Carries an :class:`ErrorCode` and an optional hint the presentation
    layer may show next to the message.
    """

    default_code: ErrorCode = ErrorCode.PRECONDITION

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.hint:
            text += f" ({self.hint})"
        return text


class ParseError(GraphSlickError):
    """Malformed group definition; no partial manager is retained."""

    default_code = ErrorCode.PARSE_SYNTAX

    def __init__(
        self,
        message: str,
        line: int = 0,
        column: int = 0,
        source_name: str = "",
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message, code=code, hint=hint)
        self.line = line
        self.column = column
        self.source_name = source_name

    def __str__(self) -> str:
        loc = self.source_name or "<definition>"
        if self.line:
            loc += f":{self.line}"
            if self.column:
                loc += f":{self.column}"
        return f"{loc}: {super().__str__()}"


class EmptyCfgError(GraphSlickError):
    """The function's flowchart has no basic blocks."""

    default_code = ErrorCode.EMPTY_CFG


class PreconditionError(GraphSlickError):
    """An operation was called out of sequence (programming error)."""

    default_code = ErrorCode.PRECONDITION


class InsufficientSelectionError(GraphSlickError):
    """Combining needs at least two distinct node groups."""

    default_code = ErrorCode.INSUFFICIENT_SELECTION


class NotFoundError(GraphSlickError, LookupError):
    """A node id, group, SuperGroup or function could not be resolved."""

    default_code = ErrorCode.NOT_FOUND


__all__ = [
    "ErrorCode",
    "GraphSlickError",
    "ParseError",
    "EmptyCfgError",
    "PreconditionError",
    "InsufficientSelectionError",
    "NotFoundError",
]
