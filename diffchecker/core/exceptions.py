"""
Exceptions raised by the comparison engine.

Validation problems are never raised; they are returned as
``ValidationResult`` data. The exceptions here cover the paths
where callers skipped validation or a background run was stopped.
"""

from __future__ import annotations

from typing import Optional


class DiffCheckerError(Exception):
    """Base class for all engine errors."""
    pass


class ComparisonParseError(DiffCheckerError):
    """
    Raised by the structural comparators when an input cannot be parsed.

    Callers are expected to validate first, so reaching this is treated
    as an unexpected condition.
    """

    def __init__(self, format_name: str, side: str, detail: str):
        super().__init__(f"Failed to parse {format_name} ({side}): {detail}")
        self.format_name = format_name
        self.side = side
        self.detail = detail


class UnsupportedFormatError(DiffCheckerError):
    """Raised when a request names a format the engine does not handle."""

    def __init__(self, format_name: Optional[str]):
        super().__init__(f"Unsupported format: {format_name!r}")
        self.format_name = format_name


class CancelledException(DiffCheckerError):
    """Raised when a running comparison is cancelled at a chunk boundary."""
    pass
