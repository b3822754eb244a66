"""
Text diff engine.

Provides line-by-line comparison with support for:
- Whitespace and case handling options
- Greedy nearest-match line alignment
- Pairing of changed lines into modified lines
- Intraline (word/character) sub-diffs on modified lines

Alignment is a greedy approximation rather than a minimal edit
script: at a mismatch the side whose current line reappears sooner
on the other side is treated as unchanged, and the other side's line
is reported as added or removed. Ties favor removing the left line.
"""

from __future__ import annotations

import difflib
import logging
import re
from bisect import bisect_left
from typing import Iterator, Optional, Sequence

from diffchecker.core.models import (
    ChangeType,
    ComparisonOptions,
    ComparisonResult,
    ComparisonSummary,
    DiffChange,
    DiffLine,
    DiffLineType,
    LineDiffResult,
)
from diffchecker.core.normalize import normalize_string, normalize_text


_TOKEN_RE = re.compile(r'(\s+|\S+)')

# Alignment operations yielded by align_lines
EQUAL = 'equal'
DELETE = 'delete'
INSERT = 'insert'
REPLACE = 'replace'

LineOp = tuple[str, Optional[int], Optional[int]]


def split_lines(text: str) -> list[str]:
    """
    Split text into lines.

    A trailing ``\\r`` is dropped from each line, a single trailing
    newline does not create an extra empty line, and empty text has
    no lines at all.
    """
    if not text:
        return []
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def line_keys(lines: Sequence[str], options: ComparisonOptions) -> list[str]:
    """Build the comparison key of every line."""
    return [normalize_string(line, options) for line in lines]


# =============================================================================
# Line Alignment
# =============================================================================

def _positions(keys: Sequence[str]) -> dict[str, list[int]]:
    index: dict[str, list[int]] = {}
    for position, key in enumerate(keys):
        index.setdefault(key, []).append(position)
    return index


def _next_match(index: dict[str, list[int]], key: str, start: int) -> Optional[int]:
    """Distance from ``start`` to the next occurrence of ``key``, if any."""
    positions = index.get(key)
    if not positions:
        return None
    found = bisect_left(positions, start)
    if found == len(positions):
        return None
    return positions[found] - start


def align_lines(left_keys: Sequence[str], right_keys: Sequence[str]) -> Iterator[LineOp]:
    """
    Walk two key lists with a cursor each and yield alignment operations.

    Yields ``(op, left_index, right_index)`` tuples where ``op`` is one of
    ``equal``, ``delete`` (left only), ``insert`` (right only) or
    ``replace`` (paired change). Indices not used by an op are ``None``.
    """
    left_index = _positions(left_keys)
    right_index = _positions(right_keys)
    li = ri = 0
    left_count = len(left_keys)
    right_count = len(right_keys)

    while li < left_count and ri < right_count:
        if left_keys[li] == right_keys[ri]:
            yield EQUAL, li, ri
            li += 1
            ri += 1
            continue

        # How far ahead does each cursor's line reappear on the other side
        right_distance = _next_match(right_index, left_keys[li], ri)
        left_distance = _next_match(left_index, right_keys[ri], li)

        if right_distance is None and left_distance is None:
            yield REPLACE, li, ri
            li += 1
            ri += 1
        elif left_distance is None or (right_distance is not None and right_distance < left_distance):
            yield INSERT, None, ri
            ri += 1
        else:
            yield DELETE, li, None
            li += 1

    while li < left_count:
        yield DELETE, li, None
        li += 1
    while ri < right_count:
        yield INSERT, None, ri
        ri += 1


# =============================================================================
# Intraline Changes
# =============================================================================

def _tokenize(text: str) -> list[str]:
    """Tokenize text into words and whitespace."""
    return _TOKEN_RE.findall(text)


def _token_key(token: str, options: ComparisonOptions) -> str:
    if options.ignore_whitespace and token.isspace():
        return ' '
    return token if options.case_sensitive else token.lower()


def _coalesce(changes: list[DiffChange]) -> list[DiffChange]:
    merged: list[DiffChange] = []
    for change in changes:
        if not change.value:
            continue
        if merged and merged[-1].type == change.type:
            merged[-1] = DiffChange(change.type, merged[-1].value + change.value)
        else:
            merged.append(change)
    return merged


def compute_line_changes(
    left_line: str,
    right_line: str,
    options: Optional[ComparisonOptions] = None,
) -> tuple[list[DiffChange], list[DiffChange]]:
    """
    Compute the sub-diff of a modified line pair.

    Word-level when either line holds more than one word, character-level
    when both are a single word. Returns ``(left_changes, right_changes)``;
    the values of each list concatenate back to the original line.
    """
    options = options or ComparisonOptions()
    left_tokens = _tokenize(left_line)
    right_tokens = _tokenize(right_line)

    if len(left_tokens) <= 1 and len(right_tokens) <= 1:
        left_tokens = list(left_line)
        right_tokens = list(right_line)

    matcher = difflib.SequenceMatcher(
        None,
        [_token_key(token, options) for token in left_tokens],
        [_token_key(token, options) for token in right_tokens],
        autojunk=False,
    )

    def span(tokens: list[str], start: int, end: int, change_type: ChangeType) -> DiffChange:
        value = ''.join(tokens[start:end])
        if options.ignore_whitespace and value.isspace():
            change_type = ChangeType.UNCHANGED
        return DiffChange(change_type, value)

    left_changes: list[DiffChange] = []
    right_changes: list[DiffChange] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            left_changes.append(span(left_tokens, i1, i2, ChangeType.UNCHANGED))
            right_changes.append(span(right_tokens, j1, j2, ChangeType.UNCHANGED))
        else:
            left_changes.append(span(left_tokens, i1, i2, ChangeType.REMOVED))
            right_changes.append(span(right_tokens, j1, j2, ChangeType.ADDED))

    return _coalesce(left_changes), _coalesce(right_changes)


# =============================================================================
# Diff Line Building
# =============================================================================

class LineDiffBuilder:
    """
    Accumulates aligned diff lines one alignment operation at a time.

    Used by both the one-shot engine and the chunked progressive matcher.
    """

    def __init__(
        self,
        left_lines: Sequence[str],
        right_lines: Sequence[str],
        options: Optional[ComparisonOptions] = None,
        compute_changes: bool = True,
    ):
        self.left_lines = left_lines
        self.right_lines = right_lines
        self.options = options or ComparisonOptions()
        self.compute_changes = compute_changes
        self.left_out: list[DiffLine] = []
        self.right_out: list[DiffLine] = []

    @property
    def processed(self) -> int:
        """Number of input lines (both sides) consumed so far."""
        return len(self.left_out) + len(self.right_out)

    def apply(self, op: str, li: Optional[int], ri: Optional[int]) -> None:
        if op == EQUAL:
            self._left(DiffLineType.UNCHANGED, li)
            self._right(DiffLineType.UNCHANGED, ri)
        elif op == DELETE:
            self._left(DiffLineType.REMOVED, li)
        elif op == INSERT:
            self._right(DiffLineType.ADDED, ri)
        else:
            left_changes = right_changes = None
            if self.compute_changes:
                left_changes, right_changes = compute_line_changes(
                    self.left_lines[li], self.right_lines[ri], self.options
                )
            self._left(DiffLineType.MODIFIED, li, left_changes)
            self._right(DiffLineType.MODIFIED, ri, right_changes)

    def _left(self, line_type: DiffLineType, index: int, changes: Optional[list[DiffChange]] = None) -> None:
        self.left_out.append(DiffLine(len(self.left_out) + 1, line_type, self.left_lines[index], changes))

    def _right(self, line_type: DiffLineType, index: int, changes: Optional[list[DiffChange]] = None) -> None:
        self.right_out.append(DiffLine(len(self.right_out) + 1, line_type, self.right_lines[index], changes))

    def result(self) -> LineDiffResult:
        return LineDiffResult(left_lines=self.left_out, right_lines=self.right_out)


def unchanged_lines(lines: Sequence[str]) -> list[DiffLine]:
    return [DiffLine(number, DiffLineType.UNCHANGED, line) for number, line in enumerate(lines, start=1)]


# =============================================================================
# Engine
# =============================================================================

class TextDiffEngine:
    """
    Engine for comparing text line by line.

    Honors ``ignore_whitespace`` and ``case_sensitive``; the structural
    options have no meaning for plain text and are ignored.
    """

    def __init__(self, options: Optional[ComparisonOptions] = None):
        self.options = options or ComparisonOptions()

    def line_diff(self, left_text: str, right_text: str, compute_changes: bool = True) -> LineDiffResult:
        """Align two texts into side-by-side diff lines."""
        left_lines = split_lines(left_text)
        right_lines = split_lines(right_text)

        if self.options.ignore_whitespace and \
                normalize_text(left_text, self.options) == normalize_text(right_text, self.options):
            # Whitespace-only re-wrapping is not a content change
            return LineDiffResult(unchanged_lines(left_lines), unchanged_lines(right_lines))

        builder = LineDiffBuilder(left_lines, right_lines, self.options, compute_changes)
        ops = align_lines(line_keys(left_lines, self.options), line_keys(right_lines, self.options))
        for op, li, ri in ops:
            builder.apply(op, li, ri)
        return builder.result()

    def compare(self, left_text: str, right_text: str) -> ComparisonResult:
        """Compare two texts, including intraline changes on modified lines."""
        line_diff = self.line_diff(left_text, right_text)
        summary = ComparisonSummary.from_lines(line_diff.left_lines, line_diff.right_lines)
        logging.debug(f"TextDiffEngine - Compared texts: {summary}")
        return ComparisonResult(
            summary=summary,
            left_lines=line_diff.left_lines,
            right_lines=line_diff.right_lines,
        )


def create_line_diff(
    left_text: str,
    right_text: str,
    options: Optional[ComparisonOptions] = None,
) -> LineDiffResult:
    """Line alignment only; modified lines carry no intraline changes."""
    return TextDiffEngine(options).line_diff(left_text, right_text, compute_changes=False)


def compare_text_enhanced(
    left_text: str,
    right_text: str,
    options: Optional[ComparisonOptions] = None,
) -> ComparisonResult:
    """Full text comparison. Never raises on content."""
    return TextDiffEngine(options).compare(left_text, right_text)
