"""
Chunked line matching for large inputs.

Runs the same greedy alignment as the text engine, but consumes the
alignment a fixed number of operations at a time and reports a
progress fraction between chunks, so a caller can yield, report
progress or stop between them.
"""

from __future__ import annotations

import logging
from itertools import islice
from typing import Callable, Iterator, Optional

from diffchecker.core.models import ComparisonOptions, LineDiffResult
from diffchecker.core.normalize import normalize_text
from diffchecker.core.diff.text_diff import (
    LineDiffBuilder,
    align_lines,
    line_keys,
    split_lines,
    unchanged_lines,
)


DEFAULT_CHUNK_SIZE = 500

ProgressCallback = Callable[[float], None]


class ProgressiveLineMatcher:
    """
    Line matcher that works in chunks of alignment operations.

    Usage::

        matcher = ProgressiveLineMatcher(left, right, options)
        for fraction in matcher.iter_chunks():
            ...  # report progress, check for cancellation
        result = matcher.result()

    or simply ``matcher.run(progress_callback)``.
    """

    def __init__(
        self,
        left_text: str,
        right_text: str,
        options: Optional[ComparisonOptions] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compute_changes: bool = False,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.options = options or ComparisonOptions()
        self.chunk_size = chunk_size
        self.left_text = left_text
        self.right_text = right_text
        self.left_lines = split_lines(left_text)
        self.right_lines = split_lines(right_text)
        self.total_lines = len(self.left_lines) + len(self.right_lines)
        self._builder = LineDiffBuilder(self.left_lines, self.right_lines, self.options, compute_changes)
        self._done = False

    @property
    def progress(self) -> float:
        """Fraction of input lines processed so far (0.0 - 1.0)."""
        if self.total_lines == 0:
            return 1.0 if self._done else 0.0
        return self._builder.processed / self.total_lines

    @property
    def is_done(self) -> bool:
        return self._done

    def iter_chunks(self) -> Iterator[float]:
        """
        Process the alignment chunk by chunk.

        Yields the progress fraction after every chunk; the last value
        yielded is always ``1.0``.
        """
        if self._done:
            return

        if self.options.ignore_whitespace and \
                normalize_text(self.left_text, self.options) == normalize_text(self.right_text, self.options):
            self._builder.left_out = unchanged_lines(self.left_lines)
            self._builder.right_out = unchanged_lines(self.right_lines)
            self._done = True
            yield 1.0
            return

        ops = align_lines(
            line_keys(self.left_lines, self.options),
            line_keys(self.right_lines, self.options),
        )
        chunks = 0
        while True:
            chunk = list(islice(ops, self.chunk_size))
            for op, li, ri in chunk:
                self._builder.apply(op, li, ri)
            if len(chunk) < self.chunk_size:
                break
            chunks += 1
            yield self.progress

        self._done = True
        logging.debug(
            f"ProgressiveLineMatcher - Matched {self.total_lines} lines in {chunks + 1} chunks"
        )
        yield 1.0

    def result(self) -> LineDiffResult:
        """The aligned lines; complete only once ``iter_chunks`` is exhausted."""
        return self._builder.result()

    def run(self, progress_callback: Optional[ProgressCallback] = None) -> LineDiffResult:
        """Process every chunk, calling ``progress_callback`` after each one."""
        for fraction in self.iter_chunks():
            if progress_callback:
                progress_callback(fraction)
        return self.result()
