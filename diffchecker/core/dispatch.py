"""
Request routing for the comparison engine.

``handle_request`` turns one ``ComparisonRequest`` into its terminal
``ComparisonResponse``, choosing the differ by format and input size:

- JSON / XML are validated first; invalid input yields a result whose
  ``errors`` name the failing side(s)
- Inputs above the large-input threshold go through the progressive
  line matcher (JSON re-serialized, XML optionally attribute-sorted)
- Otherwise the structural or text engine runs to completion

The function holds no state between calls. Progress events are handed
to the optional callback before the terminal response is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from diffchecker.core.exceptions import CancelledException, UnsupportedFormatError
from diffchecker.core.models import (
    ComparisonOptions,
    ComparisonRequest,
    ComparisonResponse,
    ComparisonResult,
    ComparisonSummary,
    DiffType,
    FormatType,
    JsonDiffItem,
    LineDiffResult,
    XmlDiffItem,
)
from diffchecker.core.normalize import (
    normalize_xml_attributes,
    prepare_json_for_line_diff,
    prettify_xml,
)
from diffchecker.core.validators import validate_json, validate_xml
from diffchecker.core.diff.json_diff import ROOT_PATH, compare_json, parse_json
from diffchecker.core.diff.xml_diff import compare_xml
from diffchecker.core.diff.text_diff import compare_text_enhanced, create_line_diff
from diffchecker.core.diff.progressive import DEFAULT_CHUNK_SIZE, ProgressiveLineMatcher


LARGE_INPUT_THRESHOLD = 300_000  # characters

ResponseCallback = Callable[[ComparisonResponse], None]


def is_large_input(left: str, right: str, threshold: int = LARGE_INPUT_THRESHOLD) -> bool:
    return len(left) > threshold or len(right) > threshold


# =============================================================================
# Display text for line diffs
# =============================================================================

def _json_display_texts(left_text: str, right_text: str, options: ComparisonOptions) -> tuple[str, str]:
    return prepare_json_for_line_diff(
        parse_json(left_text, "left"),
        parse_json(right_text, "right"),
        options,
    )


def _xml_display_texts(left_text: str, right_text: str, options: ComparisonOptions) -> tuple[str, str]:
    if options.ignore_attribute_order:
        return normalize_xml_attributes(left_text), normalize_xml_attributes(right_text)
    return prettify_xml(left_text), prettify_xml(right_text)


def _display_texts(
    format_type: FormatType,
    left_text: str,
    right_text: str,
    options: ComparisonOptions,
    large: bool,
) -> tuple[str, str]:
    if format_type == FormatType.JSON:
        return _json_display_texts(left_text, right_text, options)
    if format_type == FormatType.XML:
        if large:
            # Pretty printing a huge document costs more than it helps
            if options.ignore_attribute_order:
                return normalize_xml_attributes(left_text), normalize_xml_attributes(right_text)
            return left_text, right_text
        return _xml_display_texts(left_text, right_text, options)
    return left_text, right_text


# =============================================================================
# Routes
# =============================================================================

def _validate(request: ComparisonRequest) -> Optional[ComparisonResult]:
    """Return an error-carrying result if either structural input is malformed."""
    if request.format_type == FormatType.JSON:
        validator = validate_json
    elif request.format_type == FormatType.XML:
        validator = validate_xml
    else:
        return None

    left = validator(request.left)
    right = validator(request.right)
    if left.valid and right.valid:
        return None
    logging.info(
        f"Dispatch - Request {request.id}: validation failed "
        f"(left valid={left.valid}, right valid={right.valid})"
    )
    return ComparisonResult.from_validation(left, right)


def _structural_result(request: ComparisonRequest) -> ComparisonResult:
    options = request.options

    if request.format_type == FormatType.JSON:
        result = compare_json(request.left, request.right, options)
    elif request.format_type == FormatType.XML:
        result = compare_xml(request.left, request.right, options)
    else:
        raise UnsupportedFormatError(request.format_type.value)

    if options.include_line_diff:
        left_text, right_text = _display_texts(
            request.format_type, request.left, request.right, options, large=False
        )
        result = result.with_lines(create_line_diff(left_text, right_text, options))
    return result


def _progressive_result(
    request: ComparisonRequest,
    report: Callable[[float, str], None],
    chunk_size: int,
) -> ComparisonResult:
    options = request.options
    format_type = request.format_type

    report(0.0, "Preparing large input")
    left_text, right_text = _display_texts(format_type, request.left, request.right, options, large=True)

    matcher = ProgressiveLineMatcher(
        left_text,
        right_text,
        options,
        chunk_size=chunk_size,
        compute_changes=format_type == FormatType.TEXT,
    )
    for fraction in matcher.iter_chunks():
        report(fraction, "Matching lines")

    line_diff: LineDiffResult = matcher.result()
    summary = ComparisonSummary.from_lines(line_diff.left_lines, line_diff.right_lines)

    differences: Optional[list[Any]] = None
    if format_type == FormatType.JSON:
        differences = [] if summary.is_empty else [JsonDiffItem(DiffType.MODIFIED, ROOT_PATH)]
    elif format_type == FormatType.XML:
        differences = [] if summary.is_empty else [XmlDiffItem(DiffType.MODIFIED, ROOT_PATH)]

    return ComparisonResult(
        summary=summary,
        differences=differences,
        left_lines=line_diff.left_lines,
        right_lines=line_diff.right_lines,
    )


# =============================================================================
# Entry point
# =============================================================================

def handle_request(
    request: ComparisonRequest,
    progress_callback: Optional[ResponseCallback] = None,
    large_input_threshold: int = LARGE_INPUT_THRESHOLD,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ComparisonResponse:
    """
    Run one comparison request and return its terminal response.

    Any failure other than cancellation is logged and returned as an
    ``error`` response; ``CancelledException`` raised by the progress
    callback propagates to the caller.
    """
    def report(fraction: float, message: str) -> None:
        if progress_callback:
            progress_callback(ComparisonResponse.progress_event(request.id, fraction, message))

    try:
        invalid = _validate(request)
        if invalid is not None:
            return ComparisonResponse.result_event(request.id, invalid)

        if is_large_input(request.left, request.right, large_input_threshold):
            logging.debug(f"Dispatch - Request {request.id}: progressive route ({request.format_type.value})")
            result = _progressive_result(request, report, chunk_size)
        elif request.format_type == FormatType.TEXT:
            logging.debug(f"Dispatch - Request {request.id}: text route")
            result = compare_text_enhanced(request.left, request.right, request.options)
        else:
            logging.debug(f"Dispatch - Request {request.id}: structural route ({request.format_type.value})")
            result = _structural_result(request)

        return ComparisonResponse.result_event(request.id, result)

    except CancelledException:
        raise
    except Exception as e:
        logging.error(f"Dispatch - Request {request.id} failed: {e}")
        return ComparisonResponse.error_event(request.id, str(e))


def compare(
    left: str,
    right: str,
    format_type: FormatType | str,
    options: Optional[ComparisonOptions] = None,
    request_id: int = 0,
) -> ComparisonResponse:
    """Convenience wrapper building the request envelope for a synchronous call."""
    request = ComparisonRequest(
        id=request_id,
        left=left,
        right=right,
        format_type=FormatType.from_string(format_type),
        options=options or ComparisonOptions(),
    )
    return handle_request(request)
