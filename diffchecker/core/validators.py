"""
Well-formedness checks for JSON and XML input.

Validation failures are returned as ``ValidationResult`` data and are
never raised. Locations are reported as a 0-based character offset
plus 1-based line and column where the parser makes them derivable.
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Optional
from xml.parsers.expat import errors as expat_errors

from diffchecker.core.models import FormatType, ValidationResult


EMPTY_INPUT_MESSAGE = "Empty input"
TOP_LEVEL_MESSAGE = "Top-level JSON must be an object or array"
TRAILING_COMMA_MESSAGE = "Trailing comma in JSON (remove the extra comma)"
EMPTY_XML_MESSAGE = "Empty XML document"
CONTROL_CHAR_MESSAGE = "Invalid character in XML"
CONSTANT_MESSAGE = "Invalid JSON constant"

_POSITION_RE = re.compile(r"(?:position|char)\s+(\d+)", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",(\s*)[}\]]")

# A JSON string, or one of the non-standard constants Python accepts
_JSON_CONSTANT_RE = re.compile(r'"(?:\\.|[^"\\])*"|(-?Infinity|NaN)')

# C0 controls except tab, LF and CR
_XML_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

# Start of an element tag (not a declaration, comment or processing instruction)
_XML_START_TAG_RE = re.compile(r"<[A-Za-z_:]")

# Expat numeric error code -> symbolic name (XML_ERROR_SYNTAX, ...)
_EXPAT_CODE_NAMES = {
    expat_errors.codes[getattr(expat_errors, name)]: name
    for name in dir(expat_errors)
    if name.startswith("XML_ERROR_") and getattr(expat_errors, name) in expat_errors.codes
}


# =============================================================================
# Location Helpers
# =============================================================================

def offset_to_line_column(text: str, position: int) -> tuple[int, int]:
    """Convert a 0-based character offset to a 1-based (line, column)."""
    prefix = text[:position]
    line = prefix.count("\n") + 1
    column = position - (prefix.rfind("\n") + 1) + 1
    return line, column


def line_column_to_offset(text: str, line: int, column: int) -> Optional[int]:
    """Convert a 1-based (line, column) to a 0-based offset, if it lies inside ``text``."""
    if line < 1 or column < 1:
        return None
    offset = 0
    for _ in range(line - 1):
        newline = text.find("\n", offset)
        if newline == -1:
            return None
        offset = newline + 1
    offset += column - 1
    return offset if offset <= len(text) else None


def _position_from_message(message: str, text: str) -> Optional[int]:
    match = _POSITION_RE.search(message)
    if not match:
        return None
    position = int(match.group(1))
    return position if position <= len(text) else None


# =============================================================================
# Strict JSON Loading
# =============================================================================

class _NonStandardConstant(ValueError):
    pass


def _reject_constant(name: str) -> None:
    raise _NonStandardConstant(name)


def load_json(text: str) -> Any:
    """
    ``json.loads`` without the NaN / Infinity / -Infinity extension.

    Those constants are not JSON, and NaN would never compare equal to
    itself. They are reported as a ``json.JSONDecodeError`` pointing at
    the offending token, like any other syntax error.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except _NonStandardConstant as e:
        name = str(e)
        position = 0
        for match in _JSON_CONSTANT_RE.finditer(text):
            if match.group(1) == name:
                position = match.start(1)
                break
        raise json.JSONDecodeError(f"{CONSTANT_MESSAGE} {name}", text, position) from None


# =============================================================================
# Validators
# =============================================================================

def validate_json(text: str) -> ValidationResult:
    """
    Check that ``text`` is a JSON object or array.

    Bare primitives (``123``, ``"x"``, ``null``) are rejected since
    there is nothing structural to compare.
    """
    if not text or not text.strip():
        return ValidationResult.failure(EMPTY_INPUT_MESSAGE)

    try:
        parsed = load_json(text)
    except json.JSONDecodeError as e:
        position: Optional[int] = e.pos
        if position is None:
            position = _position_from_message(str(e), text)

        message = e.msg or "Invalid JSON syntax"
        if _TRAILING_COMMA_RE.search(text):
            message = TRAILING_COMMA_MESSAGE

        if position is None:
            return ValidationResult.failure(message)
        line, column = offset_to_line_column(text, position)
        return ValidationResult.failure(message, line=line, column=column, position=position)

    if not isinstance(parsed, (dict, list)):
        return ValidationResult.failure(TOP_LEVEL_MESSAGE)

    return ValidationResult.ok()


def validate_xml(text: str) -> ValidationResult:
    """
    Check that ``text`` is a well-formed XML document.

    Control characters are rejected before parsing. Parser errors carry
    the expat error name (``XML_ERROR_TAG_MISMATCH``, ...) as ``code``.
    """
    if not text or not text.strip():
        return ValidationResult.failure(EMPTY_INPUT_MESSAGE)

    bad_char = _XML_CONTROL_RE.search(text)
    if bad_char:
        position = bad_char.start()
        line, column = offset_to_line_column(text, position)
        return ValidationResult.failure(
            f"{CONTROL_CHAR_MESSAGE}: U+{ord(bad_char.group()):04X}",
            line=line,
            column=column,
            position=position,
        )

    try:
        ET.fromstring(text)
    except ET.ParseError as e:
        code_name = _EXPAT_CODE_NAMES.get(e.code)
        if code_name == "XML_ERROR_NO_ELEMENTS" and not _XML_START_TAG_RE.search(text):
            return ValidationResult.failure(EMPTY_XML_MESSAGE, code=code_name)

        message = expat_errors.messages.get(e.code) or str(e) or "Invalid XML syntax"
        line: Optional[int] = None
        column: Optional[int] = None
        position: Optional[int] = None

        if e.position:
            line = e.position[0]
            column = e.position[1] + 1  # expat columns are 0-based
            position = line_column_to_offset(text, line, column)
        else:
            position = _position_from_message(str(e), text)
            if position is not None:
                line, column = offset_to_line_column(text, position)

        return ValidationResult.failure(
            message,
            line=line,
            column=column,
            position=position,
            code=code_name,
        )

    return ValidationResult.ok()


def validate(text: str, format_type: FormatType | str) -> ValidationResult:
    """Validate ``text`` for a structural format. Plain text is always valid."""
    format_type = FormatType.from_string(format_type)
    if format_type == FormatType.JSON:
        return validate_json(text)
    if format_type == FormatType.XML:
        return validate_xml(text)
    logging.debug("validators - text input needs no validation")
    return ValidationResult.ok()
