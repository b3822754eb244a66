"""
Normalization applied before any diff algorithm runs.

Provides:
- String rules (whitespace collapsing, case folding)
- JSON value canonicalization (key sorting, array multiset ordering)
- Key reordering so two JSON documents line up for display
- Pretty-printed JSON lines built without recursion
- XML pretty printing and attribute sorting for line diffs

Nothing here mutates its input; every transformation returns a copy.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from diffchecker.core.models import ComparisonOptions


_WHITESPACE_RE = re.compile(r"\s+")
_TAG_BOUNDARY_RE = re.compile(r">\s*<")


# =============================================================================
# String Rules
# =============================================================================

def collapse_whitespace(value: str) -> str:
    """Collapse every whitespace run to a single space and trim both ends."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def normalize_string(value: str, options: ComparisonOptions) -> str:
    """Apply the whitespace and case rules to a leaf string."""
    result = value
    if options.ignore_whitespace:
        result = collapse_whitespace(result)
    if not options.case_sensitive:
        result = result.lower()
    return result


def normalize_text(text: str, options: ComparisonOptions) -> str:
    """Normalize a whole text block (used for whole-document equality checks)."""
    return normalize_string(text, options)


# =============================================================================
# JSON Values
# =============================================================================

def stable_stringify(value: Any) -> str:
    """
    Serialize a JSON value deterministically.

    Key order is taken from the value itself, so callers that want
    order-insensitive keys must sort them first (``normalize_json_value``).
    """
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=True)


def normalize_json_value(value: Any, options: ComparisonOptions) -> Any:
    """
    Return a canonical copy of a parsed JSON value.

    - String leaves follow the string rules.
    - Object keys are lowercased when case-insensitive, sorted when
      ``ignore_key_order`` is set.
    - Arrays are sorted by their stable serialization when
      ``ignore_array_order`` is set.
    """
    if isinstance(value, str):
        return normalize_string(value, options)

    if isinstance(value, dict):
        keys = list(value.keys())
        if options.ignore_key_order:
            keys.sort()
        normalized: dict[str, Any] = {}
        for key in keys:
            normalized_key = key if options.case_sensitive else key.lower()
            normalized[normalized_key] = normalize_json_value(value[key], options)
        if options.ignore_key_order and not options.case_sensitive:
            # Lowercasing can change the sorted order
            normalized = {key: normalized[key] for key in sorted(normalized)}
        return normalized

    if isinstance(value, list):
        items = [normalize_json_value(item, options) for item in value]
        if options.ignore_array_order:
            items.sort(key=stable_stringify)
        return items

    # 1 and 1.0 are the same JSON number
    if isinstance(value, float) and value.is_integer():
        return int(value)

    return value


def _fold(key: str, case_sensitive: bool) -> str:
    return key if case_sensitive else key.lower()


def sort_object_keys(value: Any, case_sensitive: bool = True) -> Any:
    """
    Recursively sort object keys, leaving array order untouched.

    When ``case_sensitive`` is False keys are ordered by their
    lowercased form; the keys themselves keep their original case.
    """
    if isinstance(value, dict):
        order = sorted(value, key=lambda key: _fold(key, case_sensitive))
        return {key: sort_object_keys(value[key], case_sensitive) for key in order}
    if isinstance(value, list):
        return [sort_object_keys(item, case_sensitive) for item in value]
    return value


def reorder_object_keys(target: Any, reference: Any, case_sensitive: bool = True) -> Any:
    """
    Reorder ``target``'s keys to follow ``reference``'s key order.

    Keys missing from the reference keep their relative order and
    are appended after the shared ones. Nested objects (including
    objects inside arrays at matching indices) are reordered too.
    Keys are matched on their lowercased form when ``case_sensitive``
    is False.
    """
    if not isinstance(target, dict) or not isinstance(reference, dict):
        return target

    target_keys = {_fold(key, case_sensitive): key for key in target}
    reordered: dict[str, Any] = {}
    for key in reference:
        original = target_keys.get(_fold(key, case_sensitive))
        if original is not None and original not in reordered:
            reordered[original] = _reorder_child(target[original], reference[key], case_sensitive)
    for key in target:
        if key not in reordered:
            reordered[key] = target[key]
    return reordered


def _reorder_child(value: Any, reference: Any, case_sensitive: bool) -> Any:
    if isinstance(value, dict):
        return reorder_object_keys(value, reference, case_sensitive)
    if isinstance(value, list) and isinstance(reference, list):
        return [
            reorder_object_keys(item, reference[index], case_sensitive) if index < len(reference) else item
            for index, item in enumerate(value)
        ]
    return value


def json_to_pretty_lines(value: Any, indent: int = 2) -> list[str]:
    """
    Pretty-print a JSON value as a list of lines.

    Walks the value with an explicit stack of frames instead of
    recursion, so deeply nested documents cannot exhaust the call
    stack. The output matches ``json.dumps(value, indent=indent,
    ensure_ascii=False).split("\\n")``.
    """
    lines: list[str] = []
    # Frame: (kind, payload, prefix, depth, suffix)
    #   kind "value": payload is a JSON value to emit
    #   kind "close": payload is the closing bracket
    stack: list[tuple[str, Any, str, int, str]] = [("value", value, "", 0, "")]

    while stack:
        kind, payload, prefix, depth, suffix = stack.pop()
        pad = " " * (depth * indent)

        if kind == "close":
            lines.append(f"{pad}{payload}{suffix}")
            continue

        if isinstance(payload, dict) and payload:
            lines.append(f"{pad}{prefix}{{")
            stack.append(("close", "}", "", depth, suffix))
            items = list(payload.items())
            last = len(items) - 1
            for index in range(last, -1, -1):
                key, child = items[index]
                child_prefix = json.dumps(key, ensure_ascii=False) + ": "
                stack.append(("value", child, child_prefix, depth + 1, "" if index == last else ","))
            continue

        if isinstance(payload, list) and payload:
            lines.append(f"{pad}{prefix}[")
            stack.append(("close", "]", "", depth, suffix))
            last = len(payload) - 1
            for index in range(last, -1, -1):
                stack.append(("value", payload[index], "", depth + 1, "" if index == last else ","))
            continue

        lines.append(f"{pad}{prefix}{json.dumps(payload, ensure_ascii=False)}{suffix}")

    return lines


def _canonical_display(value: Any, options: ComparisonOptions) -> Any:
    """
    Sort arrays by their normalized form (when ``ignore_array_order``)
    and write integral floats as ints, keeping original strings and keys.
    """
    if isinstance(value, dict):
        return {key: _canonical_display(item, options) for key, item in value.items()}
    if isinstance(value, list):
        items = [_canonical_display(item, options) for item in value]
        if options.ignore_array_order:
            items.sort(key=lambda item: stable_stringify(normalize_json_value(item, options)))
        return items
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def prepare_json_for_line_diff(
    left: Any,
    right: Any,
    options: ComparisonOptions,
) -> tuple[str, str]:
    """
    Re-serialize two parsed JSON values so a line diff honors the options.

    With ``ignore_key_order`` both sides get sorted keys; otherwise the
    right side is reordered to the left's key order so shared keys line
    up. Arrays are put in canonical order when ``ignore_array_order``
    is set. Ordering follows the case rule, but the displayed keys and
    strings are the originals; case and whitespace are left to the line
    comparison.
    """
    if options.ignore_key_order:
        left = sort_object_keys(left, options.case_sensitive)
        right = sort_object_keys(right, options.case_sensitive)
    else:
        right = reorder_object_keys(right, left, options.case_sensitive)

    left = _canonical_display(left, options)
    right = _canonical_display(right, options)

    return "\n".join(json_to_pretty_lines(left)), "\n".join(json_to_pretty_lines(right))


# =============================================================================
# XML Display
# =============================================================================

def _indent_tag_lines(serialized: str) -> str:
    """Put each tag on its own line, indented two spaces per nesting level."""
    pieces = _TAG_BOUNDARY_RE.split(serialized.strip())
    last = len(pieces) - 1
    depth = 0
    out: list[str] = []

    for index, piece in enumerate(pieces):
        line = piece.strip()
        if index > 0:
            line = "<" + line
        if index < last:
            line = line + ">"

        is_closing = line.startswith("</")
        is_self_closing = line.endswith("/>")
        is_special = line.startswith("<?") or line.startswith("<!")
        # "<a>text</a>" opens and closes on the same line
        is_inline = not is_closing and "</" in line

        if is_closing:
            depth = max(0, depth - 1)
        out.append("  " * depth + line)
        if line.startswith("<") and not (is_closing or is_self_closing or is_special or is_inline):
            depth += 1

    return "\n".join(out)


def _sort_element_attributes(element: minidom.Element) -> None:
    attributes = sorted(element.attributes.items())
    for name, _ in attributes:
        element.removeAttribute(name)
    for name, value in attributes:
        element.setAttribute(name, value)
    for child in element.childNodes:
        if child.nodeType == child.ELEMENT_NODE:
            _sort_element_attributes(child)


def _serialize_root(xml_text: str, sort_attributes: bool) -> Optional[str]:
    try:
        document = minidom.parseString(xml_text)
    except (ExpatError, ValueError) as e:
        logging.debug(f"normalize - XML display normalization skipped: {e}")
        return None

    root = document.documentElement
    if sort_attributes:
        _sort_element_attributes(root)
    serialized = root.toxml()
    document.unlink()
    return serialized


def prettify_xml(xml_text: str) -> str:
    """
    Pretty-print XML for line diffs, keeping attribute order.

    Returns the input unchanged when it does not parse.
    """
    serialized = _serialize_root(xml_text, sort_attributes=False)
    if serialized is None:
        return xml_text
    return _indent_tag_lines(serialized)


def normalize_xml_attributes(xml_text: str) -> str:
    """
    Pretty-print XML for line diffs with attributes sorted by name.

    Returns the input unchanged when it does not parse.
    """
    serialized = _serialize_root(xml_text, sort_attributes=True)
    if serialized is None:
        return xml_text
    return _indent_tag_lines(serialized)
