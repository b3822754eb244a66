"""
Structural diff engine for JSON documents.

Walks two parsed JSON value trees and emits path-addressed
added/removed/modified entries. Paths use dotted keys and bracketed
indices (``a.b[2]``); order-insensitive array differences are
reported at ``a.b[]`` since positions carry no meaning there.

Key order is significant unless ``ignore_key_order`` is set; a change
in the relative order of shared keys is reported once per object as a
``modified`` entry on a synthetic ``_keyOrder`` path.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Optional

from diffchecker.core.exceptions import ComparisonParseError
from diffchecker.core.models import (
    ComparisonOptions,
    ComparisonResult,
    ComparisonSummary,
    DiffType,
    JsonDiffItem,
)
from diffchecker.core.normalize import (
    normalize_json_value,
    normalize_string,
    stable_stringify,
)
from diffchecker.core.validators import load_json


ROOT_PATH = "$"
KEY_ORDER = "_keyOrder"
DEFAULT_MAX_DIFFS = 2000


def _join_key(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _display_path(path: str) -> str:
    return path or ROOT_PATH


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "primitive"


def _values_equal(left: Any, right: Any, options: ComparisonOptions) -> bool:
    """Compare two JSON primitives after applying the string rules."""
    # bool is an int subclass; true must not equal 1
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, str) and isinstance(right, str):
        return normalize_string(left, options) == normalize_string(right, options)
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


class JsonDiffEngine:
    """
    Engine for comparing parsed JSON values.

    Inputs are never mutated; normalization happens on the fly as the
    walk reaches each node, and reported values are the originals.
    """

    def __init__(self, options: Optional[ComparisonOptions] = None):
        self.options = options or ComparisonOptions()

    def diff(self, left: Any, right: Any) -> list[JsonDiffItem]:
        """Return every difference between two parsed JSON values."""
        differences: list[JsonDiffItem] = []
        self._compare_values(left, right, "", differences)
        return differences

    # -------------------------------------------------------------------------
    # Tree walk
    # -------------------------------------------------------------------------

    def _compare_values(self, left: Any, right: Any, path: str, out: list[JsonDiffItem]) -> None:
        left_kind = _kind(left)
        right_kind = _kind(right)

        if left_kind != right_kind:
            out.append(JsonDiffItem(DiffType.MODIFIED, _display_path(path), left, right))
        elif left_kind == "object":
            self._compare_objects(left, right, path, out)
        elif left_kind == "array":
            self._compare_arrays(left, right, path, out)
        elif not _values_equal(left, right, self.options):
            out.append(JsonDiffItem(DiffType.MODIFIED, _display_path(path), left, right))

    def _key_map(self, obj: dict[str, Any]) -> dict[str, str]:
        """Map comparison key -> original key, in the object's order."""
        if self.options.case_sensitive:
            return {key: key for key in obj}
        mapping: dict[str, str] = {}
        for key in obj:
            # Later duplicates win, as they would after lowercasing
            mapping.pop(key.lower(), None)
            mapping[key.lower()] = key
        return mapping

    def _compare_objects(
        self,
        left: dict[str, Any],
        right: dict[str, Any],
        path: str,
        out: list[JsonDiffItem],
    ) -> None:
        left_keys = self._key_map(left)
        right_keys = self._key_map(right)

        if not self.options.ignore_key_order:
            left_common = [key for key in left_keys if key in right_keys]
            right_common = [key for key in right_keys if key in left_keys]
            if left_common != right_common:
                out.append(JsonDiffItem(
                    DiffType.MODIFIED,
                    _join_key(path, KEY_ORDER),
                    list(left.keys()),
                    list(right.keys()),
                ))

        if self.options.ignore_key_order:
            traversal = sorted(set(left_keys) | set(right_keys))
        else:
            traversal = list(left_keys) + [key for key in right_keys if key not in left_keys]

        for key in traversal:
            left_original = left_keys.get(key)
            right_original = right_keys.get(key)
            child_path = _join_key(path, left_original if left_original is not None else right_original)

            if left_original is None:
                out.append(JsonDiffItem(DiffType.ADDED, child_path, new_value=right[right_original]))
            elif right_original is None:
                out.append(JsonDiffItem(DiffType.REMOVED, child_path, old_value=left[left_original]))
            else:
                self._compare_values(left[left_original], right[right_original], child_path, out)

    def _compare_arrays(self, left: list, right: list, path: str, out: list[JsonDiffItem]) -> None:
        if self.options.ignore_array_order:
            self._compare_multisets(left, right, path, out)
            return

        for index in range(max(len(left), len(right))):
            child_path = f"{path}[{index}]"
            if index >= len(left):
                out.append(JsonDiffItem(DiffType.ADDED, child_path, new_value=right[index]))
            elif index >= len(right):
                out.append(JsonDiffItem(DiffType.REMOVED, child_path, old_value=left[index]))
            else:
                self._compare_values(left[index], right[index], child_path, out)

    def _compare_multisets(self, left: list, right: list, path: str, out: list[JsonDiffItem]) -> None:
        left_keys = [stable_stringify(normalize_json_value(item, self.options)) for item in left]
        right_keys = [stable_stringify(normalize_json_value(item, self.options)) for item in right]

        if sorted(left_keys) == sorted(right_keys):
            return

        unordered_path = f"{path}[]"

        remaining = Counter(right_keys)
        for item, key in zip(left, left_keys):
            if remaining[key] > 0:
                remaining[key] -= 1
            else:
                out.append(JsonDiffItem(DiffType.REMOVED, unordered_path, old_value=item))

        remaining = Counter(left_keys)
        for item, key in zip(right, right_keys):
            if remaining[key] > 0:
                remaining[key] -= 1
            else:
                out.append(JsonDiffItem(DiffType.ADDED, unordered_path, new_value=item))


# =============================================================================
# Compact diff for large documents
# =============================================================================

def diff_json_compact(
    left: Any,
    right: Any,
    options: Optional[ComparisonOptions] = None,
    max_diffs: int = DEFAULT_MAX_DIFFS,
) -> ComparisonResult:
    """
    Path-only structural diff for large documents.

    Both values are normalized up front, then walked with an explicit
    stack and no per-entry values are kept. At most ``max_diffs``
    entries are listed; the summary counts all of them.
    """
    options = options or ComparisonOptions()
    counts = {diff_type: 0 for diff_type in DiffType}
    differences: list[JsonDiffItem] = []

    def record(diff_type: DiffType, path: str) -> None:
        counts[diff_type] += 1
        if len(differences) < max_diffs:
            differences.append(JsonDiffItem(diff_type, _display_path(path)))

    stack: list[tuple[Any, Any, str]] = [(
        normalize_json_value(left, options),
        normalize_json_value(right, options),
        "",
    )]

    while stack:
        left_value, right_value, path = stack.pop()
        left_kind = _kind(left_value)

        if left_kind != _kind(right_value):
            record(DiffType.MODIFIED, path)
            continue

        if left_kind == "object":
            if not options.ignore_key_order:
                left_common = [key for key in left_value if key in right_value]
                right_common = [key for key in right_value if key in left_value]
                if left_common != right_common:
                    record(DiffType.MODIFIED, _join_key(path, KEY_ORDER))
            keys = list(left_value) + [key for key in right_value if key not in left_value]
            children = []
            for key in keys:
                child_path = _join_key(path, key)
                if key not in left_value:
                    record(DiffType.ADDED, child_path)
                elif key not in right_value:
                    record(DiffType.REMOVED, child_path)
                else:
                    children.append((left_value[key], right_value[key], child_path))
            stack.extend(reversed(children))

        elif left_kind == "array":
            children = []
            for index in range(max(len(left_value), len(right_value))):
                child_path = f"{path}[{index}]"
                if index >= len(left_value):
                    record(DiffType.ADDED, child_path)
                elif index >= len(right_value):
                    record(DiffType.REMOVED, child_path)
                else:
                    children.append((left_value[index], right_value[index], child_path))
            stack.extend(reversed(children))

        elif not _values_equal(left_value, right_value, options):
            record(DiffType.MODIFIED, path)

    summary = ComparisonSummary(
        added=counts[DiffType.ADDED],
        removed=counts[DiffType.REMOVED],
        modified=counts[DiffType.MODIFIED],
    )
    if summary.total_changes > len(differences):
        logging.info(
            f"JsonDiffEngine - Listing {len(differences)} of {summary.total_changes} differences"
        )
    return ComparisonResult(summary=summary, differences=differences)


# =============================================================================
# Public API
# =============================================================================

def parse_json(text: str, side: str) -> Any:
    """Parse one side of a comparison, raising ``ComparisonParseError`` on failure."""
    try:
        return load_json(text)
    except json.JSONDecodeError as e:
        raise ComparisonParseError("JSON", side, str(e)) from e


def diff_json(left: Any, right: Any, options: Optional[ComparisonOptions] = None) -> list[JsonDiffItem]:
    """Diff two already-parsed JSON values."""
    return JsonDiffEngine(options).diff(left, right)


def compare_json(
    left_text: str,
    right_text: str,
    options: Optional[ComparisonOptions] = None,
) -> ComparisonResult:
    """
    Parse and structurally compare two JSON documents.

    Raises:
        ComparisonParseError: If either side is not valid JSON
    """
    left = parse_json(left_text, "left")
    right = parse_json(right_text, "right")
    differences = diff_json(left, right, options)
    logging.debug(f"JsonDiffEngine - {len(differences)} differences found")
    return ComparisonResult.from_differences(differences)
