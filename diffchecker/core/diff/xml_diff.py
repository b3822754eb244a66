"""
Structural diff engine for XML documents.

Documents are parsed with ElementTree into a plain tree where each
element becomes either:
- ``None`` for an empty element with no attributes
- a string for a text-only element with no attributes
- a dict holding ``@_name`` attribute entries, ``#text`` and child
  elements keyed by tag (repeated tags collapse into a list)

Attributes are compared before text and child elements at every node.
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional, Union

from diffchecker.core.exceptions import ComparisonParseError
from diffchecker.core.models import (
    MISSING,
    ComparisonOptions,
    ComparisonResult,
    DiffType,
    XmlDiffItem,
)
from diffchecker.core.normalize import normalize_string


ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"
ATTRIBUTE_ORDER = "_attrOrder"

XmlNode = Union[None, str, dict, list]


# =============================================================================
# Parsing
# =============================================================================

def _element_text(element: ET.Element) -> Optional[str]:
    """Collect an element's own text, including text between its children."""
    pieces = [element.text] + [child.tail for child in element]
    stripped = [piece.strip() for piece in pieces if piece and piece.strip()]
    return " ".join(stripped) if stripped else None


def _element_to_node(element: ET.Element) -> XmlNode:
    text = _element_text(element)
    if not element.attrib and len(element) == 0:
        return text

    node: dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[ATTRIBUTE_PREFIX + name] = value
    if text is not None:
        node[TEXT_KEY] = text

    for child in element:
        value = _element_to_node(child)
        if child.tag not in node:
            node[child.tag] = value
        elif isinstance(node[child.tag], list):
            node[child.tag].append(value)
        else:
            node[child.tag] = [node[child.tag], value]
    return node


def parse_xml_tree(text: str, side: str = "input") -> dict[str, XmlNode]:
    """
    Parse XML text into ``{root_tag: node}``.

    Raises:
        ComparisonParseError: If the text is not well-formed XML
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ComparisonParseError("XML", side, str(e)) from e
    return {root.tag: _element_to_node(root)}


def _serialize(value: XmlNode) -> Any:
    if value is None:
        return MISSING
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


# =============================================================================
# Diff Engine
# =============================================================================

class XmlDiffEngine:
    """
    Engine for comparing parsed XML trees.

    Tag and attribute names are matched case-insensitively when
    ``case_sensitive`` is off; reported entries keep the original names.
    """

    def __init__(self, options: Optional[ComparisonOptions] = None):
        self.options = options or ComparisonOptions()

    def diff(self, left: dict[str, XmlNode], right: dict[str, XmlNode]) -> list[XmlDiffItem]:
        """Return every difference between two parsed trees."""
        differences: list[XmlDiffItem] = []
        self._compare_children(left, right, "", differences)
        return differences

    def _fold(self, name: str) -> str:
        return name if self.options.case_sensitive else name.lower()

    def _name_map(self, node: dict[str, Any], attributes: bool) -> dict[str, list[str]]:
        """
        Map folded name -> original keys for attribute or child keys.

        A folded name holds more than one key only when case is ignored
        and the names differ in case alone (``<A>`` next to ``<a>``).
        """
        mapping: dict[str, list[str]] = {}
        for key in node:
            is_attribute = key.startswith(ATTRIBUTE_PREFIX)
            if key == TEXT_KEY or is_attribute != attributes:
                continue
            name = key[len(ATTRIBUTE_PREFIX):] if attributes else key
            mapping.setdefault(self._fold(name), []).append(key)
        return mapping

    @staticmethod
    def _merged_children(node: dict[str, Any], keys: list[str]) -> XmlNode:
        """Child elements stored under several same-named keys, as one repeated tag."""
        if len(keys) == 1:
            return node[keys[0]]
        merged: list = []
        for key in keys:
            value = node[key]
            merged.extend(value if isinstance(value, list) else [value])
        return merged

    def _texts_equal(self, left: str, right: str) -> bool:
        return normalize_string(left, self.options) == normalize_string(right, self.options)

    # -------------------------------------------------------------------------
    # Node comparison
    # -------------------------------------------------------------------------

    def _compare_nodes(
        self,
        left: XmlNode,
        right: XmlNode,
        path: str,
        element: str,
        out: list[XmlDiffItem],
    ) -> None:
        if left is None or right is None:
            if left is None and right is not None:
                out.append(XmlDiffItem(DiffType.ADDED, path, new_value=_serialize(right), element=element))
            elif right is None and left is not None:
                out.append(XmlDiffItem(DiffType.REMOVED, path, old_value=_serialize(left), element=element))
            return

        if isinstance(left, list) or isinstance(right, list):
            left_items = left if isinstance(left, list) else [left]
            right_items = right if isinstance(right, list) else [right]
            self._compare_lists(left_items, right_items, path, element, out)
            return

        if isinstance(left, str) and isinstance(right, str):
            if not self._texts_equal(left, right):
                out.append(XmlDiffItem(DiffType.MODIFIED, path, left, right, element=element))
            return

        # Text-only vs attributed/nested element: compare as element nodes
        left_node = left if isinstance(left, dict) else {TEXT_KEY: left}
        right_node = right if isinstance(right, dict) else {TEXT_KEY: right}
        self._compare_elements(left_node, right_node, path, element, out)

    def _compare_lists(
        self,
        left: list,
        right: list,
        path: str,
        element: str,
        out: list[XmlDiffItem],
    ) -> None:
        for index in range(max(len(left), len(right))):
            item_path = f"{path}[{index}]"
            if index >= len(left):
                out.append(XmlDiffItem(
                    DiffType.ADDED, item_path, new_value=_serialize(right[index]), element=element
                ))
            elif index >= len(right):
                out.append(XmlDiffItem(
                    DiffType.REMOVED, item_path, old_value=_serialize(left[index]), element=element
                ))
            else:
                self._compare_nodes(left[index], right[index], item_path, element, out)

    def _compare_elements(
        self,
        left: dict[str, Any],
        right: dict[str, Any],
        path: str,
        element: str,
        out: list[XmlDiffItem],
    ) -> None:
        self._compare_attributes(left, right, path, element, out)

        left_text = left.get(TEXT_KEY)
        right_text = right.get(TEXT_KEY)
        if left_text is None and right_text is not None:
            out.append(XmlDiffItem(DiffType.ADDED, path, new_value=right_text, element=element))
        elif right_text is None and left_text is not None:
            out.append(XmlDiffItem(DiffType.REMOVED, path, old_value=left_text, element=element))
        elif left_text is not None and not self._texts_equal(left_text, right_text):
            out.append(XmlDiffItem(DiffType.MODIFIED, path, left_text, right_text, element=element))

        self._compare_children(left, right, path, out)

    def _compare_attributes(
        self,
        left: dict[str, Any],
        right: dict[str, Any],
        path: str,
        element: str,
        out: list[XmlDiffItem],
    ) -> None:
        left_attrs = self._name_map(left, attributes=True)
        right_attrs = self._name_map(right, attributes=True)

        if not self.options.ignore_attribute_order:
            left_common = [name for name in left_attrs if name in right_attrs]
            right_common = [name for name in right_attrs if name in left_attrs]
            if left_common != right_common:
                out.append(XmlDiffItem(
                    DiffType.MODIFIED,
                    _join(path, ATTRIBUTE_ORDER),
                    [key[len(ATTRIBUTE_PREFIX):] for keys in left_attrs.values() for key in keys],
                    [key[len(ATTRIBUTE_PREFIX):] for keys in right_attrs.values() for key in keys],
                    element=element,
                ))

        # Attributes sharing a folded name are paired in document order
        for name, left_keys in left_attrs.items():
            right_keys = right_attrs.get(name, [])
            for index, left_key in enumerate(left_keys):
                attribute = left_key[len(ATTRIBUTE_PREFIX):]
                if index >= len(right_keys):
                    out.append(XmlDiffItem(
                        DiffType.REMOVED,
                        _join(path, left_key),
                        old_value=str(left[left_key]),
                        element=element,
                        attribute=attribute,
                    ))
                    continue
                right_key = right_keys[index]
                if not self._texts_equal(str(left[left_key]), str(right[right_key])):
                    out.append(XmlDiffItem(
                        DiffType.MODIFIED,
                        _join(path, left_key),
                        str(left[left_key]),
                        str(right[right_key]),
                        element=element,
                        attribute=attribute,
                    ))

        for name, right_keys in right_attrs.items():
            for right_key in right_keys[len(left_attrs.get(name, [])):]:
                out.append(XmlDiffItem(
                    DiffType.ADDED,
                    _join(path, right_key),
                    new_value=str(right[right_key]),
                    element=element,
                    attribute=right_key[len(ATTRIBUTE_PREFIX):],
                ))

    def _compare_children(
        self,
        left: dict[str, Any],
        right: dict[str, Any],
        path: str,
        out: list[XmlDiffItem],
    ) -> None:
        left_children = self._name_map(left, attributes=False)
        right_children = self._name_map(right, attributes=False)
        names = list(left_children) + [name for name in right_children if name not in left_children]

        for name in names:
            left_tags = left_children.get(name)
            right_tags = right_children.get(name)
            tag = (left_tags or right_tags)[0]
            child_path = _join(path, tag)

            if left_tags is None:
                out.append(XmlDiffItem(
                    DiffType.ADDED,
                    child_path,
                    new_value=_serialize(self._merged_children(right, right_tags)),
                    element=tag,
                ))
            elif right_tags is None:
                out.append(XmlDiffItem(
                    DiffType.REMOVED,
                    child_path,
                    old_value=_serialize(self._merged_children(left, left_tags)),
                    element=tag,
                ))
            else:
                self._compare_nodes(
                    self._merged_children(left, left_tags),
                    self._merged_children(right, right_tags),
                    child_path,
                    tag,
                    out,
                )


# =============================================================================
# Public API
# =============================================================================

def diff_xml(
    left: dict[str, XmlNode],
    right: dict[str, XmlNode],
    options: Optional[ComparisonOptions] = None,
) -> list[XmlDiffItem]:
    """Diff two trees produced by ``parse_xml_tree``."""
    return XmlDiffEngine(options).diff(left, right)


def compare_xml(
    left_text: str,
    right_text: str,
    options: Optional[ComparisonOptions] = None,
) -> ComparisonResult:
    """
    Parse and structurally compare two XML documents.

    Raises:
        ComparisonParseError: If either side is not well-formed XML
    """
    left = parse_xml_tree(left_text, "left")
    right = parse_xml_tree(right_text, "right")
    differences = diff_xml(left, right, options)
    logging.debug(f"XmlDiffEngine - {len(differences)} differences found")
    return ComparisonResult.from_differences(differences)
