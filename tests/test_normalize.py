import json

import pytest

from diffchecker.core.models import ComparisonOptions
from diffchecker.core.normalize import (
    collapse_whitespace,
    json_to_pretty_lines,
    normalize_json_value,
    normalize_string,
    normalize_xml_attributes,
    prepare_json_for_line_diff,
    prettify_xml,
    reorder_object_keys,
    sort_object_keys,
    stable_stringify,
)


class TestStringRules:

    def test_collapse_whitespace(self):
        assert collapse_whitespace("  a \t b\n\nc  ") == "a b c"

    def test_default_options_leave_strings_alone(self):
        assert normalize_string("  Hello  World ", ComparisonOptions()) == "  Hello  World "

    def test_whitespace_and_case(self):
        options = ComparisonOptions(ignore_whitespace=True, case_sensitive=False)
        assert normalize_string("  Hello \n World ", options) == "hello world"


class TestNormalizeJsonValue:

    def test_does_not_mutate_input(self):
        value = {"b": [3, 1], "a": "X"}
        options = ComparisonOptions(ignore_key_order=True, ignore_array_order=True, case_sensitive=False)
        normalize_json_value(value, options)
        assert value == {"b": [3, 1], "a": "X"}
        assert list(value) == ["b", "a"]

    def test_sorts_keys_when_ignoring_key_order(self):
        normalized = normalize_json_value({"b": 1, "a": {"d": 1, "c": 2}}, ComparisonOptions(ignore_key_order=True))
        assert list(normalized) == ["a", "b"]
        assert list(normalized["a"]) == ["c", "d"]

    def test_keeps_key_order_by_default(self):
        normalized = normalize_json_value({"b": 1, "a": 2}, ComparisonOptions())
        assert list(normalized) == ["b", "a"]

    def test_case_insensitive_lowercases_keys_and_strings(self):
        options = ComparisonOptions(case_sensitive=False)
        assert normalize_json_value({"Name": "ASHA"}, options) == {"name": "asha"}

    def test_sorts_arrays_as_multisets(self):
        options = ComparisonOptions(ignore_array_order=True)
        left = normalize_json_value([3, {"a": 1}, 1, 3], options)
        right = normalize_json_value([1, 3, {"a": 1}, 3], options)
        assert left == right

    def test_integral_floats_become_ints(self):
        assert stable_stringify(normalize_json_value([1.0, 2.5], ComparisonOptions())) == "[1,2.5]"


class TestStableStringify:

    def test_compact_and_unicode(self):
        assert stable_stringify({"k": ["ü", 1]}) == '{"k":["ü",1]}'


class TestKeyOrdering:

    def test_sort_object_keys_keeps_array_order(self):
        value = sort_object_keys({"b": [{"y": 1, "x": 2}, 1], "a": 0})
        assert list(value) == ["a", "b"]
        assert list(value["b"][0]) == ["x", "y"]
        assert value["b"][1] == 1

    def test_reorder_follows_reference(self):
        target = {"c": 3, "a": 1, "b": 2}
        reference = {"a": 0, "b": 0}
        assert list(reorder_object_keys(target, reference)) == ["a", "b", "c"]

    def test_reorder_nested_objects_and_arrays(self):
        target = {"items": [{"y": 1, "x": 2}], "meta": {"q": 1, "p": 2}}
        reference = {"meta": {"p": 0, "q": 0}, "items": [{"x": 0, "y": 0}]}
        reordered = reorder_object_keys(target, reference)
        assert list(reordered) == ["meta", "items"]
        assert list(reordered["meta"]) == ["p", "q"]
        assert list(reordered["items"][0]) == ["x", "y"]

    def test_reorder_non_objects_returned_unchanged(self):
        assert reorder_object_keys([1, 2], {"a": 1}) == [1, 2]

    def test_sort_ignoring_case_keeps_original_keys(self):
        value = sort_object_keys({"B": 1, "a": {"D": 0, "c": 0}}, case_sensitive=False)
        assert list(value) == ["a", "B"]
        assert list(value["a"]) == ["c", "D"]

    def test_reorder_matches_keys_ignoring_case(self):
        reordered = reorder_object_keys({"A": 1, "b": {"y": 1, "X": 2}}, {"B": {"x": 0, "Y": 0}, "a": 0},
                                        case_sensitive=False)
        assert list(reordered) == ["b", "A"]
        assert list(reordered["b"]) == ["X", "y"]


class TestJsonToPrettyLines:

    @pytest.mark.parametrize("value", [
        {"user": {"id": 1, "tags": ["a", "b"], "empty": {}, "none": None}},
        [1, [2, [3, []]], {"k": "ü"}],
        {},
        [],
        "scalar",
        42,
    ])
    def test_matches_json_dumps(self, value):
        expected = json.dumps(value, indent=2, ensure_ascii=False).split("\n")
        assert json_to_pretty_lines(value) == expected

    def test_deep_nesting_does_not_recurse(self):
        value = []
        for _ in range(1500):
            value = [value]
        lines = json_to_pretty_lines(value)
        assert lines[0] == "["
        assert lines[-1] == "]"
        assert len(lines) == 1500 * 2 + 1


class TestPrepareJsonForLineDiff:

    def test_right_follows_left_key_order(self):
        left_text, right_text = prepare_json_for_line_diff(
            {"a": 1, "b": 2}, {"b": 2, "a": 1}, ComparisonOptions()
        )
        assert left_text == right_text

    def test_sorted_when_ignoring_key_order(self):
        left_text, _ = prepare_json_for_line_diff(
            {"b": 1, "a": 2}, {"a": 2, "b": 1}, ComparisonOptions(ignore_key_order=True)
        )
        assert left_text.splitlines()[1].strip().startswith('"a"')

    def test_array_order(self):
        left_text, right_text = prepare_json_for_line_diff(
            [3, 1, 2], [1, 2, 3], ComparisonOptions(ignore_array_order=True)
        )
        assert left_text == right_text

    def test_sorted_keys_follow_case_rule(self):
        options = ComparisonOptions(ignore_key_order=True, case_sensitive=False)
        left_text, right_text = prepare_json_for_line_diff({"B": 1, "a": 2}, {"b": 1, "A": 2}, options)
        assert left_text.splitlines() == ["{", '  "a": 2,', '  "B": 1', "}"]
        assert left_text.lower() == right_text.lower()

    def test_array_order_follows_case_rule(self):
        options = ComparisonOptions(ignore_array_order=True, case_sensitive=False)
        left_text, right_text = prepare_json_for_line_diff(["b", "A"], ["a", "B"], options)
        assert left_text.splitlines() == ["[", '  "A",', '  "b"', "]"]
        assert left_text.lower() == right_text.lower()

    def test_integral_floats_are_written_as_ints(self):
        left_text, right_text = prepare_json_for_line_diff({"a": 1.0}, {"a": 1}, ComparisonOptions())
        assert left_text == right_text


class TestXmlDisplay:

    def test_prettify_puts_tags_on_lines(self):
        pretty = prettify_xml("<root><a>1</a><b><c/></b></root>")
        assert pretty.splitlines() == [
            "<root>",
            "  <a>1</a>",
            "  <b>",
            "    <c/>",
            "  </b>",
            "</root>",
        ]

    def test_prettify_keeps_attribute_order(self):
        assert prettify_xml('<a z="1" b="2"/>') == '<a z="1" b="2"/>'

    def test_normalize_sorts_attributes(self):
        left = normalize_xml_attributes('<a z="1" b="2"><c y="1" x="2"/></a>')
        right = normalize_xml_attributes('<a b="2" z="1"><c x="2" y="1"/></a>')
        assert left == right
        assert left.splitlines()[0] == '<a b="2" z="1">'

    def test_unparseable_input_returned_unchanged(self):
        assert prettify_xml("<a><b></a>") == "<a><b></a>"
        assert normalize_xml_attributes("not xml") == "not xml"
