import copy

import pytest

from diffchecker.core.diff.json_diff import (
    KEY_ORDER,
    JsonDiffEngine,
    compare_json,
    diff_json,
    diff_json_compact,
)
from diffchecker.core.exceptions import ComparisonParseError
from diffchecker.core.models import ComparisonOptions, DiffType, JsonDiffItem


def paths(differences):
    return [(item.type, item.path) for item in differences]


class TestReflexivity:

    @pytest.mark.parametrize("value", [
        {},
        [],
        {"user": {"id": 1, "tags": ["a", "b"], "active": True, "note": None}},
        [{"a": [1, 2, {"b": "c"}]}, 1.5, "x"],
    ])
    @pytest.mark.parametrize("options", [
        ComparisonOptions(),
        ComparisonOptions(ignore_key_order=True, ignore_array_order=True),
        ComparisonOptions(case_sensitive=False, ignore_whitespace=True),
    ])
    def test_value_equals_itself(self, value, options):
        assert diff_json(value, copy.deepcopy(value), options) == []


class TestObjects:

    def test_modified_leaf(self):
        differences = diff_json(
            {"user": {"id": 1, "name": "Asha"}},
            {"user": {"id": 2, "name": "Asha"}},
        )
        assert differences == [JsonDiffItem(DiffType.MODIFIED, "user.id", 1, 2)]

    def test_added_and_removed_keys(self):
        differences = diff_json({"a": 1, "b": 2}, {"a": 1, "c": 3})
        assert differences == [
            JsonDiffItem(DiffType.REMOVED, "b", old_value=2),
            JsonDiffItem(DiffType.ADDED, "c", new_value=3),
        ]

    def test_added_value_keeps_nested_structure(self):
        differences = diff_json({}, {"x": {"y": [1]}})
        assert differences == [JsonDiffItem(DiffType.ADDED, "x", new_value={"y": [1]})]
        assert not differences[0].has_old_value

    def test_key_order_is_significant_by_default(self):
        differences = diff_json({"a": 1, "b": 2}, {"b": 2, "a": 1})
        assert differences == [
            JsonDiffItem(DiffType.MODIFIED, KEY_ORDER, ["a", "b"], ["b", "a"]),
        ]

    def test_nested_key_order_path(self):
        differences = diff_json({"o": {"a": 1, "b": 2}}, {"o": {"b": 2, "a": 1}})
        assert paths(differences) == [(DiffType.MODIFIED, "o._keyOrder")]

    def test_ignore_key_order(self):
        options = ComparisonOptions(ignore_key_order=True)
        assert diff_json({"a": 1, "b": 2}, {"b": 2, "a": 1}, options) == []

    def test_added_key_alone_does_not_change_order(self):
        differences = diff_json({"a": 1, "b": 2}, {"a": 1, "x": 0, "b": 2})
        assert paths(differences) == [(DiffType.ADDED, "x")]


class TestArrays:

    def test_index_paths(self):
        differences = diff_json({"items": [1, 2, 3]}, {"items": [1, 5]})
        assert differences == [
            JsonDiffItem(DiffType.MODIFIED, "items[1]", 2, 5),
            JsonDiffItem(DiffType.REMOVED, "items[2]", old_value=3),
        ]

    def test_root_array_paths(self):
        assert paths(diff_json([1], [1, 2])) == [(DiffType.ADDED, "[1]")]

    def test_array_order_is_significant_by_default(self):
        differences = diff_json({"t": [1, 2]}, {"t": [2, 1]})
        assert paths(differences) == [(DiffType.MODIFIED, "t[0]"), (DiffType.MODIFIED, "t[1]")]

    def test_ignore_array_order(self):
        options = ComparisonOptions(ignore_array_order=True)
        left = {"t": [1, {"a": 1, "b": 2}, "x"]}
        right = {"t": ["x", 1, {"a": 1, "b": 2}]}
        assert diff_json(left, right, options) == []

    def test_multiset_counts_duplicates(self):
        options = ComparisonOptions(ignore_array_order=True)
        differences = diff_json({"t": [1, 2, 2]}, {"t": [2, 1, 3]}, options)
        assert differences == [
            JsonDiffItem(DiffType.REMOVED, "t[]", old_value=2),
            JsonDiffItem(DiffType.ADDED, "t[]", new_value=3),
        ]

    def test_nested_arrays_in_multiset(self):
        options = ComparisonOptions(ignore_array_order=True)
        assert diff_json([[1, 2], [3]], [[3], [2, 1]], options) == []


class TestPrimitives:

    def test_type_change(self):
        differences = diff_json({"a": 1}, {"a": [1]})
        assert differences == [JsonDiffItem(DiffType.MODIFIED, "a", 1, [1])]

    def test_root_type_change(self):
        assert paths(diff_json({}, [])) == [(DiffType.MODIFIED, "$")]

    def test_root_primitive_change(self):
        assert paths(diff_json(1, 2)) == [(DiffType.MODIFIED, "$")]

    def test_int_and_float_are_equal(self):
        assert diff_json({"n": 1}, {"n": 1.0}) == []

    def test_bool_is_not_a_number(self):
        assert paths(diff_json({"n": True}, {"n": 1})) == [(DiffType.MODIFIED, "n")]

    def test_null_differs_from_zero(self):
        assert diff_json({"n": None}, {"n": 0}) == [JsonDiffItem(DiffType.MODIFIED, "n", None, 0)]


class TestStringOptions:

    def test_case_sensitive_by_default(self):
        assert paths(diff_json({"n": "Asha"}, {"n": "ASHA"})) == [(DiffType.MODIFIED, "n")]

    def test_case_insensitive_values_and_keys(self):
        options = ComparisonOptions(case_sensitive=False)
        assert diff_json({"Name": "Asha"}, {"name": "ASHA"}, options) == []

    def test_case_insensitive_paths_keep_original_key(self):
        options = ComparisonOptions(case_sensitive=False)
        differences = diff_json({"Name": "Asha"}, {"name": "Ravi"}, options)
        assert differences == [JsonDiffItem(DiffType.MODIFIED, "Name", "Asha", "Ravi")]

    def test_case_sensitive_keys_are_distinct(self):
        differences = diff_json({"Name": 1}, {"name": 1})
        assert paths(differences) == [(DiffType.REMOVED, "Name"), (DiffType.ADDED, "name")]

    def test_ignore_whitespace(self):
        options = ComparisonOptions(ignore_whitespace=True)
        assert diff_json({"a": " x  y\n"}, {"a": "x y"}, options) == []
        assert diff_json({"a": "xy"}, {"a": "x y"}, options) != []


class TestEngine:

    def test_inputs_are_not_mutated(self):
        left = {"b": [2, 1], "a": "X"}
        right = {"a": "x", "b": [1, 2, 3]}
        left_copy = copy.deepcopy(left)
        right_copy = copy.deepcopy(right)
        options = ComparisonOptions(ignore_key_order=True, ignore_array_order=True, case_sensitive=False)
        JsonDiffEngine(options).diff(left, right)
        assert left == left_copy and list(left) == ["b", "a"]
        assert right == right_copy

    def test_compare_json_builds_summary(self):
        result = compare_json('{"a": 1, "b": 2}', '{"a": 2, "c": 3}')
        assert result.summary.added == 1
        assert result.summary.removed == 1
        assert result.summary.modified == 1
        assert not result.identical

    def test_compare_json_identical(self):
        result = compare_json('{"a": [1, 2]}', '{ "a" : [1,2] }')
        assert result.identical
        assert result.differences == []

    def test_compare_json_parse_error(self):
        with pytest.raises(ComparisonParseError) as exc_info:
            compare_json('{"a": 1}', '{"a": ')
        assert exc_info.value.side == "right"
        assert "JSON" in str(exc_info.value)

    @pytest.mark.parametrize("text", ['{"a": NaN}', '[Infinity]', '{"a": [-Infinity]}'])
    def test_compare_json_rejects_non_standard_constants(self, text):
        with pytest.raises(ComparisonParseError) as exc_info:
            compare_json(text, text)
        assert exc_info.value.side == "left"



class TestCompactDiff:

    def test_paths_and_summary(self):
        result = diff_json_compact(
            {"a": {"b": 1, "c": 2}, "d": [1, 2]},
            {"a": {"b": 2}, "d": [1, 2, 3]},
        )
        assert set(paths(result.differences)) == {
            (DiffType.REMOVED, "a.c"),
            (DiffType.MODIFIED, "a.b"),
            (DiffType.ADDED, "d[2]"),
        }
        assert all(not item.has_old_value and not item.has_new_value for item in result.differences)
        assert (result.summary.added, result.summary.removed, result.summary.modified) == (1, 1, 1)

    def test_listing_is_capped(self):
        left = {f"k{i}": i for i in range(50)}
        right = {f"k{i}": i + 1 for i in range(50)}
        result = diff_json_compact(left, right, max_diffs=10)
        assert len(result.differences) == 10
        assert result.summary.modified == 50

    def test_honors_options(self):
        options = ComparisonOptions(ignore_key_order=True, ignore_array_order=True, case_sensitive=False)
        result = diff_json_compact({"B": [2, 1], "a": "X"}, {"a": "x", "b": [1, 2]}, options)
        assert result.identical

