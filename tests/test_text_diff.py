import pytest

from diffchecker.core.diff.text_diff import (
    DELETE,
    EQUAL,
    INSERT,
    REPLACE,
    TextDiffEngine,
    align_lines,
    compare_text_enhanced,
    compute_line_changes,
    create_line_diff,
    split_lines,
)
from diffchecker.core.models import ChangeType, ComparisonOptions, DiffChange, DiffLineType


def types(lines):
    return [line.type for line in lines]


class TestSplitLines:

    @pytest.mark.parametrize("text, expected", [
        ("", []),
        ("a", ["a"]),
        ("a\n", ["a"]),
        ("a\r\nb\r\n", ["a", "b"]),
        ("a\n\n", ["a", ""]),
        ("\n", [""]),
    ])
    def test_split(self, text, expected):
        assert split_lines(text) == expected


class TestAlignLines:

    def test_equal(self):
        assert list(align_lines(["a", "b"], ["a", "b"])) == [(EQUAL, 0, 0), (EQUAL, 1, 1)]

    def test_insert_when_left_line_reappears(self):
        ops = list(align_lines(["a", "b"], ["a", "x", "b"]))
        assert ops == [(EQUAL, 0, 0), (INSERT, None, 1), (EQUAL, 1, 2)]

    def test_delete_when_right_line_reappears(self):
        ops = list(align_lines(["a", "x", "b"], ["a", "b"]))
        assert ops == [(EQUAL, 0, 0), (DELETE, 1, None), (EQUAL, 2, 1)]

    def test_replace_when_neither_reappears(self):
        assert list(align_lines(["a"], ["b"])) == [(REPLACE, 0, 0)]

    def test_tie_favors_delete(self):
        ops = list(align_lines(["a", "b"], ["b", "a"]))
        assert ops == [(DELETE, 0, None), (EQUAL, 1, 0), (INSERT, None, 1)]

    def test_nearest_match_wins(self):
        # "c" reappears three lines ahead on the right, "x" only one ahead on the left
        ops = list(align_lines(["c", "x", "y"], ["x", "p", "q", "c"]))
        assert ops[0] == (DELETE, 0, None)

    def test_remaining_lines(self):
        assert list(align_lines([], ["a"])) == [(INSERT, None, 0)]
        assert list(align_lines(["a"], [])) == [(DELETE, 0, None)]


class TestComputeLineChanges:

    def test_word_level(self):
        left, right = compute_line_changes("line two", "line too")
        assert left == [DiffChange(ChangeType.UNCHANGED, "line "), DiffChange(ChangeType.REMOVED, "two")]
        assert right == [DiffChange(ChangeType.UNCHANGED, "line "), DiffChange(ChangeType.ADDED, "too")]

    def test_character_level_for_single_words(self):
        left, right = compute_line_changes("abc", "abd")
        assert left == [DiffChange(ChangeType.UNCHANGED, "ab"), DiffChange(ChangeType.REMOVED, "c")]
        assert right == [DiffChange(ChangeType.UNCHANGED, "ab"), DiffChange(ChangeType.ADDED, "d")]

    @pytest.mark.parametrize("left_line, right_line", [
        ("the quick brown fox", "the slow brown dog"),
        ("  indented", "indented"),
        ("", "something new"),
        ("a,b,c", "a;b;c"),
    ])
    def test_changes_reconstruct_lines(self, left_line, right_line):
        left, right = compute_line_changes(left_line, right_line)
        assert "".join(change.value for change in left) == left_line
        assert "".join(change.value for change in right) == right_line
        assert all(change.type != ChangeType.ADDED for change in left)
        assert all(change.type != ChangeType.REMOVED for change in right)

    def test_whitespace_runs_unchanged_when_ignored(self):
        options = ComparisonOptions(ignore_whitespace=True)
        left, right = compute_line_changes("a  b", "a b c", options)
        assert left == [DiffChange(ChangeType.UNCHANGED, "a  b")]
        assert right == [DiffChange(ChangeType.UNCHANGED, "a b"), DiffChange(ChangeType.ADDED, " c")]

    def test_case_insensitive_tokens(self):
        options = ComparisonOptions(case_sensitive=False)
        left, _ = compute_line_changes("Hello world", "hello there", options)
        assert left[0] == DiffChange(ChangeType.UNCHANGED, "Hello ")


class TestTextDiffEngine:

    def test_modified_line_with_intraline_changes(self):
        result = compare_text_enhanced(
            "line one\nline two\nline three",
            "line one\nline too\nline three",
        )
        assert types(result.left_lines) == [DiffLineType.UNCHANGED, DiffLineType.MODIFIED, DiffLineType.UNCHANGED]
        assert types(result.right_lines) == [DiffLineType.UNCHANGED, DiffLineType.MODIFIED, DiffLineType.UNCHANGED]

        left_changes = result.left_lines[1].changes
        right_changes = result.right_lines[1].changes
        assert DiffChange(ChangeType.REMOVED, "two") in left_changes
        assert DiffChange(ChangeType.ADDED, "too") in right_changes
        assert (result.summary.added, result.summary.removed, result.summary.modified) == (0, 0, 1)
        assert result.differences is None

    def test_added_line(self):
        result = compare_text_enhanced("a\nb\nc", "a\nx\nb\nc")
        assert types(result.left_lines) == [DiffLineType.UNCHANGED] * 3
        assert types(result.right_lines) == [
            DiffLineType.UNCHANGED, DiffLineType.ADDED, DiffLineType.UNCHANGED, DiffLineType.UNCHANGED,
        ]
        assert [line.line_number for line in result.right_lines] == [1, 2, 3, 4]
        assert result.summary.added == 1

    def test_removed_line(self):
        result = compare_text_enhanced("a\nx\nb", "a\nb")
        assert types(result.left_lines) == [DiffLineType.UNCHANGED, DiffLineType.REMOVED, DiffLineType.UNCHANGED]
        assert result.summary.removed == 1

    def test_unchanged_lines_carry_no_changes(self):
        result = compare_text_enhanced("a\nb", "a\nc")
        assert result.left_lines[0].changes is None
        assert result.left_lines[1].changes is not None

    def test_identical(self):
        text = "alpha\nbeta\n"
        result = compare_text_enhanced(text, text)
        assert result.identical
        assert [line.content for line in result.left_lines] == ["alpha", "beta"]

    def test_empty_inputs(self):
        result = compare_text_enhanced("", "")
        assert result.identical
        assert result.left_lines == []
        assert result.right_lines == []

    def test_empty_left(self):
        result = compare_text_enhanced("", "a\nb")
        assert result.left_lines == []
        assert types(result.right_lines) == [DiffLineType.ADDED, DiffLineType.ADDED]

    def test_whitespace_is_significant_by_default(self):
        assert not compare_text_enhanced("a  b", "a b").identical

    def test_ignore_whitespace_within_lines(self):
        options = ComparisonOptions(ignore_whitespace=True)
        assert compare_text_enhanced("a  b\n\tc", "a b\nc  ", options).identical

    def test_ignore_whitespace_across_lines(self):
        options = ComparisonOptions(ignore_whitespace=True)
        result = compare_text_enhanced("a b\nc", "a\nb c", options)
        assert result.identical
        assert types(result.left_lines) == [DiffLineType.UNCHANGED, DiffLineType.UNCHANGED]
        assert [line.content for line in result.right_lines] == ["a", "b c"]

    def test_ignore_case(self):
        options = ComparisonOptions(case_sensitive=False)
        assert compare_text_enhanced("Hello\nWORLD", "hello\nworld", options).identical
        assert not compare_text_enhanced("Hello", "hello").identical

    def test_structural_options_do_not_apply(self):
        options = ComparisonOptions(ignore_key_order=True, ignore_array_order=True)
        assert not compare_text_enhanced("a\nb", "b\na", options).identical

    def test_create_line_diff_skips_intraline_changes(self):
        line_diff = create_line_diff("x", "y")
        assert line_diff.left_lines[0].type == DiffLineType.MODIFIED
        assert line_diff.left_lines[0].changes is None

    def test_engine_line_diff(self):
        line_diff = TextDiffEngine().line_diff("a", "a\nb")
        assert line_diff.has_changes
        assert line_diff.right_lines[1].content == "b"
