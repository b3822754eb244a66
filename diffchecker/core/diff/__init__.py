"""
Diff module for content comparison operations.

Provides engines for comparing:
- JSON documents (structural, path-addressed differences)
- XML documents (structural, with attribute handling)
- Plain text (line-by-line with intraline changes)
- Large inputs of any format (chunked progressive line matching)
"""

from diffchecker.core.diff.json_diff import (
    JsonDiffEngine,
    compare_json,
    diff_json,
    diff_json_compact,
)
from diffchecker.core.diff.xml_diff import (
    XmlDiffEngine,
    compare_xml,
    diff_xml,
    parse_xml_tree,
)
from diffchecker.core.diff.text_diff import (
    TextDiffEngine,
    align_lines,
    compare_text_enhanced,
    compute_line_changes,
    create_line_diff,
    split_lines,
)
from diffchecker.core.diff.progressive import ProgressiveLineMatcher

__all__ = [
    # JSON diff
    'JsonDiffEngine',
    'compare_json',
    'diff_json',
    'diff_json_compact',
    # XML diff
    'XmlDiffEngine',
    'compare_xml',
    'diff_xml',
    'parse_xml_tree',
    # Text diff
    'TextDiffEngine',
    'align_lines',
    'compare_text_enhanced',
    'compute_line_changes',
    'create_line_diff',
    'split_lines',
    # Large inputs
    'ProgressiveLineMatcher',
]
