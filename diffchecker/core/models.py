"""
Core data models for the comparison engine.

This module defines all data structures used across the engine:
- Comparison options
- Structural diff items (JSON and XML)
- Validation results
- Line diff models
- Comparison results
- Worker request/response envelopes

All models are designed to be:
- UI-agnostic (can be used with any frontend)
- Serializable (``to_dict`` produces the camelCase wire shape)
- Created fresh per comparison and left untouched once returned
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


# =============================================================================
# Sentinels
# =============================================================================

class _Missing:
    """Marker for an absent value (distinct from a JSON ``null``)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


# =============================================================================
# Enumerations
# =============================================================================

class FormatType(Enum):
    """Content format of a comparison request."""
    JSON = "json"
    XML = "xml"
    TEXT = "text"

    @classmethod
    def from_string(cls, value: str | FormatType) -> FormatType:
        """Create from a string value such as ``"json"``."""
        if isinstance(value, FormatType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown format type: {value!r}. Must be one of: json, xml, text"
            ) from None


class DiffType(Enum):
    """Type of a structural difference."""
    ADDED = "added"         # Present only on the right
    REMOVED = "removed"     # Present only on the left
    MODIFIED = "modified"   # Present on both sides with different values


class DiffLineType(Enum):
    """Type of line in a line diff."""
    UNCHANGED = "unchanged"
    ADDED = "added"         # Right-only line
    REMOVED = "removed"     # Left-only line
    MODIFIED = "modified"   # Paired changed line (present on both sides)


class ChangeType(Enum):
    """Type of a span inside a modified line."""
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class ResponseType(Enum):
    """Type of a worker response envelope."""
    PROGRESS = "progress"
    RESULT = "result"
    ERROR = "error"


# =============================================================================
# Options
# =============================================================================

_OPTION_KEYS = {
    'ignoreKeyOrder': 'ignore_key_order',
    'ignoreArrayOrder': 'ignore_array_order',
    'caseSensitive': 'case_sensitive',
    'ignoreWhitespace': 'ignore_whitespace',
    'ignoreAttributeOrder': 'ignore_attribute_order',
    'includeLineDiff': 'include_line_diff',
}


@dataclass(frozen=True)
class ComparisonOptions:
    """
    Equivalence rules applied before any diff algorithm runs.

    All flags are independent. Differs ignore the flags that do not
    apply to their format (text ignores key/array/attribute order).
    """
    ignore_key_order: bool = False
    ignore_array_order: bool = False
    case_sensitive: bool = True
    ignore_whitespace: bool = False
    ignore_attribute_order: bool = False
    include_line_diff: bool = False  # Structural compares also fill leftLines/rightLines

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ComparisonOptions:
        """
        Build options from a dictionary.

        Accepts both the camelCase wire keys and the snake_case field
        names. Unknown keys are ignored; ``None`` values keep the default.
        """
        if not data:
            return cls()

        values: dict[str, bool] = {}
        for key, value in data.items():
            name = _OPTION_KEYS.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                values[name] = bool(value)
        return cls(**values)

    def to_dict(self) -> dict[str, bool]:
        """Convert to the camelCase wire shape."""
        return {wire: getattr(self, name) for wire, name in _OPTION_KEYS.items()}


# =============================================================================
# Structural Diff Models
# =============================================================================

@dataclass(frozen=True)
class DiffItem:
    """
    A single path-addressed structural difference.

    ``path`` is a dotted/bracketed address such as ``a.b[2]``.
    ``old_value`` / ``new_value`` are ``MISSING`` when they do not
    apply (an added entry has no old value).
    """
    type: DiffType
    path: str
    old_value: Any = MISSING
    new_value: Any = MISSING

    @property
    def has_old_value(self) -> bool:
        return self.old_value is not MISSING

    @property
    def has_new_value(self) -> bool:
        return self.new_value is not MISSING

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'type': self.type.value, 'path': self.path}
        if self.has_old_value:
            data['oldValue'] = self.old_value
        if self.has_new_value:
            data['newValue'] = self.new_value
        return data


@dataclass(frozen=True)
class JsonDiffItem(DiffItem):
    """Difference between two JSON value trees."""
    pass


@dataclass(frozen=True)
class XmlDiffItem(DiffItem):
    """
    Difference between two XML element trees.

    ``element`` names the element that changed; ``attribute`` is set
    when the change concerns one of its attributes.
    """
    element: Optional[str] = None
    attribute: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.element is not None:
            data['element'] = self.element
        if self.attribute is not None:
            data['attribute'] = self.attribute
        return data


# =============================================================================
# Validation Models
# =============================================================================

@dataclass(frozen=True)
class ValidationError:
    """Description of why an input is not well-formed."""
    message: str
    line: Optional[int] = None       # 1-based
    column: Optional[int] = None     # 1-based
    position: Optional[int] = None   # 0-based character offset
    code: Optional[str] = None       # Parser-specific error code

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'message': self.message}
        for name in ('line', 'column', 'position', 'code'):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a JSON or XML document."""
    valid: bool
    error: Optional[ValidationError] = None

    def __post_init__(self) -> None:
        if self.valid and self.error is not None:
            raise ValueError("A valid result cannot carry an error")
        if not self.valid and self.error is None:
            raise ValueError("An invalid result must carry an error")

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def failure(cls, message: str, **location: Any) -> ValidationResult:
        return cls(valid=False, error=ValidationError(message, **location))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'valid': self.valid}
        if self.error is not None:
            data['error'] = self.error.to_dict()
        return data


# =============================================================================
# Line Diff Models
# =============================================================================

@dataclass(frozen=True)
class DiffChange:
    """
    A span inside a modified line.

    Concatenating the values of a line's changes reconstructs the
    line's content for that side.
    """
    type: ChangeType
    value: str

    def to_dict(self) -> dict[str, str]:
        return {'type': self.type.value, 'value': self.value}


@dataclass
class DiffLine:
    """
    A single line of one side of a line diff.

    ``line_number`` is 1-based and only meaningful on its own side.
    ``changes`` is present only on modified lines.
    """
    line_number: int
    type: DiffLineType
    content: str
    changes: Optional[list[DiffChange]] = None

    @property
    def is_different(self) -> bool:
        return self.type != DiffLineType.UNCHANGED

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'lineNumber': self.line_number,
            'type': self.type.value,
            'content': self.content,
        }
        if self.changes is not None:
            data['changes'] = [change.to_dict() for change in self.changes]
        return data


@dataclass
class LineDiffResult:
    """Aligned left/right line lists for side-by-side rendering."""
    left_lines: list[DiffLine] = field(default_factory=list)
    right_lines: list[DiffLine] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(line.is_different for line in self.left_lines) or \
            any(line.is_different for line in self.right_lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            'leftLines': [line.to_dict() for line in self.left_lines],
            'rightLines': [line.to_dict() for line in self.right_lines],
        }


# =============================================================================
# Comparison Results
# =============================================================================

@dataclass(frozen=True)
class ComparisonSummary:
    """Counts of changes in a comparison."""
    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def total_changes(self) -> int:
        return self.added + self.removed + self.modified

    @property
    def is_empty(self) -> bool:
        return self.total_changes == 0

    @classmethod
    def from_differences(cls, differences: Iterable[DiffItem]) -> ComparisonSummary:
        """Count structural differences by type."""
        counts = {diff_type: 0 for diff_type in DiffType}
        for item in differences:
            counts[item.type] += 1
        return cls(
            added=counts[DiffType.ADDED],
            removed=counts[DiffType.REMOVED],
            modified=counts[DiffType.MODIFIED],
        )

    @classmethod
    def from_lines(cls, left_lines: Iterable[DiffLine], right_lines: Iterable[DiffLine]) -> ComparisonSummary:
        """
        Count line changes.

        Modified pairs are counted once, from the left side.
        """
        removed = modified = 0
        for line in left_lines:
            if line.type == DiffLineType.REMOVED:
                removed += 1
            elif line.type == DiffLineType.MODIFIED:
                modified += 1
        added = sum(1 for line in right_lines if line.type == DiffLineType.ADDED)
        return cls(added=added, removed=removed, modified=modified)

    def to_dict(self) -> dict[str, int]:
        return {'added': self.added, 'removed': self.removed, 'modified': self.modified}

    def __str__(self) -> str:
        return f"+{self.added} -{self.removed} ~{self.modified}"


@dataclass(frozen=True)
class ComparisonErrors:
    """Per-side validation errors of a comparison that could not run."""
    left: Optional[ValidationError] = None
    right: Optional[ValidationError] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.left is not None:
            data['left'] = self.left.to_dict()
        if self.right is not None:
            data['right'] = self.right.to_dict()
        return data


@dataclass
class ComparisonResult:
    """
    Complete result of comparing two inputs.

    When ``errors`` is set, one or both inputs failed validation and
    ``differences`` / ``summary`` carry no meaning.
    """
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    differences: Optional[list[DiffItem]] = None
    left_lines: Optional[list[DiffLine]] = None
    right_lines: Optional[list[DiffLine]] = None
    errors: Optional[ComparisonErrors] = None

    @property
    def identical(self) -> bool:
        """True when the inputs are equivalent under the active options."""
        return self.errors is None and self.summary.is_empty

    @property
    def has_errors(self) -> bool:
        return self.errors is not None

    @classmethod
    def from_differences(cls, differences: list[DiffItem]) -> ComparisonResult:
        return cls(
            summary=ComparisonSummary.from_differences(differences),
            differences=differences,
        )

    @classmethod
    def from_validation(
        cls,
        left: ValidationResult,
        right: ValidationResult,
    ) -> ComparisonResult:
        return cls(errors=ComparisonErrors(left=left.error, right=right.error))

    def with_lines(self, line_diff: LineDiffResult) -> ComparisonResult:
        """Return a copy carrying the given side-by-side lines."""
        return ComparisonResult(
            summary=self.summary,
            differences=self.differences,
            left_lines=line_diff.left_lines,
            right_lines=line_diff.right_lines,
            errors=self.errors,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'identical': self.identical,
            'summary': self.summary.to_dict(),
        }
        if self.differences is not None:
            data['differences'] = [item.to_dict() for item in self.differences]
        if self.left_lines is not None:
            data['leftLines'] = [line.to_dict() for line in self.left_lines]
        if self.right_lines is not None:
            data['rightLines'] = [line.to_dict() for line in self.right_lines]
        if self.errors is not None:
            data['errors'] = self.errors.to_dict()
        return data


# =============================================================================
# Worker Envelopes
# =============================================================================

@dataclass(frozen=True)
class ComparisonRequest:
    """
    One comparison attempt sent to the worker boundary.

    ``id`` is assigned by the caller and identifies the attempt;
    only the latest id is considered current.
    """
    id: int
    left: str
    right: str
    format_type: FormatType
    options: ComparisonOptions = field(default_factory=ComparisonOptions)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComparisonRequest:
        return cls(
            id=data['id'],
            left=data.get('left') or '',
            right=data.get('right') or '',
            format_type=FormatType.from_string(data.get('formatType', 'text')),
            options=ComparisonOptions.from_dict(data.get('options')),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'left': self.left,
            'right': self.right,
            'formatType': self.format_type.value,
            'options': self.options.to_dict(),
        }


@dataclass(frozen=True)
class ComparisonResponse:
    """A progress, result or error event for one request id."""
    id: int
    type: ResponseType
    progress: Optional[float] = None     # Fraction 0.0 - 1.0
    message: Optional[str] = None
    result: Optional[ComparisonResult] = None
    error: Optional[str] = None

    @classmethod
    def progress_event(cls, request_id: int, progress: float, message: str = "") -> ComparisonResponse:
        return cls(id=request_id, type=ResponseType.PROGRESS, progress=progress, message=message)

    @classmethod
    def result_event(cls, request_id: int, result: ComparisonResult) -> ComparisonResponse:
        return cls(id=request_id, type=ResponseType.RESULT, result=result)

    @classmethod
    def error_event(cls, request_id: int, error: str) -> ComparisonResponse:
        return cls(id=request_id, type=ResponseType.ERROR, error=error)

    @property
    def is_terminal(self) -> bool:
        """True for result and error events."""
        return self.type != ResponseType.PROGRESS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'id': self.id, 'type': self.type.value}
        if self.progress is not None:
            data['progress'] = self.progress
        if self.message:
            data['message'] = self.message
        if self.result is not None:
            data['result'] = self.result.to_dict()
        if self.error is not None:
            data['error'] = self.error
        return data
