"""
File I/O service for reading comparison inputs safely.

Handles:
- Encoding detection
- Byte order marks
- Binary file rejection
- Format inference from file extensions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional

import chardet

from diffchecker.core.models import FormatType


class LineEnding(Enum):
    """Line ending style."""
    LF = auto()      # Unix: \n
    CRLF = auto()    # Windows: \r\n
    CR = auto()      # Old Mac: \r
    MIXED = auto()   # Mixed endings
    NONE = auto()    # No line endings (single line)


@dataclass
class FileContent:
    """Container for file content with metadata."""
    content: str
    encoding: str
    line_ending: LineEnding
    bom: bool
    size: int


@dataclass
class ReadResult:
    """Result of a file read operation."""
    success: bool
    content: Optional[FileContent] = None
    error: Optional[str] = None
    is_binary: bool = False

    @property
    def text(self) -> str:
        return self.content.content if self.content else ""


class FileIOService:
    """Service for reading comparison inputs."""

    # Binary file signatures (magic bytes)
    BINARY_SIGNATURES = [
        b'\x00',           # Null byte (strong indicator)
        b'\x89PNG',        # PNG
        b'\xff\xd8\xff',   # JPEG
        b'GIF8',           # GIF
        b'PK\x03\x04',     # ZIP
        b'\x1f\x8b',       # GZIP
        b'%PDF',           # PDF
        b'\x7fELF',        # ELF
        b'MZ',             # Windows executable
    ]

    # File extension -> comparison format
    FORMAT_EXTENSIONS = {
        '.json': FormatType.JSON,
        '.geojson': FormatType.JSON,
        '.jsonc': FormatType.JSON,
        '.xml': FormatType.XML,
        '.xsd': FormatType.XML,
        '.xsl': FormatType.XML,
        '.xslt': FormatType.XML,
        '.svg': FormatType.XML,
        '.plist': FormatType.XML,
    }

    def __init__(
        self,
        default_encoding: str = 'utf-8',
        fallback_encoding: str = 'latin-1',
        binary_check_size: int = 8192
    ):
        self.default_encoding = default_encoding
        self.fallback_encoding = fallback_encoding
        self.binary_check_size = binary_check_size

    def read_file(
        self,
        path: Path | str,
        encoding: Optional[str] = None,
        max_text_size: int = 50 * 1024 * 1024  # 50MB default limit
    ) -> ReadResult:
        """
        Read a text file with automatic encoding detection.

        Args:
            path: Path to the file
            encoding: Force specific encoding (auto-detect if None)
            max_text_size: Maximum file size in bytes to read as text

        Returns:
            ReadResult with content or error information
        """
        path = Path(path)

        if not path.exists():
            return ReadResult(success=False, error=f"File not found: {path}")

        if not path.is_file():
            return ReadResult(success=False, error=f"Not a file: {path}")

        try:
            raw_content = path.read_bytes()
        except PermissionError:
            return ReadResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return ReadResult(success=False, error=f"OS error: {e}")

        size = len(raw_content)
        if size > max_text_size:
            return ReadResult(
                success=False,
                error=f"File too large for comparison ({size / 1024 / 1024:.2f} MB). "
                      f"Max size is {max_text_size / 1024 / 1024:.2f} MB."
            )

        # Check for BOM
        bom = False
        detected_encoding = encoding
        if raw_content.startswith(b'\xef\xbb\xbf'):
            bom = True
            detected_encoding = 'utf-8-sig'
        elif raw_content.startswith(b'\xff\xfe'):
            bom = True
            detected_encoding = 'utf-16'
        elif raw_content.startswith(b'\xfe\xff'):
            bom = True
            detected_encoding = 'utf-16'

        # UTF-16 text is full of null bytes, so only check unmarked files
        if not bom and self.is_binary(raw_content[:self.binary_check_size]):
            return ReadResult(success=False, is_binary=True, error=f"File appears to be binary: {path}")

        detected_encoding = detected_encoding or self._detect_encoding(raw_content)

        # Decode content
        try:
            content = raw_content.decode(detected_encoding)
        except (UnicodeDecodeError, LookupError):
            logging.warning(
                f"FileIOService - Could not decode {path} as {detected_encoding}, "
                f"falling back to {self.fallback_encoding}"
            )
            content = raw_content.decode(self.fallback_encoding, errors='replace')
            detected_encoding = self.fallback_encoding

        return ReadResult(
            success=True,
            content=FileContent(
                content=content,
                encoding=detected_encoding,
                line_ending=self._detect_line_ending(content),
                bom=bom,
                size=size
            )
        )

    def detect_format(self, path: Path | str, default: FormatType = FormatType.TEXT) -> FormatType:
        """Infer the comparison format from a file extension."""
        return self.FORMAT_EXTENSIONS.get(Path(path).suffix.lower(), default)

    def is_binary(self, chunk: bytes) -> bool:
        """Check if a chunk of bytes looks like binary data."""
        for sig in self.BINARY_SIGNATURES:
            if chunk.startswith(sig):
                return True

        # Check for null bytes
        if b'\x00' in chunk:
            return True

        # Check ratio of non-text bytes
        non_text = sum(1 for b in chunk if b < 9 or (b > 13 and b < 32))
        if len(chunk) > 0 and non_text / len(chunk) > 0.3:
            return True

        return False

    def _detect_encoding(self, content: bytes) -> str:
        """Detect encoding of content."""
        if not content:
            return self.default_encoding

        # Use chardet for detection
        result = chardet.detect(content)

        if result['confidence'] > 0.7 and result['encoding']:
            encoding = result['encoding'].lower()
            # Normalize encoding names
            if encoding == 'ascii':
                return 'utf-8'  # ASCII is subset of UTF-8
            return encoding

        return self.default_encoding

    def _detect_line_ending(self, content: str) -> LineEnding:
        """Detect line ending style in content."""
        crlf_count = content.count('\r\n')
        lf_count = content.count('\n') - crlf_count
        cr_count = content.count('\r') - crlf_count

        if crlf_count == 0 and lf_count == 0 and cr_count == 0:
            return LineEnding.NONE

        total = crlf_count + lf_count + cr_count

        if crlf_count == total:
            return LineEnding.CRLF
        elif lf_count == total:
            return LineEnding.LF
        elif cr_count == total:
            return LineEnding.CR
        else:
            return LineEnding.MIXED
