"""Shared fixtures for the diffchecker test suite."""

from pathlib import Path

import pytest
from PyQt6.QtCore import QCoreApplication

from diffchecker.core.models import ComparisonOptions


@pytest.fixture(scope="session")
def qapp():
    """A headless Qt application shared by every test that needs one."""
    app = QCoreApplication.instance() or QCoreApplication(["diffchecker-tests"])
    yield app


@pytest.fixture
def options():
    return ComparisonOptions()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write text (or bytes) to a file under the test's temp directory."""
    def _write(name: str, content, encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding=encoding)
        return path
    return _write
