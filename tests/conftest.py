from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
import pytest

from workbook_recovery.accessor import OpenpyxlWorkbookAccessor
from workbook_recovery.log import CheckpointLog


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers to avoid pytest warnings."""
    config.addinivalue_line(
        "markers", "roundtrip: saves and reloads a workbook file from disk."
    )


@pytest.fixture
def workbook() -> Workbook:
    """Return a workbook with a single empty sheet named ``Data``."""
    book = Workbook()
    sheet = book.active
    assert sheet is not None
    sheet.title = "Data"
    return book


@pytest.fixture
def accessor(workbook: Workbook) -> OpenpyxlWorkbookAccessor:
    return OpenpyxlWorkbookAccessor(workbook)


@pytest.fixture
def log(tmp_path: Path, accessor: OpenpyxlWorkbookAccessor) -> CheckpointLog:
    """Return an empty checkpoint log bound to the ``accessor`` workbook."""
    return CheckpointLog(
        tmp_path / "book.xlsx.recovery.json", workbook_id=accessor.workbook_id
    )
