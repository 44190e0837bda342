from __future__ import annotations

from openpyxl import Workbook
from openpyxl.comments import Comment
import pytest

from workbook_recovery.accessor import OpenpyxlWorkbookAccessor
from workbook_recovery.accessor.openpyxl_comments import DEFAULT_COMMENT_AUTHOR
from workbook_recovery.comment_state import (
    apply_comment_thread_state,
    capture_comment_thread_state,
)
from workbook_recovery.errors import InvalidStateError, SheetNotFoundError
from workbook_recovery.models import RecoveryCommentThreadState


def test_capture_reads_comment_at_first_cell(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"]["B2"].comment = Comment("Check totals", "Ana")
    thread = capture_comment_thread_state(accessor, "Data!b2:c4")
    assert thread == RecoveryCommentThreadState(
        exists=True, content="Check totals", author="Ana"
    )
    assert capture_comment_thread_state(accessor, "Data!C2") == (
        RecoveryCommentThreadState(exists=False)
    )


def test_capture_missing_sheet_raises(accessor: OpenpyxlWorkbookAccessor) -> None:
    with pytest.raises(SheetNotFoundError):
        capture_comment_thread_state(accessor, "Nope!A1")


def test_apply_replaces_and_returns_prior(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet["A1"].comment = Comment("old", "Ana")

    prior = apply_comment_thread_state(
        accessor, "Data!A1", RecoveryCommentThreadState(exists=True, content="new")
    )
    assert prior.content == "old"
    assert sheet["A1"].comment.text == "new"
    assert sheet["A1"].comment.author == DEFAULT_COMMENT_AUTHOR

    removed = apply_comment_thread_state(
        accessor, "Data!A1", RecoveryCommentThreadState(exists=False)
    )
    assert removed.content == "new"
    assert sheet["A1"].comment is None

    apply_comment_thread_state(accessor, "Data!A1", prior)
    assert sheet["A1"].comment.text == "old"
    assert sheet["A1"].comment.author == "Ana"


def test_removing_absent_comment_creates_no_cell(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    prior = apply_comment_thread_state(
        accessor, "Data!K40", RecoveryCommentThreadState(exists=False)
    )
    assert prior.exists is False
    assert (40, 11) not in workbook["Data"]._cells


def test_apply_refuses_threads_with_replies(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet["A1"].comment = Comment("keep", "Ana")
    thread = RecoveryCommentThreadState(
        exists=True, content="root", replies=["reply"], resolved=True
    )
    with pytest.raises(InvalidStateError, match="replies") as excinfo:
        apply_comment_thread_state(accessor, "Data!A1", thread)
    assert excinfo.value.code == "unsupported"
    assert sheet["A1"].comment.text == "keep"


def test_apply_refuses_merged_anchor(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"].merge_cells("A1:B2")
    with pytest.raises(InvalidStateError, match="merged range"):
        apply_comment_thread_state(
            accessor, "Data!B2", RecoveryCommentThreadState(exists=True, content="x")
        )
