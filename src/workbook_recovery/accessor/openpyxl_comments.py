"""Comment threads on openpyxl cells.

openpyxl models legacy cell notes only: one text and one author per cell.
Threads with replies or a resolved flag cannot be written back.
"""

from __future__ import annotations

from openpyxl.cell.cell import MergedCell
from openpyxl.comments import Comment
from openpyxl.worksheet.worksheet import Worksheet

from ..errors import InvalidStateError
from ..models import RecoveryCommentThreadState
from ..shared.a1 import parse_range_bounds

DEFAULT_COMMENT_AUTHOR = "workbook-recovery"


def _anchor(address: str) -> tuple[int, int]:
    """Return (row, column) of the top-left cell of a local range."""
    min_col, min_row, _, _ = parse_range_bounds(address)
    return min_row, min_col


def read_comment_thread(sheet: Worksheet, address: str) -> RecoveryCommentThreadState:
    cell = sheet._cells.get(_anchor(address))
    comment = None if cell is None else cell.comment
    if comment is None:
        return RecoveryCommentThreadState(exists=False)
    return RecoveryCommentThreadState(
        exists=True,
        content=comment.text or "",
        author=comment.author or None,
    )


def write_comment_thread(
    sheet: Worksheet, address: str, thread: RecoveryCommentThreadState
) -> None:
    """Replace the comment anchored at ``address`` with ``thread``.

    Raises:
        InvalidStateError: The thread carries replies or a resolved flag, or
            the anchor is covered by a merged range.
    """
    if thread.exists and (thread.replies or thread.resolved):
        raise InvalidStateError.build(
            "unsupported",
            "Comment threads with replies or a resolved flag cannot be written.",
            sheet=sheet.title,
        )
    row, column = _anchor(address)
    if not thread.exists and (row, column) not in sheet._cells:
        return
    cell = sheet.cell(row=row, column=column)
    if isinstance(cell, MergedCell):
        raise InvalidStateError.build(
            "unsupported",
            f"{cell.coordinate} lies inside a merged range and cannot hold a comment.",
            sheet=sheet.title,
        )
    if not thread.exists:
        cell.comment = None
        return
    cell.comment = Comment(thread.content, thread.author or DEFAULT_COMMENT_AUTHOR)


__all__ = ["DEFAULT_COMMENT_AUTHOR", "read_comment_thread", "write_comment_thread"]
