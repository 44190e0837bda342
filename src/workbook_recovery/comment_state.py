from __future__ import annotations

import logging

from .accessor.base import WorkbookAccessor
from .models import RecoveryCommentThreadState
from .targets import require_target_sheet

logger = logging.getLogger(__name__)


def capture_comment_thread_state(
    accessor: WorkbookAccessor, address: str
) -> RecoveryCommentThreadState:
    """Capture the comment thread anchored at the first cell of ``address``."""
    sheet, areas = require_target_sheet(accessor, address)
    thread = accessor.read_comment_thread(sheet.id, areas[0])
    accessor.sync()
    return thread.model_copy(deep=True)


def apply_comment_thread_state(
    accessor: WorkbookAccessor,
    address: str,
    thread: RecoveryCommentThreadState,
) -> RecoveryCommentThreadState:
    """Establish ``thread`` at the first cell of ``address``.

    Any existing comment there is replaced, or removed when ``thread`` does
    not exist.

    Returns:
        The thread that was replaced.

    Raises:
        InvalidStateError: The backend cannot represent ``thread``.
        SheetNotFoundError: The addressed sheet does not exist.
    """
    sheet, areas = require_target_sheet(accessor, address)
    current = accessor.read_comment_thread(sheet.id, areas[0])
    accessor.sync()
    if current == thread:
        logger.debug("Comment at %s already matches.", address)
        return current
    accessor.write_comment_thread(sheet.id, areas[0], thread)
    accessor.sync()
    return current


__all__ = ["apply_comment_thread_state", "capture_comment_thread_state"]
