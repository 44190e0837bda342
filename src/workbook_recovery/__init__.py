"""Checkpoint capture and restore for spreadsheet edits."""

from __future__ import annotations

from .accessor import OpenpyxlWorkbookAccessor, WorkbookAccessor
from .comment_state import apply_comment_thread_state, capture_comment_thread_state
from .conditional_format_state import (
    apply_conditional_format_state,
    capture_conditional_format_state,
)
from .config import RecoveryConfig
from .constants import MAX_RECOVERY_CELLS, MAX_RECOVERY_ENTRIES, MIN_RETENTION_LIMIT
from .edits import EditResult, FormatPatch
from .errors import (
    CheckpointNotFoundError,
    InvalidStateError,
    RecoveryError,
    RecoveryErrorDetail,
    RestoreBlockedError,
    SheetNotFoundError,
    WorkbookMismatchError,
)
from .format_state import apply_format_cells_state, capture_format_cells_state
from .guards import (
    is_record,
    is_recovery_checkpoint,
    is_recovery_comment_thread_state,
    is_recovery_conditional_format_rule,
    is_recovery_format_range_state,
    is_recovery_modify_structure_state,
    is_recovery_sheet_visibility,
    is_recovery_structure_value_range_state,
)
from .log import CheckpointLog, RestoreResult
from .models import (
    CaptureModifyStructureStateRequest,
    RecoveryCheckpoint,
    RecoveryCommentThreadState,
    RecoveryConditionalFormatRule,
    RecoveryFormatRangeState,
    RecoveryFormatSelection,
    RecoveryModifyStructureState,
    RecoveryStructureValueRangeState,
)
from .range_state import apply_range_values, capture_range_values
from .retention import clamp_retention_limit
from .structure import (
    apply_modify_structure_state,
    capture_modify_structure_state,
    capture_sheet_value_data_range,
    capture_value_data_range,
)

__all__ = [
    "CaptureModifyStructureStateRequest",
    "CheckpointLog",
    "CheckpointNotFoundError",
    "EditResult",
    "FormatPatch",
    "InvalidStateError",
    "MAX_RECOVERY_CELLS",
    "MAX_RECOVERY_ENTRIES",
    "MIN_RETENTION_LIMIT",
    "OpenpyxlWorkbookAccessor",
    "RecoveryCheckpoint",
    "RecoveryCommentThreadState",
    "RecoveryConditionalFormatRule",
    "RecoveryConfig",
    "RecoveryError",
    "RecoveryErrorDetail",
    "RecoveryFormatRangeState",
    "RecoveryFormatSelection",
    "RecoveryModifyStructureState",
    "RecoveryStructureValueRangeState",
    "RestoreBlockedError",
    "RestoreResult",
    "SheetNotFoundError",
    "WorkbookAccessor",
    "WorkbookMismatchError",
    "apply_comment_thread_state",
    "apply_conditional_format_state",
    "apply_format_cells_state",
    "apply_modify_structure_state",
    "apply_range_values",
    "capture_comment_thread_state",
    "capture_conditional_format_state",
    "capture_format_cells_state",
    "capture_modify_structure_state",
    "capture_range_values",
    "capture_sheet_value_data_range",
    "capture_value_data_range",
    "clamp_retention_limit",
    "is_record",
    "is_recovery_checkpoint",
    "is_recovery_comment_thread_state",
    "is_recovery_conditional_format_rule",
    "is_recovery_format_range_state",
    "is_recovery_modify_structure_state",
    "is_recovery_sheet_visibility",
    "is_recovery_structure_value_range_state",
]
