"""Fail-closed predicates for untrusted, JSON-decoded recovery payloads.

Every predicate returns a plain bool and never raises. Unknown
discriminants, missing required fields and wrong field types all yield
False; there is no partial acceptance.
"""

from __future__ import annotations

from typing import Any, TypeGuard, TypeVar

from pydantic import TypeAdapter, ValidationError

from .models import (
    RecoveryCheckpoint,
    RecoveryCommentThreadState,
    RecoveryConditionalFormatRule,
    RecoveryFormatRangeState,
    RecoveryModifyStructureState,
    RecoveryStructureValueRangeState,
)
from .types import SUPPORTED_SHEET_VISIBILITIES, RecoverySheetVisibility

T = TypeVar("T")

_VALUE_RANGE_ADAPTER: TypeAdapter[RecoveryStructureValueRangeState] = TypeAdapter(
    RecoveryStructureValueRangeState
)
_MODIFY_STRUCTURE_ADAPTER: TypeAdapter[RecoveryModifyStructureState] = TypeAdapter(
    RecoveryModifyStructureState
)
_FORMAT_RANGE_ADAPTER: TypeAdapter[RecoveryFormatRangeState] = TypeAdapter(
    RecoveryFormatRangeState
)
_CONDITIONAL_FORMAT_RULE_ADAPTER: TypeAdapter[RecoveryConditionalFormatRule] = (
    TypeAdapter(RecoveryConditionalFormatRule)
)
_COMMENT_THREAD_ADAPTER: TypeAdapter[RecoveryCommentThreadState] = TypeAdapter(
    RecoveryCommentThreadState
)
_CHECKPOINT_ADAPTER: TypeAdapter[RecoveryCheckpoint] = TypeAdapter(RecoveryCheckpoint)


def is_record(value: object) -> TypeGuard[dict[str, Any]]:
    """Return True for a JSON object (a dict with string keys)."""
    return isinstance(value, dict) and all(isinstance(key, str) for key in value)


def is_recovery_sheet_visibility(value: object) -> TypeGuard[RecoverySheetVisibility]:
    """Return True for a supported sheet visibility literal."""
    return isinstance(value, str) and value in SUPPORTED_SHEET_VISIBILITIES


def parse_recovery_structure_value_range_state(
    value: object,
) -> RecoveryStructureValueRangeState | None:
    """Validate a captured value range payload, or return None."""
    return _parse_record(_VALUE_RANGE_ADAPTER, value)


def parse_recovery_modify_structure_state(
    value: object,
) -> RecoveryModifyStructureState | None:
    """Validate a structural state payload, or return None."""
    return _parse_record(_MODIFY_STRUCTURE_ADAPTER, value)


def parse_recovery_format_range_state(value: object) -> RecoveryFormatRangeState | None:
    """Validate a format checkpoint payload, or return None."""
    return _parse_record(_FORMAT_RANGE_ADAPTER, value)


def parse_recovery_conditional_format_rule(
    value: object,
) -> RecoveryConditionalFormatRule | None:
    """Validate a conditional-format rule payload, or return None."""
    return _parse_record(_CONDITIONAL_FORMAT_RULE_ADAPTER, value)


def parse_recovery_comment_thread_state(
    value: object,
) -> RecoveryCommentThreadState | None:
    """Validate a comment thread payload, or return None."""
    return _parse_record(_COMMENT_THREAD_ADAPTER, value)


def parse_recovery_checkpoint(value: object) -> RecoveryCheckpoint | None:
    """Validate a persisted checkpoint record, or return None."""
    return _parse_record(_CHECKPOINT_ADAPTER, value)


def is_recovery_structure_value_range_state(value: object) -> bool:
    return parse_recovery_structure_value_range_state(value) is not None


def is_recovery_modify_structure_state(value: object) -> bool:
    return parse_recovery_modify_structure_state(value) is not None


def is_recovery_format_range_state(value: object) -> bool:
    return parse_recovery_format_range_state(value) is not None


def is_recovery_conditional_format_rule(value: object) -> bool:
    return parse_recovery_conditional_format_rule(value) is not None


def is_recovery_comment_thread_state(value: object) -> bool:
    return parse_recovery_comment_thread_state(value) is not None


def is_recovery_checkpoint(value: object) -> bool:
    return parse_recovery_checkpoint(value) is not None


def _parse_record(adapter: TypeAdapter[T], value: object) -> T | None:
    """Validate a dict payload with the adapter; anything else is rejected."""
    if not is_record(value):
        return None
    try:
        return adapter.validate_python(value)
    except ValidationError:
        return None


__all__ = [
    "is_record",
    "is_recovery_checkpoint",
    "is_recovery_comment_thread_state",
    "is_recovery_conditional_format_rule",
    "is_recovery_format_range_state",
    "is_recovery_modify_structure_state",
    "is_recovery_sheet_visibility",
    "is_recovery_structure_value_range_state",
    "parse_recovery_checkpoint",
    "parse_recovery_comment_thread_state",
    "parse_recovery_conditional_format_rule",
    "parse_recovery_format_range_state",
    "parse_recovery_modify_structure_state",
    "parse_recovery_structure_value_range_state",
]
