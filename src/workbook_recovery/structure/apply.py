from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from ..accessor.base import SheetInfo, WorkbookAccessor
from ..constants import MAX_RECOVERY_CELLS
from ..errors import InvalidStateError, RestoreBlockedError, SheetNotFoundError
from ..models import (
    CapturedDataCapture,
    RecoveryColumnsAbsentState,
    RecoveryColumnsPresentState,
    RecoveryModifyStructureState,
    RecoveryRowsAbsentState,
    RecoveryRowsPresentState,
    RecoverySheetAbsentState,
    RecoverySheetNameState,
    RecoverySheetPresentState,
    RecoverySheetVisibilityState,
    RecoveryStructureValueRangeState,
    StructureValueDataCaptureResult,
    TooLargeDataCapture,
)
from ..shared.a1 import column_span_address, parse_range_geometry, row_span_address
from ..shared.grid import to_restore_values
from .capture import (
    capture_sheet_value_data_range,
    capture_value_data_range,
    has_value_data_in_range,
    has_value_data_in_sheet,
)
from .common import is_structure_value_range_state_shape_valid

logger = logging.getLogger(__name__)

_Handler = Callable[
    [WorkbookAccessor, Any, int], RecoveryModifyStructureState
]


def apply_modify_structure_state(
    accessor: WorkbookAccessor,
    target: RecoveryModifyStructureState,
    *,
    max_cell_count: int = MAX_RECOVERY_CELLS,
) -> RecoveryModifyStructureState:
    """Apply a structural state and return the state it replaced.

    The returned state undoes this call, so applying it restores the
    document and yields ``target`` again.

    Args:
        accessor: Workbook accessor.
        target: Structural state to establish.
        max_cell_count: Cap for value data captured before a delete.

    Returns:
        The prior structural state.

    Raises:
        RestoreBlockedError: The change would lose data without consent,
            data is too large to capture, or a sheet already exists.
        InvalidStateError: Captured data is inconsistent with the target.
        SheetNotFoundError: The referenced sheet does not exist.
    """
    handler = _APPLY_HANDLERS.get(target.kind)
    if handler is None:
        raise InvalidStateError.build(
            "invalid_state", f"Unsupported structure state kind: {target.kind}"
        )
    logger.debug("Applying structure state %s", target.kind)
    return handler(accessor, target, max_cell_count)


def _apply_sheet_name(
    accessor: WorkbookAccessor, target: RecoverySheetNameState, max_cell_count: int
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    accessor.set_sheet_name(sheet.id, target.name)
    accessor.sync()
    return RecoverySheetNameState(sheet_id=sheet.id, name=sheet.name)


def _apply_sheet_visibility(
    accessor: WorkbookAccessor,
    target: RecoverySheetVisibilityState,
    max_cell_count: int,
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    accessor.set_sheet_visibility(sheet.id, target.visibility)
    accessor.sync()
    return RecoverySheetVisibilityState(sheet_id=sheet.id, visibility=sheet.visibility)


def _apply_sheet_absent(
    accessor: WorkbookAccessor, target: RecoverySheetAbsentState, max_cell_count: int
) -> RecoveryModifyStructureState:
    sheet = accessor.get_sheet_by_id(target.sheet_id)
    if sheet is None and not target.allow_data_delete:
        sheet = accessor.get_sheet_by_name(target.sheet_name)
    accessor.sync()
    if sheet is None:
        logger.debug("Sheet %s already absent.", target.sheet_name)
        return target.model_copy()
    has_data = has_value_data_in_sheet(accessor, sheet.id)
    if has_data and not target.allow_data_delete:
        raise RestoreBlockedError.build(
            "data_delete_blocked",
            f"Sheet {sheet.name} contains data and cannot be deleted without consent.",
            sheet=sheet.name,
            hint="Restore the checkpoint that recorded the sheet's data instead.",
        )
    captured = capture_sheet_value_data_range(accessor, sheet.id, max_cell_count)
    data_range = _require_captured(captured, sheet.name)
    accessor.delete_sheet(sheet.id)
    accessor.sync()
    return RecoverySheetPresentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=sheet.position,
        visibility=sheet.visibility,
        data_range=data_range,
    )


def _apply_sheet_present(
    accessor: WorkbookAccessor, target: RecoverySheetPresentState, max_cell_count: int
) -> RecoveryModifyStructureState:
    existing = accessor.get_sheet_by_id(target.sheet_id) or accessor.get_sheet_by_name(
        target.sheet_name
    )
    accessor.sync()
    if existing is not None:
        raise RestoreBlockedError.build(
            "target_exists",
            f"Sheet {existing.name} already exists; refusing to overwrite it.",
            sheet=existing.name,
            hint="Rename or delete the existing sheet before restoring.",
        )
    _require_restorable(target.data_range, target.sheet_name)
    sheet = accessor.add_sheet(target.sheet_name, target.sheet_id)
    accessor.set_sheet_position(sheet.id, target.position)
    accessor.set_sheet_visibility(sheet.id, target.visibility)
    accessor.sync()
    if target.data_range is not None:
        _rehydrate(accessor, sheet.id, target.data_range)
    return RecoverySheetAbsentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        allow_data_delete=True if target.data_range is not None else None,
    )


def _apply_rows_absent(
    accessor: WorkbookAccessor, target: RecoveryRowsAbsentState, max_cell_count: int
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    address = row_span_address(target.position, target.count)
    data_range = _capture_before_delete(
        accessor, sheet, address, target.allow_data_delete, max_cell_count
    )
    accessor.delete_rows(sheet.id, target.position, target.count)
    accessor.sync()
    return RecoveryRowsPresentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=target.position,
        count=target.count,
        data_range=data_range,
    )


def _apply_rows_present(
    accessor: WorkbookAccessor, target: RecoveryRowsPresentState, max_cell_count: int
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    _require_restorable(target.data_range, sheet.name)
    accessor.insert_rows(sheet.id, target.position, target.count)
    accessor.sync()
    if target.data_range is not None:
        _rehydrate(accessor, sheet.id, target.data_range)
    return RecoveryRowsAbsentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=target.position,
        count=target.count,
        allow_data_delete=True if target.data_range is not None else None,
    )


def _apply_columns_absent(
    accessor: WorkbookAccessor, target: RecoveryColumnsAbsentState, max_cell_count: int
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    address = column_span_address(target.position, target.count)
    data_range = _capture_before_delete(
        accessor, sheet, address, target.allow_data_delete, max_cell_count
    )
    accessor.delete_columns(sheet.id, target.position, target.count)
    accessor.sync()
    return RecoveryColumnsPresentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=target.position,
        count=target.count,
        data_range=data_range,
    )


def _apply_columns_present(
    accessor: WorkbookAccessor,
    target: RecoveryColumnsPresentState,
    max_cell_count: int,
) -> RecoveryModifyStructureState:
    sheet = _require_sheet_by_id(accessor, target.sheet_id)
    _require_restorable(target.data_range, sheet.name)
    accessor.insert_columns(sheet.id, target.position, target.count)
    accessor.sync()
    if target.data_range is not None:
        _rehydrate(accessor, sheet.id, target.data_range)
    return RecoveryColumnsAbsentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=target.position,
        count=target.count,
        allow_data_delete=True if target.data_range is not None else None,
    )


_APPLY_HANDLERS: dict[str, _Handler] = {
    "sheet_name": _apply_sheet_name,
    "sheet_visibility": _apply_sheet_visibility,
    "sheet_absent": _apply_sheet_absent,
    "sheet_present": _apply_sheet_present,
    "rows_absent": _apply_rows_absent,
    "rows_present": _apply_rows_present,
    "columns_absent": _apply_columns_absent,
    "columns_present": _apply_columns_present,
}


def _require_sheet_by_id(accessor: WorkbookAccessor, sheet_id: str) -> SheetInfo:
    sheet = accessor.get_sheet_by_id(sheet_id)
    accessor.sync()
    if sheet is None:
        raise SheetNotFoundError.build(
            "sheet_not_found", f"Sheet not found: {sheet_id}", sheet=sheet_id
        )
    return sheet


def _capture_before_delete(
    accessor: WorkbookAccessor,
    sheet: SheetInfo,
    address: str,
    allow_data_delete: bool | None,
    max_cell_count: int,
) -> RecoveryStructureValueRangeState | None:
    """Refuse unconsented data loss, then capture what a delete removes."""
    if has_value_data_in_range(accessor, sheet.id, address) and not allow_data_delete:
        raise RestoreBlockedError.build(
            "data_delete_blocked",
            f"{sheet.name}!{address} contains data and cannot be deleted without consent.",
            sheet=sheet.name,
            hint="Restore the checkpoint that recorded this data instead.",
        )
    captured = capture_value_data_range(accessor, sheet.id, address, max_cell_count)
    return _require_captured(captured, sheet.name)


def _require_captured(
    captured: StructureValueDataCaptureResult, sheet_name: str
) -> RecoveryStructureValueRangeState | None:
    """Return captured data, None when empty, and refuse oversize data."""
    if isinstance(captured, TooLargeDataCapture):
        raise RestoreBlockedError.build(
            "too_large",
            (
                f"Data on {sheet_name} spans {captured.cell_count} cells, "
                "which exceeds the recovery capture limit."
            ),
            sheet=sheet_name,
        )
    if isinstance(captured, CapturedDataCapture):
        return captured.data_range
    return None


def _require_restorable(
    data_range: RecoveryStructureValueRangeState | None, sheet_name: str
) -> None:
    """Refuse captured data whose grids or address do not agree."""
    if data_range is None:
        return
    if not is_structure_value_range_state_shape_valid(data_range):
        raise InvalidStateError.build(
            "invalid_state",
            "Captured data range is inconsistent and cannot be restored.",
            sheet=sheet_name,
        )
    try:
        _, row_count, column_count = parse_range_geometry(data_range.address)
    except ValueError as exc:
        raise InvalidStateError.build(
            "invalid_state", str(exc), sheet=sheet_name
        ) from exc
    if row_count != data_range.row_count or column_count != data_range.column_count:
        raise InvalidStateError.build(
            "shape_mismatch",
            f"Captured data does not match the shape of {data_range.address}.",
            sheet=sheet_name,
        )


def _rehydrate(
    accessor: WorkbookAccessor,
    sheet_id: str,
    data_range: RecoveryStructureValueRangeState,
) -> None:
    """Write captured values and formulas back into their range."""
    accessor.write_range(
        sheet_id,
        data_range.address,
        to_restore_values(data_range.values, data_range.formulas),
    )
    accessor.sync()


__all__ = ["apply_modify_structure_state"]
