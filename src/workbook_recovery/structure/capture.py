from __future__ import annotations

from collections.abc import Callable
import logging

from ..accessor.base import SheetInfo, WorkbookAccessor
from ..constants import MAX_RECOVERY_CELLS
from ..guards import is_recovery_sheet_visibility
from ..models import (
    CaptureModifyStructureStateRequest,
    CapturedDataCapture,
    EmptyDataCapture,
    RecoveryColumnsAbsentState,
    RecoveryModifyStructureState,
    RecoveryRowsAbsentState,
    RecoverySheetAbsentState,
    RecoverySheetNameState,
    RecoverySheetVisibilityState,
    RecoveryStructureValueRangeState,
    StructureValueDataCaptureResult,
    TooLargeDataCapture,
)
from ..shared.a1 import local_address_part
from ..shared.grid import clone_grid
from .common import is_structure_value_range_state_shape_valid, normalize_positive_integer

logger = logging.getLogger(__name__)


def capture_value_data_range(
    accessor: WorkbookAccessor,
    sheet_id: str,
    address: str,
    max_cell_count: int = MAX_RECOVERY_CELLS,
) -> StructureValueDataCaptureResult:
    """Capture the value data inside ``address`` on a sheet.

    Args:
        accessor: Workbook accessor.
        sheet_id: Durable sheet id.
        address: Cell, range, whole-row or whole-column address.
        max_cell_count: Cap on the used-range cell count.

    Returns:
        ``empty``, ``captured`` with the data range, or ``too_large``.
    """
    return _capture_used_range(accessor, sheet_id, address, max_cell_count)


def capture_sheet_value_data_range(
    accessor: WorkbookAccessor,
    sheet_id: str,
    max_cell_count: int = MAX_RECOVERY_CELLS,
) -> StructureValueDataCaptureResult:
    """Capture the value data of a whole sheet."""
    return _capture_used_range(accessor, sheet_id, None, max_cell_count)


def has_value_data_in_sheet(accessor: WorkbookAccessor, sheet_id: str) -> bool:
    """Return True when the sheet has any non-empty cell."""
    used = accessor.get_used_range(sheet_id)
    accessor.sync()
    return used is not None


def has_value_data_in_range(
    accessor: WorkbookAccessor, sheet_id: str, address: str
) -> bool:
    """Return True when ``address`` holds any non-empty cell."""
    used = accessor.get_used_range(sheet_id, address)
    accessor.sync()
    return used is not None


def _capture_used_range(
    accessor: WorkbookAccessor,
    sheet_id: str,
    address: str | None,
    max_cell_count: int,
) -> StructureValueDataCaptureResult:
    """Load the used-range shape, check the cap, then read values."""
    used = accessor.get_used_range(sheet_id, address)
    accessor.sync()
    if used is None:
        return EmptyDataCapture()
    cell_count = used.row_count * used.column_count
    if cell_count > max_cell_count:
        logger.info(
            "Value capture skipped for %s: %d cells exceed cap %d.",
            used.address,
            cell_count,
            max_cell_count,
        )
        return TooLargeDataCapture(cell_count=cell_count)
    grids = accessor.read_range(sheet_id, used.address)
    accessor.sync()
    data_range = RecoveryStructureValueRangeState.model_construct(
        address=local_address_part(used.address),
        row_count=used.row_count,
        column_count=used.column_count,
        values=clone_grid(grids.values),
        formulas=clone_grid(grids.formulas),
    )
    if not is_structure_value_range_state_shape_valid(data_range):
        logger.warning("Discarding inconsistent value capture for %s.", used.address)
        return EmptyDataCapture()
    return CapturedDataCapture(data_range=data_range)


def capture_modify_structure_state(
    accessor: WorkbookAccessor,
    request: CaptureModifyStructureStateRequest,
) -> RecoveryModifyStructureState | None:
    """Capture the structural state that undoes a forthcoming edit.

    A missing sheet, an unknown visibility, or a non-positive position/count
    yields None: there is nothing to checkpoint and the caller proceeds with
    its edit without logging. This function never mutates the workbook.
    """
    sheet = accessor.get_sheet(request.sheet_ref)
    accessor.sync()
    if sheet is None:
        logger.debug("No checkpoint: sheet %s not found.", request.sheet_ref)
        return None
    handler = _CAPTURE_HANDLERS.get(request.kind)
    if handler is None:
        return None
    return handler(sheet, request)


def _capture_sheet_name(
    sheet: SheetInfo, request: CaptureModifyStructureStateRequest
) -> RecoveryModifyStructureState | None:
    return RecoverySheetNameState(sheet_id=sheet.id, name=sheet.name)


def _capture_sheet_visibility(
    sheet: SheetInfo, request: CaptureModifyStructureStateRequest
) -> RecoveryModifyStructureState | None:
    if not is_recovery_sheet_visibility(sheet.visibility):
        return None
    return RecoverySheetVisibilityState(sheet_id=sheet.id, visibility=sheet.visibility)


def _capture_sheet_absent(
    sheet: SheetInfo, request: CaptureModifyStructureStateRequest
) -> RecoveryModifyStructureState | None:
    return RecoverySheetAbsentState(sheet_id=sheet.id, sheet_name=sheet.name)


def _capture_rows_absent(
    sheet: SheetInfo, request: CaptureModifyStructureStateRequest
) -> RecoveryModifyStructureState | None:
    position = normalize_positive_integer(request.position)
    count = normalize_positive_integer(request.count)
    if position is None or count is None:
        return None
    return RecoveryRowsAbsentState(
        sheet_id=sheet.id, sheet_name=sheet.name, position=position, count=count
    )


def _capture_columns_absent(
    sheet: SheetInfo, request: CaptureModifyStructureStateRequest
) -> RecoveryModifyStructureState | None:
    position = normalize_positive_integer(request.position)
    count = normalize_positive_integer(request.count)
    if position is None or count is None:
        return None
    return RecoveryColumnsAbsentState(
        sheet_id=sheet.id, sheet_name=sheet.name, position=position, count=count
    )


_CAPTURE_HANDLERS: dict[
    str,
    Callable[
        [SheetInfo, CaptureModifyStructureStateRequest],
        RecoveryModifyStructureState | None,
    ],
] = {
    "sheet_name": _capture_sheet_name,
    "sheet_visibility": _capture_sheet_visibility,
    "sheet_absent": _capture_sheet_absent,
    "rows_absent": _capture_rows_absent,
    "columns_absent": _capture_columns_absent,
}


__all__ = [
    "capture_modify_structure_state",
    "capture_sheet_value_data_range",
    "capture_value_data_range",
    "has_value_data_in_range",
    "has_value_data_in_sheet",
]
