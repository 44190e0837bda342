from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import Field, StrictInt, StrictStr

from .accessor.base import WorkbookAccessor
from .constants import MAX_RECOVERY_CELLS
from .errors import InvalidStateError
from .models import RangeValuesCheckpointState, RecoveryModel
from .shared.a1 import (
    canonical_range,
    parse_range_geometry,
    qualify_address_with_sheet,
)
from .shared.grid import clone_grid, grid_stats, to_restore_values
from .targets import require_target_sheet, resolve_target_sheet

logger = logging.getLogger(__name__)


class CapturedRangeValues(RecoveryModel):
    """Values and formulas of the exact requested range."""

    status: Literal["captured"] = "captured"
    sheet_id: StrictStr
    address: StrictStr
    state: RangeValuesCheckpointState


class TooLargeRangeValues(RecoveryModel):
    """Requested range exceeds the cell cap and was not read."""

    status: Literal["too_large"] = "too_large"
    cell_count: StrictInt


class SheetMissingRangeValues(RecoveryModel):
    """Requested sheet does not exist."""

    status: Literal["sheet_missing"] = "sheet_missing"


RangeValuesCaptureResult = Annotated[
    Union[CapturedRangeValues, TooLargeRangeValues, SheetMissingRangeValues],
    Field(discriminator="status"),
]


def capture_range_values(
    accessor: WorkbookAccessor,
    address: str,
    max_cell_count: int = MAX_RECOVERY_CELLS,
) -> RangeValuesCaptureResult:
    """Capture values and formulas of one rectangular range.

    Args:
        accessor: Workbook accessor.
        address: ``Sheet!A1:B2`` or a local address on the active sheet.
        max_cell_count: Cap on the range cell count.

    Returns:
        Captured grids with the sheet-qualified address, ``too_large`` or
        ``sheet_missing``.
    """
    sheet, _, areas = resolve_target_sheet(accessor, address)
    if sheet is None:
        return SheetMissingRangeValues()
    if len(areas) != 1:
        raise InvalidStateError.build(
            "invalid_state", f"Value checkpoints need a single range: {address}"
        )
    local = canonical_range(areas[0])
    _, row_count, column_count = parse_range_geometry(local)
    cell_count = row_count * column_count
    if cell_count > max_cell_count:
        logger.info(
            "Value checkpoint skipped for %s: %d cells exceed cap %d.",
            address,
            cell_count,
            max_cell_count,
        )
        return TooLargeRangeValues(cell_count=cell_count)
    grids = accessor.read_range(sheet.id, local)
    accessor.sync()
    return CapturedRangeValues(
        sheet_id=sheet.id,
        address=qualify_address_with_sheet(sheet.name, local),
        state=RangeValuesCheckpointState(
            values=clone_grid(grids.values), formulas=clone_grid(grids.formulas)
        ),
    )


def apply_range_values(
    accessor: WorkbookAccessor,
    address: str,
    values: list[list[Any]],
    formulas: list[list[Any]],
) -> RangeValuesCheckpointState:
    """Write captured grids back to a range and return the grids they replaced."""
    sheet, areas = require_target_sheet(accessor, address)
    if len(areas) != 1:
        raise InvalidStateError.build(
            "invalid_state", f"Value checkpoints need a single range: {address}"
        )
    local = areas[0]
    _, row_count, column_count = parse_range_geometry(local)
    stats = grid_stats(values, formulas)
    if stats.rows != row_count or stats.cols != column_count:
        raise InvalidStateError.build(
            "shape_mismatch",
            (
                f"Captured grid is {stats.rows}x{stats.cols} but {address} "
                f"is {row_count}x{column_count}."
            ),
            sheet=sheet.name,
        )
    prior = accessor.read_range(sheet.id, local)
    accessor.sync()
    accessor.write_range(sheet.id, local, to_restore_values(values, formulas))
    accessor.sync()
    return RangeValuesCheckpointState(
        values=clone_grid(prior.values), formulas=clone_grid(prior.formulas)
    )


__all__ = [
    "CapturedRangeValues",
    "RangeValuesCaptureResult",
    "SheetMissingRangeValues",
    "TooLargeRangeValues",
    "apply_range_values",
    "capture_range_values",
]
