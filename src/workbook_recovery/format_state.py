from __future__ import annotations

from collections.abc import Sequence
import logging

from .accessor.base import WorkbookAccessor
from .constants import MAX_RECOVERY_CELLS
from .errors import InvalidStateError
from .models import (
    FORMAT_BORDER_FACETS,
    FORMAT_CELL_FACETS,
    FormatCaptureResult,
    RecoveryFormatAreaState,
    RecoveryFormatRangeState,
    RecoveryFormatSelection,
)
from .shared.a1 import (
    canonical_range,
    local_address_part,
    parse_range_geometry,
    qualify_address_with_sheet,
)
from .targets import require_target_sheet

logger = logging.getLogger(__name__)

_AREA_SCALAR_FACETS = FORMAT_CELL_FACETS + FORMAT_BORDER_FACETS


def has_selected_format_property(selection: RecoveryFormatSelection) -> bool:
    """Return True when at least one facet is selected."""
    return bool(selection.selected_facets())


def estimate_format_capture_cell_count(
    areas: Sequence[tuple[int, int]],
    selection: RecoveryFormatSelection,
) -> int:
    """Estimate the snapshot size of a format capture in cell units.

    Args:
        areas: ``(row_count, column_count)`` of each area.
        selection: Selected facets.

    Returns:
        Grid facets count per cell, column widths per column, row heights per
        row, merged areas at most one per two cells, and scalar facets one
        unit per area.
    """
    include_scalar_units = any(getattr(selection, facet) for facet in _AREA_SCALAR_FACETS)
    total = 0
    for row_count, column_count in areas:
        cell_count = row_count * column_count
        if selection.number_format:
            total += cell_count
        if selection.column_width:
            total += column_count
        if selection.row_height:
            total += row_count
        if selection.merged_areas:
            total += cell_count if cell_count <= 1 else cell_count // 2
        if include_scalar_units:
            total += 1
    return total


def capture_format_cells_state(
    accessor: WorkbookAccessor,
    address: str,
    selection: RecoveryFormatSelection,
    max_cell_count: int = MAX_RECOVERY_CELLS,
) -> FormatCaptureResult:
    """Capture the selected format facets of one or more areas on a sheet.

    Args:
        accessor: Workbook accessor.
        address: Single or comma-separated areas, optionally sheet-qualified.
        selection: Facets to capture.
        max_cell_count: Cap on the estimated snapshot size.

    Returns:
        Supported result with the range state, or an unsupported result with
        a reason.

    Raises:
        InvalidStateError: Areas span several sheets.
        SheetNotFoundError: The addressed sheet does not exist.
    """
    if not has_selected_format_property(selection):
        return FormatCaptureResult(
            supported=False, reason="No restorable format properties were selected."
        )
    sheet, raw_areas = require_target_sheet(accessor, address)
    areas = [canonical_range(area) for area in raw_areas]
    shapes = [parse_range_geometry(area)[1:] for area in areas]
    cell_count = estimate_format_capture_cell_count(shapes, selection)
    if cell_count > max_cell_count:
        logger.info("Format capture skipped for %s: %d units.", address, cell_count)
        return FormatCaptureResult(
            supported=False,
            reason=(
                "Format checkpoint capture skipped: snapshot size exceeds "
                f"{max_cell_count:,} units."
            ),
        )
    area_states: list[RecoveryFormatAreaState] = []
    for area in areas:
        qualified = qualify_address_with_sheet(sheet.name, area)
        captured = accessor.capture_format_area(sheet.id, qualified, selection)
        if captured.area is None:
            return FormatCaptureResult(
                supported=False,
                reason=captured.reason or "Format checkpoint capture failed.",
            )
        area_states.append(captured.area.model_copy(update={"address": qualified}))
    accessor.sync()
    return FormatCaptureResult(
        supported=True,
        state=RecoveryFormatRangeState(
            selection=selection, areas=area_states, cell_count=cell_count
        ),
    )


def apply_format_cells_state(
    accessor: WorkbookAccessor, state: RecoveryFormatRangeState
) -> RecoveryFormatRangeState:
    """Apply a captured format state and return the state it replaced.

    Raises:
        InvalidStateError: The current format cannot be captured, or an area
            no longer matches its recorded shape.
    """
    address = ",".join(area.address for area in state.areas)
    current = capture_format_cells_state(
        accessor,
        address,
        state.selection,
        max_cell_count=max(state.cell_count, MAX_RECOVERY_CELLS),
    )
    if not current.supported or current.state is None:
        raise InvalidStateError.build(
            "unsupported",
            current.reason or "Format checkpoint cannot be restored safely.",
        )
    sheet, _ = require_target_sheet(accessor, address)
    for area in state.areas:
        _, row_count, column_count = parse_range_geometry(local_address_part(area.address))
        if row_count != area.row_count or column_count != area.column_count:
            raise InvalidStateError.build(
                "shape_mismatch",
                "Format checkpoint range shape changed and cannot be restored safely.",
                sheet=sheet.name,
            )
    for area in state.areas:
        accessor.apply_format_area(sheet.id, area, state.selection)
    accessor.sync()
    return current.state


__all__ = [
    "apply_format_cells_state",
    "capture_format_cells_state",
    "estimate_format_capture_cell_count",
    "has_selected_format_property",
]
