"""Workbook edits that record a checkpoint before they mutate."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from .accessor.base import SheetInfo, WorkbookAccessor
from .comment_state import apply_comment_thread_state
from .conditional_format_state import (
    apply_conditional_format_state,
    capture_conditional_format_state,
)
from .errors import InvalidStateError, RestoreBlockedError, SheetNotFoundError
from .format_state import capture_format_cells_state
from .log import CheckpointLog
from .models import (
    CaptureModifyStructureStateRequest,
    CommentThreadCheckpointState,
    ConditionalFormatCheckpointState,
    FormatCellsCheckpointState,
    ModifyStructureCheckpointState,
    RangeValuesCheckpointState,
    RecoveryCheckpoint,
    RecoveryColumnsAbsentState,
    RecoveryCommentThreadState,
    RecoveryConditionalFormatRule,
    RecoveryFormatAreaState,
    RecoveryFormatBorderState,
    RecoveryFormatSelection,
    RecoveryModifyStructureState,
    RecoveryRowsAbsentState,
    RecoverySheetAbsentState,
)
from .range_state import CapturedRangeValues, SheetMissingRangeValues, capture_range_values
from .shared.a1 import (
    canonical_range,
    column_span_address,
    parse_range_geometry,
    qualify_address_with_sheet,
    quote_sheet_name,
    row_span_address,
)
from .shared.grid import count_changed_cells, grid_stats
from .structure.apply import apply_modify_structure_state
from .structure.capture import capture_modify_structure_state
from .structure.common import estimate_modify_structure_cell_count
from .targets import require_target_sheet
from .types import (
    HorizontalAlignType,
    RecoverySheetVisibility,
    UnderlineStyle,
    VerticalAlignType,
)

logger = logging.getLogger(__name__)


class EditResult(BaseModel):
    """Outcome of an edit: the recorded checkpoint, or a note explaining why not."""

    checkpoint: RecoveryCheckpoint | None = None
    note: str | None = None


class FormatPatch(BaseModel):
    """Format changes to apply uniformly to every cell of the target areas."""

    number_format: str | None = None
    fill_color: str | None = None
    font_color: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline_style: UnderlineStyle | None = None
    font_name: str | None = None
    font_size: float | None = Field(default=None, gt=0)
    horizontal_alignment: HorizontalAlignType | None = None
    vertical_alignment: VerticalAlignType | None = None
    wrap_text: bool | None = None
    column_width: float | None = Field(default=None, gt=0)
    row_height: float | None = Field(default=None, gt=0)
    merge: bool | None = None
    border_top: RecoveryFormatBorderState | None = None
    border_bottom: RecoveryFormatBorderState | None = None
    border_left: RecoveryFormatBorderState | None = None
    border_right: RecoveryFormatBorderState | None = None
    border_inside_horizontal: RecoveryFormatBorderState | None = None
    border_inside_vertical: RecoveryFormatBorderState | None = None

    def selection(self) -> RecoveryFormatSelection:
        """Return the format selection covering every field this patch sets."""
        selected: dict[str, bool] = {}
        for name in type(self).model_fields:
            if getattr(self, name) is None:
                continue
            selected["merged_areas" if name == "merge" else name] = True
        return RecoveryFormatSelection(**selected)

    def to_area(self, address: str) -> RecoveryFormatAreaState:
        """Expand the patch into an area state for ``address``."""
        _, row_count, column_count = parse_range_geometry(address)
        fields: dict[str, Any] = {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name not in _AREA_EXPANDED_FIELDS and getattr(self, name) is not None
        }
        if self.number_format is not None:
            fields["number_format"] = [
                [self.number_format] * column_count for _ in range(row_count)
            ]
        if self.column_width is not None:
            fields["column_widths"] = [self.column_width] * column_count
        if self.row_height is not None:
            fields["row_heights"] = [self.row_height] * row_count
        if self.merge is not None:
            fields["merged_areas"] = [address] if self.merge and row_count * column_count > 1 else []
        return RecoveryFormatAreaState(
            address=address, row_count=row_count, column_count=column_count, **fields
        )


_AREA_EXPANDED_FIELDS = {"number_format", "column_width", "row_height", "merge"}


def _tool_call_id(tool_call_id: str | None) -> str:
    return tool_call_id or str(uuid4())


def _require_sheet(accessor: WorkbookAccessor, sheet_ref: str) -> SheetInfo:
    sheet = accessor.get_sheet(sheet_ref)
    accessor.sync()
    if sheet is None:
        raise SheetNotFoundError.build(
            "sheet_not_found", f"Sheet not found: {sheet_ref}", sheet=sheet_ref
        )
    return sheet


def _record_structure(
    log: CheckpointLog,
    accessor: WorkbookAccessor,
    state: RecoveryModifyStructureState | None,
    address: str,
    tool_call_id: str | None,
) -> EditResult:
    if state is None:
        return EditResult(note="Checkpoint skipped: nothing to capture.")
    checkpoint = log.append(
        tool_name="modify_structure",
        tool_call_id=_tool_call_id(tool_call_id),
        address=address,
        state=ModifyStructureCheckpointState(structure=state),
        changed_count=estimate_modify_structure_cell_count(state),
        workbook_id=accessor.workbook_id,
    )
    return EditResult(checkpoint=checkpoint)


# Sheets


def rename_sheet(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    new_name: str,
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Rename a sheet, recording its previous name."""
    sheet = _require_sheet(accessor, sheet_ref)
    state = capture_modify_structure_state(
        accessor, CaptureModifyStructureStateRequest(kind="sheet_name", sheet_ref=sheet.id)
    )
    accessor.set_sheet_name(sheet.id, new_name)
    accessor.sync()
    return _record_structure(log, accessor, state, quote_sheet_name(new_name), tool_call_id)


def set_sheet_visibility(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    visibility: RecoverySheetVisibility,
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Change sheet visibility, recording the previous visibility."""
    sheet = _require_sheet(accessor, sheet_ref)
    state = capture_modify_structure_state(
        accessor,
        CaptureModifyStructureStateRequest(kind="sheet_visibility", sheet_ref=sheet.id),
    )
    accessor.set_sheet_visibility(sheet.id, visibility)
    accessor.sync()
    return _record_structure(log, accessor, state, quote_sheet_name(sheet.name), tool_call_id)


def add_sheet(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    name: str,
    *,
    position: int | None = None,
    tool_call_id: str | None = None,
) -> EditResult:
    """Add a sheet; the checkpoint removes it again."""
    sheet = accessor.add_sheet(name)
    if position is not None:
        accessor.set_sheet_position(sheet.id, position)
    accessor.sync()
    state = capture_modify_structure_state(
        accessor, CaptureModifyStructureStateRequest(kind="sheet_absent", sheet_ref=sheet.id)
    )
    return _record_structure(log, accessor, state, quote_sheet_name(sheet.name), tool_call_id)


def delete_sheet(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    *,
    force: bool = False,
    tool_call_id: str | None = None,
) -> EditResult:
    """Delete a sheet, recording its position, visibility and data.

    Raises:
        RestoreBlockedError: The sheet's data exceeds the capture cap and
            ``force`` is not set.
    """
    sheet = _require_sheet(accessor, sheet_ref)
    target = RecoverySheetAbsentState(
        sheet_id=sheet.id, sheet_name=sheet.name, allow_data_delete=True
    )
    return _apply_destructive(
        accessor,
        log,
        target,
        quote_sheet_name(sheet.name),
        force=force,
        fallback=lambda: accessor.delete_sheet(sheet.id),
        tool_call_id=tool_call_id,
    )


# Rows and columns


def insert_rows(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    position: int,
    count: int,
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Insert ``count`` rows before ``position``; the checkpoint removes them."""
    sheet = _require_sheet(accessor, sheet_ref)
    state = capture_modify_structure_state(
        accessor,
        CaptureModifyStructureStateRequest(
            kind="rows_absent", sheet_ref=sheet.id, position=position, count=count
        ),
    )
    accessor.insert_rows(sheet.id, position, count)
    accessor.sync()
    address = qualify_address_with_sheet(sheet.name, row_span_address(position, count))
    return _record_structure(log, accessor, state, address, tool_call_id)


def delete_rows(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    position: int,
    count: int,
    *,
    force: bool = False,
    tool_call_id: str | None = None,
) -> EditResult:
    """Delete rows, recording their data so they can be inserted back."""
    sheet = _require_sheet(accessor, sheet_ref)
    target = RecoveryRowsAbsentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=position,
        count=count,
        allow_data_delete=True,
    )
    address = qualify_address_with_sheet(sheet.name, row_span_address(position, count))
    return _apply_destructive(
        accessor,
        log,
        target,
        address,
        force=force,
        fallback=lambda: accessor.delete_rows(sheet.id, position, count),
        tool_call_id=tool_call_id,
    )


def insert_columns(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    position: int,
    count: int,
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Insert ``count`` columns before ``position``; the checkpoint removes them."""
    sheet = _require_sheet(accessor, sheet_ref)
    state = capture_modify_structure_state(
        accessor,
        CaptureModifyStructureStateRequest(
            kind="columns_absent", sheet_ref=sheet.id, position=position, count=count
        ),
    )
    accessor.insert_columns(sheet.id, position, count)
    accessor.sync()
    address = qualify_address_with_sheet(sheet.name, column_span_address(position, count))
    return _record_structure(log, accessor, state, address, tool_call_id)


def delete_columns(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    sheet_ref: str,
    position: int,
    count: int,
    *,
    force: bool = False,
    tool_call_id: str | None = None,
) -> EditResult:
    """Delete columns, recording their data so they can be inserted back."""
    sheet = _require_sheet(accessor, sheet_ref)
    target = RecoveryColumnsAbsentState(
        sheet_id=sheet.id,
        sheet_name=sheet.name,
        position=position,
        count=count,
        allow_data_delete=True,
    )
    address = qualify_address_with_sheet(sheet.name, column_span_address(position, count))
    return _apply_destructive(
        accessor,
        log,
        target,
        address,
        force=force,
        fallback=lambda: accessor.delete_columns(sheet.id, position, count),
        tool_call_id=tool_call_id,
    )


def _apply_destructive(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    target: RecoveryModifyStructureState,
    address: str,
    *,
    force: bool,
    fallback: Callable[[], None],
    tool_call_id: str | None,
) -> EditResult:
    """Delete through the structure engine so the prior state is captured.

    Oversize data blocks the delete unless ``force`` is set, in which case
    the delete runs without a checkpoint.
    """
    try:
        prior = apply_modify_structure_state(
            accessor, target, max_cell_count=log.max_cell_count
        )
    except RestoreBlockedError as exc:
        if exc.code != "too_large" or not force:
            raise
        logger.warning("Forced delete of %s without checkpoint: %s", address, exc)
        fallback()
        accessor.sync()
        return EditResult(note=f"Checkpoint skipped: {exc}")
    return _record_structure(log, accessor, prior, address, tool_call_id)


# Cells


def write_values(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    address: str,
    values: Sequence[Sequence[Any]],
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Write a grid of values (strings starting with ``=`` are formulas).

    Raises:
        InvalidStateError: The grid does not match the address shape.
        SheetNotFoundError: The addressed sheet does not exist.
    """
    captured = capture_range_values(accessor, address, log.max_cell_count)
    if isinstance(captured, SheetMissingRangeValues):
        raise SheetNotFoundError.build(
            "sheet_not_found", f"Sheet not found for address: {address}"
        )
    sheet, areas = require_target_sheet(accessor, address)
    local = canonical_range(areas[0])
    _, row_count, column_count = parse_range_geometry(local)
    stats = grid_stats(values)
    if stats.rows != row_count or stats.cols != column_count or any(
        len(row) != column_count for row in values
    ):
        raise InvalidStateError.build(
            "shape_mismatch",
            f"Values are {stats.rows}x{stats.cols} but {address} is {row_count}x{column_count}.",
            sheet=sheet.name,
        )
    accessor.write_range(sheet.id, local, values)
    accessor.sync()
    if not isinstance(captured, CapturedRangeValues):
        return EditResult(
            note=(
                f"Checkpoint skipped: {captured.cell_count:,} cells exceed the "
                f"{log.max_cell_count:,}-cell limit."
            )
        )
    after = accessor.read_range(sheet.id, local)
    accessor.sync()
    before: RangeValuesCheckpointState = captured.state
    changed_count = count_changed_cells(
        before.values, before.formulas, after.values, after.formulas
    )
    checkpoint = log.append(
        tool_name="write_cells",
        tool_call_id=_tool_call_id(tool_call_id),
        address=captured.address,
        state=before,
        changed_count=changed_count,
        workbook_id=accessor.workbook_id,
    )
    return EditResult(checkpoint=checkpoint)


def format_cells(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    address: str,
    patch: FormatPatch,
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Apply a format patch to one or more areas on a sheet."""
    selection = patch.selection()
    captured = capture_format_cells_state(accessor, address, selection, log.max_cell_count)
    sheet, areas = require_target_sheet(accessor, address)
    for area in areas:
        area_state = patch.to_area(canonical_range(area))
        accessor.apply_format_area(sheet.id, area_state, selection)
    accessor.sync()
    if not captured.supported or captured.state is None:
        return EditResult(note=f"Checkpoint skipped: {captured.reason}")
    state = captured.state
    checkpoint = log.append(
        tool_name="format_cells",
        tool_call_id=_tool_call_id(tool_call_id),
        address=",".join(area.address for area in state.areas),
        state=FormatCellsCheckpointState(format=state),
        changed_count=sum(area.row_count * area.column_count for area in state.areas),
        workbook_id=accessor.workbook_id,
    )
    return EditResult(checkpoint=checkpoint)


def set_conditional_formats(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    address: str,
    rules: Sequence[RecoveryConditionalFormatRule],
    *,
    tool_call_id: str | None = None,
) -> EditResult:
    """Replace the conditional-format rules intersecting a range."""
    sheet, areas = require_target_sheet(accessor, address)
    local = canonical_range(areas[0])
    qualified = qualify_address_with_sheet(sheet.name, local)
    captured = capture_conditional_format_state(accessor, qualified)
    if not captured.supported:
        accessor.replace_conditional_formats(sheet.id, local, rules)
        accessor.sync()
        return EditResult(note=f"Checkpoint skipped: {captured.reason}")
    prior = apply_conditional_format_state(accessor, qualified, rules)
    _, row_count, column_count = parse_range_geometry(local)
    cell_count = row_count * column_count
    checkpoint = log.append(
        tool_name="conditional_format",
        tool_call_id=_tool_call_id(tool_call_id),
        address=qualified,
        state=ConditionalFormatCheckpointState(rules=prior, cell_count=cell_count),
        changed_count=cell_count,
        workbook_id=accessor.workbook_id,
    )
    return EditResult(checkpoint=checkpoint)


def set_comment(
    accessor: WorkbookAccessor,
    log: CheckpointLog,
    address: str,
    content: str | None,
    *,
    author: str | None = None,
    tool_call_id: str | None = None,
) -> EditResult:
    """Add or replace the comment at the first cell of ``address``.

    ``content`` None removes the comment. The prior comment is recorded as a
    checkpoint either way.
    """
    sheet, areas = require_target_sheet(accessor, address)
    qualified = qualify_address_with_sheet(sheet.name, canonical_range(areas[0]))
    if content is None:
        thread = RecoveryCommentThreadState(exists=False)
    else:
        thread = RecoveryCommentThreadState(exists=True, content=content, author=author)
    prior = apply_comment_thread_state(accessor, qualified, thread)
    checkpoint = log.append(
        tool_name="comments",
        tool_call_id=_tool_call_id(tool_call_id),
        address=qualified,
        state=CommentThreadCheckpointState(thread=prior),
        changed_count=1,
        workbook_id=accessor.workbook_id,
    )
    return EditResult(checkpoint=checkpoint)


__all__ = [
    "EditResult",
    "FormatPatch",
    "add_sheet",
    "delete_columns",
    "delete_rows",
    "delete_sheet",
    "format_cells",
    "insert_columns",
    "insert_rows",
    "rename_sheet",
    "set_comment",
    "set_conditional_formats",
    "set_sheet_visibility",
    "write_values",
]
