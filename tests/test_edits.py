from __future__ import annotations

from openpyxl import Workbook
import pytest

from workbook_recovery.accessor import OpenpyxlWorkbookAccessor
from workbook_recovery.edits import (
    FormatPatch,
    add_sheet,
    delete_columns,
    delete_rows,
    delete_sheet,
    format_cells,
    insert_columns,
    insert_rows,
    rename_sheet,
    set_comment,
    set_conditional_formats,
    set_sheet_visibility,
    write_values,
)
from workbook_recovery.errors import (
    InvalidStateError,
    RestoreBlockedError,
    SheetNotFoundError,
)
from workbook_recovery.log import CheckpointLog
from workbook_recovery.models import (
    RecoveryCellValueRule,
    RecoveryFormatBorderState,
    RecoveryIconSetRule,
)


def test_write_values_records_prior_grid(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    sheet["A1"] = 1
    result = write_values(accessor, log, "Data!A1:B1", [[1, "=A1*2"]])

    assert sheet["B1"].value == "=A1*2"
    checkpoint = result.checkpoint
    assert checkpoint is not None
    assert checkpoint.tool_name == "write_cells"
    assert checkpoint.address == "Data!A1:B1"
    assert checkpoint.changed_count == 1
    assert checkpoint.workbook_id == accessor.workbook_id

    log.restore(accessor, checkpoint.id)
    assert sheet["A1"].value == 1
    assert sheet["B1"].value is None


def test_write_values_over_cap_writes_without_checkpoint(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    log.max_cell_count = 2
    result = write_values(accessor, log, "Data!A1:C1", [[1, 2, 3]])
    assert result.checkpoint is None
    assert result.note == "Checkpoint skipped: 3 cells exceed the 2-cell limit."
    assert workbook["Data"]["C1"].value == 3
    assert log.list_checkpoints() == []


def test_write_values_validates_input(
    accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    with pytest.raises(SheetNotFoundError):
        write_values(accessor, log, "Nope!A1", [[1]])
    with pytest.raises(InvalidStateError, match="1x1 but Data!A1:B1 is 1x2"):
        write_values(accessor, log, "Data!A1:B1", [[1]])
    assert log.list_checkpoints() == []


def test_rename_and_visibility_are_undoable(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    add_sheet(accessor, log, "Notes")
    renamed = rename_sheet(accessor, log, "Data", "Budget 2024")
    assert renamed.checkpoint is not None
    assert renamed.checkpoint.address == "'Budget 2024'"
    hidden = set_sheet_visibility(accessor, log, "Notes", "Hidden")
    assert hidden.checkpoint is not None
    assert workbook["Notes"].sheet_state == "hidden"

    log.restore(accessor, hidden.checkpoint.id)
    log.restore(accessor, renamed.checkpoint.id)
    assert workbook.sheetnames == ["Data", "Notes"]
    assert workbook["Notes"].sheet_state == "visible"


def test_add_sheet_checkpoint_removes_it(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    result = add_sheet(accessor, log, "Scratch", position=0)
    assert workbook.sheetnames == ["Scratch", "Data"]
    assert result.checkpoint is not None
    assert result.checkpoint.changed_count == 1

    log.restore(accessor, result.checkpoint.id)
    assert workbook.sheetnames == ["Data"]


def test_delete_sheet_captures_data(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    add_sheet(accessor, log, "Old")
    workbook["Old"]["A1"] = "keep me"
    workbook["Old"]["B3"] = 7
    result = delete_sheet(accessor, log, "Old")
    assert workbook.sheetnames == ["Data"]
    assert result.checkpoint is not None
    assert result.checkpoint.changed_count == 6

    restored = log.restore(accessor, result.checkpoint.id)
    assert workbook.sheetnames == ["Data", "Old"]
    assert workbook["Old"]["A1"].value == "keep me"
    assert workbook["Old"]["B3"].value == 7
    assert restored.inverse is not None


def test_delete_sheet_over_cap_requires_force(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    add_sheet(accessor, log, "Big")
    workbook["Big"]["A1"] = 1
    workbook["Big"]["D4"] = 2
    log.max_cell_count = 10
    with pytest.raises(RestoreBlockedError) as excinfo:
        delete_sheet(accessor, log, "Big")
    assert excinfo.value.code == "too_large"
    assert "Big" in workbook.sheetnames

    forced = delete_sheet(accessor, log, "Big", force=True)
    assert forced.checkpoint is None
    assert forced.note is not None
    assert forced.note.startswith("Checkpoint skipped:")
    assert "Big" not in workbook.sheetnames


def test_row_edits_roundtrip(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    for row in range(1, 6):
        sheet.cell(row=row, column=1, value=row)

    inserted = insert_rows(accessor, log, "Data", 2, 2)
    assert sheet["A4"].value == 2
    assert inserted.checkpoint is not None
    assert inserted.checkpoint.address == "Data!2:3"
    log.restore(accessor, inserted.checkpoint.id)
    assert [sheet.cell(row=row, column=1).value for row in range(1, 6)] == [1, 2, 3, 4, 5]

    deleted = delete_rows(accessor, log, "Data", 2, 2)
    assert sheet["A2"].value == 4
    assert deleted.checkpoint is not None
    log.restore(accessor, deleted.checkpoint.id)
    assert [sheet.cell(row=row, column=1).value for row in range(1, 6)] == [1, 2, 3, 4, 5]


def test_column_edits_roundtrip(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    sheet["A1"], sheet["B1"], sheet["C1"] = "a", "b", "c"

    inserted = insert_columns(accessor, log, "Data", 1, 1)
    assert sheet["B1"].value == "a"
    assert inserted.checkpoint is not None
    assert inserted.checkpoint.address == "Data!A:A"
    log.restore(accessor, inserted.checkpoint.id)

    deleted = delete_columns(accessor, log, "Data", 2, 2)
    assert sheet["B1"].value is None
    assert deleted.checkpoint is not None
    log.restore(accessor, deleted.checkpoint.id)
    assert [sheet["A1"].value, sheet["B1"].value, sheet["C1"].value] == ["a", "b", "c"]


def test_structure_edits_on_missing_sheet(
    accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    with pytest.raises(SheetNotFoundError):
        rename_sheet(accessor, log, "Nope", "New")
    with pytest.raises(SheetNotFoundError):
        delete_rows(accessor, log, "Nope", 1, 1)


def test_format_patch_selection_and_area() -> None:
    patch = FormatPatch(
        number_format="0.00",
        bold=True,
        column_width=18,
        merge=True,
        border_top=RecoveryFormatBorderState(style="thin", color="#000000"),
    )
    selection = patch.selection()
    assert selection.selected_facets() == [
        "number_format",
        "bold",
        "column_width",
        "merged_areas",
        "border_top",
    ]
    area = patch.to_area("A1:B2")
    assert area.number_format == [["0.00", "0.00"], ["0.00", "0.00"]]
    assert area.column_widths == [18, 18]
    assert area.merged_areas == ["A1:B2"]
    assert area.bold is True


def test_format_cells_is_undoable(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    patch = FormatPatch(bold=True, fill_color="#FFFF00", number_format="0.0")
    result = format_cells(accessor, log, "Data!A1:B2,D1", patch)

    assert sheet["B2"].font.bold is True
    assert sheet["D1"].number_format == "0.0"
    assert result.checkpoint is not None
    assert result.checkpoint.address == "Data!A1:B2,Data!D1"
    assert result.checkpoint.changed_count == 5

    log.restore(accessor, result.checkpoint.id)
    assert sheet["B2"].font.bold is False
    assert sheet["A1"].fill.fill_type is None
    assert sheet["D1"].number_format == "General"


def test_format_cells_mixed_state_skips_checkpoint(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    format_cells(accessor, log, "Data!A1", FormatPatch(italic=True))
    result = format_cells(accessor, log, "Data!A1:A2", FormatPatch(italic=True))
    assert result.checkpoint is None
    assert result.note is not None
    assert "italic state is mixed" in result.note
    assert sheet["A2"].font.italic is True


def test_set_conditional_formats_is_undoable(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    rule = RecoveryCellValueRule(
        operator="GreaterThan", formula1="=100", fill_color="#FFC7CE"
    )
    result = set_conditional_formats(accessor, log, "Data!B2:B20", [rule])
    assert result.checkpoint is not None
    assert result.checkpoint.changed_count == 19
    assert len(list(workbook["Data"].conditional_formatting)) == 1

    log.restore(accessor, result.checkpoint.id)
    assert list(workbook["Data"].conditional_formatting) == []


def test_set_conditional_formats_rejects_unwritable_rules(
    accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    rule = RecoveryIconSetRule.model_validate(
        {
            "iconSet": {
                "style": "FiveBoxes",
                "reverseIconOrder": False,
                "showIconOnly": False,
                "criteria": [
                    {"type": "Number", "operator": "GreaterThan", "formula": "=1"}
                ],
            }
        }
    )
    with pytest.raises(InvalidStateError, match="FiveBoxes"):
        set_conditional_formats(accessor, log, "Data!A1:A3", [rule])
    assert log.list_checkpoints() == []


def test_set_comment_is_undoable(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    sheet = workbook["Data"]
    added = set_comment(accessor, log, "Data!c3", "Check totals", author="Ana")
    assert added.checkpoint is not None
    assert added.checkpoint.tool_name == "comments"
    assert added.checkpoint.address == "Data!C3"
    assert added.checkpoint.changed_count == 1
    assert sheet["C3"].comment.text == "Check totals"

    removed = set_comment(accessor, log, "Data!C3", None)
    assert sheet["C3"].comment is None
    assert removed.checkpoint is not None

    restored = log.restore(accessor, removed.checkpoint.id)
    assert sheet["C3"].comment.text == "Check totals"
    assert sheet["C3"].comment.author == "Ana"
    assert restored.inverse is not None
    assert restored.inverse.state.snapshot_kind == "comment_thread"

    log.restore(accessor, added.checkpoint.id)
    assert sheet["C3"].comment is None


def test_set_comment_on_missing_sheet(
    accessor: OpenpyxlWorkbookAccessor, log: CheckpointLog
) -> None:
    with pytest.raises(SheetNotFoundError):
        set_comment(accessor, log, "Nope!A1", "x")
    assert log.list_checkpoints() == []
