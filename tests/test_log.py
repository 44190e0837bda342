from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime
import itertools
import json
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.comments import Comment
import pytest

from workbook_recovery.accessor import OpenpyxlWorkbookAccessor
from workbook_recovery.edits import write_values
from workbook_recovery.errors import (
    CheckpointNotFoundError,
    InvalidStateError,
    RestoreBlockedError,
    WorkbookMismatchError,
)
from workbook_recovery.format_state import capture_format_cells_state
from workbook_recovery.log import CheckpointLog
from workbook_recovery.models import (
    CommentThreadCheckpointState,
    ConditionalFormatCheckpointState,
    FormatCellsCheckpointState,
    ModifyStructureCheckpointState,
    RangeValuesCheckpointState,
    RecoveryCommentThreadState,
    RecoveryCustomRule,
    RecoveryFormatSelection,
    RecoverySheetNameState,
    RecoverySheetPresentState,
)


def _counter(start: int = 1) -> Iterator[int]:
    return itertools.count(start)


def _make_log(path: Path, workbook_id: str | None = "wb-1", **kwargs: Any) -> CheckpointLog:
    clock = _counter(1_000)
    ids = _counter(1)
    return CheckpointLog(
        path,
        workbook_id=workbook_id,
        now=lambda: next(clock),
        create_id=lambda: f"cp-{next(ids)}",
        **kwargs,
    )


def _values_state(value: object) -> RangeValuesCheckpointState:
    return RangeValuesCheckpointState(values=[[value]], formulas=[[""]])


def _append_values(log: CheckpointLog, value: object, address: str = "Data!A1") -> str:
    checkpoint = log.append(
        tool_name="write_cells",
        tool_call_id=f"call-{value}",
        address=address,
        state=_values_state(value),
        changed_count=1,
    )
    return checkpoint.id


def test_append_persists_newest_first(tmp_path: Path) -> None:
    path = tmp_path / "log.json"
    log = _make_log(path)
    _append_values(log, 1)
    _append_values(log, 2)

    assert [item.id for item in log.list_checkpoints()] == ["cp-2", "cp-1"]
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert [item["id"] for item in payload["checkpoints"]] == ["cp-2", "cp-1"]
    assert payload["checkpoints"][0]["toolName"] == "write_cells"
    assert payload["checkpoints"][0]["workbookId"] == "wb-1"

    reopened = CheckpointLog(path, workbook_id="wb-1")
    assert [item.id for item in reopened.list_checkpoints(limit=1)] == ["cp-2"]
    assert reopened.get("cp-1") is not None


def test_retention_evicts_oldest(tmp_path: Path) -> None:
    log = _make_log(tmp_path / "log.json", retention_limit=5)
    for value in range(7):
        _append_values(log, value)
    ids = [item.id for item in log.list_checkpoints()]
    assert ids == ["cp-7", "cp-6", "cp-5", "cp-4", "cp-3"]


def test_retention_limit_is_clamped(tmp_path: Path) -> None:
    assert _make_log(tmp_path / "a.json", retention_limit=2).retention_limit == 5
    assert _make_log(tmp_path / "b.json", retention_limit="10").retention_limit == 120
    assert _make_log(tmp_path / "c.json", retention_limit=42.9).retention_limit == 42


def test_load_drops_corrupt_entries_and_sorts(tmp_path: Path) -> None:
    path = tmp_path / "log.json"
    good_old = {
        "id": "old",
        "toolName": "write_cells",
        "toolCallId": "c-old",
        "at": 10,
        "address": "Data!A1",
        "changedCount": 1,
        "workbookId": "wb-1",
        "state": {"snapshotKind": "range_values", "values": [[1]], "formulas": [[""]]},
    }
    good_new = {**good_old, "id": "new", "at": 20}
    corrupt = {**good_old, "id": "bad", "state": {"snapshotKind": "mystery"}}
    path.write_text(
        json.dumps({"version": 1, "checkpoints": [good_old, corrupt, good_new, "junk"]}),
        encoding="utf-8",
    )
    log = CheckpointLog(path, workbook_id="wb-1")
    assert [item.id for item in log.list_checkpoints()] == ["new", "old"]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"version": 99, "checkpoints": []}),
        json.dumps({"version": 1, "checkpoints": {"id": "x"}}),
        json.dumps(["version", 1]),
    ],
)
def test_load_ignores_unreadable_logs(tmp_path: Path, content: str) -> None:
    path = tmp_path / "log.json"
    path.write_text(content, encoding="utf-8")
    assert CheckpointLog(path).list_checkpoints() == []


def test_other_workbooks_are_hidden_but_kept(tmp_path: Path) -> None:
    path = tmp_path / "log.json"
    first = _make_log(path, workbook_id="wb-1")
    _append_values(first, 1)
    second = CheckpointLog(path, workbook_id="wb-2")
    second.append(
        tool_name="write_cells",
        tool_call_id="call-x",
        address="Data!A1",
        state=_values_state("x"),
    )
    assert len(second.list_checkpoints()) == 1
    assert second.get("cp-1") is None
    assert second.clear() == 1
    assert [item.id for item in CheckpointLog(path).list_checkpoints()] == ["cp-1"]


def test_delete_and_clear(tmp_path: Path) -> None:
    log = _make_log(tmp_path / "log.json")
    _append_values(log, 1)
    _append_values(log, 2)
    assert log.delete("cp-1")
    assert not log.delete("cp-1")
    assert log.clear() == 1
    assert log.list_checkpoints() == []


def test_restore_range_values_appends_inverse(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"]["A1"] = "after"
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    checkpoint_id = _append_values(log, "before")

    result = log.restore(accessor, checkpoint_id)

    assert workbook["Data"]["A1"].value == "before"
    assert result.changed_count == 1
    assert result.inverse is not None
    inverse = result.inverse
    assert inverse.tool_name == "restore_snapshot"
    assert inverse.tool_call_id == f"restore:{checkpoint_id}"
    assert inverse.restored_from_snapshot_id == checkpoint_id
    assert inverse.state == _values_state("after")
    assert [item.id for item in log.list_checkpoints()] == [inverse.id, checkpoint_id]

    log.restore(accessor, inverse.id)
    assert workbook["Data"]["A1"].value == "after"


def test_restore_from_disk_keeps_date_values(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    stamp = datetime(2024, 1, 2, 3, 4, 5)
    sheet["A1"] = stamp
    sheet["B1"] = date(2024, 3, 4)
    path = tmp_path / "log.json"
    log = _make_log(path, workbook_id=accessor.workbook_id)
    write_values(accessor, log, "Data!A1:B1", [["x", "y"]])

    reloaded = CheckpointLog(path, workbook_id=accessor.workbook_id)
    reloaded.restore_latest(accessor)

    assert sheet["A1"].value == stamp
    assert isinstance(sheet["A1"].value, datetime)
    assert sheet["B1"].value == date(2024, 3, 4)


def test_comment_checkpoint_restores_from_disk(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet["D4"].comment = Comment("edited", "Ana")
    path = tmp_path / "log.json"
    log = _make_log(path, workbook_id=accessor.workbook_id)
    log.append(
        tool_name="comments",
        tool_call_id="call-1",
        address="Data!D4",
        state=CommentThreadCheckpointState(
            thread=RecoveryCommentThreadState(exists=True, content="original", author="Bo")
        ),
        changed_count=1,
        workbook_id=accessor.workbook_id,
    )

    reloaded = CheckpointLog(path, workbook_id=accessor.workbook_id)
    result = reloaded.restore_latest(accessor)

    assert sheet["D4"].comment.text == "original"
    assert sheet["D4"].comment.author == "Bo"
    assert result.inverse is not None
    assert result.inverse.tool_name == "restore_snapshot"
    assert result.inverse.state == CommentThreadCheckpointState(
        thread=RecoveryCommentThreadState(exists=True, content="edited", author="Ana")
    )


def test_restore_skips_inverse_over_cell_cap(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(
        tmp_path / "log.json", workbook_id=accessor.workbook_id, max_cell_count=1
    )
    checkpoint = log.append(
        tool_name="write_cells",
        tool_call_id="call-1",
        address="Data!A1:B1",
        state=RangeValuesCheckpointState(values=[[1, 2]], formulas=[["", ""]]),
    )
    result = log.restore(accessor, checkpoint.id)
    assert result.inverse is None
    assert workbook["Data"]["B1"].value == 2
    assert len(log.list_checkpoints()) == 1


def test_restore_structure_reuses_changed_count(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    sheet = accessor.get_sheet_by_name("Data")
    assert sheet is not None
    accessor.set_sheet_name(sheet.id, "Renamed")
    checkpoint = log.append(
        tool_name="modify_structure",
        tool_call_id="call-1",
        address="Renamed",
        state=ModifyStructureCheckpointState(
            structure=RecoverySheetNameState(sheet_id=sheet.id, name="Data")
        ),
        changed_count=1,
    )

    result = log.restore(accessor, checkpoint.id)

    assert workbook.sheetnames == ["Data"]
    assert result.changed_count == 1
    assert result.inverse is not None
    assert result.inverse.state == ModifyStructureCheckpointState(
        structure=RecoverySheetNameState(sheet_id=sheet.id, name="Renamed")
    )


def test_restore_format_checkpoint(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    captured = capture_format_cells_state(
        accessor, "Data!A1:B2", RecoveryFormatSelection(number_format=True)
    )
    assert captured.state is not None
    workbook["Data"]["A1"].number_format = "0.00%"
    checkpoint = log.append(
        tool_name="format_cells",
        tool_call_id="call-1",
        address="Data!A1:B2",
        state=FormatCellsCheckpointState(format=captured.state),
        changed_count=4,
    )
    result = log.restore(accessor, checkpoint.id)
    assert workbook["Data"]["A1"].number_format == "General"
    assert result.changed_count == 4
    assert result.inverse is not None
    inverse_state = result.inverse.state
    assert isinstance(inverse_state, FormatCellsCheckpointState)
    assert inverse_state.format.areas[0].number_format == [
        ["0.00%", "General"],
        ["General", "General"],
    ]


def test_restore_conditional_format_checkpoint(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    rule = RecoveryCustomRule(formula="=$A1>0", bold=True, applies_to_address="A1:A5")
    checkpoint = log.append(
        tool_name="conditional_format",
        tool_call_id="call-1",
        address="Data!A1:A5",
        state=ConditionalFormatCheckpointState(rules=[rule], cell_count=5),
        changed_count=5,
    )
    result = log.restore(accessor, checkpoint.id)
    assert result.inverse is not None
    assert result.inverse.state == ConditionalFormatCheckpointState(rules=[], cell_count=5)
    restored = log.restore(accessor, result.inverse.id)
    assert restored.inverse is not None
    inverse_state = restored.inverse.state
    assert isinstance(inverse_state, ConditionalFormatCheckpointState)
    assert inverse_state.rules == [rule]


def test_restore_refuses_other_workbook(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    path = tmp_path / "log.json"
    foreign = _make_log(path, workbook_id="someone-else")
    checkpoint_id = _append_values(foreign, 1)
    log = CheckpointLog(path, workbook_id=accessor.workbook_id)
    with pytest.raises(WorkbookMismatchError) as excinfo:
        log.restore(accessor, checkpoint_id)
    assert excinfo.value.code == "workbook_mismatch"


def test_restore_refuses_missing_identity(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=None)
    checkpoint_id = _append_values(log, 1)
    with pytest.raises(WorkbookMismatchError, match="identity is missing"):
        log.restore(accessor, checkpoint_id)


def test_restore_unknown_checkpoint(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    with pytest.raises(CheckpointNotFoundError):
        log.restore(accessor, "nope")
    with pytest.raises(CheckpointNotFoundError, match="No recovery checkpoints"):
        log.restore_latest(accessor)


def test_restore_latest_picks_newest(
    tmp_path: Path, workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    _append_values(log, "first")
    _append_values(log, "second")
    result = log.restore_latest(accessor)
    assert result.restored.id == "cp-2"
    assert workbook["Data"]["A1"].value == "second"


def test_refused_restore_leaves_log_unchanged(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    sheet = accessor.get_sheet_by_name("Data")
    assert sheet is not None
    checkpoint = log.append(
        tool_name="modify_structure",
        tool_call_id="call-1",
        address="Data",
        state=ModifyStructureCheckpointState(
            structure=RecoverySheetPresentState(
                sheet_id="elsewhere",
                sheet_name="Data",
                position=0,
                visibility="Visible",
            )
        ),
        changed_count=1,
    )
    with pytest.raises(RestoreBlockedError, match="already exists"):
        log.restore(accessor, checkpoint.id)
    assert [item.id for item in log.list_checkpoints()] == [checkpoint.id]


def test_restore_shape_mismatch_is_invalid_state(
    tmp_path: Path, accessor: OpenpyxlWorkbookAccessor
) -> None:
    log = _make_log(tmp_path / "log.json", workbook_id=accessor.workbook_id)
    checkpoint = log.append(
        tool_name="write_cells",
        tool_call_id="call-1",
        address="Data!A1:C1",
        state=RangeValuesCheckpointState(values=[[1, 2]], formulas=[["", ""]]),
    )
    with pytest.raises(InvalidStateError) as excinfo:
        log.restore(accessor, checkpoint.id)
    assert excinfo.value.code == "shape_mismatch"
