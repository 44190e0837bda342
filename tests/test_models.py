from __future__ import annotations

from datetime import date, datetime, time, timedelta

from pydantic import ValidationError
import pytest

from workbook_recovery.models import (
    RangeValuesCheckpointState,
    RecoveryCheckpoint,
    RecoveryFormatAreaState,
    RecoveryFormatSelection,
    RecoverySheetAbsentState,
    RecoveryStructureValueRangeState,
)


def test_payload_uses_camel_case_and_drops_none() -> None:
    state = RecoverySheetAbsentState(sheet_id="s1", sheet_name="Data")
    assert state.to_payload() == {
        "kind": "sheet_absent",
        "sheetId": "s1",
        "sheetName": "Data",
    }


def test_models_accept_snake_and_camel_names() -> None:
    by_alias = RecoverySheetAbsentState.model_validate(
        {"sheetId": "s1", "sheetName": "Data", "allowDataDelete": True}
    )
    by_name = RecoverySheetAbsentState(
        sheet_id="s1", sheet_name="Data", allow_data_delete=True
    )
    assert by_alias == by_name


def test_value_range_state_checks_extents() -> None:
    with pytest.raises(ValidationError, match="extents"):
        RecoveryStructureValueRangeState(
            address="A1:B1",
            row_count=1,
            column_count=2,
            values=[[1]],
            formulas=[[""]],
        )


def test_format_area_checks_widths() -> None:
    with pytest.raises(ValidationError, match="columnWidths"):
        RecoveryFormatAreaState(
            address="A1:C1", row_count=1, column_count=3, column_widths=[10.0]
        )


def test_selection_lists_facets_in_declaration_order() -> None:
    selection = RecoveryFormatSelection(row_height=True, bold=True, number_format=True)
    assert selection.selected_facets() == ["number_format", "bold", "row_height"]


def test_checkpoint_payload_serializes_datetimes() -> None:
    checkpoint = RecoveryCheckpoint(
        id="c1",
        tool_name="write_cells",
        tool_call_id="call-1",
        at=1,
        address="Data!A1",
        changed_count=1,
        workbook_id="wb",
        state=RangeValuesCheckpointState(
            values=[[datetime(2024, 1, 2, 3, 4, 5)]], formulas=[[""]]
        ),
    )
    payload = checkpoint.to_payload()
    assert payload["state"] == {
        "snapshotKind": "range_values",
        "values": [[{"$datetime": "2024-01-02T03:04:05"}]],
        "formulas": [[""]],
    }
    assert "restoredFromSnapshotId" not in payload


def test_temporal_cell_values_survive_payload_roundtrip() -> None:
    values = [
        [datetime(2024, 1, 2, 3, 4, 5), date(2024, 5, 6)],
        [time(7, 30), timedelta(hours=36)],
    ]
    state = RangeValuesCheckpointState(values=values, formulas=[["", ""], ["", ""]])
    payload = state.to_payload()
    assert payload["values"][1] == [{"$time": "07:30:00"}, {"$timedelta": 129600.0}]

    loaded = RangeValuesCheckpointState.model_validate(payload)
    assert loaded.values == values
    assert type(loaded.values[0][1]) is date


def test_malformed_temporal_cell_value_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Invalid"):
        RangeValuesCheckpointState.model_validate(
            {"values": [[{"$date": 20240506}]], "formulas": [[""]]}
        )
