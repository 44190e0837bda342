from __future__ import annotations

from openpyxl import Workbook
from openpyxl.formatting.rule import CellIsRule, ColorScaleRule, DataBarRule, Rule
from openpyxl.styles import Font, PatternFill
from openpyxl.styles.differential import DifferentialStyle
import pytest

from workbook_recovery.accessor import OpenpyxlWorkbookAccessor
from workbook_recovery.conditional_format_state import (
    apply_conditional_format_state,
    capture_conditional_format_state,
)
from workbook_recovery.errors import InvalidStateError, SheetNotFoundError
from workbook_recovery.models import (
    RecoveryCellValueRule,
    RecoveryColorScaleRule,
    RecoveryConditionalIconCriterion,
    RecoveryConditionalIconSetState,
    RecoveryCustomRule,
    RecoveryDataBarRule,
    RecoveryIconSetRule,
    RecoveryPresetCriteriaRule,
    RecoveryTextComparisonRule,
)


def _highlight() -> PatternFill:
    return PatternFill(start_color="FFFFC7CE", end_color="FFFFC7CE", fill_type="solid")


def test_capture_missing_sheet_is_unsupported(
    accessor: OpenpyxlWorkbookAccessor,
) -> None:
    result = capture_conditional_format_state(accessor, "Nope!A1:A5")
    assert not result.supported
    assert result.reason == "Sheet not found: Nope"


def test_capture_reads_intersecting_rules(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet.conditional_formatting.add(
        "A1:A10", CellIsRule(operator="greaterThan", formula=["10"], fill=_highlight())
    )
    sheet.conditional_formatting.add(
        "C1:C10",
        Rule(
            type="expression",
            formula=["$C1>5"],
            dxf=DifferentialStyle(font=Font(bold=True)),
        ),
    )

    result = capture_conditional_format_state(accessor, "Data!A5:B6")
    assert result.supported
    assert len(result.rules) == 1
    rule = result.rules[0]
    assert isinstance(rule, RecoveryCellValueRule)
    assert rule.operator == "GreaterThan"
    assert rule.formula1 == "=10"
    assert rule.fill_color == "#FFC7CE"
    assert rule.applies_to_address == "A1:A10"

    custom = capture_conditional_format_state(accessor, "Data!C1").rules
    assert len(custom) == 1
    assert isinstance(custom[0], RecoveryCustomRule)
    assert custom[0].formula == "=$C1>5"
    assert custom[0].bold is True
    assert custom[0].italic is None


def test_capture_color_scale_and_data_bar(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet.conditional_formatting.add(
        "D1:D10",
        ColorScaleRule(
            start_type="min", start_color="FFF8696B", end_type="max", end_color="FF63BE7B"
        ),
    )
    sheet.conditional_formatting.add(
        "D1:D10",
        DataBarRule(start_type="min", end_type="max", color="FF638EC6"),
    )

    result = capture_conditional_format_state(accessor, "Data!D1:D10")
    assert result.supported
    scale, bar = result.rules
    assert isinstance(scale, RecoveryColorScaleRule)
    assert scale.color_scale.minimum.type == "LowestValue"
    assert scale.color_scale.minimum.color == "#F8696B"
    assert scale.color_scale.midpoint is None
    assert scale.color_scale.maximum.color == "#63BE7B"
    assert isinstance(bar, RecoveryDataBarRule)
    assert bar.data_bar.lower_bound_rule.type == "LowestValue"
    assert bar.data_bar.upper_bound_rule.type == "HighestValue"
    assert bar.data_bar.positive_fill_color == "#638EC6"


def test_capture_unmappable_rule_is_unsupported(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"].conditional_formatting.add("A1:A3", Rule(type="expression"))
    result = capture_conditional_format_state(accessor, "Data!A1")
    assert not result.supported
    assert result.reason == "Expression rule has no formula."


def test_apply_replaces_rules_and_returns_previous(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    sheet = workbook["Data"]
    sheet.conditional_formatting.add(
        "A1:A10", CellIsRule(operator="lessThan", formula=["0"], fill=_highlight())
    )
    sheet.conditional_formatting.add(
        "F1:F3", Rule(type="expression", formula=["TRUE"])
    )
    rules = [
        RecoveryCellValueRule(
            operator="Between",
            formula1="=1",
            formula2="=5",
            fill_color="#FFC7CE",
            applies_to_address="A1:A10",
        ),
        RecoveryTextComparisonRule(
            text_operator="Contains", text="urgent", bold=True, applies_to_address="A1:A10"
        ),
    ]

    previous = apply_conditional_format_state(accessor, "Data!A1:A10", rules)

    assert len(previous) == 1
    assert isinstance(previous[0], RecoveryCellValueRule)
    assert previous[0].operator == "LessThan"

    current = capture_conditional_format_state(accessor, "Data!A1:A10")
    assert current.supported
    assert [rule.to_payload() for rule in current.rules] == [
        rule.to_payload() for rule in rules
    ]
    untouched = capture_conditional_format_state(accessor, "Data!F1")
    assert len(untouched.rules) == 1

    restored = apply_conditional_format_state(accessor, "Data!A1:A10", previous)
    assert restored == rules
    assert capture_conditional_format_state(accessor, "Data!A1:A10").rules == previous


def test_apply_preset_criteria_roundtrip(accessor: OpenpyxlWorkbookAccessor) -> None:
    rules = [
        RecoveryPresetCriteriaRule(
            preset_criterion="DuplicateValues",
            font_color="#9C0006",
            applies_to_address="B2:B20",
        ),
        RecoveryPresetCriteriaRule(
            preset_criterion="AboveAverage", applies_to_address="B2:B20"
        ),
    ]
    apply_conditional_format_state(accessor, "Data!B2:B20", rules)
    captured = capture_conditional_format_state(accessor, "Data!B2:B20")
    assert captured.supported
    assert [rule.preset_criterion for rule in captured.rules] == [
        "DuplicateValues",
        "AboveAverage",
    ]
    assert captured.rules[0].font_color == "#9C0006"


def test_apply_icon_set_not_writable_leaves_rules(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"].conditional_formatting.add(
        "A1:A10", CellIsRule(operator="lessThan", formula=["0"], fill=_highlight())
    )
    rule = RecoveryIconSetRule(
        icon_set=RecoveryConditionalIconSetState(
            style="ThreeStars",
            reverse_icon_order=False,
            show_icon_only=False,
            criteria=[
                RecoveryConditionalIconCriterion(
                    type="Percent", operator="GreaterThanOrEqual", formula="=33"
                )
            ],
        )
    )
    with pytest.raises(InvalidStateError, match="cannot be written") as excinfo:
        apply_conditional_format_state(accessor, "Data!A1:A10", [rule])
    assert excinfo.value.code == "unsupported"
    assert len(capture_conditional_format_state(accessor, "Data!A1").rules) == 1


def test_apply_refuses_when_current_rules_are_unmappable(
    workbook: Workbook, accessor: OpenpyxlWorkbookAccessor
) -> None:
    workbook["Data"].conditional_formatting.add("A1:A3", Rule(type="expression"))
    with pytest.raises(InvalidStateError) as excinfo:
        apply_conditional_format_state(accessor, "Data!A1:A3", [])
    assert excinfo.value.code == "unsupported"


def test_apply_missing_sheet_raises(accessor: OpenpyxlWorkbookAccessor) -> None:
    with pytest.raises(SheetNotFoundError):
        apply_conditional_format_state(accessor, "Nope!A1", [])
