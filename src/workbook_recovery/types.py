from __future__ import annotations

from typing import Literal, get_args

RecoverySheetVisibility = Literal["Visible", "Hidden", "VeryHidden"]

ModifyStructureKind = Literal[
    "sheet_name",
    "sheet_visibility",
    "sheet_absent",
    "sheet_present",
    "rows_absent",
    "rows_present",
    "columns_absent",
    "columns_present",
]
StructureCaptureKind = Literal[
    "sheet_name",
    "sheet_visibility",
    "sheet_absent",
    "rows_absent",
    "columns_absent",
]
DataCaptureStatus = Literal["empty", "captured", "too_large"]

CheckpointToolName = Literal[
    "write_cells",
    "format_cells",
    "conditional_format",
    "comments",
    "modify_structure",
    "restore_snapshot",
]
CheckpointStateKind = Literal[
    "range_values",
    "format_cells_state",
    "modify_structure_state",
    "conditional_format_rules",
    "comment_thread",
]

RecoveryErrorCode = Literal[
    "sheet_not_found",
    "data_delete_blocked",
    "too_large",
    "target_exists",
    "invalid_state",
    "shape_mismatch",
    "unsupported",
    "checkpoint_not_found",
    "workbook_mismatch",
]

HorizontalAlignType = Literal[
    "general",
    "left",
    "center",
    "right",
    "fill",
    "justify",
    "centerContinuous",
    "distributed",
]
VerticalAlignType = Literal["top", "center", "bottom", "justify", "distributed"]
UnderlineStyle = Literal[
    "none", "single", "double", "singleAccounting", "doubleAccounting"
]
BorderKey = Literal[
    "border_top",
    "border_bottom",
    "border_left",
    "border_right",
    "border_inside_horizontal",
    "border_inside_vertical",
]

ConditionalFormatRuleType = Literal[
    "custom",
    "cell_value",
    "text_comparison",
    "top_bottom",
    "preset_criteria",
    "data_bar",
    "color_scale",
    "icon_set",
]
CellValueOperator = Literal[
    "Between",
    "NotBetween",
    "EqualTo",
    "NotEqualTo",
    "GreaterThan",
    "LessThan",
    "GreaterThanOrEqual",
    "LessThanOrEqual",
]
TextOperator = Literal["Contains", "NotContains", "BeginsWith", "EndsWith"]
TopBottomCriterionType = Literal["TopItems", "TopPercent", "BottomItems", "BottomPercent"]
PresetCriterion = Literal[
    "Blanks",
    "NonBlanks",
    "Errors",
    "NonErrors",
    "Yesterday",
    "Today",
    "Tomorrow",
    "LastSevenDays",
    "LastWeek",
    "ThisWeek",
    "NextWeek",
    "LastMonth",
    "ThisMonth",
    "NextMonth",
    "AboveAverage",
    "BelowAverage",
    "EqualOrAboveAverage",
    "EqualOrBelowAverage",
    "OneStdDevAboveAverage",
    "OneStdDevBelowAverage",
    "TwoStdDevAboveAverage",
    "TwoStdDevBelowAverage",
    "ThreeStdDevAboveAverage",
    "ThreeStdDevBelowAverage",
    "UniqueValues",
    "DuplicateValues",
]
DataBarAxisFormat = Literal["Automatic", "None", "CellMidPoint"]
DataBarDirection = Literal["Context", "LeftToRight", "RightToLeft"]
DataBarRuleType = Literal[
    "Automatic",
    "LowestValue",
    "HighestValue",
    "Number",
    "Percent",
    "Formula",
    "Percentile",
]
ColorCriterionType = Literal[
    "LowestValue", "HighestValue", "Number", "Percent", "Formula", "Percentile"
]
IconCriterionType = Literal["Number", "Percent", "Formula", "Percentile"]
IconCriterionOperator = Literal["GreaterThan", "GreaterThanOrEqual"]
IconSetStyle = Literal[
    "ThreeArrows",
    "ThreeArrowsGray",
    "ThreeFlags",
    "ThreeTrafficLights1",
    "ThreeTrafficLights2",
    "ThreeSigns",
    "ThreeSymbols",
    "ThreeSymbols2",
    "FourArrows",
    "FourArrowsGray",
    "FourRedToBlack",
    "FourRating",
    "FourTrafficLights",
    "FiveArrows",
    "FiveArrowsGray",
    "FiveRating",
    "FiveQuarters",
    "ThreeStars",
    "ThreeTriangles",
    "FiveBoxes",
]

SUPPORTED_SHEET_VISIBILITIES: tuple[RecoverySheetVisibility, ...] = get_args(
    RecoverySheetVisibility
)
SUPPORTED_CONDITIONAL_FORMAT_TYPES: tuple[ConditionalFormatRuleType, ...] = get_args(
    ConditionalFormatRuleType
)
SUPPORTED_PRESET_CRITERIA: tuple[PresetCriterion, ...] = get_args(PresetCriterion)
SUPPORTED_ICON_SETS: tuple[IconSetStyle, ...] = get_args(IconSetStyle)
