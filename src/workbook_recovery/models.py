from __future__ import annotations

from datetime import date, datetime, time, timedelta
import math
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .shared.grid import grid_stats
from .types import (
    CellValueOperator,
    CheckpointToolName,
    ColorCriterionType,
    DataBarAxisFormat,
    DataBarDirection,
    DataBarRuleType,
    HorizontalAlignType,
    IconCriterionOperator,
    IconCriterionType,
    IconSetStyle,
    PresetCriterion,
    RecoverySheetVisibility,
    StructureCaptureKind,
    TextOperator,
    TopBottomCriterionType,
    UnderlineStyle,
    VerticalAlignType,
)


def _require_finite(value: float) -> float:
    """Reject NaN and infinities."""
    if not math.isfinite(value):
        raise ValueError("Value must be a finite number.")
    return value


FiniteNumber = Annotated[Union[StrictInt, StrictFloat], AfterValidator(_require_finite)]
PositiveCount = Annotated[StrictInt, Field(gt=0)]
SheetPosition = Annotated[StrictInt, Field(ge=0)]

# Temporal cell values are tagged in JSON so they load back as the same type.
_TEMPORAL_DECODERS: dict[str, Any] = {
    "$datetime": datetime.fromisoformat,
    "$date": date.fromisoformat,
    "$time": time.fromisoformat,
    "$timedelta": lambda seconds: timedelta(seconds=seconds),
}


def encode_cell_value(value: Any) -> Any:
    """Return a JSON-safe form of a cell value, tagging dates and times."""
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, time):
        return {"$time": value.isoformat()}
    if isinstance(value, timedelta):
        return {"$timedelta": value.total_seconds()}
    return value


def decode_cell_value(value: Any) -> Any:
    """Invert ``encode_cell_value``; other values pass through unchanged."""
    if not isinstance(value, dict) or len(value) != 1:
        return value
    ((tag, raw),) = value.items()
    decoder = _TEMPORAL_DECODERS.get(tag)
    if decoder is None:
        return value
    if tag == "$timedelta":
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"Invalid {tag} cell value: {raw!r}")
    elif not isinstance(raw, str):
        raise ValueError(f"Invalid {tag} cell value: {raw!r}")
    return decoder(raw)


def _decode_grid(grid: Any) -> Any:
    if not isinstance(grid, list):
        return grid
    return [
        [decode_cell_value(cell) for cell in row] if isinstance(row, list) else row
        for row in grid
    ]


def _encode_grid(grid: list[list[Any]]) -> list[list[Any]]:
    return [[encode_cell_value(cell) for cell in row] for row in grid]


CellGridPayload = Annotated[
    list[list[Any]],
    BeforeValidator(_decode_grid),
    PlainSerializer(_encode_grid, when_used="json"),
]


class RecoveryModel(BaseModel):
    """Base model for persisted recovery payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize into the JSON-compatible camelCase payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Structure states


class RecoveryStructureValueRangeState(RecoveryModel):
    """Captured values and formulas of a rectangular range."""

    address: StrictStr
    row_count: PositiveCount
    column_count: PositiveCount
    values: CellGridPayload
    formulas: CellGridPayload

    @model_validator(mode="after")
    def _validate_extents(self) -> RecoveryStructureValueRangeState:
        if not has_consistent_extents(self):
            raise ValueError(
                "values/formulas extents must match rowCount and columnCount."
            )
        return self


def has_consistent_extents(state: RecoveryStructureValueRangeState) -> bool:
    """Return True when both grids span exactly rowCount x columnCount."""
    stats = grid_stats(state.values, state.formulas)
    return stats.rows == state.row_count and stats.cols == state.column_count


class RecoverySheetNameState(RecoveryModel):
    """Undo of a rename: the sheet's previous name."""

    kind: Literal["sheet_name"] = "sheet_name"
    sheet_id: StrictStr
    name: StrictStr


class RecoverySheetVisibilityState(RecoveryModel):
    """Undo of a visibility change."""

    kind: Literal["sheet_visibility"] = "sheet_visibility"
    sheet_id: StrictStr
    visibility: RecoverySheetVisibility


class RecoverySheetAbsentState(RecoveryModel):
    """The sheet should not exist."""

    kind: Literal["sheet_absent"] = "sheet_absent"
    sheet_id: StrictStr
    sheet_name: StrictStr
    allow_data_delete: StrictBool | None = None


class RecoverySheetPresentState(RecoveryModel):
    """The sheet should exist at a position, optionally holding data."""

    kind: Literal["sheet_present"] = "sheet_present"
    sheet_id: StrictStr
    sheet_name: StrictStr
    position: SheetPosition
    visibility: RecoverySheetVisibility
    data_range: RecoveryStructureValueRangeState | None = None


class RecoveryRowsAbsentState(RecoveryModel):
    """Rows [position, position + count) should not exist."""

    kind: Literal["rows_absent"] = "rows_absent"
    sheet_id: StrictStr
    sheet_name: StrictStr
    position: PositiveCount
    count: PositiveCount
    allow_data_delete: StrictBool | None = None


class RecoveryRowsPresentState(RecoveryModel):
    """Rows [position, position + count) should be inserted back."""

    kind: Literal["rows_present"] = "rows_present"
    sheet_id: StrictStr
    sheet_name: StrictStr
    position: PositiveCount
    count: PositiveCount
    data_range: RecoveryStructureValueRangeState | None = None


class RecoveryColumnsAbsentState(RecoveryModel):
    """Columns [position, position + count) should not exist."""

    kind: Literal["columns_absent"] = "columns_absent"
    sheet_id: StrictStr
    sheet_name: StrictStr
    position: PositiveCount
    count: PositiveCount
    allow_data_delete: StrictBool | None = None


class RecoveryColumnsPresentState(RecoveryModel):
    """Columns [position, position + count) should be inserted back."""

    kind: Literal["columns_present"] = "columns_present"
    sheet_id: StrictStr
    sheet_name: StrictStr
    position: PositiveCount
    count: PositiveCount
    data_range: RecoveryStructureValueRangeState | None = None


RecoveryModifyStructureState = Annotated[
    Union[
        RecoverySheetNameState,
        RecoverySheetVisibilityState,
        RecoverySheetAbsentState,
        RecoverySheetPresentState,
        RecoveryRowsAbsentState,
        RecoveryRowsPresentState,
        RecoveryColumnsAbsentState,
        RecoveryColumnsPresentState,
    ],
    Field(discriminator="kind"),
]


class CaptureModifyStructureStateRequest(BaseModel):
    """Request describing which structural state to capture."""

    kind: StructureCaptureKind
    sheet_ref: str
    position: float | None = None
    count: float | None = None


class EmptyDataCapture(RecoveryModel):
    """No value data in the inspected range."""

    status: Literal["empty"] = "empty"


class CapturedDataCapture(RecoveryModel):
    """Value data captured under the cell cap."""

    status: Literal["captured"] = "captured"
    data_range: RecoveryStructureValueRangeState


class TooLargeDataCapture(RecoveryModel):
    """Value data exceeds the cell cap and was not read."""

    status: Literal["too_large"] = "too_large"
    cell_count: StrictInt


StructureValueDataCaptureResult = Annotated[
    Union[EmptyDataCapture, CapturedDataCapture, TooLargeDataCapture],
    Field(discriminator="status"),
]


# Format states

FORMAT_CELL_FACETS: tuple[str, ...] = (
    "fill_color",
    "font_color",
    "bold",
    "italic",
    "underline_style",
    "font_name",
    "font_size",
    "horizontal_alignment",
    "vertical_alignment",
    "wrap_text",
)
FORMAT_BORDER_FACETS: tuple[str, ...] = (
    "border_top",
    "border_bottom",
    "border_left",
    "border_right",
    "border_inside_horizontal",
    "border_inside_vertical",
)
FORMAT_SELECTION_TO_AREA_FIELD: dict[str, str] = {
    "number_format": "number_format",
    "column_width": "column_widths",
    "row_height": "row_heights",
    "merged_areas": "merged_areas",
    **{facet: facet for facet in FORMAT_CELL_FACETS},
    **{facet: facet for facet in FORMAT_BORDER_FACETS},
}


class RecoveryFormatSelection(RecoveryModel):
    """Which format facets a checkpoint covers."""

    number_format: StrictBool = False
    fill_color: StrictBool = False
    font_color: StrictBool = False
    bold: StrictBool = False
    italic: StrictBool = False
    underline_style: StrictBool = False
    font_name: StrictBool = False
    font_size: StrictBool = False
    horizontal_alignment: StrictBool = False
    vertical_alignment: StrictBool = False
    wrap_text: StrictBool = False
    column_width: StrictBool = False
    row_height: StrictBool = False
    merged_areas: StrictBool = False
    border_top: StrictBool = False
    border_bottom: StrictBool = False
    border_left: StrictBool = False
    border_right: StrictBool = False
    border_inside_horizontal: StrictBool = False
    border_inside_vertical: StrictBool = False

    def selected_facets(self) -> list[str]:
        """Return selected facet names in declaration order."""
        return [
            name for name in type(self).model_fields if getattr(self, name) is True
        ]


class RecoveryFormatBorderState(RecoveryModel):
    """Uniform border edge state; style ``none`` means no border."""

    style: StrictStr
    color: StrictStr | None = None


class RecoveryFormatAreaState(RecoveryModel):
    """Captured format facets of one rectangular area."""

    address: StrictStr
    row_count: PositiveCount
    column_count: PositiveCount
    number_format: list[list[StrictStr]] | None = None
    fill_color: StrictStr | None = None
    font_color: StrictStr | None = None
    bold: StrictBool | None = None
    italic: StrictBool | None = None
    underline_style: UnderlineStyle | None = None
    font_name: StrictStr | None = None
    font_size: FiniteNumber | None = None
    horizontal_alignment: HorizontalAlignType | None = None
    vertical_alignment: VerticalAlignType | None = None
    wrap_text: StrictBool | None = None
    column_widths: list[FiniteNumber | None] | None = None
    row_heights: list[FiniteNumber | None] | None = None
    merged_areas: list[StrictStr] | None = None
    border_top: RecoveryFormatBorderState | None = None
    border_bottom: RecoveryFormatBorderState | None = None
    border_left: RecoveryFormatBorderState | None = None
    border_right: RecoveryFormatBorderState | None = None
    border_inside_horizontal: RecoveryFormatBorderState | None = None
    border_inside_vertical: RecoveryFormatBorderState | None = None

    @model_validator(mode="after")
    def _validate_shapes(self) -> RecoveryFormatAreaState:
        if self.number_format is not None:
            if len(self.number_format) != self.row_count or any(
                len(row) != self.column_count for row in self.number_format
            ):
                raise ValueError("numberFormat grid must match the area shape.")
        if self.column_widths is not None and len(self.column_widths) != self.column_count:
            raise ValueError("columnWidths must hold one entry per column.")
        if self.row_heights is not None and len(self.row_heights) != self.row_count:
            raise ValueError("rowHeights must hold one entry per row.")
        return self


class RecoveryFormatRangeState(RecoveryModel):
    """Format checkpoint spanning one or more areas on a single sheet."""

    selection: RecoveryFormatSelection
    areas: list[RecoveryFormatAreaState] = Field(min_length=1)
    cell_count: Annotated[StrictInt, Field(ge=0)]

    @model_validator(mode="after")
    def _validate_selected_facets(self) -> RecoveryFormatRangeState:
        for facet in self.selection.selected_facets():
            field_name = FORMAT_SELECTION_TO_AREA_FIELD[facet]
            for area in self.areas:
                if getattr(area, field_name) is None:
                    raise ValueError(
                        f"Area {area.address} is missing selected facet {facet}."
                    )
        return self


class FormatCaptureResult(BaseModel):
    """Outcome of a format capture; unsupported captures carry a reason."""

    supported: bool
    state: RecoveryFormatRangeState | None = None
    reason: str | None = None


# Conditional formats


class RecoveryConditionalDataBarRule(RecoveryModel):
    """Lower/upper bound rule of a data bar."""

    type: DataBarRuleType
    formula: StrictStr | None = None


class RecoveryConditionalDataBarState(RecoveryModel):
    """Data bar settings."""

    axis_format: DataBarAxisFormat
    bar_direction: DataBarDirection
    show_data_bar_only: StrictBool
    lower_bound_rule: RecoveryConditionalDataBarRule
    upper_bound_rule: RecoveryConditionalDataBarRule
    positive_fill_color: StrictStr
    positive_border_color: StrictStr | None = None
    positive_gradient_fill: StrictBool
    negative_fill_color: StrictStr
    negative_border_color: StrictStr | None = None
    negative_match_positive_fill_color: StrictBool
    negative_match_positive_border_color: StrictBool
    axis_color: StrictStr | None = None


class RecoveryConditionalColorScaleCriterion(RecoveryModel):
    """One stop of a color scale."""

    type: ColorCriterionType
    formula: StrictStr | None = None
    color: StrictStr | None = None


class RecoveryConditionalColorScaleState(RecoveryModel):
    """Two- or three-stop color scale."""

    minimum: RecoveryConditionalColorScaleCriterion
    midpoint: RecoveryConditionalColorScaleCriterion | None = None
    maximum: RecoveryConditionalColorScaleCriterion


class RecoveryConditionalIcon(RecoveryModel):
    """Custom icon reference."""

    set: IconSetStyle
    index: FiniteNumber


class RecoveryConditionalIconCriterion(RecoveryModel):
    """One threshold of an icon set."""

    type: IconCriterionType
    operator: IconCriterionOperator
    formula: StrictStr
    custom_icon: RecoveryConditionalIcon | None = None


class RecoveryConditionalIconSetState(RecoveryModel):
    """Icon set settings."""

    style: IconSetStyle
    reverse_icon_order: StrictBool
    show_icon_only: StrictBool
    criteria: list[RecoveryConditionalIconCriterion] = Field(min_length=1)


class _ConditionalFormatRuleBase(RecoveryModel):
    """Fields shared by every conditional-format rule kind."""

    stop_if_true: StrictBool | None = None
    formula: StrictStr | None = None
    formula1: StrictStr | None = None
    formula2: StrictStr | None = None
    text: StrictStr | None = None
    rank: FiniteNumber | None = None
    fill_color: StrictStr | None = None
    font_color: StrictStr | None = None
    bold: StrictBool | None = None
    italic: StrictBool | None = None
    underline: StrictBool | None = None
    applies_to_address: StrictStr | None = None


class RecoveryCustomRule(_ConditionalFormatRuleBase):
    type: Literal["custom"] = "custom"
    formula: StrictStr


class RecoveryCellValueRule(_ConditionalFormatRuleBase):
    type: Literal["cell_value"] = "cell_value"
    operator: CellValueOperator
    formula1: StrictStr


class RecoveryTextComparisonRule(_ConditionalFormatRuleBase):
    type: Literal["text_comparison"] = "text_comparison"
    text_operator: TextOperator
    text: StrictStr


class RecoveryTopBottomRule(_ConditionalFormatRuleBase):
    type: Literal["top_bottom"] = "top_bottom"
    top_bottom_type: TopBottomCriterionType
    rank: FiniteNumber


class RecoveryPresetCriteriaRule(_ConditionalFormatRuleBase):
    type: Literal["preset_criteria"] = "preset_criteria"
    preset_criterion: PresetCriterion


class RecoveryDataBarRule(_ConditionalFormatRuleBase):
    type: Literal["data_bar"] = "data_bar"
    data_bar: RecoveryConditionalDataBarState


class RecoveryColorScaleRule(_ConditionalFormatRuleBase):
    type: Literal["color_scale"] = "color_scale"
    color_scale: RecoveryConditionalColorScaleState


class RecoveryIconSetRule(_ConditionalFormatRuleBase):
    type: Literal["icon_set"] = "icon_set"
    icon_set: RecoveryConditionalIconSetState


RecoveryConditionalFormatRule = Annotated[
    Union[
        RecoveryCustomRule,
        RecoveryCellValueRule,
        RecoveryTextComparisonRule,
        RecoveryTopBottomRule,
        RecoveryPresetCriteriaRule,
        RecoveryDataBarRule,
        RecoveryColorScaleRule,
        RecoveryIconSetRule,
    ],
    Field(discriminator="type"),
]


class ConditionalFormatCaptureResult(BaseModel):
    """Outcome of a conditional-format capture."""

    supported: bool
    rules: list[RecoveryConditionalFormatRule] = Field(default_factory=list)
    reason: str | None = None


# Comments


class RecoveryCommentThreadState(RecoveryModel):
    """Comment thread anchored at the first cell of a range.

    ``exists`` False means the cell has no comment; the other fields are
    then empty.
    """

    exists: StrictBool
    content: StrictStr = ""
    resolved: StrictBool = False
    replies: list[StrictStr] = Field(default_factory=list)
    author: StrictStr | None = None


# Checkpoints


class RangeValuesCheckpointState(RecoveryModel):
    """Prior values and formulas of a written range."""

    snapshot_kind: Literal["range_values"] = "range_values"
    values: CellGridPayload
    formulas: CellGridPayload


class FormatCellsCheckpointState(RecoveryModel):
    """Prior format facets of a formatted range."""

    snapshot_kind: Literal["format_cells_state"] = "format_cells_state"
    format: RecoveryFormatRangeState


class ModifyStructureCheckpointState(RecoveryModel):
    """Inverse structural state of a structural edit."""

    snapshot_kind: Literal["modify_structure_state"] = "modify_structure_state"
    structure: RecoveryModifyStructureState


class ConditionalFormatCheckpointState(RecoveryModel):
    """Prior conditional-format rules of a range."""

    snapshot_kind: Literal["conditional_format_rules"] = "conditional_format_rules"
    rules: list[RecoveryConditionalFormatRule]
    cell_count: Annotated[StrictInt, Field(ge=0)] = 0


class CommentThreadCheckpointState(RecoveryModel):
    """Prior comment thread of a cell."""

    snapshot_kind: Literal["comment_thread"] = "comment_thread"
    thread: RecoveryCommentThreadState


RecoveryCheckpointState = Annotated[
    Union[
        RangeValuesCheckpointState,
        FormatCellsCheckpointState,
        ModifyStructureCheckpointState,
        ConditionalFormatCheckpointState,
        CommentThreadCheckpointState,
    ],
    Field(discriminator="snapshot_kind"),
]


class RecoveryCheckpoint(RecoveryModel):
    """One persisted, restorable checkpoint."""

    id: StrictStr
    tool_name: CheckpointToolName
    tool_call_id: StrictStr
    at: Annotated[StrictInt, Field(ge=0)]
    address: StrictStr
    changed_count: Annotated[StrictInt, Field(ge=0)]
    restored_from_snapshot_id: StrictStr | None = None
    workbook_id: StrictStr | None = None
    state: RecoveryCheckpointState


__all__ = [
    "CaptureModifyStructureStateRequest",
    "CapturedDataCapture",
    "CommentThreadCheckpointState",
    "ConditionalFormatCaptureResult",
    "ConditionalFormatCheckpointState",
    "EmptyDataCapture",
    "FORMAT_BORDER_FACETS",
    "FORMAT_CELL_FACETS",
    "FORMAT_SELECTION_TO_AREA_FIELD",
    "FiniteNumber",
    "FormatCaptureResult",
    "FormatCellsCheckpointState",
    "ModifyStructureCheckpointState",
    "RangeValuesCheckpointState",
    "RecoveryCellValueRule",
    "RecoveryCheckpoint",
    "RecoveryCheckpointState",
    "RecoveryColorScaleRule",
    "RecoveryColumnsAbsentState",
    "RecoveryColumnsPresentState",
    "RecoveryCommentThreadState",
    "RecoveryConditionalColorScaleCriterion",
    "RecoveryConditionalColorScaleState",
    "RecoveryConditionalDataBarRule",
    "RecoveryConditionalDataBarState",
    "RecoveryConditionalFormatRule",
    "RecoveryConditionalIcon",
    "RecoveryConditionalIconCriterion",
    "RecoveryConditionalIconSetState",
    "RecoveryCustomRule",
    "RecoveryDataBarRule",
    "RecoveryFormatAreaState",
    "RecoveryFormatBorderState",
    "RecoveryFormatRangeState",
    "RecoveryFormatSelection",
    "RecoveryIconSetRule",
    "RecoveryModel",
    "RecoveryModifyStructureState",
    "RecoveryPresetCriteriaRule",
    "RecoveryRowsAbsentState",
    "RecoveryRowsPresentState",
    "RecoverySheetAbsentState",
    "RecoverySheetNameState",
    "RecoverySheetPresentState",
    "RecoverySheetVisibilityState",
    "RecoveryStructureValueRangeState",
    "RecoveryTextComparisonRule",
    "RecoveryTopBottomRule",
    "StructureValueDataCaptureResult",
    "TooLargeDataCapture",
    "decode_cell_value",
    "encode_cell_value",
    "has_consistent_extents",
]
