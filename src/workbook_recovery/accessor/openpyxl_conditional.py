from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from openpyxl.formatting.formatting import ConditionalFormattingList
from openpyxl.formatting.rule import ColorScale, DataBar, FormatObject, IconSet, Rule
from openpyxl.styles import Font, PatternFill
from openpyxl.styles.differential import DifferentialStyle
from openpyxl.worksheet.worksheet import Worksheet

from ..errors import InvalidStateError
from ..models import (
    ConditionalFormatCaptureResult,
    RecoveryCellValueRule,
    RecoveryColorScaleRule,
    RecoveryConditionalColorScaleCriterion,
    RecoveryConditionalColorScaleState,
    RecoveryConditionalDataBarRule,
    RecoveryConditionalDataBarState,
    RecoveryConditionalFormatRule,
    RecoveryConditionalIconCriterion,
    RecoveryConditionalIconSetState,
    RecoveryCustomRule,
    RecoveryDataBarRule,
    RecoveryIconSetRule,
    RecoveryPresetCriteriaRule,
    RecoveryTextComparisonRule,
    RecoveryTopBottomRule,
)
from ..shared.a1 import parse_range_bounds, split_a1, split_range_list
from ..types import (
    CellValueOperator,
    ColorCriterionType,
    DataBarRuleType,
    IconCriterionType,
    IconSetStyle,
    PresetCriterion,
    TextOperator,
)
from .colors import color_from_text, color_to_text

_CELL_VALUE_OPERATORS: dict[CellValueOperator, str] = {
    "Between": "between",
    "NotBetween": "notBetween",
    "EqualTo": "equal",
    "NotEqualTo": "notEqual",
    "GreaterThan": "greaterThan",
    "LessThan": "lessThan",
    "GreaterThanOrEqual": "greaterThanOrEqual",
    "LessThanOrEqual": "lessThanOrEqual",
}
_CELL_VALUE_OPERATORS_BY_NAME = {value: key for key, value in _CELL_VALUE_OPERATORS.items()}

# rule type, operator, formula template ({cell} = top-left cell, {text} = quoted text)
_TEXT_RULES: dict[TextOperator, tuple[str, str, str]] = {
    "Contains": ("containsText", "containsText", 'NOT(ISERROR(SEARCH({text},{cell})))'),
    "NotContains": ("notContainsText", "notContains", "ISERROR(SEARCH({text},{cell}))"),
    "BeginsWith": ("beginsWith", "beginsWith", "LEFT({cell},LEN({text}))={text}"),
    "EndsWith": ("endsWith", "endsWith", "RIGHT({cell},LEN({text}))={text}"),
}
_TEXT_OPERATORS_BY_TYPE = {value[0]: key for key, value in _TEXT_RULES.items()}

_TIME_PERIODS: dict[PresetCriterion, tuple[str, str]] = {
    "Today": ("today", "FLOOR({cell},1)=TODAY()"),
    "Yesterday": ("yesterday", "FLOOR({cell},1)=TODAY()-1"),
    "Tomorrow": ("tomorrow", "FLOOR({cell},1)=TODAY()+1"),
    "LastSevenDays": (
        "last7Days",
        "AND(TODAY()-FLOOR({cell},1)<=6,FLOOR({cell},1)<=TODAY())",
    ),
    "ThisWeek": (
        "thisWeek",
        "AND(TODAY()-ROUNDDOWN({cell},0)<=WEEKDAY(TODAY())-1,"
        "ROUNDDOWN({cell},0)-TODAY()<=7-WEEKDAY(TODAY()))",
    ),
    "LastWeek": (
        "lastWeek",
        "AND(TODAY()-ROUNDDOWN({cell},0)>=(WEEKDAY(TODAY())),"
        "TODAY()-ROUNDDOWN({cell},0)<(WEEKDAY(TODAY())+7))",
    ),
    "NextWeek": (
        "nextWeek",
        "AND(ROUNDDOWN({cell},0)-TODAY()>(7-WEEKDAY(TODAY())),"
        "ROUNDDOWN({cell},0)-TODAY()<(15-WEEKDAY(TODAY())))",
    ),
    "ThisMonth": (
        "thisMonth",
        "AND(MONTH({cell})=MONTH(TODAY()),YEAR({cell})=YEAR(TODAY()))",
    ),
    "LastMonth": (
        "lastMonth",
        "AND(MONTH({cell})=MONTH(EDATE(TODAY(),0-1)),YEAR({cell})=YEAR(EDATE(TODAY(),0-1)))",
    ),
    "NextMonth": (
        "nextMonth",
        "AND(MONTH({cell})=MONTH(EDATE(TODAY(),0+1)),YEAR({cell})=YEAR(EDATE(TODAY(),0+1)))",
    ),
}
_TIME_PERIODS_BY_NAME = {value[0]: key for key, value in _TIME_PERIODS.items()}

_CELL_STATE_PRESETS: dict[PresetCriterion, tuple[str, str]] = {
    "Blanks": ("containsBlanks", "LEN(TRIM({cell}))=0"),
    "NonBlanks": ("notContainsBlanks", "LEN(TRIM({cell}))>0"),
    "Errors": ("containsErrors", "ISERROR({cell})"),
    "NonErrors": ("notContainsErrors", "NOT(ISERROR({cell}))"),
    "UniqueValues": ("uniqueValues", ""),
    "DuplicateValues": ("duplicateValues", ""),
}
_CELL_STATE_PRESETS_BY_TYPE = {value[0]: key for key, value in _CELL_STATE_PRESETS.items()}

# aboveAverage, equalAverage, stdDev
_AVERAGE_PRESETS: dict[PresetCriterion, tuple[bool, bool, int | None]] = {
    "AboveAverage": (True, False, None),
    "BelowAverage": (False, False, None),
    "EqualOrAboveAverage": (True, True, None),
    "EqualOrBelowAverage": (False, True, None),
    "OneStdDevAboveAverage": (True, False, 1),
    "OneStdDevBelowAverage": (False, False, 1),
    "TwoStdDevAboveAverage": (True, False, 2),
    "TwoStdDevBelowAverage": (False, False, 2),
    "ThreeStdDevAboveAverage": (True, False, 3),
    "ThreeStdDevBelowAverage": (False, False, 3),
}
_AVERAGE_PRESETS_BY_FLAGS = {value: key for key, value in _AVERAGE_PRESETS.items()}

_VALUE_OBJECT_TYPES: dict[str, str] = {
    "LowestValue": "min",
    "HighestValue": "max",
    "Number": "num",
    "Percent": "percent",
    "Formula": "formula",
    "Percentile": "percentile",
}
_VALUE_OBJECT_TYPES_BY_NAME = {value: key for key, value in _VALUE_OBJECT_TYPES.items()}

_ICON_SETS: dict[IconSetStyle, str] = {
    "ThreeArrows": "3Arrows",
    "ThreeArrowsGray": "3ArrowsGray",
    "ThreeFlags": "3Flags",
    "ThreeTrafficLights1": "3TrafficLights1",
    "ThreeTrafficLights2": "3TrafficLights2",
    "ThreeSigns": "3Signs",
    "ThreeSymbols": "3Symbols",
    "ThreeSymbols2": "3Symbols2",
    "FourArrows": "4Arrows",
    "FourArrowsGray": "4ArrowsGray",
    "FourRedToBlack": "4RedToBlack",
    "FourRating": "4Rating",
    "FourTrafficLights": "4TrafficLights",
    "FiveArrows": "5Arrows",
    "FiveArrowsGray": "5ArrowsGray",
    "FiveRating": "5Rating",
    "FiveQuarters": "5Quarters",
}
_ICON_SETS_BY_NAME = {value: key for key, value in _ICON_SETS.items()}

_DEFAULT_NEGATIVE_FILL = "#FF0000"


class _UnsupportedRule(Exception):
    """Raised internally when a stored rule has no recovery representation."""


def capture_conditional_formats(
    sheet: Worksheet, address: str
) -> ConditionalFormatCaptureResult:
    """Capture rules whose target ranges intersect ``address``, in priority order."""
    bounds = parse_range_bounds(address)
    entries: list[tuple[int, RecoveryConditionalFormatRule]] = []
    for formatting in sheet.conditional_formatting:
        if not _intersects(formatting.sqref, bounds):
            continue
        applies_to = ",".join(
            str(item.coord)
            for item in sorted(
                formatting.sqref.ranges, key=lambda item: (item.min_row, item.min_col)
            )
        )
        for rule in formatting.rules:
            try:
                model = _capture_rule(rule, applies_to)
            except _UnsupportedRule as exc:
                return ConditionalFormatCaptureResult(supported=False, reason=str(exc))
            entries.append((rule.priority or 0, model))
    entries.sort(key=lambda item: item[0])
    return ConditionalFormatCaptureResult(
        supported=True, rules=[model for _, model in entries]
    )


def replace_conditional_formats(
    sheet: Worksheet,
    address: str,
    rules: Sequence[RecoveryConditionalFormatRule],
) -> None:
    """Clear rules intersecting ``address`` and add ``rules`` in order."""
    bounds = parse_range_bounds(address)
    built = [
        (_target_ranges(rule.applies_to_address or address), _build_rule(rule, address))
        for rule in rules
    ]
    kept: list[tuple[int, str, Rule]] = []
    for formatting in sheet.conditional_formatting:
        if _intersects(formatting.sqref, bounds):
            continue
        for rule in formatting.rules:
            kept.append((rule.priority or 0, str(formatting.sqref), rule))
    kept.sort(key=lambda item: item[0])
    replacement = ConditionalFormattingList()
    for sqref, rule in [(sqref, rule) for _, sqref, rule in kept] + built:
        rule.priority = 0
        replacement.add(sqref, rule)
    sheet.conditional_formatting = replacement


def _intersects(sqref: Any, bounds: tuple[int, int, int, int]) -> bool:
    min_col, min_row, max_col, max_row = bounds
    for item in sqref.ranges:
        if (
            item.max_col < min_col
            or item.min_col > max_col
            or item.max_row < min_row
            or item.min_row > max_row
        ):
            continue
        return True
    return False


def _target_ranges(address: str) -> str:
    """Convert a comma-separated address list into an openpyxl sqref."""
    parts = [part.split("!")[-1].replace("$", "") for part in split_range_list(address)]
    return " ".join(parts)


def _top_left(address: str) -> str:
    first = _target_ranges(address).split(" ")[0]
    column, row = split_a1(first.split(":")[0])
    return f"{column}{row}"


def _strip_equals(formula: str) -> str:
    text = formula.strip()
    return text[1:] if text.startswith("=") else text


def _with_equals(formula: object) -> str:
    text = _number_text(formula)
    return text if text.startswith("=") else f"={text}"


def _number_text(value: object) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# Capture


def _capture_rule(rule: Rule, applies_to: str) -> RecoveryConditionalFormatRule:
    handler = _CAPTURE_HANDLERS.get(rule.type)
    if handler is None:
        raise _UnsupportedRule(f"Unsupported conditional format type: {rule.type}")
    shared: dict[str, Any] = {"applies_to_address": applies_to}
    if rule.stopIfTrue is not None:
        shared["stop_if_true"] = bool(rule.stopIfTrue)
    shared.update(_capture_differential_style(rule.dxf))
    return handler(rule, shared)


def _capture_differential_style(dxf: DifferentialStyle | None) -> dict[str, Any]:
    """Read highlight formatting from a differential style."""
    if dxf is None:
        return {}
    captured: dict[str, Any] = {}
    fill_color = _differential_fill_color(dxf.fill)
    if fill_color is not None:
        captured["fill_color"] = fill_color
    font = dxf.font
    if font is not None:
        if font.color is not None:
            captured["font_color"] = color_to_text(font.color)
        # Font() fills unset flags with False, so only True is meaningful.
        if font.bold:
            captured["bold"] = True
        if font.italic:
            captured["italic"] = True
        if font.underline is not None:
            captured["underline"] = font.underline != "none"
    return captured


def _differential_fill_color(fill: object) -> str | None:
    """Return the highlight color of a differential fill, if any is set."""
    if not isinstance(fill, PatternFill):
        return None
    for color in (fill.bgColor, fill.fgColor):
        if color is None:
            continue
        if getattr(color, "type", None) == "rgb" and color.rgb == "00000000":
            continue
        text = color_to_text(color)
        if text != "auto":
            return text
    return None


def _formulas(rule: Rule) -> list[str]:
    return [_with_equals(item) for item in (rule.formula or [])]


def _capture_custom(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    formulas = _formulas(rule)
    if not formulas:
        raise _UnsupportedRule("Expression rule has no formula.")
    return RecoveryCustomRule(formula=formulas[0], **shared)


def _capture_cell_value(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    operator = _CELL_VALUE_OPERATORS_BY_NAME.get(rule.operator or "")
    formulas = _formulas(rule)
    if operator is None or not formulas:
        raise _UnsupportedRule(f"Unsupported cell value operator: {rule.operator}")
    if len(formulas) > 1:
        shared["formula2"] = formulas[1]
    return RecoveryCellValueRule(operator=operator, formula1=formulas[0], **shared)


def _capture_text(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    if rule.text is None:
        raise _UnsupportedRule("Text rule has no comparison text.")
    return RecoveryTextComparisonRule(
        text_operator=_TEXT_OPERATORS_BY_TYPE[rule.type], text=rule.text, **shared
    )


def _capture_top_bottom(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    prefix = "Bottom" if rule.bottom else "Top"
    suffix = "Percent" if rule.percent else "Items"
    shared["rank"] = rule.rank if rule.rank is not None else 10
    return RecoveryTopBottomRule(top_bottom_type=f"{prefix}{suffix}", **shared)


def _capture_average(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    flags = (
        rule.aboveAverage is not False,
        bool(rule.equalAverage),
        rule.stdDev or None,
    )
    criterion = _AVERAGE_PRESETS_BY_FLAGS.get(flags)
    if criterion is None:
        raise _UnsupportedRule("Unsupported above/below average rule.")
    return RecoveryPresetCriteriaRule(preset_criterion=criterion, **shared)


def _capture_time_period(
    rule: Rule, shared: dict[str, Any]
) -> RecoveryConditionalFormatRule:
    criterion = _TIME_PERIODS_BY_NAME.get(rule.timePeriod or "")
    if criterion is None:
        raise _UnsupportedRule(f"Unsupported time period: {rule.timePeriod}")
    return RecoveryPresetCriteriaRule(preset_criterion=criterion, **shared)


def _capture_cell_state(
    rule: Rule, shared: dict[str, Any]
) -> RecoveryConditionalFormatRule:
    return RecoveryPresetCriteriaRule(
        preset_criterion=_CELL_STATE_PRESETS_BY_TYPE[rule.type], **shared
    )


def _capture_value_object(value_object: FormatObject) -> tuple[str, str | None]:
    kind = _VALUE_OBJECT_TYPES_BY_NAME.get(value_object.type)
    if kind is None:
        raise _UnsupportedRule(f"Unsupported threshold type: {value_object.type}")
    if value_object.val is None:
        return kind, None
    return kind, _with_equals(value_object.val)


def _capture_data_bar(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    data_bar = rule.dataBar
    if data_bar is None or len(data_bar.cfvo or []) != 2:
        raise _UnsupportedRule("Data bar rule must define two thresholds.")
    lower_type, lower_formula = _capture_value_object(data_bar.cfvo[0])
    upper_type, upper_formula = _capture_value_object(data_bar.cfvo[1])
    positive = color_to_text(data_bar.color)
    state = RecoveryConditionalDataBarState(
        axis_format="Automatic",
        bar_direction="Context",
        show_data_bar_only=data_bar.showValue is False,
        lower_bound_rule=RecoveryConditionalDataBarRule(type=lower_type, formula=lower_formula),
        upper_bound_rule=RecoveryConditionalDataBarRule(type=upper_type, formula=upper_formula),
        positive_fill_color=positive,
        positive_gradient_fill=True,
        negative_fill_color=_DEFAULT_NEGATIVE_FILL,
        negative_match_positive_fill_color=False,
        negative_match_positive_border_color=False,
    )
    return RecoveryDataBarRule(data_bar=state, **shared)


def _capture_color_scale(
    rule: Rule, shared: dict[str, Any]
) -> RecoveryConditionalFormatRule:
    scale = rule.colorScale
    stops = list(scale.cfvo or []) if scale is not None else []
    colors = list(scale.color or []) if scale is not None else []
    if len(stops) not in (2, 3) or len(colors) != len(stops):
        raise _UnsupportedRule("Color scale must define two or three stops.")
    criteria = []
    for stop, color in zip(stops, colors):
        kind, formula = _capture_value_object(stop)
        criteria.append(
            RecoveryConditionalColorScaleCriterion(
                type=kind, formula=formula, color=color_to_text(color)
            )
        )
    state = RecoveryConditionalColorScaleState(
        minimum=criteria[0],
        midpoint=criteria[1] if len(criteria) == 3 else None,
        maximum=criteria[-1],
    )
    return RecoveryColorScaleRule(color_scale=state, **shared)


def _capture_icon_set(rule: Rule, shared: dict[str, Any]) -> RecoveryConditionalFormatRule:
    icon_set = rule.iconSet
    if icon_set is None:
        raise _UnsupportedRule("Icon set rule has no icon settings.")
    style = _ICON_SETS_BY_NAME.get(icon_set.iconSet or "3TrafficLights1")
    if style is None:
        raise _UnsupportedRule(f"Unsupported icon set: {icon_set.iconSet}")
    criteria: list[RecoveryConditionalIconCriterion] = []
    for value_object in icon_set.cfvo or []:
        kind, formula = _capture_value_object(value_object)
        if kind not in ("Number", "Percent", "Formula", "Percentile"):
            raise _UnsupportedRule(f"Unsupported icon threshold type: {value_object.type}")
        criteria.append(
            RecoveryConditionalIconCriterion(
                type=kind,
                operator="GreaterThan" if value_object.gte is False else "GreaterThanOrEqual",
                formula=formula or "=0",
            )
        )
    if not criteria:
        raise _UnsupportedRule("Icon set rule has no thresholds.")
    state = RecoveryConditionalIconSetState(
        style=style,
        reverse_icon_order=bool(icon_set.reverse),
        show_icon_only=icon_set.showValue is False,
        criteria=criteria,
    )
    return RecoveryIconSetRule(icon_set=state, **shared)


_CAPTURE_HANDLERS: dict[str, Callable[[Rule, dict[str, Any]], RecoveryConditionalFormatRule]] = {
    "expression": _capture_custom,
    "cellIs": _capture_cell_value,
    "containsText": _capture_text,
    "notContainsText": _capture_text,
    "beginsWith": _capture_text,
    "endsWith": _capture_text,
    "top10": _capture_top_bottom,
    "aboveAverage": _capture_average,
    "timePeriod": _capture_time_period,
    "containsBlanks": _capture_cell_state,
    "notContainsBlanks": _capture_cell_state,
    "containsErrors": _capture_cell_state,
    "notContainsErrors": _capture_cell_state,
    "uniqueValues": _capture_cell_state,
    "duplicateValues": _capture_cell_state,
    "dataBar": _capture_data_bar,
    "colorScale": _capture_color_scale,
    "iconSet": _capture_icon_set,
}


# Apply


def _build_rule(rule: RecoveryConditionalFormatRule, fallback_address: str) -> Rule:
    cell = _top_left(rule.applies_to_address or fallback_address)
    built = _BUILD_HANDLERS[rule.type](rule, cell)
    if rule.stop_if_true is not None:
        built.stopIfTrue = rule.stop_if_true
    dxf = _build_differential_style(rule)
    if dxf is not None:
        built.dxf = dxf
    return built


def _build_differential_style(rule: RecoveryConditionalFormatRule) -> DifferentialStyle | None:
    if rule.type in ("data_bar", "color_scale", "icon_set"):
        return None
    font_fields: dict[str, Any] = {}
    if rule.font_color is not None:
        font_fields["color"] = color_from_text(rule.font_color)
    if rule.bold is not None:
        font_fields["bold"] = rule.bold
    if rule.italic is not None:
        font_fields["italic"] = rule.italic
    if rule.underline is not None:
        font_fields["underline"] = "single" if rule.underline else "none"
    fill = None
    if rule.fill_color is not None:
        color = color_from_text(rule.fill_color)
        fill = PatternFill(fill_type="solid", start_color=color, end_color=color)
    if not font_fields and fill is None:
        return None
    return DifferentialStyle(font=Font(**font_fields) if font_fields else None, fill=fill)


def _quote_text(text: str) -> str:
    escaped = text.replace('"', '""')
    return f'"{escaped}"'


def _build_custom(rule: Any, cell: str) -> Rule:
    return Rule(type="expression", formula=[_strip_equals(rule.formula)])


def _build_cell_value(rule: Any, cell: str) -> Rule:
    formulas = [_strip_equals(rule.formula1)]
    if rule.operator in ("Between", "NotBetween") and rule.formula2 is not None:
        formulas.append(_strip_equals(rule.formula2))
    return Rule(
        type="cellIs", operator=_CELL_VALUE_OPERATORS[rule.operator], formula=formulas
    )


def _build_text(rule: Any, cell: str) -> Rule:
    rule_type, operator, template = _TEXT_RULES[rule.text_operator]
    formula = template.format(text=_quote_text(rule.text), cell=cell)
    return Rule(type=rule_type, operator=operator, text=rule.text, formula=[formula])


def _build_top_bottom(rule: Any, cell: str) -> Rule:
    return Rule(
        type="top10",
        rank=int(rule.rank),
        percent=rule.top_bottom_type.endswith("Percent") or None,
        bottom=rule.top_bottom_type.startswith("Bottom") or None,
    )


def _build_preset(rule: Any, cell: str) -> Rule:
    criterion: PresetCriterion = rule.preset_criterion
    if criterion in _TIME_PERIODS:
        period, template = _TIME_PERIODS[criterion]
        return Rule(
            type="timePeriod",
            timePeriod=period,
            formula=[template.format(cell=cell)],
        )
    if criterion in _CELL_STATE_PRESETS:
        rule_type, template = _CELL_STATE_PRESETS[criterion]
        formula = [template.format(cell=cell)] if template else []
        return Rule(type=rule_type, formula=formula)
    above, equal, std_dev = _AVERAGE_PRESETS[criterion]
    return Rule(
        type="aboveAverage",
        aboveAverage=None if above else False,
        equalAverage=equal or None,
        stdDev=std_dev,
    )


def _build_value_object(
    kind: DataBarRuleType | ColorCriterionType | IconCriterionType,
    formula: str | None,
    *,
    default: str,
) -> FormatObject:
    value_type = _VALUE_OBJECT_TYPES.get(kind, default)
    if value_type in ("min", "max") or formula is None:
        return FormatObject(type=value_type)
    return FormatObject(type=value_type, val=_strip_equals(formula))


def _build_data_bar(rule: Any, cell: str) -> Rule:
    state: RecoveryConditionalDataBarState = rule.data_bar
    data_bar = DataBar(
        cfvo=[
            _build_value_object(
                state.lower_bound_rule.type, state.lower_bound_rule.formula, default="min"
            ),
            _build_value_object(
                state.upper_bound_rule.type, state.upper_bound_rule.formula, default="max"
            ),
        ],
        color=color_from_text(state.positive_fill_color),
        showValue=False if state.show_data_bar_only else None,
    )
    return Rule(type="dataBar", dataBar=data_bar)


def _build_color_scale(rule: Any, cell: str) -> Rule:
    state: RecoveryConditionalColorScaleState = rule.color_scale
    stops = [state.minimum]
    if state.midpoint is not None:
        stops.append(state.midpoint)
    stops.append(state.maximum)
    scale = ColorScale(
        cfvo=[_build_value_object(stop.type, stop.formula, default="num") for stop in stops],
        color=[color_from_text(stop.color or "#FFFFFF") for stop in stops],
    )
    return Rule(type="colorScale", colorScale=scale)


def _build_icon_set(rule: Any, cell: str) -> Rule:
    state: RecoveryConditionalIconSetState = rule.icon_set
    icon_name = _ICON_SETS.get(state.style)
    if icon_name is None:
        raise InvalidStateError.build(
            "unsupported", f"Icon set {state.style} cannot be written by openpyxl."
        )
    cfvo = []
    for criterion in state.criteria:
        value_object = _build_value_object(criterion.type, criterion.formula, default="num")
        if criterion.operator == "GreaterThan":
            value_object.gte = False
        cfvo.append(value_object)
    icon_set = IconSet(
        iconSet=icon_name,
        cfvo=cfvo,
        showValue=False if state.show_icon_only else None,
        reverse=True if state.reverse_icon_order else None,
    )
    return Rule(type="iconSet", iconSet=icon_set)


_BUILD_HANDLERS: dict[str, Callable[[Any, str], Rule]] = {
    "custom": _build_custom,
    "cell_value": _build_cell_value,
    "text_comparison": _build_text,
    "top_bottom": _build_top_bottom,
    "preset_criteria": _build_preset,
    "data_bar": _build_data_bar,
    "color_scale": _build_color_scale,
    "icon_set": _build_icon_set,
}


__all__ = ["capture_conditional_formats", "replace_conditional_formats"]
