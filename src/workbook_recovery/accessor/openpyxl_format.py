from __future__ import annotations

from collections.abc import Callable
from copy import copy
from typing import Any

from openpyxl.cell.cell import Cell, MergedCell
from openpyxl.styles import PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models import (
    FORMAT_CELL_FACETS,
    RecoveryFormatAreaState,
    RecoveryFormatBorderState,
    RecoveryFormatSelection,
)
from ..shared.a1 import (
    bounds_to_address,
    column_number_to_letter,
    local_address_part,
    parse_range_bounds,
)
from .base import FormatAreaCapture
from .colors import color_from_text, color_to_text

_NO_BORDER = "none"
_NO_FILL = "none"
_UNSUPPORTED = object()

_FACET_LABELS: dict[str, str] = {
    "fill_color": "fill color",
    "font_color": "font color",
    "bold": "bold state",
    "italic": "italic state",
    "underline_style": "underline style",
    "font_name": "font name",
    "font_size": "font size",
    "horizontal_alignment": "horizontal alignment",
    "vertical_alignment": "vertical alignment",
    "wrap_text": "wrap-text state",
}


def capture_format_area(
    sheet: Worksheet,
    address: str,
    selection: RecoveryFormatSelection,
) -> FormatAreaCapture:
    """Capture the selected format facets of one rectangular area.

    Scalar facets must be uniform across the area; mixed values make the
    capture unsupported rather than lossy.

    Args:
        sheet: Target worksheet.
        address: Local A1 address of the area.
        selection: Facets to capture.

    Returns:
        Captured area state, or a reason when the area is not restorable.
    """
    min_col, min_row, max_col, max_row = parse_range_bounds(address)
    cells = _cell_grid(sheet, min_col, min_row, max_col, max_row)
    fields: dict[str, Any] = {
        "address": address,
        "row_count": max_row - min_row + 1,
        "column_count": max_col - min_col + 1,
    }
    if selection.number_format:
        fields["number_format"] = [[cell.number_format for cell in row] for row in cells]
    for facet in FORMAT_CELL_FACETS:
        if not getattr(selection, facet):
            continue
        value = _uniform_value(cells, _CELL_FACET_READERS[facet])
        if value is _UNSUPPORTED:
            return FormatAreaCapture(
                reason=(
                    "Format checkpoint capture failed: "
                    f"{_FACET_LABELS[facet]} is mixed or unsupported."
                )
            )
        fields[facet] = value
    if selection.column_width:
        fields["column_widths"] = [
            _column_width(sheet, col) for col in range(min_col, max_col + 1)
        ]
    if selection.row_height:
        fields["row_heights"] = [
            _row_height(sheet, row) for row in range(min_row, max_row + 1)
        ]
    if selection.merged_areas:
        fields["merged_areas"] = _intersecting_merged_ranges(
            sheet, (min_col, min_row, max_col, max_row)
        )
    for facet, (edge_cells, side_name) in _border_edges(cells).items():
        if not getattr(selection, facet):
            continue
        border = _uniform_border(edge_cells, side_name)
        if border is None:
            return FormatAreaCapture(
                reason="Format checkpoint capture failed: border state is mixed or unsupported."
            )
        fields[facet] = border
    return FormatAreaCapture(area=RecoveryFormatAreaState(**fields))


def apply_format_area(
    sheet: Worksheet,
    area: RecoveryFormatAreaState,
    selection: RecoveryFormatSelection,
) -> None:
    """Write the selected facets of a captured area back to the sheet."""
    min_col, min_row, max_col, max_row = parse_range_bounds(local_address_part(area.address))
    if selection.merged_areas and area.merged_areas is not None:
        _restore_merge_state(sheet, (min_col, min_row, max_col, max_row), area.merged_areas)
    cells = _cell_grid(sheet, min_col, min_row, max_col, max_row)
    if selection.number_format and area.number_format is not None:
        for row_cells, row_formats in zip(cells, area.number_format):
            for cell, number_format in zip(row_cells, row_formats):
                cell.number_format = number_format
    for row_cells in cells:
        for cell in row_cells:
            _apply_cell_facets(cell, area, selection)
    if selection.column_width and area.column_widths is not None:
        for offset, width in enumerate(area.column_widths):
            letter = column_number_to_letter(min_col + offset)
            if width is None:
                sheet.column_dimensions.pop(letter, None)
            else:
                sheet.column_dimensions[letter].width = width
    if selection.row_height and area.row_heights is not None:
        for offset, height in enumerate(area.row_heights):
            sheet.row_dimensions[min_row + offset].height = height
    for facet, (edge_cells, side_name) in _border_edges(cells).items():
        border_state = getattr(area, facet)
        if not getattr(selection, facet) or border_state is None:
            continue
        side = _build_side(border_state)
        for cell in edge_cells:
            border = copy(cell.border)
            setattr(border, side_name, side)
            cell.border = border


def _cell_grid(
    sheet: Worksheet, min_col: int, min_row: int, max_col: int, max_row: int
) -> list[list[Cell]]:
    """Return cell objects of the area in row-major order."""
    return [
        list(row)
        for row in sheet.iter_rows(
            min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
        )
    ]


def _uniform_value(cells: list[list[Cell]], reader: Callable[[Cell], object]) -> object:
    """Return the facet value shared by all cells, or the unsupported marker.

    Merged placeholders carry no formatting of their own and are skipped.
    """
    seen: set[object] = set()
    for row in cells:
        for cell in row:
            if isinstance(cell, MergedCell):
                continue
            value = reader(cell)
            if value is _UNSUPPORTED:
                return _UNSUPPORTED
            seen.add(value)
            if len(seen) > 1:
                return _UNSUPPORTED
    if not seen:
        return _UNSUPPORTED
    return next(iter(seen))


def _read_fill_color(cell: Cell) -> object:
    # cell.fill is a StyleProxy; copying yields the underlying fill.
    fill = copy(cell.fill)
    if not isinstance(fill, PatternFill):
        return _UNSUPPORTED
    if fill.fill_type in (None, "none"):
        return _NO_FILL
    if fill.fill_type != "solid":
        return _UNSUPPORTED
    return color_to_text(fill.fgColor)


def _read_font_name(cell: Cell) -> object:
    name = cell.font.name
    return name if isinstance(name, str) else _UNSUPPORTED


def _read_font_size(cell: Cell) -> object:
    size = cell.font.size
    return float(size) if size is not None else _UNSUPPORTED


_CELL_FACET_READERS: dict[str, Callable[[Cell], object]] = {
    "fill_color": _read_fill_color,
    "font_color": lambda cell: color_to_text(cell.font.color),
    "bold": lambda cell: bool(cell.font.bold),
    "italic": lambda cell: bool(cell.font.italic),
    "underline_style": lambda cell: cell.font.underline or "none",
    "font_name": _read_font_name,
    "font_size": _read_font_size,
    "horizontal_alignment": lambda cell: cell.alignment.horizontal or "general",
    "vertical_alignment": lambda cell: cell.alignment.vertical or "bottom",
    "wrap_text": lambda cell: bool(cell.alignment.wrap_text),
}


def _apply_cell_facets(
    cell: Cell, area: RecoveryFormatAreaState, selection: RecoveryFormatSelection
) -> None:
    """Apply scalar facets to one cell."""
    if selection.fill_color and area.fill_color is not None:
        if area.fill_color == _NO_FILL:
            cell.fill = PatternFill(fill_type=None)
        else:
            color = color_from_text(area.fill_color)
            cell.fill = PatternFill(fill_type="solid", start_color=color, end_color=color)
    font_updates: dict[str, object] = {}
    if selection.font_color and area.font_color is not None:
        font_updates["color"] = color_from_text(area.font_color)
    if selection.bold and area.bold is not None:
        font_updates["bold"] = area.bold
    if selection.italic and area.italic is not None:
        font_updates["italic"] = area.italic
    if selection.underline_style and area.underline_style is not None:
        font_updates["underline"] = (
            None if area.underline_style == "none" else area.underline_style
        )
    if selection.font_name and area.font_name is not None:
        font_updates["name"] = area.font_name
    if selection.font_size and area.font_size is not None:
        font_updates["size"] = area.font_size
    if font_updates:
        font = copy(cell.font)
        for attribute, value in font_updates.items():
            setattr(font, attribute, value)
        cell.font = font
    alignment_updates: dict[str, object] = {}
    if selection.horizontal_alignment and area.horizontal_alignment is not None:
        alignment_updates["horizontal"] = area.horizontal_alignment
    if selection.vertical_alignment and area.vertical_alignment is not None:
        alignment_updates["vertical"] = area.vertical_alignment
    if selection.wrap_text and area.wrap_text is not None:
        alignment_updates["wrap_text"] = area.wrap_text
    if alignment_updates:
        alignment = copy(cell.alignment)
        for attribute, value in alignment_updates.items():
            setattr(alignment, attribute, value)
        cell.alignment = alignment


def _border_edges(cells: list[list[Cell]]) -> dict[str, tuple[list[Cell], str]]:
    """Map border facets to the cells and side they cover.

    Inside edges are recorded on the bottom/right side of every row/column
    except the last.
    """
    first_column = [row[0] for row in cells]
    last_column = [row[-1] for row in cells]
    inside_vertical = [cell for row in cells for cell in row[:-1]]
    inside_horizontal = [cell for row in cells[:-1] for cell in row]
    return {
        "border_top": (list(cells[0]), "top"),
        "border_bottom": (list(cells[-1]), "bottom"),
        "border_left": (first_column, "left"),
        "border_right": (last_column, "right"),
        "border_inside_horizontal": (inside_horizontal, "bottom"),
        "border_inside_vertical": (inside_vertical, "right"),
    }


def _uniform_border(cells: list[Cell], side_name: str) -> RecoveryFormatBorderState | None:
    """Return the shared border state of an edge, or None when mixed."""
    states: set[tuple[str, str | None]] = set()
    for cell in cells:
        side = getattr(cell.border, side_name, None)
        style = getattr(side, "style", None) or _NO_BORDER
        color = (
            None
            if style == _NO_BORDER
            else color_to_text(getattr(side, "color", None))
        )
        states.add((style, color))
        if len(states) > 1:
            return None
    if not states:
        return RecoveryFormatBorderState(style=_NO_BORDER)
    style, color = next(iter(states))
    return RecoveryFormatBorderState(style=style, color=color)


def _build_side(state: RecoveryFormatBorderState) -> Side:
    """Build an openpyxl Side from a captured border state."""
    if state.style == _NO_BORDER:
        return Side(style=None)
    return Side(style=state.style, color=color_from_text(state.color))


def _column_width(sheet: Worksheet, column: int) -> float | None:
    """Return an explicit column width, or None for the default width."""
    dimension = sheet.column_dimensions.get(column_number_to_letter(column))
    if dimension is None or not dimension.customWidth:
        return None
    return float(dimension.width)


def _row_height(sheet: Worksheet, row: int) -> float | None:
    """Return an explicit row height, or None for the default height."""
    dimension = sheet.row_dimensions.get(row)
    if dimension is None or dimension.height is None:
        return None
    return float(dimension.height)


def _intersecting_merged_ranges(
    sheet: Worksheet, bounds: tuple[int, int, int, int]
) -> list[str]:
    """Return merged ranges that overlap the given bounds."""
    min_col, min_row, max_col, max_row = bounds
    ranges: list[str] = []
    for merged in sheet.merged_cells.ranges:
        if (
            merged.max_col < min_col
            or merged.min_col > max_col
            or merged.max_row < min_row
            or merged.min_row > max_row
        ):
            continue
        ranges.append(
            bounds_to_address(merged.min_col, merged.min_row, merged.max_col, merged.max_row)
        )
    return sorted(ranges)


def _restore_merge_state(
    sheet: Worksheet, bounds: tuple[int, int, int, int], ranges: list[str]
) -> None:
    """Restore merged ranges for a scope deterministically."""
    for range_ref in _intersecting_merged_ranges(sheet, bounds):
        sheet.unmerge_cells(range_ref)
    for range_ref in ranges:
        if ":" in range_ref:
            sheet.merge_cells(range_ref)


__all__ = ["apply_format_area", "capture_format_area"]
