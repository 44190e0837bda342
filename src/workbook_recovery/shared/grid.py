from __future__ import annotations

from collections.abc import Sequence
import json
from typing import Any

from pydantic import BaseModel

CellGrid = list[list[Any]]


class GridStats(BaseModel):
    """Computed extents of one or more row-major grids."""

    rows: int
    cols: int


def grid_stats(*grids: Sequence[Sequence[Any]]) -> GridStats:
    """Return row count and widest row across all grids."""
    rows = 0
    cols = 0
    for grid in grids:
        rows = max(rows, len(grid))
        for row in grid:
            cols = max(cols, len(row))
    return GridStats(rows=rows, cols=cols)


def value_at(grid: Sequence[Sequence[Any]], row: int, col: int) -> Any:
    """Return the grid value at (row, col), or None when out of range."""
    if row < 0 or row >= len(grid):
        return None
    cells = grid[row]
    if col < 0 or col >= len(cells):
        return None
    return cells[col]


def clone_grid(grid: Sequence[Sequence[Any]]) -> CellGrid:
    """Return a row-by-row copy of a grid."""
    return [list(row) for row in grid]


def normalize_formula(raw: object) -> str | None:
    """Return trimmed formula text when it starts with '=', else None."""
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text.startswith("="):
        return None
    return text


def is_formula_text(raw: object) -> bool:
    """Return True when the value is a string beginning with '='."""
    return isinstance(raw, str) and raw.startswith("=")


def to_restore_values(
    values: Sequence[Sequence[Any]], formulas: Sequence[Sequence[Any]]
) -> CellGrid:
    """Merge captured values and formulas into the grid to write back.

    A formula cell wins over the value at the same position; plain values
    fill every other position.
    """
    stats = grid_stats(values, formulas)
    restored: CellGrid = []
    for row_index in range(stats.rows):
        row: list[Any] = []
        for col_index in range(stats.cols):
            formula = value_at(formulas, row_index, col_index)
            if is_formula_text(formula):
                row.append(formula)
            else:
                row.append(value_at(values, row_index, col_index))
        restored.append(row)
    return restored


def count_changed_cells(
    before_values: Sequence[Sequence[Any]],
    before_formulas: Sequence[Sequence[Any]],
    after_values: Sequence[Sequence[Any]],
    after_formulas: Sequence[Sequence[Any]],
) -> int:
    """Count positions whose serialized value or formula differs."""
    stats = grid_stats(before_values, before_formulas, after_values, after_formulas)
    changed = 0
    for row_index in range(stats.rows):
        for col_index in range(stats.cols):
            before = _cell_signature(before_values, before_formulas, row_index, col_index)
            after = _cell_signature(after_values, after_formulas, row_index, col_index)
            if before != after:
                changed += 1
    return changed


def _cell_signature(
    values: Sequence[Sequence[Any]],
    formulas: Sequence[Sequence[Any]],
    row: int,
    col: int,
) -> str:
    """Serialize one cell position for comparison."""
    formula = normalize_formula(value_at(formulas, row, col))
    if formula is not None:
        return f"f:{formula}"
    return "v:" + json.dumps(value_at(values, row, col), default=str, sort_keys=True)
