from __future__ import annotations

from workbook_recovery.shared.grid import (
    count_changed_cells,
    grid_stats,
    normalize_formula,
    to_restore_values,
)


def test_to_restore_values_prefers_formulas() -> None:
    assert to_restore_values([[1]], [["=A1+1"]]) == [["=A1+1"]]
    assert to_restore_values([[5]], [[""]]) == [[5]]
    assert to_restore_values([[None, "x"]], [["", ""]]) == [[None, "x"]]


def test_to_restore_values_pads_ragged_grids() -> None:
    assert to_restore_values([[1, 2], [3]], [["", ""], ["", "=B1"]]) == [
        [1, 2],
        [3, "=B1"],
    ]


def test_grid_stats_uses_widest_row() -> None:
    stats = grid_stats([[1], [2, 3]], [[None, None, None]])
    assert (stats.rows, stats.cols) == (2, 3)


def test_count_changed_cells() -> None:
    before_values = [[1, 2], [3, None]]
    before_formulas = [["", ""], ["", "=A1"]]
    after_values = [[1, 20], [3, None]]
    after_formulas = [["", ""], ["", "=A1"]]
    assert (
        count_changed_cells(before_values, before_formulas, after_values, after_formulas)
        == 1
    )


def test_count_changed_cells_compares_formula_text() -> None:
    assert count_changed_cells([[None]], [["=A1 "]], [[None]], [["=A1"]]) == 0
    assert count_changed_cells([[2]], [[""]], [[None]], [["=1+1"]]) == 1


def test_normalize_formula() -> None:
    assert normalize_formula("  =SUM(A1:A3) ") == "=SUM(A1:A3)"
    assert normalize_formula("SUM(A1)") is None
    assert normalize_formula(5) is None
