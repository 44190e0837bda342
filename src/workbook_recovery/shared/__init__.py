from __future__ import annotations

from .a1 import (
    bounds_to_address,
    canonical_range,
    column_letter_to_number,
    column_number_to_letter,
    column_span_address,
    local_address_part,
    normalize_range,
    parse_column_span,
    parse_range_bounds,
    parse_range_geometry,
    parse_row_span,
    qualify_address_with_sheet,
    quote_sheet_name,
    range_cell_count,
    row_span_address,
    split_a1,
    split_range_list,
    split_sheet_address,
)
from .grid import (
    CellGrid,
    GridStats,
    clone_grid,
    count_changed_cells,
    grid_stats,
    normalize_formula,
    to_restore_values,
    value_at,
)

__all__ = [
    "CellGrid",
    "GridStats",
    "bounds_to_address",
    "canonical_range",
    "clone_grid",
    "column_letter_to_number",
    "column_number_to_letter",
    "column_span_address",
    "count_changed_cells",
    "grid_stats",
    "local_address_part",
    "normalize_formula",
    "normalize_range",
    "parse_column_span",
    "parse_range_bounds",
    "parse_range_geometry",
    "parse_row_span",
    "qualify_address_with_sheet",
    "quote_sheet_name",
    "range_cell_count",
    "row_span_address",
    "split_a1",
    "split_range_list",
    "split_sheet_address",
    "to_restore_values",
    "value_at",
]
