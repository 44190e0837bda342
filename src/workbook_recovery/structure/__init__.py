"""Structural checkpoints: sheets, rows and columns."""

from __future__ import annotations

from .apply import apply_modify_structure_state
from .capture import (
    capture_modify_structure_state,
    capture_sheet_value_data_range,
    capture_value_data_range,
    has_value_data_in_range,
    has_value_data_in_sheet,
)
from .common import (
    estimate_modify_structure_cell_count,
    is_structure_value_range_state_shape_valid,
    normalize_positive_integer,
)

__all__ = [
    "apply_modify_structure_state",
    "capture_modify_structure_state",
    "capture_sheet_value_data_range",
    "capture_value_data_range",
    "estimate_modify_structure_cell_count",
    "has_value_data_in_range",
    "has_value_data_in_sheet",
    "is_structure_value_range_state_shape_valid",
    "normalize_positive_integer",
]
