from __future__ import annotations

import math

from ..models import RecoveryModifyStructureState, RecoveryStructureValueRangeState
from ..shared.grid import grid_stats


def normalize_positive_integer(value: object) -> int | None:
    """Floor a finite number and return it when positive, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    normalized = math.floor(value)
    if normalized <= 0:
        return None
    return normalized


def is_structure_value_range_state_shape_valid(
    state: RecoveryStructureValueRangeState,
) -> bool:
    """Return True when a captured range is internally consistent.

    Models built with ``model_construct`` skip validation, so apply paths
    re-check the shape before writing anything.
    """
    if not isinstance(state.address, str) or not state.address:
        return False
    for count in (state.row_count, state.column_count):
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            return False
    stats = grid_stats(state.values, state.formulas)
    return stats.rows == state.row_count and stats.cols == state.column_count


def estimate_modify_structure_cell_count(state: RecoveryModifyStructureState) -> int:
    """Return the cell count a structural checkpoint will restore."""
    data_range = getattr(state, "data_range", None)
    if data_range is None:
        return 1
    return data_range.row_count * data_range.column_count


__all__ = [
    "estimate_modify_structure_cell_count",
    "is_structure_value_range_state_shape_valid",
    "normalize_positive_integer",
]
