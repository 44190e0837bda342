from __future__ import annotations

import math
from numbers import Real

from .constants import MAX_RECOVERY_ENTRIES, MIN_RETENTION_LIMIT


def clamp_retention_limit(raw: object) -> int:
    """Clamp a stored retention setting into [MIN_RETENTION_LIMIT, MAX_RECOVERY_ENTRIES].

    Non-numeric and non-finite input (None, strings, bools, NaN, infinities)
    maps to the maximum. Fractional values are floored.

    Args:
        raw: Untrusted configuration value.

    Returns:
        Number of checkpoints to retain.
    """
    if isinstance(raw, bool) or not isinstance(raw, Real):
        return MAX_RECOVERY_ENTRIES
    value = float(raw)
    if not math.isfinite(value):
        return MAX_RECOVERY_ENTRIES
    floored = math.floor(value)
    return min(MAX_RECOVERY_ENTRIES, max(MIN_RETENTION_LIMIT, floored))


__all__ = ["MAX_RECOVERY_ENTRIES", "MIN_RETENTION_LIMIT", "clamp_retention_limit"]
