from __future__ import annotations

from collections.abc import Sequence
import logging

from .accessor.base import WorkbookAccessor
from .errors import InvalidStateError
from .models import ConditionalFormatCaptureResult, RecoveryConditionalFormatRule
from .targets import require_target_sheet, resolve_target_sheet

logger = logging.getLogger(__name__)


def capture_conditional_format_state(
    accessor: WorkbookAccessor, address: str
) -> ConditionalFormatCaptureResult:
    """Capture conditional-format rules whose targets intersect ``address``.

    A missing sheet or an unmappable rule yields an unsupported result.
    """
    sheet, requested, areas = resolve_target_sheet(accessor, address)
    if sheet is None:
        return ConditionalFormatCaptureResult(
            supported=False, reason=f"Sheet not found: {requested or address}"
        )
    local = _single_area(areas, address)
    result = accessor.capture_conditional_formats(sheet.id, local)
    accessor.sync()
    if not result.supported:
        logger.info("Conditional format capture unsupported: %s", result.reason)
    return result


def apply_conditional_format_state(
    accessor: WorkbookAccessor,
    address: str,
    rules: Sequence[RecoveryConditionalFormatRule],
) -> list[RecoveryConditionalFormatRule]:
    """Replace the rules intersecting ``address`` and return the rules replaced.

    Raises:
        InvalidStateError: Current rules cannot be captured, or a rule cannot
            be written by this backend.
        SheetNotFoundError: The addressed sheet does not exist.
    """
    sheet, areas = require_target_sheet(accessor, address)
    local = _single_area(areas, address)
    current = accessor.capture_conditional_formats(sheet.id, local)
    accessor.sync()
    if not current.supported:
        raise InvalidStateError.build(
            "unsupported",
            current.reason or "Conditional format checkpoint cannot be restored safely.",
            sheet=sheet.name,
        )
    accessor.replace_conditional_formats(sheet.id, local, rules)
    accessor.sync()
    return list(current.rules)


def _single_area(areas: list[str], address: str) -> str:
    if len(areas) != 1:
        raise InvalidStateError.build(
            "invalid_state",
            f"Conditional format checkpoints need a single range: {address}",
        )
    return areas[0]


__all__ = ["apply_conditional_format_state", "capture_conditional_format_state"]
