from __future__ import annotations

from .accessor.base import SheetInfo, WorkbookAccessor
from .errors import InvalidStateError, SheetNotFoundError
from .shared.a1 import split_range_list, split_sheet_address


def resolve_target_sheet(
    accessor: WorkbookAccessor, address: str
) -> tuple[SheetInfo | None, str | None, list[str]]:
    """Resolve the sheet and local areas of a (possibly multi-area) address.

    Unqualified areas belong to the sheet named by the other areas, or to
    the active sheet when no area names one.

    Args:
        accessor: Workbook accessor.
        address: ``Sheet!A1:B2``, ``A1:B2`` or a comma-separated list.

    Returns:
        The sheet (None when missing), the requested sheet name (None for the
        active sheet) and the local area addresses.

    Raises:
        InvalidStateError: The address is empty or spans several sheets.
    """
    parts = split_range_list(address)
    if not parts:
        raise InvalidStateError.build("invalid_state", f"Invalid address: {address!r}")
    sheet_names: list[str] = []
    areas: list[str] = []
    for part in parts:
        sheet_name, local = split_sheet_address(part)
        if sheet_name is not None:
            sheet_names.append(sheet_name)
        areas.append(local)
    if len({name.casefold() for name in sheet_names}) > 1:
        raise InvalidStateError.build(
            "invalid_state", f"Address spans several sheets: {address}"
        )
    requested = sheet_names[0] if sheet_names else None
    if requested is None:
        sheet = accessor.active_sheet()
    else:
        sheet = accessor.get_sheet_by_name(requested)
    accessor.sync()
    return sheet, requested, areas


def require_target_sheet(
    accessor: WorkbookAccessor, address: str
) -> tuple[SheetInfo, list[str]]:
    """Resolve like ``resolve_target_sheet`` but raise when the sheet is missing."""
    sheet, requested, areas = resolve_target_sheet(accessor, address)
    if sheet is None:
        raise SheetNotFoundError.build(
            "sheet_not_found",
            f"Sheet not found for address: {address}",
            sheet=requested,
        )
    return sheet, areas


__all__ = ["require_target_sheet", "resolve_target_sheet"]
