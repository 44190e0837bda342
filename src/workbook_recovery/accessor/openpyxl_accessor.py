from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

from openpyxl import Workbook, load_workbook
from openpyxl.packaging.custom import StringProperty
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from ..constants import SHEET_ID_PROPERTY_PREFIX, WORKBOOK_ID_PROPERTY
from ..errors import InvalidStateError, SheetNotFoundError
from ..models import (
    ConditionalFormatCaptureResult,
    RecoveryCommentThreadState,
    RecoveryConditionalFormatRule,
    RecoveryFormatAreaState,
    RecoveryFormatSelection,
)
from ..shared.a1 import (
    bounds_to_address,
    local_address_part,
    parse_column_span,
    parse_range_bounds,
    parse_row_span,
)
from ..types import RecoverySheetVisibility
from .base import FormatAreaCapture, RangeGrids, SheetInfo, UsedRange
from .openpyxl_comments import read_comment_thread, write_comment_thread
from .openpyxl_conditional import (
    capture_conditional_formats,
    replace_conditional_formats,
)
from .openpyxl_format import apply_format_area, capture_format_area

logger = logging.getLogger(__name__)

_VISIBILITY_TO_STATE: dict[RecoverySheetVisibility, str] = {
    "Visible": "visible",
    "Hidden": "hidden",
    "VeryHidden": "veryHidden",
}
_STATE_TO_VISIBILITY = {value: key for key, value in _VISIBILITY_TO_STATE.items()}
_MACRO_EXTENSIONS = {".xlsm", ".xltm"}


class OpenpyxlWorkbookAccessor:
    """WorkbookAccessor backed by an in-memory openpyxl Workbook.

    Sheets get durable ids that survive renames and reorders. The ids and a
    workbook id are stored as custom document properties by ``sync`` so a
    saved workbook keeps them across sessions.
    """

    def __init__(self, workbook: Workbook) -> None:
        self._workbook = workbook
        self._sheet_ids: dict[int, str] = {}
        self._workbook_id = self._load_identity()

    @classmethod
    def open(cls, path: Path) -> OpenpyxlWorkbookAccessor:
        """Load a workbook file into a new accessor."""
        workbook = load_workbook(path, keep_vba=path.suffix.lower() in _MACRO_EXTENSIONS)
        logger.debug("Loaded workbook %s", path)
        return cls(workbook)

    @property
    def workbook(self) -> Workbook:
        return self._workbook

    @property
    def workbook_id(self) -> str | None:
        return self._workbook_id

    def save(self, path: Path) -> None:
        """Persist identity properties and write the workbook to ``path``."""
        self.sync()
        self._workbook.save(path)
        logger.debug("Saved workbook %s", path)

    # Sheets

    def get_sheet(self, ref: str) -> SheetInfo | None:
        return self.get_sheet_by_id(ref) or self.get_sheet_by_name(ref)

    def get_sheet_by_id(self, sheet_id: str) -> SheetInfo | None:
        sheet = self._find_by_id(sheet_id)
        return self._describe(sheet) if sheet is not None else None

    def get_sheet_by_name(self, name: str) -> SheetInfo | None:
        folded = name.casefold()
        for sheet in self._workbook.worksheets:
            if sheet.title.casefold() == folded:
                return self._describe(sheet)
        return None

    def active_sheet(self) -> SheetInfo | None:
        sheet = self._workbook.active
        if not isinstance(sheet, Worksheet):
            return None
        return self._describe(sheet)

    def add_sheet(self, name: str, sheet_id: str | None = None) -> SheetInfo:
        if self.get_sheet_by_name(name) is not None:
            raise InvalidStateError.build(
                "target_exists", f"Sheet already exists: {name}", sheet=name
            )
        sheet = self._workbook.create_sheet(title=name)
        if sheet.title != name:
            self._workbook.remove(sheet)
            raise InvalidStateError.build(
                "invalid_state", f"Invalid sheet name: {name}", sheet=name
            )
        if sheet_id is not None and self._find_by_id(sheet_id) is None:
            self._sheet_ids[id(sheet)] = sheet_id
        return self._describe(sheet)

    def delete_sheet(self, sheet_id: str) -> None:
        sheet = self._require_sheet(sheet_id)
        self._workbook.remove(sheet)
        self._sheet_ids.pop(id(sheet), None)

    def set_sheet_name(self, sheet_id: str, name: str) -> None:
        self._require_sheet(sheet_id).title = name

    def set_sheet_visibility(
        self, sheet_id: str, visibility: RecoverySheetVisibility
    ) -> None:
        self._require_sheet(sheet_id).sheet_state = _VISIBILITY_TO_STATE[visibility]

    def set_sheet_position(self, sheet_id: str, position: int) -> None:
        sheet = self._require_sheet(sheet_id)
        sheets = self._workbook.worksheets
        target = max(0, min(position, len(sheets) - 1))
        offset = target - sheets.index(sheet)
        if offset:
            self._workbook.move_sheet(sheet, offset=offset)

    # Values

    def get_used_range(self, sheet_id: str, address: str | None = None) -> UsedRange | None:
        sheet = self._require_sheet(sheet_id)
        bounds = self._resolve_bounds(sheet, address)
        if bounds is None:
            return None
        min_col, min_row, max_col, max_row = bounds
        found: list[int] | None = None
        # Existing cells only; empty positions of the box are never created.
        for (row, col), cell in sheet._cells.items():
            if cell.value is None:
                continue
            if not (min_row <= row <= max_row and min_col <= col <= max_col):
                continue
            if found is None:
                found = [col, row, col, row]
                continue
            found[0] = min(found[0], col)
            found[1] = min(found[1], row)
            found[2] = max(found[2], col)
            found[3] = max(found[3], row)
        if found is None:
            return None
        return UsedRange(
            address=bounds_to_address(*found),
            row_count=found[3] - found[1] + 1,
            column_count=found[2] - found[0] + 1,
        )

    def read_range(self, sheet_id: str, address: str) -> RangeGrids:
        sheet = self._require_sheet(sheet_id)
        min_col, min_row, max_col, max_row = parse_range_bounds(local_address_part(address))
        cells = sheet._cells
        values: list[list[Any]] = []
        formulas: list[list[Any]] = []
        for row in range(min_row, max_row + 1):
            value_row: list[Any] = []
            formula_row: list[Any] = []
            for col in range(min_col, max_col + 1):
                cell = cells.get((row, col))
                value = None if cell is None else cell.value
                formula = _formula_text(value)
                value_row.append(None if formula is not None else value)
                formula_row.append(formula or "")
            values.append(value_row)
            formulas.append(formula_row)
        return RangeGrids(values=values, formulas=formulas)

    def write_range(
        self, sheet_id: str, address: str, values: Sequence[Sequence[Any]]
    ) -> None:
        sheet = self._require_sheet(sheet_id)
        min_col, min_row, _, _ = parse_range_bounds(local_address_part(address))
        for row_offset, row_values in enumerate(values):
            for col_offset, value in enumerate(row_values):
                sheet.cell(row=min_row + row_offset, column=min_col + col_offset).value = (
                    value
                )

    def delete_rows(self, sheet_id: str, position: int, count: int) -> None:
        self._require_sheet(sheet_id).delete_rows(position, count)

    def insert_rows(self, sheet_id: str, position: int, count: int) -> None:
        self._require_sheet(sheet_id).insert_rows(position, count)

    def delete_columns(self, sheet_id: str, position: int, count: int) -> None:
        self._require_sheet(sheet_id).delete_cols(position, count)

    def insert_columns(self, sheet_id: str, position: int, count: int) -> None:
        self._require_sheet(sheet_id).insert_cols(position, count)

    # Formats

    def capture_format_area(
        self, sheet_id: str, address: str, selection: RecoveryFormatSelection
    ) -> FormatAreaCapture:
        return capture_format_area(
            self._require_sheet(sheet_id), local_address_part(address), selection
        )

    def apply_format_area(
        self,
        sheet_id: str,
        area: RecoveryFormatAreaState,
        selection: RecoveryFormatSelection,
    ) -> None:
        apply_format_area(self._require_sheet(sheet_id), area, selection)

    def capture_conditional_formats(
        self, sheet_id: str, address: str
    ) -> ConditionalFormatCaptureResult:
        return capture_conditional_formats(
            self._require_sheet(sheet_id), local_address_part(address)
        )

    def replace_conditional_formats(
        self,
        sheet_id: str,
        address: str,
        rules: Sequence[RecoveryConditionalFormatRule],
    ) -> None:
        replace_conditional_formats(
            self._require_sheet(sheet_id), local_address_part(address), rules
        )

    # Comments

    def read_comment_thread(
        self, sheet_id: str, address: str
    ) -> RecoveryCommentThreadState:
        return read_comment_thread(
            self._require_sheet(sheet_id), local_address_part(address)
        )

    def write_comment_thread(
        self, sheet_id: str, address: str, thread: RecoveryCommentThreadState
    ) -> None:
        write_comment_thread(
            self._require_sheet(sheet_id), local_address_part(address), thread
        )

    def sync(self) -> None:
        """Write sheet ids and the workbook id into custom document properties."""
        properties = self._workbook.custom_doc_props
        retained = [
            prop
            for prop in properties.props
            if not prop.name.startswith(SHEET_ID_PROPERTY_PREFIX)
            and prop.name != WORKBOOK_ID_PROPERTY
        ]
        retained.append(StringProperty(name=WORKBOOK_ID_PROPERTY, value=self._workbook_id))
        for sheet in self._workbook.worksheets:
            retained.append(
                StringProperty(
                    name=f"{SHEET_ID_PROPERTY_PREFIX}{self._sheet_id(sheet)}",
                    value=sheet.title,
                )
            )
        properties.props = retained

    # Internals

    def _load_identity(self) -> str:
        """Restore workbook and sheet ids from custom document properties."""
        workbook_id: str | None = None
        by_title: dict[str, str] = {}
        for prop in self._workbook.custom_doc_props.props:
            if prop.name == WORKBOOK_ID_PROPERTY and isinstance(prop.value, str):
                workbook_id = prop.value
            elif prop.name.startswith(SHEET_ID_PROPERTY_PREFIX) and isinstance(
                prop.value, str
            ):
                by_title[prop.value] = prop.name[len(SHEET_ID_PROPERTY_PREFIX) :]
        for sheet in self._workbook.worksheets:
            sheet_id = by_title.get(sheet.title)
            if sheet_id is not None:
                self._sheet_ids[id(sheet)] = sheet_id
        return workbook_id or str(uuid4())

    def _sheet_id(self, sheet: Worksheet) -> str:
        key = id(sheet)
        sheet_id = self._sheet_ids.get(key)
        if sheet_id is None:
            sheet_id = str(uuid4())
            self._sheet_ids[key] = sheet_id
        return sheet_id

    def _find_by_id(self, sheet_id: str) -> Worksheet | None:
        for sheet in self._workbook.worksheets:
            if self._sheet_id(sheet) == sheet_id:
                return sheet
        return None

    def _require_sheet(self, sheet_id: str) -> Worksheet:
        sheet = self._find_by_id(sheet_id)
        if sheet is None:
            raise SheetNotFoundError.build(
                "sheet_not_found", f"Sheet not found: {sheet_id}", sheet=sheet_id
            )
        return sheet

    def _describe(self, sheet: Worksheet) -> SheetInfo:
        return SheetInfo(
            id=self._sheet_id(sheet),
            name=sheet.title,
            position=self._workbook.worksheets.index(sheet),
            visibility=_STATE_TO_VISIBILITY.get(sheet.sheet_state, "Visible"),
        )

    def _resolve_bounds(
        self, sheet: Worksheet, address: str | None
    ) -> tuple[int, int, int, int] | None:
        """Resolve an address (cells, whole rows or whole columns) to bounds
        clipped to the sheet's dimensions."""
        last_row = sheet.max_row
        last_col = sheet.max_column
        if address is None:
            return 1, 1, last_col, last_row
        local = local_address_part(address)
        rows = parse_row_span(local)
        if rows is not None:
            if rows[0] > last_row:
                return None
            return 1, rows[0], last_col, min(rows[1], last_row)
        columns = parse_column_span(local)
        if columns is not None:
            if columns[0] > last_col:
                return None
            return columns[0], 1, min(columns[1], last_col), last_row
        min_col, min_row, max_col, max_row = parse_range_bounds(local)
        if min_row > last_row or min_col > last_col:
            return None
        return min_col, min_row, min(max_col, last_col), min(max_row, last_row)


def _formula_text(value: object) -> str | None:
    """Return formula text for formula cells, else None."""
    if isinstance(value, ArrayFormula):
        text = value.text or ""
        return text if text.startswith("=") else f"={text}"
    if isinstance(value, str) and value.startswith("="):
        return value
    return None


__all__ = ["OpenpyxlWorkbookAccessor"]
