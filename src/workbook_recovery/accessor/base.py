from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from ..models import (
    ConditionalFormatCaptureResult,
    RecoveryCommentThreadState,
    RecoveryConditionalFormatRule,
    RecoveryFormatAreaState,
    RecoveryFormatSelection,
)
from ..shared.grid import CellGrid
from ..types import RecoverySheetVisibility


class SheetInfo(BaseModel):
    """Snapshot of one sheet's identity; ``position`` is 0-based."""

    id: str
    name: str
    position: int
    visibility: RecoverySheetVisibility


class UsedRange(BaseModel):
    """Bounding box of non-empty cells, as a local A1 address."""

    address: str
    row_count: int
    column_count: int


class RangeGrids(BaseModel):
    """Values and formulas read from one range."""

    values: CellGrid
    formulas: CellGrid


class FormatAreaCapture(BaseModel):
    """Result of reading one format area; ``reason`` is set when unsupported."""

    area: RecoveryFormatAreaState | None = None
    reason: str | None = None


@runtime_checkable
class WorkbookAccessor(Protocol):
    """Read/write/sync primitives the recovery engine needs from a workbook.

    Lookups return None for missing sheets. Reads are only guaranteed to
    reflect queued mutations after ``sync``.
    """

    @property
    def workbook_id(self) -> str | None: ...

    def get_sheet(self, ref: str) -> SheetInfo | None: ...

    def get_sheet_by_id(self, sheet_id: str) -> SheetInfo | None: ...

    def get_sheet_by_name(self, name: str) -> SheetInfo | None: ...

    def active_sheet(self) -> SheetInfo | None: ...

    def add_sheet(self, name: str, sheet_id: str | None = None) -> SheetInfo: ...

    def delete_sheet(self, sheet_id: str) -> None: ...

    def set_sheet_name(self, sheet_id: str, name: str) -> None: ...

    def set_sheet_visibility(
        self, sheet_id: str, visibility: RecoverySheetVisibility
    ) -> None: ...

    def set_sheet_position(self, sheet_id: str, position: int) -> None: ...

    def get_used_range(
        self, sheet_id: str, address: str | None = None
    ) -> UsedRange | None: ...

    def read_range(self, sheet_id: str, address: str) -> RangeGrids: ...

    def write_range(
        self, sheet_id: str, address: str, values: Sequence[Sequence[Any]]
    ) -> None: ...

    def delete_rows(self, sheet_id: str, position: int, count: int) -> None: ...

    def insert_rows(self, sheet_id: str, position: int, count: int) -> None: ...

    def delete_columns(self, sheet_id: str, position: int, count: int) -> None: ...

    def insert_columns(self, sheet_id: str, position: int, count: int) -> None: ...

    def capture_format_area(
        self, sheet_id: str, address: str, selection: RecoveryFormatSelection
    ) -> FormatAreaCapture: ...

    def apply_format_area(
        self,
        sheet_id: str,
        area: RecoveryFormatAreaState,
        selection: RecoveryFormatSelection,
    ) -> None: ...

    def capture_conditional_formats(
        self, sheet_id: str, address: str
    ) -> ConditionalFormatCaptureResult: ...

    def replace_conditional_formats(
        self,
        sheet_id: str,
        address: str,
        rules: Sequence[RecoveryConditionalFormatRule],
    ) -> None: ...

    def read_comment_thread(
        self, sheet_id: str, address: str
    ) -> RecoveryCommentThreadState: ...

    def write_comment_thread(
        self, sheet_id: str, address: str, thread: RecoveryCommentThreadState
    ) -> None: ...

    def sync(self) -> None: ...


__all__ = [
    "FormatAreaCapture",
    "RangeGrids",
    "SheetInfo",
    "UsedRange",
    "WorkbookAccessor",
]
