from __future__ import annotations

from .base import FormatAreaCapture, RangeGrids, SheetInfo, UsedRange, WorkbookAccessor
from .openpyxl_accessor import OpenpyxlWorkbookAccessor

__all__ = [
    "FormatAreaCapture",
    "OpenpyxlWorkbookAccessor",
    "RangeGrids",
    "SheetInfo",
    "UsedRange",
    "WorkbookAccessor",
]
