from __future__ import annotations

from pydantic import BaseModel

from .types import RecoveryErrorCode


class RecoveryErrorDetail(BaseModel):
    """Structured error detail for refused captures and restores."""

    code: RecoveryErrorCode
    message: str
    sheet: str | None = None
    hint: str | None = None


class RecoveryError(ValueError):
    """Base error carrying a structured detail."""

    def __init__(self, detail: RecoveryErrorDetail) -> None:
        super().__init__(detail.message)
        self.detail = detail

    @property
    def code(self) -> RecoveryErrorCode:
        return self.detail.code

    @classmethod
    def build(
        cls,
        code: RecoveryErrorCode,
        message: str,
        *,
        sheet: str | None = None,
        hint: str | None = None,
    ) -> RecoveryError:
        """Build an error from code and message."""
        return cls(RecoveryErrorDetail(code=code, message=message, sheet=sheet, hint=hint))


class RestoreBlockedError(RecoveryError):
    """Mutation refused because it would silently lose data."""


class InvalidStateError(RecoveryError):
    """State payload is corrupt, mismatched, or not restorable on this backend."""


class SheetNotFoundError(RecoveryError):
    """Referenced sheet does not exist."""


class CheckpointNotFoundError(RecoveryError):
    """Checkpoint id is not present in the log."""


class WorkbookMismatchError(RecoveryError):
    """Checkpoint was recorded against a different workbook."""


__all__ = [
    "CheckpointNotFoundError",
    "InvalidStateError",
    "RecoveryError",
    "RecoveryErrorDetail",
    "RestoreBlockedError",
    "SheetNotFoundError",
    "WorkbookMismatchError",
]
