from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .constants import MAX_RECOVERY_CELLS, MAX_RECOVERY_ENTRIES
from .retention import clamp_retention_limit

LOG_SUFFIX = ".recovery.json"


class RecoveryConfig(BaseModel):
    """Configuration for a recovery session on one workbook."""

    workbook: Path = Field(..., description="Workbook file to recover.")
    log_path: Path | None = Field(
        default=None, description="Checkpoint log path (defaults beside the workbook)."
    )
    max_cell_count: int = Field(
        default=MAX_RECOVERY_CELLS, gt=0, description="Cell cap for value captures."
    )
    retention_limit: int = Field(
        default=MAX_RECOVERY_ENTRIES, description="Checkpoints to keep (clamped)."
    )
    log_level: str = Field(default="INFO", description="Logging level.")
    log_file: Path | None = Field(default=None, description="Optional log file path.")

    @field_validator("retention_limit", mode="before")
    @classmethod
    def _clamp_retention(cls, value: Any) -> int:
        return clamp_retention_limit(value)

    def resolved_log_path(self) -> Path:
        """Return the checkpoint log path, defaulting to ``<workbook>.recovery.json``."""
        if self.log_path is not None:
            return self.log_path
        return self.workbook.with_name(self.workbook.name + LOG_SUFFIX)


__all__ = ["LOG_SUFFIX", "RecoveryConfig"]
