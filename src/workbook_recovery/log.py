"""Persistent checkpoint log with retention and restore."""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, cast
from uuid import uuid4

from pydantic import BaseModel

from .accessor.base import WorkbookAccessor
from .comment_state import apply_comment_thread_state
from .conditional_format_state import apply_conditional_format_state
from .constants import LOG_FORMAT_VERSION, MAX_RECOVERY_CELLS, MAX_RECOVERY_ENTRIES
from .errors import CheckpointNotFoundError, WorkbookMismatchError
from .format_state import apply_format_cells_state
from .guards import is_record, parse_recovery_checkpoint
from .models import (
    CommentThreadCheckpointState,
    ConditionalFormatCheckpointState,
    FormatCellsCheckpointState,
    ModifyStructureCheckpointState,
    RangeValuesCheckpointState,
    RecoveryCheckpoint,
    RecoveryCheckpointState,
)
from .range_state import apply_range_values
from .retention import clamp_retention_limit
from .shared.grid import count_changed_cells, grid_stats
from .structure.apply import apply_modify_structure_state
from .types import CheckpointToolName

logger = logging.getLogger(__name__)


class RestoreResult(BaseModel):
    """Outcome of restoring one checkpoint."""

    restored: RecoveryCheckpoint
    inverse: RecoveryCheckpoint | None = None
    changed_count: int


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid4())


class CheckpointLog:
    """Append-only JSON log of checkpoints for one workbook.

    Checkpoints are kept newest first. After each append the log is trimmed
    to ``clamp_retention_limit(retention_limit)`` entries, evicting the
    oldest. Entries recorded for another workbook are kept on disk but are
    hidden from ``list_checkpoints`` and ``clear``.
    """

    def __init__(
        self,
        path: Path,
        *,
        retention_limit: object = MAX_RECOVERY_ENTRIES,
        workbook_id: str | None = None,
        max_cell_count: int = MAX_RECOVERY_CELLS,
        now: Callable[[], int] = _now_ms,
        create_id: Callable[[], str] = _new_id,
    ) -> None:
        self.path = path
        self.retention_limit = clamp_retention_limit(retention_limit)
        self.workbook_id = workbook_id
        self.max_cell_count = max_cell_count
        self._now = now
        self._create_id = create_id
        self._checkpoints: list[RecoveryCheckpoint] | None = None

    # Queries

    def list_checkpoints(self, limit: int | None = None) -> list[RecoveryCheckpoint]:
        """Return checkpoints of this workbook, newest first."""
        visible = [item for item in self._entries() if self._matches(item)]
        if limit is None:
            return visible
        return visible[: max(0, limit)]

    def get(self, checkpoint_id: str) -> RecoveryCheckpoint | None:
        """Return a checkpoint by id, or None."""
        for checkpoint in self._entries():
            if checkpoint.id == checkpoint_id and self._matches(checkpoint):
                return checkpoint
        return None

    # Mutations

    def append(
        self,
        *,
        tool_name: CheckpointToolName,
        tool_call_id: str,
        address: str,
        state: RecoveryCheckpointState,
        changed_count: int = 0,
        restored_from_snapshot_id: str | None = None,
        workbook_id: str | None = None,
    ) -> RecoveryCheckpoint:
        """Record a checkpoint and evict the oldest beyond the retention limit.

        Args:
            tool_name: Name of the mutating operation.
            tool_call_id: Caller-supplied id of the mutating call.
            address: Address the checkpoint restores.
            state: Prior state captured before the mutation.
            changed_count: Number of cells the mutation changed.
            restored_from_snapshot_id: Id of the checkpoint a restore consumed.
            workbook_id: Overrides the log's workbook id.

        Returns:
            The stored checkpoint.
        """
        checkpoint = RecoveryCheckpoint(
            id=self._create_id(),
            tool_name=tool_name,
            tool_call_id=tool_call_id,
            at=self._now(),
            address=address,
            changed_count=max(0, changed_count),
            restored_from_snapshot_id=restored_from_snapshot_id,
            workbook_id=workbook_id or self.workbook_id,
            state=state,
        )
        entries = [checkpoint, *self._entries()]
        evicted = entries[self.retention_limit :]
        if evicted:
            logger.debug("Evicting %d checkpoint(s) beyond retention.", len(evicted))
        self._checkpoints = entries[: self.retention_limit]
        self._persist()
        logger.info("Recorded checkpoint %s for %s (%s).", checkpoint.id, address, tool_name)
        return checkpoint

    def delete(self, checkpoint_id: str) -> bool:
        """Delete a checkpoint of this workbook; return True when one was removed."""
        entries = self._entries()
        kept = [
            item for item in entries if not (item.id == checkpoint_id and self._matches(item))
        ]
        if len(kept) == len(entries):
            return False
        self._checkpoints = kept
        self._persist()
        return True

    def clear(self) -> int:
        """Delete every checkpoint of this workbook; return how many were removed."""
        entries = self._entries()
        kept = [item for item in entries if not self._matches(item)]
        removed = len(entries) - len(kept)
        if removed:
            self._checkpoints = kept
            self._persist()
        return removed

    # Restore

    def restore(self, accessor: WorkbookAccessor, checkpoint_id: str) -> RestoreResult:
        """Restore one checkpoint and record the inverse checkpoint.

        Raises:
            CheckpointNotFoundError: No checkpoint has this id.
            WorkbookMismatchError: The checkpoint belongs to another workbook.
            RecoveryError: The restore itself was refused.
        """
        checkpoint = next(
            (item for item in self._entries() if item.id == checkpoint_id), None
        )
        if checkpoint is None:
            raise CheckpointNotFoundError.build(
                "checkpoint_not_found", f"Checkpoint not found: {checkpoint_id}"
            )
        current_workbook_id = accessor.workbook_id
        if checkpoint.workbook_id is None or current_workbook_id is None:
            raise WorkbookMismatchError.build(
                "workbook_mismatch",
                "Checkpoint or workbook identity is missing; cannot restore safely.",
            )
        if checkpoint.workbook_id != current_workbook_id:
            raise WorkbookMismatchError.build(
                "workbook_mismatch", "Checkpoint belongs to a different workbook."
            )
        handler = self._RESTORE_HANDLERS[checkpoint.state.snapshot_kind]
        inverse_state, changed_count = handler(self, accessor, checkpoint)
        inverse = None
        if inverse_state is not None:
            inverse = self.append(
                tool_name="restore_snapshot",
                tool_call_id=f"restore:{checkpoint.id}",
                address=checkpoint.address,
                state=inverse_state,
                changed_count=changed_count,
                restored_from_snapshot_id=checkpoint.id,
                workbook_id=current_workbook_id,
            )
        logger.info("Restored checkpoint %s (%s).", checkpoint.id, checkpoint.address)
        return RestoreResult(restored=checkpoint, inverse=inverse, changed_count=changed_count)

    def restore_latest(self, accessor: WorkbookAccessor) -> RestoreResult:
        """Restore the newest checkpoint of the accessor's workbook."""
        latest = next(
            (
                item
                for item in self._entries()
                if item.workbook_id is not None and item.workbook_id == accessor.workbook_id
            ),
            None,
        )
        if latest is None:
            raise CheckpointNotFoundError.build(
                "checkpoint_not_found", "No recovery checkpoints found for this workbook."
            )
        return self.restore(accessor, latest.id)

    def _restore_range_values(
        self, accessor: WorkbookAccessor, checkpoint: RecoveryCheckpoint
    ) -> tuple[RecoveryCheckpointState | None, int]:
        state = cast(RangeValuesCheckpointState, checkpoint.state)
        prior = apply_range_values(accessor, checkpoint.address, state.values, state.formulas)
        changed_count = count_changed_cells(
            prior.values, prior.formulas, state.values, state.formulas
        )
        stats = grid_stats(prior.values, prior.formulas)
        if stats.rows * stats.cols > self.max_cell_count:
            logger.info("Inverse checkpoint skipped: range exceeds the cell cap.")
            return None, changed_count
        return prior, changed_count

    def _restore_format_cells(
        self, accessor: WorkbookAccessor, checkpoint: RecoveryCheckpoint
    ) -> tuple[RecoveryCheckpointState | None, int]:
        state = cast(FormatCellsCheckpointState, checkpoint.state)
        prior = apply_format_cells_state(accessor, state.format)
        return FormatCellsCheckpointState(format=prior), checkpoint.changed_count

    def _restore_modify_structure(
        self, accessor: WorkbookAccessor, checkpoint: RecoveryCheckpoint
    ) -> tuple[RecoveryCheckpointState | None, int]:
        state = cast(ModifyStructureCheckpointState, checkpoint.state)
        prior = apply_modify_structure_state(
            accessor, state.structure, max_cell_count=self.max_cell_count
        )
        return ModifyStructureCheckpointState(structure=prior), checkpoint.changed_count

    def _restore_conditional_formats(
        self, accessor: WorkbookAccessor, checkpoint: RecoveryCheckpoint
    ) -> tuple[RecoveryCheckpointState | None, int]:
        state = cast(ConditionalFormatCheckpointState, checkpoint.state)
        prior = apply_conditional_format_state(accessor, checkpoint.address, state.rules)
        return (
            ConditionalFormatCheckpointState(rules=prior, cell_count=state.cell_count),
            checkpoint.changed_count,
        )

    def _restore_comment_thread(
        self, accessor: WorkbookAccessor, checkpoint: RecoveryCheckpoint
    ) -> tuple[RecoveryCheckpointState | None, int]:
        state = cast(CommentThreadCheckpointState, checkpoint.state)
        prior = apply_comment_thread_state(accessor, checkpoint.address, state.thread)
        return CommentThreadCheckpointState(thread=prior), checkpoint.changed_count

    _RESTORE_HANDLERS: dict[
        str,
        Callable[
            [CheckpointLog, WorkbookAccessor, RecoveryCheckpoint],
            tuple[RecoveryCheckpointState | None, int],
        ],
    ] = {
        "range_values": _restore_range_values,
        "format_cells_state": _restore_format_cells,
        "modify_structure_state": _restore_modify_structure,
        "conditional_format_rules": _restore_conditional_formats,
        "comment_thread": _restore_comment_thread,
    }

    # Persistence

    def _matches(self, checkpoint: RecoveryCheckpoint) -> bool:
        return self.workbook_id is None or checkpoint.workbook_id == self.workbook_id

    def _entries(self) -> list[RecoveryCheckpoint]:
        if self._checkpoints is None:
            self._checkpoints = self._load()
        return list(self._checkpoints)

    def _load(self) -> list[RecoveryCheckpoint]:
        """Read the log file, dropping entries that fail validation."""
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable recovery log %s: %s", self.path, exc)
            return []
        if not is_record(payload) or payload.get("version") != LOG_FORMAT_VERSION:
            logger.warning("Ignoring recovery log %s with unknown format.", self.path)
            return []
        raw_entries = payload.get("checkpoints")
        if not isinstance(raw_entries, list):
            logger.warning("Ignoring recovery log %s without checkpoints.", self.path)
            return []
        checkpoints: list[RecoveryCheckpoint] = []
        for index, raw in enumerate(raw_entries):
            checkpoint = parse_recovery_checkpoint(raw)
            if checkpoint is None:
                logger.warning("Dropping invalid checkpoint #%d from %s.", index, self.path)
                continue
            checkpoints.append(checkpoint)
        checkpoints.sort(key=lambda item: item.at, reverse=True)
        return checkpoints[:MAX_RECOVERY_ENTRIES]

    def _persist(self) -> None:
        payload: dict[str, Any] = {
            "version": LOG_FORMAT_VERSION,
            "checkpoints": [item.to_payload() for item in self._entries()],
        }
        _atomic_write(self.path, json.dumps(payload, ensure_ascii=False, indent=2))


def _atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` through a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


__all__ = ["CheckpointLog", "RestoreResult"]
