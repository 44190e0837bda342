from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from .accessor.openpyxl_accessor import OpenpyxlWorkbookAccessor
from .config import RecoveryConfig
from .errors import RecoveryError
from .log import CheckpointLog, RestoreResult
from .models import RecoveryCheckpoint

logger = logging.getLogger(__name__)

CommandName = Literal["list", "restore", "undo", "delete", "clear"]


class CliCommand(BaseModel):
    """Parsed sub-command and its arguments."""

    name: CommandName
    checkpoint_id: str | None = Field(default=None, description="Target checkpoint id.")
    limit: int | None = Field(default=None, description="Maximum entries to list.")
    as_json: bool = Field(default=False, description="Print JSON payloads.")


def main(argv: list[str] | None = None) -> int:
    """Run the workbook-recovery command line.

    Args:
        argv: Optional CLI arguments for testing.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    config, command = _parse_args(argv)
    _configure_logging(config)
    try:
        run_command(config, command)
    except (RecoveryError, OSError) as exc:
        logger.error("workbook-recovery %s failed: %s", command.name, exc)
        return 1
    return 0


def run_command(config: RecoveryConfig, command: CliCommand) -> None:
    """Execute one sub-command against the configured workbook.

    Args:
        config: Recovery configuration.
        command: Parsed sub-command.
    """
    accessor = OpenpyxlWorkbookAccessor.open(config.workbook)
    log = CheckpointLog(
        config.resolved_log_path(),
        retention_limit=config.retention_limit,
        workbook_id=accessor.workbook_id,
        max_cell_count=config.max_cell_count,
    )
    if command.name == "list":
        _print_checkpoints(log.list_checkpoints(command.limit), as_json=command.as_json)
    elif command.name == "restore":
        result = log.restore(accessor, command.checkpoint_id or "")
        accessor.save(config.workbook)
        _print_restore(result)
    elif command.name == "undo":
        result = log.restore_latest(accessor)
        accessor.save(config.workbook)
        _print_restore(result)
    elif command.name == "delete":
        removed = log.delete(command.checkpoint_id or "")
        print(f"Deleted {command.checkpoint_id}." if removed else "Nothing deleted.")
    elif command.name == "clear":
        print(f"Cleared {log.clear()} checkpoint(s).")


def _print_checkpoints(checkpoints: list[RecoveryCheckpoint], *, as_json: bool) -> None:
    if as_json:
        print(
            json.dumps(
                [item.to_payload() for item in checkpoints], ensure_ascii=False, indent=2
            )
        )
        return
    if not checkpoints:
        print("No checkpoints.")
        return
    for item in checkpoints:
        at = datetime.fromtimestamp(item.at / 1000, tz=timezone.utc).isoformat(
            timespec="seconds"
        )
        restored = (
            f" (restore of {item.restored_from_snapshot_id})"
            if item.restored_from_snapshot_id
            else ""
        )
        print(
            f"{item.id}  {at}  {item.tool_name:<17} {item.address}  "
            f"changed={item.changed_count}{restored}"
        )


def _print_restore(result: RestoreResult) -> None:
    print(f"Restored {result.restored.id} at {result.restored.address}.")
    if result.inverse is not None:
        print(f"Undo this restore with checkpoint {result.inverse.id}.")


def _parse_args(argv: list[str] | None) -> tuple[RecoveryConfig, CliCommand]:
    """Parse CLI arguments into recovery config and command.

    Args:
        argv: Optional CLI argument list.

    Returns:
        Parsed configuration and sub-command.
    """
    parser = argparse.ArgumentParser(
        prog="workbook-recovery", description="List and restore workbook checkpoints."
    )
    parser.add_argument("workbook", type=Path, help="Workbook file (.xlsx/.xlsm).")
    parser.add_argument("--log-path", type=Path, help="Checkpoint log path.")
    parser.add_argument(
        "--max-cells",
        type=int,
        default=None,
        help="Cell cap for value captures (default 20000).",
    )
    parser.add_argument(
        "--retention",
        type=float,
        default=None,
        help="Checkpoints to keep, clamped to 5..120 (default 120).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument("--log-file", type=Path, help="Optional log file path.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    list_parser = subparsers.add_parser("list", help="List checkpoints, newest first.")
    list_parser.add_argument("--limit", type=int, help="Maximum entries to show.")
    list_parser.add_argument("--json", action="store_true", help="Print JSON payloads.")
    restore_parser = subparsers.add_parser("restore", help="Restore one checkpoint.")
    restore_parser.add_argument("checkpoint_id", help="Checkpoint id.")
    subparsers.add_parser("undo", help="Restore the newest checkpoint.")
    delete_parser = subparsers.add_parser("delete", help="Delete one checkpoint.")
    delete_parser.add_argument("checkpoint_id", help="Checkpoint id.")
    subparsers.add_parser("clear", help="Delete every checkpoint of the workbook.")
    args = parser.parse_args(argv)
    overrides: dict[str, object] = {}
    if args.max_cells is not None:
        overrides["max_cell_count"] = args.max_cells
    if args.retention is not None:
        overrides["retention_limit"] = args.retention
    config = RecoveryConfig(
        workbook=args.workbook,
        log_path=args.log_path,
        log_level=args.log_level,
        log_file=args.log_file,
        **overrides,
    )
    command = CliCommand(
        name=args.command,
        checkpoint_id=getattr(args, "checkpoint_id", None),
        limit=getattr(args, "limit", None),
        as_json=bool(getattr(args, "json", False)),
    )
    return config, command


def _configure_logging(config: RecoveryConfig) -> None:
    """Configure logging for the CLI process.

    Args:
        config: Recovery configuration.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=config.log_level.upper(),
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["CliCommand", "main", "run_command"]
