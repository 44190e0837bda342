from __future__ import annotations

MAX_RECOVERY_CELLS = 20_000
MIN_RETENTION_LIMIT = 5
MAX_RECOVERY_ENTRIES = 120
LOG_FORMAT_VERSION = 1
SHEET_ID_PROPERTY_PREFIX = "workbook_recovery.sheet:"
WORKBOOK_ID_PROPERTY = "workbook_recovery.workbook_id"
