from __future__ import annotations

import re

_A1_PATTERN = re.compile(r"^[A-Za-z]{1,3}[1-9][0-9]*$")
_A1_RANGE_PATTERN = re.compile(r"^[A-Za-z]{1,3}[1-9][0-9]*:[A-Za-z]{1,3}[1-9][0-9]*$")
_ROW_SPAN_PATTERN = re.compile(r"^\$?([1-9][0-9]*):\$?([1-9][0-9]*)$")
_COLUMN_SPAN_PATTERN = re.compile(r"^\$?([A-Za-z]{1,3}):\$?([A-Za-z]{1,3})$")
_COLUMN_LABEL_PATTERN = re.compile(r"^[A-Za-z]{1,3}$")
_PLAIN_SHEET_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_CELL_REFERENCE_PATTERN = re.compile(r"^(?:[A-Za-z]{1,3}[0-9]+|[Rr][0-9]*[Cc][0-9]*|[RrCc])$")


def split_a1(value: str) -> tuple[str, int]:
    """Split A1 notation into normalized (column_label, row_index)."""
    candidate = value.replace("$", "")
    if not _A1_PATTERN.match(candidate):
        raise ValueError(f"Invalid cell reference: {value}")
    idx = 0
    for index, char in enumerate(candidate):
        if char.isdigit():
            idx = index
            break
    column = candidate[:idx].upper()
    row = int(candidate[idx:])
    return column, row


def column_letter_to_number(label: str) -> int:
    """Convert Excel-style column label (A/AA) to 1-based index."""
    normalized = label.strip().upper()
    if not _COLUMN_LABEL_PATTERN.match(normalized):
        raise ValueError(f"Invalid column label: {label}")
    index = 0
    for char in normalized:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def column_number_to_letter(position: int) -> str:
    """Convert 1-based column position to an Excel-style column label.

    Column naming is bijective base-26, so there is no zero digit:
    1 -> A, 26 -> Z, 27 -> AA, 52 -> AZ, 53 -> BA.
    """
    if isinstance(position, bool) or position < 1:
        raise ValueError("Column position must be positive.")
    chunks: list[str] = []
    current = int(position)
    while current > 0:
        current -= 1
        chunks.append(chr(ord("A") + (current % 26)))
        current //= 26
    return "".join(reversed(chunks))


def normalize_range(value: str) -> str:
    """Validate and normalize an A1 cell or range string into START:END form."""
    candidate = value.strip().replace("$", "")
    if _A1_PATTERN.match(candidate):
        upper = candidate.upper()
        return f"{upper}:{upper}"
    if not _A1_RANGE_PATTERN.match(candidate):
        raise ValueError(f"Invalid range reference: {value}")
    start, end = candidate.split(":", maxsplit=1)
    return f"{start.upper()}:{end.upper()}"


def parse_range_bounds(range_ref: str) -> tuple[int, int, int, int]:
    """Return (min_col, min_row, max_col, max_row) for a cell or range."""
    start_ref, end_ref = normalize_range(range_ref).split(":", maxsplit=1)
    start_col, start_row = split_a1(start_ref)
    end_col, end_row = split_a1(end_ref)
    start_index = column_letter_to_number(start_col)
    end_index = column_letter_to_number(end_col)
    return (
        min(start_index, end_index),
        min(start_row, end_row),
        max(start_index, end_index),
        max(start_row, end_row),
    )


def parse_range_geometry(range_ref: str) -> tuple[str, int, int]:
    """Parse A1 range and return top-left cell + (rows, cols)."""
    min_col, min_row, max_col, max_row = parse_range_bounds(range_ref)
    return (
        f"{column_number_to_letter(min_col)}{min_row}",
        max_row - min_row + 1,
        max_col - min_col + 1,
    )


def range_cell_count(range_ref: str) -> int:
    """Return the number of cells represented by an A1 range."""
    _, rows, cols = parse_range_geometry(range_ref)
    return rows * cols


def bounds_to_address(min_col: int, min_row: int, max_col: int, max_row: int) -> str:
    """Build a local A1 address from 1-based bounds."""
    start = f"{column_number_to_letter(min_col)}{min_row}"
    end = f"{column_number_to_letter(max_col)}{max_row}"
    return start if start == end else f"{start}:{end}"


def canonical_range(value: str) -> str:
    """Return the upper-case ``A1`` or ``A1:B2`` form of a cell or range."""
    return bounds_to_address(*parse_range_bounds(value))


def parse_row_span(value: str) -> tuple[int, int] | None:
    """Parse a whole-row reference such as ``5:7`` into (first, last)."""
    match = _ROW_SPAN_PATTERN.match(value.strip())
    if match is None:
        return None
    first, last = int(match.group(1)), int(match.group(2))
    return min(first, last), max(first, last)


def parse_column_span(value: str) -> tuple[int, int] | None:
    """Parse a whole-column reference such as ``B:D`` into (first, last)."""
    match = _COLUMN_SPAN_PATTERN.match(value.strip())
    if match is None:
        return None
    first = column_letter_to_number(match.group(1))
    last = column_letter_to_number(match.group(2))
    return min(first, last), max(first, last)


def row_span_address(position: int, count: int) -> str:
    """Return the whole-row address covering ``count`` rows from ``position``."""
    return f"{position}:{position + count - 1}"


def column_span_address(position: int, count: int) -> str:
    """Return the whole-column address covering ``count`` columns from ``position``."""
    first = column_number_to_letter(position)
    last = column_number_to_letter(position + count - 1)
    return f"{first}:{last}"


def local_address_part(address: str) -> str:
    """Return the part of an address after the sheet qualifier, if any."""
    _, local = split_sheet_address(address)
    return local


def split_sheet_address(address: str) -> tuple[str | None, str]:
    """Split ``Sheet!A1:B2`` into (sheet_name, local_address).

    Quoted sheet names (``'My Sheet'!A1``) are unquoted and doubled quotes
    collapsed. Returns ``None`` as sheet name for unqualified addresses.
    """
    candidate = address.strip()
    separator = candidate.rfind("!")
    if separator < 0:
        return None, candidate
    raw_sheet = candidate[:separator]
    local = candidate[separator + 1 :]
    if len(raw_sheet) >= 2 and raw_sheet.startswith("'") and raw_sheet.endswith("'"):
        raw_sheet = raw_sheet[1:-1].replace("''", "'")
    return raw_sheet, local


def quote_sheet_name(name: str) -> str:
    """Quote a sheet name for use in an address when it needs quoting.

    Only plain identifiers that cannot be read as a cell reference stay
    bare; names such as ``2024``, ``Q1-Q2`` or ``A1`` are quoted.
    """
    if _PLAIN_SHEET_NAME_PATTERN.match(name) and not _CELL_REFERENCE_PATTERN.match(name):
        return name
    escaped = name.replace("'", "''")
    return f"'{escaped}'"


def qualify_address_with_sheet(sheet_name: str, address: str) -> str:
    """Prefix a local address with a (quoted when needed) sheet name."""
    return f"{quote_sheet_name(sheet_name)}!{local_address_part(address)}"


def split_range_list(ref: str) -> list[str]:
    """Split a comma-separated multi-area reference into trimmed parts.

    Commas inside a quoted sheet name (``'Q1, Q2'!A1``) do not split.
    """
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    for char in ref:
        if char == "'":
            quoted = not quoted
        elif char == "," and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]
