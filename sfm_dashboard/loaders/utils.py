"""
Shared utilities for workbook ingestion: header detection, date
normalisation, column renaming, value coercion.
"""

import logging
import re
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

# Cell values read as "not granted" / "no" in flag columns
_FALSY_FLAGS = {"", "0", "no", "n", "false", "-", "non"}


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Read a date cell as a naive pd.Timestamp.

    openpyxl hands back datetime objects for formatted cells; bare numbers
    are Excel serials (1899-12-30 epoch, fraction = time of day) and text
    is parsed. Blank or unreadable cells give None.
    """
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    try:
        if isinstance(val, (int, float)) and not isinstance(val, bool):
            ts = pd.Timestamp("1899-12-30") + pd.to_timedelta(float(val), unit="D")
        else:
            ts = pd.Timestamp(val)
    except (ValueError, TypeError, OverflowError):
        logger.warning("Could not read date cell: %r", val)
        return None
    if pd.isna(ts):
        return None
    return ts.tz_convert("UTC").tz_localize(None) if ts.tzinfo is not None else ts


def to_snake_case(name: str) -> str:
    """Convert a column label to snake_case.

    Handles spaces, parentheses, slashes, and percent signs.
    """
    s = str(name).strip()
    s = s.replace("%", "pct").replace("/", "_per_").replace("(", "").replace(")", "")
    s = s.replace("-", "_").replace(".", "_")
    s = re.sub(r"[^a-zA-Z0-9]+", "_", s)
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    s = s.lower().strip("_")
    s = re.sub(r"_+", "_", s)
    return s


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature strings.

    Cells are compared in snake_case. Returns the 1-based row index where
    at least two cells match values in `signature`, or None if not found
    within `max_rows`.
    """
    for row_idx in range(1, min(max_rows, sheet.max_row) + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and to_snake_case(cell.value) in signature:
                matches += 1
        if matches >= 2:
            return row_idx
    return None


def header_map(sheet, header_row: int) -> dict[str, int]:
    """Map snake_case header label -> 1-based column index."""
    columns = {}
    for cell in sheet[header_row]:
        if cell.value is None:
            continue
        columns.setdefault(to_snake_case(cell.value), cell.column)
    return columns


def safe_float(val: Any) -> float | None:
    """Numeric cell value, or None for blanks, formulas and text labels.

    Text such as "95%" or " 12.5 " is accepted; a trailing percent sign is
    dropped without rescaling.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        val = val.strip().removesuffix("%").strip()
        if not val or val.startswith("="):
            return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None


def safe_str(val: Any) -> str | None:
    """Strip a cell value to text; None for empty cells."""
    if val is None:
        return None
    text = str(val).strip()
    return text or None


def is_flag_set(val: Any) -> bool:
    """Interpret a matrix cell (x, yes, 1, True...) as a granted flag."""
    if val is None:
        return False
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() not in _FALSY_FLAGS
