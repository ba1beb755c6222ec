"""
Loader for the KPI register workbook.

One row per KPI under a header row such as:
    Id | Name | Category | Current | Target | Unit | Direction | Amber band | Frequency | Workstation | Date

Only Name, Category and Target are required. Status and trend are never
read from the sheet; they are derived by the classifier. A Date cell
records the current value as the first history sample.
"""

import logging

import openpyxl

from ..config import (
    CATEGORIES,
    DEFAULT_AMBER_BAND,
    DEFAULT_DIRECTION,
    DIRECTIONS,
    FREQUENCIES,
)
from ..kpis import new_kpi
from ..models import KPI, HistoryPoint
from .utils import (
    find_header_row,
    header_map,
    normalise_date,
    safe_float,
    safe_str,
    to_snake_case,
)

logger = logging.getLogger(__name__)

_SIGNATURE = {"id", "name", "category", "current", "target", "unit", "direction"}

# Accepted header spellings -> canonical field
_COLUMN_ALIASES: dict[str, str] = {
    "kpi": "name",
    "kpi_name": "name",
    "current_value": "current",
    "value": "current",
    "actual": "current",
    "target_value": "target",
    "budget": "target",
    "amber_band_pct": "amber_band",
    "workstation_id": "workstation",
    "recorded_at": "date",
    "as_of": "date",
}


def _resolve_columns(columns: dict[str, int]) -> dict[str, int]:
    resolved = {}
    for label, col_idx in columns.items():
        resolved.setdefault(_COLUMN_ALIASES.get(label, label), col_idx)
    return resolved


def load_kpi_register(path: str, sheet_name: str | None = None) -> list[KPI]:
    """Load KPI definitions and current values from an .xlsx register.

    Assumptions
    -----------
    - Header row within the first 20 rows (see _SIGNATURE).
    - Category cells hold a category code or its label ("quality", "Qualité").
    - Direction defaults to higher_is_better, frequency to daily,
      amber band to 5%.
    - Rows without a name, target, or known category are skipped
      with a warning. A missing current value defaults to the target.

    Returns
    -------
    List of KPI, in sheet order.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True)
    except Exception:
        logger.exception("Failed to open KPI register: %s", path)
        raise

    if sheet_name is None:
        sheet_name = wb.sheetnames[0]
    elif sheet_name not in wb.sheetnames:
        wb.close()
        raise ValueError(f"Sheet '{sheet_name}' not found in {path}")
    ws = wb[sheet_name]

    header_row = find_header_row(ws, _SIGNATURE)
    if header_row is None:
        wb.close()
        raise ValueError(f"No KPI register header row found in {path} [{sheet_name}]")
    columns = _resolve_columns(header_map(ws, header_row))

    label_to_code = {to_snake_case(label): code for code, label in CATEGORIES.items()}

    def cell(row_idx: int, field: str):
        col_idx = columns.get(field)
        if col_idx is None:
            return None
        return ws.cell(row=row_idx, column=col_idx).value

    kpis = []
    for row_idx in range(header_row + 1, ws.max_row + 1):
        name = safe_str(cell(row_idx, "name"))
        if name is None:
            continue

        raw_category = to_snake_case(safe_str(cell(row_idx, "category")) or "")
        category = raw_category if raw_category in CATEGORIES else label_to_code.get(raw_category)
        if category is None:
            logger.warning("Row %d (%s): unknown category '%s', skipped", row_idx, name, raw_category)
            continue

        target = safe_float(cell(row_idx, "target"))
        if target is None:
            logger.warning("Row %d (%s): no target value, skipped", row_idx, name)
            continue
        current = safe_float(cell(row_idx, "current"))
        if current is None:
            current = target

        direction = to_snake_case(safe_str(cell(row_idx, "direction")) or DEFAULT_DIRECTION)
        if direction not in DIRECTIONS:
            logger.warning("Row %d (%s): unknown direction '%s', using %s",
                           row_idx, name, direction, DEFAULT_DIRECTION)
            direction = DEFAULT_DIRECTION

        frequency = (safe_str(cell(row_idx, "frequency")) or "daily").lower()
        if frequency not in FREQUENCIES:
            frequency = "daily"

        amber_band = safe_float(cell(row_idx, "amber_band"))
        recorded_at = normalise_date(cell(row_idx, "date"))
        history = () if recorded_at is None else (HistoryPoint(recorded_at, current),)

        kpis.append(new_kpi(
            id=safe_str(cell(row_idx, "id")) or f"kpi-{len(kpis) + 1}",
            name=name,
            category=category,
            current_value=current,
            target_value=target,
            history=history,
            unit=safe_str(cell(row_idx, "unit")) or "",
            frequency=frequency,
            direction=direction,
            amber_band=DEFAULT_AMBER_BAND if amber_band is None else amber_band,
            workstation_id=safe_str(cell(row_idx, "workstation")),
        ))

    wb.close()

    if not kpis:
        logger.warning("No KPI rows extracted from %s", path)

    logger.info("Loaded %d KPIs from %s", len(kpis), path)
    return kpis
