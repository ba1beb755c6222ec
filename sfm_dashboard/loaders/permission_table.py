"""
Loader for a role/permission matrix maintained as a workbook.

Layout: one header row with a "Permission" column followed by one column
per role; each following row names a permission tag and marks the roles
granted it (x, yes, 1, TRUE...). Blank or "-" cells are not granted.
"""

import logging

import openpyxl

from ..config import PERMISSIONS, ROLES
from ..permissions import PermissionMatrix
from .utils import find_header_row, header_map, is_flag_set, safe_str, to_snake_case

logger = logging.getLogger(__name__)

_TAG_COLUMN = "permission"


def load_permission_matrix(
    path: str,
    sheet_name: str | None = None,
    strict: bool = True,
) -> PermissionMatrix:
    """Load a PermissionMatrix from an .xlsx permission table.

    Assumptions
    -----------
    - The header row lies within the first 20 rows and contains
      "Permission" plus at least one role label.
    - Every column to the right of "Permission" with a label is a role;
      labels are snake_cased ("Team Leader" -> "team_leader").
    - Rows with a blank permission cell are skipped.

    Parameters
    ----------
    path : Path to the workbook.
    sheet_name : Sheet to read; defaults to "Permissions" or the first sheet.
    strict : Reject tags outside the permission vocabulary (ValueError).

    Returns
    -------
    PermissionMatrix with one entry per role column.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True, read_only=False)
    except Exception:
        logger.exception("Failed to open permission table: %s", path)
        raise

    if sheet_name is None:
        sheet_name = "Permissions" if "Permissions" in wb.sheetnames else wb.sheetnames[0]
    elif sheet_name not in wb.sheetnames:
        wb.close()
        raise ValueError(f"Sheet '{sheet_name}' not found in {path}")
    ws = wb[sheet_name]

    header_row = find_header_row(ws, {_TAG_COLUMN, *ROLES})
    if header_row is None:
        wb.close()
        raise ValueError(f"No permission header row found in {path} [{sheet_name}]")

    columns = header_map(ws, header_row)
    tag_col = columns.pop(_TAG_COLUMN, None)
    if tag_col is None:
        wb.close()
        raise ValueError(f"No 'Permission' column in {path} [{sheet_name}]")
    role_cols = {role: col for role, col in columns.items() if col > tag_col}

    table: dict[str, list[str]] = {role: [] for role in role_cols}
    for row_idx in range(header_row + 1, ws.max_row + 1):
        tag = safe_str(ws.cell(row=row_idx, column=tag_col).value)
        if tag is None:
            continue
        tag = to_snake_case(tag)
        for role, col_idx in role_cols.items():
            if is_flag_set(ws.cell(row=row_idx, column=col_idx).value):
                table[role].append(tag)

    wb.close()

    unknown_roles = sorted(set(table) - set(ROLES))
    if unknown_roles:
        logger.warning("Permission table defines non-standard roles: %s", unknown_roles)

    matrix = PermissionMatrix.from_table(table, PERMISSIONS if strict else None)
    for violation in matrix.check_invariants():
        logger.warning("Permission table %s: %s", path, violation)

    logger.info("Loaded permissions for %d roles from %s", len(table), path)
    return matrix
