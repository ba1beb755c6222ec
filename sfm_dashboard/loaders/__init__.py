"""Workbook loaders for the permission matrix and the KPI register."""

from .kpi_register import load_kpi_register
from .permission_table import load_permission_matrix

__all__ = [
    "load_kpi_register",
    "load_permission_matrix",
]
