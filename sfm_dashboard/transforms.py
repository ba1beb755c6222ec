"""
Data transforms: flatten entity collections into DataFrames with a fixed
schema so aggregation and filtering can run as vectorised pandas
operations. Empty collections yield empty frames with the same columns.
"""

import dataclasses
import logging
from collections.abc import Iterable

import pandas as pd

logger = logging.getLogger(__name__)

KPI_COLUMNS = [
    "id", "name", "category", "current_value", "target_value", "unit",
    "status", "trend", "frequency", "workstation_id",
]
ACTION_COLUMNS = [
    "id", "title", "description", "priority", "status", "category",
    "due_date", "assignee", "created_at", "completed_at", "workstation_id",
]
PROBLEM_COLUMNS = [
    "id", "title", "description", "category", "severity", "status",
    "escalated", "created_at", "resolved_at", "workstation_id",
]
WORKSTATION_COLUMNS = ["id", "name", "type", "status", "location", "description"]


def _to_frame(entities: Iterable, columns: list[str]) -> pd.DataFrame:
    rows = [
        {col: getattr(entity, col, None) for col in columns}
        for entity in entities
    ]
    return pd.DataFrame(rows, columns=columns)


def to_naive_datetime(values) -> pd.Series:
    """Parse to datetime64 on a single naive axis.

    Timezone-aware values are converted to UTC and the zone dropped;
    naive values are read as UTC already, so mixed inputs compare.
    """
    return pd.to_datetime(values, utc=True).dt.tz_localize(None)


def to_naive_timestamp(value) -> pd.Timestamp:
    """Scalar counterpart of to_naive_datetime()."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def build_kpi_frame(kpis: Iterable) -> pd.DataFrame:
    """One row per KPI; history is left out (see kpis.history_frame)."""
    return _to_frame(kpis, KPI_COLUMNS)


def build_action_frame(actions: Iterable) -> pd.DataFrame:
    df = _to_frame(actions, ACTION_COLUMNS)
    for col in ("due_date", "created_at", "completed_at"):
        df[col] = to_naive_datetime(df[col])
    return df


def build_problem_frame(problems: Iterable) -> pd.DataFrame:
    df = _to_frame(problems, PROBLEM_COLUMNS)
    df["escalated"] = df["escalated"].fillna(False).astype(bool)
    for col in ("created_at", "resolved_at"):
        df[col] = to_naive_datetime(df[col])
    return df


def build_workstation_frame(workstations: Iterable) -> pd.DataFrame:
    return _to_frame(workstations, WORKSTATION_COLUMNS)


def build_frame(entities: list) -> pd.DataFrame:
    """Frame for a homogeneous collection, schema chosen by entity kind.

    Mixed or unknown entity types fall back to every dataclass field of
    the first entity.
    """
    if not entities:
        return pd.DataFrame()
    kind = getattr(entities[0], "kind", None)
    builders = {
        "kpis": build_kpi_frame,
        "actions": build_action_frame,
        "problems": build_problem_frame,
        "workstations": build_workstation_frame,
    }
    if kind in builders:
        return builders[kind](entities)
    columns = [f.name for f in dataclasses.fields(entities[0])]
    return _to_frame(entities, columns)
