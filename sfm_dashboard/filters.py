"""
Multi-field filtering shared by the KPI, action and problem pages.

Every supplied field is an equality predicate; predicates are ANDed.
A field that is None or the "all" sentinel matches everything. The free
text search is a case-insensitive substring test against the entity's
text fields (title/description, or name for KPIs), ORed across fields.
The result is a subsequence of the input: order is preserved.
"""

import logging
from collections.abc import Iterable

import numpy as np
import pandas as pd

from .config import ALL
from .transforms import build_frame

logger = logging.getLogger(__name__)

# Text fields searched per entity kind
SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    "kpis": ("name",),
    "actions": ("title", "description"),
    "problems": ("title", "description"),
    "workstations": ("name", "description"),
}
_DEFAULT_SEARCH_FIELDS = ("title", "description")

# Problems carry their priority as "severity"
_PRIORITY_FIELDS = ("priority", "severity")


def _is_open(value) -> bool:
    return value is None or value == ALL


def _equals(df: pd.DataFrame, column: str, value) -> pd.Series:
    if column not in df.columns:
        return pd.Series(False, index=df.index)
    return df[column] == value


def _priority_column(df: pd.DataFrame) -> str | None:
    for column in _PRIORITY_FIELDS:
        if column in df.columns:
            return column
    return None


def filter_entities(
    collection: Iterable,
    category: str | None = None,
    priority: str | None = None,
    status: str | None = None,
    search_text: str | None = None,
    workstation_id: str | None = None,
    severity: str | None = None,
) -> list:
    """Return the entities matching every supplied criterion.

    Parameters
    ----------
    collection : KPIs, Actions or Problems (one kind per call).
    category, status, workstation_id : Equality filters.
    priority : Matches Action.priority or Problem.severity.
    severity : Alias for `priority`.
    search_text : Case-insensitive substring; empty matches everything.

    Returns
    -------
    List of matching entities in input order. Entities lacking a filtered
    field (e.g. a priority filter on KPIs) do not match.
    """
    entities = list(collection)
    if not entities:
        return []

    if _is_open(priority) and not _is_open(severity):
        priority = severity

    df = build_frame(entities)
    mask = pd.Series(True, index=df.index)

    if not _is_open(category):
        mask &= _equals(df, "category", category)
    if not _is_open(status):
        mask &= _equals(df, "status", status)
    if not _is_open(workstation_id):
        mask &= _equals(df, "workstation_id", workstation_id)
    if not _is_open(priority):
        column = _priority_column(df)
        if column is None:
            mask &= False
        else:
            mask &= df[column] == priority

    if search_text:
        kind = getattr(entities[0], "kind", None)
        fields = [f for f in SEARCH_FIELDS.get(kind, _DEFAULT_SEARCH_FIELDS) if f in df.columns]
        text_mask = pd.Series(False, index=df.index)
        for field in fields:
            text_mask |= (
                df[field].fillna("").astype(str)
                .str.contains(search_text, case=False, regex=False)
            )
        mask &= text_mask

    logger.debug("Filtered %d entities down to %d", len(entities), int(mask.sum()))
    return [entities[i] for i in np.flatnonzero(mask.to_numpy())]
