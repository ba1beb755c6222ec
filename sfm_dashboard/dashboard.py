"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Each
function is a pure computation over entity snapshots and returns plain
dicts, lists, or DataFrames suitable for rendering cards, charts, and
tables. Every count is a closed partition over an enumeration, so totals
always equal the sum of their parts, and empty inputs yield zeros.
"""

import logging
from collections.abc import Iterable

import numpy as np
import pandas as pd

from .config import (
    ACTION_STATUSES,
    KPI_STATUSES,
    PRIORITY_RANK,
    PROBLEM_STATUSES,
    UNCATEGORISED,
    WORKSTATION_STATUSES,
)
from .kpis import history_frame
from .transforms import (
    build_action_frame,
    build_kpi_frame,
    build_problem_frame,
    build_workstation_frame,
    to_naive_timestamp,
)

logger = logging.getLogger(__name__)


def _status_counts(statuses: pd.Series, states: tuple[str, ...]) -> dict:
    counts = statuses.value_counts().reindex(list(states), fill_value=0)
    result = {"total": int(counts.sum())}
    for state in states:
        result[state] = int(counts[state])
    return result


def _select(entities: list, mask: pd.Series) -> list:
    return [entities[i] for i in np.flatnonzero(mask.to_numpy())]


# ---------------------------------------------------------------------------
# Summary counts
# ---------------------------------------------------------------------------

def category_stats(
    kpis: Iterable,
    categories: list[str] | None = None,
) -> dict[str, dict]:
    """Count KPIs by status within each category.

    KPIs without a category are counted under "uncategorised", so without
    `categories` the totals add up to the number of KPIs.

    Parameters
    ----------
    kpis : KPI collection.
    categories : Optional ordered list of known category codes. When given,
        every listed category appears (zero counts included) and KPIs
        whose category is not listed are ignored.

    Returns
    -------
    Dict keyed by category code, in first-appearance order (or the order of
    `categories`):
    {
        "quality": {"success": 0, "warning": 1, "danger": 1, "total": 2},
        ...
    }
    """
    df = build_kpi_frame(kpis)

    missing = df["category"].isna()
    if missing.any():
        logger.warning(
            "Counting %d KPI(s) without a category under '%s'",
            int(missing.sum()), UNCATEGORISED,
        )
        df.loc[missing, "category"] = UNCATEGORISED

    if categories is not None:
        known = df["category"].isin(categories)
        if not known.all():
            logger.warning(
                "Ignoring %d KPI(s) with unknown category: %s",
                int((~known).sum()),
                sorted(df.loc[~known, "category"].astype(str).unique()),
            )
        df = df[known]
        order = list(categories)
    else:
        order = list(dict.fromkeys(df["category"]))

    if df.empty:
        table = pd.DataFrame(0, index=order, columns=list(KPI_STATUSES))
    else:
        table = (
            df.groupby(["category", "status"]).size()
            .unstack(fill_value=0)
            .reindex(index=order, columns=list(KPI_STATUSES), fill_value=0)
        )

    result = {}
    for category, row in table.iterrows():
        counts = {status: int(row[status]) for status in KPI_STATUSES}
        counts["total"] = sum(counts.values())
        result[category] = counts
    return result


def dashboard_stats(kpis: Iterable, actions: Iterable, problems: Iterable) -> dict:
    """Whole-dashboard counts, one pass per collection.

    Returns
    -------
    {
        "kpis":     {"total", "success", "warning", "danger"},
        "actions":  {"total", "todo", "in_progress", "done"},
        "problems": {"total", "open", "in_progress", "resolved"},
    }
    """
    return {
        "kpis": _status_counts(build_kpi_frame(kpis)["status"], KPI_STATUSES),
        "actions": _status_counts(build_action_frame(actions)["status"], ACTION_STATUSES),
        "problems": _status_counts(build_problem_frame(problems)["status"], PROBLEM_STATUSES),
    }


def kpi_success_rate(kpis: Iterable) -> float:
    """Share of KPIs in success, as a percentage. 0.0 when there are none."""
    statuses = build_kpi_frame(kpis)["status"]
    if statuses.empty:
        return 0.0
    return float((statuses == "success").mean() * 100)


# ---------------------------------------------------------------------------
# Today's priorities
# ---------------------------------------------------------------------------

def today_priorities(actions: Iterable, today) -> dict[str, list]:
    """Select the actions to surface on the dashboard for `today`.

    - urgent: priority high and not done
    - due_today: due today and not done, excluding anything already urgent
    - completed_today: every done action, whatever its completion date

    Each bucket keeps the input order.
    """
    actions = list(actions)
    df = build_action_frame(actions)
    today = to_naive_timestamp(today).normalize()

    open_mask = df["status"] != "done"
    urgent = (df["priority"] == "high") & open_mask
    due_today = (df["due_date"].dt.normalize() == today) & open_mask & ~urgent

    return {
        "urgent": _select(actions, urgent),
        "due_today": _select(actions, due_today),
        "completed_today": _select(actions, df["status"] == "done"),
    }


def priority_list(actions: Iterable, today) -> list:
    """Display list: urgent actions followed by those due today."""
    priorities = today_priorities(actions, today)
    return priorities["urgent"] + priorities["due_today"]


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------

def open_problems(problems: Iterable) -> list:
    """Unresolved problems: escalated first, then by severity, newest first."""
    problems = list(problems)
    df = build_problem_frame(problems)
    df = df[df["status"] != "resolved"].copy()
    if df.empty:
        return []
    df["severity_rank"] = df["severity"].map(PRIORITY_RANK)
    df = df.sort_values(
        ["escalated", "severity_rank", "created_at"],
        ascending=[False, False, False],
        na_position="last",
        kind="stable",
    )
    return [problems[i] for i in df.index]


def problem_counters(problems: Iterable) -> dict:
    """Counters for the problems page header cards."""
    df = build_problem_frame(problems)
    unresolved = df["status"] != "resolved"
    return {
        "open": int((df["status"] == "open").sum()),
        "in_progress": int((df["status"] == "in_progress").sum()),
        "escalated": int((df["escalated"] & unresolved).sum()),
        "high_severity": int(((df["severity"] == "high") & unresolved).sum()),
    }


# ---------------------------------------------------------------------------
# Workstations
# ---------------------------------------------------------------------------

def workstation_status_counts(workstations: Iterable) -> dict:
    df = build_workstation_frame(workstations)
    counts = _status_counts(df["status"], WORKSTATION_STATUSES)
    counts.pop("total")
    return counts


def workstation_overview(
    workstations: Iterable,
    kpis: Iterable,
    problems: Iterable,
) -> list[dict]:
    """Per-workstation KPI status counts and open problem count.

    KPIs and problems pointing at an unknown workstation are ignored.
    """
    ws_df = build_workstation_frame(workstations)
    kpi_df = build_kpi_frame(kpis)
    problem_df = build_problem_frame(problems)
    known_ids = set(ws_df["id"])

    for label, df in (("KPI", kpi_df), ("problem", problem_df)):
        refs = df["workstation_id"].dropna()
        dangling = refs[~refs.isin(known_ids)]
        if not dangling.empty:
            logger.warning(
                "Ignoring %d %s(s) referencing unknown workstations: %s",
                len(dangling), label, sorted(dangling.unique()),
            )

    rows = []
    for _, ws in ws_df.iterrows():
        ws_kpis = kpi_df[kpi_df["workstation_id"] == ws["id"]]
        ws_problems = problem_df[problem_df["workstation_id"] == ws["id"]]
        rows.append({
            "workstation_id": ws["id"],
            "name": ws["name"],
            "status": ws["status"],
            "kpis": _status_counts(ws_kpis["status"], KPI_STATUSES),
            "open_problems": int((ws_problems["status"] != "resolved").sum()),
        })
    return rows


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

def history_comparison(kpis: Iterable, days: int = 30, limit: int = 5) -> pd.DataFrame:
    """Wide table of daily KPI values for trend charts.

    Returns
    -------
    DataFrame indexed by date with one column per KPI name (at most
    `limit` KPIs, input order). Missing samples are NaN.
    """
    frames = []
    for kpi in list(kpis)[:limit]:
        df = history_frame(kpi, days)
        if df.empty:
            continue
        df["date"] = df["timestamp"].dt.normalize()
        df["name"] = kpi.name
        frames.append(df[["date", "name", "value"]])

    if not frames:
        return pd.DataFrame()

    long_df = pd.concat(frames, ignore_index=True)
    wide = long_df.pivot_table(index="date", columns="name", values="value", aggfunc="last")
    names = list(dict.fromkeys(long_df["name"]))
    return wide.reindex(columns=names)
