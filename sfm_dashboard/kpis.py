"""
KPI computation functions.

Provides variance calculation, status classification against target,
trend detection over history, value recording, and history statistics.
Classification is the single source of truth for KPI status and trend:
new_kpi() and record_value() derive both, nothing sets them directly.
"""

import dataclasses
import logging
import math

import pandas as pd

from .config import (
    DEFAULT_AMBER_BAND,
    DEFAULT_DIRECTION,
    KPI_STATUS_ALIASES,
    KPI_STATUSES,
    TREND_EPSILON,
)
from .exceptions import Denied
from .lifecycle import TransitionResult
from .models import KPI, HistoryPoint
from .permissions import PermissionMatrix, has_permission
from .transforms import to_naive_datetime

logger = logging.getLogger(__name__)


def calc_variance(actual: float, target: float) -> tuple[float, float | None]:
    """Return (absolute_variance, pct_variance).

    pct_variance is None if target == 0.
    """
    absolute = actual - target
    if target == 0:
        return absolute, None
    pct = (absolute / abs(target)) * 100
    return absolute, pct


def achievement_pct(actual: float, target: float) -> float | None:
    """Percent of target reached, or None when target is 0."""
    if target == 0:
        return None
    return (actual / target) * 100


def classify_status(
    actual: float,
    target: float,
    direction: str = DEFAULT_DIRECTION,
    amber_band_pct: float = DEFAULT_AMBER_BAND,
) -> str:
    """Return 'success', 'warning', or 'danger'.

    Logic
    -----
    - direction='higher_is_better':
        success  if actual >= target
        warning  if actual >= target - |target| * amber_band_pct/100
        danger   otherwise

    - direction='lower_is_better':
        success  if actual <= target
        warning  if actual <= target + |target| * amber_band_pct/100
        danger   otherwise

    A target of 0 leaves no warning band; no division is performed.
    """
    if pd.isna(actual) or pd.isna(target) or math.isinf(actual) or math.isinf(target):
        raise ValueError(f"Cannot classify non-finite values: actual={actual}, target={target}")

    margin = abs(target) * amber_band_pct / 100

    if direction == "higher_is_better":
        if actual >= target:
            return "success"
        if actual >= target - margin:
            return "warning"
        return "danger"
    elif direction == "lower_is_better":
        if actual <= target:
            return "success"
        if actual <= target + margin:
            return "warning"
        return "danger"
    raise ValueError(f"Unknown KPI direction: '{direction}'")


def compute_trend(
    history: tuple[HistoryPoint, ...] | list[HistoryPoint],
    epsilon: float = TREND_EPSILON,
) -> str:
    """Compare the two most recent samples: 'up', 'down', or 'stable'."""
    if len(history) < 2:
        return "stable"
    delta = history[-1].value - history[-2].value
    if abs(delta) <= epsilon:
        return "stable"
    return "up" if delta > 0 else "down"


def normalise_kpi_status(raw: str | None) -> str | None:
    """Map persistence colour codes (green/orange/red) onto KPI statuses."""
    if raw is None:
        return None
    value = str(raw).strip().lower()
    if value in KPI_STATUSES:
        return value
    return KPI_STATUS_ALIASES.get(value)


def new_kpi(
    id: str,
    name: str,
    category: str,
    current_value: float,
    target_value: float,
    history: tuple[HistoryPoint, ...] = (),
    **fields,
) -> KPI:
    """Build a KPI whose status and trend are derived from its values."""
    direction = fields.get("direction", DEFAULT_DIRECTION)
    amber_band = fields.get("amber_band", DEFAULT_AMBER_BAND)
    return KPI(
        id=id,
        name=name,
        category=category,
        current_value=current_value,
        target_value=target_value,
        status=classify_status(current_value, target_value, direction, amber_band),
        trend=compute_trend(history),
        history=tuple(history),
        **fields,
    )


def reclassify(kpi: KPI) -> KPI:
    """Return `kpi` with status and trend re-derived from its values."""
    return dataclasses.replace(
        kpi,
        status=classify_status(kpi.current_value, kpi.target_value, kpi.direction, kpi.amber_band),
        trend=compute_trend(kpi.history),
    )


def record_value(
    kpi: KPI,
    value: float,
    role: str | None,
    recorded_at: pd.Timestamp | None = None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    """Record a new sample for `kpi` on behalf of `role`.

    Requires edit_kpis. Appends the sample to history, sets it as the
    current value, and re-derives status and trend.
    """
    if not has_permission(role, "edit_kpis", matrix):
        return TransitionResult(denied=Denied(role, "edit_kpis"))
    if recorded_at is None:
        recorded_at = pd.Timestamp.now()

    history = kpi.history + (HistoryPoint(timestamp=recorded_at, value=value),)
    updated = reclassify(dataclasses.replace(kpi, current_value=value, history=history))
    logger.debug("KPI %s recorded %s -> %s (%s)", kpi.id, value, updated.status, updated.trend)
    return TransitionResult(entity=updated)


# ---------------------------------------------------------------------------
# History statistics
# ---------------------------------------------------------------------------

def history_frame(kpi: KPI, days: int | None = None) -> pd.DataFrame:
    """KPI history as a DataFrame (timestamp, value), oldest first.

    Parameters
    ----------
    kpi : KPI with history samples.
    days : Keep only the last `days` samples. None keeps all.
    """
    df = pd.DataFrame(
        [{"timestamp": p.timestamp, "value": p.value} for p in kpi.history],
        columns=["timestamp", "value"],
    )
    if df.empty:
        return df
    df["timestamp"] = to_naive_datetime(df["timestamp"])
    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
    if days is not None:
        df = df.tail(days).reset_index(drop=True)
    return df


def history_summary(kpi: KPI, days: int | None = None) -> dict:
    """Return {"avg", "min", "max", "count"} over the last `days` samples.

    Values are None when there is no history.
    """
    df = history_frame(kpi, days)
    if df.empty:
        return {"avg": None, "min": None, "max": None, "count": 0}
    return {
        "avg": float(df["value"].mean()),
        "min": float(df["value"].min()),
        "max": float(df["value"].max()),
        "count": int(len(df)),
    }
