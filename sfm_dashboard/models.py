"""
Entity value objects: KPI, Action, Problem, Workstation, Category.

Entities are frozen dataclasses. A status change or a recorded value
produces a new instance via dataclasses.replace(); nothing is mutated
in place. Constructors validate enumeration membership.
"""

from dataclasses import dataclass
from typing import ClassVar

import pandas as pd

from .config import (
    ACTION_STATUSES,
    DEFAULT_AMBER_BAND,
    DEFAULT_DIRECTION,
    DIRECTIONS,
    FREQUENCIES,
    KPI_STATUSES,
    KPI_TRENDS,
    PRIORITIES,
    PROBLEM_STATUSES,
    WORKSTATION_STATUSES,
    WORKSTATION_TYPES,
)


def _check_member(value: str, allowed: tuple[str, ...], label: str) -> None:
    if value not in allowed:
        raise ValueError(f"{label} must be one of {allowed}, got '{value}'")


@dataclass(frozen=True)
class HistoryPoint:
    """One recorded KPI sample."""

    timestamp: pd.Timestamp
    value: float


@dataclass(frozen=True)
class KPI:
    kind: ClassVar[str] = "kpis"

    id: str
    name: str
    category: str
    current_value: float
    target_value: float
    unit: str = ""
    status: str = "success"
    trend: str = "stable"
    frequency: str = "daily"
    history: tuple[HistoryPoint, ...] = ()
    workstation_id: str | None = None
    direction: str = DEFAULT_DIRECTION
    amber_band: float = DEFAULT_AMBER_BAND

    def __post_init__(self) -> None:
        _check_member(self.status, KPI_STATUSES, "KPI status")
        _check_member(self.trend, KPI_TRENDS, "KPI trend")
        _check_member(self.frequency, FREQUENCIES, "KPI frequency")
        _check_member(self.direction, DIRECTIONS, "KPI direction")


@dataclass(frozen=True)
class Action:
    kind: ClassVar[str] = "actions"

    id: str
    title: str
    description: str = ""
    priority: str = "medium"
    status: str = "todo"
    category: str | None = None
    due_date: pd.Timestamp | None = None
    assignee: str | None = None
    created_at: pd.Timestamp | None = None
    completed_at: pd.Timestamp | None = None
    workstation_id: str | None = None

    def __post_init__(self) -> None:
        _check_member(self.priority, PRIORITIES, "Action priority")
        _check_member(self.status, ACTION_STATUSES, "Action status")


@dataclass(frozen=True)
class Problem:
    kind: ClassVar[str] = "problems"

    id: str
    title: str
    description: str = ""
    category: str | None = None
    severity: str = "medium"
    status: str = "open"
    escalated: bool = False
    created_at: pd.Timestamp | None = None
    resolved_at: pd.Timestamp | None = None
    workstation_id: str | None = None

    def __post_init__(self) -> None:
        _check_member(self.severity, PRIORITIES, "Problem severity")
        _check_member(self.status, PROBLEM_STATUSES, "Problem status")
        # resolved_at is present iff the problem is resolved
        if (self.status == "resolved") != (self.resolved_at is not None):
            raise ValueError(
                f"Problem '{self.id}': resolved_at must be set exactly when status is resolved"
            )


@dataclass(frozen=True)
class Workstation:
    kind: ClassVar[str] = "workstations"

    id: str
    name: str
    type: str = "machine"
    status: str = "operational"
    location: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        _check_member(self.type, WORKSTATION_TYPES, "Workstation type")
        _check_member(self.status, WORKSTATION_STATUSES, "Workstation status")


@dataclass(frozen=True)
class Category:
    id: str
    code: str
    name: str
    color: str | None = None
    display_order: int = 0
