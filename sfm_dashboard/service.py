"""
Host-side orchestration: permission check, then state change, then write.

Every function reads the current snapshot from the repository, asks the
permission engine and lifecycle/KPI functions for the new value, and
writes it back only when the result is ok. Denials come back as a
TransitionResult and leave the repository untouched.
"""

import dataclasses
import logging

import pandas as pd

from .exceptions import Denied
from .kpis import reclassify, record_value
from .lifecycle import TransitionResult, escalate, transition
from .models import KPI
from .permissions import PermissionMatrix, can_create, can_delete, can_edit
from .repository import Repository

logger = logging.getLogger(__name__)

# Fields that only the lifecycle or the classifier may change
_PROTECTED_FIELDS = {
    "kpis": {"status", "trend", "history", "current_value", "id"},
    "actions": {"status", "completed_at", "id"},
    "problems": {"status", "resolved_at", "escalated", "id"},
}
_RECLASSIFY_FIELDS = {"target_value", "direction", "amber_band"}

# Lifecycle fields every new Action/Problem starts from
_INITIAL_STATE = {
    "actions": {"status": "todo", "completed_at": None},
    "problems": {"status": "open", "resolved_at": None, "escalated": False},
}


def _denied(role: str | None, permission: str) -> TransitionResult:
    logger.info("Denied: role %s lacks %s", role, permission)
    return TransitionResult(denied=Denied(role, permission))


def create_entity(
    repo: Repository,
    kind: str,
    entity,
    role: str | None,
    matrix: PermissionMatrix | None = None,
    now: pd.Timestamp | None = None,
) -> TransitionResult:
    """Create `entity` if `role` may create this kind.

    KPIs are stored with status and trend derived from their values.
    Actions and Problems start from their initial state; a non-initial
    status or an escalation carried by `entity` is then applied through
    transition() and escalate() for the same role. If any step is denied
    nothing is written. Lifecycle timestamps are set by the transition,
    not taken from `entity`.

    Raises
    ------
    ValueError : `entity` is not of `kind`.
    """
    if getattr(entity, "kind", None) != kind:
        raise ValueError(f"Cannot create {type(entity).__name__} as {kind}")
    if not can_create(role, kind, matrix):
        return _denied(role, f"create_{kind}")
    if isinstance(entity, KPI):
        return TransitionResult(entity=repo.create(kind, reclassify(entity)))

    initial = _INITIAL_STATE.get(kind)
    if initial is None:
        return TransitionResult(entity=repo.create(kind, entity))

    result = TransitionResult(entity=dataclasses.replace(entity, **initial))
    if entity.status != initial["status"]:
        result = transition(result.entity, entity.status, role, matrix, now)
    if result.ok and getattr(entity, "escalated", False):
        result = escalate(result.entity, role, matrix)
    if not result.ok:
        logger.info("Denied: create %s %s as %s for role %s", kind, entity.id, entity.status, role)
        return result
    return TransitionResult(entity=repo.create(kind, result.entity))


def update_entity(
    repo: Repository,
    kind: str,
    entity_id: str,
    patch: dict,
    role: str | None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    """Edit descriptive fields of an entity.

    Status, derived timestamps, KPI status/trend and KPI current values are
    not patchable; use change_status(), escalate_problem() or
    record_kpi_value().

    Raises
    ------
    ValueError : `patch` touches a protected field.
    NotFound : `entity_id` is not in the repository.
    """
    protected = set(patch) & _PROTECTED_FIELDS.get(kind, set())
    if protected:
        raise ValueError(f"Fields {sorted(protected)} cannot be patched on {kind}")
    if not can_edit(role, kind, matrix):
        return _denied(role, f"edit_{kind}")

    current = repo.get(kind, entity_id)
    updated = dataclasses.replace(current, **patch)
    if isinstance(updated, KPI) and set(patch) & _RECLASSIFY_FIELDS:
        updated = reclassify(updated)
    return TransitionResult(entity=repo.replace(kind, updated))


def delete_entity(
    repo: Repository,
    kind: str,
    entity_id: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    if not can_delete(role, kind, matrix):
        return _denied(role, f"delete_{kind}")
    entity = repo.get(kind, entity_id)
    repo.delete(kind, entity_id)
    return TransitionResult(entity=entity)


def change_status(
    repo: Repository,
    kind: str,
    entity_id: str,
    new_status: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
    now: pd.Timestamp | None = None,
) -> TransitionResult:
    """Transition an Action or Problem and persist the result."""
    current = repo.get(kind, entity_id)
    result = transition(current, new_status, role, matrix, now)
    if not result.ok:
        logger.info("Denied: %s %s -> %s for role %s", kind, entity_id, new_status, role)
        return result
    repo.replace(kind, result.entity)
    return result


def toggle_action(
    repo: Repository,
    action_id: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
    now: pd.Timestamp | None = None,
) -> TransitionResult:
    """Flip an action between done and todo (anything not done becomes done)."""
    current = repo.get("actions", action_id)
    new_status = "todo" if current.status == "done" else "done"
    return change_status(repo, "actions", action_id, new_status, role, matrix, now)


def escalate_problem(
    repo: Repository,
    problem_id: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    current = repo.get("problems", problem_id)
    result = escalate(current, role, matrix)
    if not result.ok:
        logger.info("Denied: escalate %s for role %s", problem_id, role)
        return result
    if result.entity is not current:
        repo.replace("problems", result.entity)
    return result


def record_kpi_value(
    repo: Repository,
    kpi_id: str,
    value: float,
    role: str | None,
    recorded_at: pd.Timestamp | None = None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    current = repo.get("kpis", kpi_id)
    result = record_value(current, value, role, recorded_at, matrix)
    if not result.ok:
        logger.info("Denied: record value on KPI %s for role %s", kpi_id, role)
        return result
    repo.replace("kpis", result.entity)
    return result
