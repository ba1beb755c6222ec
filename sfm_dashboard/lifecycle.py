"""
Status lifecycle for Actions and Problems.

One StatusMachine definition is instantiated per entity kind with its own
transition table and timestamp field. Both tables are complete graphs:
any state may move to any other. The permission gate is what varies:

  Action:  todo <-> done   needs complete_actions or edit_actions
           any other pair  needs edit_actions
  Problem: any pair        needs edit_problems
           escalate        needs escalate_problems (idempotent, one-way)

transition() and escalate() never mutate their input; they return a
TransitionResult holding either the new entity or a Denied error.
"""

import dataclasses
import logging
from dataclasses import dataclass
from itertools import permutations

import pandas as pd

from .config import ACTION_STATUSES, PROBLEM_STATUSES
from .exceptions import Denied, InvalidTransition
from .models import Action, Problem
from .permissions import PermissionMatrix, has_permission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a gated mutation: the new entity, or the denial."""

    entity: object | None = None
    denied: Denied | None = None

    @property
    def ok(self) -> bool:
        return self.denied is None

    def unwrap(self):
        if self.denied is not None:
            raise self.denied
        return self.entity


class StatusMachine:
    """Lifecycle definition for one entity kind.

    Parameters
    ----------
    kind : Entity kind name ("actions", "problems").
    entity_type : Dataclass the machine operates on.
    states : Ordered enumeration of legal statuses.
    terminal : Status whose entry stamps `timestamp_field`.
    timestamp_field : Field set on entering `terminal`, cleared on leaving.
    edit_permission : Permission that authorises any transition.
    shortcut_permission : Optional weaker permission authorising only the
        pairs listed in `shortcut_pairs`.
    """

    def __init__(
        self,
        kind: str,
        entity_type: type,
        states: tuple[str, ...],
        terminal: str,
        timestamp_field: str,
        edit_permission: str,
        shortcut_permission: str | None = None,
        shortcut_pairs: frozenset[tuple[str, str]] = frozenset(),
    ) -> None:
        self.kind = kind
        self.entity_type = entity_type
        self.states = states
        self.terminal = terminal
        self.timestamp_field = timestamp_field
        self.edit_permission = edit_permission
        self.shortcut_permission = shortcut_permission
        self.shortcut_pairs = shortcut_pairs
        self.allowed: dict[str, set[str]] = {state: set() for state in states}
        for from_status, to_status in permutations(states, 2):
            self.allowed[from_status].add(to_status)

    def validate(self, entity, new_status: str) -> None:
        """Raise InvalidTransition unless `new_status` is legal for `entity`."""
        if not isinstance(entity, self.entity_type):
            raise InvalidTransition(self.kind, f"<{type(entity).__name__}>")
        if new_status not in self.states:
            raise InvalidTransition(self.kind, new_status)
        if new_status != entity.status and new_status not in self.allowed[entity.status]:
            raise InvalidTransition(self.kind, new_status)

    def required_permissions(self, from_status: str, to_status: str) -> list[str]:
        """Permissions any one of which authorises from_status -> to_status."""
        required = [self.edit_permission]
        if self.shortcut_permission and (from_status, to_status) in self.shortcut_pairs:
            required.insert(0, self.shortcut_permission)
        return required

    def is_authorised(
        self,
        role: str | None,
        from_status: str,
        to_status: str,
        matrix: PermissionMatrix | None = None,
    ) -> bool:
        return any(
            has_permission(role, p, matrix)
            for p in self.required_permissions(from_status, to_status)
        )

    def apply(self, entity, new_status: str, now: pd.Timestamp):
        """Return a copy of `entity` in `new_status` with timestamps updated."""
        if new_status == entity.status:
            return entity
        changes = {"status": new_status}
        if new_status == self.terminal:
            changes[self.timestamp_field] = now
        elif entity.status == self.terminal:
            changes[self.timestamp_field] = None
        return dataclasses.replace(entity, **changes)

    def transition(
        self,
        entity,
        new_status: str,
        role: str | None,
        matrix: PermissionMatrix | None = None,
        now: pd.Timestamp | None = None,
    ) -> TransitionResult:
        """Validate, gate and apply a status change.

        Raises
        ------
        InvalidTransition : `new_status` is outside this kind's enumeration.
        """
        self.validate(entity, new_status)
        if not self.is_authorised(role, entity.status, new_status, matrix):
            permission = self.required_permissions(entity.status, new_status)[-1]
            return TransitionResult(denied=Denied(role, permission))

        if now is None:
            now = pd.Timestamp.now()
        updated = self.apply(entity, new_status, now)
        logger.debug(
            "%s %s: %s -> %s by %s", self.kind, entity.id, entity.status, new_status, role
        )
        return TransitionResult(entity=updated)


ACTION_MACHINE = StatusMachine(
    kind="actions",
    entity_type=Action,
    states=ACTION_STATUSES,
    terminal="done",
    timestamp_field="completed_at",
    edit_permission="edit_actions",
    shortcut_permission="complete_actions",
    shortcut_pairs=frozenset({
        ("todo", "done"), ("done", "todo"), ("todo", "todo"), ("done", "done"),
    }),
)

PROBLEM_MACHINE = StatusMachine(
    kind="problems",
    entity_type=Problem,
    states=PROBLEM_STATUSES,
    terminal="resolved",
    timestamp_field="resolved_at",
    edit_permission="edit_problems",
)

MACHINES: dict[str, StatusMachine] = {
    ACTION_MACHINE.kind: ACTION_MACHINE,
    PROBLEM_MACHINE.kind: PROBLEM_MACHINE,
}


def machine_for(entity) -> StatusMachine:
    kind = getattr(entity, "kind", None)
    if kind not in MACHINES:
        raise InvalidTransition(str(kind), f"<{type(entity).__name__}>")
    return MACHINES[kind]


def transition(
    entity,
    new_status: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
    now: pd.Timestamp | None = None,
) -> TransitionResult:
    """Move an Action or Problem to `new_status` on behalf of `role`."""
    return machine_for(entity).transition(entity, new_status, role, matrix, now)


def can_transition(
    entity,
    new_status: str,
    role: str | None,
    matrix: PermissionMatrix | None = None,
) -> bool:
    """Pre-compute whether transition() would succeed, without raising."""
    try:
        machine = machine_for(entity)
        machine.validate(entity, new_status)
    except InvalidTransition:
        return False
    return machine.is_authorised(role, entity.status, new_status, matrix)


def escalate(
    problem: Problem,
    role: str | None,
    matrix: PermissionMatrix | None = None,
) -> TransitionResult:
    """Flag a Problem as escalated. Escalating twice is a successful no-op."""
    if not isinstance(problem, Problem):
        raise InvalidTransition("problems", f"<{type(problem).__name__}>")
    if not has_permission(role, "escalate_problems", matrix):
        return TransitionResult(denied=Denied(role, "escalate_problems"))
    if problem.escalated:
        return TransitionResult(entity=problem)
    logger.debug("problems %s escalated by %s", problem.id, role)
    return TransitionResult(entity=dataclasses.replace(problem, escalated=True))
