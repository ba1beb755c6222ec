"""Tests for the Action/Problem lifecycle (sfm_dashboard/lifecycle.py)."""

import itertools

import pandas as pd
import pytest

from sfm_dashboard.config import ACTION_STATUSES, PROBLEM_STATUSES
from sfm_dashboard.exceptions import Denied, InvalidTransition
from sfm_dashboard.lifecycle import (
    ACTION_MACHINE,
    PROBLEM_MACHINE,
    can_transition,
    escalate,
    transition,
)
from sfm_dashboard.models import KPI, Action, Problem


def _action(status: str = "todo", **kwargs) -> Action:
    completed = pd.Timestamp("2023-12-31") if status == "done" else None
    return Action(id="a", title="t", status=status, completed_at=completed, **kwargs)


def _problem(status: str = "open", **kwargs) -> Problem:
    resolved = pd.Timestamp("2023-12-31") if status == "resolved" else None
    return Problem(id="p", title="t", status=status, resolved_at=resolved, **kwargs)


# ---------------------------------------------------------------------------
# Transition tables
# ---------------------------------------------------------------------------


class TestTransitionTables:
    """Both kinds use a complete graph over their states."""

    def test_action_graph_is_complete(self) -> None:
        for a, b in itertools.permutations(ACTION_STATUSES, 2):
            assert b in ACTION_MACHINE.allowed[a]

    def test_problem_graph_is_complete(self) -> None:
        for a, b in itertools.permutations(PROBLEM_STATUSES, 2):
            assert b in PROBLEM_MACHINE.allowed[a]


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class TestActionTransitions:
    def test_entering_done_sets_completed_at(self, now) -> None:
        result = transition(_action("todo"), "done", "operator", now=now)
        assert result.ok
        assert result.entity.status == "done"
        assert result.entity.completed_at == now

    def test_leaving_done_clears_completed_at(self, now) -> None:
        result = transition(_action("done"), "todo", "operator", now=now)
        assert result.ok
        assert result.entity.status == "todo"
        assert result.entity.completed_at is None

    def test_input_is_not_mutated(self, now) -> None:
        action = _action("todo")
        transition(action, "done", "manager", now=now)
        assert action.status == "todo"
        assert action.completed_at is None

    def test_done_twice_yields_same_value(self, now) -> None:
        first = transition(_action("todo"), "done", "operator", now=now).unwrap()
        later = now + pd.Timedelta(hours=1)
        second = transition(first, "done", "operator", now=later).unwrap()
        assert second == first

    def test_complete_permission_does_not_cover_in_progress(self, now) -> None:
        result = transition(_action("todo"), "in_progress", "operator", now=now)
        assert not result.ok
        assert isinstance(result.denied, Denied)
        assert result.denied.permission == "edit_actions"
        assert result.entity is None

    def test_in_progress_to_done_needs_edit(self, now) -> None:
        assert not transition(_action("in_progress"), "done", "operator", now=now).ok
        assert transition(_action("in_progress"), "done", "team_leader", now=now).ok

    @pytest.mark.parametrize("a,b", list(itertools.permutations(ACTION_STATUSES, 2)))
    def test_edit_permission_allows_every_pair(self, a, b, now) -> None:
        assert transition(_action(a), b, "team_leader", now=now).ok

    def test_unknown_status_raises(self, now) -> None:
        with pytest.raises(InvalidTransition):
            transition(_action("todo"), "archived", "admin", now=now)

    def test_problem_status_on_action_raises(self, now) -> None:
        with pytest.raises(InvalidTransition):
            transition(_action("todo"), "resolved", "admin", now=now)

    def test_unknown_role_is_denied(self, now) -> None:
        result = transition(_action("todo"), "done", None, now=now)
        assert not result.ok
        with pytest.raises(Denied):
            result.unwrap()


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------


class TestProblemTransitions:
    def test_resolve_sets_resolved_at(self, now) -> None:
        result = transition(_problem("in_progress"), "resolved", "team_leader", now=now)
        assert result.entity.status == "resolved"
        assert result.entity.resolved_at == now

    def test_reopen_clears_resolved_at(self, now) -> None:
        result = transition(_problem("resolved"), "open", "manager", now=now)
        assert result.entity.resolved_at is None

    def test_operator_cannot_change_problem_status(self, now) -> None:
        result = transition(_problem("open"), "in_progress", "operator", now=now)
        assert result.denied.permission == "edit_problems"

    def test_transition_keeps_escalation(self, now) -> None:
        problem = _problem("open", escalated=True)
        result = transition(problem, "resolved", "manager", now=now)
        assert result.entity.escalated is True

    def test_unknown_status_raises(self, now) -> None:
        with pytest.raises(InvalidTransition):
            transition(_problem("open"), "done", "admin", now=now)

    def test_kpi_has_no_lifecycle(self) -> None:
        kpi = KPI(id="k", name="n", category="cost", current_value=1, target_value=1)
        with pytest.raises(InvalidTransition):
            transition(kpi, "done", "admin")


class TestEscalation:
    def test_escalate_sets_flag(self) -> None:
        result = escalate(_problem("open"), "team_leader")
        assert result.ok
        assert result.entity.escalated is True

    def test_escalate_twice_is_noop(self) -> None:
        once = escalate(_problem("open"), "manager").unwrap()
        twice = escalate(once, "manager")
        assert twice.ok
        assert twice.entity is once
        assert twice.entity.escalated is True

    def test_operator_cannot_escalate(self) -> None:
        problem = _problem("open")
        result = escalate(problem, "operator")
        assert not result.ok
        assert result.denied.permission == "escalate_problems"
        assert problem.escalated is False

    def test_escalate_rejects_actions(self) -> None:
        with pytest.raises(InvalidTransition):
            escalate(_action("todo"), "admin")


class TestCanTransition:
    def test_reports_without_raising(self) -> None:
        assert can_transition(_action("todo"), "done", "operator") is True
        assert can_transition(_action("todo"), "in_progress", "operator") is False
        assert can_transition(_action("todo"), "bogus", "admin") is False

    def test_matches_transition(self, now) -> None:
        for role in ("admin", "manager", "team_leader", "operator", None):
            for a, b in itertools.product(PROBLEM_STATUSES, repeat=2):
                expected = transition(_problem(a), b, role, now=now).ok
                assert can_transition(_problem(a), b, role) == expected
