"""Tests for role-gated mutations through the repository (sfm_dashboard/service.py)."""

import pandas as pd
import pytest

from sfm_dashboard.exceptions import InvalidTransition, NotFound
from sfm_dashboard.models import KPI, Action, Problem
from sfm_dashboard.permissions import PermissionMatrix
from sfm_dashboard.service import (
    change_status,
    create_entity,
    delete_entity,
    escalate_problem,
    record_kpi_value,
    toggle_action,
    update_entity,
)


class TestCreate:
    def test_kpi_status_is_derived(self, repo) -> None:
        kpi = KPI(id="k9", name="TRS", category="performance",
                  current_value=50, target_value=100, status="success")
        result = create_entity(repo, "kpis", kpi, "manager")
        assert result.ok
        assert result.entity.status == "danger"
        assert repo.get("kpis", "k9").status == "danger"

    def test_operator_may_create_problems_only(self, repo) -> None:
        problem = Problem(id="p9", title="Bruit anormal")
        assert create_entity(repo, "problems", problem, "operator").ok
        kpi = KPI(id="k9", name="TRS", category="performance", current_value=1, target_value=1)
        result = create_entity(repo, "kpis", kpi, "operator")
        assert result.denied.permission == "create_kpis"
        with pytest.raises(NotFound):
            repo.get("kpis", "k9")


class TestCreateInitialState:
    """New actions and problems pass their status and escalation through the lifecycle gates."""

    def test_operator_cannot_create_escalated_problem(self, repo) -> None:
        result = create_entity(repo, "problems", Problem(id="px", title="t", escalated=True), "operator")
        assert not result.ok
        assert result.denied.permission == "escalate_problems"
        with pytest.raises(NotFound):
            repo.get("problems", "px")

    def test_operator_cannot_create_resolved_problem(self, repo) -> None:
        problem = Problem(id="px", title="t", status="resolved",
                          resolved_at=pd.Timestamp("2023-12-01"))
        result = create_entity(repo, "problems", problem, "operator")
        assert result.denied.permission == "edit_problems"
        with pytest.raises(NotFound):
            repo.get("problems", "px")

    def test_creator_only_cannot_create_done_action(self, repo) -> None:
        matrix = PermissionMatrix.from_table({"creator": ["create_actions"]})
        result = create_entity(repo, "actions", Action(id="ax", title="t", status="done"),
                               "creator", matrix)
        assert not result.ok
        with pytest.raises(NotFound):
            repo.get("actions", "ax")

    def test_team_leader_creates_done_action(self, repo, now) -> None:
        action = Action(id="ax", title="t", status="done",
                        completed_at=pd.Timestamp("2020-01-01"))
        result = create_entity(repo, "actions", action, "team_leader", now=now)
        assert result.ok
        stored = repo.get("actions", "ax")
        assert stored.status == "done"
        assert stored.completed_at == now

    def test_team_leader_creates_escalated_problem(self, repo) -> None:
        problem = Problem(id="px", title="t", status="in_progress", escalated=True)
        assert create_entity(repo, "problems", problem, "team_leader").ok
        stored = repo.get("problems", "px")
        assert stored.escalated is True
        assert stored.status == "in_progress"

    def test_stray_timestamp_cleared(self, repo) -> None:
        action = Action(id="ax", title="t", completed_at=pd.Timestamp("2020-01-01"))
        create_entity(repo, "actions", action, "manager")
        assert repo.get("actions", "ax").completed_at is None

    def test_kind_must_match_entity(self, repo) -> None:
        with pytest.raises(ValueError):
            create_entity(repo, "actions", Problem(id="px", title="t"), "admin")


class TestUpdate:
    def test_target_change_reclassifies(self, repo) -> None:
        result = update_entity(repo, "kpis", "k1", {"target_value": 3.0}, "team_leader")
        assert result.ok
        assert repo.get("kpis", "k1").status == "success"

    def test_descriptive_edit_keeps_status(self, repo) -> None:
        update_entity(repo, "kpis", "k1", {"unit": "%"}, "admin")
        kpi = repo.get("kpis", "k1")
        assert kpi.unit == "%"
        assert kpi.status == "warning"

    def test_protected_fields_rejected(self, repo) -> None:
        with pytest.raises(ValueError):
            update_entity(repo, "kpis", "k1", {"status": "success"}, "admin")
        with pytest.raises(ValueError):
            update_entity(repo, "actions", "a1", {"status": "done"}, "admin")
        with pytest.raises(ValueError):
            update_entity(repo, "problems", "p2", {"escalated": True}, "admin")

    def test_current_value_goes_through_recording(self, repo) -> None:
        with pytest.raises(ValueError):
            update_entity(repo, "kpis", "k1", {"current_value": 1.0}, "admin")
        assert repo.get("kpis", "k1").current_value == 2.1

    def test_denied_leaves_repository_untouched(self, repo) -> None:
        before = repo.get("actions", "a1")
        result = update_entity(repo, "actions", "a1", {"title": "x"}, "operator")
        assert not result.ok
        assert repo.get("actions", "a1") is before


class TestDelete:
    def test_only_admin_deletes_kpis(self, repo) -> None:
        assert delete_entity(repo, "kpis", "k1", "manager").denied.permission == "delete_kpis"
        assert delete_entity(repo, "kpis", "k1", "admin").ok
        with pytest.raises(NotFound):
            repo.get("kpis", "k1")

    def test_manager_deletes_actions(self, repo) -> None:
        result = delete_entity(repo, "actions", "a3", "manager")
        assert result.entity.id == "a3"
        assert len(repo.list("actions")) == 4

    def test_custom_matrix(self, repo, everything_matrix) -> None:
        assert delete_entity(repo, "problems", "p4", "root", everything_matrix).ok
        assert not delete_entity(repo, "problems", "p3", "admin", everything_matrix).ok


class TestChangeStatus:
    def test_operator_completes_todo(self, repo, now) -> None:
        result = change_status(repo, "actions", "a1", "done", "operator", now=now)
        assert result.ok
        stored = repo.get("actions", "a1")
        assert stored.status == "done"
        assert stored.completed_at == now

    def test_operator_cannot_finish_in_progress(self, repo, now) -> None:
        result = change_status(repo, "actions", "a2", "done", "operator", now=now)
        assert not result.ok
        assert repo.get("actions", "a2").status == "in_progress"

    def test_invalid_status_raises(self, repo) -> None:
        with pytest.raises(InvalidTransition):
            change_status(repo, "problems", "p2", "closed", "admin")

    def test_missing_entity(self, repo) -> None:
        with pytest.raises(NotFound):
            change_status(repo, "actions", "zz", "done", "admin")

    def test_resolve_problem(self, repo, now) -> None:
        change_status(repo, "problems", "p2", "resolved", "team_leader", now=now)
        assert repo.get("problems", "p2").resolved_at == now


class TestToggleAction:
    def test_done_goes_back_to_todo(self, repo, now) -> None:
        result = toggle_action(repo, "a4", "operator", now=now)
        assert result.entity.status == "todo"
        assert repo.get("actions", "a4").completed_at is None

    def test_todo_becomes_done(self, repo, now) -> None:
        assert toggle_action(repo, "a3", "operator", now=now).entity.status == "done"

    def test_in_progress_needs_edit(self, repo, now) -> None:
        assert not toggle_action(repo, "a2", "operator", now=now).ok
        assert toggle_action(repo, "a2", "team_leader", now=now).entity.status == "done"


class TestEscalateProblem:
    def test_escalate(self, repo) -> None:
        result = escalate_problem(repo, "p2", "team_leader")
        assert result.ok
        assert repo.get("problems", "p2").escalated is True

    def test_already_escalated(self, repo) -> None:
        before = repo.get("problems", "p1")
        assert escalate_problem(repo, "p1", "manager").entity is before

    def test_operator_denied(self, repo) -> None:
        assert not escalate_problem(repo, "p2", "operator").ok
        assert repo.get("problems", "p2").escalated is False


class TestRecordKpiValue:
    def test_record(self, repo, now) -> None:
        result = record_kpi_value(repo, "k2", 1.5, "team_leader", recorded_at=now)
        assert result.ok
        kpi = repo.get("kpis", "k2")
        assert kpi.current_value == 1.5
        assert kpi.status == "success"
        assert kpi.history[-1].timestamp == now

    def test_operator_denied(self, repo) -> None:
        result = record_kpi_value(repo, "k2", 1.5, "operator")
        assert result.denied.permission == "edit_kpis"
        assert repo.get("kpis", "k2").current_value == 3
