"""Tests for the RBAC module (sfm_dashboard/permissions.py).

Covers the default matrix, fail-closed checks, capability predicates,
matrix invariants, and the role hierarchy.
"""

import pytest

from sfm_dashboard.config import ENTITY_KINDS, PERMISSIONS, ROLE_PERMISSIONS, ROLES
from sfm_dashboard.permissions import (
    DEFAULT_MATRIX,
    PermissionMatrix,
    can_complete,
    can_create,
    can_delete,
    can_edit,
    can_escalate,
    full_access_matrix,
    has_all,
    has_any,
    has_permission,
    is_manager_or_above,
    is_team_leader_or_above,
    permissions_for,
)


# ---------------------------------------------------------------------------
# Permission matrix
# ---------------------------------------------------------------------------


class TestPermissionMatrix:
    """Test the default ROLE_PERMISSIONS table."""

    def test_every_role_defined(self) -> None:
        assert set(DEFAULT_MATRIX.roles) == set(ROLES)

    def test_admin_has_whole_vocabulary(self) -> None:
        assert permissions_for("admin") == frozenset(PERMISSIONS)

    def test_default_matrix_has_no_violations(self) -> None:
        assert DEFAULT_MATRIX.check_invariants() == []

    @pytest.mark.parametrize("role", ROLES)
    @pytest.mark.parametrize("kind", ENTITY_KINDS)
    def test_delete_implies_edit(self, role: str, kind: str) -> None:
        if can_delete(role, kind):
            assert can_edit(role, kind)

    def test_unknown_tag_rejected(self) -> None:
        with pytest.raises(ValueError, match="fly_drones"):
            PermissionMatrix.from_table({"admin": ["view_kpis", "fly_drones"]})

    def test_unknown_tag_accepted_without_vocabulary(self) -> None:
        matrix = PermissionMatrix.from_table({"bot": ["fly_drones"]}, vocabulary=None)
        assert matrix.has_permission("bot", "fly_drones")

    def test_violation_reported_for_delete_without_edit(self) -> None:
        matrix = PermissionMatrix.from_table({"odd": ["delete_kpis"]})
        violations = matrix.check_invariants()
        assert len(violations) == 1
        assert "delete_kpis" in violations[0]

    def test_violation_reported_when_admin_is_not_superset(self) -> None:
        matrix = PermissionMatrix.from_table({
            "admin": ["view_kpis"],
            "manager": ["view_kpis", "view_reports"],
        })
        assert any("admin lacks" in v for v in matrix.check_invariants())

    def test_source_table_is_not_aliased(self) -> None:
        table = {"x": ["view_kpis"]}
        matrix = PermissionMatrix.from_table(table)
        table["x"].append("edit_kpis")
        assert not matrix.has_permission("x", "edit_kpis")


# ---------------------------------------------------------------------------
# has_permission / has_any / has_all
# ---------------------------------------------------------------------------


class TestHasPermission:
    """Checks are total, fail-closed and never raise."""

    def test_operator_scenario(self) -> None:
        matrix = PermissionMatrix.from_table({"operator": ["view_actions", "complete_actions"]})
        assert can_edit("operator", "actions", matrix) is False
        assert has_permission("operator", "complete_actions", matrix) is True

    def test_default_operator_cannot_edit_actions(self) -> None:
        assert can_edit("operator", "actions") is False
        assert can_complete("operator") is True

    def test_unknown_role_has_nothing(self) -> None:
        assert has_permission("intruder", "view_kpis") is False
        assert permissions_for("intruder") == frozenset()

    def test_none_role_has_nothing(self) -> None:
        assert has_permission(None, "view_kpis") is False
        assert has_any(None, ["view_kpis"]) is False
        assert has_all(None, []) is False

    def test_has_any(self) -> None:
        assert has_any("operator", ["edit_actions", "complete_actions"]) is True
        assert has_any("operator", ["edit_actions", "delete_actions"]) is False

    def test_has_all(self) -> None:
        assert has_all("team_leader", ["edit_kpis", "escalate_problems"]) is True
        assert has_all("team_leader", ["edit_kpis", "create_kpis"]) is False

    def test_unknown_permission_is_false(self) -> None:
        assert has_permission("admin", "launch_rockets") is False

    def test_injected_matrix(self, everything_matrix) -> None:
        for tag in PERMISSIONS:
            assert has_permission("root", tag, everything_matrix)
            assert not has_permission("nobody", tag, everything_matrix)
        # default roles are unknown to the injected matrix
        assert not has_permission("admin", "view_kpis", everything_matrix)

    def test_full_access_matrix(self) -> None:
        matrix = full_access_matrix("tester")
        assert all(can_delete("tester", kind, matrix) for kind in ENTITY_KINDS)


# ---------------------------------------------------------------------------
# Capability predicates
# ---------------------------------------------------------------------------


class TestCapabilities:
    """can_create/can_edit/can_delete map onto '<verb>_<kind>' tags."""

    @pytest.mark.parametrize("role", ROLES)
    @pytest.mark.parametrize("kind", ENTITY_KINDS)
    def test_predicates_follow_table(self, role: str, kind: str) -> None:
        granted = set(ROLE_PERMISSIONS[role])
        assert can_create(role, kind) == (f"create_{kind}" in granted)
        assert can_edit(role, kind) == (f"edit_{kind}" in granted)
        assert can_delete(role, kind) == (f"delete_{kind}" in granted)

    def test_manager_cannot_delete_kpis(self) -> None:
        assert can_edit("manager", "kpis")
        assert not can_delete("manager", "kpis")

    def test_escalation_rights(self) -> None:
        assert can_escalate("team_leader")
        assert not can_escalate("operator")


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------


class TestRoleHierarchy:
    def test_manager_or_above(self) -> None:
        assert is_manager_or_above("admin")
        assert is_manager_or_above("manager")
        assert not is_manager_or_above("team_leader")

    def test_team_leader_or_above(self) -> None:
        assert is_team_leader_or_above("team_leader")
        assert not is_team_leader_or_above("operator")

    def test_unknown_role_never_qualifies(self) -> None:
        assert not is_team_leader_or_above("intruder")
        assert not is_team_leader_or_above(None)
