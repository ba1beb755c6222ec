"""
Role-based access control for the shop-floor dashboard.

A PermissionMatrix maps each role to a frozenset of permission tags.
Every check is a set-membership test: total, pure, and fail-closed
(an unknown or missing role holds no permissions). Checks never raise.

The module-level helpers consult DEFAULT_MATRIX unless a matrix is
passed explicitly.
"""

import logging
from collections.abc import Iterable, Mapping

from .config import ENTITY_KINDS, PERMISSIONS, ROLE_HIERARCHY, ROLE_PERMISSIONS

logger = logging.getLogger(__name__)

# Capability pairs where the first implies the second for one entity kind
_IMPLIED_CAPABILITIES = [
    (f"delete_{kind}", f"edit_{kind}") for kind in ENTITY_KINDS
]


class PermissionMatrix:
    """Read-only role -> permission set table."""

    def __init__(self, grants: Mapping[str, frozenset[str]]) -> None:
        self._grants: dict[str, frozenset[str]] = dict(grants)

    @classmethod
    def from_table(
        cls,
        table: Mapping[str, Iterable[str]],
        vocabulary: Iterable[str] | None = PERMISSIONS,
    ) -> "PermissionMatrix":
        """Build a matrix from a role -> iterable-of-tags table.

        Tags outside `vocabulary` raise ValueError. Pass vocabulary=None
        to accept any tag (synthetic test matrices).
        """
        allowed = set(vocabulary) if vocabulary is not None else None
        grants: dict[str, frozenset[str]] = {}
        for role, tags in table.items():
            tag_set = frozenset(tags)
            if allowed is not None:
                unknown = tag_set - allowed
                if unknown:
                    raise ValueError(
                        f"Unknown permission tag(s) for role '{role}': {sorted(unknown)}"
                    )
            grants[role] = tag_set
        logger.info("Built permission matrix for %d roles", len(grants))
        return cls(grants)

    @property
    def roles(self) -> list[str]:
        return list(self._grants)

    def permissions_for(self, role: str | None) -> frozenset[str]:
        if role is None:
            return frozenset()
        return self._grants.get(role, frozenset())

    def has_permission(self, role: str | None, permission: str) -> bool:
        return permission in self.permissions_for(role)

    def has_any(self, role: str | None, permissions: Iterable[str]) -> bool:
        granted = self.permissions_for(role)
        return any(p in granted for p in permissions)

    def has_all(self, role: str | None, permissions: Iterable[str]) -> bool:
        # An unknown role holds nothing, even for an empty request
        if role not in self._grants:
            return False
        granted = self._grants[role]
        return all(p in granted for p in permissions)

    def check_invariants(self) -> list[str]:
        """Return human-readable violations of the matrix invariants.

        - for every role and entity kind, delete_<kind> implies edit_<kind>
        - the admin role (when present) holds every tag any other role holds
        """
        violations = []
        for role, granted in self._grants.items():
            for stronger, weaker in _IMPLIED_CAPABILITIES:
                if stronger in granted and weaker not in granted:
                    violations.append(f"{role}: '{stronger}' granted without '{weaker}'")

        admin = self._grants.get("admin")
        if admin is not None:
            for role, granted in self._grants.items():
                missing = granted - admin
                if missing:
                    violations.append(f"admin lacks {sorted(missing)} held by {role}")
        return violations

    def __contains__(self, role: object) -> bool:
        return role in self._grants

    def __repr__(self) -> str:
        return f"PermissionMatrix(roles={self.roles})"


DEFAULT_MATRIX = PermissionMatrix.from_table(ROLE_PERMISSIONS)


def full_access_matrix(role: str = "superuser") -> PermissionMatrix:
    """Matrix with a single role granted the whole vocabulary."""
    return PermissionMatrix.from_table({role: PERMISSIONS})


# ---------------------------------------------------------------------------
# Module-level predicates
# ---------------------------------------------------------------------------

def _matrix(matrix: PermissionMatrix | None) -> PermissionMatrix:
    return DEFAULT_MATRIX if matrix is None else matrix


def permissions_for(role: str | None, matrix: PermissionMatrix | None = None) -> frozenset[str]:
    return _matrix(matrix).permissions_for(role)


def has_permission(
    role: str | None,
    permission: str,
    matrix: PermissionMatrix | None = None,
) -> bool:
    """Check whether `role` is granted `permission`.

    Args:
        role: Acting role, or None when no user is signed in.
        permission: Permission tag (e.g. "edit_actions").
        matrix: Matrix to consult; defaults to DEFAULT_MATRIX.

    Returns:
        True if the role holds the tag. Unknown roles hold nothing.
    """
    return _matrix(matrix).has_permission(role, permission)


def has_any(
    role: str | None,
    permissions: Iterable[str],
    matrix: PermissionMatrix | None = None,
) -> bool:
    return _matrix(matrix).has_any(role, permissions)


def has_all(
    role: str | None,
    permissions: Iterable[str],
    matrix: PermissionMatrix | None = None,
) -> bool:
    return _matrix(matrix).has_all(role, permissions)


def can_create(role: str | None, kind: str, matrix: PermissionMatrix | None = None) -> bool:
    return has_permission(role, f"create_{kind}", matrix)


def can_edit(role: str | None, kind: str, matrix: PermissionMatrix | None = None) -> bool:
    return has_permission(role, f"edit_{kind}", matrix)


def can_delete(role: str | None, kind: str, matrix: PermissionMatrix | None = None) -> bool:
    return has_permission(role, f"delete_{kind}", matrix)


def can_complete(role: str | None, matrix: PermissionMatrix | None = None) -> bool:
    return has_permission(role, "complete_actions", matrix)


def can_escalate(role: str | None, matrix: PermissionMatrix | None = None) -> bool:
    return has_permission(role, "escalate_problems", matrix)


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------

def has_role_level(role: str | None, minimum_role: str) -> bool:
    """Check if `role` is at or above `minimum_role` in ROLE_HIERARCHY.

    Roles outside the hierarchy (including None) never qualify.
    """
    try:
        role_level = ROLE_HIERARCHY.index(role)
        required_level = ROLE_HIERARCHY.index(minimum_role)
    except ValueError:
        return False
    return role_level <= required_level


def is_manager_or_above(role: str | None) -> bool:
    return has_role_level(role, "manager")


def is_team_leader_or_above(role: str | None) -> bool:
    return has_role_level(role, "team_leader")
